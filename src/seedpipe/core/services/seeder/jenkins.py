from __future__ import annotations

import xml.etree.ElementTree as ET
from typing import Dict, Optional
from urllib.parse import quote

import httpx

from seedpipe.model import JobDefinition, PipelineKind

from .exceptions import SchedulerRegistrationError
from .schedulers import Scheduler


FOLDER_CLASS = "com.cloudbees.hudson.plugins.folder.Folder"
SCM_FLOW_CLASS = "org.jenkinsci.plugins.workflow.cps.CpsScmFlowDefinition"
GIT_SCM_CLASS = "hudson.plugins.git.GitSCM"
STRING_PARAMETER = "hudson.model.StringParameterDefinition"

XML_HEADERS = {"Content-Type": "application/xml"}


def _sub(parent: ET.Element, tag: str, text: Optional[str] = None, **attrs: str) -> ET.Element:
    node = ET.SubElement(parent, tag, attrs)
    if text is not None:
        node.text = text
    return node


def job_config_xml(job: JobDefinition) -> str:
    """
    config.xml of a pipeline job that loads its script from git.
    """
    root = ET.Element("flow-definition", {"plugin": "workflow-job"})
    _sub(root, "description", job.description)
    _sub(root, "keepDependencies", "false")

    properties = _sub(root, "properties")
    if job.parameters:
        prop = _sub(properties, "hudson.model.ParametersDefinitionProperty")
        definitions = _sub(prop, "parameterDefinitions")
        for name, default in job.parameters:
            param = _sub(definitions, STRING_PARAMETER)
            _sub(param, "name", name)
            _sub(param, "defaultValue", default)
            _sub(param, "trim", "true")

    definition = _sub(root, "definition", **{"class": SCM_FLOW_CLASS, "plugin": "workflow-cps"})
    scm = _sub(definition, "scm", **{"class": GIT_SCM_CLASS, "plugin": "git"})
    _sub(scm, "configVersion", "2")
    remotes = _sub(scm, "userRemoteConfigs")
    remote = _sub(remotes, "hudson.plugins.git.UserRemoteConfig")
    _sub(remote, "url", job.source_repository)
    branches = _sub(scm, "branches")
    branch = _sub(branches, "hudson.plugins.git.BranchSpec")
    _sub(branch, "name", f"*/{job.source_ref}")
    _sub(definition, "scriptPath", job.script_path)
    _sub(definition, "lightweight", "true")

    _sub(root, "disabled", "false")
    return ET.tostring(root, encoding="unicode")


def folder_config_xml(description: str = "") -> str:
    root = ET.Element(FOLDER_CLASS, {"plugin": "cloudbees-folder"})
    _sub(root, "description", description)
    return ET.tostring(root, encoding="unicode")


def parse_job_config(path: str, xml_text: str) -> JobDefinition:
    """
    Reads a job config.xml back into a JobDefinition, so it can be compared
    with the one derived from the registry.
    """
    root = ET.fromstring(xml_text)

    parameters = []
    for param in root.iter(STRING_PARAMETER):
        parameters.append((param.findtext("name") or "", param.findtext("defaultValue") or ""))

    definition = root.find("definition")
    url = ""
    branch = ""
    script_path = ""
    if definition is not None:
        url = definition.findtext("scm/userRemoteConfigs/hudson.plugins.git.UserRemoteConfig/url") or ""
        branch = definition.findtext("scm/branches/hudson.plugins.git.BranchSpec/name") or ""
        script_path = definition.findtext("scriptPath") or ""
    if branch.startswith("*/"):
        branch = branch[2:]

    name = path.rpartition("/")[2]
    kind = PipelineKind.DEPLOY if name.endswith("-deploy") else PipelineKind.BUILD

    return JobDefinition(
        path=path,
        kind=kind,
        source_repository=url,
        source_ref=branch,
        script_path=script_path,
        parameters=tuple(parameters),
        description=root.findtext("description") or "",
    )


class JenkinsScheduler(Scheduler):
    """
    Jenkins REST API as a scheduler: folders from the cloudbees-folder plugin,
    pipeline jobs whose Jenkinsfile comes from the service repository.

    Basic auth with user + API token. A CSRF crumb is fetched once when the
    instance has the crumb issuer enabled.
    """

    def __init__(
        self,
        base_url: str,
        user: Optional[str] = None,
        token: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 30.0,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        auth = (user, token) if user and token else None
        self.client = client or httpx.AsyncClient(timeout=timeout, auth=auth)
        self._crumb: Optional[Dict[str, str]] = None

    @staticmethod
    def _item_url(path: str) -> str:
        return "".join(f"/job/{quote(segment, safe='')}" for segment in path.split("/") if segment)

    async def _request(self, method: str, path: str, endpoint: str, **kwargs) -> httpx.Response:
        url = f"{self.base_url}{endpoint}"
        try:
            return await self.client.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            raise SchedulerRegistrationError(path=path, reason=f"{method} {url} failed ({e})")

    async def _crumb_headers(self, path: str) -> Dict[str, str]:
        if self._crumb is None:
            response = await self._request("GET", path, "/crumbIssuer/api/json")
            if response.status_code == 200:
                try:
                    data = response.json()
                    crumb = {data["crumbRequestField"]: data["crumb"]}
                except (ValueError, KeyError, TypeError) as e:
                    # a login page or proxy answer instead of the crumb issuer
                    raise SchedulerRegistrationError(
                        path=path,
                        reason=f"unexpected crumb issuer response ({e})",
                        logs=[response.text[:500]],
                    )
                self._crumb = crumb
            else:
                self._crumb = {}
        return dict(self._crumb)

    async def _post_xml(self, path: str, endpoint: str, xml: str, params: Optional[Dict[str, str]] = None) -> None:
        headers = {**XML_HEADERS, **await self._crumb_headers(path)}
        response = await self._request(
            "POST", path, endpoint, params=params, content=xml.encode("utf-8"), headers=headers
        )
        if response.status_code >= 400:
            raise SchedulerRegistrationError(
                path=path,
                reason=f"HTTP {response.status_code} from {endpoint}",
                logs=[response.text[:500]],
            )

    async def _exists(self, path: str) -> bool:
        response = await self._request("GET", path, f"{self._item_url(path)}/api/json")
        if response.status_code == 404:
            return False
        if response.status_code >= 400:
            raise SchedulerRegistrationError(path=path, reason=f"HTTP {response.status_code} while checking")
        return True

    async def ensure_folder(self, path: str) -> bool:
        if await self._exists(path):
            return False
        parent, _, name = path.rpartition("/")
        await self._post_xml(
            path,
            f"{self._item_url(parent)}/createItem",
            folder_config_xml(),
            params={"name": name},
        )
        return True

    async def get_job(self, path: str) -> Optional[JobDefinition]:
        response = await self._request("GET", path, f"{self._item_url(path)}/config.xml")
        if response.status_code == 404:
            return None
        if response.status_code >= 400:
            raise SchedulerRegistrationError(path=path, reason=f"HTTP {response.status_code} reading config.xml")
        try:
            return parse_job_config(path, response.text)
        except ET.ParseError as e:
            raise SchedulerRegistrationError(path=path, reason=f"unreadable config.xml ({e})")

    async def create_job(self, job: JobDefinition) -> None:
        await self._post_xml(
            job.path,
            f"{self._item_url(job.folder or '')}/createItem",
            job_config_xml(job),
            params={"name": job.name},
        )

    async def update_job(self, job: JobDefinition) -> None:
        await self._post_xml(job.path, f"{self._item_url(job.path)}/config.xml", job_config_xml(job))

    async def close(self) -> None:
        await self.client.aclose()

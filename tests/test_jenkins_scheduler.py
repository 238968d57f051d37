from __future__ import annotations

import asyncio
from typing import Dict, List

import httpx
import pytest

from seedpipe.core.services.registry import load
from seedpipe.core.services.seeder import JenkinsScheduler, SchedulerRegistrationError, Seeder
from seedpipe.core.services.seeder.jenkins import job_config_xml, parse_job_config
from seedpipe.model import JobDefinition, PipelineKind


class FakeJenkins:
    """Just enough of the Jenkins REST API for folders and pipeline jobs."""

    def __init__(self, crumb: bool = True):
        self.items: Dict[str, str] = {}  # path -> config.xml
        self.requests: List[str] = []
        self.crumb = crumb

    @staticmethod
    def _path(url_path: str) -> str:
        parts = [p for p in url_path.split("/") if p]
        segments = [parts[i + 1] for i in range(len(parts) - 1) if parts[i] == "job"]
        return "/".join(segments)

    def handler(self, request: httpx.Request) -> httpx.Response:
        url_path = request.url.path
        self.requests.append(f"{request.method} {url_path}")

        if url_path == "/crumbIssuer/api/json":
            if not self.crumb:
                return httpx.Response(404)
            return httpx.Response(200, json={"crumbRequestField": "Jenkins-Crumb", "crumb": "abc"})

        if request.method == "POST" and self.crumb and request.headers.get("Jenkins-Crumb") != "abc":
            return httpx.Response(403, text="No valid crumb")

        path = self._path(url_path)
        if url_path.endswith("/createItem"):
            name = request.url.params["name"]
            new_path = f"{path}/{name}" if path else name
            if new_path in self.items:
                return httpx.Response(400, text="exists")
            self.items[new_path] = request.content.decode()
            return httpx.Response(200)
        if url_path.endswith("/config.xml"):
            if path not in self.items:
                return httpx.Response(404)
            if request.method == "POST":
                self.items[path] = request.content.decode()
                return httpx.Response(200)
            return httpx.Response(200, text=self.items[path])
        if url_path.endswith("/api/json"):
            return httpx.Response(200, json={}) if path in self.items else httpx.Response(404)
        return httpx.Response(404)


def _scheduler(fake: FakeJenkins) -> JenkinsScheduler:
    client = httpx.AsyncClient(transport=httpx.MockTransport(fake.handler))
    return JenkinsScheduler("https://ci.example.com/", client=client)


def test_config_xml_reads_back_to_same_job() -> None:
    job = JobDefinition(
        path="shop/services/backend-deploy",
        kind=PipelineKind.DEPLOY,
        source_repository="https://git.example.com/app.git",
        source_ref="develop",
        script_path="ci/deploy.Jenkinsfile",
        parameters=(("ENVIRONMENT", "dev"), ("VERSION", "latest")),
        description="Deploy pipeline of backend: DeployRelease",
    )

    assert parse_job_config(job.path, job_config_xml(job)) == job


def test_seed_against_jenkins_is_idempotent(registry_document) -> None:
    fake = FakeJenkins()
    registry = load(registry_document)

    first = asyncio.run(Seeder(_scheduler(fake)).reconcile(registry))
    second = asyncio.run(Seeder(_scheduler(fake)).reconcile(registry))

    assert len(first.created) == 4
    assert "shop" in fake.items and "shop/services" in fake.items
    assert "com.cloudbees.hudson.plugins.folder.Folder" in fake.items["shop"]
    assert "CpsScmFlowDefinition" in fake.items["shop/services/backend-build"]
    assert second.created == [] and second.updated == [] and len(second.unchanged) == 4


def test_changed_job_is_posted_to_config_xml(registry_document) -> None:
    fake = FakeJenkins(crumb=False)
    asyncio.run(Seeder(_scheduler(fake)).reconcile(load(registry_document)))

    registry_document["services"][1]["deployPipelinePath"] = "ci/new-deploy.Jenkinsfile"
    fake.requests.clear()
    report = asyncio.run(Seeder(_scheduler(fake)).reconcile(load(registry_document)))

    assert report.updated == ["shop/services/frontend-deploy"]
    assert "POST /job/shop/job/services/job/frontend-deploy/config.xml" in fake.requests
    assert "ci/new-deploy.Jenkinsfile" in fake.items["shop/services/frontend-deploy"]


def test_http_errors_become_registration_errors() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500)

    scheduler = JenkinsScheduler(
        "https://ci.example.com", client=httpx.AsyncClient(transport=httpx.MockTransport(handler))
    )

    with pytest.raises(SchedulerRegistrationError):
        asyncio.run(scheduler.get_job("shop/backend-build"))


def test_connection_errors_become_registration_errors() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    scheduler = JenkinsScheduler(
        "https://ci.example.com", client=httpx.AsyncClient(transport=httpx.MockTransport(handler))
    )

    with pytest.raises(SchedulerRegistrationError) as err:
        asyncio.run(scheduler.ensure_folder("shop"))
    assert "connection refused" in err.value.description


def test_login_page_instead_of_crumb_fails_each_service(registry_document) -> None:
    fake = FakeJenkins()

    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/crumbIssuer/api/json":
            return httpx.Response(200, text="<html>login</html>")
        return fake.handler(request)

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    scheduler = JenkinsScheduler("https://ci.example.com", client=client)

    report = asyncio.run(Seeder(scheduler).reconcile(load(registry_document)))

    assert report.failed == ["backend", "frontend"]
    assert "unexpected crumb issuer response" in report.for_service("backend").error
    assert fake.items == {}

import asyncio
import json
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple

from seedpipe.core.config import Settings
from seedpipe.core.models import ExecutionContext, ExecutionResult
from seedpipe.core.services.git_module import GitCloneError, clone_into
from seedpipe.exception import SeedpipeException
from seedpipe.model import (
    BuildImageSpec,
    DeployReleaseSpec,
    FetchHelmChartSpec,
    InstallDependenciesSpec,
    OperationType,
    PushImageSpec,
    ReadVersionSpec,
    StaticAnalysisSpec,
)

from .exceptions import (
    AnalysisError,
    ChartFetchError,
    DependencyInstallError,
    DeploymentApplyError,
    ImageBuildError,
    ImagePushError,
    ManifestNotFoundError,
    ManifestParseError,
)
from .tools import ToolRunner

# (updated context fields, warnings)
Outcome = Tuple[Dict[str, Any], List[str]]


class OperationExecutor:
    """
    Runs one pipeline operation against a service directory.

    Every operation type maps to one external collaborator (npm, sonar-scanner,
    docker, git, helm). The executor keeps no state between calls, whatever an
    operation resolves goes back to the runner as updated context fields.
    """

    def __init__(
        self,
        tools: Optional[ToolRunner] = None,
        analysis_fatal: bool = True,
        sonar_host: Optional[str] = None,
        sonar_token: Optional[str] = None,
        ecr_login: bool = False,
        cluster_name: Optional[str] = None,
        bundled_chart_dir: str = "helm",
        chart_fetcher: Callable[..., Path] = clone_into,
    ) -> None:
        self.tools = tools or ToolRunner()
        self.analysis_fatal = analysis_fatal
        self.sonar_host = sonar_host
        self.sonar_token = sonar_token
        self.ecr_login = ecr_login
        self.cluster_name = cluster_name
        self.bundled_chart_dir = bundled_chart_dir
        self.chart_fetcher = chart_fetcher

        self._handlers = {
            OperationType.READ_VERSION: self._read_version,
            OperationType.INSTALL_DEPENDENCIES: self._install_dependencies,
            OperationType.STATIC_ANALYSIS: self._static_analysis,
            OperationType.BUILD_IMAGE: self._build_image,
            OperationType.PUSH_IMAGE: self._push_image,
            OperationType.FETCH_HELM_CHART: self._fetch_helm_chart,
            OperationType.DEPLOY_RELEASE: self._deploy_release,
        }

    @classmethod
    def from_settings(cls, settings: Settings, tools: Optional[ToolRunner] = None) -> "OperationExecutor":
        return cls(
            tools=tools or ToolRunner(timeout=settings.command_timeout),
            analysis_fatal=settings.analysis_fatal,
            sonar_host=settings.sonar_host,
            sonar_token=settings.sonar_token,
            ecr_login=settings.ecr_login,
            cluster_name=settings.cluster_name,
            bundled_chart_dir=settings.bundled_chart_dir,
        )

    async def execute(self, spec, context: ExecutionContext) -> ExecutionResult:
        """
        Runs spec against context. Operation failures come back as a failed
        ExecutionResult, only programming errors propagate.
        """
        handler = self._handlers.get(spec.operation_type)
        if handler is None:
            raise ValueError(f"Unsupported operation type: {spec.operation_type!r}")

        logs: List[str] = [f"[{context.service}] {spec.operation_type.value}"]
        try:
            fields, warnings = await handler(spec, context, logs)
        except SeedpipeException as e:
            logs.append(f"[{context.service}] {spec.operation_type.value} failed: {e.description}")
            return ExecutionResult.failed(e, logs)

        return ExecutionResult(
            success=True,
            updated_context_fields=fields,
            logs=logs,
            warnings=warnings,
        )

    async def _read_version(self, spec: ReadVersionSpec, context: ExecutionContext, logs: List[str]) -> Outcome:
        path = context.service_dir / spec.manifest
        if not path.is_file():
            raise ManifestNotFoundError(service=spec.service, path=str(path))

        try:
            manifest = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            raise ManifestParseError(service=spec.service, path=str(path), reason=str(e))

        if not isinstance(manifest, dict):
            raise ManifestParseError(service=spec.service, path=str(path), reason="manifest is not an object")

        version = manifest.get("version")
        if not isinstance(version, str) or not version.strip():
            raise ManifestParseError(service=spec.service, path=str(path), reason="no 'version' field")

        version = version.strip()
        if version != context.version:
            logs.append(f"Manifest version {version} replaces requested version {context.version}")
        else:
            logs.append(f"Manifest version {version}")
        return {"version": version, "appVersion": version}, []

    async def _install_dependencies(
        self, spec: InstallDependenciesSpec, context: ExecutionContext, logs: List[str]
    ) -> Outcome:
        result = await self.tools.run(["npm", "install"], cwd=context.service_dir)
        logs.append(f"$ {result.command} -> {result.returncode}")
        if not result.ok:
            raise DependencyInstallError(service=spec.service, result=result)
        return {}, []

    async def _static_analysis(self, spec: StaticAnalysisSpec, context: ExecutionContext, logs: List[str]) -> Outcome:
        project_key = f"{context.project}-{context.environment}-{context.service}"
        args = [
            "sonar-scanner",
            f"-Dsonar.projectKey={project_key}",
            f"-Dsonar.sources={spec.sources}",
        ]
        if self.sonar_host:
            args.append(f"-Dsonar.host.url={self.sonar_host}")
        # token goes through the environment so it never shows up in logs
        env = {"SONAR_TOKEN": self.sonar_token} if self.sonar_token else None

        result = await self.tools.run(args, cwd=context.service_dir, env=env)
        logs.append(f"$ {result.command} -> {result.returncode}")
        if result.ok:
            return {"projectKey": project_key}, []

        error = AnalysisError(service=spec.service, result=result)
        if self.analysis_fatal:
            raise error
        return {"projectKey": project_key}, [f"Static analysis is advisory, continuing: {error.description}"]

    async def _build_image(self, spec: BuildImageSpec, context: ExecutionContext, logs: List[str]) -> Outcome:
        reference = context.image_reference
        result = await self.tools.run(
            ["docker", "build", "-t", reference, "-f", spec.dockerfile, "."],
            cwd=context.service_dir,
        )
        logs.append(f"$ {result.command} -> {result.returncode}")
        if not result.ok:
            raise ImageBuildError(service=spec.service, result=result)
        return {"imageReference": reference}, []

    async def _registry_login(self, spec: PushImageSpec, context: ExecutionContext, logs: List[str]) -> None:
        password = await self.tools.run(
            ["aws", "ecr", "get-login-password", "--region", context.region]
        )
        logs.append(f"$ {password.command} -> {password.returncode}")
        if not password.ok:
            raise ImagePushError(service=spec.service, result=password)

        login = await self.tools.run(
            ["docker", "login", "--username", "AWS", "--password-stdin", context.registry_prefix],
            input=password.stdout.strip(),
        )
        logs.append(f"$ {login.command} -> {login.returncode}")
        if not login.ok:
            raise ImagePushError(service=spec.service, result=login)

    async def _push_image(self, spec: PushImageSpec, context: ExecutionContext, logs: List[str]) -> Outcome:
        if self.ecr_login and ".dkr.ecr." in context.registry_prefix:
            await self._registry_login(spec, context, logs)

        reference = context.image_reference
        result = await self.tools.run(["docker", "push", reference])
        logs.append(f"$ {result.command} -> {result.returncode}")
        if not result.ok:
            raise ImagePushError(service=spec.service, result=result)
        return {"imageReference": reference}, []

    async def _fetch_helm_chart(self, spec: FetchHelmChartSpec, context: ExecutionContext, logs: List[str]) -> Outcome:
        base = context.scratch_dir if context.scratch_dir is not None else context.workspace / ".seedpipe"
        destination = base / "helm-charts"
        try:
            await asyncio.to_thread(
                self.chart_fetcher,
                spec.helm_repository,
                spec.helm_branch,
                destination,
                logs,
            )
        except GitCloneError as e:
            raise ChartFetchError(
                service=spec.service,
                reason=f"cannot clone {spec.helm_repository}@{spec.helm_branch}",
                logs=e.logs,
            )
        return {"chart_root": destination}, []

    def _chart_root(self, spec: DeployReleaseSpec, context: ExecutionContext) -> Path:
        if spec.chart_source == "cloned":
            if context.chart_root is None:
                raise DeploymentApplyError(service=spec.service, reason="helm chart was not fetched")
            return context.chart_root
        return context.workspace / self.bundled_chart_dir

    async def _deploy_release(self, spec: DeployReleaseSpec, context: ExecutionContext, logs: List[str]) -> Outcome:
        chart_root = self._chart_root(spec, context)
        chart_path = chart_root / spec.service
        values_file = chart_root / f"{spec.service}-values.yaml"
        warnings: List[str] = []

        if not chart_path.is_dir():
            raise DeploymentApplyError(service=spec.service, reason=f"chart not found at {chart_path}")

        if self.cluster_name:
            kubeconfig = await self.tools.run(
                ["aws", "eks", "update-kubeconfig", "--name", self.cluster_name, "--region", context.region]
            )
            logs.append(f"$ {kubeconfig.command} -> {kubeconfig.returncode}")
            if not kubeconfig.ok:
                raise DeploymentApplyError(service=spec.service, result=kubeconfig)

        args = [
            "helm", "upgrade", "--install", spec.service, str(chart_path),
            "--namespace", spec.environment,
            "--create-namespace",
        ]
        if values_file.is_file():
            args += ["-f", str(values_file)]
        else:
            warnings.append(f"No values file {values_file}, deploying with chart defaults")
        args += [
            "--set", f"image.repository={context.image_prefix}",
            "--set", f"image.tag={context.image_tag}",
        ]

        result = await self.tools.run(args, cwd=context.workspace)
        logs.append(f"$ {result.command} -> {result.returncode}")
        if not result.ok:
            raise DeploymentApplyError(service=spec.service, result=result)
        return {"release": spec.service, "chartPath": str(chart_path)}, warnings

from pathlib import Path
from typing import List, Optional, Union

from .config import Settings
from .models import (
    ExecutionContext,
    Registry,
    RunResult,
    RunStatus,
    SeedReport,
    ServiceRecord,
)
from .services import registry as registry_loader
from .services.builders import pipeline as builder
from .services.executor import OperationExecutor, ToolRunner
from .services.git_module import GitRepo2Seed, LocalRepo
from .services.git_module.exceptions import GitExceptions
from .services.registry import ServiceNotFoundError
from .services.runner import PipelineRunner
from .services.seeder import Scheduler, Seeder
from seedpipe.model import PipelineDefinition, PipelineKind


class SeedpipeCore:
    """
    Entry point that wires registry, generator, runner and seeder together.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        executor: Optional[OperationExecutor] = None,
        tools: Optional[ToolRunner] = None,
    ):
        self.settings = settings or Settings.from_env()
        self.executor = executor or OperationExecutor.from_settings(self.settings, tools=tools)
        self.git = GitRepo2Seed(base_dir=self.settings.workdir)

    def load_registry(self, source: Union[Registry, str, Path, dict, list]) -> Registry:
        if isinstance(source, Registry):
            return source
        return registry_loader.load(source)

    def _record(self, registry: Registry, service: str) -> ServiceRecord:
        record = registry.get(service)
        if record is None:
            raise ServiceNotFoundError(name=service, known=registry.names)
        return record

    async def seed(self, registry_source, scheduler: Scheduler) -> SeedReport:
        registry = self.load_registry(registry_source)
        return await Seeder(scheduler).reconcile(registry)

    def plan(
        self,
        registry_source,
        service: Optional[str] = None,
        environment: str = "dev",
        version: str = "latest",
    ) -> List[PipelineDefinition]:
        """
        Build and deploy pipelines of one service (or all), without running anything.
        """
        registry = self.load_registry(registry_source)
        records = [self._record(registry, service)] if service else list(registry)

        pipelines: List[PipelineDefinition] = []
        for record in records:
            pipelines.append(self._build_pipeline(record))
            pipelines.append(builder.generate_deploy(record, environment, version))
        return pipelines

    def _build_pipeline(self, record: ServiceRecord) -> PipelineDefinition:
        return builder.generate_build(
            record,
            manifest=self.settings.manifest_name,
            dockerfile=self.settings.dockerfile,
        )

    async def prepare_workspace(self, record: ServiceRecord, source: Optional[Union[str, Path]] = None) -> LocalRepo:
        if source is not None:
            return await self.git.from_existing_path(source)
        return await self.git.clone(record.source_repository, record.source_branch)

    def context_for(self, record: ServiceRecord, environment: str, version: str, workspace: LocalRepo) -> ExecutionContext:
        return ExecutionContext.for_run(
            service=record.name,
            environment=environment,
            version=version,
            project=self.settings.project,
            registry_prefix=self.settings.resolved_registry_prefix(),
            workspace=workspace.repo_path,
            scratch_dir=workspace.scratch_dir,
            region=self.settings.region,
            account=self.settings.account,
        )

    async def _run(
        self,
        record: ServiceRecord,
        pipeline: PipelineDefinition,
        environment: str,
        version: str,
        source: Optional[Union[str, Path]],
    ) -> RunResult:
        try:
            workspace = await self.prepare_workspace(record, source)
        except GitExceptions as e:
            return RunResult(
                status=RunStatus.FAILED,
                service=record.name,
                kind=pipeline.kind,
                error_detail=e.description,
                error_type=e.__class__.__name__,
                logs=e.logs,
                warnings=["Workspace could not be prepared, no operation was run."],
            )

        context = self.context_for(record, environment, version, workspace)
        result = await PipelineRunner(self.executor).run(pipeline, context, workspace)
        result.logs[:0] = workspace.logs
        return result

    async def build(
        self,
        registry_source,
        service: str,
        environment: str,
        version: str,
        source: Optional[Union[str, Path]] = None,
    ) -> RunResult:
        registry = self.load_registry(registry_source)
        record = self._record(registry, service)
        return await self._run(record, self._build_pipeline(record), environment, version, source)

    async def deploy(
        self,
        registry_source,
        service: str,
        environment: str,
        version: str,
        source: Optional[Union[str, Path]] = None,
    ) -> RunResult:
        registry = self.load_registry(registry_source)
        record = self._record(registry, service)
        pipeline = builder.generate_deploy(record, environment, version)
        return await self._run(record, pipeline, environment, version, source)

    async def run(
        self,
        kind: PipelineKind,
        registry_source,
        service: str,
        environment: str,
        version: str,
        source: Optional[Union[str, Path]] = None,
    ) -> RunResult:
        if kind == PipelineKind.BUILD:
            return await self.build(registry_source, service, environment, version, source)
        return await self.deploy(registry_source, service, environment, version, source)

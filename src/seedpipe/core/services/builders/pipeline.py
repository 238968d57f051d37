from typing import List, Tuple

from seedpipe.core.models import PipelineSummary, ServiceRecord
from seedpipe.model import (
    BuildImageSpec,
    DeployReleaseSpec,
    FetchHelmChartSpec,
    InstallDependenciesSpec,
    JobDefinition,
    PipelineDefinition,
    PipelineKind,
    PushImageSpec,
    ReadVersionSpec,
    StaticAnalysisSpec,
)


# Parameters every seeded job exposes to whoever triggers it
JOB_PARAMETERS: Tuple[Tuple[str, str], ...] = (
    ("ENVIRONMENT", "dev"),
    ("VERSION", "latest"),
)

# Placeholders used when describing a deploy job at seed time
_SEED_ENVIRONMENT = "${ENVIRONMENT}"
_SEED_VERSION = "${VERSION}"


def generate_build(
    record: ServiceRecord,
    manifest: str = "package.json",
    dockerfile: str = "Dockerfile",
) -> PipelineDefinition:
    """
    Build pipeline of a service, always in this order:
    ReadVersion -> InstallDependencies -> StaticAnalysis -> BuildImage -> PushImage.

    The version read from the manifest replaces the version the run was started
    with, every later operation sees the manifest version.
    """
    operations = (
        ReadVersionSpec(service=record.name, manifest=manifest),
        InstallDependenciesSpec(service=record.name),
        StaticAnalysisSpec(service=record.name),
        BuildImageSpec(service=record.name, dockerfile=dockerfile),
        PushImageSpec(service=record.name),
    )
    return PipelineDefinition(
        service_name=record.name,
        kind=PipelineKind.BUILD,
        operations=operations,
    )


def generate_deploy(
    record: ServiceRecord,
    environment: str,
    version: str,
) -> PipelineDefinition:
    """
    Deploy pipeline of a service: FetchHelmChart (only with helmRepository) -> DeployRelease.
    """
    operations: List = []
    chart_source = "bundled"

    if record.helm_repository:
        operations.append(
            FetchHelmChartSpec(
                service=record.name,
                helm_repository=record.helm_repository,
                helm_branch=record.helm_branch,
            )
        )
        chart_source = "cloned"

    operations.append(
        DeployReleaseSpec(
            service=record.name,
            environment=environment,
            version=version,
            chart_source=chart_source,
        )
    )
    return PipelineDefinition(
        service_name=record.name,
        kind=PipelineKind.DEPLOY,
        operations=tuple(operations),
    )


def summarize_pipeline(pipeline: PipelineDefinition) -> PipelineSummary:
    """
    Short summary of a pipeline for job descriptions and the CLI.
    """
    operations = [op.operation_type.value for op in pipeline.operations]

    if not operations:
        description = f"{pipeline.kind.value} pipeline of {pipeline.service_name} is empty."
    else:
        description = (
            f"{pipeline.kind.value} pipeline of {pipeline.service_name}: "
            f"{' -> '.join(operations)}"
        )

    return PipelineSummary(
        operations_count=len(operations),
        operations=operations,
        description=description,
    )


def _job(record: ServiceRecord, kind: PipelineKind, pipeline: PipelineDefinition) -> JobDefinition:
    script_path = (
        record.build_pipeline_path if kind == PipelineKind.BUILD else record.deploy_pipeline_path
    )
    return JobDefinition(
        path=record.job_path(kind),
        kind=kind,
        source_repository=record.source_repository,
        source_ref=record.source_branch,
        script_path=script_path,
        parameters=JOB_PARAMETERS,
        description=summarize_pipeline(pipeline).description,
    )


def generate_jobs(record: ServiceRecord) -> Tuple[JobDefinition, JobDefinition]:
    """
    The two scheduler jobs seeded for a service: (build, deploy).
    """
    build = generate_build(record)
    deploy = generate_deploy(record, _SEED_ENVIRONMENT, _SEED_VERSION)
    return (
        _job(record, PipelineKind.BUILD, build),
        _job(record, PipelineKind.DEPLOY, deploy),
    )

from enum import Enum
from typing import Annotated, Dict, Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field


class OperationType(str, Enum):
    READ_VERSION = "ReadVersion"
    INSTALL_DEPENDENCIES = "InstallDependencies"
    STATIC_ANALYSIS = "StaticAnalysis"
    BUILD_IMAGE = "BuildImage"
    PUSH_IMAGE = "PushImage"
    FETCH_HELM_CHART = "FetchHelmChart"
    DEPLOY_RELEASE = "DeployRelease"


class PipelineKind(str, Enum):
    BUILD = "Build"
    DEPLOY = "Deploy"


class _OperationSpec(BaseModel):
    """
    One step of a pipeline, bound to a service.

    Only values known at generation time live here. Run-time values
    (environment, version, image prefix/tag) are taken from the
    ExecutionContext by the executor.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    service: str = Field(min_length=1)

    def parameters(self) -> Dict[str, str]:
        return {
            k: str(v)
            for k, v in self.model_dump(exclude={"operation_type"}).items()
            if v is not None
        }


class ReadVersionSpec(_OperationSpec):
    operation_type: Literal[OperationType.READ_VERSION] = OperationType.READ_VERSION
    manifest: str = "package.json"


class InstallDependenciesSpec(_OperationSpec):
    operation_type: Literal[OperationType.INSTALL_DEPENDENCIES] = OperationType.INSTALL_DEPENDENCIES


class StaticAnalysisSpec(_OperationSpec):
    operation_type: Literal[OperationType.STATIC_ANALYSIS] = OperationType.STATIC_ANALYSIS
    sources: str = "."


class BuildImageSpec(_OperationSpec):
    operation_type: Literal[OperationType.BUILD_IMAGE] = OperationType.BUILD_IMAGE
    dockerfile: str = "Dockerfile"


class PushImageSpec(_OperationSpec):
    operation_type: Literal[OperationType.PUSH_IMAGE] = OperationType.PUSH_IMAGE


class FetchHelmChartSpec(_OperationSpec):
    operation_type: Literal[OperationType.FETCH_HELM_CHART] = OperationType.FETCH_HELM_CHART
    helm_repository: str = Field(min_length=1)
    helm_branch: str = Field(min_length=1)


class DeployReleaseSpec(_OperationSpec):
    operation_type: Literal[OperationType.DEPLOY_RELEASE] = OperationType.DEPLOY_RELEASE
    environment: str = Field(min_length=1)
    version: str = Field(min_length=1)
    chart_source: Literal["bundled", "cloned"] = "bundled"


OperationSpec = Annotated[
    Union[
        ReadVersionSpec,
        InstallDependenciesSpec,
        StaticAnalysisSpec,
        BuildImageSpec,
        PushImageSpec,
        FetchHelmChartSpec,
        DeployReleaseSpec,
    ],
    Field(discriminator="operation_type"),
]


class PipelineDefinition(BaseModel):
    """
    Ordered operations for one service's build or deploy pipeline.
    Derived from a ServiceRecord, never persisted.
    """

    model_config = ConfigDict(frozen=True)

    service_name: str
    kind: PipelineKind
    operations: Tuple[OperationSpec, ...]

    def operation_types(self) -> Tuple[OperationType, ...]:
        return tuple(op.operation_type for op in self.operations)


class JobDefinition(BaseModel):
    """
    What the scheduler keeps for one seeded job.
    Two definitions are equal when nothing needs to be re-registered.
    """

    model_config = ConfigDict(frozen=True)

    path: str
    kind: PipelineKind
    source_repository: str
    source_ref: str
    script_path: str
    parameters: Tuple[Tuple[str, str], ...] = ()
    description: str = ""

    @property
    def folder(self) -> Optional[str]:
        head, _, _ = self.path.rpartition("/")
        return head or None

    @property
    def name(self) -> str:
        return self.path.rpartition("/")[2]

from enum import Enum
from pathlib import Path
from typing import Any, Dict, Iterator, List, Mapping, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from seedpipe.model import OperationType, PipelineKind


class ServiceRecord(BaseModel):
    """
    One deployable service from the registry.

    The registry document uses camelCase keys (sourceRepository, targetFolder, ...),
    snake_case is accepted as well. Records are immutable once loaded.
    """

    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        str_strip_whitespace=True,
        extra="ignore",
    )

    name: str = Field(min_length=1)
    source_repository: str = Field(alias="sourceRepository", min_length=1)
    source_branch: str = Field("main", alias="sourceBranch", min_length=1)
    build_pipeline_path: str = Field(alias="buildPipelinePath", min_length=1)
    deploy_pipeline_path: str = Field(alias="deployPipelinePath", min_length=1)
    target_folder: str = Field(alias="targetFolder")
    helm_repository: Optional[str] = Field(None, alias="helmRepository")
    helm_branch: Optional[str] = Field(None, alias="helmBranch")

    @field_validator("source_branch", mode="before")
    @classmethod
    def _default_branch(cls, value: Any) -> Any:
        if value is None:
            return "main"
        return value

    @field_validator("helm_repository", "helm_branch", mode="before")
    @classmethod
    def _blank_is_none(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("name")
    @classmethod
    def _plain_name(cls, value: str) -> str:
        if "/" in value:
            raise ValueError("name must not contain '/'")
        return value

    @field_validator("target_folder")
    @classmethod
    def _folder_segments(cls, value: str) -> str:
        # leading/trailing slashes are tolerated, empty segments inside are not
        trimmed = value.strip().strip("/")
        segments = [s.strip() for s in trimmed.split("/")]
        if not trimmed or any(not s for s in segments):
            raise ValueError(f"targetFolder {value!r} has empty path segments")
        return "/".join(segments)

    @model_validator(mode="after")
    def _helm_branch_required(self) -> "ServiceRecord":
        if self.helm_repository and not self.helm_branch:
            raise ValueError("helmBranch is required when helmRepository is set")
        return self

    @property
    def folder_segments(self) -> Tuple[str, ...]:
        return tuple(self.target_folder.split("/"))

    def folder_paths(self) -> List[str]:
        """
        Every folder prefix, outermost first: "a/b/c" -> ["a", "a/b", "a/b/c"].
        """
        segments = self.folder_segments
        return ["/".join(segments[: i + 1]) for i in range(len(segments))]

    def job_name(self, kind: PipelineKind) -> str:
        return f"{self.name}-{kind.value.lower()}"

    def job_path(self, kind: PipelineKind) -> str:
        return f"{self.target_folder}/{self.job_name(kind)}"


class Registry:
    """
    Loaded, validated service registry. Read-only.
    """

    def __init__(self, records: Tuple[ServiceRecord, ...], source: Optional[str] = None):
        self._records = tuple(records)
        self._by_name = {r.name: r for r in self._records}
        self.source = source

    def __iter__(self) -> Iterator[ServiceRecord]:
        return iter(self._records)

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, name: object) -> bool:
        return name in self._by_name

    @property
    def records(self) -> Tuple[ServiceRecord, ...]:
        return self._records

    @property
    def names(self) -> List[str]:
        return [r.name for r in self._records]

    def get(self, name: str) -> Optional[ServiceRecord]:
        return self._by_name.get(name)


class ExecutionContext(BaseModel):
    """
    Values threaded through one pipeline run.

    Immutable: operations return updated fields and the runner builds the
    next context with with_updates(). Keys that are not fields go to extras.
    """

    model_config = ConfigDict(frozen=True)

    service: str
    environment: str
    version: str
    project: str
    region: str = ""
    account: Optional[str] = None
    registry_prefix: str
    image_prefix: str
    image_tag: str
    workspace: Path
    scratch_dir: Optional[Path] = None
    chart_root: Optional[Path] = None
    extras: Dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def for_run(
        cls,
        *,
        service: str,
        environment: str,
        version: str,
        project: str,
        registry_prefix: str,
        workspace: Path,
        scratch_dir: Optional[Path] = None,
        region: str = "",
        account: Optional[str] = None,
    ) -> "ExecutionContext":
        prefix = registry_prefix.rstrip("/")
        return cls(
            service=service,
            environment=environment,
            version=version,
            project=project,
            region=region,
            account=account,
            registry_prefix=prefix,
            image_prefix=f"{prefix}/{project}/{environment}/{service}",
            image_tag=version,
            workspace=Path(workspace),
            scratch_dir=Path(scratch_dir) if scratch_dir is not None else None,
        )

    @property
    def service_dir(self) -> Path:
        return self.workspace / self.service

    @property
    def image_reference(self) -> str:
        return f"{self.image_prefix}:{self.image_tag}"

    def get(self, key: str, default: Any = None) -> Any:
        if key in type(self).model_fields and key != "extras":
            return getattr(self, key)
        return self.extras.get(key, default)

    def with_updates(self, fields: Mapping[str, Any]) -> "ExecutionContext":
        if not fields:
            return self

        known = set(type(self).model_fields) - {"extras"}
        update: Dict[str, Any] = {}
        extras = dict(self.extras)
        for key, value in fields.items():
            if key in known:
                update[key] = value
            else:
                extras[key] = value

        # image tag follows the resolved version
        if "version" in update and "image_tag" not in update:
            update["image_tag"] = update["version"]
        if "chart_root" in update and update["chart_root"] is not None:
            update["chart_root"] = Path(update["chart_root"])

        update["extras"] = extras
        return self.model_copy(update=update)


class ExecutionResult(BaseModel):
    success: bool
    updated_context_fields: Dict[str, Any] = Field(default_factory=dict)
    error_detail: Optional[str] = None
    error_type: Optional[str] = None
    logs: List[str] = []
    warnings: List[str] = []

    @classmethod
    def failed(cls, error: Exception, logs: Optional[List[str]] = None) -> "ExecutionResult":
        detail = getattr(error, "description", None) or str(error) or repr(error)
        error_logs = getattr(error, "logs", None) or []
        if error_logs is logs:
            error_logs = []
        return cls(
            success=False,
            error_detail=detail,
            error_type=error.__class__.__name__,
            logs=list(logs or []) + list(error_logs),
        )


class RunState(str, Enum):
    IDLE = "Idle"
    RUNNING = "Running"
    SUCCEEDED = "Succeeded"
    FAILED = "Failed"


class RunStatus(str, Enum):
    SUCCEEDED = "Succeeded"
    FAILED = "Failed"


class RunResult(BaseModel):
    status: RunStatus
    service: str
    kind: PipelineKind
    failed_operation: Optional[OperationType] = None
    error_detail: Optional[str] = None
    error_type: Optional[str] = None
    completed_operations: List[OperationType] = []
    context: Optional[ExecutionContext] = None
    logs: List[str] = []
    warnings: List[str] = []

    @property
    def succeeded(self) -> bool:
        return self.status == RunStatus.SUCCEEDED


class PipelineSummary(BaseModel):
    operations_count: int
    operations: List[str]
    # short text for job descriptions and the CLI
    description: str


class ServiceSeedResult(BaseModel):
    service: str
    created: List[str] = []
    updated: List[str] = []
    unchanged: List[str] = []
    folders_created: List[str] = []
    error: Optional[str] = None

    @property
    def failed(self) -> bool:
        return self.error is not None

    @property
    def outcome(self) -> str:
        if self.failed:
            return "failed"
        if self.created:
            return "created"
        if self.updated:
            return "updated"
        return "unchanged"


class SeedReport(BaseModel):
    services: List[ServiceSeedResult] = []
    logs: List[str] = []
    warnings: List[str] = []

    @property
    def created(self) -> List[str]:
        return [path for s in self.services for path in s.created]

    @property
    def updated(self) -> List[str]:
        return [path for s in self.services for path in s.updated]

    @property
    def unchanged(self) -> List[str]:
        return [path for s in self.services for path in s.unchanged]

    @property
    def failed(self) -> List[str]:
        return [s.service for s in self.services if s.failed]

    def for_service(self, name: str) -> Optional[ServiceSeedResult]:
        for s in self.services:
            if s.service == name:
                return s
        return None

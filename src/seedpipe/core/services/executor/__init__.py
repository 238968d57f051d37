from .core import OperationExecutor
from .tools import CommandResult, ToolRunner

from .exceptions import (
    OperationExceptions,
    ManifestNotFoundError,
    ManifestParseError,
    ToolCommandError,
    DependencyInstallError,
    AnalysisError,
    ImageBuildError,
    ImagePushError,
    ChartFetchError,
    DeploymentApplyError,
)

__all__ = [
    "OperationExecutor",
    "CommandResult",
    "ToolRunner",
    "OperationExceptions",
    "ManifestNotFoundError",
    "ManifestParseError",
    "ToolCommandError",
    "DependencyInstallError",
    "AnalysisError",
    "ImageBuildError",
    "ImagePushError",
    "ChartFetchError",
    "DeploymentApplyError",
]

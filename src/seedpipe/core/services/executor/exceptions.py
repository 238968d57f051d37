from typing import List, Optional

from seedpipe.exception import SeedpipeException
from seedpipe.model import OperationType

from .tools import CommandResult


class OperationExceptions(SeedpipeException):
    """
    Base error of a pipeline operation. Fatal to the run that contains it.
    """

    operation: Optional[OperationType] = None

    def __init__(
        self,
        *args,
        description: str = "Something happened when running an operation",
        service: Optional[str] = None,
        logs: Optional[List[str]] = None,
    ) -> None:
        super().__init__(*args, description=description, logs=logs)
        self.service = service


class ManifestNotFoundError(OperationExceptions):
    operation = OperationType.READ_VERSION

    def __init__(self, service: str, path: str, logs: Optional[List[str]] = None, *args) -> None:
        description = f"Manifest of {service} not found: {path}"
        super().__init__(*args, description=description, service=service, logs=logs)
        self.path = path


class ManifestParseError(OperationExceptions):
    operation = OperationType.READ_VERSION

    def __init__(
        self,
        service: str,
        path: str,
        reason: str,
        logs: Optional[List[str]] = None,
        *args,
    ) -> None:
        description = f"Cannot read version of {service} from {path}: {reason}"
        super().__init__(*args, description=description, service=service, logs=logs)
        self.path = path
        self.reason = reason


class ToolCommandError(OperationExceptions):
    """
    An external tool exited non-zero (or could not run at all).
    """

    tool_label = "command"

    def __init__(
        self,
        service: str,
        result: Optional[CommandResult] = None,
        reason: Optional[str] = None,
        logs: Optional[List[str]] = None,
        *args,
    ) -> None:
        if reason is None and result is not None:
            reason = f"`{result.command}` exited with code {result.returncode}"
            tail = result.tail()
            if tail:
                reason += f"\n{tail}"
        description = f"{self.tool_label} failed for {service}: {reason or 'unknown error'}"
        super().__init__(*args, description=description, service=service, logs=logs)
        self.result = result
        self.reason = reason


class DependencyInstallError(ToolCommandError):
    operation = OperationType.INSTALL_DEPENDENCIES
    tool_label = "Dependency install"


class AnalysisError(ToolCommandError):
    operation = OperationType.STATIC_ANALYSIS
    tool_label = "Static analysis"


class ImageBuildError(ToolCommandError):
    operation = OperationType.BUILD_IMAGE
    tool_label = "Image build"


class ImagePushError(ToolCommandError):
    operation = OperationType.PUSH_IMAGE
    tool_label = "Image push"


class ChartFetchError(ToolCommandError):
    operation = OperationType.FETCH_HELM_CHART
    tool_label = "Helm chart fetch"


class DeploymentApplyError(ToolCommandError):
    operation = OperationType.DEPLOY_RELEASE
    tool_label = "Deployment"

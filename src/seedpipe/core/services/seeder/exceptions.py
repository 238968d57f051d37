from typing import List, Optional

from seedpipe.exception import SeedpipeException


class SchedulerRegistrationError(SeedpipeException):
    """
    The scheduler refused or failed to register a folder or job.
    Fatal to that one service's reconciliation only.
    """

    def __init__(
        self,
        path: str,
        reason: str,
        logs: Optional[List[str]] = None,
        *args,
    ) -> None:
        description = f"Error to register {path} in scheduler: {reason}"
        super().__init__(*args, description=description, logs=logs)
        self.path = path
        self.reason = reason

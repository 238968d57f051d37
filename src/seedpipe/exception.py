from typing import List, Optional


class SeedpipeException(Exception):
    """
    Base error for everything seedpipe raises on purpose.

    description is the human-readable message the CLI prints,
    logs are the steps accumulated before the failure.
    """

    def __init__(
        self,
        *args,
        description: str = "Something happened...",
        logs: Optional[List[str]] = None,
    ) -> None:
        super().__init__(description, *args)
        self.description = description
        self.logs: List[str] = logs or []

    def __str__(self) -> str:
        return self.description

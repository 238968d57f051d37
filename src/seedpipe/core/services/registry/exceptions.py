from typing import List, Optional

from seedpipe.exception import SeedpipeException


class RegistryExceptions(SeedpipeException):
    """
    Base error for loading the service registry.
    The whole registry is rejected, nothing is partially loaded.
    """

    def __init__(
        self,
        *args,
        description: str = "Something happened when loading the service registry",
        logs: Optional[List[str]] = None,
    ) -> None:
        super().__init__(*args, description=description, logs=logs)


class RegistryFormatError(RegistryExceptions):
    """
    The registry document is unreadable or has the wrong shape.
    """

    def __init__(
        self,
        source: str,
        reason: str,
        logs: Optional[List[str]] = None,
        *args,
    ) -> None:
        description = f"Malformed service registry {source}: {reason}"
        super().__init__(*args, description=description, logs=logs)
        self.source = source
        self.reason = reason


class RegistryValidationError(RegistryExceptions):
    """
    The document parsed but one or more services break the registry rules
    (duplicate name, missing field, helmRepository without helmBranch, ...).
    """

    def __init__(
        self,
        source: str,
        problems: List[str],
        logs: Optional[List[str]] = None,
        *args,
    ) -> None:
        description = (
            f"Invalid service registry {source}: {len(problems)} problem(s)\n  - "
            + "\n  - ".join(problems)
        )
        super().__init__(*args, description=description, logs=logs)
        self.source = source
        self.problems = list(problems)


class ServiceNotFoundError(RegistryExceptions):
    """
    A run was requested for a service the registry does not list.
    """

    def __init__(
        self,
        name: str,
        known: List[str],
        logs: Optional[List[str]] = None,
        *args,
    ) -> None:
        description = f"Service {name!r} not found in registry. Known: {', '.join(known) or '-'}"
        super().__init__(*args, description=description, logs=logs)
        self.name = name
        self.known = list(known)

from typing import List, Optional

from seedpipe.exception import SeedpipeException


class GitExceptions(SeedpipeException):
    """
    Base error for working with git repositories and workspaces.

    Keeps the logs (steps) accumulated during the operation.
    """

    def __init__(
        self,
        *args,
        description: str = "Something happened when working with git",
        logs: Optional[List[str]] = None,
    ) -> None:
        super().__init__(*args, description=description, logs=logs)


class GitCloneError(GitExceptions):
    """
    Cloning a remote repository failed.
    """

    def __init__(
        self,
        repository: str,
        branch: str,
        logs: Optional[List[str]] = None,
        *args,
    ) -> None:
        description = f"Error to clone repository {repository} in branch {branch}"
        super().__init__(*args, description=description, logs=logs)
        self.repository = repository
        self.branch = branch


class GitLocalPathError(GitExceptions):
    """
    A local checkout path cannot be used as a workspace.
    """

    def __init__(
        self,
        path: str,
        logs: Optional[List[str]] = None,
        *args,
    ) -> None:
        description = f"Error to use local repository path {path}"
        super().__init__(*args, description=description, logs=logs)
        self.path = path

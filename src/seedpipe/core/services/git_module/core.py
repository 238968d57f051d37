from git import (
    Repo as GitRepo,
    GitCommandError,
    InvalidGitRepositoryError,
    NoSuchPathError,
)

from pathlib import Path
from typing import List, Optional
from seedpipe.core.config import BASE_TEMP_DIR

from .models import LocalRepo
from .utils import ensure_base_temp_dir, on_rm_error, PathLike
from .exceptions import GitCloneError, GitLocalPathError

import asyncio
import shutil
import tempfile


def clone_into(
    repository: str,
    branch: str,
    destination: PathLike,
    logs: Optional[List[str]] = None,
) -> Path:
    """
    Shallow clone of repository@branch into destination (GitPython).

    :raises GitCloneError: on any clone failure, destination is removed.
    """
    logs = logs if logs is not None else []
    target = Path(destination)
    logs.append(f"Cloning {repository!r} (branch {branch}) into {target}")

    repo_obj: GitRepo | None = None
    try:
        repo_obj = GitRepo.clone_from(
            repository,
            target,
            branch=branch,
            depth=1,
        )
        logs.append(f"Repository cloned into {target}")
    except GitCommandError as e:
        logs.append("GitPython: clone_from failed.")
        logs.append(str(e))
        if target.exists():
            shutil.rmtree(target, onerror=on_rm_error)
        raise GitCloneError(repository=repository, branch=branch, logs=logs)
    except BaseException:
        # interrupted or unexpected failure: no partial checkout either
        shutil.rmtree(target, ignore_errors=True)
        raise
    finally:
        # close explicitly so Windows does not keep pack files locked
        if repo_obj is not None:
            repo_obj.close()

    return target


class GitRepo2Seed:
    """
    Prepares the workspace of one pipeline run, in two modes:

    - clone(repo, branch)       - shallow clone into a fresh temp directory;
    - from_existing_path(path)  - an existing checkout, used in place.

    Each run gets its own LocalRepo, so concurrent runs of the same service
    never share a directory.
    """

    def __init__(self, default_branch: str = "main", base_dir: PathLike = BASE_TEMP_DIR) -> None:
        self.default_branch = default_branch
        self.base_dir = Path(base_dir)

    async def clone(self, repo: str, branch: str | None = None) -> LocalRepo:
        """
        Clones repo@branch into a temp directory owned by the run.

        :raises GitCloneError: on any clone failure, nothing is left behind.
        """
        if branch is None:
            branch = self.default_branch

        logs: List[str] = []

        base_temp = ensure_base_temp_dir(self.base_dir)
        temp_root = Path(tempfile.mkdtemp(prefix="run_", dir=base_temp))
        repo_dir = temp_root / "repo"
        scratch = temp_root / "scratch"

        logs.append(f"Created workspace {temp_root}")

        try:
            await asyncio.to_thread(clone_into, repo, branch, repo_dir, logs)
            scratch.mkdir(parents=True, exist_ok=True)
        except BaseException:
            # clone failure and an aborted job leave nothing behind
            shutil.rmtree(temp_root, ignore_errors=True)
            raise

        return LocalRepo(
            root_dir=temp_root,
            repo_path=repo_dir,
            logs=logs,
            is_temporary=True,
            scratch_dir=scratch,
        )

    async def from_existing_path(self, path: PathLike) -> LocalRepo:
        """
        Uses an existing directory as the run's sources. Nothing is copied,
        only a private scratch directory is created next to the base temp dir.

        :raises GitLocalPathError: if the path does not exist or is not a directory.
        """
        logs: List[str] = []

        repo_path = Path(path)
        logs.append(f"Using existing path as workspace: {repo_path}")

        if not repo_path.exists():
            logs.append("Error: path does not exist.")
            raise GitLocalPathError(path=str(repo_path), logs=logs)
        if not repo_path.is_dir():
            logs.append("Error: path is not a directory.")
            raise GitLocalPathError(path=str(repo_path), logs=logs)

        if (repo_path / ".git").exists():
            try:
                repo_obj = GitRepo(repo_path)
                logs.append(f"Git checkout at {repo_obj.head.commit.hexsha[:12]}.")
                repo_obj.close()
            except (InvalidGitRepositoryError, NoSuchPathError, ValueError):
                logs.append("Found .git but it is not a valid repository, using plain directory.")
        else:
            logs.append("No .git directory, using plain directory.")

        base_temp = ensure_base_temp_dir(self.base_dir)
        scratch = Path(tempfile.mkdtemp(prefix="scratch_", dir=base_temp))

        # is_temporary=False: cleanup() must never delete the real project
        return LocalRepo(
            root_dir=repo_path,
            repo_path=repo_path,
            logs=logs,
            is_temporary=False,
            scratch_dir=scratch,
        )

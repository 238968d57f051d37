import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from .utils import on_rm_error


@dataclass
class LocalRepo:
    """
    Workspace of one pipeline run.

    root_dir     - directory that holds the checkout. For clones it is a fresh
                   temp directory owned by this run.
    repo_path    - root of the checked-out sources.
    scratch_dir  - run-private directory for anything the operations fetch
                   (helm charts, ...). Always removed on cleanup.
    logs         - steps taken while preparing the workspace.
    is_temporary - cleanup() removes root_dir only when True, an existing
                   local checkout is never deleted.
    """

    root_dir: Path
    repo_path: Path
    logs: List[str]
    is_temporary: bool = True
    scratch_dir: Optional[Path] = None
    cleaned: bool = field(default=False, init=False)

    def cleanup(self) -> None:
        """
        Removes the scratch directory and, for temporary workspaces, root_dir.
        Calling it again after a successful cleanup is a no-op, after a failed
        one it retries.
        """
        if self.cleaned:
            return

        try:
            if self.scratch_dir is not None and self.scratch_dir.exists():
                shutil.rmtree(self.scratch_dir, onerror=on_rm_error)
        finally:
            if self.is_temporary and self.root_dir.exists():
                shutil.rmtree(self.root_dir, onerror=on_rm_error)
        self.cleaned = True

import os
import stat
from pathlib import Path
from typing import Union


PathLike = Union[str, Path]


def on_rm_error(func, path, exc_info):
    """
    Error handler for shutil.rmtree:
    - clears the read-only flag (usual for .git/objects/pack on Windows),
    - retries the removal once.
    A second failure propagates to the caller.
    """
    os.chmod(path, stat.S_IWRITE)
    func(path)


def ensure_base_temp_dir(path: PathLike) -> Path:
    """
    Makes sure the base temp directory exists and returns it as Path.
    """
    base = Path(path)
    base.mkdir(parents=True, exist_ok=True)
    return base

from .core import GitRepo2Seed, clone_into
from .models import LocalRepo

from .exceptions import (
    GitExceptions,
    GitCloneError,
    GitLocalPathError,
)

__all__ = [
    "GitRepo2Seed",
    "LocalRepo",
    "clone_into",
    "GitExceptions",
    "GitCloneError",
    "GitLocalPathError",
]

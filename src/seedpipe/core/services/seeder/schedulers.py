from __future__ import annotations

import json
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, Optional, Set

from pydantic import ValidationError

from seedpipe.model import JobDefinition

from .exceptions import SchedulerRegistrationError


class Scheduler(ABC):
    """
    The CI scheduler as the seed process sees it: hierarchical folders and
    named jobs bound to a source ref and an entry-point script.
    """

    @abstractmethod
    async def ensure_folder(self, path: str) -> bool:
        """Creates the folder if missing. Returns True when it was created."""

    @abstractmethod
    async def get_job(self, path: str) -> Optional[JobDefinition]:
        """The registered job at path, or None."""

    @abstractmethod
    async def create_job(self, job: JobDefinition) -> None:
        pass

    @abstractmethod
    async def update_job(self, job: JobDefinition) -> None:
        pass

    async def close(self) -> None:
        pass


class InMemoryScheduler(Scheduler):
    """
    Scheduler kept in memory. Used for dry runs and tests.
    """

    def __init__(self) -> None:
        self.folders: Set[str] = set()
        self.jobs: Dict[str, JobDefinition] = {}

    def _require_folder(self, job: JobDefinition) -> None:
        if job.folder and job.folder not in self.folders:
            raise SchedulerRegistrationError(path=job.path, reason=f"folder {job.folder} does not exist")

    async def ensure_folder(self, path: str) -> bool:
        parent = path.rpartition("/")[0]
        if parent and parent not in self.folders:
            raise SchedulerRegistrationError(path=path, reason=f"parent folder {parent} does not exist")
        if path in self.jobs:
            raise SchedulerRegistrationError(path=path, reason="a job with this name already exists")
        if path in self.folders:
            return False
        self.folders.add(path)
        self._changed(path)
        return True

    async def get_job(self, path: str) -> Optional[JobDefinition]:
        return self.jobs.get(path)

    async def create_job(self, job: JobDefinition) -> None:
        self._require_folder(job)
        if job.path in self.jobs:
            raise SchedulerRegistrationError(path=job.path, reason="job already exists")
        self.jobs[job.path] = job
        self._changed(job.path)

    async def update_job(self, job: JobDefinition) -> None:
        if job.path not in self.jobs:
            raise SchedulerRegistrationError(path=job.path, reason="job does not exist")
        self.jobs[job.path] = job
        self._changed(job.path)

    def _changed(self, path: str) -> None:
        pass


class FileScheduler(InMemoryScheduler):
    """
    In-memory scheduler persisted to a JSON state file after every change,
    so repeated CLI runs see what earlier runs registered.
    """

    def __init__(self, state_path: Path | str) -> None:
        super().__init__()
        self.state_path = Path(state_path)
        if self.state_path.exists():
            self._load()

    def _load(self) -> None:
        try:
            state = json.loads(self.state_path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise SchedulerRegistrationError(path=str(self.state_path), reason=f"unreadable state file ({e})")
        if not isinstance(state, dict):
            raise SchedulerRegistrationError(
                path=str(self.state_path),
                reason=f"state file must hold an object, got {type(state).__name__}",
            )

        try:
            self.folders = set(state.get("folders") or [])
            self.jobs = {
                path: JobDefinition.model_validate(job)
                for path, job in (state.get("jobs") or {}).items()
            }
        except (TypeError, AttributeError, ValidationError) as e:
            raise SchedulerRegistrationError(path=str(self.state_path), reason=f"corrupt state file ({e})")

    def _changed(self, path: str) -> None:
        state = {
            "folders": sorted(self.folders),
            "jobs": {p: job.model_dump(mode="json") for p, job in sorted(self.jobs.items())},
        }
        try:
            self.state_path.parent.mkdir(parents=True, exist_ok=True)
            self.state_path.write_text(json.dumps(state, indent=2, ensure_ascii=False), encoding="utf-8")
        except OSError as e:
            raise SchedulerRegistrationError(path=path, reason=f"could not write state file {self.state_path} ({e})")

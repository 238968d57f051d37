from .core import Seeder
from .exceptions import SchedulerRegistrationError
from .jenkins import JenkinsScheduler
from .schedulers import (
    Scheduler,
    InMemoryScheduler,
    FileScheduler,
)

__all__ = [
    "Seeder",
    "SchedulerRegistrationError",
    "Scheduler",
    "InMemoryScheduler",
    "FileScheduler",
    "JenkinsScheduler",
]

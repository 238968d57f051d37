from pathlib import Path
import os
from tempfile import gettempdir
from typing import Optional

from pydantic import BaseModel

from seedpipe.utils import env_flag

"""
Run-time configuration for seedpipe.

Everything is read from the environment, the CLI overrides single values.
Temporary workspaces go to the system temp dir (/tmp/seedpipe or the Windows
equivalent) unless SEEDPIPE_WORKDIR says otherwise.
"""

BASE_TEMP_DIR = Path(
    os.getenv("SEEDPIPE_WORKDIR", gettempdir())
) / "seedpipe"


class Settings(BaseModel):
    workdir: Path = BASE_TEMP_DIR

    # image naming: <registry_prefix>/<project>/<environment>/<service>:<version>
    project: str = "platform"
    region: str = "us-east-1"
    account: Optional[str] = None
    registry_prefix: Optional[str] = None

    manifest_name: str = "package.json"
    bundled_chart_dir: str = "helm"
    dockerfile: str = "Dockerfile"

    analysis_fatal: bool = True
    sonar_host: Optional[str] = None
    sonar_token: Optional[str] = None

    ecr_login: bool = False
    cluster_name: Optional[str] = None

    command_timeout: float = 1800.0

    jenkins_url: Optional[str] = None
    jenkins_user: Optional[str] = None
    jenkins_token: Optional[str] = None

    @classmethod
    def from_env(cls, environ=None) -> "Settings":
        env = os.environ if environ is None else environ
        values = {
            "workdir": Path(env.get("SEEDPIPE_WORKDIR") or gettempdir()) / "seedpipe",
            "project": env.get("SEEDPIPE_PROJECT"),
            "region": env.get("SEEDPIPE_REGION"),
            "account": env.get("SEEDPIPE_ACCOUNT"),
            "registry_prefix": env.get("SEEDPIPE_REGISTRY_PREFIX"),
            "manifest_name": env.get("SEEDPIPE_MANIFEST"),
            "bundled_chart_dir": env.get("SEEDPIPE_CHART_DIR"),
            "dockerfile": env.get("SEEDPIPE_DOCKERFILE"),
            "analysis_fatal": env_flag(env.get("SEEDPIPE_ANALYSIS_FATAL"), default=True),
            "sonar_host": env.get("SEEDPIPE_SONAR_HOST"),
            "sonar_token": env.get("SEEDPIPE_SONAR_TOKEN"),
            "ecr_login": env_flag(env.get("SEEDPIPE_ECR_LOGIN")),
            "cluster_name": env.get("SEEDPIPE_CLUSTER_NAME"),
            "command_timeout": env.get("SEEDPIPE_COMMAND_TIMEOUT"),
            "jenkins_url": env.get("JENKINS_URL"),
            "jenkins_user": env.get("JENKINS_USER"),
            "jenkins_token": env.get("JENKINS_TOKEN"),
        }
        # unset variables fall back to the model defaults
        return cls(**{k: v for k, v in values.items() if v is not None and v != ""})

    def resolved_registry_prefix(self) -> str:
        """
        Registry host used in image references.
        Explicit prefix wins, otherwise the ECR host for account/region.
        """
        if self.registry_prefix:
            return self.registry_prefix.rstrip("/")
        if self.account:
            return f"{self.account}.dkr.ecr.{self.region}.amazonaws.com"
        return "localhost:5000"

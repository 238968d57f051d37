from __future__ import annotations

import sys
from pathlib import Path

import pytest

# Make `seedpipe` importable without installing the package
ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from seedpipe.core.config import Settings  # noqa: E402


@pytest.fixture
def registry_document():
    return {
        "services": [
            {
                "name": "backend",
                "sourceRepository": "https://git.example.com/shop/app.git",
                "buildPipelinePath": "jenkins/build.Jenkinsfile",
                "deployPipelinePath": "jenkins/deploy.Jenkinsfile",
                "targetFolder": "shop/services",
            },
            {
                "name": "frontend",
                "sourceRepository": "https://git.example.com/shop/app.git",
                "sourceBranch": "develop",
                "buildPipelinePath": "jenkins/build.Jenkinsfile",
                "deployPipelinePath": "jenkins/deploy.Jenkinsfile",
                "targetFolder": "shop/services",
            },
        ]
    }


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(
        workdir=tmp_path / "work",
        project="shop",
        region="eu-west-1",
        registry_prefix="registry.example.com",
    )

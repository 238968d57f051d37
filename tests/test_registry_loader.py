from __future__ import annotations

import json
from pathlib import Path

import pytest

from seedpipe.core.services.registry import (
    RegistryFormatError,
    RegistryValidationError,
    load,
)
from seedpipe.model import PipelineKind


def _service(name: str, **overrides):
    entry = {
        "name": name,
        "sourceRepository": f"https://git.example.com/{name}.git",
        "buildPipelinePath": "Jenkinsfile.build",
        "deployPipelinePath": "Jenkinsfile.deploy",
        "targetFolder": "team/apps",
    }
    entry.update(overrides)
    return entry


def test_load_json_file(tmp_path: Path, registry_document) -> None:
    path = tmp_path / "services.json"
    path.write_text(json.dumps(registry_document), encoding="utf-8")

    registry = load(path)

    assert registry.names == ["backend", "frontend"]
    backend = registry.get("backend")
    assert backend.source_branch == "main"
    assert backend.helm_repository is None
    assert registry.get("frontend").source_branch == "develop"
    assert backend.job_path(PipelineKind.BUILD) == "shop/services/backend-build"
    assert backend.job_path(PipelineKind.DEPLOY) == "shop/services/backend-deploy"


def test_load_yaml_file(tmp_path: Path) -> None:
    path = tmp_path / "services.yaml"
    path.write_text(
        "services:\n"
        "  - name: api\n"
        "    sourceRepository: https://git.example.com/api.git\n"
        "    buildPipelinePath: ci/build\n"
        "    deployPipelinePath: ci/deploy\n"
        "    targetFolder: /platform/api/\n"
        "    helmRepository: https://git.example.com/charts.git\n"
        "    helmBranch: release\n",
        encoding="utf-8",
    )

    registry = load(path)

    api = registry.get("api")
    assert api.target_folder == "platform/api"
    assert api.folder_paths() == ["platform", "platform/api"]
    assert api.helm_branch == "release"


def test_bare_list_and_snake_case_are_accepted() -> None:
    registry = load(
        [
            {
                "name": "worker",
                "source_repository": "https://git.example.com/worker.git",
                "build_pipeline_path": "b",
                "deploy_pipeline_path": "d",
                "target_folder": "jobs",
            }
        ]
    )
    assert len(registry) == 1
    assert "worker" in registry


def test_duplicate_names_reject_whole_registry() -> None:
    with pytest.raises(RegistryValidationError) as err:
        load({"services": [_service("api"), _service("web"), _service("api")]})

    assert any("duplicate name 'api'" in p for p in err.value.problems)


def test_helm_repository_requires_branch() -> None:
    document = {
        "services": [
            _service("ok"),
            _service("charted", helmRepository="https://git.example.com/charts.git"),
        ]
    }
    with pytest.raises(RegistryValidationError) as err:
        load(document)

    assert len(err.value.problems) == 1
    assert "helmBranch is required" in err.value.problems[0]
    assert "charted" in err.value.problems[0]


def test_missing_field_and_bad_folder_are_all_reported() -> None:
    broken = _service("nofolder")
    del broken["buildPipelinePath"]
    document = {"services": [broken, _service("gaps", targetFolder="a//b")]}

    with pytest.raises(RegistryValidationError) as err:
        load(document)

    problems = err.value.problems
    assert any("buildPipelinePath" in p for p in problems)
    assert any("empty path segments" in p for p in problems)


def test_blank_helm_repository_is_treated_as_absent() -> None:
    registry = load({"services": [_service("api", helmRepository="")]})
    assert registry.get("api").helm_repository is None


@pytest.mark.parametrize(
    "document",
    [
        {"apps": []},
        {"services": "backend"},
        {"services": ["backend"]},
        42,
    ],
)
def test_wrong_shapes_are_format_errors(document) -> None:
    with pytest.raises(RegistryFormatError):
        load(document)


def test_invalid_json_is_format_error(tmp_path: Path) -> None:
    path = tmp_path / "services.json"
    path.write_text("{ not json", encoding="utf-8")
    with pytest.raises(RegistryFormatError) as err:
        load(path)
    assert "invalid JSON" in err.value.description


def test_missing_file_is_format_error(tmp_path: Path) -> None:
    with pytest.raises(RegistryFormatError):
        load(tmp_path / "nope.json")

from __future__ import annotations

import asyncio
from pathlib import Path

import pytest

from _testutil import FakeToolRunner, write_manifest

from seedpipe.core.core import SeedpipeCore
from seedpipe.core.models import RunStatus
from seedpipe.core.services.executor import OperationExecutor
from seedpipe.core.services.registry import ServiceNotFoundError
from seedpipe.core.services.seeder import InMemoryScheduler
from seedpipe.model import OperationType, PipelineKind


@pytest.fixture
def checkout(tmp_path: Path) -> Path:
    root = tmp_path / "checkout"
    write_manifest(root, "backend", "2.3.1")
    (root / "helm" / "backend").mkdir(parents=True)
    (root / "helm" / "backend-values.yaml").write_text("replicas: 2\n", encoding="utf-8")
    return root


def test_build_from_existing_checkout(settings, registry_document, checkout: Path) -> None:
    tools = FakeToolRunner()
    core = SeedpipeCore(settings, tools=tools)

    result = asyncio.run(core.build(registry_document, "backend", "dev", "1.0.0", source=checkout))

    assert result.status == RunStatus.SUCCEEDED
    assert result.kind == PipelineKind.BUILD
    assert result.context.version == "2.3.1"
    assert result.context.image_reference == "registry.example.com/shop/dev/backend:2.3.1"
    assert tools.commands == ["npm install", "sonar-scanner -Dsonar.projectKey=shop-dev-backend", "docker build", "docker push"]
    # an existing checkout is never removed, its scratch dir is
    assert checkout.exists()
    assert not result.context.scratch_dir.exists()


def test_deploy_with_bundled_chart(settings, registry_document, checkout: Path) -> None:
    tools = FakeToolRunner()
    core = SeedpipeCore(settings, tools=tools)

    result = asyncio.run(core.deploy(registry_document, "backend", "prod", "4.0.0", source=checkout))

    assert result.succeeded
    helm = tools.find("helm upgrade")[0]
    assert str(checkout / "helm" / "backend") in helm
    assert "image.tag=4.0.0" in helm
    assert "image.repository=registry.example.com/shop/prod/backend" in helm


def test_deploy_with_helm_repository(settings, registry_document, checkout: Path) -> None:
    registry_document["services"][0]["helmRepository"] = "https://git.example.com/charts.git"
    registry_document["services"][0]["helmBranch"] = "stable"

    def fetcher(repository, branch, destination, logs):
        (Path(destination) / "backend").mkdir(parents=True)
        return Path(destination)

    tools = FakeToolRunner()
    executor = OperationExecutor(tools=tools, chart_fetcher=fetcher)
    core = SeedpipeCore(settings, executor=executor)

    result = asyncio.run(core.deploy(registry_document, "backend", "dev", "1.0.0", source=checkout))

    assert result.succeeded
    assert result.completed_operations == [OperationType.FETCH_HELM_CHART, OperationType.DEPLOY_RELEASE]
    chart_root = result.context.chart_root
    assert result.context.extras["chartPath"] == str(chart_root / "backend")
    assert str(chart_root / "backend") in tools.find("helm upgrade")[0]
    assert not chart_root.exists()


def test_missing_checkout_fails_before_any_operation(settings, registry_document, tmp_path: Path) -> None:
    tools = FakeToolRunner()
    core = SeedpipeCore(settings, tools=tools)

    result = asyncio.run(core.build(registry_document, "backend", "dev", "1.0.0", source=tmp_path / "missing"))

    assert result.status == RunStatus.FAILED
    assert result.failed_operation is None
    assert result.error_type == "GitLocalPathError"
    assert tools.calls == []


def test_unknown_service(settings, registry_document) -> None:
    core = SeedpipeCore(settings, tools=FakeToolRunner())

    with pytest.raises(ServiceNotFoundError) as err:
        asyncio.run(core.build(registry_document, "billing", "dev", "1.0.0"))
    assert "backend" in err.value.description


def test_plan_and_seed(settings, registry_document) -> None:
    core = SeedpipeCore(settings, tools=FakeToolRunner())

    pipelines = core.plan(registry_document)
    report = asyncio.run(core.seed(registry_document, InMemoryScheduler()))

    assert [(p.service_name, p.kind) for p in pipelines] == [
        ("backend", PipelineKind.BUILD),
        ("backend", PipelineKind.DEPLOY),
        ("frontend", PipelineKind.BUILD),
        ("frontend", PipelineKind.DEPLOY),
    ]
    assert len(report.created) == 4
    assert report.failed == []

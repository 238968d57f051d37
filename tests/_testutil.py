from __future__ import annotations

import json
from pathlib import Path
from typing import Dict, List, Optional

from seedpipe.core.models import ExecutionContext
from seedpipe.core.services.executor import CommandResult


class FakeToolRunner:
    """
    Records every tool invocation instead of running it.

    failures maps a tool ("docker") or tool + subcommand ("docker push")
    to the exit code it should return.
    """

    def __init__(self, failures: Optional[Dict[str, int]] = None, stdout: str = ""):
        self.failures = failures or {}
        self.stdout = stdout
        self.calls: List[dict] = []

    async def run(self, args, cwd=None, env=None, input=None, timeout=None) -> CommandResult:
        args = [str(a) for a in args]
        self.calls.append({"args": args, "cwd": cwd, "env": env, "input": input})
        code = self.failures.get(" ".join(args[:2]), self.failures.get(args[0], 0))
        return CommandResult(
            args=args,
            returncode=code,
            stdout=self.stdout,
            stderr="tool exploded" if code else "",
        )

    @property
    def commands(self) -> List[str]:
        return [" ".join(call["args"][:2]) for call in self.calls]

    def find(self, prefix: str) -> List[List[str]]:
        return [call["args"] for call in self.calls if " ".join(call["args"]).startswith(prefix)]


class FakeWorkspace:
    def __init__(self, fail: bool = False):
        self.cleanups = 0
        self.fail = fail

    def cleanup(self) -> None:
        self.cleanups += 1
        if self.fail:
            raise OSError("device busy")


def write_manifest(workspace: Path, service: str, version) -> Path:
    service_dir = workspace / service
    service_dir.mkdir(parents=True, exist_ok=True)
    path = service_dir / "package.json"
    path.write_text(json.dumps({"name": service, "version": version}), encoding="utf-8")
    return path


def make_context(workspace: Path, service: str = "backend", version: str = "1.0.0", **kwargs) -> ExecutionContext:
    params = dict(
        service=service,
        environment="dev",
        version=version,
        project="shop",
        registry_prefix="registry.example.com",
        workspace=workspace,
        scratch_dir=workspace / ".scratch",
        region="eu-west-1",
    )
    params.update(kwargs)
    return ExecutionContext.for_run(**params)

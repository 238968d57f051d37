from __future__ import annotations

import asyncio
import sys
from pathlib import Path

import pytest

from seedpipe.core.services.executor import ToolRunner


def test_output_and_exit_code_are_captured(tmp_path: Path) -> None:
    script = "import sys; print('built'); print('warn', file=sys.stderr); sys.exit(3)"

    result = asyncio.run(ToolRunner().run([sys.executable, "-c", script], cwd=tmp_path))

    assert result.returncode == 3
    assert not result.ok
    assert result.stdout.strip() == "built"
    assert result.tail() == "warn"


def test_missing_binary_is_exit_127() -> None:
    result = asyncio.run(ToolRunner().run(["seedpipe-no-such-tool", "--version"]))

    assert result.returncode == 127
    assert "seedpipe-no-such-tool" in result.stderr


def test_stdin_is_passed_to_the_tool() -> None:
    script = "import sys; print(sys.stdin.read().upper())"

    result = asyncio.run(ToolRunner().run([sys.executable, "-c", script], input="token"))

    assert result.ok
    assert result.stdout.strip() == "TOKEN"


def test_timeout_kills_the_tool() -> None:
    result = asyncio.run(
        ToolRunner(timeout=0.5).run([sys.executable, "-c", "import time; time.sleep(30)"])
    )

    assert result.timed_out
    assert not result.ok


def test_cancelled_run_kills_and_reaps_the_tool(monkeypatch) -> None:
    started = []
    create = asyncio.create_subprocess_exec

    async def recording_exec(*args, **kwargs):
        proc = await create(*args, **kwargs)
        started.append(proc)
        return proc

    monkeypatch.setattr(asyncio, "create_subprocess_exec", recording_exec)

    async def scenario():
        task = asyncio.create_task(
            ToolRunner().run([sys.executable, "-c", "import time; time.sleep(30)"])
        )
        while not started:
            await asyncio.sleep(0.01)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

    asyncio.run(scenario())

    assert len(started) == 1
    assert started[0].returncode is not None

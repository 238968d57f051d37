import asyncio
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Union


@dataclass
class CommandResult:
    args: List[str]
    returncode: int
    stdout: str = ""
    stderr: str = ""
    timed_out: bool = False

    @property
    def ok(self) -> bool:
        return self.returncode == 0 and not self.timed_out

    @property
    def command(self) -> str:
        return " ".join(self.args)

    def tail(self, lines: int = 20) -> str:
        """
        Last lines of the command output, stderr first, for error messages.
        """
        text = (self.stderr or "").strip() or (self.stdout or "").strip()
        return "\n".join(text.splitlines()[-lines:])


class ToolRunner:
    """
    Runs external tools (npm, docker, sonar-scanner, helm, aws) as async subprocesses.

    Never raises for a failing tool: a missing binary, a bad cwd, a non-zero exit
    or a timeout all come back as a CommandResult with ok == False.
    """

    def __init__(self, timeout: float = 1800.0, env: Optional[Dict[str, str]] = None):
        self.timeout = timeout
        self.env = env

    async def run(
        self,
        args: Sequence[str],
        cwd: Union[str, Path, None] = None,
        env: Optional[Dict[str, str]] = None,
        input: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> CommandResult:
        cmd = [str(a) for a in args]
        full_env = dict(self.env if self.env is not None else os.environ)
        if env:
            full_env.update(env)

        try:
            proc = await asyncio.create_subprocess_exec(
                *cmd,
                cwd=str(cwd) if cwd is not None else None,
                stdin=asyncio.subprocess.PIPE if input is not None else None,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                env=full_env,
            )
        except OSError as e:
            return CommandResult(args=cmd, returncode=127, stderr=f"{cmd[0]}: {e}")

        try:
            stdout, stderr = await asyncio.wait_for(
                proc.communicate(input.encode() if input is not None else None),
                timeout=timeout or self.timeout,
            )
        except asyncio.TimeoutError:
            proc.kill()
            await proc.wait()
            return CommandResult(
                args=cmd,
                returncode=-1,
                stderr=f"{cmd[0]} timed out after {timeout or self.timeout}s",
                timed_out=True,
            )
        except asyncio.CancelledError:
            # job aborted: do not leave the tool running
            if proc.returncode is None:
                proc.kill()
            await asyncio.shield(proc.wait())
            raise

        return CommandResult(
            args=cmd,
            returncode=proc.returncode,
            stdout=stdout.decode(errors="replace"),
            stderr=stderr.decode(errors="replace"),
        )

"""Library for issuing commands using asyncio and returning the result.

A command is run to completion (or until its timeout) and the captured output
is checked against an exit code expectation:

```python
from helm_verify.command import Command, run

result = await run(Command(["helm", "version"]))
print(result.stdout)

# Expect a failure and look at the error output
result = await run(Command(["helm", "template", "bad-chart"]), expect_success=False)
print(result.stderr)
```
"""

import asyncio
import contextlib
from dataclasses import dataclass
import datetime
import logging
import os
from pathlib import Path
import shlex
import subprocess
import tempfile

import aiofiles

from .exceptions import (
    OUTPUT_FILE_PREFIX,
    CommandFailedError,
    CommandTimeoutError,
    CommandUnexpectedlySucceededError,
    ProcessExecutionError,
)

__all__ = [
    "Command",
    "CommandResult",
    "OUTPUT_FILE_PREFIX",
    "format_path",
    "run",
    "run_timestamp",
]

_LOGGER = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 60.0


def format_path(path: Path) -> str:
    """Format path for debugging."""
    if path.is_absolute():
        cwd = Path.cwd()
        if path.is_relative_to(cwd):
            rel_path = str(path.relative_to(cwd))
            return f"{rel_path} (abs)"
    return str(path)


def run_timestamp() -> str:
    """Return a timestamp used as a file name prefix for a run."""
    return datetime.datetime.now().strftime("%Y%m%d-%H%M%S-%f")


@dataclass(frozen=True)
class CommandResult:
    """Captured output of a finished command."""

    stdout: str
    """Standard output decoded as UTF-8."""

    stderr: str
    """Standard error decoded as UTF-8."""

    returncode: int
    """Exit status of the process."""


@dataclass
class Command:
    """An instance of a command to run."""

    cmd: list[str]
    """Array of command line arguments, starting with the executable."""

    cwd: Path | None = None
    """Current working directory."""

    env: dict[str, str] | None = None
    """Environment variables for the subprocess."""

    timeout: float = DEFAULT_TIMEOUT
    """Seconds to wait for the command before it is killed."""

    output_dir: Path | None = None
    """Directory for the output of commands that unexpectedly succeed."""

    @property
    def string(self) -> str:
        """Render the command as a single string."""
        return " ".join([shlex.quote(arg) for arg in self.cmd])

    def __str__(self) -> str:
        """Render as a debug string."""
        cwd: str = ""
        if self.cwd:
            cwd = f"({format_path(self.cwd)}) "
        return f"{cwd}{self.string}"

    async def run(self) -> CommandResult:
        """Run the command and capture its output, regardless of exit status."""
        _LOGGER.debug("Running command: %s", self)
        env = {
            **os.environ,
            **(self.env if self.env else {}),
        }
        try:
            proc = await asyncio.create_subprocess_exec(
                *self.cmd,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                cwd=self.cwd,
                env=env,
            )
        except OSError as err:
            raise ProcessExecutionError(
                f"Unable to start command '{self}': {err}"
            ) from err
        try:
            out, err = await asyncio.wait_for(proc.communicate(), self.timeout)
        except asyncio.TimeoutError as exc:
            with contextlib.suppress(ProcessLookupError):
                proc.kill()
            await proc.wait()
            raise CommandTimeoutError(
                f"Command '{self}' timed out after {self.timeout}s"
            ) from exc
        except OSError as exc:
            raise ProcessExecutionError(
                f"Unable to read output of command '{self}': {exc}"
            ) from exc
        returncode = proc.returncode if proc.returncode is not None else -1
        return CommandResult(
            stdout=out.decode("utf-8"),
            stderr=err.decode("utf-8"),
            returncode=returncode,
        )


async def _write_output(cmd: Command, content: str) -> Path:
    """Persist the output of a command to a uniquely named file."""
    output_dir = cmd.output_dir or Path(tempfile.gettempdir())
    fd, name = tempfile.mkstemp(
        prefix=f"{run_timestamp()}-output-", suffix=".yaml", dir=output_dir
    )
    os.close(fd)
    async with aiofiles.open(name, mode="w") as output_file:
        await output_file.write(content)
    return Path(name)


async def run(cmd: Command, expect_success: bool = True) -> CommandResult:
    """Run the specified command and check its exit status.

    When `expect_success` is set, a non-zero exit raises `CommandFailedError`.
    Otherwise a zero exit raises `CommandUnexpectedlySucceededError` after the
    standard output has been written to a file named in the error.
    """
    result = await cmd.run()
    if expect_success and result.returncode != 0:
        _LOGGER.debug(
            "Command '%s' failed with return code %d: %s",
            cmd,
            result.returncode,
            result.stderr,
        )
        raise CommandFailedError(cmd.string, result.returncode, result.stderr)
    if not expect_success and result.returncode == 0:
        output_path = await _write_output(cmd, result.stdout)
        _LOGGER.debug(
            "Command '%s' unexpectedly succeeded, output in %s", cmd, output_path
        )
        raise CommandUnexpectedlySucceededError(cmd.string, output_path)
    return result

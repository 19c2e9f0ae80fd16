"""Library for running `helm template` against a local chart.

An executor is created for a chart directory (or packaged chart) and a `helm`
executable, then used to render the chart with any number of values overlays:

```python
from helm_verify.helm import HelmExecutor

helm = HelmExecutor.from_env(Path("charts/my-app"))
manifests = await helm.template(
    [
        "image:\n  pullPolicy: Always\n",
        "replicas: 2\n",
    ]
)
deployment = manifests.get_deployment("my-app")
```

Failures can be asserted on directly:
```python
error = await helm.template_error("image:\n  pullPolicy: VeryBad\n")
assert "VeryBad" in error
```

The `helm` executable is taken from the `HELM_VERIFY_HELM_BIN` environment
variable when using `HelmExecutor.from_env`, otherwise it is passed in
explicitly.
"""

from collections.abc import Mapping, Sequence
import logging
import os
from pathlib import Path
import shutil
import tempfile

import aiofiles

from . import command
from .exceptions import InputException
from .manifest import Manifests

__all__ = [
    "HelmExecutor",
    "HELM_BIN_ENV",
]

_LOGGER = logging.getLogger(__name__)


HELM_BIN = "helm"
HELM_BIN_ENV = "HELM_VERIFY_HELM_BIN"
DEFAULT_TIMEOUT = command.DEFAULT_TIMEOUT

Values = str | Sequence[str] | None


def _resolve_executable(helm_bin: str | Path) -> Path:
    """Return the path to the helm executable, searching PATH for bare names."""
    if os.sep not in str(helm_bin):
        if found := shutil.which(str(helm_bin)):
            return Path(found)
        raise InputException(f"Helm executable '{helm_bin}' not found on PATH")
    path = Path(helm_bin)
    if not path.is_file():
        raise InputException(f"Helm executable '{path.absolute()}' does not exist")
    return path


def _values_list(values: Values) -> list[str]:
    if values is None:
        return []
    if isinstance(values, str):
        return [values]
    return list(values)


class HelmExecutor:
    """Runs the helm executable in the context of a chart."""

    def __init__(
        self,
        helm_bin: str | Path,
        chart_path: Path,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        tmp_dir: Path | None = None,
    ) -> None:
        """Initialize HelmExecutor."""
        if not chart_path.exists():
            raise InputException(
                f"Helm chart '{chart_path.absolute()}' does not exist"
            )
        self._helm_bin = _resolve_executable(helm_bin)
        self._chart_path = chart_path
        self._timeout = timeout
        self._run_id = command.run_timestamp()
        if tmp_dir is None:
            tmp_dir = Path(tempfile.mkdtemp(prefix="helm-verify-"))
        self._tmp_dir = tmp_dir
        _LOGGER.debug(
            "Using helm %s for chart %s (files in %s)",
            self._helm_bin,
            command.format_path(chart_path),
            self._tmp_dir,
        )

    @classmethod
    def from_env(
        cls,
        chart_path: Path,
        helm_bin: str | Path | None = None,
        environ: Mapping[str, str] | None = None,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        tmp_dir: Path | None = None,
    ) -> "HelmExecutor":
        """Create a HelmExecutor, looking up the executable in the environment.

        The `HELM_VERIFY_HELM_BIN` environment variable takes precedence, then
        the explicit `helm_bin`, then `helm` on the PATH.
        """
        if environ is None:
            environ = os.environ
        resolved = environ.get(HELM_BIN_ENV) or helm_bin or HELM_BIN
        return cls(resolved, chart_path, timeout=timeout, tmp_dir=tmp_dir)

    @property
    def helm_bin(self) -> Path:
        """The helm executable."""
        return self._helm_bin

    @property
    def chart_path(self) -> Path:
        """The chart rendered by this executor."""
        return self._chart_path

    def _command(self, args: list[str]) -> command.Command:
        return command.Command(
            [str(self._helm_bin), *args],
            timeout=self._timeout,
            output_dir=self._tmp_dir,
        )

    async def _write_values(self, values: Values) -> list[str]:
        """Write each values overlay to its own file, returning the flags."""
        args: list[str] = []
        for index, content in enumerate(_values_list(values)):
            fd, name = tempfile.mkstemp(
                prefix=f"{self._run_id}-values-{index}-",
                suffix=".yaml",
                dir=self._tmp_dir,
            )
            os.close(fd)
            async with aiofiles.open(name, mode="w") as values_file:
                await values_file.write(content)
            _LOGGER.debug("Wrote values overlay %d to %s", index, name)
            args.extend(["--values", name])
        return args

    async def _template_command(self, values: Values) -> command.Command:
        args = ["template", str(self._chart_path)]
        args.extend(await self._write_values(values))
        return self._command(args)

    async def version(self) -> str:
        """Return the output of `helm version`."""
        result = await command.run(self._command(["version"]))
        return result.stdout.strip()

    async def template_output(self, values: Values = None) -> str:
        """Render the chart and return the YAML output."""
        cmd = await self._template_command(values)
        result = await command.run(cmd)
        return result.stdout

    async def template(self, values: Values = None) -> Manifests:
        """Render the chart with the values overlays, in order."""
        return Manifests.parse(await self.template_output(values))

    async def template_error(self, values: Values = None) -> str:
        """Render the chart expecting a failure and return the error output.

        If rendering succeeds, the rendered manifests are written to a file
        named in the CommandUnexpectedlySucceededError that is raised.
        """
        cmd = await self._template_command(values)
        result = await command.run(cmd, expect_success=False)
        return result.stderr

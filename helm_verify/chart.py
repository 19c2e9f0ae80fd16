"""Library for working with a local helm chart directory.

A `HelmChart` ties together the pieces needed to test a chart: the executor
used to render it, and the readers for the values it uses and declares.

```python
from helm_verify.chart import HelmChart

chart = HelmChart(Path("charts/my-app"))
helm = chart.helm_executor()
manifests = await helm.template("replicas: 3\n")

assert chart.read_values_from_templates() == chart.read_values_from_schema()
```
"""

import logging
from pathlib import Path
from typing import Any

from . import schema, scraper
from .exceptions import InputException
from .helm import HelmExecutor

__all__ = [
    "HelmChart",
]

_LOGGER = logging.getLogger(__name__)

TEMPLATES_DIR = "templates"
SCHEMA_FILE = "values.schema.json"


class HelmChart:
    """A helm chart on the local filesystem."""

    def __init__(self, path: Path) -> None:
        """Initialize HelmChart."""
        if not path.exists():
            raise InputException(f"Helm chart '{path.absolute()}' does not exist")
        self._path = path

    @property
    def path(self) -> Path:
        """The chart directory."""
        return self._path

    @property
    def templates_dir(self) -> Path:
        """The directory containing the chart templates."""
        return self._path / TEMPLATES_DIR

    @property
    def schema_file(self) -> Path:
        """The JSON schema for the chart values."""
        return self._path / SCHEMA_FILE

    def helm_executor(
        self, helm_bin: str | Path | None = None, **kwargs: Any
    ) -> HelmExecutor:
        """Return an executor for rendering this chart."""
        return HelmExecutor.from_env(self._path, helm_bin, **kwargs)

    def read_values_from_templates(self) -> set[str]:
        """Return the value paths referenced by the chart templates."""
        return scraper.scan(self.templates_dir)

    def read_values_from_schema(self) -> set[str]:
        """Return the leaf value paths declared by the chart values schema."""
        return schema.read_leaf_paths(self.schema_file)

    def __str__(self) -> str:
        """Render as a debug string."""
        return f"HelmChart({self._path})"

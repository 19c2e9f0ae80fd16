"""Fixtures for running helm-verify against the test chart."""

from collections.abc import Generator
from pathlib import Path
import shutil
import sys

import pytest

from helm_verify.helm import HELM_BIN_ENV, HelmExecutor

TESTDATA = Path("tests/testdata")
CHART = TESTDATA / "my-app"
FAKE_HELM = TESTDATA / "fake_helm.py"


@pytest.fixture(autouse=True)
def clear_helm_env(monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    """Ensure a helm executable from the environment does not leak into tests."""
    monkeypatch.delenv(HELM_BIN_ENV, raising=False)
    yield


@pytest.fixture(name="helm_bin")
def helm_bin_fixture(tmp_path: Path) -> Path:
    """Create an executable that runs the fake helm with the test interpreter."""
    path = tmp_path / "bin" / "helm"
    path.parent.mkdir()
    path.write_text(
        "#!/bin/sh\n"
        f'exec "{sys.executable}" "{FAKE_HELM.absolute()}" "$@"\n'
    )
    path.chmod(0o755)
    return path


@pytest.fixture(name="chart_path")
def chart_path_fixture() -> Path:
    return CHART


@pytest.fixture(name="helm")
def helm_fixture(helm_bin: Path, chart_path: Path, tmp_path: Path) -> HelmExecutor:
    """A HelmExecutor for the test chart using the fake helm."""
    return HelmExecutor(helm_bin, chart_path, tmp_dir=tmp_path)


@pytest.fixture(name="real_helm_bin")
def real_helm_bin_fixture() -> Path:
    """The helm executable on the PATH, skipping the test if there is none."""
    if not (found := shutil.which("helm")):
        pytest.skip("helm is not installed")
    return Path(found)

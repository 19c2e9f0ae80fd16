"""Tests for the helm-verify `values` command."""

from pathlib import Path

import pytest

from . import run_command

CHART = "tests/testdata/my-app"


async def test_values_templates() -> None:
    """Test printing the values used by the templates."""
    result = await run_command(["values", CHART])
    lines = result.stdout.splitlines()
    assert lines == sorted(lines)
    assert "deeply.nested.value.here" in lines
    assert len(lines) == 12


async def test_values_schema() -> None:
    """Test printing the values declared by the schema."""
    result = await run_command(["values", CHART, "--source", "schema"])
    assert "config2.enabled" in result.stdout.splitlines()


async def test_values_parity() -> None:
    """Test a chart whose templates and schema agree."""
    result = await run_command(["values", CHART, "--source", "parity"])
    assert result.stdout == "[VALUES OK]\n"


async def test_values_parity_mismatch(tmp_path: Path) -> None:
    """Test a chart whose templates and schema disagree."""
    (tmp_path / "templates").mkdir()
    (tmp_path / "templates" / "configmap.yaml").write_text(
        "data:\n  used: {{ .Values.used }}\n  both: {{ .Values.both }}\n"
    )
    (tmp_path / "values.schema.json").write_text(
        '{"properties": {"both": {}, "declared": {}}}'
    )
    result = await run_command(
        ["values", str(tmp_path), "--source", "parity"], expect_success=False
    )
    assert result.returncode == 1
    assert result.stdout.splitlines() == [
        "[VALUES FAIL]: 'used' is used by templates but not in the schema",
        "[VALUES FAIL]: 'declared' is in the schema but not used by templates",
    ]


@pytest.mark.parametrize(
    ("args", "error"),
    [
        (["values", "tests/testdata/missing"], "does not exist"),
        (
            ["values", "tests/testdata/scraper", "--source", "schema"],
            "non-existent schema file",
        ),
    ],
)
async def test_values_error(args: list[str], error: str) -> None:
    """Test errors are reported without a traceback."""
    result = await run_command(args, expect_success=False)
    assert result.returncode == 1
    assert result.stderr.startswith("helm-verify error: ")
    assert error in result.stderr
    assert "Traceback" not in result.stderr

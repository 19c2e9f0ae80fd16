"""Tests for the helm-verify `checksums` command."""

from pathlib import Path

from . import run_command

CHART = "tests/testdata/my-app"


async def test_checksums(helm_bin: Path) -> None:
    """Test verifying the workloads of the chart."""
    result = await run_command(["checksums", CHART, "--helm-bin", str(helm_bin)])
    assert result.stdout == "[CHECKSUMS OK]\n"


async def test_checksums_env(helm_bin: Path) -> None:
    """Test the helm executable may be set in the environment."""
    result = await run_command(
        ["checksums", CHART], env={"HELM_VERIFY_HELM_BIN": str(helm_bin)}
    )
    assert result.stdout == "[CHECKSUMS OK]\n"


async def test_checksums_failure(helm_bin: Path, tmp_path: Path) -> None:
    """Test reporting workloads with problems."""
    values_file = tmp_path / "values.yaml"
    values_file.write_text(
        "checksumAnnotationTest:\n"
        "  missingSecretAnnotation: true\n"
        "  unnecessaryExtraResourceAnnotation: true\n"
    )
    result = await run_command(
        ["checksums", CHART, "-f", str(values_file), "--helm-bin", str(helm_bin)],
        expect_success=False,
    )
    assert result.returncode == 1
    assert result.stdout.splitlines() == [
        "[CHECKSUMS FAIL]: Deployment/checksum-annotation-tester: "
        "Workload 'checksum-annotation-tester' is missing checksum annotation "
        "for referenced Secret 'checksum-annotation-tester-secret'. "
        "Workload 'checksum-annotation-tester' has unnecessary extra checksum "
        "annotation 'checksum/checksum-annotation-tester-extra-config'."
    ]


async def test_checksums_render_error(helm_bin: Path, tmp_path: Path) -> None:
    """Test a chart that fails to render."""
    values_file = tmp_path / "values.yaml"
    values_file.write_text("image:\n  pullPolicy: VeryBad\n")
    result = await run_command(
        ["checksums", CHART, "-f", str(values_file), "--helm-bin", str(helm_bin)],
        expect_success=False,
    )
    assert result.returncode == 1
    assert result.stderr.startswith("helm-verify error: ")
    assert "VeryBad" in result.stderr


async def test_checksums_missing_values_file(helm_bin: Path, tmp_path: Path) -> None:
    """Test a values file that does not exist."""
    result = await run_command(
        [
            "checksums",
            CHART,
            "-f",
            str(tmp_path / "missing.yaml"),
            "--helm-bin",
            str(helm_bin),
        ],
        expect_success=False,
    )
    assert result.returncode == 1
    assert "missing.yaml' does not exist" in result.stderr

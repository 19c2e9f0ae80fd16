"""Helm-verify checksums action."""

from argparse import ArgumentParser, _SubParsersAction as SubParsersAction
import logging
import pathlib
import sys
from typing import cast

import aiofiles

from helm_verify.chart import HelmChart
from helm_verify.exceptions import InputException

_LOGGER = logging.getLogger(__name__)

FAIL = "[CHECKSUMS FAIL]"
OK = "[CHECKSUMS OK]"


class ChecksumsAction:
    """Helm-verify checksums action."""

    @classmethod
    def register(
        cls, subparsers: SubParsersAction  # type: ignore[type-arg]
    ) -> ArgumentParser:
        """Register the subparser commands."""
        args = cast(
            ArgumentParser,
            subparsers.add_parser(
                "checksums",
                help="Verify the checksum annotations of the chart workloads",
                description="""Render the chart with helm template and verify
                    that every workload has a checksum annotation for each
                    ConfigMap and Secret its pods reference.""",
            ),
        )
        args.add_argument("chart", type=pathlib.Path, help="Path to the helm chart")
        args.add_argument(
            "-f",
            "--values",
            type=pathlib.Path,
            action="append",
            default=[],
            help="Values file to render the chart with (may be repeated)",
        )
        args.add_argument(
            "--helm-bin",
            type=str,
            default=None,
            help="Path to the helm executable",
        )
        args.set_defaults(cls=cls)
        return args

    async def run(  # type: ignore[no-untyped-def]
        self,
        chart: pathlib.Path,
        values: list[pathlib.Path],
        helm_bin: str | None,
        **kwargs,  # pylint: disable=unused-argument
    ) -> None:
        """Async Action implementation."""
        overlays = []
        for values_file in values:
            if not values_file.is_file():
                raise InputException(f"Values file '{values_file}' does not exist")
            async with aiofiles.open(str(values_file)) as fd:
                overlays.append(await fd.read())

        helm = HelmChart(chart).helm_executor(helm_bin)
        manifests = await helm.template(overlays)

        failures = 0
        for workload in manifests.find_all_workloads():
            result = workload.verify_checksum_annotations()
            _LOGGER.debug("Verified %s: %s", workload, result.success)
            if result.success:
                continue
            failures += 1
            print(f"{FAIL}: {workload}: {' '.join(result.message.splitlines())}")
        if failures:
            sys.exit(1)
        print(OK)

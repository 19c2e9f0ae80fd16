"""Helm-verify values action.

Prints the values used by the chart templates, the values declared by the
chart schema, or the differences between the two.
"""

from argparse import ArgumentParser, _SubParsersAction as SubParsersAction
import logging
import pathlib
import sys
from typing import cast

from helm_verify.chart import HelmChart

_LOGGER = logging.getLogger(__name__)

TEMPLATES = "templates"
SCHEMA = "schema"
PARITY = "parity"

FAIL = "[VALUES FAIL]"
OK = "[VALUES OK]"


class ValuesAction:
    """Helm-verify values action."""

    @classmethod
    def register(
        cls, subparsers: SubParsersAction  # type: ignore[type-arg]
    ) -> ArgumentParser:
        """Register the subparser commands."""
        args = cast(
            ArgumentParser,
            subparsers.add_parser(
                "values",
                help="Print the values used or declared by a chart",
                description="""Print the value paths referenced by the chart
                    templates or declared by the chart values schema, or check
                    that the two sets are the same.""",
            ),
        )
        args.add_argument("chart", type=pathlib.Path, help="Path to the helm chart")
        args.add_argument(
            "--source",
            choices=[TEMPLATES, SCHEMA, PARITY],
            default=TEMPLATES,
            help="Where to read the values from, or parity to compare both",
        )
        args.set_defaults(cls=cls)
        return args

    async def run(  # type: ignore[no-untyped-def]
        self,
        chart: pathlib.Path,
        source: str,
        **kwargs,  # pylint: disable=unused-argument
    ) -> None:
        """Async Action implementation."""
        helm_chart = HelmChart(chart)
        if source == TEMPLATES:
            for path in sorted(helm_chart.read_values_from_templates()):
                print(path)
            return
        if source == SCHEMA:
            for path in sorted(helm_chart.read_values_from_schema()):
                print(path)
            return

        used = helm_chart.read_values_from_templates()
        declared = helm_chart.read_values_from_schema()
        if used == declared:
            print(OK)
            return
        for path in sorted(used - declared):
            print(f"{FAIL}: '{path}' is used by templates but not in the schema")
        for path in sorted(declared - used):
            print(f"{FAIL}: '{path}' is in the schema but not used by templates")
        sys.exit(1)

"""Command line tool for verifying the templates and values of a helm chart."""

import argparse
import asyncio
import logging
import sys
import traceback

from helm_verify.exceptions import HelmVerifyException
from . import checksums, values

_LOGGER = logging.getLogger(__name__)


def _make_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Command line utility for verifying a local helm chart.",
    )
    parser.add_argument(
        "--log-level", choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
    )

    subparsers = parser.add_subparsers(dest="command", help="Command", required=True)

    values.ValuesAction.register(subparsers)
    checksums.ChecksumsAction.register(subparsers)
    return parser


def main(argv: list[str] | None = None) -> None:
    """Helm-verify command line tool main entry point."""
    parser = _make_parser()
    args = parser.parse_args(argv)

    if args.log_level:
        logging.basicConfig(level=args.log_level)

    action = args.cls()
    try:
        asyncio.run(action.run(**vars(args)))
    except HelmVerifyException as err:
        if args.log_level == "DEBUG":
            traceback.print_exc(file=sys.stderr)
        print("helm-verify error: ", err, file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()

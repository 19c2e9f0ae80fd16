"""Test helpers for helm-verify tools."""

import sys

from helm_verify.command import Command, CommandResult, run

HELM_VERIFY_BIN = [sys.executable, "-m", "helm_verify"]


async def run_command(
    args: list[str], env: dict[str, str] | None = None, expect_success: bool = True
) -> CommandResult:
    return await run(
        Command(HELM_VERIFY_BIN + args, env=env), expect_success=expect_success
    )

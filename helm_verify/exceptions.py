"""Exceptions related to helm-verify."""

from pathlib import Path

__all__ = [
    "HelmVerifyException",
    "InputException",
    "CommandException",
    "CommandFailedError",
    "CommandUnexpectedlySucceededError",
    "CommandTimeoutError",
    "ProcessExecutionError",
    "TypedObjectError",
    "AmbiguousMatchError",
    "ObjectNotFoundError",
    "UnrecognizedKindError",
    "NoContainersError",
    "SchemaFileNotFoundError",
    "SchemaWalkError",
]

# Prefix of the file path in the message of CommandUnexpectedlySucceededError
OUTPUT_FILE_PREFIX = "Output written to file '"


class HelmVerifyException(Exception):
    """Generic base exception used for this library."""


class InputException(HelmVerifyException):
    """Raised when the input files or values are not formatted as expected."""


class CommandException(HelmVerifyException):
    """Raised when there is a failure running a subcommand."""


class CommandFailedError(CommandException):
    """Raised when a command exits with a non-zero return code."""

    def __init__(self, command: str, returncode: int, stderr: str) -> None:
        message = f"Command '{command}' failed with return code {returncode}"
        if stderr:
            message = f"{message}\n{stderr}"
        super().__init__(message)
        self.command = command
        self.returncode = returncode
        self.stderr = stderr


class CommandUnexpectedlySucceededError(CommandException):
    """Raised when a command that was expected to fail exits successfully.

    The captured stdout of the command is written to `output_path` so that
    it can be inspected after the fact.
    """

    def __init__(self, command: str, output_path: Path) -> None:
        super().__init__(
            f"Command '{command}' was expected to fail but succeeded. "
            f"{OUTPUT_FILE_PREFIX}{output_path}'"
        )
        self.command = command
        self.output_path = output_path


class CommandTimeoutError(CommandException):
    """Raised when a command did not finish within its timeout."""


class ProcessExecutionError(CommandException):
    """Raised when a process could not be spawned or its output read."""


class TypedObjectError(InputException):
    """Raised when a rendered document cannot be parsed into a typed object."""


class AmbiguousMatchError(HelmVerifyException):
    """Raised when more than one rendered object matches a query."""


class ObjectNotFoundError(HelmVerifyException):
    """Raised when no rendered object matches a query."""


class UnrecognizedKindError(InputException):
    """Raised when a non-workload kind is used where a workload is required."""


class NoContainersError(HelmVerifyException):
    """Raised when a workload does not define any containers."""


class SchemaFileNotFoundError(InputException):
    """Raised when a values schema file does not exist."""


class SchemaWalkError(HelmVerifyException):
    """Raised when walking a values schema reports errors."""

    def __init__(self, schema_file: Path, errors: list[str]) -> None:
        super().__init__(
            f"Errors while traversing {schema_file}:\n" + "\n".join(errors)
        )
        self.schema_file = schema_file
        self.errors = errors

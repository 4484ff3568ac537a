"""Deterministic error model and exit code contract."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, IntEnum


class ErrorKind(str, Enum):
    TIMEOUT = "timeout"
    COMMAND_FAILED = "command_failed"
    PARSE = "parse"
    INVALID_INPUT = "invalid_input"
    NOT_RUNNING = "not_running"


class ExitCode(IntEnum):
    SUCCESS = 0
    INVALID_ARGS = 2
    COMMAND_FAILED = 4
    TIMEOUT = 5
    PARSE_ERROR = 6
    INVALID_INPUT = 7
    NOT_RUNNING = 8


_EXIT_CODES = {
    ErrorKind.TIMEOUT: ExitCode.TIMEOUT,
    ErrorKind.COMMAND_FAILED: ExitCode.COMMAND_FAILED,
    ErrorKind.PARSE: ExitCode.PARSE_ERROR,
    ErrorKind.INVALID_INPUT: ExitCode.INVALID_INPUT,
    ErrorKind.NOT_RUNNING: ExitCode.NOT_RUNNING,
}


@dataclass
class MirrorDeckError(Exception):
    """Single failure shape surfaced to the UI layer.

    ``exit_code`` is ``None`` when no process exit status exists (validation
    failures, spawn errors, timeouts).
    """

    kind: ErrorKind
    message: str = ""
    command: str = ""
    stdout: str = ""
    stderr: str = ""
    exit_code: int | None = None
    cause: BaseException | None = None

    def __str__(self) -> str:
        if self.message:
            return self.message
        if self.command:
            return f"{self.kind.value}: {self.command}"
        return self.kind.value

    def unwrap(self) -> BaseException | None:
        return self.cause

    @property
    def hint(self) -> str:
        return self.stderr or self.stdout

    @property
    def code(self) -> ExitCode:
        return _EXIT_CODES.get(self.kind, ExitCode.COMMAND_FAILED)


def error_message(error: BaseException | None) -> str:
    if error is None:
        return "<nil>"
    return str(error)


def invalid_input_error(message: str) -> MirrorDeckError:
    return MirrorDeckError(ErrorKind.INVALID_INPUT, message)


def not_running_error(message: str) -> MirrorDeckError:
    return MirrorDeckError(ErrorKind.NOT_RUNNING, message)


def timeout_error(
    command: str,
    cause: BaseException | None = None,
    *,
    stdout: str = "",
    stderr: str = "",
) -> MirrorDeckError:
    return MirrorDeckError(
        ErrorKind.TIMEOUT,
        f"timeout while running {command}",
        command=command,
        stdout=stdout,
        stderr=stderr,
        cause=cause,
    )


def command_failed_error(
    command: str,
    *,
    stdout: str = "",
    stderr: str = "",
    exit_code: int | None = None,
    cause: BaseException | None = None,
    message: str = "",
) -> MirrorDeckError:
    return MirrorDeckError(
        ErrorKind.COMMAND_FAILED,
        message or f"command failed: {command}",
        command=command,
        stdout=stdout,
        stderr=stderr,
        exit_code=exit_code,
        cause=cause,
    )


def parse_error(
    command: str,
    *,
    stdout: str = "",
    stderr: str = "",
    cause: BaseException | None = None,
) -> MirrorDeckError:
    return MirrorDeckError(
        ErrorKind.PARSE,
        f"unexpected output from {command}",
        command=command,
        stdout=stdout,
        stderr=stderr,
        exit_code=0,
        cause=cause,
    )


def user_facing_error(message: str, *, hint: str = "") -> str:
    if hint:
        return f"Error: {message}. Next step: {hint}"
    return f"Error: {message}."

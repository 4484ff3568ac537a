"""Bounded external command execution and output classification."""

from __future__ import annotations

import logging as py_logging
import subprocess
from collections.abc import Callable, Sequence

from mirrordeck.bridge.models import CommandOutput
from mirrordeck.errors import command_failed_error, parse_error, timeout_error

logger = py_logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 10.0

Runner = Callable[..., subprocess.CompletedProcess]


def _as_text(value: bytes | str | None) -> str:
    if value is None:
        return ""
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return value


def command_for_log(command: str, args: Sequence[str]) -> str:
    return " ".join([command, *args])


def run_command(
    command: str,
    args: Sequence[str],
    *,
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
    runner: Runner = subprocess.run,
) -> CommandOutput:
    """Run ``command`` to completion within ``timeout_seconds``.

    Both streams are captured in full and stripped. A zero exit returns the
    output uninterpreted; everything else raises ``MirrorDeckError``.
    """
    argv = [command, *args]
    logger.debug("run command=%s timeout=%ss", command_for_log(command, args), timeout_seconds)
    try:
        completed = runner(
            argv,
            capture_output=True,
            encoding="utf-8",
            errors="replace",
            check=False,
            timeout=timeout_seconds,
        )
    except subprocess.TimeoutExpired as exc:
        # subprocess.run kills the child before re-raising.
        logger.error("command timed out command=%s timeout=%ss", command, timeout_seconds)
        raise timeout_error(
            command,
            exc,
            stdout=_as_text(exc.stdout).strip(),
            stderr=_as_text(exc.stderr).strip(),
        ) from exc
    except OSError as exc:
        logger.error("command could not be started command=%s error=%s", command, exc)
        raise command_failed_error(command, cause=exc) from exc

    stdout = _as_text(completed.stdout).strip()
    stderr = _as_text(completed.stderr).strip()
    if completed.returncode != 0:
        logger.warning(
            "command failed command=%s returncode=%s stderr=%s",
            command,
            completed.returncode,
            stderr,
        )
        failure = subprocess.CalledProcessError(completed.returncode, argv, stdout, stderr)
        raise command_failed_error(
            command,
            stdout=stdout,
            stderr=stderr,
            exit_code=completed.returncode,
            cause=failure,
        ) from failure
    return CommandOutput(stdout=stdout, stderr=stderr)


def contains_any(haystack: str, needles: Sequence[str]) -> bool:
    """Return True when any needle occurs in haystack, ignoring case."""
    text = haystack.lower()
    return any(needle.lower() in text for needle in needles)


def classify_output(
    command: str,
    output: CommandOutput,
    *,
    success: Sequence[str],
    failure: Sequence[str] = (),
) -> None:
    """Map tool output onto success, ``command_failed`` or ``parse``.

    Success phrases are checked first so a line mentioning both wins as success.
    """
    if contains_any(output.stdout, success):
        return
    if failure and contains_any(output.stdout, failure):
        logger.warning("command reported failure command=%s stdout=%s", command, output.stdout)
        raise command_failed_error(
            command,
            stdout=output.stdout,
            stderr=output.stderr,
            exit_code=0,
            cause=RuntimeError(f"{command} reported failure"),
        )
    logger.error("unrecognized output command=%s stdout=%s", command, output.stdout)
    raise parse_error(
        command,
        stdout=output.stdout,
        stderr=output.stderr,
        cause=ValueError("unexpected output"),
    )

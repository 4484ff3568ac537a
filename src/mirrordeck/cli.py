"""Public CLI contract and entrypoint."""

from __future__ import annotations

import argparse
import logging as py_logging
import sys
from collections.abc import Callable, Sequence
from pathlib import Path

from .bridge.models import SessionOptions
from .config import BackendConfig, load_config
from .errors import ExitCode, MirrorDeckError, user_facing_error
from .logging import configure_logging, default_log_path
from .orchestrator import Orchestrator

_VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARN", "ERROR")
_SESSION_POLL_SECONDS = 0.5

OrchestratorFactory = Callable[[BackendConfig], Orchestrator]


def _log_level_type(value: str) -> str:
    normalized = value.upper()
    if normalized == "WARNING":
        normalized = "WARN"
    if normalized not in _VALID_LOG_LEVELS:
        accepted = ", ".join(_VALID_LOG_LEVELS)
        raise argparse.ArgumentTypeError(f"--log-level must be one of: {accepted}")
    return normalized


def _port_type(value: str) -> int:
    try:
        return int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError("port must be an integer") from exc


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="mirrordeck")
    parser.add_argument("--config", type=Path, default=None)
    parser.add_argument("--adb", default="", help="Path to the adb executable")
    parser.add_argument("--scrcpy", default="", help="Path to the scrcpy executable")
    parser.add_argument("--log-level", type=_log_level_type, default="INFO")
    parser.add_argument("--log-file", type=Path, default=None)

    commands = parser.add_subparsers(dest="command", required=True)
    devices = commands.add_parser("devices", help="List devices reported by adb")
    devices.add_argument(
        "--ready-only",
        action="store_true",
        help="Only list devices in the \"device\" state",
    )

    pair = commands.add_parser("pair", help="Pair with a device over Wi-Fi")
    pair.add_argument("address")
    pair.add_argument("port", type=_port_type)
    pair.add_argument("code")

    for name, help_text in (
        ("connect", "Connect to a device over TCP/IP"),
        ("disconnect", "Disconnect a TCP/IP device"),
    ):
        sub = commands.add_parser(name, help=help_text)
        sub.add_argument("address")
        sub.add_argument("port", type=_port_type)

    tcpip = commands.add_parser("tcpip", help="Restart adbd on the device in TCP mode")
    tcpip.add_argument("port", type=_port_type)

    mirror = commands.add_parser("mirror", help="Run a scrcpy session until it exits")
    mirror.add_argument("--serial", default="")
    mirror.add_argument("--bit-rate", default="")
    mirror.add_argument("--max-size", type=int, default=0)
    mirror.add_argument("--max-fps", type=int, default=0)
    mirror.add_argument("--turn-screen-off", action="store_true")
    mirror.add_argument("--fullscreen", action="store_true")
    mirror.add_argument("--stay-awake", action="store_true")
    mirror.add_argument("--record", default="")
    mirror.add_argument("--window-title", default="")
    mirror.add_argument(
        "--scrcpy-arg",
        action="append",
        default=[],
        help="Extra scrcpy argument, e.g. --scrcpy-arg=--no-audio (repeatable)",
    )
    return parser


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = build_parser()
    return parser.parse_args(argv)


def session_options_from_namespace(namespace: argparse.Namespace) -> SessionOptions:
    return SessionOptions(
        bit_rate=namespace.bit_rate,
        max_size=namespace.max_size,
        max_fps=namespace.max_fps,
        turn_screen_off=namespace.turn_screen_off,
        fullscreen=namespace.fullscreen,
        stay_awake=namespace.stay_awake,
        record=namespace.record,
        window_title=namespace.window_title,
        extra_args=tuple(namespace.scrcpy_arg),
    )


def resolve_config(namespace: argparse.Namespace) -> BackendConfig:
    config = load_config(namespace.config)
    if namespace.adb.strip():
        config.adb_path = namespace.adb.strip()
    if namespace.scrcpy.strip():
        config.scrcpy_path = namespace.scrcpy.strip()
    return config


def run_mirror(orchestrator: Orchestrator, namespace: argparse.Namespace) -> int:
    orchestrator.start_session(namespace.serial, session_options_from_namespace(namespace))
    try:
        while not orchestrator.wait_session(_SESSION_POLL_SECONDS):
            pass
    except KeyboardInterrupt:
        orchestrator.stop_session()
    return int(ExitCode.SUCCESS)


def run_command_flow(orchestrator: Orchestrator, namespace: argparse.Namespace) -> int:
    command = namespace.command
    if command == "devices":
        for device in orchestrator.list_devices():
            if namespace.ready_only and not device.is_ready:
                continue
            print(f"{device.id}\t{device.state}")
    elif command == "pair":
        orchestrator.pair(namespace.address, namespace.port, namespace.code)
    elif command == "connect":
        orchestrator.connect(namespace.address, namespace.port)
    elif command == "disconnect":
        orchestrator.disconnect(namespace.address, namespace.port)
    elif command == "tcpip":
        orchestrator.enable_wireless(namespace.port)
    elif command == "mirror":
        return run_mirror(orchestrator, namespace)
    return int(ExitCode.SUCCESS)


def main(
    argv: Sequence[str] | None = None,
    *,
    orchestrator_factory: OrchestratorFactory | None = None,
) -> int:
    log_path = default_log_path()
    logger = configure_logging(log_file=log_path)
    parser = build_parser()
    try:
        namespace = parser.parse_args(argv)
    except SystemExit as exc:
        if exc.code not in (None, 0):
            logger.warning("Argument parsing failed with exit code %s", exc.code)
        return int(exc.code or 0)

    if namespace.log_file is not None:
        log_path = namespace.log_file.expanduser()
    logger = configure_logging(level=namespace.log_level, log_file=log_path)

    try:
        config = resolve_config(namespace)
        factory = orchestrator_factory or Orchestrator.from_config
        logger.debug("Running command %s", namespace.command)
        orchestrator = factory(config)
        try:
            return run_command_flow(orchestrator, namespace)
        finally:
            orchestrator.close()
    except MirrorDeckError as exc:
        logger.error(
            "Handled MirrorDeckError (kind=%s): %s",
            exc.kind.value,
            exc,
            exc_info=logger.isEnabledFor(py_logging.DEBUG),
        )
        print(user_facing_error(str(exc), hint=exc.hint), file=sys.stderr)
        return int(exc.code)
    except Exception:
        logger.exception("Unhandled exception in CLI entrypoint")
        try:
            hint = f"Inspect logs: {log_path}"
            print(user_facing_error("Unexpected runtime failure", hint=hint), file=sys.stderr)
        except Exception:
            pass
        return int(ExitCode.COMMAND_FAILED)


def run(argv: Sequence[str] | None = None) -> int:
    return main(argv)

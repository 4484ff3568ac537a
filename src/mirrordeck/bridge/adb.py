"""adb CLI operations: discovery, pairing and wireless connection management."""

from __future__ import annotations

import logging as py_logging
import subprocess

from mirrordeck.bridge.models import CommandOutput, Device
from mirrordeck.bridge.runner import (
    DEFAULT_TIMEOUT_SECONDS,
    Runner,
    classify_output,
    command_for_log,
    run_command,
)
from mirrordeck.errors import invalid_input_error, parse_error

logger = py_logging.getLogger(__name__)

DEVICE_LIST_HEADER = "List of devices attached"
MAX_PORT = 65535

PAIR_SUCCESS = ("successfully paired to", "already paired")
PAIR_FAILURE = ("failed", "error")
CONNECT_SUCCESS = ("connected to", "already connected")
CONNECT_FAILURE = ("failed", "unable")
TCPIP_SUCCESS = ("restarting in tcp mode", "already in tcp")
TCPIP_FAILURE = ("error", "failed")
DISCONNECT_SUCCESS = ("disconnected", "no such device")
DISCONNECT_FAILURE = ("error", "failed")


def format_endpoint(address: str, port: int) -> str:
    return f"{address}:{port}"


def _valid_port(port: int) -> bool:
    return isinstance(port, int) and not isinstance(port, bool) and 0 < port <= MAX_PORT


def parse_device_list(stdout: str, *, command: str = "adb devices", stderr: str = "") -> list[Device]:
    """Parse ``adb devices`` output into devices.

    A line with fewer than two fields aborts the whole listing.
    """
    devices: list[Device] = []
    for raw_line in stdout.splitlines():
        line = raw_line.strip()
        if not line or line.startswith(DEVICE_LIST_HEADER):
            continue
        fields = line.split()
        if len(fields) < 2:
            raise parse_error(
                command,
                stdout=stdout,
                stderr=stderr,
                cause=ValueError(f"unexpected device line: {line!r}"),
            )
        devices.append(Device(id=fields[0], state=fields[1]))
    return devices


class AdbClient:
    def __init__(
        self,
        adb_path: str = "adb",
        *,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        runner: Runner = subprocess.run,
    ) -> None:
        self.adb_path = adb_path.strip() or "adb"
        self.timeout_seconds = timeout_seconds
        self._runner = runner

    def list_devices(self) -> list[Device]:
        output = self._run(["devices"])
        devices = parse_device_list(
            output.stdout,
            command=command_for_log(self.adb_path, ["devices"]),
            stderr=output.stderr,
        )
        logger.debug("Discovered %s adb devices", len(devices))
        return devices

    def pair(self, address: str, port: int, code: str) -> None:
        host = address.strip()
        pairing_code = code.strip()
        if not host or not _valid_port(port) or not pairing_code:
            raise invalid_input_error("pair requires address, port, and code")
        output = self._run(["pair", format_endpoint(host, port), pairing_code])
        classify_output(self._label("pair"), output, success=PAIR_SUCCESS, failure=PAIR_FAILURE)
        logger.info("Paired with %s", format_endpoint(host, port))

    def connect(self, address: str, port: int) -> None:
        host = address.strip()
        if not host or not _valid_port(port):
            raise invalid_input_error("connect requires address and port")
        output = self._run(["connect", format_endpoint(host, port)])
        classify_output(self._label("connect"), output, success=CONNECT_SUCCESS, failure=CONNECT_FAILURE)
        logger.info("Connected to %s", format_endpoint(host, port))

    def enable_wireless(self, port: int) -> None:
        if not _valid_port(port):
            raise invalid_input_error("tcpip requires a port")
        output = self._run(["tcpip", str(port)])
        classify_output(self._label("tcpip"), output, success=TCPIP_SUCCESS, failure=TCPIP_FAILURE)
        logger.info("adbd restarting in TCP mode on port %s", port)

    def disconnect(self, address: str, port: int) -> None:
        host = address.strip()
        if not host or not _valid_port(port):
            raise invalid_input_error("disconnect requires address and port")
        output = self._run(["disconnect", format_endpoint(host, port)])
        classify_output(
            self._label("disconnect"),
            output,
            success=DISCONNECT_SUCCESS,
            failure=DISCONNECT_FAILURE,
        )
        logger.info("Disconnected from %s", format_endpoint(host, port))

    def _label(self, subcommand: str) -> str:
        return command_for_log(self.adb_path, [subcommand])

    def _run(self, args: list[str]) -> CommandOutput:
        return run_command(
            self.adb_path,
            args,
            timeout_seconds=self.timeout_seconds,
            runner=self._runner,
        )

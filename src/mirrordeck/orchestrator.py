"""Orchestrator facade consumed by the GUI layer."""

from __future__ import annotations

import logging as py_logging
import subprocess

from mirrordeck.bridge.adb import AdbClient
from mirrordeck.bridge.models import Device, SessionOptions
from mirrordeck.bridge.runner import Runner
from mirrordeck.bridge.scrcpy import ProcessFactory, ScrcpySupervisor
from mirrordeck.config import BackendConfig, resolve_executable

logger = py_logging.getLogger(__name__)


class Orchestrator:
    """Bridge commands plus the single supervised scrcpy session.

    Bridge operations hold no shared state and may run in parallel with each
    other and with session start/stop. Every failure raises ``MirrorDeckError``.
    """

    def __init__(
        self,
        adb_path: str = "",
        scrcpy_path: str = "",
        *,
        config: BackendConfig | None = None,
        runner: Runner = subprocess.run,
        popen: ProcessFactory = subprocess.Popen,
    ) -> None:
        cfg = config or BackendConfig()
        self.config = cfg
        self.adb = AdbClient(
            resolve_executable(adb_path, cfg.adb_path),
            timeout_seconds=cfg.adb_timeout_seconds,
            runner=runner,
        )
        self.scrcpy = ScrcpySupervisor(
            resolve_executable(scrcpy_path, cfg.scrcpy_path),
            timeout_seconds=cfg.scrcpy_timeout_seconds,
            stop_grace_seconds=cfg.stop_grace_seconds,
            popen=popen,
        )
        logger.debug(
            "Orchestrator ready adb=%s scrcpy=%s",
            self.adb.adb_path,
            self.scrcpy.scrcpy_path,
        )

    @classmethod
    def from_config(cls, config: BackendConfig) -> Orchestrator:
        return cls(config=config)

    def list_devices(self) -> list[Device]:
        return self.adb.list_devices()

    def pair(self, address: str, port: int, code: str) -> None:
        self.adb.pair(address, port, code)

    def connect(self, address: str, port: int) -> None:
        self.adb.connect(address, port)

    def enable_wireless(self, port: int) -> None:
        self.adb.enable_wireless(port)

    def disconnect(self, address: str, port: int) -> None:
        self.adb.disconnect(address, port)

    def start_session(self, device_id: str = "", options: SessionOptions | None = None) -> None:
        self.scrcpy.start(device_id, options)

    def stop_session(self) -> None:
        self.scrcpy.stop()

    @property
    def session_running(self) -> bool:
        return self.scrcpy.is_running

    def wait_session(self, timeout: float | None = None) -> bool:
        return self.scrcpy.wait(timeout)

    def close(self) -> None:
        self.scrcpy.close()

"""Supervised scrcpy session lifecycle."""

from __future__ import annotations

import atexit
import logging as py_logging
import subprocess
import threading
from collections.abc import Callable
from contextlib import suppress
from dataclasses import dataclass, field

from mirrordeck.bridge.models import SessionOptions
from mirrordeck.errors import (
    ErrorKind,
    MirrorDeckError,
    command_failed_error,
    not_running_error,
    timeout_error,
)

logger = py_logging.getLogger(__name__)

DEFAULT_SESSION_TIMEOUT_SECONDS = 24 * 60 * 60.0
DEFAULT_STOP_GRACE_SECONDS = 5.0

ProcessFactory = Callable[..., subprocess.Popen]


def build_scrcpy_args(device_id: str, options: SessionOptions) -> list[str]:
    args: list[str] = []
    if device_id:
        args.extend(["-s", device_id])
    if options.bit_rate:
        args.extend(["--bit-rate", options.bit_rate])
    if options.max_size > 0:
        args.extend(["--max-size", str(options.max_size)])
    if options.max_fps > 0:
        args.extend(["--max-fps", str(options.max_fps)])
    if options.turn_screen_off:
        args.append("--turn-screen-off")
    if options.fullscreen:
        args.append("--fullscreen")
    if options.stay_awake:
        args.append("--stay-awake")
    if options.record:
        args.extend(["--record", options.record])
    if options.window_title:
        args.extend(["--window-title", options.window_title])
    if options.extra_args:
        args.extend(options.extra_args)
    return args


@dataclass
class _ScrcpyHandle:
    process: subprocess.Popen
    cancel: Callable[[], None]
    command: tuple[str, ...]
    exited: threading.Event = field(default_factory=threading.Event)


class ScrcpySupervisor:
    """Owns at most one scrcpy process.

    ``_lock`` guards only ``_handle``. It is never held while waiting on the
    process, so state stays observable while a stop is in progress.
    """

    def __init__(
        self,
        scrcpy_path: str = "scrcpy",
        *,
        timeout_seconds: float = DEFAULT_SESSION_TIMEOUT_SECONDS,
        stop_grace_seconds: float = DEFAULT_STOP_GRACE_SECONDS,
        popen: ProcessFactory = subprocess.Popen,
    ) -> None:
        self.scrcpy_path = scrcpy_path.strip() or "scrcpy"
        self.timeout_seconds = timeout_seconds
        self.stop_grace_seconds = stop_grace_seconds
        self._popen = popen
        self._lock = threading.Lock()
        self._handle: _ScrcpyHandle | None = None
        atexit.register(self.shutdown)

    @property
    def is_running(self) -> bool:
        with self._lock:
            return self._handle is not None

    def running_command(self) -> list[str]:
        with self._lock:
            handle = self._handle
        if handle is None:
            return []
        return list(handle.command)

    def start(self, device_id: str = "", options: SessionOptions | None = None) -> None:
        argv = [self.scrcpy_path, *build_scrcpy_args(device_id.strip(), options or SessionOptions())]
        with self._lock:
            if self._handle is not None:
                raise command_failed_error(
                    self.scrcpy_path,
                    message="scrcpy is already running",
                    cause=RuntimeError("scrcpy already running"),
                )
            try:
                process = self._popen(
                    argv,
                    stdin=subprocess.DEVNULL,
                    stdout=subprocess.DEVNULL,
                    stderr=subprocess.DEVNULL,
                )
            except (OSError, ValueError) as exc:
                logger.error("scrcpy could not be started command=%s error=%s", " ".join(argv), exc)
                raise command_failed_error(self.scrcpy_path, cause=exc) from exc
            handle = _ScrcpyHandle(process=process, cancel=process.terminate, command=tuple(argv))
            self._handle = handle

        logger.info("scrcpy started pid=%s command=%s", getattr(process, "pid", None), " ".join(argv))
        watcher = threading.Thread(
            target=self._watch,
            args=(handle,),
            name="scrcpy-watcher",
            daemon=True,
        )
        watcher.start()

    def stop(self) -> None:
        with self._lock:
            handle = self._handle
        if handle is None:
            raise not_running_error("scrcpy is not running")

        logger.info("Stopping scrcpy pid=%s", getattr(handle.process, "pid", None))
        with suppress(OSError):
            handle.cancel()
        if handle.exited.wait(self.stop_grace_seconds):
            return

        logger.warning(
            "scrcpy ignored termination for %ss; killing pid=%s",
            self.stop_grace_seconds,
            getattr(handle.process, "pid", None),
        )
        with suppress(OSError):
            handle.process.kill()
        expired = subprocess.TimeoutExpired(list(handle.command), self.stop_grace_seconds)
        raise timeout_error(self.scrcpy_path, expired) from expired

    def wait(self, timeout: float | None = None) -> bool:
        """Block until the current session exits; True when no session remains."""
        with self._lock:
            handle = self._handle
        if handle is None:
            return True
        return handle.exited.wait(timeout)

    def shutdown(self) -> None:
        try:
            self.stop()
        except MirrorDeckError as exc:
            if exc.kind != ErrorKind.NOT_RUNNING:
                logger.warning("scrcpy shutdown incomplete: %s", exc)

    def close(self) -> None:
        """Stop any active session and drop the interpreter-exit hook."""
        self.shutdown()
        atexit.unregister(self.shutdown)

    def _watch(self, handle: _ScrcpyHandle) -> None:
        try:
            handle.process.wait(timeout=self.timeout_seconds)
        except subprocess.TimeoutExpired:
            logger.warning("scrcpy exceeded session ceiling of %ss; killing", self.timeout_seconds)
            with suppress(OSError):
                handle.process.kill()
            handle.process.wait()
        finally:
            with self._lock:
                if self._handle is handle:
                    self._handle = None
            handle.exited.set()
        logger.info("scrcpy exited returncode=%s", getattr(handle.process, "returncode", None))

from __future__ import annotations

import gc
import subprocess
import threading
import weakref

import pytest

from mirrordeck.bridge import ScrcpySupervisor, SessionOptions
from mirrordeck.errors import ErrorKind, MirrorDeckError

pytestmark = pytest.mark.critical_regression


class _FakeProcess:
    def __init__(self, *, ignore_terminate: bool = False) -> None:
        self.pid = 4242
        self.returncode: int | None = None
        self.ignore_terminate = ignore_terminate
        self.terminated = False
        self.killed = False
        self._exited = threading.Event()

    def wait(self, timeout: float | None = None) -> int | None:
        if not self._exited.wait(timeout):
            raise subprocess.TimeoutExpired("scrcpy", timeout)
        return self.returncode

    def terminate(self) -> None:
        self.terminated = True
        if not self.ignore_terminate:
            self.exit(-15)

    def kill(self) -> None:
        self.killed = True
        self.exit(-9)

    def exit(self, code: int) -> None:
        self.returncode = code
        self._exited.set()


class _FakePopen:
    def __init__(self, *, ignore_terminate: bool = False, delay: float = 0.0) -> None:
        self.ignore_terminate = ignore_terminate
        self.delay = delay
        self.calls: list[tuple[list[str], dict[str, object]]] = []
        self.processes: list[_FakeProcess] = []

    def __call__(self, argv: list[str], **kwargs: object) -> _FakeProcess:
        if self.delay:
            threading.Event().wait(self.delay)
        self.calls.append((argv, kwargs))
        process = _FakeProcess(ignore_terminate=self.ignore_terminate)
        self.processes.append(process)
        return process


def _supervisor(popen: _FakePopen, **kwargs: float) -> ScrcpySupervisor:
    return ScrcpySupervisor("scrcpy", popen=popen, **kwargs)


def test_start_spawns_with_discarded_streams() -> None:
    popen = _FakePopen()
    supervisor = _supervisor(popen)

    supervisor.start("emulator-5554", SessionOptions(max_fps=30))

    argv, kwargs = popen.calls[0]
    assert argv == ["scrcpy", "-s", "emulator-5554", "--max-fps", "30"]
    assert kwargs["stdout"] is subprocess.DEVNULL
    assert kwargs["stderr"] is subprocess.DEVNULL
    assert supervisor.is_running
    assert supervisor.running_command() == argv

    supervisor.stop()
    assert not supervisor.is_running


def test_second_start_while_running_is_command_failed() -> None:
    popen = _FakePopen()
    supervisor = _supervisor(popen)
    supervisor.start()

    with pytest.raises(MirrorDeckError) as excinfo:
        supervisor.start("other")

    assert excinfo.value.kind == ErrorKind.COMMAND_FAILED
    assert "already running" in str(excinfo.value)
    assert len(popen.calls) == 1
    supervisor.stop()


def test_concurrent_starts_allow_exactly_one_session() -> None:
    popen = _FakePopen(delay=0.05)
    supervisor = _supervisor(popen)
    barrier = threading.Barrier(4)
    outcomes: list[object] = []
    outcomes_lock = threading.Lock()

    def _start() -> None:
        barrier.wait()
        try:
            supervisor.start()
        except MirrorDeckError as exc:
            result: object = exc.kind
        else:
            result = "ok"
        with outcomes_lock:
            outcomes.append(result)

    threads = [threading.Thread(target=_start) for _ in range(4)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=5)

    assert outcomes.count("ok") == 1
    assert outcomes.count(ErrorKind.COMMAND_FAILED) == 3
    assert len(popen.calls) == 1
    supervisor.stop()


def test_stop_without_session_is_not_running() -> None:
    supervisor = _supervisor(_FakePopen())

    with pytest.raises(MirrorDeckError) as excinfo:
        supervisor.stop()

    assert excinfo.value.kind == ErrorKind.NOT_RUNNING


def test_stop_requests_termination_and_returns_to_idle() -> None:
    popen = _FakePopen()
    supervisor = _supervisor(popen)
    supervisor.start()

    supervisor.stop()

    process = popen.processes[0]
    assert process.terminated is True
    assert process.killed is False
    assert not supervisor.is_running
    supervisor.start()
    supervisor.stop()


def test_stop_escalates_to_kill_after_grace_period() -> None:
    popen = _FakePopen(ignore_terminate=True)
    supervisor = _supervisor(popen, stop_grace_seconds=0.05)
    supervisor.start()

    with pytest.raises(MirrorDeckError) as excinfo:
        supervisor.stop()

    process = popen.processes[0]
    assert excinfo.value.kind == ErrorKind.TIMEOUT
    assert isinstance(excinfo.value.unwrap(), subprocess.TimeoutExpired)
    assert process.terminated is True
    assert process.killed is True
    assert supervisor.wait(timeout=2)
    assert not supervisor.is_running


def test_process_exit_without_stop_returns_to_idle() -> None:
    popen = _FakePopen()
    supervisor = _supervisor(popen)
    supervisor.start()

    popen.processes[0].exit(1)

    assert supervisor.wait(timeout=2)
    assert not supervisor.is_running
    supervisor.start()
    assert len(popen.calls) == 2
    supervisor.stop()


def test_spawn_failure_is_command_failed_and_leaves_idle() -> None:
    def popen(argv: list[str], **_: object) -> _FakeProcess:
        raise FileNotFoundError(2, "No such file or directory", argv[0])

    supervisor = ScrcpySupervisor("/missing/scrcpy", popen=popen)

    with pytest.raises(MirrorDeckError) as excinfo:
        supervisor.start()

    assert excinfo.value.kind == ErrorKind.COMMAND_FAILED
    assert excinfo.value.exit_code is None
    assert isinstance(excinfo.value.unwrap(), FileNotFoundError)
    assert not supervisor.is_running


def test_session_ceiling_kills_process() -> None:
    popen = _FakePopen(ignore_terminate=True)
    supervisor = _supervisor(popen, timeout_seconds=0.05)
    supervisor.start()

    assert supervisor.wait(timeout=2)
    assert popen.processes[0].killed is True
    assert not supervisor.is_running


def test_wait_without_session_returns_immediately() -> None:
    supervisor = _supervisor(_FakePopen())
    assert supervisor.wait(timeout=0) is True
    assert supervisor.running_command() == []


def test_shutdown_is_quiet_when_idle_and_stops_active_session() -> None:
    popen = _FakePopen()
    supervisor = _supervisor(popen)
    supervisor.shutdown()

    supervisor.start()
    supervisor.shutdown()

    assert popen.processes[0].terminated is True
    assert not supervisor.is_running


def test_close_stops_session_and_releases_exit_hook() -> None:
    popen = _FakePopen()
    supervisor = _supervisor(popen)
    supervisor.start()
    process = popen.processes[0]
    ref = weakref.ref(supervisor)

    supervisor.close()
    for thread in threading.enumerate():
        if thread.name == "scrcpy-watcher":
            thread.join(timeout=2)
    del supervisor
    gc.collect()

    assert process.terminated is True
    assert ref() is None

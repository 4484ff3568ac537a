"""Bridge and mirroring domain models."""

from __future__ import annotations

from dataclasses import dataclass

READY_STATE = "device"


@dataclass(frozen=True)
class Device:
    id: str
    state: str

    @property
    def is_ready(self) -> bool:
        return self.state == READY_STATE


@dataclass(frozen=True)
class SessionOptions:
    bit_rate: str = ""
    max_size: int = 0
    max_fps: int = 0
    turn_screen_off: bool = False
    fullscreen: bool = False
    stay_awake: bool = False
    record: str = ""
    window_title: str = ""
    extra_args: tuple[str, ...] = ()


@dataclass(frozen=True)
class CommandOutput:
    stdout: str
    stderr: str

"""XDG config loading for the adb/scrcpy backend."""

from __future__ import annotations

import os
import sys
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field
from typing_extensions import TypedDict

if sys.version_info >= (3, 11):
    import tomllib
else:  # pragma: no cover
    import tomli as tomllib

DEFAULT_CONFIG_PATH = Path("~/.config/mirrordeck/config.toml").expanduser()
DEFAULT_ADB_PATH = "adb"
DEFAULT_SCRCPY_PATH = "scrcpy"
DEFAULT_ADB_TIMEOUT_SECONDS = 10.0
DEFAULT_SCRCPY_TIMEOUT_SECONDS = 24 * 60 * 60.0
DEFAULT_STOP_GRACE_SECONDS = 5.0
ADB_PATH_ENV = "MIRRORDECK_ADB_PATH"
SCRCPY_PATH_ENV = "MIRRORDECK_SCRCPY_PATH"

_TIMEOUT_FIELDS = ("adb_timeout_seconds", "scrcpy_timeout_seconds", "stop_grace_seconds")


class RawConfig(TypedDict, total=False):
    adb_path: str
    scrcpy_path: str
    adb_timeout_seconds: float
    scrcpy_timeout_seconds: float
    stop_grace_seconds: float


class BackendConfig(BaseModel):
    model_config = ConfigDict(validate_assignment=True)

    adb_path: str = DEFAULT_ADB_PATH
    scrcpy_path: str = DEFAULT_SCRCPY_PATH
    adb_timeout_seconds: float = Field(default=DEFAULT_ADB_TIMEOUT_SECONDS, gt=0)
    scrcpy_timeout_seconds: float = Field(default=DEFAULT_SCRCPY_TIMEOUT_SECONDS, gt=0)
    stop_grace_seconds: float = Field(default=DEFAULT_STOP_GRACE_SECONDS, gt=0)


def get_config_path(path: str | Path | None = None) -> Path:
    if path is None:
        return DEFAULT_CONFIG_PATH
    return Path(path).expanduser()


def resolve_executable(value: object, default: str) -> str:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return default


def _sanitize(raw: RawConfig) -> BackendConfig:
    cfg = BackendConfig()
    cfg.adb_path = resolve_executable(raw.get("adb_path"), DEFAULT_ADB_PATH)
    cfg.scrcpy_path = resolve_executable(raw.get("scrcpy_path"), DEFAULT_SCRCPY_PATH)

    for name in _TIMEOUT_FIELDS:
        value = raw.get(name)
        # bool is an int subclass; TOML true/false are not durations.
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            continue
        if value > 0:
            setattr(cfg, name, float(value))
    return cfg


def _apply_env_overrides(cfg: BackendConfig) -> BackendConfig:
    adb_env = os.getenv(ADB_PATH_ENV, "").strip()
    if adb_env:
        cfg.adb_path = adb_env
    scrcpy_env = os.getenv(SCRCPY_PATH_ENV, "").strip()
    if scrcpy_env:
        cfg.scrcpy_path = scrcpy_env
    return cfg


def load_config(path: str | Path | None = None) -> BackendConfig:
    resolved = get_config_path(path)
    if not resolved.exists():
        return _apply_env_overrides(BackendConfig())
    try:
        with resolved.open("rb") as handle:
            raw = tomllib.load(handle)
    except (tomllib.TOMLDecodeError, OSError):
        return _apply_env_overrides(BackendConfig())
    if not isinstance(raw, dict):
        return _apply_env_overrides(BackendConfig())
    return _apply_env_overrides(_sanitize(raw))

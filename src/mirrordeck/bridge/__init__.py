"""adb and scrcpy process orchestration."""

from .adb import AdbClient, format_endpoint, parse_device_list
from .models import CommandOutput, Device, SessionOptions
from .runner import classify_output, contains_any, run_command
from .scrcpy import ScrcpySupervisor, build_scrcpy_args

__all__ = [
    "AdbClient",
    "build_scrcpy_args",
    "classify_output",
    "CommandOutput",
    "contains_any",
    "Device",
    "format_endpoint",
    "parse_device_list",
    "run_command",
    "ScrcpySupervisor",
    "SessionOptions",
]

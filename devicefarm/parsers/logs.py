from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import StrEnum

from devicefarm.errors import ArgumentError

CRASH_MARKERS = ("FATAL EXCEPTION", "AndroidRuntime")
ANR_MARKER = "ANR in"
NETWORK_PATTERN = re.compile(r"OkHttp|Retrofit|Volley|HTTP", re.IGNORECASE)


class LogMode(StrEnum):
    all = "all"
    crash = "crash"
    anr = "anr"
    network = "network"


class AppStatus(StrEnum):
    running = "Running"
    crashed = "CRASHED"
    anr = "ANR"


def parse_mode(value: str | None) -> LogMode:
    try:
        return LogMode(value or LogMode.all)
    except ValueError:
        allowed = ", ".join(m.value for m in LogMode)
        raise ArgumentError(f"mode must be one of: {allowed} (got {value!r})") from None


def keep_line(line: str, mode: LogMode) -> bool:
    if mode is LogMode.all:
        return True
    if mode is LogMode.crash:
        return any(marker in line for marker in CRASH_MARKERS)
    if mode is LogMode.anr:
        return ANR_MARKER in line
    return NETWORK_PATTERN.search(line) is not None


def filter_log_lines(lines: Iterable[str], mode: LogMode) -> list[str]:
    return [line for line in lines if keep_line(line, mode)]


@dataclass
class AppHealth:
    status: AppStatus = AppStatus.running
    errors: list[str] = field(default_factory=list)


def scan_app_health(log_output: str, package: str) -> AppHealth:
    """Classify a recent logcat window as Running, CRASHED or ANR for ``package``.

    A crash is a FATAL EXCEPTION line that names the package, or one whose
    next line is the runtime's "Process: <package>" line. The last marker
    in the window decides the status.
    """
    health = AppHealth()
    lines = log_output.split("\n")
    process_tag = f"Process: {package}"

    for i, line in enumerate(lines):
        if "FATAL EXCEPTION" in line:
            following = lines[i + 1] if i + 1 < len(lines) else ""
            if package in line:
                health.status = AppStatus.crashed
                health.errors.append(line.strip())
            elif process_tag in following:
                health.status = AppStatus.crashed
                health.errors.append(line.strip())
                health.errors.append(following.strip())
        elif f"{ANR_MARKER} {package}" in line:
            health.status = AppStatus.anr
            health.errors.append(line.strip())
    return health

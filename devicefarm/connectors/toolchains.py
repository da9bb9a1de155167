from __future__ import annotations

import os
import shutil
import sys
from dataclasses import dataclass
from pathlib import Path

import structlog

from devicefarm.config import Settings

log = structlog.get_logger()

ANDROID = "android"
APPLE = "apple"


@dataclass(frozen=True)
class Toolchain:
    name: str
    executable: str
    available: bool
    directory: str | None = None  # set when found outside PATH


@dataclass(frozen=True)
class ToolchainStatus:
    android: Toolchain
    apple: Toolchain

    @property
    def search_path(self) -> tuple[str, ...]:
        """Directories to prepend to PATH for commands this process spawns."""
        return tuple(t.directory for t in (self.android, self.apple) if t.directory)

    def as_dict(self) -> dict[str, bool]:
        return {ANDROID: self.android.available, APPLE: self.apple.available}


def android_sdk_candidates(
    home: Path | None = None,
    platform: str | None = None,
    android_home: str = "",
) -> list[Path]:
    """Conventional platform-tools locations, in search order."""
    home = home or Path.home()
    platform = platform or sys.platform

    candidates: list[Path] = []
    if android_home:
        candidates.append(Path(android_home) / "platform-tools")

    if platform == "darwin":
        candidates.append(home / "Library" / "Android" / "sdk" / "platform-tools")
    elif platform.startswith("win"):
        local_app_data = os.environ.get("LOCALAPPDATA")
        base = Path(local_app_data) if local_app_data else home / "AppData" / "Local"
        candidates.append(base / "Android" / "Sdk" / "platform-tools")
    else:
        candidates.extend([
            home / "Android" / "Sdk" / "platform-tools",
            Path("/opt/android-sdk/platform-tools"),
            Path("/usr/local/share/android-sdk/platform-tools"),
        ])
    return candidates


def _executable_in(directory: Path, executable: str) -> bool:
    names = [executable]
    if sys.platform.startswith("win") and not executable.lower().endswith(".exe"):
        names.append(f"{executable}.exe")
    for name in names:
        path = directory / name
        if path.is_file() and os.access(path, os.X_OK):
            return True
    return False


def probe_android(executable: str = "adb", candidates: list[Path] | None = None) -> Toolchain:
    if shutil.which(executable):
        return Toolchain(name=ANDROID, executable=executable, available=True)

    for directory in candidates if candidates is not None else android_sdk_candidates():
        if _executable_in(directory, executable):
            log.info("toolchains.android_sdk_found", directory=str(directory))
            return Toolchain(
                name=ANDROID, executable=executable, available=True, directory=str(directory)
            )

    log.warning("toolchains.android_unavailable", executable=executable)
    return Toolchain(name=ANDROID, executable=executable, available=False)


def probe_apple(executable: str = "xcrun") -> Toolchain:
    available = shutil.which(executable) is not None
    if not available:
        log.info("toolchains.apple_unavailable", executable=executable)
    return Toolchain(name=APPLE, executable=executable, available=available)


_status: ToolchainStatus | None = None


def get_toolchains(settings: Settings) -> ToolchainStatus:
    """Probe both toolchains once; later calls return the cached result."""
    global _status
    if _status is not None:
        return _status

    candidates = android_sdk_candidates(android_home=settings.android_home)
    _status = ToolchainStatus(
        android=probe_android(settings.adb_executable, candidates),
        apple=probe_apple(settings.xcrun_executable),
    )
    log.info("toolchains.probed", **_status.as_dict())
    return _status

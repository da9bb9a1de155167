"""Toolchain command helpers shared by the platform and cross-platform tools."""

from __future__ import annotations

from typing import Any

from devicefarm.core.artifacts import temporary_artifact
from devicefarm.errors import ArgumentError, ToolchainUnavailable
from devicefarm.parsers.metrics import parse_meminfo_total_mb, parse_top_cpu
from devicefarm.tools.base import ToolContext, optional_str


def device_args(device_id: str | None) -> list[str]:
    return ["-s", device_id] if device_id else []


async def adb(
    context: ToolContext,
    device_id: str | None,
    *command: Any,
    encoding: str | None = "utf-8",
) -> Any:
    if not context.toolchains.android.available:
        raise ToolchainUnavailable("android", "install the Android SDK platform-tools or set ANDROID_HOME")
    return await context.runner.run(
        context.settings.adb_executable,
        [*device_args(device_id), *(str(c) for c in command)],
        encoding=encoding,
    )


async def simctl(context: ToolContext, *command: Any) -> str:
    if not context.toolchains.apple.available:
        raise ToolchainUnavailable("apple", "Xcode command line tools are required for iOS Simulators")
    return await context.runner.run(
        context.settings.xcrun_executable, ["simctl", *(str(c) for c in command)]
    )


def require_udid(args: dict[str, Any]) -> str:
    udid = optional_str(args, "deviceId")
    if not udid:
        raise ArgumentError("deviceId (UDID) is required for iOS tools.")
    return udid


async def pull_to_artifact(
    context: ToolContext, device_id: str | None, remote_path: str, prefix: str, suffix: str
) -> bytes:
    """Pull a device file through a scoped temp file and return its bytes."""
    with temporary_artifact(prefix, suffix, context.temp_dir) as local_path:
        await adb(context, device_id, "pull", remote_path, str(local_path))
        return local_path.read_bytes()


async def query_cpu_percent(context: ToolContext, device_id: str | None, package: str) -> float | None:
    top = await adb(context, device_id, "shell", "top", "-b", "-n", "1")
    return parse_top_cpu(top, package)


async def query_memory_mb(context: ToolContext, device_id: str | None, package: str) -> int | None:
    meminfo = await adb(context, device_id, "shell", "dumpsys", "meminfo", package)
    return parse_meminfo_total_mb(meminfo)

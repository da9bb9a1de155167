from __future__ import annotations

import mimetypes
import re
from pathlib import PurePosixPath
from typing import Any

import structlog

from devicefarm.core.results import UNKNOWN, QueryResult, attempt
from devicefarm.errors import ArgumentError, ExternalCommandError
from devicefarm.parsers.logs import scan_app_health
from devicefarm.parsers.metrics import find_cpu_token, parse_battery_level
from devicefarm.schemas.device import Platform
from devicefarm.schemas.response import ToolResponse
from devicefarm.tools.base import BaseTool, ToolContext, bool_arg, int_arg, optional_str, require
from devicefarm.tools.commands import adb, pull_to_artifact, query_memory_mb
from devicefarm.tools.registry import register_tool

log = structlog.get_logger()

UI_DUMP_REMOTE_PATH = "/sdcard/window_dump.xml"

_DEVICE_ID = {"type": "string", "description": "Target device serial (optional if only one connected)"}


class _AndroidTool(BaseTool):
    platform = Platform.android

    def parameters_schema(self) -> dict[str, Any]:
        return {"type": "object", "properties": {"deviceId": _DEVICE_ID}}


class AdbInstallTool(_AndroidTool):
    name = "adb_install"
    description = "Install an APK on an Android device."

    def parameters_schema(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "deviceId": _DEVICE_ID,
                "apkPath": {"type": "string", "description": "Local path to .apk file"},
            },
            "required": ["apkPath"],
        }

    async def execute(self, args: dict[str, Any], context: ToolContext) -> ToolResponse:
        apk_path = require(args, "apkPath")
        await adb(context, optional_str(args, "deviceId"), "install", "-r", apk_path)
        return ToolResponse.text(f"Successfully installed {apk_path}")


class AdbUninstallTool(_AndroidTool):
    name = "adb_uninstall"
    description = "Uninstall an app package from an Android device."

    def parameters_schema(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "deviceId": _DEVICE_ID,
                "packageName": {"type": "string", "description": "Package name (e.g. com.example.app)"},
            },
            "required": ["packageName"],
        }

    async def execute(self, args: dict[str, Any], context: ToolContext) -> ToolResponse:
        package = require(args, "packageName")
        await adb(context, optional_str(args, "deviceId"), "uninstall", package)
        return ToolResponse.text(f"Uninstalled {package}")


class AdbScreenshotTool(_AndroidTool):
    name = "adb_screenshot"
    description = "Capture a screenshot from an Android device (returns base64 PNG)."

    async def execute(self, args: dict[str, Any], context: ToolContext) -> ToolResponse:
        png = await adb(
            context, optional_str(args, "deviceId"), "exec-out", "screencap", "-p", encoding=None
        )
        return ToolResponse.binary("Screenshot captured:", png, "image/png")


class AdbUiHierarchyTool(_AndroidTool):
    name = "adb_get_ui_hierarchy"
    description = "Get the current UI hierarchy (XML) to inspect elements and find coordinates."

    async def execute(self, args: dict[str, Any], context: ToolContext) -> ToolResponse:
        device_id = optional_str(args, "deviceId")
        await adb(context, device_id, "shell", "uiautomator", "dump", UI_DUMP_REMOTE_PATH)
        try:
            xml = await pull_to_artifact(context, device_id, UI_DUMP_REMOTE_PATH, "dump", ".xml")
        finally:
            await attempt(adb(context, device_id, "shell", "rm", UI_DUMP_REMOTE_PATH))
        return ToolResponse.text(xml.decode("utf-8", errors="replace"))


class AdbLogcatTool(_AndroidTool):
    name = "adb_logcat"
    description = "Get recent logs from an Android device (last N lines)."

    def parameters_schema(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "deviceId": _DEVICE_ID,
                "lines": {"type": "number", "default": 100},
                "filter": {"type": "string", "description": "Optional logcat filter spec (e.g. 'ActivityManager:I *:S')"},
            },
        }

    async def execute(self, args: dict[str, Any], context: ToolContext) -> ToolResponse:
        lines = int_arg(args, "lines", 100)
        if lines <= 0:
            raise ArgumentError("lines must be positive")
        command = ["logcat", "-d", "-t", str(lines)]
        log_filter = optional_str(args, "filter")
        if log_filter:
            command.extend(log_filter.split())
        output = await adb(context, optional_str(args, "deviceId"), *command)
        return ToolResponse.text(output)


class AdbTapTool(_AndroidTool):
    name = "adb_tap"
    description = "Simulate a tap on Android screen coordinates."

    def parameters_schema(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "deviceId": _DEVICE_ID,
                "x": {"type": "number"},
                "y": {"type": "number"},
            },
            "required": ["x", "y"],
        }

    async def execute(self, args: dict[str, Any], context: ToolContext) -> ToolResponse:
        x, y = int_arg(args, "x"), int_arg(args, "y")
        await adb(context, optional_str(args, "deviceId"), "shell", "input", "tap", x, y)
        return ToolResponse.text(f"Tapped at {x},{y}")


class AdbSwipeTool(_AndroidTool):
    name = "adb_swipe"
    description = "Swipe between two Android screen coordinates."

    def parameters_schema(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "deviceId": _DEVICE_ID,
                "x1": {"type": "number"},
                "y1": {"type": "number"},
                "x2": {"type": "number"},
                "y2": {"type": "number"},
                "durationMs": {"type": "number", "default": 300},
            },
            "required": ["x1", "y1", "x2", "y2"],
        }

    async def execute(self, args: dict[str, Any], context: ToolContext) -> ToolResponse:
        x1, y1 = int_arg(args, "x1"), int_arg(args, "y1")
        x2, y2 = int_arg(args, "x2"), int_arg(args, "y2")
        duration_ms = int_arg(args, "durationMs", 300)
        await adb(
            context, optional_str(args, "deviceId"),
            "shell", "input", "swipe", x1, y1, x2, y2, duration_ms,
        )
        return ToolResponse.text(f"Swiped from {x1},{y1} to {x2},{y2}")


class AdbShellTool(_AndroidTool):
    name = "adb_shell"
    description = "Run a raw ADB shell command (use carefully)."

    def parameters_schema(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "deviceId": _DEVICE_ID,
                "command": {"type": "string", "description": "Command to run inside 'adb shell'"},
            },
            "required": ["command"],
        }

    async def execute(self, args: dict[str, Any], context: ToolContext) -> ToolResponse:
        command = require(args, "command")
        output = await adb(context, optional_str(args, "deviceId"), "shell", command)
        return ToolResponse.text(output)


def escape_input_text(text: str) -> str:
    """Escape text for `adb shell input text`: whitespace becomes %s."""
    return re.sub(r"\s", "%s", text).replace("'", "\\'")


class TypeTextTool(_AndroidTool):
    name = "type_text"
    description = "Type text on the device keyboard (Android only)."

    def parameters_schema(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {"deviceId": _DEVICE_ID, "text": {"type": "string"}},
            "required": ["text"],
        }

    async def execute(self, args: dict[str, Any], context: ToolContext) -> ToolResponse:
        text = str(require(args, "text"))
        await adb(context, optional_str(args, "deviceId"), "shell", "input", "text", escape_input_text(text))
        return ToolResponse.text(f"Typed: {text}")


class DeviceInfoTool(_AndroidTool):
    name = "get_device_info"
    description = "Get Android device details (Battery, Resolution, SDK, Model)."

    async def execute(self, args: dict[str, Any], context: ToolContext) -> ToolResponse:
        device_id = optional_str(args, "deviceId")
        model = await adb(context, device_id, "shell", "getprop", "ro.product.model")
        release = await adb(context, device_id, "shell", "getprop", "ro.build.version.release")
        sdk = await adb(context, device_id, "shell", "getprop", "ro.build.version.sdk")
        wm_size = await adb(context, device_id, "shell", "wm", "size")
        battery = await attempt(_battery_level(context, device_id))

        return ToolResponse.from_json({
            "model": model.strip(),
            "androidVersion": release.strip(),
            "sdkLevel": sdk.strip(),
            "resolution": wm_size.strip(),
            "batteryLevel": battery.render("{}%"),
        })


async def _battery_level(context: ToolContext, device_id: str | None) -> int | None:
    dump = await adb(context, device_id, "shell", "dumpsys", "battery")
    return parse_battery_level(dump)


class AppVitalsTool(_AndroidTool):
    name = "get_app_vitals"
    description = "Get performance stats (CPU, Memory) and check for recent crashes/ANRs."

    def parameters_schema(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "deviceId": _DEVICE_ID,
                "packageName": {"type": "string", "description": "App package name (e.g. com.example.app)"},
            },
            "required": ["packageName"],
        }

    async def execute(self, args: dict[str, Any], context: ToolContext) -> ToolResponse:
        package = require(args, "packageName")
        device_id = optional_str(args, "deviceId")

        memory: QueryResult[int] = await attempt(query_memory_mb(context, device_id, package))
        cpu: QueryResult[str] = await attempt(self._cpu_token(context, device_id, package))
        logcat: QueryResult[str] = await attempt(
            adb(context, device_id, "logcat", "-d", "-t", context.settings.logcat_window_lines)
        )
        health = scan_app_health(logcat.value or "", package)
        status = health.status.value if logcat.ok else UNKNOWN

        vitals: dict[str, Any] = {
            "packageName": package,
            "status": status,
            "memoryPss": memory.render("{} MB"),
            "cpuUsage": cpu.render(),
        }
        if health.errors:
            vitals["recentErrors"] = health.errors
        unavailable = {
            field: result.error
            for field, result in (("memoryPss", memory), ("cpuUsage", cpu), ("healthCheck", logcat))
            if not result.ok
        }
        if unavailable:
            vitals["unavailable"] = unavailable

        log.info("android.vitals", package=package, status=status, unavailable=list(unavailable))
        return ToolResponse.from_json(vitals)

    @staticmethod
    async def _cpu_token(context: ToolContext, device_id: str | None, package: str) -> str | None:
        top = await adb(context, device_id, "shell", "top", "-b", "-n", "1")
        return find_cpu_token(top, package)


class RunMonkeyTool(_AndroidTool):
    name = "run_monkey"
    description = "Run a Chaos Monkey stress test (Android only)."

    def parameters_schema(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "deviceId": _DEVICE_ID,
                "packageName": {"type": "string"},
                "events": {"type": "number", "default": 500, "description": "Number of random events to trigger"},
            },
            "required": ["packageName"],
        }

    async def execute(self, args: dict[str, Any], context: ToolContext) -> ToolResponse:
        package = require(args, "packageName")
        events = int_arg(args, "events", 500)
        if events <= 0:
            raise ArgumentError("events must be positive")
        try:
            output = await adb(
                context, optional_str(args, "deviceId"), "shell", "monkey", "-p", package, "-v", events
            )
        except ExternalCommandError as exc:
            log.warning("android.monkey_aborted", package=package, error=exc.message)
            return ToolResponse.error("Monkey terminated early (crash detected?):", str(exc))
        return ToolResponse.text(f"Chaos Monkey finished {events} events.", output)


class _PermissionTool(_AndroidTool):
    action: str

    def parameters_schema(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "deviceId": _DEVICE_ID,
                "packageName": {"type": "string"},
                "permission": {"type": "string", "description": "e.g. android.permission.CAMERA"},
            },
            "required": ["packageName", "permission"],
        }

    async def execute(self, args: dict[str, Any], context: ToolContext) -> ToolResponse:
        package = require(args, "packageName")
        permission = require(args, "permission")
        await adb(context, optional_str(args, "deviceId"), "shell", "pm", self.action, package, permission)
        verb = "Granted" if self.action == "grant" else "Revoked"
        return ToolResponse.text(f"{verb} {permission} for {package}")


class AdbGrantPermissionTool(_PermissionTool):
    name = "adb_grant_permission"
    description = "Grant a runtime permission to an Android app."
    action = "grant"


class AdbRevokePermissionTool(_PermissionTool):
    name = "adb_revoke_permission"
    description = "Revoke a runtime permission from an Android app."
    action = "revoke"


class AdbSetNetworkTool(_AndroidTool):
    name = "adb_set_network"
    description = "Enable or disable Wi-Fi or mobile data on an Android device."

    INTERFACES = ("wifi", "data")

    def parameters_schema(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "deviceId": _DEVICE_ID,
                "interface": {"type": "string", "enum": list(self.INTERFACES)},
                "enabled": {"type": "boolean"},
            },
            "required": ["interface", "enabled"],
        }

    async def execute(self, args: dict[str, Any], context: ToolContext) -> ToolResponse:
        interface = require(args, "interface")
        if interface not in self.INTERFACES:
            raise ArgumentError(f"interface must be one of {', '.join(self.INTERFACES)} (got {interface!r})")
        enabled = bool_arg(args, "enabled")
        state = "enable" if enabled else "disable"
        await adb(context, optional_str(args, "deviceId"), "shell", "svc", interface, state)
        return ToolResponse.text(f"{interface} {state}d")


class AdbPushFileTool(_AndroidTool):
    name = "adb_push_file"
    description = "Copy a local file onto an Android device."

    def parameters_schema(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "deviceId": _DEVICE_ID,
                "localPath": {"type": "string"},
                "remotePath": {"type": "string", "description": "Destination on device, e.g. /sdcard/Download/"},
            },
            "required": ["localPath", "remotePath"],
        }

    async def execute(self, args: dict[str, Any], context: ToolContext) -> ToolResponse:
        local_path = require(args, "localPath")
        remote_path = require(args, "remotePath")
        await adb(context, optional_str(args, "deviceId"), "push", local_path, remote_path)
        return ToolResponse.text(f"Pushed {local_path} to {remote_path}")


class AdbPullFileTool(_AndroidTool):
    name = "adb_pull_file"
    description = "Fetch a file from an Android device (returns base64 content)."

    def parameters_schema(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "deviceId": _DEVICE_ID,
                "remotePath": {"type": "string", "description": "File path on device"},
            },
            "required": ["remotePath"],
        }

    async def execute(self, args: dict[str, Any], context: ToolContext) -> ToolResponse:
        remote_path = str(require(args, "remotePath"))
        suffix = PurePosixPath(remote_path).suffix
        data = await pull_to_artifact(context, optional_str(args, "deviceId"), remote_path, "pull", suffix)
        mime_type = mimetypes.guess_type(remote_path)[0] or "application/octet-stream"
        return ToolResponse.binary(f"Pulled {remote_path} ({len(data)} bytes):", data, mime_type)


_TOOLS = [
    AdbInstallTool(),
    AdbUninstallTool(),
    AdbScreenshotTool(),
    AdbUiHierarchyTool(),
    AdbLogcatTool(),
    AdbTapTool(),
    AdbSwipeTool(),
    AdbShellTool(),
    TypeTextTool(),
    DeviceInfoTool(),
    AppVitalsTool(),
    RunMonkeyTool(),
    AdbGrantPermissionTool(),
    AdbRevokePermissionTool(),
    AdbSetNetworkTool(),
    AdbPushFileTool(),
    AdbPullFileTool(),
]

for _t in _TOOLS:
    register_tool(_t)

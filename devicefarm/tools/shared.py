from __future__ import annotations

import asyncio
from typing import Any

import structlog

from devicefarm.core.artifacts import temporary_artifact
from devicefarm.core.results import attempt
from devicefarm.core.sampler import PerformanceSampler
from devicefarm.errors import ArgumentError, ExternalCommandError, ToolchainUnavailable
from devicefarm.parsers.devices import parse_adb_devices, parse_simctl_devices
from devicefarm.parsers.logs import filter_log_lines, parse_mode
from devicefarm.parsers.metrics import parse_ps_cpu, parse_ps_memory_mb
from devicefarm.schemas.device import DeviceRecord, Platform
from devicefarm.schemas.response import ToolResponse
from devicefarm.tools.base import (
    BaseTool,
    ToolContext,
    bool_arg,
    int_arg,
    number_arg,
    optional_str,
    platform_arg,
    require,
)
from devicefarm.tools.commands import (
    adb,
    query_cpu_percent,
    query_memory_mb,
    require_udid,
    simctl,
)
from devicefarm.tools.registry import register_tool

log = structlog.get_logger()

VIDEO_REMOTE_PATH = "/sdcard/devicefarm_rec.mp4"
RECORDER_STOP_TIMEOUT = 15.0

_DEVICE_ID = {"type": "string", "description": "Target device serial or simulator UDID"}
_PLATFORM = {"type": "string", "enum": ["android", "ios"], "default": "android"}


class ListDevicesTool(BaseTool):
    name = "list_devices"
    description = "List all connected Android devices (ADB) and iOS Simulators (xcrun)."

    FILTERS = ("all", "android", "ios")

    def parameters_schema(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "platform": {"type": "string", "enum": list(self.FILTERS), "default": "all"},
            },
        }

    async def execute(self, args: dict[str, Any], context: ToolContext) -> ToolResponse:
        wanted = args.get("platform") or "all"
        if wanted not in self.FILTERS:
            raise ArgumentError(f"platform must be one of {', '.join(self.FILTERS)} (got {wanted!r})")
        want_android = wanted in ("all", "android")
        want_ios = wanted in ("all", "ios")
        has_adb = context.toolchains.android.available
        has_xcode = context.toolchains.apple.available

        devices: list[DeviceRecord] = []
        if want_android and has_adb:
            android = await attempt(self._android_devices(context))
            devices.extend(android.value or [])
        if want_ios and has_xcode:
            ios = await attempt(self._ios_devices(context))
            devices.extend(ios.value or [])

        log.info("discovery.finished", platform=wanted, count=len(devices))
        if devices:
            return ToolResponse.from_json([d.to_public() for d in devices])

        help_text = "No devices found.\n\n"
        if want_android:
            if not has_adb:
                help_text += "Android: ADB not found. Install the Android SDK platform-tools or set ANDROID_HOME.\n"
            else:
                help_text += "Android: Run 'adb devices' to authorize.\n"
        if want_ios:
            if not has_xcode:
                help_text += "iOS: Xcode tools not found.\n"
            else:
                help_text += "iOS: Boot a simulator with 'xcrun simctl boot <UDID>'.\n"
        return ToolResponse.text(help_text)

    @staticmethod
    async def _android_devices(context: ToolContext) -> list[DeviceRecord]:
        output = await adb(context, None, "devices", "-l")
        return parse_adb_devices(output)

    @staticmethod
    async def _ios_devices(context: ToolContext) -> list[DeviceRecord]:
        output = await simctl(context, "list", "devices", "available", "--json")
        try:
            return parse_simctl_devices(output)
        except ValueError as exc:
            log.warning("discovery.simctl_unparseable", error=str(exc))
            return []


class PerformanceTestTool(BaseTool):
    name = "test_performance"
    description = "Run a performance test on an app, measuring CPU and memory over time."

    def parameters_schema(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "deviceId": _DEVICE_ID,
                "packageName": {"type": "string", "description": "App package / bundle ID (e.g. com.example.app)"},
                "platform": _PLATFORM,
                "durationSec": {"type": "number", "default": 10, "description": "Test duration in seconds"},
                "includeSamples": {"type": "boolean", "default": False, "description": "Echo the raw sample series"},
            },
            "required": ["packageName"],
        }

    async def execute(self, args: dict[str, Any], context: ToolContext) -> ToolResponse:
        package = str(require(args, "packageName"))
        platform = platform_arg(args)
        requested = number_arg(args, "durationSec", 10)
        limit = context.settings.max_performance_duration
        if not 1 <= requested <= limit:
            raise ArgumentError(f"durationSec must be between 1 and {limit}")
        duration = int(requested)
        include_samples = bool_arg(args, "includeSamples", False)

        if platform is Platform.ios:
            udid = require_udid(args)

            async def cpu_probe() -> float | None:
                return parse_ps_cpu(await simctl(context, "spawn", udid, "ps", "aux"), package)

            async def memory_probe() -> float | None:
                return parse_ps_memory_mb(await simctl(context, "spawn", udid, "ps", "aux"), package)
        else:
            device_id = optional_str(args, "deviceId")

            async def cpu_probe() -> float | None:
                return await query_cpu_percent(context, device_id, package)

            async def memory_probe() -> float | None:
                return await query_memory_mb(context, device_id, package)

        sampler = PerformanceSampler(
            cpu_probe,
            memory_probe,
            duration=duration,
            interval=context.settings.sample_interval_seconds,
        )
        report = await sampler.run()
        return ToolResponse.from_json({
            "packageName": package,
            "platform": platform.value,
            "durationSec": duration,
            **report.to_dict(include_samples=include_samples),
        })


class OpenDeepLinkTool(BaseTool):
    name = "open_deep_link"
    description = "Open a deep link or URL on the device."

    def parameters_schema(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "deviceId": _DEVICE_ID,
                "url": {"type": "string", "description": "URL to open (e.g. myapp://path or https://google.com)"},
                "platform": _PLATFORM,
            },
            "required": ["url"],
        }

    async def execute(self, args: dict[str, Any], context: ToolContext) -> ToolResponse:
        url = require(args, "url")
        if platform_arg(args) is Platform.ios:
            await simctl(context, "openurl", require_udid(args), url)
        else:
            await adb(
                context, optional_str(args, "deviceId"),
                "shell", "am", "start", "-a", "android.intent.action.VIEW", "-d", url,
            )
        return ToolResponse.text(f"Opened {url}")


class RecordVideoTool(BaseTool):
    name = "record_video"
    description = "Record a short video of the device screen."

    def parameters_schema(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "deviceId": _DEVICE_ID,
                "durationSec": {"type": "number", "default": 5, "description": "Duration in seconds (max 60)"},
                "platform": _PLATFORM,
            },
        }

    async def execute(self, args: dict[str, Any], context: ToolContext) -> ToolResponse:
        requested = number_arg(args, "durationSec", 5)
        limit = context.settings.max_video_duration
        if requested > limit:
            raise ArgumentError(f"Max duration is {limit} seconds")
        if requested < 1:
            raise ArgumentError("durationSec must be at least 1")
        duration = int(requested)
        platform = platform_arg(args)
        udid = require_udid(args) if platform is Platform.ios else None

        with temporary_artifact("rec", ".mp4", context.temp_dir) as path:
            if udid:
                await self._record_simulator(context, udid, duration, str(path))
            else:
                await self._record_android(context, optional_str(args, "deviceId"), duration, str(path))
            if not path.exists():
                raise ExternalCommandError("record_video", "recording produced no output file")
            video = path.read_bytes()

        return ToolResponse.binary(f"Video recorded ({duration}s).", video, "video/mp4")

    @staticmethod
    async def _record_android(context: ToolContext, device_id: str | None, duration: int, local_path: str) -> None:
        await adb(context, device_id, "shell", "screenrecord", "--time-limit", duration, VIDEO_REMOTE_PATH)
        try:
            await adb(context, device_id, "pull", VIDEO_REMOTE_PATH, local_path)
        finally:
            await attempt(adb(context, device_id, "shell", "rm", VIDEO_REMOTE_PATH))

    @staticmethod
    async def _record_simulator(context: ToolContext, udid: str, duration: int, local_path: str) -> None:
        if not context.toolchains.apple.available:
            raise ToolchainUnavailable("apple", "Xcode command line tools are required for iOS Simulators")
        recording = await context.runner.start(
            context.settings.xcrun_executable,
            ["simctl", "io", udid, "recordVideo", local_path],
        )
        try:
            await asyncio.sleep(duration)
        finally:
            recording.interrupt()
            code = await recording.wait(timeout=RECORDER_STOP_TIMEOUT)
        # simctl exits non-zero after SIGINT on some Xcode versions
        log.debug("ios.recording_stopped", udid=udid, exit_code=code)


class RunMaestroFlowTool(BaseTool):
    name = "run_maestro_flow"
    description = "Execute a Maestro UI automation flow."

    def parameters_schema(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "deviceId": _DEVICE_ID,
                "flowPath": {"type": "string", "description": "Path to the .yaml Maestro flow file"},
            },
            "required": ["flowPath"],
        }

    async def execute(self, args: dict[str, Any], context: ToolContext) -> ToolResponse:
        flow_path = require(args, "flowPath")
        command = ["test", flow_path]
        device_id = optional_str(args, "deviceId")
        if device_id:
            command.extend(["--device", device_id])
        output = await context.runner.run(context.settings.maestro_executable, command)
        return ToolResponse.text(output)


class AnalyzeLogsTool(BaseTool):
    name = "analyze_logs"
    description = "Get logs filtered by mode (crash, anr, network)."

    def parameters_schema(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "deviceId": _DEVICE_ID,
                "mode": {"type": "string", "enum": ["all", "crash", "anr", "network"], "default": "all"},
                "lines": {"type": "number", "default": 500},
            },
        }

    async def execute(self, args: dict[str, Any], context: ToolContext) -> ToolResponse:
        mode = parse_mode(args.get("mode"))
        lines = int_arg(args, "lines", 500)
        if lines <= 0:
            raise ArgumentError("lines must be positive")
        output = await adb(context, optional_str(args, "deviceId"), "logcat", "-d", "-t", lines)
        kept = filter_log_lines(output.split("\n"), mode)
        return ToolResponse.text("\n".join(kept) or "No matching logs.")


_TOOLS = [
    ListDevicesTool(),
    PerformanceTestTool(),
    OpenDeepLinkTool(),
    RecordVideoTool(),
    RunMaestroFlowTool(),
    AnalyzeLogsTool(),
]

for _t in _TOOLS:
    register_tool(_t)

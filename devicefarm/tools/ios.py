from __future__ import annotations

import json
from abc import abstractmethod
from typing import Any

from devicefarm.core.artifacts import temporary_artifact
from devicefarm.errors import ArgumentError
from devicefarm.schemas.device import Platform
from devicefarm.schemas.response import ToolResponse
from devicefarm.tools.base import BaseTool, ToolContext, require
from devicefarm.tools.commands import require_udid, simctl
from devicefarm.tools.registry import register_tool

_UDID = {"type": "string", "description": "Simulator UDID"}
_BUNDLE_ID = {"type": "string", "description": "App Bundle ID (e.g. com.example.app)"}


class _IosTool(BaseTool):
    """Simulator tools; every one targets an explicit UDID."""

    platform = Platform.ios

    async def execute(self, args: dict[str, Any], context: ToolContext) -> ToolResponse:
        udid = require_udid(args)
        return await self.run(udid, args, context)

    @abstractmethod
    async def run(self, udid: str, args: dict[str, Any], context: ToolContext) -> ToolResponse:
        ...


class _BundleTool(_IosTool):
    def parameters_schema(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {"deviceId": _UDID, "bundleId": _BUNDLE_ID},
            "required": ["deviceId", "bundleId"],
        }


class IosInstallTool(_IosTool):
    name = "ios_install"
    description = "Install an .app bundle on an iOS Simulator."

    def parameters_schema(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "deviceId": _UDID,
                "appPath": {"type": "string", "description": "Path to .app bundle"},
            },
            "required": ["deviceId", "appPath"],
        }

    async def run(self, udid: str, args: dict[str, Any], context: ToolContext) -> ToolResponse:
        app_path = require(args, "appPath")
        await simctl(context, "install", udid, app_path)
        return ToolResponse.text(f"Installed {app_path} on {udid}")


class IosScreenshotTool(_IosTool):
    name = "ios_screenshot"
    description = "Capture a screenshot from an iOS Simulator (returns base64 PNG)."

    def parameters_schema(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {"deviceId": {"type": "string", "description": "Simulator UDID (must be booted)"}},
            "required": ["deviceId"],
        }

    async def run(self, udid: str, args: dict[str, Any], context: ToolContext) -> ToolResponse:
        with temporary_artifact("ios_screen", ".png", context.temp_dir) as path:
            await simctl(context, "io", udid, "screenshot", str(path))
            png = path.read_bytes()
        return ToolResponse.binary("Screenshot captured:", png, "image/png")


class IosLaunchTool(_BundleTool):
    name = "ios_launch"
    description = "Launch an installed app on iOS Simulator."

    async def run(self, udid: str, args: dict[str, Any], context: ToolContext) -> ToolResponse:
        bundle_id = require(args, "bundleId")
        await simctl(context, "launch", udid, bundle_id)
        return ToolResponse.text(f"Launched {bundle_id}")


class IosTerminateTool(_BundleTool):
    name = "ios_terminate"
    description = "Terminate a running app on iOS Simulator."

    async def run(self, udid: str, args: dict[str, Any], context: ToolContext) -> ToolResponse:
        bundle_id = require(args, "bundleId")
        await simctl(context, "terminate", udid, bundle_id)
        return ToolResponse.text(f"Terminated {bundle_id}")


class IosUninstallTool(_BundleTool):
    name = "ios_uninstall"
    description = "Uninstall an app from iOS Simulator."

    async def run(self, udid: str, args: dict[str, Any], context: ToolContext) -> ToolResponse:
        bundle_id = require(args, "bundleId")
        await simctl(context, "uninstall", udid, bundle_id)
        return ToolResponse.text(f"Uninstalled {bundle_id}")


class IosAddMediaTool(_IosTool):
    name = "ios_add_media"
    description = "Add photos or videos to the Simulator photo library."

    def parameters_schema(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "deviceId": _UDID,
                "localPath": {"type": "string", "description": "Local path to the media file"},
            },
            "required": ["deviceId", "localPath"],
        }

    async def run(self, udid: str, args: dict[str, Any], context: ToolContext) -> ToolResponse:
        local_path = require(args, "localPath")
        await simctl(context, "addmedia", udid, local_path)
        return ToolResponse.text(f"Added media {local_path} to {udid}")


class IosPushNotificationTool(_IosTool):
    name = "ios_push_notification"
    description = "Send a remote push notification to an app on the Simulator."

    def parameters_schema(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "deviceId": _UDID,
                "bundleId": {"type": "string", "description": "Target app bundle ID"},
                "payload": {"type": "object", "description": "APNs payload (JSON)"},
            },
            "required": ["deviceId", "bundleId", "payload"],
        }

    async def run(self, udid: str, args: dict[str, Any], context: ToolContext) -> ToolResponse:
        bundle_id = require(args, "bundleId")
        payload = require(args, "payload")
        if isinstance(payload, str):
            try:
                payload = json.loads(payload)
            except json.JSONDecodeError as exc:
                raise ArgumentError(f"payload is not valid JSON: {exc}") from None
        if not isinstance(payload, dict):
            raise ArgumentError("payload must be a JSON object")

        with temporary_artifact("payload", ".json", context.temp_dir) as path:
            path.write_text(json.dumps(payload), encoding="utf-8")
            await simctl(context, "push", udid, bundle_id, str(path))
        return ToolResponse.text(f"Sent push notification to {bundle_id}")


class _PrivacyTool(_IosTool):
    action: str

    def parameters_schema(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "deviceId": _UDID,
                "bundleId": _BUNDLE_ID,
                "service": {
                    "type": "string",
                    "description": "Privacy service, e.g. photos, camera, location, contacts, microphone",
                },
            },
            "required": ["deviceId", "bundleId", "service"],
        }

    async def run(self, udid: str, args: dict[str, Any], context: ToolContext) -> ToolResponse:
        bundle_id = require(args, "bundleId")
        service = require(args, "service")
        await simctl(context, "privacy", udid, self.action, service, bundle_id)
        verb = "Granted" if self.action == "grant" else "Revoked"
        return ToolResponse.text(f"{verb} {service} for {bundle_id}")


class IosGrantPermissionTool(_PrivacyTool):
    name = "ios_grant_permission"
    description = "Grant a privacy permission to an app on iOS Simulator."
    action = "grant"


class IosRevokePermissionTool(_PrivacyTool):
    name = "ios_revoke_permission"
    description = "Revoke a privacy permission from an app on iOS Simulator."
    action = "revoke"


_TOOLS = [
    IosInstallTool(),
    IosScreenshotTool(),
    IosLaunchTool(),
    IosTerminateTool(),
    IosUninstallTool(),
    IosAddMediaTool(),
    IosPushNotificationTool(),
    IosGrantPermissionTool(),
    IosRevokePermissionTool(),
]

for _t in _TOOLS:
    register_tool(_t)

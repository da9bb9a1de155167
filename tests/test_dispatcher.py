"""Tests for the operation catalog and the dispatcher's error envelope."""

import pytest

from devicefarm.core import dispatcher as dispatcher_module
from devicefarm.schemas.device import Platform
from devicefarm.schemas.response import ToolResponse
from devicefarm.tools import shared
from devicefarm.tools.base import BaseTool
from devicefarm.tools.loader import load_tools
from devicefarm.tools.registry import all_tools, get_tool, register_tool, tools_for

SHARED = ["list_devices", "test_performance", "open_deep_link", "record_video", "run_maestro_flow", "analyze_logs"]


def test_catalog_order_and_uniqueness(dispatcher):
    names = [spec.name for spec in dispatcher.list_operations()]

    assert len(names) == len(set(names)) == 32
    assert names[:6] == SHARED
    assert names[6] == "adb_install"
    assert names[-9] == "ios_install"


def test_catalog_platforms():
    assert len(tools_for(Platform.either)) == 6
    assert len(tools_for(Platform.android)) == 17
    assert len(tools_for(Platform.ios)) == 9
    assert all(t.name.startswith("ios_") for t in tools_for(Platform.ios))


def test_load_tools_is_idempotent():
    before = [t.name for t in all_tools()]
    assert [t.name for t in load_tools()] == before


def test_every_tool_publishes_an_object_schema():
    for tool in all_tools():
        spec = tool.to_mcp_spec()
        assert spec["inputSchema"]["type"] == "object"
        for required in spec["inputSchema"].get("required", []):
            assert required in spec["inputSchema"]["properties"]


def test_duplicate_registration_is_rejected():
    class Imposter(BaseTool):
        name = "list_devices"
        description = "not the real one"

        def parameters_schema(self):
            return {"type": "object", "properties": {}}

        async def execute(self, args, context):
            return ToolResponse.text("")

    with pytest.raises(ValueError):
        register_tool(Imposter())
    assert isinstance(get_tool("list_devices"), shared.ListDevicesTool)


@pytest.mark.asyncio
async def test_unknown_tool(dispatcher):
    response = await dispatcher.invoke("adb_reboot", {})

    assert response.is_error
    assert response.texts == ["Tool adb_reboot not implemented."]


@pytest.mark.asyncio
async def test_command_failure_becomes_error_envelope(dispatcher, runner):
    runner.fail("install", message="adb: device 'nope' not found")

    response = await dispatcher.invoke("adb_install", {"deviceId": "nope", "apkPath": "/tmp/app.apk"})

    assert response.is_error
    assert response.texts == [
        "Error executing adb_install: Command failed: adb -s nope install -r /tmp/app.apk\n"
        "adb: device 'nope' not found"
    ]


@pytest.mark.asyncio
async def test_missing_toolchain_is_reported_before_running(make_dispatcher, runner):
    dispatcher = make_dispatcher(android=False, apple=False)

    tap = await dispatcher.invoke("adb_tap", {"x": 1, "y": 2})
    launch = await dispatcher.invoke("ios_launch", {"deviceId": "UDID", "bundleId": "com.example.app"})

    assert tap.texts == [
        "Error executing adb_tap: android toolchain not found "
        "(install the Android SDK platform-tools or set ANDROID_HOME)"
    ]
    assert launch.is_error
    assert "apple toolchain not found" in launch.texts[0]
    assert runner.calls == []


@pytest.mark.asyncio
async def test_unexpected_exception_is_contained(dispatcher, monkeypatch):
    captured = []

    async def broken(self, args, context):
        raise RuntimeError("boom")

    monkeypatch.setattr(shared.RunMaestroFlowTool, "execute", broken)
    monkeypatch.setattr(dispatcher_module.sentry_sdk, "capture_exception", captured.append)

    response = await dispatcher.invoke("run_maestro_flow", {"flowPath": "flow.yaml"})

    assert response.is_error
    assert response.texts == ["Error executing run_maestro_flow: boom"]
    assert isinstance(captured[0], RuntimeError)


@pytest.mark.asyncio
async def test_none_arguments_are_accepted(dispatcher, runner):
    runner.on("devices", "-l", stdout="List of devices attached\nemulator-5554\tdevice\n")

    response = await dispatcher.invoke("list_devices", None)

    assert not response.is_error
    assert "emulator-5554" in response.texts[0]

from __future__ import annotations

import json
from typing import Any

from devicefarm.schemas.device import DeviceRecord, Platform

SIM_RUNTIME_PREFIX = "com.apple.CoreSimulator.SimRuntime."


def parse_adb_devices(output: str) -> list[DeviceRecord]:
    """Parse `adb devices -l` output, skipping the header and offline devices."""
    records: list[DeviceRecord] = []
    for line in output.split("\n")[1:]:
        if not line.strip() or "offline" in line:
            continue
        parts = line.split(None, 2)
        records.append(
            DeviceRecord(
                platform=Platform.android,
                id=parts[0],
                state=parts[1] if len(parts) > 1 else "",
                details=parts[2].strip() if len(parts) > 2 else "",
            )
        )
    return records


def parse_simctl_devices(payload: str | dict[str, Any]) -> list[DeviceRecord]:
    """Parse `xcrun simctl list devices available --json`, keeping booted simulators."""
    data = json.loads(payload) if isinstance(payload, str) else payload
    if not isinstance(data, dict):
        raise ValueError(f"simctl output is not a JSON object: {type(data).__name__}")
    runtimes = data.get("devices")
    if runtimes is None:
        runtimes = {}
    if not isinstance(runtimes, dict):
        raise ValueError(f"simctl 'devices' is not a mapping: {type(runtimes).__name__}")

    records: list[DeviceRecord] = []
    for runtime, devices in runtimes.items():
        runtime_name = runtime.replace(SIM_RUNTIME_PREFIX, "", 1)
        for dev in devices or []:
            if not isinstance(dev, dict) or dev.get("state") != "Booted":
                continue
            records.append(
                DeviceRecord(
                    platform=Platform.ios,
                    id=dev.get("udid", ""),
                    name=dev.get("name"),
                    state=dev["state"],
                    runtime=runtime_name,
                )
            )
    return records

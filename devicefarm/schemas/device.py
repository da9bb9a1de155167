from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel


class Platform(StrEnum):
    android = "android"
    ios = "ios"
    either = "either"


class DeviceRecord(BaseModel):
    """One attached Android device or booted iOS simulator, as seen right now."""

    platform: Platform
    id: str
    state: str
    name: str | None = None
    runtime: str | None = None  # iOS only, e.g. "iOS-17-2"
    details: str | None = None  # Android only, tail of the `adb devices -l` line

    def to_public(self) -> dict:
        return self.model_dump(mode="json", exclude_none=True)

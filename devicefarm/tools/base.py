from __future__ import annotations

import math
from abc import ABC, abstractmethod
from typing import Any

from devicefarm.config import Settings
from devicefarm.connectors.process import CommandRunner
from devicefarm.connectors.toolchains import ToolchainStatus
from devicefarm.errors import ArgumentError
from devicefarm.schemas.device import Platform
from devicefarm.schemas.operation import OperationSpec
from devicefarm.schemas.response import ToolResponse


class BaseTool(ABC):
    name: str
    description: str
    platform: Platform = Platform.either

    @abstractmethod
    async def execute(self, args: dict[str, Any], context: ToolContext) -> ToolResponse:
        """Run the operation and return its response envelope."""

    @abstractmethod
    def parameters_schema(self) -> dict[str, Any]:
        """JSON Schema for the tool's arguments."""

    def to_spec(self) -> OperationSpec:
        return OperationSpec(
            name=self.name,
            description=self.description,
            platform=self.platform,
            input_schema=self.parameters_schema(),
        )

    def to_mcp_spec(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "inputSchema": self.parameters_schema(),
        }


class ToolContext:
    """Runtime context passed to every tool execution."""

    def __init__(
        self,
        runner: CommandRunner,
        toolchains: ToolchainStatus,
        settings: Settings,
    ):
        self.runner = runner
        self.toolchains = toolchains
        self.settings = settings

    @property
    def temp_dir(self) -> str | None:
        return self.settings.temp_dir or None


# -- loosely-typed argument helpers -------------------------------------------


def require(args: dict[str, Any], key: str) -> Any:
    value = args.get(key)
    if value is None or value == "":
        raise ArgumentError(f"{key} is required")
    return value


def optional_str(args: dict[str, Any], key: str) -> str | None:
    value = args.get(key)
    if value is None or value == "":
        return None
    return str(value)


def number_arg(args: dict[str, Any], key: str, default: float | None = None) -> float:
    value = args.get(key)
    if value is None or value == "":
        if default is None:
            raise ArgumentError(f"{key} is required")
        return default
    if isinstance(value, bool):
        raise ArgumentError(f"{key} must be a number")
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ArgumentError(f"{key} must be a number (got {value!r})") from None
    if not math.isfinite(number):
        raise ArgumentError(f"{key} must be a finite number (got {value!r})")
    return number


def int_arg(args: dict[str, Any], key: str, default: int | None = None) -> int:
    """Numeric argument truncated to an int. Range-check with number_arg first."""
    return int(number_arg(args, key, default))


def bool_arg(args: dict[str, Any], key: str, default: bool | None = None) -> bool:
    value = args.get(key)
    if value is None:
        if default is None:
            raise ArgumentError(f"{key} is required")
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in {"1", "true", "yes", "on", "enable"}:
        return True
    if isinstance(value, str) and value.strip().lower() in {"0", "false", "no", "off", "disable"}:
        return False
    if isinstance(value, (int, float)):
        return bool(value)
    raise ArgumentError(f"{key} must be a boolean (got {value!r})")


def platform_arg(args: dict[str, Any], default: Platform = Platform.android) -> Platform:
    value = args.get("platform") or default
    if value not in (Platform.android, Platform.ios):
        raise ArgumentError(f"platform must be 'android' or 'ios' (got {value!r})")
    return Platform(value)

from __future__ import annotations

import time
from typing import Any

import sentry_sdk
import structlog

from devicefarm.errors import DeviceFarmError
from devicefarm.schemas.operation import OperationSpec
from devicefarm.schemas.response import ToolResponse
from devicefarm.tools.base import ToolContext
from devicefarm.tools.loader import load_tools
from devicefarm.tools.registry import get_tool, tool_specs

log = structlog.get_logger()


class Dispatcher:
    """Routes (name, arguments) to the registered operation.

    Every failure is turned into an error-flagged ToolResponse here; nothing
    raises past ``invoke``.
    """

    def __init__(self, context: ToolContext):
        self.context = context
        load_tools()

    def list_operations(self) -> list[OperationSpec]:
        return tool_specs()

    async def invoke(self, name: str, arguments: dict[str, Any] | None = None) -> ToolResponse:
        args = dict(arguments or {})
        tool = get_tool(name)
        if tool is None:
            log.warning("dispatcher.unknown_tool", tool=name)
            return ToolResponse.error(f"Tool {name} not implemented.")

        started = time.monotonic()
        try:
            response = await tool.execute(args, self.context)
        except DeviceFarmError as exc:
            log.warning("dispatcher.invoke_failed", tool=name, error=str(exc))
            return ToolResponse.error(f"Error executing {name}: {exc}")
        except Exception as exc:
            log.exception("dispatcher.invoke_exception", tool=name)
            sentry_sdk.capture_exception(exc)
            return ToolResponse.error(f"Error executing {name}: {exc}")

        log.info(
            "dispatcher.invoke_ok",
            tool=name,
            platform=tool.platform.value,
            is_error=response.is_error,
            elapsed_ms=round((time.monotonic() - started) * 1000),
        )
        return response

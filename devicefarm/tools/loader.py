from __future__ import annotations

import importlib

import structlog

from devicefarm.tools.base import BaseTool
from devicefarm.tools.registry import all_tools

log = structlog.get_logger()

# Import order is catalog order.
TOOL_MODULES = ("shared", "android", "ios")

_loaded = False


def load_tools() -> list[BaseTool]:
    """Import every tool module so their module-level register_tool() calls run.

    Idempotent: only the first call imports anything.
    Returns the registered tools in catalog order.
    """
    global _loaded
    if _loaded:
        return all_tools()

    for module_name in TOOL_MODULES:
        fqn = f"devicefarm.tools.{module_name}"
        importlib.import_module(fqn)
        log.debug("loaded tool module", module=fqn)

    _loaded = True
    tools = all_tools()
    log.info("tool catalog loaded", count=len(tools))
    return tools

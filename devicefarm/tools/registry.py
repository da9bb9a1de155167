from __future__ import annotations

from devicefarm.schemas.device import Platform
from devicefarm.schemas.operation import OperationSpec
from devicefarm.tools.base import BaseTool

_REGISTRY: dict[str, BaseTool] = {}


def register_tool(tool: BaseTool) -> None:
    if tool.name in _REGISTRY and _REGISTRY[tool.name] is not tool:
        raise ValueError(f"duplicate operation name: {tool.name}")
    _REGISTRY[tool.name] = tool


def get_tool(name: str) -> BaseTool | None:
    return _REGISTRY.get(name)


def all_tools() -> list[BaseTool]:
    return list(_REGISTRY.values())


def tools_for(platform: Platform) -> list[BaseTool]:
    return [t for t in _REGISTRY.values() if t.platform == platform]


def tool_specs() -> list[OperationSpec]:
    return [t.to_spec() for t in _REGISTRY.values()]

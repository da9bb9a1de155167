from __future__ import annotations

from functools import lru_cache

from devicefarm.config import Settings, settings
from devicefarm.connectors.process import CommandRunner
from devicefarm.connectors.toolchains import get_toolchains
from devicefarm.core.dispatcher import Dispatcher
from devicefarm.tools.base import ToolContext


def build_context(config: Settings = settings) -> ToolContext:
    toolchains = get_toolchains(config)
    runner = CommandRunner(
        search_path=toolchains.search_path,
        timeout=config.command_timeout_seconds,
    )
    return ToolContext(runner=runner, toolchains=toolchains, settings=config)


@lru_cache(maxsize=1)
def get_dispatcher() -> Dispatcher:
    return Dispatcher(build_context())

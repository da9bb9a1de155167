import shlex
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import pytest

from devicefarm.config import Settings
from devicefarm.connectors.toolchains import Toolchain, ToolchainStatus
from devicefarm.core.dispatcher import Dispatcher
from devicefarm.errors import ExternalCommandError
from devicefarm.tools.base import ToolContext
from devicefarm.tools.loader import load_tools

load_tools()


@dataclass
class Fail:
    """Scripted output that makes the fake command exit non-zero."""

    message: str = "error: device not found"
    returncode: int = 1


@dataclass
class Rule:
    tokens: tuple[str, ...]
    outputs: list[Any]
    writes: bytes | None = None

    def next_output(self) -> Any:
        if len(self.outputs) > 1:
            return self.outputs.pop(0)
        return self.outputs[0]


def _contains(argv: list[str], tokens: tuple[str, ...]) -> bool:
    n = len(tokens)
    return any(tuple(argv[i:i + n]) == tokens for i in range(len(argv) - n + 1))


class FakeRecording:
    def __init__(self, argv: list[str], writes: bytes | None):
        self.argv = argv
        self._writes = writes
        self.interrupted = False
        self.waited = False

    def interrupt(self) -> None:
        self.interrupted = True
        if self._writes is not None:
            Path(self.argv[-1]).write_bytes(self._writes)

    async def wait(self, timeout: float | None = None) -> int:
        self.waited = True
        return 255  # simctl exits non-zero after SIGINT


@dataclass
class FakeRunner:
    """Stands in for CommandRunner; answers commands from scripted rules.

    A rule matches when its tokens appear contiguously in the argv. The most
    recently added matching rule wins. ``writes`` populates the file named by
    the last argument, the way `adb pull` or `simctl io screenshot` would.
    """

    calls: list[list[str]] = field(default_factory=list)
    recordings: list[FakeRecording] = field(default_factory=list)
    _rules: list[Rule] = field(default_factory=list)

    def on(self, *tokens: str, stdout: Any = "", sequence: list[Any] | None = None,
           writes: bytes | None = None) -> "FakeRunner":
        outputs = list(sequence) if sequence is not None else [stdout]
        self._rules.append(Rule(tokens=tokens, outputs=outputs, writes=writes))
        return self

    def fail(self, *tokens: str, message: str = "error: device not found") -> "FakeRunner":
        return self.on(*tokens, stdout=Fail(message))

    def _match(self, argv: list[str]) -> Rule | None:
        for rule in reversed(self._rules):
            if _contains(argv, rule.tokens):
                return rule
        return None

    def resolve(self, command: str) -> str:
        return f"/usr/bin/{command}"

    def commands_matching(self, *tokens: str) -> list[list[str]]:
        return [argv for argv in self.calls if _contains(argv, tokens)]

    async def run(self, command, args, *, cwd=None, encoding="utf-8", timeout=None):
        argv = [command, *(str(a) for a in args)]
        self.calls.append(argv)
        rule = self._match(argv)
        output: Any = rule.next_output() if rule else ""
        if isinstance(output, Fail):
            raise ExternalCommandError(shlex.join(argv), output.message, output.returncode)
        if rule and rule.writes is not None:
            Path(argv[-1]).write_bytes(rule.writes)
        if encoding is None:
            return output if isinstance(output, bytes) else output.encode()
        return output.decode() if isinstance(output, bytes) else output

    async def start(self, command, args):
        argv = [command, *(str(a) for a in args)]
        self.calls.append(argv)
        rule = self._match(argv)
        recording = FakeRecording(argv, rule.writes if rule else None)
        self.recordings.append(recording)
        return recording


@pytest.fixture
def runner():
    return FakeRunner()


@pytest.fixture
def settings(tmp_path):
    return Settings(temp_dir=str(tmp_path), sample_interval_seconds=0.0)


def make_toolchains(android: bool = True, apple: bool = True) -> ToolchainStatus:
    return ToolchainStatus(
        android=Toolchain(name="android", executable="adb", available=android),
        apple=Toolchain(name="apple", executable="xcrun", available=apple),
    )


@pytest.fixture
def toolchains():
    return make_toolchains()


@pytest.fixture
def tool_context(runner, toolchains, settings):
    return ToolContext(runner=runner, toolchains=toolchains, settings=settings)


@pytest.fixture
def dispatcher(tool_context):
    return Dispatcher(tool_context)


@pytest.fixture
def make_dispatcher(runner, settings):
    """Build a dispatcher with only some toolchains installed."""

    def _make(android: bool = True, apple: bool = True) -> Dispatcher:
        context = ToolContext(runner=runner, toolchains=make_toolchains(android, apple), settings=settings)
        return Dispatcher(context)

    return _make

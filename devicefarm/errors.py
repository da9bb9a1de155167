from __future__ import annotations


class DeviceFarmError(Exception):
    """Base class for failures reported back through a response envelope."""


class ToolchainUnavailable(DeviceFarmError):
    def __init__(self, toolchain: str, hint: str | None = None):
        self.toolchain = toolchain
        self.hint = hint
        message = f"{toolchain} toolchain not found"
        if hint:
            message = f"{message} ({hint})"
        super().__init__(message)


class ExternalCommandError(DeviceFarmError):
    """A spawned command exited non-zero, timed out, or could not be spawned."""

    def __init__(self, command_line: str, message: str, returncode: int | None = None):
        self.command_line = command_line
        self.message = message
        self.returncode = returncode
        super().__init__(f"Command failed: {command_line}\n{message}")


class ArgumentError(DeviceFarmError):
    """A required argument is missing or semantically invalid."""

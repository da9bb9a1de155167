from __future__ import annotations

import asyncio
import os
import shlex
import shutil
import signal
from collections.abc import Sequence

import structlog

from devicefarm.errors import ExternalCommandError

log = structlog.get_logger()


def _strip_final_newline(text: str) -> str:
    if text.endswith("\r\n"):
        return text[:-2]
    if text.endswith("\n"):
        return text[:-1]
    return text


class RunningCommand:
    """Handle on a long-running child started with CommandRunner.start()."""

    def __init__(self, command_line: str, process: asyncio.subprocess.Process):
        self.command_line = command_line
        self._process = process

    def interrupt(self) -> None:
        """Send SIGINT, the stop signal recorders listen for."""
        if self._process.returncode is not None:
            return
        try:
            self._process.send_signal(signal.SIGINT)
        except ProcessLookupError:
            pass

    async def wait(self, timeout: float | None = None) -> int:
        """Wait for exit and return the exit code. Never raises on non-zero exit."""
        try:
            await asyncio.wait_for(self._process.communicate(), timeout=timeout)
        except asyncio.TimeoutError:
            log.warning("process.kill_after_interrupt", command=self.command_line)
            self._process.kill()
            await self._process.wait()
        return self._process.returncode if self._process.returncode is not None else -1


class CommandRunner:
    """Runs external toolchain commands and captures their output.

    ``search_path`` holds extra directories (e.g. a discovered Android SDK
    platform-tools folder) that are searched before the inherited PATH and
    handed to the child in its environment.
    """

    def __init__(self, search_path: Sequence[str] = (), timeout: float | None = None):
        self.search_path = tuple(search_path)
        self.timeout = timeout

    def _path(self) -> str:
        parts = [*self.search_path]
        inherited = os.environ.get("PATH", "")
        if inherited:
            parts.append(inherited)
        return os.pathsep.join(parts)

    def _env(self) -> dict[str, str]:
        env = dict(os.environ)
        env["PATH"] = self._path()
        return env

    def resolve(self, command: str) -> str | None:
        return shutil.which(command, path=self._path())

    async def run(
        self,
        command: str,
        args: Sequence[str],
        *,
        cwd: str | None = None,
        encoding: str | None = "utf-8",
        timeout: float | None = None,
    ) -> str | bytes:
        """Run ``command`` to completion and return its stdout.

        Raises ExternalCommandError on spawn failure, timeout or non-zero exit.
        With ``encoding=None`` the raw stdout bytes are returned untouched.
        """
        argv = [str(a) for a in args]
        command_line = shlex.join([command, *argv])

        executable = self.resolve(command)
        if executable is None:
            raise ExternalCommandError(command_line, f"executable not found: {command}")

        try:
            process = await asyncio.create_subprocess_exec(
                executable,
                *argv,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                cwd=cwd,
                env=self._env(),
            )
        except OSError as exc:
            raise ExternalCommandError(command_line, str(exc)) from exc

        limit = timeout if timeout is not None else self.timeout
        try:
            stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=limit)
        except asyncio.TimeoutError:
            process.kill()
            await process.wait()
            log.warning("process.timeout", command=command_line, timeout=limit)
            raise ExternalCommandError(command_line, f"timed out after {limit}s") from None

        if process.returncode != 0:
            err_text = stderr.decode(encoding or "utf-8", errors="replace").strip()
            out_text = stdout.decode(encoding or "utf-8", errors="replace").strip()
            message = err_text or out_text or f"exited with code {process.returncode}"
            log.info("process.command_failed", command=command_line, returncode=process.returncode)
            raise ExternalCommandError(command_line, message, returncode=process.returncode)

        log.debug("process.command_ok", command=command_line)
        if encoding is None:
            return stdout
        return _strip_final_newline(stdout.decode(encoding, errors="replace"))

    async def start(self, command: str, args: Sequence[str]) -> RunningCommand:
        argv = [str(a) for a in args]
        command_line = shlex.join([command, *argv])

        executable = self.resolve(command)
        if executable is None:
            raise ExternalCommandError(command_line, f"executable not found: {command}")

        try:
            process = await asyncio.create_subprocess_exec(
                executable,
                *argv,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                env=self._env(),
            )
        except OSError as exc:
            raise ExternalCommandError(command_line, str(exc)) from exc

        log.debug("process.started", command=command_line, pid=process.pid)
        return RunningCommand(command_line, process)

"""Tests for CommandRunner against real child processes."""

import os
import stat
import sys

import pytest

from devicefarm.connectors.process import CommandRunner
from devicefarm.errors import ExternalCommandError

PY = sys.executable


@pytest.mark.asyncio
async def test_run_returns_stdout_without_final_newline():
    runner = CommandRunner()
    out = await runner.run(PY, ["-c", "print('line one'); print('line two')"])
    assert out == "line one\nline two"


@pytest.mark.asyncio
async def test_run_binary_output_is_untouched():
    runner = CommandRunner()
    out = await runner.run(PY, ["-c", "import sys; sys.stdout.buffer.write(b'\\x89PNG\\r\\n')"], encoding=None)
    assert out == b"\x89PNG\r\n"


@pytest.mark.asyncio
async def test_non_zero_exit_carries_stderr():
    runner = CommandRunner()
    with pytest.raises(ExternalCommandError) as excinfo:
        await runner.run(PY, ["-c", "import sys; sys.stderr.write('device offline'); sys.exit(3)"])

    err = excinfo.value
    assert err.returncode == 3
    assert err.message == "device offline"
    assert str(err).startswith("Command failed: ")


@pytest.mark.asyncio
async def test_non_zero_exit_without_output():
    runner = CommandRunner()
    with pytest.raises(ExternalCommandError) as excinfo:
        await runner.run(PY, ["-c", "raise SystemExit(2)"])
    assert excinfo.value.message == "exited with code 2"


@pytest.mark.asyncio
async def test_missing_executable():
    runner = CommandRunner()
    with pytest.raises(ExternalCommandError) as excinfo:
        await runner.run("definitely-not-a-real-tool-42", ["devices"])
    assert "executable not found" in excinfo.value.message


@pytest.mark.asyncio
async def test_timeout_kills_child():
    runner = CommandRunner(timeout=0.2)
    with pytest.raises(ExternalCommandError) as excinfo:
        await runner.run(PY, ["-c", "import time; time.sleep(10)"])
    assert "timed out" in excinfo.value.message


@pytest.mark.skipif(sys.platform == "win32", reason="shell script shim")
@pytest.mark.asyncio
async def test_search_path_finds_tool_outside_path(tmp_path):
    tool = tmp_path / "fakeadb"
    tool.write_text(f"#!{PY}\nimport os, sys\nprint(os.environ['PATH'].split(os.pathsep)[0], *sys.argv[1:])\n")
    tool.chmod(tool.stat().st_mode | stat.S_IEXEC)

    assert CommandRunner().resolve("fakeadb") is None

    runner = CommandRunner(search_path=[str(tmp_path)])
    out = await runner.run("fakeadb", ["devices", "-l"])

    assert out == f"{tmp_path} devices -l"
    assert str(tmp_path) not in os.environ.get("PATH", "").split(os.pathsep)


@pytest.mark.skipif(sys.platform == "win32", reason="POSIX signals")
@pytest.mark.asyncio
async def test_start_interrupt_and_wait():
    runner = CommandRunner()
    script = (
        "import signal, sys, time\n"
        "signal.signal(signal.SIGINT, lambda *a: sys.exit(0))\n"
        "print('ready', flush=True)\n"
        "time.sleep(30)\n"
    )
    recording = await runner.start(PY, ["-c", script])
    # let the child install its handler
    await recording._process.stdout.readline()

    recording.interrupt()
    code = await recording.wait(timeout=10)

    assert code == 0

from __future__ import annotations

import tempfile
import time
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

import structlog

log = structlog.get_logger()


@contextmanager
def temporary_artifact(prefix: str, suffix: str, directory: str | None = None) -> Iterator[Path]:
    """Yield a fresh temp-file path that is removed on every exit path.

    The file itself is not created; the device-pull step populates it.
    """
    base = Path(directory) if directory else Path(tempfile.gettempdir())
    path = base / f"{prefix}_{time.time_ns()}{suffix}"
    try:
        yield path
    finally:
        path.unlink(missing_ok=True)
        log.debug("artifacts.removed", path=str(path))

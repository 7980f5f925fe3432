"""Atomic filesystem writes for the stamp file and run summaries."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Union

Pathish = Union[str, os.PathLike[str]]


def _fsync_fd(fd: int) -> None:
    try:
        os.fsync(fd)
    except OSError:
        # Some CI filesystems do not support fsync.
        pass


def _write_atomic(target: Path, data: bytes) -> None:
    target.parent.mkdir(parents=True, exist_ok=True)
    tmp = target.with_suffix(target.suffix + ".part")
    with open(tmp, "wb") as handle:
        handle.write(data)
        handle.flush()
        _fsync_fd(handle.fileno())
    os.replace(tmp, target)


def atomic_write_text(path: Pathish, content: str, *, encoding: str = "utf-8") -> None:
    """Write ``content`` to ``path`` atomically using UTF-8 by default."""

    _write_atomic(Path(path), content.encode(encoding))


def atomic_write_bytes(path: Pathish, content: bytes) -> None:
    """Write raw ``content`` to ``path`` atomically."""

    _write_atomic(Path(path), content)

"""Scratch buffer lifecycle and file access for artifacts."""
from __future__ import annotations

import io
import os
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterator, Protocol, Union

PathLike = Union[str, os.PathLike]


@dataclass
class ScratchBuffer:
    """In-memory work area holding artifact text during one save or restore."""

    buffer: io.StringIO = field(default_factory=io.StringIO)
    in_use: bool = False

    def write(self, text: str) -> None:
        self.buffer.write(text)

    def getvalue(self) -> str:
        return self.buffer.getvalue()

    def clear(self) -> None:
        self.buffer.seek(0)
        self.buffer.truncate(0)


class ArtifactIO(Protocol):
    """Collaborator owning the scratch buffer and the underlying files."""

    def acquire_scratch(self) -> ScratchBuffer:
        """Hand out a scratch buffer for exclusive use."""

    def clear(self, handle: ScratchBuffer) -> None:
        """Discard everything held in ``handle``."""

    def write_all(self, handle: ScratchBuffer, data: bytes, destination: PathLike) -> None:
        """Write ``data`` to ``destination``, replacing any previous content."""

    def read_all(self, source: PathLike) -> bytes:
        """Return the full content of ``source``."""

    def release(self, handle: ScratchBuffer) -> None:
        """Return ``handle`` to its owner."""


@dataclass
class ScratchPool:
    """Single reusable scratch buffer with exclusive acquisition."""

    buffer: ScratchBuffer = field(default_factory=ScratchBuffer)

    def acquire(self) -> ScratchBuffer:
        if self.buffer.in_use:
            raise RuntimeError("Scratch buffer is already in use by another save or restore")
        self.buffer.in_use = True
        return self.buffer

    def release(self, handle: ScratchBuffer) -> None:
        if handle is not self.buffer:
            raise RuntimeError("Scratch buffer does not belong to this pool")
        handle.in_use = False


@dataclass
class FileArtifactIO:
    """:class:`ArtifactIO` backed by the local filesystem."""

    pool: ScratchPool = field(default_factory=ScratchPool)

    def acquire_scratch(self) -> ScratchBuffer:
        return self.pool.acquire()

    def clear(self, handle: ScratchBuffer) -> None:
        handle.clear()

    def write_all(self, handle: ScratchBuffer, data: bytes, destination: PathLike) -> None:
        if not handle.in_use:
            raise RuntimeError("Cannot write through a released scratch buffer")
        Path(destination).write_bytes(data)

    def read_all(self, source: PathLike) -> bytes:
        return Path(source).read_bytes()

    def release(self, handle: ScratchBuffer) -> None:
        self.pool.release(handle)


@contextmanager
def scratch(artifact_io: ArtifactIO) -> Iterator[ScratchBuffer]:
    """Acquire a cleared scratch buffer and clear and release it on exit.

    Release happens on every exit path, including errors raised inside the
    ``with`` block or by the final clear.
    """

    handle = artifact_io.acquire_scratch()
    try:
        artifact_io.clear(handle)
        yield handle
    finally:
        try:
            artifact_io.clear(handle)
        finally:
            artifact_io.release(handle)


default_artifact_io = FileArtifactIO()

__all__ = [
    "ArtifactIO",
    "FileArtifactIO",
    "PathLike",
    "ScratchBuffer",
    "ScratchPool",
    "default_artifact_io",
    "scratch",
]

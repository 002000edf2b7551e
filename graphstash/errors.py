"""Exception hierarchy shared by the codec and persistence layers."""
from __future__ import annotations


class GraphStashError(Exception):
    """Base class for every error raised by :mod:`graphstash`."""


class EncodingError(GraphStashError, ValueError):
    """Raised when a value graph cannot be rendered losslessly."""


class MalformedArtifactError(GraphStashError, ValueError):
    """Raised when artifact text cannot be parsed back into a value graph.

    ``position`` holds the character offset of the offending token when it is
    known, otherwise ``None``.
    """

    def __init__(self, message: str, position: int | None = None) -> None:
        if position is not None:
            message = f"{message} (at offset {position})"
        super().__init__(message)
        self.position = position


__all__ = ["EncodingError", "GraphStashError", "MalformedArtifactError"]

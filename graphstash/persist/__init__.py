"""Persistence utilities for graphstash."""

from .artifact import dumps, loads, restore, save
from .scratch import ArtifactIO, FileArtifactIO, ScratchBuffer, ScratchPool, scratch

__all__ = [
    "ArtifactIO",
    "FileArtifactIO",
    "ScratchBuffer",
    "ScratchPool",
    "dumps",
    "loads",
    "restore",
    "save",
    "scratch",
]

"""Public save/restore entry points and their in-memory counterparts."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Optional

from ..codec.grammar import encode_comment
from ..codec.reader import read
from ..codec.records import RecordRegistry
from ..codec.walker import assign_labels
from ..codec.writer import write
from ..config import Settings, load_settings
from ..errors import EncodingError, GraphStashError, MalformedArtifactError
from .scratch import ArtifactIO, PathLike, default_artifact_io, scratch

logger = logging.getLogger(__name__)


def dumps(
    root: Any,
    comment: Optional[str] = None,
    *,
    registry: Optional[RecordRegistry] = None,
) -> str:
    """Return the artifact text for ``root`` with an optional comment header."""

    plan = assign_labels(root)
    body = write(root, plan, registry=registry)
    header = encode_comment(comment) if comment else ""
    return f"{header}{body}\n"


def loads(
    text: str,
    *,
    registry: Optional[RecordRegistry] = None,
) -> Any:
    """Rebuild the value graph described by artifact ``text``."""

    return read(text, registry=registry)


def save(
    root: Any,
    destination: PathLike,
    comment: Optional[str] = None,
    *,
    artifact_io: Optional[ArtifactIO] = None,
    registry: Optional[RecordRegistry] = None,
    settings: Optional[Settings] = None,
) -> Path:
    """Write ``root`` to ``destination``, replacing whatever was there.

    Parameters
    ----------
    root:
        The value graph to persist. Shared and cyclic references are kept.
    destination:
        Target file path.
    comment:
        Free-form text stored as a comment block ahead of the value.
    artifact_io:
        Collaborator providing the scratch buffer and file access; defaults to
        the module level :class:`~graphstash.persist.scratch.FileArtifactIO`.
    """

    settings = settings or load_settings()
    artifact_io = artifact_io or default_artifact_io
    path = Path(destination)

    try:
        with scratch(artifact_io) as handle:
            handle.write(dumps(root, comment, registry=registry))
            try:
                data = handle.getvalue().encode(settings.encoding, errors="surrogatepass")
            except UnicodeEncodeError as exc:
                raise EncodingError(
                    f"Artifact text cannot be encoded as {settings.encoding}: {exc}"
                ) from exc
            artifact_io.write_all(handle, data, path)
    except (OSError, GraphStashError) as exc:
        logger.error("Failed to save artifact to %s: %s", path, exc)
        raise

    logger.debug("Saved artifact to %s (%d bytes)", path, len(data))
    return path


def restore(
    source: PathLike,
    *,
    artifact_io: Optional[ArtifactIO] = None,
    registry: Optional[RecordRegistry] = None,
    settings: Optional[Settings] = None,
) -> Any:
    """Load the artifact at ``source`` and return a freshly built value graph.

    Raises :class:`OSError` when ``source`` cannot be read and
    :class:`~graphstash.errors.MalformedArtifactError` when it cannot be parsed.
    """

    settings = settings or load_settings()
    artifact_io = artifact_io or default_artifact_io
    path = Path(source)

    try:
        with scratch(artifact_io) as handle:
            data = artifact_io.read_all(path)
            try:
                handle.write(data.decode(settings.encoding, errors="surrogatepass"))
            except UnicodeDecodeError as exc:
                # offsets in decode errors count bytes, not characters
                raise MalformedArtifactError(
                    f"Artifact is not valid {settings.encoding} text: {exc.reason} at byte {exc.start}"
                ) from exc
            root = read(handle.getvalue(), registry=registry)
    except (OSError, GraphStashError) as exc:
        logger.error("Failed to restore artifact from %s: %s", path, exc)
        raise

    logger.debug("Restored artifact from %s (%d bytes)", path, len(data))
    return root


__all__ = ["dumps", "loads", "restore", "save"]

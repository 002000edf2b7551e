"""Token vocabulary of the artifact text format and the comment encoder.

An artifact is an optional block of ``#`` comment lines followed by exactly
one expression::

    # saved by the scheduler
    @0: [1, "a", *0]

``@N: expr`` defines label ``N`` and ``*N`` refers back to it.  Lists use
``[...]``, tuples ``(...)``, mappings ``{key: value}`` and registered records
``%Name(field=value)``.  Atoms are ``null``, ``true``, ``false``, integers,
floats (``inf``, ``-inf`` and ``nan`` included), JSON string literals and
symbols written as ``'name``.
"""
from __future__ import annotations

import re
from dataclasses import dataclass

COMMENT_PREFIX = "# "
COMMENT_START = "#"

LABEL_PREFIX = "@"
LABEL_SEPARATOR = ":"
BACKREF_PREFIX = "*"
SYMBOL_PREFIX = "'"
RECORD_PREFIX = "%"

LIST_OPEN, LIST_CLOSE = "[", "]"
TUPLE_OPEN, TUPLE_CLOSE = "(", ")"
MAPPING_OPEN, MAPPING_CLOSE = "{", "}"
ITEM_DELIMITER = ", "
KEY_SEPARATOR = ":"
FIELD_SEPARATOR = "="

NULL = "null"
TRUE = "true"
FALSE = "false"
KEYWORDS = frozenset({NULL, TRUE, FALSE, "inf", "nan"})

# letters of any script, as in Python identifiers
NAME_PATTERN = r"[^\W\d][\w.\-]*"
_NAME_RE = re.compile(NAME_PATTERN)


@dataclass(frozen=True)
class Symbol:
    """Symbolic name atom, compared and hashed by ``name``."""

    name: str

    def __str__(self) -> str:
        return self.name


def is_name(text: str) -> bool:
    """Return ``True`` when ``text`` can be written as a bare ``NAME`` token."""

    return _NAME_RE.fullmatch(text) is not None


def encode_comment(text: str) -> str:
    """Turn free-form ``text`` into a block of comment lines.

    Every line is prefixed with :data:`COMMENT_PREFIX` and the block ends with
    a newline, so the reader skips all of it.  Line breaks of any kind are
    normalised to ``\\n``.
    """

    if not text:
        return ""
    lines = []
    for line in text.splitlines():
        lines.append(COMMENT_PREFIX + line if line else COMMENT_START)
    return "\n".join(lines) + "\n"


__all__ = [
    "BACKREF_PREFIX",
    "COMMENT_PREFIX",
    "KEYWORDS",
    "LABEL_PREFIX",
    "NAME_PATTERN",
    "RECORD_PREFIX",
    "SYMBOL_PREFIX",
    "Symbol",
    "encode_comment",
    "is_name",
]

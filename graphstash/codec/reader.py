"""Parse artifact text back into a value graph."""
from __future__ import annotations

import dataclasses
import json
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, NamedTuple, Optional, Set

from ..errors import MalformedArtifactError
from . import grammar
from .records import RecordRegistry, default_registry

_TOKEN_RE = re.compile(
    rf"""
    (?P<string>"(?:[^"\\\n]|\\.)*")
   |(?P<float>-?(?:\d+\.\d*(?:[eE][+-]?\d+)?|\d+[eE][+-]?\d+)|-inf)
   |(?P<int>-?\d+)
   |(?P<label>@\d+)
   |(?P<backref>\*\d+)
   |(?P<symbol>'{grammar.NAME_PATTERN})
   |(?P<record>%{grammar.NAME_PATTERN})
   |(?P<name>{grammar.NAME_PATTERN})
   |(?P<punct>[\[\](){{}}:,=])
    """,
    re.VERBOSE,
)
_SKIP_RE = re.compile(r"(?:\s+|#[^\n]*)+")


class Token(NamedTuple):
    kind: str
    text: str
    position: int


class Scanner:
    """Lazy tokenizer; nothing past the last requested token is examined."""

    def __init__(self, text: str) -> None:
        self.text = text
        self.pos = 0

    def next(self) -> Optional[Token]:
        skipped = _SKIP_RE.match(self.text, self.pos)
        if skipped:
            self.pos = skipped.end()
        if self.pos >= len(self.text):
            return None
        match = _TOKEN_RE.match(self.text, self.pos)
        if match is None:
            raise MalformedArtifactError(f"Unexpected character {self.text[self.pos]!r}", self.pos)
        self.pos = match.end()
        return Token(match.lastgroup, match.group(), match.start())

    def require(self) -> Token:
        token = self.next()
        if token is None:
            raise MalformedArtifactError("Unexpected end of artifact", self.pos)
        return token

    def expect(self, punct: str) -> Token:
        token = self.require()
        if token.text != punct:
            raise MalformedArtifactError(f"Expected {punct!r}, found {token.text!r}", token.position)
        return token


# frame states
_ITEM = "item"
_SEPARATOR = "separator"
_KEY = "key"
_VALUE = "value"

_CLOSERS = {
    "list": grammar.LIST_CLOSE,
    "tuple": grammar.TUPLE_CLOSE,
    "mapping": grammar.MAPPING_CLOSE,
    "record": grammar.TUPLE_CLOSE,
}

# returned in place of a value while a container is still open
_OPEN = object()


@dataclass
class _Frame:
    kind: str
    value: Any
    token: Token
    state: str = _ITEM
    key: Any = None
    key_token: Optional[Token] = None
    fields: Dict[str, dataclasses.Field] = field(default_factory=dict)
    seen: Set[str] = field(default_factory=set)
    field_name: Optional[str] = None


class Reader:
    """Single-pass parser with a label table and an explicit frame stack.

    Lists, mappings and records are allocated and bound to their label before
    their contents are parsed, so back-references met while the contents are
    still being read resolve to the node under construction.  Open containers
    live on ``_stack`` rather than the call stack, so nesting depth is bounded
    by memory only.
    """

    def __init__(self, text: str, *, registry: Optional[RecordRegistry] = None) -> None:
        self.scanner = Scanner(text)
        self.registry = registry if registry is not None else default_registry
        self.labels: Dict[int, Any] = {}
        self._pending: Set[int] = set()
        self._building: Set[int] = set()
        self._stack: List[_Frame] = []

    def read(self) -> Any:
        token = self.scanner.next()
        if token is None:
            raise MalformedArtifactError("Artifact holds no expression", self.scanner.pos)

        value = self._start(token)
        while True:
            if value is _OPEN:
                value = self._advance(self._stack[-1])
            elif self._stack:
                value = self._deliver(self._stack[-1], value)
            else:
                return value

    # -- expressions -------------------------------------------------------

    def _start(self, token: Token, label: Optional[int] = None) -> Any:
        """Begin the expression at ``token``; return its value or ``_OPEN``."""

        kind = token.kind
        if kind == "label":
            return self._start_labelled(token)
        if kind == "backref":
            return self._resolve(token)
        if kind == "punct":
            if token.text == grammar.LIST_OPEN:
                return self._open("list", [], token, label)
            if token.text == grammar.TUPLE_OPEN:
                # tuples are bound by their label frame once complete
                return self._open("tuple", [], token, None)
            if token.text == grammar.MAPPING_OPEN:
                return self._open("mapping", {}, token, label)
            raise MalformedArtifactError(f"Unexpected {token.text!r}", token.position)
        if kind == "record":
            return self._open_record(token, label)
        return self._parse_atom(token)

    def _start_labelled(self, token: Token) -> Any:
        label = int(token.text[len(grammar.LABEL_PREFIX):])
        if label in self.labels or label in self._pending:
            raise MalformedArtifactError(f"Label {label} is defined twice", token.position)
        self.scanner.expect(grammar.LABEL_SEPARATOR)
        inner = self.scanner.require()
        if inner.kind in ("label", "backref"):
            raise MalformedArtifactError(
                f"Label {label} must be followed by a value, found {inner.text!r}", inner.position
            )
        self._pending.add(label)
        self._stack.append(_Frame("label", label, token))
        return self._start(inner, label)

    def _bind(self, label: Optional[int], value: Any) -> None:
        if label is None:
            return
        self._pending.discard(label)
        self.labels[label] = value

    def _resolve(self, token: Token) -> Any:
        label = int(token.text[len(grammar.BACKREF_PREFIX):])
        if label in self.labels:
            return self.labels[label]
        if label in self._pending:
            raise MalformedArtifactError(
                f"Label {label} is referenced before its value is complete", token.position
            )
        raise MalformedArtifactError(f"Reference to undefined label {label}", token.position)

    def _parse_atom(self, token: Token) -> Any:
        kind, text = token.kind, token.text
        if kind == "int":
            try:
                return int(text)
            except ValueError as exc:
                raise MalformedArtifactError(f"Invalid integer: {exc}", token.position) from exc
        if kind == "float":
            return float(text)
        if kind == "string":
            try:
                return json.loads(text)
            except ValueError as exc:
                raise MalformedArtifactError(f"Invalid string literal: {exc}", token.position) from exc
        if kind == "symbol":
            return grammar.Symbol(text[len(grammar.SYMBOL_PREFIX):])
        if kind == "name":
            if text == grammar.NULL:
                return None
            if text == grammar.TRUE:
                return True
            if text == grammar.FALSE:
                return False
            if text in ("inf", "nan"):
                return float(text)
        raise MalformedArtifactError(f"Unknown token {text!r}", token.position)

    # -- containers --------------------------------------------------------

    def _open(self, kind: str, container: Any, token: Token, label: Optional[int]) -> Any:
        if kind != "tuple":
            self._bind(label, container)
            self._building.add(id(container))
        self._stack.append(_Frame(kind, container, token))
        return _OPEN

    def _open_record(self, token: Token, label: Optional[int]) -> Any:
        name = token.text[len(grammar.RECORD_PREFIX):]
        cls = self.registry.resolve(name)
        if cls is None:
            raise MalformedArtifactError(f"Unknown record type {name!r}", token.position)
        fields = {record_field.name: record_field for record_field in dataclasses.fields(cls)}
        self.scanner.expect(grammar.TUPLE_OPEN)
        instance = cls.__new__(cls)
        self._open("record", instance, token, label)
        self._stack[-1].fields = fields
        return _OPEN

    def _advance(self, frame: _Frame) -> Any:
        """Read the next token on behalf of the innermost open container."""

        token = self.scanner.require()
        closes = token.kind == "punct" and token.text == _CLOSERS[frame.kind]
        if closes:
            return self._finish(frame)
        if frame.state == _SEPARATOR:
            if token.text != ",":
                raise MalformedArtifactError(
                    f"Expected ',' or {_CLOSERS[frame.kind]!r}, found {token.text!r}",
                    token.position,
                )
            frame.state = _ITEM
            return _OPEN
        if frame.kind == "record":
            return self._start_field(frame, token)
        if frame.kind == "mapping":
            frame.state = _KEY
            frame.key_token = token
        return self._start(token)

    def _deliver(self, frame: _Frame, value: Any) -> Any:
        """Hand a completed child ``value`` to ``frame``."""

        if frame.kind == "label":
            self._stack.pop()
            self._bind(frame.value, value)
            return value
        if frame.kind in ("list", "tuple"):
            frame.value.append(value)
        elif frame.kind == "mapping":
            if frame.state == _KEY:
                frame.key = value
                self.scanner.expect(grammar.KEY_SEPARATOR)
                frame.state = _VALUE
                return self._start(self.scanner.require())
            self._insert(frame, value)
        else:
            # frozen dataclasses block plain setattr
            object.__setattr__(frame.value, frame.field_name, value)
        frame.state = _SEPARATOR
        return _OPEN

    def _insert(self, frame: _Frame, value: Any) -> None:
        key, position = frame.key, frame.key_token.position
        if id(key) in self._building:
            raise MalformedArtifactError("Mapping key is still under construction", position)
        try:
            frame.value[key] = value
        except (TypeError, AttributeError) as exc:
            raise MalformedArtifactError(f"Unusable mapping key: {exc}", position) from exc

    def _start_field(self, frame: _Frame, token: Token) -> Any:
        name = frame.token.text[len(grammar.RECORD_PREFIX):]
        if token.kind != "name" or token.text not in frame.fields:
            raise MalformedArtifactError(f"Record {name} has no field {token.text!r}", token.position)
        if token.text in frame.seen:
            raise MalformedArtifactError(
                f"Field {token.text!r} repeated in record {name}", token.position
            )
        frame.seen.add(token.text)
        frame.field_name = token.text
        self.scanner.expect(grammar.FIELD_SEPARATOR)
        return self._start(self.scanner.require())

    def _finish(self, frame: _Frame) -> Any:
        self._stack.pop()
        if frame.kind == "tuple":
            return tuple(frame.value)
        if frame.kind == "record":
            self._fill_defaults(frame)
        self._building.discard(id(frame.value))
        return frame.value

    def _fill_defaults(self, frame: _Frame) -> None:
        name = frame.token.text[len(grammar.RECORD_PREFIX):]
        for missing in frame.fields.keys() - frame.seen:
            record_field = frame.fields[missing]
            if record_field.default is not dataclasses.MISSING:
                default = record_field.default
            elif record_field.default_factory is not dataclasses.MISSING:
                default = record_field.default_factory()
            else:
                raise MalformedArtifactError(
                    f"Record {name} is missing field {missing!r}", frame.token.position
                )
            object.__setattr__(frame.value, missing, default)


def read(text: str, *, registry: Optional[RecordRegistry] = None) -> Any:
    """Parse the first expression in ``text`` and return the value it describes.

    Leading ``#`` comments are skipped and anything after the first complete
    expression is ignored.  Raises :class:`MalformedArtifactError` when the
    text cannot be parsed.
    """

    return Reader(text, registry=registry).read()


__all__ = ["Reader", "Scanner", "Token", "read"]

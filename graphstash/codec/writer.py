"""Render a value graph as artifact text using a :class:`LabelPlan`."""
from __future__ import annotations

import dataclasses
import json
from typing import Any, List, Optional, Set, Tuple

from ..errors import EncodingError
from . import grammar
from .records import RecordRegistry, default_registry
from .walker import ATOM, LIST, MAPPING, RECORD, TUPLE, LabelPlan, assign_labels, node_kind

# work items are (is_text, payload): literal text or a value still to render
_Work = Tuple[bool, Any]


def format_atom(value: Any) -> str:
    """Return the canonical literal for an atom ``value``."""

    if value is None:
        return grammar.NULL
    if value is True:
        return grammar.TRUE
    if value is False:
        return grammar.FALSE
    if type(value) is int:
        try:
            return str(value)
        except ValueError as exc:
            # interpreters cap int to str conversion for huge values
            raise EncodingError(f"Integer too large to encode: {exc}") from exc
    if type(value) is float:
        # repr is the shortest exact form and always carries "." or "e"
        return repr(value)
    if type(value) is str:
        return json.dumps(value, ensure_ascii=False)
    if type(value) is grammar.Symbol:
        if not grammar.is_name(value.name):
            raise EncodingError(f"Symbol name {value.name!r} is not a valid name token")
        return grammar.SYMBOL_PREFIX + value.name
    raise EncodingError(f"Cannot encode atom of type {type(value).__qualname__}")


class Writer:
    """Depth-first renderer that emits each labelled node once.

    Rendering runs off an explicit work stack, so nesting depth is bounded by
    memory rather than the interpreter recursion limit.
    """

    def __init__(self, plan: LabelPlan, *, registry: Optional[RecordRegistry] = None) -> None:
        self.plan = plan
        self.registry = registry if registry is not None else default_registry

    def render(self, root: Any) -> str:
        parts: List[str] = []
        defined: Set[int] = set()
        stack: List[_Work] = [(False, root)]

        while stack:
            is_text, item = stack.pop()
            if is_text:
                parts.append(item)
                continue

            kind = node_kind(item)
            if kind == ATOM:
                parts.append(format_atom(item))
                continue

            label = self.plan.label_for(item)
            if label is not None:
                if label in defined:
                    parts.append(f"{grammar.BACKREF_PREFIX}{label}")
                    continue
                defined.add(label)
                parts.append(f"{grammar.LABEL_PREFIX}{label}{grammar.LABEL_SEPARATOR} ")

            # pushed in reverse so children pop in declaration order
            stack.extend(reversed(self._expand(item, kind)))

        return "".join(parts)

    def _expand(self, value: Any, kind: str) -> List[_Work]:
        if kind == LIST:
            return self._items(value, grammar.LIST_OPEN, grammar.LIST_CLOSE)
        if kind == TUPLE:
            work = self._items(value, grammar.TUPLE_OPEN, grammar.TUPLE_CLOSE)
            if len(value) == 1:
                work.insert(-1, (True, ","))
            return work
        if kind == MAPPING:
            work = [(True, grammar.MAPPING_OPEN)]
            for index, (key, item) in enumerate(value.items()):
                if index:
                    work.append((True, grammar.ITEM_DELIMITER))
                work.append((False, key))
                work.append((True, grammar.KEY_SEPARATOR + " "))
                work.append((False, item))
            work.append((True, grammar.MAPPING_CLOSE))
            return work
        if kind == RECORD:
            return self._record(value)
        raise EncodingError(f"Cannot encode value of kind {kind}")

    @staticmethod
    def _items(items: Any, open_: str, close: str) -> List[_Work]:
        work: List[_Work] = [(True, open_)]
        for index, item in enumerate(items):
            if index:
                work.append((True, grammar.ITEM_DELIMITER))
            work.append((False, item))
        work.append((True, close))
        return work

    def _record(self, value: Any) -> List[_Work]:
        name = self.registry.name_for(type(value))
        work: List[_Work] = [(True, f"{grammar.RECORD_PREFIX}{name}{grammar.TUPLE_OPEN}")]
        for index, record_field in enumerate(dataclasses.fields(value)):
            if not grammar.is_name(record_field.name):
                raise EncodingError(
                    f"Field {record_field.name!r} of record {name} is not a valid name token"
                )
            if index:
                work.append((True, grammar.ITEM_DELIMITER))
            work.append((True, record_field.name + grammar.FIELD_SEPARATOR))
            work.append((False, getattr(value, record_field.name)))
        work.append((True, grammar.TUPLE_CLOSE))
        return work


def write(
    root: Any,
    plan: Optional[LabelPlan] = None,
    *,
    registry: Optional[RecordRegistry] = None,
) -> str:
    """Render ``root`` as a single artifact expression.

    ``plan`` defaults to :func:`assign_labels` over ``root``; pass one in when
    the caller already walked the graph.
    """

    if plan is None:
        plan = assign_labels(root)
    return Writer(plan, registry=registry).render(root)


__all__ = ["Writer", "format_atom", "write"]

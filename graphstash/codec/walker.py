"""Reference counting and label assignment over a value graph."""
from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional, Tuple

import networkx as nx

from ..errors import EncodingError
from .grammar import Symbol

logger = logging.getLogger(__name__)

ATOM = "atom"
LIST = "list"
TUPLE = "tuple"
MAPPING = "mapping"
RECORD = "record"

_ATOM_TYPES = (type(None), bool, int, float, str, Symbol)


def node_kind(value: Any) -> str:
    """Classify ``value`` into one of the supported value variants.

    Only exact atom types are accepted: a ``str`` or ``int`` subclass would
    come back as its base type, so it is rejected rather than silently
    flattened.
    """

    value_type = type(value)
    if value_type in _ATOM_TYPES:
        return ATOM
    if value_type is list:
        return LIST
    if value_type is tuple:
        return TUPLE
    if value_type is dict:
        return MAPPING
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return RECORD
    raise EncodingError(f"Cannot encode value of type {value_type.__qualname__}")


def iter_children(value: Any, kind: str) -> Iterator[Tuple[Any, bool]]:
    """Yield ``(child, is_mapping_key)`` pairs in declaration order."""

    if kind in (LIST, TUPLE):
        for item in value:
            yield item, False
    elif kind == MAPPING:
        for key, item in value.items():
            yield key, True
            yield item, False
    elif kind == RECORD:
        for record_field in dataclasses.fields(value):
            yield getattr(value, record_field.name), False


@dataclass
class _Frame:
    value: Any
    children: Iterator[Tuple[Any, bool]]
    in_key: bool


@dataclass
class LabelPlan:
    """Result of walking a value graph.

    ``labels`` maps ``id(node)`` to its label for every node referenced more
    than once.  ``order`` lists node identities in depth-first first-visit
    order and ``graph`` holds one edge per parent to child reference.
    """

    labels: Dict[int, int] = field(default_factory=dict)
    order: List[int] = field(default_factory=list)
    graph: nx.MultiDiGraph = field(default_factory=nx.MultiDiGraph)

    def label_for(self, value: Any) -> Optional[int]:
        """Return the label assigned to ``value``, or ``None``."""

        return self.labels.get(id(value))

    def reference_count(self, value: Any) -> int:
        """Return how many references to ``value`` the walk observed."""

        node_id = id(value)
        if node_id not in self.graph:
            return 0
        implicit = 1 if self.order and self.order[0] == node_id else 0
        return self.graph.in_degree(node_id) + implicit

    def __len__(self) -> int:
        return len(self.labels)


def assign_labels(root: Any) -> LabelPlan:
    """Walk ``root`` depth-first and label every multiply-referenced node.

    The walk uses an explicit stack, expands each container or record once and
    records back edges to nodes still on the stack.  Labels are numbered in
    first-visit order so repeated walks over the same graph agree.

    Raises :class:`EncodingError` for unsupported values and for cycles that
    could not be rebuilt on restore: a back edge into a tuple, or a back edge
    reached from inside a mapping key.
    """

    plan = LabelPlan()
    root_kind = node_kind(root)
    if root_kind == ATOM:
        return plan

    graph = plan.graph
    on_stack = {id(root)}
    graph.add_node(id(root), kind=root_kind)
    plan.order.append(id(root))
    stack = [_Frame(root, iter_children(root, root_kind), False)]

    while stack:
        frame = stack[-1]
        step = next(frame.children, None)
        if step is None:
            on_stack.discard(id(frame.value))
            stack.pop()
            continue

        child, is_key = step
        kind = node_kind(child)
        if kind == ATOM:
            continue

        child_id = id(child)
        in_key = frame.in_key or is_key
        seen = child_id in graph
        graph.add_edge(id(frame.value), child_id)
        if seen:
            if child_id in on_stack:
                if kind == TUPLE:
                    raise EncodingError("Cannot encode a tuple that contains itself")
                if in_key:
                    raise EncodingError("Cannot encode a mapping key that refers back to its container")
            continue

        on_stack.add(child_id)
        graph.add_node(child_id, kind=kind)
        plan.order.append(child_id)
        stack.append(_Frame(child, iter_children(child, kind), in_key))

    # the root carries one implicit reference from the caller
    for node_id in plan.order:
        if graph.in_degree(node_id) + (node_id == plan.order[0]) > 1:
            plan.labels[node_id] = len(plan.labels)

    logger.debug("Walked %d nodes, %d labelled", len(plan.order), len(plan.labels))
    return plan


def sharing_topology(root: Any) -> nx.MultiDiGraph:
    """Return the reference graph of ``root`` keyed by first-visit ordinal.

    Node ``0`` is the root; each node carries its ``kind`` and, when shared,
    its ``label``.  Two graphs with the same shape and sharing produce equal
    topologies even though their object identities differ.
    """

    plan = assign_labels(root)
    ordinals = {node_id: index for index, node_id in enumerate(plan.order)}
    topology = nx.relabel_nodes(plan.graph, ordinals, copy=True)
    for node_id, label in plan.labels.items():
        topology.nodes[ordinals[node_id]]["label"] = label
    return topology


__all__ = [
    "LabelPlan",
    "assign_labels",
    "iter_children",
    "node_kind",
    "sharing_topology",
]

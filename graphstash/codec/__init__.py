"""Codec subpackage: label assignment, writer, reader and grammar."""

from .grammar import Symbol, encode_comment
from .reader import Reader, read
from .records import RecordRegistry, default_registry, record
from .walker import LabelPlan, assign_labels, sharing_topology
from .writer import Writer, write

__all__ = [
    "LabelPlan",
    "Reader",
    "RecordRegistry",
    "Symbol",
    "Writer",
    "assign_labels",
    "default_registry",
    "encode_comment",
    "read",
    "record",
    "sharing_topology",
    "write",
]

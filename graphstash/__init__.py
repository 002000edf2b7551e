"""graphstash package initialization.

Persist a value graph, shared and cyclic references included, to a single
text artifact and rebuild it later::

    import graphstash

    state = [1, "a"]
    state.append(state)
    graphstash.save(state, "state.gs", comment="scheduler state")
    restored = graphstash.restore("state.gs")
    assert restored[2] is restored
"""

from .codec import RecordRegistry, Symbol, record, sharing_topology
from .errors import EncodingError, GraphStashError, MalformedArtifactError
from .persist import dumps, loads, restore, save

__all__ = [
    "EncodingError",
    "GraphStashError",
    "MalformedArtifactError",
    "RecordRegistry",
    "Symbol",
    "dumps",
    "loads",
    "record",
    "restore",
    "save",
    "sharing_topology",
]

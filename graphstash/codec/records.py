"""Registry mapping record names in artifacts to dataclass types."""
from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from ..errors import EncodingError
from .grammar import is_name


@dataclass
class RecordRegistry:
    """Bidirectional lookup between dataclass types and their artifact names.

    Records are written as ``%Name(field=value, ...)``.  Only registered
    dataclasses can be saved or restored, so an artifact never instantiates an
    arbitrary class by name.
    """

    by_name: Dict[str, type] = field(default_factory=dict)
    by_type: Dict[type, str] = field(default_factory=dict)

    def register(self, cls: Optional[type] = None, *, name: Optional[str] = None) -> Any:
        """Register ``cls`` under ``name`` (defaults to ``cls.__name__``).

        Usable directly or as a class decorator, with or without arguments.
        """

        def _register(target: type) -> type:
            if not (isinstance(target, type) and dataclasses.is_dataclass(target)):
                raise TypeError(f"Only dataclasses can be registered as records, got {target!r}")
            record_name = name or target.__name__
            if not is_name(record_name):
                raise ValueError(f"Invalid record name: {record_name!r}")
            existing = self.by_name.get(record_name)
            if existing is not None and existing is not target:
                raise ValueError(
                    f"Record name {record_name!r} is already bound to {existing.__qualname__}"
                )
            self.by_name[record_name] = target
            self.by_type[target] = record_name
            return target

        if cls is None:
            return _register
        return _register(cls)

    def name_for(self, cls: type) -> str:
        """Return the artifact name of ``cls`` or raise :class:`EncodingError`."""

        try:
            return self.by_type[cls]
        except KeyError:
            raise EncodingError(
                f"Record type {cls.__qualname__} is not registered; "
                "decorate it with @graphstash.record"
            ) from None

    def resolve(self, name: str) -> Optional[type]:
        """Return the class registered under ``name``, if any."""

        return self.by_name.get(name)

    def __contains__(self, cls: object) -> bool:
        return cls in self.by_type


default_registry = RecordRegistry()


def record(cls: Optional[type] = None, *, name: Optional[str] = None) -> Any:
    """Register a dataclass with :data:`default_registry`."""

    return default_registry.register(cls, name=name)


__all__ = ["RecordRegistry", "default_registry", "record"]

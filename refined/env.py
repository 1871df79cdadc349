"""Immutable name -> signature environment."""

from __future__ import annotations

from types import MappingProxyType
from typing import Iterator, Mapping, Optional

from refined.errors import unknown_symbol
from refined.types import RefinedType


class Environment:
    """Maps free names to their refined types.

    Supplied once per verification run and never mutated; ``extend``
    returns a new environment.
    """

    def __init__(self, entries: Optional[Mapping[str, RefinedType]] = None):
        self._entries = MappingProxyType(dict(entries or {}))

    def lookup(self, name: str) -> RefinedType:
        if name not in self._entries:
            raise unknown_symbol(name)
        return self._entries[name]

    def get(self, name: str) -> Optional[RefinedType]:
        return self._entries.get(name)

    def extend(self, name: str, ty: RefinedType) -> Environment:
        entries = dict(self._entries)
        entries[name] = ty
        return Environment(entries)

    def names(self) -> list[str]:
        return list(self._entries)

    def __contains__(self, name: object) -> bool:
        return name in self._entries

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

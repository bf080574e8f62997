from __future__ import annotations

from typing import Iterable, Protocol


class ExternalsPolicy(Protocol):
    """Answers whether a dependency must ship physically in the bundle's dependency tree."""

    def is_external(self, name: str) -> bool: ...


class ExternalsList:
    """Externals predicate backed by the configured externals names."""

    def __init__(self, names: Iterable[str]):
        self._lookup = frozenset(names)

    def is_external(self, name: str) -> bool:
        return name in self._lookup

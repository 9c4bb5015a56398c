"""Registry — named application/binder instances for cross-module lookup.

Invariants:
    - Identifiers are unique for the registry's lifetime
    - register() is check-then-insert: a conflict leaves the table untouched
    - Mutated only while constructing applications/binders, read-only afterwards

Design Decisions:
    - Explicit injectable object over a module-level dict: the composition root
      owns it, tests get a fresh one per case
    - No locking: construction is serialized by the composition root
"""

from collections.abc import Iterator
from typing import Any

from restbind.core.errors import RegistryConflictError, RegistryLookupError


class Registry:
    """id -> instance table (applications, binders)."""

    def __init__(self):
        self._entries: dict[str, Any] = {}

    def register(self, entry_id: str, instance: Any) -> None:
        """Insert instance under entry_id; raise if the id is taken."""
        if entry_id in self._entries:
            raise RegistryConflictError(entry_id)
        self._entries[entry_id] = instance

    def get(self, entry_id: str) -> Any:
        try:
            return self._entries[entry_id]
        except KeyError:
            raise RegistryLookupError(entry_id) from None

    def ids(self) -> list[str]:
        return list(self._entries)

    def __contains__(self, entry_id: object) -> bool:
        return entry_id in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

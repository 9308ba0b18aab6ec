# read-through cache for query results, invalidated by tag

from dataclasses import dataclass
from typing import Any, Dict, FrozenSet, Hashable, Optional, Tuple

# ("product", None) covers the whole type, ("product", 7) a single record
Tag = Tuple[str, Optional[Hashable]]


@dataclass(frozen=True)
class _Entry:
    value: Any
    tags: FrozenSet[Tag]


class QueryCache:
    """
    Stores query results keyed by request shape ("GET /products/7").

    Entries are written when a request completes, so a slow fetch that
    finishes last overwrites a newer one.
    """

    def __init__(self) -> None:
        self._entries: Dict[str, _Entry] = {}

    def __contains__(self, key: str) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, key: str) -> Optional[Any]:
        entry = self._entries.get(key)
        return entry.value if entry else None

    def put(self, key: str, value: Any, *tags: Tag) -> None:
        self._entries[key] = _Entry(value, frozenset(tags))

    def invalidate(self, kind: str, ident: Optional[Hashable] = None) -> int:
        """
        Drops entries tagged with `kind`. Without `ident` every entry of
        that kind goes, per-record ones included.
        Returns the number of entries dropped.
        """

        def matches(tag: Tag) -> bool:
            if tag[0] != kind:
                return False
            return ident is None or tag[1] == ident

        stale = [
            key
            for key, entry in self._entries.items()
            if any(matches(tag) for tag in entry.tags)
        ]
        for key in stale:
            del self._entries[key]
        return len(stale)

    def clear(self) -> None:
        self._entries.clear()

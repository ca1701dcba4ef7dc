# Schema cache
# Process-wide memoization of derived schema/model artifacts

from typing import Callable, Generic, Hashable, TypeVar

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")


class SchemaCache(Generic[K, V]):
    """Memoizes the output of a pure builder function per key.

    Entries are never evicted. Concurrent first lookups of the same key may
    each run the builder; the last write wins, which is harmless because the
    builder is deterministic for a given key.
    """

    def __init__(self, builder: Callable[[K], V]) -> None:
        self._builder = builder
        self._entries: dict[K, V] = {}

    def get_or_build(self, key: K) -> V:
        """Return the cached value for ``key``, building it on first access."""
        try:
            return self._entries[key]
        except KeyError:
            pass

        value = self._builder(key)
        self._entries[key] = value
        return value

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

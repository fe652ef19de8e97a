"""
Per-request batch loaders for nested fields.

Resolving a nested field (an account's active card, its transactions, a
transaction's card) once per parent costs one store round trip per parent.
A BatchLoader collects the keys of all sibling parents and fetches them with
a single batch call, caching each result for the rest of the request.

Loaders are created per gateway instance, i.e. per request, so the cache
never outlives the unit of work that filled it.
"""

from typing import Awaitable, Callable, Generic, Hashable, Iterable, TypeVar


K = TypeVar("K", bound=Hashable)
V = TypeVar("V")


class BatchLoader(Generic[K, V]):
    """
    Memoising batch loader.

    Args:
        batch_fn: Async callable taking a list of distinct keys and returning
                  a dict with an entry for every key it was given.
    """

    def __init__(self, batch_fn: Callable[[list[K]], Awaitable[dict[K, V]]]):
        self._batch_fn = batch_fn
        self._cache: dict[K, V] = {}
        self.batches_issued = 0

    async def load(self, key: K) -> V:
        return (await self.load_many([key]))[0]

    async def load_many(self, keys: Iterable[K]) -> list[V]:
        """Return values aligned with keys, fetching every uncached key in one batch."""
        keys = list(keys)
        missing = [key for key in dict.fromkeys(keys) if key not in self._cache]
        if missing:
            self.batches_issued += 1
            found = await self._batch_fn(missing)
            for key in missing:
                self._cache[key] = found[key]
        return [self._cache[key] for key in keys]

    def prime(self, key: K, value: V) -> None:
        self._cache.setdefault(key, value)

    def clear(self, key: K) -> None:
        self._cache.pop(key, None)

"""In-memory cache with explicit optimistic update contract"""
import logging
from typing import Any, Generic, Hashable, List, Optional, Sequence, Tuple, TypeVar

from pydantic import BaseModel

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)

Snapshot = Tuple[Any, ...]


class OptimisticStore(Generic[T]):
    """
    Holds the last known records of one location.

    Every change goes through `snapshot()` -> `apply(mutation)` and then
    either `commit(server_result)` or `rollback(snapshot)`. A snapshot is a
    deep copy of the state at the moment it is taken, so rolling back restores
    exactly what was shown before the mutation, optimistic values included.
    """

    def __init__(self, items: Optional[Sequence[T]] = None):
        self._items: List[T] = []
        self.load(items or [])

    def identity_of(self, item: T) -> Hashable:
        raise NotImplementedError

    def surrogate_id_of(self, item: T) -> Optional[str]:
        return None

    @property
    def items(self) -> List[T]:
        return list(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def load(self, items: Sequence[T]) -> None:
        """Replace the state with records fetched from the backend"""
        deduped = {}
        for item in items:
            identity = self.identity_of(item)
            if identity in deduped:
                logger.warning(f"Duplicate record for {identity!r} from backend, keeping the last one")
            deduped[identity] = item
        self._items = list(deduped.values())

    def snapshot(self) -> Snapshot:
        return tuple(item.model_copy(deep=True) for item in self._items)

    def apply(self, mutation) -> None:
        """Apply a mutation object exposing `apply_to(items) -> items`"""
        self._items = list(mutation.apply_to(list(self._items)))

    def commit(self, result: T) -> T:
        """
        Replace the optimistic record with the server's representation.

        Matching is by identity, or by surrogate id when the server result
        carries one the store already knows; never by position.
        """
        identity = self.identity_of(result)
        surrogate = self.surrogate_id_of(result)
        position = None
        kept = []
        for item in self._items:
            item_surrogate = self.surrogate_id_of(item)
            if self.identity_of(item) == identity or (surrogate is not None and item_surrogate == surrogate):
                if position is None:
                    position = len(kept)
                continue
            kept.append(item)
        if position is None:
            kept.append(result)
        else:
            kept.insert(position, result)
        self._items = kept
        return result

    def rollback(self, snapshot: Snapshot) -> None:
        self._items = [item.model_copy(deep=True) for item in snapshot]


class ReplaceRecordMutation:
    """Put a record in place of the one sharing its identity, or append it"""

    def __init__(self, record: BaseModel, identity_of):
        self.record = record
        self.identity_of = identity_of

    def apply_to(self, items: List[BaseModel]) -> List[BaseModel]:
        identity = self.identity_of(self.record)
        replaced = False
        result = []
        for item in items:
            if self.identity_of(item) == identity:
                if not replaced:
                    result.append(self.record)
                    replaced = True
                continue
            result.append(item)
        if not replaced:
            result.append(self.record)
        return result

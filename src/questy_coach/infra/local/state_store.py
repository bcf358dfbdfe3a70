"""In-memory state store for questy_coach."""

import copy
from typing import Any, Self

from questy_coach.interfaces.state_store import StateStoreInterface

__all__ = [
    "InMemoryStateStore",
]


class InMemoryStateStore(StateStoreInterface):
    """Process-local StateStoreInterface backed by a dict.

    Values are deep-copied in and out so callers never share
    mutable state with the store.
    """

    config_class = None

    def __init__(self) -> None:
        self._data: dict[tuple[str, str], dict[str, Any]] = {}

    @classmethod
    async def from_dict(cls, config: dict[str, Any]) -> Self:
        return cls()

    async def close(self) -> None:
        """Close resources (no-op for in-memory storage)."""
        pass

    async def get(self, namespace: str, student_id: str) -> dict[str, Any] | None:
        value = self._data.get((namespace, student_id))
        return copy.deepcopy(value) if value is not None else None

    async def set(self, namespace: str, student_id: str, value: dict[str, Any]) -> bool:
        self._data[(namespace, student_id)] = copy.deepcopy(value)
        return True

    async def delete(self, namespace: str, student_id: str) -> bool:
        return self._data.pop((namespace, student_id), None) is not None

    def __len__(self) -> int:
        return len(self._data)

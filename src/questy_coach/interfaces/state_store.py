"""State store interface for questy_coach.

This module defines the Protocol for per-student key-value state
(memory lane, quests, delay history) stored as JSON-able dicts.
"""

from typing import Any, ClassVar, Protocol, runtime_checkable

__all__ = [
    "StateStoreInterface",
]


@runtime_checkable
class StateStoreInterface(Protocol):
    """Contract for per-student state persistence.

    Keys are (namespace, student_id) pairs. Values are plain dicts
    that survive a JSON round trip.
    """

    config_class: ClassVar[type | None] = None

    async def get(self, namespace: str, student_id: str) -> dict[str, Any] | None:
        """Load a student's state for a namespace.

        Returns:
            The stored dict, or None if nothing is stored
        """
        ...

    async def set(self, namespace: str, student_id: str, value: dict[str, Any]) -> bool:
        """Store a student's state for a namespace.

        Returns:
            True if the value was stored
        """
        ...

    async def delete(self, namespace: str, student_id: str) -> bool:
        """Delete a student's state for a namespace.

        Returns:
            True if a value was deleted
        """
        ...

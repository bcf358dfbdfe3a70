"""In-process backends for questy_coach."""

from questy_coach.infra.local.state_store import InMemoryStateStore
from questy_coach.infra.local.vector_backend import InMemoryVectorBackend

__all__ = ["InMemoryStateStore", "InMemoryVectorBackend"]

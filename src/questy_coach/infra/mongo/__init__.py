"""MongoDB infrastructure for questy_coach."""

from questy_coach.infra.mongo.client import MongoClient
from questy_coach.infra.mongo.vector_backend import MongoVectorBackend

__all__ = ["MongoClient", "MongoVectorBackend"]

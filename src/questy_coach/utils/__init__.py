"""Utility functions for questy_coach.

This module contains internal utility functions.
"""

from questy_coach.utils.dates import end_of_day, start_of_day
from questy_coach.utils.hashing import (
    djb2_hash,
    generate_memory_id,
    generate_notification_id,
    hash_text,
    stable_hash,
)

__all__ = [
    "djb2_hash",
    "end_of_day",
    "generate_memory_id",
    "generate_notification_id",
    "hash_text",
    "stable_hash",
    "start_of_day",
]

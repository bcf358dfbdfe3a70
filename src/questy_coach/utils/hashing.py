"""Hashing utilities for questy_coach.

This module provides deterministic hash functions for generating
stable identifiers for memories, notifications and reschedule options,
plus the djb2 string hash used by the offline embedding strategy.
"""

import hashlib
from typing import Any

__all__ = [
    "djb2_hash",
    "generate_memory_id",
    "generate_notification_id",
    "hash_text",
    "stable_hash",
]


def hash_text(text: str) -> str:
    """Generate SHA256 hash of text.

    Args:
        text: Input text to hash

    Returns:
        Hexadecimal SHA256 hash string
    """
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def stable_hash(*args: Any) -> str:
    """Generate a stable hash from multiple arguments.

    Converts all arguments to strings and joins them with pipe separator.

    Args:
        *args: Values to include in the hash

    Returns:
        Hexadecimal SHA256 hash string
    """
    combined = "|".join(str(arg) for arg in args)
    return hash_text(combined)


def generate_memory_id(
    student_id: str,
    conversation_id: str,
    content: str,
    timestamp: int,
) -> str:
    """Generate deterministic learning memory ID.

    The same user message extracted twice from the same conversation
    maps to the same memory, so re-running extraction is idempotent.

    Args:
        student_id: Owning student
        conversation_id: Source conversation
        content: Message content the memory was extracted from
        timestamp: Message timestamp (epoch seconds)

    Returns:
        Hexadecimal SHA256 hash string (first 32 chars)
    """
    return stable_hash("memory", student_id, conversation_id, content, timestamp)[:32]


def generate_notification_id(student_id: str, crisis_level: str, timestamp: int) -> str:
    """Generate a notification ID unique per student, level and moment."""
    return f"notif-{stable_hash(student_id, crisis_level, timestamp)[:16]}"


def djb2_hash(text: str) -> int:
    """Compute the 32-bit djb2 hash of a string.

    hash = hash * 33 + ord(char), truncated to 32 bits after every step.

    Args:
        text: Input string

    Returns:
        Unsigned 32-bit integer
    """
    value = 5381
    for char in text:
        value = ((value << 5) + value + ord(char)) & 0xFFFFFFFF
    return value

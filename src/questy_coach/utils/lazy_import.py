"""Deferred imports for optional infrastructure drivers.

motor and redis are only imported when a backend actually connects,
so the engine runs fully in-process without touching them.
"""

from collections.abc import Callable
from importlib import import_module

__all__ = [
    "lazy_import",
]


def lazy_import(
    module_name: str,
    attribute: str | None = None,
) -> Callable[[], object]:
    """Return a loader that imports a module (or one of its attributes) on first call."""

    def _load() -> object:
        module = import_module(module_name)
        return getattr(module, attribute) if attribute else module

    return _load

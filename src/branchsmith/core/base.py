"""Base classes for configuration and state models.

This module contains the foundational classes used throughout
branchsmith:
- Closeable Protocol for resource cleanup
- BaseCloseable for automatic cleanup cascade
- BaseConfig for configuration sections
- BaseState for per-invocation workflow state

Kept apart from config.py so that log.py can depend on it without
importing the configuration models.
"""

from __future__ import annotations

import sys
from typing import Protocol, runtime_checkable

from pydantic import BaseModel


@runtime_checkable
class Closeable(Protocol):
    """Protocol for objects that support close()."""

    def close(self) -> None:
        """Release resources."""
        ...


class BaseCloseable(BaseModel):
    """Model that closes its Closeable children when it is closed.

    Any model inheriting from BaseCloseable:
    - is a context manager
    - walks its fields on close() and closes every Closeable child
    - keeps closing the remaining children when one of them fails

    The cascade runs State -> Config -> Logger -> Sink.
    """

    def close(self):
        """Close all closeable child objects."""
        for field_name in self.__class__.model_fields:
            child = getattr(self, field_name, None)
            if child is None:
                continue

            if isinstance(child, Closeable):
                try:
                    child.close()
                except Exception as e:
                    print(
                        f"Warning: Error closing {field_name}: {e}",
                        file=sys.stderr,
                    )

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):  # noqa: U100
        self.close()
        return False


class BaseConfig(BaseCloseable):
    """Marker base for configuration sections loaded from
    YAML/env/CLI."""
    pass


class BaseState(BaseCloseable):
    """Marker base for runtime state that a workflow mutates while
    it runs."""
    pass


__all__ = ["Closeable", "BaseCloseable", "BaseConfig", "BaseState"]

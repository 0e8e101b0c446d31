"""
Abstract storage interface shared by providers and the Container.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

from .keys import DIKey, GroupKey, Key

if TYPE_CHECKING:
    from .node import Provider


class ContainerStore(ABC):
    """
    Where providers read their dependencies from and write their values to.

    The Container is the only implementation; providers only see this interface.
    """

    @abstractmethod
    def providers_for(self, key: Key) -> list[Provider]:
        """Providers registered for a key, in registration order."""

    @abstractmethod
    def has_value(self, key: DIKey) -> bool:
        """Check if a singleton value was already built."""

    @abstractmethod
    def get_value(self, key: DIKey) -> Any:
        """
        Get a built singleton value.

        Raises:
            KeyError: If the value was not built yet
        """

    @abstractmethod
    def set_value(self, key: DIKey, value: Any) -> None:
        """Record a built singleton value."""

    @abstractmethod
    def group_values(self, key: GroupKey) -> list[Any]:
        """Values submitted to a group so far, in submission order."""

    @abstractmethod
    def submit_group_value(self, key: GroupKey, value: Any) -> None:
        """Append a value to a group."""

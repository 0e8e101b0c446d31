"""
Key implementation for the value namespace of a Container.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, TypeVar

T = TypeVar("T")


def type_name(target_type: Any) -> str:
    """Human-readable name of a type used in keys and diagnostics."""
    return getattr(target_type, "__qualname__", None) or str(target_type)


@dataclass(frozen=True)
class DIKey:
    """
    Identifies a singleton value slot: a type and an optional name.

    The empty name is the default, unnamed slot for that type. At most one
    provider may be registered under a DIKey.
    """

    target_type: Any
    name: str = ""

    @classmethod
    def get(cls, target_type: type[T], name: str = "") -> DIKey:
        """Create a DIKey for the given type and optional name."""
        return cls(target_type, name)

    def __str__(self) -> str:
        name_str = f'[name="{self.name}"]' if self.name else ""
        return f"{type_name(self.target_type)}{name_str}"

    def __hash__(self) -> int:
        return hash((self.target_type, self.name))


@dataclass(frozen=True)
class GroupKey:
    """
    Identifies a value group: a type and a group name.

    Group keys are append-only; any number of providers may contribute to one.
    """

    target_type: Any
    group: str

    def __str__(self) -> str:
        return f'{type_name(self.target_type)}[group="{self.group}"]'

    def __hash__(self) -> int:
        return hash((self.target_type, "group", self.group))


Key = DIKey | GroupKey

"""
Introspection records filled in by the FillProvideInfo option.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from .keys import type_name


def _render(target_type: Any, tokens: list[str]) -> str:
    if not tokens:
        return type_name(target_type)
    return f"{type_name(target_type)}[{', '.join(tokens)}]"


@dataclass(frozen=True)
class Input:
    """An input parameter of a constructor."""

    type: Any
    optional: bool = False
    name: str = ""
    group: str = ""

    def __str__(self) -> str:
        tokens: list[str] = []
        if self.optional:
            tokens.append("optional")
        if self.name:
            tokens.append(f'name = "{self.name}"')
        if self.group:
            tokens.append(f'group = "{self.group}"')
        return _render(self.type, tokens)


@dataclass(frozen=True)
class Output:
    """A value produced by a constructor."""

    type: Any
    name: str = ""
    group: str = ""

    def __str__(self) -> str:
        tokens: list[str] = []
        if self.name:
            tokens.append(f'name = "{self.name}"')
        if self.group:
            tokens.append(f'group = "{self.group}"')
        return _render(self.type, tokens)


@dataclass
class ProvideInfo:
    """
    What the Container learned about a provided constructor.

    Pass an instance to FillProvideInfo; it is populated only when the
    registration succeeds.
    """

    id: int = 0
    inputs: list[Input] = field(default_factory=list)
    outputs: list[Output] = field(default_factory=list)

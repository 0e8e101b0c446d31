"""
Options that modify the behaviour of Container.provide.

Name and Group are also used as ``typing.Annotated`` markers on parameters and
on Out/In dataclass fields::

    def new_pool(dsn: Annotated[str, Name("dsn")]) -> Pool: ...

    @dataclass
    class Handlers(Out):
        users: Annotated[Handler, Group("routes")]
"""

from __future__ import annotations

import inspect
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from .errors import InvalidInputError
from .info import ProvideInfo
from .location import Location

# Names and groups cannot contain this character.
RESERVED_DELIMITER = "`"


def is_interface(target: Any) -> bool:
    """Check whether a type is a behavioural contract: a Protocol or an abstract base class."""
    if not inspect.isclass(target):
        return False
    if getattr(target, "_is_protocol", False):
        return True
    return inspect.isabstract(target) or ABC in target.__bases__


@dataclass
class ProvideOptions:
    """Collected options for a single provide call."""

    name: str = ""
    group: str = ""
    info: ProvideInfo | None = None
    as_types: list[Any] = field(default_factory=list)
    location: Location | None = None

    @classmethod
    def build(cls, options: tuple[ProvideOption, ...]) -> ProvideOptions:
        """Apply options in the order given and validate the result."""
        result = cls()
        for option in options:
            if not isinstance(option, ProvideOption):
                raise InvalidInputError(f"expected a provide option, got {option!r}")
            option.apply(result)
        result.validate()
        return result

    def validate(self) -> None:
        """Reject conflicting or malformed combinations."""
        if self.group:
            if self.name:
                raise InvalidInputError(
                    "cannot use named values with value groups: "
                    f"name:{self.name!r} provided with group:{self.group!r}"
                )
            if self.as_types:
                raise InvalidInputError(
                    f"cannot use As with value groups: As provided with group:{self.group!r}"
                )

        if RESERVED_DELIMITER in self.name:
            raise InvalidInputError(f"invalid Name({self.name!r}): names cannot contain backquotes")
        if RESERVED_DELIMITER in self.group:
            raise InvalidInputError(
                f"invalid Group({self.group!r}): group names cannot contain backquotes"
            )

        for target in self.as_types:
            if not is_interface(target):
                raise InvalidInputError(f"invalid As({target!r}): argument must be an interface type")


class ProvideOption(ABC):
    """A modifier applied to ProvideOptions."""

    @abstractmethod
    def apply(self, options: ProvideOptions) -> None:
        """Record this option on the collected options."""


@dataclass(frozen=True)
class Name(ProvideOption):
    """
    All values produced by the constructor are provided under this name.

    Cannot be used with constructors returning Out result objects.
    """

    value: str

    def apply(self, options: ProvideOptions) -> None:
        options.name = self.value

    def __repr__(self) -> str:
        return f"Name({self.value!r})"


@dataclass(frozen=True)
class Group(ProvideOption):
    """
    All values produced by the constructor are added to this value group.

    Cannot be used with constructors returning Out result objects.
    """

    value: str

    def apply(self, options: ProvideOptions) -> None:
        options.group = self.value

    def __repr__(self) -> str:
        return f"Group({self.value!r})"


@dataclass(frozen=True)
class As(ProvideOption):
    """
    The produced value is also provided as each of the given interfaces.

    The concrete type stays registered too. Combined with Name, every key
    shares the same name.
    """

    interfaces: tuple[Any, ...]

    def __init__(self, *interfaces: Any) -> None:
        # Use object.__setattr__ since we're frozen
        object.__setattr__(self, "interfaces", interfaces)

    def apply(self, options: ProvideOptions) -> None:
        options.as_types.extend(self.interfaces)


@dataclass(frozen=True, eq=False)
class FillProvideInfo(ProvideOption):
    """Populate the given ProvideInfo with what the Container learned about the constructor."""

    info: ProvideInfo

    def apply(self, options: ProvideOptions) -> None:
        options.info = self.info


@dataclass(frozen=True)
class LocationFor(ProvideOption):
    """
    Use another callable's (or an explicit) location in diagnostics.

    Intended for generated constructors whose own location says little.
    """

    target: Callable[..., Any] | Location

    def apply(self, options: ProvideOptions) -> None:
        if isinstance(self.target, Location):
            options.location = self.target
        else:
            options.location = Location.from_callable(self.target)

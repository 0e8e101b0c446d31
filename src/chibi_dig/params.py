"""
Parameter descriptions: what a constructor depends on.

A ParamList holds one Param per function argument. Params form a tree:
ParamObject (an In dataclass) contains further Params for its fields, and the
leaves are ParamSingle and ParamGroupedSlice.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterator
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from .info import Input
from .keys import DIKey, GroupKey, Key

if TYPE_CHECKING:
    from .store import ContainerStore


class In:
    """
    Base class for parameter objects.

    Subclass it with a dataclass to receive many dependencies through one
    argument; fields may carry Name/Group markers and defaults::

        @dataclass
        class ServerParams(In):
            config: Config
            handlers: Annotated[list[Handler], Group("routes")]
            metrics: Metrics | None = None
    """


class _Omitted:
    def __repr__(self) -> str:
        return "OMITTED"


# Returned by Param.build when the callee should fall back to its own default.
OMITTED: Any = _Omitted()


class Param(ABC):
    """A single dependency, or a tree of them."""

    @abstractmethod
    def leaves(self) -> Iterator[ParamSingle | ParamGroupedSlice]:
        """Leaf params in declaration order."""

    @abstractmethod
    def build(self, store: ContainerStore) -> Any:
        """Build the argument value, calling providers as needed."""


@dataclass(frozen=True)
class ParamSingle(Param):
    """Depends on one singleton value."""

    type: Any
    name: str = ""
    optional: bool = False
    default: Any = OMITTED

    @property
    def key(self) -> DIKey:
        return DIKey(self.type, self.name)

    def leaves(self) -> Iterator[ParamSingle | ParamGroupedSlice]:
        yield self

    def is_missing(self, store: ContainerStore) -> bool:
        """Check if this required dependency can never be satisfied by the store."""
        if self.optional:
            return False
        return not store.has_value(self.key) and not store.providers_for(self.key)

    def build(self, store: ContainerStore) -> Any:
        key = self.key
        if store.has_value(key):
            return store.get_value(key)

        providers = store.providers_for(key)
        if not providers:
            # Missing required values are rejected before any build starts
            return self.default

        for provider in providers:
            provider.call(store)
        return store.get_value(key)

    def to_input(self) -> Input:
        return Input(self.type, optional=self.optional, name=self.name)

    def __str__(self) -> str:
        return str(self.key)


@dataclass(frozen=True)
class ParamGroupedSlice(Param):
    """Depends on every value in a group, received as a list."""

    type: Any
    group: str

    @property
    def key(self) -> GroupKey:
        return GroupKey(self.type, self.group)

    def leaves(self) -> Iterator[ParamSingle | ParamGroupedSlice]:
        yield self

    def build(self, store: ContainerStore) -> list[Any]:
        key = self.key
        for provider in store.providers_for(key):
            provider.call(store)
        return list(store.group_values(key))

    def to_input(self) -> Input:
        return Input(self.type, group=self.group)

    def __str__(self) -> str:
        return str(self.key)


@dataclass(frozen=True)
class ParamObjectField:
    """A field of a parameter object."""

    field_name: str
    param: Param


@dataclass(frozen=True)
class ParamObject(Param):
    """An In dataclass whose fields are each a dependency."""

    type: type[In]
    fields: tuple[ParamObjectField, ...]

    def leaves(self) -> Iterator[ParamSingle | ParamGroupedSlice]:
        for field in self.fields:
            yield from field.param.leaves()

    def build(self, store: ContainerStore) -> In:
        kwargs: dict[str, Any] = {}
        for field in self.fields:
            value = field.param.build(store)
            if value is not OMITTED:
                kwargs[field.field_name] = value
        return self.type(**kwargs)


@dataclass(frozen=True)
class Argument:
    """A function argument and the param that supplies it."""

    name: str
    param: Param
    positional_only: bool = False


@dataclass(frozen=True)
class ParamList:
    """All dependencies of a function, in argument order."""

    arguments: tuple[Argument, ...] = ()

    def leaves(self) -> Iterator[ParamSingle | ParamGroupedSlice]:
        for argument in self.arguments:
            yield from argument.param.leaves()

    def dependency_keys(self) -> Iterator[Key]:
        """Keys this function reads, used to find edges in the graph."""
        for leaf in self.leaves():
            yield leaf.key

    def missing_keys(self, store: ContainerStore) -> list[DIKey]:
        """Required keys that nothing in the store can provide."""
        return [
            leaf.key
            for leaf in self.leaves()
            if isinstance(leaf, ParamSingle) and leaf.is_missing(store)
        ]

    def build(self, store: ContainerStore) -> tuple[list[Any], dict[str, Any]]:
        """Build positional and keyword arguments for a call."""
        args: list[Any] = []
        kwargs: dict[str, Any] = {}
        for argument in self.arguments:
            value = argument.param.build(store)
            if argument.positional_only:
                args.append(value)
            elif value is not OMITTED:
                kwargs[argument.name] = value
        return args, kwargs

    def flatten(self) -> list[Input]:
        """Describe every leaf dependency for ProvideInfo."""
        return [leaf.to_input() for leaf in self.leaves()]

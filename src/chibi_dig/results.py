"""
Result descriptions: what a constructor produces.

A ResultList holds one Result per positional return value. Results form a
tree: ResultObject (an Out dataclass) contains further Results for its fields,
and the leaves are ResultSingle and ResultGrouped.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterator
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from .errors import DigError
from .info import Output
from .keys import DIKey, GroupKey

if TYPE_CHECKING:
    from .store import ContainerStore


class Out:
    """
    Base class for result objects.

    Subclass it with a dataclass to provide many values from one constructor.
    Fields may carry Name/Group markers and may nest further Out dataclasses::

        @dataclass
        class Connections(Out):
            read_only: Annotated[Connection, Name("ro")]
            read_write: Annotated[Connection, Name("rw")]
    """


class Result(ABC):
    """A produced value, or a tree of them."""

    @abstractmethod
    def extract(self, store: ContainerStore, value: Any) -> None:
        """Put the produced value (or its parts) into the store."""

    @abstractmethod
    def flatten(self) -> Iterator[Output]:
        """Describe every produced key for ProvideInfo."""


@dataclass(frozen=True)
class ResultSingle(Result):
    """A singleton value, optionally also provided as interfaces."""

    type: Any
    name: str = ""
    as_types: tuple[Any, ...] = ()

    def keys(self) -> list[DIKey]:
        """The concrete key first, then one key per interface, all sharing the name."""
        return [DIKey(self.type, self.name)] + [DIKey(iface, self.name) for iface in self.as_types]

    def extract(self, store: ContainerStore, value: Any) -> None:
        for key in self.keys():
            store.set_value(key, value)

    def flatten(self) -> Iterator[Output]:
        for key in self.keys():
            yield Output(key.target_type, name=self.name)


@dataclass(frozen=True)
class ResultGrouped(Result):
    """A value contributed to a group."""

    type: Any
    group: str

    @property
    def key(self) -> GroupKey:
        return GroupKey(self.type, self.group)

    def extract(self, store: ContainerStore, value: Any) -> None:
        store.submit_group_value(self.key, value)

    def flatten(self) -> Iterator[Output]:
        yield Output(self.type, group=self.group)


@dataclass(frozen=True)
class ResultObjectField:
    """A field of a result object."""

    field_name: str
    result: Result


@dataclass(frozen=True)
class ResultObject(Result):
    """An Out dataclass whose fields are each a produced value."""

    type: type[Out]
    fields: tuple[ResultObjectField, ...]

    def extract(self, store: ContainerStore, value: Any) -> None:
        for field in self.fields:
            field.result.extract(store, getattr(value, field.field_name))

    def flatten(self) -> Iterator[Output]:
        for field in self.fields:
            yield from field.result.flatten()


@dataclass(frozen=True)
class ResultList:
    """
    All values produced by a function.

    ``multiple`` is set when the function returns a tuple, one result per
    element; otherwise there is at most one result.
    """

    results: tuple[Result, ...] = ()
    multiple: bool = False

    def extract(self, store: ContainerStore, value: Any) -> None:
        if not self.multiple:
            for result in self.results:
                result.extract(store, value)
            return

        if not isinstance(value, tuple) or len(value) != len(self.results):
            raise DigError(f"expected a tuple of {len(self.results)} values, got {value!r}")
        for result, item in zip(self.results, value, strict=True):
            result.extract(store, item)

    def flatten(self) -> list[Output]:
        return [output for result in self.results for output in result.flatten()]


def walk_results(result_list: ResultList) -> Iterator[tuple[str, ResultSingle | ResultGrouped]]:
    """
    Visit every leaf result depth-first in declaration order.

    Yields the leaf together with its path: ``[i]`` for the i-th return value,
    followed by field names for nested Out dataclasses, e.g. ``[1].Db.Reader``.
    """
    for position, result in enumerate(result_list.results):
        yield from _walk(result, [f"[{position}]"])


def _walk(result: Result, path: list[str]) -> Iterator[tuple[str, ResultSingle | ResultGrouped]]:
    if isinstance(result, ResultObject):
        for field in result.fields:
            path.append(field.field_name)
            yield from _walk(field.result, path)
            path.pop()
    elif isinstance(result, ResultSingle | ResultGrouped):
        yield ".".join(path), result

"""
Providers: user constructors wrapped for the dependency graph.
"""

from __future__ import annotations

import itertools
from abc import ABC, abstractmethod
from collections.abc import Callable, Iterator, Sequence
from typing import TYPE_CHECKING, Any

from .errors import ConstructorError, MissingDependencyError
from .introspection import SignatureIntrospector
from .location import Location
from .params import ParamList
from .results import ResultList

if TYPE_CHECKING:
    from .graph import GraphHolder
    from .store import ContainerStore


class Provider(ABC):
    """
    A constructor as seen by the dependency graph.

    Providers are immutable once registered, apart from remembering whether
    they were already called.
    """

    @property
    @abstractmethod
    def id(self) -> int:
        """Unique identifier, never reused within the process."""

    @property
    @abstractmethod
    def order(self) -> int:
        """Position of this provider in the graph holder."""

    @property
    @abstractmethod
    def location(self) -> Location:
        """Where the constructor was defined."""

    @property
    @abstractmethod
    def param_list(self) -> ParamList:
        """Direct dependencies of the constructor."""

    @property
    @abstractmethod
    def result_list(self) -> ResultList:
        """Values produced by the constructor."""

    @property
    @abstractmethod
    def called(self) -> bool:
        """Whether the constructor already ran successfully."""

    @abstractmethod
    def call(self, store: ContainerStore) -> None:
        """
        Call the constructor, reading dependencies from and writing values to the store.

        Calling a provider that already succeeded does nothing.
        """


def _dependencies(store: ContainerStore, param_list: ParamList) -> Iterator[Provider]:
    for key in param_list.dependency_keys():
        yield from store.providers_for(key)


def call_dependencies(store: ContainerStore, param_list: ParamList) -> None:
    """
    Call every provider that ``param_list`` needs, dependencies first.

    Providers are visited depth-first in argument order and called on the way
    back up, the same order nested builds would call them in. An explicit
    stack keeps long chains clear of the recursion limit.
    """
    visited: set[int] = set()
    stack: list[tuple[Provider | None, Iterator[Provider]]] = [
        (None, _dependencies(store, param_list))
    ]
    while stack:
        provider, pending = stack[-1]
        for dependency in pending:
            if dependency.called or dependency.id in visited:
                continue
            visited.add(dependency.id)
            stack.append((dependency, _dependencies(store, dependency.param_list)))
            break
        else:
            stack.pop()
            if provider is not None:
                provider.call(store)


class ConstructorNode(Provider):
    """Provider backed by a user function or class."""

    _ids = itertools.count(1)

    def __init__(
        self,
        constructor: Callable[..., Any],
        graph: GraphHolder,
        *,
        name: str = "",
        group: str = "",
        as_types: Sequence[Any] = (),
        location: Location | None = None,
    ):
        """
        Describe a constructor and add it to the graph.

        Args:
            constructor: The function or class to wrap
            graph: Graph holder that assigns the node's order
            name: Name applied to every produced value
            group: Group every produced value is added to
            as_types: Interfaces every produced value is also provided as
            location: Overrides the constructor's own location in diagnostics

        Raises:
            SignatureError: If the constructor's signature is unsupported
        """
        self._param_list = SignatureIntrospector.param_list(constructor)
        self._result_list = SignatureIntrospector.result_list(
            constructor, name=name, group=group, as_types=as_types
        )
        self._constructor = constructor
        self._location = location or Location.from_callable(constructor)
        self._id = next(ConstructorNode._ids)
        self._called = False
        self._order = graph.new_node(self)

    @property
    def id(self) -> int:
        return self._id

    @property
    def order(self) -> int:
        return self._order

    @property
    def location(self) -> Location:
        return self._location

    @property
    def param_list(self) -> ParamList:
        return self._param_list

    @property
    def result_list(self) -> ResultList:
        return self._result_list

    @property
    def called(self) -> bool:
        return self._called

    def call(self, store: ContainerStore) -> None:
        if self._called:
            return

        missing = self._param_list.missing_keys(store)
        if missing:
            raise MissingDependencyError(self._location, missing)

        call_dependencies(store, self._param_list)
        args, kwargs = self._param_list.build(store)
        try:
            value = self._constructor(*args, **kwargs)
        except Exception as err:
            raise ConstructorError(self._location, err) from err

        self._result_list.extract(store, value)
        self._called = True

    def __repr__(self) -> str:
        return f"ConstructorNode(id={self._id}, order={self._order}, location={self._location})"

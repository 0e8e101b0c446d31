"""
Container - registry of constructors and the values built from them.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any, TypeVar

from .discovery import find_and_validate_results
from .errors import CycleError, InvalidInputError, MissingDependencyError, ProvideError
from .graph import GraphHolder, is_acyclic
from .info import ProvideInfo
from .introspection import SignatureIntrospector
from .keys import DIKey, GroupKey, Key
from .location import Location
from .node import ConstructorNode, Provider, call_dependencies
from .options import ProvideOption, ProvideOptions
from .store import ContainerStore

T = TypeVar("T")

logger = logging.getLogger(__name__)


class Container(ContainerStore):
    """
    Registry of constructors forming a dependency graph.

    Constructors are registered with provide() and called lazily, at most once
    each, when invoke() needs one of the values they produce.

    A Container is not thread-safe: serialize calls to provide() and do not
    invoke while a registration is in progress.
    """

    def __init__(self, *, defer_acyclic_verification: bool = False):
        """
        Create a new, empty Container.

        Args:
            defer_acyclic_verification: Skip the cycle check on every provide()
                and run it once before the next invoke() instead. Speeds up
                registering many constructors.
        """
        self._providers: dict[Key, list[Provider]] = {}
        self._nodes: list[Provider] = []
        self._values: dict[DIKey, Any] = {}
        self._groups: dict[GroupKey, list[Any]] = {}
        self._graph = GraphHolder(self)
        self._is_verified_acyclic = False
        self._defer_acyclic_verification = defer_acyclic_verification

    @property
    def providers(self) -> dict[Key, list[Provider]]:
        """Copy of the key to providers mapping."""
        return {key: list(providers) for key, providers in self._providers.items()}

    @property
    def nodes(self) -> list[Provider]:
        """Copy of all registered providers, in registration order."""
        return list(self._nodes)

    @property
    def is_verified_acyclic(self) -> bool:
        """Whether the graph is known to be acyclic since the last registration."""
        return self._is_verified_acyclic

    @property
    def defer_acyclic_verification(self) -> bool:
        return self._defer_acyclic_verification

    def provide(self, constructor: Callable[..., Any], *options: ProvideOption) -> None:
        """
        Teach the container how to build the values a constructor returns.

        The constructor is a function or class whose annotated parameters are
        its dependencies. It is called at most once, the first time one of
        its values is needed.

        Args:
            constructor: The function or class to register
            *options: Name, Group, As, FillProvideInfo or LocationFor

        Raises:
            InvalidInputError: If the constructor is not callable or the options are invalid
            ProvideError: If registration fails; the container is left unchanged
        """
        if constructor is None:
            raise InvalidInputError("can't provide None")
        if not callable(constructor):
            raise InvalidInputError(
                f"must provide constructor function, got {constructor!r} "
                f"(type {type(constructor).__name__})"
            )

        provide_options = ProvideOptions.build(options)
        try:
            self._provide(constructor, provide_options)
        except Exception as err:
            location = provide_options.location or Location.from_callable(constructor)
            raise ProvideError(location, err) from err

    def _provide(self, constructor: Callable[..., Any], options: ProvideOptions) -> None:
        # Snapshot before changing anything; rolled back on any failure below
        self._graph.snapshot()
        old_providers: dict[Key, list[Provider] | None] = {}
        was_verified = self._is_verified_acyclic
        try:
            node = ConstructorNode(
                constructor,
                self._graph,
                name=options.name,
                group=options.group,
                as_types=options.as_types,
                location=options.location,
            )

            keys = find_and_validate_results(self, node)
            if not keys:
                raise InvalidInputError(
                    f"{node.location} must provide at least one usable output"
                )

            for key in keys:
                # Cache old providers before running cycle detection
                old_providers[key] = self._providers.get(key)
                self._providers[key] = [*self._providers.get(key, []), node]

            self._is_verified_acyclic = False
            if not self._defer_acyclic_verification:
                ok, cycle = is_acyclic(self._graph)
                if not ok:
                    raise CycleError(
                        [self._graph.node(u).location for u in cycle],
                        "this function introduces a cycle",
                    )
                self._is_verified_acyclic = True
        except BaseException:
            self._restore_providers(old_providers)
            self._is_verified_acyclic = was_verified
            self._graph.rollback()
            logger.debug("Rolled back registration of %s", constructor)
            raise

        self._nodes.append(node)
        logger.debug("Provided %s as %s", node.location, ", ".join(str(key) for key in keys))

        if options.info is not None:
            self._fill_info(options.info, node)

    def _restore_providers(self, old_providers: dict[Key, list[Provider] | None]) -> None:
        for key, previous in old_providers.items():
            if previous is None:
                del self._providers[key]
            else:
                self._providers[key] = previous

    @staticmethod
    def _fill_info(info: ProvideInfo, node: Provider) -> None:
        info.id = node.id
        info.inputs = node.param_list.flatten()
        info.outputs = node.result_list.flatten()

    def verify_acyclic(self) -> None:
        """
        Check the whole graph for cycles.

        Raises:
            CycleError: If any cycle exists
        """
        ok, cycle = is_acyclic(self._graph)
        if not ok:
            raise CycleError([self._graph.node(u).location for u in cycle])
        self._is_verified_acyclic = True
        logger.debug("Verified %d providers are acyclic", self._graph.order())

    def invoke(self, function: Callable[..., T]) -> T:
        """
        Call a function with its dependencies built from the container.

        Constructors needed for the arguments are called first, each at most
        once over the container's lifetime.

        Args:
            function: A function whose annotated parameters are resolved

        Returns:
            Whatever the function returns

        Raises:
            CycleError: If deferred verification finds a cycle
            MissingDependencyError: If a required dependency has no provider
            ConstructorError: If a constructor raises
        """
        if not callable(function):
            raise InvalidInputError(f"can't invoke non-function {function!r}")

        if not self._is_verified_acyclic:
            self.verify_acyclic()

        param_list = SignatureIntrospector.param_list(function)
        missing = param_list.missing_keys(self)
        if missing:
            raise MissingDependencyError(Location.from_callable(function), missing)

        call_dependencies(self, param_list)
        args, kwargs = param_list.build(self)
        return function(*args, **kwargs)

    # ContainerStore

    def providers_for(self, key: Key) -> list[Provider]:
        return self._providers.get(key, [])

    def has_value(self, key: DIKey) -> bool:
        return key in self._values

    def get_value(self, key: DIKey) -> Any:
        return self._values[key]

    def set_value(self, key: DIKey, value: Any) -> None:
        self._values[key] = value

    def group_values(self, key: GroupKey) -> list[Any]:
        return self._groups.get(key, [])

    def submit_group_value(self, key: GroupKey, value: Any) -> None:
        self._groups.setdefault(key, []).append(value)

    def __str__(self) -> str:
        lines = ["nodes: {"]
        for key, providers in self._providers.items():
            for provider in providers:
                deps = ", ".join(str(k) for k in provider.param_list.dependency_keys())
                lines.append(f"\t{key} -> deps: [{deps}], ctor: {provider.location}")
        lines.append("}")
        lines.append("values: {")
        for key, value in self._values.items():
            lines.append(f"\t{key} => {value!r}")
        for group_key, values in self._groups.items():
            lines.append(f"\t{group_key} => {values!r}")
        lines.append("}")
        return "\n".join(lines)

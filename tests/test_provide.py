#!/usr/bin/env python3
"""
Unit tests for transactional registration with Container.provide.
"""

import unittest
from abc import ABC, abstractmethod
from unittest import mock
from dataclasses import dataclass
from typing import Annotated, Protocol

from chibi_dig import (
    As,
    Container,
    CycleError,
    DIKey,
    FillProvideInfo,
    Group,
    GroupKey,
    InvalidInputError,
    KeyConflictError,
    Location,
    LocationFor,
    Name,
    Out,
    ProvideError,
    ProvideInfo,
    SignatureError,
    root_cause,
)
from chibi_dig.discovery import find_and_validate_results
from chibi_dig.graph import GraphHolder
from chibi_dig.node import ConstructorNode


class TypeX:
    pass


class Config:
    pass


class Logger:
    pass


class Handler:
    pass


class Server:
    pass


class Reader(ABC):
    @abstractmethod
    def read(self) -> str: ...


class Writer(Protocol):
    def write(self, data: str) -> None: ...


class Buffer(Reader):
    def read(self) -> str:
        return ""

    def write(self, data: str) -> None:
        pass


class A:
    pass


class B:
    pass


class C:
    pass


def f1() -> TypeX:
    return TypeX()


def f2() -> TypeX:
    return TypeX()


def f3() -> TypeX:
    return TypeX()


def new_a(b: B) -> A:
    return A()


def new_b(a: A) -> B:
    return B()


def new_c(b: B) -> C:
    return C()


def new_handler() -> Handler:
    return Handler()


def new_buffer() -> Buffer:
    return Buffer()


@dataclass
class Inner(Out):
    reader: Reader


@dataclass
class Outer(Out):
    inner: Inner
    config: Config


def new_nested() -> tuple[Logger, Outer]:
    raise NotImplementedError


def snapshot(container: Container) -> tuple[dict, list]:
    return container.providers, container.nodes


def make_link(produced: type, needed: type):
    def new_link(dep):
        return produced()

    new_link.__annotations__ = {"dep": needed, "return": produced}
    return new_link


def make_chain(length: int) -> tuple[list[type], list]:
    """Types Link0..Link<length> and constructors where Link<i> needs Link<i+1>."""
    links = [type(f"Link{i}", (), {}) for i in range(length + 1)]
    return links, [make_link(links[i], links[i + 1]) for i in range(length)]


class TestConcreteScenario(unittest.TestCase):
    """Test the unnamed, named, then conflicting registration sequence."""

    def test_unnamed_named_conflict(self):
        container = Container()

        container.provide(f1)
        self.assertEqual(list(container.providers), [DIKey(TypeX)])

        container.provide(f2, Name("a"))
        self.assertEqual(set(container.providers), {DIKey(TypeX), DIKey(TypeX, "a")})

        with self.assertRaises(ProvideError) as ctx:
            container.provide(f3)

        error = ctx.exception
        self.assertIsInstance(error.reason, KeyConflictError)
        self.assertIs(error.__cause__, error.reason)
        self.assertEqual(error.reason.key, DIKey(TypeX))
        self.assertEqual(error.reason.path, "[0]")
        self.assertIn("f1", str(error))
        self.assertIn("f3", str(error))
        self.assertIn("already provided by", str(error))


class TestAtomicity(unittest.TestCase):
    """Failed registrations leave the container exactly as it was."""

    def assert_unchanged(self, container: Container, before: tuple[dict, list]) -> None:
        self.assertEqual(snapshot(container), before)

    def test_conflict_leaves_container_unchanged(self):
        container = Container()
        container.provide(f1)
        before = snapshot(container)

        with self.assertRaises(ProvideError):
            container.provide(f2)

        self.assert_unchanged(container, before)
        self.assertEqual(container._graph.order(), 1)

    def test_cycle_leaves_container_unchanged(self):
        container = Container()
        container.provide(new_a)
        container.provide(new_handler, Group("handlers"))
        before = snapshot(container)

        with self.assertRaises(ProvideError):
            container.provide(new_b)

        self.assert_unchanged(container, before)
        self.assertEqual(container._graph.order(), 2)
        self.assertTrue(container.is_verified_acyclic)

    def test_signature_error_leaves_container_unchanged(self):
        container = Container()
        container.provide(f1)
        before = snapshot(container)

        def unannotated(value) -> Config:  # type: ignore[no-untyped-def]
            return Config()

        with self.assertRaises(ProvideError) as ctx:
            container.provide(unannotated)

        self.assertIsInstance(ctx.exception.reason, SignatureError)
        self.assert_unchanged(container, before)

    def test_no_outputs_leaves_container_unchanged(self):
        container = Container()
        before = snapshot(container)

        def nothing() -> None:
            pass

        with self.assertRaises(ProvideError) as ctx:
            container.provide(nothing)

        self.assertIsInstance(ctx.exception.reason, InvalidInputError)
        self.assertIn("must provide at least one usable output", str(ctx.exception))
        self.assert_unchanged(container, before)
        self.assertEqual(container._graph.order(), 0)

    def test_non_callable_rejected(self):
        container = Container()

        with self.assertRaises(InvalidInputError) as ctx:
            container.provide(None)  # type: ignore[arg-type]
        self.assertIn("can't provide None", str(ctx.exception))

        with self.assertRaises(InvalidInputError) as ctx:
            container.provide(42)  # type: ignore[arg-type]
        self.assertIn("must provide constructor function", str(ctx.exception))

        self.assertEqual(snapshot(container), ({}, []))

    def test_successful_registration_after_failure(self):
        """The container can be used again once a registration fails."""
        container = Container()
        container.provide(f1)

        with self.assertRaises(ProvideError):
            container.provide(f2)
        container.provide(f2, Name("second"))

        self.assertEqual(len(container.nodes), 2)
        self.assertEqual(container.nodes[1].order, 1)

    def test_unexpected_error_leaves_container_unchanged(self):
        """Errors outside the library still undo the provisional registration."""
        container = Container()
        container.provide(f1)
        before = snapshot(container)

        with mock.patch(
            "chibi_dig.container.is_acyclic", side_effect=RuntimeError("graph walk failed")
        ):
            with self.assertRaises(ProvideError) as ctx:
                container.provide(new_c)

        self.assertIsInstance(ctx.exception.reason, RuntimeError)
        self.assert_unchanged(container, before)
        self.assertEqual(container._graph.order(), 1)
        self.assertTrue(container.is_verified_acyclic)

        container.provide(new_c)
        self.assertEqual(container.nodes[1].order, 1)
        self.assertEqual(container.providers[DIKey(C)], [container.nodes[1]])

    def test_long_chain_registered_dependents_first(self):
        """Each registration deepens the graph walked by the cycle check."""
        links, constructors = make_chain(2000)
        container = Container()

        for constructor in constructors:
            container.provide(constructor)
        container.provide(links[-1])

        self.assertEqual(len(container.nodes), 2001)
        self.assertEqual(len(container.providers), 2001)
        self.assertEqual(container._graph.order(), 2001)
        self.assertTrue(container.is_verified_acyclic)

    def test_long_cycle_rejected(self):
        links, constructors = make_chain(2000)
        container = Container()
        for constructor in constructors:
            container.provide(constructor)
        before = snapshot(container)

        with self.assertRaises(ProvideError) as ctx:
            container.provide(make_link(links[-1], links[0]))

        self.assertIsInstance(ctx.exception.reason, CycleError)
        self.assertEqual(len(ctx.exception.reason.cycle), 2002)
        self.assert_unchanged(container, before)
        self.assertEqual(container._graph.order(), 2000)


class TestUniqueness(unittest.TestCase):
    """At most one provider per singleton key."""

    def test_singleton_keys_have_one_provider(self):
        container = Container()
        for constructor, name in [(f1, ""), (f2, "a"), (f3, "b"), (f1, "a"), (f2, "")]:
            options = (Name(name),) if name else ()
            try:
                container.provide(constructor, *options)
            except ProvideError:
                pass

        for key, providers in container.providers.items():
            with self.subTest(key=str(key)):
                self.assertEqual(len(providers), 1)
        self.assertEqual(len(container.nodes), 3)

    def test_conflict_within_one_constructor(self):
        def new_pair() -> tuple[TypeX, TypeX]:
            return TypeX(), TypeX()

        container = Container()
        with self.assertRaises(ProvideError) as ctx:
            container.provide(new_pair)

        reason = ctx.exception.reason
        self.assertIsInstance(reason, KeyConflictError)
        self.assertEqual(reason.path, "[1]")
        self.assertEqual(reason.conflicts, ["[0]"])
        self.assertIn("cannot provide TypeX from [1]: already provided by [0]", str(reason))

    def test_interface_conflicts_with_existing_provider(self):
        def new_reader() -> Reader:
            return Buffer()

        container = Container()
        container.provide(new_reader)

        with self.assertRaises(ProvideError) as ctx:
            container.provide(new_buffer, As(Reader))

        self.assertEqual(ctx.exception.reason.key, DIKey(Reader))
        self.assertIn("new_reader", str(ctx.exception))
        self.assertNotIn(DIKey(Buffer), container.providers)


class TestConflictSymmetry(unittest.TestCase):
    """Whichever constructor comes second fails, the first stays."""

    def test_both_orders(self):
        for first, second in [(f1, f2), (f2, f1)]:
            with self.subTest(first=first.__name__):
                container = Container()
                container.provide(first)

                with self.assertRaises(ProvideError) as ctx:
                    container.provide(second)

                self.assertIsInstance(ctx.exception.reason, KeyConflictError)
                self.assertIn(first.__name__, str(ctx.exception.reason))
                (provider,) = container.providers[DIKey(TypeX)]
                self.assertEqual(provider.location.name, first.__name__)


class TestGroupAccumulation(unittest.TestCase):
    """Group keys collect providers in call order."""

    def test_group_providers_in_order(self):
        container = Container()
        for _ in range(3):
            container.provide(new_handler, Group("handlers"))

        providers = container.providers[GroupKey(Handler, "handlers")]
        self.assertEqual(len(providers), 3)
        self.assertEqual(providers, container.nodes)
        self.assertEqual([p.order for p in providers], [0, 1, 2])

    def test_group_does_not_conflict_with_singleton(self):
        container = Container()
        container.provide(new_handler)
        container.provide(new_handler, Group("handlers"))

        self.assertEqual(len(container.providers[DIKey(Handler)]), 1)
        self.assertEqual(len(container.providers[GroupKey(Handler, "handlers")]), 1)

    def test_group_fed_twice_by_one_constructor(self):
        """Repeated group results register the provider once; the last path is kept."""

        def new_handlers() -> tuple[
            Annotated[Handler, Group("handlers")], Annotated[Handler, Group("handlers")]
        ]:
            return Handler(), Handler()

        container = Container()
        container.provide(new_handlers)

        self.assertEqual(len(container.providers[GroupKey(Handler, "handlers")]), 1)
        node = container.nodes[0]
        self.assertEqual(
            find_and_validate_results(Container(), node), {GroupKey(Handler, "handlers"): "[1]"}
        )


class TestCycleRejection(unittest.TestCase):
    """Registrations that close a cycle are rejected."""

    def test_mutual_dependency(self):
        container = Container()
        container.provide(new_a)

        with self.assertRaises(ProvideError) as ctx:
            container.provide(new_b)

        reason = ctx.exception.reason
        self.assertIsInstance(reason, CycleError)
        self.assertEqual([location.name for location in reason.cycle], ["new_a", "new_b", "new_a"])
        self.assertIn("this function introduces a cycle", str(reason))
        self.assertEqual([node.location.name for node in container.nodes], ["new_a"])
        self.assertNotIn(DIKey(B), container.providers)

    def test_self_dependency(self):
        def new_wrapped(config: Config) -> Config:
            return config

        container = Container()
        with self.assertRaises(ProvideError) as ctx:
            container.provide(new_wrapped)

        self.assertIsInstance(ctx.exception.reason, CycleError)
        self.assertEqual(container.nodes, [])

    def test_cycle_through_group(self):
        def new_handler_needing_server(server: Server) -> Handler:
            return Handler()

        def new_server(handlers: Annotated[list[Handler], Group("handlers")]) -> Server:
            return Server()

        container = Container()
        container.provide(new_server)

        with self.assertRaises(ProvideError) as ctx:
            container.provide(new_handler_needing_server, Group("handlers"))

        self.assertIsInstance(ctx.exception.reason, CycleError)
        self.assertNotIn(GroupKey(Handler, "handlers"), container.providers)


class TestDeferredVerification(unittest.TestCase):
    """Cycle checks can be postponed until values are needed."""

    def test_cyclic_constructors_register(self):
        container = Container(defer_acyclic_verification=True)
        container.provide(new_a)
        container.provide(new_b)
        container.provide(new_c)

        self.assertEqual(len(container.nodes), 3)
        self.assertFalse(container.is_verified_acyclic)

        with self.assertRaises(CycleError):
            container.verify_acyclic()
        self.assertFalse(container.is_verified_acyclic)

    def test_eager_container_is_verified(self):
        container = Container()
        container.provide(f1)
        self.assertTrue(container.is_verified_acyclic)

    def test_deferred_acyclic_graph_verifies(self):
        def new_config() -> Config:
            return Config()

        container = Container(defer_acyclic_verification=True)
        container.provide(new_config)
        self.assertFalse(container.is_verified_acyclic)

        container.verify_acyclic()
        self.assertTrue(container.is_verified_acyclic)

        container.provide(f1)
        self.assertFalse(container.is_verified_acyclic)


class TestInterfaceSubstitution(unittest.TestCase):
    """As registers the concrete type and every interface."""

    def test_three_keys_share_the_name(self):
        container = Container()
        container.provide(new_buffer, As(Reader, Writer), Name("buf"))

        keys = {DIKey(Buffer, "buf"), DIKey(Reader, "buf"), DIKey(Writer, "buf")}
        self.assertEqual(set(container.providers), keys)
        node = container.nodes[0]
        for key in keys:
            self.assertEqual(container.providers[key], [node])

    def test_unnamed(self):
        container = Container()
        container.provide(new_buffer, As(Reader))
        self.assertEqual(set(container.providers), {DIKey(Buffer), DIKey(Reader)})

    def test_not_implemented_interface(self):
        container = Container()
        with self.assertRaises(ProvideError) as ctx:
            container.provide(f1, As(Reader))

        self.assertIsInstance(ctx.exception.reason, SignatureError)
        self.assertEqual(container.providers, {})


class TestNestedDiscovery(unittest.TestCase):
    """Keys from nested result objects carry their nesting paths."""

    def test_two_levels(self):
        container = Container()
        node = ConstructorNode(new_nested, GraphHolder(container))

        self.assertEqual(
            find_and_validate_results(container, node),
            {
                DIKey(Logger): "[0]",
                DIKey(Reader): "[1].inner.reader",
                DIKey(Config): "[1].config",
            },
        )

    def test_nested_conflict_reports_path(self):
        def new_reader() -> Reader:
            return Buffer()

        container = Container()
        container.provide(new_reader)

        with self.assertRaises(ProvideError) as ctx:
            container.provide(new_nested)

        reason = ctx.exception.reason
        self.assertEqual(reason.path, "[1].inner.reader")
        self.assertNotIn(DIKey(Logger), container.providers)


class TestProvideInfo(unittest.TestCase):
    """FillProvideInfo reports inputs and outputs."""

    def test_info_filled(self):
        def new_server(
            config: Config,
            handlers: Annotated[list[Handler], Group("routes")],
            logger: Annotated[Logger | None, Name("audit")] = None,
        ) -> tuple[Server, Annotated[Reader, Name("primary")]]:
            return Server(), Buffer()

        info = ProvideInfo()
        container = Container()
        container.provide(new_server, FillProvideInfo(info))

        self.assertEqual(info.id, container.nodes[0].id)
        self.assertEqual(
            [str(i) for i in info.inputs],
            ["Config", 'Handler[group = "routes"]', 'Logger[optional, name = "audit"]'],
        )
        self.assertEqual([str(o) for o in info.outputs], ["Server", 'Reader[name = "primary"]'])

    def test_info_untouched_on_failure(self):
        info = ProvideInfo()
        container = Container()
        container.provide(f1)

        with self.assertRaises(ProvideError):
            container.provide(f2, FillProvideInfo(info))

        self.assertEqual(info, ProvideInfo())

    def test_info_lists_interfaces_and_groups(self):
        first, second = ProvideInfo(), ProvideInfo()
        container = Container()
        container.provide(new_buffer, As(Reader), Name("buf"), FillProvideInfo(first))
        container.provide(new_handler, Group("handlers"), FillProvideInfo(second))

        self.assertEqual(
            [str(o) for o in first.outputs], ['Buffer[name = "buf"]', 'Reader[name = "buf"]']
        )
        self.assertEqual([str(o) for o in second.outputs], ['Handler[group = "handlers"]'])
        self.assertNotEqual(first.id, second.id)


class TestLocations(unittest.TestCase):
    """Errors name the constructors involved."""

    def test_location_override_used_in_conflicts(self):
        def origin_of_x() -> None:
            pass

        container = Container()
        container.provide(f1, LocationFor(origin_of_x))

        with self.assertRaises(ProvideError) as ctx:
            container.provide(f2)
        self.assertIn("origin_of_x", str(ctx.exception))
        self.assertEqual(ctx.exception.reason.conflicts, [str(container.nodes[0].location)])

    def test_explicit_location(self):
        location = Location("generated", "make_x", "gen.py", 3)
        container = Container()
        container.provide(f1, LocationFor(location))

        self.assertIs(container.nodes[0].location, location)

    def test_root_cause(self):
        container = Container()
        container.provide(f1)

        with self.assertRaises(ProvideError) as ctx:
            container.provide(f2)
        self.assertIsInstance(root_cause(ctx.exception), KeyConflictError)


if __name__ == "__main__":
    unittest.main()

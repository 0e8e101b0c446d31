#!/usr/bin/env python3
"""
Unit tests for provide options and their validation.
"""

import unittest
from abc import ABC, abstractmethod
from typing import Protocol

from chibi_dig import (
    As,
    Container,
    FillProvideInfo,
    Group,
    InvalidInputError,
    Location,
    LocationFor,
    Name,
    ProvideInfo,
)
from chibi_dig.options import ProvideOptions, is_interface


class Reader(ABC):
    @abstractmethod
    def read(self) -> str: ...


class Closer(Protocol):
    def close(self) -> None: ...


class File(Reader):
    def read(self) -> str:
        return "contents"

    def close(self) -> None:
        pass


def new_file() -> File:
    return File()


def origin() -> None:
    pass


class TestOptionApplication(unittest.TestCase):
    """Test that options are applied in order."""

    def test_name_and_group(self):
        options = ProvideOptions.build((Name("primary"),))
        self.assertEqual(options.name, "primary")

        options = ProvideOptions.build((Group("handlers"),))
        self.assertEqual(options.group, "handlers")

    def test_later_name_wins(self):
        options = ProvideOptions.build((Name("a"), Name("b")))
        self.assertEqual(options.name, "b")

    def test_as_accumulates(self):
        options = ProvideOptions.build((As(Reader), As(Closer)))
        self.assertEqual(options.as_types, [Reader, Closer])

    def test_fill_provide_info(self):
        info = ProvideInfo()
        options = ProvideOptions.build((FillProvideInfo(info),))
        self.assertIs(options.info, info)

    def test_location_for_callable(self):
        options = ProvideOptions.build((LocationFor(origin),))
        self.assertIsNotNone(options.location)
        self.assertEqual(options.location.name, "origin")

    def test_location_for_explicit_location(self):
        location = Location("generated", "make_thing", "gen.py", 7)
        options = ProvideOptions.build((LocationFor(location),))
        self.assertIs(options.location, location)
        self.assertEqual(str(location), "generated.make_thing (gen.py:7)")

    def test_non_option_rejected(self):
        with self.assertRaises(InvalidInputError):
            ProvideOptions.build(("primary",))  # type: ignore[arg-type]

    def test_repr(self):
        self.assertEqual(repr(Name("a")), "Name('a')")
        self.assertEqual(repr(Group("g")), "Group('g')")


class TestOptionValidation(unittest.TestCase):
    """Test rejected option combinations."""

    def test_group_with_name(self):
        with self.assertRaises(InvalidInputError) as ctx:
            ProvideOptions.build((Name("a"), Group("g")))
        self.assertIn("cannot use named values with value groups", str(ctx.exception))

    def test_group_with_as(self):
        with self.assertRaises(InvalidInputError) as ctx:
            ProvideOptions.build((Group("g"), As(Reader)))
        self.assertIn("cannot use As with value groups", str(ctx.exception))

    def test_name_with_backquote(self):
        with self.assertRaises(InvalidInputError) as ctx:
            ProvideOptions.build((Name("foo`bar"),))
        self.assertIn("names cannot contain backquotes", str(ctx.exception))

    def test_group_with_backquote(self):
        with self.assertRaises(InvalidInputError) as ctx:
            ProvideOptions.build((Group("foo`bar"),))
        self.assertIn("group names cannot contain backquotes", str(ctx.exception))

    def test_as_requires_interface(self):
        for target in (None, File, "Reader", 42):
            with self.subTest(target=target):
                with self.assertRaises(InvalidInputError) as ctx:
                    ProvideOptions.build((As(target),))
                self.assertIn("argument must be an interface type", str(ctx.exception))

    def test_is_interface(self):
        self.assertTrue(is_interface(Reader))
        self.assertTrue(is_interface(Closer))
        self.assertFalse(is_interface(File))
        self.assertFalse(is_interface(None))

    def test_invalid_options_leave_container_untouched(self):
        """Validation fails before any graph mutation and is not wrapped."""
        container = Container()

        with self.assertRaises(InvalidInputError):
            container.provide(new_file, Name("a"), Group("g"))

        self.assertEqual(container.providers, {})
        self.assertEqual(container.nodes, [])


if __name__ == "__main__":
    unittest.main()

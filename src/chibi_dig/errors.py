"""
Errors raised by Container registration and invocation.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .keys import Key
    from .location import Location


class DigError(Exception):
    """Base class for all errors raised by chibi_dig."""


class InvalidInputError(DigError):
    """Raised when a constructor or a provide option is malformed."""


class SignatureError(DigError):
    """Raised when a callable's signature cannot be turned into params and results."""


class KeyConflictError(DigError):
    """Raised when a singleton key would be provided more than once."""

    def __init__(self, key: Key, path: str, conflicts: Sequence[str]):
        self.key = key
        self.path = path
        self.conflicts = list(conflicts)
        super().__init__(
            f"cannot provide {key} from {path}: already provided by {'; '.join(self.conflicts)}"
        )


class CycleError(DigError):
    """Raised when the dependency graph contains a cycle."""

    def __init__(self, cycle: Sequence[Location], message: str = "cycle detected in dependency graph"):
        self.cycle = list(cycle)
        cycle_str = "\n\tdepends on ".join(str(location) for location in self.cycle)
        super().__init__(f"{message}:\n\t{cycle_str}")


class ProvideError(DigError):
    """Wraps any failure of Container.provide with the constructor's location."""

    def __init__(self, location: Location, reason: BaseException):
        self.location = location
        self.reason = reason
        super().__init__(f"cannot provide function {location}: {reason}")


class MissingDependencyError(DigError):
    """Raised when values required by a function have no providers."""

    def __init__(self, location: Location, missing: Sequence[Key]):
        self.location = location
        self.missing = list(missing)
        missing_str = ", ".join(str(key) for key in self.missing)
        super().__init__(f"missing dependencies for function {location}: missing types: {missing_str}")


class ConstructorError(DigError):
    """Raised when a constructor fails while a value is being built."""

    def __init__(self, location: Location, reason: BaseException):
        self.location = location
        self.reason = reason
        super().__init__(f"constructor {location} failed: {reason}")


def root_cause(error: BaseException) -> BaseException:
    """
    Return the innermost error behind a chain of wrapped chibi_dig errors.

    Follows ``reason`` attributes first, then ``__cause__``.
    """
    current = error
    while True:
        inner = getattr(current, "reason", None) or current.__cause__
        if inner is None or inner is current:
            return current
        current = inner

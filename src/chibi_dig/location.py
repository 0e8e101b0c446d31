"""
Source locations of constructors, used in error messages.
"""

from __future__ import annotations

import inspect
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class Location:
    """Where a constructor was defined."""

    module: str
    name: str
    file: str
    line: int

    @classmethod
    def from_callable(cls, func: Callable[..., Any]) -> Location:
        """
        Describe the definition site of a function, class or callable object.

        Wrapped functions (``functools.wraps``) report the innermost function.
        """
        target: Any = inspect.unwrap(func)
        if not (inspect.isfunction(target) or inspect.isclass(target) or inspect.ismethod(target)):
            target = type(target)

        module = getattr(target, "__module__", None) or "<unknown>"
        name = getattr(target, "__qualname__", None) or getattr(target, "__name__", repr(target))

        code = getattr(inspect.unwrap(getattr(target, "__func__", target)), "__code__", None)
        if code is not None:
            return cls(module, name, code.co_filename, code.co_firstlineno)

        try:
            file = inspect.getsourcefile(target) or "<unknown>"
            _, line = inspect.getsourcelines(target)
        except (OSError, TypeError):
            return cls(module, name, "<unknown>", 0)
        return cls(module, name, file, line)

    def __str__(self) -> str:
        return f"{self.module}.{self.name} ({self.file}:{self.line})"

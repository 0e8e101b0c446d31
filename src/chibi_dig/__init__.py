"""
Chibi Dig - a small reflection-based dependency injection container.

This library provides:
- Registration of constructors (functions or classes) with provide()
- Named values, value groups and interface substitution through options
- Result objects (Out) and parameter objects (In) built from dataclasses
- Key conflict and cycle detection with all-or-nothing registration
- Lazy construction of values with invoke(), each constructor called at most once
"""

from .container import Container
from .errors import (
    ConstructorError,
    CycleError,
    DigError,
    InvalidInputError,
    KeyConflictError,
    MissingDependencyError,
    ProvideError,
    SignatureError,
    root_cause,
)
from .info import Input, Output, ProvideInfo
from .keys import DIKey, GroupKey, Key
from .location import Location
from .options import As, FillProvideInfo, Group, LocationFor, Name, ProvideOption
from .params import In
from .results import Out

__all__ = [
    "Container",
    "DIKey",
    "GroupKey",
    "Key",
    "Location",
    "ProvideOption",
    "Name",
    "Group",
    "As",
    "FillProvideInfo",
    "LocationFor",
    "ProvideInfo",
    "Input",
    "Output",
    "In",
    "Out",
    "DigError",
    "InvalidInputError",
    "SignatureError",
    "KeyConflictError",
    "CycleError",
    "ProvideError",
    "MissingDependencyError",
    "ConstructorError",
    "root_cause",
]

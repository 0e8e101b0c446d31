"""
Signature introspection for turning constructors into param and result descriptions.
"""

from __future__ import annotations

import dataclasses
import inspect
import types
from collections.abc import Callable, Sequence
from typing import Annotated, Any, Union, get_args, get_origin, get_type_hints

from .errors import SignatureError
from .keys import type_name
from .options import Group, Name
from .params import (
    OMITTED,
    Argument,
    In,
    Param,
    ParamGroupedSlice,
    ParamList,
    ParamObject,
    ParamObjectField,
    ParamSingle,
)
from .results import (
    Out,
    Result,
    ResultGrouped,
    ResultList,
    ResultObject,
    ResultObjectField,
    ResultSingle,
)


def _is_subclass(annotation: Any, base: type) -> bool:
    return inspect.isclass(annotation) and issubclass(annotation, base)


def _split_annotated(annotation: Any) -> tuple[Any, str, str]:
    """Strip Annotated[...] and return the base type with its Name and Group markers."""
    if get_origin(annotation) is not Annotated:
        return annotation, "", ""

    base, *metadata = get_args(annotation)
    name = next((m.value for m in metadata if isinstance(m, Name)), "")
    group = next((m.value for m in metadata if isinstance(m, Group)), "")
    return base, name, group


def _strip_optional(annotation: Any) -> tuple[Any, bool]:
    """Turn ``T | None`` into ``(T, True)``."""
    origin = get_origin(annotation)
    if origin is Union or origin is types.UnionType:
        args = [arg for arg in get_args(annotation) if arg is not type(None)]
        if len(args) == 1 and len(get_args(annotation)) == 2:
            return args[0], True
    return annotation, False


def _protocol_members(protocol: type) -> set[str]:
    members: set[str] = set()
    for klass in protocol.__mro__:
        if klass is object or not getattr(klass, "_is_protocol", False):
            continue
        names = set(vars(klass)) | set(getattr(klass, "__annotations__", {}))
        members |= {name for name in names if not name.startswith("_")}
    return members


def _has_member(concrete: type, member: str) -> bool:
    return any(
        member in vars(klass) or member in getattr(klass, "__annotations__", {})
        for klass in concrete.__mro__
    )


def implements(concrete: Any, interface: type) -> bool:
    """
    Check whether a concrete type satisfies an interface.

    Abstract base classes are checked nominally with issubclass; Protocols are
    checked structurally against their declared members.
    """
    if not inspect.isclass(concrete):
        return False
    if getattr(interface, "_is_protocol", False):
        return all(_has_member(concrete, member) for member in _protocol_members(interface))
    return issubclass(concrete, interface)


class SignatureIntrospector:
    """Extracts param and result descriptions from callables using type hints."""

    @staticmethod
    def _type_hints(target: Any) -> dict[str, Any]:
        try:
            return get_type_hints(target, include_extras=True)
        except (NameError, TypeError) as err:
            raise SignatureError(f"cannot read type hints of {target!r}: {err}") from err

    @classmethod
    def _hints_for_call(cls, func: Callable[..., Any]) -> dict[str, Any]:
        if inspect.isclass(func):
            init = func.__init__
            return {} if init is object.__init__ else cls._type_hints(init)
        if inspect.isfunction(func) or inspect.ismethod(func):
            return cls._type_hints(func)
        return cls._type_hints(type(func).__call__)

    @classmethod
    def param_list(cls, func: Callable[..., Any]) -> ParamList:
        """Describe the arguments of a callable."""
        try:
            signature = inspect.signature(func)
        except (TypeError, ValueError) as err:
            raise SignatureError(f"cannot inspect signature of {func!r}: {err}") from err
        hints = cls._hints_for_call(func)

        arguments: list[Argument] = []
        for parameter in signature.parameters.values():
            if parameter.kind in (parameter.VAR_POSITIONAL, parameter.VAR_KEYWORD):
                continue
            if parameter.name not in hints:
                raise SignatureError(
                    f"parameter {parameter.name!r} of {func!r} has no type annotation"
                )

            positional_only = parameter.kind is parameter.POSITIONAL_ONLY
            default = parameter.default
            if default is parameter.empty:
                default = OMITTED
            param = cls._parse_param(
                hints[parameter.name],
                has_default=parameter.default is not parameter.empty,
                # Positional-only arguments cannot be skipped, so pass their default explicitly
                default=default if positional_only else OMITTED,
            )
            arguments.append(Argument(parameter.name, param, positional_only))

        return ParamList(tuple(arguments))

    @classmethod
    def _parse_param(cls, annotation: Any, has_default: bool, default: Any = OMITTED) -> Param:
        base, name, group = _split_annotated(annotation)
        if name and group:
            raise SignatureError(f"cannot use named values with value groups: {annotation!r}")

        base, nullable = _strip_optional(base)
        optional = has_default or nullable
        if nullable and not has_default:
            default = None

        if group:
            if get_origin(base) is not list or len(get_args(base)) != 1:
                raise SignatureError(
                    f"value groups may be consumed as lists only: group {group!r} requested as {base!r}"
                )
            return ParamGroupedSlice(get_args(base)[0], group)

        if _is_subclass(base, Out):
            raise SignatureError(f"cannot depend on result objects: {type_name(base)} embeds Out")

        if _is_subclass(base, In):
            if name:
                raise SignatureError(
                    f"cannot specify a name for parameter objects: {type_name(base)} embeds In"
                )
            return cls._param_object(base)

        return ParamSingle(base, name, optional, default)

    @classmethod
    def _param_object(cls, target: type[In]) -> ParamObject:
        if not dataclasses.is_dataclass(target):
            raise SignatureError(f"parameter object {type_name(target)} must be a dataclass")

        hints = cls._type_hints(target)
        fields: list[ParamObjectField] = []
        for field in dataclasses.fields(target):
            if not field.init:
                continue
            has_default = (
                field.default is not dataclasses.MISSING
                or field.default_factory is not dataclasses.MISSING
            )
            param = cls._parse_param(hints[field.name], has_default=has_default)
            fields.append(ParamObjectField(field.name, param))
        return ParamObject(target, tuple(fields))

    @classmethod
    def result_list(
        cls,
        func: Callable[..., Any],
        name: str = "",
        group: str = "",
        as_types: Sequence[Any] = (),
    ) -> ResultList:
        """
        Describe the values produced by a callable.

        Classes produce an instance of themselves. Functions are read from
        their return annotation: ``T``, ``tuple[A, B]`` or an Out dataclass.
        Name, group and interfaces from provide options apply to every result.
        """
        if inspect.isclass(func):
            return_type: Any = func
        else:
            return_type = cls._hints_for_call(func).get("return")

        if return_type is None or return_type is type(None):
            return ResultList()

        if get_origin(return_type) is tuple:
            elements = get_args(return_type)
            if Ellipsis in elements:
                raise SignatureError(
                    f"variable-length tuples are not supported as results: {return_type!r}"
                )
            results = [cls._parse_result(element, name, group, as_types) for element in elements]
            return ResultList(tuple(results), multiple=True)

        return ResultList((cls._parse_result(return_type, name, group, as_types),))

    @classmethod
    def _parse_result(
        cls, annotation: Any, name: str, group: str, as_types: Sequence[Any]
    ) -> Result:
        base, marker_name, marker_group = _split_annotated(annotation)
        if (name and marker_name) or (group and marker_group):
            raise SignatureError(f"result {annotation!r} is already named or grouped by options")
        name = name or marker_name
        group = group or marker_group
        if name and group:
            raise SignatureError(f"cannot use named values with value groups: {annotation!r}")

        if _is_subclass(base, Out):
            if name:
                raise SignatureError(
                    f"cannot specify a name for result objects: {type_name(base)} embeds Out"
                )
            if group:
                raise SignatureError(
                    f"cannot specify a group for result objects: {type_name(base)} embeds Out"
                )
            if as_types:
                raise SignatureError(
                    f"cannot use As with result objects: {type_name(base)} embeds Out"
                )
            return cls._result_object(base)

        if _is_subclass(base, In):
            raise SignatureError(f"cannot provide parameter objects: {type_name(base)} embeds In")

        if group:
            return ResultGrouped(base, group)

        interfaces: list[Any] = []
        for interface in as_types:
            if interface is base:
                continue
            if not implements(base, interface):
                raise SignatureError(
                    f"invalid As: {type_name(base)} does not implement {type_name(interface)}"
                )
            interfaces.append(interface)
        return ResultSingle(base, name, tuple(interfaces))

    @classmethod
    def _result_object(cls, target: type[Out]) -> ResultObject:
        if not dataclasses.is_dataclass(target):
            raise SignatureError(f"result object {type_name(target)} must be a dataclass")

        hints = cls._type_hints(target)
        fields = [
            ResultObjectField(field.name, cls._parse_result(hints[field.name], "", "", ()))
            for field in dataclasses.fields(target)
            if not field.name.startswith("_")
        ]
        return ResultObject(target, tuple(fields))

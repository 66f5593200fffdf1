"""Call shape validation.

This module checks that a declared or dispatched call is legal before the
engine records or matches it: the function must be a method of the
collaborator, the arguments must bind to its parameters, and each value
must fit the parameter's type hint. Type checks are delegated to pydantic
``TypeAdapter`` in strict mode, so a value is accepted when it is an
instance of the hinted type or one of pydantic's strict conversions applies
(an ``int`` for a ``float``). ``None`` is accepted only where the hint
admits it.

Every violation raises ``MockConfigurationError``.
"""

from __future__ import annotations

import inspect
import logging
import sys
import typing
from collections.abc import Iterator
from functools import lru_cache
from typing import Any, Protocol

from pydantic import ConfigDict, PydanticUserError, TypeAdapter, ValidationError

from callmock.errors import MockConfigurationError
from callmock.identity import MethodSignature

logger = logging.getLogger(__name__)

_ARBITRARY_TYPES = ConfigDict(arbitrary_types_allowed=True)


def _type_name(hint: Any) -> str:
    if isinstance(hint, type):
        return hint.__qualname__
    return repr(hint).replace("typing.", "")


def _is_protocol(hint: Any) -> bool:
    return isinstance(hint, type) and Protocol in hint.__bases__


def _build_adapter(hint: Any) -> TypeAdapter | None:
    if _is_protocol(hint):
        return None
    error: Exception | None = None
    # Models carry their own config, plain classes need arbitrary types.
    for config in (None, _ARBITRARY_TYPES):
        try:
            return TypeAdapter(hint, config=config)
        except (PydanticUserError, TypeError) as e:
            error = e
    logger.debug(f"No validator for type hint {hint!r}: {error}")
    return None


@lru_cache(maxsize=512)
def _cached_adapter(hint: Any) -> TypeAdapter | None:
    return _build_adapter(hint)


def _adapter_for(hint: Any) -> TypeAdapter | None:
    try:
        return _cached_adapter(hint)
    except TypeError:
        # unhashable hint
        return _build_adapter(hint)


def validate_value(hint: Any, value: Any) -> Any:
    """Validate a single value against a type hint.

    Args:
        hint: Resolved type hint; ``Any`` and ``object`` accept everything.
        value: Argument or return value.

    Returns:
        The value to store. Instances of a plain class hint are kept as
        given; a strict conversion to an equal value of another type (an
        ``int`` for a ``float``) yields the converted value; otherwise the
        original object is kept.

    Raises:
        ValueError: If the value does not fit the hint.
    """
    if hint is Any or hint is object:
        return value

    # Subclass instances are assignable: bool for int, IntEnum members
    if (
        isinstance(hint, type)
        and typing.get_origin(hint) is None
        and not _is_protocol(hint)
        and isinstance(value, hint)
    ):
        return value

    adapter = _adapter_for(hint)
    if adapter is None:
        return value

    try:
        validated = adapter.validate_python(value, strict=True)
    except ValidationError as e:
        if value is None:
            raise ValueError(f"None is invalid value for type {_type_name(hint)}") from e
        raise ValueError(
            f"{value!r} is neither assignable nor convertible to type {_type_name(hint)}"
        ) from e
    except (PydanticUserError, TypeError) as e:
        # e.g. isinstance() against a non-runtime Protocol
        logger.debug(f"Cannot check {value!r} against {hint!r}: {e}")
        return value

    # Only an equal value of another type replaces the caller's object;
    # lazy validators (Iterable, Generator) never do
    if (
        type(validated) is type(value)
        or isinstance(validated, Iterator)
        or validated != value
    ):
        return value
    return validated


def _owner_class(func: Any) -> type | None:
    """Resolve the class a function was defined in from its qualified name."""
    qualname = func.__qualname__
    if "<locals>" in qualname:
        return None
    parts = qualname.split(".")[:-1]
    if not parts:
        return None
    owner: Any = sys.modules.get(func.__module__)
    for part in parts:
        owner = getattr(owner, part, None)
    return owner if isinstance(owner, type) else None


def validate_receiver(obj: Any, method: MethodSignature) -> None:
    """Check that ``method`` is a method of the collaborator ``obj``.

    The function must be defined by a class in the collaborator's MRO, or
    belong to a ``typing.Protocol`` the collaborator provides structurally.

    Raises:
        MockConfigurationError: If the collaborator does not have the method.
    """
    func = method.function
    name = func.__name__
    cls = type(obj)

    for klass in cls.__mro__:
        if vars(klass).get(name) is func:
            return

    owner = _owner_class(func)
    if (
        owner is not None
        and _is_protocol(owner)
        and callable(getattr(cls, name, None))
    ):
        return

    raise MockConfigurationError(
        f"{func.__qualname__} must be a method of {cls.__name__}",
    )


def _check_argument(param: inspect.Parameter, hint: Any, value: Any) -> Any:
    if param.kind is inspect.Parameter.VAR_POSITIONAL:
        return tuple(validate_value(hint, item) for item in value)
    if param.kind is inspect.Parameter.VAR_KEYWORD:
        return {key: validate_value(hint, item) for key, item in value.items()}
    return validate_value(hint, value)


def validate_call(
    obj: Any,
    method: MethodSignature,
    args: tuple[Any, ...],
    kwargs: dict[str, Any],
    optional_args: bool,
    check_types: bool = True,
) -> tuple[Any, ...] | None:
    """Validate a declared or dispatched call and normalize its arguments.

    Args:
        obj: Collaborator.
        method: Description of the mocked method.
        args: Positional arguments as given by the caller.
        kwargs: Keyword arguments as given by the caller.
        optional_args: If True, an empty argument list declares a wildcard.
        check_types: Validate argument values against type hints.

    Returns:
        Arguments in parameter order with defaults applied, or None for a
        wildcard declaration.

    Raises:
        MockConfigurationError: If the call shape is illegal.
    """
    validate_receiver(obj, method)

    if optional_args and not args and not kwargs:
        return None

    try:
        bound = method.full_signature.bind(obj, *args, **kwargs)
    except TypeError as e:
        raise MockConfigurationError(f"Invalid {method.name} args", details=str(e)) from e
    bound.apply_defaults()

    values = list(bound.arguments.values())[1:]
    if not check_types:
        return tuple(values)

    normalized = []
    for position, (param, value) in enumerate(zip(method.parameters, values), start=1):
        hint = method.param_hints.get(param.name, Any)
        try:
            normalized.append(_check_argument(param, hint, value))
        except ValueError as e:
            raise MockConfigurationError(
                f"Invalid {method.name} arg #{position} ({param.name})", details=str(e)
            ) from e

    return tuple(normalized)


def validate_returns(
    method: MethodSignature,
    values: tuple[Any, ...],
    check_types: bool = True,
) -> tuple[Any, ...]:
    """Validate declared output values against the method's return slots.

    Raises:
        MockConfigurationError: On a count mismatch or an incompatible value.
    """
    if len(values) != method.return_arity:
        raise MockConfigurationError(
            f"Invalid {method.name} return values",
            details=f"count must be {method.return_arity}, got {len(values)}",
        )

    if not check_types:
        return tuple(values)

    validated = []
    for position, (hint, value) in enumerate(zip(method.return_hints, values), start=1):
        try:
            validated.append(validate_value(hint, value))
        except ValueError as e:
            raise MockConfigurationError(
                f"Invalid {method.name} return value #{position}", details=str(e)
            ) from e

    return tuple(validated)

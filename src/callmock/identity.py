"""Function identity derivation.

A method taken from an interface class (``Storage.get_value``) or a bound
method of a collaborator is described once by ``describe_method``. The
resulting ``FunctionIdentity`` is the matching key used by the engine: the
bare method name plus the signature without its receiver. Two different
methods never share an identity even when their signatures coincide,
because the name is part of the key.
"""

from __future__ import annotations

import inspect
import logging
import typing
from dataclasses import dataclass
from functools import lru_cache
from typing import Any

from callmock.errors import MockConfigurationError

logger = logging.getLogger(__name__)

_RECEIVER_KINDS = (
    inspect.Parameter.POSITIONAL_ONLY,
    inspect.Parameter.POSITIONAL_OR_KEYWORD,
)


@dataclass(frozen=True)
class FunctionIdentity:
    """Comparable key for "this method of this interface"."""

    name: str
    signature: inspect.Signature

    def __str__(self) -> str:
        return f"{self.name}{self.signature}"


@dataclass(frozen=True)
class MethodSignature:
    """Everything the engine needs to know about a mocked method.

    ``param_hints`` maps parameter names to resolved type hints, with
    ``Any`` standing in for missing or unresolvable annotations.
    ``return_hints`` holds one hint per output slot.
    """

    function: Any
    identity: FunctionIdentity
    full_signature: inspect.Signature
    param_hints: dict[str, Any]
    return_hints: tuple[Any, ...]

    @property
    def name(self) -> str:
        return self.identity.name

    @property
    def parameters(self) -> list[inspect.Parameter]:
        """Parameters excluding the receiver."""
        return list(self.identity.signature.parameters.values())

    @property
    def return_arity(self) -> int:
        return len(self.return_hints)


def unwrap_method(f: Any) -> Any:
    """Return the plain function behind ``f``.

    Raises:
        MockConfigurationError: If ``f`` is neither a function nor a method.
    """
    if inspect.ismethod(f):
        return f.__func__
    if inspect.isfunction(f):
        return f
    raise MockConfigurationError(
        "f must be a function",
        details=f"got {type(f).__name__}",
    )


def describe_method(f: Any) -> MethodSignature:
    """Describe a method value for declaration or dispatch.

    Args:
        f: Interface function or bound method.

    Returns:
        MethodSignature for the underlying function.

    Raises:
        MockConfigurationError: If ``f`` is not a method taking a receiver.
    """
    return _describe(unwrap_method(f))


@lru_cache(maxsize=None)
def _describe(func: Any) -> MethodSignature:
    try:
        full_signature = inspect.signature(func)
    except (TypeError, ValueError) as e:
        raise MockConfigurationError(
            f"Cannot inspect {func.__qualname__}", details=str(e)
        ) from e

    params = list(full_signature.parameters.values())
    if not params or params[0].kind not in _RECEIVER_KINDS:
        raise MockConfigurationError(
            f"{func.__qualname__} must be an interface method",
            details="no receiver parameter",
        )

    hints = _resolve_hints(func)
    identity = FunctionIdentity(
        name=func.__name__,
        signature=full_signature.replace(parameters=params[1:]),
    )
    return MethodSignature(
        function=func,
        identity=identity,
        full_signature=full_signature,
        param_hints={p.name: hints.get(p.name, Any) for p in params[1:]},
        return_hints=_split_return_hint(hints),
    )


def _resolve_hints(func: Any) -> dict[str, Any]:
    try:
        return typing.get_type_hints(func)
    except (NameError, TypeError, AttributeError) as e:
        # Forward references to classes defined in a local scope
        logger.debug(f"Unresolvable type hints on {func.__qualname__}: {e}")
        return {
            name: hint
            for name, hint in getattr(func, "__annotations__", {}).items()
            if not isinstance(hint, str)
        }


def _split_return_hint(hints: dict[str, Any]) -> tuple[Any, ...]:
    """Map a return annotation onto output slots.

    ``None`` has no outputs, a fixed-length tuple has one slot per element,
    everything else (including a missing annotation) is a single slot.
    """
    if "return" not in hints:
        return (Any,)

    hint = hints["return"]
    if hint is None or hint is type(None):
        return ()

    if typing.get_origin(hint) is tuple:
        args = typing.get_args(hint)
        if args and args[-1] is not Ellipsis:
            return tuple(args)

    return (hint,)

"""Call declarations and output binding.

A ``CallDeclaration`` is a stored rule: collaborator, method identity, an
optional fixed argument list and the outputs to produce. It is handed back to
the test as a ``Returner`` at declaration time and wrapped in a ``Call`` when
an invocation matches it.
"""

from __future__ import annotations

import logging
import reprlib
from dataclasses import dataclass
from typing import Any, Protocol

from callmock.errors import MockConfigurationError
from callmock.identity import FunctionIdentity, MethodSignature
from callmock.validator import validate_returns

logger = logging.getLogger(__name__)


def format_call(
    obj: Any,
    name: str,
    args: tuple[Any, ...] | None,
    max_repr_length: int = 80,
) -> str:
    """Render a call for failure messages, e.g. ``StorageMock.get_value('k')``.

    Wildcard argument lists render as ``(*)``.
    """
    if args is None:
        return f"{type(obj).__name__}.{name}(*)"

    short = reprlib.Repr()
    short.maxstring = max_repr_length
    short.maxother = max_repr_length
    rendered = ", ".join(short.repr(arg) for arg in args)
    return f"{type(obj).__name__}.{name}({rendered})"


class Returner(Protocol):
    """Declares the outputs of a matched call."""

    def returns(self, *values: Any) -> None: ...

    def raises(self, exc: BaseException | type[BaseException]) -> None: ...


@dataclass(eq=False)
class CallDeclaration:
    """An unconditional stub."""

    obj: Any
    method: MethodSignature
    args: tuple[Any, ...] | None = None
    out: tuple[Any, ...] | None = None
    error: BaseException | type[BaseException] | None = None
    check_types: bool = True
    max_repr_length: int = 80

    @property
    def identity(self) -> FunctionIdentity:
        return self.method.identity

    def satisfied(
        self,
        obj: Any,
        identity: FunctionIdentity,
        args: tuple[Any, ...] | None,
    ) -> bool:
        """Check whether an invocation matches this declaration.

        The collaborator is compared by identity, the method by name and
        signature, and the arguments by equality unless the declaration is a
        wildcard.
        """
        return (
            self.obj is obj
            and self.identity == identity
            and (self.args is None or self.args == args)
        )

    def returns(self, *values: Any) -> None:
        """Declare the output values produced when this declaration matches.

        Raises:
            MockConfigurationError: If outputs were already declared, or the
                values do not fit the method's return slots.
        """
        self._ensure_undecided()
        self.out = validate_returns(self.method, values, self.check_types)
        logger.debug(f"{self} returns {self.out!r}")

    def raises(self, exc: BaseException | type[BaseException]) -> None:
        """Declare an exception raised when this declaration matches."""
        self._ensure_undecided()
        if not (
            isinstance(exc, BaseException)
            or (isinstance(exc, type) and issubclass(exc, BaseException))
        ):
            raise MockConfigurationError(
                f"Invalid {self.method.name} exception",
                details=f"{exc!r} is not an exception",
            )
        self.error = exc
        logger.debug(f"{self} raises {exc!r}")

    def _ensure_undecided(self) -> None:
        if self.out is not None or self.error is not None:
            raise MockConfigurationError(f"{self} outputs already declared")

    def __str__(self) -> str:
        return format_call(self.obj, self.identity.name, self.args, self.max_repr_length)


@dataclass(eq=False)
class ExpectedCallDeclaration(CallDeclaration):
    """A declaration that must be matched once, in declaration order."""

    used: bool = False

    def mark_used(self) -> None:
        # used only ever flips from False to True
        if self.used:
            raise RuntimeError(f"{self} is already used")
        self.used = True


def _pack(slots: tuple[Any, ...] | list[Any]) -> Any:
    if not slots:
        return None
    if len(slots) == 1:
        return slots[0]
    return tuple(slots)


class Call:
    """Result of dispatching an invocation.

    ``result`` takes one default per output slot and returns the slots with
    the matched declaration's outputs written over the defaults. A call that
    matched nothing leaves every default untouched.
    """

    def __init__(self, declaration: CallDeclaration | None = None) -> None:
        self._declaration = declaration

    @property
    def declaration(self) -> CallDeclaration | None:
        return self._declaration

    @property
    def matched(self) -> bool:
        return self._declaration is not None

    def result(self, *defaults: Any) -> Any:
        """Bind declared outputs into the caller's output slots.

        Args:
            *defaults: Default value for each output slot.

        Returns:
            None for a method without outputs, the single slot for one
            output, otherwise a tuple of slots.

        Raises:
            MockConfigurationError: If the slot count differs from the
                method's return arity.
        """
        decl = self._declaration
        if decl is None:
            return _pack(defaults)

        arity = decl.method.return_arity
        if len(defaults) != arity:
            raise MockConfigurationError(
                f"Invalid {decl} call return parameters count",
                details=f"got {len(defaults)}, expected {arity}",
            )

        if decl.error is not None:
            raise decl.error

        if decl.out is None:
            return _pack(defaults)

        # None outputs keep the caller's default
        slots = [
            default if declared is None else declared
            for default, declared in zip(defaults, decl.out)
        ]
        return _pack(slots)

"""Matching engine.

One ``Core`` lives for one test case and is shared by every mock of that
test, so all of them run on a single call/expectation timeline. Mocks carry
the engine in their ``mock_core`` attribute; the module-level ``on_call``,
``expect_call`` and ``dispatch`` helpers look it up there.

Dispatch first scans expected declarations in order for the first unused
match, enforcing that every earlier expectation is already used, then falls
back to unconditional declarations. Mismatches are reported through the
reporter and answered with a no-op ``Call``; malformed declarations raise
``MockConfigurationError``.
"""

from __future__ import annotations

import logging
import threading
from contextlib import AbstractContextManager, nullcontext
from typing import Any

from callmock.config import CallmockConfig, get_config
from callmock.declarations import (
    Call,
    CallDeclaration,
    ExpectedCallDeclaration,
    Returner,
    format_call,
)
from callmock.errors import FailureKind, MockConfigurationError
from callmock.identity import FunctionIdentity, describe_method
from callmock.reporters import Reporter
from callmock.validator import validate_call

logger = logging.getLogger(__name__)

CORE_ATTRIBUTE = "mock_core"


class Core:
    """Per-test call-expectation engine."""

    def __init__(self, reporter: Reporter, config: CallmockConfig | None = None) -> None:
        self._reporter = reporter
        self._config = config if config is not None else get_config()
        self._calls: list[CallDeclaration] = []
        self._expected: list[ExpectedCallDeclaration] = []
        self._lock: AbstractContextManager[Any] = (
            threading.RLock() if self._config.thread_safe else nullcontext()
        )

    @property
    def config(self) -> CallmockConfig:
        return self._config

    @property
    def declarations(self) -> tuple[CallDeclaration, ...]:
        """Unconditional declarations in declaration order."""
        return tuple(self._calls)

    @property
    def expectations(self) -> tuple[ExpectedCallDeclaration, ...]:
        """Expected declarations in their required order."""
        return tuple(self._expected)

    def pending_expectations(self) -> list[ExpectedCallDeclaration]:
        """Expected declarations not matched yet."""
        with self._lock:
            return [exp for exp in self._expected if not exp.used]

    def on_call(self, obj: Any, f: Any, *args: Any, **kwargs: Any) -> Returner:
        """Declare that ``obj`` method ``f`` may be called.

        Without arguments the declaration matches any arguments. The call
        produces the default outputs unless ``returns`` is used on the
        result.
        """
        decl = CallDeclaration(**self._declaration_fields(obj, f, args, kwargs))
        with self._lock:
            self._calls.append(decl)
        logger.debug(f"Declared {decl}")
        return decl

    def expect_call(self, obj: Any, f: Any, *args: Any, **kwargs: Any) -> Returner:
        """Declare that ``obj`` method ``f`` must be called.

        Expected calls must happen in the order they are declared and are
        consumed by exactly one invocation each.
        """
        exp = ExpectedCallDeclaration(**self._declaration_fields(obj, f, args, kwargs))
        with self._lock:
            self._expected.append(exp)
        logger.debug(f"Expected {exp}")
        return exp

    def _declaration_fields(
        self, obj: Any, f: Any, args: tuple[Any, ...], kwargs: dict[str, Any]
    ) -> dict[str, Any]:
        method = describe_method(f)
        normalized = validate_call(
            obj, method, args, kwargs, optional_args=True, check_types=self._config.check_types
        )
        return {
            "obj": obj,
            "method": method,
            "args": normalized,
            "check_types": self._config.check_types,
            "max_repr_length": self._config.max_repr_length,
        }

    def dispatch(self, obj: Any, f: Any, *args: Any, **kwargs: Any) -> Call:
        """Route an invocation of ``obj`` method ``f`` to its declaration.

        Returns:
            A Call bound to the matched declaration, or a no-op Call after
            reporting an undeclared or out-of-order invocation.
        """
        method = describe_method(f)
        normalized = validate_call(
            obj, method, args, kwargs, optional_args=False, check_types=self._config.check_types
        )
        identity = method.identity

        with self._lock:
            match, pending = self._match_expected(obj, identity, normalized)
            if match is None and pending is None:
                match = next(
                    (d for d in self._calls if d.satisfied(obj, identity, normalized)),
                    None,
                )

        if match is not None:
            logger.debug(f"Matched {match}")
            return Call(match)

        invocation = format_call(obj, method.name, normalized, self._config.max_repr_length)
        if pending is not None:
            self._fail(
                FailureKind.ORDER_VIOLATION,
                f"{pending} must be called before {invocation}",
            )
        else:
            self._fail(FailureKind.UNDECLARED_CALL, f"{invocation} called but not defined")
        return Call(None)

    def _match_expected(
        self, obj: Any, identity: FunctionIdentity, args: tuple[Any, ...] | None
    ) -> tuple[ExpectedCallDeclaration | None, ExpectedCallDeclaration | None]:
        """Find the first unused expected declaration matching the invocation.

        Returns:
            ``(match, None)`` when it may be consumed, ``(None, pending)``
            when an earlier expectation is still unused, ``(None, None)``
            when nothing matched.
        """
        for index, exp in enumerate(self._expected):
            if exp.used or not exp.satisfied(obj, identity, args):
                continue

            pending = next((e for e in self._expected[:index] if not e.used), None)
            if pending is not None:
                return None, pending

            exp.mark_used()
            return exp, None

        return None, None

    def check_expectations(self) -> None:
        """Report the first expected declaration that was never called."""
        pending = self.pending_expectations()
        if pending:
            self._fail(FailureKind.UNSATISFIED_EXPECTATION, f"{pending[0]} expected but not called")

    def reset(self) -> None:
        """Drop every declaration."""
        with self._lock:
            self._calls.clear()
            self._expected.clear()

    def _fail(self, kind: FailureKind, message: str) -> None:
        logger.warning(f"{kind.value}: {message}")
        self._reporter.fatal(message)


def new(reporter: Reporter, config: CallmockConfig | None = None) -> Core:
    """Create the engine for one test case."""
    return Core(reporter, config)


def get_core(obj: Any) -> Core:
    """Return the engine carried by a collaborator.

    Raises:
        MockConfigurationError: If ``obj`` does not carry a Core.
    """
    core = getattr(obj, CORE_ATTRIBUTE, None)
    if not isinstance(core, Core):
        raise MockConfigurationError(
            "obj must carry a mock core",
            details=f"{type(obj).__name__} has no {CORE_ATTRIBUTE!r} Core attribute",
        )
    return core


def on_call(obj: Any, f: Any, *args: Any, **kwargs: Any) -> Returner:
    """Declare that ``obj`` method ``f`` may be called with ``args``."""
    return get_core(obj).on_call(obj, f, *args, **kwargs)


def expect_call(obj: Any, f: Any, *args: Any, **kwargs: Any) -> Returner:
    """Declare that ``obj`` method ``f`` must be called with ``args``."""
    return get_core(obj).expect_call(obj, f, *args, **kwargs)


def dispatch(obj: Any, f: Any, *args: Any, **kwargs: Any) -> Call:
    """Perform a call of ``obj`` method ``f``; use it to implement mock methods.

    Example:
        def get_value(self, key: str) -> tuple[int, Exception | None]:
            return dispatch(self, Storage.get_value, key).result(0, None)
    """
    return get_core(obj).dispatch(obj, f, *args, **kwargs)

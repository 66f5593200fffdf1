"""Error types for callmock.

Configuration mistakes in a test (bad arity, wrong types, a function that is
not a method of the collaborator) raise ``MockConfigurationError``
immediately. Expectation violations are never raised; they are reported
through the injected reporter and classified by ``FailureKind``.
"""

from __future__ import annotations

from enum import Enum


class MockConfigurationError(Exception):
    """A malformed declaration or invocation detected by the engine."""

    def __init__(self, message: str, details: str | None = None) -> None:
        super().__init__(message if details is None else f"{message}: {details}")
        self.message = message
        self.details = details


class FailureKind(str, Enum):
    """Kinds of expectation violations sent to the reporter."""

    UNDECLARED_CALL = "undeclared_call"
    ORDER_VIOLATION = "order_violation"
    UNSATISFIED_EXPECTATION = "unsatisfied_expectation"

"""callmock: call-expectation engine for hand-written test doubles."""

from callmock.config import CallmockConfig, get_config, reload_config
from callmock.core import (
    CORE_ATTRIBUTE,
    Core,
    dispatch,
    expect_call,
    get_core,
    new,
    on_call,
)
from callmock.declarations import (
    Call,
    CallDeclaration,
    ExpectedCallDeclaration,
    Returner,
    format_call,
)
from callmock.errors import FailureKind, MockConfigurationError
from callmock.identity import FunctionIdentity, MethodSignature, describe_method
from callmock.reporters import RecordingReporter, Reporter

__all__ = [
    "CORE_ATTRIBUTE",
    "Call",
    "CallDeclaration",
    "CallmockConfig",
    "Core",
    "ExpectedCallDeclaration",
    "FailureKind",
    "FunctionIdentity",
    "MethodSignature",
    "MockConfigurationError",
    "RecordingReporter",
    "Reporter",
    "Returner",
    "describe_method",
    "dispatch",
    "expect_call",
    "format_call",
    "get_config",
    "get_core",
    "new",
    "on_call",
    "reload_config",
]

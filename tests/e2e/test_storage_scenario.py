"""End-to-end tests for a hand-written storage mock.

Drives a small function under test through a two-method collaborator,
covering the success path, error outputs, ordering failures and teardown
checks.
"""

from collections.abc import Callable
from typing import Protocol

import pytest

import callmock
from callmock import Core, RecordingReporter, dispatch, expect_call, on_call


class Storage(Protocol):
    def get_value(self, key: str) -> tuple[int, Exception | None]: ...

    def set_value(self, key: str, value: int) -> Exception | None: ...


def increment_value(key: str, st: Storage) -> tuple[int, Exception | None]:
    """Function under test."""
    value, err = st.get_value(key)
    if err is not None:
        return 0, err

    value += 1

    err = st.set_value(key, value)
    if err is not None:
        return 0, err

    return value, None


class StorageMock:
    """Storage double; satisfies the protocol structurally."""

    def __init__(self, core: Core) -> None:
        self.mock_core = core

    def get_value(self, key: str) -> tuple[int, Exception | None]:
        return dispatch(self, Storage.get_value, key).result(0, None)

    def set_value(self, key: str, value: int) -> Exception | None:
        return dispatch(self, Storage.set_value, key, value).result(None)


GET_ERROR = LookupError("get failed")
SET_ERROR = OSError("set failed")


def success(st: StorageMock) -> None:
    expect_call(st, Storage.get_value, "k").returns(123, None)
    expect_call(st, Storage.set_value, "k", 124)


def get_fails(st: StorageMock) -> None:
    expect_call(st, Storage.get_value).returns(0, GET_ERROR)


def set_fails(st: StorageMock) -> None:
    expect_call(st, Storage.get_value)
    expect_call(st, Storage.set_value).returns(SET_ERROR)


@pytest.mark.parametrize(
    ("setup_mock", "key", "expected"),
    [
        pytest.param(success, "k", (124, None), id="success_scenario"),
        pytest.param(get_fails, "k", (0, GET_ERROR), id="on_get_value_error"),
        pytest.param(set_fails, "k", (0, SET_ERROR), id="on_set_value_error"),
    ],
)
def test_increment_value(
    setup_mock: Callable[[StorageMock], None],
    key: str,
    expected: tuple[int, Exception | None],
    core: Core,
    reporter: RecordingReporter,
) -> None:
    st = StorageMock(core)
    setup_mock(st)

    assert increment_value(key, st) == expected

    core.check_expectations()
    assert reporter.failures == []


def test_swapped_declaration_order(core: Core, reporter: RecordingReporter) -> None:
    st = StorageMock(core)
    expect_call(st, Storage.set_value, "k", 124)
    expect_call(st, Storage.get_value, "k").returns(123, None)

    increment_value("k", st)

    assert reporter.failures[0] == (
        "StorageMock.set_value('k', 124) must be called before StorageMock.get_value('k')"
    )


def test_missing_set_reported_at_teardown(core: Core, reporter: RecordingReporter) -> None:
    st = StorageMock(core)
    expect_call(st, Storage.get_value, "k").returns(0, GET_ERROR)
    expect_call(st, Storage.set_value, "k", 1)

    assert increment_value("k", st) == (0, GET_ERROR)
    core.check_expectations()

    assert reporter.failures == ["StorageMock.set_value('k', 1) expected but not called"]


def test_catch_all_stub_with_strict_sequence(core: Core, reporter: RecordingReporter) -> None:
    st = StorageMock(core)
    on_call(st, Storage.get_value).returns(7, None)
    on_call(st, Storage.set_value)
    expect_call(st, Storage.set_value, "b", 8)

    assert increment_value("a", st) == (8, None)
    assert increment_value("b", st) == (8, None)

    core.check_expectations()
    assert reporter.failures == []


def test_raising_storage(core: Core, reporter: RecordingReporter) -> None:
    st = StorageMock(core)
    expect_call(st, Storage.get_value, "k").raises(ConnectionError("down"))

    with pytest.raises(ConnectionError, match="down"):
        increment_value("k", st)

    core.check_expectations()
    assert reporter.failures == []


def test_reporter_that_aborts() -> None:
    class AbortingReporter:
        def fatal(self, message: str) -> None:
            pytest.fail(message)

    st = StorageMock(callmock.new(AbortingReporter(), callmock.CallmockConfig(_env_file=None)))

    with pytest.raises(pytest.fail.Exception, match="called but not defined"):
        st.get_value("k")

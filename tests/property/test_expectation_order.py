"""Property tests for the ordered expectation state machine.

For any sequence of expected declarations with distinct arguments and any
order of invocations:
- an invocation consumes its expectation only when every earlier
  expectation is already used,
- otherwise exactly one ordering violation naming the first unused
  expectation is reported and nothing is consumed.
"""

from abc import ABC, abstractmethod

from hypothesis import given, strategies as st

import callmock
from callmock import CallmockConfig, Core, RecordingReporter, dispatch, expect_call, on_call


class Queue(ABC):
    @abstractmethod
    def push(self, value: int) -> bool: ...


class QueueMock(Queue):
    def __init__(self, core: Core) -> None:
        self.mock_core = core

    def push(self, value):
        return dispatch(self, Queue.push, value).result(False)


def fresh_queue() -> tuple[QueueMock, RecordingReporter]:
    reporter = RecordingReporter()
    return QueueMock(callmock.new(reporter, CallmockConfig(_env_file=None))), reporter


distinct_values = st.lists(st.integers(min_value=-1000, max_value=1000), min_size=1, max_size=8, unique=True)


@given(values=distinct_values)
def test_declared_order_is_accepted(values: list[int]) -> None:
    """Invoking in declaration order satisfies every expectation."""
    queue, reporter = fresh_queue()
    for value in values:
        expect_call(queue, Queue.push, value).returns(True)

    results = [queue.push(value) for value in values]
    queue.mock_core.check_expectations()

    assert results == [True] * len(values)
    assert reporter.failures == []


@given(data=st.data(), values=distinct_values)
def test_permuted_order_matches_model(data: st.DataObject, values: list[int]) -> None:
    """Failures follow the prefix-consumption model exactly."""
    order = data.draw(st.permutations(values))
    queue, reporter = fresh_queue()
    for value in values:
        expect_call(queue, Queue.push, value)

    expected_failures = []
    consumed = 0
    for value in order:
        if values.index(value) == consumed:
            consumed += 1
        else:
            expected_failures.append(
                f"QueueMock.push({values[consumed]}) must be called before QueueMock.push({value})"
            )
        queue.push(value)

    assert reporter.failures == expected_failures
    assert [exp.used for exp in queue.mock_core.expectations] == [
        index < consumed for index in range(len(values))
    ]


@given(values=distinct_values, skipped=st.data())
def test_teardown_reports_first_unused(values: list[int], skipped: st.DataObject) -> None:
    """check_expectations names only the first expectation never invoked."""
    cut = skipped.draw(st.integers(min_value=0, max_value=len(values) - 1))
    queue, reporter = fresh_queue()
    for value in values:
        expect_call(queue, Queue.push, value)

    for value in values[:cut]:
        queue.push(value)
    queue.mock_core.check_expectations()

    assert reporter.failures == [f"QueueMock.push({values[cut]}) expected but not called"]


@given(value=st.integers(), repeats=st.integers(min_value=2, max_value=5))
def test_expectation_consumed_once(value: int, repeats: int) -> None:
    """Repeated invocations fall through to the unconditional stub."""
    queue, reporter = fresh_queue()
    on_call(queue, Queue.push).returns(False)
    expect_call(queue, Queue.push, value).returns(True)

    results = [queue.push(value) for _ in range(repeats)]

    assert results == [True] + [False] * (repeats - 1)
    assert reporter.failures == []

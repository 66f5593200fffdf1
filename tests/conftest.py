"""Shared pytest fixtures for callmock tests."""

import pytest
from hypothesis import settings

import callmock
from callmock import CallmockConfig, Core, RecordingReporter

# Configure hypothesis for property-based testing
settings.register_profile("ci", max_examples=100, deadline=None)
settings.register_profile("dev", max_examples=20, deadline=None)
settings.load_profile("dev")


@pytest.fixture
def config() -> CallmockConfig:
    """Provide a configuration isolated from the environment and .env files."""
    return CallmockConfig(_env_file=None)


@pytest.fixture
def reporter() -> RecordingReporter:
    """Provide a reporter that records failure messages."""
    return RecordingReporter()


@pytest.fixture
def core(reporter: RecordingReporter, config: CallmockConfig) -> Core:
    """Provide the engine for one test case."""
    return callmock.new(reporter, config)

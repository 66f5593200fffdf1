"""Failure reporters consumed by the engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Protocol


class Reporter(Protocol):
    """Test-runner capability used to signal a failure."""

    def fatal(self, message: str) -> None: ...


@dataclass
class RecordingReporter:
    """Reporter that keeps every failure message."""

    failures: list[str] = field(default_factory=list)

    def fatal(self, message: str) -> None:
        self.failures.append(message)

    @property
    def failed(self) -> bool:
        return bool(self.failures)

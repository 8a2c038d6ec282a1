"""
timedtask · Shared Test-Fixtures.
"""

from __future__ import annotations

import time
from typing import TYPE_CHECKING

import pytest

if TYPE_CHECKING:
    from collections.abc import Callable

    from timedtask.statistics import TimingSummary


class CollectingReporter:
    """Reporter, der alle Zusammenfassungen sammelt statt sie auszugeben."""

    def __init__(self) -> None:
        self.reports: list[TimingSummary | None] = []

    def __call__(self, summary: TimingSummary | None) -> None:
        self.reports.append(summary)


def wait_until(predicate: Callable[[], bool], timeout: float = 2.0) -> bool:
    """Pollt ``predicate`` bis True oder Timeout."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.005)
    return predicate()


@pytest.fixture
def reporter() -> CollectingReporter:
    return CollectingReporter()


@pytest.fixture
def wait_for() -> Callable[..., bool]:
    return wait_until

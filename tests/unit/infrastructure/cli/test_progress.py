import io
import logging

import pytest
from rich.console import Console

from workdocs.infrastructure.cli.progress import ProgressTracker, format_eta


@pytest.fixture
def tracker(clock):
    console = Console(file=io.StringIO(), width=120, color_system=None)
    return ProgressTracker(10, "sandbox", "Compensation", console=console, clock=clock)


@pytest.mark.parametrize("seconds, expected", [(0, "0s"), (-3, "0s"), (42, "42s"), (125, "2m 5s")])
def test_format_eta(seconds, expected):
    assert format_eta(seconds) == expected


def test_counts_and_rate(tracker, clock):
    tracker.start()
    clock.advance(60)
    for _ in range(3):
        tracker.update_success("a.pdf")
    tracker.update_failure("b.pdf")

    stats = tracker.get_stats()

    assert (stats.processed, stats.successful, stats.failed) == (4, 3, 1)
    assert stats.rate == 4.0
    assert stats.eta == 90
    tracker.complete()


def test_get_stats_returns_a_copy(tracker):
    tracker.update_success("a.pdf")
    snapshot = tracker.get_stats()
    tracker.update_success("b.pdf")

    assert snapshot.processed == 1


def test_progress_is_logged_at_most_every_five_seconds(tracker, clock, caplog):
    caplog.set_level(logging.INFO, logger="workdocs.infrastructure.cli.progress")

    clock.advance(10)
    tracker.update_success("a.pdf")
    clock.advance(1)
    tracker.update_success("b.pdf")
    clock.advance(5)
    tracker.update_success("c.pdf")

    updates = [r for r in caplog.records if r.getMessage() == "Progress update"]
    assert [r.processed for r in updates] == [1, 3]


def test_complete_is_idempotent(tracker):
    tracker.start()
    tracker.complete()
    tracker.complete()

"""Tests for the batch status update pass."""

from __future__ import annotations

import datetime
import unittest

from kickoff.errors import NotFoundError
from kickoff.match.status_updater import StatusUpdateJob
from tests.mock_utils import NOW, FakeMatchStore, make_match, queue_entry

HOUR = datetime.timedelta(hours=1)


def _seeded_store():
    return FakeMatchStore(
        make_match(
            "waiting",
            totalSlots=2,
            queue=[queue_entry("q1")],
        ),
        make_match("started", startTime=NOW - HOUR / 2),
        make_match("finished", status="in-progress", startTime=NOW - 3 * HOUR),
        make_match("cancelled", status="cancelled", startTime=NOW - 3 * HOUR),
        make_match("drifted", filledSlots=4, startTime=NOW + 2 * HOUR),
    )


class StatusUpdateJobTestCase(unittest.TestCase):
    """Tests for StatusUpdateJob.run."""

    def test_run_counts(self) -> None:
        """Transitions, skips, promotions and repairs are all counted."""
        store = _seeded_store()
        result = StatusUpdateJob(store, now=NOW).run()

        self.assertEqual(result.updated, 2)
        self.assertEqual(result.skipped, 3)
        self.assertEqual(result.queueProcessed, 1)
        self.assertEqual(result.consistencyFixed, 1)

        self.assertEqual(store.matches["started"]["status"], "in-progress")
        self.assertEqual(store.matches["finished"]["status"], "completed")
        self.assertEqual(store.matches["cancelled"]["status"], "cancelled")
        self.assertEqual(store.matches["drifted"]["filledSlots"], 1)
        self.assertEqual(store.matches["waiting"]["queue"], [])
        self.assertEqual(store.matches["waiting"]["filledSlots"], 2)

    def test_second_run_settles(self) -> None:
        """Running again right away changes nothing."""
        store = _seeded_store()
        StatusUpdateJob(store, now=NOW).run()
        writes = len(store.writes)

        result = StatusUpdateJob(store, now=NOW).run()
        self.assertEqual(
            result.to_dict(),
            {
                "updated": 0,
                "skipped": 5,
                "queueProcessed": 0,
                "consistencyFixed": 0,
            },
        )
        self.assertEqual(len(store.writes), writes)

    def test_failing_match_is_skipped(self) -> None:
        """One failing match does not stop the others."""
        store = _seeded_store()
        store.failing.add("started")
        result = StatusUpdateJob(store, now=NOW).run()

        self.assertEqual(result.updated, 1)
        self.assertEqual(result.skipped, 4)
        self.assertEqual(store.matches["started"]["status"], "scheduled")
        self.assertEqual(store.matches["finished"]["status"], "completed")

    def test_no_matches(self) -> None:
        """An empty store yields zero counts."""
        result = StatusUpdateJob(FakeMatchStore(), now=NOW).run()
        self.assertEqual(result.to_dict()["updated"], 0)
        self.assertEqual(result.to_dict()["skipped"], 0)

    def test_configured_duration(self) -> None:
        """The default duration is taken from the job."""
        store = FakeMatchStore(make_match(startTime=NOW - HOUR / 2))
        StatusUpdateJob(
            store, now=NOW, default_duration=datetime.timedelta(minutes=20)
        ).run()
        self.assertEqual(store.matches["m1"]["status"], "completed")


class RunForMatchTestCase(unittest.TestCase):
    """Tests for StatusUpdateJob.run_for_match."""

    def test_transition(self) -> None:
        """A single match is moved forward."""
        store = _seeded_store()
        result = StatusUpdateJob(store, now=NOW).run_for_match("started")
        self.assertEqual(
            result.to_dict(), {"updated": True, "newStatus": "in-progress"}
        )

    def test_cancelled(self) -> None:
        """A cancelled match is never updated."""
        store = _seeded_store()
        result = StatusUpdateJob(store, now=NOW).run_for_match("cancelled")
        self.assertFalse(result.updated)
        self.assertIsNone(result.newStatus)

    def test_promotes_waiting_players(self) -> None:
        """A scheduled match with free slots takes players from the queue."""
        store = _seeded_store()
        result = StatusUpdateJob(store, now=NOW).run_for_match("waiting")
        self.assertFalse(result.updated)
        self.assertEqual(len(store.matches["waiting"]["roster"]), 2)

    def test_missing_match(self) -> None:
        """An unknown match raises NotFoundError."""
        with self.assertRaises(NotFoundError):
            StatusUpdateJob(FakeMatchStore(), now=NOW).run_for_match("nope")

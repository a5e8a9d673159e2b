"""Tests for promoting queued users into freed slots."""

from __future__ import annotations

import threading
import unittest

from kickoff.errors import NotFoundError
from kickoff.match.queue_processor import QueueProcessor, oldest_first
from kickoff.match.roster import RosterService
from tests.mock_utils import FakeMatchStore, make_match, queue_entry, roster_entry


class QueueProcessorTestCase(unittest.TestCase):
    """Tests for QueueProcessor.process_queue."""

    def test_leave_then_promote(self) -> None:
        """A freed slot goes to the user who queued first."""
        store = FakeMatchStore(
            make_match(
                totalSlots=2,
                filledSlots=2,
                roster=[roster_entry("creator"), roster_entry("p2")],
                queue=[queue_entry("late", minutes=5), queue_entry("early", minutes=1)],
            )
        )
        RosterService.leave_match(store, "m1", "p2")
        result = QueueProcessor.process_queue(store, "m1")

        self.assertEqual(result.promoted, 1)
        self.assertEqual(result.remaining, 1)
        match = store.get("m1")
        assert match is not None
        self.assertEqual([e["userId"] for e in match["roster"]], ["creator", "early"])
        self.assertEqual([e["userId"] for e in match["queue"]], ["late"])
        self.assertEqual(match["filledSlots"], 2)
        self.assertTrue(match["roster"][1]["confirmed"])
        self.assertFalse(match["roster"][1]["hasPaid"])

    def test_promotes_up_to_free_capacity(self) -> None:
        """Several free slots take several queued users, oldest first."""
        store = FakeMatchStore(
            make_match(
                totalSlots=4,
                filledSlots=1,
                queue=[
                    queue_entry("c", minutes=3),
                    queue_entry("a", minutes=1),
                    queue_entry("d", minutes=4),
                    queue_entry("b", minutes=2),
                ],
            )
        )
        result = QueueProcessor.process_queue(store, "m1")

        self.assertEqual(result.promoted, 3)
        self.assertEqual(result.remaining, 1)
        assert result.match is not None
        self.assertEqual(
            [e["userId"] for e in result.match["roster"]], ["creator", "a", "b", "c"]
        )
        self.assertEqual([e["userId"] for e in result.match["queue"]], ["d"])
        self.assertEqual(result.match["filledSlots"], 4)

    def test_no_capacity(self) -> None:
        """A full match promotes nobody and writes nothing."""
        store = FakeMatchStore(
            make_match(
                totalSlots=1,
                filledSlots=1,
                queue=[queue_entry("q1")],
            )
        )
        result = QueueProcessor.process_queue(store, "m1")
        self.assertEqual(result.promoted, 0)
        self.assertEqual(result.remaining, 1)
        self.assertEqual(store.writes, [])

    def test_empty_queue(self) -> None:
        """An empty queue is a no-op."""
        store = FakeMatchStore(make_match())
        result = QueueProcessor.process_queue(store, "m1")
        self.assertEqual((result.promoted, result.remaining), (0, 0))
        self.assertEqual(store.writes, [])

    def test_not_scheduled(self) -> None:
        """Only scheduled matches take players from the queue."""
        store = FakeMatchStore(
            make_match(status="in-progress", queue=[queue_entry("q1")])
        )
        result = QueueProcessor.process_queue(store, "m1")
        self.assertEqual(result.promoted, 0)
        self.assertEqual(store.writes, [])

    def test_second_run_is_a_no_op(self) -> None:
        """Running again on a settled match changes nothing."""
        store = FakeMatchStore(
            make_match(totalSlots=2, queue=[queue_entry("q1"), queue_entry("q2", 1)])
        )
        QueueProcessor.process_queue(store, "m1")
        writes = len(store.writes)

        result = QueueProcessor.process_queue(store, "m1")
        self.assertEqual(result.promoted, 0)
        self.assertEqual(len(store.writes), writes)

    def test_concurrent_runs_do_not_overfill(self) -> None:
        """Parallel runs never promote more users than there are slots."""
        store = FakeMatchStore(
            make_match(
                totalSlots=3,
                queue=[queue_entry(f"q{i}", minutes=i) for i in range(5)],
            )
        )
        results = []

        def run():
            results.append(QueueProcessor.process_queue(store, "m1").promoted)

        threads = [threading.Thread(target=run) for _ in range(4)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        match = store.get("m1")
        assert match is not None
        self.assertEqual(sum(results), 2)
        self.assertEqual(len(match["roster"]), 3)
        self.assertEqual(match["filledSlots"], 3)
        self.assertEqual([e["userId"] for e in match["queue"]], ["q2", "q3", "q4"])

    def test_missing_match(self) -> None:
        """An unknown match raises NotFoundError."""
        with self.assertRaises(NotFoundError):
            QueueProcessor.process_queue(FakeMatchStore(), "nope")


class OldestFirstTestCase(unittest.TestCase):
    """Tests for queue ordering."""

    def test_ties_keep_stored_order(self) -> None:
        """Entries with the same timestamp keep their relative order."""
        queue = [queue_entry("b"), queue_entry("a"), queue_entry("c", minutes=-1)]
        self.assertEqual([e["userId"] for e in oldest_first(queue)], ["c", "b", "a"])

    def test_missing_timestamp_sorts_first(self) -> None:
        """An entry without a timestamp is treated as the oldest."""
        queue = [queue_entry("a"), {"userId": "legacy"}]
        self.assertEqual([e["userId"] for e in oldest_first(queue)], ["legacy", "a"])

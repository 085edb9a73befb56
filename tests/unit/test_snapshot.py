"""
Unit tests for MetricsSnapshotStore.
"""
import threading
import unittest

from src.scraper.snapshot import MetricsSnapshotStore, NEVER_RUN


class TestMetricsSnapshotStore(unittest.TestCase):
    """Tests for MetricsSnapshotStore."""

    def setUp(self):
        self.store = MetricsSnapshotStore()

    def test_initial_state(self):
        self.assertEqual(self.store.total_size, 0)
        self.assertEqual(self.store.last_execution_timestamp, NEVER_RUN)
        self.assertEqual(self.store.link_statuses, {})
        self.assertEqual(self.store.link_count, 0)
        self.assertFalse(self.store.has_run)

    def test_set_total_size(self):
        self.store.set_total_size(4096)
        self.assertEqual(self.store.total_size, 4096)

    def test_set_last_execution_timestamp(self):
        self.store.set_last_execution_timestamp(1700000000000)
        self.assertEqual(self.store.last_execution_timestamp, 1700000000000)
        self.assertTrue(self.store.has_run)

    def test_replace_link_statuses_sets_count(self):
        self.store.replace_link_statuses({"A": 0, "B": 1})
        self.assertEqual(self.store.link_statuses, {"A": 0, "B": 1})
        self.assertEqual(self.store.link_count, 2)

    def test_replace_drops_stale_entries(self):
        self.store.replace_link_statuses({"A": 0, "B": 1})
        self.store.replace_link_statuses({"C": 0})
        self.assertEqual(self.store.link_statuses, {"C": 0})
        self.assertEqual(self.store.link_count, 1)

    def test_link_statuses_returns_copy(self):
        self.store.replace_link_statuses({"A": 0})
        statuses = self.store.link_statuses
        statuses["B"] = 1
        self.assertEqual(self.store.link_statuses, {"A": 0})

    def test_replace_copies_input(self):
        source = {"A": 0}
        self.store.replace_link_statuses(source)
        source["B"] = 1
        self.assertEqual(self.store.link_count, 1)

    def test_as_dict(self):
        self.store.set_total_size(10)
        self.store.set_last_execution_timestamp(5)
        self.store.replace_link_statuses({"A": 1})
        self.assertEqual(self.store.as_dict(), {
            "total_size": 10,
            "last_execution_timestamp": 5,
            "link_count": 1,
            "link_statuses": {"A": 1},
        })

    def test_concurrent_readers_see_consistent_mapping(self):
        errors = []
        stop = threading.Event()

        def writer():
            i = 0
            while not stop.is_set():
                size = i % 5
                self.store.replace_link_statuses({f"link{n}": 0 for n in range(size)})
                i += 1

        def reader():
            for _ in range(2000):
                snapshot = self.store.as_dict()
                if len(snapshot["link_statuses"]) != snapshot["link_count"]:
                    errors.append(snapshot)

        w = threading.Thread(target=writer)
        readers = [threading.Thread(target=reader) for _ in range(3)]
        w.start()
        for r in readers:
            r.start()
        for r in readers:
            r.join()
        stop.set()
        w.join()

        self.assertEqual(errors, [])


if __name__ == "__main__":
    unittest.main()

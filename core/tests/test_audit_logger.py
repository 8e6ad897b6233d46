"""
core/tests/test_audit_logger.py

Unit tests for the SQLite audit Logger.
"""

from __future__ import annotations

import tempfile
import threading
import unittest
from datetime import timedelta
from pathlib import Path

from core.logging.logic.logger import Logger


class TestAuditLogger(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.logger = Logger(Path(self._tmp.name) / "nested" / "logs.db")

    def tearDown(self) -> None:
        self.logger.close()
        self._tmp.cleanup()

    def test_log_returns_entry_with_id(self) -> None:
        entry = self.logger.log("approvals", "document_signed", user_id=7, username="dean",
                                reference_id="d1", message="signed")
        self.assertIsNotNone(entry.id)
        self.assertEqual(entry.user_id, "7")
        self.assertEqual(entry.log_level, "INFO")

    def test_query_filters(self) -> None:
        self.logger.log("approvals", "document_signed", reference_id="d1")
        self.logger.log("approvals", "sign_failed", reference_id="d1", level="ERROR")
        self.logger.log("approvals", "document_signed", reference_id="d2")
        self.logger.log("other", "document_signed", reference_id="d1")

        d1 = self.logger.query_logs(feature="approvals", reference_id="d1")
        self.assertEqual([e.event for e in d1], ["sign_failed", "document_signed"])
        errors = self.logger.query_logs(level="ERROR")
        self.assertEqual(len(errors), 1)
        self.assertEqual(errors[0].username, "unknown")
        self.assertEqual(len(self.logger.fetch_logs(limit=2)), 2)

    def test_since_filter_and_dict_export(self) -> None:
        first = self.logger.log("approvals", "document_submitted", username="sam")
        later = self.logger.log("approvals", "document_signed")

        self.assertEqual(self.logger.query_logs(since=later.timestamp + timedelta(seconds=1)), [])
        both = self.logger.query_logs(since=first.timestamp)
        self.assertEqual([e.id for e in both], [later.id, first.id])

        exported = first.as_dict()
        self.assertEqual(exported["user"], "sam")
        self.assertEqual(exported["event"], "document_submitted")

    def test_clear_logs(self) -> None:
        self.logger.log("approvals", "note_updated")
        self.logger.clear_logs()
        self.assertEqual(self.logger.fetch_logs(), [])

    def test_concurrent_writers(self) -> None:
        def write(n: int) -> None:
            for i in range(20):
                self.logger.log("approvals", "document_signed", reference_id=f"t{n}-{i}")

        threads = [threading.Thread(target=write, args=(n,)) for n in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        self.assertEqual(len(self.logger.query_logs(feature="approvals")), 80)


if __name__ == "__main__":
    unittest.main()

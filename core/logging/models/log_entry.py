"""
log_entry.py

One row of the audit ``logs`` table.

• from_row()  – builds the entry from a sqlite3.Row / dict
• to_row()    – positional values for INSERT, in ``COLUMNS`` order
• as_dict()   – JSON-ready dict with an ISO-UTC timestamp
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Mapping, Optional, Tuple

COLUMNS: Tuple[str, ...] = (
    "timestamp", "user_id", "username", "feature", "event", "reference_id", "message", "log_level",
)


def _as_utc(value: Any) -> datetime:
    ts = datetime.fromisoformat(value) if isinstance(value, str) else value
    return ts if ts.tzinfo else ts.replace(tzinfo=timezone.utc)


@dataclass(frozen=True)
class LogEntry:
    feature: str
    event: str
    timestamp: datetime              # UTC
    log_level: str = "INFO"
    user_id: Optional[str] = None
    username: Optional[str] = None
    reference_id: Optional[str] = None
    message: Optional[str] = None
    id: Optional[int] = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "LogEntry":
        return cls(
            id=row["id"],
            timestamp=_as_utc(row["timestamp"]),
            log_level=row["log_level"] or "INFO",
            user_id=row["user_id"],
            username=row["username"],
            feature=row["feature"],
            event=row["event"],
            reference_id=row["reference_id"],
            message=row["message"],
        )

    def to_row(self) -> tuple:
        return (
            self.timestamp.isoformat(timespec="microseconds"), self.user_id, self.username, self.feature, self.event,
            self.reference_id, self.message, self.log_level,
        )

    def as_dict(self) -> dict:
        return {
            "id": self.id,
            "timestamp_utc": self.timestamp.replace(microsecond=0).isoformat(),
            "log_level": self.log_level,
            "user": self.username or self.user_id,
            "feature": self.feature,
            "event": self.event,
            "reference_id": self.reference_id,
            "message": self.message,
        }

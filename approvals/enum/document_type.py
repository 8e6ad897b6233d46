"""Document type enumeration."""
from __future__ import annotations

from enum import Enum


class DocumentType(str, Enum):
    PROPOSAL = "proposal"
    SAF = "saf"
    FACILITY = "facility"
    COMMUNICATION = "communication"
    MATERIAL = "material"

    @classmethod
    def parse(cls, value: "str | DocumentType") -> "DocumentType":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            allowed = ", ".join(t.value for t in cls)
            raise ValueError(f"Unknown document type {value!r} (allowed: {allowed})") from None

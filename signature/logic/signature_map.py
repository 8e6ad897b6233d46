"""
Reading and writing of a step's ``signature_map``.

Older rows hold a single box object, or an ``{"accounting": ..., "issuer": ...}``
pair for SAF documents. Everything is read into a flat list and always
written back as a JSON array.
"""
from __future__ import annotations

import json
import uuid
from typing import Any, Iterable

from core.common.errors import ValidationError
from ..models.signature_box import SignatureBox


# SAF legacy keys, in render order
LEGACY_ROLE_KEYS = ("accounting", "issuer")


def new_box_id() -> str:
    return uuid.uuid4().hex[:12]


def _number(entry: dict, key: str) -> float:
    value = entry.get(key)
    if isinstance(value, bool):
        raise ValidationError(f"signature_map entry has a malformed {key}.", field=key)
    try:
        return float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"signature_map entry has a malformed {key}.", field=key) from None


def box_from_dict(entry: Any) -> SignatureBox:
    if not isinstance(entry, dict):
        raise ValidationError("signature_map entry is not an object.", field="signature_map")
    page = entry.get("page", 1)
    if isinstance(page, bool) or (isinstance(page, float) and not page.is_integer()):
        raise ValidationError("signature_map entry has a malformed page.", field="page")
    try:
        page = int(page)
    except (TypeError, ValueError):
        raise ValidationError("signature_map entry has a malformed page.", field="page") from None
    box_id = entry.get("id") or new_box_id()
    return SignatureBox(
        id=str(box_id),
        page=page,
        x_pct=_number(entry, "x_pct"),
        y_pct=_number(entry, "y_pct"),
        w_pct=_number(entry, "w_pct"),
        h_pct=_number(entry, "h_pct"),
    )


def _entries(data: Any) -> list:
    if data is None:
        return []
    if isinstance(data, list):
        return data
    if isinstance(data, dict):
        if any(k in data for k in LEGACY_ROLE_KEYS):
            return [data[k] for k in LEGACY_ROLE_KEYS if data.get(k) is not None]
        return [data]
    raise ValidationError("signature_map must be an array of boxes.", field="signature_map")


def parse_signature_map(raw: Any) -> list[SignatureBox]:
    """
    Accept a JSON string, a list of box dicts, a single box dict or the legacy
    SAF pair. Empty input yields an empty list.
    """
    data = raw
    if isinstance(raw, (bytes, bytearray)):
        try:
            raw = raw.decode("utf-8")
        except UnicodeDecodeError:
            raise ValidationError("signature_map is not valid UTF-8.", field="signature_map") from None
    if isinstance(raw, str):
        if not raw.strip():
            return []
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as ex:
            raise ValidationError(f"signature_map is not valid JSON: {ex.msg}", field="signature_map") from ex

    return [box_from_dict(e) for e in _entries(data)]


def serialize_signature_map(boxes: Iterable[SignatureBox]) -> str:
    """Canonical form: a JSON array of box objects."""
    return json.dumps([b.to_dict() for b in boxes], separators=(",", ":"))

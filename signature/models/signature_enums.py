# signature/models/signature_enums.py
from __future__ import annotations
from enum import Enum


class PointerMode(str, Enum):
    """Single interaction slot of the placement editor."""
    IDLE = "idle"
    DRAGGING = "dragging"
    RESIZING = "resizing"


class HitZone(str, Enum):
    """Part of a box overlay under the pointer."""
    BODY = "body"
    RESIZE_HANDLE = "resize_handle"
    DELETE_BUTTON = "delete_button"


class CaptureSource(str, Enum):
    """How the current capture surface content was produced."""
    EMPTY = "empty"
    FREEHAND = "freehand"
    UPLOAD = "upload"

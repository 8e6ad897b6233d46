"""
Geometry of signature boxes.

Three coordinate spaces meet here:
  • screen space  – CSS/Tk pixels, origin top-left, depends on zoom
  • normalized    – fractions of the page at scale 1.0, origin top-left
  • PDF space     – points, origin bottom-left (mediabox lower-left corner)

Only normalized values are ever stored. Screen rectangles are always derived
from them, never the other way round, except while the user drags a box.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable

from core.common.errors import ValidationError
from ..models.signature_box import PdfRect, ScreenRect, SignatureBox

EPSILON = 1e-6

_FRACTIONS = ("x_pct", "y_pct", "w_pct", "h_pct")


def _clamp01(v: float) -> float:
    return max(0.0, min(1.0, v))


def _is_number(v: object) -> bool:
    return isinstance(v, (int, float)) and not isinstance(v, bool) and math.isfinite(v)


def describe_box(index: int, box: SignatureBox) -> str:
    """Human label used in validation messages, e.g. 'Box 2 on page 3'."""
    return f"Box {index} on page {box.page}"


# --------------------------------------------------------------------------- #
#  Screen <-> normalized
# --------------------------------------------------------------------------- #
def screen_to_normalized(box_rect: ScreenRect, canvas_rect: ScreenRect, *,
                         page: int, box_id: str) -> SignatureBox:
    """
    Convert a box's pixel rectangle into page fractions.

    Values are clamped to [0, 1]; if the box sticks out on the trailing side
    its extent is capped (``w = min(w, 1 - x)``), the offset is kept.
    """
    if not (_is_number(canvas_rect.width) and _is_number(canvas_rect.height)) \
            or canvas_rect.width <= 0 or canvas_rect.height <= 0:
        raise ValidationError("The rendered page has no usable size.", field="canvas")

    raw = {
        "x_pct": (box_rect.left - canvas_rect.left) / canvas_rect.width,
        "y_pct": (box_rect.top - canvas_rect.top) / canvas_rect.height,
        "w_pct": box_rect.width / canvas_rect.width,
        "h_pct": box_rect.height / canvas_rect.height,
    }
    for name, value in raw.items():
        if not _is_number(value):
            raise ValidationError(f"Signature box has a malformed {name}.", field=name)

    x = _clamp01(raw["x_pct"])
    y = _clamp01(raw["y_pct"])
    w = min(_clamp01(raw["w_pct"]), 1.0 - x)
    h = min(_clamp01(raw["h_pct"]), 1.0 - y)
    return SignatureBox(id=box_id, page=page, x_pct=x, y_pct=y, w_pct=w, h_pct=h)


def normalized_to_screen(box: SignatureBox, canvas_rect: ScreenRect) -> ScreenRect:
    """Pixel rectangle of ``box`` on a page currently rendered at ``canvas_rect``."""
    return ScreenRect(
        left=canvas_rect.left + box.x_pct * canvas_rect.width,
        top=canvas_rect.top + box.y_pct * canvas_rect.height,
        width=box.w_pct * canvas_rect.width,
        height=box.h_pct * canvas_rect.height,
    )


def clamp_box(box: SignatureBox) -> SignatureBox:
    """Same clamping rule as :func:`screen_to_normalized`, applied to stored fractions."""
    for name in _FRACTIONS:
        if not _is_number(getattr(box, name)):
            raise ValidationError(f"Signature box has a malformed {name}.", field=name)
    x = _clamp01(box.x_pct)
    y = _clamp01(box.y_pct)
    return SignatureBox(
        id=box.id,
        page=box.page,
        x_pct=x,
        y_pct=y,
        w_pct=min(_clamp01(box.w_pct), 1.0 - x),
        h_pct=min(_clamp01(box.h_pct), 1.0 - y),
    )


# --------------------------------------------------------------------------- #
#  Normalized -> PDF page space
# --------------------------------------------------------------------------- #
def normalized_to_pdf(box: SignatureBox, page_width: float, page_height: float, *,
                      origin_x: float = 0.0, origin_y: float = 0.0) -> PdfRect:
    """
    Flip the Y axis: PDF origin is bottom-left.

        x = x_pct * W
        y = H - y_pct * H - h_pct * H
        w = w_pct * W
        h = h_pct * H

    ``origin_x``/``origin_y`` shift by the mediabox lower-left corner.
    """
    if not (_is_number(page_width) and _is_number(page_height)) or page_width <= 0 or page_height <= 0:
        raise ValidationError(f"Page {box.page} has no usable size.", field="page")

    w = box.w_pct * page_width
    h = box.h_pct * page_height
    x = box.x_pct * page_width
    # y + h <= H even when y_pct + h_pct overshoots by float noise
    y = max(0.0, page_height - (box.y_pct * page_height) - h)
    return PdfRect(page=box.page, x=origin_x + x, y=origin_y + y, width=w, height=h)


# --------------------------------------------------------------------------- #
#  Validation
# --------------------------------------------------------------------------- #
def validate_box(box: SignatureBox, page_count: int, index: int = 1) -> None:
    """Raise ValidationError naming the box if it cannot be persisted."""
    label = describe_box(index, box)
    if not isinstance(box.page, int) or isinstance(box.page, bool) or box.page < 1 or box.page > page_count:
        raise ValidationError(
            f"Box {index} is on page {box.page}, but the document has {page_count} page(s).",
            field="page",
        )
    for name in _FRACTIONS:
        value = getattr(box, name)
        if not _is_number(value):
            raise ValidationError(f"{label} has a malformed {name}.", field=name)
        if value < -EPSILON or value > 1.0 + EPSILON:
            raise ValidationError(f"{label} has {name} outside 0..1.", field=name)
    if box.w_pct <= EPSILON or box.h_pct <= EPSILON:
        raise ValidationError(f"{label} has no width or height.", field="w_pct" if box.w_pct <= EPSILON else "h_pct")
    if box.x_pct + box.w_pct > 1.0 + EPSILON or box.y_pct + box.h_pct > 1.0 + EPSILON:
        raise ValidationError(f"{label} extends past the page edge.", field="extent")


@dataclass(frozen=True)
class BoxValidation:
    """Outcome of validating a whole placement: kept boxes and per-box rejections."""
    valid: tuple[SignatureBox, ...]
    rejected: tuple[tuple[SignatureBox, str], ...]

    @property
    def messages(self) -> list[str]:
        return [msg for _, msg in self.rejected]


def validate_boxes(boxes: Iterable[SignatureBox], page_count: int) -> BoxValidation:
    """
    Reject individual malformed boxes; fail the whole action only when no
    valid box remains.
    """
    boxes = list(boxes)
    if not boxes:
        raise ValidationError("Place at least one signature box before signing.", field="signature_map")

    valid: list[SignatureBox] = []
    rejected: list[tuple[SignatureBox, str]] = []
    for i, box in enumerate(boxes, start=1):
        try:
            validate_box(box, page_count, i)
        except ValidationError as ex:
            rejected.append((box, ex.message))
        else:
            valid.append(box)

    if not valid:
        raise ValidationError("No valid signature box remains: " + " ".join(m for _, m in rejected),
                              field="signature_map")
    return BoxValidation(valid=tuple(valid), rejected=tuple(rejected))

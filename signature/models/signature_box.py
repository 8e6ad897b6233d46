from __future__ import annotations
from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class SignatureBox:
    """
    Normalized placement of one signature mark.

    All four fractions are relative to the rendered page's logical width/height
    at scale 1.0, origin top-left. ``page`` is 1-based.
    """
    id: str
    page: int
    x_pct: float
    y_pct: float
    w_pct: float
    h_pct: float

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "page": self.page,
            "x_pct": self.x_pct,
            "y_pct": self.y_pct,
            "w_pct": self.w_pct,
            "h_pct": self.h_pct,
        }


@dataclass(frozen=True, slots=True)
class ScreenRect:
    """Pixel rectangle in screen space (CSS pixels, origin top-left)."""
    left: float
    top: float
    width: float
    height: float

    @property
    def right(self) -> float:
        return self.left + self.width

    @property
    def bottom(self) -> float:
        return self.top + self.height

    def contains(self, x: float, y: float) -> bool:
        return self.left <= x <= self.right and self.top <= y <= self.bottom


@dataclass(frozen=True, slots=True)
class PdfRect:
    """Rectangle in PDF page space (points; 1 pt = 1/72 inch), origin bottom-left."""
    page: int
    x: float
    y: float
    width: float
    height: float

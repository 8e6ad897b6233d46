from __future__ import annotations

import math
import time
from io import BytesIO
from typing import List, Optional, Tuple, Union

from PIL import Image, ImageDraw

from core.common.errors import ValidationError
from ..models.signature_config import SignatureConfig
from ..models.signature_enums import CaptureSource
from ..models.signature_image import SignatureImage

Point = Tuple[float, float]

INK = (0, 0, 0, 255)
# samples per quadratic segment
_CURVE_STEPS = 8


class SignatureCapture:
    """
    Off-screen capture surface (transparent RGBA) shared by the freehand pad
    and the image upload.

    Freehand: stroke width follows pointer speed (slow = thick, fast = thin),
    smoothed with ``new = a * last + (1 - a) * target``. Segments are drawn as
    quadratic curves through the midpoints of consecutive samples.

    ``accept()`` crops to the non-transparent bounding box plus padding and
    stores the result as the session's image, replacing any earlier one.
    """

    def __init__(self, config: Optional[SignatureConfig] = None) -> None:
        self._cfg = config or SignatureConfig()
        self._surface = self._blank()
        self._draw = ImageDraw.Draw(self._surface)
        self.source = CaptureSource.EMPTY
        self.image: Optional[SignatureImage] = None

        # current stroke
        self._points: List[Point] = []
        self._last_t: Optional[float] = None
        self._last_velocity = 0.0
        self._last_width = self._initial_width()

    # ---- surface -------------------------------------------------------
    @property
    def size(self) -> Tuple[int, int]:
        return self._surface.size

    @property
    def surface(self) -> Image.Image:
        """Live surface; callers must not mutate it."""
        return self._surface

    def _blank(self) -> Image.Image:
        return Image.new("RGBA", (self._cfg.capture_width, self._cfg.capture_height), (0, 0, 0, 0))

    def _initial_width(self) -> float:
        return (self._cfg.stroke_min_width + self._cfg.stroke_max_width) / 2.0

    def clear(self) -> None:
        self._surface = self._blank()
        self._draw = ImageDraw.Draw(self._surface)
        self._points = []
        self._last_t = None
        self.source = CaptureSource.EMPTY

    def has_content(self) -> bool:
        """True once any pixel has a non-zero alpha."""
        return self._surface.getchannel("A").getbbox() is not None

    # ---- freehand ------------------------------------------------------
    def begin_stroke(self, x: float, y: float, t: Optional[float] = None) -> None:
        if self.source == CaptureSource.UPLOAD:
            # drawing over an uploaded image starts a fresh pad
            self.clear()
        self._points = [(float(x), float(y))]
        self._last_t = time.monotonic() if t is None else t
        self._last_velocity = 0.0
        self._last_width = self._initial_width()
        # a tap leaves a dot
        self._dot((x, y), self._last_width)
        self.source = CaptureSource.FREEHAND

    def add_point(self, x: float, y: float, t: Optional[float] = None) -> float:
        """Extend the current stroke; returns the width used for the new segment."""
        if not self._points:
            self.begin_stroke(x, y, t)
            return self._last_width

        now = time.monotonic() if t is None else t
        prev = self._points[-1]
        point = (float(x), float(y))
        dist = math.dist(prev, point)
        last_t = now if self._last_t is None else self._last_t
        dt_ms = max((now - last_t) * 1000.0, 1.0)

        w = self._cfg.velocity_filter_weight
        velocity = w * (dist / dt_ms) + (1.0 - w) * self._last_velocity
        width = self._smoothed_width(velocity)

        self._points.append(point)
        self._draw_curve(width)

        self._last_velocity = velocity
        self._last_width = width
        self._last_t = now
        return width

    def end_stroke(self) -> None:
        if len(self._points) >= 2:
            # close the gap between the last midpoint and the pointer-up position
            a, b = self._points[-2], self._points[-1]
            self._segment([_mid(a, b), b], self._last_width)
        self._points = []
        self._last_t = None

    def _target_width(self, velocity: float) -> float:
        return max(self._cfg.stroke_max_width / (velocity + 1.0), self._cfg.stroke_min_width)

    def _smoothed_width(self, velocity: float) -> float:
        alpha = self._cfg.smoothing_alpha
        return alpha * self._last_width + (1.0 - alpha) * self._target_width(velocity)

    def _draw_curve(self, width: float) -> None:
        pts = self._points
        if len(pts) == 2:
            self._segment([pts[0], _mid(pts[0], pts[1])], width)
            return
        p0, p1, p2 = pts[-3], pts[-2], pts[-1]
        start, ctrl, end = _mid(p0, p1), p1, _mid(p1, p2)
        self._segment(_quadratic(start, ctrl, end, _CURVE_STEPS), width)

    def _segment(self, pts: List[Point], width: float) -> None:
        px = max(1, int(round(width)))
        self._draw.line(pts, fill=INK, width=px, joint="curve")
        self._dot(pts[-1], width)

    def _dot(self, p: Point, width: float) -> None:
        r = max(width / 2.0, 0.5)
        x, y = p
        self._draw.ellipse((x - r, y - r, x + r, y + r), fill=INK)

    # ---- upload --------------------------------------------------------
    def load_upload(self, data: Union[bytes, Image.Image]) -> None:
        """Scale the image to fit the surface, preserving aspect ratio, and center it."""
        if isinstance(data, Image.Image):
            img = data
        else:
            try:
                img = Image.open(BytesIO(data))
                img.load()
            except (OSError, ValueError) as ex:
                raise ValidationError(f"Uploaded file is not a readable image: {ex}", field="image") from ex

        img = img.convert("RGBA")
        if img.width <= 0 or img.height <= 0:
            raise ValidationError("Uploaded image is empty.", field="image")

        cw, ch = self.size
        scale = min(cw / img.width, ch / img.height)
        w = max(1, int(round(img.width * scale)))
        h = max(1, int(round(img.height * scale)))
        scaled = img.resize((w, h), Image.LANCZOS)

        self.clear()
        self._surface.alpha_composite(scaled, ((cw - w) // 2, (ch - h) // 2))
        self.source = CaptureSource.UPLOAD

    # ---- acceptance ----------------------------------------------------
    def accept(self) -> SignatureImage:
        bbox = self._surface.getchannel("A").getbbox()
        if bbox is None:
            raise ValidationError("No signature content. Draw or upload a signature first.", field="signature")

        pad = self._cfg.crop_padding
        cw, ch = self.size
        left, top, right, bottom = bbox
        crop = (max(0, left - pad), max(0, top - pad), min(cw, right + pad), min(ch, bottom + pad))
        self.image = SignatureImage.from_pil(self._surface.crop(crop))
        return self.image

    def discard(self) -> None:
        """Drop surface and accepted image (editor closed without signing)."""
        self.clear()
        self.image = None


def _mid(a: Point, b: Point) -> Point:
    return ((a[0] + b[0]) / 2.0, (a[1] + b[1]) / 2.0)


def _quadratic(p0: Point, c: Point, p1: Point, steps: int) -> List[Point]:
    out: List[Point] = []
    for i in range(steps + 1):
        t = i / steps
        u = 1.0 - t
        out.append((
            u * u * p0[0] + 2 * u * t * c[0] + t * t * p1[0],
            u * u * p0[1] + 2 * u * t * c[1] + t * t * p1[1],
        ))
    return out

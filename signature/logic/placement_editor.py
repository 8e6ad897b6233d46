"""
Placement editor state machine.

Framework independent: the Tk dialog (or a test) feeds pointer events in screen
pixels and redraws whatever the change callback reports. Only one box is ever
dragged or resized at a time.

    idle --down(body)--> dragging --up--> idle
    idle --down(handle)--> resizing --up--> idle
    idle --down(delete)--> idle   (box removed)
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Tuple

from core.common.errors import ValidationError
from ..models.signature_box import ScreenRect, SignatureBox
from ..models.signature_config import SignatureConfig
from ..models.signature_enums import HitZone, PointerMode
from ..models.signature_image import SignatureImage
from .geometry import clamp_box, normalized_to_screen, validate_boxes
from .signature_map import new_box_id

logger = logging.getLogger(__name__)

BoxChanged = Callable[[str, Optional[ScreenRect]], None]
ReadyChanged = Callable[[bool, str], None]

# SAF dual-box layout (fractions / pixel sizes)
SAF_X_PCT = 0.65
SAF_Y_PCT = 0.25
SAF_BOX_W_PX = 130.0
SAF_BOX_H_PX = 65.0


@dataclass
class PlacementSession:
    """
    Transient per-step editing context. Discarded when the editor closes
    without signing; snapshotted into the step when signing succeeds.
    """
    page_count: int
    canvas: ScreenRect
    page: int = 1
    image: Optional[SignatureImage] = None
    boxes: Dict[str, SignatureBox] = field(default_factory=dict)
    # box id -> group id for boxes that move together
    links: Dict[str, str] = field(default_factory=dict)

    def ordered(self) -> List[SignatureBox]:
        return list(self.boxes.values())

    def snapshot(self) -> Tuple[SignatureBox, ...]:
        return tuple(self.boxes.values())

    def clear(self) -> None:
        self.boxes.clear()
        self.links.clear()
        self.image = None


@dataclass
class _Grab:
    """The single drag/resize slot."""
    box_id: str
    pointer_x: float
    pointer_y: float
    start: Dict[str, SignatureBox]


class PlacementEditor:
    def __init__(
        self,
        session: PlacementSession,
        config: Optional[SignatureConfig] = None,
        *,
        on_box_changed: Optional[BoxChanged] = None,
        on_ready_changed: Optional[ReadyChanged] = None,
    ) -> None:
        self.session = session
        self._cfg = config or SignatureConfig()
        self._on_box_changed = on_box_changed
        self._on_ready_changed = on_ready_changed
        self.mode = PointerMode.IDLE
        self._grab: Optional[_Grab] = None

    # ---------------- Box management -----------------------------------
    def ensure_default_box(self) -> Optional[SignatureBox]:
        """Create one box at the top-left margin when the session has none."""
        if self.session.boxes:
            return None
        m = self._cfg.default_margin_pct
        return self.add_box(x_pct=m, y_pct=m)

    def add_box(self, *, page: Optional[int] = None, x_pct: Optional[float] = None,
                y_pct: Optional[float] = None, w_pct: Optional[float] = None,
                h_pct: Optional[float] = None) -> SignatureBox:
        canvas = self._require_canvas()
        m = self._cfg.default_margin_pct
        box = clamp_box(SignatureBox(
            id=new_box_id(),
            page=page or self.session.page,
            x_pct=m if x_pct is None else x_pct,
            y_pct=m if y_pct is None else y_pct,
            w_pct=self._cfg.default_box_width_px / canvas.width if w_pct is None else w_pct,
            h_pct=self._cfg.default_box_height_px / canvas.height if h_pct is None else h_pct,
        ))
        self.session.boxes[box.id] = box
        self._changed(box.id)
        self._revalidate()
        return box

    def add_linked_pair(self) -> Tuple[SignatureBox, SignatureBox]:
        """Accounting and issuer boxes for SAF documents; dragging either moves both."""
        canvas = self._require_canvas()
        w = SAF_BOX_W_PX / canvas.width
        h = SAF_BOX_H_PX / canvas.height
        first = self.add_box(x_pct=SAF_X_PCT, y_pct=SAF_Y_PCT, w_pct=w, h_pct=h)
        second = self.add_box(x_pct=SAF_X_PCT, y_pct=SAF_Y_PCT + h * 1.5, w_pct=w, h_pct=h)
        group = first.id
        self.session.links[first.id] = group
        self.session.links[second.id] = group
        return first, second

    def remove_box(self, box_id: str) -> None:
        if self.session.boxes.pop(box_id, None) is None:
            return
        self.session.links.pop(box_id, None)
        if self._grab and self._grab.box_id == box_id:
            self._grab = None
            self.mode = PointerMode.IDLE
        self._notify_box(box_id, None)
        self._revalidate()

    def set_image(self, image: Optional[SignatureImage]) -> None:
        self.session.image = image
        for box in self._visible():
            self._changed(box.id)
        self._revalidate()

    # ---------------- View ---------------------------------------------
    def set_page(self, page: int) -> None:
        if page < 1 or page > self.session.page_count:
            raise ValidationError(
                f"Page {page} does not exist; the document has {self.session.page_count} page(s).",
                field="page",
            )
        self.session.page = page

    def resize_canvas(self, canvas: ScreenRect) -> None:
        """Zoom or window resize: recompute overlay rects from the stored fractions."""
        self.session.canvas = canvas
        for box in self._visible():
            self._changed(box.id)

    def overlay_rect(self, box_id: str) -> ScreenRect:
        return normalized_to_screen(self.session.boxes[box_id], self.session.canvas)

    def overlays(self) -> List[Tuple[SignatureBox, ScreenRect]]:
        return [(b, normalized_to_screen(b, self.session.canvas)) for b in self._visible()]

    # ---------------- Hit testing --------------------------------------
    def delete_button_rect(self, rect: ScreenRect) -> ScreenRect:
        s = self._cfg.delete_button_px
        return ScreenRect(left=rect.right - s, top=rect.top, width=s, height=s)

    def resize_handle_rect(self, rect: ScreenRect) -> ScreenRect:
        s = self._cfg.resize_handle_px
        return ScreenRect(left=rect.right - s, top=rect.top, width=s, height=rect.height)

    def hit_test(self, x: float, y: float) -> Optional[Tuple[str, HitZone]]:
        # topmost (last added) first
        for box in reversed(self._visible()):
            rect = normalized_to_screen(box, self.session.canvas)
            if self.delete_button_rect(rect).contains(x, y):
                return box.id, HitZone.DELETE_BUTTON
            if self.resize_handle_rect(rect).contains(x, y):
                return box.id, HitZone.RESIZE_HANDLE
            if rect.contains(x, y):
                return box.id, HitZone.BODY
        return None

    # ---------------- Pointer events -----------------------------------
    def pointer_down(self, x: float, y: float) -> Optional[HitZone]:
        if self.mode != PointerMode.IDLE:
            # missed pointer-up; drop the stale grab
            self.pointer_up(x, y)
        hit = self.hit_test(x, y)
        if hit is None:
            return None
        box_id, zone = hit
        if zone == HitZone.DELETE_BUTTON:
            self.remove_box(box_id)
            return zone

        members = self._group(box_id) if zone == HitZone.BODY else [box_id]
        self._grab = _Grab(
            box_id=box_id,
            pointer_x=x,
            pointer_y=y,
            start={i: self.session.boxes[i] for i in members},
        )
        self.mode = PointerMode.DRAGGING if zone == HitZone.BODY else PointerMode.RESIZING
        return zone

    def pointer_move(self, x: float, y: float) -> None:
        if self._grab is None:
            return
        if self.mode == PointerMode.DRAGGING:
            self._drag_to(x, y)
        elif self.mode == PointerMode.RESIZING:
            self._resize_to(x)
        self._revalidate()

    def pointer_up(self, x: float, y: float) -> None:
        if self._grab is None:
            self.mode = PointerMode.IDLE
            return
        self.pointer_move(x, y)
        self._grab = None
        self.mode = PointerMode.IDLE

    def _drag_to(self, x: float, y: float) -> None:
        g = self._grab
        canvas = self.session.canvas
        dx = (x - g.pointer_x) / canvas.width
        dy = (y - g.pointer_y) / canvas.height

        # the whole group has to stay on the page
        lo_x = max(-b.x_pct for b in g.start.values())
        hi_x = min(1.0 - b.x_pct - b.w_pct for b in g.start.values())
        lo_y = max(-b.y_pct for b in g.start.values())
        hi_y = min(1.0 - b.y_pct - b.h_pct for b in g.start.values())
        dx = min(max(dx, lo_x), max(hi_x, lo_x))
        dy = min(max(dy, lo_y), max(hi_y, lo_y))

        for box_id, start in g.start.items():
            if box_id not in self.session.boxes:
                continue
            self.session.boxes[box_id] = clamp_box(SignatureBox(
                id=start.id, page=start.page,
                x_pct=start.x_pct + dx, y_pct=start.y_pct + dy,
                w_pct=start.w_pct, h_pct=start.h_pct,
            ))
            self._changed(box_id)

    def _resize_to(self, x: float) -> None:
        g = self._grab
        start = g.start[g.box_id]
        canvas = self.session.canvas
        left_px = canvas.left + start.x_pct * canvas.width
        max_px = canvas.right - left_px
        width_px = start.w_pct * canvas.width + (x - g.pointer_x)
        width_px = max(min(self._cfg.min_box_width_px, max_px), min(width_px, max_px))
        self.session.boxes[g.box_id] = SignatureBox(
            id=start.id, page=start.page,
            x_pct=start.x_pct, y_pct=start.y_pct,
            w_pct=width_px / canvas.width, h_pct=start.h_pct,
        )
        self._changed(g.box_id)

    # ---------------- Readiness ----------------------------------------
    def readiness(self) -> Tuple[bool, str]:
        if self.session.image is None:
            return False, "Capture a signature first."
        try:
            result = validate_boxes(self.session.ordered(), self.session.page_count)
        except ValidationError as ex:
            return False, ex.message
        if result.rejected:
            return True, " ".join(result.messages)
        return True, ""

    def is_ready(self) -> bool:
        return self.readiness()[0]

    # ---------------- Helpers ------------------------------------------
    def _require_canvas(self) -> ScreenRect:
        canvas = self.session.canvas
        if canvas.width <= 0 or canvas.height <= 0:
            raise ValidationError("The page has not been rendered yet.", field="canvas")
        return canvas

    def _visible(self) -> List[SignatureBox]:
        return [b for b in self.session.boxes.values() if b.page == self.session.page]

    def _group(self, box_id: str) -> List[str]:
        group = self.session.links.get(box_id)
        if group is None:
            return [box_id]
        return [i for i, g in self.session.links.items() if g == group and i in self.session.boxes]

    def _changed(self, box_id: str) -> None:
        box = self.session.boxes.get(box_id)
        if box is None or box.page != self.session.page:
            return
        self._notify_box(box_id, normalized_to_screen(box, self.session.canvas))

    def _notify_box(self, box_id: str, rect: Optional[ScreenRect]) -> None:
        if self._on_box_changed is not None:
            self._on_box_changed(box_id, rect)

    def _revalidate(self) -> None:
        if self._on_ready_changed is None:
            return
        ok, reason = self.readiness()
        logger.debug("placement ready=%s %s", ok, reason)
        self._on_ready_changed(ok, reason)

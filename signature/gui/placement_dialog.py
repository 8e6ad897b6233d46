from __future__ import annotations

import tkinter as tk
from tkinter import ttk
from typing import Dict, List, Optional, Sequence, Tuple

import pypdfium2 as pdfium
from PIL import Image, ImageEnhance, ImageTk

from ..logic.geometry import normalized_to_screen
from ..logic.placement_editor import PlacementEditor, PlacementSession
from ..models.signature_box import ScreenRect, SignatureBox
from ..models.signature_config import SignatureConfig
from ..models.signature_image import SignatureImage

ZOOM_STEPS = (0.5, 0.75, 1.0, 1.25, 1.5, 2.0)


class PlacementDialog(tk.Toplevel):
    """
    Multi-box placement on a rendered PDF page.

      • Page preview rendered with pypdfium2 at the current zoom
      • Captured signature drawn semi-transparent inside every box
      • Drag a box to move it, drag its right edge to resize, "×" deletes
      • Labels of already signed steps are shown read-only

    Result:
      self.result = tuple[SignatureBox, ...] or None when cancelled
    """

    CANVAS_MAX_W = 640
    CANVAS_MAX_H = 820
    LABEL_FONT = ("Segoe UI", 8)

    def __init__(
        self,
        parent: tk.Misc,
        pdf_bytes: bytes,
        image: SignatureImage,
        *,
        config: Optional[SignatureConfig] = None,
        linked_pair: bool = False,
        committed: Sequence[Tuple[SignatureBox, str]] = (),
    ) -> None:
        super().__init__(parent)
        self.title("Place Signature")
        self.transient(parent)
        self.grab_set()

        self._pdf = pdfium.PdfDocument(pdf_bytes)
        self._committed = list(committed)
        self._zoom_index = ZOOM_STEPS.index(1.0)
        self._page_img_tk: Optional[ImageTk.PhotoImage] = None
        self._sig_tk: Dict[str, ImageTk.PhotoImage] = {}
        self._sig_pil = image.to_pil()
        # ~60% alpha for the live preview
        r, g, b, a = self._sig_pil.split()
        self._sig_pil = Image.merge("RGBA", (r, g, b, ImageEnhance.Brightness(a).enhance(0.6)))

        self.result: Optional[Tuple[SignatureBox, ...]] = None

        session = PlacementSession(page_count=len(self._pdf), canvas=ScreenRect(0, 0, 1, 1))
        self._editor = PlacementEditor(
            session, config,
            on_box_changed=self._redraw_box,
            on_ready_changed=self._on_ready,
        )

        # ---------- UI
        top = ttk.Frame(self)
        top.grid(row=0, column=0, padx=10, pady=10, sticky="nsew")
        self.columnconfigure(0, weight=1)
        self.rowconfigure(0, weight=1)
        top.columnconfigure(0, weight=1)
        top.rowconfigure(1, weight=1)

        ctrl = ttk.Frame(top)
        ctrl.grid(row=0, column=0, sticky="ew")
        ctrl.columnconfigure(10, weight=1)

        ttk.Button(ctrl, text="◀", width=3, command=lambda: self._go(-1)).grid(row=0, column=0)
        self._page_lbl = ttk.Label(ctrl, width=12, anchor="center")
        self._page_lbl.grid(row=0, column=1)
        ttk.Button(ctrl, text="▶", width=3, command=lambda: self._go(1)).grid(row=0, column=2, padx=(0, 12))
        ttk.Button(ctrl, text="−", width=3, command=lambda: self._zoom(-1)).grid(row=0, column=3)
        ttk.Button(ctrl, text="+", width=3, command=lambda: self._zoom(1)).grid(row=0, column=4, padx=(0, 12))
        ttk.Button(ctrl, text="Add box", command=self._add_box).grid(row=0, column=5)

        self._status = ttk.Label(ctrl, foreground="#B00020")
        self._status.grid(row=1, column=0, columnspan=11, sticky="w", pady=(4, 0))

        self._sign_btn = ttk.Button(ctrl, text="Sign", command=self._ok, state="disabled")
        self._sign_btn.grid(row=0, column=11, sticky="e")
        ttk.Button(ctrl, text="Cancel", command=self._cancel).grid(row=0, column=12, sticky="e", padx=(6, 0))

        self._canvas = tk.Canvas(
            top, width=self.CANVAS_MAX_W, height=self.CANVAS_MAX_H, bg="#f8f8f8",
            highlightthickness=1, highlightbackground="#888",
        )
        self._canvas.grid(row=1, column=0, pady=(8, 0), sticky="nsew")
        self._canvas.bind("<ButtonPress-1>", lambda e: self._editor.pointer_down(e.x, e.y))
        self._canvas.bind("<B1-Motion>", lambda e: self._editor.pointer_move(e.x, e.y))
        self._canvas.bind("<ButtonRelease-1>", lambda e: self._editor.pointer_up(e.x, e.y))
        self._canvas.bind("<Configure>", lambda e: self._render_page())
        self.protocol("WM_DELETE_WINDOW", self._cancel)

        self._render_page()
        self._editor.set_image(image)
        if linked_pair:
            self._editor.add_linked_pair()
        else:
            self._editor.ensure_default_box()

    # ---------------- Render
    def _page_rect(self) -> ScreenRect:
        w_pt, h_pt = self._pdf[self._editor.session.page - 1].get_size()
        zoom = ZOOM_STEPS[self._zoom_index]
        fit = min(self.CANVAS_MAX_W / w_pt, self.CANVAS_MAX_H / h_pt)
        scale = fit * zoom
        cw = max(int(self._canvas.winfo_width()), self.CANVAS_MAX_W)
        ch = max(int(self._canvas.winfo_height()), self.CANVAS_MAX_H)
        w, h = w_pt * scale, h_pt * scale
        return ScreenRect(left=max(0.0, (cw - w) / 2), top=max(0.0, (ch - h) / 2), width=w, height=h)

    def _render_page(self) -> None:
        """Full redraw: page bitmap, committed labels, then every box overlay."""
        session = self._editor.session
        rect = self._page_rect()
        self._canvas.delete("all")
        self._sig_tk.clear()

        page = self._pdf[session.page - 1]
        w_pt, _ = page.get_size()
        pil = page.render(scale=rect.width / w_pt).to_pil()
        self._page_img_tk = ImageTk.PhotoImage(pil)
        self._canvas.create_image(rect.left, rect.top, image=self._page_img_tk, anchor="nw")
        self._page_lbl.configure(text=f"Page {session.page} / {session.page_count}")

        for box, text in self._committed:
            if box.page != session.page:
                continue
            r = normalized_to_screen(box, rect)
            self._canvas.create_rectangle(r.left, r.top, r.right, r.bottom, outline="#999", dash=(2, 2))
            self._canvas.create_text(r.left + 2, r.top + 2, text=text, anchor="nw",
                                     fill="#444", font=self.LABEL_FONT, width=max(r.width - 4, 10))

        # recomputes every overlay from the stored fractions
        self._editor.resize_canvas(rect)

    def _redraw_box(self, box_id: str, rect: Optional[ScreenRect]) -> None:
        tag = f"box:{box_id}"
        self._canvas.delete(tag)
        self._sig_tk.pop(box_id, None)
        if rect is None:
            return
        w, h = max(1, int(rect.width)), max(1, int(rect.height))
        self._sig_tk[box_id] = ImageTk.PhotoImage(self._sig_pil.resize((w, h), Image.LANCZOS))
        self._canvas.create_image(rect.left, rect.top, image=self._sig_tk[box_id], anchor="nw", tags=(tag,))
        self._canvas.create_rectangle(rect.left, rect.top, rect.right, rect.bottom,
                                      outline="#0A84FF", width=2, tags=(tag,))

        handle = self._editor.resize_handle_rect(rect)
        self._canvas.create_rectangle(handle.left, handle.top, handle.right, handle.bottom, stipple="gray50",
                                      fill="#0A84FF", outline="", tags=(tag,))
        d = self._editor.delete_button_rect(rect)
        self._canvas.create_rectangle(d.left, d.top, d.right, d.bottom, fill="#B00020", outline="", tags=(tag,))
        self._canvas.create_text(d.left + d.width / 2, d.top + d.height / 2, text="×",
                                 fill="white", tags=(tag,))

    def _on_ready(self, ok: bool, reason: str) -> None:
        self._sign_btn.configure(state="normal" if ok else "disabled")
        self._status.configure(text=reason)

    # ---------------- Actions
    def _go(self, delta: int) -> None:
        session = self._editor.session
        page = session.page + delta
        if 1 <= page <= session.page_count:
            self._editor.set_page(page)
            self._render_page()

    def _zoom(self, delta: int) -> None:
        self._zoom_index = max(0, min(len(ZOOM_STEPS) - 1, self._zoom_index + delta))
        self._render_page()

    def _add_box(self) -> None:
        self._editor.add_box()

    def _ok(self) -> None:
        if not self._editor.is_ready():
            return
        self.result = self._editor.session.snapshot()
        self._close()

    def _cancel(self) -> None:
        self.result = None
        self._editor.session.clear()
        self._close()

    def _close(self) -> None:
        self._pdf.close()
        self.destroy()


def ask_placement(parent: tk.Misc, pdf_bytes: bytes, image: SignatureImage, **kwargs) -> Optional[List[SignatureBox]]:
    dlg = PlacementDialog(parent, pdf_bytes, image, **kwargs)
    parent.wait_window(dlg)
    return list(dlg.result) if dlg.result else None

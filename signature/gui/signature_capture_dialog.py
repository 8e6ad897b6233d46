# signature/gui/signature_capture_dialog.py
from __future__ import annotations

import time
import tkinter as tk
from pathlib import Path
from tkinter import filedialog, messagebox, ttk
from typing import Optional

from PIL import ImageTk

from core.common.errors import ValidationError
from ..logic.signature_capture import SignatureCapture
from ..models.signature_config import SignatureConfig
from ..models.signature_image import SignatureImage


class SignatureCaptureDialog(tk.Toplevel):
    """
    Freehand pad (velocity-responsive width) or image upload.

    The Tk canvas only shows the off-screen capture surface; all drawing goes
    through SignatureCapture so the accepted PNG is exactly what was shown.

    Result:
      self.result = SignatureImage or None when cancelled
    """

    def __init__(self, parent: tk.Misc, *, config: Optional[SignatureConfig] = None) -> None:
        super().__init__(parent)
        self.title("Create Signature")
        self.transient(parent)
        self.grab_set()
        self.resizable(False, False)

        self._capture = SignatureCapture(config)
        self._preview_tk: Optional[ImageTk.PhotoImage] = None
        self.result: Optional[SignatureImage] = None
        w, h = self._capture.size

        self.columnconfigure(0, weight=1)

        bar = ttk.Frame(self)
        bar.grid(row=0, column=0, sticky="ew", padx=10, pady=(10, 4))
        ttk.Button(bar, text="Clear", command=self._clear).pack(side="left")
        ttk.Button(bar, text="Upload image", command=self._import).pack(side="left", padx=(6, 0))

        self.canvas = tk.Canvas(self, width=w, height=h, bg="white",
                                highlightthickness=1, highlightbackground="#888")
        self.canvas.grid(row=1, column=0, sticky="nsew", padx=10, pady=4)
        self.canvas.bind("<ButtonPress-1>", self._on_down)
        self.canvas.bind("<B1-Motion>", self._on_move)
        self.canvas.bind("<ButtonRelease-1>", self._on_up)

        btns = ttk.Frame(self)
        btns.grid(row=2, column=0, sticky="e", padx=10, pady=(4, 10))
        ttk.Button(btns, text="Cancel", command=self._cancel).pack(side="right", padx=(6, 0))
        ttk.Button(btns, text="Use signature", command=self._save).pack(side="right")
        self.protocol("WM_DELETE_WINDOW", self._cancel)

    # Canvas handlers
    def _on_down(self, e) -> None:
        self._capture.begin_stroke(e.x, e.y, time.monotonic())
        self._refresh()

    def _on_move(self, e) -> None:
        self._capture.add_point(e.x, e.y, time.monotonic())
        self._refresh()

    def _on_up(self, e) -> None:
        self._capture.end_stroke()
        self._refresh()

    def _refresh(self) -> None:
        self._preview_tk = ImageTk.PhotoImage(self._capture.surface)
        self.canvas.delete("all")
        self.canvas.create_image(0, 0, image=self._preview_tk, anchor="nw")

    # Actions
    def _clear(self) -> None:
        self._capture.clear()
        self._refresh()

    def _import(self) -> None:
        p = filedialog.askopenfilename(
            parent=self,
            title="Upload signature image",
            filetypes=[("Images", "*.png *.gif *.jpg *.jpeg")],
        )
        if not p:
            return
        try:
            self._capture.load_upload(Path(p).read_bytes())
        except (OSError, ValidationError) as ex:
            messagebox.showerror(title="Error", message=str(ex), parent=self)
            return
        self._refresh()

    def _cancel(self) -> None:
        self._capture.discard()
        self.destroy()

    def _save(self) -> None:
        try:
            self.result = self._capture.accept()
        except ValidationError as ex:
            messagebox.showerror(title="Error", message=ex.message, parent=self)
            return
        self.destroy()


def ask_signature(parent: tk.Misc, **kwargs) -> Optional[SignatureImage]:
    dlg = SignatureCaptureDialog(parent, **kwargs)
    parent.wait_window(dlg)
    return dlg.result

"""
PendingView – list of documents waiting for the current user.

UI only. Actions go through sign_flow, which talks to the WorkflowController.
"""

from __future__ import annotations

import tkinter as tk
from tkinter import ttk
from typing import Dict, Optional

from approvals.bootstrap import ApprovalsContext
from approvals.gui.sign_flow import reject_pending_step, sign_pending_step
from approvals.logic.status_badges import document_badge


class PendingView(ttk.Frame):
    def __init__(self, parent: tk.Misc, ctx: ApprovalsContext) -> None:
        super().__init__(parent)
        self._ctx = ctx
        self._rows: Dict[str, str] = {}
        self._build_ui()
        self.reload()

    # --------------------------------------------------------------- UI build
    def _build_ui(self) -> None:
        self.columnconfigure(0, weight=1)
        self.rowconfigure(1, weight=1)

        header = ttk.Frame(self)
        header.grid(row=0, column=0, sticky="ew", padx=12, pady=(12, 6))
        ttk.Label(header, text="Waiting for my approval", font=("Segoe UI", 14, "bold")).pack(side="left")
        ttk.Button(header, text="Refresh", command=self.reload).pack(side="right")

        self.tree = ttk.Treeview(self, columns=("type", "title", "status", "step"), show="headings",
                                 selectmode="browse")
        for col, text, width in (("type", "Type", 110), ("title", "Title", 360),
                                 ("status", "Status", 110), ("step", "Step", 160)):
            self.tree.heading(col, text=text)
            self.tree.column(col, width=width, anchor="w")
        self.tree.grid(row=1, column=0, sticky="nsew", padx=12)
        self.tree.bind("<<TreeviewSelect>>", lambda e: self._on_select())
        self.tree.bind("<Double-1>", lambda e: self._sign())

        actions = ttk.Frame(self)
        actions.grid(row=2, column=0, sticky="ew", padx=12, pady=10)
        self.btn_sign = ttk.Button(actions, text="Sign…", command=self._sign)
        self.btn_sign.pack(side="left")
        self.btn_reject = ttk.Button(actions, text="Reject…", command=self._reject)
        self.btn_reject.pack(side="left", padx=(6, 0))

    # ---------------------------------------------------------------- actions
    def reload(self) -> None:
        self.tree.delete(*self.tree.get_children())
        self._rows.clear()
        for doc in self._ctx.controller.pending_documents():
            step = doc.pending_step
            iid = self.tree.insert("", "end", values=(
                doc.doc_type.value, doc.title, document_badge(doc.status).label,
                f"{step.order}. {step.name}" if step else "",
            ))
            self._rows[iid] = doc.id
        self._on_select()

    def _selected(self) -> Optional[str]:
        sel = self.tree.selection()
        return self._rows.get(sel[0]) if sel else None

    def _on_select(self) -> None:
        state = "normal" if self._selected() else "disabled"
        self.btn_sign.configure(state=state)
        self.btn_reject.configure(state=state)

    def _sign(self) -> None:
        doc_id = self._selected()
        if doc_id and sign_pending_step(self, self._ctx, doc_id):
            self.reload()

    def _reject(self) -> None:
        doc_id = self._selected()
        if doc_id and reject_pending_step(self, self._ctx, doc_id):
            self.reload()

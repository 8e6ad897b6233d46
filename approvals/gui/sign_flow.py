# approvals/gui/sign_flow.py
from __future__ import annotations

import logging
import tkinter as tk
from tkinter import messagebox, simpledialog
from typing import Optional

from approvals.bootstrap import ApprovalsContext
from approvals.enum.document_type import DocumentType
from approvals.logic.redaction_renderer import RedactionRenderer
from signature.gui.placement_dialog import ask_placement
from signature.gui.signature_capture_dialog import ask_signature

logger = logging.getLogger(__name__)


def sign_pending_step(parent: tk.Misc, ctx: ApprovalsContext, doc_id: str) -> bool:
    """
    Capture -> place -> sign for the current user's pending step.
    Returns True when the step was signed.
    """
    controller = ctx.controller
    doc = controller.get_document(doc_id)
    if doc is None:
        messagebox.showerror("Sign", "Document not found.", parent=parent)
        return False
    step = doc.pending_step
    if step is None:
        messagebox.showinfo("Sign", f"Document is {doc.status.value}.", parent=parent)
        return False

    image = ask_signature(parent, config=ctx.signature_config)
    if image is None:
        return False

    pdf_bytes = ctx.service.read_artifact(doc)
    boxes = ask_placement(
        parent, pdf_bytes, image,
        config=ctx.signature_config,
        linked_pair=doc.doc_type == DocumentType.SAF,
        committed=RedactionRenderer(ctx.config.date_format).committed(doc),
    )
    if not boxes:
        return False

    result = controller.sign(doc.id, step.id, boxes, image, expected_version=doc.version)
    if not result.success:
        if result.retryable:
            messagebox.showwarning("Sign", f"{result.message}\n\nPlease reload and try again.", parent=parent)
        else:
            messagebox.showerror("Sign", result.message, parent=parent)
        return False
    messagebox.showinfo("Sign", result.message, parent=parent)
    return True


def reject_pending_step(parent: tk.Misc, ctx: ApprovalsContext, doc_id: str) -> bool:
    doc = ctx.controller.get_document(doc_id)
    step = doc.pending_step if doc else None
    if step is None:
        return False
    reason: Optional[str] = simpledialog.askstring("Reject", "Reason for rejection:", parent=parent)
    if reason is None:
        return False
    result = ctx.controller.reject(doc.id, step.id, reason, expected_version=doc.version)
    if not result.success:
        messagebox.showerror("Reject", result.message, parent=parent)
        return False
    return True

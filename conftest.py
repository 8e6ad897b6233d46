"""Shared pytest fixtures: generated PDFs, signature PNGs, a content-stream inspector
and a wired approval workflow on temporary storage."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from io import BytesIO
from typing import Callable, Iterator, List, Tuple

import pytest
from PIL import Image, ImageDraw
from pypdf import PdfReader
from reportlab.pdfgen import canvas

from approvals.adapters.artifact_store import FilesystemArtifactStore
from approvals.adapters.notification_sink import RecordingNotificationSink
from approvals.logic.workflow_service import WorkflowService
from approvals.models.workflow_models import Document
from approvals.repository.sqlite_workflow_repository import SQLiteWorkflowRepository
from approvals.services.audit_service import AuditService
from core.logging.logic.logger import Logger
from core.models.user import Actor


def make_pdf(pages: int = 1, size: Tuple[float, float] = (612.0, 792.0)) -> bytes:
    buf = BytesIO()
    c = canvas.Canvas(buf, pagesize=size)
    for i in range(pages):
        c.drawString(72, 72, f"Page {i + 1}")
        c.showPage()
    c.save()
    return buf.getvalue()


def make_signature_png(width: int = 120, height: int = 40) -> bytes:
    img = Image.new("RGBA", (width, height), (0, 0, 0, 0))
    ImageDraw.Draw(img).line([(4, height - 6), (width // 2, 6), (width - 4, height - 10)], fill=(0, 0, 0, 255), width=3)
    buf = BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()


def _mul(m: List[float], n: List[float]) -> List[float]:
    a, b, c, d, e, f = m
    na, nb, nc, nd, ne, nf = n
    return [
        a * na + b * nc,
        a * nb + b * nd,
        c * na + d * nc,
        c * nb + d * nd,
        e * na + f * nc + ne,
        e * nb + f * nd + nf,
    ]


def image_placements(pdf_bytes: bytes, page: int) -> List[Tuple[float, float, float, float]]:
    """(x, y, width, height) of every XObject painted on ``page`` (1-based)."""
    reader = PdfReader(BytesIO(pdf_bytes))
    contents = reader.pages[page - 1].get_contents()
    if contents is None:
        return []
    ctm = [1.0, 0.0, 0.0, 1.0, 0.0, 0.0]
    stack: List[List[float]] = []
    found: List[Tuple[float, float, float, float]] = []
    for operands, op in contents.operations:
        if op == b"q":
            stack.append(list(ctm))
        elif op == b"Q":
            ctm = stack.pop() if stack else [1.0, 0.0, 0.0, 1.0, 0.0, 0.0]
        elif op == b"cm":
            ctm = _mul([float(v) for v in operands], ctm)
        elif op == b"Do":
            found.append((ctm[4], ctm[5], ctm[0], ctm[3]))
    return found


@pytest.fixture
def pdf_factory() -> Callable[..., bytes]:
    return make_pdf


@pytest.fixture
def signature_png() -> bytes:
    return make_signature_png()


@pytest.fixture
def placements() -> Callable[[bytes, int], List[Tuple[float, float, float, float]]]:
    return image_placements


# ---- approval workflow --------------------------------------------------------
class FakeClock:
    def __init__(self, start: datetime) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **delta) -> None:
        self.now = self.now + timedelta(**delta)


@dataclass
class WorkflowEnv:
    service: WorkflowService
    repository: SQLiteWorkflowRepository
    artifacts: FilesystemArtifactStore
    notifier: RecordingNotificationSink
    audit: AuditService
    audit_logger: Logger
    clock: FakeClock

    def submit_two_steps(self, submitter: Actor, pages: int = 1) -> Document:
        return self.service.submit(
            "proposal", "Club week proposal", submitter, make_pdf(pages=pages),
            positions=[("Dean", "u1", "Una One"), ("EVP", "u2", "Udo Two")],
        )


@pytest.fixture
def workflow_env(tmp_path) -> Iterator[WorkflowEnv]:
    repo = SQLiteWorkflowRepository(tmp_path / "approvals.db")
    store = FilesystemArtifactStore(tmp_path / "uploads")
    audit_logger = Logger(tmp_path / "logs.db")
    audit = AuditService(audit_logger)
    notifier = RecordingNotificationSink()
    clock = FakeClock(datetime(2024, 3, 1, 9, 30, tzinfo=timezone.utc))
    service = WorkflowService(
        repository=repo, artifacts=store, notifier=notifier, audit=audit, clock=clock,
    )
    yield WorkflowEnv(service, repo, store, notifier, audit, audit_logger, clock)
    repo.close()
    audit_logger.close()

from __future__ import annotations

import logging
from collections import defaultdict
from io import BytesIO
from typing import Dict, List, Sequence, Tuple

from PIL import Image
from pypdf import PdfReader, PdfWriter
from pypdf.errors import PyPdfError
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas

from core.common.errors import ArtifactError
from ..models.signature_box import PdfRect, SignatureBox
from .geometry import normalized_to_pdf

logger = logging.getLogger(__name__)

# pypdf raises plain ValueError/KeyError on some broken xref tables
_READ_ERRORS = (PyPdfError, ValueError, KeyError, TypeError, OSError)


def _open(pdf_bytes: bytes) -> PdfReader:
    try:
        reader = PdfReader(BytesIO(pdf_bytes))
        _ = len(reader.pages)
        return reader
    except _READ_ERRORS as ex:
        raise ArtifactError(f"The document could not be read as PDF: {ex}") from ex


def page_count(pdf_bytes: bytes) -> int:
    return len(_open(pdf_bytes).pages)


def page_sizes(pdf_bytes: bytes) -> List[Tuple[float, float]]:
    """(width, height) in points for every page, from the mediabox."""
    return [(float(p.mediabox.width), float(p.mediabox.height)) for p in _open(pdf_bytes).pages]


class PdfSigner:
    """
    Burns one signature PNG into a PDF at every given box.

    One overlay page is built per affected page with reportlab, the image is
    stretched to the box's PDF rectangle and the overlay is merged onto the
    original page with pypdf. Pages without boxes are copied unchanged.
    """

    @staticmethod
    def pdf_rects(reader: PdfReader, boxes: Sequence[SignatureBox]) -> List[PdfRect]:
        rects: List[PdfRect] = []
        n = len(reader.pages)
        for box in boxes:
            if box.page < 1 or box.page > n:
                raise ArtifactError(f"Page {box.page} does not exist; the document has {n} page(s).")
            mb = reader.pages[box.page - 1].mediabox
            rects.append(normalized_to_pdf(
                box, float(mb.width), float(mb.height),
                origin_x=float(mb.left), origin_y=float(mb.bottom),
            ))
        return rects

    @staticmethod
    def _make_overlay(page_w: float, page_h: float, image: Image.Image, rects: Sequence[PdfRect]) -> bytes:
        buf = BytesIO()
        c = canvas.Canvas(buf, pagesize=(page_w, page_h))
        reader = ImageReader(image)
        for r in rects:
            c.drawImage(reader, r.x, r.y, width=r.width, height=r.height, mask="auto")
        c.save()
        return buf.getvalue()

    @staticmethod
    def embed(pdf_bytes: bytes, boxes: Sequence[SignatureBox], png_signature: bytes) -> bytes:
        """Return new PDF bytes with the signature drawn at each box. The input is never modified."""
        if not boxes:
            raise ArtifactError("Nothing to embed: no signature boxes given.")
        try:
            sig = Image.open(BytesIO(png_signature)).convert("RGBA")
        except (OSError, ValueError) as ex:
            raise ArtifactError(f"Signature image could not be decoded: {ex}") from ex

        reader = _open(pdf_bytes)
        by_page: Dict[int, List[PdfRect]] = defaultdict(list)
        for rect in PdfSigner.pdf_rects(reader, boxes):
            by_page[rect.page].append(rect)

        writer = PdfWriter()
        try:
            for i, page in enumerate(reader.pages, start=1):
                rects = by_page.get(i)
                if rects:
                    mb = page.mediabox
                    # overlay spans the mediabox in absolute page coordinates
                    overlay = PdfSigner._make_overlay(float(mb.right), float(mb.top), sig, rects)
                    page.merge_page(PdfReader(BytesIO(overlay)).pages[0])
                writer.add_page(page)

            out = BytesIO()
            writer.write(out)
        except _READ_ERRORS as ex:
            raise ArtifactError(f"Embedding the signature failed: {ex}") from ex

        logger.info("Embedded signature into %d box(es) on page(s) %s", len(boxes), sorted(by_page))
        return out.getvalue()

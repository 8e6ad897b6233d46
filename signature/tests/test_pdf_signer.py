"""Embedding: stamps land at the flipped PDF rectangle on the right page."""
from __future__ import annotations

from io import BytesIO

import pytest
from pypdf import PdfReader, PdfWriter
from pypdf.generic import RectangleObject

from core.common.errors import ArtifactError
from signature.logic.pdf_signer import PdfSigner, page_count, page_sizes
from signature.models.signature_box import SignatureBox


def _box(box_id="b1", page=1, x=0.1, y=0.1, w=0.2, h=0.05) -> SignatureBox:
    return SignatureBox(id=box_id, page=page, x_pct=x, y_pct=y, w_pct=w, h_pct=h)


def test_single_box_lands_at_transformed_rect(pdf_factory, signature_png, placements) -> None:
    src = pdf_factory(pages=2)
    out = PdfSigner.embed(src, [_box()], signature_png)

    stamps = placements(out, 1)
    assert len(stamps) == 1
    x, y, w, h = stamps[0]
    assert x == pytest.approx(61.2, abs=0.01)
    assert y == pytest.approx(673.2, abs=0.01)
    assert w == pytest.approx(122.4, abs=0.01)
    assert h == pytest.approx(39.6, abs=0.01)
    assert placements(out, 2) == []


def test_multiple_boxes_across_pages(pdf_factory, signature_png, placements) -> None:
    src = pdf_factory(pages=3)
    boxes = [_box("a", page=1), _box("b", page=3, x=0.5, y=0.8, w=0.3, h=0.1), _box("c", page=3)]
    out = PdfSigner.embed(src, boxes, signature_png)
    assert len(placements(out, 1)) == 1
    assert placements(out, 2) == []
    page3 = sorted(placements(out, 3))
    assert len(page3) == 2
    x, y, _, _ = page3[1]
    assert x == pytest.approx(306.0, abs=0.01)
    assert y == pytest.approx(792 - 0.8 * 792 - 0.1 * 792, abs=0.01)


def test_input_bytes_are_left_untouched(pdf_factory, signature_png, placements) -> None:
    src = pdf_factory()
    PdfSigner.embed(src, [_box()], signature_png)
    assert placements(src, 1) == []
    assert page_count(src) == 1


def test_mediabox_origin_is_respected(signature_png, placements) -> None:
    writer = PdfWriter()
    page = writer.add_blank_page(width=612, height=792)
    page.mediabox = RectangleObject([10, 20, 622, 812])
    buf = BytesIO()
    writer.write(buf)

    out = PdfSigner.embed(buf.getvalue(), [_box()], signature_png)
    x, y, _, _ = placements(out, 1)[0]
    assert x == pytest.approx(71.2, abs=0.01)
    assert y == pytest.approx(693.2, abs=0.01)


def test_page_sizes_reports_mediabox(pdf_factory) -> None:
    assert page_sizes(pdf_factory(pages=2, size=(595.0, 842.0))) == [(595.0, 842.0), (595.0, 842.0)]


def test_corrupt_pdf_raises_artifact_error(signature_png) -> None:
    with pytest.raises(ArtifactError):
        PdfSigner.embed(b"%PDF-1.4 garbage", [_box()], signature_png)


def test_page_out_of_range_raises_artifact_error(pdf_factory, signature_png) -> None:
    with pytest.raises(ArtifactError) as exc:
        PdfSigner.embed(pdf_factory(pages=1), [_box(page=2)], signature_png)
    assert "Page 2" in exc.value.message


def test_undecodable_signature_raises_artifact_error(pdf_factory) -> None:
    with pytest.raises(ArtifactError):
        PdfSigner.embed(pdf_factory(), [_box()], b"not a png")


def test_output_is_a_readable_pdf(pdf_factory, signature_png) -> None:
    out = PdfSigner.embed(pdf_factory(pages=2), [_box()], signature_png)
    assert len(PdfReader(BytesIO(out)).pages) == 2

"""Page rotation expected by the mail vendor's scanners.

The vendor feeds production sheets with the front rotated 270 degrees and
every following page rotated 90 degrees clockwise. Only the ``/Rotate`` page
attribute changes; page content is not re-flowed.
"""
from __future__ import annotations

import io
import logging

from pypdf import PdfReader, PdfWriter


logger = logging.getLogger(__name__)

FRONT_PAGE_ROTATION = 270
INNER_PAGE_ROTATION = 90


def rotate_for_mail_vendor(pdf_bytes: bytes) -> bytes:
    """Return ``pdf_bytes`` with vendor rotations applied, or unchanged on failure."""
    try:
        reader = PdfReader(io.BytesIO(pdf_bytes))
        writer = PdfWriter()
        for index, page in enumerate(reader.pages):
            page.rotation = FRONT_PAGE_ROTATION if index == 0 else INNER_PAGE_ROTATION
            writer.add_page(page)
        out = io.BytesIO()
        writer.write(out)
        logger.info("Rotated %d page(s) for mail vendor orientation", len(reader.pages))
        return out.getvalue()
    except Exception as exc:
        logger.warning("PDF rotation failed, using unrotated PDF: %s", exc)
        return pdf_bytes


def merge_pdfs(*documents: bytes) -> bytes:
    """Concatenate PDFs page by page."""
    writer = PdfWriter()
    for raw in documents:
        reader = PdfReader(io.BytesIO(raw))
        for page in reader.pages:
            writer.add_page(page)
    out = io.BytesIO()
    writer.write(out)
    return out.getvalue()

"""Factories for Lambda request handlers."""

from .card_pdfs_handler import create_card_pdfs_handler
from .card_previews_handler import create_card_previews_handler
from .generate_card_handler import create_generate_card_handler
from .serve_pdf_handler import create_serve_pdf_handler
from .template_pdf_handler import create_template_pdf_handler

__all__ = [
    "create_card_pdfs_handler",
    "create_card_previews_handler",
    "create_generate_card_handler",
    "create_serve_pdf_handler",
    "create_template_pdf_handler",
]

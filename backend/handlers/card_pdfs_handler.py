"""Handler for ``POST /generate-card-pdfs``."""

from __future__ import annotations

from typing import Any, Dict

from models import FORMAT_CHOICES, FORMAT_PREVIEW
from request_parser import RequestParser

from .responses import error_response, json_response


class CardPdfsHandler:
    def __init__(self, logger, render_service) -> None:
        self._logger = logger
        self._service = render_service

    def handle(self, event: Dict[str, Any]) -> Dict[str, Any]:
        parser = RequestParser(event)
        data = parser.json()
        order_id = str(data.get("orderId") or "").strip()
        if not order_id:
            return error_response("Order ID is required", 400)

        card_format = str(data.get("format") or FORMAT_PREVIEW).strip().lower()
        if card_format not in FORMAT_CHOICES:
            return error_response(f"Invalid format '{data.get('format')}'. Expected one of: {', '.join(FORMAT_CHOICES)}", 400)

        self._logger.info("Generating PDFs for order: %s", order_id)
        try:
            payload = self._service.generate_card_pdfs(order_id, card_format, data.get("origin") or parser.origin)
        except Exception as exc:
            self._logger.error("generate-card-pdfs error for order %s: %s", order_id, exc)
            return error_response(str(exc) or "Failed to generate PDF cards")

        return json_response(payload)


def create_card_pdfs_handler(logger, render_service):
    handler = CardPdfsHandler(logger=logger, render_service=render_service)
    return handler.handle

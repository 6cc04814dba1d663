"""Handler for ``POST /generate-card-previews``."""

from __future__ import annotations

from typing import Any, Dict

from request_parser import RequestParser

from .responses import error_response, json_response


class CardPreviewsHandler:
    def __init__(self, logger, render_service) -> None:
        self._logger = logger
        self._service = render_service

    def handle(self, event: Dict[str, Any]) -> Dict[str, Any]:
        parser = RequestParser(event)
        data = parser.json()
        order_id = str(data.get("orderId") or "").strip()
        if not order_id:
            return error_response("Order ID is required", 400)

        self._logger.info("Generating card previews for order %s", order_id)
        try:
            previews = self._service.generate_previews(order_id, data.get("origin") or parser.origin)
        except Exception as exc:
            self._logger.error("generate-card-previews error: %s", exc)
            return error_response(f"Preview generation failed: {exc}")

        return json_response({"success": True, **previews})


def create_card_previews_handler(logger, render_service):
    handler = CardPreviewsHandler(logger=logger, render_service=render_service)
    return handler.handle

"""Handler for ``POST /generate-card-gotenberg``."""

from __future__ import annotations

from typing import Any, Dict

from errors import CardServiceError, RequestValidationError
from models import RenderRequest
from request_parser import RequestParser

from .responses import error_response, json_response


class GenerateCardHandler:
    def __init__(self, logger, render_service) -> None:
        self._logger = logger
        self._service = render_service

    def handle(self, event: Dict[str, Any]) -> Dict[str, Any]:
        parser = RequestParser(event)
        data = parser.json()
        if not data.get("origin") and parser.origin:
            data["origin"] = parser.origin

        try:
            request = RenderRequest.from_payload(data)
        except RequestValidationError as exc:
            return error_response(str(exc), exc.status_code)

        try:
            result = self._service.render(request)
        except CardServiceError as exc:
            self._logger.error("generate-card-gotenberg failed for order %s: %s", request.order_id, exc)
            return error_response(str(exc))
        except Exception as exc:
            self._logger.exception("generate-card-gotenberg error for order %s", request.order_id)
            return error_response(str(exc))

        self._logger.info("Order %s rendered to %s", request.order_id, result.pdf_path or "debug HTML")
        return json_response(result.to_payload())


def create_generate_card_handler(logger, render_service):
    handler = GenerateCardHandler(logger=logger, render_service=render_service)
    return handler.handle

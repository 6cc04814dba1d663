"""Handler for ``POST /generate-template-pdf``."""

from __future__ import annotations

from typing import Any, Dict

from request_parser import RequestParser

from .responses import error_response, json_response


class TemplatePdfHandler:
    def __init__(self, logger, render_service) -> None:
        self._logger = logger
        self._service = render_service

    def handle(self, event: Dict[str, Any]) -> Dict[str, Any]:
        parser = RequestParser(event)
        data = parser.json()
        template_id = str(data.get("templateId") or "").strip()
        if not template_id:
            return error_response("Template ID is required", 400)

        try:
            result = self._service.generate_template_pdf(template_id, parser.origin)
        except Exception as exc:
            self._logger.error("generate-template-pdf error for %s: %s", template_id, exc)
            return error_response(str(exc) or "Failed to generate template PDF")

        payload = result.to_payload()
        payload.pop("publicUrl", None)
        return json_response(payload)


def create_template_pdf_handler(logger, render_service):
    handler = TemplatePdfHandler(logger=logger, render_service=render_service)
    return handler.handle

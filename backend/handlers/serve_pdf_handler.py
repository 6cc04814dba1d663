"""Handler that streams a stored card PDF back to the browser."""

from __future__ import annotations

import base64
import hashlib
import os
import urllib.parse
from typing import Any, Dict, Optional

from errors import NotFoundError

from .responses import error_response


class ServePdfHandler:
    def __init__(self, logger, storage) -> None:
        self._logger = logger
        self._storage = storage

    def handle(self, event: Dict[str, Any]) -> Dict[str, Any]:
        pdf_path = self._extract_path(event)
        if not pdf_path:
            return error_response("PDF path is required", 400)

        self._logger.info("Serving PDF from path: %s", pdf_path)
        try:
            content, _ = self._storage.download(pdf_path)
        except NotFoundError:
            self._logger.error("PDF not found in storage: %s", pdf_path)
            return error_response("PDF not found", 404)
        except Exception as exc:
            self._logger.error("serve-pdf error: %s", exc)
            return error_response(str(exc))

        if not content:
            return error_response("No PDF data", 404)

        filename = os.path.basename(pdf_path) or "document.pdf"
        return {
            "statusCode": 200,
            "headers": {
                "Content-Type": "application/pdf",
                "Content-Disposition": f'inline; filename="{filename}"',
                "Cache-Control": "public, max-age=3600",
                "X-Content-SHA256": hashlib.sha256(content).hexdigest(),
                "X-Original-Length": str(len(content)),
            },
            "body": base64.b64encode(content).decode("utf-8"),
            "isBase64Encoded": True,
        }

    @staticmethod
    def _extract_path(event: Dict[str, Any]) -> Optional[str]:
        query = event.get("queryStringParameters") or {}
        raw = query.get("path")
        if not raw:
            return None
        path = urllib.parse.unquote(str(raw)).strip().lstrip("/")
        # Keys never climb out of the bucket root.
        if ".." in path.split("/"):
            return None
        return path or None


def create_serve_pdf_handler(logger, storage):
    handler = ServePdfHandler(logger=logger, storage=storage)
    return handler.handle

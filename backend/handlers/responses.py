"""JSON response helpers shared by the request handlers."""

from __future__ import annotations

import json
from typing import Any, Dict


def json_response(payload: Dict[str, Any], status_code: int = 200) -> Dict[str, Any]:
    return {
        "statusCode": status_code,
        "headers": {"Content-Type": "application/json"},
        "body": json.dumps(payload),
    }


def error_response(message: str, status_code: int = 500) -> Dict[str, Any]:
    return json_response({"error": message or "Unknown error"}, status_code)

"""Local development server.

Wraps the Lambda entry point in Flask so the storefront can call the render
functions on ``http://localhost:5000/<function-name>`` without deploying.

```
export GOTENBERG_URL=http://localhost:3000 GOTENBERG_API_KEY=dev ...
python backend/app.py
```
"""

from __future__ import annotations

import base64
import logging
import os

from flask import Flask, Response, request

from lambda_function import lambda_handler


app = Flask(__name__)
logger = logging.getLogger(__name__)


def build_event() -> dict:
    """Translate the current Flask request into a Lambda proxy event."""
    raw = request.get_data() or b""
    return {
        "httpMethod": request.method,
        "path": request.path,
        "headers": dict(request.headers),
        "queryStringParameters": request.args.to_dict() or None,
        "body": base64.b64encode(raw).decode("ascii") if raw else "",
        "isBase64Encoded": bool(raw),
    }


@app.route("/", defaults={"path": ""}, methods=["GET", "POST", "OPTIONS"])
@app.route("/<path:path>", methods=["GET", "POST", "OPTIONS"])
def dispatch(path: str) -> Response:
    result = lambda_handler(build_event(), None)
    body = result.get("body") or ""
    payload = base64.b64decode(body) if result.get("isBase64Encoded") else body
    return Response(payload, status=result.get("statusCode", 200), headers=result.get("headers") or {})


if __name__ == "__main__":
    app.run(port=int(os.environ.get("PORT", "5000")), debug=False)

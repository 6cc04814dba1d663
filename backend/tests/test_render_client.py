"""Tests for the Gotenberg HTTP client."""

from __future__ import annotations

import io
import sys
import zipfile
from pathlib import Path
from unittest.mock import MagicMock

import pytest
import requests


PROJECT_ROOT = Path(__file__).resolve().parents[2]
BACKEND_PATH = PROJECT_ROOT / "backend"
if str(BACKEND_PATH) not in sys.path:
    sys.path.insert(0, str(BACKEND_PATH))


from conftest import PNG_BYTES  # noqa: E402  pylint: disable=wrong-import-position
from errors import RenderServiceError  # noqa: E402  pylint: disable=wrong-import-position
from render_client import GotenbergClient, extract_png  # noqa: E402  pylint: disable=wrong-import-position


def _session(content: bytes = b"%PDF-1.7", status_code: int = 200, text: str = "") -> MagicMock:
    response = MagicMock()
    response.ok = 200 <= status_code < 300
    response.status_code = status_code
    response.content = content
    response.text = text
    session = MagicMock()
    session.post.return_value = response
    return session


def test_convert_html_posts_page_geometry_and_auth_headers() -> None:
    session = _session()
    client = GotenbergClient("https://gotenberg.test/", "secret", wait_delay="1500ms", timeout=30, session=session)

    pdf = client.convert_html("<html></html>", 10.25, 7.0)

    assert pdf == b"%PDF-1.7"
    args, kwargs = session.post.call_args
    assert args[0] == "https://gotenberg.test/forms/chromium/convert/html"
    fields = kwargs["data"]
    assert fields["paperWidth"] == "10.25"
    assert fields["paperHeight"] == "7"
    assert {fields[k] for k in ("marginTop", "marginBottom", "marginLeft", "marginRight")} == {"0"}
    assert fields["preferCssPageSize"] == "true"
    assert fields["waitDelay"] == "1500ms"
    assert kwargs["files"]["files"] == ("index.html", b"<html></html>", "text/html")
    assert kwargs["headers"]["Authorization"] == "Bearer secret"
    assert kwargs["headers"]["X-Api-Key"] == "secret"
    assert kwargs["timeout"] == 30


def test_convert_url_sends_print_media_and_accepts_pdf() -> None:
    session = _session()
    client = GotenbergClient("https://gotenberg.test", "k", session=session)

    client.convert_url("https://shop.test/#/preview/front/o1", 5.125, 7)

    args, kwargs = session.post.call_args
    assert args[0].endswith("/forms/chromium/convert/url")
    assert kwargs["data"]["url"] == "https://shop.test/#/preview/front/o1"
    assert kwargs["data"]["emulatedMediaType"] == "print"
    assert kwargs["files"] is None
    assert kwargs["headers"]["Accept"] == "application/pdf"


def test_error_response_raises_with_status_and_body() -> None:
    session = _session(status_code=503, text="chromium crashed")
    client = GotenbergClient("https://gotenberg.test", "k", session=session)

    with pytest.raises(RenderServiceError) as excinfo:
        client.convert_html("<html></html>", 5.125, 7)

    assert excinfo.value.response_status == 503
    assert "chromium crashed" in str(excinfo.value)
    assert "503" in str(excinfo.value)


def test_transport_failure_is_reported_as_render_error() -> None:
    session = MagicMock()
    session.post.side_effect = requests.ConnectionError("refused")
    client = GotenbergClient("https://gotenberg.test", "k", session=session)

    with pytest.raises(RenderServiceError) as excinfo:
        client.convert_html("<html></html>", 5.125, 7)

    assert excinfo.value.response_status == 0


def test_screenshot_unpacks_zip_response() -> None:
    archive = io.BytesIO()
    with zipfile.ZipFile(archive, "w") as zf:
        zf.writestr("notes.txt", "ignored")
        zf.writestr("index.png", PNG_BYTES)
    session = _session(content=archive.getvalue())
    client = GotenbergClient("https://gotenberg.test", "k", session=session)

    png = client.screenshot_html("<html></html>", 492, 672, ".sheet")

    assert png == PNG_BYTES
    fields = session.post.call_args.kwargs["data"]
    assert (fields["width"], fields["height"], fields["selector"]) == ("492", "672", ".sheet")
    assert session.post.call_args.args[0].endswith("/forms/chromium/screenshot/html")


def test_extract_png_accepts_raw_png_and_rejects_other_payloads() -> None:
    assert extract_png(PNG_BYTES) == PNG_BYTES
    with pytest.raises(ValueError):
        extract_png(b"<html>error</html>")


def test_rasterize_pdf_screenshots_embedded_document() -> None:
    session = _session(content=PNG_BYTES)
    client = GotenbergClient("https://gotenberg.test", "k", session=session)

    png = client.rasterize_pdf(b"%PDF-1.7 signature")

    assert png == PNG_BYTES
    kwargs = session.post.call_args.kwargs
    assert (kwargs["data"]["width"], kwargs["data"]["height"]) == ("400", "200")
    html_bytes = kwargs["files"]["files"][1]
    assert b'type="application/pdf"' in html_bytes
    assert b"data:application/pdf;base64," in html_bytes

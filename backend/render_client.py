"""HTTP client for the Gotenberg Chromium conversion service."""
from __future__ import annotations

import base64
import io
import logging
import time
import zipfile
from typing import Dict, Optional

import requests

from errors import RenderServiceError
from settings import Settings


logger = logging.getLogger(__name__)

PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"

PDF_EMBED_TEMPLATE = (
    "<!DOCTYPE html>\n<html>\n<head>\n<meta charset=\"utf-8\" />\n<style>\n"
    "html, body {{ margin: 0; padding: 0; width: {width}px; height: {height}px; }}\n"
    "body {{ background: #ffffff; overflow: hidden; }}\n"
    "embed {{ width: 100%; height: 100%; border: none; }}\n"
    "</style>\n</head>\n<body>\n"
    "<embed src=\"{src}\" type=\"application/pdf\" />\n"
    "</body>\n</html>"
)


def _format_inches(value: float) -> str:
    return f"{value:g}"


class GotenbergClient:
    def __init__(
        self,
        base_url: str,
        api_key: str,
        wait_delay: str = "2000ms",
        timeout: Optional[float] = None,
        session: Optional[requests.Session] = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._api_key = api_key
        self._wait_delay = wait_delay
        self._timeout = timeout
        self._session = session or requests.Session()

    @classmethod
    def from_settings(cls, settings: Settings, session: Optional[requests.Session] = None) -> "GotenbergClient":
        return cls(
            settings.gotenberg_url,
            settings.gotenberg_api_key,
            wait_delay=settings.render_wait_delay,
            timeout=settings.render_timeout,
            session=session,
        )

    # Public API ---------------------------------------------------------

    def convert_html(self, html_content: str, paper_width_in: float, paper_height_in: float) -> bytes:
        fields = self._page_fields(paper_width_in, paper_height_in)
        files = {"files": ("index.html", html_content.encode("utf-8"), "text/html")}
        return self._post("/forms/chromium/convert/html", fields, files)

    def convert_url(self, url: str, paper_width_in: float, paper_height_in: float) -> bytes:
        fields = self._page_fields(paper_width_in, paper_height_in)
        fields["url"] = url
        fields["emulatedMediaType"] = "print"
        return self._post("/forms/chromium/convert/url", fields, None, accept="application/pdf")

    def screenshot_html(self, html_content: str, width_px: int, height_px: int, selector: Optional[str] = None) -> bytes:
        """Return PNG bytes of the rendered page, unpacking zip responses."""
        fields = {
            "emulatedMediaType": "print",
            "waitDelay": self._wait_delay,
            "width": str(width_px),
            "height": str(height_px),
            "format": "png",
        }
        if selector:
            fields["selector"] = selector
        files = {"files": ("index.html", html_content.encode("utf-8"), "text/html")}
        payload = self._post("/forms/chromium/screenshot/html", fields, files)
        return extract_png(payload)

    def rasterize_pdf(self, pdf_bytes: bytes, width_px: int = 400, height_px: int = 200) -> bytes:
        """Screenshot page 1 of ``pdf_bytes`` embedded in a blank page."""
        data_url = f"data:application/pdf;base64,{base64.b64encode(pdf_bytes).decode('ascii')}"
        html_content = PDF_EMBED_TEMPLATE.format(width=width_px, height=height_px, src=data_url)
        return self.screenshot_html(html_content, width_px, height_px)

    # Internal helpers ---------------------------------------------------

    def _page_fields(self, paper_width_in: float, paper_height_in: float) -> Dict[str, str]:
        return {
            "paperWidth": _format_inches(paper_width_in),
            "paperHeight": _format_inches(paper_height_in),
            "marginTop": "0",
            "marginBottom": "0",
            "marginLeft": "0",
            "marginRight": "0",
            "landscape": "false",
            "preferCssPageSize": "true",
            "waitDelay": self._wait_delay,
        }

    def _headers(self, accept: Optional[str] = None) -> Dict[str, str]:
        # The deployment's proxy checks X-Api-Key, Gotenberg's basic setup checks the bearer token.
        headers = {
            "Authorization": f"Bearer {self._api_key}",
            "X-Api-Key": self._api_key,
        }
        if accept:
            headers["Accept"] = accept
        return headers

    def _post(self, route: str, fields: Dict[str, str], files, accept: Optional[str] = None) -> bytes:
        url = f"{self._base_url}{route}"
        start = time.time()
        logger.info("POST %s (%s)", url, ", ".join(f"{k}={v}" for k, v in fields.items() if k != "url"))
        try:
            response = self._session.post(
                url,
                data=fields,
                files=files,
                headers=self._headers(accept),
                timeout=self._timeout,
            )
        except requests.RequestException as exc:
            raise RenderServiceError(0, str(exc), route) from exc

        if not response.ok:
            body = response.text
            logger.error("Gotenberg %s failed with %s: %s", route, response.status_code, body[:500])
            raise RenderServiceError(response.status_code, body, route)

        logger.info(
            "Gotenberg %s returned %d bytes in %.2fs",
            route,
            len(response.content),
            time.time() - start,
        )
        return response.content


def extract_png(payload: bytes) -> bytes:
    """Return PNG bytes from a raw PNG or a zip archive holding one."""
    if payload.startswith(PNG_SIGNATURE):
        return payload
    if zipfile.is_zipfile(io.BytesIO(payload)):
        with zipfile.ZipFile(io.BytesIO(payload)) as archive:
            for name in archive.namelist():
                if name.lower().endswith(".png"):
                    return archive.read(name)
        raise ValueError("Could not extract PNG from ZIP")
    raise ValueError("Screenshot response is not a PNG image")

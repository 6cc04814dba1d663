"""Shared fixtures and in-memory fakes for the render pipeline tests."""

from __future__ import annotations

import io
import sys
import urllib.error
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import pytest
from pypdf import PdfWriter


PROJECT_ROOT = Path(__file__).resolve().parents[2]
BACKEND_PATH = PROJECT_ROOT / "backend"
if str(BACKEND_PATH) not in sys.path:
    sys.path.insert(0, str(BACKEND_PATH))


from errors import NotFoundError  # noqa: E402  pylint: disable=wrong-import-position
from models import Order, Template  # noqa: E402  pylint: disable=wrong-import-position
from storage import CardStorage  # noqa: E402  pylint: disable=wrong-import-position


PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 24
JPEG_BYTES = b"\xff\xd8\xff\xe0" + b"\x00" * 24
PUBLIC_BASE = "https://proj.supabase.co/storage/v1/object/public/holiday-cards"


def make_pdf(pages: int = 2, width: float = 504, height: float = 738) -> bytes:
    writer = PdfWriter()
    for _ in range(pages):
        writer.add_blank_page(width=width, height=height)
    out = io.BytesIO()
    writer.write(out)
    return out.getvalue()


class FakeStorage(CardStorage):
    def __init__(self, objects: Optional[Dict[str, Tuple[bytes, Optional[str]]]] = None) -> None:
        super().__init__(None, "holiday-cards", PUBLIC_BASE)
        self.objects = dict(objects or {})
        self.downloads: List[str] = []
        self.uploads: List[Tuple[str, bytes]] = []

    def download(self, path: str):
        self.downloads.append(path)
        if path not in self.objects:
            raise NotFoundError(f"Object not found: {path}")
        return self.objects[path]

    def upload_pdf(self, path: str, pdf_bytes: bytes) -> None:
        self.uploads.append((path, pdf_bytes))
        self.objects[path] = (pdf_bytes, "application/pdf")

    def create_signed_url(self, path: str, expires_in: Optional[int] = None) -> Optional[str]:
        return f"https://proj.supabase.co/storage/v1/object/sign/holiday-cards/{path}?token=t"


class FakeRepository:
    def __init__(self, orders=None, templates=None, client_records=None) -> None:
        self.orders: Dict[str, Order] = {o.id: o for o in (orders or [])}
        self.templates: Dict[str, Template] = {t.id: t for t in (templates or [])}
        self.client_records: Dict[str, int] = dict(client_records or {})
        self.updates: List[Tuple[str, dict]] = []

    def get_order(self, order_id: str) -> Order:
        if order_id not in self.orders:
            raise NotFoundError("Order not found")
        return self.orders[order_id]

    def get_template(self, template_id) -> Template:
        if template_id not in self.templates:
            raise NotFoundError("Template not found")
        return self.templates[template_id]

    def count_client_records(self, order_id: str) -> int:
        return self.client_records.get(order_id, 0)

    def update_order(self, order_id: str, fields: dict) -> None:
        self.updates.append((order_id, fields))


class FakeRenderClient:
    def __init__(self, pdf_bytes: Optional[bytes] = None, png_bytes: bytes = PNG_BYTES) -> None:
        self.pdf_bytes = pdf_bytes if pdf_bytes is not None else make_pdf(2)
        self.png_bytes = png_bytes
        self.html_calls: List[Tuple[str, float, float]] = []
        self.url_calls: List[Tuple[str, float, float]] = []
        self.screenshot_calls: List[Tuple[str, int, int, Optional[str]]] = []

    def convert_html(self, html_content: str, paper_width_in: float, paper_height_in: float) -> bytes:
        self.html_calls.append((html_content, paper_width_in, paper_height_in))
        return self.pdf_bytes

    def convert_url(self, url: str, paper_width_in: float, paper_height_in: float) -> bytes:
        self.url_calls.append((url, paper_width_in, paper_height_in))
        return make_pdf(1)

    def screenshot_html(self, html_content: str, width_px: int, height_px: int, selector=None) -> bytes:
        self.screenshot_calls.append((html_content, width_px, height_px, selector))
        return self.png_bytes

    @property
    def call_count(self) -> int:
        return len(self.html_calls) + len(self.url_calls) + len(self.screenshot_calls)


class FakeFetcher:
    def __init__(self, responses: Optional[Dict[str, Tuple[bytes, Optional[str]]]] = None) -> None:
        self.responses = dict(responses or {})
        self.requested: List[str] = []

    def __call__(self, url: str, timeout: float):
        self.requested.append(url)
        if url not in self.responses:
            raise urllib.error.HTTPError(url, 404, "Not Found", hdrs=None, fp=None)
        return self.responses[url]


class SteppingClock:
    def __init__(self, start: float = 1_700_000_000.0, step: float = 0.25) -> None:
        self.now = start
        self.step = step

    def __call__(self) -> float:
        value = self.now
        self.now += self.step
        return value


@pytest.fixture
def storage() -> FakeStorage:
    return FakeStorage(
        {
            "logos/acme.png": (PNG_BYTES, "image/png"),
            "signatures/jane.png": (PNG_BYTES, "image/png"),
            "signatures/jane-cropped.png": (JPEG_BYTES, "application/octet-stream"),
            "templates/snow.jpg": (JPEG_BYTES, "image/jpeg"),
        }
    )


@pytest.fixture
def fetcher() -> FakeFetcher:
    return FakeFetcher()


@pytest.fixture
def render_client() -> FakeRenderClient:
    return FakeRenderClient()

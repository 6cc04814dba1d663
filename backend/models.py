from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional

from errors import RequestValidationError


DEFAULT_MESSAGE = "Warmest wishes for a joyful and restful holiday season."

CARD_FRONT = "front"
CARD_INSIDE = "inside"
CARD_BOTH = "front+inside"
ONLY_CHOICES = (CARD_FRONT, CARD_INSIDE, CARD_BOTH)

FORMAT_PREVIEW = "preview"
FORMAT_PRODUCTION = "production"
FORMAT_CHOICES = (FORMAT_PREVIEW, FORMAT_PRODUCTION)

ORIENTATION_PORTRAIT = "portrait"
ORIENTATION_LANDSCAPE = "landscape"
ORIENTATION_CHOICES = (ORIENTATION_PORTRAIT, ORIENTATION_LANDSCAPE)

MODE_HTML = "html"
MODE_URL = "url"
MODE_DEBUG = "debug"
MODE_CHOICES = (MODE_URL, MODE_HTML, MODE_DEBUG)


@dataclass
class Order:
    id: str
    template_id: Optional[str] = None
    custom_message: Optional[str] = None
    selected_message: Optional[str] = None
    logo_url: Optional[str] = None
    signature_url: Optional[str] = None
    cropped_signature_url: Optional[str] = None
    readable_order_id: Optional[str] = None
    card_quantity: Optional[int] = None
    production_combined_pdf_path: Optional[str] = None
    production_combined_pdf_public_url: Optional[str] = None
    production_combined_pdf_generated_at: Optional[str] = None

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "Order":
        known = {name: row.get(name) for name in cls.__dataclass_fields__}
        known["id"] = str(row.get("id") or "")
        return cls(**known)

    @property
    def message(self) -> str:
        return self.custom_message or self.selected_message or DEFAULT_MESSAGE

    @property
    def logo_path(self) -> Optional[str]:
        return self.logo_url or None

    @property
    def signature_path(self) -> Optional[str]:
        """The cropped signature wins over the raw upload."""
        return self.cropped_signature_url or self.signature_url or None


@dataclass
class Template:
    id: str
    name: str = ""
    description: Optional[str] = None
    preview_url: Optional[str] = None

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "Template":
        return cls(
            id=str(row.get("id") or ""),
            name=row.get("name") or "",
            description=row.get("description"),
            preview_url=row.get("preview_url"),
        )


def _choice(data: Dict[str, Any], key: str, choices: tuple[str, ...], default: str) -> str:
    raw = data.get(key)
    if raw is None or raw == "":
        return default
    value = str(raw).strip().lower()
    if value not in choices:
        raise RequestValidationError(f"Invalid {key} '{raw}'. Expected one of: {', '.join(choices)}")
    return value


def _flag(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes"}
    return bool(value)


@dataclass(frozen=True)
class RenderRequest:
    order_id: str
    only: str = CARD_BOTH
    format: str = FORMAT_PREVIEW
    orientation: str = ORIENTATION_LANDSCAPE
    rotate: bool = False
    mode: str = MODE_HTML
    origin: Optional[str] = None
    full_url: Optional[str] = None
    preview_only: bool = False

    @classmethod
    def from_payload(cls, data: Dict[str, Any]) -> "RenderRequest":
        order_id = str(data.get("orderId") or "").strip()
        if not order_id:
            raise RequestValidationError("Order ID is required")
        return cls(
            order_id=order_id,
            only=_choice(data, "only", ONLY_CHOICES, CARD_BOTH),
            format=_choice(data, "format", FORMAT_CHOICES, FORMAT_PREVIEW),
            orientation=_choice(data, "orientation", ORIENTATION_CHOICES, ORIENTATION_LANDSCAPE),
            rotate=_flag(data.get("rotate")),
            mode=_choice(data, "mode", MODE_CHOICES, MODE_HTML),
            origin=(str(data["origin"]).rstrip("/") if data.get("origin") else None),
            full_url=data.get("fullUrl") or None,
            preview_only=_flag(data.get("previewOnly")),
        )

    @property
    def wants_front(self) -> bool:
        return self.only in (CARD_FRONT, CARD_BOTH)

    @property
    def wants_inside(self) -> bool:
        return self.only in (CARD_INSIDE, CARD_BOTH)

    @property
    def is_production_combined(self) -> bool:
        return self.format == FORMAT_PRODUCTION and self.only == CARD_BOTH


@dataclass
class RenderResult:
    success: bool
    message: str
    pdf_path: Optional[str] = None
    download_url: Optional[str] = None
    public_url: Optional[str] = None
    html: Optional[str] = None

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "success": self.success,
            "pdfPath": self.pdf_path,
            "downloadUrl": self.download_url,
            "publicUrl": self.public_url,
            "message": self.message,
        }
        if self.html is not None:
            payload["html"] = self.html
        return payload

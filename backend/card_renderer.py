"""Card PDF rendering workflow.

``CardRenderService`` drives one render from order lookup to stored PDF:
resolve the order and its template, inline every image the layout needs,
build the front and/or inside documents, have Gotenberg print them, optionally
rotate pages for the mail vendor, upload the result and hand back URLs. Its
collaborators (repository, storage, image inliner, render client) are injected
so the Lambda entrypoint owns configuration and tests can pass fakes.
"""
from __future__ import annotations

import base64
import logging
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from card_layouts import (
    CardContent,
    CardDocument,
    audit_inlined_images,
    compose_documents,
    generate_card_document,
    get_layout_config,
)
from errors import AssetInliningError, NotFoundError
from models import (
    CARD_FRONT,
    CARD_INSIDE,
    FORMAT_PREVIEW,
    FORMAT_PRODUCTION,
    MODE_DEBUG,
    MODE_URL,
    ORIENTATION_LANDSCAPE,
    Order,
    RenderRequest,
    RenderResult,
    Template,
)
from page_rotation import merge_pdfs, rotate_for_mail_vendor


PREVIEW_DPI = 96


@dataclass
class InlinedAssets:
    template_image: str = ""
    logo: str = ""
    signature: str = ""


class CardRenderService:
    def __init__(
        self,
        logger,
        repository,
        storage,
        image_inliner,
        render_client,
        default_origin: Optional[str] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.logger = logger
        self._repository = repository
        self._storage = storage
        self._inliner = image_inliner
        self._render_client = render_client
        self._default_origin = (default_origin or "").rstrip("/") or None
        self._clock = clock

    # Public API ---------------------------------------------------------

    def render(self, request: RenderRequest) -> RenderResult:
        logger = self.logger
        logger.info(
            "Rendering order %s: only=%s format=%s orientation=%s mode=%s rotate=%s",
            request.order_id,
            request.only,
            request.format,
            request.orientation,
            request.mode,
            request.rotate,
        )

        order = self._repository.get_order(request.order_id)
        template = self._repository.get_template(order.template_id)

        if request.mode == MODE_URL:
            if request.format == FORMAT_PRODUCTION:
                # The live page loads its own images; production still requires they resolve.
                self._inline_assets(order, template, request)
            pdf_bytes = self._render_live_pages(request)
        else:
            assets = self._inline_assets(order, template, request)
            document = self._build_document(order, request, assets)
            html_content = document.to_html()

            if request.mode == MODE_DEBUG:
                return RenderResult(
                    success=True,
                    message="Debug mode: HTML generated, no PDF rendered",
                    html=html_content,
                )

            audit = audit_inlined_images(html_content)
            if audit.remote_sources and self._is_strict(request):
                raise AssetInliningError(
                    f"Production PDF would reference {len(audit.remote_sources)} non-inlined image(s)"
                )

            pdf_bytes = self._render_client.convert_html(
                html_content, document.page_width_in, document.page_height_in
            )

        if request.rotate and request.is_production_combined:
            pdf_bytes = rotate_for_mail_vendor(pdf_bytes)

        pdf_path = f"cards/{order.id}_gotenberg_{self._timestamp_ms()}.pdf"
        self._storage.upload_pdf(pdf_path, pdf_bytes)
        download_url = self._storage.create_signed_url(pdf_path)
        public_url = self._storage.public_url(pdf_path)

        if request.is_production_combined and not request.preview_only:
            self._repository.update_order(
                order.id,
                {
                    "production_combined_pdf_path": pdf_path,
                    "production_combined_pdf_public_url": public_url,
                    "production_combined_pdf_generated_at": self._now_iso(),
                },
            )

        return RenderResult(
            success=True,
            pdf_path=pdf_path,
            download_url=download_url,
            public_url=public_url,
            message=f"Gotenberg PDF generated successfully ({self._describe(request)})",
        )

    def generate_previews(self, order_id: str, origin: Optional[str] = None) -> Dict[str, str]:
        """Screenshot the preview front and inside and store them on the order."""
        order = self._repository.get_order(order_id)
        template = self._repository.get_template(order.template_id)
        request = RenderRequest(order_id=order_id, format=FORMAT_PREVIEW, origin=origin)
        assets = self._inline_assets(order, template, request)
        if not assets.template_image:
            self.logger.warning("No preview image data URL generated for template: %s", template.id)

        front_layout = get_layout_config(CARD_FRONT, FORMAT_PREVIEW)
        width_px = round(front_layout.overall_width_in * PREVIEW_DPI)
        height_px = round(front_layout.overall_height_in * PREVIEW_DPI)

        previews: Dict[str, str] = {}
        for card_type in (CARD_FRONT, CARD_INSIDE):
            document = generate_card_document(card_type, self._content(order, assets), FORMAT_PREVIEW)
            self.logger.info("Generating %s preview...", card_type)
            png = self._render_client.screenshot_html(document.to_html(), width_px, height_px, ".sheet")
            previews[card_type] = self._png_data_url(png)

        self._repository.update_order(
            order.id,
            {
                "front_preview_base64": previews[CARD_FRONT],
                "inside_preview_base64": previews[CARD_INSIDE],
                "previews_updated_at": self._now_iso(),
            },
        )
        self.logger.info("Previews saved for order %s", order.id)
        return {"frontBase64": previews[CARD_FRONT], "insideBase64": previews[CARD_INSIDE]}

    def generate_card_pdfs(self, order_id: str, format: str = FORMAT_PREVIEW, origin: Optional[str] = None) -> Dict[str, Any]:
        """Print the live front and inside preview pages as two separate stored PDFs."""
        order = self._repository.get_order(order_id)
        template = self._repository.get_template(order.template_id)
        client_count = self._repository.count_client_records(order.id)
        if not client_count:
            raise NotFoundError(f"Clients not found for order {order.id}")
        self.logger.info(
            "Generating %s card PDFs for order %s (template %s, %d recipients)",
            format,
            order.id,
            template.id,
            client_count,
        )

        base = origin or self._default_origin
        stored: Dict[str, str] = {}
        for card_type, label in ((CARD_FRONT, "front"), (CARD_INSIDE, "back")):
            url = self._preview_url(base, card_type, order.id, format)
            pdf_bytes = self._convert_preview_url(url, card_type, format)
            path = f"cards/{order.id}_{label}_{self._timestamp_ms()}.pdf"
            self._storage.upload_pdf(path, pdf_bytes)
            stored[label] = path

        layout = get_layout_config(CARD_FRONT, format)
        return {
            "success": True,
            "frontImagePath": stored["front"],
            "backImagePath": stored["back"],
            "frontDownloadUrl": self._storage.create_signed_url(stored["front"]),
            "backDownloadUrl": self._storage.create_signed_url(stored["back"]),
            "message": (
                "PDF cards generated successfully using preview URLs - "
                f"{layout.overall_width_in:g}\" x {layout.overall_height_in:g}\" dimensions"
            ),
        }

    def generate_template_pdf(self, template_id: str, origin: Optional[str] = None) -> RenderResult:
        template = self._repository.get_template(template_id)
        art = self._inliner.inline(template.preview_url, origin or self._default_origin)
        document = generate_card_document(CARD_FRONT, CardContent(template_image_url=art), FORMAT_PREVIEW)
        pdf_bytes = self._render_client.convert_html(
            document.to_html(), document.page_width_in, document.page_height_in
        )

        pdf_path = f"template-pdfs/{template.id}_{self._timestamp_ms()}.pdf"
        self._storage.upload_pdf(pdf_path, pdf_bytes)
        return RenderResult(
            success=True,
            pdf_path=pdf_path,
            download_url=self._storage.create_signed_url(pdf_path),
            public_url=self._storage.public_url(pdf_path),
            message=(
                f"Template PDF generated successfully with "
                f"{document.page_width_in:g}\" x {document.page_height_in:g}\" dimensions"
            ),
        )

    # Internal helpers ---------------------------------------------------

    @staticmethod
    def _is_strict(request: RenderRequest) -> bool:
        return request.is_production_combined

    def _inline_assets(self, order: Order, template: Template, request: RenderRequest) -> InlinedAssets:
        origin = request.origin or self._default_origin
        strict_all = self._is_strict(request)
        assets = InlinedAssets()

        if request.wants_front:
            strict_template = request.format == FORMAT_PRODUCTION
            if strict_template and not template.preview_url:
                raise AssetInliningError(f"Template {template.id} has no preview image for a production PDF")
            assets.template_image = self._inliner.inline(template.preview_url, origin, strict=strict_template)
            if not assets.template_image:
                self.logger.warning("Template %s preview image could not be inlined", template.id)

        if request.wants_inside:
            if order.logo_path:
                assets.logo = self._inliner.inline(order.logo_path, origin, strict=strict_all)
            if order.signature_path:
                assets.signature = self._inliner.inline(order.signature_path, origin, strict=strict_all)

        return assets

    @staticmethod
    def _content(order: Order, assets: InlinedAssets) -> CardContent:
        return CardContent(
            message=order.message,
            logo_data_url=assets.logo or None,
            signature_data_url=assets.signature or None,
            template_image_url=assets.template_image or None,
        )

    def _build_document(self, order: Order, request: RenderRequest, assets: InlinedAssets) -> CardDocument:
        content = self._content(order, assets)
        documents: List[CardDocument] = []
        if request.wants_front:
            documents.append(
                generate_card_document(CARD_FRONT, content, request.format, False, request.orientation)
            )
        if request.wants_inside:
            documents.append(
                generate_card_document(CARD_INSIDE, content, request.format, False, request.orientation)
            )
        if len(documents) == 1:
            return documents[0]
        return compose_documents(*documents)

    def _render_live_pages(self, request: RenderRequest) -> bytes:
        """Print the storefront's live preview routes instead of generated HTML."""
        origin = request.origin or self._default_origin
        card_types = [t for t, wanted in ((CARD_FRONT, request.wants_front), (CARD_INSIDE, request.wants_inside)) if wanted]
        if request.full_url:
            card_types = card_types[:1]

        rendered: List[bytes] = []
        for card_type in card_types:
            url = request.full_url or self._preview_url(origin, card_type, request.order_id, request.format)
            rendered.append(self._convert_preview_url(url, card_type, request.format, request.orientation))

        if len(rendered) == 1:
            return rendered[0]
        return merge_pdfs(*rendered)

    @staticmethod
    def _preview_url(origin: Optional[str], card_type: str, order_id: str, format: str) -> str:
        if not origin:
            raise ValueError("origin is required to print preview pages")
        url = f"{origin}/#/preview/{card_type}/{order_id}"
        if format == FORMAT_PRODUCTION and card_type == CARD_INSIDE:
            url += "?spread=true"
        return url

    def _convert_preview_url(self, url: str, card_type: str, format: str, orientation: str = ORIENTATION_LANDSCAPE) -> bytes:
        layout = get_layout_config(card_type, format, False, orientation)
        self.logger.info("Converting %s preview URL to PDF: %s", card_type, url)
        return self._render_client.convert_url(url, layout.overall_width_in, layout.overall_height_in)

    @staticmethod
    def _describe(request: RenderRequest) -> str:
        layout = get_layout_config(CARD_FRONT, request.format, False, request.orientation)
        pages = "2 pages: front + inside" if request.wants_front and request.wants_inside else f"1 page: {request.only}"
        return f"{pages}, {request.format} {layout.overall_width} x {layout.overall_height}"

    def _timestamp_ms(self) -> int:
        return int(self._clock() * 1000)

    def _now_iso(self) -> str:
        return datetime.fromtimestamp(self._clock(), tz=timezone.utc).isoformat()

    @staticmethod
    def _png_data_url(png: bytes) -> str:
        return f"data:image/png;base64,{base64.b64encode(png).decode('ascii')}"

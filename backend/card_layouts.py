"""HTML layouts for the card front and inside at preview and production size.

Every layout is built as a :class:`CardDocument`: a page size, the CSS blocks
it needs and one markup fragment per printed sheet. ``to_html`` serializes it
into a self-contained document (inline CSS, images as data URLs) that the
render service can print without network access. Combining the front and the
inside into one production file is a merge of two ``CardDocument`` values, so
no HTML text is ever re-parsed to build it.
"""
from __future__ import annotations

import html
import logging
from dataclasses import dataclass, field
from typing import List, NamedTuple, Optional

from bs4 import BeautifulSoup

from message_formatting import format_message_with_line_break
from models import (
    CARD_FRONT,
    CARD_INSIDE,
    FORMAT_PREVIEW,
    FORMAT_PRODUCTION,
    ORIENTATION_LANDSCAPE,
    ORIENTATION_PORTRAIT,
)


logger = logging.getLogger(__name__)

CARD_SHORT_EDGE_IN = 5.125
CARD_LONG_EDGE_IN = 7.0


@dataclass(frozen=True)
class LayoutConfig:
    content_width_in: float
    content_height_in: float
    overall_width_in: float
    overall_height_in: float
    is_spread: bool
    stacked: bool = False

    @property
    def content_width(self) -> str:
        return _inches(self.content_width_in)

    @property
    def content_height(self) -> str:
        return _inches(self.content_height_in)

    @property
    def overall_width(self) -> str:
        return _inches(self.overall_width_in)

    @property
    def overall_height(self) -> str:
        return _inches(self.overall_height_in)


LAYOUT_CONFIGS = {
    # Single portrait card face, used for on-screen previews.
    "single": LayoutConfig(
        content_width_in=CARD_SHORT_EDGE_IN,
        content_height_in=CARD_LONG_EDGE_IN,
        overall_width_in=CARD_SHORT_EDGE_IN,
        overall_height_in=CARD_LONG_EDGE_IN,
        is_spread=False,
    ),
    # Two faces side by side on one 10.25in x 7in sheet.
    "spread": LayoutConfig(
        content_width_in=CARD_SHORT_EDGE_IN,
        content_height_in=CARD_LONG_EDGE_IN,
        overall_width_in=CARD_SHORT_EDGE_IN * 2,
        overall_height_in=CARD_LONG_EDGE_IN,
        is_spread=True,
    ),
    # The spread transposed: two 7in x 5.125in faces stacked on a 7in x 10.25in sheet.
    "stacked": LayoutConfig(
        content_width_in=CARD_LONG_EDGE_IN,
        content_height_in=CARD_SHORT_EDGE_IN,
        overall_width_in=CARD_LONG_EDGE_IN,
        overall_height_in=CARD_SHORT_EDGE_IN * 2,
        is_spread=True,
        stacked=True,
    ),
}


@dataclass
class CardContent:
    message: str = ""
    logo_data_url: Optional[str] = None
    signature_data_url: Optional[str] = None
    template_image_url: Optional[str] = None


@dataclass
class CardDocument:
    page_width_in: float
    page_height_in: float
    styles: List[str] = field(default_factory=list)
    sheets: List[str] = field(default_factory=list)

    @property
    def page_size(self) -> tuple[float, float]:
        return self.page_width_in, self.page_height_in

    def to_html(self) -> str:
        width = _inches(self.page_width_in)
        height = _inches(self.page_height_in)
        body_height = _inches(self.page_height_in * max(len(self.sheets), 1))
        page_css = (
            f"@page {{ size: {width} {height}; margin: 0; }}\n"
            f"html, body {{ margin: 0; padding: 0; width: {width}; height: {body_height}; }}\n"
            "body { background: #ffffff; }\n"
            f".sheet {{ position: relative; width: {width}; height: {height}; overflow: hidden; "
            "break-after: page; page-break-after: always; }\n"
            ".sheet:last-child { break-after: auto; page-break-after: auto; }"
        )
        style_block = "\n".join([page_css, *self.styles])
        return (
            "<!DOCTYPE html>\n"
            "<html>\n"
            "<head>\n"
            '<meta charset="utf-8" />\n'
            f"<style>\n{style_block}\n</style>\n"
            "</head>\n"
            "<body>\n"
            + "\n".join(self.sheets)
            + "\n</body>\n</html>"
        )


def _inches(value: float) -> str:
    return f"{value:g}in"


def get_layout_config(
    card_type: str,
    format: str = FORMAT_PREVIEW,
    is_spread: bool = False,
    orientation: str = ORIENTATION_LANDSCAPE,
) -> LayoutConfig:
    """Pick the sheet geometry; front and inside share the same sizes."""
    if card_type not in (CARD_FRONT, CARD_INSIDE):
        raise ValueError(f"Unknown card type: {card_type}")
    if format == FORMAT_PRODUCTION or is_spread:
        if orientation == ORIENTATION_PORTRAIT:
            return LAYOUT_CONFIGS["stacked"]
        return LAYOUT_CONFIGS["spread"]
    return LAYOUT_CONFIGS["single"]


def _split_styles(layout: LayoutConfig, prefix: str) -> str:
    direction = "column" if layout.stacked else "row"
    return (
        f".{prefix}-spread {{ width: 100%; height: 100%; display: flex; flex-direction: {direction}; }}\n"
        f".{prefix}-half {{ width: {layout.content_width}; height: {layout.content_height}; "
        "position: relative; overflow: hidden; flex: none; }\n"
        f".{prefix}-blank {{ width: {layout.content_width}; height: {layout.content_height}; "
        "background: #ffffff; flex: none; }"
    )


FRONT_STYLES = (
    ".sheet-front { font-family: Arial, sans-serif; }\n"
    ".front-wrap { width: 100%; height: 100%; display: flex; align-items: center; justify-content: center; }\n"
    ".front-frame { width: 100%; height: 100%; box-sizing: border-box; border: 2px solid #e5e7eb; "
    "border-radius: 8px; overflow: hidden; background: #ffffff; }\n"
    ".front-img { width: 100%; height: 100%; object-fit: cover; display: block; }\n"
    ".front-missing { width: 100%; height: 100%; background: #f0f0f0; display: flex; "
    "align-items: center; justify-content: center; color: #666666; }"
)

INSIDE_STYLES = (
    ".sheet-inside { font-family: Georgia, serif; }\n"
    ".msg { text-align: center; max-width: 85%; font-size: 20px; line-height: 1.6; color: #111827; "
    "font-style: italic; margin: 0 auto; }\n"
    ".msgRow { position: absolute; left: 50%; transform: translateX(-50%); top: 28%; display: flex; "
    "align-items: center; justify-content: center; width: 100%; padding: 0 20px; box-sizing: border-box; }\n"
    ".logoRow { position: absolute; left: 50%; transform: translateX(-50%); top: 56%; display: flex; "
    "align-items: center; justify-content: center; width: 100%; padding: 0 20px; box-sizing: border-box; }\n"
    ".logo { max-width: 180px; max-height: 56px; object-fit: contain; }\n"
    ".sigRow { position: absolute; left: 0; right: 0; top: 68%; display: flex; justify-content: center; }\n"
    ".sig { width: 480px; max-width: 90%; object-fit: contain; }\n"
    ".grid { position: relative; display: grid; grid-template-rows: 1fr 1fr 1fr; width: 100%; "
    "height: 100%; padding: 24px; box-sizing: border-box; }\n"
    ".inside-content { width: 100%; height: 100%; box-sizing: border-box; overflow: hidden; background: #ffffff; }\n"
    ".inside-content.framed { border: 2px solid #e5e7eb; border-radius: 8px; }"
)


def _front_image_markup(content: CardContent, alt: str) -> str:
    if content.template_image_url:
        src = html.escape(content.template_image_url, quote=True)
        return f'<img class="front-img" src="{src}" alt="{alt}"/>'
    return '<div class="front-missing">No Preview Available</div>'


def build_front_document(layout: LayoutConfig, content: CardContent) -> CardDocument:
    if layout.is_spread:
        # Art on the first half; the second half prints blank once folded.
        sheet = (
            '<div class="sheet sheet-front">'
            '<div class="front-spread">'
            f'<div class="front-half">{_front_image_markup(content, "Card front")}</div>'
            '<div class="front-blank"></div>'
            "</div></div>"
        )
        styles = [FRONT_STYLES, _split_styles(layout, "front")]
    else:
        sheet = (
            '<div class="sheet sheet-front">'
            '<div class="front-wrap"><div class="front-frame">'
            f'{_front_image_markup(content, "Card front preview")}'
            "</div></div></div>"
        )
        styles = [FRONT_STYLES]
    return CardDocument(layout.overall_width_in, layout.overall_height_in, styles, [sheet])


def _message_markup(message: str) -> str:
    lines = format_message_with_line_break(message)
    if lines.should_break:
        return (
            f"<span>{html.escape(lines.first_line)}</span>"
            f"<br/><span>{html.escape(lines.second_line)}</span>"
        )
    return f"<span>{html.escape(lines.first_line)}</span>"


def _inside_grid(content: CardContent) -> str:
    rows = [f'<div class="msgRow"><p class="msg">{_message_markup(content.message)}</p></div>']
    if content.logo_data_url:
        src = html.escape(content.logo_data_url, quote=True)
        rows.append(f'<div class="logoRow"><img class="logo" src="{src}" alt="Logo"/></div>')
    if content.signature_data_url:
        src = html.escape(content.signature_data_url, quote=True)
        rows.append(f'<div class="sigRow"><img class="sig" src="{src}" alt="Signature"/></div>')
    return '<div class="grid">' + "".join(rows) + "</div>"


def build_inside_document(layout: LayoutConfig, content: CardContent) -> CardDocument:
    if layout.is_spread:
        # First half blank, message on the second (right or bottom) half.
        sheet = (
            '<div class="sheet sheet-inside">'
            '<div class="inside-spread">'
            '<div class="inside-blank"></div>'
            f'<div class="inside-half"><div class="inside-content">{_inside_grid(content)}</div></div>'
            "</div></div>"
        )
        styles = [INSIDE_STYLES, _split_styles(layout, "inside")]
    else:
        sheet = (
            '<div class="sheet sheet-inside">'
            f'<div class="inside-content framed">{_inside_grid(content)}</div>'
            "</div>"
        )
        styles = [INSIDE_STYLES]
    return CardDocument(layout.overall_width_in, layout.overall_height_in, styles, [sheet])


def generate_card_document(
    card_type: str,
    content: CardContent,
    format: str = FORMAT_PREVIEW,
    is_spread: bool = False,
    orientation: str = ORIENTATION_LANDSCAPE,
) -> CardDocument:
    layout = get_layout_config(card_type, format, is_spread, orientation)
    if card_type == CARD_FRONT:
        return build_front_document(layout, content)
    return build_inside_document(layout, content)


def generate_card_html(
    card_type: str,
    content: CardContent,
    format: str = FORMAT_PREVIEW,
    is_spread: bool = False,
    orientation: str = ORIENTATION_LANDSCAPE,
) -> str:
    return generate_card_document(card_type, content, format, is_spread, orientation).to_html()


def compose_documents(*documents: CardDocument) -> CardDocument:
    """Stack documents into one file, one sheet per printed page."""
    if not documents:
        raise ValueError("At least one document is required")

    first = documents[0]
    for doc in documents[1:]:
        if doc.page_size != first.page_size:
            raise ValueError(
                f"Cannot compose documents with different page sizes: {first.page_size} vs {doc.page_size}"
            )

    styles: List[str] = []
    for doc in documents:
        for block in doc.styles:
            if block not in styles:
                styles.append(block)

    sheets = [sheet for doc in documents for sheet in doc.sheets]
    return CardDocument(first.page_width_in, first.page_height_in, styles, sheets)


class ImageAudit(NamedTuple):
    total: int
    data_sources: int
    remote_sources: List[str]


def audit_inlined_images(html_content: str) -> ImageAudit:
    """Count ``<img>`` tags by source kind so callers can reject remote references."""
    soup = BeautifulSoup(html_content, "lxml")
    total = 0
    data_sources = 0
    remote: List[str] = []
    for tag in soup.find_all("img"):
        total += 1
        src = (tag.get("src") or "").strip()
        if src.startswith("data:"):
            data_sources += 1
        else:
            remote.append(src)
    logger.info(
        "[PDF][IMG] images: total=%d data_src=%d other_src=%d",
        total,
        data_sources,
        len(remote),
    )
    if remote:
        logger.warning("[PDF][IMG] non-inlined srcs: %s", [s[:120] for s in remote[:10]])
    return ImageAudit(total, data_sources, remote)

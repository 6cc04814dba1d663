import base64
import io
import logging
import mimetypes
import os
import urllib.error
import urllib.parse
import urllib.request
from typing import Callable, List, Optional, Tuple

from errors import AssetInliningError, CardServiceError


logger = logging.getLogger(__name__)

READ_CHUNK_SIZE = 8192
MAX_IMAGE_BYTES = 5 * 1024 * 1024
DEFAULT_IMAGE_TYPE = 'image/png'

BROWSER_IMAGE_TYPES = {
    'image/png',
    'image/jpeg',
    'image/gif',
    'image/webp',
    'image/svg+xml',
}

CONVERTIBLE_IMAGE_TYPES = {
    'image/tiff',
    'image/x-tiff',
    'image/bmp',
    'image/x-ms-bmp',
    'image/heic',
    'image/heif',
}

USER_AGENT = (
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/118 Safari/537.36"
)

Fetcher = Callable[[str, float], Tuple[bytes, Optional[str]]]
PdfRasterizer = Callable[[bytes], bytes]


def sniff_image_type(data: bytes) -> Optional[str]:
    """Identify PNG/JPEG/WEBP/GIF payloads by their magic bytes."""
    if data.startswith(b'\x89PNG\r\n\x1a\n'):
        return 'image/png'
    if data.startswith(b'\xff\xd8\xff'):
        return 'image/jpeg'
    if len(data) >= 12 and data[:4] == b'RIFF' and data[8:12] == b'WEBP':
        return 'image/webp'
    if data[:6] in (b'GIF87a', b'GIF89a'):
        return 'image/gif'
    return None


def resolve_image_type(data: bytes, header_type: Optional[str], source_name: Optional[str]) -> str:
    """Trust an ``image/*`` header, then magic bytes, then the file extension."""
    ctype = (header_type or '').split(';', 1)[0].strip().lower()
    if ctype.startswith('image/'):
        return 'image/jpeg' if ctype == 'image/jpg' else ctype

    sniffed = sniff_image_type(data)
    if sniffed:
        return sniffed

    path = urllib.parse.urlsplit(source_name or '').path or (source_name or '')
    guessed, _ = mimetypes.guess_type(path)
    if guessed and guessed.startswith('image/'):
        return guessed
    return DEFAULT_IMAGE_TYPE


def ensure_displayable_image_bytes(image_bytes: bytes, content_type: str, source_name: Optional[str] = None) -> Tuple[bytes, str]:
    """Convert formats Chromium cannot draw (TIFF, BMP, HEIC) to PNG."""
    if content_type in BROWSER_IMAGE_TYPES or content_type not in CONVERTIBLE_IMAGE_TYPES:
        return image_bytes, content_type

    from PIL import Image

    label = source_name or 'inline image'
    try:
        with Image.open(io.BytesIO(image_bytes)) as pil_img:
            if getattr(pil_img, 'n_frames', 1) > 1:
                logger.info("[IMG] multi-frame image %s; using first frame", label)
                pil_img.seek(0)
            if pil_img.mode in ('P', 'PA', 'LA', 'RGBA'):
                pil_img = pil_img.convert('RGBA')
            elif pil_img.mode not in ('RGB', 'L'):
                pil_img = pil_img.convert('RGB')
            buffer = io.BytesIO()
            pil_img.save(buffer, format='PNG', optimize=True)
            logger.info("Converted %s from %s to image/png for rendering", label, content_type)
            return buffer.getvalue(), 'image/png'
    except Exception as convert_err:
        logger.warning("Failed to convert %s (%s) to PNG: %s", label, content_type, convert_err)
    return image_bytes, content_type


def encode_data_url(image_bytes: bytes, content_type: str) -> str:
    b64 = base64.b64encode(image_bytes).decode('ascii')
    return f"data:{content_type};base64,{b64}"


def is_pdf(data: bytes) -> bool:
    return data.lstrip()[:5] == b'%PDF-'


def is_displayable_image(data: bytes, content_type: str) -> bool:
    """True when Chromium can draw ``data`` as ``content_type``."""
    if content_type == 'image/svg+xml':
        return b'<svg' in data[:4096].lower()
    return content_type in BROWSER_IMAGE_TYPES and sniff_image_type(data) is not None


def extract_pdf_image(pdf_bytes: bytes) -> Optional[bytes]:
    """Return the largest raster embedded on page 1 of a PDF as PNG bytes.

    Scanned and exported signatures are single-image PDFs, so this covers them
    without a browser round-trip. Vector-only pages return ``None``.
    """
    from pypdf import PdfReader

    reader = PdfReader(io.BytesIO(pdf_bytes))
    if not reader.pages:
        return None
    images = [img.image for img in reader.pages[0].images if img.image is not None]
    if not images:
        return None
    largest = max(images, key=lambda im: im.width * im.height)
    if largest.mode not in ('RGB', 'RGBA', 'L', 'LA'):
        largest = largest.convert('RGBA' if 'A' in largest.getbands() else 'RGB')
    buffer = io.BytesIO()
    largest.save(buffer, format='PNG', optimize=True)
    return buffer.getvalue()


def fetch_url(url: str, timeout: float) -> Tuple[bytes, Optional[str]]:
    """GET ``url`` and return ``(bytes, content_type)``; reads in 8 KB chunks up to 5 MB."""
    req = urllib.request.Request(url, headers={"User-Agent": USER_AGENT, "Accept": "image/*"})
    with urllib.request.urlopen(req, timeout=timeout) as resp:
        ctype = resp.headers.get("Content-Type")
        chunks: List[bytes] = []
        total = 0
        while True:
            chunk = resp.read(READ_CHUNK_SIZE)
            if not chunk:
                break
            total += len(chunk)
            if total > MAX_IMAGE_BYTES:
                raise ValueError(f"image larger than {MAX_IMAGE_BYTES} bytes")
            chunks.append(chunk)
    return b''.join(chunks), ctype


class ImageInliner:
    """Turns storage paths and URLs into base64 data URLs for the card HTML."""

    def __init__(
        self,
        storage,
        legacy_upload_prefix: str = '/lovable-uploads/',
        legacy_upload_host: str = '',
        timeout: float = 10.0,
        fetcher: Optional[Fetcher] = None,
        pdf_rasterizer: Optional[PdfRasterizer] = None,
    ) -> None:
        self._storage = storage
        self._legacy_prefix = legacy_upload_prefix
        self._legacy_host = legacy_upload_host.rstrip('/')
        self._timeout = timeout
        self._fetch = fetcher or fetch_url
        self._rasterize_pdf = pdf_rasterizer

    @classmethod
    def from_settings(
        cls,
        settings,
        storage,
        fetcher: Optional[Fetcher] = None,
        pdf_rasterizer: Optional[PdfRasterizer] = None,
    ) -> "ImageInliner":
        return cls(
            storage,
            legacy_upload_prefix=settings.legacy_upload_prefix,
            legacy_upload_host=settings.legacy_upload_host,
            timeout=settings.image_fetch_timeout,
            fetcher=fetcher,
            pdf_rasterizer=pdf_rasterizer,
        )

    def inline(self, source: Optional[str], origin: Optional[str] = None, strict: bool = False) -> str:
        """Return a data URL for ``source`` or ``""`` when it cannot be loaded.

        With ``strict`` set a failure raises :class:`AssetInliningError` instead.
        """
        source = (source or '').strip()
        if not source:
            if strict:
                raise AssetInliningError("Image path is empty")
            return ''
        if source.startswith('data:'):
            return source

        try:
            payload, header_type = self._load(source, origin)
        except Exception as exc:
            if strict:
                raise AssetInliningError(f"Failed to fetch image {source}: {exc}") from exc
            logger.info("Image %s unavailable, continuing without it: %s", source, exc)
            return ''

        if not payload:
            if strict:
                raise AssetInliningError(f"Image {source} is empty")
            return ''

        if is_pdf(payload):
            try:
                payload, content_type = self._pdf_to_png(payload, source), 'image/png'
            except Exception as exc:
                if strict:
                    raise AssetInliningError(f"Failed to rasterize PDF image {source}: {exc}") from exc
                logger.warning("Could not rasterize PDF image %s, continuing without it: %s", source, exc)
                return ''
        else:
            content_type = resolve_image_type(payload, header_type, source)
            payload, content_type = ensure_displayable_image_bytes(payload, content_type, os.path.basename(source))

        if not is_displayable_image(payload, content_type):
            if strict:
                raise AssetInliningError(f"Image {source} is not a displayable image ({content_type})")
            logger.warning("Image %s is not a displayable image (%s), skipping", source, content_type)
            return ''
        return encode_data_url(payload, content_type)

    def _pdf_to_png(self, pdf_bytes: bytes, source: str) -> bytes:
        png = extract_pdf_image(pdf_bytes)
        if png:
            logger.info("Extracted embedded image from PDF %s", source)
            return png
        if self._rasterize_pdf is None:
            raise ValueError("PDF has no embedded image and no rasterizer is configured")
        logger.info("Rasterizing PDF %s through the render service", source)
        return self._rasterize_pdf(pdf_bytes)

    def candidate_urls(self, source: str, origin: Optional[str]) -> List[str]:
        """HTTP locations to try, in order, for a non-storage source."""
        candidates: List[str] = []
        lowered = source.lower()
        if lowered.startswith(('http://', 'https://')):
            candidates.append(source)
        else:
            if origin:
                candidates.append(urllib.parse.urljoin(origin.rstrip('/') + '/', source.lstrip('/')))
            if self._legacy_host and source.startswith(self._legacy_prefix):
                candidates.append(f"{self._legacy_host}{source}")
        deduped: List[str] = []
        for url in candidates:
            if url not in deduped:
                deduped.append(url)
        return deduped

    def _is_storage_path(self, source: str) -> bool:
        return '://' not in source and not source.startswith('/')

    def _load(self, source: str, origin: Optional[str]) -> Tuple[bytes, Optional[str]]:
        storage_path = self._storage.path_from_url(source)
        if storage_path is None and self._is_storage_path(source):
            storage_path = source
        if storage_path is not None:
            logger.debug("Downloading %s from storage", storage_path)
            return self._storage.download(storage_path)

        candidates = self.candidate_urls(source, origin)
        if not candidates:
            raise ValueError(f"no origin available to resolve relative path {source}")

        last_error: Exception | None = None
        for url in candidates:
            try:
                data, ctype = self._fetch(url, self._timeout)
                logger.info("Fetched image from %s (%d bytes)", url, len(data))
                return data, ctype
            except (urllib.error.URLError, OSError, ValueError, CardServiceError) as exc:
                logger.info("Image fetch failed for %s: %s", url, exc)
                last_error = exc
        raise last_error or ValueError(f"could not fetch {source}")

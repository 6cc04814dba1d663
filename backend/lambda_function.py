import json
import logging
from typing import Any, Callable, Dict, Optional

from card_renderer import CardRenderService
from handlers import (
    create_card_pdfs_handler,
    create_card_previews_handler,
    create_generate_card_handler,
    create_serve_pdf_handler,
    create_template_pdf_handler,
)
from image_processing import ImageInliner
from logging_utils import configure_logging
from order_repository import OrderRepository
from render_client import GotenbergClient
from router import LambdaRouter
from settings import Settings, load_settings
from storage import CardStorage


configure_logging()
logger = logging.getLogger(__name__)

SERVICE_NAME = 'card-render-service'

_service_handlers: Optional[Dict[str, Callable[[Dict[str, Any]], Dict[str, Any]]]] = None


def build_service_handlers(settings: Settings) -> Dict[str, Callable[[Dict[str, Any]], Dict[str, Any]]]:
    """Wire the render pipeline from explicit settings."""
    storage = CardStorage.from_settings(settings)
    render_client = GotenbergClient.from_settings(settings)
    render_service = CardRenderService(
        logger=logger,
        repository=OrderRepository.from_settings(settings),
        storage=storage,
        image_inliner=ImageInliner.from_settings(settings, storage, pdf_rasterizer=render_client.rasterize_pdf),
        render_client=render_client,
        default_origin=settings.legacy_upload_host,
    )
    return {
        'generate-card-gotenberg': create_generate_card_handler(logger=logger, render_service=render_service),
        'generate-card-pdfs': create_card_pdfs_handler(logger=logger, render_service=render_service),
        'generate-card-previews': create_card_previews_handler(logger=logger, render_service=render_service),
        'generate-template-pdf': create_template_pdf_handler(logger=logger, render_service=render_service),
        'serve-pdf': create_serve_pdf_handler(logger=logger, storage=storage),
    }


def _get_service_handlers() -> Dict[str, Callable[[Dict[str, Any]], Dict[str, Any]]]:
    # Built on first use so a missing variable fails the request, not the import.
    global _service_handlers
    if _service_handlers is None:
        settings = load_settings()
        configure_logging(settings.log_level)
        _service_handlers = build_service_handlers(settings)
    return _service_handlers


def _deferred(name: str) -> Callable[[Dict[str, Any]], Dict[str, Any]]:
    def handle(event: Dict[str, Any]) -> Dict[str, Any]:
        return _get_service_handlers()[name](event)

    handle.__name__ = f"handle_{name.replace('-', '_')}"
    return handle


def handle_health(event: Dict[str, Any]) -> Dict[str, Any]:
    """Handle health check."""
    return {
        'statusCode': 200,
        'headers': {'Content-Type': 'application/json'},
        'body': json.dumps({'status': 'healthy', 'service': SERVICE_NAME}),
    }


router = LambdaRouter()
HANDLERS = {
    ("POST", "generate-card-gotenberg"): _deferred('generate-card-gotenberg'),
    ("POST", "generate-card-pdfs"): _deferred('generate-card-pdfs'),
    ("POST", "generate-card-previews"): _deferred('generate-card-previews'),
    ("POST", "generate-template-pdf"): _deferred('generate-template-pdf'),
    ("GET", "serve-pdf"): _deferred('serve-pdf'),
    ("GET", "health"): handle_health,
}


def lambda_handler(event, context):
    """Main Lambda entry point."""
    try:
        return router.handle(event, HANDLERS)
    finally:
        logger.info("Lambda handler completed")

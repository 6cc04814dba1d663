import logging
import os
import re
from dataclasses import dataclass
from typing import Mapping, Optional

from errors import ConfigurationError


logger = logging.getLogger(__name__)

REQUIRED_ENV_KEYS = (
    "GOTENBERG_URL",
    "GOTENBERG_API_KEY",
    "SUPABASE_URL",
    "SUPABASE_SERVICE_ROLE_KEY",
)

DEFAULT_STORAGE_BUCKET = "holiday-cards"
DEFAULT_STORAGE_REGION = "us-east-1"
DEFAULT_SIGNED_URL_TTL = 60 * 60
DEFAULT_WAIT_DELAY = "2000ms"
DEFAULT_IMAGE_FETCH_TIMEOUT = 10.0
DEFAULT_LEGACY_UPLOAD_PREFIX = "/lovable-uploads/"
DEFAULT_LEGACY_UPLOAD_HOST = "https://e84fd20e-7cca-4259-84ad-12452c25e301.sandbox.lovable.dev"


@dataclass(frozen=True)
class Settings:
    gotenberg_url: str
    gotenberg_api_key: str
    supabase_url: str
    service_role_key: str
    storage_bucket: str = DEFAULT_STORAGE_BUCKET
    storage_s3_endpoint: str = ""
    storage_region: str = DEFAULT_STORAGE_REGION
    signed_url_ttl: int = DEFAULT_SIGNED_URL_TTL
    render_wait_delay: str = DEFAULT_WAIT_DELAY
    render_timeout: Optional[float] = None
    image_fetch_timeout: float = DEFAULT_IMAGE_FETCH_TIMEOUT
    legacy_upload_prefix: str = DEFAULT_LEGACY_UPLOAD_PREFIX
    legacy_upload_host: str = DEFAULT_LEGACY_UPLOAD_HOST
    log_level: str = "INFO"

    @property
    def rest_url(self) -> str:
        return f"{self.supabase_url}/rest/v1"

    @property
    def s3_endpoint(self) -> str:
        return self.storage_s3_endpoint or f"{self.supabase_url}/storage/v1/s3"

    @property
    def public_object_url(self) -> str:
        return f"{self.supabase_url}/storage/v1/object/public/{self.storage_bucket}"


def _normalize_wait_delay(value: str | None) -> str:
    if value is None:
        return DEFAULT_WAIT_DELAY

    candidate = str(value).strip().lower()
    if not candidate:
        return DEFAULT_WAIT_DELAY

    if re.fullmatch(r"\d+(?:\.\d+)?(?:ms|s)", candidate):
        return candidate

    if re.fullmatch(r"\d+", candidate):
        normalized = f"{candidate}ms"
        logger.debug("Normalized numeric wait delay: %s -> %s", candidate, normalized)
        return normalized

    logger.warning("Invalid RENDER_WAIT_DELAY '%s'. Falling back to %s.", value, DEFAULT_WAIT_DELAY)
    return DEFAULT_WAIT_DELAY


def _float_or_default(env: Mapping[str, str], key: str, default: Optional[float]) -> Optional[float]:
    raw = (env.get(key) or "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{key} must be a number, got {raw!r}") from exc


def load_settings(environ: Mapping[str, str] | None = None) -> Settings:
    """Build :class:`Settings` from the environment.

    Every required key is checked before failing so a misconfigured deployment
    reports all of its gaps in one error.
    """
    env = os.environ if environ is None else environ

    missing = [key for key in REQUIRED_ENV_KEYS if not (env.get(key) or "").strip()]
    if missing:
        raise ConfigurationError(f"Missing required configuration: {', '.join(missing)}")

    ttl = _float_or_default(env, "SIGNED_URL_TTL_SECONDS", float(DEFAULT_SIGNED_URL_TTL))
    settings = Settings(
        gotenberg_url=env["GOTENBERG_URL"].strip().rstrip("/"),
        gotenberg_api_key=env["GOTENBERG_API_KEY"].strip(),
        supabase_url=env["SUPABASE_URL"].strip().rstrip("/"),
        service_role_key=env["SUPABASE_SERVICE_ROLE_KEY"].strip(),
        storage_bucket=(env.get("STORAGE_BUCKET") or DEFAULT_STORAGE_BUCKET).strip(),
        storage_s3_endpoint=(env.get("STORAGE_S3_ENDPOINT") or "").strip().rstrip("/"),
        storage_region=(env.get("STORAGE_REGION") or DEFAULT_STORAGE_REGION).strip(),
        signed_url_ttl=int(ttl),
        render_wait_delay=_normalize_wait_delay(env.get("RENDER_WAIT_DELAY")),
        render_timeout=_float_or_default(env, "RENDER_TIMEOUT_SECONDS", None),
        image_fetch_timeout=_float_or_default(env, "IMAGE_FETCH_TIMEOUT_SECONDS", DEFAULT_IMAGE_FETCH_TIMEOUT),
        legacy_upload_prefix=env.get("LEGACY_UPLOAD_PREFIX") or DEFAULT_LEGACY_UPLOAD_PREFIX,
        legacy_upload_host=(env.get("LEGACY_UPLOAD_HOST") or DEFAULT_LEGACY_UPLOAD_HOST).rstrip("/"),
        log_level=(env.get("LOG_LEVEL") or "INFO").upper(),
    )
    logger.info(
        "Using Gotenberg at %s, storage bucket '%s' via %s",
        settings.gotenberg_url,
        settings.storage_bucket,
        settings.s3_endpoint,
    )
    return settings

import logging
import os


LOG_FORMAT = '%(asctime)s %(levelname)s [%(name)s] %(message)s'
NOISY_LOGGERS = ('boto3', 'botocore', 's3transfer', 'urllib3', 'requests', 'PIL')


def configure_logging(level: str | None = None) -> None:
    """Configure logging consistently for Lambda and the local Flask server."""
    log_level = (level or os.environ.get("LOG_LEVEL", "INFO")).upper()
    root = logging.getLogger()
    root.setLevel(getattr(logging, log_level, logging.INFO))

    # Lambda pre-installs a handler on the root logger; only add ours locally.
    if not root.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

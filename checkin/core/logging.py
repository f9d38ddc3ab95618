# checkin/core/logging.py
import logging
import sys

from checkin.core.config import settings

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

_configured = False


def setup_logging(level: str | None = None) -> None:
    """Configura o logger raiz uma única vez (stream handler em stdout)."""
    global _configured
    root = logging.getLogger()
    root.setLevel((level or settings.LOG_LEVEL).upper())
    if _configured:
        return
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root.addHandler(handler)
    # uvicorn já tem handlers próprios; evita linhas duplicadas
    logging.getLogger("uvicorn.access").propagate = False
    _configured = True

"""ASGI entrypoint: ``uvicorn paintstock.main:app``."""

from prometheus_fastapi_instrumentator import Instrumentator

from . import create_app, init_db
from .core.config import settings
from .core.logging import configure_logging

configure_logging(settings.LOG_LEVEL)
init_db()

app = create_app()
instrumentator = Instrumentator(excluded_handlers=["/health", "/metrics"])
instrumentator.instrument(app).expose(app, include_in_schema=False)

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from authcore.domain.errors import StorageUnavailable
from authcore.infrastructure.db.pool import close_pool, open_pool
from authcore.infrastructure.email.http_notification_sender import (
    HttpNotificationSender,
)
from authcore.infrastructure.http.client import (
    close_http_client,
    get_http_client,
    open_http_client,
)
from authcore.logging import setup_logging
from authcore.presentation.api import api
from authcore.settings import get_settings

settings = get_settings()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    await open_pool()

    await open_http_client(timeout=settings.notification_timeout_seconds)

    # ONE shared notifier, using the shared HTTP client
    notifier = HttpNotificationSender(
        base_url=settings.notifier_base_url,
        client=get_http_client(),
    )
    app.state.notification_sender = notifier

    try:
        yield
    finally:
        # shutdown
        await notifier.aclose()  # does not close the shared client
        await close_http_client()
        await close_pool()


async def storage_unavailable_handler(
    request: Request, exc: StorageUnavailable
) -> JSONResponse:
    logger.error(
        "storage unavailable",
        extra={"path": request.url.path, "error": str(exc)},
    )
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"detail": "storage unavailable"},
    )


def create_app() -> FastAPI:
    setup_logging(settings.log_level)
    app = FastAPI(
        title="Verification & Session API", version="0.1.0", lifespan=lifespan
    )
    app.state.settings = settings
    app.add_exception_handler(StorageUnavailable, storage_unavailable_handler)
    app.include_router(api)
    return app


app = create_app()

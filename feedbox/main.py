import logging
from typing import Optional

from litestar import Litestar, Request
from litestar.config.cors import CORSConfig
from litestar.datastructures import State
from litestar.di import Provide
from litestar.exceptions import HTTPException, ValidationException
from litestar.response import Response
from litestar.status_codes import (
    HTTP_400_BAD_REQUEST,
    HTTP_405_METHOD_NOT_ALLOWED,
    HTTP_500_INTERNAL_SERVER_ERROR,
)

from feedbox.config import Settings, mask_database_url
from feedbox.errors import NotAllowed, ValidationError
from feedbox.routes import ROUTES
from feedbox.store import FeedbackStore, SQLAlchemyFeedbackStore, build_store
from feedbox.utils.logging import log_request_error, set_debug

logger = logging.getLogger("Feedbox")


def configure_logging(debug: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s"
    )
    set_debug(debug)


# --- Exception handlers

def _error_response(status_code: int, error: str, details=None) -> Response:
    content = {"error": error}
    if details:
        content["details"] = details
    return Response(content=content, status_code=status_code, media_type="application/json")


def handle_validation_error(request: Request, exc: Exception) -> Response:
    """Bad input: pydantic/parameter failures from Litestar and our own checks."""
    if isinstance(exc, ValidationException):
        return _error_response(HTTP_400_BAD_REQUEST, "Invalid request", exc.extra)
    return _error_response(HTTP_400_BAD_REQUEST, str(exc))


def handle_not_allowed(request: Request, exc: NotAllowed) -> Response:
    return _error_response(HTTP_405_METHOD_NOT_ALLOWED, "Method not allowed")


def handle_http_exception(request: Request, exc: HTTPException) -> Response:
    return _error_response(exc.status_code, exc.detail)


def log_exceptions(request: Request, exc: Exception) -> Response:
    log_request_error(request, exc, message="Unhandled exception occurred")
    return _error_response(HTTP_500_INTERNAL_SERVER_ERROR, "Internal Server Error")


# --- Store lifecycle

def provide_store(state: State) -> FeedbackStore:
    return state.store


def create_app(settings: Optional[Settings] = None, store: Optional[FeedbackStore] = None) -> Litestar:
    """Build the application around a single process-wide feedback store."""
    settings = settings or Settings.from_env()
    configure_logging(settings.debug)
    logger.info(f"Starting app in {'DEBUG' if settings.debug else 'PRODUCTION'} mode")
    logger.info(f"Database URL: {mask_database_url(settings.database_url)}")

    feedback_store = store or build_store(settings)

    async def on_startup(app: Litestar) -> None:
        # Tables are expected to exist in production (see deploy/init_db.py)
        if settings.debug and isinstance(feedback_store, SQLAlchemyFeedbackStore):
            await feedback_store.create_tables()

    async def on_shutdown(app: Litestar) -> None:
        await feedback_store.close()
        logger.info("Feedback store closed")

    cors_config = CORSConfig(
        allow_origins=["*"],
        allow_methods=["GET", "POST", "DELETE"],
        allow_headers=["Content-Type"],
    )

    return Litestar(
        route_handlers=ROUTES,
        debug=settings.debug,
        state=State({"store": feedback_store}),
        dependencies={"store": Provide(provide_store, sync_to_thread=False)},
        on_startup=[on_startup],
        on_shutdown=[on_shutdown],
        cors_config=cors_config,
        exception_handlers={
            ValidationException: handle_validation_error,
            ValidationError: handle_validation_error,
            NotAllowed: handle_not_allowed,
            HTTPException: handle_http_exception,
            Exception: log_exceptions,
        },
    )


def run() -> None:
    """Serve the app with uvicorn."""
    import uvicorn

    settings = Settings.from_env()
    uvicorn.run(app, host=settings.host, port=settings.port)


app = create_app()

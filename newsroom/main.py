import logging
import sys
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from newsroom import __version__
from newsroom.config import Settings, get_settings
from newsroom.database import Database
from newsroom.exceptions import NewsroomError
from newsroom.middleware import TimingMiddleware
from newsroom.routers import authors, categories, news, previews, sections, tags
from newsroom.storage import BlobStore, LocalBlobStore

logger = logging.getLogger(__name__)


def setup_logging(level: str) -> None:
    """Configure root logging once; quiet the chattier libraries."""
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings: Settings = app.state.settings
    setup_logging(settings.LOG_LEVEL)
    logger.info("Newsroom API %s starting (env=%s)", __version__, settings.APP_ENV)
    yield
    await app.state.db.dispose()
    logger.info("Newsroom API stopped")


def register_exception_handlers(app: FastAPI) -> None:
    """Map each application error to its own status code and ``error`` code."""

    @app.exception_handler(NewsroomError)
    async def handle_newsroom_error(request: Request, exc: NewsroomError):
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s | %s", request.method, request.url.path, exc.message, exc.context)
        else:
            logger.info("%s %s -> %s: %s", request.method, request.url.path, exc.code, exc.message)
        content = {"error": exc.code, "message": exc.message}
        if exc.context and exc.status_code < 500:
            content["details"] = exc.context
        return JSONResponse(status_code=exc.status_code, content=content)

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError):
        errors = [
            {"loc": list(err.get("loc", ())), "msg": err.get("msg", "")}
            for err in exc.errors()
        ]
        return JSONResponse(
            status_code=400,
            content={
                "error": "validation_error",
                "message": "Request validation failed",
                "details": {"errors": errors},
            },
        )

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        logger.error("Unexpected error on %s %s", request.method, request.url.path, exc_info=exc)
        return JSONResponse(
            status_code=500,
            content={"error": "internal_error", "message": "An unexpected error occurred."},
        )


def create_app(
    settings: Settings | None = None,
    database: Database | None = None,
    blob_store: BlobStore | None = None,
) -> FastAPI:
    """
    Build the application with explicitly constructed collaborators.

    Anything not passed in is built from *settings*: the database handle
    from ``DATABASE_URL`` and a ``LocalBlobStore`` under ``MEDIA_ROOT``.
    """
    settings = settings or get_settings()

    app = FastAPI(
        title="Newsroom API",
        description="CRUD backend for a news-publishing site with social link previews",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.db = database or Database(settings.DATABASE_URL, echo=settings.DEBUG)
    app.state.blob_store = blob_store or LocalBlobStore(settings.MEDIA_ROOT, settings.MEDIA_URL)

    # Middleware
    app.add_middleware(TimingMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    # Routers
    app.include_router(news.router)
    app.include_router(categories.router)
    app.include_router(authors.router)
    app.include_router(tags.router)
    app.include_router(sections.router)
    app.include_router(previews.router)

    if isinstance(app.state.blob_store, LocalBlobStore):
        app.mount(
            settings.MEDIA_URL,
            StaticFiles(directory=settings.MEDIA_ROOT, check_dir=False),
            name="media",
        )

    @app.get("/health")
    async def health():
        return {"status": "healthy", "version": __version__}

    return app


app = create_app()

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from books import repository as books_repository
from books import router as books_router
from core import db
from core.config import Settings, load_settings
from core.log import setup_logging
from core.storage import ObjectStore, ObjectStoreError

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings: Settings = app.state.settings
    setup_logging(settings.log_level)
    if settings.db_create_database:
        await db.ensure_database(settings)
    # Initialize the DB pool once per process.
    await db.init_pool(settings)
    try:
        await books_repository.ensure_schema()
        logger.info("startup_complete bucket=%s port=%s", settings.s3_bucket, settings.port)
        yield
    finally:
        await db.close_pool()


async def _store_error_handler(request: Request, exc: Exception) -> JSONResponse:
    # Log the cause, never send it to the client.
    logger.error(
        "request_failed method=%s path=%s error=%s",
        request.method,
        request.url.path,
        type(exc).__name__,
        exc_info=exc,
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal storage error."},
    )


async def _validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    problems = "; ".join(
        f"{'.'.join(str(p) for p in err.get('loc', ()))}: {err.get('msg', '')}" for err in exc.errors()
    )
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"detail": problems})


def create_app(settings: Settings | None = None, *, object_store: ObjectStore | None = None) -> FastAPI:
    settings = settings or load_settings()

    app = FastAPI(title="Book catalog", lifespan=lifespan)
    app.state.settings = settings
    app.state.object_store = object_store or ObjectStore.from_settings(settings)

    if settings.cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=list(settings.cors_origins),
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    app.add_exception_handler(db.StoreError, _store_error_handler)
    app.add_exception_handler(ObjectStoreError, _store_error_handler)
    app.add_exception_handler(RequestValidationError, _validation_error_handler)

    app.include_router(books_router.router, tags=["books"])

    @app.get("/health")
    def health() -> dict:
        return {"status": "ok"}

    return app


if __name__ == "__main__":
    import uvicorn

    settings = load_settings()
    uvicorn.run(create_app(settings), host="0.0.0.0", port=settings.port)

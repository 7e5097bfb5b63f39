from textwrap import dedent
import logging
from typing import Optional

import pydantic
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.routing import APIRoute
from fastapi.staticfiles import StaticFiles

from media_api import __version__
from media_api.adapters.storage import LocalMediaStore, MediaStore, build_media_store
from media_api.config.settings import Settings
from media_api.errors import (
    MediaStoreError,
    handle_broad_exceptions,
    handle_media_errors,
    handle_pydantic_validation_errors,
    handle_request_validation_errors,
)
from media_api.routers.files import router as files_router
from media_api.routers.health import router as health_router

# Set up logging
logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(level=settings.log_level, format=LOG_FORMAT)


def create_app(settings: Optional[Settings] = None, media_store: Optional[MediaStore] = None) -> FastAPI:
    """Create a FastAPI application."""
    settings = settings or Settings()
    configure_logging(settings)

    logger.info("Configuration Settings:")
    for key, value in settings.masked_items():
        logger.info("  %s: %s", key, value)

    media_store = media_store or build_media_store(settings)

    app = FastAPI(
        title="Wedding Media API",
        summary="Share wedding photos and videos",
        version=__version__,
        description=dedent(
            """\
        Upload images and videos, list them, preview them through on-the-fly
        transformations and delete them. Media lives either on local disk or on
        [Cloudinary](https://cloudinary.com/documentation), depending on `STORAGE_BACKEND`.
        """
        ),
        generate_unique_id_function=custom_generate_unique_id,
    )

    # CORS settings to allow the browser client to talk to the API
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.client_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.state.settings = settings
    app.state.media_store = media_store

    app.include_router(files_router, tags=["files"])
    app.include_router(health_router, tags=["health"])

    # Locally stored media is served straight from the upload directory
    if isinstance(media_store, LocalMediaStore):
        app.mount(
            media_store.public_url_prefix,
            StaticFiles(directory=media_store.upload_dir),
            name="uploads",
        )

    app.add_exception_handler(MediaStoreError, handle_media_errors)
    app.add_exception_handler(RequestValidationError, handle_request_validation_errors)
    app.add_exception_handler(
        exc_class_or_status_code=pydantic.ValidationError,
        handler=handle_pydantic_validation_errors,
    )
    app.middleware("http")(handle_broad_exceptions)

    logger.info("Media store ready: %s (configured=%s)", media_store.backend, media_store.is_configured)
    return app


def custom_generate_unique_id(route: APIRoute):
    """
    Generate prettier `operationId`s in the OpenAPI schema.

    These become the function names in generated client SDKs.
    """
    return f"{route.tags[0]}-{route.name}"


if __name__ == "__main__":
    import uvicorn

    settings = Settings()
    uvicorn.run(create_app(settings), host=settings.host, port=settings.port)

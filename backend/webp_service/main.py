"""FastAPI application entry point."""
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from webp_service.api.routes import router
from webp_service.config import Settings, configure_logging, logger as config_logger
from webp_service.conversion.encoder import CommandRunner, EncoderNotFound, resolve_encoder
from webp_service.conversion.models import ConversionError, ErrorKind
from webp_service.conversion.service import ConversionService

logging.getLogger("uvicorn").setLevel(logging.INFO)
logger = logging.getLogger("webp_service.main")

IMAGE_FIELD_LOC = ("body", "image")


def log_encoder_location(settings: Settings) -> None:
    try:
        location = resolve_encoder(settings)
    except EncoderNotFound as e:
        config_logger.warning("cwebp unavailable, conversions will fail: %s", e)
        return
    config_logger.info("Using cwebp at: %s (from %s)", location.command, location.source)


@asynccontextmanager
async def lifespan(app: FastAPI):
    log_encoder_location(app.state.settings)
    config_logger.info("WebP converter API started")
    yield
    config_logger.info("WebP converter API shutting down")


async def conversion_error_handler(request: Request, exc: ConversionError):
    logger.warning("%s %s failed (%s): %s", request.method, request.url.path, exc.kind.value, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    # An "image" part that is not a file counts as no image at all
    if any(tuple(err.get("loc", ())) == IMAGE_FIELD_LOC for err in errors):
        error = ConversionError(ErrorKind.INPUT_MISSING, "No image file provided")
        return await conversion_error_handler(request, error)
    return JSONResponse(
        status_code=400,
        content={"error": "Invalid request", "details": jsonable_encoder(errors)},
    )


async def http_error_handler(request: Request, exc: StarletteHTTPException):
    logger.warning("%s %s failed (%s): %s", request.method, request.url.path, exc.status_code, exc.detail)
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail},
        headers=getattr(exc, "headers", None),
    )


def create_app(settings: Optional[Settings] = None, runner: Optional[CommandRunner] = None) -> FastAPI:
    """Build the app. Tests pass their own settings and a fake runner."""
    settings = settings or Settings.from_env()
    configure_logging(settings)

    app = FastAPI(
        title="WebP Converter API",
        description="Convert uploaded images to WebP with the cwebp encoder.",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.conversion_service = ConversionService(settings, runner=runner)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_origins),
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["Content-Disposition"],
    )
    app.add_exception_handler(ConversionError, conversion_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.include_router(router)
    return app


def run() -> None:
    import uvicorn

    settings = Settings.from_env()
    uvicorn.run(create_app(settings), host=settings.host, port=settings.port)


if __name__ == "__main__":
    run()

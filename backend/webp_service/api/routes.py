"""API routes for upload and conversion."""
import asyncio
import logging
import tempfile
from pathlib import Path
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, Request, UploadFile
from fastapi.responses import Response

from webp_service.config import Settings
from webp_service.conversion.encoder import (
    EncoderNotFound,
    encoder_candidate,
    encoder_install_root,
    encoder_version,
    resolve_encoder,
)
from webp_service.conversion.models import ConversionError, ConversionRequest, ErrorKind
from webp_service.conversion.naming import content_disposition, safe_upload_name, webp_filename
from webp_service.conversion.service import ConversionService

logger = logging.getLogger("webp_service.api")
router = APIRouter(tags=["converter"])

CHUNK_SIZE = 1024 * 1024
WORK_DIR_PREFIX = "webp-convert-"


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_conversion_service(request: Request) -> ConversionService:
    return request.app.state.conversion_service


def parse_quality(raw: Optional[str], default: int) -> int:
    """Quality as an int in [0, 100]; None or blank means the default."""
    if raw is None or not raw.strip():
        return default
    raw = raw.strip()
    # Plain ASCII digits only; int() alone would take "5_0" or Arabic-Indic digits
    digits = raw[1:] if raw[0] in "+-" else raw
    if raw.isascii() and digits.isdigit():
        value = int(raw)
    else:
        value = -1
    if not 0 <= value <= 100:
        raise ConversionError(ErrorKind.INVALID_INPUT, "Quality must be an integer between 0 and 100")
    return value


async def _stage_upload(file: UploadFile, dest: Path, max_bytes: int) -> int:
    """Copy the upload to dest in chunks. Returns bytes written."""
    total = 0
    try:
        with open(dest, "wb") as f:
            while chunk := await file.read(CHUNK_SIZE):
                total += len(chunk)
                if total > max_bytes:
                    max_mb = max_bytes // (1024 * 1024)
                    raise ConversionError(ErrorKind.INPUT_TOO_LARGE, f"File too large (max {max_mb} MB)")
                f.write(chunk)
    except OSError as e:
        logger.exception("Error saving upload to %s: %s", dest, e)
        raise ConversionError(ErrorKind.RESOURCE_UNAVAILABLE, "Failed to save uploaded file") from e
    return total


def _list_dir(path: Optional[Path]) -> list[str]:
    if path is None:
        return []
    try:
        return sorted(entry.name for entry in path.iterdir())
    except OSError as e:
        return [f"error reading dir: {e}"]


@router.get("/health")
def health():
    return {"status": "ok"}


@router.get("/debug")
def debug(
    settings: Settings = Depends(get_settings),
    svc: ConversionService = Depends(get_conversion_service),
):
    """Report where cwebp resolves to, its version, and the libwebp install tree."""
    if not settings.enable_debug_endpoint:
        raise HTTPException(404, "Not Found")
    candidate = encoder_candidate(settings)
    error = None
    try:
        location = resolve_encoder(settings)
    except EncoderNotFound as e:
        location = None
        error = str(e)
    root = encoder_install_root(settings, location)
    return {
        "cwebp_path": location.command if location else candidate.command,
        "source": candidate.source,
        "exists": location is not None,
        "error": error,
        "version": encoder_version(location.command, svc.runner) if location else None,
        "libwebp_contents": _list_dir(root),
        "bin_contents": _list_dir(root / "bin") if root is not None else [],
    }


@router.post("/convert")
async def convert_to_webp(
    image: Optional[UploadFile] = File(None),
    quality: Optional[str] = Query(None, description="Integer 0-100; defaults to DEFAULT_QUALITY"),
    quality_form: Optional[str] = Form(None, alias="quality"),
    settings: Settings = Depends(get_settings),
    svc: ConversionService = Depends(get_conversion_service),
):
    """Convert one uploaded image to WebP and return it as an attachment."""
    if image is None:
        logger.warning("Convert request without an image field")
        raise ConversionError(ErrorKind.INPUT_MISSING, "No image file provided")
    quality_value = parse_quality(quality if quality is not None else quality_form, settings.default_quality)

    upload_name = safe_upload_name(image.filename)
    output_name = webp_filename(upload_name)
    logger.info("Received file: %s, size: %s", upload_name, image.size)

    try:
        work_dir = tempfile.TemporaryDirectory(prefix=WORK_DIR_PREFIX, dir=settings.work_root)
    except OSError as e:
        logger.exception("Error creating temp directory: %s", e)
        raise ConversionError(ErrorKind.RESOURCE_UNAVAILABLE, "Failed to create temp directory") from e

    with work_dir as tmp:
        in_dir = Path(tmp) / "in"
        out_dir = Path(tmp) / "out"
        try:
            in_dir.mkdir()
            out_dir.mkdir()
        except OSError as e:
            logger.exception("Error preparing work area %s: %s", tmp, e)
            raise ConversionError(ErrorKind.RESOURCE_UNAVAILABLE, "Failed to create temp directory") from e

        src = in_dir / upload_name
        if await _stage_upload(image, src, settings.max_upload_bytes) == 0:
            logger.warning("Empty upload: %s", upload_name)
            raise ConversionError(ErrorKind.INPUT_MISSING, "No image file provided")

        dest = out_dir / output_name
        result = await asyncio.to_thread(svc.convert, ConversionRequest(src, dest, quality_value))
        if not result.ok:
            raise result.to_error()

        try:
            webp_data = dest.read_bytes()
        except OSError as e:
            logger.exception("Error reading converted file: %s", e)
            raise ConversionError(ErrorKind.OUTPUT_UNREADABLE, "Failed to read converted file") from e

    logger.info("Sending WebP file: %s, size: %d bytes", output_name, len(webp_data))
    return Response(
        content=webp_data,
        media_type="image/webp",
        headers={"Content-Disposition": content_disposition(output_name)},
    )

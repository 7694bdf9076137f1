"""Filename helpers for staged uploads and converted outputs."""
from pathlib import PurePosixPath, PureWindowsPath
from typing import Optional
from urllib.parse import quote

WEBP_SUFFIX = ".webp"
FALLBACK_NAME = "upload"


def safe_upload_name(filename: Optional[str]) -> str:
    """Base name of a client-supplied filename, stripped of any directory part."""
    name = (filename or "").strip()
    # Clients may send either separator; drop both
    name = PureWindowsPath(PurePosixPath(name).name).name
    if name in ("", ".", ".."):
        return FALLBACK_NAME
    return name


def webp_filename(filename: str) -> str:
    """Replace the final extension with .webp: photo.JPG -> photo.webp, noext -> noext.webp."""
    if filename.endswith("."):
        # A bare trailing dot is the extension
        stem = filename[:-1]
    else:
        stem = PurePosixPath(filename).stem
    return (stem or FALLBACK_NAME) + WEBP_SUFFIX


def content_disposition(filename: str) -> str:
    try:
        filename.encode("ascii")
    except UnicodeEncodeError:
        return f"attachment; filename*=UTF-8''{quote(filename)}"
    if any(c in filename for c in ' ";\\'):
        escaped = filename.replace("\\", "\\\\").replace('"', '\\"')
        return f'attachment; filename="{escaped}"'
    return f"attachment; filename={filename}"

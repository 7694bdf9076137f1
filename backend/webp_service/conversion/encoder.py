"""Locating and running the external cwebp encoder."""
import logging
import os
import shutil
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional, Sequence

from webp_service.config import ENCODER_SUBPATH, Settings
from webp_service.conversion.models import EncoderLocation

logger = logging.getLogger("webp_service.encoder")


class EncoderNotFound(Exception):
    """The configured encoder cannot be resolved to an executable."""


@dataclass(frozen=True)
class CommandResult:
    returncode: int
    output: str  # stdout and stderr, interleaved


# (args, timeout) -> CommandResult. Raises subprocess.TimeoutExpired or OSError.
CommandRunner = Callable[[Sequence[str], Optional[float]], CommandResult]


def run_command(args: Sequence[str], timeout: Optional[float] = None) -> CommandResult:
    """Run a command to completion. subprocess.run kills the child when the timeout expires."""
    result = subprocess.run(
        list(args),
        stdout=subprocess.PIPE,
        stderr=subprocess.STDOUT,
        timeout=timeout,
        check=False,
    )
    return CommandResult(
        returncode=result.returncode,
        output=decode_output(result.stdout),
    )


def decode_output(raw) -> str:
    if raw is None:
        return ""
    if isinstance(raw, bytes):
        return raw.decode("utf-8", errors="replace")
    return str(raw)


def encoder_candidate(settings: Settings, cwd: Optional[Path] = None) -> EncoderLocation:
    """Apply the resolution policy without touching the filesystem."""
    if settings.libwebp_path:
        root = Path(settings.libwebp_path)
        if not root.is_absolute():
            root = (cwd or Path.cwd()) / root
        return EncoderLocation(command=str(root.joinpath(*ENCODER_SUBPATH)), source="libwebp_path")
    return EncoderLocation(command=settings.encoder_command, source="command")


def resolve_encoder(settings: Settings, cwd: Optional[Path] = None) -> EncoderLocation:
    """Resolve the encoder and check it is executable. Raises EncoderNotFound."""
    location = encoder_candidate(settings, cwd)
    command = location.command
    if os.sep in command or (os.altsep and os.altsep in command):
        path = Path(command)
        if not path.is_file():
            raise EncoderNotFound(f"cwebp binary not found at {command}")
        if not os.access(path, os.X_OK):
            raise EncoderNotFound(f"cwebp binary at {command} is not executable")
        return location
    found = shutil.which(command)
    if found is None:
        raise EncoderNotFound(f"cwebp command {command!r} not found on PATH")
    return EncoderLocation(command=found, source=location.source)


def encoder_install_root(settings: Settings, location: Optional[EncoderLocation] = None) -> Optional[Path]:
    """The libwebp tree to inspect: the override root, or the directory above the binary's bin/."""
    if settings.libwebp_path:
        root = Path(settings.libwebp_path)
        return root if root.is_absolute() else Path.cwd() / root
    if location is not None and location.is_path:
        parent = Path(location.command).parent
        return parent.parent if parent.name == "bin" else parent
    return None


def encoder_version(command: str, runner: CommandRunner = run_command, timeout: Optional[float] = 10) -> str:
    try:
        result = runner([command, "-version"], timeout)
    except subprocess.TimeoutExpired:
        return "error: timed out"
    except OSError as e:
        return f"error: {e}"
    if result.returncode != 0:
        return f"error: exit status {result.returncode} - {result.output.strip()}"
    return result.output.strip()

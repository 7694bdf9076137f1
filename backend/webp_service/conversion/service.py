"""WebP conversion through the external cwebp encoder."""
import logging
import subprocess
from typing import Optional

from webp_service.config import Settings
from webp_service.conversion.encoder import (
    CommandRunner,
    EncoderNotFound,
    decode_output,
    resolve_encoder,
    run_command,
)
from webp_service.conversion.models import (
    ConversionFailure,
    ConversionRequest,
    ConversionResult,
    ConversionSuccess,
    EncoderLocation,
    ErrorKind,
)

logger = logging.getLogger("webp_service.service")


class ConversionService:
    """Runs one cwebp invocation per request. Holds no per-request state."""

    def __init__(self, settings: Settings, runner: Optional[CommandRunner] = None):
        self.settings = settings
        self._runner = runner or run_command
        logger.info(
            "ConversionService initialized (timeout=%ss, default_quality=%s)",
            settings.encoder_timeout,
            settings.default_quality,
        )

    @property
    def runner(self) -> CommandRunner:
        return self._runner

    def locate_encoder(self) -> EncoderLocation:
        return resolve_encoder(self.settings)

    @staticmethod
    def build_command(encoder: str, request: ConversionRequest) -> list[str]:
        return [
            encoder,
            "-q", str(request.quality),
            str(request.source),
            "-o", str(request.destination),
        ]

    def convert(self, request: ConversionRequest) -> ConversionResult:
        """Blocking. Never raises; failures come back as ConversionFailure."""
        try:
            location = self.locate_encoder()
        except EncoderNotFound as e:
            logger.error("Encoder unavailable: %s", e)
            return ConversionFailure(ErrorKind.CONFIGURATION_UNRESOLVED, str(e))

        cmd = self.build_command(location.command, request)
        logger.info(
            "Converting %s to WebP with quality %s using %s",
            request.source, request.quality, location.command,
        )
        try:
            result = self._runner(cmd, self.settings.encoder_timeout)
        except subprocess.TimeoutExpired as e:
            output = decode_output(e.output)
            logger.error("cwebp timed out after %ss for %s", self.settings.encoder_timeout, request.source)
            return ConversionFailure(
                ErrorKind.ENCODER_TIMEOUT,
                f"Conversion timed out after {self.settings.encoder_timeout:g} seconds",
                output or None,
            )
        except OSError as e:
            logger.error("Failed to start cwebp at %s: %s", location.command, e)
            return ConversionFailure(ErrorKind.ENCODER_FAILED, "Failed to convert image", str(e))

        if result.returncode != 0:
            logger.error(
                "Error converting image: exit status %s, output: %s",
                result.returncode, result.output,
            )
            return ConversionFailure(ErrorKind.ENCODER_FAILED, "Failed to convert image", result.output)

        if not request.destination.is_file():
            logger.error("cwebp exited 0 but produced no file at %s", request.destination)
            return ConversionFailure(ErrorKind.OUTPUT_UNREADABLE, "Failed to read converted file")

        logger.info("Converted %s -> %s", request.source.name, request.destination.name)
        return ConversionSuccess(request.destination)

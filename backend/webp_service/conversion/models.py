"""Conversion request/result models and the failure taxonomy."""
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional, Union


class ErrorKind(str, Enum):
    INPUT_MISSING = "input_missing"
    INVALID_INPUT = "invalid_input"
    INPUT_TOO_LARGE = "input_too_large"
    RESOURCE_UNAVAILABLE = "resource_unavailable"
    CONFIGURATION_UNRESOLVED = "configuration_unresolved"
    ENCODER_FAILED = "encoder_failed"
    ENCODER_TIMEOUT = "encoder_timeout"
    OUTPUT_UNREADABLE = "output_unreadable"

    @property
    def status_code(self) -> int:
        return _STATUS_CODES[self]


_STATUS_CODES = {
    ErrorKind.INPUT_MISSING: 400,
    ErrorKind.INVALID_INPUT: 400,
    ErrorKind.INPUT_TOO_LARGE: 413,
    ErrorKind.RESOURCE_UNAVAILABLE: 500,
    ErrorKind.CONFIGURATION_UNRESOLVED: 500,
    ErrorKind.ENCODER_FAILED: 500,
    ErrorKind.ENCODER_TIMEOUT: 504,
    ErrorKind.OUTPUT_UNREADABLE: 500,
}


class ConversionError(Exception):
    """A request-level failure, rendered as {"error": ..., "details": ...}."""

    def __init__(self, kind: ErrorKind, message: str, details: Optional[str] = None):
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.details = details

    @property
    def status_code(self) -> int:
        return self.kind.status_code

    def to_dict(self) -> dict:
        body = {"error": self.message}
        if self.details:
            body["details"] = self.details
        return body


@dataclass(frozen=True)
class ConversionRequest:
    source: Path
    destination: Path
    quality: int = 80


@dataclass(frozen=True)
class ConversionSuccess:
    output_path: Path

    ok = True


@dataclass(frozen=True)
class ConversionFailure:
    kind: ErrorKind
    reason: str
    details: Optional[str] = None

    ok = False

    def to_error(self) -> ConversionError:
        return ConversionError(self.kind, self.reason, self.details)


ConversionResult = Union[ConversionSuccess, ConversionFailure]


@dataclass(frozen=True)
class EncoderLocation:
    """Where the encoder was found. `source` is "libwebp_path" or "command"."""

    command: str
    source: str

    @property
    def is_path(self) -> bool:
        return Path(self.command).is_absolute()

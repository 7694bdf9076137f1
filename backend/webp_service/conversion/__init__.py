from .service import ConversionService
from .models import (
    ConversionError,
    ConversionFailure,
    ConversionRequest,
    ConversionSuccess,
    EncoderLocation,
    ErrorKind,
)

__all__ = [
    "ConversionService",
    "ConversionError",
    "ConversionFailure",
    "ConversionRequest",
    "ConversionSuccess",
    "EncoderLocation",
    "ErrorKind",
]

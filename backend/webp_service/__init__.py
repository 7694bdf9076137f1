"""WebP conversion service backed by the cwebp encoder."""

__version__ = "1.0.0"

"""Core shared pieces: exception taxonomy."""

from backend_defi.core.exceptions import (
    ConfigError,
    DecodeError,
    DefiBackendError,
    TransportError,
)

__all__ = ["ConfigError", "DecodeError", "DefiBackendError", "TransportError"]

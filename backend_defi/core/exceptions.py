"""
Application-level exceptions.

- TransportError: a Chain Client call failed (network, timeout, malformed response).
- DecodeError: module error metadata could not be resolved.
- ConfigError: an environment setting has an invalid value.

A rejected extrinsic is not an exception: it is reported as an Outcome with
status Failure. An extrinsic never observed is an Outcome with status NotFound.
"""

from __future__ import annotations


class DefiBackendError(Exception):
    """Base class for all backend_defi errors."""


class TransportError(DefiBackendError):
    """A call to the chain node failed or returned something unusable."""

    def __init__(self, operation: str, detail: str) -> None:
        super().__init__(f"{operation} failed: {detail}")
        self.operation = operation
        self.detail = detail


class DecodeError(DefiBackendError):
    """A (module_index, error_index) pair could not be resolved via metadata."""

    def __init__(self, module_index: int, error_index: int, detail: str = "") -> None:
        msg = f"cannot resolve module error {module_index}/{error_index}"
        if detail:
            msg = f"{msg}: {detail}"
        super().__init__(msg)
        self.module_index = module_index
        self.error_index = error_index


class ConfigError(DefiBackendError):
    """Invalid configuration value."""

"""
Structured logging for Backend DeFi.

JSON logs with timestamp, event_type and the extrinsic being reconciled.
"""

from backend_defi.defi_logging.logger import bind_extrinsic, configure_structlog, get_logger

__all__ = ["bind_extrinsic", "configure_structlog", "get_logger"]

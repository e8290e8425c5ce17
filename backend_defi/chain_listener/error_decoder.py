"""
Dispatch error decoder: why the chain rejected an extrinsic, as a string.

Module errors are resolved to "<Pallet>.<Error>" through the client's
runtime metadata; when that lookup fails the raw pair is reported instead.
Every other error shape is rendered from its variant tag and detail.
"""

from __future__ import annotations

import json
from typing import Any

from backend_defi.chain_client.base import ChainClient
from backend_defi.chain_listener.models import DispatchError, ModuleError, OtherDispatchError
from backend_defi.core.exceptions import DecodeError, TransportError
from backend_defi.defi_logging import get_logger

logger = get_logger(__name__)


def _detail_str(detail: Any) -> str:
    if isinstance(detail, str):
        return detail
    if isinstance(detail, dict) and len(detail) == 1:
        key, value = next(iter(detail.items()))
        if value is None:
            return str(key)
        return f"{key}({_detail_str(value)})"
    return json.dumps(detail, sort_keys=True, default=str)


def format_other_error(error: OtherDispatchError) -> str:
    """BadOrigin -> "BadOrigin"; Token(NoFunds) -> "Token(NoFunds)"."""
    if error.detail is None:
        return error.kind
    return f"{error.kind}({_detail_str(error.detail)})"


def decode_dispatch_error(error: DispatchError, client: ChainClient) -> str:
    """
    Human-meaningful text for a dispatch error.

    Never raises for an unresolvable module error: the literal
    "module error <module_index>/<error_index>" is returned instead.
    """
    if isinstance(error, ModuleError):
        try:
            pallet, name = client.resolve_module_error(error.module_index, error.error_index)
        except (DecodeError, TransportError) as e:
            logger.warning(
                "error_decoder_metadata_lookup_failed",
                module_index=error.module_index,
                error_index=error.error_index,
                error=str(e),
            )
            return f"module error {error.module_index}/{error.error_index}"
        return f"{pallet}.{name}"
    if isinstance(error, OtherDispatchError):
        return format_other_error(error)
    raise TypeError(f"unsupported dispatch error {error!r}")

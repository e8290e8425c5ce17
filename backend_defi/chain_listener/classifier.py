"""
Outcome classifier: reduce a target extrinsic's events to an Outcome.

The target is the extrinsic whose pallet and call match (names compared
case-insensitively, underscores ignored, so "updateBorrowingRate" matches
"update_borrowing_rate") and whose signer is the given address. When the
same sender put the same call in one block twice, the earliest position is
the target.

Among the target's events, ExtrinsicSuccess and ExtrinsicFailed are
decisive; the last decisive event in block order determines the result.
"""

from __future__ import annotations

import json
from collections.abc import Mapping, Sequence

from backend_defi.chain_client.base import ChainClient
from backend_defi.chain_listener.error_decoder import decode_dispatch_error, format_other_error
from backend_defi.chain_listener.models import (
    Block,
    EventRecord,
    Extrinsic,
    ExtrinsicFailed,
    ExtrinsicSuccess,
    ModuleError,
    OtherDispatchError,
    OtherEvent,
    Outcome,
    OutcomeStatus,
)
from backend_defi.defi_logging import get_logger

logger = get_logger(__name__)

UNKNOWN_ERROR_MESSAGE = "Unknown error"
NOT_IN_BLOCK_MESSAGE = "extrinsic not found in block"


def normalize_name(name: str) -> str:
    """Pallet / call name key: lowercase, underscores removed."""
    return name.replace("_", "").lower()


def find_target_extrinsic(
    extrinsics: Sequence[Extrinsic],
    pallet: str,
    call: str,
    sender_address: str,
) -> Extrinsic | None:
    """Earliest extrinsic (by position) for (pallet, call) signed by sender_address."""
    pallet_key = normalize_name(pallet)
    call_key = normalize_name(call)
    matches = [
        x
        for x in extrinsics
        if x.sender == sender_address
        and normalize_name(x.pallet) == pallet_key
        and normalize_name(x.call) == call_key
    ]
    if not matches:
        return None
    if len(matches) > 1:
        logger.info(
            "classifier_multiple_matches",
            indices=[x.index for x in matches],
            chosen_index=min(x.index for x in matches),
        )
    return min(matches, key=lambda x: x.index)


def dump_dispatch_info(info: Mapping[str, object]) -> str:
    return json.dumps(info, default=str)


def classify(
    extrinsics: Sequence[Extrinsic],
    events_by_index: Mapping[int, Sequence[EventRecord]],
    pallet: str,
    call: str,
    sender_address: str,
    client: ChainClient | None = None,
    block: Block | None = None,
) -> Outcome:
    """
    Classify the outcome of sender_address's (pallet, call) extrinsic in one block.

    Args:
        extrinsics: Extrinsics of the block, in order.
        events_by_index: Output of correlate() for the same block.
        pallet: Pallet name, e.g. "defi".
        call: Call name, e.g. "deposit".
        sender_address: SS58 address that signed the extrinsic.
        client: Used to resolve module errors; without it a module error is
            reported as its raw pair.
        block: Only used to annotate the Outcome with height and hash.

    Returns:
        NotFound (matched=False) when no extrinsic matches; otherwise Success,
        Failure, or Unknown (no decisive event) with matched=True.
    """
    target = find_target_extrinsic(extrinsics, pallet, call, sender_address)
    if target is None:
        return Outcome.not_found(NOT_IN_BLOCK_MESSAGE)

    status = OutcomeStatus.UNKNOWN
    message = UNKNOWN_ERROR_MESSAGE
    decisive: list[str] = []
    for record in events_by_index.get(target.index, ()):
        payload = record.payload
        if isinstance(payload, ExtrinsicSuccess):
            status = OutcomeStatus.SUCCESS
            message = dump_dispatch_info(payload.dispatch_info)
            decisive.append(status.value)
        elif isinstance(payload, ExtrinsicFailed):
            status = OutcomeStatus.FAILURE
            message = _failure_message(payload, client)
            decisive.append(status.value)
        elif isinstance(payload, OtherEvent):
            continue
        else:
            raise TypeError(f"unsupported event payload {payload!r}")

    if len(decisive) > 1:
        logger.warning(
            "classifier_conflicting_terminal_events",
            extrinsic_index=target.index,
            events=decisive,
            final_status=status.value,
        )

    return Outcome(
        matched=True,
        status=status,
        message=message,
        block_height=block.height if block is not None else None,
        block_hash=block.hash if block is not None else None,
        extrinsic_index=target.index,
    )


def _failure_message(payload: ExtrinsicFailed, client: ChainClient | None) -> str:
    error = payload.error
    if client is not None:
        return decode_dispatch_error(error, client)
    if isinstance(error, ModuleError):
        return f"module error {error.module_index}/{error.error_index}"
    if isinstance(error, OtherDispatchError):
        return format_other_error(error)
    raise TypeError(f"unsupported dispatch error {error!r}")

"""
Extrinsic-event correlator: join a block's events to its extrinsics.

Events recorded while applying an extrinsic carry an ApplyExtrinsic(i) phase,
where i is the extrinsic's position in the same block. Grouping by that index
is a single pass over the events; Initialization and Finalization events
belong to no extrinsic and are dropped.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable, Sequence

from backend_defi.chain_listener.models import EventRecord, Extrinsic
from backend_defi.defi_logging import get_logger

logger = get_logger(__name__)


def correlate(
    extrinsics: Sequence[Extrinsic],
    events: Iterable[EventRecord],
) -> dict[int, list[EventRecord]]:
    """
    Group events by the position of the extrinsic they were emitted for.

    Args:
        extrinsics: Extrinsics of the block the events were fetched at.
        events: That block's recorded events, in block order.

    Returns:
        index -> events for that extrinsic, preserving block order. Indices
        with no events are absent.
    """
    grouped: dict[int, list[EventRecord]] = defaultdict(list)
    for record in events:
        if record.phase.is_apply_extrinsic:
            grouped[record.phase.extrinsic_index].append(record)

    known = {x.index for x in extrinsics}
    orphans = sorted(i for i in grouped if i not in known)
    if orphans:
        # Events fetched at a different block than the extrinsics
        logger.warning(
            "correlator_orphan_event_indices",
            indices=orphans,
            extrinsic_count=len(extrinsics),
        )
    return dict(grouped)

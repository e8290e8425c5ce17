"""
Data models for blocks, extrinsics, events and reconciliation outcomes.

Responsibilities:
- Define immutable dataclasses for a fetched block and its extrinsics.
- Model the event phase and the closed payload / dispatch error variants.
- Define the Outcome returned to callers of the reconciliation entry point.

All values are created by a Chain Client fetch and discarded after one
reconciliation attempt; nothing here is mutated in place.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Union


class PhaseKind(str, Enum):
    """When, within block execution, an event was recorded."""

    INITIALIZATION = "Initialization"
    APPLY_EXTRINSIC = "ApplyExtrinsic"
    FINALIZATION = "Finalization"


@dataclass(frozen=True)
class Phase:
    """
    Phase tag of a recorded event.

    Only ApplyExtrinsic phases carry an extrinsic index; that index is the
    position of the extrinsic in the same block.
    """

    kind: PhaseKind
    extrinsic_index: int | None = None

    def __post_init__(self) -> None:
        if self.kind is PhaseKind.APPLY_EXTRINSIC:
            if self.extrinsic_index is None or self.extrinsic_index < 0:
                raise ValueError("ApplyExtrinsic phase requires a non-negative extrinsic_index")
        elif self.extrinsic_index is not None:
            raise ValueError(f"{self.kind.value} phase takes no extrinsic_index")

    @classmethod
    def apply_extrinsic(cls, index: int) -> Phase:
        return cls(PhaseKind.APPLY_EXTRINSIC, index)

    @classmethod
    def initialization(cls) -> Phase:
        return cls(PhaseKind.INITIALIZATION)

    @classmethod
    def finalization(cls) -> Phase:
        return cls(PhaseKind.FINALIZATION)

    @property
    def is_apply_extrinsic(self) -> bool:
        return self.kind is PhaseKind.APPLY_EXTRINSIC

    def __str__(self) -> str:
        if self.is_apply_extrinsic:
            return f"{self.kind.value}({self.extrinsic_index})"
        return self.kind.value


# --- Dispatch errors ---------------------------------------------------------


@dataclass(frozen=True)
class ModuleError:
    """Error raised by a pallet, identified by (module_index, error_index)."""

    module_index: int
    error_index: int


@dataclass(frozen=True)
class OtherDispatchError:
    """
    Any dispatch error that is not a module error.

    kind is the variant tag reported by the node (BadOrigin, CannotLookup,
    Other, Token, Arithmetic, ...); detail holds the variant's payload, if any.
    """

    kind: str
    detail: Any = None


DispatchError = Union[ModuleError, OtherDispatchError]


# --- Event payloads ----------------------------------------------------------


@dataclass(frozen=True)
class ExtrinsicSuccess:
    """System.ExtrinsicSuccess with its dispatch info (weight, class, pays_fee)."""

    dispatch_info: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ExtrinsicFailed:
    """System.ExtrinsicFailed with the dispatch error that rejected the call."""

    error: DispatchError
    dispatch_info: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class OtherEvent:
    """Any other event (pallet events, fee events, ...). Ignored by the classifier."""

    module: str
    name: str
    attributes: Any = None


EventPayload = Union[ExtrinsicSuccess, ExtrinsicFailed, OtherEvent]


@dataclass(frozen=True)
class EventRecord:
    """One event recorded in a block: its phase tag and payload."""

    phase: Phase
    payload: EventPayload

    @property
    def name(self) -> str:
        """Qualified event name, e.g. System.ExtrinsicSuccess or Defi.Deposited."""
        if isinstance(self.payload, OtherEvent):
            return f"{self.payload.module}.{self.payload.name}"
        return f"System.{type(self.payload).__name__}"

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"phase": str(self.phase), "name": self.name}
        payload = self.payload
        if isinstance(payload, ExtrinsicSuccess):
            out["dispatch_info"] = payload.dispatch_info
        elif isinstance(payload, ExtrinsicFailed):
            out["dispatch_error"] = repr(payload.error)
            out["dispatch_info"] = payload.dispatch_info
        else:
            out["attributes"] = payload.attributes
        return out


# --- Blocks ------------------------------------------------------------------


@dataclass(frozen=True)
class Extrinsic:
    """
    An extrinsic at a fixed position in its block.

    sender is None for unsigned / inherent extrinsics (timestamp.set, ...).
    """

    index: int
    """0-based position within the block; unique and stable."""
    pallet: str
    """Pallet (module) name as reported by the node, e.g. Defi."""
    call: str
    """Call name as reported by the node, e.g. deposit."""
    sender: str | None = None
    """SS58 address of the signer; None when unsigned."""


@dataclass(frozen=True)
class Block:
    """A fetched block: height, hash and its extrinsics in order."""

    height: int
    hash: str
    extrinsics: tuple[Extrinsic, ...] = ()

    def __post_init__(self) -> None:
        if self.height < 0:
            raise ValueError("block height must be non-negative")
        positions = [x.index for x in self.extrinsics]
        if len(positions) != len(set(positions)):
            raise ValueError(f"duplicate extrinsic index in block {self.height}")


# --- Outcome -----------------------------------------------------------------


class OutcomeStatus(str, Enum):
    SUCCESS = "Success"
    FAILURE = "Failure"
    NOT_FOUND = "NotFound"
    UNKNOWN = "Unknown"


@dataclass(frozen=True)
class Outcome:
    """
    Result of one reconciliation, owned by the caller.

    matched is True once the target extrinsic was located in a block, even
    when the chain rejected it (status Failure). message is always populated:
    dispatch info dump, decoded error, or a not-found note.
    """

    matched: bool
    status: OutcomeStatus
    message: str
    block_height: int | None = None
    block_hash: str | None = None
    extrinsic_index: int | None = None

    @classmethod
    def not_found(cls, message: str) -> Outcome:
        return cls(matched=False, status=OutcomeStatus.NOT_FOUND, message=message)

    def to_dict(self) -> dict[str, Any]:
        return {
            "matched": self.matched,
            "status": self.status.value,
            "message": self.message,
            "block_height": self.block_height,
            "block_hash": self.block_hash,
            "extrinsic_index": self.extrinsic_index,
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict())

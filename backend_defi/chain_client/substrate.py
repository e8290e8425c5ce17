"""
Substrate node adapter: RPC values to internal models.

Responsibilities:
- Fetch blocks, block hashes and recorded events through substrate-interface.
- Convert the decoded (JSON-like) extrinsic and event values into the
  models in chain_listener.models, regardless of runtime version shape.
- Resolve module errors to (pallet, error) names from runtime metadata.
- Translate library / network failures into TransportError and DecodeError.

The parse_* functions are pure and work on plain dicts so they can be
tested without a node.
"""

from __future__ import annotations

from typing import Any

from substrateinterface import SubstrateInterface
from substrateinterface.exceptions import SubstrateRequestException
from websocket import WebSocketException

from backend_defi.chain_listener.models import (
    Block,
    DispatchError,
    EventRecord,
    Extrinsic,
    ExtrinsicFailed,
    ExtrinsicSuccess,
    ModuleError,
    OtherDispatchError,
    OtherEvent,
    Phase,
    PhaseKind,
)
from backend_defi.core.exceptions import DecodeError, TransportError
from backend_defi.defi_logging import get_logger

logger = get_logger(__name__)

SYSTEM_PALLET = "System"

# Failures of a single node round trip
_TRANSPORT_ERRORS = (SubstrateRequestException, WebSocketException, OSError)
# Response present but not shaped as expected
_SHAPE_ERRORS = (KeyError, IndexError, TypeError, ValueError, AttributeError)


def _value(obj: Any) -> Any:
    """Unwrap a scalecodec object to its decoded value; plain values pass through."""
    return getattr(obj, "value", obj)


def _address(raw: Any) -> str | None:
    """Signer address; MultiAddress may decode as {"Id": "5G..."}."""
    if raw is None:
        return None
    if isinstance(raw, dict):
        if not raw:
            return None
        raw = raw.get("Id", next(iter(raw.values())))
    return str(raw) if raw else None


def parse_extrinsic(index: int, value: dict[str, Any]) -> Extrinsic:
    """Build an Extrinsic from a decoded extrinsic value at the given block position."""
    call = value.get("call") or {}
    pallet = call.get("call_module")
    call_name = call.get("call_function")
    if isinstance(pallet, dict):
        pallet = pallet.get("name")
    if isinstance(call_name, dict):
        call_name = call_name.get("name")
    if not pallet or not call_name:
        raise ValueError(f"extrinsic {index} has no call_module/call_function")
    return Extrinsic(
        index=index,
        pallet=str(pallet),
        call=str(call_name),
        sender=_address(value.get("address")),
    )


def parse_phase(value: dict[str, Any]) -> Phase:
    """
    Phase from an event record value.

    Accepts "ApplyExtrinsic" with a sibling extrinsic_idx, {"ApplyExtrinsic": n},
    and the unit phases "Initialization" / "Finalization".
    """
    raw = value.get("phase")
    if isinstance(raw, dict):
        if "ApplyExtrinsic" in raw:
            return Phase.apply_extrinsic(int(raw["ApplyExtrinsic"]))
        raw = next(iter(raw), None)
    if raw == PhaseKind.APPLY_EXTRINSIC.value:
        return Phase.apply_extrinsic(int(value["extrinsic_idx"]))
    if raw == PhaseKind.INITIALIZATION.value:
        return Phase.initialization()
    if raw == PhaseKind.FINALIZATION.value:
        return Phase.finalization()
    raise ValueError(f"unknown event phase {raw!r}")


def _error_index(raw: Any) -> int:
    """
    Error index inside a module error.

    Newer runtimes encode it as 4 bytes ("0x02000000"); the index is the first byte.
    """
    if isinstance(raw, int):
        return raw
    if isinstance(raw, (bytes, bytearray)):
        return raw[0]
    text = str(raw)
    if text.startswith("0x"):
        return int(text[2:4], 16)
    return int(text)


def parse_dispatch_error(raw: Any) -> DispatchError:
    """Map a decoded DispatchError value to ModuleError or OtherDispatchError."""
    if isinstance(raw, str):
        return OtherDispatchError(kind=raw)
    if isinstance(raw, dict) and len(raw) == 1:
        kind, detail = next(iter(raw.items()))
        if kind == "Module":
            if isinstance(detail, dict):
                return ModuleError(
                    module_index=int(detail["index"]),
                    error_index=_error_index(detail["error"]),
                )
            module_index, error_index = detail
            return ModuleError(module_index=int(module_index), error_index=_error_index(error_index))
        return OtherDispatchError(kind=str(kind), detail=detail)
    return OtherDispatchError(kind="Other", detail=raw)


def _as_info(raw: Any) -> dict[str, Any]:
    if isinstance(raw, dict):
        return raw
    if raw is None:
        return {}
    return {"value": raw}


def parse_event_record(value: dict[str, Any]) -> EventRecord:
    """Build an EventRecord from a decoded System.Events entry."""
    event = value.get("event") or {}
    module = value.get("module_id") or event.get("module_id")
    name = value.get("event_id") or event.get("event_id")
    attributes = value.get("attributes", event.get("attributes"))
    if not module or not name:
        raise ValueError("event record has no module_id/event_id")
    phase = parse_phase(value)

    if module == SYSTEM_PALLET and name == "ExtrinsicSuccess":
        if isinstance(attributes, dict) and "dispatch_info" in attributes:
            info = attributes["dispatch_info"]
        elif isinstance(attributes, (list, tuple)) and attributes:
            info = attributes[0]
        else:
            info = attributes
        return EventRecord(phase, ExtrinsicSuccess(dispatch_info=_as_info(info)))

    if module == SYSTEM_PALLET and name == "ExtrinsicFailed":
        if isinstance(attributes, dict):
            error, info = attributes["dispatch_error"], attributes.get("dispatch_info")
        else:
            error = attributes[0]
            info = attributes[1] if len(attributes) > 1 else None
        return EventRecord(
            phase,
            ExtrinsicFailed(error=parse_dispatch_error(error), dispatch_info=_as_info(info)),
        )

    return EventRecord(phase, OtherEvent(module=str(module), name=str(name), attributes=attributes))


def parse_block(raw: dict[str, Any], block_hash: str | None = None) -> Block:
    """Build a Block from a get_block() result; block_hash overrides the header hash."""
    header = raw["header"]
    height = int(header["number"])
    hash_ = block_hash or header.get("hash")
    if not hash_:
        raise ValueError(f"block {height} has no hash")
    extrinsics = tuple(
        parse_extrinsic(i, _value(x)) for i, x in enumerate(raw.get("extrinsics") or [])
    )
    return Block(height=height, hash=str(hash_), extrinsics=extrinsics)


class SubstrateChainClient:
    """
    ChainClient over a Substrate node (ws:// or http:// RPC endpoint).

    One instance per reconciliation or watcher; the underlying connection is
    opened on first use and released by close().
    """

    def __init__(
        self,
        url: str,
        *,
        ss58_format: int | None = None,
        substrate: SubstrateInterface | None = None,
    ) -> None:
        """
        Args:
            url: Node endpoint, e.g. ws://127.0.0.1:9944.
            ss58_format: Address format for decoded signers; node default when None.
            substrate: Pre-built SubstrateInterface (tests, shared connections).
        """
        if not url.strip():
            raise ValueError("url must be non-empty")
        self._url = url.strip()
        self._ss58_format = ss58_format
        self._substrate = substrate

    def _api(self) -> SubstrateInterface:
        if self._substrate is None:
            try:
                self._substrate = SubstrateInterface(url=self._url, ss58_format=self._ss58_format)
            except _TRANSPORT_ERRORS as e:
                raise TransportError("connect", f"{self._url}: {e}") from e
            logger.info("chain_client_connected", url=self._url)
        return self._substrate

    def get_current_block(self) -> Block:
        try:
            raw = self._api().get_block()
            if raw is None:
                raise ValueError("node returned no head block")
            header = raw["header"]
            block_hash = header.get("hash") or self._api().get_block_hash(header["number"])
            return parse_block(raw, block_hash)
        except _TRANSPORT_ERRORS as e:
            raise TransportError("get_current_block", str(e)) from e
        except _SHAPE_ERRORS as e:
            raise TransportError("get_current_block", f"malformed response: {e}") from e

    def get_block_hash(self, height: int) -> str:
        try:
            block_hash = self._api().get_block_hash(height)
        except _TRANSPORT_ERRORS as e:
            raise TransportError("get_block_hash", str(e)) from e
        if not block_hash:
            raise TransportError("get_block_hash", f"no block at height {height}")
        return str(block_hash)

    def get_block(self, block_hash: str) -> Block:
        try:
            raw = self._api().get_block(block_hash=block_hash)
            if raw is None:
                raise ValueError(f"unknown block {block_hash}")
            return parse_block(raw, block_hash)
        except _TRANSPORT_ERRORS as e:
            raise TransportError("get_block", str(e)) from e
        except _SHAPE_ERRORS as e:
            raise TransportError("get_block", f"malformed response: {e}") from e

    def get_events_at(self, block_hash: str) -> list[EventRecord]:
        try:
            raw_events = self._api().get_events(block_hash=block_hash)
            return [parse_event_record(_value(e)) for e in raw_events]
        except _TRANSPORT_ERRORS as e:
            raise TransportError("get_events_at", str(e)) from e
        except _SHAPE_ERRORS as e:
            raise TransportError("get_events_at", f"malformed response: {e}") from e

    def resolve_module_error(self, module_index: int, error_index: int) -> tuple[str, str]:
        api = self._api()
        try:
            if api.metadata is None:
                api.init_runtime()
            metadata = api.metadata
            error = metadata.get_module_error(module_index=module_index, error_index=error_index)
            if error is None:
                raise DecodeError(module_index, error_index, "error not in runtime metadata")
            error_name = getattr(error, "name", None) or _value(error)["name"]
            pallet_name = None
            for pallet in metadata.pallets:
                pallet_value = _value(pallet)
                if int(pallet_value["index"]) == module_index:
                    pallet_name = pallet_value["name"]
                    break
        except _TRANSPORT_ERRORS as e:
            raise TransportError("resolve_module_error", str(e)) from e
        except _SHAPE_ERRORS as e:
            raise DecodeError(module_index, error_index, str(e)) from e
        if pallet_name is None:
            raise DecodeError(module_index, error_index, "pallet not in runtime metadata")
        return str(pallet_name), str(error_name)

    def close(self) -> None:
        if self._substrate is not None:
            self._substrate.close()
            self._substrate = None

    def __enter__(self) -> SubstrateChainClient:
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()

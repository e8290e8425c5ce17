"""
Tests for the Substrate adapter: decoded node values to models, and error
translation. SubstrateInterface is mocked; no node is needed.
"""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest
from substrateinterface.exceptions import SubstrateRequestException

from backend_defi.chain_client.substrate import (
    SubstrateChainClient,
    parse_block,
    parse_dispatch_error,
    parse_event_record,
    parse_extrinsic,
    parse_phase,
)
from backend_defi.chain_listener.models import (
    ExtrinsicFailed,
    ExtrinsicSuccess,
    ModuleError,
    OtherDispatchError,
    OtherEvent,
    Phase,
)
from backend_defi.core.exceptions import DecodeError, TransportError
from tests.conftest import ALICE

HEAD_HASH = "0x" + "ab" * 32


def _signed_deposit() -> dict:
    return {
        "extrinsic_hash": "0x" + "11" * 32,
        "address": ALICE,
        "nonce": 4,
        "call": {"call_index": "0x0800", "call_module": "Defi", "call_function": "deposit", "call_args": [{"name": "amount", "value": 100}]},
    }


def _timestamp_inherent() -> dict:
    return {"call": {"call_module": "Timestamp", "call_function": "set", "call_args": []}}


def _event(phase, module, name, attributes, extrinsic_idx=None) -> dict:
    return {
        "phase": phase,
        "extrinsic_idx": extrinsic_idx,
        "event": {"module_id": module, "event_id": name, "attributes": attributes},
        "module_id": module,
        "event_id": name,
        "attributes": attributes,
        "topics": [],
    }


def _wrapped(value: dict) -> MagicMock:
    obj = MagicMock()
    obj.value = value
    return obj


def test_parse_extrinsic_signed_and_unsigned():
    signed = parse_extrinsic(3, _signed_deposit())
    assert (signed.index, signed.pallet, signed.call, signed.sender) == (3, "Defi", "deposit", ALICE)
    assert parse_extrinsic(0, _timestamp_inherent()).sender is None


def test_parse_extrinsic_multiaddress_id():
    value = _signed_deposit()
    value["address"] = {"Id": ALICE}
    assert parse_extrinsic(1, value).sender == ALICE


def test_parse_extrinsic_without_call_rejected():
    with pytest.raises(ValueError):
        parse_extrinsic(0, {"address": ALICE})


@pytest.mark.parametrize(
    "value, expected",
    [
        ({"phase": "ApplyExtrinsic", "extrinsic_idx": 2}, Phase.apply_extrinsic(2)),
        ({"phase": {"ApplyExtrinsic": 5}}, Phase.apply_extrinsic(5)),
        ({"phase": "Initialization", "extrinsic_idx": None}, Phase.initialization()),
        ({"phase": "Finalization"}, Phase.finalization()),
    ],
)
def test_parse_phase_shapes(value, expected):
    assert parse_phase(value) == expected


def test_parse_phase_unknown_rejected():
    with pytest.raises(ValueError):
        parse_phase({"phase": "Bogus"})


@pytest.mark.parametrize(
    "raw, expected",
    [
        ({"Module": {"index": 5, "error": "0x02000000"}}, ModuleError(5, 2)),
        ({"Module": {"index": 5, "error": 2}}, ModuleError(5, 2)),
        ({"Module": (8, 1)}, ModuleError(8, 1)),
        ("BadOrigin", OtherDispatchError("BadOrigin")),
        ("CannotLookup", OtherDispatchError("CannotLookup")),
        ({"Token": "NoFunds"}, OtherDispatchError("Token", "NoFunds")),
    ],
)
def test_parse_dispatch_error_variants(raw, expected):
    assert parse_dispatch_error(raw) == expected


def test_parse_success_event():
    info = {"weight": {"ref_time": 1000, "proof_size": 0}, "class": "Normal", "pays_fee": "Yes"}
    record = parse_event_record(_event("ApplyExtrinsic", "System", "ExtrinsicSuccess", {"dispatch_info": info}, 3))
    assert record.phase == Phase.apply_extrinsic(3)
    assert record.payload == ExtrinsicSuccess(dispatch_info=info)


def test_parse_failed_event_named_and_positional_attributes():
    named = parse_event_record(
        _event(
            "ApplyExtrinsic",
            "System",
            "ExtrinsicFailed",
            {"dispatch_error": {"Module": {"index": 5, "error": "0x02000000"}}, "dispatch_info": {"weight": 1}},
            3,
        )
    )
    assert isinstance(named.payload, ExtrinsicFailed)
    assert named.payload.error == ModuleError(5, 2)

    positional = parse_event_record(
        _event("ApplyExtrinsic", "System", "ExtrinsicFailed", ["BadOrigin", {"weight": 1}], 1)
    )
    assert positional.payload.error == OtherDispatchError("BadOrigin")
    assert positional.payload.dispatch_info == {"weight": 1}


def test_parse_other_event():
    record = parse_event_record(_event("ApplyExtrinsic", "Defi", "Deposited", [ALICE, 100], 3))
    assert record.payload == OtherEvent(module="Defi", name="Deposited", attributes=[ALICE, 100])
    assert record.name == "Defi.Deposited"


def test_parse_block_positions_follow_order():
    raw = {"header": {"number": 42, "hash": HEAD_HASH}, "extrinsics": [_wrapped(_timestamp_inherent()), _wrapped(_signed_deposit())]}
    block = parse_block(raw)
    assert block.height == 42
    assert block.hash == HEAD_HASH
    assert [x.index for x in block.extrinsics] == [0, 1]
    assert block.extrinsics[1].sender == ALICE


def test_client_get_current_block_and_events():
    substrate = MagicMock()
    substrate.get_block.return_value = {"header": {"number": 42}, "extrinsics": [_wrapped(_signed_deposit())]}
    substrate.get_block_hash.return_value = HEAD_HASH
    substrate.get_events.return_value = [
        _wrapped(_event("ApplyExtrinsic", "System", "ExtrinsicSuccess", {"dispatch_info": {"weight": 1000}}, 0))
    ]
    client = SubstrateChainClient("ws://127.0.0.1:9944", substrate=substrate)

    block = client.get_current_block()
    assert block.hash == HEAD_HASH
    substrate.get_block_hash.assert_called_once_with(42)

    events = client.get_events_at(block.hash)
    substrate.get_events.assert_called_once_with(block_hash=HEAD_HASH)
    assert events[0].payload == ExtrinsicSuccess(dispatch_info={"weight": 1000})


def test_client_wraps_request_errors_as_transport_error():
    substrate = MagicMock()
    substrate.get_block.side_effect = SubstrateRequestException("node busy")
    substrate.get_events.side_effect = ConnectionRefusedError("refused")
    client = SubstrateChainClient("ws://127.0.0.1:9944", substrate=substrate)
    with pytest.raises(TransportError, match="node busy"):
        client.get_current_block()
    with pytest.raises(TransportError, match="refused"):
        client.get_events_at(HEAD_HASH)


def test_client_malformed_block_is_transport_error():
    substrate = MagicMock()
    substrate.get_block.return_value = {"extrinsics": []}
    client = SubstrateChainClient("ws://127.0.0.1:9944", substrate=substrate)
    with pytest.raises(TransportError, match="malformed"):
        client.get_block(HEAD_HASH)


def _metadata_with_defi() -> MagicMock:
    error = MagicMock()
    error.name = "ExceedsBorrowLimit"
    metadata = MagicMock()
    metadata.get_module_error.return_value = error
    metadata.pallets = [_wrapped({"index": 0, "name": "System"}), _wrapped({"index": 5, "name": "Defi"})]
    return metadata


def test_client_resolve_module_error():
    substrate = MagicMock()
    substrate.metadata = _metadata_with_defi()
    client = SubstrateChainClient("ws://127.0.0.1:9944", substrate=substrate)
    assert client.resolve_module_error(5, 2) == ("Defi", "ExceedsBorrowLimit")
    substrate.metadata.get_module_error.assert_called_once_with(module_index=5, error_index=2)


def test_client_resolve_unknown_module_error_raises_decode_error():
    substrate = MagicMock()
    substrate.metadata = _metadata_with_defi()
    substrate.metadata.get_module_error.return_value = None
    client = SubstrateChainClient("ws://127.0.0.1:9944", substrate=substrate)
    with pytest.raises(DecodeError):
        client.resolve_module_error(9, 9)


def test_client_close_releases_connection():
    substrate = MagicMock()
    with SubstrateChainClient("ws://127.0.0.1:9944", substrate=substrate):
        pass
    substrate.close.assert_called_once()


def test_client_requires_url():
    with pytest.raises(ValueError):
        SubstrateChainClient("  ")

import json
from pathlib import Path

import pytest
from eth_utils import keccak, to_hex

from conftest import ABI_DIR, ALICE, BOB, TRANSFER_T0, addr_topic, make_erc721_transfer_log, make_transfer_log
from evtrack.abi import ContractInterface, get_event_topic0, get_events_from_abi, load_abi
from evtrack.core.errors import AbiError, FilterEncodingError, LogDecodeError, UnknownEventError
from evtrack.core.models import RawLog


def test_events_are_keyed_by_signature(erc20_abi):
    iface = ContractInterface(erc20_abi)

    assert set(iface.events) == {
        "Approval(address,address,uint256)",
        "Transfer(address,address,uint256)",
    }
    assert iface.event_names == ["Approval", "Transfer"]
    assert get_event_topic0(iface.events_by_name["Transfer"]) == TRANSFER_T0


def test_load_abi_accepts_path_json_and_artifact(erc20_abi):
    path = ABI_DIR / "erc20.json"
    assert load_abi(path) == erc20_abi
    assert load_abi(json.dumps(erc20_abi)) == erc20_abi
    assert load_abi({"contractName": "Token", "abi": erc20_abi}) == erc20_abi


@pytest.mark.parametrize("bad", ["not json", {"bytecode": "0x"}, Path("/nonexistent/abi.json"), [1, 2]])
def test_load_abi_rejects_malformed(bad):
    with pytest.raises(AbiError):
        load_abi(bad)


def test_malformed_event_entry_fails_at_construction():
    with pytest.raises(AbiError):
        ContractInterface([{"type": "event", "inputs": [{"name": "x"}]}])


def test_parse_erc20_transfer(erc20_abi):
    iface = ContractInterface(erc20_abi)

    parsed = iface.parse_log(RawLog.from_rpc(make_transfer_log(value=1000)))

    assert parsed.name == "Transfer"
    assert parsed.signature == "Transfer(address,address,uint256)"
    assert parsed.topic == TRANSFER_T0
    assert list(parsed.values) == ["from", "to", "value"]
    assert parsed.values["from"].lower() == ALICE
    assert parsed.values["to"].lower() == BOB
    assert parsed.values["value"] == 1000
    assert parsed.types["value"] == "uint256"


def test_unnamed_inputs_are_left_out_of_values():
    abi = [
        {
            "type": "event",
            "name": "Transfer",
            "inputs": [
                {"name": "from", "type": "address", "indexed": True},
                {"name": "to", "type": "address", "indexed": True},
                {"name": "", "type": "uint256", "indexed": False},
            ],
        }
    ]

    parsed = ContractInterface(abi).parse_log(RawLog.from_rpc(make_transfer_log(value=1000)))

    assert list(parsed.values) == ["from", "to"]
    assert list(parsed.types) == ["from", "to"]


def test_erc721_transfer_does_not_decode_with_erc20_abi(erc20_abi):
    iface = ContractInterface(erc20_abi)

    with pytest.raises(LogDecodeError):
        iface.parse_log(RawLog.from_rpc(make_erc721_transfer_log()))


def test_unknown_topic_does_not_decode(erc20_abi):
    log = make_transfer_log()
    log["topics"][0] = "0x" + "99" * 32

    with pytest.raises(LogDecodeError):
        ContractInterface(erc20_abi).parse_log(RawLog.from_rpc(log))


def test_hashed_indexed_values_come_back_as_topic(registry_abi):
    iface = ContractInterface(registry_abi)
    event = iface.events_by_name["Registered"]
    label_hash = to_hex(keccak(text="alice"))
    node = "0x" + "0f" * 32
    data = (
        "0x"
        + format(1, "064x")  # active
        + format(64, "064x")  # payload offset
        + format(2, "064x")  # payload length
        + "beef" + "0" * 60
    )
    log = {
        "address": ALICE,
        "topics": [get_event_topic0(event), label_hash, node],
        "data": data,
        "blockNumber": 1,
        "transactionIndex": 0,
        "logIndex": 0,
        "transactionHash": "0x" + "00" * 32,
    }

    parsed = iface.parse_log(RawLog.from_rpc(log))

    assert parsed.values["label"] == label_hash
    assert parsed.values["node"] == bytes.fromhex("0f" * 32)
    assert parsed.values["active"] is True
    assert parsed.values["payload"] == b"\xbe\xef"


def test_encode_filter_topics_trims_trailing_nulls(erc20_abi):
    iface = ContractInterface(erc20_abi)

    assert iface.encode_filter_topics("Transfer", [None, None, None]) == [TRANSFER_T0]
    assert iface.encode_filter_topics("Transfer", [ALICE, None, None]) == [TRANSFER_T0, addr_topic(ALICE)]
    assert iface.encode_filter_topics("Transfer", [None, BOB]) == [TRANSFER_T0, None, addr_topic(BOB)]


def test_encode_filter_topics_or_set(erc20_abi):
    iface = ContractInterface(erc20_abi)

    topics = iface.encode_filter_topics("Transfer", [[ALICE, BOB]])

    assert topics == [TRANSFER_T0, [addr_topic(ALICE), addr_topic(BOB)]]


def test_encode_filter_topics_accepts_checksum_and_full_signature(erc20_abi):
    iface = ContractInterface(erc20_abi)
    checksummed = "0x6B175474E89094C44Da98b954EedeAC495271d0F"

    topics = iface.encode_filter_topics("Transfer(address,address,uint256)", [checksummed])

    assert topics == [TRANSFER_T0, addr_topic(checksummed)]


def test_encode_filter_topics_rejects_non_indexed_value(erc20_abi):
    with pytest.raises(FilterEncodingError):
        ContractInterface(erc20_abi).encode_filter_topics("Transfer", [None, None, 5])


def test_encode_filter_topics_rejects_too_many_values(erc20_abi):
    with pytest.raises(FilterEncodingError):
        ContractInterface(erc20_abi).encode_filter_topics("Transfer", [None, None, None, None])


def test_encode_filter_topics_hashes_strings_and_rejects_arrays(registry_abi):
    iface = ContractInterface(registry_abi)

    topics = iface.encode_filter_topics("Registered", ["alice"])
    assert topics[1] == to_hex(keccak(text="alice"))

    with pytest.raises(FilterEncodingError):
        iface.encode_filter_topics("Batch", [[1, 2]])


def test_encode_filter_topics_unknown_event(erc20_abi):
    with pytest.raises(UnknownEventError):
        ContractInterface(erc20_abi).encode_filter_topics("Mint", [])


def test_get_events_from_abi_skips_functions(erc20_abi):
    assert [e.name for e in get_events_from_abi(erc20_abi)] == ["Approval", "Transfer"]

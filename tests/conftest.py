import json
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock

import pytest

from evtrack.core.models import SubscriptionHandle

ABI_DIR = Path(__file__).parent / "abi"

TRANSFER_T0 = "0xddf252ad1be2c89b69c2b068fc378daa952ba7f163c4a11628f55a4df523b3ef"
TOKEN = "0x6B175474E89094C44Da98b954EedeAC495271d0F"
ALICE = "0x1111111111111111111111111111111111111111"
BOB = "0x2222222222222222222222222222222222222222"


def addr_topic(address: str) -> str:
    return "0x" + "0" * 24 + address[2:].lower()


def uint_word(value: int) -> str:
    return format(value, "064x")


def make_transfer_log(
    *,
    src: str = ALICE,
    dst: str = BOB,
    value: int = 1000,
    address: str = TOKEN,
    block_number: Any = "0x3e7",
    log_index: Any = "0x1",
    tx_hash: str = "0x" + "ab" * 32,
) -> dict[str, Any]:
    """ERC-20 Transfer log as a node returns it over JSON-RPC."""
    return {
        "address": address,
        "topics": [TRANSFER_T0, addr_topic(src), addr_topic(dst)],
        "data": "0x" + uint_word(value),
        "blockNumber": block_number,
        "transactionIndex": "0x0",
        "logIndex": log_index,
        "transactionHash": tx_hash,
        "removed": False,
    }


def make_erc721_transfer_log(token_id: int = 7) -> dict[str, Any]:
    """ERC-721 Transfer: same topic0, tokenId indexed, empty data."""
    log = make_transfer_log()
    log["topics"] = log["topics"] + ["0x" + uint_word(token_id)]
    log["data"] = "0x"
    return log


class FakeLogsProvider:
    """In-memory ILogsProvider recording every subscription."""

    def __init__(self, head: int = 1000) -> None:
        self.get_block = AsyncMock(return_value={"number": head})
        self.get_past_logs = AsyncMock(return_value=[])
        self.subscriptions: list[tuple[str, dict[str, Any], Any]] = []

    async def subscribe(self, channel: str, filter: dict[str, Any], on_event: Any) -> SubscriptionHandle:
        self.subscriptions.append((channel, dict(filter), on_event))
        return SubscriptionHandle(subscription_id=f"0xsub{len(self.subscriptions)}", filter=dict(filter), channel=channel)


@pytest.fixture
def erc20_abi() -> list[dict[str, Any]]:
    return json.loads((ABI_DIR / "erc20.json").read_text())


@pytest.fixture
def registry_abi() -> list[dict[str, Any]]:
    return json.loads((ABI_DIR / "registry.json").read_text())


@pytest.fixture
def fake_provider() -> FakeLogsProvider:
    return FakeLogsProvider()

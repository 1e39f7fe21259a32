import asyncio
import contextlib
import json
from unittest.mock import AsyncMock, MagicMock, patch

import click
import httpx
import pytest
from click.testing import CliRunner

from conftest import ABI_DIR, ALICE, TOKEN, TRANSFER_T0, FakeLogsProvider, addr_topic, make_transfer_log
from evtrack.abi import ContractInterface
from evtrack.cli import cli, parse_params
from evtrack.clients.rpc import HttpJsonRpc
from evtrack.core.errors import UnknownEventError
from evtrack.core.models import RawLog
from evtrack.decoding import normalize

ABI = str(ABI_DIR / "erc20.json")


def test_parse_params():
    assert parse_params(("from=0xabc", " to = 0xdef ")) == {"from": "0xabc", "to": "0xdef"}


@pytest.mark.parametrize("bad", ["novalue", "=x"])
def test_parse_params_rejects_bad_items(bad):
    with pytest.raises(click.BadParameter):
        parse_params((bad,))


def test_fetch_prints_records(erc20_abi):
    record = normalize(RawLog.from_rpc(make_transfer_log()), ContractInterface(erc20_abi))
    run_fetch = AsyncMock(return_value=[record])

    with patch("evtrack.cli.run_fetch", run_fetch):
        result = CliRunner().invoke(
            cli,
            ["fetch", "--rpc", "http://node.test", "--contract", TOKEN, "--abi", ABI, "--event", "Transfer",
             "--from-block", "989", "--to-block", "999", "--param", "from=0x1111111111111111111111111111111111111111"],
        )

    assert result.exit_code == 0, result.output
    assert '"value": "1000"' in result.output
    config = run_fetch.await_args.args[0]
    assert config.from_block == 989
    assert config.to_block == 999
    assert config.max_attempts == 5
    assert config.params == {"from": "0x1111111111111111111111111111111111111111"}


def test_fetch_reports_unknown_event():
    run_fetch = AsyncMock(side_effect=UnknownEventError("Mint", ["Approval", "Transfer"]))

    with patch("evtrack.cli.run_fetch", run_fetch):
        result = CliRunner().invoke(
            cli,
            ["fetch", "--rpc", "http://node.test", "--contract", TOKEN, "--abi", ABI, "--event", "Mint", "--from-block", "1"],
        )

    assert result.exit_code == 1
    assert "Mint not an abi event" in result.output


def test_track_passes_backfill_options():
    run_track = AsyncMock()

    with patch("evtrack.cli.run_track", run_track):
        result = CliRunner().invoke(
            cli,
            ["track", "--rpc", "ws://node.test", "--contract", TOKEN, "--abi", ABI, "--event", "Transfer",
             "--back-fill", "10"],
        )

    assert result.exit_code == 0, result.output
    config = run_track.await_args.args[0]
    assert config.back_fill_block_count == 10
    assert config.from_block is None
    assert config.logs_rpc_url is None


def mock_rpc_factory(handler):
    """Stands in for `HttpJsonRpc(url)` with a client on a mock transport."""

    def factory(url: str) -> HttpJsonRpc:
        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        return HttpJsonRpc(url, client=client)

    return factory


def test_fetch_queries_node_and_decodes_logs():
    requests = []

    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        requests.append(body)
        if len(requests) == 1:
            return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "error": {"code": -32000, "message": "header not found"}})
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "result": [make_transfer_log(value=1000)]})

    with (
        patch("evtrack.cli.HttpJsonRpc", mock_rpc_factory(handler)),
        patch("evtrack.fetching.history.asyncio.sleep", new=AsyncMock()),
    ):
        result = CliRunner().invoke(
            cli,
            ["fetch", "--rpc", "http://node.test", "--contract", TOKEN, "--abi", ABI, "--event", "Transfer",
             "--from-block", "989", "--to-block", "999", "--param", f"from={ALICE}"],
        )

    assert result.exit_code == 0, result.output
    assert len(requests) == 2
    assert requests[0]["params"] == requests[1]["params"]
    assert requests[1]["method"] == "eth_getLogs"
    assert requests[1]["params"] == [
        {"address": TOKEN, "topics": [TRANSFER_T0, addr_topic(ALICE)], "fromBlock": "0x3dd", "toBlock": "0x3e7"}
    ]
    assert '"name": "Transfer"' in result.output
    assert '"value": "1000"' in result.output
    assert f'"from": "{ALICE}"' in result.output
    assert "done" in result.output


def test_fetch_gives_up_after_max_attempts():
    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "error": {"code": -32000, "message": "header not found"}})

    with (
        patch("evtrack.cli.HttpJsonRpc", mock_rpc_factory(handler)),
        patch("evtrack.fetching.history.asyncio.sleep", new=AsyncMock()) as sleep,
    ):
        result = CliRunner().invoke(
            cli,
            ["fetch", "--rpc", "http://node.test", "--contract", TOKEN, "--abi", ABI, "--event", "Transfer",
             "--from-block", "989", "--to-block", "999", "--max-attempts", "2"],
        )

    assert result.exit_code == 1
    assert "not available after 2 attempts" in result.output
    assert sleep.await_count == 1


def test_track_backfills_and_subscribes():
    provider = FakeLogsProvider(head=1000)
    provider.get_past_logs.return_value = [make_transfer_log()]

    async def run_forever() -> None:
        for _ in range(5):
            await asyncio.sleep(0)

    provider.run_forever = run_forever

    @contextlib.asynccontextmanager
    async def connect(url: str):
        assert url == "ws://node.test"
        yield provider

    web3_provider = MagicMock()
    web3_provider.connect = connect

    with patch("evtrack.cli.Web3LogsProvider", web3_provider):
        result = CliRunner().invoke(
            cli,
            ["track", "--rpc", "ws://node.test", "--contract", TOKEN, "--abi", ABI, "--event", "Transfer",
             "--back-fill", "10", "--param", f"from={ALICE}"],
        )

    assert result.exit_code == 0, result.output
    provider.get_past_logs.assert_awaited_once_with(
        {"address": TOKEN, "topics": [TRANSFER_T0, addr_topic(ALICE)], "fromBlock": hex(989), "toBlock": hex(999)}
    )
    channel, log_filter, _ = provider.subscriptions[0]
    assert channel == "logs"
    assert log_filter == {"address": TOKEN, "topics": [TRANSFER_T0, addr_topic(ALICE)], "fromBlock": 999}
    assert "backfill" in result.output
    assert '"value": "1000"' in result.output

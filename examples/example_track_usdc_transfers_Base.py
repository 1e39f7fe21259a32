import asyncio
import logging
from collections import Counter
from pathlib import Path

from evtrack.abi import load_abi
from evtrack.clients.web3_provider import Web3LogsProvider
from evtrack.core.config import RetryPolicy, TrackerConfig
from evtrack.core.models import EventDescriptor, NormalizedLogRecord
from evtrack.orchestration.tracker import EventTracker

EXAMPLES_ROOT = Path(__file__).parent
assert EXAMPLES_ROOT.name == "examples"

ABI = EXAMPLES_ROOT / "abi" / "erc20.json"
assert ABI.is_file()

WS_URL = "wss://base-rpc.publicnode.com"
USDC = "0x833589fcd6edb6e08f4c7c32d4f71b54bda02913"  # USDC on Base

seen: set[tuple[str, int]] = set()
senders: Counter[str] = Counter()


def on_transfers(records: list[NormalizedLogRecord]) -> None:
    for record in records:
        # Backfill and live overlap on one block
        if record.dedup_key in seen:
            continue
        seen.add(record.dedup_key)
        senders[record.values["from"]] += 1
        print(record.block_number, record.values["from"], "->", record.values["to"], record.values["value"])


async def main():
    logging.basicConfig(level=logging.INFO)
    config = TrackerConfig(retry=RetryPolicy(interval_s=1.0, backoff=2.0, max_interval_s=30.0))

    async with Web3LogsProvider.connect(WS_URL) as provider:
        tracker = EventTracker(provider, config=config)
        await tracker.track_event(
            EventDescriptor(
                name="Transfer",
                contract=USDC,
                abi=load_abi(ABI),
                back_fill_block_count=50,
                callback=on_transfers,
                on_fetched_historical_events=lambda records: print(f"backfilled {len(records)} transfers"),
            )
        )
        try:
            await asyncio.wait_for(provider.run_forever(), timeout=60)
        except asyncio.TimeoutError:
            pass

    print(senders.most_common(5))


asyncio.run(main())

import asyncio
import logging
import time
from pathlib import Path
from typing import Any

import click
from rich.console import Console
from rich.logging import RichHandler

from evtrack.abi.models import load_abi
from evtrack.clients.rpc import HttpJsonRpc
from evtrack.clients.web3_provider import Web3LogsProvider
from evtrack.core.config import CliConfig, RetryPolicy, TrackerConfig
from evtrack.core.errors import EvtrackError
from evtrack.core.models import EventDescriptor, NormalizedLogRecord
from evtrack.decoding.topics import derive_topics
from evtrack.fetching.history import fetch_logs
from evtrack.orchestration.tracker import EventTracker

console = Console()


def parse_params(items: tuple[str, ...]) -> dict[str, str]:
    """Parse repeated ``--param name=value`` options."""
    params: dict[str, str] = {}
    for item in items:
        name, sep, value = item.partition("=")
        if not sep or not name.strip():
            raise click.BadParameter(f"expected name=value, got {item!r}", param_hint="--param")
        params[name.strip()] = value.strip()
    return params


def setup_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
    )


def print_records(records: Any) -> None:
    for record in records or ():
        if isinstance(record, NormalizedLogRecord):
            console.print_json(data=record.to_dict())
        else:
            console.print(record)


@click.group()
@click.option("--log-level", default="INFO", show_default=True, help="Python logging level")
@click.pass_context
def cli(ctx: click.Context, log_level: str) -> None:
    """evtrack: backfill and follow smart-contract event logs."""
    ctx.ensure_object(dict)
    ctx.obj["log_level"] = log_level
    setup_logging(log_level)


@cli.command("track")
@click.option("--rpc", required=True, help="Websocket RPC endpoint URL")
@click.option("--contract", required=True, help="Emitter contract address")
@click.option("--abi", "abi_path", required=True, type=click.Path(exists=True, dir_okay=False), help="ABI JSON file")
@click.option("--event", required=True, help="Event name, e.g. Transfer")
@click.option("--param", "params", multiple=True, help="Indexed parameter filter name=value; repeatable")
@click.option("--from-block", type=int, default=None, help="Backfill from this absolute block")
@click.option("--back-fill", "back_fill", type=int, default=None, help="Backfill this many blocks behind head")
@click.option("--logs-rpc", default=None, help="Optional HTTP endpoint for historical eth_getLogs")
@click.pass_context
def track_cmd(
    ctx: click.Context,
    rpc: str,
    contract: str,
    abi_path: str,
    event: str,
    params: tuple[str, ...],
    from_block: int | None,
    back_fill: int | None,
    logs_rpc: str | None,
) -> None:
    """Track one contract event: optional backfill, then live logs until interrupted."""
    config = CliConfig(
        rpc_url=rpc,
        contract=contract,
        abi_path=abi_path,
        event=event,
        params=parse_params(params),
        from_block=from_block,
        back_fill_block_count=back_fill,
        logs_rpc_url=logs_rpc,
        log_level=ctx.obj["log_level"],
    )

    try:
        asyncio.run(run_track(config))
    except KeyboardInterrupt:
        console.print("[bold]stopped[/]")
    except EvtrackError as e:
        raise click.ClickException(str(e)) from e


async def run_track(config: CliConfig) -> None:
    abi = load_abi(Path(config.abi_path))
    sender = HttpJsonRpc(config.logs_rpc_url) if config.logs_rpc_url else None

    async def on_fetched(records: list[NormalizedLogRecord]) -> None:
        console.print(f"[bold]backfill[/]: {len(records)} logs")

    try:
        async with Web3LogsProvider.connect(config.rpc_url) as provider:
            tracker = EventTracker(provider, config=TrackerConfig(), sender=sender)
            await tracker.track_event(
                EventDescriptor(
                    name=config.event,
                    contract=config.contract,
                    abi=abi,
                    params=config.params,
                    from_block=config.from_block,
                    back_fill_block_count=config.back_fill_block_count,
                    callback=print_records,
                    on_fetched_historical_events=on_fetched,
                )
            )
            await provider.run_forever()
    finally:
        if sender is not None:
            await sender.aclose()


@cli.command("fetch")
@click.option("--rpc", required=True, help="HTTP RPC endpoint URL")
@click.option("--contract", required=True, help="Emitter contract address")
@click.option("--abi", "abi_path", required=True, type=click.Path(exists=True, dir_okay=False), help="ABI JSON file")
@click.option("--event", required=True, help="Event name, e.g. Transfer")
@click.option("--param", "params", multiple=True, help="Indexed parameter filter name=value; repeatable")
@click.option("--from-block", type=int, required=True)
@click.option("--to-block", type=int, default=None, help="Defaults to latest")
@click.option("--max-attempts", type=int, default=5, show_default=True, help="eth_getLogs attempts before giving up")
@click.pass_context
def fetch_cmd(
    ctx: click.Context,
    rpc: str,
    contract: str,
    abi_path: str,
    event: str,
    params: tuple[str, ...],
    from_block: int,
    to_block: int | None,
    max_attempts: int,
) -> None:
    """Fetch and print the decoded logs of one event over a block range."""
    config = CliConfig(
        rpc_url=rpc,
        contract=contract,
        abi_path=abi_path,
        event=event,
        params=parse_params(params),
        from_block=from_block,
        to_block=to_block,
        max_attempts=max_attempts,
        log_level=ctx.obj["log_level"],
    )

    t0 = time.time()
    try:
        records = asyncio.run(run_fetch(config))
    except EvtrackError as e:
        raise click.ClickException(str(e)) from e

    print_records(records)
    console.print(f"[bold]done[/]: {len(records)} logs • {time.time() - t0:.2f}s")


async def run_fetch(config: CliConfig) -> list[NormalizedLogRecord]:
    abi = load_abi(Path(config.abi_path))
    topics = derive_topics(config.event, config.params, abi)
    async with HttpJsonRpc(config.rpc_url) as rpc:
        return await fetch_logs(
            config.contract,
            abi,
            topics,
            config.from_block,
            config.to_block,
            sender=rpc,
            retry=RetryPolicy(max_attempts=config.max_attempts),
        )

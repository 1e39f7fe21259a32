"""Provider adapters: web3 websocket (live + historical) and httpx JSON-RPC."""

from evtrack.clients.rpc import HttpJsonRpc
from evtrack.clients.web3_provider import Web3LogsProvider

__all__ = [
    "HttpJsonRpc",
    "Web3LogsProvider",
]

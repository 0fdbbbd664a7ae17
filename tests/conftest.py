"""Shared fixtures: throwaway keypairs and an in-memory node."""

from __future__ import annotations

import asyncio
import json
import os
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

import pytest
from aiohttp import test_utils, web
from solders.hash import Hash
from solders.keypair import Keypair
from solders.transaction import Transaction

from solexec.config import ENV_PREFIX
from solexec.errors import RpcError
from solexec.rpc import RpcClient, SendConfig

BLOCKHASH = str(Hash(bytes(range(32))))


class FakeRpc:
    """Stands in for RpcClient; records every call it receives."""

    def __init__(
        self,
        statuses: Sequence[Union[bool, Exception]] = (True,),
        blockhash: Union[str, Exception] = BLOCKHASH,
        send_result: Union[str, Exception] = "5igNature",
        balance: Union[int, Exception] = 0,
    ):
        self.url = "http://fake"
        self.commitment = "finalized"
        self.statuses = list(statuses)
        self.blockhash = blockhash
        self.send_result = send_result
        self.balance = balance
        self.calls: List[Tuple[str, Any]] = []
        self.sent: List[Tuple[Transaction, SendConfig]] = []
        self.closed = False

    async def get_latest_blockhash(self, commitment: Optional[str] = None) -> str:
        self.calls.append(("get_latest_blockhash", commitment))
        if isinstance(self.blockhash, Exception):
            raise self.blockhash
        return self.blockhash

    async def send_transaction(self, tx: Transaction, config: SendConfig = SendConfig()) -> str:
        self.calls.append(("send_transaction", config))
        self.sent.append((tx, config))
        if isinstance(self.send_result, Exception):
            raise self.send_result
        return self.send_result

    async def confirm_transaction(self, signature: str, commitment: Optional[str] = None) -> bool:
        self.calls.append(("confirm_transaction", commitment))
        status = self.statuses.pop(0) if len(self.statuses) > 1 else self.statuses[0]
        if isinstance(status, Exception):
            raise status
        return status

    async def get_balance(self, address: str, commitment: Optional[str] = None) -> int:
        self.calls.append(("get_balance", address))
        if isinstance(self.balance, Exception):
            raise self.balance
        return self.balance

    async def close(self) -> None:
        self.closed = True

    def called(self, name: str) -> int:
        return sum(1 for n, _ in self.calls if n == name)


def write_keypair(path: Path, keypair: Keypair) -> Path:
    """Solana CLI layout: a JSON array of the 64 secret||public bytes."""
    path.write_text(json.dumps(list(bytes(keypair))))
    return path


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep the developer's SOLEXEC_* variables out of every test."""
    for key in list(os.environ):
        if key.startswith(ENV_PREFIX):
            monkeypatch.delenv(key)


@pytest.fixture
def keypair() -> Keypair:
    return Keypair()


@pytest.fixture
def destination() -> str:
    return str(Keypair().pubkey())


@pytest.fixture
def keypair_file(tmp_path: Path, keypair: Keypair) -> Path:
    return write_keypair(tmp_path / "id.json", keypair)


@pytest.fixture
def rpc_error() -> RpcError:
    return RpcError("node unavailable")


class Node:
    """Scripted aiohttp node: maps method name to a JSON-RPC body, raw reply or HTTP status."""

    def __init__(self, responses: Dict[str, Any]):
        self.responses = responses
        self.requests: List[Dict[str, Any]] = []

    async def handle(self, request: web.Request) -> web.StreamResponse:
        body = await request.json()
        self.requests.append(body)
        reply = self.responses[body["method"]]
        if isinstance(reply, int):
            return web.Response(status=reply, text="nope")
        if isinstance(reply, bytes):
            return web.Response(body=reply, content_type="application/json")
        if isinstance(reply, str):
            return web.Response(text=reply)
        return web.json_response({"jsonrpc": "2.0", "id": body["id"], **reply})


def with_node(responses: Dict[str, Any], scenario, commitment: str = "finalized"):
    """Run ``scenario(client)`` against a live local node; return (result, node)."""
    node = Node(responses)

    async def main():
        app = web.Application()
        app.router.add_post("/", node.handle)
        async with test_utils.TestServer(app) as server:
            client = RpcClient(str(server.make_url("/")), commitment=commitment)
            try:
                return await scenario(client)
            finally:
                await client.close()

    return asyncio.run(main()), node

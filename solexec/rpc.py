"""Async JSON-RPC client for a Solana node."""

from __future__ import annotations

import asyncio
import base64
import itertools
import json
import ssl
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import aiohttp
import structlog
from solders.transaction import Transaction

from .errors import RpcError

log = structlog.get_logger(__name__)

DEFAULT_RPC = "https://api.devnet.solana.com"
COMMITMENT_LEVELS = ("processed", "confirmed", "finalized")


@dataclass(frozen=True)
class SendConfig:
    skip_preflight: bool = True
    preflight_commitment: str = "confirmed"
    encoding: str = "base64"
    max_retries: Optional[int] = 3

    def to_params(self) -> Dict[str, Any]:
        params: Dict[str, Any] = {
            "skipPreflight": self.skip_preflight,
            "preflightCommitment": self.preflight_commitment,
            "encoding": self.encoding,
        }
        if self.max_retries is not None:
            params["maxRetries"] = self.max_retries
        return params


def satisfies_commitment(status: Dict[str, Any], commitment: str) -> bool:
    """Whether a getSignatureStatuses entry has reached ``commitment``."""
    reached = status.get("confirmationStatus")
    if reached is None:
        # older nodes: confirmations is null once rooted
        reached = "finalized" if status.get("confirmations") is None else "confirmed"
    if reached not in COMMITMENT_LEVELS:
        return False
    return COMMITMENT_LEVELS.index(reached) >= COMMITMENT_LEVELS.index(commitment)


class RpcClient:
    def __init__(self, url: str = DEFAULT_RPC, commitment: str = "finalized", timeout: float = 10.0):
        if commitment not in COMMITMENT_LEVELS:
            raise ValueError(f"unknown commitment level: {commitment}")
        self.url = url
        self.commitment = commitment
        self.timeout = timeout
        self._session: Optional[aiohttp.ClientSession] = None
        self._ssl = ssl.create_default_context()
        self._ids = itertools.count(1)

    async def _ensure_session(self) -> aiohttp.ClientSession:
        if self._session and not self._session.closed:
            return self._session
        connector = aiohttp.TCPConnector(ssl=self._ssl)
        self._session = aiohttp.ClientSession(
            connector=connector,
            timeout=aiohttp.ClientTimeout(total=self.timeout),
            json_serialize=json.dumps,
        )
        return self._session

    async def close(self) -> None:
        if self._session:
            await self._session.close()
            self._session = None

    async def call(self, method: str, params: Optional[List[Any]] = None) -> Any:
        """Issue one JSON-RPC request and return its ``result``."""
        session = await self._ensure_session()
        payload = {"jsonrpc": "2.0", "id": next(self._ids), "method": method, "params": params or []}
        log.debug("rpc.request", method=method)
        try:
            async with session.post(self.url, json=payload) as resp:
                raw = await resp.read()
                if resp.status != 200:
                    raise RpcError(f"{method}: HTTP {resp.status}", code=resp.status)
        except asyncio.TimeoutError as e:
            raise RpcError(f"{method}: timeout") from e
        except aiohttp.ClientError as e:
            raise RpcError(f"{method}: {e}") from e
        try:
            body = json.loads(raw.decode("utf-8"))
        except ValueError as e:
            # UnicodeDecodeError is a ValueError too
            raise RpcError(f"{method}: invalid JSON response") from e
        if not isinstance(body, dict):
            raise RpcError(f"{method}: unexpected response")
        err = body.get("error")
        if err is not None:
            if not isinstance(err, dict):
                raise RpcError(f"{method}: {err}")
            raise RpcError(f"{method}: {err.get('message', 'unknown error')}", code=err.get("code"))
        return body.get("result")

    # ------------------------
    # node methods
    # ------------------------
    async def get_balance(self, address: str, commitment: Optional[str] = None) -> int:
        result = await self.call("getBalance", [address, {"commitment": commitment or self.commitment}])
        try:
            return int(result["value"])
        except (TypeError, KeyError, ValueError) as e:
            raise RpcError("getBalance: malformed result") from e

    async def get_latest_blockhash(self, commitment: Optional[str] = None) -> str:
        result = await self.call("getLatestBlockhash", [{"commitment": commitment or self.commitment}])
        try:
            return str(result["value"]["blockhash"])
        except (TypeError, KeyError) as e:
            raise RpcError("getLatestBlockhash: malformed result") from e

    async def send_transaction(self, tx: Transaction, config: SendConfig = SendConfig()) -> str:
        result = await self.call("sendTransaction", [base64.b64encode(bytes(tx)).decode(), config.to_params()])
        if not isinstance(result, str):
            raise RpcError("sendTransaction: malformed result")
        return result

    async def confirm_transaction(self, signature: str, commitment: Optional[str] = None) -> bool:
        """True once the signature has landed without error at ``commitment``.

        A transaction that landed with an on-chain error raises ``RpcError``
        since it will never confirm.
        """
        result = await self.call("getSignatureStatuses", [[signature]])
        try:
            status = result["value"][0]
        except (TypeError, KeyError, IndexError) as e:
            raise RpcError("getSignatureStatuses: malformed result") from e
        if status is None:
            return False
        if not isinstance(status, dict):
            raise RpcError("getSignatureStatuses: malformed status")
        if status.get("err") is not None:
            raise RpcError(f"transaction failed: {status['err']}")
        return satisfies_commitment(status, commitment or self.commitment)

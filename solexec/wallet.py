"""Wallet session: the loaded keypair, its cached balance and the node handle."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import structlog
from solders.keypair import Keypair

from .config import Settings
from .errors import ErrorKind, RpcError, WalletError
from .keypair import check_keypair_path, default_keypair_path, read_keypair_file
from .rpc import RpcClient
from .transfer import SubmissionOutcome, TransferRequest, transfer

log = structlog.get_logger(__name__)


class WalletSession:
    def __init__(self, settings: Settings, rpc: Optional[RpcClient] = None):
        self.settings = settings
        self.rpc = rpc or RpcClient(settings.rpc_url, settings.commitment, settings.request_timeout)
        self.keypair: Optional[Keypair] = None
        self.keypair_path: Optional[Path] = None
        self.balance: Optional[int] = None

    @property
    def address(self) -> Optional[str]:
        return str(self.keypair.pubkey()) if self.keypair else None

    def load_keypair(self, path: Optional[Path] = None, picked: bool = False) -> Keypair:
        """Load ``path`` (or the default location) and reset the cached balance.

        Paths typed in by the user are ``picked`` and must name a .json file.
        """
        if picked:
            path = check_keypair_path(path)
        elif path is None:
            path = self.settings.keypair_path or default_keypair_path()
        keypair = read_keypair_file(path)
        self.keypair, self.keypair_path, self.balance = keypair, path, None
        log.info("wallet.keypair_loaded", path=str(path), address=str(keypair.pubkey()))
        return keypair

    async def refresh_balance(self) -> int:
        if self.keypair is None:
            raise WalletError(ErrorKind.KEYPAIR, "no keypair loaded")
        try:
            self.balance = await self.rpc.get_balance(str(self.keypair.pubkey()))
        except RpcError as e:
            log.warning("wallet.balance_failed", error=str(e))
            raise WalletError(ErrorKind.FETCH_BALANCE, str(e)) from e
        return self.balance

    async def send(self, destination: str, amount_text: str) -> SubmissionOutcome:
        if self.keypair is None:
            return SubmissionOutcome.failed(ErrorKind.KEYPAIR, "no keypair loaded")
        request = TransferRequest(
            signer=self.keypair,
            destination=destination.strip(),
            amount_text=amount_text.strip(),
            known_balance=self.balance,
        )
        outcome = await transfer(request, self.rpc, self.settings.confirm_policy(), strict=self.settings.strict_amounts)
        if outcome.ok or outcome.error is ErrorKind.TRANSACTION:
            # submitted (or maybe submitted): the cached figure may be stale
            self.balance = None
        return outcome

    async def close(self) -> None:
        await self.rpc.close()

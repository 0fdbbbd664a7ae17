"""Single SOL transfer: validate, sign, submit, wait for finality."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Iterator, Optional, Tuple

import structlog
from solders.hash import Hash
from solders.keypair import Keypair
from solders.pubkey import Pubkey
from solders.system_program import TransferParams
from solders.system_program import transfer as system_transfer
from solders.transaction import Transaction

from .amount import parse_amount
from .errors import ErrorKind, RpcError, WalletError
from .keypair import decode_address
from .rpc import RpcClient, SendConfig

log = structlog.get_logger(__name__)

MIN_ADDRESS_LEN = 32
SEND_CONFIG = SendConfig(skip_preflight=True, preflight_commitment="confirmed", encoding="base64", max_retries=3)
CONFIRM_COMMITMENT = "finalized"


@dataclass(frozen=True)
class TransferRequest:
    signer: Keypair
    destination: str
    amount_text: str
    known_balance: Optional[int] = None


@dataclass(frozen=True)
class SubmissionOutcome:
    signature: Optional[str] = None
    error: Optional[ErrorKind] = None
    detail: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.signature is not None

    @classmethod
    def failed(cls, kind: ErrorKind, detail: Optional[str] = None) -> "SubmissionOutcome":
        return cls(error=kind, detail=detail)


@dataclass(frozen=True)
class ConfirmPolicy:
    """Bounds for the finality poll: attempts, backoff and a wall-clock limit."""

    max_attempts: int = 30
    initial_delay: float = 0.5
    max_delay: float = 5.0
    backoff: float = 1.5
    timeout: float = 90.0

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.timeout <= 0:
            raise ValueError("timeout must be positive")
        if self.initial_delay < 0 or self.max_delay < 0:
            raise ValueError("delays must not be negative")
        if self.backoff < 1:
            raise ValueError("backoff must be at least 1")

    def delays(self) -> Iterator[float]:
        delay = self.initial_delay
        for _ in range(self.max_attempts):
            yield delay
            delay = min(delay * self.backoff, self.max_delay)


async def wait_for_finality(rpc: RpcClient, signature: str, policy: ConfirmPolicy) -> None:
    """Poll until ``signature`` is finalized; raise WalletError otherwise."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + policy.timeout
    attempt = 0
    for attempt, delay in enumerate(policy.delays(), start=1):
        try:
            confirmed = await rpc.confirm_transaction(signature, CONFIRM_COMMITMENT)
        except RpcError as e:
            raise WalletError(ErrorKind.TRANSACTION, str(e)) from e
        log.debug("transfer.confirm_poll", signature=signature, attempt=attempt, confirmed=confirmed)
        if confirmed:
            return
        remaining = deadline - loop.time()
        if remaining <= 0 or attempt == policy.max_attempts:
            break
        await asyncio.sleep(min(delay, remaining))
    raise WalletError(ErrorKind.TRANSACTION, f"confirmation timed out after {attempt} attempts")


def build_transfer(signer: Keypair, to: Pubkey, lamports: int, blockhash: Hash) -> Transaction:
    """One system transfer from ``signer``, who also pays the fee."""
    ix = system_transfer(TransferParams(from_pubkey=signer.pubkey(), to_pubkey=to, lamports=lamports))
    return Transaction.new_signed_with_payer([ix], signer.pubkey(), [signer], blockhash)


def _check(request: TransferRequest, strict: bool) -> Tuple[Pubkey, int]:
    if len(request.destination.encode()) < MIN_ADDRESS_LEN:
        raise WalletError(ErrorKind.INVALID_PUBKEY_LEN, f"address shorter than {MIN_ADDRESS_LEN} bytes")
    to = decode_address(request.destination)
    lamports = parse_amount(request.amount_text, strict=strict)
    if lamports <= 0:
        raise WalletError(ErrorKind.INVALID_AMOUNT, "amount must be greater than zero")
    if (request.known_balance or 0) < lamports:
        raise WalletError(ErrorKind.INSUFFICIENT_BALANCE, f"balance {request.known_balance or 0} < {lamports}")
    return to, lamports


async def transfer(
    request: TransferRequest,
    rpc: RpcClient,
    policy: Optional[ConfirmPolicy] = None,
    strict: bool = False,
) -> SubmissionOutcome:
    """Send ``request`` and wait until the node reports it finalized.

    Every failure comes back as a ``SubmissionOutcome`` carrying an
    ``ErrorKind``; nothing is raised for expected error paths.
    """
    policy = policy or ConfirmPolicy()
    try:
        to, lamports = _check(request, strict)
    except WalletError as e:
        log.info("transfer.rejected", error=e.kind.value, detail=e.detail)
        return SubmissionOutcome.failed(e.kind, e.detail)

    try:
        blockhash = await rpc.get_latest_blockhash(rpc.commitment)
    except RpcError as e:
        log.warning("transfer.blockhash_failed", error=str(e))
        return SubmissionOutcome.failed(ErrorKind.FETCH_BLOCKHASH, str(e))

    try:
        recent = Hash.from_string(blockhash)
    except ValueError as e:
        log.warning("transfer.bad_blockhash", blockhash=blockhash)
        return SubmissionOutcome.failed(ErrorKind.FETCH_BLOCKHASH, str(e))

    tx = build_transfer(request.signer, to, lamports, recent)

    try:
        signature = await rpc.send_transaction(tx, SEND_CONFIG)
    except RpcError as e:
        log.warning("transfer.submit_failed", error=str(e))
        return SubmissionOutcome.failed(ErrorKind.TRANSACTION, str(e))
    log.info("transfer.submitted", signature=signature, lamports=lamports, destination=request.destination)

    try:
        await wait_for_finality(rpc, signature, policy)
    except WalletError as e:
        log.warning("transfer.unconfirmed", signature=signature, detail=e.detail)
        return SubmissionOutcome.failed(e.kind, e.detail)

    log.info("transfer.finalized", signature=signature)
    return SubmissionOutcome(signature=signature)

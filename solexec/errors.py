"""Error kinds surfaced by the wallet core and session."""

from __future__ import annotations

from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    INVALID_PUBKEY_LEN = "InvalidPubKeyLen"
    INVALID_PUBKEY = "InvalidPubKey"
    INVALID_AMOUNT = "InvalidAmount"
    INSUFFICIENT_BALANCE = "InsufficientBalance"
    FETCH_BLOCKHASH = "FetchBlockhashError"
    TRANSACTION = "TransactionError"
    FETCH_BALANCE = "FetchBalanceError"
    INVALID_FILE_TYPE = "InvalidFileType"
    DIALOG_CLOSED = "DialogClosed"
    KEYPAIR = "KeypairError"


class WalletError(Exception):
    """Raised by wallet helpers; carries the kind the caller reports."""

    def __init__(self, kind: ErrorKind, detail: Optional[str] = None):
        self.kind = kind
        self.detail = detail
        super().__init__(f"{kind.value}: {detail}" if detail else kind.value)


class RpcError(Exception):
    """Transport, HTTP or JSON-RPC level failure talking to the node."""

    def __init__(self, message: str, code: Optional[int] = None):
        self.code = code
        super().__init__(message)


class ConfigError(Exception):
    pass

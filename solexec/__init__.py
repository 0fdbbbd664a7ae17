"""solexec: a small Solana wallet that sends SOL transfers."""

from .amount import LAMPORTS_PER_SOL, format_amount, parse_amount
from .errors import ErrorKind, RpcError, WalletError
from .keypair import decode_address, read_keypair_file
from .transfer import ConfirmPolicy, SubmissionOutcome, TransferRequest, transfer

__version__ = "0.1.0"

__all__ = [
    "LAMPORTS_PER_SOL",
    "ConfirmPolicy",
    "ErrorKind",
    "RpcError",
    "SubmissionOutcome",
    "TransferRequest",
    "WalletError",
    "decode_address",
    "format_amount",
    "parse_amount",
    "read_keypair_file",
    "transfer",
]

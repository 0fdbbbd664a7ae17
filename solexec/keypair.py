"""Solana CLI keypair files and address parsing."""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Optional

from solders.keypair import Keypair
from solders.pubkey import Pubkey

from .errors import ErrorKind, WalletError

DEFAULT_LOCATION = Path(".config") / "solana" / "id.json"


def keypair_from_bytes(raw: bytes) -> Keypair:
    """Build from the 64-byte secret||public layout used by keypair files."""
    if len(raw) != 64:
        raise WalletError(ErrorKind.KEYPAIR, f"expected 64 bytes, got {len(raw)}")
    try:
        keypair = Keypair.from_bytes(raw)
    except ValueError as e:
        raise WalletError(ErrorKind.KEYPAIR, str(e)) from e
    if bytes(keypair.pubkey()) != raw[32:]:
        raise WalletError(ErrorKind.KEYPAIR, "public key does not match secret key")
    return keypair


def default_keypair_path() -> Path:
    home = os.environ.get("HOME") or os.environ.get("USERPROFILE")
    if not home:
        raise WalletError(ErrorKind.KEYPAIR, "cannot find home directory")
    return Path(home) / DEFAULT_LOCATION


def check_keypair_path(path: Optional[Path]) -> Path:
    """Validate a user-picked path before it is read."""
    if path is None:
        raise WalletError(ErrorKind.DIALOG_CLOSED)
    if path.suffix != ".json":
        raise WalletError(ErrorKind.INVALID_FILE_TYPE, f"{path.name} is not a .json keypair")
    return path


def read_keypair_file(path: Path) -> Keypair:
    try:
        with path.open("r") as f:
            data = json.load(f)
    except OSError as e:
        raise WalletError(ErrorKind.KEYPAIR, f"cannot read {path}: {e.strerror}") from e
    except ValueError as e:
        raise WalletError(ErrorKind.KEYPAIR, f"{path} is not valid JSON") from e
    if not isinstance(data, list) or not all(isinstance(b, int) and 0 <= b <= 255 for b in data):
        raise WalletError(ErrorKind.KEYPAIR, f"{path} is not a keypair byte array")
    return keypair_from_bytes(bytes(data))


def decode_address(address: str) -> Pubkey:
    try:
        return Pubkey.from_string(address)
    except ValueError as e:
        raise WalletError(ErrorKind.INVALID_PUBKEY, f"not a valid address: {address!r}") from e

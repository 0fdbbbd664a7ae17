"""
solexec terminal wallet.

Shows the loaded keypair's address and SOL balance and sends single
transfers. The keypair is read from --keypair, SOLEXEC_KEYPAIR_PATH, the
config file, or ~/.config/solana/id.json.
"""

from __future__ import annotations

import asyncio
import shutil
import signal
import sys
import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime
from pathlib import Path
from typing import Optional, Tuple

import click
import structlog

from . import __version__
from .amount import format_amount
from .config import Settings
from .errors import ConfigError, WalletError
from .logging import configure_logging
from .wallet import WalletSession

log = structlog.get_logger(__name__)

SPINNER_FRAMES = ["⠋", "⠙", "⠹", "⠸", "⠼", "⠴", "⠦", "⠧", "⠇", "⠏"]

# Terminal colors (minimal)
C = {
    "r": "\033[0m",
    "c": "\033[36m",
    "g": "\033[32m",
    "y": "\033[33m",
    "R": "\033[31m",
    "B": "\033[1m",
    "bg": "\033[44m",
    "bgr": "\033[41m",
    "bgg": "\033[42m",
    "w": "\033[37m",
}


# ------------------------
# Utilities (terminal)
# ------------------------
def cls() -> None:
    print("\033[2J\033[H", end="", flush=True)


def term_size() -> Tuple[int, int]:
    return shutil.get_terminal_size((80, 25))


def at(x: int, y: int, text: str, cl: str = "") -> None:
    """Move cursor and print text (no newline)."""
    print(f"\033[{y};{x}H{cl}{text}{C['r']}", end="")


_executor = ThreadPoolExecutor(max_workers=1)


async def ainput_at(x: int, y: int) -> str:
    print(f"\033[{y};{x}H", end="", flush=True)
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(_executor, input)


def draw_box(x: int, y: int, w: int, h: int, title: str = "") -> None:
    print(f"\033[{y};{x}H{C['bg']}{C['w']}┌{'─' * (w - 2)}┐{C['r']}")
    if title:
        print(f"\033[{y};{x}H{C['bg']}{C['w']}┤ {C['B']}{title} {C['w']}├{C['r']}")
    for i in range(1, h - 1):
        print(f"\033[{y + i};{x}H{C['bg']}{C['w']}│{' ' * (w - 2)}│{C['r']}")
    print(f"\033[{y + h - 1};{x}H{C['bg']}{C['w']}└{'─' * (w - 2)}┘{C['r']}")


async def spin_animation(x: int, y: int, msg: str) -> None:
    idx = 0
    try:
        while True:
            at(x, y, f"{C['c']}{SPINNER_FRAMES[idx % len(SPINNER_FRAMES)]} {msg}", C["r"])
            idx += 1
            await asyncio.sleep(0.1)
    except asyncio.CancelledError:
        at(x, y, " " * (len(msg) + 3), "")
        raise


async def with_spinner(coro, x: int, y: int, msg: str):
    spin = asyncio.create_task(spin_animation(x, y, msg))
    try:
        return await coro
    finally:
        spin.cancel()
        try:
            await spin
        except asyncio.CancelledError:
            pass


def describe(err: WalletError) -> str:
    return f"{err.kind.value}: {err.detail}" if err.detail else err.kind.value


# ------------------------
# Screens
# ------------------------
async def main_loop(session: WalletSession) -> None:
    stop_flag = threading.Event()

    def handle_sig(signum, frame):
        stop_flag.set()

    signal.signal(signal.SIGINT, handle_sig)
    signal.signal(signal.SIGTERM, handle_sig)

    while not stop_flag.is_set():
        cls()
        cr_w, cr_h = term_size()
        header = f" solexec v{__version__} │ {datetime.now().strftime('%H:%M:%S')} "
        at((cr_w - len(header)) // 2, 1, header, C["B"] + C["w"])
        sidebar_w = 24
        draw_box(2, 3, sidebar_w, 9, "commands")
        at(4, 5, "[1] send sol", C["w"])
        at(4, 6, "[2] refresh", C["w"])
        at(4, 7, "[3] load keypair", C["w"])
        at(4, 8, "[0] exit", C["w"])

        info_x = sidebar_w + 4
        draw_box(info_x, 3, cr_w - info_x - 2, 9, "wallet")
        at(info_x + 2, 5, "address:", C["c"])
        at(info_x + 12, 5, session.address or "---", C["w"])
        at(info_x + 2, 6, "balance:", C["c"])
        if session.balance is None:
            at(info_x + 12, 6, "loading balance...", C["y"])
        else:
            at(info_x + 12, 6, f"{format_amount(session.balance)} SOL", C["g"])
        at(info_x + 2, 8, "keypair:", C["c"])
        at(info_x + 12, 8, str(session.keypair_path or "---"), C["w"])
        at(info_x + 2, 9, "rpc:", C["c"])
        at(info_x + 12, 9, session.rpc.url, C["w"])

        if session.balance is None and session.keypair is not None:
            try:
                await with_spinner(session.refresh_balance(), info_x + 12, 6, "loading balance")
                continue
            except WalletError as e:
                at(2, cr_h - 4, f"error: {describe(e)}", C["bgr"] + C["w"])

        at(2, cr_h - 2, "command: ", C["B"] + C["y"])
        cmd = ((await ainput_at(12, cr_h - 2)) or "").strip()
        if cmd == "1":
            await send_flow(session)
        elif cmd == "2":
            session.balance = None
            if session.keypair is None:
                continue
            try:
                await session.refresh_balance()
            except WalletError as e:
                await show_error(e)
        elif cmd == "3":
            await load_keypair_flow(session)
        elif cmd in ["0", "q"]:
            break


async def show_error(err: WalletError) -> None:
    cr_w, cr_h = term_size()
    at(2, cr_h - 4, f"✗ {describe(err)}"[: cr_w - 4], C["bgr"] + C["w"])
    at(2, cr_h - 3, "press enter", C["y"])
    await ainput_at(14, cr_h - 3)


async def send_flow(session: WalletSession) -> None:
    cls()
    cr_w, cr_h = term_size()
    w, hb = 80, 20
    x = max(2, (cr_w - w) // 2)
    y = max(2, (cr_h - hb) // 2)
    draw_box(x, y, w, hb, "send sol")
    at(x + 2, y + 2, "to address: (or [esc] to cancel)", C["y"])
    to = (await ainput_at(x + 2, y + 3)).strip()
    if not to or to.lower() == "esc":
        return
    at(x + 2, y + 5, "amount in SOL: (or [esc] to cancel)", C["y"])
    amount = (await ainput_at(x + 2, y + 6)).strip()
    if not amount or amount.lower() == "esc":
        return
    at(x + 2, y + 8, f"send {amount} SOL to {to}? [y/n]:", C["B"] + C["y"])
    if (await ainput_at(x + 2, y + 9)).strip().lower() != "y":
        return
    outcome = await with_spinner(session.send(to, amount), x + 2, y + 12, "sending and waiting for finality")
    if outcome.ok:
        at(x + 2, y + 12, "✓ transaction finalized!", C["bgg"] + C["w"])
        at(x + 2, y + 13, f"signature: {outcome.signature}", C["g"])
    else:
        reason = outcome.error.value if outcome.error else "unknown"
        if outcome.detail:
            reason = f"{reason}: {outcome.detail}"
        at(x + 2, y + 12, f"✗ transaction failed: {reason[:60]}", C["bgr"] + C["w"])
    at(x + 2, y + hb - 3, "press enter", C["y"])
    await ainput_at(x + 14, y + hb - 3)


async def load_keypair_flow(session: WalletSession) -> None:
    cls()
    cr_w, cr_h = term_size()
    w, hb = 80, 12
    x = max(2, (cr_w - w) // 2)
    y = max(2, (cr_h - hb) // 2)
    draw_box(x, y, w, hb, "load keypair")
    at(x + 2, y + 2, "path to a solana keypair .json: (empty to cancel)", C["y"])
    raw = (await ainput_at(x + 2, y + 4)).strip()
    path = Path(raw).expanduser() if raw else None
    try:
        session.load_keypair(path, picked=True)
    except WalletError as e:
        await show_error(e)


# ------------------------
# Entrypoint
# ------------------------
async def run(settings: Settings) -> int:
    session = WalletSession(settings)
    try:
        try:
            session.load_keypair()
        except WalletError as e:
            click.echo(f"[!] {describe(e)}", err=True)
            return 1
        if not settings.rpc_url.startswith("https://") and "localhost" not in settings.rpc_url:
            log.warning("cli.insecure_rpc", rpc=settings.rpc_url)
        await main_loop(session)
        return 0
    finally:
        await session.close()
        _executor.shutdown(wait=False)


@click.command()
@click.option("--keypair", "keypair_path", type=click.Path(path_type=Path), help="Keypair file to load.")
@click.option("--rpc", "rpc_url", help="JSON-RPC endpoint of the node.")
@click.option("--config", "config_file", type=click.Path(path_type=Path), help="JSON settings file.")
@click.option("--strict-amounts", is_flag=True, help="Reject malformed amounts instead of reading them as 0.")
@click.option("-v", "--verbose", is_flag=True, help="Debug logging.")
@click.option("--log-json", is_flag=True, help="Log JSON lines to stderr.")
@click.version_option(__version__, prog_name="solexec")
def main(
    keypair_path: Optional[Path],
    rpc_url: Optional[str],
    config_file: Optional[Path],
    strict_amounts: bool,
    verbose: bool,
    log_json: bool,
) -> None:
    """Terminal SOL wallet."""
    try:
        settings = Settings.load(
            config_file,
            keypair_path=keypair_path,
            rpc_url=rpc_url,
            strict_amounts=strict_amounts or None,
            verbose=verbose or None,
            log_json=log_json or None,
        )
    except ConfigError as e:
        raise click.ClickException(str(e)) from e
    configure_logging(verbose=settings.verbose, log_json=settings.log_json)
    try:
        code = asyncio.run(run(settings))
    except KeyboardInterrupt:
        code = 0
    if code == 0 and sys.stdout.isatty():
        cls()
        print(C["r"], end="")
    sys.exit(code)


if __name__ == "__main__":
    main()

"""
Darklake wallet emulator CLI.

Usage:
    darklake-wallet                       # run one swap (same as `swap`)
    darklake-wallet swap --amount 5000    # override INPUT_AMOUNT
    darklake-wallet trades --page 2       # list this wallet's trades
    darklake-wallet keygen                # print a fresh dev keypair

Exit codes: 0 on success, 1 on any failure.
"""

from __future__ import annotations

import argparse
import asyncio
import dataclasses
import json
import sys
from typing import List, Optional

import base58
from loguru import logger
from solders.keypair import Keypair

from . import __version__
from .config import WalletConfig, load_config, load_keypair
from .errors import WalletEmulatorError
from .gateway import GatewayClient
from .types import GetTradesListByUserRequest, Network
from .workflow import WalletSwapWorkflow, WorkflowResult

EXIT_OK = 0
EXIT_FAILURE = 1

LOG_FORMAT = (
    "<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan> - <level>{message}</level>"
)


def configure_logging(level: str = "INFO") -> None:
    logger.remove()
    logger.add(sys.stderr, format=LOG_FORMAT, level=level.upper())


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="darklake-wallet",
        description="Wallet emulator for the Darklake Solana gateway",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Commands:
    swap      Request, sign, submit and track one swap (default)
    trades    List trades for the configured wallet
    keygen    Generate a dev keypair for PRIVATE_KEY_BYTES
        """,
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--env-file", default=None, help="Path to a .env file (default: ./.env)")
    parser.add_argument("--log-level", default="INFO", help="loguru level (DEBUG, INFO, ...)")
    _add_gateway_args(parser)

    subparsers = parser.add_subparsers(dest="command")

    parser_swap = subparsers.add_parser("swap", help="Run one swap against the gateway")
    _add_gateway_args(parser_swap)
    _add_swap_args(parser_swap)

    parser_trades = subparsers.add_parser("trades", help="List trades for the wallet")
    _add_gateway_args(parser_trades)
    parser_trades.add_argument("--user", default=None, help="Address to query (default: wallet pubkey)")
    parser_trades.add_argument("--page", type=int, default=1)
    parser_trades.add_argument("--page-size", type=int, default=10)

    parser_keygen = subparsers.add_parser("keygen", help="Generate a dev keypair")
    parser_keygen.add_argument("--base58", action="store_true", help="Print the secret as base58 instead of a JSON array")

    # `darklake-wallet` with no subcommand behaves like `swap`
    _add_swap_args(parser)
    return parser


def _add_gateway_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--host", default=argparse.SUPPRESS, help="Gateway host (GATEWAY_HOST)")
    parser.add_argument("--port", type=int, default=argparse.SUPPRESS, help="Gateway port (GATEWAY_PORT)")


def _add_swap_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--amount", type=int, default=argparse.SUPPRESS, help="Input amount (INPUT_AMOUNT)")
    parser.add_argument("--min-out", type=int, default=argparse.SUPPRESS, help="Minimum output (MIN_OUT)")
    parser.add_argument(
        "--network",
        choices=[n.cluster for n in Network],
        default=argparse.SUPPRESS,
        help="Target network (NETWORK)",
    )
    parser.add_argument("--poll-retries", type=int, default=argparse.SUPPRESS, help="Status poll attempts")
    parser.add_argument("--poll-delay-ms", type=int, default=argparse.SUPPRESS, help="Delay between status polls")
    parser.add_argument("--no-list-trades", action="store_true", default=argparse.SUPPRESS, help="Skip the trade history query")
    parser.add_argument(
        "--strict-submit",
        action="store_true",
        default=argparse.SUPPRESS,
        help="Abort when the gateway rejects the signed transaction",
    )


def apply_overrides(config: WalletConfig, args: argparse.Namespace) -> WalletConfig:
    """Return a copy of `config` with CLI values layered on top."""
    changes = {}
    if getattr(args, "host", None):
        changes["gateway_host"] = args.host
    if getattr(args, "port", None) is not None:
        changes["gateway_port"] = args.port
    if hasattr(args, "amount"):
        changes["input_amount"] = args.amount
    if hasattr(args, "min_out"):
        changes["min_out"] = args.min_out
    if hasattr(args, "network"):
        changes["network"] = Network.parse(args.network)
    if hasattr(args, "poll_retries"):
        changes["poll_max_retries"] = args.poll_retries
    if hasattr(args, "poll_delay_ms"):
        changes["poll_delay_ms"] = args.poll_delay_ms
    return dataclasses.replace(config, **changes) if changes else config


# =============================================================================
# COMMANDS
# =============================================================================

async def run_swap(
    config: WalletConfig,
    list_trades: bool = True,
    strict_submit: bool = False,
) -> WorkflowResult:
    logger.info("DARKLAKE_WALLET | start | " + " | ".join(f"{k}={v}" for k, v in config.summary().items()))
    async with GatewayClient(config.gateway_target) as gateway:
        workflow = WalletSwapWorkflow(
            config,
            gateway,
            list_trades=list_trades,
            abort_on_rejected_submit=strict_submit,
        )
        result = await workflow.run()

    final = result.final_status.name if result.final_status else "UNKNOWN"
    logger.info(f"DARKLAKE_WALLET | done | trade_id={result.trade_id} | final_status={final}")
    if result.trades is not None:
        for trade in result.trades.trades:
            logger.info(trade.to_log_line())
    return result


async def run_trades(config: WalletConfig, user: Optional[str], page: int, page_size: int) -> int:
    if not user:
        user = str(load_keypair(config.private_key_bytes).pubkey())
    async with GatewayClient(config.gateway_target) as gateway:
        response = await gateway.get_trades_list_by_user(
            GetTradesListByUserRequest(user_address=user, page_size=page_size, page_number=page)
        )
    logger.info(
        f"TRADES | user={user} | page={response.current_page}/{response.total_pages} "
        f"| count={len(response.trades)}"
    )
    for trade in response.trades:
        logger.info(trade.to_log_line())
    return len(response.trades)


def run_keygen(as_base58: bool = False) -> Keypair:
    kp = Keypair()
    # bytes(kp) is the full 64-byte keypair (seed + pubkey)
    raw64 = bytes(kp)
    print("PUBKEY:", kp.pubkey())
    if as_base58:
        print(f"PRIVATE_KEY_BYTES={base58.b58encode(raw64).decode()}")
    else:
        print(f"PRIVATE_KEY_BYTES={json.dumps(list(raw64))}")
    return kp


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level)

    if args.command == "keygen":
        run_keygen(as_base58=args.base58)
        return EXIT_OK

    try:
        config = apply_overrides(load_config(dotenv_path=args.env_file), args)
        if args.command == "trades":
            asyncio.run(run_trades(config, args.user, args.page, args.page_size))
        else:
            asyncio.run(run_swap(
                config,
                list_trades=not getattr(args, "no_list_trades", False),
                strict_submit=getattr(args, "strict_submit", False),
            ))
    except WalletEmulatorError as e:
        logger.error(f"DARKLAKE_WALLET | failed | {type(e).__name__}: {e}")
        return EXIT_FAILURE
    except Exception as e:
        logger.exception(f"DARKLAKE_WALLET | unexpected error | {e}")
        return EXIT_FAILURE

    logger.info("DARKLAKE_WALLET | exiting")
    return EXIT_OK


if __name__ == "__main__":
    raise SystemExit(main())

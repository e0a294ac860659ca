"""
Wallet emulator configuration.

Policy:
- Load .env ONCE at boot, then build a frozen WalletConfig.
- Only type coercion happens here; values are not range-checked.
- NEVER LOG the private key bytes or anything decoded from them.
"""

from __future__ import annotations

import json
import os
import random
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional

import base58
from dotenv import load_dotenv
from loguru import logger
from solders.keypair import Keypair

from .errors import ConfigError
from .types import Network

DEFAULT_GATEWAY_HOST = "localhost"
DEFAULT_GATEWAY_PORT = 50051
DEFAULT_INPUT_AMOUNT = 1000
DEFAULT_MIN_OUT = 0
DEFAULT_POLL_MAX_RETRIES = 5
DEFAULT_POLL_DELAY_MS = 1000

KEYPAIR_LENGTH = 64


def generate_tracking_id() -> str:
    """Random hex-suffixed id. Unique enough for a demo run, not collision resistant."""
    return f"id{random.getrandbits(52):x}"


@dataclass(frozen=True)
class WalletConfig:
    """
    Immutable config. Built once at boot.

    The tracking id is fixed for the lifetime of the config so every request
    of one run carries the same value.
    """
    private_key_bytes: str = field(default="", repr=False)
    gateway_host: str = DEFAULT_GATEWAY_HOST
    gateway_port: int = DEFAULT_GATEWAY_PORT
    token_x: str = ""
    token_y: str = ""
    input_amount: int = DEFAULT_INPUT_AMOUNT
    min_out: int = DEFAULT_MIN_OUT
    network: Network = Network.DEVNET
    tracking_id: str = field(default_factory=generate_tracking_id)
    ref_code: str = ""
    label: str = ""
    poll_max_retries: int = DEFAULT_POLL_MAX_RETRIES
    poll_delay_ms: int = DEFAULT_POLL_DELAY_MS

    @property
    def gateway_target(self) -> str:
        return f"{self.gateway_host}:{self.gateway_port}"

    def summary(self) -> Dict[str, Any]:
        """Loggable view of the config. Excludes key material."""
        return {
            "gateway": self.gateway_target,
            "token_x": self.token_x,
            "token_y": self.token_y,
            "input_amount": self.input_amount,
            "min_out": self.min_out,
            "network": self.network.name,
            "tracking_id": self.tracking_id,
            "ref_code": self.ref_code,
            "label": self.label,
        }


def _coerce_int(env: Mapping[str, str], key: str, default: int) -> int:
    raw = env.get(key, "")
    raw = raw.strip() if raw else ""
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError as e:
        raise ConfigError(f"{key} must be an integer, got {raw!r}") from e


def _coerce_network(env: Mapping[str, str], key: str = "NETWORK") -> Network:
    raw = (env.get(key) or "").strip()
    if not raw:
        return Network.DEVNET
    try:
        return Network.parse(raw)
    except (KeyError, ValueError) as e:
        raise ConfigError(f"{key} is not a known network: {raw!r}") from e


def load_config(
    env: Optional[Mapping[str, str]] = None,
    dotenv_path: Optional[str] = None,
) -> WalletConfig:
    """
    THE ONLY FUNCTION THAT READS THE ENVIRONMENT.

    When `env` is given it is used as-is and no .env file is loaded.
    """
    if env is None:
        load_dotenv(dotenv_path)
        env = os.environ

    config = WalletConfig(
        private_key_bytes=(env.get("PRIVATE_KEY_BYTES") or "").strip(),
        gateway_host=(env.get("GATEWAY_HOST") or "").strip() or DEFAULT_GATEWAY_HOST,
        gateway_port=_coerce_int(env, "GATEWAY_PORT", DEFAULT_GATEWAY_PORT),
        token_x=(env.get("TOKEN_X_MINT") or "").strip(),
        token_y=(env.get("TOKEN_Y_MINT") or "").strip(),
        input_amount=_coerce_int(env, "INPUT_AMOUNT", DEFAULT_INPUT_AMOUNT),
        min_out=_coerce_int(env, "MIN_OUT", DEFAULT_MIN_OUT),
        network=_coerce_network(env),
        ref_code=(env.get("REF_CODE") or "").strip(),
        label=(env.get("LABEL") or "").strip(),
        poll_max_retries=_coerce_int(env, "POLL_MAX_RETRIES", DEFAULT_POLL_MAX_RETRIES),
        poll_delay_ms=_coerce_int(env, "POLL_DELAY_MS", DEFAULT_POLL_DELAY_MS),
    )
    logger.debug(f"CONFIG | loaded | gateway={config.gateway_target} | network={config.network.name}")
    return config


# =============================================================================
# KEYPAIR LOADING
# =============================================================================

def load_keypair(private_key_bytes: str) -> Keypair:
    """
    Load the wallet keypair.

    ACCEPTS:
    - JSON array of 64 byte values, e.g. "[12, 34, ...]" (solana-keygen format)
    - base58 string decoding to exactly 64 bytes (Phantom export format)
    REJECTS: everything else, with ConfigError.
    """
    raw = (private_key_bytes or "").strip()
    if not raw:
        raise ConfigError("PRIVATE_KEY_BYTES is empty or not set")

    if raw.startswith("["):
        try:
            values = json.loads(raw)
        except json.JSONDecodeError as e:
            raise ConfigError(f"PRIVATE_KEY_BYTES is not a valid JSON array: {e.msg}") from e
        if not isinstance(values, list) or not all(
            isinstance(v, int) and not isinstance(v, bool) and 0 <= v <= 255 for v in values
        ):
            raise ConfigError("PRIVATE_KEY_BYTES must be a JSON array of byte values (0-255)")
        key_bytes = bytes(values)
    else:
        try:
            key_bytes = base58.b58decode(raw)
        except ValueError as e:
            raise ConfigError("PRIVATE_KEY_BYTES is neither a JSON array nor base58") from e

    if len(key_bytes) != KEYPAIR_LENGTH:
        raise ConfigError(
            f"PRIVATE_KEY_BYTES decoded to {len(key_bytes)} bytes, expected {KEYPAIR_LENGTH}"
        )

    try:
        return Keypair.from_bytes(key_bytes)
    except Exception as e:
        raise ConfigError(f"PRIVATE_KEY_BYTES is not a valid ed25519 keypair: {e}") from e

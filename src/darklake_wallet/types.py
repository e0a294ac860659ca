"""
Gateway request/response records and enums.

Plain dataclasses mirroring the darklake.v1 wire schema. The gateway client
converts between these and the protobuf messages so nothing above the
adapter ever touches generated code.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum
from typing import TYPE_CHECKING, List, Optional, Union

if TYPE_CHECKING:
    from .config import WalletConfig


class Network(IntEnum):
    MAINNET_BETA = 0
    TESTNET = 1
    DEVNET = 2

    @classmethod
    def parse(cls, value: Union[str, int, "Network"]) -> "Network":
        """Accept an enum, its integer value, its name or a cluster label."""
        if isinstance(value, Network):
            return value
        if isinstance(value, int):
            return cls(value)
        raw = str(value).strip()
        if raw.lstrip("-").isdigit():
            return cls(int(raw))
        key = raw.upper().replace("-", "_")
        if key == "MAINNET":
            key = "MAINNET_BETA"
        return cls[key]

    @property
    def cluster(self) -> str:
        return self.name.lower().replace("_", "-")


class TradeStatus(IntEnum):
    UNSIGNED = 0
    SIGNED = 1
    CONFIRMED = 2
    SETTLED = 3
    SLASHED = 4
    CANCELLED = 5

    @property
    def is_terminal(self) -> bool:
        return self in _TERMINAL_STATUSES

    @classmethod
    def parse(cls, value: Union[str, int, "TradeStatus"]) -> "TradeStatus":
        if isinstance(value, TradeStatus):
            return value
        if isinstance(value, int):
            return cls(value)
        raw = str(value).strip()
        if raw.isdigit():
            return cls(int(raw))
        return cls[raw.upper()]


_TERMINAL_STATUSES = frozenset({TradeStatus.SETTLED, TradeStatus.SLASHED, TradeStatus.CANCELLED})


# =============================================================================
# SWAP
# =============================================================================

@dataclass(frozen=True)
class SwapRequest:
    user_address: str
    token_mint_x: str
    token_mint_y: str
    amount_in: int
    min_out: int
    is_swap_x_to_y: bool
    network: Network
    tracking_id: str
    ref_code: str = ""
    label: str = ""

    @classmethod
    def from_config(
        cls,
        config: "WalletConfig",
        user_address: str,
        is_swap_x_to_y: bool = True,
    ) -> "SwapRequest":
        """Build the request for one run. Reads the config, never writes it."""
        return cls(
            user_address=user_address,
            token_mint_x=config.token_x,
            token_mint_y=config.token_y,
            amount_in=config.input_amount,
            min_out=config.min_out,
            is_swap_x_to_y=is_swap_x_to_y,
            network=config.network,
            tracking_id=config.tracking_id,
            ref_code=config.ref_code,
            label=config.label,
        )


@dataclass(frozen=True)
class SwapResponse:
    unsigned_transaction: str  # base64
    trade_id: str
    order_id: str = ""


# =============================================================================
# SUBMIT / STATUS
# =============================================================================

@dataclass(frozen=True)
class SignedTransactionRequest:
    signed_transaction: str  # base64
    tracking_id: str
    trade_id: str


@dataclass(frozen=True)
class SignedTransactionResponse:
    success: bool
    trade_id: str = ""
    error_logs: Optional[str] = None


@dataclass(frozen=True)
class CheckTradeStatusRequest:
    tracking_id: str
    trade_id: str


@dataclass(frozen=True)
class CheckTradeStatusResponse:
    trade_id: str
    status: TradeStatus


# =============================================================================
# TRADES LIST (read-only display records)
# =============================================================================

@dataclass(frozen=True)
class TokenMetadata:
    name: str = ""
    symbol: str = ""
    decimals: int = 0
    logo_uri: str = ""
    address: str = ""


@dataclass(frozen=True)
class Trade:
    trade_id: str
    order_id: str
    user_address: str
    token_x: TokenMetadata
    token_y: TokenMetadata
    amount_in: int
    minimal_amount_out: int
    status: TradeStatus
    signature: str = ""
    created_at: int = 0
    updated_at: int = 0
    is_swap_x_to_y: bool = True

    def to_log_line(self) -> str:
        direction = f"{self.token_x.symbol or '?'}->{self.token_y.symbol or '?'}"
        if not self.is_swap_x_to_y:
            direction = f"{self.token_y.symbol or '?'}->{self.token_x.symbol or '?'}"
        return (
            f"TRADE | id={self.trade_id} | {direction} | in={self.amount_in} "
            f"| min_out={self.minimal_amount_out} | status={self.status.name}"
        )


@dataclass(frozen=True)
class GetTradesListByUserRequest:
    user_address: str
    page_size: int = 10
    page_number: int = 1


@dataclass(frozen=True)
class GetTradesListByUserResponse:
    trades: List[Trade] = field(default_factory=list)
    total_pages: int = 0
    current_page: int = 0

"""Darklake wallet emulator: request, sign, submit and track one gateway swap."""

__version__ = "0.3.0"

from .config import WalletConfig, load_config, load_keypair
from .errors import (
    ConfigError,
    GatewayError,
    NotRequiredSignerError,
    SubmissionError,
    TransactionDecodeError,
    WalletEmulatorError,
)
from .types import Network, TradeStatus
from .workflow import WalletSwapWorkflow, WorkflowResult, WorkflowState

__all__ = [
    "__version__",
    "ConfigError",
    "GatewayError",
    "Network",
    "NotRequiredSignerError",
    "SubmissionError",
    "TradeStatus",
    "TransactionDecodeError",
    "WalletConfig",
    "WalletEmulatorError",
    "WalletSwapWorkflow",
    "WorkflowResult",
    "WorkflowState",
    "load_config",
    "load_keypair",
]

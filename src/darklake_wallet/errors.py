"""Error taxonomy for one wallet emulator run. Every error aborts the run."""

from __future__ import annotations

from typing import Optional, Sequence


class WalletEmulatorError(Exception):
    """Base class for all wallet emulator failures."""


class ConfigError(WalletEmulatorError):
    """Malformed configuration value or key material."""


class GatewayError(WalletEmulatorError):
    """A remote gateway call failed (transport, non-OK status or bad response)."""

    def __init__(self, method: str, message: str, code: Optional[str] = None):
        self.method = method
        self.code = code
        detail = f"{method} failed: {message}"
        if code:
            detail = f"{method} failed [{code}]: {message}"
        super().__init__(detail)


class TransactionDecodeError(WalletEmulatorError):
    """No decode strategy could parse the unsigned transaction payload."""

    def __init__(self, byte_length: int, diagnostics: Sequence[str] = ()):
        self.byte_length = byte_length
        self.diagnostics = list(diagnostics)
        summary = "; ".join(self.diagnostics) or "no strategy attempted"
        super().__init__(
            f"unable to decode transaction ({byte_length} bytes): {summary}"
        )


class NotRequiredSignerError(WalletEmulatorError):
    """Local wallet is not among the required signers of the transaction."""

    def __init__(self, wallet: str, num_required_signatures: int):
        self.wallet = wallet
        self.num_required_signatures = num_required_signatures
        super().__init__(
            f"wallet {wallet} is not a required signer "
            f"({num_required_signatures} signature(s) required)"
        )


class SubmissionError(WalletEmulatorError):
    """Gateway rejected the signed transaction."""

    def __init__(self, trade_id: str, error_logs: Optional[str] = None):
        self.trade_id = trade_id
        self.error_logs = error_logs
        message = f"gateway rejected signed transaction for trade {trade_id}"
        if error_logs:
            message = f"{message}: {error_logs}"
        super().__init__(message)

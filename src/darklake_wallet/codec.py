"""
codec.py - Unsigned transaction decoding and signed transaction encoding.

The gateway's payload shape has not been stable across releases. Observed
shapes, in the order we try them:

1. VERSIONED_TRANSACTION  full serialized tx, signature section included
2. VERSIONED_MESSAGE      bare message, no signature section
3. LEGACY_TRANSACTION     legacy (non-versioned) tx encoding
4. FRAMED_MESSAGE         bare message behind one leading framing byte

Each shape is a pure strategy `bytes -> DecodedTransaction`. Every strategy
lands on the same DecodedTransaction, so signing, encoding and submission
have exactly one code path regardless of what the gateway sent.

If no strategy matches we raise TransactionDecodeError. We never guess.
"""

from __future__ import annotations

import base64
import binascii
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Sequence, Tuple, Union

from loguru import logger
from solders.message import Message, MessageV0, from_bytes_versioned, to_bytes_versioned
from solders.pubkey import Pubkey
from solders.signature import Signature
from solders.transaction import Transaction, VersionedTransaction

from .errors import TransactionDecodeError

AnyMessage = Union[Message, MessageV0]


class PayloadFormat(Enum):
    VERSIONED_TRANSACTION = "versioned_transaction"
    VERSIONED_MESSAGE = "versioned_message"
    LEGACY_TRANSACTION = "legacy_transaction"
    FRAMED_MESSAGE = "framed_message"


@dataclass
class DecodedTransaction:
    """
    Transaction ready for signing.

    `signatures` has one slot per required signer. Unsigned slots hold
    Signature.default() (all zeros). The signing step fills slots in place.
    """
    payload_format: PayloadFormat
    message: AnyMessage
    signatures: List[Signature]

    @property
    def num_required_signatures(self) -> int:
        return self.message.header.num_required_signatures

    @property
    def required_signers(self) -> List[Pubkey]:
        return list(self.message.account_keys[: self.num_required_signatures])

    @property
    def is_fully_signed(self) -> bool:
        if len(self.signatures) < self.num_required_signatures:
            return False
        blank = Signature.default()
        return all(sig != blank for sig in self.signatures[: self.num_required_signatures])

    def message_bytes(self) -> bytes:
        """Bytes the signers sign over."""
        return to_bytes_versioned(self.message)

    def to_bytes(self) -> bytes:
        if self.payload_format is PayloadFormat.LEGACY_TRANSACTION:
            return bytes(Transaction.populate(self.message, self.signatures))
        return bytes(VersionedTransaction.populate(self.message, self.signatures))


def _placeholder_signatures(message: AnyMessage) -> List[Signature]:
    return [Signature.default() for _ in range(message.header.num_required_signatures)]


# solders parsers stop reading once the structure is filled, so a payload in
# one shape can parse as another with trailing bytes dropped. A strategy only
# matches when the parse re-serializes to exactly the bytes it was given and
# the header agrees with the account list.

def _require_exact(parsed: bytes, raw: bytes) -> None:
    if parsed != raw:
        raise ValueError(f"parse is not lossless ({len(parsed)} of {len(raw)} bytes)")


def _require_sane_header(message: AnyMessage) -> None:
    header = message.header
    required = header.num_required_signatures
    if required + header.num_readonly_unsigned_accounts > len(message.account_keys):
        raise ValueError(
            f"header needs {required + header.num_readonly_unsigned_accounts} accounts, "
            f"message has {len(message.account_keys)}"
        )
    if header.num_readonly_signed_accounts and header.num_readonly_signed_accounts >= required:
        raise ValueError("header leaves no writable fee payer")


def _require_signature_count(signatures: List[Signature], message: AnyMessage, allow_empty: bool) -> None:
    required = message.header.num_required_signatures
    if len(signatures) == required or (allow_empty and not signatures):
        return
    raise ValueError(f"{len(signatures)} signatures for {required} required signers")


# =============================================================================
# DECODE STRATEGIES (pure: bytes -> DecodedTransaction, raise on mismatch)
# =============================================================================

def decode_versioned_transaction(raw: bytes) -> DecodedTransaction:
    tx = VersionedTransaction.from_bytes(raw)
    _require_exact(bytes(tx), raw)
    _require_sane_header(tx.message)
    signatures = list(tx.signatures)
    _require_signature_count(signatures, tx.message, allow_empty=False)
    return DecodedTransaction(
        payload_format=PayloadFormat.VERSIONED_TRANSACTION,
        message=tx.message,
        signatures=signatures,
    )


def _decode_message(raw: bytes) -> AnyMessage:
    message = from_bytes_versioned(raw)
    _require_exact(to_bytes_versioned(message), raw)
    _require_sane_header(message)
    return message


def decode_versioned_message(raw: bytes) -> DecodedTransaction:
    # Accepts both v0 and legacy message encodings.
    message = _decode_message(raw)
    return DecodedTransaction(
        payload_format=PayloadFormat.VERSIONED_MESSAGE,
        message=message,
        signatures=_placeholder_signatures(message),
    )


def decode_legacy_transaction(raw: bytes) -> DecodedTransaction:
    tx = Transaction.from_bytes(raw)
    _require_exact(bytes(tx), raw)
    _require_sane_header(tx.message)
    signatures = list(tx.signatures)
    # Legacy encodings sometimes ship an empty signature section.
    _require_signature_count(signatures, tx.message, allow_empty=True)
    if not signatures:
        signatures = _placeholder_signatures(tx.message)
    return DecodedTransaction(
        payload_format=PayloadFormat.LEGACY_TRANSACTION,
        message=tx.message,
        signatures=signatures,
    )


def decode_framed_message(raw: bytes) -> DecodedTransaction:
    if len(raw) < 2:
        raise ValueError("payload too short for a framed message")
    message = _decode_message(raw[1:])
    return DecodedTransaction(
        payload_format=PayloadFormat.FRAMED_MESSAGE,
        message=message,
        signatures=_placeholder_signatures(message),
    )


DecodeStrategy = Tuple[str, Callable[[bytes], DecodedTransaction]]

DECODE_STRATEGIES: Sequence[DecodeStrategy] = (
    (PayloadFormat.VERSIONED_TRANSACTION.value, decode_versioned_transaction),
    (PayloadFormat.VERSIONED_MESSAGE.value, decode_versioned_message),
    (PayloadFormat.LEGACY_TRANSACTION.value, decode_legacy_transaction),
    (PayloadFormat.FRAMED_MESSAGE.value, decode_framed_message),
)


def decode_bytes(
    raw: bytes,
    strategies: Sequence[DecodeStrategy] = DECODE_STRATEGIES,
) -> DecodedTransaction:
    """Run the strategy table in priority order and return the first match."""
    diagnostics: List[str] = []
    for name, strategy in strategies:
        try:
            decoded = strategy(raw)
        except Exception as e:
            diagnostics.append(f"{name}: {_short(e)}")
            logger.debug(f"TX_DECODE | {name} | miss | {_short(e)}")
            continue
        logger.debug(
            f"TX_DECODE | {name} | ok | signers={decoded.num_required_signatures}"
        )
        return decoded

    logger.error(f"TX_DECODE | all strategies failed | bytes={len(raw)}")
    raise TransactionDecodeError(len(raw), diagnostics)


def decode_transaction(
    payload_b64: str,
    strategies: Sequence[DecodeStrategy] = DECODE_STRATEGIES,
) -> DecodedTransaction:
    """Decode the gateway's base64 unsigned transaction payload."""
    try:
        raw = base64.b64decode("".join((payload_b64 or "").split()), validate=True)
    except (binascii.Error, ValueError) as e:
        raise TransactionDecodeError(len(payload_b64 or ""), [f"base64: {_short(e)}"]) from e
    return decode_bytes(raw, strategies)


def encode_transaction(decoded: DecodedTransaction) -> str:
    """Serialize a (signed) DecodedTransaction to base64 for submission."""
    return base64.b64encode(decoded.to_bytes()).decode("ascii")


def _short(exc: Exception, limit: int = 120) -> str:
    text = str(exc).strip().splitlines()[0] if str(exc).strip() else type(exc).__name__
    return text if len(text) <= limit else text[: limit - 3] + "..."

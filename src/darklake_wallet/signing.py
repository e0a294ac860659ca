"""
Local signing of a decoded gateway transaction.

Only the wallet's own slot is written. Signatures already present for other
required signers (e.g. a gateway co-signer) are kept as-is.
"""

from __future__ import annotations

from enum import Enum

from loguru import logger
from solders.keypair import Keypair
from solders.signature import Signature

from .codec import DecodedTransaction
from .errors import NotRequiredSignerError


class SigningOutcome(Enum):
    SIGNED = "signed"
    SKIPPED = "skipped"  # transaction requires no signatures at all


def sign_transaction(decoded: DecodedTransaction, keypair: Keypair) -> SigningOutcome:
    """
    Sign `decoded` in place with `keypair`.

    Raises NotRequiredSignerError when the wallet is not a required signer of a
    transaction that requires at least one signature. Nothing is mutated then.
    """
    wallet = keypair.pubkey()
    required = decoded.required_signers

    if wallet not in required:
        if decoded.num_required_signatures == 0:
            logger.info("TX_SIGN | skipped | transaction requires no signatures")
            return SigningOutcome.SKIPPED
        logger.error(
            f"TX_SIGN | wallet not a required signer | wallet={str(wallet)[:8]}... "
            f"| required={decoded.num_required_signatures}"
        )
        raise NotRequiredSignerError(str(wallet), decoded.num_required_signatures)

    signature = keypair.sign_message(decoded.message_bytes())
    slot = required.index(wallet)

    signatures = list(decoded.signatures)
    # Pad a short signature section up to the header's signer count.
    while len(signatures) < decoded.num_required_signatures:
        signatures.append(Signature.default())
    signatures[slot] = signature
    decoded.signatures = signatures

    logger.info(f"TX_SIGN | ok | slot={slot} | fully_signed={decoded.is_fully_signed}")
    return SigningOutcome.SIGNED

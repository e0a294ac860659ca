from __future__ import annotations

import base64
from typing import List, Optional

import pytest
from solders.hash import Hash
from solders.instruction import AccountMeta, Instruction
from solders.keypair import Keypair
from solders.message import Message, MessageHeader, MessageV0, to_bytes_versioned
from solders.pubkey import Pubkey
from solders.signature import Signature
from solders.system_program import TransferParams, transfer
from solders.transaction import Transaction, VersionedTransaction

from darklake_wallet.types import (
    CheckTradeStatusRequest,
    CheckTradeStatusResponse,
    GetTradesListByUserRequest,
    GetTradesListByUserResponse,
    SignedTransactionRequest,
    SignedTransactionResponse,
    SwapRequest,
    SwapResponse,
    TradeStatus,
)


@pytest.fixture
def anyio_backend():
    return "asyncio"


# =============================================================================
# TRANSACTION BUILDERS
# =============================================================================

def _instructions(payer: Pubkey, cosigners: List[Pubkey]) -> List[Instruction]:
    ixs = [transfer(TransferParams(from_pubkey=payer, to_pubkey=Pubkey.new_unique(), lamports=1_000))]
    for cosigner in cosigners:
        ixs.append(Instruction(
            program_id=Pubkey.new_unique(),
            data=b"swap",
            accounts=[AccountMeta(cosigner, is_signer=True, is_writable=False)],
        ))
    return ixs


def make_message_v0(payer: Pubkey, *cosigners: Pubkey) -> MessageV0:
    return MessageV0.try_compile(payer, _instructions(payer, list(cosigners)), [], Hash.default())


def make_legacy_message(payer: Pubkey, *cosigners: Pubkey) -> Message:
    return Message.new_with_blockhash(_instructions(payer, list(cosigners)), payer, Hash.default())


def make_unsigned_message_v0() -> MessageV0:
    return MessageV0(
        MessageHeader(num_required_signatures=0, num_readonly_signed_accounts=0, num_readonly_unsigned_accounts=1),
        [Pubkey.new_unique()],
        Hash.default(),
        [],
        [],
    )


def unsigned_tx_bytes(message) -> bytes:
    blanks = [Signature.default()] * message.header.num_required_signatures
    return bytes(VersionedTransaction.populate(message, blanks))


def unsigned_legacy_tx_bytes(message: Message) -> bytes:
    return bytes(Transaction.new_unsigned(message))


def message_bytes(message) -> bytes:
    return to_bytes_versioned(message)


def b64(raw: bytes) -> str:
    return base64.b64encode(raw).decode("ascii")


@pytest.fixture
def keypair() -> Keypair:
    return Keypair()


# =============================================================================
# FAKE GATEWAY
# =============================================================================

class FakeGateway:
    """In-memory gateway. Scripted responses, every call recorded."""

    def __init__(
        self,
        unsigned_transaction: str,
        statuses: Optional[List[object]] = None,
        submit_success: bool = True,
        error_logs: Optional[str] = None,
        trade_id: str = "trade-1",
    ):
        self.unsigned_transaction = unsigned_transaction
        self.statuses = list(statuses or [TradeStatus.SETTLED])
        self.submit_success = submit_success
        self.error_logs = error_logs
        self.trade_id = trade_id

        self.swap_calls: List[SwapRequest] = []
        self.submit_calls: List[SignedTransactionRequest] = []
        self.status_calls: List[CheckTradeStatusRequest] = []
        self.trades_calls: List[GetTradesListByUserRequest] = []

    async def swap(self, request: SwapRequest) -> SwapResponse:
        self.swap_calls.append(request)
        return SwapResponse(unsigned_transaction=self.unsigned_transaction, trade_id=self.trade_id, order_id="order-1")

    async def submit_signed_transaction(self, request: SignedTransactionRequest) -> SignedTransactionResponse:
        self.submit_calls.append(request)
        return SignedTransactionResponse(success=self.submit_success, trade_id=request.trade_id, error_logs=self.error_logs)

    async def check_trade_status(self, request: CheckTradeStatusRequest) -> CheckTradeStatusResponse:
        self.status_calls.append(request)
        item = self.statuses.pop(0) if len(self.statuses) > 1 else self.statuses[0]
        if isinstance(item, Exception):
            raise item
        return CheckTradeStatusResponse(trade_id=request.trade_id, status=item)

    async def get_trades_list_by_user(self, request: GetTradesListByUserRequest) -> GetTradesListByUserResponse:
        self.trades_calls.append(request)
        return GetTradesListByUserResponse(trades=[], total_pages=1, current_page=request.page_number)


class RecordingSleep:
    def __init__(self) -> None:
        self.calls: List[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)

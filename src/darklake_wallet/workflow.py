"""
workflow.py - Build -> sign -> submit -> poll orchestration for one swap.

State machine:

    INIT -> WALLET_LOADED -> REQUEST_SENT -> TX_DECODED
         -> SIGNED | SKIPPED_SIGNING -> SUBMITTED -> SUCCESS
    any non-terminal state -> FAILURE

Transitions are strictly forward. The codec's format fallbacks happen inside
the REQUEST_SENT -> TX_DECODED step and never re-enter an earlier state.

Failure policy: every error aborts the run and is re-raised after the machine
moves to FAILURE. Only the status poll retries. A rejected submit is reported
and the run still polls, unless abort_on_rejected_submit is set.

A run is not idempotent: restarting after a crash past SUBMITTED starts a new
swap with a new tracking id.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional, Protocol, Set

from solders.keypair import Keypair

from .codec import PayloadFormat, decode_transaction, encode_transaction
from .config import WalletConfig, load_keypair
from .errors import SubmissionError
from .events import EventListener, WorkflowEvent, log_event
from .poller import Sleeper, poll_trade_status
from .signing import SigningOutcome, sign_transaction
from .types import (
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

TRADES_PAGE_SIZE = 10


class WorkflowState(Enum):
    INIT = "INIT"
    WALLET_LOADED = "WALLET_LOADED"
    REQUEST_SENT = "REQUEST_SENT"
    TX_DECODED = "TX_DECODED"
    SIGNED = "SIGNED"
    SKIPPED_SIGNING = "SKIPPED_SIGNING"
    SUBMITTED = "SUBMITTED"
    SUCCESS = "SUCCESS"
    FAILURE = "FAILURE"

    @property
    def is_terminal(self) -> bool:
        return self in (WorkflowState.SUCCESS, WorkflowState.FAILURE)


class InvalidTransition(Exception):
    """Raised when an invalid workflow state transition is attempted."""


class WorkflowStateMachine:
    """Tracks the run's state with explicit transition rules."""

    def __init__(self, initial: WorkflowState = WorkflowState.INIT):
        self.state = initial
        self._transitions: Dict[WorkflowState, Set[WorkflowState]] = {
            WorkflowState.INIT: {WorkflowState.WALLET_LOADED},
            WorkflowState.WALLET_LOADED: {WorkflowState.REQUEST_SENT},
            WorkflowState.REQUEST_SENT: {WorkflowState.TX_DECODED},
            WorkflowState.TX_DECODED: {WorkflowState.SIGNED, WorkflowState.SKIPPED_SIGNING},
            WorkflowState.SIGNED: {WorkflowState.SUBMITTED},
            WorkflowState.SKIPPED_SIGNING: {WorkflowState.SUBMITTED},
            WorkflowState.SUBMITTED: {WorkflowState.SUCCESS},
        }

    def can_transition(self, to_state: WorkflowState) -> bool:
        if self.state.is_terminal:
            return False
        if to_state is WorkflowState.FAILURE:
            return True
        return to_state in self._transitions.get(self.state, set())

    def transition(self, to_state: WorkflowState) -> WorkflowState:
        if not self.can_transition(to_state):
            raise InvalidTransition(f"{self.state.value} -> {to_state.value}")
        self.state = to_state
        return self.state


class SwapGateway(Protocol):
    async def swap(self, request: SwapRequest) -> SwapResponse:
        ...

    async def submit_signed_transaction(
        self, request: SignedTransactionRequest
    ) -> SignedTransactionResponse:
        ...

    async def check_trade_status(
        self, request: CheckTradeStatusRequest
    ) -> CheckTradeStatusResponse:
        ...

    async def get_trades_list_by_user(
        self, request: GetTradesListByUserRequest
    ) -> GetTradesListByUserResponse:
        ...


@dataclass
class WorkflowResult:
    """What one run did. `final_status` is None when polling gave no verdict."""
    state: WorkflowState
    tracking_id: str
    wallet: str = ""
    trade_id: str = ""
    payload_format: Optional[PayloadFormat] = None
    signing: Optional[SigningOutcome] = None
    submitted: bool = False
    submit_success: Optional[bool] = None
    final_status: Optional[TradeStatus] = None
    trades: Optional[GetTradesListByUserResponse] = None

    @property
    def is_success(self) -> bool:
        return self.state is WorkflowState.SUCCESS


class WalletSwapWorkflow:
    """
    One wallet swap against the gateway.

    Usage:
        async with GatewayClient(config.gateway_target) as gateway:
            result = await WalletSwapWorkflow(config, gateway).run()
    """

    def __init__(
        self,
        config: WalletConfig,
        gateway: SwapGateway,
        keypair: Optional[Keypair] = None,
        on_event: EventListener = log_event,
        sleep: Sleeper = asyncio.sleep,
        list_trades: bool = True,
        abort_on_rejected_submit: bool = False,
    ):
        self.config = config
        self.gateway = gateway
        self.on_event = on_event
        self.sleep = sleep
        self.list_trades = list_trades
        self.abort_on_rejected_submit = abort_on_rejected_submit
        self.fsm = WorkflowStateMachine()
        self._keypair = keypair
        self.result = WorkflowResult(state=self.fsm.state, tracking_id=config.tracking_id)

    @property
    def state(self) -> WorkflowState:
        return self.fsm.state

    def _advance(self, to_state: WorkflowState, message: str, **details) -> None:
        self.fsm.transition(to_state)
        self.result.state = to_state
        self.on_event(WorkflowEvent(to_state.value, message, dict(details)))

    def _emit(self, message: str, level: str = "INFO", **details) -> None:
        self.on_event(WorkflowEvent(self.state.value, message, dict(details), level=level))

    async def run(self) -> WorkflowResult:
        try:
            return await self._run()
        except Exception as e:
            if self.fsm.can_transition(WorkflowState.FAILURE):
                self.fsm.transition(WorkflowState.FAILURE)
                self.result.state = WorkflowState.FAILURE
            self.on_event(WorkflowEvent(
                WorkflowState.FAILURE.value,
                "wallet swap failed",
                {"error": f"{type(e).__name__}: {e}"},
                level="ERROR",
            ))
            raise

    async def _run(self) -> WorkflowResult:
        # 1. Wallet
        keypair = self._keypair or load_keypair(self.config.private_key_bytes)
        wallet = str(keypair.pubkey())
        self.result.wallet = wallet
        self._advance(WorkflowState.WALLET_LOADED, "wallet loaded", wallet=wallet)

        # 2. Unsigned transaction
        swap_request = SwapRequest.from_config(self.config, user_address=wallet)
        self._emit(
            "requesting unsigned transaction",
            amount_in=swap_request.amount_in,
            min_out=swap_request.min_out,
            network=swap_request.network.name,
            tracking_id=swap_request.tracking_id,
        )
        swap_response = await self.gateway.swap(swap_request)
        self.result.trade_id = swap_response.trade_id
        self._advance(
            WorkflowState.REQUEST_SENT,
            "received unsigned transaction",
            trade_id=swap_response.trade_id,
        )

        # 3. Decode
        decoded = decode_transaction(swap_response.unsigned_transaction)
        self.result.payload_format = decoded.payload_format
        self._advance(
            WorkflowState.TX_DECODED,
            "transaction decoded",
            format=decoded.payload_format.value,
            required_signers=decoded.num_required_signatures,
        )

        # 4. Sign
        outcome = sign_transaction(decoded, keypair)
        self.result.signing = outcome
        if outcome is SigningOutcome.SIGNED:
            self._advance(WorkflowState.SIGNED, "transaction signed")
        else:
            self._advance(WorkflowState.SKIPPED_SIGNING, "no signatures required, submitting unsigned")

        # 5. Submit
        signed_request = SignedTransactionRequest(
            signed_transaction=encode_transaction(decoded),
            tracking_id=self.config.tracking_id,
            trade_id=swap_response.trade_id,
        )
        submit_response = await self.gateway.submit_signed_transaction(signed_request)
        self.result.submitted = True
        self.result.submit_success = submit_response.success
        if submit_response.success:
            self._advance(WorkflowState.SUBMITTED, "signed transaction accepted")
        else:
            if self.abort_on_rejected_submit:
                raise SubmissionError(swap_response.trade_id, submit_response.error_logs)
            self._advance(
                WorkflowState.SUBMITTED,
                "gateway reported submit failure, checking status anyway",
                error_logs=submit_response.error_logs or "",
            )

        # 6. Poll
        status = await poll_trade_status(
            self.gateway,
            CheckTradeStatusRequest(
                tracking_id=self.config.tracking_id,
                trade_id=swap_response.trade_id,
            ),
            max_retries=self.config.poll_max_retries,
            delay_ms=self.config.poll_delay_ms,
            sleep=self.sleep,
            on_event=self.on_event,
        )
        self.result.final_status = status.status if status is not None else None

        # 7. Trade history
        if self.list_trades:
            self.result.trades = await self.gateway.get_trades_list_by_user(
                GetTradesListByUserRequest(
                    user_address=wallet,
                    page_size=TRADES_PAGE_SIZE,
                    page_number=1,
                )
            )
            self._emit("fetched trade history", count=len(self.result.trades.trades))

        final = self.result.final_status.name if self.result.final_status else "UNKNOWN"
        self._advance(WorkflowState.SUCCESS, "wallet swap completed", final_status=final)
        return self.result

"""
client.py - gRPC adapter for the Darklake Solana gateway.

Wraps one grpc.aio channel into four async operations that take and return
the plain records from `darklake_wallet.types`. Message classes and the
service stub are generated at runtime from the bundled api.proto.

Contract:
- One request, one response per call. No streaming.
- No retry and no deadline here. Retrying is the caller's job (see poller).
- Every transport failure, non-OK status or malformed response surfaces as
  GatewayError.

Usage:
    async with GatewayClient("localhost:50051") as gateway:
        response = await gateway.swap(swap_request)
"""

from __future__ import annotations

from functools import lru_cache
from types import ModuleType
from typing import Any, Optional, Tuple

import grpc
from loguru import logger

from ..errors import GatewayError
from ..types import (
    CheckTradeStatusRequest,
    CheckTradeStatusResponse,
    GetTradesListByUserRequest,
    GetTradesListByUserResponse,
    SignedTransactionRequest,
    SignedTransactionResponse,
    SwapRequest,
    SwapResponse,
    TokenMetadata,
    Trade,
    TradeStatus,
)

# Resolved against sys.path, so the package root must be importable.
PROTO_PATH = "darklake_wallet/gateway/proto/darklake/v1/api.proto"


@lru_cache(maxsize=1)
def load_protos() -> Tuple[ModuleType, ModuleType]:
    """Compile api.proto once per process. Returns (messages, services)."""
    return grpc.protos_and_services(PROTO_PATH)


# =============================================================================
# RECORD <-> PROTOBUF CONVERSION
# =============================================================================

def _status_from_wire(method: str, value: int) -> TradeStatus:
    try:
        return TradeStatus(value)
    except ValueError as e:
        raise GatewayError(method, f"malformed response: unknown trade status {value}") from e


def _token_from_wire(msg: Any) -> TokenMetadata:
    return TokenMetadata(
        name=msg.name,
        symbol=msg.symbol,
        decimals=msg.decimals,
        logo_uri=msg.logo_uri,
        address=msg.address,
    )


def _trade_from_wire(method: str, msg: Any) -> Trade:
    return Trade(
        trade_id=msg.trade_id,
        order_id=msg.order_id,
        user_address=msg.user_address,
        token_x=_token_from_wire(msg.token_x),
        token_y=_token_from_wire(msg.token_y),
        amount_in=msg.amount_in,
        minimal_amount_out=msg.minimal_amount_out,
        status=_status_from_wire(method, msg.status),
        signature=msg.signature,
        created_at=msg.created_at,
        updated_at=msg.updated_at,
        is_swap_x_to_y=msg.is_swap_x_to_y,
    )


# =============================================================================
# CLIENT
# =============================================================================

class GatewayClient:
    """
    Async client for darklake.v1.SolanaGatewayService.

    The channel is created once per run and closed by `close()`. Pass `stub`
    to drive the client without a network (tests).
    """

    def __init__(
        self,
        target: str,
        channel: Optional[grpc.aio.Channel] = None,
        stub: Optional[Any] = None,
    ):
        self.target = target
        self._pb, services = load_protos()
        self._channel = channel
        if stub is None:
            if self._channel is None:
                self._channel = grpc.aio.insecure_channel(target)
            stub = services.SolanaGatewayServiceStub(self._channel)
        self._stub = stub
        logger.debug(f"GATEWAY | init | target={target}")

    async def __aenter__(self) -> "GatewayClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the gRPC channel."""
        if self._channel is not None:
            await self._channel.close()
            self._channel = None

    async def _call(self, method: str, request: Any) -> Any:
        rpc = getattr(self._stub, method)
        try:
            return await rpc(request)
        except grpc.RpcError as e:
            code = e.code().name if hasattr(e, "code") and e.code() is not None else None
            details = e.details() if hasattr(e, "details") else str(e)
            logger.error(f"GATEWAY | {method} | error | code={code} | {details}")
            raise GatewayError(method, details or "rpc failed", code=code) from e

    # -------------------------------------------------------------------------
    # OPERATIONS
    # -------------------------------------------------------------------------

    async def swap(self, request: SwapRequest) -> SwapResponse:
        """CreateUnsignedTransaction: ask the gateway for an unsigned swap tx."""
        method = "CreateUnsignedTransaction"
        msg = self._pb.CreateUnsignedTransactionRequest(
            user_address=request.user_address,
            token_mint_x=request.token_mint_x,
            token_mint_y=request.token_mint_y,
            amount_in=request.amount_in,
            min_out=request.min_out,
            tracking_id=request.tracking_id,
            is_swap_x_to_y=request.is_swap_x_to_y,
            network=int(request.network),
            ref_code=request.ref_code,
            label=request.label,
        )
        resp = await self._call(method, msg)
        if not resp.unsigned_transaction:
            raise GatewayError(method, "malformed response: empty unsigned_transaction")
        logger.debug(f"GATEWAY | {method} | ok | trade_id={resp.trade_id}")
        return SwapResponse(
            unsigned_transaction=resp.unsigned_transaction,
            trade_id=resp.trade_id,
            order_id=resp.order_id,
        )

    async def submit_signed_transaction(
        self, request: SignedTransactionRequest
    ) -> SignedTransactionResponse:
        """SendSignedTransaction: hand the signed tx back to the gateway."""
        method = "SendSignedTransaction"
        msg = self._pb.SendSignedTransactionRequest(
            signed_transaction=request.signed_transaction,
            tracking_id=request.tracking_id,
            trade_id=request.trade_id,
        )
        resp = await self._call(method, msg)
        logger.debug(f"GATEWAY | {method} | ok | success={resp.success}")
        return SignedTransactionResponse(
            success=resp.success,
            trade_id=resp.trade_id,
            error_logs=resp.error_logs or None,
        )

    async def check_trade_status(
        self, request: CheckTradeStatusRequest
    ) -> CheckTradeStatusResponse:
        method = "CheckTradeStatus"
        msg = self._pb.CheckTradeStatusRequest(
            tracking_id=request.tracking_id,
            trade_id=request.trade_id,
        )
        resp = await self._call(method, msg)
        return CheckTradeStatusResponse(
            trade_id=resp.trade_id,
            status=_status_from_wire(method, resp.status),
        )

    async def get_trades_list_by_user(
        self, request: GetTradesListByUserRequest
    ) -> GetTradesListByUserResponse:
        method = "GetTradesListByUser"
        msg = self._pb.GetTradesListByUserRequest(
            user_address=request.user_address,
            page_size=request.page_size,
            page_number=request.page_number,
        )
        resp = await self._call(method, msg)
        return GetTradesListByUserResponse(
            trades=[_trade_from_wire(method, t) for t in resp.trades],
            total_pages=resp.total_pages,
            current_page=resp.current_page,
        )

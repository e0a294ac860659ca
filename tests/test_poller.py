from __future__ import annotations

import pytest

from conftest import FakeGateway, RecordingSleep
from darklake_wallet.errors import GatewayError
from darklake_wallet.events import EventRecorder
from darklake_wallet.poller import poll_trade_status
from darklake_wallet.types import CheckTradeStatusRequest, TradeStatus

REQUEST = CheckTradeStatusRequest(tracking_id="id123", trade_id="trade-1")


def _unavailable() -> GatewayError:
    return GatewayError("CheckTradeStatus", "connection refused", code="UNAVAILABLE")


@pytest.mark.anyio
async def test_returns_first_terminal_status_and_stops():
    gateway = FakeGateway("", statuses=[TradeStatus.UNSIGNED, TradeStatus.SIGNED, TradeStatus.SETTLED, TradeStatus.UNSIGNED])
    sleep = RecordingSleep()

    result = await poll_trade_status(gateway, REQUEST, max_retries=5, delay_ms=250, sleep=sleep)

    assert result is not None
    assert result.status is TradeStatus.SETTLED
    assert len(gateway.status_calls) == 3
    assert sleep.calls == [0.25, 0.25]


@pytest.mark.anyio
@pytest.mark.parametrize("terminal", [TradeStatus.SETTLED, TradeStatus.SLASHED, TradeStatus.CANCELLED])
async def test_every_terminal_status_ends_polling(terminal):
    gateway = FakeGateway("", statuses=[terminal])
    sleep = RecordingSleep()

    result = await poll_trade_status(gateway, REQUEST, max_retries=4, delay_ms=10, sleep=sleep)

    assert result.status is terminal
    assert len(gateway.status_calls) == 1
    assert sleep.calls == []


@pytest.mark.anyio
async def test_non_terminal_statuses_exhaust_budget():
    gateway = FakeGateway("", statuses=[TradeStatus.CONFIRMED])
    sleep = RecordingSleep()

    result = await poll_trade_status(gateway, REQUEST, max_retries=4, delay_ms=500, sleep=sleep)

    assert result is None
    assert len(gateway.status_calls) == 4
    # No sleep after the final attempt.
    assert sleep.calls == [0.5, 0.5, 0.5]


@pytest.mark.anyio
async def test_error_on_final_attempt_returns_none_instead_of_raising():
    gateway = FakeGateway("", statuses=[TradeStatus.SIGNED, TradeStatus.SIGNED, _unavailable()])
    recorder = EventRecorder()

    result = await poll_trade_status(gateway, REQUEST, max_retries=3, delay_ms=0, sleep=RecordingSleep(), on_event=recorder)

    assert result is None
    assert len(gateway.status_calls) == 3
    assert "max retries reached without a definitive status" in recorder.messages("POLL")


@pytest.mark.anyio
async def test_error_mid_budget_consumes_attempt_and_continues():
    gateway = FakeGateway("", statuses=[_unavailable(), TradeStatus.SETTLED])
    sleep = RecordingSleep()

    result = await poll_trade_status(gateway, REQUEST, max_retries=3, delay_ms=100, sleep=sleep)

    assert result.status is TradeStatus.SETTLED
    assert len(gateway.status_calls) == 2
    assert sleep.calls == [0.1]


@pytest.mark.anyio
async def test_zero_budget_is_rejected():
    with pytest.raises(ValueError):
        await poll_trade_status(FakeGateway(""), REQUEST, max_retries=0)

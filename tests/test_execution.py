"""Tests for bracket orders and the venue batch payload. Nothing is sent."""

import pytest

from execution import Order, build_bracket, to_batch_payload
from replay_core.contracts import Direction, TradeParameters


@pytest.fixture
def params() -> TradeParameters:
    return TradeParameters(size=0.25, stop_loss_price=29_500.0, take_profit_price=31_000.0)


def test_long_bracket_sides(params: TradeParameters) -> None:
    entry, stop, target = build_bracket("PF_XBTUSD", Direction.LONG, params)
    assert entry.side == "buy"
    assert stop.side == "sell"
    assert target.side == "sell"
    assert entry.order_type == "mkt"
    assert not entry.reduce_only
    assert stop.order_type == "stp" and stop.stop_price == 29_500.0
    assert target.order_type == "lmt" and target.limit_price == 31_000.0
    assert stop.reduce_only and target.reduce_only
    assert {o.size for o in (entry, stop, target)} == {0.25}


def test_short_bracket_sides() -> None:
    params = TradeParameters(size=1.0, stop_loss_price=105.0, take_profit_price=94.0)
    entry, stop, target = build_bracket("PF_ETHUSD", Direction.SHORT, params)
    assert entry.side == "sell"
    assert stop.side == "buy"
    assert target.side == "buy"
    assert entry.symbol == stop.symbol == target.symbol == "PF_ETHUSD"


def test_hold_rejected(params: TradeParameters) -> None:
    with pytest.raises(ValueError, match="HOLD"):
        build_bracket("PF_XBTUSD", Direction.HOLD, params)


def test_zero_size_rejected() -> None:
    with pytest.raises(ValueError, match="positive"):
        build_bracket("PF_XBTUSD", Direction.LONG, TradeParameters(0.0, 99.0, 102.0))


def test_batch_payload(params: TradeParameters) -> None:
    payload = to_batch_payload(build_bracket("PF_XBTUSD", Direction.LONG, params))
    assert payload["element"] == "batch"
    entry, stop, target = payload["orders"]
    assert entry == {
        "order": "send",
        "order_tag": "1",
        "orderType": "mkt",
        "symbol": "PF_XBTUSD",
        "side": "buy",
        "size": 0.25,
    }
    assert stop["stopPrice"] == 29_500.0
    assert stop["reduceOnly"] is True
    assert "limitPrice" not in stop
    assert target["limitPrice"] == 31_000.0
    assert target["order_tag"] == "3"


def test_order_is_frozen() -> None:
    order = Order(symbol="PF_XBTUSD", side="buy", size=1.0, order_type="mkt", tag="1")
    with pytest.raises(AttributeError):
        order.size = 2.0  # type: ignore[misc]

"""
Bracket orders: market entry plus reduce-only stop-loss and take-profit.

Built from the same TradeParameters the replay uses, so a scan on live data
produces exactly what would be sent to the venue. Nothing here sends orders.
"""

from __future__ import annotations

from typing import Iterable

from replay_core.contracts import Direction, TradeParameters

from execution.models import ORDER_LIMIT, ORDER_MARKET, ORDER_STOP, Order


def _sides(direction: Direction) -> tuple[str, str]:
    if direction is Direction.LONG:
        return "buy", "sell"
    if direction is Direction.SHORT:
        return "sell", "buy"
    raise ValueError("A bracket needs a LONG or SHORT direction, got HOLD")


def build_bracket(symbol: str, direction: Direction, params: TradeParameters) -> list[Order]:
    """Entry, stop-loss and take-profit orders for one position."""
    if params.size <= 0:
        raise ValueError(f"Order size must be positive, got {params.size}")
    entry_side, close_side = _sides(direction)
    return [
        Order(symbol=symbol, side=entry_side, size=params.size, order_type=ORDER_MARKET, tag="1"),
        Order(
            symbol=symbol,
            side=close_side,
            size=params.size,
            order_type=ORDER_STOP,
            tag="2",
            reduce_only=True,
            stop_price=params.stop_loss_price,
        ),
        Order(
            symbol=symbol,
            side=close_side,
            size=params.size,
            order_type=ORDER_LIMIT,
            tag="3",
            reduce_only=True,
            limit_price=params.take_profit_price,
        ),
    ]


def _order_instruction(order: Order) -> dict:
    instruction = {
        "order": "send",
        "order_tag": order.tag,
        "orderType": order.order_type,
        "symbol": order.symbol,
        "side": order.side,
        "size": order.size,
    }
    if order.stop_price is not None:
        instruction["stopPrice"] = order.stop_price
    if order.limit_price is not None:
        instruction["limitPrice"] = order.limit_price
    if order.reduce_only:
        instruction["reduceOnly"] = True
    return instruction


def to_batch_payload(orders: Iterable[Order]) -> dict:
    """Batch request body for the venue's batch order endpoint."""
    return {"element": "batch", "orders": [_order_instruction(o) for o in orders]}

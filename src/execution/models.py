"""Order record for the venue batch payload."""

from dataclasses import dataclass

ORDER_MARKET = "mkt"
ORDER_STOP = "stp"
ORDER_LIMIT = "lmt"


@dataclass(frozen=True)
class Order:
    symbol: str
    side: str  # "buy" | "sell"
    size: float
    order_type: str  # "mkt" | "stp" | "lmt"
    tag: str
    reduce_only: bool = False
    stop_price: float | None = None
    limit_price: float | None = None

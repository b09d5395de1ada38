"""
Execution payloads: TradeParameters -> bracket orders -> venue batch body.
Builds requests only; no live transport.
"""

from execution.bracket import build_bracket, to_batch_payload
from execution.models import Order

__all__ = ["Order", "build_bracket", "to_batch_payload"]

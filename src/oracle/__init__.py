"""
Oracle adapters with I/O. The pure oracle contract lives in replay_core.oracle.
"""

from oracle.http_oracle import HttpOracle, build_payload

__all__ = ["HttpOracle", "build_payload"]

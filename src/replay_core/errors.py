"""
Typed failures raised by replay-core.

Setup errors and ledger state errors are fatal. Volatility and oracle
errors are caught by the replay driver and degrade to "no trade this step".
"""

from __future__ import annotations


class ReplayError(Exception):
    """Base class for all replay-core errors."""


class InsufficientDataError(ReplayError):
    """Not enough bar history for the requested window or warm-up."""


class ZeroVolatilityError(ReplayError):
    """Volatility is zero, so no exit levels can be derived."""


class LedgerStateError(ReplayError):
    """Ledger operation attempted in the wrong state. Indicates a driver bug."""


class PositionAlreadyOpenError(LedgerStateError):
    """open() called while a position is already open."""


class NoOpenPositionError(LedgerStateError):
    """check_exit() called with no open position."""


class OracleError(ReplayError):
    """The decision oracle failed to produce a usable Opinion."""

    def __init__(self, message: str, raw: object = None) -> None:
        super().__init__(message)
        self.raw = raw


class OracleResponseError(OracleError):
    """The oracle answered, but the payload is malformed or out of range."""


class OracleTransportError(OracleError):
    """The oracle could not be reached or returned a transport-level failure."""

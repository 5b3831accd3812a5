"""Named failure codes surfaced by the swap-and-deploy engine."""

from enum import Enum
from typing import Optional


class ErrorCode(str, Enum):
    """Failure codes automated callers can branch on."""
    ZERO_AMOUNT = "ZERO_AMOUNT"
    INVALID_REQUEST = "INVALID_REQUEST"
    INSUFFICIENT_VALUE = "INSUFFICIENT_VALUE"
    INVALID_RANGE = "INVALID_RANGE"
    STATE_DIVERGED = "STATE_DIVERGED"
    QUOTE_MISMATCH = "QUOTE_MISMATCH"
    MONOTONICITY_VIOLATION = "MONOTONICITY_VIOLATION"
    DEPOSIT_REJECTED = "DEPOSIT_REJECTED"
    INSUFFICIENT_BALANCE = "INSUFFICIENT_BALANCE"
    TRANSFER_FAILED = "TRANSFER_FAILED"
    REENTRANT_CALL = "REENTRANT_CALL"
    UNKNOWN_STRATEGY = "UNKNOWN_STRATEGY"
    CONSERVATION_VIOLATION = "CONSERVATION_VIOLATION"
    EXTERNAL_CALL_FAILED = "EXTERNAL_CALL_FAILED"


class SwapEngineError(Exception):
    """Base class for every engine failure.

    Attributes:
        code: Stable failure code for the category
        details: Optional structured context (amounts, addresses)
    """

    code = ErrorCode.INVALID_REQUEST

    def __init__(self, message: str, code: Optional[ErrorCode] = None, **details):
        super().__init__(message)
        if code is not None:
            self.code = code
        self.details = details

    def __str__(self) -> str:
        return f"[{self.code.value}] {super().__str__()}"


class InvalidRequestError(SwapEngineError):
    code = ErrorCode.INVALID_REQUEST


class InsufficientValueError(SwapEngineError):
    code = ErrorCode.INSUFFICIENT_VALUE


class InvalidRangeError(SwapEngineError):
    code = ErrorCode.INVALID_RANGE


class StateDivergedError(SwapEngineError):
    """Pool state moved between the quote and the execution."""
    code = ErrorCode.STATE_DIVERGED


class QuoteMismatchError(SwapEngineError):
    """Realized amounts differ from the quote that authorized them.

    Callers may retry with a fresh quote.
    """
    code = ErrorCode.QUOTE_MISMATCH


class MonotonicityError(SwapEngineError):
    code = ErrorCode.MONOTONICITY_VIOLATION


class DepositRejectedError(SwapEngineError):
    code = ErrorCode.DEPOSIT_REJECTED


class InsufficientBalanceError(SwapEngineError):
    code = ErrorCode.INSUFFICIENT_BALANCE


class TransferFailedError(SwapEngineError):
    code = ErrorCode.TRANSFER_FAILED


class ReentrancyError(SwapEngineError):
    code = ErrorCode.REENTRANT_CALL


class UnknownStrategyError(SwapEngineError):
    code = ErrorCode.UNKNOWN_STRATEGY


class ConservationError(SwapEngineError):
    code = ErrorCode.CONSERVATION_VIOLATION


class ExternalCallError(SwapEngineError):
    """A collaborator failed with an error of its own."""
    code = ErrorCode.EXTERNAL_CALL_FAILED

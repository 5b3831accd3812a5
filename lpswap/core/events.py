"""Telemetry events emitted for off-chain auditing."""

import logging
from dataclasses import dataclass, asdict
from typing import Callable, List


@dataclass(frozen=True)
class SwapExecuted:
    token_in: str
    token_out: str
    amount_in: int
    amount_out: int


@dataclass(frozen=True)
class LiquidityAdded:
    position_id: int
    liquidity: int
    amount0: int
    amount1: int


@dataclass(frozen=True)
class SpareSettled:
    token: str
    recipient: str
    amount: int


class EventBus:
    """Fan-out of published events to subscribers."""

    def __init__(self):
        self._subscribers: List[Callable] = []
        self.logger = logging.getLogger(__name__)

    def subscribe(self, callback: Callable):
        self._subscribers.append(callback)

    def publish(self, event):
        self.logger.info(f"{type(event).__name__}: {asdict(event)}")
        for callback in self._subscribers:
            callback(event)

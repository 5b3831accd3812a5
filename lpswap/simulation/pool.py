"""Single-range concentrated-liquidity pool backed by an in-memory ledger."""

import logging
from typing import Tuple

from lpswap.core.errors import InvalidRequestError
from lpswap.core.interfaces import IAssetLedger, IPool, ITransactional, NATIVE_TOKEN, PoolState
from lpswap.engine.simulator import SwapSimulator
from lpswap.uniswap import PriceMath


class SimulatedPool(IPool, ITransactional):
    """
    Pool whose active liquidity is constant over the whole price curve.

    Reserves are the ledger balances of the pool address. With
    native_output set, wrapped-native proceeds are delivered unwrapped.
    """

    def __init__(
        self,
        address: str,
        token_a: str,
        token_b: str,
        fee: int,
        ledger: IAssetLedger,
        sqrt_price_x96: int,
        liquidity: int,
        native_output: bool = False
    ):
        if token_a.lower() == token_b.lower():
            raise InvalidRequestError(f"Pool tokens must differ, got {token_a} twice")
        self._address = address.lower()
        self._token0, self._token1 = sorted((token_a.lower(), token_b.lower()))
        self._fee = fee
        self.ledger = ledger
        self.native_output = native_output
        self._state = PoolState(sqrt_price_x96, liquidity)
        self.simulator = SwapSimulator()
        self.logger = logging.getLogger(__name__)

    @classmethod
    def at_tick(cls, address: str, token_a: str, token_b: str, fee: int, ledger: IAssetLedger,
                tick: int, liquidity: int, native_output: bool = False) -> 'SimulatedPool':
        return cls(address, token_a, token_b, fee, ledger,
                   PriceMath.get_sqrt_ratio_at_tick(tick), liquidity, native_output)

    @property
    def address(self) -> str:
        return self._address

    @property
    def token0(self) -> str:
        return self._token0

    @property
    def token1(self) -> str:
        return self._token1

    @property
    def fee(self) -> int:
        return self._fee

    def get_state(self) -> PoolState:
        return self._state

    def set_state(self, state: PoolState):
        """Move the pool (e.g. to simulate another trader acting first)."""
        self._state = state

    def swap(
        self,
        sender: str,
        recipient: str,
        zero_for_one: bool,
        amount_in: int,
        sqrt_price_limit_x96: int
    ) -> Tuple[int, int]:
        quote = self.simulator.simulate_swap(self._state, self._fee, zero_for_one, amount_in, sqrt_price_limit_x96)
        token_in, token_out = (self._token0, self._token1) if zero_for_one else (self._token1, self._token0)

        self.ledger.transfer_from(token_in, self._address, sender, self._address, quote.amount_to_pay)
        if self.native_output and token_out == self.ledger.wrapped_native.lower():
            self.ledger.unwrap(self._address, quote.amount_received)
            self.ledger.transfer(NATIVE_TOKEN, self._address, recipient, quote.amount_received)
        else:
            self.ledger.transfer(token_out, self._address, recipient, quote.amount_received)

        self._state = PoolState(quote.sqrt_price_x96_after, self._state.liquidity)
        self.logger.debug(f"Pool {self._address} swapped {quote.amount_to_pay} -> {quote.amount_received}")
        return quote.amount_to_pay, quote.amount_received

    def add_liquidity(self, tick_lower: int, tick_upper: int, liquidity: int):
        """Account for minted liquidity; only in-range liquidity becomes active."""
        sqrt_lower, sqrt_upper = PriceMath.get_range_ratios(tick_lower, tick_upper)
        if sqrt_lower <= self._state.sqrt_price_x96 < sqrt_upper:
            self._state = PoolState(self._state.sqrt_price_x96, self._state.liquidity + liquidity)

    def snapshot(self):
        return self._state

    def restore(self, snapshot):
        self._state = snapshot

"""
Swap quoting against a pool snapshot.

Quotes never mutate state: the same walk is used by the simulated pool to
execute, so a quote taken on an unchanged snapshot predicts the fill exactly.
"""

import logging
from math import isqrt
from typing import Optional

from lpswap.core.errors import InvalidRequestError, MonotonicityError
from lpswap.core.interfaces import PoolState, SwapQuote
from lpswap.uniswap import Q96, Q192, MIN_SQRT_RATIO, MAX_SQRT_RATIO, compute_swap_step

# Percentages are fixed point: 1e18 == 1%
ONE_HUNDRED_PERCENT = 100 * 10 ** 18


class SwapSimulator:
    """Computes how much of a requested input a pool absorbs within a price bound."""

    def __init__(self):
        self.logger = logging.getLogger(__name__)

    @staticmethod
    def get_sqrt_price_limit_x96(sqrt_price_x96: int, zero_for_one: bool, percentage: int) -> int:
        """Price limit allowing at most `percentage` price movement.

        token0 -> token1 pushes the price down: limit = sqrtP * sqrt(1 - p).
        token1 -> token0 pushes it up: limit = sqrtP * sqrt(1 + p).
        """
        if percentage < 0:
            raise InvalidRequestError(f"Percentage must be non-negative, got {percentage}")

        if zero_for_one:
            factor = ONE_HUNDRED_PERCENT - percentage
            if factor <= 0:
                return MIN_SQRT_RATIO + 1
        else:
            factor = ONE_HUNDRED_PERCENT + percentage

        sqrt_factor_x96 = isqrt(factor * Q192 // ONE_HUNDRED_PERCENT)
        limit = sqrt_price_x96 * sqrt_factor_x96 // Q96
        return max(MIN_SQRT_RATIO + 1, min(MAX_SQRT_RATIO - 1, limit))

    def simulate_swap(
        self,
        state: PoolState,
        fee: int,
        zero_for_one: bool,
        amount_specified: int,
        sqrt_price_limit_x96: Optional[int] = None
    ) -> SwapQuote:
        """
        Walk the curve from the current price toward the limit.

        Args:
            state: Pool snapshot
            fee: Pool fee in hundredths of a bip
            zero_for_one: Direction of the swap
            amount_specified: Positive for exact input, negative for exact output
            sqrt_price_limit_x96: Price the swap may not cross (None = unbounded)

        Returns:
            SwapQuote with amount_to_pay (input incl. fee) and amount_received
        """
        current = state.sqrt_price_x96
        if sqrt_price_limit_x96 is None:
            sqrt_price_limit_x96 = MIN_SQRT_RATIO + 1 if zero_for_one else MAX_SQRT_RATIO - 1

        if amount_specified == 0:
            return SwapQuote(0, 0, current, state.liquidity)

        # A limit on the wrong side of the price admits no movement at all
        if zero_for_one and sqrt_price_limit_x96 >= current:
            return SwapQuote(0, 0, current, state.liquidity)
        if not zero_for_one and sqrt_price_limit_x96 <= current:
            return SwapQuote(0, 0, current, state.liquidity)

        exact_in = amount_specified > 0
        remaining = amount_specified
        sqrt_price = current
        amount_paid = 0
        amount_received = 0

        while remaining != 0 and sqrt_price != sqrt_price_limit_x96:
            sqrt_next, step_in, step_out, step_fee = compute_swap_step(
                sqrt_price, sqrt_price_limit_x96, state.liquidity, remaining, fee
            )
            if exact_in:
                remaining -= step_in + step_fee
            else:
                remaining += step_out
            amount_paid += step_in + step_fee
            amount_received += step_out

            if sqrt_next == sqrt_price and step_in + step_fee == 0 and step_out == 0:
                break
            sqrt_price = sqrt_next

        if exact_in and amount_paid > amount_specified:
            raise MonotonicityError(
                f"Quote pays {amount_paid} for a request of {amount_specified}",
                amount_paid=amount_paid,
                amount_specified=amount_specified
            )

        return SwapQuote(
            amount_to_pay=amount_paid,
            amount_received=amount_received,
            sqrt_price_x96_after=sqrt_price,
            implied_liquidity=state.liquidity
        )

    def quote_exact_input(self, state: PoolState, fee: int, zero_for_one: bool, amount_in: int) -> SwapQuote:
        """Unbounded exact-input quote."""
        return self.simulate_swap(state, fee, zero_for_one, amount_in)

    def quote_slippage_exact_input(
        self,
        state: PoolState,
        fee: int,
        zero_for_one: bool,
        amount_in: int,
        maximum_slippage_percentage: int
    ) -> SwapQuote:
        """Exact-input quote bounded by a maximum price movement.

        Returns the lesser of "as much as requested" and "as much as the
        limit allows".
        """
        limit = self.get_sqrt_price_limit_x96(state.sqrt_price_x96, zero_for_one, maximum_slippage_percentage)
        quote = self.simulate_swap(state, fee, zero_for_one, amount_in, limit)
        self.logger.debug(
            f"Quoted {amount_in} (zero_for_one={zero_for_one}, slippage={maximum_slippage_percentage}): "
            f"pay {quote.amount_to_pay}, receive {quote.amount_received}"
        )
        return quote

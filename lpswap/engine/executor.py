"""Execution of quoted swaps against a live pool."""

import logging
from typing import Optional

from lpswap.core.errors import MonotonicityError, QuoteMismatchError, StateDivergedError
from lpswap.core.interfaces import IAssetLedger, IPool, PoolState, SwapQuote, SwapResult
from lpswap.engine.simulator import SwapSimulator


class SwapExecutor:
    """Executes bounded exact-input swaps and checks them against their quote."""

    def __init__(self, ledger: IAssetLedger, account: str, simulator: Optional[SwapSimulator] = None):
        self.ledger = ledger
        self.account = account
        self.simulator = simulator or SwapSimulator()
        self.logger = logging.getLogger(__name__)

    def execute(
        self,
        pool: IPool,
        zero_for_one: bool,
        amount_in: int,
        maximum_slippage_percentage: int,
        quoted_state: Optional[PoolState] = None,
        expected: Optional[SwapQuote] = None
    ) -> SwapResult:
        """
        Swap up to amount_in, bounded by the slippage percentage.

        Args:
            pool: Pool to swap against
            zero_for_one: Direction of the swap
            amount_in: Maximum input authorized for the swap
            maximum_slippage_percentage: Price movement bound (1e18 = 1%)
            quoted_state: Snapshot the authorizing quote was computed on
            expected: Quote the realized amounts must match exactly

        Returns:
            SwapResult with the input consumed and the output received

        Raises:
            StateDivergedError: If the pool moved since quoted_state was read
            MonotonicityError: If the pool consumed more than authorized
            QuoteMismatchError: If the realized fill differs from expected
        """
        state = pool.get_state()
        if quoted_state is not None and state != quoted_state:
            raise StateDivergedError(
                f"Pool {pool.address} moved from {quoted_state} to {state} after quoting",
                quoted=quoted_state,
                current=state
            )

        if amount_in == 0:
            return SwapResult(0, 0)

        limit = self.simulator.get_sqrt_price_limit_x96(
            state.sqrt_price_x96, zero_for_one, maximum_slippage_percentage
        )
        token_in = pool.token0 if zero_for_one else pool.token1

        self.ledger.approve(token_in, self.account, pool.address, amount_in)
        try:
            amount_in_used, amount_out = pool.swap(self.account, self.account, zero_for_one, amount_in, limit)
        finally:
            self.ledger.approve(token_in, self.account, pool.address, 0)

        if amount_in_used > amount_in or amount_in_used < 0 or amount_out < 0:
            raise MonotonicityError(
                f"Swap consumed {amount_in_used} of {amount_in} authorized",
                amount_in_used=amount_in_used,
                amount_in=amount_in
            )

        if expected is not None and (
            amount_in_used != expected.amount_to_pay or amount_out != expected.amount_received
        ):
            raise QuoteMismatchError(
                f"Swap filled {amount_in_used}->{amount_out}, "
                f"quoted {expected.amount_to_pay}->{expected.amount_received}",
                realized=(amount_in_used, amount_out),
                quoted=(expected.amount_to_pay, expected.amount_received)
            )

        self.logger.info(f"Swapped {amount_in_used} for {amount_out} on pool {pool.address}")
        return SwapResult(amount_in_used, amount_out)

"""
Allocation strategies: how much of the input to swap before depositing.

Every strategy is stateless and returns an AllocationPlan. Strategies that
carry a full LpQuote in their plan are executed under the hard-invariant
deposit policy, which holds the execution to that quote.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, Optional, Type

from lpswap.core.errors import UnknownStrategyError
from lpswap.core.interfaces import AllocationPlan, LpQuote, PoolState, Position, SwapQuote
from lpswap.engine.deployer import DepositPolicy, LiquidityDeployer
from lpswap.engine.simulator import SwapSimulator
from lpswap.uniswap import PriceMath


@dataclass(frozen=True)
class PlanningContext:
    """Everything a strategy may look at to size the swap."""
    state: PoolState
    fee: int
    zero_for_one: bool
    amount_in: int
    sqrt_ratio_lower_x96: int
    sqrt_ratio_upper_x96: int
    batch_impact_threshold: int
    per_swap_slippage_cap: int

    @classmethod
    def for_position(
        cls,
        state: PoolState,
        fee: int,
        position: Position,
        zero_for_one: bool,
        amount_in: int,
        batch_impact_threshold: int,
        per_swap_slippage_cap: int
    ) -> 'PlanningContext':
        sqrt_lower, sqrt_upper = PriceMath.get_range_ratios(position.tick_lower, position.tick_upper)
        return cls(
            state=state,
            fee=fee,
            zero_for_one=zero_for_one,
            amount_in=amount_in,
            sqrt_ratio_lower_x96=sqrt_lower,
            sqrt_ratio_upper_x96=sqrt_upper,
            batch_impact_threshold=batch_impact_threshold,
            per_swap_slippage_cap=per_swap_slippage_cap
        )

    def needs_only_input(self, sqrt_price_x96: Optional[int] = None) -> bool:
        """True when the range, seen from this price, accepts only the input token."""
        sqrt_price = self.state.sqrt_price_x96 if sqrt_price_x96 is None else sqrt_price_x96
        if self.zero_for_one:
            return sqrt_price <= self.sqrt_ratio_lower_x96
        return sqrt_price >= self.sqrt_ratio_upper_x96


class AllocationStrategy(ABC):
    """Base class for swap sizing strategies."""

    name = ""
    version = 1
    deposit_policy = DepositPolicy.HARD_INVARIANT
    # Whether swap proceeds are offered to the deposit or paid out as spare
    deposits_proceeds = True

    def __init__(self, simulator: Optional[SwapSimulator] = None):
        self.simulator = simulator or SwapSimulator()
        self.logger = logging.getLogger(__name__)

    @property
    def identifier(self) -> str:
        return f"{self.name}/v{self.version}"

    @abstractmethod
    def plan(self, ctx: PlanningContext) -> AllocationPlan:
        pass

    def quote(self, ctx: PlanningContext) -> LpQuote:
        """Predicted outcome of executing this strategy's plan on ctx.state."""
        plan = self.plan(ctx)
        if plan.expected is not None:
            return plan.expected
        return self.evaluate(ctx, plan.amount_to_swap, ctx.per_swap_slippage_cap)

    def evaluate(
        self,
        ctx: PlanningContext,
        amount_to_swap: int,
        maximum_slippage_percentage: int,
        deposit_proceeds: Optional[bool] = None
    ) -> LpQuote:
        """
        Predict swapping amount_to_swap and depositing what is left.

        Args:
            ctx: Planning context
            amount_to_swap: Candidate swap amount
            maximum_slippage_percentage: Bound used to quote the swap
            deposit_proceeds: Offer swap output to the deposit (default: strategy setting)

        Returns:
            LpQuote for the candidate
        """
        if deposit_proceeds is None:
            deposit_proceeds = self.deposits_proceeds

        swap = None
        if amount_to_swap > 0:
            swap = self.simulator.quote_slippage_exact_input(
                ctx.state, ctx.fee, ctx.zero_for_one, amount_to_swap, maximum_slippage_percentage
            )
        # A swap that pays nothing is planned as no swap, so the price stays put
        if swap is None or swap.amount_to_pay == 0:
            swap = SwapQuote(0, 0, ctx.state.sqrt_price_x96, ctx.state.liquidity)

        lp_in = ctx.amount_in - swap.amount_to_pay
        lp_out = swap.amount_received if deposit_proceeds else 0
        amount0, amount1 = (lp_in, lp_out) if ctx.zero_for_one else (lp_out, lp_in)

        deposit = LiquidityDeployer.predict(
            swap.sqrt_price_x96_after, ctx.sqrt_ratio_lower_x96, ctx.sqrt_ratio_upper_x96, amount0, amount1
        )
        if ctx.zero_for_one:
            used_in, used_out = deposit.amount0_used, deposit.amount1_used
        else:
            used_in, used_out = deposit.amount1_used, deposit.amount0_used

        return LpQuote(
            amount_swap_in=swap.amount_to_pay,
            amount_swap_out=swap.amount_received,
            amount_lp_in=lp_in,
            amount_lp_out=lp_out,
            liquidity_delta=deposit.liquidity_added,
            spare_in=lp_in - used_in,
            spare_out=swap.amount_received - used_out,
            sqrt_price_x96_after=swap.sqrt_price_x96_after
        )


class FullGreedyStrategy(AllocationStrategy):
    """Swap everything the pool absorbs within the batch impact threshold.

    Swap proceeds are never deposited; only input the pool refused is
    offered to the position.
    """

    name = "greedy"
    deposit_policy = DepositPolicy.SOFT_FAIL
    deposits_proceeds = False

    def plan(self, ctx: PlanningContext) -> AllocationPlan:
        swap = self.simulator.quote_slippage_exact_input(
            ctx.state, ctx.fee, ctx.zero_for_one, ctx.amount_in, ctx.batch_impact_threshold
        )
        if swap.amount_to_pay == ctx.amount_in:
            self.logger.debug(f"Full amount {ctx.amount_in} fits the batch threshold, no deposit")
            return AllocationPlan(ctx.amount_in, deposit=False)

        self.logger.debug(f"Pool absorbs {swap.amount_to_pay} of {ctx.amount_in}, depositing the rest")
        return AllocationPlan(swap.amount_to_pay, deposit=True)


class PositionAwareStrategy(AllocationStrategy):
    """Swap a fixed fraction chosen from where the price sits relative to the range."""

    name = "heuristic"
    SWAP_FRACTIONS = (0, 25, 50, 75)

    def swap_fraction(self, ctx: PlanningContext) -> int:
        """Percentage of the input to swap: 0, 25, 50 or 75."""
        sqrt_price = ctx.state.sqrt_price_x96
        lower, upper = ctx.sqrt_ratio_lower_x96, ctx.sqrt_ratio_upper_x96

        if ctx.needs_only_input():
            return 0
        if lower < sqrt_price < upper:
            return 50

        # Range needs only the output token: swap more the farther away it is
        width = upper - lower
        distance = sqrt_price - upper if sqrt_price >= upper else lower - sqrt_price
        return 75 if distance > width else 25

    def plan(self, ctx: PlanningContext) -> AllocationPlan:
        fraction = self.swap_fraction(ctx)
        expected = self.evaluate(ctx, ctx.amount_in * fraction // 100, ctx.per_swap_slippage_cap)
        self.logger.debug(f"Swapping {fraction}% of {ctx.amount_in}: {expected}")
        return AllocationPlan(expected.amount_swap_in, deposit=True, expected=expected)


class OptimalStrategy(AllocationStrategy):
    """Binary search for the swap amount that maximizes deposited liquidity."""

    name = "optimal"

    def __init__(self, simulator: Optional[SwapSimulator] = None, max_search_iterations: int = 256):
        super().__init__(simulator)
        self.max_search_iterations = max_search_iterations

    def plan(self, ctx: PlanningContext) -> AllocationPlan:
        cap = ctx.per_swap_slippage_cap

        if ctx.needs_only_input():
            expected = self.evaluate(ctx, 0, cap)
            return AllocationPlan(0, deposit=True, expected=expected)

        best = None
        for baseline in (0, ctx.amount_in // 2, ctx.amount_in):
            best = self._better(best, self.evaluate(ctx, baseline, cap))

        lo, hi = 0, ctx.amount_in
        iterations = 0
        while lo <= hi and iterations < self.max_search_iterations:
            mid = (lo + hi) // 2
            candidate = self.evaluate(ctx, mid, cap)
            best = self._better(best, candidate)

            if candidate.amount_swap_in < mid or self._input_limited(ctx, candidate):
                hi = mid - 1
            else:
                lo = mid + 1
            iterations += 1

        self.logger.debug(f"Optimal swap {best.amount_swap_in} of {ctx.amount_in} after {iterations} iterations")
        return AllocationPlan(best.amount_swap_in, deposit=True, expected=best)

    @staticmethod
    def _better(best: Optional[LpQuote], candidate: LpQuote) -> LpQuote:
        if best is None or candidate.liquidity_delta > best.liquidity_delta:
            return candidate
        if candidate.liquidity_delta == best.liquidity_delta and candidate.amount_swap_in < best.amount_swap_in:
            return candidate
        return best

    @staticmethod
    def _input_limited(ctx: PlanningContext, candidate: LpQuote) -> bool:
        """True when the input side caps the liquidity of this candidate."""
        sqrt_price = candidate.sqrt_price_x96_after
        lower, upper = ctx.sqrt_ratio_lower_x96, ctx.sqrt_ratio_upper_x96

        if ctx.needs_only_input(sqrt_price):
            return True
        if sqrt_price <= lower or sqrt_price >= upper:
            return False

        if ctx.zero_for_one:
            liquidity_in = PriceMath.get_liquidity_for_amount0(sqrt_price, upper, candidate.amount_lp_in)
            liquidity_out = PriceMath.get_liquidity_for_amount1(lower, sqrt_price, candidate.amount_lp_out)
        else:
            liquidity_in = PriceMath.get_liquidity_for_amount1(lower, sqrt_price, candidate.amount_lp_in)
            liquidity_out = PriceMath.get_liquidity_for_amount0(sqrt_price, upper, candidate.amount_lp_out)
        return liquidity_in < liquidity_out


STRATEGIES: Dict[str, Type[AllocationStrategy]] = {
    strategy.name: strategy
    for strategy in (FullGreedyStrategy, PositionAwareStrategy, OptimalStrategy)
}


def create_strategy(name: str, simulator: Optional[SwapSimulator] = None, **options) -> AllocationStrategy:
    """
    Instantiate a registered strategy.

    Args:
        name: Strategy name, optionally suffixed with a version ("optimal/v1")
        simulator: Shared simulator instance
        **options: Strategy specific options (max_search_iterations)

    Raises:
        UnknownStrategyError: If no strategy is registered under the name
    """
    base, _, version = name.partition("/v")
    strategy_class = STRATEGIES.get(base)
    if strategy_class is None or (version and version != str(strategy_class.version)):
        raise UnknownStrategyError(
            f"Unknown strategy '{name}', available: {', '.join(sorted(STRATEGIES))}",
            name=name
        )
    if strategy_class is OptimalStrategy:
        return strategy_class(simulator, **options)
    return strategy_class(simulator)

"""
Unit tests for allocation strategies.
"""

import unittest

import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from lpswap.core.errors import UnknownStrategyError
from lpswap.core.interfaces import PoolState, Position
from lpswap.engine.deployer import DepositPolicy
from lpswap.engine.simulator import ONE_HUNDRED_PERCENT
from lpswap.engine.strategies import (
    FullGreedyStrategy, OptimalStrategy, PlanningContext, PositionAwareStrategy, create_strategy,
)
from lpswap.uniswap import PriceMath

ONE_PERCENT = ONE_HUNDRED_PERCENT // 100
TOKEN_A = "0x00000000000000000000000000000000000000aa"
TOKEN_B = "0x00000000000000000000000000000000000000bb"


def make_context(tick: int, zero_for_one: bool, amount_in: int, liquidity: int = 10 ** 30,
                 fee: int = 0, tick_lower: int = -600, tick_upper: int = 600,
                 batch: int = 2 * ONE_PERCENT, cap: int = ONE_PERCENT) -> PlanningContext:
    position = Position(1, tick_lower, tick_upper, TOKEN_A, TOKEN_B, fee)
    state = PoolState(PriceMath.get_sqrt_ratio_at_tick(tick), liquidity)
    return PlanningContext.for_position(state, fee, position, zero_for_one, amount_in, batch, cap)


class TestPositionAwareStrategy(unittest.TestCase):
    """Test cases for the fixed-fraction heuristic."""

    def setUp(self):
        """Set up test fixtures."""
        self.strategy = PositionAwareStrategy()

    def test_mid_range_swaps_half(self):
        """Mid-range, 1000 in swaps 500."""
        ctx = make_context(0, True, 1000)
        plan = self.strategy.plan(ctx)
        self.assertEqual(self.strategy.swap_fraction(ctx), 50)
        self.assertEqual(plan.amount_to_swap, 500)
        self.assertTrue(plan.deposit)
        self.assertEqual(plan.expected.amount_swap_in, 500)

    def test_at_lower_bound_with_token0_input_swaps_nothing(self):
        """At or below the lower bound the range only wants token0."""
        for tick in (-600, -5000):
            ctx = make_context(tick, True, 1000)
            self.assertEqual(self.strategy.swap_fraction(ctx), 0)
            self.assertEqual(self.strategy.plan(ctx).amount_to_swap, 0)

    def test_above_range_with_token1_input_swaps_nothing(self):
        """Above the range only token1 is wanted."""
        ctx = make_context(700, False, 1000)
        self.assertEqual(self.strategy.swap_fraction(ctx), 0)

    def test_shallow_and_deep_outside(self):
        """Distance past the boundary against range width picks 25% or 75%."""
        self.assertEqual(self.strategy.swap_fraction(make_context(700, True, 1000)), 25)
        self.assertEqual(self.strategy.swap_fraction(make_context(5000, True, 1000)), 75)
        self.assertEqual(self.strategy.swap_fraction(make_context(-700, False, 1000)), 25)
        self.assertEqual(self.strategy.swap_fraction(make_context(-5000, False, 1000)), 75)

    def test_fraction_is_always_allowed(self):
        """Swap fraction is one of 0, 25, 50 or 75 percent."""
        for tick in range(-8000, 8001, 350):
            for zero_for_one in (True, False):
                fraction = self.strategy.swap_fraction(make_context(tick, zero_for_one, 10 ** 18))
                self.assertIn(fraction, PositionAwareStrategy.SWAP_FRACTIONS)

    def test_default_policy_is_hard(self):
        """The heuristic is held to its quote."""
        self.assertEqual(self.strategy.deposit_policy, DepositPolicy.HARD_INVARIANT)


class TestFullGreedyStrategy(unittest.TestCase):
    """Test cases for the greedy strategy."""

    def setUp(self):
        """Set up test fixtures."""
        self.strategy = FullGreedyStrategy()

    def test_full_fill_requests_early_return(self):
        """An infinitely deep pool takes everything; nothing is deposited."""
        ctx = make_context(0, True, 10 ** 18, liquidity=10 ** 35)
        plan = self.strategy.plan(ctx)
        self.assertEqual(plan.amount_to_swap, 10 ** 18)
        self.assertFalse(plan.deposit)
        self.assertIsNone(plan.expected)

    def test_partial_fill_deposits_leftover(self):
        """A shallow pool takes part; the rest goes to the deposit."""
        ctx = make_context(0, True, 10 ** 18, liquidity=10 ** 18)
        plan = self.strategy.plan(ctx)
        self.assertLess(plan.amount_to_swap, 10 ** 18)
        self.assertGreater(plan.amount_to_swap, 0)
        self.assertTrue(plan.deposit)

    def test_quote_routes_proceeds_to_spare(self):
        """Proceeds are never offered to the deposit."""
        ctx = make_context(0, True, 10 ** 18, liquidity=10 ** 35)
        quote = self.strategy.quote(ctx)
        self.assertEqual(quote.amount_lp_out, 0)
        self.assertEqual(quote.spare_out, quote.amount_swap_out)
        self.assertEqual(quote.spare_in, 0)
        self.assertEqual(quote.liquidity_delta, 0)

    def test_policy_is_soft(self):
        """Greedy uses the soft-fail policy."""
        self.assertEqual(self.strategy.deposit_policy, DepositPolicy.SOFT_FAIL)


class TestOptimalStrategy(unittest.TestCase):
    """Test cases for the binary search strategy."""

    def setUp(self):
        """Set up test fixtures."""
        self.strategy = OptimalStrategy()

    def test_zero_swap_when_range_wants_only_input(self):
        """Below the range with token0 input nothing is swapped."""
        ctx = make_context(-1200, True, 10 ** 18)
        plan = self.strategy.plan(ctx)
        self.assertEqual(plan.amount_to_swap, 0)
        self.assertGreater(plan.expected.liquidity_delta, 0)
        self.assertEqual(plan.expected.spare_out, 0)

    def test_beats_baselines(self):
        """The chosen plan is at least as good as swapping 0%, 50% or 100%."""
        for tick, zero_for_one in ((0, True), (0, False), (300, True), (-450, False), (900, True)):
            ctx = make_context(tick, zero_for_one, 10 ** 18, fee=3000)
            plan = self.strategy.plan(ctx)
            for baseline in (0, ctx.amount_in // 2, ctx.amount_in):
                candidate = self.strategy.evaluate(ctx, baseline, ctx.per_swap_slippage_cap)
                self.assertGreaterEqual(plan.expected.liquidity_delta, candidate.liquidity_delta)

    def test_mid_range_leaves_little_spare(self):
        """Balanced allocation leaves only rounding dust."""
        ctx = make_context(0, True, 10 ** 18)
        plan = self.strategy.plan(ctx)
        expected = plan.expected
        self.assertGreater(expected.liquidity_delta, 0)
        self.assertLess(expected.spare_in + expected.spare_out, 10 ** 12)

    def test_quote_accounting(self):
        """amount_in splits into swap, deposit and spare."""
        ctx = make_context(120, False, 10 ** 18, fee=500)
        expected = self.strategy.plan(ctx).expected
        self.assertEqual(expected.amount_swap_in + expected.amount_lp_in, ctx.amount_in)
        self.assertLessEqual(expected.spare_in, expected.amount_lp_in)
        self.assertLessEqual(expected.spare_out, expected.amount_swap_out)

    def test_iteration_bound(self):
        """A tiny iteration budget still returns a valid plan."""
        strategy = OptimalStrategy(max_search_iterations=1)
        ctx = make_context(0, True, 10 ** 18)
        plan = strategy.plan(ctx)
        self.assertGreaterEqual(plan.amount_to_swap, 0)
        self.assertLessEqual(plan.amount_to_swap, ctx.amount_in)


class TestStrategyRegistry(unittest.TestCase):
    """Test cases for strategy selection by name."""

    def test_create_by_name(self):
        """Registered names resolve to their classes."""
        self.assertIsInstance(create_strategy("greedy"), FullGreedyStrategy)
        self.assertIsInstance(create_strategy("heuristic"), PositionAwareStrategy)
        self.assertIsInstance(create_strategy("optimal/v1"), OptimalStrategy)

    def test_options_forwarded(self):
        """Search options reach the optimal strategy."""
        strategy = create_strategy("optimal", max_search_iterations=12)
        self.assertEqual(strategy.max_search_iterations, 12)
        self.assertEqual(strategy.identifier, "optimal/v1")

    def test_unknown_strategy(self):
        """Unknown names or versions are rejected."""
        with self.assertRaises(UnknownStrategyError):
            create_strategy("aggressive")
        with self.assertRaises(UnknownStrategyError):
            create_strategy("optimal/v9")


if __name__ == '__main__':
    unittest.main()

"""
Unit tests for swap quoting and price limits.
"""

import unittest

import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from lpswap.core.errors import InvalidRequestError
from lpswap.core.interfaces import PoolState
from lpswap.engine.simulator import SwapSimulator, ONE_HUNDRED_PERCENT
from lpswap.uniswap import Q96, MIN_SQRT_RATIO, MAX_SQRT_RATIO, compute_swap_step

ONE_PERCENT = ONE_HUNDRED_PERCENT // 100


class TestPriceLimit(unittest.TestCase):
    """Test cases for slippage-derived price limits."""

    def test_zero_percentage_is_current_price(self):
        """No allowed movement puts the limit on the current price."""
        self.assertEqual(SwapSimulator.get_sqrt_price_limit_x96(Q96, True, 0), Q96)
        self.assertEqual(SwapSimulator.get_sqrt_price_limit_x96(Q96, False, 0), Q96)

    def test_direction(self):
        """Selling token0 lowers the limit, selling token1 raises it."""
        down = SwapSimulator.get_sqrt_price_limit_x96(Q96, True, ONE_PERCENT)
        up = SwapSimulator.get_sqrt_price_limit_x96(Q96, False, ONE_PERCENT)
        self.assertLess(down, Q96)
        self.assertGreater(up, Q96)

        # sqrt(0.99) and sqrt(1.01)
        self.assertAlmostEqual(down / Q96, 0.99 ** 0.5, places=9)
        self.assertAlmostEqual(up / Q96, 1.01 ** 0.5, places=9)

    def test_clamped_to_valid_ratios(self):
        """Limits never leave the open interval of valid ratios."""
        self.assertEqual(
            SwapSimulator.get_sqrt_price_limit_x96(Q96, True, ONE_HUNDRED_PERCENT),
            MIN_SQRT_RATIO + 1
        )
        self.assertEqual(
            SwapSimulator.get_sqrt_price_limit_x96(MAX_SQRT_RATIO - 10, False, 50 * ONE_PERCENT),
            MAX_SQRT_RATIO - 1
        )

    def test_negative_percentage_rejected(self):
        """Negative percentages are invalid."""
        with self.assertRaises(InvalidRequestError):
            SwapSimulator.get_sqrt_price_limit_x96(Q96, True, -1)


class TestSimulateSwap(unittest.TestCase):
    """Test cases for curve walking."""

    def setUp(self):
        """Set up test fixtures."""
        self.simulator = SwapSimulator()
        self.deep = PoolState(Q96, 10 ** 30)
        self.shallow = PoolState(Q96, 10 ** 18)

    def test_zero_amount(self):
        """Nothing requested, nothing quoted."""
        quote = self.simulator.simulate_swap(self.deep, 3000, True, 0)
        self.assertEqual(quote.amount_to_pay, 0)
        self.assertEqual(quote.amount_received, 0)
        self.assertEqual(quote.sqrt_price_x96_after, Q96)

    def test_limit_on_wrong_side_quotes_nothing(self):
        """A limit that is not beyond the current price admits no fill."""
        quote = self.simulator.simulate_swap(self.deep, 3000, True, 10 ** 18, Q96)
        self.assertEqual(quote.amount_to_pay, 0)
        quote = self.simulator.simulate_swap(self.deep, 3000, False, 10 ** 18, Q96 - 1)
        self.assertEqual(quote.amount_to_pay, 0)

    def test_exact_input_deep_pool(self):
        """A deep pool absorbs the whole input at roughly the spot price."""
        amount = 10 ** 18
        quote = self.simulator.quote_slippage_exact_input(self.deep, 0, True, amount, ONE_PERCENT)
        self.assertEqual(quote.amount_to_pay, amount)
        self.assertLessEqual(quote.amount_received, amount)
        self.assertGreaterEqual(quote.amount_received, amount * 999 // 1000)
        self.assertLess(quote.sqrt_price_x96_after, Q96)
        self.assertEqual(quote.implied_liquidity, self.deep.liquidity)

    def test_fee_reduces_output(self):
        """Fees are paid out of the input."""
        amount = 10 ** 18
        without_fee = self.simulator.quote_exact_input(self.deep, 0, False, amount)
        with_fee = self.simulator.quote_exact_input(self.deep, 3000, False, amount)
        self.assertEqual(with_fee.amount_to_pay, amount)
        self.assertLess(with_fee.amount_received, without_fee.amount_received)

    def test_slippage_caps_shallow_pool(self):
        """The price limit caps how much a shallow pool takes."""
        amount = 10 ** 18
        limit = SwapSimulator.get_sqrt_price_limit_x96(Q96, True, ONE_PERCENT)
        quote = self.simulator.quote_slippage_exact_input(self.shallow, 3000, True, amount, ONE_PERCENT)
        self.assertLess(quote.amount_to_pay, amount)
        self.assertGreater(quote.amount_to_pay, 0)
        self.assertEqual(quote.sqrt_price_x96_after, limit)

    def test_pay_never_exceeds_request(self):
        """amount_to_pay <= requested for every input size."""
        for amount in (1, 999, 10 ** 12, 10 ** 16, 10 ** 18, 10 ** 21):
            for zero_for_one in (True, False):
                quote = self.simulator.quote_slippage_exact_input(
                    self.shallow, 3000, zero_for_one, amount, 2 * ONE_PERCENT
                )
                self.assertLessEqual(quote.amount_to_pay, amount)

    def test_requote_of_capped_amount_is_identical(self):
        """Requesting exactly what a capped quote paid reproduces that quote."""
        capped = self.simulator.quote_slippage_exact_input(self.shallow, 3000, False, 10 ** 18, ONE_PERCENT)
        again = self.simulator.quote_slippage_exact_input(
            self.shallow, 3000, False, capped.amount_to_pay, ONE_PERCENT
        )
        self.assertEqual(again, capped)

    def test_exact_output(self):
        """Negative amounts request an exact output."""
        wanted = 10 ** 15
        quote = self.simulator.simulate_swap(self.deep, 3000, True, -wanted)
        self.assertEqual(quote.amount_received, wanted)
        self.assertGreater(quote.amount_to_pay, wanted)

    def test_swap_step_fee_accounting(self):
        """A single exact-input step spends exactly the remaining amount when not reaching target."""
        target = SwapSimulator.get_sqrt_price_limit_x96(Q96, True, 50 * ONE_PERCENT)
        sqrt_next, amount_in, amount_out, fee_amount = compute_swap_step(Q96, target, 10 ** 30, 10 ** 18, 3000)
        self.assertNotEqual(sqrt_next, target)
        self.assertEqual(amount_in + fee_amount, 10 ** 18)
        self.assertGreater(amount_out, 0)


if __name__ == '__main__':
    unittest.main()

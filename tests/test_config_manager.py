"""
Unit tests for configuration loading.
"""

import os
import sys
import tempfile
import textwrap
import unittest
from unittest.mock import patch

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from lpswap.config import ConfigManager, parse_percentage
from lpswap.engine import DepositPolicy, ONE_HUNDRED_PERCENT

ONE_PERCENT = ONE_HUNDRED_PERCENT // 100

BASE_CONFIG = """
ethereum:
  rpc_url: ${TEST_LPSWAP_RPC}
  position_manager: "0xC36442b4a4522E871399CD717aBDD847Ab11FE88"

pools:
  usdc_weth:
    address: "0x88e6A0c2dDD26FEEb64F039a2c41296FcB3f5640"
    name: "USDC/WETH 0.05%"
    fee_tier: 500
    token0:
      address: "0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48"
      symbol: "USDC"
      decimals: 6
    token1:
      address: "0xC02aaA39b223FE8D0A0e5C4F27eAD9083C756Cc2"
      symbol: "WETH"
      decimals: 18

engine:
  strategy: heuristic
  deposit_policy: soft
  batch_impact_threshold: "2"
  per_swap_slippage_cap: "0.5"
  max_search_iterations: 64

simulation:
  token_in: "0x00000000000000000000000000000000000000aa"
  token_out: "0x00000000000000000000000000000000000000bb"
  fee_tier: 3000
  tick: 0
  liquidity: 1000000000000000000000
  tick_lower: -600
  tick_upper: 600
  amount_in: 1000000000000000000
"""


class TestParsePercentage(unittest.TestCase):
    """Test cases for percentage parsing."""

    def test_scale(self):
        """Human percentages map onto the 1e18 = 1% scale."""
        self.assertEqual(parse_percentage("2"), 2 * 10 ** 18)
        self.assertEqual(parse_percentage("0.5"), 5 * 10 ** 17)
        self.assertEqual(parse_percentage(100), ONE_HUNDRED_PERCENT)
        self.assertEqual(parse_percentage("0"), 0)

    def test_invalid(self):
        """Negative or non-numeric values are rejected."""
        for value in ("-1", "abc", "NaN"):
            with self.assertRaises(ValueError):
                parse_percentage(value)


class TestConfigManager(unittest.TestCase):
    """Test cases for ConfigManager."""

    def setUp(self):
        """Set up test fixtures."""
        self.temp_dir = tempfile.TemporaryDirectory()

    def tearDown(self):
        self.temp_dir.cleanup()

    def write_config(self, content: str) -> str:
        path = os.path.join(self.temp_dir.name, "config.yaml")
        with open(path, "w") as f:
            f.write(textwrap.dedent(content))
        return path

    @patch.dict(os.environ, {"TEST_LPSWAP_RPC": "http://localhost:8545"})
    def test_load_full_config(self):
        """Every section is parsed into typed configuration."""
        config = ConfigManager(self.write_config(BASE_CONFIG)).load()

        self.assertEqual(config.ethereum.rpc_url, "http://localhost:8545")
        self.assertEqual(config.ethereum.retry_attempts, 3)
        self.assertEqual(config.pools["usdc_weth"].fee_tier, 500)
        self.assertEqual(config.pools["usdc_weth"].token0.symbol, "USDC")

        self.assertEqual(config.engine.strategy, "heuristic")
        self.assertEqual(config.engine.deposit_policy, DepositPolicy.SOFT_FAIL)
        self.assertEqual(config.engine.batch_impact_threshold, 2 * ONE_PERCENT)
        self.assertEqual(config.engine.per_swap_slippage_cap, ONE_PERCENT // 2)
        self.assertEqual(config.engine.max_search_iterations, 64)

        self.assertEqual(config.simulation.liquidity, 10 ** 21)
        self.assertFalse(config.simulation.native_output)

    def test_defaults(self):
        """A minimal file falls back to engine defaults."""
        config = ConfigManager(self.write_config("pools: {}\n")).load()
        self.assertIsNone(config.ethereum)
        self.assertIsNone(config.simulation)
        self.assertEqual(config.engine.strategy, "optimal")
        self.assertIsNone(config.engine.deposit_policy)
        self.assertEqual(config.engine.per_swap_slippage_cap, ONE_PERCENT)

    def test_missing_env_var(self):
        """Unset environment references are an error."""
        with patch.dict(os.environ, {}, clear=True):
            with self.assertRaises(ValueError):
                ConfigManager(self.write_config(BASE_CONFIG)).load()

    def test_unknown_strategy(self):
        """Only registered strategies are accepted."""
        with self.assertRaises(ValueError):
            ConfigManager(self.write_config("engine:\n  strategy: aggressive\n")).load()

    def test_invalid_policy(self):
        """Deposit policy must be soft or hard."""
        with self.assertRaises(ValueError):
            ConfigManager(self.write_config("engine:\n  deposit_policy: maybe\n")).load()

    def test_inverted_simulation_range(self):
        """The simulated position needs tick_lower < tick_upper."""
        content = BASE_CONFIG.replace("tick_lower: -600", "tick_lower: 600")
        with patch.dict(os.environ, {"TEST_LPSWAP_RPC": "http://localhost:8545"}):
            with self.assertRaises(ValueError):
                ConfigManager(self.write_config(content)).load()

    def test_lookups(self):
        """Lookups raise KeyError for missing entries."""
        manager = ConfigManager(self.write_config("pools: {}\n"))
        with self.assertRaises(KeyError):
            manager.get_pool_config("missing")
        with self.assertRaises(KeyError):
            manager.get_simulation_config()

    def test_missing_file(self):
        """A missing file raises FileNotFoundError."""
        with self.assertRaises(FileNotFoundError):
            ConfigManager(os.path.join(self.temp_dir.name, "nope.yaml")).load()


if __name__ == '__main__':
    unittest.main()

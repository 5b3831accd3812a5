"""
Tests for the command-line interface.
"""

import os
import sys
import tempfile
import unittest
from unittest.mock import patch

from click.testing import CliRunner

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from lpswap.blockchain.data_fetcher import PoolSnapshot
from lpswap.cli import cli
from lpswap.core.interfaces import PoolState, Position
from lpswap.uniswap import Q96

TOKEN_X = "0x00000000000000000000000000000000000000aa"
TOKEN_Y = "0x00000000000000000000000000000000000000bb"

SIMULATION_CONFIG = f"""
pools:
  x_y:
    address: "0x00000000000000000000000000000000000000a1"
    name: "X/Y 0.3%"
    fee_tier: 3000
    token0: {{address: "{TOKEN_X}", symbol: "X", decimals: 18}}
    token1: {{address: "{TOKEN_Y}", symbol: "Y", decimals: 18}}

engine:
  strategy: optimal
  batch_impact_threshold: "2"
  per_swap_slippage_cap: "1"

simulation:
  token_in: "{TOKEN_X}"
  token_out: "{TOKEN_Y}"
  fee_tier: 3000
  tick: 0
  liquidity: 1000000000000000000000000000000
  tick_lower: -600
  tick_upper: 600
  amount_in: 1000000000000000000
"""


class TestCli(unittest.TestCase):
    """Test cases for CLI commands."""

    def setUp(self):
        """Set up test fixtures."""
        self.runner = CliRunner()
        self.temp_dir = tempfile.TemporaryDirectory()
        self.addCleanup(self.temp_dir.cleanup)

    def write_config(self, content: str) -> str:
        path = os.path.join(self.temp_dir.name, "config.yaml")
        with open(path, "w") as f:
            f.write(content)
        return path

    def test_simulate(self):
        """A dry run against the configured in-memory market settles."""
        path = self.write_config(SIMULATION_CONFIG)
        result = self.runner.invoke(cli, ['--config', path, 'simulate'])
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn("SIMULATION RESULT (optimal/v1)", result.output)
        self.assertIn("State: SETTLED", result.output)

    def test_simulate_strategy_override(self):
        """The strategy can be overridden per run."""
        path = self.write_config(SIMULATION_CONFIG)
        result = self.runner.invoke(cli, ['--config', path, 'simulate', '--strategy', 'greedy'])
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn("greedy/v1", result.output)

    def test_simulate_unknown_strategy(self):
        """Unknown strategies exit with an error."""
        path = self.write_config(SIMULATION_CONFIG)
        result = self.runner.invoke(cli, ['--config', path, 'simulate', '--strategy', 'aggressive'])
        self.assertEqual(result.exit_code, 1)

    def test_validate_config(self):
        """A valid file is summarized."""
        path = self.write_config(SIMULATION_CONFIG)
        result = self.runner.invoke(cli, ['--config', path, 'validate-config'])
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn("Configuration is valid", result.output)

    def test_validate_bad_config(self):
        """Invalid configuration exits with status 1."""
        path = self.write_config(SIMULATION_CONFIG.replace("strategy: optimal", "strategy: aggressive"))
        result = self.runner.invoke(cli, ['--config', path, 'validate-config'])
        self.assertEqual(result.exit_code, 1)

    def test_pool_info_lists_pools(self):
        """Without --pool the configured pools are listed."""
        path = self.write_config(SIMULATION_CONFIG)
        result = self.runner.invoke(cli, ['--config', path, 'pool-info'])
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn("x_y", result.output)

    @patch('lpswap.cli.ChainDataFetcher')
    def test_quote(self, mock_fetcher_class):
        """Quotes are computed on fetched pool and position state."""
        content = SIMULATION_CONFIG + (
            "\nethereum:\n"
            "  rpc_url: http://mock-rpc\n"
            "  position_manager: \"0x00000000000000000000000000000000000000b2\"\n"
        )
        path = self.write_config(content)
        fetcher = mock_fetcher_class.return_value
        fetcher.get_pool_snapshot.return_value = PoolSnapshot(
            "0x00000000000000000000000000000000000000a1", TOKEN_X, TOKEN_Y, 3000, 0,
            PoolState(Q96, 10 ** 30), 'latest'
        )
        fetcher.get_position.return_value = Position(7, -600, 600, TOKEN_X, TOKEN_Y, 3000)

        result = self.runner.invoke(cli, [
            '--config', path, 'quote', '--pool', 'x_y', '--position-id', '7',
            '--token-in', TOKEN_X, '--amount', str(10 ** 18)
        ])

        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn("QUOTE (optimal/v1)", result.output)
        fetcher.get_position.assert_called_once_with("0x00000000000000000000000000000000000000b2", 7)

    @patch('lpswap.cli.ChainDataFetcher')
    def test_quote_rejects_foreign_position(self, mock_fetcher_class):
        """A position on another pool is refused."""
        content = SIMULATION_CONFIG + (
            "\nethereum:\n"
            "  rpc_url: http://mock-rpc\n"
            "  position_manager: \"0x00000000000000000000000000000000000000b2\"\n"
        )
        path = self.write_config(content)
        fetcher = mock_fetcher_class.return_value
        fetcher.get_pool_snapshot.return_value = PoolSnapshot(
            "0x00000000000000000000000000000000000000a1", TOKEN_X, TOKEN_Y, 3000, 0,
            PoolState(Q96, 10 ** 30), 'latest'
        )
        fetcher.get_position.return_value = Position(7, -600, 600, TOKEN_X, TOKEN_Y, 500)

        result = self.runner.invoke(cli, [
            '--config', path, 'quote', '--pool', 'x_y', '--position-id', '7',
            '--token-in', TOKEN_X, '--amount', str(10 ** 18)
        ])
        self.assertEqual(result.exit_code, 1)


if __name__ == '__main__':
    unittest.main()

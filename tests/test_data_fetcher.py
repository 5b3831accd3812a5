"""
Unit tests for chain data access with a mocked Web3.
"""

import unittest
from unittest.mock import Mock, patch

import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from lpswap.blockchain import ChainDataFetcher
from lpswap.core.interfaces import PoolState
from lpswap.uniswap import Q96

POOL = "0x88e6A0c2dDD26FEEb64F039a2c41296FcB3f5640"
MANAGER = "0xC36442b4a4522E871399CD717aBDD847Ab11FE88"
USDC = "0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48"
WETH = "0xC02aaA39b223FE8D0A0e5C4F27eAD9083C756Cc2"


class TestChainDataFetcher(unittest.TestCase):
    """Test cases for ChainDataFetcher."""

    def setUp(self):
        """Set up test fixtures."""
        provider_patcher = patch('lpswap.blockchain.data_fetcher.OptimizedHTTPProvider')
        web3_patcher = patch('lpswap.blockchain.data_fetcher.Web3')
        self.mock_provider = provider_patcher.start()
        self.mock_web3 = web3_patcher.start()
        self.addCleanup(provider_patcher.stop)
        self.addCleanup(web3_patcher.stop)

        self.mock_contract = Mock()
        self.w3 = self.mock_web3.return_value
        self.w3.is_connected.return_value = True
        self.w3.eth.contract.return_value = self.mock_contract
        self.mock_web3.to_checksum_address.side_effect = lambda address: address

    def test_pool_snapshot(self):
        """slot0, liquidity and pool parameters are combined into a snapshot."""
        functions = self.mock_contract.functions
        functions.slot0.return_value.call.return_value = [Q96, 0, 0, 1, 1, 0, True]
        functions.liquidity.return_value.call.return_value = 10 ** 21
        functions.fee.return_value.call.return_value = 500
        functions.token0.return_value.call.return_value = USDC
        functions.token1.return_value.call.return_value = WETH

        fetcher = ChainDataFetcher("http://mock-rpc")
        snapshot = fetcher.get_pool_snapshot(POOL, 19000000)

        self.assertEqual(snapshot.state, PoolState(Q96, 10 ** 21))
        self.assertEqual(snapshot.tick, 0)
        self.assertEqual(snapshot.fee, 500)
        self.assertEqual(snapshot.token0, USDC.lower())
        self.assertEqual(snapshot.address, POOL.lower())
        functions.slot0.return_value.call.assert_called_with(block_identifier=19000000)
        self.assertEqual(fetcher.get_pool_state(POOL), PoolState(Q96, 10 ** 21))

    def test_position(self):
        """Position tuples are mapped onto Position."""
        self.mock_contract.functions.positions.return_value.call.return_value = (
            0, "0x0000000000000000000000000000000000000000", USDC, WETH, 500, -600, 600, 10 ** 18, 0, 0, 0, 0
        )

        position = ChainDataFetcher("http://mock-rpc").get_position(MANAGER, 42)

        self.assertEqual(position.position_id, 42)
        self.assertEqual((position.tick_lower, position.tick_upper), (-600, 600))
        self.assertEqual((position.token0, position.token1), (USDC.lower(), WETH.lower()))
        self.assertEqual(position.fee, 500)
        self.mock_contract.functions.positions.assert_called_with(42)

    def test_call_errors_propagate(self):
        """RPC failures are logged and re-raised."""
        self.mock_contract.functions.slot0.return_value.call.side_effect = ValueError("execution reverted")
        fetcher = ChainDataFetcher("http://mock-rpc")
        with self.assertRaises(ValueError):
            fetcher.get_pool_snapshot(POOL)

    @patch('lpswap.blockchain.data_fetcher.time.sleep')
    def test_connection_failure(self, mock_sleep):
        """An unreachable node raises ConnectionError after retrying."""
        self.w3.is_connected.return_value = False
        with self.assertRaises(ConnectionError):
            ChainDataFetcher("http://mock-rpc", retry_attempts=3)
        self.assertEqual(mock_sleep.call_count, 2)

    def test_provider_configuration(self):
        """Retry and timeout settings reach the HTTP provider."""
        ChainDataFetcher("http://mock-rpc", retry_attempts=5, timeout=12)
        self.mock_provider.assert_called_once_with("http://mock-rpc", max_retries=5, timeout=12)


if __name__ == '__main__':
    unittest.main()

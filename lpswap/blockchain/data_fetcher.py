"""
Read-only access to live concentrated-liquidity pools and position managers.
Used to quote allocations against current chain state; never sends transactions.
"""

import json
import logging
import time
from dataclasses import dataclass
from typing import Union

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry
from web3 import Web3
from web3.providers.rpc import HTTPProvider

from lpswap.core.interfaces import PoolState, Position

# Pool ABI (minimal)
POOL_ABI = json.loads('''[
    {
        "inputs": [],
        "name": "slot0",
        "outputs": [
            {"name": "sqrtPriceX96", "type": "uint160"},
            {"name": "tick", "type": "int24"},
            {"name": "observationIndex", "type": "uint16"},
            {"name": "observationCardinality", "type": "uint16"},
            {"name": "observationCardinalityNext", "type": "uint16"},
            {"name": "feeProtocol", "type": "uint8"},
            {"name": "unlocked", "type": "bool"}
        ],
        "stateMutability": "view",
        "type": "function"
    },
    {
        "inputs": [],
        "name": "liquidity",
        "outputs": [{"name": "", "type": "uint128"}],
        "stateMutability": "view",
        "type": "function"
    },
    {
        "inputs": [],
        "name": "fee",
        "outputs": [{"name": "", "type": "uint24"}],
        "stateMutability": "view",
        "type": "function"
    },
    {
        "inputs": [],
        "name": "token0",
        "outputs": [{"name": "", "type": "address"}],
        "stateMutability": "view",
        "type": "function"
    },
    {
        "inputs": [],
        "name": "token1",
        "outputs": [{"name": "", "type": "address"}],
        "stateMutability": "view",
        "type": "function"
    }
]''')

# NonfungiblePositionManager ABI (positions only)
POSITION_MANAGER_ABI = json.loads('''[
    {
        "inputs": [{"name": "tokenId", "type": "uint256"}],
        "name": "positions",
        "outputs": [
            {"name": "nonce", "type": "uint96"},
            {"name": "operator", "type": "address"},
            {"name": "token0", "type": "address"},
            {"name": "token1", "type": "address"},
            {"name": "fee", "type": "uint24"},
            {"name": "tickLower", "type": "int24"},
            {"name": "tickUpper", "type": "int24"},
            {"name": "liquidity", "type": "uint128"},
            {"name": "feeGrowthInside0LastX128", "type": "uint256"},
            {"name": "feeGrowthInside1LastX128", "type": "uint256"},
            {"name": "tokensOwed0", "type": "uint128"},
            {"name": "tokensOwed1", "type": "uint128"}
        ],
        "stateMutability": "view",
        "type": "function"
    }
]''')

BlockIdentifier = Union[int, str]


@dataclass(frozen=True)
class PoolSnapshot:
    """Pool state together with the static pool parameters."""
    address: str
    token0: str
    token1: str
    fee: int
    tick: int
    state: PoolState
    block_identifier: BlockIdentifier


class OptimizedHTTPProvider(HTTPProvider):
    """HTTP provider with connection pooling and retry logic."""

    def __init__(self, endpoint_uri: str, pool_connections: int = 10, pool_maxsize: int = 10,
                 max_retries: int = 3, backoff_factor: float = 0.1, timeout: int = 30):
        session = requests.Session()

        retry_strategy = Retry(
            total=max_retries,
            backoff_factor=backoff_factor,
            status_forcelist=[429, 500, 502, 503, 504],
            allowed_methods=["HEAD", "GET", "POST"]
        )
        adapter = HTTPAdapter(
            pool_connections=pool_connections,
            pool_maxsize=pool_maxsize,
            max_retries=retry_strategy
        )
        session.mount("http://", adapter)
        session.mount("https://", adapter)

        super().__init__(endpoint_uri, session=session, request_kwargs={'timeout': timeout})


class ChainDataFetcher:
    """Reads pool and position state over JSON-RPC."""

    def __init__(self, rpc_url: str, retry_attempts: int = 3, timeout: int = 30):
        """Connect to an Ethereum-compatible node.

        Args:
            rpc_url: JSON-RPC endpoint URL
            retry_attempts: Connection attempts before giving up
            timeout: Per-request timeout in seconds

        Raises:
            ConnectionError: If the node cannot be reached
        """
        self.logger = logging.getLogger(__name__)
        self.w3 = Web3(OptimizedHTTPProvider(rpc_url, max_retries=retry_attempts, timeout=timeout))

        for attempt in range(retry_attempts):
            if self.w3.is_connected():
                break
            if attempt < retry_attempts - 1:
                time.sleep(1)

        if not self.w3.is_connected():
            raise ConnectionError(
                f"Failed to connect to node at {rpc_url[:50]}... after {retry_attempts} attempts"
            )

    def get_pool_snapshot(self, pool_address: str, block_identifier: BlockIdentifier = 'latest') -> PoolSnapshot:
        """
        Read price, liquidity and static parameters of a pool.

        Args:
            pool_address: Pool contract address
            block_identifier: Block number or tag to read at

        Returns:
            PoolSnapshot for the block
        """
        pool = self.w3.eth.contract(address=Web3.to_checksum_address(pool_address), abi=POOL_ABI)
        call_params = {'block_identifier': block_identifier}

        try:
            slot0 = pool.functions.slot0().call(**call_params)
            liquidity = pool.functions.liquidity().call(**call_params)
            fee = pool.functions.fee().call(**call_params)
            token0 = pool.functions.token0().call(**call_params)
            token1 = pool.functions.token1().call(**call_params)
        except Exception as e:
            self.logger.error(f"Error fetching pool state for {pool_address}: {e}")
            raise

        self.logger.debug(f"Fetched pool state for {pool_address} at {block_identifier}")
        return PoolSnapshot(
            address=pool_address.lower(),
            token0=token0.lower(),
            token1=token1.lower(),
            fee=fee,
            tick=slot0[1],
            state=PoolState(sqrt_price_x96=slot0[0], liquidity=liquidity),
            block_identifier=block_identifier
        )

    def get_pool_state(self, pool_address: str, block_identifier: BlockIdentifier = 'latest') -> PoolState:
        return self.get_pool_snapshot(pool_address, block_identifier).state

    def get_position(
        self,
        position_manager_address: str,
        position_id: int,
        block_identifier: BlockIdentifier = 'latest'
    ) -> Position:
        """Read the range and pool key of an existing position."""
        manager = self.w3.eth.contract(
            address=Web3.to_checksum_address(position_manager_address),
            abi=POSITION_MANAGER_ABI
        )
        try:
            data = manager.functions.positions(position_id).call(block_identifier=block_identifier)
        except Exception as e:
            self.logger.error(f"Error fetching position {position_id}: {e}")
            raise

        return Position(
            position_id=position_id,
            tick_lower=data[5],
            tick_upper=data[6],
            token0=data[2].lower(),
            token1=data[3].lower(),
            fee=data[4]
        )

"""Configuration management with validation and type safety."""

import os
import re
import yaml
import logging
from decimal import Decimal, InvalidOperation
from typing import Dict, Any, Optional, Union
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

from lpswap.engine.deployer import DepositPolicy
from lpswap.engine.simulator import ONE_HUNDRED_PERCENT
from lpswap.engine.strategies import STRATEGIES

ONE_PERCENT = ONE_HUNDRED_PERCENT // 100


def parse_percentage(value: Union[str, int, float, Decimal]) -> int:
    """Convert a human percentage ("2", "0.5") to the 1e18 = 1% scale.

    Raises:
        ValueError: If the value is not a non-negative number
    """
    try:
        percentage = Decimal(str(value))
    except InvalidOperation:
        raise ValueError(f"Invalid percentage: {value!r}")
    if not percentage.is_finite() or percentage < 0:
        raise ValueError(f"Percentage must be a non-negative number, got {value!r}")
    return int(percentage * ONE_PERCENT)


@dataclass
class TokenConfig:
    """Token configuration."""
    address: str
    symbol: str
    decimals: int


@dataclass
class PoolConfig:
    """Pool configuration."""
    address: str
    name: str
    fee_tier: int
    token0: TokenConfig
    token1: TokenConfig


@dataclass
class EthereumConfig:
    """Ethereum connection configuration."""
    rpc_url: str
    position_manager: Optional[str] = None
    retry_attempts: int = 3
    timeout: int = 30


@dataclass
class EngineConfig:
    """Allocation engine settings. Percentages are on the 1e18 = 1% scale."""
    strategy: str = "optimal"
    deposit_policy: Optional[DepositPolicy] = None
    batch_impact_threshold: int = 2 * ONE_PERCENT
    per_swap_slippage_cap: int = ONE_PERCENT
    max_search_iterations: int = 256
    account: str = "0x00000000000000000000000000000000000000e1"
    spare_in_recipient: str = "0x00000000000000000000000000000000000000c1"
    spare_out_recipient: str = "0x000000000000000000000000000000000000dead"


@dataclass
class SimulationConfig:
    """In-memory market used by dry runs."""
    token_in: str
    token_out: str
    fee_tier: int
    tick: int
    liquidity: int
    tick_lower: int
    tick_upper: int
    amount_in: int
    native_output: bool = False
    caller: str = "0x00000000000000000000000000000000000000f1"


@dataclass
class LoggingConfig:
    """Logging configuration."""
    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    file: Optional[str] = None


@dataclass
class Config:
    """Main configuration container."""
    ethereum: Optional[EthereumConfig]
    pools: Dict[str, PoolConfig]
    engine: EngineConfig
    simulation: Optional[SimulationConfig]
    logging: LoggingConfig = field(default_factory=LoggingConfig)


class ConfigManager:
    """Manages application configuration."""

    def __init__(self, config_path: Optional[str] = None):
        """Initialize configuration manager.

        Args:
            config_path: Path to configuration file. Defaults to config.yaml
        """
        self.config_path = Path(config_path or "config.yaml")
        self._config_data: Optional[Dict[str, Any]] = None
        self._config: Optional[Config] = None
        self.logger = logging.getLogger(__name__)

    def load(self) -> Config:
        """Load and parse configuration.

        Returns:
            Parsed configuration object

        Raises:
            FileNotFoundError: If config file not found
            ValueError: If config is invalid
        """
        if self._config:
            return self._config

        if not self.config_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {self.config_path}")

        load_dotenv()
        with open(self.config_path, 'r') as f:
            self._config_data = yaml.safe_load(f) or {}

        self._substitute_env_vars()
        self._config = self._parse_config(self._config_data)
        self._setup_logging(self._config.logging)

        return self._config

    def _substitute_env_vars(self):
        """Substitute ${VAR} references with environment values."""
        def _substitute(obj):
            if isinstance(obj, str):
                for var_name in re.findall(r'\$\{([^}]+)\}', obj):
                    env_value = os.getenv(var_name)
                    if env_value is None:
                        raise ValueError(f"Environment variable {var_name} not set")
                    obj = obj.replace(f"${{{var_name}}}", env_value)
                return obj
            elif isinstance(obj, dict):
                return {k: _substitute(v) for k, v in obj.items()}
            elif isinstance(obj, list):
                return [_substitute(item) for item in obj]
            return obj

        self._config_data = _substitute(self._config_data)

    def _parse_config(self, data: Dict[str, Any]) -> Config:
        """Parse raw config data into typed configuration.

        Args:
            data: Raw configuration dictionary

        Returns:
            Parsed Config object
        """
        ethereum_config = None
        if data.get('ethereum'):
            eth_data = data['ethereum']
            ethereum_config = EthereumConfig(
                rpc_url=eth_data['rpc_url'],
                position_manager=eth_data.get('position_manager'),
                retry_attempts=eth_data.get('retry_attempts', 3),
                timeout=eth_data.get('timeout', 30)
            )

        pools = {}
        for pool_name, pool_data in (data.get('pools') or {}).items():
            pools[pool_name] = PoolConfig(
                address=pool_data['address'],
                name=pool_data.get('name', pool_name),
                fee_tier=int(pool_data['fee_tier']),
                token0=TokenConfig(**pool_data['token0']),
                token1=TokenConfig(**pool_data['token1'])
            )

        engine_config = self._parse_engine(data.get('engine') or {})

        simulation_config = None
        if data.get('simulation'):
            sim_data = data['simulation']
            simulation_config = SimulationConfig(
                token_in=sim_data['token_in'],
                token_out=sim_data['token_out'],
                fee_tier=int(sim_data['fee_tier']),
                tick=int(sim_data['tick']),
                liquidity=int(sim_data['liquidity']),
                tick_lower=int(sim_data['tick_lower']),
                tick_upper=int(sim_data['tick_upper']),
                amount_in=int(sim_data['amount_in']),
                native_output=sim_data.get('native_output', False),
                caller=sim_data.get('caller', SimulationConfig.caller)
            )
            if simulation_config.tick_lower >= simulation_config.tick_upper:
                raise ValueError(
                    f"simulation.tick_lower ({simulation_config.tick_lower}) must be below "
                    f"tick_upper ({simulation_config.tick_upper})"
                )

        logging_data = data.get('logging') or {}
        logging_config = LoggingConfig(
            level=logging_data.get('level', 'INFO'),
            format=logging_data.get('format', '%(asctime)s - %(name)s - %(levelname)s - %(message)s'),
            file=logging_data.get('file')
        )

        return Config(
            ethereum=ethereum_config,
            pools=pools,
            engine=engine_config,
            simulation=simulation_config,
            logging=logging_config
        )

    def _parse_engine(self, engine_data: Dict[str, Any]) -> EngineConfig:
        defaults = EngineConfig()

        strategy = engine_data.get('strategy', defaults.strategy)
        if strategy.partition("/v")[0] not in STRATEGIES:
            raise ValueError(f"Unknown strategy '{strategy}', expected one of {sorted(STRATEGIES)}")

        deposit_policy = None
        if engine_data.get('deposit_policy'):
            try:
                deposit_policy = DepositPolicy(engine_data['deposit_policy'])
            except ValueError:
                raise ValueError(
                    f"Invalid deposit_policy '{engine_data['deposit_policy']}', "
                    f"expected one of {[p.value for p in DepositPolicy]}"
                )

        def _percentage(key: str, default: int) -> int:
            if key not in engine_data:
                return default
            return parse_percentage(engine_data[key])

        return EngineConfig(
            strategy=strategy,
            deposit_policy=deposit_policy,
            batch_impact_threshold=_percentage('batch_impact_threshold', defaults.batch_impact_threshold),
            per_swap_slippage_cap=_percentage('per_swap_slippage_cap', defaults.per_swap_slippage_cap),
            max_search_iterations=int(engine_data.get('max_search_iterations', defaults.max_search_iterations)),
            account=engine_data.get('account', defaults.account),
            spare_in_recipient=engine_data.get('spare_in_recipient', defaults.spare_in_recipient),
            spare_out_recipient=engine_data.get('spare_out_recipient', defaults.spare_out_recipient)
        )

    def _setup_logging(self, logging_config: LoggingConfig):
        """Setup logging based on configuration."""
        handlers = [logging.StreamHandler()]

        if logging_config.file:
            handlers.append(logging.FileHandler(logging_config.file))

        logging.basicConfig(
            level=getattr(logging, logging_config.level),
            format=logging_config.format,
            handlers=handlers
        )

    def get_pool_config(self, pool_id: str) -> PoolConfig:
        """Get pool configuration by ID.

        Args:
            pool_id: Pool identifier

        Returns:
            Pool configuration

        Raises:
            KeyError: If pool not found
        """
        if not self._config:
            self.load()

        if pool_id not in self._config.pools:
            raise KeyError(f"Pool '{pool_id}' not found in configuration")

        return self._config.pools[pool_id]

    def get_simulation_config(self) -> SimulationConfig:
        """Get the simulation section.

        Raises:
            KeyError: If the configuration has no simulation section
        """
        if not self._config:
            self.load()

        if self._config.simulation is None:
            raise KeyError("No 'simulation' section in configuration")

        return self._config.simulation

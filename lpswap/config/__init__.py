"""Configuration loading."""

from .config_manager import (
    ConfigManager, Config, EngineConfig, EthereumConfig, LoggingConfig, PoolConfig,
    SimulationConfig, TokenConfig, parse_percentage,
)

__all__ = [
    'ConfigManager', 'Config', 'EngineConfig', 'EthereumConfig', 'LoggingConfig',
    'PoolConfig', 'SimulationConfig', 'TokenConfig', 'parse_percentage',
]

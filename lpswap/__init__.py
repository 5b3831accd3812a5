"""Swap-and-deploy allocation engine for concentrated-liquidity pools."""

__version__ = "0.1.0"

"""Blockchain read access."""

from .data_fetcher import ChainDataFetcher, OptimizedHTTPProvider, PoolSnapshot

__all__ = ['ChainDataFetcher', 'OptimizedHTTPProvider', 'PoolSnapshot']

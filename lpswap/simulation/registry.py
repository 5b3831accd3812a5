"""Pool lookup by token pair and fee tier."""

from typing import Dict, List, Tuple

from lpswap.core.errors import InvalidRequestError
from lpswap.core.interfaces import IPool, IPoolRegistry


class PoolRegistry(IPoolRegistry):

    def __init__(self):
        self._pools: Dict[Tuple[str, str, int], IPool] = {}

    @staticmethod
    def _key(token_a: str, token_b: str, fee: int) -> Tuple[str, str, int]:
        token0, token1 = sorted((token_a.lower(), token_b.lower()))
        return token0, token1, fee

    def register(self, pool: IPool):
        self._pools[self._key(pool.token0, pool.token1, pool.fee)] = pool

    def get_pool(self, token_a: str, token_b: str, fee: int) -> IPool:
        key = self._key(token_a, token_b, fee)
        if key not in self._pools:
            raise InvalidRequestError(f"No pool for {token_a}/{token_b} at fee {fee}", fee=fee)
        return self._pools[key]

    @property
    def pools(self) -> List[IPool]:
        return list(self._pools.values())

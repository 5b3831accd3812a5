"""Conversion between the native asset and its wrapped token form."""

import logging

from lpswap.core.errors import InsufficientBalanceError, MonotonicityError
from lpswap.core.interfaces import IAssetLedger, NATIVE_TOKEN


class NativeAssetAdapter:
    """Keeps the engine's holdings in wrapped form between collection and payout.

    Pools may deliver native output even when the wrapped token was
    requested, so proceeds are reconciled by diffing the wrapped balance
    around the swap and wrapping only the shortfall.
    """

    def __init__(self, ledger: IAssetLedger, account: str):
        self.ledger = ledger
        self.account = account
        self.logger = logging.getLogger(__name__)

    @property
    def wrapped_native(self) -> str:
        return self.ledger.wrapped_native

    @staticmethod
    def is_native(token: str) -> bool:
        return token.lower() == NATIVE_TOKEN

    def to_pool_token(self, token: str) -> str:
        """Token address as the pool knows it."""
        return self.wrapped_native if self.is_native(token) else token

    def wrap_input(self, token: str, amount: int):
        if self.is_native(token) and amount > 0:
            self.ledger.wrap(self.account, amount)
            self.logger.debug(f"Wrapped {amount} native input")

    def wrapped_balance(self) -> int:
        return self.ledger.balance_of(self.wrapped_native, self.account)

    def reconcile_output(self, pool_token_out: str, wrapped_before: int, amount_out: int) -> int:
        """
        Make sure swap proceeds in the native asset are held wrapped.

        Args:
            pool_token_out: Output token as the pool knows it
            wrapped_before: Wrapped balance captured right before the swap
            amount_out: Output amount the pool reported

        Returns:
            Amount that had to be wrapped
        """
        if pool_token_out.lower() != self.wrapped_native.lower():
            return 0

        received = self.wrapped_balance() - wrapped_before
        if received > amount_out:
            raise MonotonicityError(
                f"Received {received} wrapped, pool reported {amount_out}",
                received=received,
                amount_out=amount_out
            )

        shortfall = amount_out - received
        if shortfall > 0:
            native_balance = self.ledger.balance_of(NATIVE_TOKEN, self.account)
            if native_balance < shortfall:
                raise InsufficientBalanceError(
                    f"Pool reported {amount_out} out but only {received + native_balance} arrived",
                    expected=amount_out,
                    received=received + native_balance
                )
            self.ledger.wrap(self.account, shortfall)
            self.logger.debug(f"Wrapped {shortfall} native proceeds")
        return shortfall

    def unwrap_for_payout(self, token: str, amount: int):
        if self.is_native(token) and amount > 0:
            self.ledger.unwrap(self.account, amount)

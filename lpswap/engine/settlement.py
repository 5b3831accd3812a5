"""Forwarding of spare amounts, rewards and refunds to their recipients."""

import logging
from typing import List

from lpswap.core.events import SpareSettled
from lpswap.core.interfaces import IAssetLedger, NATIVE_TOKEN, SettlementInstruction
from lpswap.engine.native import NativeAssetAdapter


class SettlementRouter:
    """Pays out of the engine account, unwrapping when the recipient expects native."""

    def __init__(self, ledger: IAssetLedger, native: NativeAssetAdapter, account: str):
        self.ledger = ledger
        self.native = native
        self.account = account
        self.logger = logging.getLogger(__name__)

    def pay(self, token: str, recipient: str, amount: int):
        """Transfer amount of token (as the requester named it) to recipient."""
        if amount == 0:
            return
        if self.native.is_native(token):
            self.native.unwrap_for_payout(token, amount)
            self.ledger.transfer(NATIVE_TOKEN, self.account, recipient, amount)
        else:
            self.ledger.transfer(token, self.account, recipient, amount)
        self.logger.debug(f"Paid {amount} of {token} to {recipient}")

    def settle(self, instruction: SettlementInstruction) -> List[SpareSettled]:
        """
        Forward both spare amounts of an instruction.

        Returns:
            One SpareSettled event per non-zero transfer; empty when the
            instruction was already settled
        """
        if instruction.settled:
            self.logger.debug("Instruction already settled")
            return []

        events = []
        legs = (
            (instruction.token_in, instruction.spare_in_recipient, instruction.spare_in),
            (instruction.token_out, instruction.spare_out_recipient, instruction.spare_out),
        )
        for token, recipient, amount in legs:
            if amount == 0:
                continue
            self.pay(token, recipient, amount)
            events.append(SpareSettled(token, recipient, amount))

        instruction.settled = True
        return events

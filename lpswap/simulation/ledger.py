"""In-memory asset ledger with native/wrapped conversion."""

import copy
import logging
from collections import defaultdict
from typing import Callable, Dict, Set, Tuple

from lpswap.core.errors import InsufficientBalanceError, TransferFailedError
from lpswap.core.interfaces import IAssetLedger, ITransactional, NATIVE_TOKEN

# Default address of the wrapped native token
WRAPPED_NATIVE = "0x4200000000000000000000000000000000000006"


class InMemoryLedger(IAssetLedger, ITransactional):
    """Balances and allowances for any number of tokens, keyed by lower-case address.

    Recipients can be marked as refusing transfers, and hooks can be attached
    to run arbitrary code when a recipient is paid.
    """

    def __init__(self, wrapped_native: str = WRAPPED_NATIVE):
        self._wrapped_native = wrapped_native.lower()
        self._balances: Dict[Tuple[str, str], int] = defaultdict(int)
        self._allowances: Dict[Tuple[str, str, str], int] = defaultdict(int)
        self.rejecting_recipients: Set[str] = set()
        self.transfer_hooks: Dict[str, Callable] = {}
        self.logger = logging.getLogger(__name__)

    @property
    def wrapped_native(self) -> str:
        return self._wrapped_native

    def mint(self, token: str, account: str, amount: int):
        """Credit an account out of thin air (test and simulation setup)."""
        self._balances[(token.lower(), account.lower())] += amount

    def balance_of(self, token: str, account: str) -> int:
        return self._balances.get((token.lower(), account.lower()), 0)

    def transfer(self, token: str, sender: str, recipient: str, amount: int):
        token, sender, recipient = token.lower(), sender.lower(), recipient.lower()
        if amount < 0:
            raise TransferFailedError(f"Negative transfer of {amount}")
        if recipient in self.rejecting_recipients:
            raise TransferFailedError(f"Recipient {recipient} rejected {amount} of {token}", recipient=recipient)

        balance = self._balances.get((token, sender), 0)
        if balance < amount:
            raise InsufficientBalanceError(
                f"{sender} holds {balance} of {token}, needs {amount}",
                token=token,
                account=sender,
                balance=balance,
                amount=amount
            )
        self._balances[(token, sender)] = balance - amount
        self._balances[(token, recipient)] += amount
        self.logger.debug(f"Transfer {amount} {token}: {sender} -> {recipient}")

        hook = self.transfer_hooks.get(recipient)
        if hook is not None:
            hook(token, sender, amount)

    def approve(self, token: str, owner: str, spender: str, amount: int):
        self._allowances[(token.lower(), owner.lower(), spender.lower())] = amount

    def allowance(self, token: str, owner: str, spender: str) -> int:
        return self._allowances.get((token.lower(), owner.lower(), spender.lower()), 0)

    def transfer_from(self, token: str, spender: str, owner: str, recipient: str, amount: int):
        allowed = self.allowance(token, owner, spender)
        if allowed < amount:
            raise InsufficientBalanceError(
                f"{spender} may move {allowed} of {token} from {owner}, needs {amount}",
                token=token,
                owner=owner,
                allowance=allowed,
                amount=amount
            )
        self.transfer(token, owner, recipient, amount)
        self._allowances[(token.lower(), owner.lower(), spender.lower())] = allowed - amount

    def wrap(self, account: str, amount: int):
        self._convert(NATIVE_TOKEN, self._wrapped_native, account, amount)

    def unwrap(self, account: str, amount: int):
        self._convert(self._wrapped_native, NATIVE_TOKEN, account, amount)

    def _convert(self, source: str, target: str, account: str, amount: int):
        account = account.lower()
        balance = self._balances.get((source, account), 0)
        if balance < amount:
            raise InsufficientBalanceError(
                f"{account} holds {balance} of {source}, cannot convert {amount}",
                token=source,
                account=account
            )
        self._balances[(source, account)] = balance - amount
        self._balances[(target, account)] += amount

    def snapshot(self):
        return copy.deepcopy((self._balances, self._allowances))

    def restore(self, snapshot):
        balances, allowances = copy.deepcopy(snapshot)
        self._balances = balances
        self._allowances = allowances

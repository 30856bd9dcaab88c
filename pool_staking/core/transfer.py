"""Value-transfer collaborators.

The ledger never holds balances itself; it asks a ``ValueTransfer`` to move
native currency or tokens between principals. ``InMemoryTransfer`` keeps
balances in dictionaries and is what tests, simulations and the CLI use.
"""
import copy
from contextlib import contextmanager
from typing import Callable, Dict, Iterator, List, Optional, Protocol
from loguru import logger

from .errors import InsufficientFundsError, TransferError

NATIVE = "native"

TransferHook = Callable[[Optional[str], str, str, int], None]


class ValueTransfer(Protocol):
    def transfer_native(self, sender: str, recipient: str, amount: int) -> None:
        ...

    def transfer_token(self, asset: str, sender: str, recipient: str, amount: int) -> None:
        ...

    def balance_of(self, principal: str, asset: Optional[str] = None) -> int:
        ...

    def atomic(self):
        """Context manager undoing transfers made inside it if it exits with an error."""
        ...


class InMemoryTransfer:
    """Dictionary-backed balances for native value and any number of tokens."""

    def __init__(self, balances: Optional[Dict[str, Dict[str, int]]] = None):
        # asset -> principal -> balance; native value lives under NATIVE
        self.balances: Dict[str, Dict[str, int]] = balances or {}
        self._hooks: List[TransferHook] = []

    def add_hook(self, hook: TransferHook) -> None:
        """Register a callback run after every successful transfer.

        Hooks stand in for recipient/token callbacks that hand control to
        third-party code in the middle of a ledger operation.
        """
        self._hooks.append(hook)

    def balance_of(self, principal: str, asset: Optional[str] = None) -> int:
        return self.balances.get(asset or NATIVE, {}).get(principal, 0)

    def mint(self, principal: str, amount: int, asset: Optional[str] = None) -> None:
        """Credit ``amount`` to ``principal`` out of thin air."""
        if amount <= 0:
            raise TransferError("Amount must be greater than zero")
        book = self.balances.setdefault(asset or NATIVE, {})
        book[principal] = book.get(principal, 0) + amount

    def transfer_native(self, sender: str, recipient: str, amount: int) -> None:
        self._move(None, sender, recipient, amount)

    def transfer_token(self, asset: str, sender: str, recipient: str, amount: int) -> None:
        if not asset:
            raise TransferError("Token transfer without an asset reference")
        self._move(asset, sender, recipient, amount)

    def _move(self, asset: Optional[str], sender: str, recipient: str, amount: int) -> None:
        if amount <= 0:
            raise TransferError("Amount must be greater than zero")

        book = self.balances.setdefault(asset or NATIVE, {})
        sender_balance = book.get(sender, 0)
        if sender_balance < amount:
            raise InsufficientFundsError(
                f"{sender} holds {sender_balance} {asset or NATIVE}, needs {amount}"
            )

        book[sender] = sender_balance - amount
        book[recipient] = book.get(recipient, 0) + amount
        logger.debug(f"Moved {amount} {asset or NATIVE} from {sender} to {recipient}")

        for hook in self._hooks:
            hook(asset, sender, recipient, amount)

    @contextmanager
    def atomic(self) -> Iterator[None]:
        saved = copy.deepcopy(self.balances)
        try:
            yield
        except BaseException:
            self.balances = saved
            raise

    def snapshot(self) -> Dict[str, Dict[str, int]]:
        return copy.deepcopy(self.balances)

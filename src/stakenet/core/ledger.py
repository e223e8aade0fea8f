"""
Balance Ledger

The staking state machine never moves currency itself. Payments and payouts
go through a BalanceLedger:

- debit(account, amount):  collect a payment from the account into escrow
                           (the network's "contract balance")
- credit(account, amount): pay out of escrow back to the account

InMemoryLedger is the reference implementation used by the CLI, the HTTP API
and the tests. It supports receive hooks, called after a credit lands, which
lets tests model an external receiver that calls back into the network.
"""

import logging
from abc import ABC, abstractmethod
from typing import Callable, Dict, List, Optional

from stakenet.core.errors import InsufficientBalance, InvalidAmount

logger = logging.getLogger(__name__)


class BalanceLedger(ABC):
    """Abstract credit/debit interface for account balances."""

    @abstractmethod
    def balance_of(self, account: str) -> int:
        """Spendable balance of an account."""

    @abstractmethod
    def debit(self, account: str, amount: int) -> None:
        """Move ``amount`` from the account into escrow."""

    @abstractmethod
    def credit(self, account: str, amount: int) -> None:
        """Move ``amount`` from escrow to the account."""

    @property
    @abstractmethod
    def escrow_balance(self) -> int:
        """Total currently held in escrow."""


class InMemoryLedger(BalanceLedger):
    """
    Dict-backed ledger.

    Usage:
        ledger = InMemoryLedger({"alice": 100})
        ledger.debit("alice", 10)     # alice=90, escrow=10
        ledger.credit("alice", 10)    # alice=100, escrow=0
    """

    def __init__(self, balances: Optional[Dict[str, int]] = None):
        self._balances: Dict[str, int] = dict(balances or {})
        self._escrow = 0
        self._receive_hooks: Dict[str, List[Callable[[str, int], None]]] = {}

    def balance_of(self, account: str) -> int:
        return self._balances.get(account, 0)

    @property
    def escrow_balance(self) -> int:
        return self._escrow

    def mint(self, account: str, amount: int) -> None:
        """Fund an account (test/bootstrap helper, not a protocol operation)."""
        if amount <= 0:
            raise InvalidAmount("Mint amount must be positive", {"amount": amount})
        self._balances[account] = self.balance_of(account) + amount

    def debit(self, account: str, amount: int) -> None:
        if amount <= 0:
            raise InvalidAmount("Debit amount must be positive", {"amount": amount})
        balance = self.balance_of(account)
        if balance < amount:
            raise InsufficientBalance(
                f"Balance {balance} cannot cover {amount}",
                {"account": account, "balance": balance, "amount": amount},
            )
        self._balances[account] = balance - amount
        self._escrow += amount
        logger.debug(f"Debited {amount} from {account[:16]}... (escrow={self._escrow})")

    def credit(self, account: str, amount: int) -> None:
        if amount <= 0:
            raise InvalidAmount("Credit amount must be positive", {"amount": amount})
        if self._escrow < amount:
            raise InsufficientBalance(
                f"Escrow {self._escrow} cannot cover payout of {amount}",
                {"account": account, "escrow": self._escrow, "amount": amount},
            )
        self._escrow -= amount
        self._balances[account] = self.balance_of(account) + amount
        logger.debug(f"Credited {amount} to {account[:16]}... (escrow={self._escrow})")

        for hook in list(self._receive_hooks.get(account, [])):
            try:
                hook(account, amount)
            except Exception as e:
                logger.error(f"Receive hook error for {account[:16]}...: {e}")

    def on_receive(self, account: str, hook: Callable[[str, int], None]) -> None:
        """
        Register a hook fired after ``account`` is credited.

        The hook runs synchronously inside credit(), exactly like an external
        receiver contract would. The credit has already landed when it runs,
        so hook failures are logged and do not undo the payout.
        """
        self._receive_hooks.setdefault(account, []).append(hook)

    def balances(self) -> Dict[str, int]:
        return dict(self._balances)

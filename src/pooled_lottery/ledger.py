from __future__ import annotations

import logging
import threading
from collections import defaultdict
from typing import Dict, Protocol, Set

from .errors import LotteryError, ValidationError
from .identities import normalize_identity
from .project_constants import BASE_UNITS_PER_COIN

log = logging.getLogger(__name__)


class LedgerError(LotteryError):
    """A transfer could not complete. Balances were left as they were."""


class InsufficientFunds(LedgerError, ValidationError):
    pass


class ValueLedger(Protocol):
    def open_account(self, identity: str) -> None: ...

    def has_account(self, identity: str) -> bool: ...

    def balance_of(self, identity: str) -> int: ...

    def credit(self, identity: str, amount: int) -> int: ...

    def transfer(self, sender: str, recipient: str, amount: int) -> None: ...


class InMemoryLedger:
    """
    Account book holding integer base-unit balances.

    Every transfer is all-or-nothing: either both sides move or an error is
    raised and neither does. Recipients can be blocked to simulate a payee
    that refuses or cannot receive value.
    """

    def __init__(self) -> None:
        self._balances: Dict[str, int] = defaultdict(int)
        self._blocked: Set[str] = set()
        self._lock = threading.Lock()

    def open_account(self, identity: str) -> None:
        with self._lock:
            self._balances.setdefault(normalize_identity(identity), 0)

    def has_account(self, identity: str) -> bool:
        with self._lock:
            return normalize_identity(identity) in self._balances

    def balance_of(self, identity: str) -> int:
        with self._lock:
            return self._balances.get(normalize_identity(identity), 0)

    def credit(self, identity: str, amount: int) -> int:
        """Mint value into an account (faucet / test funding)."""
        _check_amount(amount)
        ident = normalize_identity(identity)
        with self._lock:
            self._balances[ident] += amount
            log.debug("credit %s +%d -> %d", ident, amount, self._balances[ident])
            return self._balances[ident]

    def block(self, identity: str) -> None:
        with self._lock:
            self._blocked.add(normalize_identity(identity))

    def unblock(self, identity: str) -> None:
        with self._lock:
            self._blocked.discard(normalize_identity(identity))

    def transfer(self, sender: str, recipient: str, amount: int) -> None:
        _check_amount(amount)
        src = normalize_identity(sender)
        dst = normalize_identity(recipient)
        if src == dst:
            raise LedgerError(f"Cannot transfer from {src} to itself.")
        with self._lock:
            if dst in self._blocked:
                raise LedgerError(f"Recipient {dst} cannot receive transfers.")
            available = self._balances.get(src, 0)
            if available < amount:
                raise InsufficientFunds(
                    f"{src} holds {available}, needs {amount}."
                )
            self._balances[src] = available - amount
            self._balances[dst] += amount
            log.debug("transfer %s -> %s: %d", src, dst, amount)

    def total_supply(self) -> int:
        with self._lock:
            return sum(self._balances.values())


def _check_amount(amount: int) -> None:
    # bool is an int subclass; reject it explicitly
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise ValidationError(f"Amount must be an integer number of base units, got {amount!r}")
    if amount < 0:
        raise ValidationError(f"Amount must not be negative, got {amount}")


def to_coins(raw_amount: int) -> float:
    return round(raw_amount / BASE_UNITS_PER_COIN, 4)

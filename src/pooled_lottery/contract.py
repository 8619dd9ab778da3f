"""
The lottery state machine.

One LotteryState holds the roster and the pooled stake. Anyone may enter by
paying exactly the stake; only the manager (the creator) may settle, which
pays the whole pool to one entrant and reopens the lottery with an empty
roster. Every operation runs under the state's lock, so callers never see a
half-applied entry or settlement.
"""
from __future__ import annotations

import itertools
import logging
import threading
import time
from dataclasses import dataclass
from typing import List, Optional, Tuple

from .entropy import ClockEntropy, DrawContext, EntropySource, derive_index
from .errors import (
    AuthorizationError,
    EmptyRosterError,
    EntropyError,
    PayoutError,
    ValidationError,
)
from .identities import normalize_identity
from .ledger import InMemoryLedger, LedgerError, ValueLedger
from .project_constants import STAKE_AMOUNT

log = logging.getLogger(__name__)

_instance_ids = itertools.count(1)


@dataclass(frozen=True)
class Settlement:
    winner: str
    index: int
    payout: int
    players: Tuple[str, ...]
    seed: str
    seed_hash_hex: str
    seed_source: str
    settled_at: float


class LotteryState:
    def __init__(
        self,
        manager: str,
        ledger: Optional[ValueLedger] = None,
        entropy: Optional[EntropySource] = None,
        stake_amount: int = STAKE_AMOUNT,
        address: Optional[str] = None,
    ) -> None:
        if isinstance(stake_amount, bool) or not isinstance(stake_amount, int) or stake_amount <= 0:
            raise ValidationError(f"Stake must be a positive integer, got {stake_amount!r}")
        self._manager = normalize_identity(manager)
        self._stake_amount = stake_amount
        self._players: List[str] = []
        self._balance = 0
        self._lock = threading.RLock()
        self.ledger = ledger if ledger is not None else InMemoryLedger()
        self.entropy = entropy if entropy is not None else ClockEntropy()
        self.address = normalize_identity(address or f"lottery:{self._manager}:{next(_instance_ids)}")
        if self.address == self._manager or self.ledger.has_account(self.address):
            raise ValidationError(f"Account {self.address} is already in use on this ledger.")
        self.last_settlement: Optional[Settlement] = None
        self.ledger.open_account(self.address)
        log.info("Lottery %s created by %s (stake %d)", self.address, self._manager, stake_amount)

    @property
    def manager(self) -> str:
        return self._manager

    @property
    def stake_amount(self) -> int:
        return self._stake_amount

    @property
    def balance(self) -> int:
        with self._lock:
            return self._balance

    def enter(self, caller: str, value: int) -> None:
        """Register `caller` once, paying exactly the stake."""
        player = normalize_identity(caller)
        with self._lock:
            if player == self.address:
                raise ValidationError("The lottery cannot enter itself.")
            if isinstance(value, bool) or not isinstance(value, int) or value != self._stake_amount:
                log.warning("Rejected entry from %s: value %r != stake %d", player, value, self._stake_amount)
                raise ValidationError(
                    f"Entry requires exactly {self._stake_amount}, got {value!r}"
                )
            # raises before anything is recorded if the caller cannot pay
            self.ledger.transfer(player, self.address, value)
            self._players.append(player)
            self._balance += value
            log.info("Entry #%d: %s", len(self._players), player)

    def get_players(self, caller: Optional[str] = None) -> Tuple[str, ...]:
        with self._lock:
            return tuple(self._players)

    def pick_winner(self, caller: str) -> Settlement:
        """
        Pay the whole pool to one entrant and reset the roster.

        Raises AuthorizationError for anyone but the manager, EmptyRosterError
        when nobody has entered, EntropyError when no seed is available and
        PayoutError when the ledger refuses the transfer. In every failure
        case the roster and balance are left untouched.
        """
        try:
            who = normalize_identity(caller)
        except ValidationError:
            log.warning("Rejected settlement from invalid caller %r", caller)
            raise AuthorizationError(f"Only the manager may pick a winner, not {caller!r}")
        with self._lock:
            if who != self._manager:
                log.warning("Rejected settlement from non-manager %s", who)
                raise AuthorizationError(f"Only the manager may pick a winner, not {who}")
            if not self._players:
                raise EmptyRosterError("No entrants to pick a winner from.")

            players = tuple(self._players)
            pool = self._balance
            now = time.time()
            context = DrawContext(manager=self._manager, players=players, balance=pool, timestamp=now)
            seed = self.entropy.seed(context)
            if not isinstance(seed, str) or not seed:
                raise EntropyError(f"Entropy source {self.entropy.name} returned no seed.")
            index, seed_hash_hex = derive_index(seed, len(players))
            winner = players[index]

            try:
                self.ledger.transfer(self.address, winner, pool)
            except LedgerError as e:
                log.error("Payout of %d to %s failed: %s", pool, winner, e)
                raise PayoutError(f"Could not pay {pool} to {winner}: {e}") from e

            self._players.clear()
            self._balance = 0
            settlement = Settlement(
                winner=winner,
                index=index,
                payout=pool,
                players=players,
                seed=seed,
                seed_hash_hex=seed_hash_hex,
                seed_source=self.entropy.name,
                settled_at=now,
            )
            self.last_settlement = settlement
            log.info("Winner %s (index %d of %d) paid %d", winner, index, len(players), pool)
            return settlement

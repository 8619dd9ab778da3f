"""
Seed providers for winner selection.

A source only has to hand back a string. The winner index is always derived
the same way from that string (see derive_index), so any settlement can be
re-checked from its recorded seed and roster. None of these sources is
cryptographically secure; they are meant to be hard for an entrant to steer,
not impossible.
"""
from __future__ import annotations

import hashlib
import time
from dataclasses import dataclass
from typing import Callable, Optional, Protocol, Tuple

from .errors import EmptyRosterError, EntropyError
from .rpc import RpcClient, load_seed_from_block_feed_file


@dataclass(frozen=True)
class DrawContext:
    manager: str
    players: Tuple[str, ...]
    balance: int
    timestamp: float


class EntropySource(Protocol):
    name: str

    def seed(self, context: DrawContext) -> str: ...


def derive_index(seed: str, count: int) -> Tuple[int, str]:
    """Returns (index in [0, count), sha256 hex of the seed)."""
    if count <= 0:
        raise EmptyRosterError("Cannot pick an index from an empty roster.")
    seed_hash_hex = hashlib.sha256(seed.encode("utf-8")).hexdigest()
    return int(seed_hash_hex, 16) % count, seed_hash_hex


class FixedEntropy:
    """Always returns the same seed. For tests and replays."""

    name = "fixed"

    def __init__(self, seed: str) -> None:
        self._seed = seed

    def seed(self, context: DrawContext) -> str:
        return self._seed


class ClockEntropy:
    """
    Mixes the current time with the manager and roster, the same ingredients
    an on-chain lottery takes from block metadata.
    """

    name = "clock"

    def __init__(self, clock: Callable[[], int] = time.time_ns) -> None:
        self._clock = clock

    def seed(self, context: DrawContext) -> str:
        return "|".join(
            [str(self._clock()), context.manager, str(context.balance), ",".join(context.players)]
        )


class BlockEntropy:
    """Uses the hash of the latest block reported by a JSON-RPC node."""

    name = "block"

    def __init__(self, rpc: RpcClient, block: int | str = "latest") -> None:
        self.rpc = rpc
        self.block = block
        self.last_block_number: Optional[int] = None

    def seed(self, context: DrawContext) -> str:
        number, blockhash = self.rpc.get_blockhash(self.block)
        self.last_block_number = number
        return blockhash


class FileEntropy:
    """Reads a block hash from a saved block feed file."""

    name = "file"

    def __init__(self, path: str, block_hint: Optional[int] = None) -> None:
        self.path = path
        self.block_hint = block_hint

    def seed(self, context: DrawContext) -> str:
        try:
            return load_seed_from_block_feed_file(self.path, block_hint=self.block_hint)
        except OSError as e:
            raise EntropyError(f"Could not read block feed file {self.path}: {e}") from e

from __future__ import annotations

import os
from dataclasses import dataclass
from dotenv import load_dotenv

from .project_constants import DEFAULT_STARTING_BALANCE

ENTROPY_CHOICES = ("clock", "block", "file")


@dataclass(frozen=True)
class Settings:
    rpc_url: str | None = None
    entropy: str = "clock"
    block_feed_file: str | None = None
    starting_balance: int = DEFAULT_STARTING_BALANCE

    @staticmethod
    def from_env(
        rpc_url_override: str | None = None,
        entropy_override: str | None = None,
        block_feed_file_override: str | None = None,
    ) -> "Settings":
        load_dotenv()

        # --rpc-url wins over RPC_URL
        rpc_url = rpc_url_override or os.getenv("RPC_URL", "").strip() or None

        entropy = (entropy_override or os.getenv("LOTTERY_ENTROPY", "").strip() or "clock").lower()
        if entropy not in ENTROPY_CHOICES:
            raise RuntimeError(
                f"Unknown LOTTERY_ENTROPY {entropy!r}; expected one of {', '.join(ENTROPY_CHOICES)}."
            )

        block_feed_file = block_feed_file_override or os.getenv("LOTTERY_BLOCK_FEED_FILE", "").strip() or None

        raw_balance = os.getenv("LOTTERY_STARTING_BALANCE", "").strip()
        try:
            starting_balance = int(raw_balance) if raw_balance else DEFAULT_STARTING_BALANCE
        except ValueError:
            raise RuntimeError(
                f"LOTTERY_STARTING_BALANCE must be an integer amount of base units, got {raw_balance!r}."
            )

        if entropy == "block" and not rpc_url:
            raise RuntimeError(
                "Block entropy needs an RPC endpoint. Set RPC_URL in .env or pass --rpc-url."
            )
        if entropy == "file" and not block_feed_file:
            raise RuntimeError(
                "File entropy needs LOTTERY_BLOCK_FEED_FILE (or --block-feed-file)."
            )

        return Settings(
            rpc_url=rpc_url,
            entropy=entropy,
            block_feed_file=block_feed_file,
            starting_balance=starting_balance,
        )

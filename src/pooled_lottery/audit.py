from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any, Dict

from .contract import LotteryState, Settlement
from .entropy import derive_index
from .errors import LotteryError


class AuditMismatch(LotteryError):
    pass


def build_audit(state: LotteryState, settlement: Settlement) -> Dict[str, Any]:
    # Entrants are stored in entry order so anyone can re-run the draw.
    return {
        "metadata": {
            "tool": "pooled-lottery",
            "version": "1.0.0",
            "generated_at_utc": datetime.now(timezone.utc).isoformat(),
            "settled_at_utc": datetime.fromtimestamp(settlement.settled_at, timezone.utc).isoformat(),
            "contract": state.address,
            "manager": state.manager,
            "stake_amount": state.stake_amount,
            "seed": settlement.seed,
            "seed_source": settlement.seed_source,
            "seed_hash_hex": settlement.seed_hash_hex,
            "winning_index": settlement.index,
        },
        "winner": {
            "address": settlement.winner,
            "payout": settlement.payout,
        },
        "all_entrants": list(settlement.players),
    }


def write_audit(path: str, audit: Dict[str, Any]) -> None:
    with open(path, "w", encoding="utf-8") as f:
        json.dump(audit, f, indent=2)


def verify_audit(audit_path: str) -> Dict[str, Any]:
    with open(audit_path, "r", encoding="utf-8") as f:
        audit = json.load(f)

    meta = audit["metadata"]
    seed = meta["seed"]
    stake = int(meta["stake_amount"])
    expected_index = int(meta["winning_index"])
    entrants = list(audit["all_entrants"])

    index, seed_hash_hex = derive_index(seed, len(entrants))
    if seed_hash_hex != meta["seed_hash_hex"]:
        raise AuditMismatch(
            f"Seed hash mismatch: audit={meta['seed_hash_hex']} recomputed={seed_hash_hex}"
        )
    if index != expected_index:
        raise AuditMismatch(
            f"Winning index mismatch: audit={expected_index} recomputed={index}"
        )

    winner = entrants[index]
    winner_expected = audit["winner"]["address"]
    if winner != winner_expected:
        raise AuditMismatch(f"Winner mismatch: audit={winner_expected} recomputed={winner}")

    pool = stake * len(entrants)
    payout = int(audit["winner"]["payout"])
    if payout != pool:
        raise AuditMismatch(f"Payout mismatch: audit={payout} recomputed={pool}")

    return {
        "ok": True,
        "seed_hash_hex": seed_hash_hex,
        "winner": winner,
        "winning_index": index,
        "entrants": len(entrants),
        "payout": pool,
    }

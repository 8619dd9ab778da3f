from __future__ import annotations

import argparse
import logging
from typing import List, Optional, Tuple

from .audit import build_audit, verify_audit, write_audit
from .config import ENTROPY_CHOICES, Settings
from .contract import LotteryState
from .entropy import BlockEntropy, ClockEntropy, DrawContext, EntropySource, FileEntropy
from .errors import LotteryError
from .identities import load_identities, normalize_identity, parse_identity_list, unique_identities
from .ledger import InMemoryLedger, to_coins
from .project_constants import STAKE_AMOUNT
from .rpc import RpcClient

log = logging.getLogger("lottery")


def setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="%(levelname)s: %(message)s")


def load_settings(args: argparse.Namespace) -> Settings:
    return Settings.from_env(
        rpc_url_override=args.rpc_url,
        entropy_override=args.entropy,
        block_feed_file_override=args.block_feed_file,
    )


def make_entropy(
    settings: Settings, args: argparse.Namespace
) -> Tuple[EntropySource, Optional[RpcClient]]:
    """Returns the entropy source and the RPC client to close afterwards, if any."""
    if settings.entropy == "block":
        rpc = RpcClient(settings.rpc_url, timeout_s=args.timeout)
        block = args.block if args.block is not None else "latest"
        return BlockEntropy(rpc, block=block), rpc
    if settings.entropy == "file":
        return FileEntropy(settings.block_feed_file, block_hint=args.block), None
    return ClockEntropy(), None


def cmd_play(args: argparse.Namespace) -> int:
    settings = load_settings(args)
    manager = normalize_identity(args.manager)

    if args.players:
        players = parse_identity_list(args.players)
    else:
        players = load_identities(args.players_file)
    if not players:
        raise SystemExit("No players to enter. Pass --players or --players-file.")

    ledger = InMemoryLedger()
    for ident in unique_identities([manager] + players):
        ledger.credit(ident, settings.starting_balance)

    entropy, rpc = make_entropy(settings, args)
    try:
        state = LotteryState(manager, ledger=ledger, entropy=entropy)
        for player in players:
            state.enter(player, state.stake_amount)
        log.info("Entrants : %d", len(state.get_players()))
        log.info("Pool     : %s", to_coins(state.balance))
        settlement = state.pick_winner(manager)
    finally:
        if rpc is not None:
            rpc.close()

    audit = build_audit(state, settlement)
    write_audit(args.out, audit)

    print("========================================")
    print("POOLED LOTTERY SETTLEMENT")
    print("========================================")
    print(f"Contract      : {state.address}")
    print(f"Manager       : {state.manager}")
    print(f"Entrants      : {len(settlement.players)}")
    print(f"Seed source   : {settlement.seed_source}")
    print(f"Seed SHA-256  : {settlement.seed_hash_hex}")
    print("----------------------------------------")
    print("WINNER")
    print(f"Address       : {settlement.winner}")
    print(f"Index         : {settlement.index}")
    print(f"Payout        : {to_coins(settlement.payout)}")
    print(f"New balance   : {to_coins(ledger.balance_of(settlement.winner))}")
    print("----------------------------------------")
    print(f"Wrote audit: {args.out}")
    return 0


def cmd_verify(args: argparse.Namespace) -> int:
    result = verify_audit(args.audit)
    print("AUDIT VERIFIED")
    print(f"Winner        : {result['winner']}")
    print(f"Winning index : {result['winning_index']}")
    print(f"Entrants      : {result['entrants']}")
    print(f"Payout        : {to_coins(result['payout'])}")
    print(f"Seed SHA-256  : {result['seed_hash_hex']}")
    return 0


def cmd_seed(args: argparse.Namespace) -> int:
    """Shows the seed the configured source would hand to a settlement right now."""
    settings = load_settings(args)
    entropy, rpc = make_entropy(settings, args)
    try:
        seed = entropy.seed(DrawContext(manager="", players=(), balance=0, timestamp=0.0))
    finally:
        if rpc is not None:
            rpc.close()
    print(f"Source : {entropy.name}")
    print(f"Seed   : {seed}")
    if isinstance(entropy, BlockEntropy) and entropy.last_block_number is not None:
        print(f"Block  : {entropy.last_block_number}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="pooled-lottery",
        description=f"Fixed-stake pooled lottery ({to_coins(STAKE_AMOUNT)} per entry).",
    )
    p.add_argument("--verbose", action="store_true", help="Enable debug logging.")
    p.add_argument("--rpc-url", default=None, help="Override RPC URL (else use env).")
    p.add_argument("--timeout", type=float, default=60.0, help="RPC timeout seconds.")
    p.add_argument(
        "--entropy",
        choices=ENTROPY_CHOICES,
        default=None,
        help="Seed source (else LOTTERY_ENTROPY, default clock).",
    )
    p.add_argument(
        "--block-feed-file",
        default=None,
        help=(
            "Path to a block feed file to source the seed (block hash). "
            "Can be raw string or JSON containing the hash."
        ),
    )
    p.add_argument("--block", type=int, default=None, help="Block number to seed from.")

    sub = p.add_subparsers(dest="cmd", required=True)

    play = sub.add_parser("play", help="Enter players, settle, and write an audit JSON.")
    play.add_argument("--manager", required=True, help="Identity that creates and settles.")
    group = play.add_mutually_exclusive_group(required=True)
    group.add_argument("--players", help="Comma separated identities, one entry each.")
    group.add_argument("--players-file", help="File with one identity per line.")
    play.add_argument("--out", default="audit.json", help="Audit output JSON path.")
    play.set_defaults(func=cmd_play)

    v = sub.add_parser("verify", help="Verify an existing audit.json deterministically.")
    v.add_argument("--audit", required=True, help="Path to audit.json.")
    v.set_defaults(func=cmd_verify)

    s = sub.add_parser("seed", help="Print the seed the configured source provides.")
    s.set_defaults(func=cmd_seed)

    return p


def main(argv: Optional[List[str]] = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(args.verbose)
    try:
        code = args.func(args)
    except LotteryError as e:
        log.error("%s", e)
        code = 1
    raise SystemExit(code)

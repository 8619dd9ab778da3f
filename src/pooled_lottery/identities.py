from __future__ import annotations

from typing import Iterable, List

from .errors import ValidationError


def normalize_identity(identity: str) -> str:
    """
    Identities are opaque strings. Hex account addresses (0x...) are
    lower-cased so the same account always compares equal.
    """
    if not isinstance(identity, str):
        raise ValidationError(f"Identity must be a string, got {type(identity).__name__}")
    ident = identity.strip()
    if not ident:
        raise ValidationError("Identity must not be empty.")
    if ident[:2].lower() == "0x":
        ident = "0x" + ident[2:].lower()
    return ident


def parse_identity_list(raw: str) -> List[str]:
    """Comma separated identities, e.g. from a CLI flag. Order and repeats are kept."""
    return [normalize_identity(p) for p in raw.split(",") if p.strip()]


def load_identities(path: str | None) -> List[str]:
    """
    One identity per line. Blank lines and '#' comments are skipped.
    Order and duplicates are kept: each line is one entry.
    """
    if not path:
        return []
    out: List[str] = []
    with open(path, "r", encoding="utf-8") as f:
        for line in f:
            w = line.strip()
            if not w or w.startswith("#"):
                continue
            out.append(normalize_identity(w))
    return out


def unique_identities(identities: Iterable[str]) -> List[str]:
    # first-seen order
    seen: dict[str, None] = {}
    for ident in identities:
        seen.setdefault(ident, None)
    return list(seen)

"""
Shared fixtures: a funded ledger and a lottery with a deterministic seed.
"""

import pytest

from pooled_lottery.contract import LotteryState
from pooled_lottery.entropy import FixedEntropy
from pooled_lottery.ledger import InMemoryLedger
from pooled_lottery.project_constants import BASE_UNITS_PER_COIN

ACCOUNTS = [
    "0x" + "a" * 40,
    "0x" + "b" * 40,
    "0x" + "c" * 40,
    "0x" + "d" * 40,
]


@pytest.fixture
def accounts():
    return list(ACCOUNTS)


@pytest.fixture
def ledger(accounts):
    book = InMemoryLedger()
    for account in accounts:
        book.credit(account, 100 * BASE_UNITS_PER_COIN)
    return book


@pytest.fixture
def lottery(accounts, ledger):
    return LotteryState(accounts[0], ledger=ledger, entropy=FixedEntropy("seed"))

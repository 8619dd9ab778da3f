"""
Public rules of the pooled lottery.

Every entry must transfer exactly STAKE_AMOUNT base units.
Changing these values changes who may enter and MUST be publicly announced.
"""

# Ether-style accounting: 18 decimals, amounts handled as integer wei
BASE_DECIMALS = 18
BASE_UNITS_PER_COIN = 10**BASE_DECIMALS

# 0.01 coin per entry (raw units)
STAKE_AMOUNT = BASE_UNITS_PER_COIN // 100

# Default funding for simulated accounts created by the CLI
DEFAULT_STARTING_BALANCE = 1 * BASE_UNITS_PER_COIN

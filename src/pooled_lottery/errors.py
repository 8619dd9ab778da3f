from __future__ import annotations


class LotteryError(Exception):
    """Base class for every rejection raised by the lottery."""


class ValidationError(LotteryError):
    """An entry or identity failed validation. Nothing was changed."""


class AuthorizationError(LotteryError):
    """A privileged operation was attempted by someone other than the manager."""


class PayoutError(LotteryError):
    """The pool could not be paid to the winner. The roster was kept."""


class EmptyRosterError(LotteryError):
    """Settlement was requested before anyone entered."""


class EntropyError(LotteryError):
    """The entropy source could not provide a seed."""

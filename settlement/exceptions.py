"""
Error taxonomy for pick grading.

Only SelectionParseError is expected to be caught close to where it is
raised (the result determiner turns it into a void result).  The rest
are caught per pick by the grading orchestrator and counted as errors,
except LedgerError, which is only logged.
"""


class GradingError(Exception):
    """Base class for every grading failure."""


class SelectionParseError(GradingError):
    """Selection text does not follow the grammar for its bet type."""


class MissingMarketDataError(GradingError):
    """No closing lines are available for a game."""


class InvalidLegError(GradingError):
    """A parlay leg carries missing or non-positive odds."""


class PersistenceError(GradingError):
    """Writing a graded pick to the store failed."""


class LedgerError(GradingError):
    """Appending to the pick ledger failed."""

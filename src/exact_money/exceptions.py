"""Exceptions raised by exact_money.

Ordinary validation failures (infinite values, non-positive denominators,
mismatching metadata on import) are reported as ``None`` by the builders.
The classes below cover the cases that are programming errors: mixing
currencies or scales, and asking for a scale that was never configured.
"""


class MoneyError(Exception):
    """Base class for every error exact_money raises deliberately."""
    pass


class CurrencyMismatchError(MoneyError, TypeError):
    """Raised when combining or comparing values of different currencies."""
    pass


class ScaleMismatchError(MoneyError, TypeError):
    """Raised when combining discrete values expressed in different scales."""
    pass


class UnknownScaleError(MoneyError, LookupError):
    """Raised when no scale is associated with a (currency, unit) pair."""
    pass


class NoCanonicalUnitError(MoneyError, LookupError):
    """
    Raised when the canonical scale is requested for a currency that has
    no obvious smallest unit (precious metals, for example).
    """

    def __init__(self, currency: str):
        self.currency = currency
        super().__init__(
            f"{currency} is not a currency with a canonical smallest unit, "
            f"be explicit about the currency unit you want to use."
        )

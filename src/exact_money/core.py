"""
core.py — Dense and discrete monetary values

================================================================================
DESIGN PRINCIPLES
================================================================================

1. TWO REPRESENTATIONS
   Dense: exact rational amount (Fraction). Half of USD 3.41 is USD 1.705,
   which no number of cents can represent, yet multiplying it by 4 gives
   USD 6.82 again. Dense lets calculations run without premature rounding.
   Discrete: integer amount of a unit (Scale), what a ledger stores.

2. NO FLOATING POINT
   All arithmetic is Fraction/int. Floats and Decimals are accepted only at
   construction, converted exactly, and rejected if infinite or NaN.

3. CURRENCY TAGS ARE CHECKED AT RUNTIME
   Every value carries its currency (and, for Discrete, its scale).
   Operations between different tags raise CurrencyMismatchError or
   ScaleMismatchError (both TypeError).

4. ROUNDING NEVER LOSES MONEY
   Dense -> Discrete returns (discrete, leftover). The invariant
       x == discrete.to_dense() + leftover     (leftover None means 0)
   holds for every policy.

5. IMMUTABILITY
   Frozen dataclasses. Each operation returns a new instance. No shared
   state, safe for concurrent use.

================================================================================
FAILURE MODES
================================================================================

Validating builders (dense, exchange_rate, from_str) return None on invalid
input. Mixing currencies or scales is a programming error and raises.

================================================================================
"""

from __future__ import annotations
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from fractions import Fraction
from numbers import Rational
from typing import Any, Optional, Tuple
import math
import re

from .exceptions import CurrencyMismatchError, ScaleMismatchError
from .units import Scale, ScaleRegistry


_DENSE_RE = re.compile(r"Dense (-?\d+)/(\d+)")
_DISCRETE_RE = re.compile(r"Discrete (-?\d+)")


def _to_fraction(value: Any) -> Optional[Fraction]:
    """
    Exact conversion to Fraction. None for infinite, NaN or non-numeric input.

    Floats are converted to their exact binary value, no decimal rounding.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, Rational):
        return Fraction(value)
    if isinstance(value, Decimal):
        return Fraction(value) if value.is_finite() else None
    if isinstance(value, float):
        return Fraction(value) if math.isfinite(value) else None
    return None


def _as_scalar(value: Any, operation: str) -> Fraction:
    """Scalar factor for * and /: int or Fraction only."""
    if isinstance(value, Rational) and not isinstance(value, bool):
        return Fraction(value)
    raise TypeError(
        f"Dense {operation} is only defined for int or Fraction scalars, "
        f"not {type(value).__name__}. Convert floats explicitly with dense()."
    )


def _check_currency(value: Any) -> str:
    if not isinstance(value, str):
        raise TypeError(f"currency must be str, not {type(value).__name__}")
    return value


# ==============================================================================
# DENSE
# ==============================================================================

@dataclass(frozen=True, slots=True, eq=False)
class Dense:
    """
    Exact rational monetary amount in a currency.

    INVARIANTS:
    1. _amount is always a finite Fraction, in lowest terms
    2. Arithmetic between different currencies raises CurrencyMismatchError

    USAGE:
        price = dense(Fraction(12345, 100), "USD")     # USD 123.45
        half = price / 2                               # USD 61.725, exact
        cents, leftover = half.round(Scale(100, 1))    # 6172 cents, USD 0.005
    """
    _amount: Fraction
    _currency: str

    def __post_init__(self) -> None:
        _check_currency(self._currency)
        if not isinstance(self._amount, Fraction):
            if isinstance(self._amount, int) and not isinstance(self._amount, bool):
                object.__setattr__(self, "_amount", Fraction(self._amount))
            else:
                raise TypeError(
                    f"Dense amount must be Fraction or int, not {type(self._amount).__name__}. "
                    f"Use dense() to convert other numbers."
                )

    # -------------------------------------------------------------------------
    # Constructors
    # -------------------------------------------------------------------------

    @classmethod
    def zero(cls, currency: str) -> Dense:
        return cls(_amount=Fraction(0), _currency=currency)

    @classmethod
    def from_discrete(cls, value: Discrete) -> Dense:
        """Exact conversion: amount / scale. Always succeeds."""
        if not isinstance(value, Discrete):
            raise TypeError(f"Expected Discrete, got {type(value).__name__}")
        return cls(
            _amount=Fraction(value.amount) / value.scale.value,
            _currency=value.currency,
        )

    @classmethod
    def from_str(cls, text: str, currency: str) -> Optional[Dense]:
        """
        Parse the rendering produced by str(): "Dense <num>/<den>".

        Returns None on malformed text or a zero denominator.
        """
        match = _DENSE_RE.fullmatch(text.strip()) if isinstance(text, str) else None
        if match is None:
            return None
        numerator, denominator = int(match.group(1)), int(match.group(2))
        if denominator == 0:
            return None
        return cls(_amount=Fraction(numerator, denominator), _currency=currency)

    # -------------------------------------------------------------------------
    # Rounding into Discrete
    # -------------------------------------------------------------------------

    def round(self, scale: Scale) -> Tuple[Discrete, Optional[Dense]]:
        """Nearest representable amount, ties to even. See round_dense()."""
        return round_dense(self, scale, RoundingMode.HALF_EVEN)

    def ceiling(self, scale: Scale) -> Tuple[Discrete, Optional[Dense]]:
        """Smallest representable amount >= self; leftover is negative if any."""
        return round_dense(self, scale, RoundingMode.CEILING)

    def floor(self, scale: Scale) -> Tuple[Discrete, Optional[Dense]]:
        """Largest representable amount <= self; leftover is positive if any."""
        return round_dense(self, scale, RoundingMode.FLOOR)

    def truncate(self, scale: Scale) -> Tuple[Discrete, Optional[Dense]]:
        """Towards zero: floor for positive amounts, ceiling for negative ones."""
        return round_dense(self, scale, RoundingMode.TRUNCATE)

    # -------------------------------------------------------------------------
    # Arithmetic
    # -------------------------------------------------------------------------

    def _check_same_currency(self, other: Any, operation: str) -> None:
        if not isinstance(other, Dense):
            raise TypeError(
                f"Operation not allowed: Dense {operation} {type(other).__name__}. "
                f"Use dense() to build a Dense first."
            )
        if self._currency != other._currency:
            raise CurrencyMismatchError(
                f"Different currencies: {self._currency} {operation} {other._currency}. "
                f"Exchange explicitly first."
            )

    def __add__(self, other: Dense) -> Dense:
        self._check_same_currency(other, "+")
        return Dense(_amount=self._amount + other._amount, _currency=self._currency)

    def __sub__(self, other: Dense) -> Dense:
        self._check_same_currency(other, "-")
        return Dense(_amount=self._amount - other._amount, _currency=self._currency)

    def __neg__(self) -> Dense:
        return Dense(_amount=-self._amount, _currency=self._currency)

    def __pos__(self) -> Dense:
        return self

    def __abs__(self) -> Dense:
        return Dense(_amount=abs(self._amount), _currency=self._currency)

    def __mul__(self, factor: Any) -> Dense:
        """
        Scalar product by int or Fraction.

        Dense * Dense is not defined: the product of two amounts is not money.
        """
        if isinstance(factor, Dense):
            raise TypeError("Dense * Dense is not defined. Multiply by a scalar.")
        return Dense(_amount=self._amount * _as_scalar(factor, "*"), _currency=self._currency)

    def __rmul__(self, factor: Any) -> Dense:
        return self.__mul__(factor)

    def __truediv__(self, divisor: Any) -> Dense:
        if isinstance(divisor, Dense):
            raise TypeError("Dense / Dense is not defined. Divide by a scalar.")
        scalar = _as_scalar(divisor, "/")
        if scalar == 0:
            raise ZeroDivisionError("Cannot divide Dense by zero")
        return Dense(_amount=self._amount / scalar, _currency=self._currency)

    def sign(self) -> int:
        """-1, 0 or 1."""
        return (self._amount > 0) - (self._amount < 0)

    # -------------------------------------------------------------------------
    # Comparison
    # -------------------------------------------------------------------------

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Dense):
            return self._amount == other._amount and self._currency == other._currency
        return NotImplemented

    def __hash__(self) -> int:
        return hash((self._amount, self._currency))

    def __lt__(self, other: Dense) -> bool:
        self._check_same_currency(other, "<")
        return self._amount < other._amount

    def __le__(self, other: Dense) -> bool:
        self._check_same_currency(other, "<=")
        return self._amount <= other._amount

    def __gt__(self, other: Dense) -> bool:
        self._check_same_currency(other, ">")
        return self._amount > other._amount

    def __ge__(self, other: Dense) -> bool:
        self._check_same_currency(other, ">=")
        return self._amount >= other._amount

    # -------------------------------------------------------------------------
    # Properties and output
    # -------------------------------------------------------------------------

    @property
    def amount(self) -> Fraction:
        """Exact rational value."""
        return self._amount

    @property
    def currency(self) -> str:
        return self._currency

    def to_fraction(self) -> Fraction:
        return self._amount

    def is_zero(self) -> bool:
        return self._amount == 0

    def is_positive(self) -> bool:
        return self._amount > 0

    def is_negative(self) -> bool:
        return self._amount < 0

    def __str__(self) -> str:
        return f"Dense {self._amount.numerator}/{self._amount.denominator}"

    def __repr__(self) -> str:
        return f"Dense({self._currency!r}, {self._amount.numerator}/{self._amount.denominator})"


def dense(value: Any, currency: str) -> Optional[Dense]:
    """
    Build a Dense from an int, Fraction, Decimal or float.

    Returns None if the value is infinite, NaN, or not a number. Otherwise
    the value is wrapped exactly, without rounding.

    Example, USD 12.52316:
        dense(Fraction(1252316, 100000), "USD")
    """
    amount = _to_fraction(value)
    if amount is None:
        return None
    return Dense(_amount=amount, _currency=_check_currency(currency))


# ==============================================================================
# DISCRETE
# ==============================================================================

@dataclass(frozen=True, slots=True, eq=False)
class Discrete:
    """
    Integer amount of a currency unit.

    Discrete("USD", Scale(100, 1), 2105) is USD 21.05 counted in cents.

    INVARIANTS:
    1. _amount is always int
    2. _scale is always a valid Scale (checked where the Scale is built)
    3. Operations require identical currency and scale

    There is deliberately no division: dividing an integer amount of cents
    by an arbitrary number does not give an integer amount of cents.
    Convert to Dense with to_dense() and divide there.
    """
    _amount: int
    _currency: str
    _scale: Scale

    # Maximum parts for distribution (DoS protection)
    MAX_DISTRIBUTION_PARTS = 10_000

    def __post_init__(self) -> None:
        _check_currency(self._currency)
        if not isinstance(self._amount, int) or isinstance(self._amount, bool):
            raise TypeError(f"Discrete amount must be int, not {type(self._amount).__name__}")
        if not isinstance(self._scale, Scale):
            raise TypeError(f"Discrete scale must be Scale, not {type(self._scale).__name__}")

    # -------------------------------------------------------------------------
    # Constructors
    # -------------------------------------------------------------------------

    @classmethod
    def of(cls, amount: int, currency: str, scale: Scale) -> Discrete:
        return cls(_amount=amount, _currency=currency, _scale=scale)

    @classmethod
    def of_unit(
        cls,
        amount: int,
        currency: str,
        unit: str,
        registry: ScaleRegistry,
    ) -> Discrete:
        """
        Amount of a named unit, resolved through registry.

        Passing the currency as unit uses its canonical scale.

        Raises:
            UnknownScaleError, NoCanonicalUnitError: see ScaleRegistry.scale()
        """
        return cls(_amount=amount, _currency=currency, _scale=registry.scale(currency, unit))

    @classmethod
    def zero(cls, currency: str, scale: Scale) -> Discrete:
        return cls(_amount=0, _currency=currency, _scale=scale)

    @classmethod
    def from_str(cls, text: str, currency: str, scale: Scale) -> Optional[Discrete]:
        """Parse the rendering produced by str(): "Discrete <int>"."""
        match = _DISCRETE_RE.fullmatch(text.strip()) if isinstance(text, str) else None
        if match is None:
            return None
        return cls(_amount=int(match.group(1)), _currency=currency, _scale=scale)

    # -------------------------------------------------------------------------
    # Conversion
    # -------------------------------------------------------------------------

    def to_dense(self) -> Dense:
        """Exact Dense value: amount / scale."""
        return Dense.from_discrete(self)

    def retag(self, scale: Scale) -> Discrete:
        """
        Same amount, labelled with an equivalent scale (e.g. 100/1 -> 200/2).

        No arithmetic happens: the integer amount is kept as is.

        Raises:
            ScaleMismatchError: if scale is not numerically equal to self.scale
        """
        if not self._scale.is_equivalent(scale):
            raise ScaleMismatchError(
                f"Cannot retag {self._currency} from scale {self._scale} to {scale}: "
                f"the scales are not equivalent"
            )
        return Discrete(_amount=self._amount, _currency=self._currency, _scale=scale)

    # -------------------------------------------------------------------------
    # Distribution
    # -------------------------------------------------------------------------

    def distribute(self, n: int) -> list[Discrete]:
        """
        Split into n parts whose sum is exactly self.

        Algorithm: largest remainder. The first (amount mod n) parts get
        one extra unit.

        Raises:
            ValueError: if n <= 0 or n > MAX_DISTRIBUTION_PARTS
        """
        if not isinstance(n, int) or n <= 0:
            raise ValueError(f"n must be a positive int, got: {n}")
        if n > self.MAX_DISTRIBUTION_PARTS:
            raise ValueError(f"n exceeds the limit of {self.MAX_DISTRIBUTION_PARTS}")

        base, remainder = divmod(self._amount, n)
        return [
            Discrete(
                _amount=base + (1 if i < remainder else 0),
                _currency=self._currency,
                _scale=self._scale,
            )
            for i in range(n)
        ]

    # -------------------------------------------------------------------------
    # Arithmetic
    # -------------------------------------------------------------------------

    def _check_same_tag(self, other: Any, operation: str) -> None:
        if not isinstance(other, Discrete):
            raise TypeError(
                f"Operation not allowed: Discrete {operation} {type(other).__name__}."
            )
        if self._currency != other._currency:
            raise CurrencyMismatchError(
                f"Different currencies: {self._currency} {operation} {other._currency}."
            )
        if self._scale != other._scale:
            raise ScaleMismatchError(
                f"Different scales for {self._currency}: {self._scale} {operation} "
                f"{other._scale}. Use retag() if they are equivalent."
            )

    def __add__(self, other: Discrete) -> Discrete:
        self._check_same_tag(other, "+")
        return Discrete(
            _amount=self._amount + other._amount,
            _currency=self._currency,
            _scale=self._scale,
        )

    def __sub__(self, other: Discrete) -> Discrete:
        self._check_same_tag(other, "-")
        return Discrete(
            _amount=self._amount - other._amount,
            _currency=self._currency,
            _scale=self._scale,
        )

    def __neg__(self) -> Discrete:
        return Discrete(_amount=-self._amount, _currency=self._currency, _scale=self._scale)

    def __abs__(self) -> Discrete:
        return Discrete(_amount=abs(self._amount), _currency=self._currency, _scale=self._scale)

    def __mul__(self, factor: int) -> Discrete:
        """Multiplication by an int quantity only."""
        if not isinstance(factor, int) or isinstance(factor, bool):
            raise TypeError(
                f"Discrete can only be multiplied by int, not {type(factor).__name__}. "
                f"Convert to Dense for fractional factors."
            )
        return Discrete(_amount=self._amount * factor, _currency=self._currency, _scale=self._scale)

    def __rmul__(self, factor: int) -> Discrete:
        return self.__mul__(factor)

    def __truediv__(self, other: Any):
        raise TypeError(
            "Discrete is deliberately not divisible. Convert it to Dense with "
            "to_dense() and divide the Dense value instead."
        )

    def __rtruediv__(self, other: Any):
        return self.__truediv__(other)

    def sign(self) -> int:
        return (self._amount > 0) - (self._amount < 0)

    # -------------------------------------------------------------------------
    # Comparison
    # -------------------------------------------------------------------------

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Discrete):
            return (
                self._amount == other._amount
                and self._currency == other._currency
                and self._scale == other._scale
            )
        return NotImplemented

    def __hash__(self) -> int:
        return hash((self._amount, self._currency, self._scale))

    def __lt__(self, other: Discrete) -> bool:
        self._check_same_tag(other, "<")
        return self._amount < other._amount

    def __le__(self, other: Discrete) -> bool:
        self._check_same_tag(other, "<=")
        return self._amount <= other._amount

    def __gt__(self, other: Discrete) -> bool:
        self._check_same_tag(other, ">")
        return self._amount > other._amount

    def __ge__(self, other: Discrete) -> bool:
        self._check_same_tag(other, ">=")
        return self._amount >= other._amount

    # -------------------------------------------------------------------------
    # Properties and output
    # -------------------------------------------------------------------------

    @property
    def amount(self) -> int:
        """Integer number of units. For persistence."""
        return self._amount

    @property
    def currency(self) -> str:
        return self._currency

    @property
    def scale(self) -> Scale:
        return self._scale

    def is_zero(self) -> bool:
        return self._amount == 0

    def __int__(self) -> int:
        return self._amount

    def __str__(self) -> str:
        return f"Discrete {self._amount}"

    def __repr__(self) -> str:
        return f"Discrete({self._currency!r}, {self._scale}, {self._amount})"


def from_discrete(value: Discrete) -> Dense:
    """Convert a Discrete into its exact Dense value."""
    return Dense.from_discrete(value)


# ==============================================================================
# ROUNDING ENGINE
# ==============================================================================

class RoundingMode(Enum):
    """
    Integer rounding rule applied when a Dense becomes a Discrete.

    - HALF_EVEN: nearest, ties to even (banker's rounding, Python's round())
    - CEILING: towards +infinity
    - FLOOR: towards -infinity
    - TRUNCATE: towards zero
    """
    HALF_EVEN = "half_even"
    CEILING = "ceiling"
    FLOOR = "floor"
    TRUNCATE = "truncate"


def _apply_rounding(value: Fraction, mode: RoundingMode) -> int:
    """Round an exact Fraction to int. All rules are exact on Fraction."""

    strategies = {
        RoundingMode.HALF_EVEN: round,
        RoundingMode.CEILING: math.ceil,
        RoundingMode.FLOOR: math.floor,
        RoundingMode.TRUNCATE: math.trunc,
    }

    strategy = strategies.get(mode)
    if strategy is None:
        raise ValueError(f"Unknown rounding mode: {mode}")

    return strategy(value)


def round_dense(
    value: Dense,
    scale: Scale,
    mode: RoundingMode = RoundingMode.HALF_EVEN,
) -> Tuple[Discrete, Optional[Dense]]:
    """
    Approximate value by an integer amount of scale, reporting the leftover.

    Algorithm:
        r0 = value                 (exact)
        r1 = r0 * scale
        i2 = rule(r1)              (integer)
        r2 = i2 / scale            (what i2 units are actually worth)
        leftover = None if r0 == r2 else r0 - r2

    INVARIANT (no money is lost):
        value == discrete.to_dense() + leftover    (leftover None means 0)
    """
    if not isinstance(value, Dense):
        raise TypeError(f"Expected Dense, got {type(value).__name__}")
    if not isinstance(scale, Scale):
        raise TypeError(f"Expected Scale, got {type(scale).__name__}")

    r0 = value.amount
    factor = scale.value
    i2 = _apply_rounding(r0 * factor, mode)
    r2 = Fraction(i2) / factor

    discrete = Discrete(_amount=i2, _currency=value.currency, _scale=scale)
    if r0 == r2:
        return discrete, None
    return discrete, Dense(_amount=r0 - r2, _currency=value.currency)


def round_half_even(value: Dense, scale: Scale) -> Tuple[Discrete, Optional[Dense]]:
    return round_dense(value, scale, RoundingMode.HALF_EVEN)


def ceiling(value: Dense, scale: Scale) -> Tuple[Discrete, Optional[Dense]]:
    return round_dense(value, scale, RoundingMode.CEILING)


def floor(value: Dense, scale: Scale) -> Tuple[Discrete, Optional[Dense]]:
    return round_dense(value, scale, RoundingMode.FLOOR)


def truncate(value: Dense, scale: Scale) -> Tuple[Discrete, Optional[Dense]]:
    return round_dense(value, scale, RoundingMode.TRUNCATE)


# ==============================================================================
# EXCHANGE RATE
# ==============================================================================

@dataclass(frozen=True, slots=True)
class ExchangeRate:
    """
    Positive rational multiplier converting src amounts into dst amounts.

    If converting USD to GBP means multiplying by 1.2345:
        exchange_rate(Fraction(12345, 10000), "USD", "GBP")

    INVARIANTS:
    1. _rate > 0, finite
    2. flip().flip() == self
    3. rate.flip().exchange(rate.exchange(x)) == x, exactly

    Any loss is deferred to the rounding engine, never introduced here.
    """
    _rate: Fraction
    _src: str
    _dst: str

    def __post_init__(self) -> None:
        _check_currency(self._src)
        _check_currency(self._dst)
        if not isinstance(self._rate, Fraction) or self._rate <= 0:
            raise ValueError(f"Exchange rate must be a positive Fraction, got {self._rate!r}")

    @classmethod
    def from_str(cls, text: str, src: str, dst: str) -> Optional[ExchangeRate]:
        """Parse "num/den" (or any Fraction literal) through exchange_rate()."""
        if not isinstance(text, str):
            return None
        try:
            value = Fraction(text.strip())
        except (ValueError, ZeroDivisionError):
            return None
        return exchange_rate(value, src, dst)

    @property
    def rate(self) -> Fraction:
        """Exact rate, guaranteed > 0."""
        return self._rate

    @property
    def src(self) -> str:
        return self._src

    @property
    def dst(self) -> str:
        return self._dst

    def flip(self) -> ExchangeRate:
        """Reciprocal rate, dst -> src."""
        return ExchangeRate(_rate=1 / self._rate, _src=self._dst, _dst=self._src)

    def exchange(self, value: Dense) -> Dense:
        """
        Convert a Dense in src into a Dense in dst, exactly.

        Raises:
            CurrencyMismatchError: if value is not in src
        """
        if not isinstance(value, Dense):
            raise TypeError(f"Expected Dense, got {type(value).__name__}")
        if value.currency != self._src:
            raise CurrencyMismatchError(
                f"Rate {self._src}->{self._dst} cannot exchange {value.currency}"
            )
        return Dense(_amount=value.amount * self._rate, _currency=self._dst)

    def compose(self, other: ExchangeRate) -> ExchangeRate:
        """Chain src -> mid with mid -> dst into src -> dst."""
        if not isinstance(other, ExchangeRate):
            raise TypeError(f"Expected ExchangeRate, got {type(other).__name__}")
        if self._dst != other._src:
            raise CurrencyMismatchError(
                f"Cannot compose {self._src}->{self._dst} with {other._src}->{other._dst}"
            )
        return ExchangeRate(_rate=self._rate * other._rate, _src=self._src, _dst=other._dst)

    def __str__(self) -> str:
        return f"{self._rate.numerator}/{self._rate.denominator}"

    def __repr__(self) -> str:
        return f"ExchangeRate({self._src!r}, {self._dst!r}, {self})"


def exchange_rate(value: Any, src: str, dst: str) -> Optional[ExchangeRate]:
    """
    Validating builder. Returns None if value is <= 0, infinite, NaN or
    not a number.
    """
    rate = _to_fraction(value)
    if rate is None or rate <= 0:
        return None
    return ExchangeRate(_rate=rate, _src=_check_currency(src), _dst=_check_currency(dst))


def flip_exchange_rate(rate: ExchangeRate) -> ExchangeRate:
    return rate.flip()


def exchange(rate: ExchangeRate, value: Dense) -> Dense:
    return rate.exchange(value)

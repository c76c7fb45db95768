"""
units.py — Scales: how many atomic units compose one currency unit

================================================================================
DESIGN PRINCIPLES
================================================================================

1. A SCALE IS A POSITIVE RATIONAL
   Scale(100, 1) means 100 cents in 1 USD. Scale(31103477, 1000) means
   31103.477 milligrams in one troy ounce of XAU. Numerator and denominator
   are always > 0: a scale is never zero, negative, infinite or NaN.

2. IDENTITY IS STRUCTURAL
   Scale(200, 2) and Scale(100, 1) denote the same number but they are
   different tags. Discrete values only combine when tags match exactly;
   moving between equivalent tags is an explicit retag.

3. THE ASSOCIATION BELONGS TO THE HOST
   This module does not ship a currency table. The application describes
   its (currency, unit) pairs with a ScaleRegistry, usually loaded from
   configuration with ScaleRegistry.from_dict().

4. CANONICAL UNITS ARE OPTIONAL
   Some currencies have an obvious smallest unit (USD -> cent), some don't
   (XAU). Asking for the canonical scale of the latter fails loudly with
   NoCanonicalUnitError instead of picking a default.

================================================================================
"""

from __future__ import annotations
from dataclasses import dataclass
from decimal import Decimal
from fractions import Fraction
from numbers import Rational
from typing import Any, Dict, Iterator, Mapping, Optional, Tuple
import logging
import math

from .exceptions import NoCanonicalUnitError, UnknownScaleError


logger = logging.getLogger(__name__)


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


# ==============================================================================
# SCALE
# ==============================================================================

@dataclass(frozen=True, slots=True)
class Scale:
    """
    Positive rational (numerator, denominator) relating a currency to one of
    its units.

    INVARIANTS:
    1. numerator > 0 and denominator > 0 (checked once, here)
    2. Equality is structural: (numerator, denominator) must match

    USAGE:
        cents = Scale(100, 1)
        cents.value            # Fraction(100, 1)
        Scale.of(0, 1)         # None
    """
    numerator: int
    denominator: int

    def __post_init__(self) -> None:
        if not (_is_int(self.numerator) and _is_int(self.denominator)):
            raise ValueError(
                f"Scale components must be int, got "
                f"{type(self.numerator).__name__}/{type(self.denominator).__name__}"
            )
        if self.numerator <= 0 or self.denominator <= 0:
            raise ValueError(
                f"Scale must be positive, got {self.numerator}/{self.denominator}"
            )

    # -------------------------------------------------------------------------
    # Constructors
    # -------------------------------------------------------------------------

    @classmethod
    def of(cls, numerator: int, denominator: int = 1) -> Optional[Scale]:
        """Validating builder. Returns None unless both components are positive ints."""
        if not (_is_int(numerator) and _is_int(denominator)):
            return None
        if numerator <= 0 or denominator <= 0:
            return None
        return cls._unchecked(numerator, denominator)

    @classmethod
    def from_fraction(cls, value: Any) -> Optional[Scale]:
        """
        Scale from a positive rational, in lowest terms.

        Accepts int, Fraction, Decimal or float. Returns None for zero,
        negative, infinite, NaN or non-numeric input.
        """
        if isinstance(value, bool):
            return None
        if isinstance(value, Rational):
            exact = Fraction(value)
        elif isinstance(value, Decimal) and value.is_finite():
            exact = Fraction(value)
        elif isinstance(value, float) and math.isfinite(value):
            exact = Fraction(value)
        else:
            return None
        return cls.of(exact.numerator, exact.denominator)

    @classmethod
    def _unchecked(cls, numerator: int, denominator: int) -> Scale:
        """
        Internal. Builds a Scale from components the caller has already
        validated, skipping __post_init__.

        Reaching the guard below means a validation step upstream was
        bypassed: that is a defect, not a recoverable error.
        """
        if numerator <= 0 or denominator <= 0:
            raise AssertionError(
                f"impossible: scale {numerator}/{denominator} is not positive"
            )
        obj = object.__new__(cls)
        object.__setattr__(obj, "numerator", numerator)
        object.__setattr__(obj, "denominator", denominator)
        return obj

    # -------------------------------------------------------------------------
    # Properties
    # -------------------------------------------------------------------------

    @property
    def value(self) -> Fraction:
        """Exact positive rational value of the scale."""
        return Fraction(self.numerator, self.denominator)

    def is_equivalent(self, other: Scale) -> bool:
        """True when both scales denote the same number, e.g. 200/2 and 100/1."""
        if not isinstance(other, Scale):
            raise TypeError(f"Cannot compare Scale with {type(other).__name__}")
        return self.value == other.value

    def __str__(self) -> str:
        return f"{self.numerator}/{self.denominator}"


# ==============================================================================
# SCALE REGISTRY (host configuration)
# ==============================================================================

def _parse_scale_entry(currency: str, unit: str, raw: Any) -> Scale:
    """Parse a configuration entry: "num/den", an int, or [num, den]."""
    if _is_int(raw):
        scale = Scale.of(raw, 1)
    elif isinstance(raw, str):
        parts = raw.strip().split("/")
        scale = None
        if len(parts) in (1, 2) and all(p.strip().isdigit() for p in parts):
            numbers = [int(p) for p in parts]
            scale = Scale.of(numbers[0], numbers[1] if len(numbers) == 2 else 1)
    elif isinstance(raw, (list, tuple)) and len(raw) == 2:
        scale = Scale.of(raw[0], raw[1])
    else:
        scale = None

    if scale is None:
        raise ValueError(
            f"Invalid scale for {currency}/{unit}: {raw!r} "
            f"(expected a positive 'num/den' string, int, or [num, den])"
        )
    return scale


class ScaleRegistry:
    """
    Association between (currency, unit) pairs and their Scale.

    The registry is immutable: with_unit() returns a new registry, so one
    instance can be shared freely.

    USAGE:
        registry = (
            ScaleRegistry()
            .with_unit("USD", "cent", Scale(100, 1), canonical=True)
            .with_unit("USD", "dollar", Scale(1, 1))
            .with_unit("XAU", "milligrain", Scale(480000, 1))
        )
        registry.scale("USD", "cent")     # Scale(100, 1)
        registry.scale("USD", "USD")      # canonical: Scale(100, 1)
        registry.canonical_scale("XAU")   # NoCanonicalUnitError
    """

    def __init__(self) -> None:
        self._units: Dict[str, Dict[str, Scale]] = {}
        self._canonical: Dict[str, str] = {}

    def _copy(self) -> ScaleRegistry:
        other = ScaleRegistry()
        other._units = {c: dict(units) for c, units in self._units.items()}
        other._canonical = dict(self._canonical)
        return other

    def with_unit(
        self,
        currency: str,
        unit: str,
        scale: Scale,
        canonical: bool = False,
    ) -> ScaleRegistry:
        """Return a new registry with (currency, unit) associated to scale."""
        if not isinstance(currency, str) or not isinstance(unit, str):
            raise TypeError("currency and unit must be str")
        if not isinstance(scale, Scale):
            raise TypeError(f"scale must be a Scale, not {type(scale).__name__}")
        if unit == currency:
            raise ValueError(
                f"Unit '{unit}' is reserved for the canonical scale of {currency}"
            )

        other = self._copy()
        other._units.setdefault(currency, {})[unit] = scale
        if canonical:
            other._canonical[currency] = unit
        return other

    # -------------------------------------------------------------------------
    # Lookup
    # -------------------------------------------------------------------------

    def scale(self, currency: str, unit: str) -> Scale:
        """
        Scale of unit in currency. Passing the currency itself as unit
        resolves its canonical scale.

        Raises:
            UnknownScaleError: no association for (currency, unit)
            NoCanonicalUnitError: unit == currency and currency has no canonical unit
        """
        if unit == currency:
            return self.canonical_scale(currency)
        try:
            return self._units[currency][unit]
        except KeyError:
            raise UnknownScaleError(
                f"No scale configured for currency '{currency}' and unit '{unit}'"
            ) from None

    def canonical_scale(self, currency: str) -> Scale:
        """Scale of the smallest canonical unit of currency."""
        if currency not in self._units:
            raise UnknownScaleError(f"No scales configured for currency '{currency}'")
        unit = self._canonical.get(currency)
        if unit is None:
            raise NoCanonicalUnitError(currency)
        return self._units[currency][unit]

    def canonical_unit(self, currency: str) -> Optional[str]:
        return self._canonical.get(currency)

    def units(self, currency: str) -> Dict[str, Scale]:
        return dict(self._units.get(currency, {}))

    def currencies(self) -> Tuple[str, ...]:
        return tuple(sorted(self._units))

    def __contains__(self, item: object) -> bool:
        if isinstance(item, tuple) and len(item) == 2:
            currency, unit = item
            if unit == currency:
                return currency in self._canonical
            return unit in self._units.get(currency, {})
        return item in self._units

    def __iter__(self) -> Iterator[Tuple[str, str, Scale]]:
        for currency in sorted(self._units):
            for unit, scale in sorted(self._units[currency].items()):
                yield currency, unit, scale

    def __len__(self) -> int:
        return sum(len(units) for units in self._units.values())

    def __repr__(self) -> str:
        return f"ScaleRegistry(currencies={len(self._units)}, units={len(self)})"

    # -------------------------------------------------------------------------
    # Configuration
    # -------------------------------------------------------------------------

    def to_dict(self) -> Dict[str, Any]:
        """
        Export as configuration mapping.

        Format: {"USD": {"canonical": "cent", "units": {"cent": [100, 1]}}}
        """
        result: Dict[str, Any] = {}
        for currency in sorted(self._units):
            entry: Dict[str, Any] = {
                "units": {
                    unit: [scale.numerator, scale.denominator]
                    for unit, scale in sorted(self._units[currency].items())
                }
            }
            if currency in self._canonical:
                entry["canonical"] = self._canonical[currency]
            result[currency] = entry
        return result

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ScaleRegistry:
        """
        Load a registry from a configuration mapping.

        Raises:
            ValueError: on malformed entries, non-str keys, or a canonical
                unit that is not listed among the currency's units
        """
        registry = cls()
        for currency, entry in data.items():
            if not isinstance(currency, str):
                raise ValueError(f"Currency key must be str, got {currency!r}")
            if not isinstance(entry, Mapping) or not isinstance(entry.get("units"), Mapping):
                raise ValueError(f"Entry for '{currency}' must contain a 'units' mapping")

            canonical = entry.get("canonical")
            if canonical is not None and canonical not in entry["units"]:
                raise ValueError(
                    f"Canonical unit '{canonical}' of '{currency}' is not among its units"
                )

            for unit, raw in entry["units"].items():
                if not isinstance(unit, str):
                    raise ValueError(f"Unit key of '{currency}' must be str, got {unit!r}")
                registry = registry.with_unit(
                    currency,
                    unit,
                    _parse_scale_entry(currency, unit, raw),
                    canonical=(unit == canonical),
                )

        logger.debug("Loaded scale registry: %r", registry)
        return registry


def scale(currency: str, unit: str, registry: ScaleRegistry) -> Fraction:
    """Exact positive rational number of unit pieces in one currency."""
    return registry.scale(currency, unit).value

"""
rep.py — Serializable representations of Dense and Discrete values

================================================================================
TRUST BOUNDARY
================================================================================

Dense and Discrete values carry their currency (and scale) as part of their
identity. When they leave the process (JSON, a database column, a message
queue) that identity becomes plain data, and must be checked again on the
way back in instead of being assumed.

    Dense / Discrete  ──export──▶  DenseRep / DiscreteRep  ──▶  wire
                                         │
    wire  ──▶  from_dict / from_json ────┤
                                         ▼
                    from_dense_rep(rep, "USD")          -> Dense or None
                    from_discrete_rep(rep, "USD", cents) -> Discrete or None
                    with_dense_rep(rep, fn)             -> fn(Dense)

Exporters are total. Builders and importers fail closed: they return None
and never coerce between currencies or scales.

================================================================================
ORDERING
================================================================================

DenseRep and DiscreteRep are ordered so they can live in sorted containers.
The order is the order of their fields as a tuple. It is NOT a comparison
of monetary amounts: DenseRep("USD", 1, 2) sorts before DenseRep("USD", 2, 5)
although 1/2 > 2/5.

================================================================================
"""

from __future__ import annotations
from dataclasses import dataclass
from fractions import Fraction
from typing import Any, Callable, Dict, Optional, TypeVar
import json
import logging

from .core import Dense, Discrete
from .units import Scale


logger = logging.getLogger(__name__)

R = TypeVar("R")


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


# ==============================================================================
# DENSE REPRESENTATION
# ==============================================================================

@dataclass(frozen=True, slots=True, order=True)
class DenseRep:
    """
    Currency-erased Dense: (currency, numerator, denominator > 0).

    WARNING: ordering does not compare monetary amounts. It only lets you
    sort DenseRep values, e.g. to keep them in a sorted set.
    """
    currency: str
    numerator: int
    denominator: int

    def __post_init__(self) -> None:
        if not isinstance(self.currency, str):
            raise ValueError(f"currency must be str, got {type(self.currency).__name__}")
        if not (_is_int(self.numerator) and _is_int(self.denominator)):
            raise ValueError("numerator and denominator must be int")
        if self.denominator <= 0:
            raise ValueError(f"denominator must be positive, got {self.denominator}")

    def to_dict(self) -> Dict[str, Any]:
        """
        Serialize for persistence/API.

        Format: {"currency": str, "numerator": int, "denominator": int}
        """
        return {
            "currency": self.currency,
            "numerator": self.numerator,
            "denominator": self.denominator,
        }

    @classmethod
    def from_dict(cls, data: Any) -> Optional[DenseRep]:
        """Deserialize. None on missing keys, wrong types or invalid values."""
        if not isinstance(data, dict):
            logger.debug("Rejected DenseRep payload of type %s", type(data).__name__)
            return None
        try:
            currency, numerator, denominator = (
                data["currency"], data["numerator"], data["denominator"]
            )
        except KeyError as e:
            logger.debug("Rejected DenseRep payload, missing key %s", e)
            return None
        if not (isinstance(currency, str) and _is_int(numerator) and _is_int(denominator)):
            logger.debug("Rejected DenseRep payload with wrong field types: %r", data)
            return None
        return mk_dense_rep(currency, numerator, denominator)

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), sort_keys=True)

    @classmethod
    def from_json(cls, text: str) -> Optional[DenseRep]:
        try:
            data = json.loads(text)
        except (TypeError, ValueError):
            logger.debug("Rejected DenseRep JSON: not valid JSON")
            return None
        return cls.from_dict(data)


def mk_dense_rep(currency: str, numerator: int, denominator: int) -> Optional[DenseRep]:
    """Build a DenseRep from raw values. None on non-int fields or denominator <= 0."""
    if not (isinstance(currency, str) and _is_int(numerator) and _is_int(denominator)):
        return None
    if denominator <= 0:
        return None
    return DenseRep(currency, numerator, denominator)


def dense_rep(value: Dense) -> DenseRep:
    """Export a Dense. Total."""
    return DenseRep(value.currency, value.amount.numerator, value.amount.denominator)


def from_dense_rep(rep: DenseRep, currency: str) -> Optional[Dense]:
    """
    Import a DenseRep into a known target currency.

    Returns None unless rep.currency == currency.
    """
    if rep.currency != currency:
        logger.debug("DenseRep currency %r does not match target %r", rep.currency, currency)
        return None
    return Dense(_amount=Fraction(rep.numerator, rep.denominator), _currency=currency)


def with_dense_rep(rep: DenseRep, fn: Callable[[Dense], R]) -> R:
    """
    Import a DenseRep whose currency is not known in advance and pass the
    Dense to fn. The result of fn is returned.

    The Dense is only meant to live inside fn: fn should return something
    that does not depend on which currency it received (a rendering, a
    total in a common currency after exchange, a validation verdict). If
    the caller knows the currency it expects, from_dense_rep() is the
    better tool.
    """
    return fn(Dense(_amount=Fraction(rep.numerator, rep.denominator), _currency=rep.currency))


# ==============================================================================
# DISCRETE REPRESENTATION
# ==============================================================================

@dataclass(frozen=True, slots=True, order=True)
class DiscreteRep:
    """
    Currency-erased Discrete:
    (currency, scale_numerator > 0, scale_denominator > 0, amount).

    WARNING: ordering does not compare monetary amounts. It only lets you
    sort DiscreteRep values, e.g. to keep them in a sorted set.
    """
    currency: str
    scale_numerator: int
    scale_denominator: int
    amount: int

    def __post_init__(self) -> None:
        if not isinstance(self.currency, str):
            raise ValueError(f"currency must be str, got {type(self.currency).__name__}")
        if not all(
            _is_int(v) for v in (self.scale_numerator, self.scale_denominator, self.amount)
        ):
            raise ValueError("scale_numerator, scale_denominator and amount must be int")
        if self.scale_numerator <= 0 or self.scale_denominator <= 0:
            raise ValueError(
                f"scale must be positive, got {self.scale_numerator}/{self.scale_denominator}"
            )

    def to_dict(self) -> Dict[str, Any]:
        """
        Serialize for persistence/API.

        Format: {"currency": str, "scale_numerator": int,
                 "scale_denominator": int, "amount": int}
        """
        return {
            "currency": self.currency,
            "scale_numerator": self.scale_numerator,
            "scale_denominator": self.scale_denominator,
            "amount": self.amount,
        }

    @classmethod
    def from_dict(cls, data: Any) -> Optional[DiscreteRep]:
        """Deserialize. None on missing keys, wrong types or invalid values."""
        if not isinstance(data, dict):
            logger.debug("Rejected DiscreteRep payload of type %s", type(data).__name__)
            return None
        try:
            currency = data["currency"]
            numbers = (data["scale_numerator"], data["scale_denominator"], data["amount"])
        except KeyError as e:
            logger.debug("Rejected DiscreteRep payload, missing key %s", e)
            return None
        if not (isinstance(currency, str) and all(_is_int(v) for v in numbers)):
            logger.debug("Rejected DiscreteRep payload with wrong field types: %r", data)
            return None
        return mk_discrete_rep(currency, *numbers)

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), sort_keys=True)

    @classmethod
    def from_json(cls, text: str) -> Optional[DiscreteRep]:
        try:
            data = json.loads(text)
        except (TypeError, ValueError):
            logger.debug("Rejected DiscreteRep JSON: not valid JSON")
            return None
        return cls.from_dict(data)


def mk_discrete_rep(
    currency: str,
    scale_numerator: int,
    scale_denominator: int,
    amount: int,
) -> Optional[DiscreteRep]:
    """Build a DiscreteRep from raw values. None on non-int fields or a scale component <= 0."""
    if not (
        isinstance(currency, str)
        and all(_is_int(v) for v in (scale_numerator, scale_denominator, amount))
    ):
        return None
    if scale_numerator <= 0 or scale_denominator <= 0:
        return None
    return DiscreteRep(currency, scale_numerator, scale_denominator, amount)


def discrete_rep(value: Discrete) -> DiscreteRep:
    """Export a Discrete. Total."""
    return DiscreteRep(
        value.currency,
        value.scale.numerator,
        value.scale.denominator,
        value.amount,
    )


def from_discrete_rep(rep: DiscreteRep, currency: str, scale: Scale) -> Optional[Discrete]:
    """
    Import a DiscreteRep into a known target currency and scale.

    Currency, scale numerator and scale denominator must all match exactly.
    A record in Scale(200, 2) is not imported as Scale(100, 1): retag
    explicitly after importing it with its own scale.
    """
    if (
        rep.currency != currency
        or rep.scale_numerator != scale.numerator
        or rep.scale_denominator != scale.denominator
    ):
        logger.debug(
            "DiscreteRep %s %s/%s does not match target %s %s",
            rep.currency, rep.scale_numerator, rep.scale_denominator, currency, scale,
        )
        return None
    return Discrete(_amount=rep.amount, _currency=currency, _scale=scale)


def with_discrete_rep(rep: DiscreteRep, fn: Callable[[Discrete], R]) -> R:
    """
    Import a DiscreteRep whose currency and scale are not known in advance
    and pass the Discrete to fn. The result of fn is returned.

    See with_dense_rep() for how fn is meant to be used.
    """
    # rep was validated on construction, so the scale is positive.
    scale = Scale._unchecked(rep.scale_numerator, rep.scale_denominator)
    return fn(Discrete(_amount=rep.amount, _currency=rep.currency, _scale=scale))

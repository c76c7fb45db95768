"""
exact_money — Exact, loss-auditable monetary arithmetic

Dense values are exact rationals tagged with a currency. Discrete values are
integer amounts of a currency unit. Rounding from one to the other always
reports the leftover, so no money disappears silently.

================================================================================
QUICK START
================================================================================

Basic usage:

    from fractions import Fraction
    from exact_money import Scale, dense

    cents = Scale(100, 1)

    # USD 6.775, exact
    price = dense(Fraction(6775, 1000), "USD")

    # Round into cents, keep what did not fit
    amount, leftover = price.round(cents)
    # amount   -> Discrete 678  (USD 6.78)
    # leftover -> Dense -1/200  (USD -0.005)
    # Invariant: amount.to_dense() + leftover == price

Currency exchange:

    from exact_money import exchange_rate

    usd_to_gbp = exchange_rate(Fraction(12345, 10000), "USD", "GBP")
    gbp = usd_to_gbp.exchange(price)
    usd_to_gbp.flip().exchange(gbp) == price    # always True

Crossing a serialization boundary:

    from exact_money.rep import dense_rep, DenseRep, from_dense_rep

    payload = dense_rep(price).to_json()
    rep = DenseRep.from_json(payload)
    from_dense_rep(rep, "USD")   # Dense, currency checked
    from_dense_rep(rep, "EUR")   # None

Units configured by the application:

    from exact_money import ScaleRegistry, Discrete

    registry = ScaleRegistry.from_dict({
        "USD": {"canonical": "cent", "units": {"cent": "100/1", "dollar": "1/1"}},
        "XAU": {"units": {"milligrain": [480000, 1]}},
    })
    Discrete.of_unit(2105, "USD", "cent", registry)

================================================================================
"""

import logging

from .exceptions import (
    MoneyError,
    CurrencyMismatchError,
    ScaleMismatchError,
    UnknownScaleError,
    NoCanonicalUnitError,
)

from .units import (
    Scale,
    ScaleRegistry,
    scale,
)

from .core import (
    Dense,
    Discrete,
    ExchangeRate,
    RoundingMode,
    dense,
    from_discrete,
    round_dense,
    round_half_even,
    ceiling,
    floor,
    truncate,
    exchange_rate,
    flip_exchange_rate,
    exchange,
)

from .rep import (
    DenseRep,
    DiscreteRep,
    dense_rep,
    mk_dense_rep,
    from_dense_rep,
    with_dense_rep,
    discrete_rep,
    mk_discrete_rep,
    from_discrete_rep,
    with_discrete_rep,
)

logging.getLogger(__name__).addHandler(logging.NullHandler())

__version__ = "1.0.0"
__license__ = "MIT"

__all__ = [
    # Errors
    "MoneyError",
    "CurrencyMismatchError",
    "ScaleMismatchError",
    "UnknownScaleError",
    "NoCanonicalUnitError",
    # Scale
    "Scale",
    "ScaleRegistry",
    "scale",
    # Values
    "Dense",
    "Discrete",
    "dense",
    "from_discrete",
    # Rounding
    "RoundingMode",
    "round_dense",
    "round_half_even",
    "ceiling",
    "floor",
    "truncate",
    # Exchange
    "ExchangeRate",
    "exchange_rate",
    "flip_exchange_rate",
    "exchange",
    # Representations
    "DenseRep",
    "DiscreteRep",
    "dense_rep",
    "mk_dense_rep",
    "from_dense_rep",
    "with_dense_rep",
    "discrete_rep",
    "mk_discrete_rep",
    "from_discrete_rep",
    "with_discrete_rep",
]

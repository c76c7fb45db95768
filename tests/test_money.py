"""
test_money.py — Test suite for Dense, Discrete, rounding and exchange

================================================================================
TEST STRUCTURE
================================================================================

1. UNIT TESTS
   Deterministic tests for specific cases and edge cases.

2. PROPERTY-BASED TESTS (Hypothesis)
   Tests checking PROPERTIES that must hold for ANY input: no money lost
   by rounding, ceiling/floor bounds, exchange involution.

================================================================================
"""

import math
from decimal import Decimal
from fractions import Fraction

import pytest
from hypothesis import given, assume, settings
from hypothesis import strategies as st

import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from exact_money import (
    Dense,
    Discrete,
    ExchangeRate,
    RoundingMode,
    Scale,
    ScaleRegistry,
    CurrencyMismatchError,
    ScaleMismatchError,
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


CENTS = Scale(100, 1)


# ==============================================================================
# TEST HELPERS
# ==============================================================================

@st.composite
def dense_strategy(draw, currency="USD"):
    """Random Dense values, including amounts no unit can represent."""
    amount = draw(st.fractions(min_value=-10_000_000, max_value=10_000_000, max_denominator=10_000))
    return dense(amount, currency)


@st.composite
def scale_strategy(draw):
    """Random positive scales, integral (cents) and rational (milligrams)."""
    numerator = draw(st.integers(min_value=1, max_value=1_000_000))
    denominator = draw(st.integers(min_value=1, max_value=10_000))
    return Scale(numerator, denominator)


@st.composite
def rate_strategy(draw, src="USD", dst="GBP"):
    value = draw(st.fractions(min_value=Fraction(1, 10_000), max_value=10_000, max_denominator=100_000))
    assume(value > 0)
    return exchange_rate(value, src, dst)


def usd(numerator, denominator=1):
    return dense(Fraction(numerator, denominator), "USD")


def restore(discrete, leftover):
    """discrete + leftover as Dense: must equal the rounded input."""
    if leftover is None:
        return discrete.to_dense()
    return discrete.to_dense() + leftover


# ==============================================================================
# UNIT TESTS: Dense construction
# ==============================================================================

class TestDenseConstruction:

    def test_dense_from_fraction(self):
        x = dense(Fraction(12345, 100), "USD")
        assert x.amount == Fraction(2469, 20)
        assert x.currency == "USD"

    def test_dense_from_int(self):
        assert dense(5, "EUR").amount == Fraction(5)

    def test_dense_from_decimal_is_exact(self):
        assert dense(Decimal("6.775"), "USD").amount == Fraction(271, 40)

    def test_dense_from_float_is_exact_binary_value(self):
        x = dense(0.5, "USD")
        assert x.amount == Fraction(1, 2)

    @pytest.mark.parametrize("value", [
        math.inf, -math.inf, math.nan, Decimal("Infinity"), Decimal("NaN"),
    ])
    def test_dense_rejects_infinite_and_nan(self, value):
        assert dense(value, "USD") is None

    @pytest.mark.parametrize("value", ["12.5", None, True, [1, 2]])
    def test_dense_rejects_non_numbers(self, value):
        assert dense(value, "USD") is None

    def test_dense_requires_str_currency(self):
        with pytest.raises(TypeError):
            dense(1, 840)

    def test_any_string_is_a_currency(self):
        assert dense(1, "my-loyalty-points").currency == "my-loyalty-points"

    def test_zero(self):
        assert Dense.zero("USD").is_zero()

    def test_direct_construction_rejects_float(self):
        with pytest.raises(TypeError):
            Dense(_amount=1.5, _currency="USD")

    def test_is_immutable(self):
        x = usd(1)
        with pytest.raises(AttributeError):
            x._amount = Fraction(2)


# ==============================================================================
# UNIT TESTS: Dense arithmetic
# ==============================================================================

class TestDenseArithmetic:

    def test_half_of_usd_3_41_is_exact(self):
        half = usd(341, 100) / 2
        assert half == usd(1705, 1000)
        assert half * 4 == usd(682, 100)

    def test_add_same_currency(self):
        assert usd(1, 3) + usd(2, 3) == usd(1)

    def test_add_different_currency_raises(self):
        with pytest.raises(CurrencyMismatchError):
            usd(1) + dense(1, "EUR")

    def test_currency_mismatch_is_a_type_error(self):
        with pytest.raises(TypeError):
            usd(1) - dense(1, "EUR")

    def test_add_non_dense_raises(self):
        with pytest.raises(TypeError):
            usd(1) + 1

    def test_subtract(self):
        assert usd(10) - usd(3) == usd(7)

    def test_negate_and_abs(self):
        assert -usd(5) == usd(-5)
        assert abs(usd(-5)) == usd(5)
        assert +usd(5) == usd(5)

    def test_scalar_multiplication(self):
        assert usd(3) * Fraction(1, 3) == usd(1)
        assert 2 * usd(3) == usd(6)

    def test_multiply_by_float_raises(self):
        with pytest.raises(TypeError):
            usd(10) * 1.5

    def test_multiply_dense_by_dense_raises(self):
        with pytest.raises(TypeError):
            usd(10) * usd(2)

    def test_divide_by_zero_raises(self):
        with pytest.raises(ZeroDivisionError):
            usd(10) / 0

    def test_sign(self):
        assert usd(-3).sign() == -1
        assert usd(0).sign() == 0
        assert usd(1, 1000).sign() == 1


class TestDenseComparison:

    def test_equal_compares_exact_value(self):
        assert usd(1, 2) == usd(2, 4)
        assert usd(1, 2) != usd(1, 3)

    def test_equal_different_currency(self):
        assert usd(1) != dense(1, "EUR")

    def test_ordering(self):
        assert usd(1, 3) < usd(1, 2)
        assert usd(1, 2) >= usd(1, 2)

    def test_ordering_different_currency_raises(self):
        with pytest.raises(CurrencyMismatchError):
            usd(1) < dense(2, "EUR")

    def test_hashable(self):
        assert len({usd(1, 2), usd(2, 4), dense(Fraction(1, 2), "EUR")}) == 2


class TestDenseText:

    def test_render(self):
        assert str(usd(12345, 100)) == "Dense 2469/20"
        assert str(usd(-3)) == "Dense -3/1"

    def test_parse_round_trip(self):
        x = usd(-271, 40)
        assert Dense.from_str(str(x), "USD") == x

    @pytest.mark.parametrize("text", ["Dense 1/0", "Dense 1.5/2", "Discrete 3", "3/4", ""])
    def test_parse_rejects_malformed(self, text):
        assert Dense.from_str(text, "USD") is None


# ==============================================================================
# UNIT TESTS: Discrete
# ==============================================================================

class TestDiscrete:

    def test_to_dense_is_exact(self):
        assert Discrete.of(2105, "GBP", CENTS).to_dense() == dense(Fraction(2105, 100), "GBP")

    def test_rational_scale(self):
        milligrams = Scale(31103477, 1000)
        one_ounce = Discrete.of(31103477, "XAU", Scale(31103477, 1))
        assert one_ounce.to_dense() == dense(1, "XAU")
        assert from_discrete(Discrete.of(31103477, "XAU", milligrams)) == dense(1000, "XAU")

    def test_of_unit_uses_registry(self):
        registry = ScaleRegistry().with_unit("USD", "cent", CENTS, canonical=True)
        assert Discrete.of_unit(5, "USD", "cent", registry) == Discrete.of(5, "USD", CENTS)
        assert Discrete.of_unit(5, "USD", "USD", registry).scale == CENTS

    def test_amount_must_be_int(self):
        with pytest.raises(TypeError):
            Discrete.of(1.5, "USD", CENTS)

    def test_add_same_tag(self):
        assert Discrete.of(5, "USD", CENTS) + Discrete.of(7, "USD", CENTS) == Discrete.of(12, "USD", CENTS)

    def test_add_different_currency_raises(self):
        with pytest.raises(CurrencyMismatchError):
            Discrete.of(5, "USD", CENTS) + Discrete.of(5, "EUR", CENTS)

    def test_add_equivalent_but_different_scale_raises(self):
        with pytest.raises(ScaleMismatchError):
            Discrete.of(5, "USD", CENTS) + Discrete.of(5, "USD", Scale(200, 2))

    def test_multiply_by_int(self):
        assert Discrete.of(5, "USD", CENTS) * 3 == Discrete.of(15, "USD", CENTS)
        assert 3 * Discrete.of(5, "USD", CENTS) == Discrete.of(15, "USD", CENTS)

    def test_multiply_by_fraction_raises(self):
        with pytest.raises(TypeError):
            Discrete.of(5, "USD", CENTS) * Fraction(1, 2)

    def test_division_is_not_supported(self):
        with pytest.raises(TypeError, match="to_dense"):
            Discrete.of(5, "USD", CENTS) / 2

    def test_negate_abs(self):
        assert -Discrete.of(5, "USD", CENTS) == Discrete.of(-5, "USD", CENTS)
        assert abs(Discrete.of(-5, "USD", CENTS)) == Discrete.of(5, "USD", CENTS)

    def test_ordering_requires_same_scale(self):
        assert Discrete.of(1, "USD", CENTS) < Discrete.of(2, "USD", CENTS)
        with pytest.raises(ScaleMismatchError):
            Discrete.of(1, "USD", CENTS) < Discrete.of(2, "USD", Scale(1, 1))

    def test_equality_includes_scale(self):
        assert Discrete.of(5, "USD", CENTS) != Discrete.of(5, "USD", Scale(200, 2))


class TestRetag:

    def test_retag_equivalent_scale_keeps_amount(self):
        d = Discrete.of(5, "USD", CENTS).retag(Scale(200, 2))
        assert d.amount == 5
        assert d.scale == Scale(200, 2)
        assert d.to_dense() == usd(5, 100)

    def test_retag_different_scale_raises(self):
        with pytest.raises(ScaleMismatchError):
            Discrete.of(5, "USD", CENTS).retag(Scale(1000, 1))


class TestDiscreteText:

    def test_render_and_parse(self):
        d = Discrete.of(-678, "USD", CENTS)
        assert str(d) == "Discrete -678"
        assert Discrete.from_str(str(d), "USD", CENTS) == d

    @pytest.mark.parametrize("text", ["Discrete 6.78", "Discrete", "Dense 1/2", "678"])
    def test_parse_rejects_malformed(self, text):
        assert Discrete.from_str(text, "USD", CENTS) is None


class TestDistribute:

    def test_distribute_with_remainder(self):
        parts = Discrete.of(100, "EUR", CENTS).distribute(3)
        assert [p.amount for p in parts] == [34, 33, 33]

    def test_distribute_negative(self):
        parts = Discrete.of(-100, "EUR", CENTS).distribute(3)
        assert sum(p.amount for p in parts) == -100

    def test_distribute_keeps_tags(self):
        parts = Discrete.of(5, "EUR", CENTS).distribute(2)
        assert all(p.currency == "EUR" and p.scale == CENTS for p in parts)

    @pytest.mark.parametrize("n", [0, -1, Discrete.MAX_DISTRIBUTION_PARTS + 1])
    def test_distribute_invalid_n(self, n):
        with pytest.raises(ValueError):
            Discrete.of(100, "EUR", CENTS).distribute(n)


# ==============================================================================
# UNIT TESTS: Rounding
# ==============================================================================

class TestRoundingScenario:
    """USD 6.775 rounded into cents."""

    x = dense(Decimal("6.775"), "USD")

    def test_round(self):
        y, leftover = self.x.round(CENTS)
        assert y == Discrete.of(678, "USD", CENTS)
        assert leftover == usd(-5, 1000)

    def test_floor(self):
        y, leftover = self.x.floor(CENTS)
        assert y == Discrete.of(677, "USD", CENTS)
        assert leftover == usd(5, 1000)

    def test_ceiling(self):
        y, leftover = self.x.ceiling(CENTS)
        assert y == Discrete.of(678, "USD", CENTS)
        assert leftover == usd(-5, 1000)

    def test_truncate(self):
        assert self.x.truncate(CENTS) == self.x.floor(CENTS)
        assert (-self.x).truncate(CENTS) == (-self.x).ceiling(CENTS)


class TestRounding:

    def test_round_ties_to_even(self):
        # 0.125 USD = 12.5 cents -> 12, 0.135 USD = 13.5 cents -> 14
        assert round_half_even(usd(125, 1000), CENTS)[0].amount == 12
        assert round_half_even(usd(135, 1000), CENTS)[0].amount == 14
        assert round_half_even(usd(-125, 1000), CENTS)[0].amount == -12

    def test_representable_value_has_no_leftover(self):
        for mode in RoundingMode:
            y, leftover = round_dense(usd(123, 100), CENTS, mode)
            assert y.amount == 123
            assert leftover is None

    def test_module_functions_match_methods(self):
        x = usd(-1, 3)
        assert round_half_even(x, CENTS) == x.round(CENTS)
        assert ceiling(x, CENTS) == x.ceiling(CENTS)
        assert floor(x, CENTS) == x.floor(CENTS)
        assert truncate(x, CENTS) == x.truncate(CENTS)

    def test_rational_scale_rounding(self):
        milligrams = Scale(31103477, 1000)
        y, leftover = dense(1, "XAU").floor(milligrams)
        assert y.amount == 31103
        assert restore(y, leftover) == dense(1, "XAU")

    def test_leftover_keeps_currency(self):
        _, leftover = dense(Fraction(1, 3), "EUR").round(CENTS)
        assert leftover.currency == "EUR"

    def test_invalid_scale_raises(self):
        with pytest.raises(TypeError):
            round_dense(usd(1), Fraction(100))


# ==============================================================================
# UNIT TESTS: Exchange rates
# ==============================================================================

class TestExchangeRate:

    def test_construction(self):
        rate = exchange_rate(Fraction(12345, 10000), "USD", "GBP")
        assert rate.rate == Fraction(12345, 10000)
        assert (rate.src, rate.dst) == ("USD", "GBP")

    @pytest.mark.parametrize("value", [0, -5, Fraction(-1, 2), math.inf, math.nan, "1.2"])
    def test_construction_rejects(self, value):
        assert exchange_rate(value, "USD", "GBP") is None

    def test_exchange(self):
        rate = exchange_rate(Fraction(3, 2), "USD", "GBP")
        assert exchange(rate, usd(10)) == dense(15, "GBP")

    def test_exchange_wrong_source_raises(self):
        rate = exchange_rate(2, "USD", "GBP")
        with pytest.raises(CurrencyMismatchError):
            rate.exchange(dense(1, "EUR"))

    def test_flip(self):
        rate = exchange_rate(Fraction(3, 2), "USD", "GBP")
        flipped = flip_exchange_rate(rate)
        assert flipped.rate == Fraction(2, 3)
        assert (flipped.src, flipped.dst) == ("GBP", "USD")

    def test_compose(self):
        usd_gbp = exchange_rate(Fraction(4, 5), "USD", "GBP")
        gbp_jpy = exchange_rate(190, "GBP", "JPY")
        usd_jpy = usd_gbp.compose(gbp_jpy)
        assert usd_jpy.rate == 152
        assert usd_jpy.exchange(usd(1)) == dense(152, "JPY")

    def test_compose_mismatch_raises(self):
        with pytest.raises(CurrencyMismatchError):
            exchange_rate(2, "USD", "GBP").compose(exchange_rate(2, "EUR", "JPY"))

    def test_render_and_parse(self):
        rate = exchange_rate(Fraction(12345, 10000), "USD", "GBP")
        assert str(rate) == "2469/2000"
        assert ExchangeRate.from_str(str(rate), "USD", "GBP") == rate

    @pytest.mark.parametrize("text", ["0", "-5/2", "1/0", "abc", ""])
    def test_parse_rejects(self, text):
        assert ExchangeRate.from_str(text, "USD", "GBP") is None


# ==============================================================================
# PROPERTY-BASED TESTS (Hypothesis)
# ==============================================================================

class TestRoundingProperties:

    @given(x=dense_strategy(), s=scale_strategy(), mode=st.sampled_from(list(RoundingMode)))
    @settings(max_examples=500)
    def test_rounding_never_loses_money(self, x, s, mode):
        """
        PROPERTY: x == y + leftover for every policy.
        """
        y, leftover = round_dense(x, s, mode)
        assert restore(y, leftover) == x
        assert leftover is None or not leftover.is_zero()

    @given(x=dense_strategy(), s=scale_strategy())
    @settings(max_examples=500)
    def test_ceiling_and_floor_bounds(self, x, s):
        up, up_left = x.ceiling(s)
        down, down_left = x.floor(s)
        assert up.to_dense() >= x
        assert down.to_dense() <= x
        assert up_left is None or up_left.is_negative()
        assert down_left is None or down_left.is_positive()

    @given(x=dense_strategy(), s=scale_strategy())
    @settings(max_examples=500)
    def test_truncate_selects_floor_or_ceiling(self, x, s):
        if x >= Dense.zero("USD"):
            assert x.truncate(s) == x.floor(s)
        else:
            assert x.truncate(s) == x.ceiling(s)

    @given(x=dense_strategy(), s=scale_strategy())
    @settings(max_examples=500)
    def test_round_picks_nearest(self, x, s):
        y, leftover = x.round(s)
        if leftover is None:
            return
        up, down = x.ceiling(s), x.floor(s)
        assert (y, leftover) in (up, down)
        assert abs(leftover) <= abs(x - up[0].to_dense())
        assert abs(leftover) <= abs(x - down[0].to_dense())

    @given(amount=st.integers(min_value=-10**12, max_value=10**12), s=scale_strategy())
    @settings(max_examples=300)
    def test_representable_is_fixed_point(self, amount, s):
        x = Discrete.of(amount, "USD", s).to_dense()
        for mode in RoundingMode:
            assert round_dense(x, s, mode) == (Discrete.of(amount, "USD", s), None)


class TestExchangeProperties:

    @given(rate=rate_strategy())
    @settings(max_examples=300)
    def test_flip_is_an_involution(self, rate):
        assert rate.flip().flip() == rate

    @given(rate=rate_strategy(), x=dense_strategy())
    @settings(max_examples=300)
    def test_exchange_round_trip(self, rate, x):
        assert rate.flip().exchange(rate.exchange(x)) == x


class TestDistributeProperties:

    @given(
        amount=st.integers(min_value=-10**9, max_value=10**9),
        n=st.integers(min_value=1, max_value=100),
    )
    @settings(max_examples=500)
    def test_distribute_sum_equals_original(self, amount, n):
        original = Discrete.of(amount, "EUR", CENTS)
        total = Discrete.zero("EUR", CENTS)
        for part in original.distribute(n):
            total = total + part
        assert total == original


class TestArithmeticProperties:

    @given(a=dense_strategy(), b=dense_strategy())
    @settings(max_examples=300)
    def test_addition_commutative(self, a, b):
        assert a + b == b + a

    @given(a=dense_strategy())
    @settings(max_examples=200)
    def test_add_negative_equals_zero(self, a):
        assert (a + (-a)).is_zero()

    @given(x=dense_strategy())
    @settings(max_examples=200)
    def test_text_round_trip(self, x):
        assert Dense.from_str(str(x), "USD") == x


if __name__ == "__main__":
    pytest.main([__file__, "-v", "--tb=short"])

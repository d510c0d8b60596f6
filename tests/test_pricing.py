"""Tests for booking price calculation."""

from decimal import Decimal

import pytest

from booking_engine.scheduling.errors import InvalidInputError
from booking_engine.scheduling.pricing import PriceCalculator, compute_total
from booking_engine.schemas.booking_schema import Extra
from booking_engine.schemas.provider_schema import DepositPolicy, ServiceLine


class TestSubtotal:
    def test_hourly_rate_times_duration(self):
        price = compute_total(20000, 2)
        assert price.subtotal == 40000
        assert price.total == 40000
        assert price.deposit is None

    @pytest.mark.parametrize("rate,hours", [(0, 1), (1, 1), (15000, 3), (9999, 7), (25000, 48)])
    def test_no_extras_no_deposit_is_exact(self, rate, hours):
        price = compute_total(rate, hours, extras=[], deposit_policy=DepositPolicy(required=False, amount=0))
        assert price.total == rate * hours
        assert isinstance(price.total, int)

    def test_fractional_hours(self):
        assert compute_total(20000, 1.5).subtotal == 30000
        assert compute_total(20000, Decimal("0.75")).subtotal == 15000

    def test_rounds_half_up_to_minor_unit(self):
        assert compute_total(1, "0.5").subtotal == 1
        assert compute_total(333, "0.25").subtotal == 83


class TestLineItems:
    def test_extras_added(self):
        price = compute_total(
            20000, 2, extras=[Extra(name="Champagne", price=8000), Extra(name="Hotel", price=12000)]
        )
        assert price.extras_total == 20000
        assert price.total == 60000

    def test_services_added(self):
        services = [ServiceLine(service_id="travel", name="Travel", price=5000)]
        price = compute_total(20000, 1, services=services)
        assert price.services_total == 5000
        assert price.total == 25000

    def test_platform_fee_is_explicit_line(self):
        price = compute_total(20000, 1, platform_fee=1500)
        assert price.subtotal == 20000
        assert price.platform_fee == 1500
        assert price.total == 21500

    def test_total_is_sum_of_items(self):
        price = compute_total(
            12345, "2.5",
            extras=[Extra(name="a", price=101)],
            services=[ServiceLine(service_id="s", name="s", price=202)],
            platform_fee=303,
        )
        assert price.total == (
            price.subtotal + price.services_total + price.extras_total + price.platform_fee
        )


class TestDeposit:
    def test_required_deposit(self):
        price = compute_total(20000, 2, deposit_policy=DepositPolicy(required=True, amount=5000))
        assert price.deposit == 5000
        assert price.total == 40000

    def test_policy_amount_ignored_when_not_required(self):
        price = compute_total(20000, 2, deposit_policy=DepositPolicy(required=False, amount=5000))
        assert price.deposit is None

    def test_deposit_above_total_rejected(self):
        with pytest.raises(InvalidInputError, match="exceeds"):
            compute_total(1000, 1, deposit_policy=DepositPolicy(required=True, amount=5000))


class TestInvalidInputs:
    @pytest.mark.parametrize("hours", [0, -1, "0", Decimal("-0.5")])
    def test_non_positive_duration(self, hours):
        with pytest.raises(InvalidInputError):
            compute_total(20000, hours)

    def test_unparseable_duration(self):
        with pytest.raises(InvalidInputError):
            compute_total(20000, "two hours")

    def test_infinite_duration(self):
        with pytest.raises(InvalidInputError):
            compute_total(20000, float("inf"))

    def test_negative_rate(self):
        with pytest.raises(InvalidInputError, match="Hourly rate"):
            compute_total(-1, 1)

    def test_negative_extra(self):
        with pytest.raises(InvalidInputError, match="Discount"):
            compute_total(20000, 1, extras=[Extra(name="Discount", price=-500)])

    def test_negative_platform_fee(self):
        with pytest.raises(InvalidInputError):
            compute_total(20000, 1, platform_fee=-1)


class TestPriceCalculator:
    def test_applies_configured_fee_and_currency(self):
        calculator = PriceCalculator(currency="CHF", platform_fee=500)
        price = calculator.compute_total(10000, 1)
        assert price.currency == "CHF"
        assert price.total == 10500

    def test_currency_override(self):
        calculator = PriceCalculator(currency="CHF")
        assert calculator.compute_total(10000, 1, currency="EUR").currency == "EUR"

"""Unit tests for currency helpers and the add-on catalog"""

import pytest
from checkout_messaging.domain.catalog import add_on_icon, format_add_on_name, get_add_on, is_valid_add_on, supported_add_ons
from checkout_messaging.utils.money import format_amount, round_half_up, to_minor_units


@pytest.mark.parametrize(
    "amount,expected",
    [("35.00", 3500), ("35", 3500), ("0.005", 1), ("19.994", 1999), (" 12.5 ", 1250)],
)
def test_to_minor_units(amount, expected):
    assert to_minor_units(amount) == expected


@pytest.mark.parametrize("amount", ["abc", "", "NaN", "Infinity"])
def test_to_minor_units_rejects_invalid(amount):
    with pytest.raises(ValueError):
        to_minor_units(amount)


def test_round_half_up():
    assert round_half_up(2.5) == 3
    assert round_half_up(0.5) == 1
    assert round_half_up(1.49) == 1


@pytest.mark.parametrize(
    "minor,currency,expected",
    [
        (1500, "USD", "$15.00"),
        (1500, "cad", "CA$15.00"),
        (4500, "EUR", "€45.00"),
        (99, "GBP", "£0.99"),
        (1500, "JPY", "JPY 15.00"),
        (0, "USD", "$0.00"),
    ],
)
def test_format_amount(minor, currency, expected):
    assert format_amount(minor, currency) == expected


def test_catalog_names_and_icons():
    assert format_add_on_name("glass", 1) == "1 Premium Glass"
    assert format_add_on_name("glass", 4) == "4 Premium Glasses"
    assert format_add_on_name("accessory", 2) == "2 Wine Accessories"
    assert format_add_on_name("mug", 2) == "2 Unknown Add-Ons"
    assert add_on_icon("bottle") == "🍾"
    assert add_on_icon("mug") == "📦"
    assert get_add_on("glass").plural == "Premium Glasses"
    assert get_add_on("mug") is None


def test_catalog_membership():
    assert is_valid_add_on("sticker")
    assert not is_valid_add_on("Sticker")
    assert supported_add_ons() == ["glass", "bottle", "accessory", "sticker", "sample"]

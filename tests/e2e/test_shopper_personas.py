"""
E2E tests for shopper personas through the banner API.

Merchant configuration is patched in; everything else (schema conversion,
detectors, templates, queue, dismissal persistence) runs for real.

Shopper personas:
- browser: small cart, far from any threshold
- threshold_climber: adds wine until free shipping unlocks
- club_member: annual wine club with bundled glassware, French locale
- monthly_subscriber: monthly plan, offered an annual upgrade
- dismisser: dismisses a nudge while every other visible goal is met
- canadian: CAD cart with CAD thresholds
- traveller: currency with no thresholds configured
"""

import pytest
from dataclasses import replace
from unittest.mock import AsyncMock, patch
from fastapi.testclient import TestClient
from checkout_messaging.domain.models import MerchantConfig, SubscriptionDeal

LOAD_CONFIG = "checkout_messaging.infrastructure.clients.merchant_config.MerchantConfigClient.load"


def _cart(lines: list, subtotal: str, currency: str = "USD") -> dict:
    return {"lines": lines, "subtotal": {"amount": subtotal, "currencyCode": currency}}


def _wine(amount: str, quantity: int = 1, currency: str = "USD") -> dict:
    return {
        "title": "Estate Cabernet",
        "quantity": quantity,
        "unitPrice": {"amount": amount, "currencyCode": currency},
        "product": {"title": "Estate Cabernet", "handle": "estate-cabernet"},
    }


def _banners(client: TestClient, session_id: str, cart: dict, locale: str | None = None) -> list:
    response = client.post(
        "/v1/banners",
        json={"session_id": session_id, "shop_domain": "wine.example", "locale": locale, "cart": cart},
    )
    assert response.status_code == 200
    return response.json()["banners"]


@pytest.mark.integration
@patch(LOAD_CONFIG)
def test_browser_sees_progress(mock_load: AsyncMock, client: TestClient, merchant_config: MerchantConfig):
    """
    browser: $10 cart
    Expected: single shipping nudge at 20%
    """
    mock_load.return_value = merchant_config

    banners = _banners(client, "browser", _cart([_wine("10.00")], "10.00"))

    assert len(banners) == 1
    assert banners[0]["progress"] == 20
    assert banners[0]["body"] == "Add $40.00 more for free shipping"


@pytest.mark.integration
@patch(LOAD_CONFIG)
def test_threshold_climber(mock_load: AsyncMock, client: TestClient, merchant_config: MerchantConfig):
    """
    threshold_climber: $45 then $60
    Expected: nudge first, then shipping unlocked plus the gift nudge
    """
    mock_load.return_value = merchant_config

    before = _banners(client, "climber", _cart([_wine("45.00")], "45.00"))
    after = _banners(client, "climber", _cart([_wine("30.00", quantity=2)], "60.00"))

    assert [b["met"] for b in before] == [False]
    assert [(b["met"], b["priority"]) for b in after] == [(True, 2), (False, 3)]
    assert after[0]["body"] == "Free shipping unlocked"
    assert after[1]["body"] == "Add $40.00 more for a free gift"


@pytest.mark.integration
@patch(LOAD_CONFIG)
def test_club_member_french_locale(mock_load: AsyncMock, client: TestClient, merchant_config: MerchantConfig):
    """
    club_member: annual wine club, locale fr-CA
    Expected: inclusion banner first, with the French deal message
    """
    deal = SubscriptionDeal(
        product_handle="wine-club-annual",
        included_item_title="Premium Glasses",
        quantity=4,
        message_per_locale={"default": "{quantity} premium glasses included", "fr": "{quantity} verres premium inclus"},
    )
    mock_load.return_value = replace(merchant_config, deals=(deal,))
    club = {
        "title": "Wine Club",
        "quantity": 1,
        "unitPrice": {"amount": "45.00", "currencyCode": "USD"},
        "product": {
            "title": "Wine Club",
            "handle": "wine-club-annual",
            "attributes": {"subscription_type": "annual_4_glass"},
        },
    }

    banners = _banners(client, "club", _cart([club], "45.00"), locale="fr-CA")

    assert banners[0]["kind"] == "inclusion"
    assert banners[0]["body"] == "4 verres premium inclus"
    assert banners[0]["met"] is True
    assert banners[1]["kind"] == "threshold"


@pytest.mark.integration
@patch(LOAD_CONFIG)
def test_monthly_subscriber_upsell(mock_load: AsyncMock, client: TestClient, merchant_config: MerchantConfig):
    """
    monthly_subscriber: $60 monthly plan
    Expected: annual upgrade suggestion once shipping is unlocked
    """
    mock_load.return_value = replace(merchant_config, thresholds={"USD": merchant_config.thresholds["USD"][:1]})
    plan_line = {
        "title": "Sommelier Selection",
        "quantity": 1,
        "unitPrice": {"amount": "60.00", "currencyCode": "USD"},
        "product": {"title": "Sommelier Selection", "handle": "sommelier"},
        "subscriptionPlan": {"name": "Delivered monthly", "deliveryPolicy": {"interval": "MONTH", "intervalCount": 1}},
    }

    banners = _banners(client, "subscriber", _cart([plan_line], "60.00"))

    assert [b["kind"] for b in banners] == ["threshold", "upsell"]
    upsell = banners[1]
    assert upsell["heading"] == "💡 Save More with Annual Subscription"
    assert upsell["body"] == "Upgrade your Monthly subscription to Annual and save $129.60/year (18% savings)"
    assert upsell["context"] == "You're currently subscribed to: Sommelier Selection"


@pytest.mark.integration
@patch(LOAD_CONFIG)
def test_dismisser_auto_reset(mock_load: AsyncMock, client: TestClient, merchant_config: MerchantConfig):
    """
    dismisser: dismisses the $100 gift nudge with $50 already unlocked
    Expected: only met banners remain visible, so dismissals reset and the
    nudge returns on the next render
    """
    mock_load.return_value = merchant_config

    client.post("/v1/banners/dismiss", json={"session_id": "dismisser", "shop_domain": "wine.example", "priority": 3})
    partial = _banners(client, "dismisser", _cart([_wine("60.00")], "60.00"))
    assert [b["priority"] for b in partial] == [2]

    # Previous render showed only met banners
    response = client.post(
        "/v1/banners",
        json={"session_id": "dismisser", "shop_domain": "wine.example", "cart": _cart([_wine("60.00")], "60.00")},
    )
    assert response.json()["dismissed"] == []
    assert [b["priority"] for b in response.json()["banners"]] == [2, 3]


@pytest.mark.integration
@patch(LOAD_CONFIG)
def test_canadian_shopper(mock_load: AsyncMock, client: TestClient, merchant_config: MerchantConfig):
    """
    canadian: CA$35 cart
    Expected: CAD threshold of CA$70 with CA$ formatting
    """
    mock_load.return_value = merchant_config

    banners = _banners(client, "canadian", _cart([_wine("35.00", currency="CAD")], "35.00", currency="CAD"))

    assert banners[0]["progress"] == 50
    assert banners[0]["body"] == "Add CA$35.00 more for free shipping"


@pytest.mark.integration
@patch(LOAD_CONFIG)
def test_traveller_falls_back_to_default_currency(mock_load: AsyncMock, client: TestClient, merchant_config: MerchantConfig):
    """
    traveller: EUR cart, no EUR thresholds configured
    Expected: USD thresholds apply, amounts stay in euros
    """
    mock_load.return_value = merchant_config

    banners = _banners(client, "traveller", _cart([_wine("25.00", currency="EUR")], "25.00", currency="EUR"))

    assert len(banners) == 1
    assert banners[0]["progress"] == 50
    assert banners[0]["body"] == "Add €25.00 more for free shipping"

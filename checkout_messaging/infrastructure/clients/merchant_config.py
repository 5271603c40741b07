"""Merchant configuration HTTP client for thresholds, templates and subscription deals"""

import logging
from dataclasses import replace
from typing import Any, Dict, Optional, Tuple

import httpx

from checkout_messaging.config import settings
from checkout_messaging.domain.exceptions import ConfigFetchError, MissingConfigurationError
from checkout_messaging.domain.models import (
    CustomTemplates,
    DisplaySettings,
    MerchantConfig,
    SubscriptionDeal,
    TemplateSet,
    ThresholdRule,
    UpsellSettings,
)
from checkout_messaging.infrastructure.observability.metrics import config_fetch_failures_counter

TONES = ("info", "success", "warning", "critical")


def parse_threshold_rule(data: Dict[str, Any]) -> ThresholdRule:
    value = int(data["value"])
    if value < 0:
        raise ValueError(f"threshold value must be non-negative, got {value}")
    tone = data.get("tone", "info")
    if tone not in TONES:
        raise ValueError(f"unknown tone {tone!r}")
    discount = data.get("discountPercent")

    return ThresholdRule(
        value_minor_units=value,
        message_template=data.get("message", ""),
        tone=tone,
        priority=int(data.get("priority", 2)),
        met_message=data.get("metMessage", ""),
        hide_when_met=bool(data.get("hideWhenMet", False)),
        reward=data.get("reward", "shipping"),
        discount_percent=int(discount) if discount is not None else None,
    )


def parse_template_set(data: Optional[Dict[str, Any]]) -> Optional[TemplateSet]:
    if not data:
        return None
    return TemplateSet(
        heading=data.get("heading", ""),
        body=data.get("body", ""),
        context=data.get("context", ""),
    )


def parse_deal(data: Dict[str, Any]) -> SubscriptionDeal:
    quantity = data.get("quantity")
    messages = data.get("messagePerLocale") or {}
    if not isinstance(messages, dict):
        raise TypeError("messagePerLocale must be an object")

    return SubscriptionDeal(
        product_handle=data["productHandle"],
        included_item_title=data["includedItemTitle"],
        quantity=int(quantity) if quantity is not None else None,
        message_per_locale={str(k): str(v) for k, v in messages.items()},
        priority=int(data.get("priority", 1)),
    )


def parse_merchant_config(data: Dict[str, Any]) -> MerchantConfig:
    """
    Build MerchantConfig from the configuration service payload.

    Raises:
        KeyError, ValueError, TypeError: On a malformed payload
    """
    thresholds = {
        code: tuple(parse_threshold_rule(rule) for rule in rules)
        for code, rules in (data.get("thresholds") or {}).items()
    }
    custom = data.get("customTemplates") or {}
    display = data.get("display") or {}
    upsell = data.get("upsell") or {}

    return MerchantConfig(
        thresholds=thresholds,
        default_currency=data.get("defaultCurrency") or settings.default_currency,
        deals=tuple(parse_deal(deal) for deal in data.get("deals", [])),
        template_style=data.get("templateStyle", "default"),
        custom_templates=CustomTemplates(
            upsell=parse_template_set(custom.get("upsell")),
            threshold_unmet=parse_template_set(custom.get("thresholdUnmet")),
            threshold_met=parse_template_set(custom.get("thresholdMet")),
            inclusion=parse_template_set(custom.get("inclusion")),
        ),
        display=DisplaySettings(
            max_visible=int(display.get("maxVisible", 2)),
            allow_dismiss=bool(display.get("allowDismiss", True)),
            persist_dismissed=bool(display.get("persistDismissed", True)),
        ),
        upsell=UpsellSettings(
            enabled=bool(upsell.get("enabled", True)),
            priority=int(upsell.get("priority", 10)),
        ),
    )


class MerchantConfigClient:
    """Client for the external merchant configuration service"""

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url or settings.merchant_config_base
        self.timeout = timeout or settings.http_timeout_seconds
        self.transport = transport

    async def _get_json(self, path: str, shop_domain: str) -> Any:
        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            try:
                response = await client.get(f"{self.base_url}{path}", params={"shop": shop_domain})
                response.raise_for_status()
                return response.json()
            except httpx.TimeoutException as e:
                raise ConfigFetchError(f"Merchant config timeout after {self.timeout}s") from e
            except httpx.HTTPStatusError as e:
                if e.response.status_code == 404:
                    raise MissingConfigurationError(f"No merchant configuration for {shop_domain}") from e
                raise ConfigFetchError(f"Merchant config error: {e.response.status_code}") from e
            except httpx.RequestError as e:
                raise ConfigFetchError(f"Merchant config unreachable: {e}") from e
            except ValueError as e:
                raise ConfigFetchError(f"Merchant config returned invalid JSON: {e}") from e

    async def fetch_config(self, shop_domain: str) -> MerchantConfig:
        """
        Fetch thresholds, template style and display settings for a shop.

        Raises:
            MissingConfigurationError: Shop has no configuration (HTTP 404)
            ConfigFetchError: On timeout, HTTP errors, or invalid response
        """
        data = await self._get_json("/merchant-config", shop_domain)
        try:
            return parse_merchant_config(data)
        except (KeyError, ValueError, TypeError, AttributeError) as e:
            raise ConfigFetchError(f"Invalid merchant config: {e}") from e

    async def fetch_deals(self, shop_domain: str) -> Tuple[SubscriptionDeal, ...]:
        """
        Fetch subscription deal definitions for a shop.

        Raises:
            ConfigFetchError: On timeout, HTTP errors, or invalid response
        """
        data = await self._get_json("/subscription-deals", shop_domain)
        try:
            return tuple(parse_deal(deal) for deal in data.get("deals", []))
        except (KeyError, ValueError, TypeError, AttributeError) as e:
            raise ConfigFetchError(f"Invalid subscription deals: {e}") from e

    async def load(self, shop_domain: str) -> MerchantConfig:
        """
        Merchant config with its subscription deals.

        A failed deals fetch keeps any deals embedded in the config; a failed
        config fetch raises ConfigFetchError.
        """
        config = await self.fetch_config(shop_domain)
        try:
            deals = await self.fetch_deals(shop_domain)
        except ConfigFetchError as e:
            config_fetch_failures_counter.inc()
            logging.warning(f"Subscription deals unavailable: {e}", extra={"shop_domain": shop_domain})
            return config
        return replace(config, deals=deals)

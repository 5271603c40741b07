"""Checkout messaging engine - recomputes banners on cart changes and refreshes merchant config"""

import logging
import time
from typing import List, Optional

from checkout_messaging.domain.banner_queue import BannerQueue
from checkout_messaging.domain.exceptions import ConfigFetchError, MissingConfigurationError
from checkout_messaging.domain.models import BannerMessage, CartSnapshot, DisplaySettings, MerchantConfig
from checkout_messaging.domain.storage import InMemoryStore
from checkout_messaging.domain.subscription import detection_stats
from checkout_messaging.domain.thresholds import ThresholdDetector
from checkout_messaging.infrastructure.clients.merchant_config import MerchantConfigClient
from checkout_messaging.infrastructure.observability.metrics import (
    config_fetch_failures_counter,
    record_detections,
    record_render,
    threshold_crossing_counter,
)


class CheckoutMessagingEngine:
    """
    Host-facing engine for one checkout view.

    Cart changes recompute synchronously from the latest snapshot. Config
    refreshes run asynchronously; a response is applied only if no newer
    refresh started and the engine is still open, so a slow fetch never
    replaces a newer result.
    """

    def __init__(self, config_client: MerchantConfigClient, shop_domain: str, queue: Optional[BannerQueue] = None):
        self.config_client = config_client
        self.shop_domain = shop_domain
        self.queue = queue or BannerQueue(session_store=InMemoryStore())
        self.config: Optional[MerchantConfig] = None
        self.cart: Optional[CartSnapshot] = None
        self.banners: List[BannerMessage] = []
        self._config_epoch = 0
        self._closed = False

    def on_cart_change(self, cart: CartSnapshot) -> List[BannerMessage]:
        """Store the new snapshot and recompute"""
        previous, self.cart = self.cart, cart
        if previous is not None and self.config is not None:
            self._track_crossing(previous, cart)
        record_detections(detection_stats(cart.lines))
        return self.recompute()

    def recompute(self) -> List[BannerMessage]:
        if self._closed or self.cart is None:
            return self.banners

        start_time = time.time()
        self.banners = self.queue.build(self.cart, self.config)
        record_render(self.banners, self.config is not None, time.time() - start_time)
        return self.banners

    async def refresh_config(self) -> bool:
        """
        Fetch merchant config and recompute.

        Returns:
            True if the fetched config was applied; False on failure, when a
            newer refresh superseded it, or after close()
        """
        self._config_epoch += 1
        epoch = self._config_epoch

        try:
            config = await self.config_client.load(self.shop_domain)
        except MissingConfigurationError as e:
            logging.info(f"Merchant not configured: {e}", extra={"shop_domain": self.shop_domain})
            return False
        except ConfigFetchError as e:
            config_fetch_failures_counter.inc()
            logging.error(f"Merchant config fetch failed: {e}", extra={"shop_domain": self.shop_domain})
            return False

        if self._closed or epoch != self._config_epoch:
            logging.info(
                "Discarding stale merchant config",
                extra={"shop_domain": self.shop_domain, "epoch": epoch, "current_epoch": self._config_epoch},
            )
            return False

        self.config = config
        self.recompute()
        return True

    def dismiss(self, priority: int) -> List[BannerMessage]:
        """Dismiss a priority and recompute"""
        if self._closed:
            return self.banners
        display = self.config.display if self.config else DisplaySettings()
        if self.queue.dismiss(priority, display):
            self.recompute()
        return self.banners

    def close(self) -> None:
        """Tear down: pending config fetches are discarded when they resolve"""
        self._closed = True
        self._config_epoch += 1

    def _track_crossing(self, previous: CartSnapshot, current: CartSnapshot) -> None:
        detector = ThresholdDetector(self.config.thresholds, self.config.default_currency)
        crossing = detector.threshold_crossing(
            previous.subtotal.amount_minor,
            current.subtotal.amount_minor,
            current.subtotal.currency_code,
        )
        if crossing.crossed:
            threshold_crossing_counter.labels(direction=crossing.direction).inc()
            logging.info(
                "Threshold crossed",
                extra={
                    "shop_domain": self.shop_domain,
                    "direction": crossing.direction,
                    "threshold_minor_units": crossing.rule.value_minor_units,
                },
            )

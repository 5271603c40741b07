"""Banner queue - merges detector signals into a bounded, dismissible banner list"""

import json
import logging
from typing import Dict, List, Optional, Set

from checkout_messaging.domain.catalog import UNKNOWN_ICON, add_on_icon, add_on_title
from checkout_messaging.domain.exceptions import StorageUnavailableError
from checkout_messaging.domain.models import (
    BannerMessage,
    CartLine,
    CartSnapshot,
    DisplaySettings,
    IncludedItem,
    InclusionEntry,
    InclusionNotice,
    MerchantConfig,
    SubscriptionDeal,
    SubscriptionSignal,
)
from checkout_messaging.domain.storage import KeyValueStore
from checkout_messaging.domain.subscription import cart_subscriptions
from checkout_messaging.domain.templates import Style, render, resolve_style
from checkout_messaging.domain.thresholds import ThresholdDetector
from checkout_messaging.domain.upsell import best_upsell, detect_all_upsells

DEFAULT_STORAGE_KEY = "checkout_messaging_dismissed_banners"


def inclusion_entry(line: CartLine, signal: SubscriptionSignal, deal: SubscriptionDeal) -> InclusionEntry:
    """Included items for a subscription line matched to a deal"""
    if signal.add_ons:
        items = tuple(
            IncludedItem(
                title=add_on_title(kind, signal.add_on_counts[kind]),
                quantity=signal.add_on_counts[kind],
                icon=add_on_icon(kind),
            )
            for kind in signal.add_ons
        )
    else:
        # Keyword signals carry no add-on kinds; the deal names the item
        items = (
            IncludedItem(
                title=deal.included_item_title,
                quantity=deal.quantity or signal.unit_count,
                icon=UNKNOWN_ICON,
            ),
        )

    return InclusionEntry(
        product_title=line.product.title or line.title,
        interval=signal.interval,
        items=items,
        deal=deal,
    )


class BannerQueue:
    """
    Decides which banners a shopper sees for a cart.

    Dismissed priorities are read from the injected store once per build and
    written back on every dismiss. Store failures degrade to in-memory state.
    """

    def __init__(
        self,
        session_store: Optional[KeyValueStore] = None,
        durable_store: Optional[KeyValueStore] = None,
        storage_key: str = DEFAULT_STORAGE_KEY,
    ):
        self.session_store = session_store
        self.durable_store = durable_store
        self.storage_key = storage_key
        self.dismissed: Set[int] = set()

    def build(self, cart: CartSnapshot, config: Optional[MerchantConfig]) -> List[BannerMessage]:
        """
        Ordered, capped banner list for the cart.

        Returns an empty list while merchant configuration is missing.
        """
        if config is None:
            return []

        display = config.display
        store = self._store_for(display)
        dismissed = self._read(store) if display.allow_dismiss else set()

        # Inclusion banners cannot be dismissed, even when a rule shares their priority
        candidates = [
            banner for banner in self.candidates(cart, config)
            if banner.kind == "inclusion" or banner.priority not in dismissed
        ]
        # Stable: equal priorities keep inclusion, threshold, upsell order
        candidates.sort(key=lambda b: b.priority)
        visible = candidates[: max(0, display.max_visible)]

        goals = [banner for banner in visible if banner.kind != "inclusion"]
        if dismissed and goals and all(banner.met for banner in goals):
            logging.info(
                "All visible goals met, clearing dismissals",
                extra={"dismissed": sorted(dismissed), "step": "dismissal_auto_reset"},
            )
            self._reset(store)

        return visible

    def candidates(self, cart: CartSnapshot, config: MerchantConfig) -> List[BannerMessage]:
        """Every banner the cart qualifies for, before dismissal and capping"""
        style = resolve_style(config.template_style, config.custom_templates)
        banners = []

        inclusion = self._inclusion_banner(cart, config, style)
        if inclusion is not None:
            banners.append(inclusion)
        banners.extend(self._threshold_banners(cart, config, style))
        upsell = self._upsell_banner(cart, config, style)
        if upsell is not None:
            banners.append(upsell)

        return banners

    def dismiss(self, priority: int, display: DisplaySettings) -> bool:
        """Dismiss every banner with this priority; returns False when dismissal is disabled"""
        if not display.allow_dismiss:
            logging.info("Dismissal disabled by merchant settings", extra={"priority": priority})
            return False

        store = self._store_for(display)
        dismissed = self._read(store)
        dismissed.add(priority)
        self.dismissed = dismissed
        self._write(store, dismissed)
        return True

    def _inclusion_banner(self, cart: CartSnapshot, config: MerchantConfig, style: Style) -> Optional[BannerMessage]:
        deals: Dict[str, SubscriptionDeal] = {}
        for deal in config.deals:
            deals.setdefault(deal.product_handle, deal)

        entries = []
        for line, signal in cart_subscriptions(cart.lines):
            deal = deals.get(line.product.handle)
            if deal is not None:
                entries.append(inclusion_entry(line, signal, deal))
        if not entries:
            return None

        notice = InclusionNotice(entries=tuple(entries), priority=min(e.deal.priority for e in entries))
        message = render(notice, style, cart.subtotal.currency_code, cart.locale)
        return BannerMessage(
            heading=message.heading,
            body=message.body,
            context=message.context,
            tone="success",
            met=True,
            progress=100,
            priority=notice.priority,
            kind="inclusion",
            dismissible=False,
        )

    def _threshold_banners(self, cart: CartSnapshot, config: MerchantConfig, style: Style) -> List[BannerMessage]:
        detector = ThresholdDetector(config.thresholds, config.default_currency)
        status = detector.status_for(
            cart.subtotal.amount_minor,
            cart.subtotal.currency_code,
            config.display.max_visible,
        )

        banners = []
        for active in status.active:
            message = render(active, style, cart.subtotal.currency_code)
            banners.append(
                BannerMessage(
                    heading=message.heading,
                    body=message.body,
                    context=message.context,
                    tone="success" if active.met else active.rule.tone,
                    met=active.met,
                    progress=active.progress,
                    priority=active.rule.priority,
                    kind="threshold",
                    dismissible=config.display.allow_dismiss and not active.met,
                )
            )
        return banners

    def _upsell_banner(self, cart: CartSnapshot, config: MerchantConfig, style: Style) -> Optional[BannerMessage]:
        if not config.upsell.enabled:
            return None

        opportunity = best_upsell(detect_all_upsells(cart.lines))
        if opportunity is None:
            return None

        message = render(opportunity, style, cart.subtotal.currency_code)
        return BannerMessage(
            heading=message.heading,
            body=message.body,
            context=message.context,
            tone="info",
            met=False,
            progress=0,
            priority=config.upsell.priority,
            kind="upsell",
            dismissible=config.display.allow_dismiss,
        )

    def _store_for(self, display: DisplaySettings) -> Optional[KeyValueStore]:
        if display.persist_dismissed and self.durable_store is not None:
            return self.durable_store
        return self.session_store

    def _read(self, store: Optional[KeyValueStore]) -> Set[int]:
        """Stored dismissals merged with the in-memory set"""
        if store is None:
            return set(self.dismissed)

        try:
            raw = store.get(self.storage_key)
        except (StorageUnavailableError, OSError) as e:
            logging.warning(f"Dismissal store unavailable, using in-memory state: {e}", extra={"step": "dismissal_read"})
            return set(self.dismissed)

        if not raw:
            return set(self.dismissed)

        try:
            values = json.loads(raw)
        except ValueError as e:
            logging.warning(f"Malformed dismissal state ignored: {e}", extra={"step": "dismissal_read"})
            return set(self.dismissed)
        if not isinstance(values, list) or not all(isinstance(v, int) and not isinstance(v, bool) for v in values):
            logging.warning("Malformed dismissal state ignored: expected a list of integers", extra={"step": "dismissal_read"})
            return set(self.dismissed)

        self.dismissed |= set(values)
        return set(self.dismissed)

    def _write(self, store: Optional[KeyValueStore], dismissed: Set[int]) -> None:
        if store is None:
            return
        try:
            store.set(self.storage_key, json.dumps(sorted(dismissed)))
        except (StorageUnavailableError, OSError) as e:
            logging.warning(f"Dismissal store unavailable, keeping in-memory state: {e}", extra={"step": "dismissal_write"})

    def _reset(self, store: Optional[KeyValueStore]) -> None:
        self.dismissed.clear()
        if store is None:
            return
        try:
            store.clear(self.storage_key)
        except (StorageUnavailableError, OSError) as e:
            logging.warning(f"Dismissal store unavailable during reset: {e}", extra={"step": "dismissal_reset"})

"""Spend-threshold evaluation per currency"""

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from checkout_messaging.domain.models import ActiveThreshold, ThresholdRule, ThresholdStatus
from checkout_messaging.utils.money import round_half_up


@dataclass(frozen=True)
class ThresholdCrossing:
    """Result of comparing two cart values against the same rule list"""

    crossed: bool
    rule: Optional[ThresholdRule] = None
    direction: Optional[str] = None  # "up" | "down"


def calculate_remaining(rule: ThresholdRule, cart_value: int) -> int:
    return max(0, rule.value_minor_units - cart_value)


def calculate_progress(rule: ThresholdRule, cart_value: int) -> int:
    """Percent of the rule reached, clamped to [0, 100]"""
    if rule.value_minor_units <= 0:
        return 100
    percent = round_half_up(Decimal(100 * cart_value) / Decimal(rule.value_minor_units))
    return max(0, min(100, percent))


class ThresholdDetector:
    """Resolves next, met and display thresholds for a cart subtotal"""

    def __init__(self, rules_by_currency: Dict[str, Iterable[ThresholdRule]], default_currency: str):
        self.rules_by_currency: Dict[str, Tuple[ThresholdRule, ...]] = {
            code.upper(): tuple(sorted(rules, key=lambda r: r.value_minor_units))
            for code, rules in rules_by_currency.items()
        }
        self.default_currency = default_currency.upper()

    def rules_for(self, currency: str) -> Tuple[str, Tuple[ThresholdRule, ...]]:
        """Rule list for a currency, falling back to the configured default currency"""
        code = (currency or "").upper()
        if code in self.rules_by_currency:
            return code, self.rules_by_currency[code]

        logging.info(
            f"No thresholds for currency {code or '<empty>'}, using {self.default_currency}",
            extra={"currency": code, "fallback_currency": self.default_currency},
        )
        return self.default_currency, self.rules_by_currency.get(self.default_currency, ())

    def status_for(self, cart_value: int, currency: str, max_visible: int = 2) -> ThresholdStatus:
        """
        Evaluate a cart subtotal against the currency's thresholds.

        Args:
            cart_value: Subtotal in minor units
            currency: ISO 4217 code of the subtotal
            max_visible: Cap on the active display set

        Returns:
            ThresholdStatus with the next unmet rule, all met rules and the
            priority-ordered display set
        """
        resolved_currency, rules = self.rules_for(currency)

        next_rule = next((r for r in rules if r.value_minor_units > cart_value), None)
        met = tuple(r for r in rules if r.value_minor_units <= cart_value)

        candidates: List[ThresholdRule] = [next_rule] if next_rule else []
        candidates.extend(r for r in met if not r.hide_when_met)
        candidates.sort(key=lambda r: r.priority)

        active = tuple(
            ActiveThreshold(
                rule=rule,
                remaining=calculate_remaining(rule, cart_value),
                progress=calculate_progress(rule, cart_value),
                met=rule.value_minor_units <= cart_value,
            )
            for rule in candidates[: max(0, max_visible)]
        )

        return ThresholdStatus(
            next=next_rule,
            met=met,
            cart_value=cart_value,
            currency=resolved_currency,
            active=active,
        )

    def has_threshold_changed(self, previous_value: int, current_value: int, currency: str) -> bool:
        """True when the next unmet rule differs between two cart values"""
        previous = self.status_for(previous_value, currency).next
        current = self.status_for(current_value, currency).next
        return previous != current

    def threshold_crossing(self, previous_value: int, current_value: int, currency: str) -> ThresholdCrossing:
        """Detect a rule crossed between two cart values; the highest crossed rule wins"""
        _, rules = self.rules_for(currency)
        low, high = sorted((previous_value, current_value))
        crossed: Sequence[ThresholdRule] = [
            r for r in rules if low < r.value_minor_units <= high
        ]
        if previous_value == current_value or not crossed:
            return ThresholdCrossing(crossed=False)

        direction = "up" if current_value > previous_value else "down"
        return ThresholdCrossing(crossed=True, rule=crossed[-1], direction=direction)

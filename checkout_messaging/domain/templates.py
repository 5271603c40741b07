"""Message templates - built-in wording styles, merchant overrides and interpolation"""

import logging
import re
from dataclasses import dataclass
from typing import Dict, Mapping, Optional, Union

from checkout_messaging.domain.models import (
    ActiveThreshold,
    CustomTemplates,
    InclusionNotice,
    RenderedMessage,
    TemplateSet,
    UpsellOpportunity,
)
from checkout_messaging.utils.money import format_amount

BUILTIN_STYLES = ("default", "legal", "minimal", "enthusiastic")
CUSTOM_STYLE = "custom"

_PLACEHOLDER = re.compile(r"\{(\w+)\}")


@dataclass(frozen=True)
class BuiltinStyle:
    key: str


@dataclass(frozen=True)
class CustomStyle:
    templates: CustomTemplates


Style = Union[BuiltinStyle, CustomStyle]


UPSELL_TEMPLATES: Dict[str, TemplateSet] = {
    "default": TemplateSet(
        heading="💡 Save More with {upgradeFrequency} Subscription",
        body="Upgrade your {currentFrequency} subscription to {upgradeFrequency} and save {savingsAmount}/year ({savingsPercentage}% savings)",
        context="You're currently subscribed to: {productName}",
    ),
    "legal": TemplateSet(
        heading="Annual Subscription Available",
        body="Switch from {currentFrequency} to {upgradeFrequency} delivery and reduce annual cost by {savingsAmount} ({savingsPercentage}%)",
        context="Current subscription: {productName}",
    ),
    "minimal": TemplateSet(
        heading="Switch to {upgradeFrequency}",
        body="Save {savingsAmount}/year with {upgradeFrequency} delivery",
        context="{productName}",
    ),
    "enthusiastic": TemplateSet(
        heading="🎉 Huge Savings with {upgradeFrequency} Plan!",
        body="Level up to {upgradeFrequency} and pocket {savingsAmount} every year! That's {savingsPercentage}% more savings on {productName}",
        context="Currently on {currentFrequency} - upgrade now!",
    ),
}

# style -> "unmet" | "met" -> reward
THRESHOLD_TEMPLATES: Dict[str, Dict[str, Dict[str, TemplateSet]]] = {
    "default": {
        "unmet": {
            "shipping": TemplateSet("Unlock Free Shipping", "Add {amount} more to qualify for free shipping!", "{percentage} toward free shipping"),
            "gift": TemplateSet("Free Gift Available", "Spend {amount} more to unlock a free gift!", "{percentage} toward your free gift"),
            "discount": TemplateSet("Discount Available", "Add {amount} more to unlock {discount}% off!", "{percentage} toward your discount"),
        },
        "met": {
            "shipping": TemplateSet("🎉 Free Shipping Unlocked!", "You qualify for free shipping on this order.", "Free shipping applied"),
            "gift": TemplateSet("🎁 Free Gift Unlocked!", "You've earned a free gift with your order!", "Free gift included"),
            "discount": TemplateSet("💰 Discount Unlocked!", "You've unlocked {discount}% off your order!", "Discount applied"),
        },
    },
    "legal": {
        "unmet": {
            "shipping": TemplateSet("Qualify for Complimentary Shipping", "Add {amount} more to qualify for complimentary shipping.", "{percentage} toward complimentary shipping"),
            "gift": TemplateSet("Bonus Gift Available", "Spend {amount} more to receive a bonus gift.", "{percentage} toward your bonus gift"),
            "discount": TemplateSet("Discount Available", "Add {amount} more to unlock {discount}% off.", "{percentage} toward your discount"),
        },
        "met": {
            "shipping": TemplateSet("Complimentary Shipping Qualified", "You qualify for complimentary shipping on this order.", "Complimentary shipping applied"),
            "gift": TemplateSet("Bonus Gift Qualified", "You've earned a bonus gift with your order.", "Bonus gift included"),
            "discount": TemplateSet("Discount Qualified", "You've unlocked {discount}% off your order.", "Discount applied"),
        },
    },
    "minimal": {
        "unmet": {
            "shipping": TemplateSet("Shipping Threshold", "Add {amount} to reach {threshold} for free shipping.", "{percentage} complete"),
            "gift": TemplateSet("Gift Threshold", "Spend {amount} more to reach {threshold} and receive a gift.", "{percentage} complete"),
            "discount": TemplateSet("Discount Threshold", "Add {amount} to unlock {discount}% off at {threshold}.", "{percentage} complete"),
        },
        "met": {
            "shipping": TemplateSet("Shipping Threshold Reached", "Your order qualifies for free shipping.", "Complete"),
            "gift": TemplateSet("Gift Threshold Reached", "Your order qualifies for a complimentary gift.", "Complete"),
            "discount": TemplateSet("Discount Applied", "Your order qualifies for {discount}% off.", "Complete"),
        },
    },
    "enthusiastic": {
        "unmet": {
            "shipping": TemplateSet("🚚 Free Shipping Is So Close!", "Just {amount} more and shipping is on us!", "{percentage} of the way there!"),
            "gift": TemplateSet("🎁 A Free Gift Awaits!", "Only {amount} more to grab your free gift!", "{percentage} of the way there!"),
            "discount": TemplateSet("💸 Big Discount Ahead!", "Add {amount} more and take {discount}% off!", "{percentage} of the way there!"),
        },
        "met": {
            "shipping": TemplateSet("🎉 Woohoo, Free Shipping!", "Shipping is on us for this order!", "Free shipping applied"),
            "gift": TemplateSet("🎁 You Earned a Free Gift!", "Your free gift ships with this order!", "Free gift included"),
            "discount": TemplateSet("💰 Discount Unlocked!", "Enjoy {discount}% off this order!", "Discount applied"),
        },
    },
}

INCLUSION_TEMPLATES: Dict[str, TemplateSet] = {
    "default": TemplateSet("✨ What's Included", "Your {interval} subscription includes {items}", "{productName}"),
    "legal": TemplateSet("Included With Your Subscription", "Your {interval} subscription includes {items}.", "Subscription: {productName}"),
    "minimal": TemplateSet("Included", "{items}", "{productName}"),
    "enthusiastic": TemplateSet("🎉 Look What's Included!", "Your {interval} subscription comes with {items}!", "{productName}"),
}

INCLUSION_SUMMARY_TEMPLATES: Dict[str, TemplateSet] = {
    "default": TemplateSet("📦 Your Subscriptions", "Total: {items} across {count} subscriptions", "{productName}"),
    "legal": TemplateSet("Included With Your Subscriptions", "Total included: {items} across {count} subscriptions.", "Subscriptions: {productName}"),
    "minimal": TemplateSet("Included", "{items}", "{productName}"),
    "enthusiastic": TemplateSet("🎉 Your Subscription Haul!", "You're getting {items} across {count} subscriptions!", "{productName}"),
}

FREQUENCY_LABELS = {
    "monthly": "Monthly",
    "bimonthly": "Bi-Monthly",
    "quarterly": "Quarterly",
    "biannual": "Bi-Annual",
    "annual": "Annual",
}


def format_frequency(frequency: Optional[str]) -> str:
    return FREQUENCY_LABELS.get((frequency or "").lower(), "Subscription")


def interpolate(template: Optional[str], variables: Mapping[str, object]) -> str:
    """Replace {name} placeholders; names without a value stay verbatim"""
    if not template:
        return ""

    def substitute(match: re.Match) -> str:
        value = variables.get(match.group(1))
        return match.group(0) if value is None else str(value)

    return _PLACEHOLDER.sub(substitute, template)


def resolve_style(style_key: Optional[str], custom: Optional[CustomTemplates] = None) -> Style:
    """Resolve a merchant style key into a built-in or custom style"""
    key = (style_key or "default").strip().lower()
    if key == CUSTOM_STYLE:
        return CustomStyle(custom or CustomTemplates())
    if key in BUILTIN_STYLES:
        return BuiltinStyle(key)

    logging.info(f"Unknown template style {style_key!r}, using default", extra={"template_style": style_key})
    return BuiltinStyle("default")


def localized_message(messages: Mapping[str, str], locale: Optional[str], default_locale: str = "en") -> Optional[str]:
    """
    Pick a deal message for the shopper's locale.

    Lookup order: exact locale, language prefix ("fr" for "fr-CA"),
    the "default" entry, the default locale, then the first entry.
    """
    if not messages:
        return None

    by_key = {key.lower().replace("_", "-"): value for key, value in messages.items() if value}
    if not by_key:
        return None

    candidates = []
    if locale:
        normalized = locale.lower().replace("_", "-")
        candidates.extend([normalized, normalized.split("-")[0]])
    candidates.extend(["default", default_locale.lower()])

    for candidate in candidates:
        if candidate in by_key:
            return by_key[candidate]
    return next(iter(by_key.values()))


def _template_for(style: Style, kind: str, builtin: TemplateSet) -> TemplateSet:
    if isinstance(style, CustomStyle):
        return getattr(style.templates, kind) or builtin
    return builtin


def _builtin_key(style: Style) -> str:
    return style.key if isinstance(style, BuiltinStyle) else "default"


def _render_threshold(active: ActiveThreshold, style: Style, currency: str) -> RenderedMessage:
    rule = active.rule
    state = "met" if active.met else "unmet"
    by_reward = THRESHOLD_TEMPLATES[_builtin_key(style)][state]
    builtin = by_reward.get(rule.reward, by_reward["shipping"])
    template = _template_for(style, f"threshold_{state}", builtin)

    variables: Dict[str, object] = {
        "amount": format_amount(active.remaining, currency),
        "threshold": format_amount(rule.value_minor_units, currency),
        "percentage": f"{active.progress}%",
        "reward": rule.reward,
    }
    if rule.discount_percent is not None:
        variables["discount"] = rule.discount_percent

    # Wording configured on the rule itself takes precedence over the style body
    body = (rule.met_message if active.met else rule.message_template) or template.body
    return RenderedMessage(
        heading=interpolate(template.heading, variables),
        body=interpolate(body, variables),
        context=interpolate(template.context, variables),
    )


def _render_upsell(opportunity: UpsellOpportunity, style: Style, currency: str) -> RenderedMessage:
    template = _template_for(style, "upsell", UPSELL_TEMPLATES[_builtin_key(style)])
    variables = {
        "productName": opportunity.product_title,
        "currentFrequency": format_frequency(opportunity.current_frequency),
        "upgradeFrequency": format_frequency(opportunity.upgrade_frequency),
        "savingsAmount": format_amount(opportunity.savings_amount_minor_units, currency),
        "savingsPercentage": opportunity.savings_percentage,
        "currentPrice": format_amount(opportunity.current_price_minor_units, currency),
        "upgradePrice": format_amount(opportunity.upgrade_price_minor_units, currency),
    }
    return RenderedMessage(
        heading=interpolate(template.heading, variables),
        body=interpolate(template.body, variables),
        context=interpolate(template.context, variables),
    )


def _render_inclusion(notice: InclusionNotice, style: Style, locale: Optional[str]) -> RenderedMessage:
    # Aggregate quantities by item title, keeping first-seen order
    totals: Dict[str, list] = {}
    for entry in notice.entries:
        for item in entry.items:
            if item.title in totals:
                totals[item.title][1] += item.quantity
            else:
                totals[item.title] = [item.icon, item.quantity]

    items = " + ".join(f"{icon} {quantity} {title}" for title, (icon, quantity) in totals.items())
    first = notice.entries[0]
    first_item = first.items[0] if first.items else None
    variables = {
        "items": items,
        "itemTitle": first_item.title if first_item else first.deal.included_item_title,
        "quantity": first_item.quantity if first_item else "",
        "interval": format_frequency(first.interval),
        "productName": ", ".join(entry.product_title for entry in notice.entries),
        "count": len(notice.entries),
    }

    key = _builtin_key(style)
    if len(notice.entries) > 1:
        template = _template_for(style, "inclusion", INCLUSION_SUMMARY_TEMPLATES[key])
        body = template.body
    else:
        template = _template_for(style, "inclusion", INCLUSION_TEMPLATES[key])
        body = localized_message(first.deal.message_per_locale, locale) or template.body

    return RenderedMessage(
        heading=interpolate(template.heading, variables),
        body=interpolate(body, variables),
        context=interpolate(template.context, variables),
    )


def render(
    signal: Union[ActiveThreshold, UpsellOpportunity, InclusionNotice],
    style: Union[Style, str],
    currency: str,
    locale: Optional[str] = None,
) -> RenderedMessage:
    """
    Render heading, body and context for a detector signal.

    Args:
        signal: Active threshold, upsell opportunity or inclusion notice
        style: Resolved style, or a style key resolved with no custom overrides
        currency: ISO 4217 code used to format amounts
        locale: Shopper locale used to pick deal messages

    Raises:
        TypeError: If the signal type is not renderable
    """
    if isinstance(style, str):
        style = resolve_style(style)

    if isinstance(signal, ActiveThreshold):
        return _render_threshold(signal, style, currency)
    if isinstance(signal, UpsellOpportunity):
        return _render_upsell(signal, style, currency)
    if isinstance(signal, InclusionNotice):
        return _render_inclusion(signal, style, locale)
    raise TypeError(f"Cannot render signal of type {type(signal).__name__}")

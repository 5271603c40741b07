"""Unit tests for message templates and interpolation"""

from checkout_messaging.domain.models import (
    ActiveThreshold,
    CustomTemplates,
    IncludedItem,
    InclusionEntry,
    InclusionNotice,
    SubscriptionDeal,
    TemplateSet,
    ThresholdRule,
    UpsellOpportunity,
)
from checkout_messaging.domain.templates import (
    BuiltinStyle,
    CustomStyle,
    format_frequency,
    interpolate,
    localized_message,
    render,
    resolve_style,
)


def _opportunity() -> UpsellOpportunity:
    return UpsellOpportunity(
        current_frequency="monthly",
        upgrade_frequency="annual",
        savings_amount_minor_units=6480,
        savings_percentage=18,
        current_price_minor_units=3000,
        upgrade_price_minor_units=29520,
        product_title="Wine Club",
    )


def _deal(**overrides) -> SubscriptionDeal:
    values = {"product_handle": "wine-club-annual", "included_item_title": "Premium Glasses", "quantity": 4}
    values.update(overrides)
    return SubscriptionDeal(**values)


def test_interpolate_leaves_unknown_placeholders():
    assert interpolate("Save {amount} on {productName}", {"amount": "$5.00"}) == "Save $5.00 on {productName}"


def test_interpolate_empty_template():
    assert interpolate("", {"amount": "$5.00"}) == ""
    assert interpolate(None, {}) == ""


def test_resolve_style_variants():
    assert resolve_style("legal") == BuiltinStyle("legal")
    assert resolve_style(" Minimal ") == BuiltinStyle("minimal")
    assert resolve_style(None) == BuiltinStyle("default")
    assert resolve_style("flashy") == BuiltinStyle("default")
    assert isinstance(resolve_style("custom"), CustomStyle)


def test_format_frequency():
    assert format_frequency("bimonthly") == "Bi-Monthly"
    assert format_frequency("annual") == "Annual"
    assert format_frequency(None) == "Subscription"


def test_upsell_default_style():
    message = render(_opportunity(), "default", "USD")

    assert message.heading == "💡 Save More with Annual Subscription"
    assert message.body == "Upgrade your Monthly subscription to Annual and save $64.80/year (18% savings)"
    assert message.context == "You're currently subscribed to: Wine Club"


def test_upsell_legal_style():
    message = render(_opportunity(), "legal", "GBP")

    assert message.heading == "Annual Subscription Available"
    assert "reduce annual cost by £64.80 (18%)" in message.body


def test_custom_style_with_partial_template():
    """Unknown placeholders in merchant wording stay as typed"""
    style = resolve_style(
        "custom",
        CustomTemplates(upsell=TemplateSet(heading="Go {upgradeFrequency}", body="{upgradePrice} vs {currentPrice} {perks}")),
    )

    message = render(_opportunity(), style, "USD")

    assert message.heading == "Go Annual"
    assert message.body == "$295.20 vs $30.00 {perks}"
    assert message.context == ""


def test_custom_style_missing_kind_uses_default():
    style = resolve_style("custom", CustomTemplates())

    message = render(_opportunity(), style, "USD")

    assert message.heading == "💡 Save More with Annual Subscription"


def test_threshold_unmet_uses_rule_message():
    rule = ThresholdRule(value_minor_units=5000, message_template="Add {amount} more for free shipping ({percentage})")
    active = ActiveThreshold(rule=rule, remaining=1500, progress=70, met=False)

    message = render(active, "default", "USD")

    assert message.heading == "Unlock Free Shipping"
    assert message.body == "Add $15.00 more for free shipping (70%)"
    assert message.context == "70% toward free shipping"


def test_threshold_style_body_when_rule_has_no_message():
    rule = ThresholdRule(value_minor_units=5000)
    active = ActiveThreshold(rule=rule, remaining=1500, progress=70, met=False)

    message = render(active, "minimal", "CAD")

    assert message.body == "Add CA$15.00 to reach CA$50.00 for free shipping."


def test_threshold_met_discount():
    rule = ThresholdRule(value_minor_units=10000, reward="discount", discount_percent=10)
    active = ActiveThreshold(rule=rule, remaining=0, progress=100, met=True)

    message = render(active, "default", "USD")

    assert message.heading == "💰 Discount Unlocked!"
    assert message.body == "You've unlocked 10% off your order!"


def test_threshold_discount_placeholder_without_value_stays_verbatim():
    rule = ThresholdRule(value_minor_units=10000, reward="discount")
    active = ActiveThreshold(rule=rule, remaining=500, progress=95, met=False)

    assert "{discount}% off" in render(active, "default", "USD").body


def test_threshold_unknown_currency_renders_code():
    rule = ThresholdRule(value_minor_units=5000, message_template="Add {amount} more")
    active = ActiveThreshold(rule=rule, remaining=1500, progress=70, met=False)

    assert render(active, "default", "JPY").body == "Add JPY 15.00 more"


def test_inclusion_single_entry():
    notice = InclusionNotice(
        entries=(
            InclusionEntry(
                product_title="Wine Club",
                interval="annual",
                items=(IncludedItem("Premium Glasses", 4, "🍷"), IncludedItem("Stickers", 2, "✨")),
                deal=_deal(),
            ),
        ),
        priority=1,
    )

    message = render(notice, "default", "USD")

    assert message.heading == "✨ What's Included"
    assert message.body == "Your Annual subscription includes 🍷 4 Premium Glasses + ✨ 2 Stickers"
    assert message.context == "Wine Club"


def test_inclusion_locale_message():
    deal = _deal(message_per_locale={"default": "You get {quantity} glasses", "fr": "Vous recevez {quantity} verres"})
    notice = InclusionNotice(
        entries=(InclusionEntry("Wine Club", "annual", (IncludedItem("Premium Glasses", 4, "🍷"),), deal),),
        priority=1,
    )

    assert render(notice, "default", "EUR", locale="fr-CA").body == "Vous recevez 4 verres"
    assert render(notice, "default", "USD", locale="de").body == "You get 4 glasses"


def test_inclusion_summary_aggregates_items():
    glasses = IncludedItem("Premium Glasses", 4, "🍷")
    notice = InclusionNotice(
        entries=(
            InclusionEntry("Red Club", "annual", (glasses,), _deal()),
            InclusionEntry("White Club", "annual", (glasses, IncludedItem("Sample", 1, "🎁")), _deal()),
        ),
        priority=1,
    )

    message = render(notice, "default", "USD")

    assert message.heading == "📦 Your Subscriptions"
    assert message.body == "Total: 🍷 8 Premium Glasses + 🎁 1 Sample across 2 subscriptions"
    assert message.context == "Red Club, White Club"


def test_localized_message_lookup_order():
    messages = {"en": "English", "fr": "French", "fr-CA": "Canadian French"}

    assert localized_message(messages, "fr-CA") == "Canadian French"
    assert localized_message(messages, "fr_FR") == "French"
    assert localized_message(messages, "de") == "English"
    assert localized_message({"es": "Spanish"}, "de") == "Spanish"
    assert localized_message({}, "en") is None

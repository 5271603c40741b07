"""Domain models - pure Python dataclasses representing cart and messaging entities"""

from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple


@dataclass(frozen=True)
class Money:
    """Amount in currency minor units (cents)"""

    amount_minor: int
    currency_code: str


# Cart input (owned by the host checkout, read-only here)


@dataclass(frozen=True)
class DeliveryPolicy:
    """Recurring delivery cadence, e.g. interval="month", interval_count=3"""

    interval: Optional[str] = None
    interval_count: Optional[int] = None


@dataclass(frozen=True)
class PriceAdjustment:
    adjustment_type: str
    adjustment_value: float


@dataclass(frozen=True)
class SubscriptionPlan:
    """Selling plan attached to a cart line"""

    name: str = ""
    delivery_policy: Optional[DeliveryPolicy] = None
    price_adjustments: Tuple[PriceAdjustment, ...] = ()


@dataclass(frozen=True)
class Product:
    title: str = ""
    handle: str = ""
    attributes: Dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class CartLine:
    """Single line item in the cart"""

    title: str
    quantity: int
    unit_price: Money
    product: Product = field(default_factory=Product)
    variant_title: Optional[str] = None
    add_on_attribute: Optional[str] = None  # e.g. "annual_4_glass_2_sticker"
    subscription_plan: Optional[SubscriptionPlan] = None


@dataclass(frozen=True)
class CartSnapshot:
    """Cart state at the moment of a change notification"""

    lines: Tuple[CartLine, ...]
    subtotal: Money
    locale: Optional[str] = None


# Detector signals (derived per recompute, never persisted)


@dataclass(frozen=True)
class SubscriptionSignal:
    """Normalized subscription and add-on signal for one cart line"""

    interval: str  # "monthly" | "quarterly" | "annual" | "subscription"
    unit_count: int
    add_ons: Tuple[str, ...]
    add_on_counts: Dict[str, int]
    provenance: str  # "structured-attribute" | "keyword"
    raw: str = ""


@dataclass(frozen=True)
class ThresholdRule:
    """Spend breakpoint that unlocks a reward once the subtotal reaches it"""

    value_minor_units: int
    message_template: str = ""
    tone: str = "info"
    priority: int = 2
    met_message: str = ""
    hide_when_met: bool = False
    reward: str = "shipping"  # "shipping" | "gift" | "discount"
    discount_percent: Optional[int] = None


@dataclass(frozen=True)
class ActiveThreshold:
    """Threshold selected for display with its computed progress"""

    rule: ThresholdRule
    remaining: int
    progress: int
    met: bool


@dataclass(frozen=True)
class ThresholdStatus:
    next: Optional[ThresholdRule]
    met: Tuple[ThresholdRule, ...]
    cart_value: int
    currency: str
    active: Tuple[ActiveThreshold, ...] = ()


@dataclass(frozen=True)
class UpsellOpportunity:
    """Estimated savings from moving a subscription line to annual delivery"""

    current_frequency: str
    upgrade_frequency: str
    savings_amount_minor_units: int
    savings_percentage: int
    current_price_minor_units: int
    upgrade_price_minor_units: int
    product_title: str
    quantity: int = 1
    annual_cost_minor_units: int = 0


# Merchant configuration


@dataclass(frozen=True)
class SubscriptionDeal:
    """Complimentary item a merchant bundles with a subscription product"""

    product_handle: str
    included_item_title: str
    quantity: Optional[int] = None
    message_per_locale: Dict[str, str] = field(default_factory=dict)
    priority: int = 1


@dataclass(frozen=True)
class DisplaySettings:
    max_visible: int = 2
    allow_dismiss: bool = True
    persist_dismissed: bool = True


@dataclass(frozen=True)
class UpsellSettings:
    enabled: bool = True
    priority: int = 10


@dataclass(frozen=True)
class TemplateSet:
    """Heading, body and context wording for one banner kind"""

    heading: str
    body: str
    context: str = ""


@dataclass(frozen=True)
class CustomTemplates:
    """Merchant overrides; unset kinds use the default style"""

    upsell: Optional[TemplateSet] = None
    threshold_unmet: Optional[TemplateSet] = None
    threshold_met: Optional[TemplateSet] = None
    inclusion: Optional[TemplateSet] = None


@dataclass(frozen=True)
class MerchantConfig:
    """Everything a merchant configures for checkout messaging"""

    thresholds: Dict[str, Tuple[ThresholdRule, ...]] = field(default_factory=dict)
    default_currency: str = "USD"
    deals: Tuple[SubscriptionDeal, ...] = ()
    template_style: str = "default"
    custom_templates: CustomTemplates = field(default_factory=CustomTemplates)
    display: DisplaySettings = field(default_factory=DisplaySettings)
    upsell: UpsellSettings = field(default_factory=UpsellSettings)

    def __post_init__(self):
        # Rule lists are keyed by upper-case code and kept ascending by value
        normalized = {
            code.upper(): tuple(sorted(rules, key=lambda r: r.value_minor_units))
            for code, rules in self.thresholds.items()
        }
        object.__setattr__(self, "thresholds", normalized)
        object.__setattr__(self, "default_currency", self.default_currency.upper())
        object.__setattr__(self, "deals", tuple(self.deals))


# Rendering and queue output


@dataclass(frozen=True)
class IncludedItem:
    """One complimentary item line, e.g. 4 Premium Glasses"""

    title: str
    quantity: int
    icon: str


@dataclass(frozen=True)
class InclusionEntry:
    """Subscription line matched to a merchant deal"""

    product_title: str
    interval: str
    items: Tuple[IncludedItem, ...]
    deal: SubscriptionDeal


@dataclass(frozen=True)
class InclusionNotice:
    """All matched subscription lines, rendered as a single banner"""

    entries: Tuple[InclusionEntry, ...]
    priority: int


@dataclass(frozen=True)
class RenderedMessage:
    heading: str
    body: str
    context: str = ""


@dataclass(frozen=True)
class BannerMessage:
    """Unit placed into the banner queue and handed to the presentation layer"""

    heading: str
    body: str
    tone: str  # "info" | "success" | "warning" | "critical"
    met: bool
    progress: int
    priority: int
    kind: str  # "inclusion" | "threshold" | "upsell"
    context: str = ""
    dismissible: bool = False


@dataclass
class DetectionStats:
    """Provenance counts for monitoring keyword fallback rate"""

    structured_attribute: int = 0
    keyword: int = 0
    undetected: int = 0

    @property
    def total(self) -> int:
        return self.structured_attribute + self.keyword + self.undetected

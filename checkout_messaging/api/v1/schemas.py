"""Pydantic schemas for API request/response validation"""

from decimal import Decimal
from typing import Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from checkout_messaging.domain.models import (
    CartLine,
    CartSnapshot,
    DeliveryPolicy,
    Money,
    PriceAdjustment,
    Product,
    SubscriptionPlan,
)
from checkout_messaging.utils.money import to_minor_units


class CartModel(BaseModel):
    """Cart payloads use the checkout's camelCase keys"""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class MoneySchema(CartModel):
    amount: Decimal = Field(..., description="Decimal amount, e.g. 35.00")
    currency_code: str = Field(..., min_length=3, max_length=3, description="ISO 4217 code")

    def to_domain(self) -> Money:
        return Money(amount_minor=to_minor_units(str(self.amount)), currency_code=self.currency_code.upper())


class AttributeSchema(CartModel):
    key: str
    value: Optional[str] = None


class ProductSchema(CartModel):
    title: str = ""
    handle: str = ""
    attributes: Union[Dict[str, Optional[str]], List[AttributeSchema]] = Field(default_factory=dict)

    def attribute_map(self) -> Dict[str, str]:
        if isinstance(self.attributes, dict):
            return {k: v for k, v in self.attributes.items() if v is not None}
        return {a.key: a.value for a in self.attributes if a.value is not None}


class DeliveryPolicySchema(CartModel):
    interval: Optional[str] = None
    interval_count: Optional[int] = Field(None, ge=1)


class PriceAdjustmentSchema(CartModel):
    adjustment_type: str
    adjustment_value: float


class SubscriptionPlanSchema(CartModel):
    name: str = ""
    delivery_policy: Optional[DeliveryPolicySchema] = None
    price_adjustments: List[PriceAdjustmentSchema] = Field(default_factory=list)


class CartLineSchema(CartModel):
    title: str = ""
    quantity: int = Field(1, ge=0)
    unit_price: MoneySchema
    variant_title: Optional[str] = None
    product: ProductSchema = Field(default_factory=ProductSchema)
    subscription_plan: Optional[SubscriptionPlanSchema] = None

    def to_domain(self, attribute_key: str) -> CartLine:
        plan = None
        if self.subscription_plan is not None:
            policy = self.subscription_plan.delivery_policy
            plan = SubscriptionPlan(
                name=self.subscription_plan.name,
                delivery_policy=DeliveryPolicy(policy.interval, policy.interval_count) if policy else None,
                price_adjustments=tuple(
                    PriceAdjustment(a.adjustment_type, a.adjustment_value)
                    for a in self.subscription_plan.price_adjustments
                ),
            )

        attributes = self.product.attribute_map()
        return CartLine(
            title=self.title,
            quantity=self.quantity,
            unit_price=self.unit_price.to_domain(),
            product=Product(title=self.product.title, handle=self.product.handle, attributes=attributes),
            variant_title=self.variant_title,
            add_on_attribute=attributes.get(attribute_key),
            subscription_plan=plan,
        )


class CartSchema(CartModel):
    lines: List[CartLineSchema] = Field(default_factory=list)
    subtotal: MoneySchema

    def to_domain(self, locale: Optional[str], attribute_key: str) -> CartSnapshot:
        """
        Convert to a domain snapshot.

        Raises:
            ValueError: If an amount cannot be converted to minor units
        """
        return CartSnapshot(
            lines=tuple(line.to_domain(attribute_key) for line in self.lines),
            subtotal=self.subtotal.to_domain(),
            locale=locale,
        )


class BannerRequest(BaseModel):
    """Request body for POST /v1/banners"""

    session_id: str = Field(..., min_length=1, description="Shopper checkout session identifier")
    shop_domain: str = Field(..., min_length=1, description="Merchant shop domain")
    locale: Optional[str] = None
    cart: CartSchema


class BannerSchema(BaseModel):
    """Single banner for the presentation layer"""

    heading: str
    body: str
    context: str = ""
    tone: str
    met: bool
    progress: int = Field(..., ge=0, le=100)
    priority: int
    kind: str
    dismissible: bool


class BannerResponse(BaseModel):
    """Response for POST /v1/banners"""

    banners: List[BannerSchema]
    dismissed: List[int]


class DismissRequest(BaseModel):
    """Request body for POST /v1/banners/dismiss"""

    session_id: str = Field(..., min_length=1)
    shop_domain: str = Field(..., min_length=1)
    priority: int


class DismissResponse(BaseModel):
    """Response for POST /v1/banners/dismiss"""

    accepted: bool
    dismissed: List[int]

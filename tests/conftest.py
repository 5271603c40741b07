"""Pytest fixtures for testing"""

import pytest
from typing import Callable, Generator
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from checkout_messaging.api.dependencies import SessionStores, get_session_stores
from checkout_messaging.api.main import create_app
from checkout_messaging.infrastructure.database.models import Base
from checkout_messaging.infrastructure.database.session import get_db
from checkout_messaging.domain.models import (
    CartLine,
    CartSnapshot,
    DeliveryPolicy,
    MerchantConfig,
    Money,
    Product,
    SubscriptionDeal,
    SubscriptionPlan,
    ThresholdRule,
)


# Test database
TEST_DATABASE_URL = "sqlite:///./test.db"
engine = create_engine(TEST_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db() -> Generator[Session, None, None]:
    """Create test database and session"""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(db: Session) -> TestClient:
    """Create FastAPI test client with test database and fresh session stores"""
    app = create_app()
    stores = SessionStores()

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_stores] = lambda: stores
    return TestClient(app)


@pytest.fixture
def usd_rules() -> list[ThresholdRule]:
    """Free shipping at $50, free gift at $100"""
    return [
        ThresholdRule(
            value_minor_units=5000,
            message_template="Add {amount} more for free shipping",
            tone="info",
            priority=2,
            met_message="Free shipping unlocked",
        ),
        ThresholdRule(
            value_minor_units=10000,
            message_template="Add {amount} more for a free gift",
            tone="info",
            priority=3,
            met_message="Free gift unlocked",
            reward="gift",
        ),
    ]


@pytest.fixture
def merchant_config(usd_rules: list[ThresholdRule]) -> MerchantConfig:
    """Wine club merchant: USD and CAD thresholds, one annual glassware deal"""
    return MerchantConfig(
        thresholds={
            "USD": usd_rules,
            "CAD": [
                ThresholdRule(value_minor_units=7000, message_template="Add {amount} more for free shipping", priority=2),
                ThresholdRule(value_minor_units=13000, message_template="Add {amount} more for a free gift", priority=3),
            ],
        },
        default_currency="USD",
        deals=(
            SubscriptionDeal(
                product_handle="wine-club-annual",
                included_item_title="Premium Glasses",
                quantity=4,
                priority=1,
            ),
        ),
    )


@pytest.fixture
def make_line() -> Callable[..., CartLine]:
    """Factory for cart lines with sensible defaults"""

    def _make_line(
        title: str = "House Red",
        price_cents: int = 2500,
        quantity: int = 1,
        handle: str = "house-red",
        product_title: str | None = None,
        attribute: str | None = None,
        interval: str | None = None,
        interval_count: int | None = None,
        plan_name: str | None = None,
        currency: str = "USD",
    ) -> CartLine:
        plan = None
        if interval is not None or plan_name is not None:
            plan = SubscriptionPlan(
                name=plan_name or "",
                delivery_policy=DeliveryPolicy(interval, interval_count) if interval else None,
            )
        return CartLine(
            title=title,
            quantity=quantity,
            unit_price=Money(price_cents, currency),
            product=Product(title=product_title or title, handle=handle),
            add_on_attribute=attribute,
            subscription_plan=plan,
        )

    return _make_line


@pytest.fixture
def make_cart() -> Callable[..., CartSnapshot]:
    """Factory for cart snapshots; subtotal defaults to the sum of line totals"""

    def _make_cart(lines=(), subtotal_cents: int | None = None, currency: str = "USD", locale: str | None = None) -> CartSnapshot:
        lines = tuple(lines)
        if subtotal_cents is None:
            subtotal_cents = sum(line.unit_price.amount_minor * line.quantity for line in lines)
        return CartSnapshot(lines=lines, subtotal=Money(subtotal_cents, currency), locale=locale)

    return _make_cart

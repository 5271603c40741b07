"""POST /v1/banners - checkout banner decision and dismissal endpoints"""

import time
import logging
from dataclasses import asdict
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from checkout_messaging.api.v1.schemas import (
    BannerRequest,
    BannerResponse,
    BannerSchema,
    DismissRequest,
    DismissResponse,
)
from checkout_messaging.api.dependencies import SessionStores, get_config_client, get_request_id, get_session_stores
from checkout_messaging.config import settings
from checkout_messaging.domain.banner_queue import BannerQueue
from checkout_messaging.domain.exceptions import ConfigFetchError, MissingConfigurationError
from checkout_messaging.domain.models import DisplaySettings, MerchantConfig
from checkout_messaging.domain.subscription import detection_stats
from checkout_messaging.infrastructure.clients.merchant_config import MerchantConfigClient
from checkout_messaging.infrastructure.database.repositories import SqlDismissalStore
from checkout_messaging.infrastructure.database.session import get_db
from checkout_messaging.infrastructure.observability.logging import log_render
from checkout_messaging.infrastructure.observability.metrics import (
    config_fetch_failures_counter,
    dismissal_storage_failures_counter,
    record_detections,
    record_render,
)

router = APIRouter()


async def _load_config(config_client: MerchantConfigClient, shop_domain: str, request_id: str) -> Optional[MerchantConfig]:
    """Merchant config, or None when the shop is unconfigured or the service fails"""
    try:
        return await config_client.load(shop_domain)
    except MissingConfigurationError as e:
        logging.info(f"Merchant not configured: {e}", extra={"request_id": request_id, "shop_domain": shop_domain})
        return None
    except ConfigFetchError as e:
        config_fetch_failures_counter.inc()
        logging.error(f"Merchant config error: {e}", extra={"request_id": request_id, "shop_domain": shop_domain})
        return None


def _build_queue(db: Session, session_stores: SessionStores, session_id: str) -> BannerQueue:
    return BannerQueue(
        session_store=session_stores.for_session(session_id),
        durable_store=SqlDismissalStore(db, session_id),
        storage_key=settings.dismissal_storage_key,
    )


def _commit(db: Session, request_id: str) -> None:
    """Commit dismissal changes; a failed commit keeps the response and drops persistence"""
    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        dismissal_storage_failures_counter.labels(operation="commit").inc()
        logging.warning(f"Dismissal state not persisted: {e}", extra={"request_id": request_id})


@router.post("/banners", response_model=BannerResponse)
async def compute_banners(
    request_body: BannerRequest,
    request: Request,
    db: Session = Depends(get_db),
    config_client: MerchantConfigClient = Depends(get_config_client),
    session_stores: SessionStores = Depends(get_session_stores),
):
    """
    Decide which banners the shopper sees for the submitted cart.

    Flow:
    1. Convert the cart snapshot to minor units
    2. Fetch merchant config and subscription deals
    3. Run detectors, render templates, apply dismissals and the visible cap
    4. Persist any dismissal reset
    """
    start_time = time.time()
    request_id = get_request_id(request)

    try:
        cart = request_body.cart.to_domain(request_body.locale or settings.default_locale, settings.subscription_attribute_key)
    except ValueError as e:
        logging.warning(f"Invalid cart snapshot: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=422, detail=str(e))

    config = await _load_config(config_client, request_body.shop_domain, request_id)

    try:
        queue = _build_queue(db, session_stores, request_body.session_id)
        banners = queue.build(cart, config)
    except Exception as e:
        db.rollback()
        logging.error(f"Unexpected error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")

    _commit(db, request_id)

    # Record metrics and logs
    duration = time.time() - start_time
    record_detections(detection_stats(cart.lines))
    record_render(banners, config is not None, duration)
    log_render(request_id, request_body.shop_domain, banners, duration * 1000)

    return BannerResponse(
        banners=[BannerSchema(**asdict(banner)) for banner in banners],
        dismissed=sorted(queue.dismissed),
    )


@router.post("/banners/dismiss", response_model=DismissResponse)
async def dismiss_banner(
    request_body: DismissRequest,
    request: Request,
    db: Session = Depends(get_db),
    config_client: MerchantConfigClient = Depends(get_config_client),
    session_stores: SessionStores = Depends(get_session_stores),
):
    """Dismiss every banner with the given priority for this session"""
    request_id = get_request_id(request)
    config = await _load_config(config_client, request_body.shop_domain, request_id)
    display = config.display if config else DisplaySettings()

    try:
        queue = _build_queue(db, session_stores, request_body.session_id)
        accepted = queue.dismiss(request_body.priority, display)
    except Exception as e:
        db.rollback()
        logging.error(f"Unexpected error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")

    _commit(db, request_id)
    logging.info(
        "Banner dismissed" if accepted else "Banner dismissal ignored",
        extra={"request_id": request_id, "priority": request_body.priority, "step": "dismiss"},
    )

    return DismissResponse(accepted=accepted, dismissed=sorted(queue.dismissed))

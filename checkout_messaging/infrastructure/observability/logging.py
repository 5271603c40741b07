"""Structured JSON logging for production observability"""

import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Iterable
from pythonjsonlogger import jsonlogger

from checkout_messaging.config import settings
from checkout_messaging.domain.models import BannerMessage


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """Custom JSON formatter with timestamp and service metadata"""

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = datetime.now(timezone.utc).isoformat()
        log_record["level"] = record.levelname
        log_record["service"] = settings.service_name


def setup_logging(level: str = "INFO") -> None:
    """Configure structured JSON logging"""
    logger = logging.getLogger()
    logger.setLevel(level)

    # Remove existing handlers
    logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    formatter = CustomJsonFormatter(
        "%(timestamp)s %(level)s %(name)s %(message)s"
    )
    handler.setFormatter(formatter)
    logger.addHandler(handler)


def log_render(
    request_id: str,
    shop_domain: str,
    banners: Iterable[BannerMessage],
    duration_ms: float,
) -> None:
    """Log structured banner outcome for analysis"""
    banners = list(banners)
    logging.info(
        "Banners rendered",
        extra={
            "request_id": request_id,
            "shop_domain": shop_domain,
            "step": "render_complete",
            "banner_count": len(banners),
            "banner_kinds": [banner.kind for banner in banners],
            "priorities": [banner.priority for banner in banners],
            "duration_ms": duration_ms,
        },
    )

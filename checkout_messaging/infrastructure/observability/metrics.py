"""Prometheus metrics for banner decisions, detection health and dependencies"""

from typing import Iterable

from prometheus_client import Counter, Histogram

from checkout_messaging.domain.models import BannerMessage, DetectionStats

# Render metrics
banner_render_counter = Counter(
    "checkout_banner_renders_total",
    "Banner list computations",
    ["outcome"],  # banners | empty | unconfigured
)

banners_emitted_counter = Counter(
    "checkout_banners_emitted_total",
    "Banners shown to shoppers by kind",
    ["kind"],  # inclusion | threshold | upsell
)

render_latency_histogram = Histogram(
    "checkout_render_duration_seconds",
    "Time from cart snapshot to banner list",
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25],
)

# Detection health
subscription_detection_counter = Counter(
    "checkout_subscription_detections_total",
    "Cart lines by subscription detection provenance",
    ["provenance"],  # structured-attribute | keyword | none
)

threshold_crossing_counter = Counter(
    "checkout_threshold_crossings_total",
    "Spend thresholds crossed between cart updates",
    ["direction"],  # up | down
)

# Dependencies
config_fetch_failures_counter = Counter(
    "merchant_config_fetch_failures_total",
    "Failed merchant configuration fetches",
)

dismissal_storage_failures_counter = Counter(
    "dismissal_storage_failures_total",
    "Failed dismissal store operations",
    ["operation"],  # get | set | clear
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_render(banners: Iterable[BannerMessage], configured: bool, duration_seconds: float) -> None:
    """Record outcome, per-kind counts and latency of one banner computation"""
    banners = list(banners)
    if not configured:
        outcome = "unconfigured"
    elif banners:
        outcome = "banners"
    else:
        outcome = "empty"
    banner_render_counter.labels(outcome=outcome).inc()

    for banner in banners:
        banners_emitted_counter.labels(kind=banner.kind).inc()

    render_latency_histogram.observe(duration_seconds)


def record_detections(stats: DetectionStats) -> None:
    """Record detection provenance for keyword fallback rate monitoring"""
    if stats.structured_attribute:
        subscription_detection_counter.labels(provenance="structured-attribute").inc(stats.structured_attribute)
    if stats.keyword:
        subscription_detection_counter.labels(provenance="keyword").inc(stats.keyword)
    if stats.undetected:
        subscription_detection_counter.labels(provenance="none").inc(stats.undetected)

"""Subscription detection - structured attribute first, title keywords second"""

import logging
import re
from typing import Dict, Iterable, List, Optional, Tuple

from checkout_messaging.domain.catalog import is_valid_add_on
from checkout_messaging.domain.exceptions import MalformedSignalInputError
from checkout_messaging.domain.models import CartLine, DetectionStats, SubscriptionSignal

STRUCTURED_ATTRIBUTE = "structured-attribute"
KEYWORD = "keyword"

STRUCTURED_INTERVALS = ("monthly", "quarterly", "annual")

_COUNT_TOKEN = re.compile(r"[0-9]+")

# Checked in order, first match wins: a title mentioning both annual and
# quarterly delivery resolves to annual.
KEYWORD_RULES: Tuple[Tuple[str, int, Tuple[re.Pattern, ...]], ...] = (
    (
        "annual",
        4,
        (
            re.compile(r"\bannual\b", re.IGNORECASE),
            re.compile(r"\byearly\b", re.IGNORECASE),
            re.compile(r"\b12\s*-?\s*month\b", re.IGNORECASE),
        ),
    ),
    (
        "quarterly",
        1,
        (
            re.compile(r"\bquarterly\b", re.IGNORECASE),
            re.compile(r"\b3\s*-?\s*month\b", re.IGNORECASE),
        ),
    ),
    ("subscription", 1, (re.compile(r"\bsubscription\b", re.IGNORECASE),)),
)


def _parse_count(token: str) -> int:
    count = int(token)
    if count <= 0:
        raise MalformedSignalInputError(f"count must be positive, got {token!r}")
    return count


def _parse_tokens(raw: str) -> SubscriptionSignal:
    """
    Parse <interval>_<count>[_<kind>[_<count>_<kind>]...].

    A count token directly before a kind overrides the base count for that
    kind; otherwise the kind inherits the base count.

    Raises:
        MalformedSignalInputError: On any grammar violation
    """
    tokens = raw.strip().lower().split("_")
    if len(tokens) < 3:
        raise MalformedSignalInputError(f"expected at least 3 tokens, got {len(tokens)}")

    interval, base_token, rest = tokens[0], tokens[1], tokens[2:]
    if interval not in STRUCTURED_INTERVALS:
        raise MalformedSignalInputError(f"invalid interval {interval!r}")
    if not _COUNT_TOKEN.fullmatch(base_token):
        raise MalformedSignalInputError(f"non-numeric count {base_token!r}")
    base_count = _parse_count(base_token)

    add_ons: List[str] = []
    add_on_counts: Dict[str, int] = {}
    pending_count: Optional[int] = None

    for token in rest:
        if _COUNT_TOKEN.fullmatch(token):
            if pending_count is not None:
                raise MalformedSignalInputError("count must be followed by an add-on kind")
            pending_count = _parse_count(token)
            continue
        if not is_valid_add_on(token):
            raise MalformedSignalInputError(f"unknown add-on kind {token!r}")
        if token in add_on_counts:
            raise MalformedSignalInputError(f"add-on kind {token!r} listed twice")
        add_ons.append(token)
        add_on_counts[token] = pending_count if pending_count is not None else base_count
        pending_count = None

    if pending_count is not None:
        raise MalformedSignalInputError("trailing count without an add-on kind")
    if not add_ons:
        raise MalformedSignalInputError("no add-ons resolved")

    return SubscriptionSignal(
        interval=interval,
        unit_count=base_count,
        add_ons=tuple(add_ons),
        add_on_counts=add_on_counts,
        provenance=STRUCTURED_ATTRIBUTE,
        raw=raw,
    )


def parse_structured_attribute(raw: Optional[str]) -> Optional[SubscriptionSignal]:
    """Parse a structured add-on attribute; malformed values are logged and yield None"""
    if not isinstance(raw, str) or not raw.strip():
        return None
    try:
        return _parse_tokens(raw)
    except MalformedSignalInputError as e:
        logging.warning(
            f"Invalid subscription attribute: {e}",
            extra={"attribute": raw, "step": "structured_attribute_parse"},
        )
        return None


def _search_text(line: CartLine) -> str:
    parts = [line.title, line.variant_title, line.product.title if line.product else None]
    return " ".join(part for part in parts if isinstance(part, str) and part.strip())


def detect_from_keywords(line: CartLine) -> Optional[SubscriptionSignal]:
    """Infer interval from line, variant and product titles"""
    text = _search_text(line)
    if not text:
        return None

    for interval, unit_count, patterns in KEYWORD_RULES:
        if any(pattern.search(text) for pattern in patterns):
            return SubscriptionSignal(
                interval=interval,
                unit_count=unit_count,
                add_ons=(),
                add_on_counts={},
                provenance=KEYWORD,
                raw=text,
            )
    return None


def detect_subscription(line: object) -> Optional[SubscriptionSignal]:
    """
    Resolve the subscription signal for a cart line.

    Tries the structured attribute first and falls back to title keywords
    when it is absent or malformed. Never raises.
    """
    if not isinstance(line, CartLine):
        error = MalformedSignalInputError(f"expected CartLine, got {type(line).__name__}")
        logging.warning(f"Malformed cart line ignored: {error}", extra={"step": "subscription_detect"})
        return None

    signal = parse_structured_attribute(line.add_on_attribute)
    if signal is not None:
        return signal
    return detect_from_keywords(line)


def cart_subscriptions(lines: Iterable[object]) -> List[Tuple[CartLine, SubscriptionSignal]]:
    """Pair every subscription line with its signal, in cart order"""
    pairs = []
    for line in lines:
        signal = detect_subscription(line)
        if signal is not None:
            pairs.append((line, signal))
    return pairs


def detection_stats(lines: Iterable[object]) -> DetectionStats:
    """Count detections by provenance"""
    stats = DetectionStats()
    for line in lines:
        signal = detect_subscription(line)
        if signal is None:
            stats.undetected += 1
        elif signal.provenance == STRUCTURED_ATTRIBUTE:
            stats.structured_attribute += 1
        else:
            stats.keyword += 1
    return stats

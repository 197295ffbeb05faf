"""
Steam review summaries.

Fetched from the public store reviews endpoint, independently of build
resolution. Any failure degrades to an all-null RatingSummary.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from .catalog import RatingSummary
from .common import CollectionError, ParseError, http_get

logger = logging.getLogger(__name__)

REVIEWS_URL = (
    "https://store.steampowered.com/appreviews/{app_id}"
    "?json=1&language=all&purchase_type=all&num_per_page=0"
)


def _count(summary: dict[str, Any], key: str) -> int | None:
    value = summary.get(key)
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        return None
    return value


def parse_rating(payload: Any) -> RatingSummary:
    """Build a RatingSummary from a reviews API response.

    Args:
        payload: Decoded JSON body

    Returns:
        RatingSummary with whatever fields were well-formed

    Raises:
        ParseError: If the body has no ``query_summary`` object
    """
    if not isinstance(payload, dict):
        raise ParseError(f"Expected a JSON object, got {type(payload).__name__}")
    if payload.get("success") not in (None, 1, True):
        raise ParseError(f"Reviews API reported failure: success={payload.get('success')!r}")

    summary = payload.get("query_summary")
    if not isinstance(summary, dict):
        raise ParseError("Missing query_summary")

    total = _count(summary, "total_reviews")
    positive = _count(summary, "total_positive")
    negative = _count(summary, "total_negative")
    description = summary.get("review_score_desc")
    if not isinstance(description, str) or not description:
        description = None

    percent = None
    if total and positive is not None:
        percent = round(positive / total * 100, 2)

    return RatingSummary(
        percent=percent,
        total=total,
        positive=positive,
        negative=negative,
        description=description,
    )


def fetch_rating(app_id: int, timeout: float = 10) -> RatingSummary:
    """Fetch the review summary for an app.

    Args:
        app_id: Steam AppID
        timeout: HTTP timeout in seconds

    Returns:
        RatingSummary; all fields None if the request or payload was bad
    """
    url = REVIEWS_URL.format(app_id=int(app_id))
    try:
        body = http_get(url, timeout=timeout)
        try:
            payload = json.loads(body)
        except ValueError as e:
            raise ParseError(f"Invalid JSON from {url}: {e}") from e
        rating = parse_rating(payload)
    except CollectionError as e:
        logger.warning(f"AppID {app_id}: review summary unavailable: {e}")
        return RatingSummary()

    logger.debug(f"AppID {app_id}: rating {rating.percent}% of {rating.total} reviews")
    return rating

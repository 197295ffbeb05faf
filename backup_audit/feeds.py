"""
Release link lookup from an RSS feed.

The feed is fetched once per run. Items are matched to catalog entries by
category: a category equal to the game name (case-insensitive, ignoring
dots and whitespace) and a publication date no earlier than the date the
current build was observed.
"""

from __future__ import annotations

import datetime
import email.utils
import logging
import re
from dataclasses import dataclass

import defusedxml.ElementTree as ET
from defusedxml import DefusedXmlException

from .common import CollectionError, ParseError, http_get

logger = logging.getLogger(__name__)

DEFAULT_FEED_URL = "https://feeds.feedburner.com/SkidrowReloadedGames"
DEFAULT_LINK_PREFIX = "https://www.skidrowreloaded.com/"

_NORMALIZE_RE = re.compile(r"[.\s]+")


@dataclass(frozen=True)
class FeedItem:
    """One feed item reduced to the fields used for matching."""

    link: str
    published_at: datetime.datetime
    categories: tuple[str, ...] = ()


def normalize_title(text: str) -> str:
    """Lowercase and drop dots and whitespace (``"Half.Life 2"`` -> ``"halflife2"``)."""
    return _NORMALIZE_RE.sub("", text.lower())


def _parse_pub_date(value: str | None) -> datetime.datetime | None:
    if not value:
        return None
    try:
        parsed = email.utils.parsedate_to_datetime(value.strip())
    except (TypeError, ValueError):
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=datetime.timezone.utc)
    return parsed


def parse_feed(document: bytes | str) -> list[FeedItem]:
    """Parse an RSS 2.0 document.

    Items without a publication date or without a guid/link are skipped.

    Raises:
        ParseError: If the document is not well-formed XML
    """
    try:
        root = ET.fromstring(document)
    except (ET.ParseError, DefusedXmlException) as e:
        raise ParseError(f"Malformed feed: {e}") from e

    items = []
    for node in root.iter("item"):
        published_at = _parse_pub_date(node.findtext("pubDate"))
        link = (node.findtext("guid") or node.findtext("link") or "").strip()
        if published_at is None or not link:
            continue
        categories = tuple(
            (cat.text or "").strip() for cat in node.findall("category") if cat.text
        )
        items.append(FeedItem(link=link, published_at=published_at, categories=categories))
    return items


def load_feed(url: str = DEFAULT_FEED_URL, timeout: float = 10) -> list[FeedItem]:
    """Fetch and parse the feed; failures yield an empty list."""
    try:
        items = parse_feed(http_get(url, timeout=timeout))
    except CollectionError as e:
        logger.warning(f"Release feed unavailable: {e}")
        return []
    logger.info(f"Loaded {len(items)} release feed items")
    return items


def find_links(
    items: list[FeedItem],
    name: str,
    since: datetime.datetime,
    prefix: str = DEFAULT_LINK_PREFIX,
) -> list[str]:
    """Links of feed items matching a game name published at or after ``since``.

    Args:
        items: Parsed feed items
        name: Game display name
        since: Earliest accepted publication instant
        prefix: Required link prefix

    Returns:
        Matching links in feed order, without duplicates
    """
    wanted = normalize_title(name)
    if not wanted:
        return []

    links: list[str] = []
    for item in items:
        if item.published_at < since or not item.link.startswith(prefix):
            continue
        if any(normalize_title(cat) == wanted for cat in item.categories) and item.link not in links:
            links.append(item.link)
    return links

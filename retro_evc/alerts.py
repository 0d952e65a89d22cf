"""
Weather alerts for the primary location.

Reads the Environment Canada city Atom feed; entries in the "Warnings and
Watches" category become the warnings shown on the main screen. The list
is swapped whole on every successful refresh and kept as-is on failure.
"""

import html
import logging
import re
from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional

import feedparser

from .errors import FetchError, ParseError
from .feeds import DataQuality, FetchResult
from .fetcher import FetchClient

logger = logging.getLogger(__name__)

ALERT_POLL_INTERVAL_SECONDS = 5 * 60

WARNINGS_CATEGORY = "warnings and watches"
NO_ALERTS_PREFIX = "no watches or warnings in effect"

ALERT_LEVELS = {
    "WARNING": "warning",
    "WATCH": "watch",
    "ADVISORY": "advisory",
    "STATEMENT": "statement",
}


@dataclass(frozen=True)
class WeatherAlert:
    """A warning, watch, advisory or statement in effect."""
    title: str
    level: Optional[str]
    summary: str
    link: Optional[str]
    published_at: Optional[str]

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _clean_html(text: str) -> str:
    """Remove HTML tags and decode HTML entities from text."""
    if not text:
        return ""
    text = re.sub(r'<[^>]+>', ' ', text)
    text = html.unescape(text)
    return re.sub(r'\s+', ' ', text).strip()


def _alert_level(title: str) -> Optional[str]:
    upper = title.upper()
    for keyword, level in ALERT_LEVELS.items():
        if keyword in upper:
            return level
    return None


def _is_warning_entry(entry: Any) -> bool:
    terms = [(tag.get("term") or "").lower() for tag in entry.get("tags", [])]
    if WARNINGS_CATEGORY not in terms:
        return False
    title = (entry.get("title") or "").strip().lower()
    return not title.startswith(NO_ALERTS_PREFIX)


def parse_alert_feed(content: bytes) -> List[WeatherAlert]:
    """
    Parse an Atom/RSS alert feed.

    Raises:
        ParseError: if the feed is unreadable and yielded no entries.
    """
    parsed = feedparser.parse(content)

    if parsed.bozo and not parsed.entries:
        raise ParseError(f"Alert feed parsing failed: {parsed.bozo_exception}")

    alerts = []
    for entry in parsed.entries:
        if not _is_warning_entry(entry):
            continue

        title = _clean_html(entry.get("title", ""))
        published_at = None
        if entry.get("updated_parsed"):
            published_at = datetime(*entry.updated_parsed[:6]).isoformat()

        alerts.append(WeatherAlert(
            title=title,
            level=_alert_level(title),
            summary=_clean_html(entry.get("summary", "")),
            link=entry.get("link"),
            published_at=published_at,
        ))

    return alerts


class AlertFeed:
    """Polls the alert feed and holds the current list of alerts."""

    def __init__(
        self,
        client: FetchClient,
        url: Optional[str],
        interval_seconds: float = ALERT_POLL_INTERVAL_SECONDS,
    ):
        self.name = "alerts"
        self.client = client
        self.url = url
        self.interval_seconds = interval_seconds
        self._alerts: Optional[List[WeatherAlert]] = None

    @property
    def enabled(self) -> bool:
        return bool(self.url)

    def tick(self) -> FetchResult:
        fetch_start = datetime.utcnow()
        errors: List[str] = []
        count = 0

        try:
            alerts = parse_alert_feed(self.client.fetch(self.url))
            self._alerts = alerts
            count = len(alerts)
            logger.info(f"Fetched alerts: {count} in effect")
        except (FetchError, ParseError) as e:
            errors.append(str(e))
            logger.warning(f"Alert feed unavailable, keeping last list: {e}")

        quality = DataQuality.UNAVAILABLE if errors else DataQuality.VALID
        return FetchResult(
            feed=self.name,
            success=not errors,
            documents=1,
            failed_documents=len(errors),
            records_updated=count,
            fetch_time=fetch_start.isoformat(),
            duration_ms=int((datetime.utcnow() - fetch_start).total_seconds() * 1000),
            data_quality=quality.value,
            errors=errors,
        )

    def warnings(self) -> Optional[List[Dict[str, Any]]]:
        """Current alerts, or None before the first successful refresh."""
        alerts = self._alerts
        if alerts is None:
            return None
        return [alert.to_dict() for alert in alerts]

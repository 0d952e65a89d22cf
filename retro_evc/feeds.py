"""
Feed jobs for the Retro EVC weather backend.

A feed owns one store and a list of documents to poll. Each tick:
1. fetches every document (one GET each, no retry)
2. parses it; a malformed document is dropped as a whole
3. replaces the store record of every station it produced

Failures are isolated per document and per tick: the store keeps its
last good value and the next tick tries again.
"""

import dataclasses
import logging
from dataclasses import dataclass, field
from datetime import datetime, tzinfo
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from .errors import FetchError, ParseError
from .fetcher import FetchClient, aqhi_url, citypage_url, nws_latest_url, province_today_url
from .parsers import FeedKind, parse
from .stations import StationRegistry
from .store import ObservationStore

logger = logging.getLogger(__name__)

# Polling intervals
DOMESTIC_POLL_INTERVAL_SECONDS = 5 * 60
US_POLL_INTERVAL_SECONDS = 7.5 * 60
PROVINCE_POLL_INTERVAL_SECONDS = 5 * 60
REGIONAL_POLL_INTERVAL_SECONDS = 5 * 60
AQHI_POLL_INTERVAL_SECONDS = 15 * 60


class DataQuality(Enum):
    """Outcome of a tick across its documents."""
    VALID = "valid"              # Every document fetched and parsed
    PARTIAL = "partial"          # Some documents failed
    UNAVAILABLE = "unavailable"  # Nothing usable this tick


@dataclass
class FetchResult:
    """Result of one feed tick."""
    feed: str
    success: bool
    documents: int
    failed_documents: int
    records_updated: int
    fetch_time: str
    duration_ms: int
    data_quality: str
    errors: List[str] = field(default_factory=list)


def assess_quality(failed: int, total: int) -> DataQuality:
    if total == 0 or failed == total:
        return DataQuality.UNAVAILABLE
    if failed == 0:
        return DataQuality.VALID
    return DataQuality.PARTIAL


class FeedJob:
    """Base fetch -> parse -> update cycle for one feed."""

    kind: FeedKind

    def __init__(
        self,
        name: str,
        client: FetchClient,
        store: ObservationStore,
        interval_seconds: float,
        registry: Optional[StationRegistry] = None,
    ):
        self.name = name
        self.client = client
        self.store = store
        self.interval_seconds = interval_seconds
        self.registry = registry

    def targets(self) -> List[str]:
        """URLs polled on every tick."""
        raise NotImplementedError

    def apply(self, records: List[Any]) -> int:
        """Write parsed records to the store, one whole record per station."""
        for record in records:
            station = self.registry.get(record.station_id) if self.registry else None
            if station is not None and record.name != station.name:
                record = dataclasses.replace(record, name=station.name)
            self.store.update(record.station_id, record)
        return len(records)

    def tick(self) -> FetchResult:
        """Run one fetch/parse/update cycle."""
        fetch_start = datetime.utcnow()
        targets = self.targets()
        failed = 0
        updated = 0
        errors: List[str] = []

        for url in targets:
            try:
                raw = self.client.fetch(url)
                records = parse(raw, self.kind)
            except FetchError as e:
                failed += 1
                errors.append(str(e))
                logger.warning(f"{self.name}: fetch failed, keeping last value: {e}")
                continue
            except ParseError as e:
                failed += 1
                errors.append(str(e))
                logger.warning(f"{self.name}: discarding malformed document {url}: {e}")
                continue
            updated += self.apply(records)

        quality = assess_quality(failed, len(targets))
        duration = int((datetime.utcnow() - fetch_start).total_seconds() * 1000)
        logger.info(f"{self.name}: {len(targets) - failed}/{len(targets)} documents, "
                    f"{updated} records updated ({duration}ms)")

        return FetchResult(
            feed=self.name,
            success=quality is not DataQuality.UNAVAILABLE,
            documents=len(targets),
            failed_documents=failed,
            records_updated=updated,
            fetch_time=fetch_start.isoformat(),
            duration_ms=duration,
            data_quality=quality.value,
            errors=errors,
        )

    def snapshot(self) -> List[Dict[str, Any]]:
        """Latest records as dicts, in registry order when there is one."""
        current = self.store.get_all()
        if self.registry is None:
            return [record.to_dict() for record in current.values()]
        return [current[key].to_dict() for key in self.registry.keys() if key in current]


class CityPageFeed(FeedJob):
    """Current conditions for a set of Canadian citypage locations."""

    kind = FeedKind.CITYPAGE

    def targets(self) -> List[str]:
        return [citypage_url(station.group, station.key) for station in self.registry]


class USObservationFeed(FeedJob):
    """Latest NWS observation for a set of US stations."""

    kind = FeedKind.NWS_LATEST

    def targets(self) -> List[str]:
        return [nws_latest_url(station.key) for station in self.registry]


class ProvinceTodayFeed(FeedJob):
    """All of a province's stations from the daily observation document."""

    kind = FeedKind.PROVINCE_TODAY

    def __init__(
        self,
        name: str,
        client: FetchClient,
        store: ObservationStore,
        province: str,
        tz: tzinfo,
        clock: Callable[[], datetime],
        interval_seconds: float = PROVINCE_POLL_INTERVAL_SECONDS,
    ):
        super().__init__(name, client, store, interval_seconds)
        self.province = province
        self.tz = tz
        self._clock = clock

    def targets(self) -> List[str]:
        today = self._clock().astimezone(self.tz).date()
        return [province_today_url(self.province, today)]


class AirQualityFeed(FeedJob):
    """Current AQHI for the primary location's community."""

    kind = FeedKind.AQHI

    def __init__(
        self,
        name: str,
        client: FetchClient,
        store: ObservationStore,
        region: str,
        code: str,
        interval_seconds: float = AQHI_POLL_INTERVAL_SECONDS,
    ):
        super().__init__(name, client, store, interval_seconds)
        self.region = region
        self.code = code

    def targets(self) -> List[str]:
        return [aqhi_url(self.region, self.code)]

    def apply(self, records: List[Any]) -> int:
        # one document per community; key by the configured code
        for record in records:
            self.store.update(self.code, record)
        return len(records)

    def current(self) -> Optional[Dict[str, Any]]:
        reading = self.store.find(self.code)
        return reading.to_dict() if reading else None

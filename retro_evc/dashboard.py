"""
Process wiring for the Retro EVC weather backend.

WeatherDashboard is built once at startup from the config and owns every
store, feed and aggregator. The scheduler drives its feeds; the API reads
from it. Nothing here is a module-level singleton.
"""

import logging
from datetime import date, datetime
from typing import Any, Callable, Dict, List, Optional

from .aggregators import RegionalHighLow, hot_cold_spots, is_winter_season
from .alerts import AlertFeed
from .climate import HistoricalData
from .collaborators import generate_crawler, generate_playlist
from .config import AppConfig
from .feeds import (
    DOMESTIC_POLL_INTERVAL_SECONDS,
    REGIONAL_POLL_INTERVAL_SECONDS,
    US_POLL_INTERVAL_SECONDS,
    AirQualityFeed,
    CityPageFeed,
    ProvinceTodayFeed,
    USObservationFeed,
)
from .fetcher import FetchClient, citypage_url
from .parsers import parse_citypage_document
from .scheduler import FeedScheduler, Tickable, utc_now
from .stations import (
    DOMESTIC_CITIES,
    MB_REGIONAL,
    US_CITIES,
    aqhi_for_location,
    climate_station_for_location,
)
from .store import ObservationStore

logger = logging.getLogger(__name__)


class WeatherDashboard:
    """Owns the caches and feeds behind the HTTP API."""

    def __init__(
        self,
        config: AppConfig,
        client: Optional[FetchClient] = None,
        scheduler: Optional[FeedScheduler] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.config = config
        self.tz = config.tz
        self._clock = clock
        self.client = client or FetchClient()
        self.scheduler = scheduler or FeedScheduler(clock=clock)

        location = config.primary_location

        self.surrounding = CityPageFeed(
            "surrounding", self.client, ObservationStore("surrounding"),
            DOMESTIC_POLL_INTERVAL_SECONDS, DOMESTIC_CITIES,
        )
        self.usa = USObservationFeed(
            "usa", self.client, ObservationStore("usa"),
            US_POLL_INTERVAL_SECONDS, US_CITIES,
        )
        self.province = ProvinceTodayFeed(
            "province", self.client, ObservationStore("province"),
            location.province, self.tz, clock,
        )
        self.regional = CityPageFeed(
            "regional", self.client, ObservationStore("regional"),
            REGIONAL_POLL_INTERVAL_SECONDS, MB_REGIONAL,
        )
        self.highlow = RegionalHighLow(MB_REGIONAL, self.regional.store, self.tz, clock)

        aqhi = (config.aqhi.region, config.aqhi.code) if config.aqhi else aqhi_for_location(location.name)
        self.air_quality: Optional[AirQualityFeed] = None
        if aqhi:
            self.air_quality = AirQualityFeed("aqhi", self.client, ObservationStore("aqhi"), *aqhi)

        self.alerts = AlertFeed(self.client, config.alerts_feed_url)
        self.climate = HistoricalData(
            self.client,
            config.climate_station_id or climate_station_for_location(location.name),
            self.tz,
            clock,
        )

        self.playlist: List[str] = []
        self.crawler: List[str] = []

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def feeds(self) -> List[Tickable]:
        """Every feed that should be polled under the current config."""
        jobs: List[Tickable] = [self.surrounding, self.usa, self.province]
        if self.config.show_mb_highlow:
            jobs.append(self.regional)
        if self.air_quality is not None:
            jobs.append(self.air_quality)
        if self.alerts.enabled:
            jobs.append(self.alerts)
        if self.climate.enabled:
            jobs.append(self.climate)
        return jobs

    def start(self) -> None:
        self.playlist = generate_playlist(self.config.music_dir)
        self.crawler = generate_crawler(self.config.crawler_file)
        for job in self.feeds():
            self.scheduler.schedule(job)
        self.scheduler.start()

    def stop(self) -> None:
        self.scheduler.stop()
        self.client.close()

    # =========================================================================
    # Read side
    # =========================================================================

    def today(self) -> date:
        return self._clock().astimezone(self.tz).date()

    def is_winter(self) -> bool:
        return is_winter_season(self.today())

    def init_payload(self) -> Dict[str, Any]:
        return {
            "playlist": {"files": self.playlist, "file_count": len(self.playlist)},
            "crawler": {"messages": self.crawler, "message_count": len(self.crawler)},
            "showMBHighLow": self.config.show_mb_highlow,
        }

    def current_weather(self) -> Dict[str, Any]:
        """
        Composite main-screen snapshot.

        The primary citypage is fetched on request; everything else comes
        from the caches.

        Raises:
            FetchError: if the citypage could not be retrieved.
            ParseError: if the citypage is malformed.
        """
        location = self.config.primary_location
        raw = self.client.fetch(citypage_url(location.province, location.location))
        page = parse_citypage_document(raw)

        warnings = self.alerts.warnings() if self.alerts.enabled else None
        if warnings is None:
            warnings = page["warnings"]

        return {
            "location": page["location"],
            "current": page["current"],
            "riseSet": page["riseSet"],
            "observed": page["observed"],
            "upcomingForecast": page["forecast"],
            "regionalNormals": page["regionalNormals"],
            "warnings": warnings,
            "almanac": page["almanac"],
            "airQuality": self.air_quality.current() if self.air_quality else None,
            "last_year": self.climate.last_year(),
            "hot_cold": hot_cold_spots(self.province.store.get_all(), self.today(), self.tz),
            "isWinter": self.is_winter(),
        }

    def season_precip(self) -> Dict[str, Any]:
        season = self.climate.season()
        return {
            "isWinter": self.is_winter(),
            "totalPrecip": season.total_precip if season else None,
            "normalPrecip": season.normal_precip if season else None,
        }

    def last_month(self) -> Dict[str, Any]:
        return {"summary": self.climate.last_month() or False}

    def surrounding_observations(self) -> Dict[str, Any]:
        return {"observations": self.surrounding.snapshot()}

    def usa_observations(self) -> Dict[str, Any]:
        return {"observations": self.usa.snapshot()}

    def regional_highlow(self) -> Optional[Dict[str, Any]]:
        if not self.config.show_mb_highlow:
            return None
        return self.highlow.snapshot()

    def health(self) -> Dict[str, Any]:
        return {
            "timestamp": self._clock().isoformat(),
            "scheduler": self.scheduler.get_scheduler_status(),
        }

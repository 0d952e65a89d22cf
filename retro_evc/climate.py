"""
Climate history for the primary location.

Polls the GeoMet climate-daily and climate-normals collections and keeps
three derived views, each replaced by a single assignment per refresh:
- season-to-date precipitation against normal
- last month's summary
- this date last year
"""

import logging
from datetime import date, datetime, timedelta, tzinfo
from typing import Any, Callable, Dict, List, Optional

from .aggregators import (
    SeasonAccumulator,
    last_month_summary,
    last_year_observation,
    previous_month,
    same_day_last_year,
    season_start,
)
from .errors import FetchError, ParseError
from .feeds import DataQuality, FetchResult, assess_quality
from .fetcher import FetchClient, climate_daily_url, climate_normals_url
from .parsers import ClimateNormal, DailyClimate, FeedKind, parse

logger = logging.getLogger(__name__)

CLIMATE_POLL_INTERVAL_SECONDS = 60 * 60


class HistoricalData:
    """Climate-derived aggregates for one climate station."""

    def __init__(
        self,
        client: FetchClient,
        station_id: Optional[str],
        tz: tzinfo,
        clock: Callable[[], datetime],
        interval_seconds: float = CLIMATE_POLL_INTERVAL_SECONDS,
    ):
        self.name = "climate"
        self.client = client
        self.station_id = station_id
        self.tz = tz
        self.interval_seconds = interval_seconds
        self._clock = clock

        self._normals: List[ClimateNormal] = []
        self._season: Optional[SeasonAccumulator] = None
        self._last_month: Optional[Dict[str, Any]] = None
        self._last_year: Optional[Dict[str, Any]] = None

    @property
    def enabled(self) -> bool:
        return bool(self.station_id)

    def today(self) -> date:
        return self._clock().astimezone(self.tz).date()

    def _fetch(self, url: str, kind: FeedKind) -> List[Any]:
        return parse(self.client.fetch(url), kind)

    def tick(self) -> FetchResult:
        """Refresh normals (until first success) and the daily-record views."""
        fetch_start = datetime.utcnow()
        today = self.today()
        yesterday = today - timedelta(days=1)
        errors: List[str] = []
        documents = 0
        updated = 0

        if not self._normals:
            documents += 1
            try:
                self._normals = self._fetch(climate_normals_url(self.station_id), FeedKind.CLIMATE_NORMALS)
                updated += len(self._normals)
            except (FetchError, ParseError) as e:
                errors.append(str(e))
                logger.warning(f"Climate normals unavailable for {self.station_id}: {e}")

        documents += 1
        start = min(season_start(today), previous_month(today))
        try:
            days: List[DailyClimate] = self._fetch(
                climate_daily_url(self.station_id, start, yesterday), FeedKind.CLIMATE_DAILY
            )
            self._season = SeasonAccumulator.build(days, self._normals, today)
            self._last_month = last_month_summary(days, self._normals, today)
            updated += len(days)
        except (FetchError, ParseError) as e:
            errors.append(str(e))
            logger.warning(f"Climate daily data unavailable for {self.station_id}: {e}")

        documents += 1
        target = same_day_last_year(today)
        try:
            last_year_days = self._fetch(climate_daily_url(self.station_id, target, target), FeedKind.CLIMATE_DAILY)
            self._last_year = last_year_observation(last_year_days, today)
            updated += len(last_year_days)
        except (FetchError, ParseError) as e:
            errors.append(str(e))
            logger.warning(f"Last year's observation unavailable for {self.station_id}: {e}")

        quality = assess_quality(len(errors), documents)
        duration = int((datetime.utcnow() - fetch_start).total_seconds() * 1000)
        logger.info(f"climate: refreshed station {self.station_id} ({duration}ms, {quality.value})")

        return FetchResult(
            feed=self.name,
            success=quality is not DataQuality.UNAVAILABLE,
            documents=documents,
            failed_documents=len(errors),
            records_updated=updated,
            fetch_time=fetch_start.isoformat(),
            duration_ms=duration,
            data_quality=quality.value,
            errors=errors,
        )

    # =========================================================================
    # Read side
    # =========================================================================

    def season(self) -> Optional[SeasonAccumulator]:
        return self._season

    def last_month(self) -> Optional[Dict[str, Any]]:
        return self._last_month

    def last_year(self) -> Optional[Dict[str, Any]]:
        return self._last_year

"""
Read-side aggregations over the observation stores and climate records.

Everything here is computed on request from snapshots; nothing in this
module writes to a store or performs I/O.
"""

import calendar
import logging
import math
from dataclasses import dataclass
from datetime import date, datetime, timedelta, tzinfo
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional

from .display import generate_precip_string, pad_string
from .parsers import ClimateNormal, DailyClimate, Observation
from .stations import StationRegistry
from .store import ObservationStore

logger = logging.getLogger(__name__)

# GeoMet climate-normals NORMAL_ID values
NORMAL_MEAN_TEMP = 1
NORMAL_MAX_TEMP = 5
NORMAL_MIN_TEMP = 8
NORMAL_PRECIP = 56

WINTER_START_MONTH = 10  # Oct 1
SUMMER_START_MONTH = 4   # Apr 1

PERIOD_MIN = "min_temp"
PERIOD_MAX = "max_temp"
HIGH_PERIOD_START_HOUR = 12

NAME_WIDTH = 12
TEMP_WIDTH = 5


# =============================================================================
# Hot / cold spots
# =============================================================================

def _spot(observation: Observation) -> Dict[str, Any]:
    return {
        "station_id": observation.station_id,
        "name": observation.name,
        "temperature": observation.temperature,
        "observed": observation.timestamp.isoformat() if observation.timestamp else None,
    }


def hot_cold_spots(
    snapshot: Mapping[str, Observation],
    today: Optional[date] = None,
    tz: Optional[tzinfo] = None,
) -> Optional[Dict[str, Any]]:
    """
    Warmest and coldest station in a snapshot.

    Iterates in snapshot order (first-seen order in the feed document);
    comparisons are strict, so on a tie the earlier station wins. With
    today and tz given, timestamped readings from another local date are
    skipped, so a station that dropped out of the daily document can't
    win with yesterday's temperature.
    """
    hot: Optional[Observation] = None
    cold: Optional[Observation] = None

    for observation in snapshot.values():
        if observation.temperature is None or not math.isfinite(observation.temperature):
            continue
        if (today is not None and tz is not None and observation.timestamp is not None
                and observation.timestamp.astimezone(tz).date() != today):
            continue
        if hot is None or observation.temperature > hot.temperature:
            hot = observation
        if cold is None or observation.temperature < cold.temperature:
            cold = observation

    if hot is None or cold is None:
        return None
    return {"hot": _spot(hot), "cold": _spot(cold)}


# =============================================================================
# Seasons
# =============================================================================

def is_winter_season(day: date) -> bool:
    """Winter runs Oct 1 through Mar 31; everything else is summer."""
    return day.month >= WINTER_START_MONTH or day.month < SUMMER_START_MONTH


def season_start(day: date) -> date:
    """First day of the season containing the given day."""
    if is_winter_season(day):
        year = day.year if day.month >= WINTER_START_MONTH else day.year - 1
        return date(year, WINTER_START_MONTH, 1)
    return date(day.year, SUMMER_START_MONTH, 1)


def _months_between(start: date, end: date) -> Iterable[date]:
    """First-of-month dates from start's month up to (excluding) end's month."""
    current = start.replace(day=1)
    stop = end.replace(day=1)
    while current < stop:
        yield current
        current = (current + timedelta(days=32)).replace(day=1)


def monthly_normals(normals: Iterable[ClimateNormal], normal_id: int) -> Dict[int, float]:
    return {
        n.month: n.value for n in normals
        if n.normal_id == normal_id and n.value is not None
    }


def season_normal_precip(normals: Iterable[ClimateNormal], start: date, as_of: date) -> Optional[float]:
    """
    Normal precipitation from start through as_of.

    Full months elapsed contribute their whole monthly normal; the month
    containing as_of is prorated by day.
    """
    by_month = monthly_normals(normals, NORMAL_PRECIP)
    if not by_month:
        return None
    if as_of < start:
        return 0.0

    total = sum(by_month.get(month.month, 0.0) for month in _months_between(start, as_of))
    days_in_month = calendar.monthrange(as_of.year, as_of.month)[1]
    total += by_month.get(as_of.month, 0.0) * as_of.day / days_in_month
    return round(total, 1)


def season_total_precip(days: Iterable[DailyClimate], start: date, as_of: date) -> float:
    """Observed precipitation from start through as_of."""
    total = sum((
        d.total_precip for d in days
        if d.total_precip is not None and start <= d.day <= as_of
    ), 0.0)
    return round(total, 1)


@dataclass(frozen=True)
class SeasonAccumulator:
    """Season-to-date precipitation against normal."""
    season: str
    start: date
    as_of: date
    total_precip: float
    normal_precip: Optional[float]

    @property
    def delta(self) -> Optional[float]:
        if self.normal_precip is None:
            return None
        return round(self.total_precip - self.normal_precip, 1)

    @classmethod
    def build(cls, days: Iterable[DailyClimate], normals: Iterable[ClimateNormal], today: date) -> "SeasonAccumulator":
        """Totals for today's season through yesterday (the last complete day)."""
        start = season_start(today)
        as_of = today - timedelta(days=1)
        return cls(
            season="winter" if is_winter_season(today) else "summer",
            start=start,
            as_of=as_of,
            total_precip=season_total_precip(days, start, as_of),
            normal_precip=season_normal_precip(normals, start, as_of),
        )


# =============================================================================
# Climate history
# =============================================================================

def previous_month(today: date) -> date:
    """First day of the month before today's."""
    return (today.replace(day=1) - timedelta(days=1)).replace(day=1)


def last_month_summary(
    days: Iterable[DailyClimate],
    normals: Iterable[ClimateNormal],
    today: date,
) -> Optional[Dict[str, Any]]:
    """Extremes, mean and precipitation total for the previous month."""
    month_start = previous_month(today)
    month_days = [d for d in days if d.day.year == month_start.year and d.day.month == month_start.month]
    if not month_days:
        return None

    highs = [d for d in month_days if d.max_temp is not None]
    lows = [d for d in month_days if d.min_temp is not None]
    means = [d.mean_temp for d in month_days if d.mean_temp is not None]
    precip = [d.total_precip for d in month_days if d.total_precip is not None]

    warmest = max(highs, key=lambda d: d.max_temp) if highs else None
    coldest = min(lows, key=lambda d: d.min_temp) if lows else None
    normals = list(normals)

    return {
        "month": calendar.month_name[month_start.month],
        "year": month_start.year,
        "days": len(month_days),
        "max_temp": warmest.max_temp if warmest else None,
        "max_temp_date": warmest.day.isoformat() if warmest else None,
        "min_temp": coldest.min_temp if coldest else None,
        "min_temp_date": coldest.day.isoformat() if coldest else None,
        "mean_temp": round(sum(means) / len(means), 1) if means else None,
        "total_precip": round(sum(precip), 1) if precip else None,
        "normal_max_temp": monthly_normals(normals, NORMAL_MAX_TEMP).get(month_start.month),
        "normal_min_temp": monthly_normals(normals, NORMAL_MIN_TEMP).get(month_start.month),
        "normal_mean_temp": monthly_normals(normals, NORMAL_MEAN_TEMP).get(month_start.month),
        "normal_precip": monthly_normals(normals, NORMAL_PRECIP).get(month_start.month),
    }


def same_day_last_year(today: date) -> date:
    try:
        return today.replace(year=today.year - 1)
    except ValueError:
        # Feb 29
        return today.replace(year=today.year - 1, day=28)


def last_year_observation(days: Iterable[DailyClimate], today: date) -> Optional[Dict[str, Any]]:
    """Climate record for this date one year ago."""
    target = same_day_last_year(today)
    for record in days:
        if record.day == target:
            return {
                "date": target.isoformat(),
                "max_temp": record.max_temp,
                "min_temp": record.min_temp,
                "mean_temp": record.mean_temp,
                "precip": record.total_precip,
            }
    return None


# =============================================================================
# Regional high / low
# =============================================================================

def _extreme(readings: List[Observation], pick_max: bool) -> Optional[Dict[str, Any]]:
    best: Optional[Observation] = None
    for reading in readings:
        if best is None:
            best = reading
        elif pick_max and reading.temperature > best.temperature:
            best = reading
        elif not pick_max and reading.temperature < best.temperature:
            best = reading
    if best is None:
        return None
    return {"value": best.temperature, "time": best.timestamp.isoformat()}


class RegionalHighLow:
    """
    Daily high and low for a fixed set of regional stations.

    Computed from the regional store's history, restricted to readings
    whose local date (in the configured timezone) is today, so the values
    reset at local midnight. Before noon the screen shows the overnight
    low; from noon on it shows the daytime high. Ties keep the earliest
    reading.
    """

    def __init__(
        self,
        registry: StationRegistry,
        store: ObservationStore,
        tz: tzinfo,
        clock: Callable[[], datetime],
    ):
        self.registry = registry
        self.store = store
        self.tz = tz
        self._clock = clock

    def _today_readings(self, station_id: str, today: date) -> List[Observation]:
        readings = [
            o for o in self.store.history(station_id)
            if o.timestamp is not None
            and o.temperature is not None
            and o.timestamp.astimezone(self.tz).date() == today
        ]
        readings.sort(key=lambda o: o.timestamp)
        return readings

    def snapshot(self) -> Dict[str, Any]:
        now = self._clock().astimezone(self.tz)
        today = now.date()
        period = PERIOD_MIN if now.hour < HIGH_PERIOD_START_HOUR else PERIOD_MAX

        stations = []
        for station in self.registry:
            readings = self._today_readings(station.key, today)
            high = _extreme(readings, pick_max=True)
            low = _extreme(readings, pick_max=False)
            shown = high if period == PERIOD_MAX else low

            latest = self.store.find(station.key)
            precip = latest.extras.get("yesterday_precip") if latest else None
            value = shown["value"] if shown else None

            stations.append({
                "station_id": station.key,
                "name": station.name,
                "high": high,
                "low": low,
                "value": value,
                "yesterday_precip": precip,
                "display": pad_string(station.name, NAME_WIDTH) + pad_string(value, TEMP_WIDTH, True),
                "precip_display": generate_precip_string(precip),
            })

        return {
            "period": period,
            "date": today.isoformat(),
            "yesterday": (today - timedelta(days=1)).isoformat(),
            "stations": stations,
        }

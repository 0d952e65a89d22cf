"""
Aggregator tests

Run with: pytest tests/test_aggregators.py -v
"""

from datetime import date, datetime, timezone
from zoneinfo import ZoneInfo

import pytest

from conftest import FixedClock
from retro_evc.aggregators import (
    NORMAL_MEAN_TEMP,
    NORMAL_PRECIP,
    PERIOD_MAX,
    PERIOD_MIN,
    RegionalHighLow,
    SeasonAccumulator,
    hot_cold_spots,
    is_winter_season,
    last_month_summary,
    last_year_observation,
    same_day_last_year,
    season_normal_precip,
    season_start,
    season_total_precip,
)
from retro_evc.display import NBSP
from retro_evc.parsers import ClimateNormal, DailyClimate, Observation
from retro_evc.stations import Station, StationRegistry
from retro_evc.store import ObservationStore

WINNIPEG = ZoneInfo("America/Winnipeg")


def utc(day: int, hour: int) -> datetime:
    return datetime(2026, 10, day, hour, 0, tzinfo=timezone.utc)


# =============================================================================
# Test hot_cold_spots()
# =============================================================================


class TestHotColdSpots:

    def test_extremes(self):
        snapshot = {
            "a": Observation("a", name="Brandon", temperature=14.2),
            "b": Observation("b", name="Thompson", temperature=-3.5),
            "c": Observation("c", name="Morden", temperature=None),
            "d": Observation("d", name="Gimli", temperature=8.0),
        }
        result = hot_cold_spots(snapshot)

        assert result["hot"]["name"] == "Brandon"
        assert result["cold"]["name"] == "Thompson"
        assert result["cold"]["temperature"] == -3.5

    def test_ties_go_to_first_station(self):
        snapshot = {
            "z": Observation("z", name="Zed", temperature=10.0),
            "a": Observation("a", name="Alpha", temperature=10.0),
        }
        result = hot_cold_spots(snapshot)

        assert result["hot"]["name"] == "Zed"
        assert result["cold"]["name"] == "Zed"

    def test_no_data(self):
        assert hot_cold_spots({}) is None
        assert hot_cold_spots({"a": Observation("a")}) is None

    def test_non_finite_temperatures_are_skipped(self):
        snapshot = {
            "n": Observation("n", name="Broken", temperature=float("nan")),
            "a": Observation("a", name="Brandon", temperature=20.0),
            "b": Observation("b", name="Thompson", temperature=-2.0),
        }
        result = hot_cold_spots(snapshot)

        assert result["hot"]["name"] == "Brandon"
        assert result["cold"]["name"] == "Thompson"

    def test_readings_from_another_local_day_are_skipped(self):
        snapshot = {
            # 11 PM CDT on the 16th
            "old": Observation("old", name="Gimli", temperature=30.0, timestamp=utc(17, 4)),
            "a": Observation("a", name="Brandon", temperature=14.2, timestamp=utc(17, 18)),
            "b": Observation("b", name="Thompson", temperature=-3.5, timestamp=utc(17, 18)),
            "c": Observation("c", name="Morden", temperature=8.0),
        }

        result = hot_cold_spots(snapshot, date(2026, 10, 17), WINNIPEG)
        assert result["hot"]["name"] == "Brandon"
        assert result["cold"]["name"] == "Thompson"

        # without a date every reading counts
        assert hot_cold_spots(snapshot)["hot"]["name"] == "Gimli"


# =============================================================================
# Seasons
# =============================================================================


class TestSeasons:

    @pytest.mark.parametrize(
        "day,expected",
        [
            (date(2026, 10, 1), True),
            (date(2026, 12, 31), True),
            (date(2027, 1, 15), True),
            (date(2027, 3, 31), True),
            (date(2027, 4, 1), False),
            (date(2026, 7, 1), False),
            (date(2026, 9, 30), False),
        ],
    )
    def test_is_winter_season(self, day, expected):
        assert is_winter_season(day) is expected

    def test_is_winter_season_is_pure(self):
        day = date(2026, 11, 5)
        assert {is_winter_season(day) for _ in range(5)} == {True}

    @pytest.mark.parametrize(
        "day,expected",
        [
            (date(2026, 10, 17), date(2026, 10, 1)),
            (date(2027, 2, 3), date(2026, 10, 1)),
            (date(2026, 6, 30), date(2026, 4, 1)),
        ],
    )
    def test_season_start(self, day, expected):
        assert season_start(day) == expected

    def test_normal_precip_prorates_current_month(self):
        normals = [
            ClimateNormal(10, NORMAL_PRECIP, 31.0),
            ClimateNormal(11, NORMAL_PRECIP, 30.0),
            ClimateNormal(11, NORMAL_MEAN_TEMP, -5.0),
        ]
        start = date(2026, 10, 1)

        assert season_normal_precip(normals, start, date(2026, 10, 10)) == 10.0
        assert season_normal_precip(normals, start, date(2026, 11, 15)) == 46.0
        assert season_normal_precip(normals, start, date(2026, 9, 30)) == 0.0
        assert season_normal_precip([], start, date(2026, 10, 10)) is None

    def test_total_precip_within_season(self):
        days = [
            DailyClimate(date(2026, 9, 30), total_precip=5.0),
            DailyClimate(date(2026, 10, 1), total_precip=1.2),
            DailyClimate(date(2026, 10, 2), total_precip=None),
            DailyClimate(date(2026, 10, 3), total_precip=0.1),
        ]
        assert season_total_precip(days, date(2026, 10, 1), date(2026, 10, 16)) == 1.3

    def test_accumulator(self):
        days = [DailyClimate(date(2026, 10, d), total_precip=1.0) for d in range(1, 17)]
        normals = [ClimateNormal(10, NORMAL_PRECIP, 31.0)]
        season = SeasonAccumulator.build(days, normals, date(2026, 10, 17))

        assert season.season == "winter"
        assert season.start == date(2026, 10, 1)
        assert season.as_of == date(2026, 10, 16)
        assert season.total_precip == 16.0
        assert season.normal_precip == 16.0
        assert season.delta == 0.0

    def test_accumulator_on_first_day_of_season(self):
        days = [DailyClimate(date(2026, 9, 30), total_precip=4.0)]
        normals = [ClimateNormal(9, NORMAL_PRECIP, 45.0), ClimateNormal(10, NORMAL_PRECIP, 31.0)]
        season = SeasonAccumulator.build(days, normals, date(2026, 10, 1))

        assert season.total_precip == 0.0
        assert season.normal_precip == 0.0


# =============================================================================
# Climate history
# =============================================================================


class TestClimateHistory:

    def test_last_month_summary(self):
        days = [
            DailyClimate(date(2026, 9, 1), max_temp=25.0, min_temp=10.0, mean_temp=17.5, total_precip=0.0),
            DailyClimate(date(2026, 9, 2), max_temp=28.5, min_temp=12.0, mean_temp=20.3, total_precip=4.2),
            DailyClimate(date(2026, 9, 3), max_temp=None, min_temp=3.1, mean_temp=None, total_precip=None),
            DailyClimate(date(2026, 10, 1), max_temp=30.0, min_temp=-9.0),
        ]
        normals = [ClimateNormal(9, NORMAL_PRECIP, 43.0), ClimateNormal(9, NORMAL_MEAN_TEMP, 12.1)]
        summary = last_month_summary(days, normals, date(2026, 10, 17))

        assert summary["month"] == "September"
        assert summary["year"] == 2026
        assert summary["days"] == 3
        assert summary["max_temp"] == 28.5
        assert summary["max_temp_date"] == "2026-09-02"
        assert summary["min_temp"] == 3.1
        assert summary["mean_temp"] == 18.9
        assert summary["total_precip"] == 4.2
        assert summary["normal_precip"] == 43.0
        assert summary["normal_mean_temp"] == 12.1
        assert summary["normal_max_temp"] is None

    def test_last_month_wraps_year(self):
        days = [DailyClimate(date(2026, 12, 31), max_temp=-10.0)]
        summary = last_month_summary(days, [], date(2027, 1, 5))
        assert summary["month"] == "December"
        assert summary["year"] == 2026

    def test_last_month_without_data(self):
        assert last_month_summary([], [], date(2026, 10, 17)) is None

    def test_last_year_observation(self):
        days = [DailyClimate(date(2025, 10, 17), max_temp=9.4, min_temp=-1.2, total_precip=0.6)]
        result = last_year_observation(days, date(2026, 10, 17))

        assert result["date"] == "2025-10-17"
        assert result["max_temp"] == 9.4
        assert result["precip"] == 0.6
        assert last_year_observation(days, date(2026, 10, 18)) is None

    def test_leap_day(self):
        assert same_day_last_year(date(2028, 2, 29)) == date(2027, 2, 28)


# =============================================================================
# Regional high / low
# =============================================================================


REGISTRY = StationRegistry([
    Station("s0000193", "Winnipeg", "MB"),
    Station("s0000492", "Brandon", "MB"),
])

PRECIP = {"value": "0.4", "units": "mm"}


def reading(temperature: float, when: datetime) -> Observation:
    return Observation(
        "s0000193", name="Winnipeg", temperature=temperature, timestamp=when,
        extras={"yesterday_precip": PRECIP},
    )


@pytest.fixture()
def regional_store() -> ObservationStore:
    store = ObservationStore("regional")
    store.update("s0000193", reading(-4.0, utc(17, 4)))   # 11 PM CDT on the 16th
    store.update("s0000193", reading(2.0, utc(17, 6)))
    store.update("s0000193", reading(2.0, utc(17, 12)))
    store.update("s0000193", reading(15.5, utc(17, 17)))
    return store


class TestRegionalHighLow:

    def test_afternoon_shows_high(self, regional_store):
        highlow = RegionalHighLow(REGISTRY, regional_store, WINNIPEG, FixedClock(utc(17, 18)))
        payload = highlow.snapshot()

        assert payload["period"] == PERIOD_MAX
        assert payload["date"] == "2026-10-17"
        assert payload["yesterday"] == "2026-10-16"

        winnipeg, brandon = payload["stations"]
        assert winnipeg["high"] == {"value": 15.5, "time": utc(17, 17).isoformat()}
        assert winnipeg["value"] == 15.5
        assert winnipeg["display"] == "Winnipeg" + NBSP * 4 + NBSP + "15.5"
        assert winnipeg["precip_display"] == NBSP * 2 + "0.4 mm"

        assert brandon["high"] is None
        assert brandon["value"] is None
        assert brandon["precip_display"] == "MISSING"

    def test_morning_shows_overnight_low(self, regional_store):
        highlow = RegionalHighLow(REGISTRY, regional_store, WINNIPEG, FixedClock(utc(17, 15)))
        payload = highlow.snapshot()

        assert payload["period"] == PERIOD_MIN
        winnipeg = payload["stations"][0]
        # yesterday's -4.0 is excluded; tie at 2.0 keeps the earlier reading
        assert winnipeg["low"] == {"value": 2.0, "time": utc(17, 6).isoformat()}
        assert winnipeg["value"] == 2.0

    def test_resets_at_local_midnight(self, regional_store):
        clock = FixedClock(utc(18, 4))  # 11 PM CDT on the 17th
        highlow = RegionalHighLow(REGISTRY, regional_store, WINNIPEG, clock)
        assert highlow.snapshot()["stations"][0]["high"]["value"] == 15.5

        clock.advance(hours=2)          # 1 AM CDT on the 18th
        winnipeg = highlow.snapshot()["stations"][0]
        assert winnipeg["high"] is None
        assert winnipeg["low"] is None
        assert winnipeg["display"] == "Winnipeg" + NBSP * 4 + NBSP * 2 + "N/A"

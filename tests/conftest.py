import json
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

import pytest

from retro_evc.config import AppConfig
from retro_evc.dashboard import WeatherDashboard
from retro_evc.fetcher import FetchClient
from retro_evc.scheduler import FeedScheduler

DATA_DIR = Path(__file__).parent / "data"

# 1:00 PM CDT in Winnipeg
NOW = datetime(2026, 10, 17, 18, 0, tzinfo=timezone.utc)


def load_fixture(name: str) -> bytes:
    return (DATA_DIR / name).read_bytes()


def citypage_xml(
    code: str,
    name: str,
    temperature: Optional[str],
    stamp: str,
    yesterday_precip: str = "0.4",
    province: str = "mb",
) -> bytes:
    """Minimal citypage document with current and yesterday's conditions."""
    temperature_elem = (
        f'<temperature unitType="metric" units="C">{temperature}</temperature>'
        if temperature is not None else ""
    )
    return f"""<?xml version="1.0" encoding="UTF-8"?>
<siteData>
  <location>
    <province code="{province}">Province</province>
    <name code="{code}" lat="49.88N" lon="97.15W">{name}</name>
  </location>
  <currentConditions>
    <dateTime name="observation" zone="UTC" UTCOffset="0"><timeStamp>{stamp}</timeStamp></dateTime>
    <condition>Clear</condition>
    <iconCode format="gif">00</iconCode>
    {temperature_elem}
  </currentConditions>
  <yesterdayConditions>
    <precip unitType="metric" units="mm">{yesterday_precip}</precip>
  </yesterdayConditions>
</siteData>""".encode("utf-8")


def climate_daily_json(records: List[Dict[str, Any]]) -> bytes:
    """GeoMet climate-daily FeatureCollection from property dicts."""
    return json.dumps({
        "type": "FeatureCollection",
        "features": [{"type": "Feature", "properties": r} for r in records],
    }).encode("utf-8")


def climate_normals_json(values: Dict[int, float], normal_id: int) -> bytes:
    return json.dumps({
        "type": "FeatureCollection",
        "features": [
            {"type": "Feature", "properties": {"MONTH": month, "NORMAL_ID": normal_id, "VALUE": value}}
            for month, value in values.items()
        ],
    }).encode("utf-8")


class FixedClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime = NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class RecordingScheduler:
    """Stands in for an APScheduler instance; records jobs, runs nothing."""

    def __init__(self):
        self.jobs: List[Dict[str, Any]] = []
        self.started = False
        self.shut_down = False

    def add_job(self, func, **kwargs):
        self.jobs.append({"func": func, **kwargs})

    def get_job(self, job_id):
        return None

    def start(self):
        self.started = True

    def shutdown(self, wait=True):
        self.shut_down = True


def make_config(**overrides) -> AppConfig:
    data = {
        "primaryLocation": {"province": "MB", "location": "s0000193", "name": "Winnipeg"},
        "showMBHighLow": True,
        "timezone": "America/Winnipeg",
        "alertsFeedUrl": "https://weather.gc.ca/rss/city/mb-38_e.xml",
    }
    data.update(overrides)
    return AppConfig.model_validate(data)


@pytest.fixture()
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture()
def config() -> AppConfig:
    return make_config()


@pytest.fixture()
def recording_scheduler() -> RecordingScheduler:
    return RecordingScheduler()


@pytest.fixture()
def dashboard(config, clock, recording_scheduler) -> WeatherDashboard:
    scheduler = FeedScheduler(scheduler=recording_scheduler, clock=clock)
    return WeatherDashboard(config, client=FetchClient(timeout=1), scheduler=scheduler, clock=clock)

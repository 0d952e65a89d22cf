"""
Dashboard wiring tests

Run with: pytest tests/test_dashboard.py -v
"""

from conftest import make_config
from retro_evc.dashboard import WeatherDashboard
from retro_evc.fetcher import FetchClient
from retro_evc.scheduler import FeedScheduler


def build(config, clock, recording_scheduler) -> WeatherDashboard:
    return WeatherDashboard(
        config,
        client=FetchClient(timeout=1),
        scheduler=FeedScheduler(scheduler=recording_scheduler, clock=clock),
        clock=clock,
    )


class TestWeatherDashboard:

    def test_feeds_for_full_config(self, dashboard):
        assert [job.name for job in dashboard.feeds()] == [
            "surrounding", "usa", "province", "regional", "aqhi", "alerts", "climate",
        ]

    def test_optional_feeds_are_skipped(self, clock, recording_scheduler):
        config = make_config(
            primaryLocation={"province": "NU", "location": "s0000394", "name": "Iqaluit"},
            showMBHighLow=False,
            alertsFeedUrl=None,
        )
        dashboard = build(config, clock, recording_scheduler)

        assert dashboard.air_quality is None
        assert [job.name for job in dashboard.feeds()] == ["surrounding", "usa", "province"]

    def test_explicit_aqhi_and_climate_station(self, clock, recording_scheduler):
        config = make_config(aqhi={"region": "pnr", "code": "FCKRA"}, climateStationId="5010481")
        dashboard = build(config, clock, recording_scheduler)

        assert dashboard.air_quality.code == "FCKRA"
        assert dashboard.climate.station_id == "5010481"

    def test_start_schedules_every_feed(self, dashboard, recording_scheduler, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        (tmp_path / "music").mkdir()
        (tmp_path / "music" / "track01.mp3").write_bytes(b"")

        dashboard.start()

        assert recording_scheduler.started
        assert [job["id"] for job in recording_scheduler.jobs] == [
            "surrounding_job", "usa_job", "province_job", "regional_job",
            "aqhi_job", "alerts_job", "climate_job",
        ]
        assert dashboard.playlist == ["track01.mp3"]
        assert dashboard.crawler == []

        dashboard.stop()
        assert recording_scheduler.shut_down

    def test_regional_highlow_disabled(self, clock, recording_scheduler):
        dashboard = build(make_config(showMBHighLow=False), clock, recording_scheduler)
        assert dashboard.regional_highlow() is None

"""
Alert feed tests

Run with: pytest tests/test_alerts.py -v
"""

import pytest

from conftest import load_fixture
from retro_evc.alerts import AlertFeed, _alert_level, _clean_html, parse_alert_feed
from retro_evc.errors import ParseError
from retro_evc.fetcher import FetchClient

ALERTS_URL = "https://weather.gc.ca/rss/city/mb-38_e.xml"

NO_ALERTS = b"""<?xml version="1.0" encoding="utf-8"?>
<feed xmlns="http://www.w3.org/2005/Atom">
  <title>Winnipeg - Weather - Environment Canada</title>
  <entry>
    <title>No watches or warnings in effect, Winnipeg</title>
    <link type="text/html" href="https://weather.gc.ca/warnings/report_e.html?mb38"/>
    <updated>2026-10-17T18:10:00Z</updated>
    <category term="Warnings and Watches"/>
    <summary type="html">No watches or warnings in effect.</summary>
    <id>tag:weather.gc.ca,2013-04-16:20261017181000</id>
  </entry>
</feed>"""


class TestParseAlertFeed:

    def test_only_warning_entries(self):
        [alert] = parse_alert_feed(load_fixture("alerts_winnipeg.xml"))

        assert alert.title == "SPECIAL WEATHER STATEMENT IN EFFECT, Winnipeg"
        assert alert.level == "statement"
        assert alert.summary == "Snow expected tonight. Issued: 12:45 PM CDT"
        assert alert.link == "https://weather.gc.ca/warnings/report_e.html?mb38"
        assert alert.published_at == "2026-10-17T17:45:00"

    def test_no_alerts_in_effect(self):
        assert parse_alert_feed(NO_ALERTS) == []

    def test_garbage(self):
        with pytest.raises(ParseError):
            parse_alert_feed(b"\x00\x01 not a feed <")

    @pytest.mark.parametrize(
        "title,expected",
        [
            ("BLIZZARD WARNING IN EFFECT", "warning"),
            ("Severe Thunderstorm Watch in effect", "watch"),
            ("FOG ADVISORY IN EFFECT", "advisory"),
            ("Something else", None),
        ],
    )
    def test_alert_level(self, title, expected):
        assert _alert_level(title) == expected

    def test_clean_html(self):
        assert _clean_html("<p>Snow &amp; wind</p>\n<br/>") == "Snow & wind"
        assert _clean_html("") == ""


class TestAlertFeed:

    def test_none_before_first_refresh(self):
        feed = AlertFeed(FetchClient(timeout=1), ALERTS_URL)
        assert feed.enabled
        assert feed.warnings() is None

    def test_tick(self, requests_mock):
        requests_mock.get(ALERTS_URL, content=load_fixture("alerts_winnipeg.xml"))
        feed = AlertFeed(FetchClient(timeout=1), ALERTS_URL)

        result = feed.tick()

        assert result.success
        assert result.records_updated == 1
        assert feed.warnings()[0]["level"] == "statement"

    def test_failed_refresh_keeps_list(self, requests_mock):
        requests_mock.get(ALERTS_URL, content=load_fixture("alerts_winnipeg.xml"))
        feed = AlertFeed(FetchClient(timeout=1), ALERTS_URL)
        feed.tick()

        requests_mock.get(ALERTS_URL, status_code=503)
        result = feed.tick()

        assert not result.success
        assert result.data_quality == "unavailable"
        assert len(feed.warnings()) == 1

    def test_disabled_without_url(self):
        assert not AlertFeed(FetchClient(timeout=1), None).enabled

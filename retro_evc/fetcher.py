"""
Remote fetch client for the Retro EVC weather backend.

Every feed goes through a single FetchClient:
- One GET per call, no retry (the next scheduled tick is the retry)
- Bounded timeout so a tick can never hang
- Any non-2xx status or network failure is surfaced as FetchError
"""

import logging
from datetime import date, datetime
from typing import Optional
from urllib.parse import urlencode

import requests

from .errors import FetchError

logger = logging.getLogger(__name__)

# Configuration constants
DEFAULT_TIMEOUT = 15  # seconds
USER_AGENT = "RetroEVC/1.0 (personal weather display)"

# Data sources
DATAMART_BASE = "https://dd.weather.gc.ca"
GEOMET_BASE = "https://api.weather.gc.ca"
NWS_BASE = "https://api.weather.gov"

CITYPAGE_URL = DATAMART_BASE + "/citypage_weather/xml/{province}/{code}_e.xml"
PROVINCE_TODAY_URL = DATAMART_BASE + "/observations/xml/{province}/today/today_{prov}_{day}_e.xml"
AQHI_URL = DATAMART_BASE + "/air_quality/aqhi/{region}/observation/realtime/xml/AQ_OBS_{code}_CURRENT.xml"
NWS_LATEST_URL = NWS_BASE + "/stations/{station}/observations/latest"
CLIMATE_DAILY_URL = GEOMET_BASE + "/collections/climate-daily/items"
CLIMATE_NORMALS_URL = GEOMET_BASE + "/collections/climate-normals/items"


def citypage_url(province: str, code: str) -> str:
    return CITYPAGE_URL.format(province=province.upper(), code=code)


def province_today_url(province: str, day: date) -> str:
    return PROVINCE_TODAY_URL.format(
        province=province.upper(), prov=province.lower(), day=day.strftime("%Y%m%d")
    )


def aqhi_url(region: str, code: str) -> str:
    return AQHI_URL.format(region=region, code=code)


def nws_latest_url(station: str) -> str:
    return NWS_LATEST_URL.format(station=station)


def climate_daily_url(station_id: str, start: date, end: date, limit: int = 400) -> str:
    """GeoMet climate-daily query for an inclusive local-date range."""
    query = urlencode({
        "f": "json",
        "CLIMATE_IDENTIFIER": station_id,
        "datetime": f"{start.isoformat()} 00:00:00/{end.isoformat()} 00:00:00",
        "sortby": "LOCAL_DATE",
        "limit": limit,
    })
    return f"{CLIMATE_DAILY_URL}?{query}"


def climate_normals_url(station_id: str, limit: int = 500) -> str:
    query = urlencode({
        "f": "json",
        "CLIMATE_IDENTIFIER": station_id,
        "limit": limit,
    })
    return f"{CLIMATE_NORMALS_URL}?{query}"


class FetchClient:
    """
    Thin wrapper around a requests session.

    The session is shared by every feed; requests.Session is safe for
    concurrent GETs from the scheduler's worker threads.
    """

    def __init__(self, timeout: float = DEFAULT_TIMEOUT, session: Optional[requests.Session] = None):
        self.timeout = timeout
        self._session = session or self._create_session()

    def _create_session(self) -> requests.Session:
        """Create HTTP session with the project headers."""
        session = requests.Session()
        session.headers.update({
            "User-Agent": USER_AGENT,
            "Accept": "application/xml, text/xml, application/geo+json, application/json, */*"
        })
        return session

    def fetch(self, url: str) -> bytes:
        """
        Fetch a raw document.

        Raises:
            FetchError: on timeout, connection failure or non-2xx status.
        """
        start_time = datetime.utcnow()

        try:
            response = self._session.get(url, timeout=self.timeout, allow_redirects=True)
            response.raise_for_status()
        except requests.Timeout:
            raise FetchError(f"Request to {url} timed out after {self.timeout}s")
        except requests.ConnectionError as e:
            raise FetchError(f"Connection error - source unavailable: {e}")
        except requests.HTTPError as e:
            raise FetchError(f"HTTP error {e.response.status_code} from {url}")
        except requests.RequestException as e:
            raise FetchError(f"Request failed: {e}")

        response_time = int((datetime.utcnow() - start_time).total_seconds() * 1000)
        logger.debug(f"Fetched {url} ({len(response.content)} bytes, {response_time}ms)")
        return response.content

    def close(self) -> None:
        """Close HTTP session."""
        self._session.close()

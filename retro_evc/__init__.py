"""
Retro EVC Weather Backend

A weather data backend for a retro weather-channel display with:
- Environment Canada citypage, provincial and AQHI polling
- US city observations from the NWS API
- Climate history (season precipitation, last month, last year)
- In-memory caches refreshed by scheduled feeds
- REST API for the display
"""

from .config import AppConfig, ConfigError, load_config
from .dashboard import WeatherDashboard
from .errors import FetchError, NotFound, ParseError, RetroEVCError
from .fetcher import FetchClient
from .parsers import Observation, FeedKind, parse
from .scheduler import FeedScheduler
from .store import ObservationStore

__version__ = "1.0.0"

__all__ = [
    "AppConfig",
    "ConfigError",
    "FeedKind",
    "FeedScheduler",
    "FetchClient",
    "FetchError",
    "NotFound",
    "Observation",
    "ObservationStore",
    "ParseError",
    "RetroEVCError",
    "WeatherDashboard",
    "load_config",
    "parse",
]

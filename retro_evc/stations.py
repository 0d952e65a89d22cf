"""
Station registries.

Each feed polls a fixed, ordered set of stations. Registry order is the
order snapshots are returned in and the order used to break ties.
"""

from dataclasses import dataclass
from typing import Dict, Iterator, List, Optional, Tuple


@dataclass(frozen=True)
class Station:
    """A named observation point and its feed-specific identifier."""
    key: str            # Feed identifier, also the store key
    name: str
    group: str          # Province code or country


class StationRegistry:
    """Read-only, insertion-ordered mapping of station key -> Station."""

    def __init__(self, stations: List[Station]):
        self._stations: Dict[str, Station] = {}
        for station in stations:
            if station.key in self._stations:
                raise ValueError(f"Duplicate station key: {station.key}")
            self._stations[station.key] = station

    def __iter__(self) -> Iterator[Station]:
        return iter(list(self._stations.values()))

    def __len__(self) -> int:
        return len(self._stations)

    def __contains__(self, key: object) -> bool:
        return key in self._stations

    def get(self, key: str) -> Optional[Station]:
        return self._stations.get(key)

    def keys(self) -> List[str]:
        return list(self._stations)


# =============================================================================
# Built-in registries
# =============================================================================

# Canadian cities shown on the "surrounding cities" screen (citypage codes)
DOMESTIC_CITIES = StationRegistry([
    Station("s0000141", "Vancouver", "BC"),
    Station("s0000775", "Victoria", "BC"),
    Station("s0000825", "Whitehorse", "YT"),
    Station("s0000366", "Yellowknife", "NT"),
    Station("s0000394", "Iqaluit", "NU"),
    Station("s0000045", "Edmonton", "AB"),
    Station("s0000047", "Calgary", "AB"),
    Station("s0000797", "Saskatoon", "SK"),
    Station("s0000788", "Regina", "SK"),
    Station("s0000193", "Winnipeg", "MB"),
    Station("s0000458", "Toronto", "ON"),
    Station("s0000430", "Ottawa", "ON"),
    Station("s0000635", "Montreal", "QC"),
    Station("s0000620", "Quebec City", "QC"),
    Station("s0000250", "Fredericton", "NB"),
    Station("s0000318", "Halifax", "NS"),
    Station("s0000583", "Charlottetown", "PE"),
    Station("s0000280", "St. John's", "NL"),
])

# US cities (NWS station identifiers)
US_CITIES = StationRegistry([
    Station("KSEA", "Seattle", "US"),
    Station("KLAX", "Los Angeles", "US"),
    Station("KLAS", "Las Vegas", "US"),
    Station("KPHX", "Phoenix", "US"),
    Station("KDEN", "Denver", "US"),
    Station("KDFW", "Dallas", "US"),
    Station("KMSP", "Minneapolis", "US"),
    Station("KFAR", "Fargo", "US"),
    Station("KGFK", "Grand Forks", "US"),
    Station("KORD", "Chicago", "US"),
    Station("KATL", "Atlanta", "US"),
    Station("KMIA", "Miami", "US"),
    Station("KJFK", "New York", "US"),
])

# Manitoba regional high/low screen
MB_REGIONAL = StationRegistry([
    Station("s0000193", "Winnipeg", "MB"),
    Station("s0000626", "Portage", "MB"),
    Station("s0000492", "Brandon", "MB"),
    Station("s0000508", "Dauphin", "MB"),
    Station("s0000721", "Kenora", "ON"),
    Station("s0000695", "Thompson", "MB"),
])

# Location name -> (AQHI region folder, community code)
AQHI_LOCATIONS: Dict[str, Tuple[str, str]] = {
    "Winnipeg": ("pnr", "FCKNR"),
    "Brandon": ("pnr", "FCKRA"),
    "Regina": ("pnr", "FAGBB"),
    "Saskatoon": ("pnr", "FAGKC"),
    "Edmonton": ("pnr", "FAHRG"),
    "Calgary": ("pnr", "FALJI"),
    "Vancouver": ("pyr", "DMAGV"),
    "Toronto": ("ont", "FEVNT"),
    "Ottawa": ("ont", "FCKTB"),
    "Montreal": ("que", "FBOQY"),
    "Halifax": ("atl", "EAHHA"),
}

# Location name -> climate station identifier (climate-daily collection)
CLIMATE_STATIONS: Dict[str, str] = {
    "Winnipeg": "5023227",
    "Brandon": "5010481",
    "Regina": "4016560",
    "Saskatoon": "4057165",
    "Calgary": "3031092",
    "Edmonton": "3012209",
    "Vancouver": "1108395",
    "Toronto": "6158731",
    "Ottawa": "6106001",
    "Montreal": "7025251",
    "Halifax": "8202251",
}


def aqhi_for_location(name: Optional[str]) -> Optional[Tuple[str, str]]:
    """Look up the AQHI region/code pair for a location name."""
    if not name:
        return None
    return AQHI_LOCATIONS.get(name.strip().title())


def climate_station_for_location(name: Optional[str]) -> Optional[str]:
    """Look up the climate station id for a location name."""
    if not name:
        return None
    return CLIMATE_STATIONS.get(name.strip().title())

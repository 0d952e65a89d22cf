"""
Document parsers for the Retro EVC weather backend.

Turns raw payloads into typed, immutable records:
- Citypage XML (Environment Canada city forecasts and current conditions)
- Provincial "today" observation XML (OM ObservationCollection)
- AQHI observation XML
- NWS latest-observation GeoJSON
- GeoMet climate-daily / climate-normals GeoJSON

Field-level problems never fail a parse: any value that is absent or not
numeric becomes None. Only a structurally broken document (bad XML/JSON,
unexpected root) raises ParseError, which discards the whole batch.
"""

import json
import logging
import math
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Dict, Iterator, List, Mapping, Optional

from .errors import ParseError

logger = logging.getLogger(__name__)

UNITS_METRIC = "metric"

# Element names carried by the provincial observation documents
TEMPERATURE_ELEMENTS = ("air_temperature", "present_temperature")
PRECIP_ELEMENTS = ("total_precipitation", "precipitation_amount")
STATION_ID_ELEMENTS = ("climate_station_number", "tc_identifier", "station_name")

NWS_FAHRENHEIT = "wmoUnit:degF"


class FeedKind(Enum):
    """Document formats understood by parse()."""
    CITYPAGE = "citypage"
    PROVINCE_TODAY = "province_today"
    AQHI = "aqhi"
    NWS_LATEST = "nws_latest"
    CLIMATE_DAILY = "climate_daily"
    CLIMATE_NORMALS = "climate_normals"


@dataclass(frozen=True)
class Observation:
    """A single timestamped reading for a station. None means missing."""
    station_id: str
    name: Optional[str] = None
    timestamp: Optional[datetime] = None
    temperature: Optional[float] = None
    precipitation: Optional[float] = None
    condition: Optional[str] = None
    units: str = UNITS_METRIC
    extras: Mapping[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "station_id": self.station_id,
            "name": self.name,
            "timestamp": self.timestamp.isoformat() if self.timestamp else None,
            "temperature": self.temperature,
            "precipitation": self.precipitation,
            "condition": self.condition,
            "units": self.units,
            **dict(self.extras),
        }


@dataclass(frozen=True)
class AirQualityReading:
    """Current AQHI for a community."""
    code: str
    name: Optional[str]
    aqhi: Optional[float]
    timestamp: Optional[datetime]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "name": self.name,
            "aqhi": self.aqhi,
            "observed": self.timestamp.isoformat() if self.timestamp else None,
        }


@dataclass(frozen=True)
class DailyClimate:
    """One day of a climate station's record."""
    day: date
    max_temp: Optional[float] = None
    min_temp: Optional[float] = None
    mean_temp: Optional[float] = None
    total_precip: Optional[float] = None
    total_rain: Optional[float] = None
    total_snow: Optional[float] = None


@dataclass(frozen=True)
class ClimateNormal:
    """A monthly 1981-2010 normal value (month 1-12)."""
    month: int
    normal_id: int
    value: Optional[float]


# =============================================================================
# Field helpers
# =============================================================================

def to_float(value: Any) -> Optional[float]:
    """Parse a number as supplied by the source, or None (including NaN/inf)."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        result = float(value)
    else:
        text = str(value).strip()
        if not text:
            return None
        try:
            result = float(text)
        except ValueError:
            return None
    return result if math.isfinite(result) else None


def _local(tag: str) -> str:
    """Tag name without its namespace."""
    return tag.rsplit("}", 1)[-1]


def _child(elem: Optional[ET.Element], name: str, **attrs: str) -> Optional[ET.Element]:
    """First direct child with the given local name and attribute values."""
    if elem is None:
        return None
    for child in elem:
        if _local(child.tag) != name:
            continue
        if all(child.get(k) == v for k, v in attrs.items()):
            return child
    return None


def _children(elem: Optional[ET.Element], name: str) -> List[ET.Element]:
    if elem is None:
        return []
    return [child for child in elem if _local(child.tag) == name]


def _descendants(elem: ET.Element, name: str) -> Iterator[ET.Element]:
    for node in elem.iter():
        if _local(node.tag) == name:
            yield node


def _text(elem: Optional[ET.Element]) -> Optional[str]:
    if elem is None or elem.text is None:
        return None
    text = elem.text.strip()
    return text or None


def _utc_stamp(text: Optional[str]) -> Optional[datetime]:
    """Parse a YYYYMMDDHHMMSS UTC stamp."""
    if not text:
        return None
    try:
        return datetime.strptime(text.strip(), "%Y%m%d%H%M%S").replace(tzinfo=timezone.utc)
    except ValueError:
        return None


def _iso_datetime(text: Optional[str]) -> Optional[datetime]:
    if not text:
        return None
    try:
        parsed = datetime.fromisoformat(text.strip().replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _isoformat(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def _load_xml(raw: bytes, root_name: str) -> ET.Element:
    try:
        root = ET.fromstring(raw)
    except ET.ParseError as e:
        raise ParseError(f"XML parsing failed: {e}")
    if _local(root.tag) != root_name:
        raise ParseError(f"Unexpected root element <{_local(root.tag)}>, expected <{root_name}>")
    return root


def _load_json(raw: bytes) -> Any:
    try:
        return json.loads(raw)
    except (ValueError, TypeError) as e:
        raise ParseError(f"JSON parsing failed: {e}")


def _features(raw: bytes) -> List[Dict[str, Any]]:
    data = _load_json(raw)
    if not isinstance(data, dict) or not isinstance(data.get("features"), list):
        raise ParseError("GeoJSON document has no feature list")
    return [f for f in data["features"] if isinstance(f, dict)]


# =============================================================================
# Citypage XML
# =============================================================================

def _observation_time(conditions: Optional[ET.Element]) -> Optional[datetime]:
    stamp = _child(conditions, "dateTime", zone="UTC")
    return _utc_stamp(_text(_child(stamp, "timeStamp")))


def _measure(elem: Optional[ET.Element]) -> Optional[Dict[str, Any]]:
    """Numeric element with its units attribute."""
    if elem is None:
        return None
    return {"value": to_float(elem.text), "units": elem.get("units")}


def _raw_measure(elem: Optional[ET.Element]) -> Optional[Dict[str, Any]]:
    """Element value kept as text (e.g. precipitation that may read "Trace")."""
    if elem is None:
        return None
    return {"value": _text(elem) or "", "units": elem.get("units")}


def _citypage_root(raw: bytes) -> ET.Element:
    return _load_xml(raw, "siteData")


def _parse_citypage_observation(raw: bytes) -> List[Observation]:
    root = _citypage_root(raw)
    location = _child(root, "location")
    name_elem = _child(location, "name")
    station_id = name_elem.get("code") if name_elem is not None else None
    if not station_id:
        raise ParseError("Citypage document has no location code")

    conditions = _child(root, "currentConditions")
    yesterday = _child(root, "yesterdayConditions")

    extras: Dict[str, Any] = {
        "province": (_child(location, "province").get("code")
                     if _child(location, "province") is not None else None),
        "icon_code": _text(_child(conditions, "iconCode")),
        "yesterday_precip": _raw_measure(_child(yesterday, "precip")),
    }

    return [Observation(
        station_id=station_id,
        name=_text(name_elem),
        timestamp=_observation_time(conditions),
        temperature=to_float(_text(_child(conditions, "temperature"))),
        precipitation=None,
        condition=_text(_child(conditions, "condition")),
        extras=extras,
    )]


def _parse_current(conditions: Optional[ET.Element]) -> Dict[str, Any]:
    if conditions is None:
        return {}
    station = _child(conditions, "station")
    wind = _child(conditions, "wind")
    pressure = _child(conditions, "pressure")
    return {
        "station": {
            "code": station.get("code") if station is not None else None,
            "name": _text(station),
        },
        "condition": _text(_child(conditions, "condition")),
        "icon_code": _text(_child(conditions, "iconCode")),
        "temperature": _measure(_child(conditions, "temperature")),
        "dewpoint": _measure(_child(conditions, "dewpoint")),
        "humidex": _measure(_child(conditions, "humidex")),
        "wind_chill": _measure(_child(conditions, "windChill")),
        "relative_humidity": _measure(_child(conditions, "relativeHumidity")),
        "visibility": _measure(_child(conditions, "visibility")),
        "pressure": {
            "value": to_float(_text(pressure)),
            "units": pressure.get("units"),
            "tendency": pressure.get("tendency"),
        } if pressure is not None else None,
        "wind": {
            "speed": _measure(_child(wind, "speed")),
            "gust": _measure(_child(wind, "gust")),
            "direction": _text(_child(wind, "direction")),
            "bearing": to_float(_text(_child(wind, "bearing"))),
        } if wind is not None else None,
    }


def _parse_forecast(group: Optional[ET.Element]) -> List[Dict[str, Any]]:
    forecasts = []
    for forecast in _children(group, "forecast"):
        period = _child(forecast, "period")
        abbreviated = _child(forecast, "abbreviatedForecast")
        temperatures = _child(forecast, "temperatures")
        temperature = _child(temperatures, "temperature")
        forecasts.append({
            "period": period.get("textForecastName") if period is not None else None,
            "text_summary": _text(_child(forecast, "textSummary")),
            "icon_code": _text(_child(abbreviated, "iconCode")),
            "pop": to_float(_text(_child(abbreviated, "pop"))),
            "abbreviated": _text(_child(abbreviated, "textSummary")),
            "temperature": {
                "class": temperature.get("class"),
                "value": to_float(_text(temperature)),
            } if temperature is not None else None,
        })
    return forecasts


def _parse_regional_normals(group: Optional[ET.Element]) -> Dict[str, Any]:
    normals = _child(group, "regionalNormals")
    if normals is None:
        return {}
    result: Dict[str, Any] = {"text_summary": _text(_child(normals, "textSummary"))}
    for temperature in _children(normals, "temperature"):
        cls = temperature.get("class")
        if cls:
            result[cls] = to_float(_text(temperature))
    return result


def _parse_rise_set(rise_set: Optional[ET.Element]) -> Dict[str, Optional[str]]:
    result: Dict[str, Optional[str]] = {"sunrise": None, "sunset": None}
    for stamp in _children(rise_set, "dateTime"):
        if stamp.get("zone") != "UTC":
            continue
        name = stamp.get("name")
        if name in result:
            result[name] = _isoformat(_utc_stamp(_text(_child(stamp, "timeStamp"))))
    return result


def _parse_almanac(almanac: Optional[ET.Element]) -> Dict[str, Any]:
    result: Dict[str, Any] = {}
    if almanac is None:
        return result
    for entry in almanac:
        cls = entry.get("class")
        if not cls:
            continue
        result[cls] = {
            "value": to_float(_text(entry)),
            "units": entry.get("units"),
            "year": entry.get("year"),
        }
    return result


def _parse_warnings(warnings: Optional[ET.Element]) -> List[Dict[str, Any]]:
    return [
        {
            "type": event.get("type"),
            "priority": event.get("priority"),
            "description": (event.get("description") or "").strip(),
            "url": warnings.get("url") if warnings is not None else None,
        }
        for event in _children(warnings, "event")
    ]


def parse_citypage_document(raw: bytes) -> Dict[str, Any]:
    """
    Parse a full citypage document for the main screen.

    Raises:
        ParseError: if the document is not a well-formed siteData document.
    """
    root = _citypage_root(raw)
    location = _child(root, "location")
    name_elem = _child(location, "name")
    province = _child(location, "province")
    conditions = _child(root, "currentConditions")
    group = _child(root, "forecastGroup")
    yesterday = _child(root, "yesterdayConditions")

    yesterday_temps = {
        t.get("class"): to_float(_text(t))
        for t in _children(yesterday, "temperature") if t.get("class")
    }

    return {
        "location": {
            "code": name_elem.get("code") if name_elem is not None else None,
            "name": _text(name_elem),
            "lat": name_elem.get("lat") if name_elem is not None else None,
            "lon": name_elem.get("lon") if name_elem is not None else None,
            "province": province.get("code") if province is not None else None,
            "region": _text(_child(location, "region")),
        },
        "current": _parse_current(conditions),
        "observed": _isoformat(_observation_time(conditions)),
        "riseSet": _parse_rise_set(_child(root, "riseSet")),
        "forecast": _parse_forecast(group),
        "regionalNormals": _parse_regional_normals(group),
        "almanac": _parse_almanac(_child(root, "almanac")),
        "warnings": _parse_warnings(_child(root, "warnings")),
        "yesterday": {
            "high": yesterday_temps.get("high"),
            "low": yesterday_temps.get("low"),
            "precip": _raw_measure(_child(yesterday, "precip")),
        },
    }


# =============================================================================
# Provincial observation XML
# =============================================================================

def _member_elements(member: ET.Element) -> Dict[str, Optional[str]]:
    values: Dict[str, Optional[str]] = {}
    for element in _descendants(member, "element"):
        name = element.get("name")
        if name and name not in values:
            values[name] = element.get("value")
    return values


def _first_number(values: Mapping[str, Optional[str]], names: tuple) -> Optional[float]:
    for name in names:
        if name in values:
            return to_float(values[name])
    return None


def _parse_province_today(raw: bytes) -> List[Observation]:
    root = _load_xml(raw, "ObservationCollection")
    observations = []

    for member in _descendants(root, "member"):
        values = _member_elements(member)
        station_id = next((values[n] for n in STATION_ID_ELEMENTS if values.get(n)), None)
        if not station_id:
            logger.debug("Skipping provincial member without a station identifier")
            continue

        timestamp = _iso_datetime(values.get("date_tm"))
        if timestamp is None:
            position = next(_descendants(member, "timePosition"), None)
            timestamp = _iso_datetime(_text(position))

        observations.append(Observation(
            station_id=station_id,
            name=values.get("station_name"),
            timestamp=timestamp,
            temperature=_first_number(values, TEMPERATURE_ELEMENTS),
            precipitation=_first_number(values, PRECIP_ELEMENTS),
            condition=values.get("present_weather"),
        ))

    return observations


# =============================================================================
# AQHI XML
# =============================================================================

def _parse_aqhi(raw: bytes) -> List[AirQualityReading]:
    root = _load_xml(raw, "conditionAirQuality")
    region = _child(root, "region")
    code = _text(region)
    if not code:
        raise ParseError("AQHI document has no region code")
    stamp = _child(root, "dateStamp")
    return [AirQualityReading(
        code=code,
        name=region.get("nameEn"),
        aqhi=to_float(_text(_child(root, "airQualityHealthIndex"))),
        timestamp=_utc_stamp(_text(_child(stamp, "UTCStamp"))),
    )]


# =============================================================================
# NWS GeoJSON
# =============================================================================

def _nws_value(props: Mapping[str, Any], key: str) -> Optional[Dict[str, Any]]:
    entry = props.get(key)
    return entry if isinstance(entry, dict) else None


def _parse_nws_latest(raw: bytes) -> List[Observation]:
    data = _load_json(raw)
    props = data.get("properties") if isinstance(data, dict) else None
    if not isinstance(props, dict):
        raise ParseError("NWS document has no properties object")

    station_id = props.get("stationId")
    if not station_id and isinstance(props.get("station"), str):
        station_id = props["station"].rstrip("/").rsplit("/", 1)[-1]
    if not station_id:
        raise ParseError("NWS document has no station identifier")

    temperature_entry = _nws_value(props, "temperature") or {}
    temperature = to_float(temperature_entry.get("value"))
    # NWS sometimes reports in different units
    if temperature is not None and temperature_entry.get("unitCode") == NWS_FAHRENHEIT:
        temperature = round((temperature - 32.0) * 5.0 / 9.0, 1)

    precip_entry = _nws_value(props, "precipitationLastHour") or {}

    return [Observation(
        station_id=station_id,
        name=props.get("stationName"),
        timestamp=_iso_datetime(props.get("timestamp")),
        temperature=temperature,
        precipitation=to_float(precip_entry.get("value")),
        condition=props.get("textDescription") or None,
        extras={"icon": props.get("icon")},
    )]


# =============================================================================
# GeoMet climate GeoJSON
# =============================================================================

def _local_date(value: Any) -> Optional[date]:
    if not isinstance(value, str) or len(value) < 10:
        return None
    try:
        return date.fromisoformat(value[:10])
    except ValueError:
        return None


def _parse_climate_daily(raw: bytes) -> List[DailyClimate]:
    days = []
    for feature in _features(raw):
        props = feature.get("properties") or {}
        day = _local_date(props.get("LOCAL_DATE"))
        if day is None:
            continue
        days.append(DailyClimate(
            day=day,
            max_temp=to_float(props.get("MAX_TEMPERATURE")),
            min_temp=to_float(props.get("MIN_TEMPERATURE")),
            mean_temp=to_float(props.get("MEAN_TEMPERATURE")),
            total_precip=to_float(props.get("TOTAL_PRECIPITATION")),
            total_rain=to_float(props.get("TOTAL_RAIN")),
            total_snow=to_float(props.get("TOTAL_SNOW")),
        ))
    days.sort(key=lambda d: d.day)
    return days


def _parse_climate_normals(raw: bytes) -> List[ClimateNormal]:
    normals = []
    for feature in _features(raw):
        props = feature.get("properties") or {}
        try:
            month = int(props.get("MONTH"))
            normal_id = int(props.get("NORMAL_ID"))
        except (TypeError, ValueError):
            continue
        # month 13 is the annual value
        if not 1 <= month <= 12:
            continue
        normals.append(ClimateNormal(month=month, normal_id=normal_id, value=to_float(props.get("VALUE"))))
    return normals


_PARSERS = {
    FeedKind.CITYPAGE: _parse_citypage_observation,
    FeedKind.PROVINCE_TODAY: _parse_province_today,
    FeedKind.AQHI: _parse_aqhi,
    FeedKind.NWS_LATEST: _parse_nws_latest,
    FeedKind.CLIMATE_DAILY: _parse_climate_daily,
    FeedKind.CLIMATE_NORMALS: _parse_climate_normals,
}


def parse(raw: bytes, feed_kind: FeedKind) -> List[Any]:
    """
    Parse a raw payload into records for the given feed kind.

    Raises:
        ParseError: if the document is malformed.
    """
    if not raw or not raw.strip():
        raise ParseError(f"Empty {feed_kind.value} document")
    return _PARSERS[feed_kind](raw)

"""Read and write outlook features as GeoJSON and forecast-cycle JSON documents."""

from __future__ import annotations

import json
import sys
import uuid
from datetime import datetime, timezone
from typing import Optional

from shapely.errors import ShapelyError
from shapely.geometry import MultiPolygon, Polygon, mapping, shape

from config import DERIVED_MARKER, OutlookDay, RiskFeature

FORMAT_VERSION = "0.5.0"

_KNOWN_PROPS = {"outlookType", "probability", "derivedFrom", "originalProbability", DERIVED_MARKER}


class ForecastFileError(ValueError):
    """The forecast document could not be read or has the wrong shape."""


# ---------------------------------------------------------------------------
# Features
# ---------------------------------------------------------------------------

def feature_from_geojson(feature: dict, outlook_type: str, key: str) -> Optional[RiskFeature]:
    """Parse one GeoJSON feature. Returns None for missing or non-polygon geometry."""
    if not isinstance(feature, dict):
        return None
    geom_data = feature.get("geometry")
    if not geom_data:
        return None

    try:
        geom = shape(geom_data)
    except (ValueError, TypeError, AttributeError, ShapelyError):
        return None

    if not isinstance(geom, (Polygon, MultiPolygon)):
        return None

    props = feature.get("properties") or {}
    feature_id = feature.get("id", props.get("id"))

    return RiskFeature(
        geometry=geom,
        id=str(feature_id) if feature_id is not None else str(uuid.uuid4()),
        outlook_type=outlook_type,
        label=key,
        derived_from=props.get("derivedFrom"),
        original_probability=props.get("originalProbability"),
        auto_generated=bool(props.get(DERIVED_MARKER, False)),
        properties={k: v for k, v in props.items() if k not in _KNOWN_PROPS},
    )


def feature_to_geojson(feature: RiskFeature) -> dict:
    props = dict(feature.properties)
    props.update({
        "outlookType": feature.outlook_type,
        "probability": feature.label,
    })
    if feature.derived_from is not None:
        props["derivedFrom"] = feature.derived_from
    if feature.original_probability is not None:
        props["originalProbability"] = feature.original_probability
    if feature.auto_generated:
        props[DERIVED_MARKER] = True

    return {
        "type": "Feature",
        "id": feature.id,
        "geometry": mapping(feature.geometry),
        "properties": props,
    }


# ---------------------------------------------------------------------------
# Forecast documents
# ---------------------------------------------------------------------------

def _parse_outlooks(day: int, data: dict) -> OutlookDay:
    """Turn {"tornado": [[key, [features]], ...], ...} into an OutlookDay."""
    outlook_day = OutlookDay(day)
    skipped = 0

    for outlook_type, entries in data.items():
        if not isinstance(entries, list):
            raise ForecastFileError(f"Day {day} {outlook_type}: expected a list of entries")
        layer = outlook_day.layer(outlook_type)
        for entry in entries:
            try:
                key, features = entry
            except (TypeError, ValueError):
                raise ForecastFileError(f"Day {day} {outlook_type}: malformed entry") from None
            parsed = []
            for feat in features or []:
                risk_feature = feature_from_geojson(feat, outlook_type, str(key))
                if risk_feature is None:
                    skipped += 1
                    continue
                parsed.append(risk_feature)
            if parsed:
                layer[str(key)] = parsed

    if skipped:
        print(f"  Day {day}: skipped {skipped} feature(s) without polygon geometry",
              file=sys.stderr)
    return outlook_day


def parse_forecast(doc: dict) -> tuple[dict[int, OutlookDay], int]:
    """Parse a forecast document. Returns (days, current_day).

    Older single-outlook documents ({"outlooks": {...}}) load as Day 1.
    """
    if not isinstance(doc, dict):
        raise ForecastFileError("Forecast document must be a JSON object")

    cycle = doc.get("forecastCycle")
    if cycle is not None:
        days: dict[int, OutlookDay] = {}
        for day_key, saved in (cycle.get("days") or {}).items():
            if not saved:
                continue
            if not isinstance(saved, dict):
                raise ForecastFileError(f"Day {day_key}: expected an object")
            try:
                day = int(saved.get("day", day_key))
            except (TypeError, ValueError):
                raise ForecastFileError(f"Bad day number: {day_key!r}") from None
            days[day] = _parse_outlooks(day, saved.get("data") or {})
        return days, int(cycle.get("currentDay", 1))

    if "outlooks" in doc:
        return {1: _parse_outlooks(1, doc["outlooks"] or {})}, 1

    raise ForecastFileError("Not a forecast document (no forecastCycle or outlooks)")


def serialize_forecast(days: dict[int, OutlookDay], current_day: int = 1) -> dict:
    serialized: dict[str, dict] = {}
    for day in sorted(days):
        outlook_day = days[day]
        data = {
            outlook_type: [
                [key, [feature_to_geojson(f) for f in features]]
                for key, features in layer.items()
            ]
            for outlook_type, layer in outlook_day.outlooks.items()
        }
        serialized[str(day)] = {"day": day, "data": data}

    now = datetime.now(timezone.utc)
    return {
        "version": FORMAT_VERSION,
        "type": "forecast-cycle",
        "timestamp": now.isoformat(),
        "forecastCycle": {
            "days": serialized,
            "currentDay": current_day,
            "cycleDate": now.date().isoformat(),
        },
    }


def load_forecast(path: str) -> tuple[dict[int, OutlookDay], int]:
    """Read a forecast JSON file. Raises ForecastFileError on failure."""
    try:
        with open(path) as f:
            doc = json.load(f)
    except OSError as exc:
        raise ForecastFileError(f"Cannot read {path}: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise ForecastFileError(f"Bad JSON in {path}: {exc}") from exc
    return parse_forecast(doc)


def save_forecast(path: str, days: dict[int, OutlookDay], current_day: int = 1) -> str:
    with open(path, "w") as f:
        json.dump(serialize_forecast(days, current_day), f, indent=2)
    print(f"  Saved forecast to {path}", file=sys.stderr)
    return path

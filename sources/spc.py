"""Fetch SPC probabilistic outlook GeoJSON for Days 1-3 as outlook layers."""

from __future__ import annotations

import json
import sys
import time
import uuid

import requests

from classifier import is_hatching_key
from config import (
    CATEGORICAL_LEVELS,
    CATEGORICAL_TYPE,
    HTTP_TIMEOUT,
    OUTLOOK_HATCHING,
    RETRY_DELAY,
    SPC_BASE,
    SPC_PROB_URLS,
    OutlookDay,
)
from sources.geojson import feature_from_geojson

# Older products mark significant areas with SIGN instead of a CIG level
_SIGNIFICANT_LABELS = {"SIGN": "CIG1", "SIG": "CIG1"}


def fetch_spc_day(day: int, include_categorical: bool = True) -> tuple[OutlookDay, bool]:
    """Fetch the SPC probabilistic layers (and optionally categorical) for one day.

    Returns (outlook_day, any_data_fetched).
    """
    if day not in SPC_PROB_URLS:
        raise ValueError(f"SPC probabilistic outlooks are only converted for Days 1-3, not {day}")

    sources = list(SPC_PROB_URLS[day])
    if include_categorical:
        sources.append((CATEGORICAL_TYPE, f"{SPC_BASE}/day{day}otlk_cat.lyr.geojson"))

    outlook_day = OutlookDay(day)
    success_count = 0

    for outlook_type, url in sources:
        print(f"  Day {day} {outlook_type}... ", end="", file=sys.stderr)
        geojson = _fetch_geojson(url)

        if geojson is None:
            print("skipped", file=sys.stderr)
            continue

        success_count += 1
        count = _add_features(outlook_day, outlook_type, geojson.get("features", []))
        print(f"{count} polygon(s)", file=sys.stderr)

    return outlook_day, success_count > 0


def _fetch_geojson(url: str) -> dict | None:
    """Fetch a single GeoJSON URL with one retry. Returns None on failure."""
    for attempt in range(2):
        try:
            resp = requests.get(url, timeout=HTTP_TIMEOUT)

            if resp.status_code >= 500:
                if attempt == 0:
                    print(f"HTTP {resp.status_code}, retrying... ", end="", file=sys.stderr)
                    time.sleep(RETRY_DELAY)
                    continue
                print(f"HTTP {resp.status_code} ", end="", file=sys.stderr)
                return None

            if resp.status_code >= 400:
                print(f"HTTP {resp.status_code} ", end="", file=sys.stderr)
                return None

            return resp.json()

        except (requests.exceptions.Timeout, requests.exceptions.ConnectionError) as exc:
            if attempt == 0:
                print(f"{type(exc).__name__}, retrying... ", end="", file=sys.stderr)
                time.sleep(RETRY_DELAY)
                continue
            print(f"{type(exc).__name__} ", end="", file=sys.stderr)
            return None

        except json.JSONDecodeError:
            print("bad JSON ", end="", file=sys.stderr)
            return None

        except requests.exceptions.RequestException as exc:
            print(f"error: {exc} ", end="", file=sys.stderr)
            return None

    return None


def _add_features(outlook_day: OutlookDay, outlook_type: str, features: list[dict]) -> int:
    layer = outlook_day.layer(outlook_type)
    count = 0

    for feat in features:
        props = feat.get("properties") or {}
        raw = str(props.get("LABEL", props.get("LABEL2", ""))).strip()
        key = _label_to_key(raw, outlook_type)
        if key is None:
            continue

        risk_feature = feature_from_geojson(feat, outlook_type, key)
        if risk_feature is None:
            continue
        # SPC layers carry no feature ids
        risk_feature.id = f"spc-d{outlook_day.day}-{outlook_type}-{uuid.uuid4().hex[:8]}"
        layer.setdefault(key, []).append(risk_feature)
        count += 1

    return count


def _label_to_key(label: str, outlook_type: str) -> str | None:
    """Convert an SPC LABEL to an outlook map key ("15%", "CIG1", "MDT").

    Returns None if the label cannot be used for this outlook type.
    """
    upper = label.upper()
    if outlook_type == CATEGORICAL_TYPE:
        return upper if upper in CATEGORICAL_LEVELS else None

    if upper in _SIGNIFICANT_LABELS:
        upper = _SIGNIFICANT_LABELS[upper]
    if is_hatching_key(upper):
        return upper if upper in OUTLOOK_HATCHING.get(outlook_type, ()) else None

    try:
        val = float(label)
    except ValueError:
        return None

    # SPC uses "0.15" for 15% or "15" for 15%; "1" means 1%, not 100%
    if 0 < val < 1.0:
        return f"{round(val * 100)}%"
    if val >= 1:
        return f"{int(val)}%"
    return None


if __name__ == "__main__":
    print("Fetching SPC Day 1 outlook...", file=sys.stderr)
    outlook_day, any_data = fetch_spc_day(1)

    if not any_data:
        print("\nWARNING: No SPC outlook data was available.")
        sys.exit(1)

    for outlook_type, layer in sorted(outlook_day.outlooks.items()):
        keys = ", ".join(f"{k}: {len(v)}" for k, v in layer.items())
        print(f"  {outlook_type}: {keys or 'empty'}")

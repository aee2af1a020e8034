"""Configuration, constants, and shared data structures for the outlook tracker."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Optional, Union

from shapely.geometry import MultiPolygon, Polygon


# ---------------------------------------------------------------------------
# Data classes
# ---------------------------------------------------------------------------

@dataclass
class RiskFeature:
    """A single outlook polygon with its outlook type and probability/risk label."""
    geometry: Union[Polygon, MultiPolygon]
    id: str
    outlook_type: str                   # "tornado", "wind", "hail", "totalSevere", "categorical"
    label: str                          # "15%", "CIG2", "MDT", ...
    derived_from: Optional[str] = None  # Display only: source outlook type(s)
    original_probability: Optional[str] = None  # Display only: source label(s)
    auto_generated: bool = False        # True for features written by the categorical engine
    properties: dict = field(default_factory=dict)  # Extra GeoJSON properties, passed through


@dataclass
class PartitionPiece:
    """One disjoint piece of a probability polygon, tagged with its hatching level."""
    outlook_type: str
    probability: str
    hatching: str                       # "CIG0" .. "CIG3"
    geometry: Union[Polygon, MultiPolygon]


@dataclass
class OutlookDay:
    """All outlook layers for a single forecast day.

    outlooks maps outlook type -> {probability or hatching key -> features}.
    The "categorical" entry maps risk level -> features.
    """
    day: int
    outlooks: dict[str, dict[str, list[RiskFeature]]] = field(default_factory=dict)

    def layer(self, outlook_type: str) -> dict[str, list[RiskFeature]]:
        return self.outlooks.setdefault(outlook_type, {})


# ---------------------------------------------------------------------------
# Categorical risk levels
# ---------------------------------------------------------------------------

CATEGORICAL_LEVELS: tuple[str, ...] = ("TSTM", "MRGL", "SLGT", "ENH", "MDT", "HIGH")

CATEGORICAL_ORDER: dict[str, int] = {
    level: rank for rank, level in enumerate(CATEGORICAL_LEVELS)
}

# Written only by the user, never by the categorical engine
USER_DRAWN_LEVEL = "TSTM"

RISK_NAMES: dict[str, str] = {
    "TSTM": "General Thunder (0/5)",
    "MRGL": "Marginal Risk (1/5)",
    "SLGT": "Slight Risk (2/5)",
    "ENH": "Enhanced Risk (3/5)",
    "MDT": "Moderate Risk (4/5)",
    "HIGH": "High Risk (5/5)",
}

# Marker property on every engine-written GeoJSON feature
DERIVED_MARKER = "autoGenerated"

# ---------------------------------------------------------------------------
# Significant-threat hatching
# ---------------------------------------------------------------------------

HATCHING_PREFIX = "CIG"
NO_HATCHING = "CIG0"
HATCHING_LEVELS: tuple[str, ...] = ("CIG0", "CIG1", "CIG2", "CIG3")

# Hatching overlays each outlook type may carry (CIG0 is implicit everywhere)
OUTLOOK_HATCHING: dict[str, tuple[str, ...]] = {
    "tornado": ("CIG1", "CIG2", "CIG3"),
    "wind": ("CIG1", "CIG2", "CIG3"),
    "hail": ("CIG1", "CIG2"),
    "totalSevere": ("CIG1", "CIG2"),
}

# ---------------------------------------------------------------------------
# Outlook types per forecast day
# ---------------------------------------------------------------------------

CATEGORICAL_TYPE = "categorical"

# Days 4-8 have no categorical conversion and are absent here
DAY_OUTLOOK_TYPES: dict[int, tuple[str, ...]] = {
    1: ("tornado", "wind", "hail"),
    2: ("tornado", "wind", "hail"),
    3: ("totalSevere",),
}

# ---------------------------------------------------------------------------
# Geometry
# ---------------------------------------------------------------------------

# Areas below this (square degrees) are treated as empty slivers
AREA_TOLERANCE = 1e-9

# ---------------------------------------------------------------------------
# SPC URLs
# ---------------------------------------------------------------------------

SPC_BASE = os.environ.get("SPC_BASE_URL", "https://www.spc.noaa.gov/products/outlook")

# day -> [(outlook_type, url)]
SPC_PROB_URLS: dict[int, list[tuple[str, str]]] = {
    1: [
        ("tornado", f"{SPC_BASE}/day1otlk_torn.lyr.geojson"),
        ("wind",    f"{SPC_BASE}/day1otlk_wind.lyr.geojson"),
        ("hail",    f"{SPC_BASE}/day1otlk_hail.lyr.geojson"),
    ],
    2: [
        ("tornado", f"{SPC_BASE}/day2otlk_torn.lyr.geojson"),
        ("wind",    f"{SPC_BASE}/day2otlk_wind.lyr.geojson"),
        ("hail",    f"{SPC_BASE}/day2otlk_hail.lyr.geojson"),
    ],
    3: [
        ("totalSevere", f"{SPC_BASE}/day3otlk_prob.lyr.geojson"),
    ],
}

# ---------------------------------------------------------------------------
# HTTP settings
# ---------------------------------------------------------------------------

HTTP_TIMEOUT = int(os.environ.get("HTTP_TIMEOUT", "30"))  # seconds
RETRY_DELAY = 2         # seconds between retries

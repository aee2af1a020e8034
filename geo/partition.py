"""Split probability polygons into disjoint pieces by significant-threat hatching level."""

from __future__ import annotations

import sys
from dataclasses import dataclass
from typing import Iterable, Optional

from shapely.errors import GEOSException
from shapely.geometry import GeometryCollection, MultiPolygon, Polygon
from shapely.geometry.base import BaseGeometry
from shapely.ops import unary_union

from classifier import hatching_rank, is_hatching_key
from config import (
    AREA_TOLERANCE,
    NO_HATCHING,
    OUTLOOK_HATCHING,
    PartitionPiece,
    RiskFeature,
)


@dataclass
class GeometryResult:
    """Outcome of a geometry set operation that may fail on malformed input."""
    geometry: Optional[BaseGeometry] = None
    error: str = ""

    @property
    def ok(self) -> bool:
        return not self.error


# ---------------------------------------------------------------------------
# Fallible set operations
# ---------------------------------------------------------------------------

def safe_union(geometries: Iterable[BaseGeometry]) -> GeometryResult:
    geoms = [g for g in geometries if g is not None and not g.is_empty]
    if not geoms:
        return GeometryResult(geometry=Polygon())
    try:
        return GeometryResult(geometry=polygonal(unary_union(geoms)))
    except (GEOSException, ValueError, TypeError) as exc:
        return GeometryResult(error=str(exc) or type(exc).__name__)


def safe_intersection(a: BaseGeometry, b: BaseGeometry) -> GeometryResult:
    try:
        return GeometryResult(geometry=polygonal(a.intersection(b)))
    except (GEOSException, ValueError, TypeError) as exc:
        return GeometryResult(error=str(exc) or type(exc).__name__)


def safe_difference(a: BaseGeometry, b: BaseGeometry) -> GeometryResult:
    try:
        return GeometryResult(geometry=polygonal(a.difference(b)))
    except (GEOSException, ValueError, TypeError) as exc:
        return GeometryResult(error=str(exc) or type(exc).__name__)


def polygonal(geom: BaseGeometry) -> BaseGeometry:
    """Drop the line/point parts set operations leave along shared edges."""
    if isinstance(geom, (Polygon, MultiPolygon)):
        return geom
    if isinstance(geom, GeometryCollection):
        polys: list[Polygon] = []
        for part in geom.geoms:
            if isinstance(part, Polygon):
                polys.append(part)
            elif isinstance(part, MultiPolygon):
                polys.extend(part.geoms)
        if polys:
            return MultiPolygon(polys)
    return Polygon()


def is_empty(geom: Optional[BaseGeometry]) -> bool:
    return geom is None or geom.is_empty or geom.area <= AREA_TOLERANCE


def is_supported(feature: RiskFeature) -> bool:
    """Only Polygon and MultiPolygon features take part in the derivation."""
    return isinstance(feature.geometry, (Polygon, MultiPolygon)) and not feature.geometry.is_empty


# ---------------------------------------------------------------------------
# Partitioning
# ---------------------------------------------------------------------------

def split_outlook(
    outlook_type: str,
    entries: dict[str, list[RiskFeature]],
) -> tuple[dict[str, list[RiskFeature]], dict[str, list[RiskFeature]]]:
    """Separate one outlook map into (probability features, hatching features).

    Hatching keys the outlook type does not support are ignored.
    """
    allowed = OUTLOOK_HATCHING.get(outlook_type, ())
    probabilities: dict[str, list[RiskFeature]] = {}
    hatching: dict[str, list[RiskFeature]] = {}

    for key, features in entries.items():
        usable = [f for f in features if is_supported(f)]
        if not usable:
            continue
        if is_hatching_key(key):
            if key in allowed:
                hatching[key] = usable
        else:
            probabilities[key] = usable

    return probabilities, hatching


def hatching_regions(
    outlook_type: str,
    hatching: dict[str, list[RiskFeature]],
) -> list[tuple[str, BaseGeometry]]:
    """Union each hatching level into one region, highest level first."""
    regions: list[tuple[str, BaseGeometry]] = []
    levels = sorted(OUTLOOK_HATCHING.get(outlook_type, ()), key=hatching_rank, reverse=True)

    for level in levels:
        features = hatching.get(level)
        if not features:
            continue
        result = safe_union(f.geometry for f in features)
        if not result.ok:
            print(f"  Skipped {outlook_type} {level} hatching: {result.error}", file=sys.stderr)
            continue
        if not is_empty(result.geometry):
            regions.append((level, result.geometry))

    return regions


def partition_polygon(
    outlook_type: str,
    probability: str,
    geometry: BaseGeometry,
    regions: list[tuple[str, BaseGeometry]],
) -> list[PartitionPiece]:
    """Cut one probability polygon into pieces, one per hatching level it touches.

    When an intersection or difference fails the remaining polygon is kept
    as it was for that level, so malformed input can count the same area
    under two hatching levels.
    """
    pieces: list[PartitionPiece] = []
    remaining = geometry

    for level, region in regions:
        if is_empty(remaining):
            break

        cut = safe_intersection(remaining, region)
        if not cut.ok:
            print(f"  Skipped {level} intersection for {outlook_type} {probability}: "
                  f"{cut.error}", file=sys.stderr)
            continue
        if is_empty(cut.geometry):
            continue

        pieces.append(PartitionPiece(outlook_type, probability, level, cut.geometry))

        rest = safe_difference(remaining, region)
        if not rest.ok:
            print(f"  Skipped {level} subtraction for {outlook_type} {probability}: "
                  f"{rest.error}", file=sys.stderr)
            continue
        remaining = rest.geometry

    if not is_empty(remaining):
        pieces.append(PartitionPiece(outlook_type, probability, NO_HATCHING, remaining))

    return pieces


def partition_outlook(
    outlook_type: str,
    entries: dict[str, list[RiskFeature]],
) -> list[PartitionPiece]:
    """Partition every probability polygon of one outlook type by hatching level."""
    probabilities, hatching = split_outlook(outlook_type, entries)
    if not probabilities:
        return []

    regions = hatching_regions(outlook_type, hatching)
    pieces: list[PartitionPiece] = []

    for probability, features in probabilities.items():
        for feature in features:
            pieces.extend(partition_polygon(outlook_type, probability, feature.geometry, regions))

    return pieces

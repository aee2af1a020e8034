"""Derive the nested categorical outlook from classified probability pieces."""

from __future__ import annotations

import sys
import uuid
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Callable, Optional

from shapely.geometry.base import BaseGeometry

from classifier import classify, risk_rank
from config import (
    CATEGORICAL_LEVELS,
    CATEGORICAL_TYPE,
    DAY_OUTLOOK_TYPES,
    USER_DRAWN_LEVEL,
    OutlookDay,
    PartitionPiece,
    RiskFeature,
)
from geo.partition import is_empty, partition_outlook, safe_difference, safe_union

# MRGL..HIGH; TSTM is user-drawn only
DERIVED_LEVELS: tuple[str, ...] = tuple(
    lvl for lvl in CATEGORICAL_LEVELS if lvl != USER_DRAWN_LEVEL
)


@dataclass
class RiskBucket:
    """Pieces that classified to one categorical level, not yet unioned."""
    level: str
    geometries: list[BaseGeometry] = field(default_factory=list)
    sources: list[tuple[str, str]] = field(default_factory=list)  # (outlook_type, probability)


def aggregate_by_risk(pieces: list[PartitionPiece]) -> dict[str, RiskBucket]:
    """Classify each piece and bucket it by categorical level.

    Pieces from every outlook type land in the same bucket for their level.
    TSTM pieces are dropped.
    """
    buckets: dict[str, RiskBucket] = {}

    for piece in pieces:
        level = classify(piece.outlook_type, piece.probability, piece.hatching)
        if level == USER_DRAWN_LEVEL:
            continue

        bucket = buckets.setdefault(level, RiskBucket(level))
        bucket.geometries.append(piece.geometry)
        source = (piece.outlook_type, piece.probability)
        if source not in bucket.sources:
            bucket.sources.append(source)

    return buckets


def build_cumulative(buckets: dict[str, RiskBucket]) -> dict[str, BaseGeometry]:
    """Union buckets from HIGH down to MRGL so each level contains every level above it.

    Levels with no geometry of their own and nothing inherited are omitted.
    """
    cumulative: dict[str, BaseGeometry] = {}
    accumulated: Optional[BaseGeometry] = None

    for level in reversed(DERIVED_LEVELS):
        bucket = buckets.get(level)
        parts = list(bucket.geometries) if bucket else []
        if accumulated is not None:
            parts.append(accumulated)
        if not parts:
            continue

        result = safe_union(parts)
        if not result.ok:
            # Keep nesting even when the union fails: inherit the level above
            print(f"  Union failed for {level}: {result.error}", file=sys.stderr)
            if accumulated is None:
                continue
            combined = accumulated
        else:
            combined = result.geometry

        if is_empty(combined):
            continue

        cumulative[level] = combined
        accumulated = combined

    return cumulative


def categorical_features(
    cumulative: dict[str, BaseGeometry],
    buckets: Optional[dict[str, RiskBucket]] = None,
    id_factory: Callable[[], str] = lambda: str(uuid.uuid4()),
) -> list[RiskFeature]:
    """Build one auto-generated feature per level, lowest risk first for draw order."""
    features: list[RiskFeature] = []
    buckets = buckets or {}

    for level in DERIVED_LEVELS:
        geometry = cumulative.get(level)
        if geometry is None or is_empty(geometry):
            continue

        sources = buckets[level].sources if level in buckets else []
        derived_from = sorted({otype for otype, _ in sources})
        features.append(RiskFeature(
            geometry=geometry,
            id=id_factory(),
            outlook_type=CATEGORICAL_TYPE,
            label=level,
            derived_from=",".join(derived_from) or None,
            original_probability=",".join(f"{t}:{p}" for t, p in sources) or None,
            auto_generated=True,
        ))

    return features


def collect_pieces(outlook_day: OutlookDay) -> list[PartitionPiece]:
    """Partition every outlook type active on the day. Other layers are ignored."""
    pieces: list[PartitionPiece] = []
    for outlook_type in DAY_OUTLOOK_TYPES.get(outlook_day.day, ()):
        entries = outlook_day.outlooks.get(outlook_type)
        if entries:
            pieces.extend(partition_outlook(outlook_type, entries))
    return pieces


def derive_categorical(
    outlook_day: OutlookDay,
    id_factory: Callable[[], str] = lambda: str(uuid.uuid4()),
) -> list[RiskFeature]:
    """Run partition -> classify -> aggregate -> cumulative union for one day.

    Returns the replacement non-TSTM categorical features, MRGL first.
    """
    pieces = collect_pieces(outlook_day)
    if not pieces:
        return []
    buckets = aggregate_by_risk(pieces)
    cumulative = build_cumulative(buckets)
    return categorical_features(cumulative, buckets, id_factory=id_factory)


def check_nesting(features: list[RiskFeature]) -> list[tuple[str, str]]:
    """Return (higher, lower) level pairs where the higher area spills outside the lower."""
    by_level: dict[str, list[BaseGeometry]] = defaultdict(list)
    for feature in features:
        if feature.label in DERIVED_LEVELS:
            by_level[feature.label].append(feature.geometry)

    areas: dict[str, BaseGeometry] = {}
    for level, geoms in by_level.items():
        result = safe_union(geoms)
        if result.ok:
            areas[level] = result.geometry

    violations: list[tuple[str, str]] = []
    ordered = sorted(areas, key=risk_rank, reverse=True)
    for i, higher in enumerate(ordered):
        for lower in ordered[i + 1:]:
            spill = safe_difference(areas[higher], areas[lower])
            if not spill.ok or not is_empty(spill.geometry):
                violations.append((higher, lower))

    return violations

"""Shared fixtures: square polygons and outlook features on a small planar grid."""

from __future__ import annotations

import itertools

import pytest
from shapely.geometry import box

from config import CATEGORICAL_TYPE, OutlookDay, RiskFeature


@pytest.fixture
def make_feature():
    counter = itertools.count(1)

    def _make(outlook_type, label, bounds=(0, 0, 4, 4), fid=None, geometry=None):
        return RiskFeature(
            geometry=geometry if geometry is not None else box(*bounds),
            id=fid or f"{outlook_type}-{label}-{next(counter)}",
            outlook_type=outlook_type,
            label=label,
        )

    return _make


@pytest.fixture
def make_day(make_feature):
    """Build an OutlookDay from {outlook_type: {key: [bounds, ...]}}."""

    def _make(day=1, layers=None):
        outlook_day = OutlookDay(day)
        for outlook_type, entries in (layers or {}).items():
            layer = outlook_day.layer(outlook_type)
            for key, bounds_list in entries.items():
                layer[key] = [make_feature(outlook_type, key, b) for b in bounds_list]
        return outlook_day

    return _make


@pytest.fixture
def tstm_feature(make_feature):
    return make_feature(CATEGORICAL_TYPE, "TSTM", (-10, -10, 10, 10), fid="tstm-user-1")


def same_area(a, b, tol=1e-9):
    return a.symmetric_difference(b).area <= tol


@pytest.fixture
def assert_same_area():
    def _check(a, b):
        assert same_area(a, b), f"geometries differ by {a.symmetric_difference(b).area}"

    return _check

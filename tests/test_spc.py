import pytest
import requests

from sources import spc
from sources.spc import _label_to_key, fetch_spc_day

SQUARE = {"type": "Polygon", "coordinates": [[[0, 0], [4, 0], [4, 4], [0, 4], [0, 0]]]}
HALF = {"type": "Polygon", "coordinates": [[[0, 0], [2, 0], [2, 4], [0, 4], [0, 0]]]}


class FakeResponse:
    def __init__(self, status_code=200, payload=None):
        self.status_code = status_code
        self._payload = payload

    def json(self):
        return self._payload


def _layer(*features):
    return {"type": "FeatureCollection", "features": [
        {"type": "Feature", "geometry": geom, "properties": {"LABEL": label}}
        for label, geom in features
    ]}


@pytest.mark.parametrize("label,outlook_type,expected", [
    ("0.15", "tornado", "15%"),
    ("0.02", "tornado", "2%"),
    ("30", "wind", "30%"),
    ("SIGN", "hail", "CIG1"),
    ("CIG3", "tornado", "CIG3"),
    ("CIG3", "hail", None),
    ("TSTM", "categorical", "TSTM"),
    ("mdt", "categorical", "MDT"),
    ("0.15", "categorical", None),
    ("", "tornado", None),
    ("0", "wind", None),
])
def test_label_to_key(label, outlook_type, expected):
    assert _label_to_key(label, outlook_type) == expected


def test_fetch_builds_outlook_day(monkeypatch):
    payloads = {
        "torn": _layer(("0.15", SQUARE), ("SIGN", HALF)),
        "wind": _layer(("0.05", SQUARE), ("bogus", SQUARE)),
        "hail": _layer(("0.05", {"type": "Point", "coordinates": [1, 1]})),
        "cat": _layer(("TSTM", SQUARE), ("ENH", SQUARE)),
    }

    def fake_get(url, timeout):
        for key, payload in payloads.items():
            if f"otlk_{key}" in url:
                return FakeResponse(payload=payload)
        return FakeResponse(404)

    monkeypatch.setattr(spc.requests, "get", fake_get)
    outlook_day, any_data = fetch_spc_day(1)

    assert any_data
    assert list(outlook_day.outlooks["tornado"]) == ["15%", "CIG1"]
    assert list(outlook_day.outlooks["wind"]) == ["5%"]
    assert outlook_day.outlooks["hail"] == {}
    assert sorted(outlook_day.outlooks["categorical"]) == ["ENH", "TSTM"]
    ids = [f.id for feats in outlook_day.outlooks["tornado"].values() for f in feats]
    assert len(set(ids)) == 2


def test_server_errors_retry_once_then_skip(monkeypatch):
    calls = []

    def fake_get(url, timeout):
        calls.append(url)
        return FakeResponse(503)

    monkeypatch.setattr(spc.requests, "get", fake_get)
    monkeypatch.setattr(spc.time, "sleep", lambda s: None)
    outlook_day, any_data = fetch_spc_day(3, include_categorical=False)

    assert not any_data
    assert len(calls) == 2
    assert outlook_day.outlooks == {}


def test_timeouts_are_skipped(monkeypatch):
    def fake_get(url, timeout):
        raise requests.exceptions.Timeout()

    monkeypatch.setattr(spc.requests, "get", fake_get)
    monkeypatch.setattr(spc.time, "sleep", lambda s: None)

    assert fetch_spc_day(2)[1] is False


def test_days_beyond_three_rejected():
    with pytest.raises(ValueError):
        fetch_spc_day(4)

import pytest
from shapely.geometry import box

from config import RiskFeature
from store import OutlookStore
from sync import CategoricalSync, input_signature, layer_signature, stored_features


@pytest.fixture
def store(make_feature, tstm_feature):
    store = OutlookStore()
    store.add_feature(tstm_feature)
    store.add_feature(make_feature("tornado", "30%", (0, 0, 4, 4), fid="t30"))
    return store


def _derived(store, day=None):
    return {f.label: f for f in stored_features(store.read(day))}


def test_first_run_writes_nested_layer(store):
    guard = CategoricalSync(store)

    assert guard.run() is True
    assert list(_derived(store)) == ["MRGL", "SLGT", "ENH", "MDT"]
    assert all(f.auto_generated for f in _derived(store).values())


def test_unchanged_inputs_cause_no_second_write(store):
    guard = CategoricalSync(store)
    guard.run()

    writes = []
    store.subscribe(lambda: writes.append(1))

    assert guard.run() is False
    assert guard.needs_update() is False
    assert writes == []


def test_forced_rerun_gives_identical_geometry(store):
    guard = CategoricalSync(store)
    guard.run()
    first = layer_signature(stored_features(store.read()))

    assert guard.run(force=True) is True
    assert layer_signature(stored_features(store.read())) == first


def test_tstm_survives_recomputation(store, make_feature, tstm_feature):
    guard = CategoricalSync(store)
    guard.run()
    store.add_feature(make_feature("wind", "60%", (10, 10, 12, 12), fid="w60"))
    guard.run()

    tstm = store.categorical()["TSTM"]
    assert [f.id for f in tstm] == ["tstm-user-1"]
    assert tstm[0].geometry.equals(tstm_feature.geometry)
    assert tstm[0].auto_generated is False


def test_emptied_inputs_clear_derived_layer_but_keep_tstm(store):
    guard = CategoricalSync(store)
    guard.run()
    store.remove_feature("tornado", "30%", "t30")

    assert guard.run() is True
    assert list(store.categorical()) == ["TSTM"]


def test_stale_stored_layer_is_replaced_even_with_same_inputs(store):
    guard = CategoricalSync(store)
    guard.run()

    # e.g. a file import that carried an old categorical layer
    stale = RiskFeature(box(50, 50, 51, 51), "old-high", "categorical", "HIGH", auto_generated=True)
    store.replace_bucket("HIGH", [stale])
    assert input_signature(store.read()) == guard._last_signature[1]

    assert guard.run() is True
    assert "HIGH" not in _derived(store)


def test_attached_guard_ignores_its_own_writes(store, make_feature):
    guard = CategoricalSync(store)
    runs = []
    original = guard._apply

    def tracking_apply(snapshot, features):
        runs.append(snapshot.day)
        original(snapshot, features)

    guard._apply = tracking_apply
    guard.attach()

    store.add_feature(make_feature("hail", "60%", (0, 0, 1, 1), fid="h60"))

    assert runs == [1]
    assert guard.processing is False
    assert "MDT" in _derived(store)


def test_detach_stops_automatic_runs(store, make_feature):
    guard = CategoricalSync(store)
    guard.attach()
    guard.detach()

    store.add_feature(make_feature("tornado", "60%", (0, 0, 1, 1)))
    assert "HIGH" not in _derived(store)


def test_reentrant_trigger_is_ignored(store):
    guard = CategoricalSync(store)
    nested = []
    store.subscribe(lambda: nested.append(guard.run()))

    guard.run()

    assert nested and not any(nested)


def test_no_update_while_drawing_categorical(store):
    guard = CategoricalSync(store)
    store.set_active_outlook_type("categorical")

    assert guard.run() is False
    assert _derived(store) == {}

    store.set_active_outlook_type("tornado")
    assert guard.run() is True


def test_day_without_categorical_conversion_is_skipped(make_feature):
    store = OutlookStore(current_day=5)
    store.add_feature(make_feature("tornado", "60%"))

    assert CategoricalSync(store).run() is False


def test_days_tracked_independently(store, make_feature):
    guard = CategoricalSync(store)
    guard.run()
    store.add_feature(make_feature("totalSevere", "45%", fid="ts45"), day=3)

    assert guard.run(day=3) is True
    assert list(_derived(store, 3)) == ["MRGL", "SLGT", "ENH"]
    assert guard.run(day=1) is False


def test_layer_signature_ignores_ids_and_tstm():
    a = [RiskFeature(box(0, 0, 1, 1), "x", "categorical", "MDT"),
         RiskFeature(box(5, 5, 6, 6), "t", "categorical", "TSTM")]
    b = [RiskFeature(box(0, 0, 1, 1), "y", "categorical", "MDT")]

    assert layer_signature(a) == layer_signature(b)
    assert layer_signature(b) != layer_signature(
        [RiskFeature(box(0, 0, 1, 1), "y", "categorical", "ENH")]
    )

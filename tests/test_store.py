from config import OutlookDay
from store import OutlookStore


def test_add_and_read_returns_independent_snapshot(make_feature):
    store = OutlookStore()
    store.add_feature(make_feature("tornado", "15%"))

    snapshot = store.read()
    snapshot.outlooks["tornado"]["15%"].clear()

    assert len(store.read().outlooks["tornado"]["15%"]) == 1
    assert store.is_saved is False


def test_every_mutation_notifies(make_feature):
    store = OutlookStore()
    calls = []
    unsubscribe = store.subscribe(lambda: calls.append(1))

    feature = make_feature("wind", "30%", fid="w1")
    store.add_feature(feature)
    store.remove_feature("wind", "30%", "w1")
    store.reset_categorical()
    assert len(calls) == 3

    unsubscribe()
    store.add_feature(feature)
    assert len(calls) == 3


def test_remove_last_feature_drops_key(make_feature):
    store = OutlookStore()
    store.add_feature(make_feature("hail", "5%", fid="h1"))
    store.remove_feature("hail", "5%", "h1")

    assert "5%" not in store.read().outlooks["hail"]


def test_update_feature_replaces_by_id(make_feature):
    store = OutlookStore()
    store.add_feature(make_feature("tornado", "5%", (0, 0, 1, 1), fid="t1"))

    assert store.update_feature(make_feature("tornado", "5%", (0, 0, 3, 3), fid="t1"))
    assert store.read().outlooks["tornado"]["5%"][0].geometry.area == 9
    assert not store.update_feature(make_feature("tornado", "5%", fid="missing"))


def test_reset_categorical_keeps_tstm(make_feature, tstm_feature):
    store = OutlookStore()
    store.add_feature(tstm_feature)
    store.add_feature(make_feature("categorical", "MDT"))

    store.reset_categorical()

    assert store.categorical() == {"TSTM": [tstm_feature]}


def test_replace_bucket(make_feature):
    store = OutlookStore()
    mdt = make_feature("categorical", "MDT")
    store.replace_bucket("MDT", [mdt])
    assert store.categorical() == {"MDT": [mdt]}

    store.replace_bucket("MDT", [])
    assert store.categorical() == {}


def test_import_day_merges_existing_tstm(make_feature, tstm_feature):
    store = OutlookStore()
    store.add_feature(tstm_feature)

    imported_tstm = make_feature("categorical", "TSTM", fid="tstm-file")
    incoming = OutlookDay(1, {
        "categorical": {"TSTM": [imported_tstm]},
        "tornado": {"30%": [make_feature("tornado", "30%")]},
    })
    store.import_day(incoming)

    assert [f.id for f in store.categorical()["TSTM"]] == ["tstm-user-1", "tstm-file"]
    assert store.is_saved is True
    # the caller's object is not adopted by the store
    assert incoming.outlooks["categorical"]["TSTM"] == [imported_tstm]


def test_days_are_kept_apart(make_feature):
    store = OutlookStore()
    store.add_feature(make_feature("totalSevere", "15%"), day=3)

    assert store.read(1).outlooks == {}
    assert "totalSevere" in store.read(3).outlooks
    assert store.days() == [3]

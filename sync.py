"""Keep a day's categorical layer in step with its probabilistic layers."""

from __future__ import annotations

import sys
import uuid
from typing import Callable, Optional

from categorical import derive_categorical
from config import (
    CATEGORICAL_TYPE,
    DAY_OUTLOOK_TYPES,
    USER_DRAWN_LEVEL,
    OutlookDay,
    RiskFeature,
)
from store import OutlookStore


def input_signature(outlook_day: OutlookDay) -> str:
    """Cheap fingerprint of the probabilistic inputs: sorted feature ids per outlook type."""
    parts = []
    for outlook_type in DAY_OUTLOOK_TYPES.get(outlook_day.day, ()):
        layer = outlook_day.outlooks.get(outlook_type, {})
        ids = sorted(f.id for features in layer.values() for f in features)
        parts.append(",".join(ids))
    return "|".join(parts)


def layer_signature(features: list[RiskFeature]) -> str:
    """Geometry fingerprint of a categorical layer, ignoring TSTM and feature ids."""
    entries = sorted(
        f.label + f.geometry.normalize().wkb_hex
        for f in features
        if f.label != USER_DRAWN_LEVEL
    )
    return ";".join(entries)


def stored_features(outlook_day: OutlookDay) -> list[RiskFeature]:
    layer = outlook_day.outlooks.get(CATEGORICAL_TYPE, {})
    return [f for level, features in layer.items() if level != USER_DRAWN_LEVEL for f in features]


class CategoricalSync:
    """Recompute the derived categorical layer when its inputs or stored output drift.

    A recomputation is applied when the probabilistic inputs changed since the
    last pass, or when the stored categorical layer no longer matches what the
    inputs would produce (for example after importing a stale file). Writes
    made while applying a pass notify the store's listeners again; those
    nested triggers are ignored.
    """

    def __init__(
        self,
        store: OutlookStore,
        id_factory: Callable[[], str] = lambda: str(uuid.uuid4()),
    ) -> None:
        self.store = store
        self.id_factory = id_factory
        self._last_signature: dict[int, str] = {}
        self._processing = False
        self._unsubscribe: Optional[Callable[[], None]] = None

    @property
    def processing(self) -> bool:
        return self._processing

    def attach(self) -> None:
        """Run on every store change."""
        if self._unsubscribe is None:
            self._unsubscribe = self.store.subscribe(self.run)

    def detach(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def needs_update(self, day: Optional[int] = None) -> bool:
        snapshot = self.store.read(day)
        if snapshot.day not in DAY_OUTLOOK_TYPES:
            return False
        expected = derive_categorical(snapshot, id_factory=self.id_factory)
        return self._out_of_sync(snapshot, expected)

    def _out_of_sync(self, snapshot: OutlookDay, expected: list[RiskFeature]) -> bool:
        if input_signature(snapshot) != self._last_signature.get(snapshot.day):
            return True
        return layer_signature(expected) != layer_signature(stored_features(snapshot))

    def run(self, day: Optional[int] = None, force: bool = False) -> bool:
        """Recompute and apply if needed. Returns True when the store was written."""
        if self._processing:
            return False
        # The user is drawing TSTM areas; leave the layer alone until they finish
        if self.store.active_outlook_type == CATEGORICAL_TYPE and not force:
            return False

        snapshot = self.store.read(day)
        if snapshot.day not in DAY_OUTLOOK_TYPES:
            return False

        expected = derive_categorical(snapshot, id_factory=self.id_factory)
        if not force and not self._out_of_sync(snapshot, expected):
            return False

        self._processing = True
        self._last_signature[snapshot.day] = input_signature(snapshot)
        try:
            self._apply(snapshot, expected)
        finally:
            self._processing = False

        print(f"  Day {snapshot.day} categorical: {len(expected)} feature(s) regenerated",
              file=sys.stderr)
        return True

    def _apply(self, snapshot: OutlookDay, features: list[RiskFeature]) -> None:
        day = snapshot.day
        tstm = snapshot.outlooks.get(CATEGORICAL_TYPE, {}).get(USER_DRAWN_LEVEL, [])

        self.store.reset_categorical(day)
        if tstm:
            self.store.set_outlook_map(CATEGORICAL_TYPE, {USER_DRAWN_LEVEL: tstm}, day)
        for feature in features:
            self.store.add_feature(feature, day)

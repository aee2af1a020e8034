"""In-memory forecast store holding every outlook layer for each forecast day.

Mutations replace lists and maps rather than editing them, so a snapshot
returned by read() is never changed underneath its reader. Every mutation
notifies subscribers synchronously, in subscription order.
"""

from __future__ import annotations

from typing import Callable, Optional

from config import CATEGORICAL_TYPE, USER_DRAWN_LEVEL, OutlookDay, RiskFeature

Listener = Callable[[], None]


class OutlookStore:
    def __init__(self, current_day: int = 1) -> None:
        self._days: dict[int, OutlookDay] = {}
        self._listeners: list[Listener] = []
        self.current_day = current_day
        self.active_outlook_type = "tornado"
        self.is_saved = True

    # -- reading -----------------------------------------------------------

    def read(self, day: Optional[int] = None) -> OutlookDay:
        """Shallow snapshot of one day's layers (current day by default)."""
        day = self.current_day if day is None else day
        stored = self._days.get(day) or OutlookDay(day)
        return OutlookDay(day, {
            otype: {key: list(features) for key, features in layer.items()}
            for otype, layer in stored.outlooks.items()
        })

    def days(self) -> list[int]:
        return sorted(self._days)

    def categorical(self, day: Optional[int] = None) -> dict[str, list[RiskFeature]]:
        return self.read(day).outlooks.get(CATEGORICAL_TYPE, {})

    # -- subscriptions -----------------------------------------------------

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a change listener. Returns a function that removes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _changed(self, saved: bool = False) -> None:
        self.is_saved = saved
        for listener in list(self._listeners):
            listener()

    def _day(self, day: Optional[int]) -> OutlookDay:
        day = self.current_day if day is None else day
        return self._days.setdefault(day, OutlookDay(day))

    # -- drawing state -----------------------------------------------------

    def set_current_day(self, day: int) -> None:
        self.current_day = day
        self._changed(self.is_saved)

    def set_active_outlook_type(self, outlook_type: str) -> None:
        self.active_outlook_type = outlook_type
        self._changed(self.is_saved)

    # -- feature edits -----------------------------------------------------

    def add_feature(self, feature: RiskFeature, day: Optional[int] = None) -> None:
        """Append a feature under its own outlook type and label."""
        layer = self._day(day).layer(feature.outlook_type)
        layer[feature.label] = layer.get(feature.label, []) + [feature]
        self._changed()

    def update_feature(self, feature: RiskFeature, day: Optional[int] = None) -> bool:
        """Swap in a new version of a feature with the same id. Returns False if absent."""
        layer = self._day(day).layer(feature.outlook_type)
        features = layer.get(feature.label, [])
        for i, existing in enumerate(features):
            if existing.id == feature.id:
                layer[feature.label] = features[:i] + [feature] + features[i + 1:]
                self._changed()
                return True
        return False

    def remove_feature(
        self,
        outlook_type: str,
        key: str,
        feature_id: str,
        day: Optional[int] = None,
    ) -> None:
        layer = self._day(day).layer(outlook_type)
        if key not in layer:
            return
        remaining = [f for f in layer[key] if f.id != feature_id]
        if remaining:
            layer[key] = remaining
        else:
            del layer[key]
        self._changed()

    # -- bulk replacement --------------------------------------------------

    def reset_categorical(self, day: Optional[int] = None) -> None:
        """Clear every categorical bucket except the user-drawn TSTM one."""
        outlook_day = self._day(day)
        tstm = outlook_day.layer(CATEGORICAL_TYPE).get(USER_DRAWN_LEVEL, [])
        outlook_day.outlooks[CATEGORICAL_TYPE] = {USER_DRAWN_LEVEL: tstm} if tstm else {}
        self._changed()

    def set_outlook_map(
        self,
        outlook_type: str,
        mapping: dict[str, list[RiskFeature]],
        day: Optional[int] = None,
    ) -> None:
        self._day(day).outlooks[outlook_type] = {k: list(v) for k, v in mapping.items()}
        self._changed()

    def replace_bucket(
        self,
        level: str,
        features: list[RiskFeature],
        day: Optional[int] = None,
    ) -> None:
        """Replace one categorical bucket wholesale; an empty list removes it."""
        layer = self._day(day).layer(CATEGORICAL_TYPE)
        if features:
            layer[level] = list(features)
        else:
            layer.pop(level, None)
        self._changed()

    def import_day(self, outlook_day: OutlookDay) -> None:
        """Load a day's layers, keeping TSTM areas already drawn ahead of imported ones."""
        existing = self._day(outlook_day.day).layer(CATEGORICAL_TYPE).get(USER_DRAWN_LEVEL, [])
        imported = OutlookDay(outlook_day.day, {
            otype: {key: list(features) for key, features in layer.items()}
            for otype, layer in outlook_day.outlooks.items()
        })
        categorical = imported.layer(CATEGORICAL_TYPE)
        merged = existing + categorical.get(USER_DRAWN_LEVEL, [])
        if merged:
            categorical[USER_DRAWN_LEVEL] = merged
        self._days[outlook_day.day] = imported
        self._changed(saved=True)

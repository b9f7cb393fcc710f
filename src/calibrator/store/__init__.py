"""Calibrator store composed from mixins.

- ObservationMixin: Append-only failure sightings and frequency queries
- PatternMixin: Content-keyed pattern aggregation and review state

The base class (CalibratorStoreBase) provides:
- SQLite connection management with WAL mode
- Schema creation, migration and reset

Usage:
    from calibrator.store import CalibratorStore

    store = CalibratorStore.initialize(Path(".claude/calibrator/patterns.db"))
    store = CalibratorStore(db_path)  # existing store only

The store is an explicit handle: components receive it as an argument
rather than reaching for a global.
"""

from calibrator.store.base import CalibratorStoreBase, WhereBuilder
from calibrator.store.models import (
    ObservationCategory,
    ObservationFrequency,
    ObservationRecord,
    PatternRecord,
    StoreStats,
)
from calibrator.store.observations import ObservationMixin
from calibrator.store.patterns import PatternMixin


class CalibratorStore(
    ObservationMixin,
    PatternMixin,
    CalibratorStoreBase,
):
    """Persistent store of observations and patterns for one project.

    CalibratorStoreBase is listed last in the MRO so the mixins can rely on
    ``_get_connection()`` and ``_logger`` from the base class.
    """


__all__ = [
    "CalibratorStore",
    "CalibratorStoreBase",
    "ObservationCategory",
    "ObservationFrequency",
    "ObservationRecord",
    "PatternRecord",
    "StoreStats",
    "WhereBuilder",
]

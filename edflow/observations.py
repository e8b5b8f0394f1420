"""Per-patient vital-sign history with scores attached at insert time."""

import bisect
import logging
import threading
from dataclasses import replace
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple

from .config import config
from .models import VitalReading, parse_ts
from .monitoring import Cadence, DEFAULT_CADENCE, next_due
from .observers import Listeners
from .risk_engine import DEFAULT_POLICY, ScoringPolicy, merge_latest, score_vitals
from .storage import (
    CacheAdapter,
    DebouncedWriter,
    VITALS_CACHE_KEY,
    decode_readings,
    encode_readings,
)

logger = logging.getLogger(__name__)

_COMPUTED = ("score", "band", "escalate", "next_due")


def _as_reading(patient_id: str, reading: VitalReading | Mapping[str, Any]) -> VitalReading:
    if isinstance(reading, VitalReading):
        return replace(reading.unscored(), patient_id=str(patient_id))
    fields = {k: v for k, v in reading.items() if k not in _COMPUTED and k != "patient_id"}
    return VitalReading(patient_id=str(patient_id), **fields)


class ObservationStore:
    """
    Time-ordered readings per patient.

    Every append is scored against the forward-filled latest known vitals and
    stamped with its next observation due time. Lists are immutable tuples
    replaced on write, so a reader never sees a half-applied append.
    """

    def __init__(
        self,
        cache: Optional[CacheAdapter] = None,
        *,
        policy: ScoringPolicy = DEFAULT_POLICY,
        cadence: Cadence = DEFAULT_CADENCE,
        debounce_seconds: Optional[float] = None,
        cache_key: str = VITALS_CACHE_KEY,
    ):
        self.policy = policy
        self.cadence = cadence
        self.cache = cache
        self.cache_key = cache_key
        self._data: Dict[str, Tuple[VitalReading, ...]] = {}
        self._lock = threading.RLock()
        self._listeners = Listeners()
        self._writer: Optional[DebouncedWriter] = None
        if cache is not None:
            delay = config.debounce_seconds() if debounce_seconds is None else debounce_seconds
            self._writer = DebouncedWriter(cache, cache_key, self._render, delay)

    # ---- reads ----

    def list(self, patient_id: str) -> Tuple[VitalReading, ...]:
        return self._data.get(str(patient_id), ())

    def last(self, patient_id: str) -> Optional[VitalReading]:
        readings = self.list(patient_id)
        return readings[-1] if readings else None

    def latest_at(self, patient_id: str, at: datetime | str) -> Optional[VitalReading]:
        """Newest reading taken at or before ``at``."""
        at = parse_ts(at)
        readings = self.list(patient_id)
        i = bisect.bisect_right([r.taken_at for r in readings], at)
        return readings[i - 1] if i else None

    def patients(self) -> List[str]:
        return sorted(self._data)

    def snapshot(self) -> Dict[str, Tuple[VitalReading, ...]]:
        with self._lock:
            return dict(self._data)

    def subscribe(self, fn: Callable[[], None]) -> Callable[[], None]:
        return self._listeners.subscribe(fn)

    # ---- writes ----

    def score(self, patient_id: str, reading: VitalReading) -> VitalReading:
        """Attach score, band, escalation and next due to ``reading``.

        Vitals missing from ``reading`` are carried forward from earlier
        readings of the same patient.
        """
        prior = [r for r in self.list(patient_id) if r.taken_at <= reading.taken_at]
        result = score_vitals(merge_latest(prior + [reading]), self.policy)
        return replace(
            reading,
            score=result.total,
            band=result.band,
            escalate=result.escalate,
            next_due=next_due(result.band, reading.taken_at, self.cadence),
        )

    def append(self, patient_id: str, reading: VitalReading | Mapping[str, Any]) -> VitalReading:
        pid = str(patient_id)
        with self._lock:
            stored = self.score(pid, _as_reading(pid, reading))
            current = self._data.get(pid, ())
            keys = [r.taken_at for r in current]
            at = bisect.bisect_right(keys, stored.taken_at)
            self._data[pid] = current[:at] + (stored,) + current[at:]
            logger.debug(f"Reading for {pid} at {stored.taken_at.isoformat()}: EWS {stored.score} ({stored.band.value})")
            self._changed()
        return stored

    def bulk_upsert(self, patient_id: str, readings: Iterable[VitalReading | Mapping[str, Any]]) -> int:
        """Merge many readings at once; one reading per timestamp, first wins.

        Returns the number of readings actually added.
        """
        pid = str(patient_id)
        added = 0
        with self._lock:
            incoming = sorted((_as_reading(pid, r) for r in readings), key=lambda r: r.taken_at)
            for reading in incoming:
                current = self._data.get(pid, ())
                if any(r.taken_at == reading.taken_at for r in current):
                    continue
                stored = self.score(pid, reading)
                keys = [r.taken_at for r in current]
                at = bisect.bisect_right(keys, stored.taken_at)
                self._data[pid] = current[:at] + (stored,) + current[at:]
                added += 1
            if added:
                self._changed()
        return added

    def hydrate(self) -> int:
        """Load history from the cache. Returns the number of patients loaded."""
        if self.cache is None:
            return 0
        try:
            blob = self.cache.read(self.cache_key)
            loaded = decode_readings(blob) if blob else {}
        except Exception as e:
            logger.warning(f"Ignoring unreadable vitals cache: {e}")
            return 0
        with self._lock:
            for pid, readings in loaded.items():
                existing = self._data.get(pid, ())
                seen = {r.taken_at for r in existing}
                merged = existing + tuple(r for r in readings if r.taken_at not in seen)
                self._data[pid] = tuple(sorted(merged, key=lambda r: r.taken_at))
            if loaded:
                logger.info(f"Rehydrated vitals for {len(loaded)} patients")
                self._listeners.emit()
        return len(loaded)

    def flush(self) -> None:
        if self._writer is not None:
            self._writer.flush()

    def close(self) -> None:
        if self._writer is not None:
            self._writer.close()

    def _render(self) -> str:
        return encode_readings(self.snapshot())

    def _changed(self) -> None:
        if self._writer is not None:
            self._writer.schedule()
        self._listeners.emit()

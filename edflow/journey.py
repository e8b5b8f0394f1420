"""Append-only clinical journey log and the phase/room projection over it.

The projection is always a replay of the patient's full event list in
timestamp order, never an incremental patch, so late events that carry an
earlier timestamp land where they belong.
"""

import logging
import threading
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from .config import config
from .models import Actor, ClinicalEvent, EventKind, Phase, Projection, utcnow
from .observers import Listeners
from .storage import (
    CacheAdapter,
    DebouncedWriter,
    JOURNEY_CACHE_KEY,
    decode_events,
    encode_events,
)

logger = logging.getLogger(__name__)

# Tie-break for equal timestamps: workflow order first.
_KIND_RANK = {
    EventKind.ARRIVAL: 0,
    EventKind.TRIAGE: 1,
    EventKind.ROOM_CHANGE: 2,
    EventKind.ORDER_PLACED: 3,
    EventKind.RESULT_RECEIVED: 4,
}


def fold_key(event: ClinicalEvent):
    return (event.t, _KIND_RANK.get(event.kind, len(_KIND_RANK)), event.label)


def apply_event(state: Projection, event: ClinicalEvent) -> Projection:
    """One transition of the phase/room state machine."""
    if event.kind is EventKind.TRIAGE:
        # triage never pulls a roomed patient back
        if state.phase is Phase.WAITING:
            return Projection(Phase.IN_TRIAGE, state.current_room)
        return state
    if event.kind is EventKind.ROOM_CHANGE:
        return Projection(Phase.ROOMED, event.label or state.current_room)
    if event.kind is EventKind.ORDER_PLACED:
        if state.phase is Phase.ROOMED:
            return Projection(Phase.DIAGNOSTICS, state.current_room)
        return state
    if event.kind is EventKind.RESULT_RECEIVED:
        if state.phase is Phase.DIAGNOSTICS:
            return Projection(Phase.REVIEW, state.current_room)
        return state
    return state


def project(events: Iterable[ClinicalEvent]) -> Projection:
    state = Projection()
    for event in sorted(events, key=fold_key):
        state = apply_event(state, event)
    return state


def _as_actor(actor: Any) -> Optional[Actor]:
    if actor is None or isinstance(actor, Actor):
        return actor
    if isinstance(actor, dict):
        return Actor.from_dict(actor)
    return Actor(name=str(actor))


def _as_kind(kind: EventKind | str) -> EventKind:
    if isinstance(kind, EventKind):
        return kind
    try:
        return EventKind(kind)
    except ValueError:
        raise ValueError(f"Unknown event kind: {kind!r}") from None


class EventLog:
    """Per-patient journey events with a cached, replayed projection."""

    def __init__(
        self,
        cache: Optional[CacheAdapter] = None,
        *,
        duplicate_window: Optional[float] = None,
        debounce_seconds: Optional[float] = None,
        cache_key: str = JOURNEY_CACHE_KEY,
    ):
        self.duplicate_window = (
            config.duplicate_window_seconds() if duplicate_window is None else duplicate_window
        )
        self.cache = cache
        self.cache_key = cache_key
        self._events: Dict[str, Tuple[ClinicalEvent, ...]] = {}
        self._projections: Dict[str, Projection] = {}
        self._lock = threading.RLock()
        self._listeners = Listeners()
        self._writer: Optional[DebouncedWriter] = None
        if cache is not None:
            delay = config.debounce_seconds() if debounce_seconds is None else debounce_seconds
            self._writer = DebouncedWriter(cache, cache_key, self._render, delay)

    def subscribe(self, fn: Callable[[], None]) -> Callable[[], None]:
        return self._listeners.subscribe(fn)

    def append(
        self,
        patient_id: str,
        kind: EventKind | str,
        label: str = "",
        *,
        t: datetime | str | None = None,
        detail: Any = None,
        actor: Any = None,
    ) -> ClinicalEvent:
        event = ClinicalEvent(
            patient_id=patient_id,
            t=t if t is not None else utcnow(),
            kind=_as_kind(kind),
            label=label,
            detail=detail,
            actor=_as_actor(actor),
        )
        return self.append_event(event)

    def append_event(self, event: ClinicalEvent) -> ClinicalEvent:
        """Store ``event``, or return the earlier copy if it is a double submit."""
        pid = event.patient_id
        with self._lock:
            current = self._events.get(pid, ())
            if current and self._is_duplicate(current[-1], event):
                logger.debug(f"Dropping duplicate {event.kind.value} '{event.label}' for {pid}")
                return current[-1]
            self._events[pid] = current + (event,)
            self._projections.pop(pid, None)
            if self._writer is not None:
                self._writer.schedule()
            self._listeners.emit()
        return event

    def _is_duplicate(self, previous: ClinicalEvent, event: ClinicalEvent) -> bool:
        return (
            previous.kind is event.kind
            and previous.label == event.label
            and abs((event.t - previous.t).total_seconds()) <= self.duplicate_window
        )

    def events(self, patient_id: str) -> Tuple[ClinicalEvent, ...]:
        """Events in insertion order."""
        return self._events.get(str(patient_id), ())

    def list(self, patient_id: str) -> List[ClinicalEvent]:
        """Events in timestamp order."""
        return sorted(self.events(patient_id), key=fold_key)

    def patients(self) -> List[str]:
        return sorted(self._events)

    def projection_for(self, patient_id: str) -> Projection:
        pid = str(patient_id)
        with self._lock:
            cached = self._projections.get(pid)
            if cached is None:
                events = self._events.get(pid, ())
                cached = project(events)
                # unknown ids are read speculatively; only cache real patients
                if events:
                    self._projections[pid] = cached
            return cached

    def phase_map(self, patient_ids: Iterable[str]) -> Dict[str, Phase]:
        return {str(pid): self.projection_for(pid).phase for pid in patient_ids}

    def room_map(self, patient_ids: Iterable[str]) -> Dict[str, Optional[str]]:
        """Current room per patient (None while unroomed)."""
        return {str(pid): self.projection_for(pid).current_room for pid in patient_ids}

    def hydrate(self) -> int:
        if self.cache is None:
            return 0
        try:
            blob = self.cache.read(self.cache_key)
            loaded = decode_events(blob) if blob else {}
        except Exception as e:
            logger.warning(f"Ignoring unreadable journey cache: {e}")
            return 0
        with self._lock:
            for pid, events in loaded.items():
                existing = self._events.get(pid, ())
                known = {e.id for e in existing}
                self._events[pid] = tuple(e for e in events if e.id not in known) + existing
                self._projections.pop(pid, None)
            if loaded:
                logger.info(f"Rehydrated journey for {len(loaded)} patients")
                self._listeners.emit()
        return len(loaded)

    def flush(self) -> None:
        if self._writer is not None:
            self._writer.flush()

    def close(self) -> None:
        if self._writer is not None:
            self._writer.close()

    def _render(self) -> str:
        with self._lock:
            data = dict(self._events)
        return encode_events(data)

import json
import logging
import threading
from datetime import date, datetime
from enum import Enum
from typing import Any, Callable, Dict, Iterable, Optional, Protocol, Tuple

from sqlalchemy import create_engine, Column, String, DateTime, Text
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.sql import func

from .config import config
from .models import ClinicalEvent, VitalReading

logger = logging.getLogger(__name__)

Base = declarative_base()

VITALS_CACHE_KEY = "edflow.vitals"
JOURNEY_CACHE_KEY = "edflow.journey"


class CacheRow(Base):
    __tablename__ = "cache_blobs"
    key = Column(String, primary_key=True)
    blob = Column(Text, nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())


def init_db(db_url: str = "sqlite:///edflow_cache.db"):
    connect_args = {"check_same_thread": False} if db_url.startswith("sqlite") else {}
    engine = create_engine(db_url, connect_args=connect_args)
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine, autoflush=False, autocommit=False)


class CacheAdapter(Protocol):
    def read(self, key: str) -> Optional[str]: ...

    def write(self, key: str, blob: str) -> None: ...


class SqlCache:
    """Local durable cache: one serialized blob per key in a SQL table."""

    def __init__(self, db_url: Optional[str] = None, Session=None):
        if Session is None:
            Session = init_db(db_url or config.CACHE_URL)
        self.Session = Session

    def read(self, key: str) -> Optional[str]:
        with self.Session() as s:
            row = s.get(CacheRow, key)
            return row.blob if row else None

    def write(self, key: str, blob: str) -> None:
        with self.Session() as s:
            s.merge(CacheRow(key=key, blob=blob))
            s.commit()


class MemoryCache:
    """In-process stand-in for the durable cache."""

    def __init__(self):
        self.blobs: Dict[str, str] = {}
        self.writes = 0

    def read(self, key: str) -> Optional[str]:
        return self.blobs.get(key)

    def write(self, key: str, blob: str) -> None:
        self.blobs[key] = blob
        self.writes += 1


def encode_readings(data: Dict[str, Tuple[VitalReading, ...]]) -> str:
    return json.dumps(
        {pid: [r.to_dict() for r in readings] for pid, readings in data.items()},
        ensure_ascii=False,
    )


def decode_readings(blob: str) -> Dict[str, Tuple[VitalReading, ...]]:
    raw = json.loads(blob)
    return {
        pid: tuple(sorted((VitalReading.from_dict(r) for r in rows), key=lambda r: r.taken_at))
        for pid, rows in raw.items()
    }


def _detail_default(value: Any):
    """JSON fallback for event detail payloads.

    Datetimes become ISO strings and enums their values; anything else is
    stored as ``str(value)``. The conversion is one-way: decoded events
    carry the plain JSON form.
    """
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (set, frozenset)):
        return list(value)
    return str(value)


def encode_events(data: Dict[str, Iterable[ClinicalEvent]]) -> str:
    return json.dumps(
        {pid: [e.to_dict() for e in events] for pid, events in data.items()},
        ensure_ascii=False,
        default=_detail_default,
    )


def decode_events(blob: str) -> Dict[str, Tuple[ClinicalEvent, ...]]:
    raw = json.loads(blob)
    return {pid: tuple(ClinicalEvent.from_dict(e) for e in rows) for pid, rows in raw.items()}


class DebouncedWriter:
    """
    Coalesces bursts of cache writes into one.

    ``schedule()`` (re)arms a timer; when it fires the current snapshot is
    serialized and written. Failures are logged and dropped: the next
    mutation schedules another attempt.
    """

    def __init__(self, cache: CacheAdapter, key: str, render: Callable[[], str], delay: float):
        self.cache = cache
        self.key = key
        self.render = render
        self.delay = delay
        self._timer: Optional[threading.Timer] = None
        self._generation = 0
        self._lock = threading.Lock()
        self._closed = False

    @property
    def pending(self) -> bool:
        return self._timer is not None

    def schedule(self) -> None:
        with self._lock:
            if self._closed:
                return
            if self._timer is not None:
                self._timer.cancel()
            self._generation += 1
            self._timer = threading.Timer(self.delay, self._fire, args=(self._generation,))
            self._timer.daemon = True
            self._timer.start()

    def _fire(self, generation: int) -> None:
        with self._lock:
            # a later schedule() or flush() owns the pending write now
            if generation != self._generation or self._timer is None:
                return
            self._timer = None
        self._write()

    def _write(self) -> None:
        try:
            blob = self.render()
            self.cache.write(self.key, blob)
        except Exception as e:
            logger.warning(f"Cache write for {self.key} failed: {e}")
        else:
            logger.debug(f"Cache write for {self.key}: {len(blob)} bytes")

    def flush(self) -> None:
        """Write now if a write is pending."""
        with self._lock:
            timer, self._timer = self._timer, None
        if timer is None:
            return
        timer.cancel()
        self._write()

    def close(self) -> None:
        self.flush()
        with self._lock:
            self._closed = True

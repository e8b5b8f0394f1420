"""Observation cadence: when the next set of vitals is due.

Everything here is a pure function of its inputs. There is no background
clock; callers poll ``is_overdue`` or re-read on store notifications.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Optional
import math

from .config import config
from .models import Band, VitalReading, parse_ts, utcnow


@dataclass(frozen=True)
class Cadence:
    high: timedelta = timedelta(minutes=config.CADENCE_HIGH_MIN)
    medium: timedelta = timedelta(minutes=config.CADENCE_MEDIUM_MIN)
    low: timedelta = timedelta(minutes=config.CADENCE_LOW_MIN)

    def interval(self, band: Band) -> timedelta:
        if band is Band.HIGH:
            return self.high
        if band is Band.MEDIUM:
            return self.medium
        if band is Band.LOW:
            return self.low
        raise ValueError(f"Unknown band: {band!r}")


DEFAULT_CADENCE = Cadence()


class ObsStatus(Enum):
    NO_READINGS = "NoReadings"
    DUE = "Due"
    OVERDUE = "Overdue"


def next_due(band: Band | str, last_observed_at: datetime | str, cadence: Cadence = DEFAULT_CADENCE) -> datetime:
    if not isinstance(band, Band):
        band = Band(band)
    return parse_ts(last_observed_at) + cadence.interval(band)


def is_overdue(due_at: datetime | str, now: Optional[datetime] = None) -> bool:
    now = parse_ts(now) if now is not None else utcnow()
    return now > parse_ts(due_at)


def observation_status(last_reading: Optional[VitalReading], now: Optional[datetime] = None) -> ObsStatus:
    """Keep "never observed" apart from "overdue"."""
    if last_reading is None or last_reading.next_due is None:
        return ObsStatus.NO_READINGS
    if is_overdue(last_reading.next_due, now):
        return ObsStatus.OVERDUE
    return ObsStatus.DUE


def minutes_until_due(due_at: datetime | str, now: Optional[datetime] = None) -> int:
    """Whole minutes until due; negative once overdue."""
    now = parse_ts(now) if now is not None else utcnow()
    seconds = (parse_ts(due_at) - now).total_seconds()
    return math.floor(seconds / 60) if seconds < 0 else math.ceil(seconds / 60)

"""Entry points used by the triage/observation forms and room actions."""

import logging
from datetime import datetime
from typing import Any, Dict, Mapping, Optional

from .journey import EventLog
from .models import ClinicalEvent, EventKind, ReadingSource, VitalReading, parse_ts, utcnow
from .observations import ObservationStore
from .risk_engine import coerce_number, on_supplemental_oxygen

logger = logging.getLogger(__name__)

# plausible device ranges; outside values are sensor spikes or slider jitter
CLAMPS = {
    "respiratory_rate": (4, 60),
    "heart_rate": (20, 220),
    "systolic_bp": (50, 250),
    "oxygen_saturation": (50, 100),
    "temperature": (30, 43),
}

# short form keys used by the entry forms
_ALIASES = {
    "rr": "respiratory_rate",
    "hr": "heart_rate",
    "sbp": "systolic_bp",
    "spo2": "oxygen_saturation",
    "temp": "temperature",
}


def _clamp(x, lo, hi):
    return max(lo, min(hi, x))


def normalize_raw(raw: Mapping[str, Any]) -> Dict[str, Any]:
    """Turn a raw form payload into VitalReading keyword arguments."""
    values = {_ALIASES.get(k, k): v for k, v in raw.items()}
    out: Dict[str, Any] = {}

    for name, (lo, hi) in CLAMPS.items():
        number = coerce_number(values.get(name))
        if number is not None and name == "temperature" and str(values.get("temp_unit", "C")).upper() == "F":
            number = round((number - 32) * 5 / 9, 1)
        out[name] = _clamp(number, lo, hi) if number is not None else None

    out["consciousness"] = values.get("consciousness") or values.get("loc")
    oxygen = values.get("supplemental_oxygen", values.get("o2_device"))
    out["supplemental_oxygen"] = None if oxygen is None else on_supplemental_oxygen(oxygen)
    out["source"] = values.get("source") or ReadingSource.ROUTINE_OBS
    return out


def _has_core(reading: VitalReading) -> bool:
    return all(coerce_number(getattr(reading, name)) is not None for name in CLAMPS)


def record_observation(
    observations: ObservationStore,
    journey: EventLog,
    patient_id: str,
    raw: Mapping[str, Any],
    *,
    taken_at: Optional[datetime] = None,
    actor: Any = None,
) -> VitalReading:
    """
    Save one observation set and mirror it onto the journey.

    Appends the scored reading, a ``VitalsRecorded`` event and, when the EWS
    moved from the previous reading, an ``EwsChange`` event.
    """
    taken_at = parse_ts(taken_at) if taken_at is not None else utcnow()
    previous = observations.latest_at(patient_id, taken_at)
    prev_score = previous.score if previous is not None else None

    stored = observations.append(patient_id, {"taken_at": taken_at, **normalize_raw(raw)})

    journey.append(
        patient_id,
        EventKind.VITALS_RECORDED,
        "Obs",
        t=taken_at,
        detail={
            **{k: v for k, v in stored.to_dict().items() if k not in ("patient_id", "taken_at")},
            "complete": _has_core(stored),
        },
        actor=actor,
    )

    if prev_score is None or prev_score != stored.score:
        journey.append(
            patient_id,
            EventKind.EWS_CHANGE,
            f"EWS {'—' if prev_score is None else prev_score} → {stored.score}",
            t=taken_at,
            detail={
                "prev": prev_score,
                "next": stored.score,
                "delta": None if prev_score is None else stored.score - prev_score,
            },
            actor=actor,
        )
    return stored


def assign_room(
    journey: EventLog,
    patient_id: str,
    room: str,
    *,
    t: Optional[datetime] = None,
    actor: Any = "Charge RN",
) -> Optional[ClinicalEvent]:
    if not patient_id or not (room or "").strip():
        logger.debug(f"Ignoring blank room assignment for {patient_id!r}")
        return None
    return journey.append(
        patient_id,
        EventKind.ROOM_CHANGE,
        room.strip(),
        t=t,
        detail="Assigned",
        actor=actor,
    )

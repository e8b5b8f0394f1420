import re
from numbers import Number
from typing import Optional, Tuple

import pandas as pd

from .journey import EventLog
from .models import ClinicalEvent, EventKind
from .observations import ObservationStore


def _is_num(x) -> bool:
    return isinstance(x, Number) and not isinstance(x, bool) and pd.notna(x)


def pretty_kind(kind: EventKind) -> str:
    # "RoomChange" -> "Room Change"
    return re.sub(r"(?<!^)(?=[A-Z])", " ", kind.value)


def format_event_line(ev: ClinicalEvent) -> Tuple[str, Optional[str]]:
    """Compact (title, meta) line for the chronological timeline."""
    title = ev.label
    meta = None

    if ev.kind is EventKind.VITALS_RECORDED:
        d = ev.detail if isinstance(ev.detail, dict) else {}
        parts = []
        if _is_num(d.get("respiratory_rate")):
            parts.append(f"RR {d['respiratory_rate']:g}")
        if _is_num(d.get("heart_rate")):
            parts.append(f"HR {d['heart_rate']:g}")
        if _is_num(d.get("systolic_bp")):
            parts.append(f"SBP {d['systolic_bp']:g}")
        if _is_num(d.get("oxygen_saturation")):
            parts.append(f"SpO₂ {d['oxygen_saturation']:g}%")
        if _is_num(d.get("temperature")):
            parts.append(f"Temp {d['temperature']:g}°C")
        ews = f" (EWS {d['score']})" if _is_num(d.get("score")) else ""
        title = ev.label or "Obs"
        meta = " · ".join(parts) + ews
    elif ev.kind is EventKind.TASK_RECORDED and isinstance(ev.detail, dict):
        d = ev.detail
        title = ev.label or f"Task: {d.get('kind', '')}".strip()
        meta = " · ".join(str(x) for x in (d.get("status"), d.get("assignee_role")) if x) or None
    elif isinstance(ev.detail, str):
        meta = ev.detail

    return title or pretty_kind(ev.kind), meta or None


def timeline_frame(journey: EventLog, patient_id: str, limit: Optional[int] = None) -> pd.DataFrame:
    """Newest-first journey table for one patient."""
    rows = []
    for ev in reversed(journey.list(patient_id)):
        title, meta = format_event_line(ev)
        rows.append({
            "t": ev.t.isoformat(),
            "kind": ev.kind.value,
            "title": title,
            "meta": meta or "",
            "actor": ev.actor.name if ev.actor and ev.actor.name else "",
        })
    df = pd.DataFrame(rows, columns=["t", "kind", "title", "meta", "actor"])
    return df.head(limit) if limit else df


def vitals_frame(observations: ObservationStore, patient_id: str) -> pd.DataFrame:
    """Oldest-first vitals history with the computed score columns."""
    rows = [r.to_dict() for r in observations.list(patient_id)]
    columns = [
        "taken_at", "respiratory_rate", "oxygen_saturation", "heart_rate", "systolic_bp",
        "temperature", "consciousness", "supplemental_oxygen", "source",
        "score", "band", "escalate", "next_due",
    ]
    df = pd.DataFrame(rows, columns=columns)
    if not df.empty:
        df["taken_at"] = pd.to_datetime(df["taken_at"], utc=True)
        df["next_due"] = pd.to_datetime(df["next_due"], utc=True)
    return df

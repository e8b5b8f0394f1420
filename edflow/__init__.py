"""Clinical state projection and early-warning scoring for the ED board.

Two stores are fed by the entry forms:
- ObservationStore: vitals per patient, scored and stamped with next obs due
- EventLog: append-only journey events, projected to phase and room
"""

from .journey import EventLog, project
from .models import (
    Actor,
    Band,
    ClinicalEvent,
    Consciousness,
    EventKind,
    Phase,
    Projection,
    ReadingSource,
    VitalReading,
)
from .monitoring import is_overdue, next_due
from .observations import ObservationStore
from .pathways import StepState, pathway_timers
from .risk_engine import EwsResult, ScoringPolicy, score_vitals
from .storage import MemoryCache, SqlCache

__all__ = [
    "Actor",
    "Band",
    "ClinicalEvent",
    "Consciousness",
    "EventKind",
    "EventLog",
    "EwsResult",
    "MemoryCache",
    "ObservationStore",
    "Phase",
    "Projection",
    "ReadingSource",
    "ScoringPolicy",
    "SqlCache",
    "StepState",
    "VitalReading",
    "is_overdue",
    "next_due",
    "pathway_timers",
    "project",
    "score_vitals",
]

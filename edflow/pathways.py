"""Care-pathway checklists (ACS, sepsis) read off a patient's journey.

Each step is matched by a keyword in event labels. An ``OrderPlaced``
event marks the step ordered; any other matching event marks it done.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Iterable, List, Optional

from .journey import fold_key
from .models import ClinicalEvent, EventKind
from .monitoring import is_overdue


class StepState(Enum):
    DUE = "due"
    ORDERED = "ordered"
    DONE = "done"


@dataclass(frozen=True)
class PathwayStep:
    label: str
    keyword: str
    due_after_arrival: Optional[timedelta] = None


@dataclass(frozen=True)
class PathwayTimer:
    label: str
    state: StepState
    due_at: Optional[datetime] = None
    done_at: Optional[datetime] = None
    overdue: bool = False


PATHWAYS = {
    "acs": (
        PathwayStep("ECG", "ecg", timedelta(minutes=10)),
        PathwayStep("Troponin", "trop"),
        PathwayStep("Aspirin", "aspirin"),
    ),
    "sepsis": (
        PathwayStep("Antibiotics", "antibiot"),
        PathwayStep("Lactate", "lactate"),
    ),
}


def _first(events: List[ClinicalEvent], keyword: str, ordered: bool) -> Optional[ClinicalEvent]:
    for event in events:
        if keyword in event.label.lower() and (event.kind is EventKind.ORDER_PLACED) == ordered:
            return event
    return None


def pathway_timers(
    events: Iterable[ClinicalEvent],
    pathway: str,
    now: Optional[datetime] = None,
) -> List[PathwayTimer]:
    """
    Status of each step of ``pathway`` for one patient's events.

    Deadlines count from the first ``Arrival`` event; without one a step has
    no due time and is never overdue.
    """
    try:
        steps = PATHWAYS[pathway]
    except KeyError:
        raise ValueError(f"Unknown pathway: {pathway!r}") from None

    ordered_events = sorted(events, key=fold_key)
    arrival = next((e.t for e in ordered_events if e.kind is EventKind.ARRIVAL), None)

    timers = []
    for step in steps:
        due_at = None
        if arrival is not None and step.due_after_arrival is not None:
            due_at = arrival + step.due_after_arrival

        done = _first(ordered_events, step.keyword, ordered=False)
        if done is not None:
            timers.append(PathwayTimer(step.label, StepState.DONE, due_at, done_at=done.t))
            continue

        state = StepState.ORDERED if _first(ordered_events, step.keyword, ordered=True) else StepState.DUE
        overdue = due_at is not None and is_overdue(due_at, now)
        timers.append(PathwayTimer(step.label, state, due_at, overdue=overdue))
    return timers

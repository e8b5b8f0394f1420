"""Data models for vital-sign readings and clinical journey events."""

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any
import uuid


class Consciousness(Enum):
    """ACVPU level of consciousness."""
    ALERT = "Alert"
    CONFUSION = "Confusion"
    VOICE = "Voice"
    PAIN = "Pain"
    UNRESPONSIVE = "Unresponsive"

    @classmethod
    def parse(cls, value: "Consciousness | str | None") -> "Consciousness | None":
        """Accept enum members, full names or single-letter ACVPU codes."""
        if value is None or isinstance(value, cls):
            return value
        text = str(value).strip()
        if not text:
            return None
        for member in cls:
            if text.lower() == member.value.lower() or text.upper() == member.value[0]:
                return member
        return None


class ReadingSource(Enum):
    """Where a reading came from. Provenance only."""
    TRIAGE = "Triage"
    ROUTINE_OBS = "RoutineObs"
    DEVICE = "Device"


class EventKind(Enum):
    """Closed set of journey event kinds."""
    ARRIVAL = "Arrival"
    TRIAGE = "Triage"
    ROOM_CHANGE = "RoomChange"
    VITALS_RECORDED = "VitalsRecorded"
    EWS_CHANGE = "EwsChange"
    ORDER_PLACED = "OrderPlaced"
    RESULT_RECEIVED = "ResultReceived"
    MEDICATION_ADMINISTERED = "MedicationAdministered"
    TASK_RECORDED = "TaskRecorded"
    NOTE = "Note"
    COMMUNICATION = "Communication"
    ALERT = "Alert"


class Band(Enum):
    """EWS risk band."""
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"


class Phase(Enum):
    """Coarse workflow stage of a patient in the department."""
    WAITING = "Waiting"
    IN_TRIAGE = "InTriage"
    ROOMED = "Roomed"
    DIAGNOSTICS = "Diagnostics"
    REVIEW = "Review"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_ts(value: "datetime | str") -> datetime:
    """Parse an ISO instant (or datetime) into an aware datetime.

    Naive values are taken to be UTC.
    """
    if isinstance(value, datetime):
        dt = value
    else:
        text = str(value).strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        dt = datetime.fromisoformat(text)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def _enum_or_none(enum_cls, value):
    if value is None or isinstance(value, enum_cls):
        return value
    return enum_cls(value)


VITAL_FIELDS = (
    "respiratory_rate",
    "oxygen_saturation",
    "heart_rate",
    "systolic_bp",
    "temperature",
)


@dataclass(frozen=True)
class VitalReading:
    """One observation snapshot for a patient.

    ``score``, ``band``, ``escalate`` and ``next_due`` are computed by the
    observation store when the reading is appended.
    """
    patient_id: str
    taken_at: datetime
    respiratory_rate: float | None = None
    oxygen_saturation: float | None = None
    heart_rate: float | None = None
    systolic_bp: float | None = None
    temperature: float | None = None
    consciousness: Consciousness | None = None
    supplemental_oxygen: bool | None = None
    source: ReadingSource = ReadingSource.ROUTINE_OBS

    score: int | None = None
    band: Band | None = None
    escalate: bool | None = None
    next_due: datetime | None = None

    def __post_init__(self):
        object.__setattr__(self, "patient_id", str(self.patient_id))
        object.__setattr__(self, "taken_at", parse_ts(self.taken_at))
        object.__setattr__(self, "consciousness", Consciousness.parse(self.consciousness))
        object.__setattr__(self, "source", _enum_or_none(ReadingSource, self.source) or ReadingSource.ROUTINE_OBS)
        object.__setattr__(self, "band", _enum_or_none(Band, self.band))
        if self.next_due is not None:
            object.__setattr__(self, "next_due", parse_ts(self.next_due))

    def vitals(self) -> dict[str, Any]:
        """Raw scoring inputs of this reading (absent values included as None)."""
        out = {name: getattr(self, name) for name in VITAL_FIELDS}
        out["consciousness"] = self.consciousness
        out["supplemental_oxygen"] = self.supplemental_oxygen
        return out

    def unscored(self) -> "VitalReading":
        """Copy with computed fields cleared."""
        return replace(self, score=None, band=None, escalate=None, next_due=None)

    def to_dict(self) -> dict[str, Any]:
        return {
            "patient_id": self.patient_id,
            "taken_at": self.taken_at.isoformat(),
            "respiratory_rate": self.respiratory_rate,
            "oxygen_saturation": self.oxygen_saturation,
            "heart_rate": self.heart_rate,
            "systolic_bp": self.systolic_bp,
            "temperature": self.temperature,
            "consciousness": self.consciousness.value if self.consciousness else None,
            "supplemental_oxygen": self.supplemental_oxygen,
            "source": self.source.value,
            "score": self.score,
            "band": self.band.value if self.band else None,
            "escalate": self.escalate,
            "next_due": self.next_due.isoformat() if self.next_due else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "VitalReading":
        return cls(
            patient_id=data["patient_id"],
            taken_at=data["taken_at"],
            respiratory_rate=data.get("respiratory_rate"),
            oxygen_saturation=data.get("oxygen_saturation"),
            heart_rate=data.get("heart_rate"),
            systolic_bp=data.get("systolic_bp"),
            temperature=data.get("temperature"),
            consciousness=data.get("consciousness"),
            supplemental_oxygen=data.get("supplemental_oxygen"),
            source=data.get("source") or ReadingSource.ROUTINE_OBS,
            score=data.get("score"),
            band=data.get("band"),
            escalate=data.get("escalate"),
            next_due=data.get("next_due"),
        )


@dataclass(frozen=True)
class Actor:
    """Who recorded an event."""
    id: str | None = None
    name: str | None = None
    role: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "name": self.name, "role": self.role}

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "Actor | None":
        if not data:
            return None
        return cls(id=data.get("id"), name=data.get("name"), role=data.get("role"))


def new_event_id() -> str:
    return uuid.uuid4().hex


@dataclass(frozen=True)
class ClinicalEvent:
    """One append-only fact about a patient's journey.

    For ``RoomChange`` events ``label`` carries the room identifier.
    """
    patient_id: str
    t: datetime
    kind: EventKind
    label: str = ""
    detail: Any = None
    actor: Actor | None = None
    id: str = field(default_factory=new_event_id)

    def __post_init__(self):
        object.__setattr__(self, "patient_id", str(self.patient_id))
        object.__setattr__(self, "t", parse_ts(self.t))
        object.__setattr__(self, "kind", _enum_or_none(EventKind, self.kind))
        object.__setattr__(self, "label", (self.label or "").strip())

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "patient_id": self.patient_id,
            "t": self.t.isoformat(),
            "kind": self.kind.value,
            "label": self.label,
            "detail": self.detail,
            "actor": self.actor.to_dict() if self.actor else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ClinicalEvent":
        return cls(
            id=data["id"],
            patient_id=data["patient_id"],
            t=data["t"],
            kind=data["kind"],
            label=data.get("label") or "",
            detail=data.get("detail"),
            actor=Actor.from_dict(data.get("actor")),
        )


@dataclass(frozen=True)
class Projection:
    """Derived workflow state of one patient."""
    phase: Phase = Phase.WAITING
    current_room: str | None = None

"""Seeded demo journeys for the board."""

from datetime import datetime, timedelta
from typing import Optional

from .journey import EventLog
from .models import EventKind, ReadingSource, utcnow
from .observations import ObservationStore


def _obs(observations: ObservationStore, pid: str, at: datetime, rr, hr, sbp, spo2, temp):
    observations.append(pid, {
        "taken_at": at,
        "respiratory_rate": rr,
        "heart_rate": hr,
        "systolic_bp": sbp,
        "oxygen_saturation": spo2,
        "temperature": temp,
        "source": ReadingSource.ROUTINE_OBS,
    })


def run_scenario(
    key: str,
    observations: ObservationStore,
    journey: EventLog,
    patient_id: str,
    now: Optional[datetime] = None,
) -> None:
    """Seed a demo patient journey into the stores."""
    now = now or utcnow()

    def ago(m):
        return now - timedelta(minutes=m)

    pid = patient_id
    if key == "baseline":
        journey.append(pid, EventKind.ARRIVAL, "Arrived at ED", t=ago(180))
        journey.append(pid, EventKind.TRIAGE, "Triage completed (ATS 3)", t=ago(160))
        journey.append(pid, EventKind.ROOM_CHANGE, "Cubicle 4", detail="Roomed", t=ago(140))
        _obs(observations, pid, ago(120), 16, 84, 132, 98, 36.7)
        _obs(observations, pid, ago(60), 15, 80, 128, 98, 36.8)
        _obs(observations, pid, ago(10), 16, 78, 126, 99, 36.7)
        journey.append(pid, EventKind.TASK_RECORDED, "Obs scheduled q60m", t=ago(10))
    elif key == "sepsis":
        journey.append(pid, EventKind.ARRIVAL, "Arrived at ED", t=ago(110))
        journey.append(pid, EventKind.TRIAGE, "Triage completed (ATS 2)", t=ago(105))
        journey.append(pid, EventKind.ROOM_CHANGE, "Resus 1", t=ago(100))
        _obs(observations, pid, ago(100), 24, 112, 98, 94, 38.6)
        journey.append(pid, EventKind.ALERT, "Sepsis risk flagged", detail="qSOFA ≥ 2", t=ago(95))
        journey.append(pid, EventKind.ORDER_PLACED, "Sepsis bundle ordered",
                       detail="Blood cultures, lactate, broad-spectrum abx", t=ago(90))
        _obs(observations, pid, ago(70), 22, 118, 92, 93, 38.9)
        journey.append(pid, EventKind.MEDICATION_ADMINISTERED, "Antibiotics administered",
                       detail="Piperacillin/tazobactam 4.5g IV", t=ago(60))
        journey.append(pid, EventKind.RESULT_RECEIVED, "Lactate resulted 3.4 mmol/L", detail="Critical", t=ago(45))
        _obs(observations, pid, ago(30), 20, 110, 100, 95, 38.4)
    elif key == "stroke":
        journey.append(pid, EventKind.ARRIVAL, "Stroke alert pre-notified by EMS", t=ago(75))
        journey.append(pid, EventKind.TRIAGE, "FAST positive", detail="Left arm weakness, aphasia", t=ago(70))
        _obs(observations, pid, ago(70), 18, 84, 168, 96, 36.5)
        journey.append(pid, EventKind.ROOM_CHANGE, "CT suite", t=ago(65))
        journey.append(pid, EventKind.ORDER_PLACED, "CT brain (non-contrast) ordered", t=ago(62))
        journey.append(pid, EventKind.RESULT_RECEIVED, "CT completed", detail="No hemorrhage", t=ago(50))
        _obs(observations, pid, ago(30), 16, 82, 158, 97, 36.5)
    elif key == "chestpain":
        journey.append(pid, EventKind.ARRIVAL, "Chest pain onset 1h prior", t=ago(65))
        journey.append(pid, EventKind.TRIAGE, "Triage completed (ATS 2)", t=ago(63))
        journey.append(pid, EventKind.ROOM_CHANGE, "Cubicle 7", t=ago(62))
        journey.append(pid, EventKind.ORDER_PLACED, "ECG ordered", t=ago(62))
        _obs(observations, pid, ago(60), 18, 96, 142, 98, 36.8)
        _obs(observations, pid, ago(30), 16, 92, 138, 98, 36.7)
        journey.append(pid, EventKind.RESULT_RECEIVED, "Troponin (0h) 72 ng/L", detail="Abnormal", t=ago(20))
        journey.append(pid, EventKind.MEDICATION_ADMINISTERED, "Aspirin administered", t=ago(15))
        _obs(observations, pid, ago(5), 16, 105, 146, 97, 36.7)
    else:
        raise ValueError(f"Unknown scenario: {key!r}")

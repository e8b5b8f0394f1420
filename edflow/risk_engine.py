import math
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from .config import config
from .models import Band, Consciousness, VITAL_FIELDS

# (upper bound inclusive, points); a None bound closes the table
BandTable = Tuple[Tuple[Optional[float], int], ...]

RR_BANDS: BandTable = ((8, 3), (11, 1), (20, 0), (24, 2), (None, 3))
SPO2_SCALE1_BANDS: BandTable = ((91, 3), (93, 2), (95, 1), (None, 0))
SPO2_SCALE2_BANDS: BandTable = ((83, 3), (85, 2), (87, 1), (None, 0))
TEMP_BANDS: BandTable = ((35.0, 3), (36.0, 1), (38.0, 0), (39.0, 1), (None, 2))
SBP_BANDS: BandTable = ((90, 3), (100, 2), (110, 1), (219, 0), (None, 3))
HR_BANDS: BandTable = ((40, 3), (50, 1), (90, 0), (110, 1), (130, 2), (None, 3))

CONSCIOUSNESS_POINTS = 3
ESCALATION_POINTS = 3

_LABELS = {
    "respiratory_rate": "RR",
    "oxygen_saturation": "SpO2",
    "heart_rate": "HR",
    "systolic_bp": "SBP",
    "temperature": "Temp",
    "consciousness": "ACVPU",
}


@dataclass(frozen=True)
class ScoringPolicy:
    # aggregate thresholds
    high_total: int = config.EWS_HIGH_TOTAL
    medium_total: int = config.EWS_MEDIUM_TOTAL
    # fixed surcharge when on supplemental oxygen
    oxygen_points: int = config.OXYGEN_POINTS
    spo2_scale: int = 1

    def band_tables(self) -> Dict[str, BandTable]:
        return {
            "respiratory_rate": RR_BANDS,
            "oxygen_saturation": SPO2_SCALE2_BANDS if self.spo2_scale == 2 else SPO2_SCALE1_BANDS,
            "heart_rate": HR_BANDS,
            "systolic_bp": SBP_BANDS,
            "temperature": TEMP_BANDS,
        }


DEFAULT_POLICY = ScoringPolicy()


def scoring_policy(profile: str) -> ScoringPolicy:
    # Scale 2 is for patients with a prescribed 88-92% saturation target.
    if profile == "hypercapnic":
        return ScoringPolicy(spo2_scale=2)
    if profile == "default":
        return DEFAULT_POLICY
    raise ValueError(f"Unknown scoring profile: {profile!r}")


@dataclass(frozen=True)
class EwsResult:
    total: int
    band: Band
    escalate: bool
    per_parameter: Dict[str, int] = field(default_factory=dict)
    oxygen_points: int = 0
    reasons: List[str] = field(default_factory=list)


def coerce_number(value: Any) -> Optional[float]:
    """Lenient numeric coercion: anything non-numeric counts as not measured."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number


def on_supplemental_oxygen(value: Any) -> bool:
    if isinstance(value, str):
        text = value.strip().lower()
        return bool(text) and text != "room air"
    return value is True


def band_points(value: float, table: BandTable) -> int:
    for upper, points in table:
        if upper is None or value <= upper:
            return points
    return table[-1][1]


def classify_band(total: int, escalate: bool, policy: ScoringPolicy = DEFAULT_POLICY) -> Band:
    if escalate or total >= policy.high_total:
        return Band.HIGH
    if total >= policy.medium_total:
        return Band.MEDIUM
    return Band.LOW


def score_vitals(snapshot: Mapping[str, Any], policy: ScoringPolicy = DEFAULT_POLICY) -> EwsResult:
    """
    Score a vital-sign snapshot.

    Missing or malformed vitals contribute nothing and take no part in the
    escalation check. A single parameter at 3 points forces the High band
    whatever the total.
    """
    per_parameter: Dict[str, int] = {}
    reasons: List[str] = []

    for name, table in policy.band_tables().items():
        value = coerce_number(snapshot.get(name))
        if value is None:
            continue
        points = band_points(value, table)
        per_parameter[name] = points
        if points:
            reasons.append(f"{_LABELS[name]} {value:g} scores {points}")

    consciousness = Consciousness.parse(snapshot.get("consciousness"))
    if consciousness is not None:
        points = 0 if consciousness is Consciousness.ALERT else CONSCIOUSNESS_POINTS
        per_parameter["consciousness"] = points
        if points:
            reasons.append(f"ACVPU {consciousness.value} scores {points}")

    oxygen = policy.oxygen_points if on_supplemental_oxygen(snapshot.get("supplemental_oxygen")) else 0
    if oxygen:
        reasons.append(f"Supplemental O2 adds {oxygen}")

    total = sum(per_parameter.values()) + oxygen
    escalate = any(points >= ESCALATION_POINTS for points in per_parameter.values())
    band = classify_band(total, escalate, policy)

    return EwsResult(
        total=total,
        band=band,
        escalate=escalate,
        per_parameter=per_parameter,
        oxygen_points=oxygen,
        reasons=reasons,
    )


def merge_latest(readings: Iterable[Any]) -> Dict[str, Any]:
    """
    Latest-known-value merge over time-ordered readings (forward fill).

    Accepts VitalReading objects or plain mappings. A value only replaces the
    carried one when it is present.
    """
    merged: Dict[str, Any] = {}
    for reading in readings:
        values = reading.vitals() if hasattr(reading, "vitals") else dict(reading)
        for name in VITAL_FIELDS:
            if coerce_number(values.get(name)) is not None:
                merged[name] = values[name]
        if values.get("consciousness") is not None:
            merged["consciousness"] = values["consciousness"]
        if values.get("supplemental_oxygen") is not None:
            merged["supplemental_oxygen"] = values["supplemental_oxygen"]
    return merged


def ews_trend(previous: Optional[int], current: Optional[int]) -> Optional[str]:
    if previous is None or current is None:
        return None
    if current > previous:
        return "up"
    if current < previous:
        return "down"
    return "same"

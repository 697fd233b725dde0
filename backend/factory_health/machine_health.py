"""Default machine health scorer.

Each reading is scored 0-100 by where it falls inside the part's normal
operating range; a machine's score is the mean of its scored readings and the
factory score is the mean across submitted machines. Percentages are rendered
as two-decimal strings to match the client payloads.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Dict, Mapping, Optional

from .models import IDENTITY_FIELD, ScoreResult, Submission

INVALID_INPUT_MESSAGE = "Invalid input format"


@dataclass(frozen=True)
class PartRange:
    low: float
    high: float
    higher_is_better: bool = False

    def score(self, value: float) -> float:
        span = self.high - self.low
        fraction = (value - self.low) / span if span else 0.0
        fraction = min(max(fraction, 0.0), 1.0)
        if not self.higher_is_better:
            fraction = 1.0 - fraction
        return fraction * 100.0


MACHINE_PARTS: Dict[str, Dict[str, PartRange]] = {
    "weldingRobot": {
        "vibrationLevel": PartRange(0.0, 8.0),
        "electrodeWear": PartRange(0.0, 8.0),
        "shieldingPressure": PartRange(10.0, 25.0, higher_is_better=True),
        "wireFeedRate": PartRange(0.0, 15.0, higher_is_better=True),
        "arcStability": PartRange(0.0, 100.0, higher_is_better=True),
        "seamWidth": PartRange(0.0, 5.0),
        "coolingEfficiency": PartRange(0.0, 100.0, higher_is_better=True),
    },
    "assemblyLine": {
        "alignmentAccuracy": PartRange(0.0, 100.0, higher_is_better=True),
        "speed": PartRange(0.0, 10.0, higher_is_better=True),
        "fittingTolerance": PartRange(0.0, 2.0),
        "beltSpeed": PartRange(0.0, 5.0, higher_is_better=True),
    },
    "paintingStation": {
        "flowRate": PartRange(0.0, 50.0, higher_is_better=True),
        "pressure": PartRange(0.0, 100.0, higher_is_better=True),
        "colorConsistency": PartRange(0.0, 100.0, higher_is_better=True),
        "nozzleCondition": PartRange(0.0, 100.0, higher_is_better=True),
    },
    "qualityControlStation": {
        "cameraCalibration": PartRange(0.0, 100.0, higher_is_better=True),
        "lightIntensity": PartRange(0.0, 100.0, higher_is_better=True),
        "defectRate": PartRange(0.0, 20.0),
    },
}


def _format_percentage(value: float) -> str:
    return str(Decimal(repr(value)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def _parse_reading(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str) and value.strip():
        try:
            parsed = Decimal(value.strip())
        except InvalidOperation:
            return None
        if parsed.is_finite():
            return float(parsed)
    return None


def _score_machine(machine: str, readings: Mapping[str, Any]) -> float | ScoreResult:
    parts = MACHINE_PARTS[machine]
    scores = []
    for part, raw_value in readings.items():
        part_range = parts.get(part)
        if part_range is None:
            continue
        value = _parse_reading(raw_value)
        if value is None:
            return ScoreResult.failure(
                f"Invalid reading for {machine}.{part}: {raw_value!r}",
                machine=machine,
                part=part,
            )
        scores.append(part_range.score(value))
    if not scores:
        return 0.0
    return sum(scores) / len(scores)


def calculate_machine_health(submission: Submission) -> ScoreResult:
    """Score every machine in ``submission`` and the factory as a whole."""
    machines = submission.get(IDENTITY_FIELD) if isinstance(submission, Mapping) else None
    if not isinstance(machines, Mapping) or not machines:
        return ScoreResult.failure(INVALID_INPUT_MESSAGE)

    machine_scores: Dict[str, float] = {}
    for machine, readings in machines.items():
        if machine not in MACHINE_PARTS:
            return ScoreResult.failure(f"Unknown machine type: {machine}", machine=machine)
        if not isinstance(readings, Mapping):
            return ScoreResult.failure(INVALID_INPUT_MESSAGE, machine=machine)
        outcome = _score_machine(machine, readings)
        if isinstance(outcome, ScoreResult):
            return outcome
        machine_scores[machine] = outcome

    factory = sum(machine_scores.values()) / len(machine_scores)
    return ScoreResult.success(
        factory=_format_percentage(factory),
        machineScores={name: _format_percentage(score) for name, score in machine_scores.items()},
    )


__all__ = [
    "INVALID_INPUT_MESSAGE",
    "MACHINE_PARTS",
    "PartRange",
    "calculate_machine_health",
]

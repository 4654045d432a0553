"""Severity classification for vital sign readings.

The thresholds are fixed clinical bounds, inclusive on both sides. Critical
bounds are checked before warning bounds; anything else is normal. The same
table drives reading status, per-vital alerts and notification fan-out.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Literal, Union

from app.shared.exceptions import InvalidReadingError


class VitalType(str, Enum):
    BLOOD_PRESSURE = "blood_pressure"
    BLOOD_SUGAR = "blood_sugar"
    HEART_RATE = "heart_rate"
    TEMPERATURE = "temperature"


class VitalStatus(str, Enum):
    NORMAL = "normal"
    WARNING = "warning"
    CRITICAL = "critical"


STATUS_RANK: dict[VitalStatus, int] = {
    VitalStatus.NORMAL: 0,
    VitalStatus.WARNING: 1,
    VitalStatus.CRITICAL: 2,
}

DEFAULT_UNITS: dict[VitalType, str] = {
    VitalType.BLOOD_PRESSURE: "mmHg",
    VitalType.BLOOD_SUGAR: "mg/dL",
    VitalType.HEART_RATE: "bpm",
    VitalType.TEMPERATURE: "°F",
}

Side = Literal["high", "low"]


@dataclass(frozen=True)
class BloodPressure:
    systolic: int
    diastolic: int

    def __str__(self) -> str:
        return f"{self.systolic}/{self.diastolic}"


VitalValue = Union[BloodPressure, float]


@dataclass(frozen=True)
class Band:
    """A value at or above `high`, or at or below `low`, falls in the band."""

    high: float
    low: float | None = None

    def side(self, value: float) -> Side | None:
        if value >= self.high:
            return "high"
        if self.low is not None and value <= self.low:
            return "low"
        return None


# (critical, warning) per scalar vital type.
SCALAR_BANDS: dict[VitalType, tuple[Band, Band]] = {
    VitalType.BLOOD_SUGAR: (Band(high=250, low=50), Band(high=180, low=70)),
    VitalType.HEART_RATE: (Band(high=120, low=50), Band(high=100, low=60)),
    VitalType.TEMPERATURE: (Band(high=103, low=95), Band(high=100.4, low=97)),
}

# (critical, warning) as (systolic band, diastolic band); only high bounds apply.
PRESSURE_BANDS: tuple[tuple[Band, Band], tuple[Band, Band]] = (
    (Band(high=180), Band(high=120)),
    (Band(high=140), Band(high=90)),
)

TEMPERATURE_DECIMALS = 1


def classify(vital_type: VitalType, value: VitalValue) -> VitalStatus:
    """Return the severity of a well-formed value."""
    status, _ = _evaluate(vital_type, value)
    return status


def classify_side(vital_type: VitalType, value: VitalValue) -> Side | None:
    """Return which bound a non-normal value crossed, or None for normal values."""
    _, side = _evaluate(vital_type, value)
    return side


def _evaluate(vital_type: VitalType, value: VitalValue) -> tuple[VitalStatus, Side | None]:
    if vital_type == VitalType.BLOOD_PRESSURE:
        if not isinstance(value, BloodPressure):
            raise TypeError("blood pressure must be classified from a BloodPressure value")
        for status, (systolic_band, diastolic_band) in zip(
            (VitalStatus.CRITICAL, VitalStatus.WARNING), PRESSURE_BANDS
        ):
            if systolic_band.side(value.systolic) or diastolic_band.side(value.diastolic):
                return status, "high"
        return VitalStatus.NORMAL, None

    if isinstance(value, BloodPressure):
        raise TypeError(f"{vital_type.value} cannot be classified from a blood pressure value")
    critical, warning = SCALAR_BANDS[vital_type]
    side = critical.side(value)
    if side:
        return VitalStatus.CRITICAL, side
    side = warning.side(value)
    if side:
        return VitalStatus.WARNING, side
    return VitalStatus.NORMAL, None


def worst(statuses: list[VitalStatus]) -> VitalStatus:
    return max(statuses, key=STATUS_RANK.__getitem__, default=VitalStatus.NORMAL)


def parse_value(
    vital_type: VitalType,
    raw: object,
    systolic: object = None,
    diastolic: object = None,
) -> VitalValue:
    """Validate raw input for a vital type before it is classified or stored.

    Blood pressure accepts either explicit systolic/diastolic values or a
    ``"120/80"`` string. Every other type needs a single positive number.
    """
    if vital_type == VitalType.BLOOD_PRESSURE:
        if systolic is None and diastolic is None:
            if not isinstance(raw, str) or "/" not in raw:
                raise InvalidReadingError(
                    "Blood pressure needs both systolic and diastolic values, e.g. 120/80"
                )
            systolic, diastolic = raw.split("/", 1)
        elif systolic is None or diastolic is None:
            raise InvalidReadingError(
                "Blood pressure needs both systolic and diastolic values, e.g. 120/80"
            )
        return BloodPressure(
            systolic=_positive_int(systolic, "systolic"),
            diastolic=_positive_int(diastolic, "diastolic"),
        )

    if raw is None or (isinstance(raw, str) and not raw.strip()):
        raise InvalidReadingError(f"A value is required for {_label(vital_type)}")
    number = _number(raw, _label(vital_type))
    if vital_type == VitalType.TEMPERATURE:
        # Stored with one decimal; classify that same value.
        return round(number, TEMPERATURE_DECIMALS)
    if not number.is_integer():
        raise InvalidReadingError(f"{_label(vital_type).capitalize()} must be a whole number")
    return number


def format_value(vital_type: VitalType, value: VitalValue) -> str:
    if isinstance(value, BloodPressure):
        return str(value)
    if vital_type == VitalType.TEMPERATURE:
        return f"{value:.{TEMPERATURE_DECIMALS}f}"
    return str(int(value))


def _label(vital_type: VitalType) -> str:
    return vital_type.value.replace("_", " ")


def _number(raw: object, label: str) -> float:
    if isinstance(raw, bool):
        raise InvalidReadingError(f"{label.capitalize()} must be a number")
    try:
        number = float(str(raw).strip()) if isinstance(raw, str) else float(raw)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        raise InvalidReadingError(f"{label.capitalize()} must be a number") from None
    if not math.isfinite(number) or number <= 0:
        raise InvalidReadingError(f"{label.capitalize()} must be a positive number")
    return number


def _positive_int(raw: object, label: str) -> int:
    number = _number(raw, label)
    if not number.is_integer():
        raise InvalidReadingError(f"{label.capitalize()} must be a whole number")
    return int(number)

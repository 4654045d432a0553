import math

import pytest

from app.modules.vitals.classifier import (
    BloodPressure,
    VitalStatus,
    VitalType,
    classify,
    classify_side,
    format_value,
    parse_value,
    worst,
)
from app.shared.exceptions import InvalidReadingError


@pytest.mark.parametrize(
    "systolic,diastolic",
    [(180, 80), (200, 130), (120, 120), (179, 125)],
)
def test_blood_pressure_critical(systolic: int, diastolic: int) -> None:
    assert classify(VitalType.BLOOD_PRESSURE, BloodPressure(systolic, diastolic)) == VitalStatus.CRITICAL


@pytest.mark.parametrize(
    "systolic,diastolic",
    [(140, 80), (179, 119), (120, 90), (139, 95)],
)
def test_blood_pressure_warning(systolic: int, diastolic: int) -> None:
    assert classify(VitalType.BLOOD_PRESSURE, BloodPressure(systolic, diastolic)) == VitalStatus.WARNING


def test_blood_pressure_normal() -> None:
    assert classify(VitalType.BLOOD_PRESSURE, BloodPressure(139, 89)) == VitalStatus.NORMAL


def test_heart_rate_normal_band_is_61_to_99() -> None:
    for bpm in range(61, 100):
        assert classify(VitalType.HEART_RATE, float(bpm)) == VitalStatus.NORMAL


@pytest.mark.parametrize(
    "bpm,expected,side",
    [
        (100, VitalStatus.WARNING, "high"),
        (119, VitalStatus.WARNING, "high"),
        (120, VitalStatus.CRITICAL, "high"),
        (60, VitalStatus.WARNING, "low"),
        (51, VitalStatus.WARNING, "low"),
        (50, VitalStatus.CRITICAL, "low"),
        (20, VitalStatus.CRITICAL, "low"),
    ],
)
def test_heart_rate_boundaries(bpm: float, expected: VitalStatus, side: str) -> None:
    assert classify(VitalType.HEART_RATE, bpm) == expected
    assert classify_side(VitalType.HEART_RATE, bpm) == side


@pytest.mark.parametrize(
    "vital_type,value,expected",
    [
        (VitalType.BLOOD_SUGAR, 250, VitalStatus.CRITICAL),
        (VitalType.BLOOD_SUGAR, 50, VitalStatus.CRITICAL),
        (VitalType.BLOOD_SUGAR, 180, VitalStatus.WARNING),
        (VitalType.BLOOD_SUGAR, 70, VitalStatus.WARNING),
        (VitalType.BLOOD_SUGAR, 110, VitalStatus.NORMAL),
        (VitalType.TEMPERATURE, 103, VitalStatus.CRITICAL),
        (VitalType.TEMPERATURE, 95, VitalStatus.CRITICAL),
        (VitalType.TEMPERATURE, 100.4, VitalStatus.WARNING),
        (VitalType.TEMPERATURE, 97, VitalStatus.WARNING),
        (VitalType.TEMPERATURE, 98.6, VitalStatus.NORMAL),
    ],
)
def test_scalar_thresholds_are_inclusive(vital_type: VitalType, value: float, expected: VitalStatus) -> None:
    assert classify(vital_type, value) == expected


def test_out_of_range_values_still_classify() -> None:
    assert classify(VitalType.BLOOD_SUGAR, 5000) == VitalStatus.CRITICAL
    assert classify(VitalType.TEMPERATURE, 1) == VitalStatus.CRITICAL


def test_classify_rejects_mismatched_value_shape() -> None:
    with pytest.raises(TypeError):
        classify(VitalType.BLOOD_PRESSURE, 120.0)
    with pytest.raises(TypeError):
        classify(VitalType.HEART_RATE, BloodPressure(120, 80))


def test_normal_values_have_no_side() -> None:
    assert classify_side(VitalType.BLOOD_SUGAR, 100) is None


def test_worst_picks_most_severe() -> None:
    assert worst([]) == VitalStatus.NORMAL
    assert worst([VitalStatus.WARNING, VitalStatus.NORMAL]) == VitalStatus.WARNING
    assert worst([VitalStatus.WARNING, VitalStatus.CRITICAL]) == VitalStatus.CRITICAL


def test_parse_blood_pressure_forms() -> None:
    assert parse_value(VitalType.BLOOD_PRESSURE, "120/80") == BloodPressure(120, 80)
    assert parse_value(VitalType.BLOOD_PRESSURE, None, systolic="130", diastolic=85) == BloodPressure(130, 85)


@pytest.mark.parametrize(
    "raw,systolic,diastolic",
    [
        ("120", None, None),
        (120, None, None),
        (None, 120, None),
        (None, None, 80),
        ("120/abc", None, None),
        ("120/-5", None, None),
        ("120.5/80", None, None),
    ],
)
def test_parse_blood_pressure_rejects_incomplete_input(raw: object, systolic: object, diastolic: object) -> None:
    with pytest.raises(InvalidReadingError):
        parse_value(VitalType.BLOOD_PRESSURE, raw, systolic=systolic, diastolic=diastolic)


@pytest.mark.parametrize("raw", [None, "", "abc", True, 0, -4, math.inf, float("nan")])
def test_parse_scalar_rejects_bad_numbers(raw: object) -> None:
    with pytest.raises(InvalidReadingError):
        parse_value(VitalType.BLOOD_SUGAR, raw)


def test_parse_requires_whole_numbers_except_temperature() -> None:
    with pytest.raises(InvalidReadingError, match="whole number"):
        parse_value(VitalType.HEART_RATE, 72.5)
    assert parse_value(VitalType.TEMPERATURE, "98.6") == 98.6


def test_invalid_reading_error_is_a_value_error() -> None:
    with pytest.raises(ValueError):
        parse_value(VitalType.HEART_RATE, "fast")


def test_format_value() -> None:
    assert format_value(VitalType.BLOOD_PRESSURE, BloodPressure(120, 80)) == "120/80"
    assert format_value(VitalType.HEART_RATE, 72.0) == "72"
    assert format_value(VitalType.TEMPERATURE, 98.6) == "98.6"
    assert format_value(VitalType.TEMPERATURE, 100.0) == "100.0"


@pytest.mark.parametrize(
    "raw,stored,expected",
    [
        ("100.3999999", "100.4", VitalStatus.WARNING),
        ("97.0000001", "97.0", VitalStatus.WARNING),
        (102.9999999, "103.0", VitalStatus.CRITICAL),
        (98.64, "98.6", VitalStatus.NORMAL),
    ],
)
def test_temperature_is_classified_as_stored(raw: object, stored: str, expected: VitalStatus) -> None:
    value = parse_value(VitalType.TEMPERATURE, raw)

    assert format_value(VitalType.TEMPERATURE, value) == stored
    assert classify(VitalType.TEMPERATURE, value) == expected
    assert classify(VitalType.TEMPERATURE, float(stored)) == expected

"""Tests for record (de)serialization and validation."""

import pytest

from impscope.types import (
    CalibrationRecord,
    MeasurementRecord,
    RecordKind,
    StoredBankCalibration,
    record_from_dict,
    validate_device_id,
    validate_readings,
    validate_record,
)

CAL_DICT = {
    "device_id": "AB12CD34",
    "date": "2024-03-07 14:05:09",
    "bank_a": {
        "min": 1.8,
        "max": 9.4,
        "ref_min": 300.0,
        "ref_max": 15000.0,
        "slope": 0.000517,
        "intercept": 1.6449,
    },
    "bank_b": {
        "min": None,
        "max": None,
        "ref_min": None,
        "ref_max": None,
        "slope": None,
        "intercept": None,
    },
    "raw_samples": [1.2] * 32,
}


def test_calibration_record_from_dict():
    record = record_from_dict(RecordKind.CALIBRATION, CAL_DICT)
    assert isinstance(record, CalibrationRecord)
    assert record.kind is RecordKind.CALIBRATION
    assert record.key == ("AB12CD34", "2024-03-07 14:05:09")
    assert record.bank_a.slope == 0.000517
    assert record.bank_b.is_empty
    assert record.to_dict() == CAL_DICT


def test_missing_slope_is_not_zero():
    bank = StoredBankCalibration.from_dict({"min": 1.0, "slope": None})
    assert bank.slope is None
    assert bank.min == 1.0
    assert not bank.has_points


def test_legacy_text_fields():
    bank = StoredBankCalibration.from_dict(
        {
            "min": "1.8",
            "max": "9.4",
            "ref_min": "300",
            "ref_max": "15000",
            "slope": "",
            "intercept": "n/a",
        }
    )
    assert bank.min == 1.8
    assert bank.ref_max == 15000.0
    assert bank.slope is None
    assert bank.intercept is None
    assert bank.has_points


def test_non_finite_becomes_missing():
    bank = StoredBankCalibration.from_dict({"slope": "inf", "intercept": float("nan")})
    assert bank.slope is None
    assert bank.intercept is None
    assert bank.is_empty


def test_measurement_record():
    data = {
        "device_id": "AB12CD34",
        "date": "2024-03-07 14:10:00",
        "channel_results": {"0": "SHORT (1.6)", "1": "1"},
    }
    record = record_from_dict("measurement", data)
    assert isinstance(record, MeasurementRecord)
    assert record.channel_results["0"] == "SHORT (1.6)"
    assert record.to_dict() == data


@pytest.mark.parametrize(
    "device_id, valid",
    [("AB12CD34", True), ("", False), ("   ", False), (None, False), ("--------", False)],
)
def test_validate_device_id(device_id, valid):
    is_valid, msg = validate_device_id(device_id)
    assert is_valid is valid
    assert bool(msg) is not valid


def test_validate_readings():
    assert validate_readings({1: 1.0, 32: 2})[0]
    assert not validate_readings({0: 1.0})[0]
    assert not validate_readings({1: True})[0]
    assert not validate_readings({1: float("inf")})[0]


def test_validate_record():
    good = record_from_dict(RecordKind.CALIBRATION, CAL_DICT)
    assert validate_record(good) == (True, "")

    partial = CalibrationRecord(
        device_id="AB12CD34",
        date="2024-03-07 14:05:09",
        bank_a=StoredBankCalibration(min=1.0),
    )
    is_valid, msg = validate_record(partial)
    assert not is_valid
    assert "bank_a" in msg

    assert not validate_record(MeasurementRecord(device_id="", date="x"))[0]
    assert not validate_record(MeasurementRecord(device_id="AB12CD34", date=""))[0]
    assert not validate_record({"device_id": "AB12CD34"})[0]

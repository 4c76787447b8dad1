"""Tests for the two-point calibration engine."""

import math

import pytest

from impscope.calib import (
    BankCalibration,
    CalibrationEngine,
    CalibrationPoint,
    CalibrationStatus,
    SelectionState,
    next_state,
)
from impscope.meas import MeasurementStore
from impscope.types import Bank, StoredBankCalibration


@pytest.fixture
def engine():
    return CalibrationEngine()


def test_state_cycle():
    assert next_state(SelectionState.IDLE) is SelectionState.MIN_SET
    assert next_state(SelectionState.MIN_SET) is SelectionState.MAX_SET
    assert next_state(SelectionState.MAX_SET) is SelectionState.IDLE


def test_two_point_slope(engine):
    assert engine.select_point(Bank.A, 2.0, 300) is SelectionState.MIN_SET
    assert engine.select_point(Bank.A, 8.0, 15000) is SelectionState.MAX_SET

    cal = engine.compute(Bank.A)
    assert cal.status is CalibrationStatus.COMPLETE
    assert cal.is_valid
    assert cal.slope == pytest.approx(6.0 / 14700)
    assert cal.intercept == pytest.approx(2.0 - cal.slope * 300)
    assert cal.min_point == CalibrationPoint(2.0, 300.0)
    assert cal.max_point == CalibrationPoint(8.0, 15000.0)


def test_third_pick_clears(engine):
    engine.select_point(Bank.A, 2.0, 300)
    engine.select_point(Bank.A, 8.0, 15000)
    assert engine.select_point(Bank.A, 5.0, 1000) is SelectionState.IDLE

    cal = engine.snapshot(Bank.A)
    assert cal.status is CalibrationStatus.INCOMPLETE
    assert cal.min_point is None and cal.max_point is None
    assert cal.slope is None and cal.intercept is None

    # the next pick starts a new pair
    engine.select_point(Bank.A, 3.0, 500)
    assert engine.snapshot(Bank.A).min_point == CalibrationPoint(3.0, 500.0)


def test_incomplete_with_one_point(engine):
    engine.select_point(Bank.B, 2.0, 300)
    cal = engine.compute(Bank.B)
    assert cal.status is CalibrationStatus.INCOMPLETE
    assert cal.apply(3.0) is None
    assert not engine.is_valid


def test_degenerate_never_nan(engine):
    engine.select_point(Bank.A, 2.0, 1000)
    engine.select_point(Bank.A, 8.0, 1000)
    cal = engine.compute(Bank.A)
    assert cal.status is CalibrationStatus.DEGENERATE
    assert not cal.is_valid
    assert cal.slope is None
    assert cal.apply(5.0) is None


def test_pick_order_kept_when_inverted(engine):
    """A larger first pick stays the min point."""
    engine.select_point(Bank.A, 9.0, 300)
    engine.select_point(Bank.A, 1.0, 15000)
    cal = engine.compute(Bank.A)
    assert cal.min_point.raw_value == 9.0
    assert cal.max_point.raw_value == 1.0
    assert cal.slope < 0


def test_banks_independent(engine):
    engine.select_point(Bank.A, 2.0, 300)
    engine.select_point(Bank.A, 8.0, 15000)
    assert engine.state(Bank.B) is SelectionState.IDLE
    assert engine.compute(Bank.B).status is CalibrationStatus.INCOMPLETE
    assert not engine.is_valid

    engine.select_point(Bank.B, 1.0, 300)
    engine.select_point(Bank.B, 4.0, 15000)
    assert engine.is_valid


def test_reset(engine):
    engine.select_point(Bank.A, 2.0, 300)
    engine.select_point(Bank.B, 2.0, 300)
    engine.reset(Bank.A)
    assert engine.state(Bank.A) is SelectionState.IDLE
    assert engine.state(Bank.B) is SelectionState.MIN_SET
    engine.reset_all()
    assert engine.state(Bank.B) is SelectionState.IDLE


def test_select_sample_uses_store(engine):
    store = MeasurementStore()
    store.ingest_all({1: 2.0, 16: 8.0, 17: 1.0})
    engine.select_sample(Bank.A, store, 1)
    engine.select_sample(Bank.A, store, 16)
    cal = engine.compute(Bank.A)
    assert cal.min_point == CalibrationPoint(2.0, 300.0)
    assert cal.max_point == CalibrationPoint(8.0, 15000.0)

    with pytest.raises(ValueError):
        engine.select_sample(Bank.A, store, 17)
    with pytest.raises(KeyError):
        engine.select_sample(Bank.B, store, 18)


def test_stored_all_or_nothing():
    assert BankCalibration().to_stored() == StoredBankCalibration()
    degenerate = BankCalibration.from_points(
        CalibrationPoint(1.0, 300), CalibrationPoint(2.0, 300)
    )
    assert degenerate.to_stored().is_empty

    cal = BankCalibration.from_points(
        CalibrationPoint(2.0, 300), CalibrationPoint(8.0, 15000)
    )
    stored = cal.to_stored()
    assert stored.has_points
    assert stored.slope == pytest.approx(cal.slope)


def test_from_stored_rederives_line():
    stored = StoredBankCalibration(
        min=2.0, max=8.0, ref_min=300, ref_max=15000, slope=123.0, intercept=0.0
    )
    cal = BankCalibration.from_stored(stored)
    assert cal.is_valid
    assert cal.slope == pytest.approx(6.0 / 14700)


def test_from_stored_missing_is_uncalibrated():
    cal = BankCalibration.from_stored(StoredBankCalibration())
    assert cal.status is CalibrationStatus.INCOMPLETE

    partial = BankCalibration.from_stored(StoredBankCalibration(min=2.0, slope=0.1))
    assert not partial.is_valid
    assert partial.apply(1.0) is None


def test_apply_is_finite():
    cal = BankCalibration.from_points(
        CalibrationPoint(1.8, 300), CalibrationPoint(9.4, 15000)
    )
    assert math.isfinite(cal.apply(1.2))
    assert cal.apply(1.2) == pytest.approx(1.6455, abs=1e-4)

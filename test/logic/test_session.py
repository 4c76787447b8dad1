"""Tests for the application session services."""

import pytest
import pytest_asyncio

from impscope.calib import SelectionState
from impscope.meas import DiagnosisDefaults, ElectrodeStatus
from impscope.session import ImpedanceSession, SourceMode
from impscope.sync import InMemoryRecordStore, JsonRecordStore, QueryState, RemoteSyncCache
from impscope.system import AppSettings
from impscope.types import (
    Bank,
    CalibrationDegenerate,
    CalibrationIncomplete,
    CalibrationRecord,
    MeasurementRecord,
    RecordKind,
    Uncalibrated,
)
from impscope.util import NO_DEVICE_ID

STAMP = "2024-03-07 14:05:09"


@pytest.fixture
def store():
    return InMemoryRecordStore()


@pytest.fixture
def session(store):
    session = ImpedanceSession(RemoteSyncCache(store), stamp=lambda: STAMP)
    session.set_device_id(" AB12CD34 ")
    session.begin_measurement()
    session.complete_measurement({1: 1.8, 2: 1.2, 16: 9.4, 17: 1.0, 32: 5.0})
    yield session
    session.close()


def _calibrate(session):
    session.select_sample(Bank.A, 1)
    session.select_sample(Bank.A, 16)
    session.select_sample(Bank.B, 17)
    session.select_sample(Bank.B, 32)


@pytest_asyncio.fixture
async def saved_session(session):
    """Session whose calibration is stored for its device."""
    _calibrate(session)
    assert await session.save_calibration()
    return session


def test_initial_state(store):
    session = ImpedanceSession(RemoteSyncCache(store))
    assert session.device_id == NO_DEVICE_ID
    assert not session.is_measuring
    assert not session.can_save_calibration


def test_measurement_lifecycle(session):
    assert session.device_id == "AB12CD34"
    assert not session.is_measuring
    assert len(session.measurements) == 5

    session.select_sample(Bank.A, 1)
    session.begin_measurement()
    assert session.is_measuring
    assert len(session.measurements) == 0
    assert session.calibration.state(Bank.A) is SelectionState.IDLE


def test_complete_measurement_rejects_bad_channel(session):
    session.begin_measurement()
    with pytest.raises(IndexError):
        session.complete_measurement({40: 1.0})
    assert not session.is_measuring


def test_require_calibration(session):
    with pytest.raises(CalibrationIncomplete, match="bank A"):
        session.require_calibration()

    session.select_sample(Bank.A, 1)
    session.select_sample(Bank.A, 16)
    session.select_sample(Bank.B, 17)
    session.select_sample(Bank.B, 17)
    with pytest.raises(CalibrationDegenerate, match="bank B"):
        session.require_calibration()

    session.reset_calibration(Bank.B)
    session.select_sample(Bank.B, 17)
    session.select_sample(Bank.B, 32)
    session.require_calibration()


@pytest.mark.asyncio
async def test_diagnose_requiring_calibration(session):
    with pytest.raises(Uncalibrated):
        await session.diagnose(SourceMode.RECORD, require_calibration=True)
    with pytest.raises(Uncalibrated):
        await session.diagnose(SourceMode.SESSION, require_calibration=True)

    session.select_sample(Bank.A, 1)
    session.select_sample(Bank.A, 16)
    results = await session.diagnose(SourceMode.SESSION, require_calibration=True)
    assert len(results) == 5


@pytest.mark.asyncio
async def test_save_calibration(session, store):
    assert not await session.save_calibration()
    _calibrate(session)
    assert session.can_save_calibration
    assert await session.save_calibration()

    record = await session.remote_calibration()
    assert isinstance(record, CalibrationRecord)
    assert record.date == STAMP
    assert record.bank_a.min == 1.8
    assert record.bank_b.ref_max == 15000.0
    assert len(record.raw_samples) == 32
    assert record.raw_samples[1] == 1.2
    assert record.raw_samples[2] == 0.0


@pytest.mark.asyncio
async def test_save_calibration_without_device(store):
    session = ImpedanceSession(RemoteSyncCache(store))
    session.complete_measurement({1: 1.0, 16: 2.0, 17: 1.0, 32: 2.0})
    _calibrate(session)
    assert not session.can_save_calibration
    assert not await session.save_calibration()


@pytest.mark.asyncio
async def test_diagnose_session_source(session):
    session.select_sample(Bank.A, 1)
    session.select_sample(Bank.A, 16)
    results = await session.diagnose(SourceMode.SESSION)
    by_channel = {r.channel: r for r in results}
    assert by_channel[2].display_text == "SHORT (1.6)"
    assert by_channel[1].status is ElectrodeStatus.NORMAL
    assert by_channel[17].status is ElectrodeStatus.UNCALIBRATED


@pytest.mark.asyncio
async def test_diagnose_record_source(saved_session):
    session = saved_session
    session.reset_calibration()

    record_results = await session.diagnose(SourceMode.RECORD)
    assert all(r.status is not ElectrodeStatus.UNCALIBRATED for r in record_results)

    session_results = await session.diagnose(SourceMode.SESSION)
    assert all(r.status is ElectrodeStatus.UNCALIBRATED for r in session_results)


@pytest.mark.asyncio
async def test_diagnose_record_missing(session):
    _calibrate(session)
    results = await session.diagnose(SourceMode.RECORD)
    assert all(r.status is ElectrodeStatus.UNCALIBRATED for r in results)

    preferred = await session.diagnose(SourceMode.PREFER_RECORD)
    assert all(r.status is not ElectrodeStatus.UNCALIBRATED for r in preferred)


@pytest.mark.asyncio
async def test_save_and_browse_measurement(session):
    _calibrate(session)
    results = await session.diagnose(SourceMode.SESSION)
    assert await session.save_measurement(results)
    assert not await session.save_measurement([])

    page = await session.browse(RecordKind.MEASUREMENT, QueryState())
    assert page.total_items == 1
    record = page.items[0]
    assert isinstance(record, MeasurementRecord)
    assert record.channel_results["1"] == "SHORT (1.6)"

    assert await session.delete_record(RecordKind.MEASUREMENT, "AB12CD34")
    page = await session.browse(RecordKind.MEASUREMENT, QueryState())
    assert page.total_items == 0


def test_from_settings(tmp_path):
    settings = AppSettings(
        store_dir=str(tmp_path), min_threshold=1.0, max_threshold=3.0, cache_max_age=5.0
    )
    session = ImpedanceSession.from_settings(settings)
    assert session.diagnosis.defaults == DiagnosisDefaults(1.0, 3.0)
    assert session.cache.max_age == 5.0
    assert isinstance(session.cache._store, JsonRecordStore)
    session.close()

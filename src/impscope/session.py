"""Application-session services.

`ImpedanceSession` owns one measurement buffer, one calibration engine, one
diagnosis engine and the (single) record cache for the lifetime of an
application session. Front-ends construct it once and pass it around; nothing
in impscope keeps module-level state.
"""

from __future__ import annotations

from enum import Enum
from typing import Callable, Mapping, Optional

from loguru import logger

from impscope.calib import CalibrationEngine, CalibrationStatus, SelectionState
from impscope.meas import (
    CalibrationSource,
    DiagnosedChannel,
    DiagnosisDefaults,
    DiagnosisEngine,
    MeasurementStore,
    to_channel_results,
)
from impscope.sync import JsonRecordStore, Page, QueryState, RemoteSyncCache
from impscope.system import AppSettings
from impscope.types import (
    Bank,
    CalibrationDegenerate,
    CalibrationIncomplete,
    CalibrationRecord,
    MeasurementRecord,
    RecordKind,
    RecordStoreProtocol,
    Uncalibrated,
    validate_device_id,
)
from impscope.util import NO_DEVICE_ID, now_stamp


class SourceMode(str, Enum):
    """Which calibration a diagnosis uses."""

    SESSION = "session"  # in-session chart picks only
    RECORD = "record"  # stored record of the device only
    PREFER_RECORD = "prefer_record"  # stored record per bank, session as fallback


class ImpedanceSession:
    def __init__(
        self,
        cache: RemoteSyncCache,
        defaults: DiagnosisDefaults = DiagnosisDefaults(),
        stamp: Callable[[], str] = now_stamp,
    ):
        self.cache = cache
        self.measurements = MeasurementStore()
        self.calibration = CalibrationEngine()
        self.diagnosis = DiagnosisEngine(defaults)
        self.device_id: str = NO_DEVICE_ID
        self.is_measuring = False
        self._stamp = stamp

    @classmethod
    def from_settings(
        cls, settings: AppSettings, store: Optional[RecordStoreProtocol] = None
    ) -> ImpedanceSession:
        if store is None:
            store = JsonRecordStore(settings.store_dir, settings.collections)
        cache = RemoteSyncCache(store, max_age=settings.cache_max_age)
        defaults = DiagnosisDefaults(settings.min_threshold, settings.max_threshold)
        return cls(cache, defaults)

    def close(self) -> None:
        self.cache.close()

    # ------------------------------------------------------------------------------
    # measurement session
    # ------------------------------------------------------------------------------

    def set_device_id(self, device_id: str) -> None:
        self.device_id = device_id.strip()
        logger.info("Device id set to {}", self.device_id)

    def begin_measurement(self) -> None:
        """Start a new session: drops previous readings and calibration picks."""
        self.measurements.clear()
        self.calibration.reset_all()
        self.is_measuring = True
        logger.info("Measurement session started.")

    def complete_measurement(self, readings: Mapping[int, float]) -> None:
        """Transport delivery callback for a completed session."""
        try:
            self.measurements.ingest_all(readings)
        finally:
            self.is_measuring = False
        logger.info("Measurement session complete ({} channels).", len(readings))

    # ------------------------------------------------------------------------------
    # calibration
    # ------------------------------------------------------------------------------

    def select_point(
        self, bank: Bank, raw_value: float, reference_value: float
    ) -> SelectionState:
        return self.calibration.select_point(bank, raw_value, reference_value)

    def select_sample(self, bank: Bank, channel: int) -> SelectionState:
        return self.calibration.select_sample(bank, self.measurements, channel)

    def reset_calibration(self, bank: Optional[Bank] = None) -> None:
        if bank is None:
            self.calibration.reset_all()
        else:
            self.calibration.reset(bank)

    def require_calibration(self) -> None:
        """Raise unless both banks hold a complete session calibration.

        Raises
        ------
        CalibrationDegenerate
            Both picks of a bank share a reference frequency.
        CalibrationIncomplete
            A bank has fewer than two picks.
        """
        for bank in Bank:
            cal = self.calibration.snapshot(bank)
            if cal.status is CalibrationStatus.DEGENERATE:
                raise CalibrationDegenerate(
                    f"Degenerate calibration in bank {bank.value}: both picks at "
                    f"{cal.min_point.reference_value:g} Hz"
                )
            if cal.status is CalibrationStatus.INCOMPLETE:
                raise CalibrationIncomplete(
                    f"Calibration of bank {bank.value} needs two picks"
                )

    @property
    def can_save_calibration(self) -> bool:
        return (
            self.calibration.is_valid
            and len(self.measurements) > 0
            and validate_device_id(self.device_id)[0]
        )

    async def save_calibration(self, device_id: Optional[str] = None) -> bool:
        device_id = self.device_id if device_id is None else device_id
        if not self.calibration.is_valid or not len(self.measurements):
            logger.warning("Calibration incomplete or no readings; not saving.")
            return False
        record = CalibrationRecord(
            device_id=device_id,
            date=self._stamp(),
            bank_a=self.calibration.snapshot(Bank.A).to_stored(),
            bank_b=self.calibration.snapshot(Bank.B).to_stored(),
            raw_samples=self.measurements.dense_samples(),
        )
        return await self.cache.save(RecordKind.CALIBRATION, record)

    # ------------------------------------------------------------------------------
    # diagnosis
    # ------------------------------------------------------------------------------

    async def remote_calibration(
        self, device_id: Optional[str] = None, force_refresh: bool = False
    ) -> Optional[CalibrationRecord]:
        """Latest stored calibration of the device (raises RemoteUnavailable)."""
        device_id = self.device_id if device_id is None else device_id
        if not validate_device_id(device_id)[0]:
            return None
        return await self.cache.find(RecordKind.CALIBRATION, device_id, force_refresh)

    async def calibration_source(self, mode: SourceMode) -> CalibrationSource:
        mode = SourceMode(mode)
        if mode is SourceMode.SESSION:
            return CalibrationSource.from_session(self.calibration)
        record = await self.remote_calibration()
        if mode is SourceMode.RECORD:
            if record is None:
                logger.warning("No stored calibration for {}.", self.device_id)
                return CalibrationSource({}, f"no record for {self.device_id}")
            return CalibrationSource.from_record(record)
        return CalibrationSource.prefer_record(record, self.calibration)

    async def diagnose(
        self, mode: SourceMode, require_calibration: bool = False
    ) -> list[DiagnosedChannel]:
        """Diagnose the session readings.

        With `require_calibration`, raises `Uncalibrated` instead of reporting
        every channel as UNCALIBRATED when no bank has a usable calibration.
        """
        source = await self.calibration_source(mode)
        if require_calibration and not source.is_usable:
            raise Uncalibrated(f"No usable calibration ({source.label})")
        return self.diagnosis.diagnose(self.measurements, source)

    async def save_measurement(
        self, diagnosed: list[DiagnosedChannel], device_id: Optional[str] = None
    ) -> bool:
        device_id = self.device_id if device_id is None else device_id
        if not diagnosed:
            logger.warning("Nothing diagnosed; not saving.")
            return False
        record = MeasurementRecord(
            device_id=device_id,
            date=self._stamp(),
            channel_results=to_channel_results(diagnosed),
        )
        return await self.cache.save(RecordKind.MEASUREMENT, record)

    # ------------------------------------------------------------------------------
    # record browsing
    # ------------------------------------------------------------------------------

    async def browse(
        self, kind: RecordKind, state: QueryState, force_refresh: bool = False
    ) -> Page:
        records = await self.cache.get(kind, force_refresh)
        return state.view(records)

    async def delete_record(self, kind: RecordKind, device_id: str) -> bool:
        return await self.cache.delete(kind, device_id)

"""Electrode diagnosis from raw readings and a bank calibration.

For each channel with a reading, the raw value is compared against the raw
values of the bank's calibration points (inclusive bounds):

- below the "min" point -> SHORT, displayed as ``SHORT (<calibrated:.1f>)``
- above the "max" point -> OPEN, displayed as ``OPEN (<calibrated:.1f>)``
- otherwise             -> NORMAL, displayed as the calibrated value truncated
  to an integer

Where a bank has no usable calibration the caller's default thresholds give
the range classification, but no calibrated value exists, so the channel is
reported as UNCALIBRATED.

Which calibration is used (a stored record, the in-session picks, or the
record with the session as fallback) is always chosen by the caller through
`CalibrationSource`.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Mapping, Optional

from loguru import logger

from impscope.calib import BankCalibration
from impscope.types import Bank, CalibrationRecord, resolve
from impscope.util.defaults import DEFAULT_MAX_THRESHOLD, DEFAULT_MIN_THRESHOLD

if TYPE_CHECKING:
    from impscope.calib import CalibrationEngine
    from impscope.meas.store import MeasurementStore


class ElectrodeStatus(str, Enum):
    NORMAL = "NORMAL"
    SHORT = "SHORT"
    OPEN = "OPEN"
    UNCALIBRATED = "UNCALIBRATED"


# display markers written by earlier app versions
_LEGACY_SHORT = "쇼트"
_LEGACY_OPEN = "오픈"


@dataclass(frozen=True)
class DiagnosisDefaults:
    min_threshold: float = DEFAULT_MIN_THRESHOLD
    max_threshold: float = DEFAULT_MAX_THRESHOLD


@dataclass(frozen=True)
class DiagnosedChannel:
    channel: int
    raw_value: float
    calibrated_value: Optional[float]
    status: ElectrodeStatus
    display_text: str
    reference_value: int
    # classification against the thresholds alone, also set when uncalibrated
    range_status: ElectrodeStatus = ElectrodeStatus.NORMAL


class CalibrationSource:
    """Bank calibrations to diagnose with, and where they came from."""

    def __init__(self, banks: Mapping[Bank, BankCalibration], label: str):
        self._banks = {bank: banks.get(bank, BankCalibration()) for bank in Bank}
        self.label = label

    def __repr__(self):
        valid = ", ".join(f"{b.value}={c.is_valid}" for b, c in self._banks.items())
        return f"CalibrationSource({self.label}: {valid})"

    def bank(self, bank: Bank) -> BankCalibration:
        return self._banks[Bank(bank)]

    @property
    def is_usable(self) -> bool:
        return any(cal.is_valid for cal in self._banks.values())

    @classmethod
    def from_session(cls, engine: CalibrationEngine) -> CalibrationSource:
        return cls({bank: engine.snapshot(bank) for bank in Bank}, "session")

    @classmethod
    def from_record(cls, record: CalibrationRecord) -> CalibrationSource:
        return cls(
            {
                Bank.A: BankCalibration.from_stored(record.bank_a),
                Bank.B: BankCalibration.from_stored(record.bank_b),
            },
            f"record {record.device_id} @ {record.date}",
        )

    @classmethod
    def prefer_record(
        cls, record: Optional[CalibrationRecord], engine: CalibrationEngine
    ) -> CalibrationSource:
        """Per bank: the record's calibration if valid, else the session's."""
        session = cls.from_session(engine)
        if record is None:
            return session
        stored = cls.from_record(record)
        banks = {}
        for bank in Bank:
            banks[bank] = (
                stored.bank(bank) if stored.bank(bank).is_valid else session.bank(bank)
            )
        return cls(banks, f"{stored.label}, session fallback")


def _range_status(raw: float, lo: float, hi: float) -> ElectrodeStatus:
    if raw < lo:
        return ElectrodeStatus.SHORT
    if raw > hi:
        return ElectrodeStatus.OPEN
    return ElectrodeStatus.NORMAL


def diagnose_channel(
    channel: int,
    raw_value: float,
    calibration: BankCalibration,
    defaults: DiagnosisDefaults = DiagnosisDefaults(),
) -> DiagnosedChannel:
    info = resolve(channel)
    if calibration.is_valid:
        lo = calibration.min_point.raw_value
        hi = calibration.max_point.raw_value
    else:
        lo = defaults.min_threshold
        hi = defaults.max_threshold
    range_status = _range_status(raw_value, lo, hi)

    calibrated = calibration.apply(raw_value)
    if calibrated is None:
        return DiagnosedChannel(
            channel=channel,
            raw_value=raw_value,
            calibrated_value=None,
            status=ElectrodeStatus.UNCALIBRATED,
            display_text=ElectrodeStatus.UNCALIBRATED.value,
            reference_value=info.reference_value,
            range_status=range_status,
        )

    match range_status:
        case ElectrodeStatus.SHORT:
            text = f"SHORT ({calibrated:.1f})"
        case ElectrodeStatus.OPEN:
            text = f"OPEN ({calibrated:.1f})"
        case _:
            text = str(int(calibrated))
    return DiagnosedChannel(
        channel=channel,
        raw_value=raw_value,
        calibrated_value=calibrated,
        status=range_status,
        display_text=text,
        reference_value=info.reference_value,
        range_status=range_status,
    )


def _is_finite_number(value) -> bool:
    return (
        not isinstance(value, bool)
        and isinstance(value, (int, float))
        and math.isfinite(value)
    )


class DiagnosisEngine:
    """Classifies every measured channel; stateless apart from its defaults."""

    def __init__(self, defaults: DiagnosisDefaults = DiagnosisDefaults()):
        self.defaults = defaults

    def diagnose(
        self,
        measurements: MeasurementStore | Mapping[int, float],
        source: CalibrationSource,
        defaults: Optional[DiagnosisDefaults] = None,
    ) -> list[DiagnosedChannel]:
        if defaults is None:
            defaults = self.defaults
        if hasattr(measurements, "readings"):
            readings = measurements.readings()
        else:
            readings = dict(measurements)
        bad = [ch for ch, raw in readings.items() if not _is_finite_number(raw)]
        if bad:
            logger.warning("Skipping non-numeric or non-finite readings on channels {}.", bad)
            readings = {ch: raw for ch, raw in readings.items() if ch not in bad}

        if not source.is_usable:
            logger.warning("Diagnosing with no usable calibration ({}).", source)

        results = [
            diagnose_channel(ch, raw, source.bank(resolve(ch).bank), defaults)
            for ch, raw in sorted(readings.items())
        ]
        logger.info(
            "Diagnosed {} channels with {}: {}",
            len(results),
            source.label,
            summarize(to_channel_results(results)),
        )
        return results


def to_channel_results(diagnosed: list[DiagnosedChannel]) -> dict[str, str]:
    """Persisted form: zero-based channel index (as text) -> display text."""
    return {str(d.channel - 1): d.display_text for d in diagnosed}


@dataclass(frozen=True)
class StatusSummary:
    normal: int = 0
    short: int = 0
    open: int = 0
    other: int = 0

    @property
    def total(self) -> int:
        return self.normal + self.short + self.open + self.other


def classify_text(text: str) -> ElectrodeStatus:
    """Status of a stored display text."""
    if text.startswith(ElectrodeStatus.SHORT.value) or _LEGACY_SHORT in text:
        return ElectrodeStatus.SHORT
    if text.startswith(ElectrodeStatus.OPEN.value) or _LEGACY_OPEN in text:
        return ElectrodeStatus.OPEN
    try:
        float(text)
    except ValueError:
        return ElectrodeStatus.UNCALIBRATED
    return ElectrodeStatus.NORMAL


def summarize(channel_results: Mapping[str, str]) -> StatusSummary:
    counts = {status: 0 for status in ElectrodeStatus}
    for text in channel_results.values():
        counts[classify_text(text)] += 1
    return StatusSummary(
        normal=counts[ElectrodeStatus.NORMAL],
        short=counts[ElectrodeStatus.SHORT],
        open=counts[ElectrodeStatus.OPEN],
        other=counts[ElectrodeStatus.UNCALIBRATED],
    )

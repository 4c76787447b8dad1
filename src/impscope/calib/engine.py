"""Two-point linear calibration per channel bank.

The user picks two samples off a bank's chart (raw impedance against
reference frequency). The first pick is the "min" point, the second the
"max" point, a third pick clears both. Roles follow pick order, not value:
a numerically larger first pick stays the "min" point.

The calibration line maps reference frequency to raw value:

    slope     = (max.raw - min.raw) / (max.ref - min.ref)
    intercept = min.raw - slope * min.ref
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Optional

from loguru import logger

from impscope.types import Bank, StoredBankCalibration, resolve

if TYPE_CHECKING:
    from impscope.meas.store import MeasurementStore


class SelectionState(str, Enum):
    IDLE = "IDLE"
    MIN_SET = "MIN_SET"
    MAX_SET = "MAX_SET"


_TRANSITIONS = {
    SelectionState.IDLE: SelectionState.MIN_SET,
    SelectionState.MIN_SET: SelectionState.MAX_SET,
    SelectionState.MAX_SET: SelectionState.IDLE,
}


def next_state(state: SelectionState) -> SelectionState:
    return _TRANSITIONS[state]


class CalibrationStatus(str, Enum):
    COMPLETE = "COMPLETE"
    INCOMPLETE = "INCOMPLETE"  # one or both points unset
    DEGENERATE = "DEGENERATE"  # both points share a reference value


@dataclass(frozen=True)
class CalibrationPoint:
    raw_value: float
    reference_value: float


@dataclass(frozen=True)
class BankCalibration:
    """Derived calibration of one bank.

    `slope` and `intercept` are only set when `status` is COMPLETE.
    """

    min_point: Optional[CalibrationPoint] = None
    max_point: Optional[CalibrationPoint] = None
    slope: Optional[float] = None
    intercept: Optional[float] = None
    status: CalibrationStatus = CalibrationStatus.INCOMPLETE

    @property
    def is_valid(self) -> bool:
        return self.status is CalibrationStatus.COMPLETE

    @classmethod
    def from_points(
        cls,
        min_point: Optional[CalibrationPoint],
        max_point: Optional[CalibrationPoint],
    ) -> BankCalibration:
        if min_point is None or max_point is None:
            return cls(min_point, max_point, status=CalibrationStatus.INCOMPLETE)
        denom = max_point.reference_value - min_point.reference_value
        if denom == 0:
            return cls(min_point, max_point, status=CalibrationStatus.DEGENERATE)
        slope = (max_point.raw_value - min_point.raw_value) / denom
        intercept = min_point.raw_value - slope * min_point.reference_value
        return cls(
            min_point,
            max_point,
            slope=slope,
            intercept=intercept,
            status=CalibrationStatus.COMPLETE,
        )

    def apply(self, raw_value: float) -> Optional[float]:
        """Calibrated value of a raw reading, None if not calibrated."""
        if not self.is_valid:
            return None
        return self.slope * raw_value + self.intercept

    def to_stored(self) -> StoredBankCalibration:
        # a bank is persisted fully set or fully unset
        if not self.is_valid:
            return StoredBankCalibration()
        return StoredBankCalibration(
            min=self.min_point.raw_value,
            max=self.max_point.raw_value,
            ref_min=self.min_point.reference_value,
            ref_max=self.max_point.reference_value,
            slope=self.slope,
            intercept=self.intercept,
        )

    @classmethod
    def from_stored(cls, stored: StoredBankCalibration) -> BankCalibration:
        """Rebuild from a persisted bank; slope/intercept are re-derived."""
        if not stored.has_points:
            if not stored.is_empty:
                logger.warning("Ignoring partially stored bank calibration {}", stored)
            return cls()
        calib = cls.from_points(
            CalibrationPoint(stored.min, stored.ref_min),
            CalibrationPoint(stored.max, stored.ref_max),
        )
        if (
            calib.is_valid
            and stored.slope is not None
            and abs(stored.slope - calib.slope) > 1e-6 * max(1.0, abs(calib.slope))
        ):
            logger.warning(
                "Stored slope {} disagrees with its points (derived {}).",
                stored.slope,
                calib.slope,
            )
        return calib


class _BankSelection:
    __slots__ = ("state", "min_point", "max_point")

    def __init__(self):
        self.state = SelectionState.IDLE
        self.min_point: Optional[CalibrationPoint] = None
        self.max_point: Optional[CalibrationPoint] = None


class CalibrationEngine:
    """Per-bank point selection and slope/intercept derivation."""

    def __init__(self):
        self._banks = {bank: _BankSelection() for bank in Bank}

    def state(self, bank: Bank) -> SelectionState:
        return self._banks[Bank(bank)].state

    def select_point(
        self, bank: Bank, raw_value: float, reference_value: float
    ) -> SelectionState:
        """Apply one pick to `bank` and return the new selection state."""
        sel = self._banks[Bank(bank)]
        point = CalibrationPoint(float(raw_value), float(reference_value))
        match sel.state:
            case SelectionState.IDLE:
                sel.min_point = point
            case SelectionState.MIN_SET:
                sel.max_point = point
                if sel.max_point.raw_value < sel.min_point.raw_value:
                    logger.warning(
                        "Bank {}: 'min' pick {} is larger than 'max' pick {}; "
                        "keeping pick order.",
                        Bank(bank).value,
                        sel.min_point.raw_value,
                        sel.max_point.raw_value,
                    )
            case SelectionState.MAX_SET:
                sel.min_point = None
                sel.max_point = None
        sel.state = next_state(sel.state)
        logger.debug("Bank {} selection -> {}", Bank(bank).value, sel.state.value)
        return sel.state

    def select_sample(
        self, bank: Bank, store: MeasurementStore, channel: int
    ) -> SelectionState:
        """Pick the chart sample of `channel` as the next point of `bank`."""
        info = resolve(channel)
        if info.bank is not Bank(bank):
            raise ValueError(f"Channel {channel} is not in bank {Bank(bank).value}")
        raw = store.get(channel)
        if raw is None:
            raise KeyError(f"No reading for channel {channel}")
        return self.select_point(bank, raw, info.reference_value)

    def compute(self, bank: Bank) -> BankCalibration:
        sel = self._banks[Bank(bank)]
        return BankCalibration.from_points(sel.min_point, sel.max_point)

    def snapshot(self, bank: Bank) -> BankCalibration:
        return self.compute(bank)

    def reset(self, bank: Bank) -> None:
        self._banks[Bank(bank)] = _BankSelection()

    def reset_all(self) -> None:
        for bank in Bank:
            self.reset(bank)

    @property
    def is_valid(self) -> bool:
        """Both banks hold a complete, non-degenerate calibration."""
        return all(self.compute(bank).is_valid for bank in Bank)

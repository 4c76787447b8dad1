"""
Two-point calibration of the electrode banks.

See Also
--------
impscope.calib.engine : Selection state machine and slope/intercept derivation
impscope.meas.diagnosis : Uses bank calibrations to classify electrodes
"""

from .engine import (
    BankCalibration,
    CalibrationEngine,
    CalibrationPoint,
    CalibrationStatus,
    SelectionState,
    next_state,
)

__all__ = [
    "BankCalibration",
    "CalibrationEngine",
    "CalibrationPoint",
    "CalibrationStatus",
    "SelectionState",
    "next_state",
]

"""Persisted record types.

Records are immutable once created; a record is identified by
``(device_id, date)``. Serialization to and from plain dicts goes through
mashumaro, with ``None`` as the explicit marker for a missing numeric value
(a missing slope must never read back as a zero slope).
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Union

from mashumaro import DataClassDictMixin


class RecordKind(str, Enum):
    CALIBRATION = "calibration"
    MEASUREMENT = "measurement"


@dataclass(frozen=True)
class StoredBankCalibration(DataClassDictMixin):
    """A bank calibration as persisted.

    Either all fields are set or none are; see
    `impscope.calib.engine.BankCalibration.to_stored`.
    """

    min: float | None = None
    max: float | None = None
    ref_min: float | None = None
    ref_max: float | None = None
    slope: float | None = None
    intercept: float | None = None

    @classmethod
    def __pre_deserialize__(cls, d: dict) -> dict:
        # older documents stored every numeric field as text, "" when unset
        out = {}
        for key, val in d.items():
            if isinstance(val, str):
                try:
                    val = float(val) if val.strip() else None
                except ValueError:
                    val = None
            if isinstance(val, float) and not math.isfinite(val):
                val = None
            out[key] = val
        return out

    @property
    def is_empty(self) -> bool:
        return all(
            getattr(self, name) is None
            for name in ("min", "max", "ref_min", "ref_max", "slope", "intercept")
        )

    @property
    def has_points(self) -> bool:
        return None not in (self.min, self.max, self.ref_min, self.ref_max)


@dataclass(frozen=True, kw_only=True)
class CalibrationRecord(DataClassDictMixin):
    device_id: str
    date: str
    bank_a: StoredBankCalibration = field(default_factory=StoredBankCalibration)
    bank_b: StoredBankCalibration = field(default_factory=StoredBankCalibration)
    raw_samples: list[float] = field(default_factory=list)

    kind = RecordKind.CALIBRATION

    @property
    def key(self) -> tuple[str, str]:
        return (self.device_id, self.date)


@dataclass(frozen=True, kw_only=True)
class MeasurementRecord(DataClassDictMixin):
    device_id: str
    date: str
    # "<channel - 1>" -> display text, e.g. {"0": "1234", "1": "SHORT (1.6)"}
    channel_results: dict[str, str] = field(default_factory=dict)

    kind = RecordKind.MEASUREMENT

    @property
    def key(self) -> tuple[str, str]:
        return (self.device_id, self.date)


Record = Union[CalibrationRecord, MeasurementRecord]

RECORD_TYPES: dict[RecordKind, type] = {
    RecordKind.CALIBRATION: CalibrationRecord,
    RecordKind.MEASUREMENT: MeasurementRecord,
}


def record_from_dict(kind: RecordKind, data: dict) -> Record:
    return RECORD_TYPES[RecordKind(kind)].from_dict(data)

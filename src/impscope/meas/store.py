from __future__ import annotations

from typing import Mapping, Optional

import numpy as np
from loguru import logger

from impscope.types import (
    N_CHANNELS,
    Bank,
    OutOfRange,
    ValidationError,
    channels_in,
    is_valid_channel,
    resolve,
    validate_readings,
)


class MeasurementStore:
    """Raw per-channel readings of the active measurement session.

    Filled by the transport's delivery callback when a session completes and
    cleared when the next session starts. Holds no other logic.
    """

    def __init__(self):
        self._readings: dict[int, float] = {}

    def __len__(self) -> int:
        return len(self._readings)

    def __contains__(self, channel) -> bool:
        return channel in self._readings

    @property
    def is_complete(self) -> bool:
        """All 32 channels reported."""
        return len(self._readings) == N_CHANNELS

    def clear(self) -> None:
        self._readings.clear()

    def ingest(self, channel: int, raw_value: float) -> None:
        if not is_valid_channel(channel):
            raise OutOfRange(channel)
        is_valid, msg = validate_readings({channel: raw_value})
        if not is_valid:
            logger.error("Rejected reading: {}", msg)
            raise ValidationError(msg)
        self._readings[channel] = float(raw_value)

    def ingest_all(self, readings: Mapping[int, float]) -> None:
        """Replace the buffer with a completed session's readings.

        Nothing is written if any channel or value is invalid.
        """
        is_valid, msg = validate_readings(readings)
        if not is_valid:
            logger.error("Rejected session readings: {}", msg)
            bad = [ch for ch in readings if not is_valid_channel(ch)]
            if bad:
                raise OutOfRange(bad[0])
            raise ValidationError(msg)
        self._readings = {ch: float(val) for ch, val in readings.items()}
        logger.debug("Ingested {} channel readings.", len(self._readings))

    def get(self, channel: int) -> Optional[float]:
        return self._readings.get(channel)

    def readings(self) -> dict[int, float]:
        return dict(sorted(self._readings.items()))

    def bank_readings(self, bank: Bank) -> dict[int, float]:
        return {
            ch: self._readings[ch] for ch in channels_in(bank) if ch in self._readings
        }

    def bank_series(self, bank: Bank) -> tuple[np.ndarray, np.ndarray]:
        """Chart series of a bank: (reference frequencies, raw values).

        Only channels with a reading are included, in channel order.
        """
        chans = list(self.bank_readings(bank))
        freqs = np.array([resolve(ch).reference_value for ch in chans], dtype=float)
        raws = np.array([self._readings[ch] for ch in chans], dtype=float)
        return freqs, raws

    def dense_samples(self) -> list[float]:
        """All 32 readings in channel order, 0.0 where a channel is missing."""
        return [self._readings.get(ch, 0.0) for ch in range(1, N_CHANNELS + 1)]

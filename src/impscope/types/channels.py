"""Channel to bank / reference frequency lookup.

The 32 electrode channels are split in two banks of 16 that share one
reference table. The reference axis is the stimulation frequency (Hz) of the
channel's position in its bank; it is the independent variable of the
two-point calibration.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from .errors import OutOfRange

N_CHANNELS = 32
CHANNELS_PER_BANK = 16

REFERENCE_FREQUENCIES: tuple[int, ...] = (
    300,
    500,
    1000,
    1500,
    2000,
    2500,
    3000,
    4000,
    5000,
    6000,
    7000,
    8000,
    9000,
    10000,
    12000,
    15000,
)


class Bank(str, Enum):
    """Channel bank. A holds channels 1-16, B holds 17-32."""

    A = "A"
    B = "B"

    @property
    def first_channel(self) -> int:
        return 1 if self is Bank.A else CHANNELS_PER_BANK + 1


@dataclass(frozen=True)
class ChannelInfo:
    channel: int
    bank: Bank
    position_in_bank: int
    reference_value: int  # Hz


def is_valid_channel(channel) -> bool:
    return (
        isinstance(channel, int)
        and not isinstance(channel, bool)
        and 1 <= channel <= N_CHANNELS
    )


def resolve(channel: int) -> ChannelInfo:
    """Look up bank, in-bank position and reference frequency of a channel.

    Raises
    ------
    OutOfRange
        If `channel` is not an integer in 1..32.
    """
    if not is_valid_channel(channel):
        raise OutOfRange(channel)
    position = ((channel - 1) % CHANNELS_PER_BANK) + 1
    bank = Bank.A if channel <= CHANNELS_PER_BANK else Bank.B
    return ChannelInfo(
        channel=channel,
        bank=bank,
        position_in_bank=position,
        reference_value=REFERENCE_FREQUENCIES[position - 1],
    )


def channels_in(bank: Bank) -> list[int]:
    start = bank.first_channel
    return list(range(start, start + CHANNELS_PER_BANK))

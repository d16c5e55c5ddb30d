"""Telemetry frame layout, frame definer and frame checksum."""

from __future__ import annotations

import struct
from dataclasses import dataclass
from enum import IntEnum

FRAME_LABEL = 0x0FF1
FRAME_SIZE = 64
DATA_SIZE = 52
CRC16_INIT = 0x1D0F

# label, definer, num, time, data, crc16 -- 2-byte packing, little-endian
_LAYOUT = struct.Struct("<HHHI52sH")


class FrameModification(IntEnum):
    """Layout variant of the frame definer word."""

    HUGE_SYSTEMS = 0
    SMALL_SERIES = 1


def _make_table(poly: int) -> tuple[int, ...]:
    table = []
    for byte in range(256):
        crc = byte << 8
        for _ in range(8):
            crc = ((crc << 1) ^ poly) if crc & 0x8000 else (crc << 1)
            crc &= 0xFFFF
        table.append(crc)
    return tuple(table)


_CRC_TABLE = _make_table(0x1021)


def frame_definer(modification: int, device_number: int, fabrication_num: int, frame_type: int) -> int:
    """Build the 16-bit frame definer word.

    Raises ValueError for an unknown modification.
    """
    if modification == FrameModification.HUGE_SYSTEMS:
        return (
            ((modification & 0x3) << 14)
            | ((device_number & 0x03FF) << 4)
            | (frame_type & 0xF)
        )
    if modification == FrameModification.SMALL_SERIES:
        return (
            ((modification & 0x3) << 14)
            | ((device_number & 0x0F) << 10)
            | ((fabrication_num & 0x7F) << 3)
            | (frame_type & 0x07)
        )
    raise ValueError(f"unknown frame modification: {modification}")


def frame_crc16(data: bytes) -> int:
    """CCITT CRC-16 (init 0x1D0F) over 16-bit little-endian words, high byte first."""
    data = bytes(data)
    if len(data) % 2:
        raise ValueError("frame checksum needs an even number of bytes")
    crc = CRC16_INIT
    for high, low in zip(data[1::2], data[0::2]):
        for byte in (high, low):
            crc = ((crc << 8) & 0xFFFF) ^ _CRC_TABLE[((crc >> 8) ^ byte) & 0xFF]
    return crc


def swap_halfwords(value: int) -> int:
    """Exchange the two 16-bit halves of a 32-bit word."""
    return ((value & 0xFFFF) << 16) | ((value >> 16) & 0xFFFF)


@dataclass
class Frame:
    """A 64-byte system frame."""

    label: int = FRAME_LABEL
    definer: int = 0
    num: int = 0
    time: int = 0
    data: bytes = bytes(DATA_SIZE)
    crc16: int = 0

    def __post_init__(self) -> None:
        data = bytes(self.data)
        if len(data) > DATA_SIZE:
            raise ValueError(f"frame data is limited to {DATA_SIZE} bytes")
        self.data = data.ljust(DATA_SIZE, b"\x00")

    def pack(self) -> bytes:
        """Return the 64-byte wire image of the frame."""
        return _LAYOUT.pack(
            self.label & 0xFFFF,
            self.definer & 0xFFFF,
            self.num & 0xFFFF,
            self.time & 0xFFFFFFFF,
            bytes(self.data).ljust(DATA_SIZE, b"\x00")[:DATA_SIZE],
            self.crc16 & 0xFFFF,
        )

    @classmethod
    def from_bytes(cls, data: bytes) -> "Frame":
        """Decode a 64-byte frame image."""
        data = bytes(data)
        if len(data) != FRAME_SIZE:
            raise ValueError(f"a frame is {FRAME_SIZE} bytes, got {len(data)}")
        label, definer, num, time, payload, crc16 = _LAYOUT.unpack(data)
        return cls(label=label, definer=definer, num=num, time=time, data=payload, crc16=crc16)

    def seal(self) -> int:
        """Compute and store the checksum over everything but the checksum field."""
        self.crc16 = frame_crc16(self.pack()[:-2])
        return self.crc16

    def is_valid(self) -> bool:
        """True when the label is right and the checksum holds."""
        return self.label == FRAME_LABEL and frame_crc16(self.pack()) == 0

    def frame_type(self) -> int:
        """Frame type taken from the definer; ValueError for an invalid frame."""
        if not self.is_valid():
            raise ValueError("invalid frame")
        modification = (self.definer >> 14) & 0x03
        if modification == FrameModification.HUGE_SYSTEMS:
            return self.definer & 0x0F
        if modification == FrameModification.SMALL_SERIES:
            return self.definer & 0x07
        raise ValueError(f"unknown frame modification: {modification}")
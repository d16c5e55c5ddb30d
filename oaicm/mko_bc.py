"""MIL-STD-1553 bus controller: command words, transfer results and bus selection."""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum

BUS_A = 0
BUS_B = 1

MODE_WRITE = 0
MODE_READ = 1

MAX_WORDS = 32


class TransferResult(IntEnum):
    """Transfer status reported by the bus controller descriptor."""

    SUCCESS = 0
    RT_NANSW = 1
    RT2_NANSW = 2
    ERROR_BITS = 3
    PROTOCOL_ERR = 4
    DESC_ERR = 5
    DMA_ERR = 6
    LB_ERR = 7


@dataclass
class CommandWord:
    """A 16-bit command word: address, direction, subaddress and word count."""

    addr: int = 0
    rd_wr: int = MODE_WRITE
    sub_addr: int = 0
    leng: int = 0

    def encode(self) -> int:
        """Pack the fields into a 16-bit command word."""
        return (
            ((self.addr & 0x1F) << 11)
            | ((self.rd_wr & 0x01) << 10)
            | ((self.sub_addr & 0x1F) << 5)
            | (self.leng & 0x1F)
        )

    @classmethod
    def decode(cls, value: int) -> "CommandWord":
        """Split a 16-bit command word into its fields."""
        value &= 0xFFFF
        return cls(
            addr=(value >> 11) & 0x1F,
            rd_wr=(value >> 10) & 0x01,
            sub_addr=(value >> 5) & 0x1F,
            leng=value & 0x1F,
        )

    def word_count(self) -> int:
        """Number of data words carried; a length field of 0 means 32."""
        count = self.leng & 0x1F
        return MAX_WORDS if count == 0 else count

    @property
    def is_read(self) -> bool:
        """True when the terminal is asked to transmit data to the controller."""
        return (self.rd_wr & 0x01) == MODE_READ


@dataclass(frozen=True)
class DescResult:
    """Decoded result word of a bus controller descriptor."""

    tfrst: TransferResult = TransferResult.SUCCESS
    retcnt: int = 0
    rtst: int = 0
    rt2st: int = 0
    flg0: int = 0

    @classmethod
    def decode(cls, value: int) -> "DescResult":
        """Split a 32-bit descriptor result word into its fields."""
        value &= 0xFFFFFFFF
        return cls(
            tfrst=TransferResult(value & 0x07),
            retcnt=(value >> 4) & 0x0F,
            rtst=(value >> 8) & 0xFF,
            rt2st=(value >> 16) & 0xFF,
            flg0=(value >> 31) & 0x01,
        )

    @property
    def success(self) -> bool:
        """True when the transfer completed without error."""
        return self.tfrst == TransferResult.SUCCESS


class BusSelector:
    """Tracks which of the two redundant buses is used."""

    def __init__(self, bus: int = BUS_A) -> None:
        self.used_bus = BUS_A
        self.set_bus(bus)

    def set_bus(self, bus: int) -> int:
        """Select bus A for an even value, bus B for an odd one; return the selection."""
        self.used_bus = BUS_A if (bus & 0x01) == 0 else BUS_B
        return self.used_bus

    def change_bus(self) -> int:
        """Switch to the other bus and return it."""
        self.used_bus = BUS_B if self.used_bus == BUS_A else BUS_A
        return self.used_bus
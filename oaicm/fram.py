"""Frame storage on an array of SPI FRAM chips."""

from __future__ import annotations

from typing import Protocol

USED_CHIP_NUMBER = 2
MEM_NUMBER = 6
VOLUME_B = 0x40000
FRAME_VOLUME_B = 64
VOLUME_FRAMES = VOLUME_B // FRAME_VOLUME_B

CMD_WREN = 0x06
CMD_WRITE = 0x02
CMD_READ = 0x03


class FramAddressError(ValueError):
    """The requested address lies outside the usable memory."""


class _ChipBus(Protocol):
    def transfer(self, chip: int, data: bytes) -> bytes:
        """Exchange bytes with one chip inside a single chip-select window."""


def locate_frame(addr_fr: int) -> tuple[int, int]:
    """Map a frame number to (chip, byte address within the chip)."""
    if addr_fr < 0:
        raise FramAddressError(f"negative frame address {addr_fr}")
    chip, address = divmod(addr_fr * FRAME_VOLUME_B, VOLUME_B)
    if chip >= USED_CHIP_NUMBER:
        raise FramAddressError(f"frame {addr_fr} is beyond chip {USED_CHIP_NUMBER - 1}")
    return chip, address


class FramArray:
    """Byte and frame access to FRAM chips behind a chip-select SPI bus."""

    def __init__(self, bus: _ChipBus) -> None:
        self.bus = bus

    @staticmethod
    def _header(command: int, chip: int, address: int) -> bytes:
        if not 0 <= chip < MEM_NUMBER:
            raise FramAddressError(f"no chip number {chip}")
        if not 0 <= address <= 0xFFFFFF:
            raise FramAddressError(f"address {address:#x} does not fit 24 bits")
        return bytes([command]) + address.to_bytes(3, "big")

    def write(self, chip: int, address: int, data: bytes) -> None:
        """Enable writing and store data at a byte address of one chip."""
        header = self._header(CMD_WRITE, chip, address)
        self.bus.transfer(chip, bytes([CMD_WREN]))
        self.bus.transfer(chip, header + bytes(data))

    def read(self, chip: int, address: int, length: int) -> bytes:
        """Read length bytes from a byte address of one chip."""
        header = self._header(CMD_READ, chip, address)
        reply = self.bus.transfer(chip, header + bytes(length))
        return bytes(reply[len(header):len(header) + length])

    def write_frame(self, addr_fr: int, data: bytes) -> None:
        """Store one 64-byte frame at a frame address."""
        data = bytes(data)
        if len(data) != FRAME_VOLUME_B:
            raise ValueError(f"a frame is {FRAME_VOLUME_B} bytes, got {len(data)}")
        chip, address = locate_frame(addr_fr)
        self.write(chip, address, data)

    def read_frame(self, addr_fr: int) -> bytes:
        """Read one 64-byte frame from a frame address."""
        chip, address = locate_frame(addr_fr)
        return self.read(chip, address, FRAME_VOLUME_B)
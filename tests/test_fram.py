import pytest
from hypothesis import given, strategies as st

from oaicm.fram import (
    FRAME_VOLUME_B,
    VOLUME_FRAMES,
    FramAddressError,
    FramArray,
    locate_frame,
)


class FramChips:
    """Emulated FRAM chips speaking WREN/WRITE/READ."""

    def __init__(self, chips=6, size=0x40000):
        self.memory = [bytearray(size) for _ in range(chips)]
        self.wel = [False] * chips
        self.transfers = []

    def transfer(self, chip, out):
        out = bytes(out)
        self.transfers.append((chip, out))
        command = out[0]
        if command == 0x06:
            self.wel[chip] = True
            return bytes(len(out))
        address = int.from_bytes(out[1:4], "big")
        if command == 0x02:
            if self.wel[chip]:
                payload = out[4:]
                self.memory[chip][address:address + len(payload)] = payload
                self.wel[chip] = False
            return bytes(len(out))
        if command == 0x03:
            length = len(out) - 4
            return bytes(4) + bytes(self.memory[chip][address:address + length])
        raise AssertionError("unknown command")


def test_write_wire_sequence():
    chips = FramChips()
    fram = FramArray(chips)
    fram.write(1, 0x012345, b"\xAA\xBB")
    assert chips.transfers == [(1, b"\x06"), (1, b"\x02\x01\x23\x45\xAA\xBB")]


def test_read_wire_sequence():
    chips = FramChips()
    chips.memory[0][0x10:0x13] = b"abc"
    fram = FramArray(chips)
    assert fram.read(0, 0x10, 3) == b"abc"
    assert chips.transfers == [(0, b"\x03\x00\x00\x10\x00\x00\x00")]


def test_locate_frame_boundaries():
    assert locate_frame(0) == (0, 0)
    assert locate_frame(1) == (0, FRAME_VOLUME_B)
    assert locate_frame(VOLUME_FRAMES) == (1, 0)
    assert locate_frame(2 * VOLUME_FRAMES - 1)[0] == 1


def test_locate_frame_out_of_range():
    with pytest.raises(FramAddressError):
        locate_frame(2 * VOLUME_FRAMES)
    with pytest.raises(FramAddressError):
        locate_frame(-1)


def test_frame_on_second_chip():
    chips = FramChips()
    fram = FramArray(chips)
    frame = bytes(range(64))
    fram.write_frame(VOLUME_FRAMES + 2, frame)
    assert chips.memory[1][128:192] == frame
    assert fram.read_frame(VOLUME_FRAMES + 2) == frame


def test_write_frame_wrong_size():
    fram = FramArray(FramChips())
    with pytest.raises(ValueError):
        fram.write_frame(0, b"\x00" * 10)


def test_bad_chip_number():
    fram = FramArray(FramChips())
    with pytest.raises(FramAddressError):
        fram.read(6, 0, 1)


def test_read_frame_beyond_memory():
    fram = FramArray(FramChips())
    with pytest.raises(FramAddressError):
        fram.read_frame(2 * VOLUME_FRAMES)


@given(
    st.integers(min_value=0, max_value=2 * VOLUME_FRAMES - 1),
    st.binary(min_size=64, max_size=64),
)
def test_frame_round_trip(addr_fr, frame):
    fram = FramArray(FramChips(chips=6, size=0x40000))
    fram.write_frame(addr_fr, frame)
    assert fram.read_frame(addr_fr) == frame
import pytest
from hypothesis import given
from hypothesis import strategies as st

from oaicm.frames import (
    CRC16_INIT,
    FRAME_LABEL,
    Frame,
    FrameModification,
    frame_crc16,
    frame_definer,
    swap_halfwords,
)

even_bytes = st.binary(max_size=200).map(lambda b: b[: len(b) // 2 * 2])


def test_crc_of_empty_is_init():
    assert frame_crc16(b"") == CRC16_INIT


def test_crc_odd_length_rejected():
    with pytest.raises(ValueError):
        frame_crc16(b"\x01\x02\x03")


@given(even_bytes)
def test_crc_residual_zero(data):
    crc = frame_crc16(data)
    assert frame_crc16(data + crc.to_bytes(2, "little")) == 0


@given(even_bytes)
def test_crc_in_range(data):
    assert 0 <= frame_crc16(data) <= 0xFFFF


def test_swap_halfwords_value():
    assert swap_halfwords(0x12345678) == 0x56781234


@given(st.integers(min_value=0, max_value=0xFFFFFFFF))
def test_swap_halfwords_involution(value):
    assert swap_halfwords(swap_halfwords(value)) == value


def test_definer_small_series_mod_bits():
    assert frame_definer(1, 0, 0, 0) == 0x4000


@given(
    st.integers(min_value=0, max_value=0x3FF),
    st.integers(min_value=0, max_value=0xF),
)
def test_definer_huge_fields(device, ftype):
    d = frame_definer(FrameModification.HUGE_SYSTEMS, device, 99, ftype)
    assert d >> 14 == 0
    assert (d >> 4) & 0x3FF == device
    assert d & 0xF == ftype


@given(
    st.integers(min_value=0, max_value=0xF),
    st.integers(min_value=0, max_value=0x7F),
    st.integers(min_value=0, max_value=0x7),
)
def test_definer_small_fields(device, fab, ftype):
    d = frame_definer(FrameModification.SMALL_SERIES, device, fab, ftype)
    assert d >> 14 == 1
    assert (d >> 10) & 0xF == device
    assert (d >> 3) & 0x7F == fab
    assert d & 0x7 == ftype


def test_definer_unknown_modification():
    with pytest.raises(ValueError):
        frame_definer(2, 1, 1, 1)


def test_pack_layout():
    frame = Frame(definer=0x1234, num=7, time=0xAABBCCDD, data=b"abc")
    raw = frame.pack()
    assert len(raw) == 64
    assert raw[0:2] == FRAME_LABEL.to_bytes(2, "little")
    assert raw[10:13] == b"abc"
    assert raw[6:10] == (0xAABBCCDD).to_bytes(4, "little")


@given(
    st.integers(min_value=0, max_value=0xFFFF),
    st.integers(min_value=0, max_value=0xFFFF),
    st.integers(min_value=0, max_value=0xFFFFFFFF),
    st.binary(min_size=52, max_size=52),
)
def test_round_trip(definer, num, time, data):
    frame = Frame(definer=definer, num=num, time=time, data=data)
    frame.seal()
    assert Frame.from_bytes(frame.pack()) == frame


def test_from_bytes_wrong_size():
    with pytest.raises(ValueError):
        Frame.from_bytes(bytes(63))


def test_data_too_long():
    with pytest.raises(ValueError):
        Frame(data=bytes(53))


def test_sealed_frame_valid_and_typed():
    frame = Frame(definer=frame_definer(0, 218, 0, 5), num=3, data=b"xyz")
    frame.seal()
    assert frame.is_valid()
    assert frame.frame_type() == 5


def test_small_series_type():
    frame = Frame(definer=frame_definer(1, 3, 17, 6))
    frame.seal()
    assert frame.frame_type() == 6


def test_tampered_frame_invalid():
    frame = Frame(definer=frame_definer(0, 1, 0, 2))
    frame.seal()
    frame.num += 1
    assert not frame.is_valid()
    with pytest.raises(ValueError):
        frame.frame_type()


def test_wrong_label_invalid():
    frame = Frame(label=0x1234)
    frame.seal()
    assert not frame.is_valid()


def test_unknown_modification_type_raises():
    frame = Frame(definer=0x8000)
    frame.seal()
    assert frame.is_valid()
    with pytest.raises(ValueError):
        frame.frame_type()
import pytest
from hypothesis import given, strategies as st

from oaicm.mko_bc import (
    BUS_A,
    BUS_B,
    MODE_READ,
    MODE_WRITE,
    BusSelector,
    CommandWord,
    DescResult,
    TransferResult,
)


def test_encode_pins_field_positions():
    cw = CommandWord(addr=1, rd_wr=MODE_READ, sub_addr=2, leng=3)
    assert cw.encode() == 0x0C43


def test_encode_masks_oversized_fields():
    cw = CommandWord(addr=0x3F, rd_wr=3, sub_addr=0x3F, leng=0x3F)
    assert cw.encode() == 0xFFFF


@given(st.integers(min_value=0, max_value=0xFFFF))
def test_decode_encode_round_trip(value):
    assert CommandWord.decode(value).encode() == value


@given(
    st.integers(0, 31), st.integers(0, 1), st.integers(0, 31), st.integers(0, 31)
)
def test_encode_decode_round_trip(addr, rd_wr, sub_addr, leng):
    cw = CommandWord(addr=addr, rd_wr=rd_wr, sub_addr=sub_addr, leng=leng)
    assert CommandWord.decode(cw.encode()) == cw


def test_word_count_zero_means_32():
    assert CommandWord(leng=0).word_count() == 32


@pytest.mark.parametrize("leng", [1, 5, 31])
def test_word_count_plain(leng):
    assert CommandWord(leng=leng).word_count() == leng


def test_direction_flag():
    assert CommandWord(rd_wr=MODE_READ).is_read is True
    assert CommandWord(rd_wr=MODE_WRITE).is_read is False


def test_desc_result_zero_is_success():
    result = DescResult.decode(0)
    assert result.success is True
    assert result.flg0 == 0


def test_desc_result_busy_flag():
    assert DescResult.decode(1 << 31).flg0 == 1


@pytest.mark.parametrize("code", list(TransferResult))
def test_desc_result_transfer_code(code):
    result = DescResult.decode(int(code) | (1 << 31))
    assert result.tfrst == code
    assert result.success == (code == TransferResult.SUCCESS)


def test_desc_result_status_fields():
    result = DescResult.decode((0xAB << 8) | (0xCD << 16) | (0x5 << 4))
    assert result.rtst == 0xAB
    assert result.rt2st == 0xCD
    assert result.retcnt == 0x5


def test_set_bus_by_parity():
    sel = BusSelector()
    assert sel.set_bus(2) == BUS_A
    assert sel.set_bus(3) == BUS_B
    assert sel.used_bus == BUS_B


def test_change_bus_toggles():
    sel = BusSelector(BUS_A)
    assert sel.change_bus() == BUS_B
    assert sel.change_bus() == BUS_A


@given(st.integers(0, 255))
def test_double_change_restores(bus):
    sel = BusSelector(bus)
    before = sel.used_bus
    sel.change_bus()
    assert sel.used_bus != before
    sel.change_bus()
    assert sel.used_bus == before
"""A single switched power channel with current protection."""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import IntEnum
from typing import Optional, Protocol, Sequence, Union

PULSE_TIME_MS = 40
CTRL_TIME_MS = 500

CH_OFF = 0
CH_ON = 1


class ChannelType(IntEnum):
    """How a channel is switched on and off."""

    CTRL_NU = 0
    FLAG = 1
    PULSE = 2
    DV_CTRL = 3


class _Outputs(Protocol):
    def set(self, num: int, value: int) -> None:
        """Drive discrete output ``num`` to 0 or 1."""


class _Adc(Protocol):
    def voltage(self, channel: int) -> float:
        """Voltage measured on an ADC channel, in volts."""


@dataclass
class Timeout:
    """Millisecond countdown advanced by explicit time steps."""

    max_ms: int
    current_ms: int = 0
    flag: bool = False
    ready: bool = False

    def start(self) -> None:
        """Begin counting."""
        self.flag = True
        self.ready = False

    def process(self, interval_ms: int) -> None:
        """Advance by interval_ms; on expiry stop and mark ready."""
        if self.flag:
            self.current_ms += interval_ms
        if self.current_ms >= self.max_ms:
            self.current_ms = 0
            self.flag = False
            self.ready = True

    def busy(self) -> bool:
        """True while the countdown runs."""
        return self.flag

    def take_ready(self) -> bool:
        """Return True once after expiry, clearing the mark."""
        if self.ready:
            self.ready = False
            return True
        return False


@dataclass(frozen=True)
class FlagControl:
    """Level-controlled channel: enable and inhibit outputs."""

    adc_ch_num: int
    io_ena_num: int
    io_inh_num: int


@dataclass(frozen=True)
class PulseControl:
    """Pulse-controlled channel: separate on and off outputs."""

    adc_ch_num: int
    io_on_num: int
    io_off_num: int


@dataclass(frozen=True)
class DvControl:
    """Channel driven through four bridge outputs and one select output."""

    adc_ch_num: int
    io_a_num: int
    io_b_num: int
    io_c_num: int
    io_d_num: int
    io_e_num: int


Control = Union[FlagControl, PulseControl, DvControl]

_IO_NEEDED = {
    ChannelType.CTRL_NU: 0,
    ChannelType.FLAG: 2,
    ChannelType.PULSE: 2,
    ChannelType.DV_CTRL: 5,
}


class PowerChannel:
    """One power channel: switching, pulse timing and current monitoring.

    The current is ``curr_a * voltage + curr_b`` in mA.
    """

    def __init__(
        self,
        alias: str,
        kind: int,
        outputs: _Outputs,
        adc: _Adc,
        io_cfg: Sequence[int] = (),
        adc_ch_num: int = 0,
        auto_control: bool = False,
        hs_ch_mode: bool = False,
        current_bound_mA: float = 0.0,
        curr_a: float = 1.0,
        curr_b: float = 0.0,
    ) -> None:
        self.alias = alias
        self.kind = ChannelType(kind)
        self.outputs = outputs
        self.adc = adc
        self.adc_ch_num = adc_ch_num
        self.auto_control = bool(auto_control)
        self.hs_ch_mode = bool(hs_ch_mode)
        self.need_to_update = False
        self.state = 0
        self.status = 0
        self.half_set = 0
        self.current_bound_mA = float(current_bound_mA)
        self.curr_a = float(curr_a)
        self.curr_b = float(curr_b)
        self.current_fp_mA = 0.0
        self.current_mA = 0
        self.pulse_timeout = Timeout(PULSE_TIME_MS)
        self.ctrl_timeout = Timeout(CTRL_TIME_MS)

        io = list(io_cfg)
        needed = _IO_NEEDED[self.kind]
        if len(io) < needed:
            raise ValueError(f"{self.kind.name} channel needs {needed} outputs, got {len(io)}")
        self.control: Optional[Control] = None
        if self.kind == ChannelType.FLAG:
            self.control = FlagControl(adc_ch_num, io[0], io[1])
        elif self.kind == ChannelType.PULSE:
            self.control = PulseControl(adc_ch_num, io[0], io[1])
        elif self.kind == ChannelType.DV_CTRL:
            self.control = DvControl(adc_ch_num, *io[:5])

    def process(self, interval_ms: int) -> bool:
        """Advance timing, apply pending switching and check the current.

        Returns False when the channel has to be switched off.
        """
        self.ctrl_timeout.process(interval_ms)
        self.pulse_timeout.process(interval_ms)
        self._ctrl_process()

        voltage = self.adc.voltage(self.adc_ch_num)
        self.current_fp_mA = self.curr_a * voltage + self.curr_b
        self.current_mA = int(math.floor(self.current_fp_mA)) if self.current_fp_mA > 0 else 0

        if self.current_bound_mA != 0 and self.current_fp_mA >= self.current_bound_mA:
            self.status = 1
            if self.auto_control:
                return False
        return True

    def on_off(self, state: int) -> None:
        """Request a new on/off state, applied on the next process call."""
        self.state = int(state)
        self.need_to_update = True

    def choose_half_set(self, half_set: int) -> None:
        """Select the half-set; ignored for channels without one."""
        if self.hs_ch_mode:
            self.half_set = half_set & 0x01

    def set_current_bound(self, bound: float) -> None:
        """Set the protection bound in mA and clear the status."""
        self.current_bound_mA = float(bound)
        self.status = 0

    def busy(self) -> bool:
        """True while a switching pulse is in progress."""
        return self.pulse_timeout.busy()

    def set_dv_mask(self, abcd: int, e: int) -> None:
        """Drive the A-D outputs from a bit mask and E from a bit."""
        control = self.control
        if not isinstance(control, DvControl):
            raise ValueError(f"channel {self.alias!r} is not a DV channel")
        pins = (control.io_a_num, control.io_b_num, control.io_c_num, control.io_d_num)
        for bit, pin in enumerate(pins):
            self.outputs.set(pin, (abcd >> bit) & 0x01)
        self.outputs.set(control.io_e_num, e & 0x01)

    def _ctrl_process(self) -> None:
        control = self.control
        if self.need_to_update:
            self.need_to_update = False
            on = (self.state & 0x01) == CH_ON
            if isinstance(control, FlagControl):
                self.outputs.set(control.io_ena_num, 1 if on else 0)
                self.outputs.set(control.io_inh_num, 0 if on else 1)
            elif isinstance(control, PulseControl):
                self.outputs.set(control.io_on_num if on else control.io_off_num, 1)
                self.pulse_timeout.start()
                self.ctrl_timeout.start()
            elif isinstance(control, DvControl):
                if on:
                    mask = 0x09 if self.half_set == 0 else 0x06
                else:
                    mask = 0x03 if self.half_set == 0 else 0x0C
                self.set_dv_mask(mask, 0)
                self.pulse_timeout.start()
                self.ctrl_timeout.start()
        elif self.pulse_timeout.take_ready():
            if isinstance(control, PulseControl):
                self.outputs.set(control.io_on_num, 0)
                self.outputs.set(control.io_off_num, 0)
            elif isinstance(control, DvControl):
                self.set_dv_mask(0x00, 1)
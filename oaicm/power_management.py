"""Power manager: a set of power channels driven through a per-channel command queue."""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import IntEnum
from typing import List, Optional, Sequence

from oaicm.pwr_channel import CH_OFF, PowerChannel

PROCESS_PERIOD_MS = 100
HS_NOT_CHANGED = 0xFF
ON_OFF_DELAY_MS = 200
INIT_TIMEOUT_MS = 1000

_U64 = (1 << 64) - 1
_U32 = 0xFFFFFFFF


class CommandState(IntEnum):
    """Processing state of a queued power command."""

    IDLE = 0
    READY = 1
    PROCESS = 2


@dataclass
class PowerCommand:
    """A command for one power channel, executed after ``delay_ms``."""

    num: int
    state: int
    half_set: int = HS_NOT_CHANGED
    delay_ms: int = 0
    process_state: CommandState = CommandState.IDLE


def calc_current_coefficients(r_sh: float, r_fb: float) -> tuple[float, float]:
    """Calibration (a, b) for I[mA] = a * U[V] + b from shunt and feedback resistors."""
    return 1e6 / (r_sh * r_fb), 0.0


class CommandBuffer:
    """One command slot per channel; a newer command replaces a pending one."""

    def __init__(self, channel_count: int) -> None:
        if channel_count <= 0:
            raise ValueError("a command buffer needs at least one channel")
        self.slots: List[PowerCommand] = [PowerCommand(num=i, state=0) for i in range(channel_count)]
        self.last_cmd: Optional[PowerCommand] = None
        self.cmd_rem = 0
        self.cmd_cnt = 0
        self.cmd_lost = 0
        self.last_cmd_num = 0

    def write(self, cmd: PowerCommand) -> bool:
        """Store a command in its channel slot.

        Returns True when stored cleanly, False when a command was lost:
        a pending one overwritten, or the new one dropped because the slot
        is ready for execution. Raises IndexError for an unknown channel.
        """
        if not 0 <= cmd.num < len(self.slots):
            raise IndexError(f"no power channel {cmd.num}")
        current = self.slots[cmd.num].process_state
        if current == CommandState.IDLE:
            self.cmd_cnt += 1
            self.slots[cmd.num] = replace(cmd)
            return True
        if current == CommandState.PROCESS:
            self.cmd_cnt += 1
            self.slots[cmd.num] = replace(cmd)
            self.cmd_lost += 1
            return False
        self.cmd_lost += 1
        return False

    def read(self) -> Optional[PowerCommand]:
        """Take the next command that is ready, scanning round-robin; None if none."""
        count = len(self.slots)
        for _ in range(count):
            index = self.last_cmd_num
            if index < count and self.slots[index].process_state == CommandState.READY:
                cmd = replace(self.slots[index])
                self.last_cmd = cmd
                self.slots[index].process_state = CommandState.IDLE
                return cmd
            self.last_cmd_num = index + 1 if index < count else 0
        return None

    def process(self, interval_ms: int) -> int:
        """Count pending delays down; return the number of commands still queued."""
        remaining = 0
        for slot in self.slots:
            if slot.process_state == CommandState.PROCESS:
                if slot.delay_ms <= interval_ms:
                    slot.delay_ms = 0
                    slot.process_state = CommandState.READY
                else:
                    slot.delay_ms -= interval_ms
                remaining += 1
            elif slot.process_state == CommandState.READY:
                remaining += 1
        self.cmd_rem = remaining
        return remaining


def _per_channel(values: Optional[Sequence[int]], count: int, fill: int, name: str) -> List[int]:
    if values is None:
        return [fill] * count
    result = [int(v) for v in values]
    if len(result) != count:
        raise ValueError(f"{name} needs {count} values, got {len(result)}")
    return result


class PowerManager:
    """Drives all power channels, queues their switching and reports their state."""

    def __init__(
        self,
        channels: Sequence[PowerChannel],
        default_state: Optional[Sequence[int]] = None,
        default_half_set: Optional[Sequence[int]] = None,
        default_delay: Optional[Sequence[int]] = None,
        init_timeout_ms: int = INIT_TIMEOUT_MS,
    ) -> None:
        self.channels = list(channels)
        count = len(self.channels)
        if count == 0:
            raise ValueError("a power manager needs at least one channel")
        self._config_state = _per_channel(default_state, count, 0, "default_state")
        self._config_hs = _per_channel(default_half_set, count, 0, "default_half_set")
        self._config_delay = _per_channel(default_delay, count, 0, "default_delay")
        self.init_timeout_ms = init_timeout_ms

        self.state = 0
        self.status = 0
        self.half_set = 0
        self.global_busy = 0
        self.error_cnter = 0
        self.curr_report_fp: List[float] = [0.0] * count
        self.cmd_buffer = CommandBuffer(count)
        self.def_state: List[int] = []
        self.def_hs: List[int] = []
        self.def_delay: List[int] = []

        self.initialisation_flag = True
        self.initialisation_timeout_ms = 0
        for num in range(count):
            self.put_cmd(0, num, CH_OFF, HS_NOT_CHANGED)
        self.update_default_state()

        self.call_interval_us = 0
        self.last_call_time_us = 0

    def update_default_state(self) -> None:
        """Reload the default states, half-sets and delays from the configuration."""
        self.def_state = list(self._config_state)
        self.def_hs = list(self._config_hs)
        self.def_delay = list(self._config_delay)

    def set_default(self) -> None:
        """Queue every channel into its default state."""
        for num in range(len(self.channels)):
            self.put_cmd(self.def_delay[num], num, self.def_state[num], self.def_hs[num])

    def change_default_state(self, state: int) -> None:
        """Take default on/off states from a bit mask, bit i for channel i."""
        self.def_state = [(state >> num) & 0x01 for num in range(len(self.channels))]

    def put_cmd(self, delay_ms: int, channel: int, state: int, half_set: int = HS_NOT_CHANGED) -> None:
        """Queue a command; a lost or rejected command is counted in ``error_cnter``."""
        cmd = PowerCommand(
            num=channel & 0xFF,
            state=state & 0xFF,
            half_set=half_set & 0xFF,
            delay_ms=delay_ms & 0xFFFF,
            process_state=CommandState.PROCESS,
        )
        try:
            stored = self.cmd_buffer.write(cmd)
        except IndexError:
            stored = False
        if not stored:
            self.error_cnter = (self.error_cnter + 1) & _U32

    def get_cmd(self) -> Optional[PowerCommand]:
        """Take the next command ready for execution, or None."""
        cmd = self.cmd_buffer.read()
        if cmd is not None and cmd.process_state == CommandState.READY:
            return cmd
        return None

    def step_process(self, interval_ms: int) -> None:
        """Process every channel, then execute one queued command when none is busy."""
        for num, channel in enumerate(self.channels):
            if not channel.process(interval_ms):
                self.put_cmd(0, num, CH_OFF, HS_NOT_CHANGED)
        self.global_busy = 0
        for num, channel in enumerate(self.channels):
            self.global_busy |= int(channel.busy()) << num
        if self.global_busy:
            return
        cmd = self.get_cmd()
        if cmd is None:
            return
        if cmd.num < len(self.channels):
            channel = self.channels[cmd.num]
            if cmd.half_set != HS_NOT_CHANGED:
                channel.choose_half_set(cmd.half_set)
            channel.on_off(cmd.state)
        else:
            self.error_cnter = (self.error_cnter + 1) & _U32

    def synchronize(self) -> None:
        """Collect channel state, status and half-set into bit masks."""
        state = status = half_set = 0
        for num, channel in enumerate(self.channels):
            state |= (channel.state & 0x01) << num
            status |= (channel.status & 0x01) << num
            half_set |= (channel.half_set & 0x01) << num
        self.state = state
        self.status = status
        self.half_set = half_set

    def create_report(self) -> List[float]:
        """Copy the channel currents in mA into ``curr_report_fp`` and return it."""
        self.curr_report_fp = [channel.current_fp_mA for channel in self.channels]
        return self.curr_report_fp

    def process(self, time_us: int) -> bool:
        """Scheduler hook; runs once per period and returns whether it ran."""
        elapsed = (time_us - self.last_call_time_us) & _U64
        if elapsed <= PROCESS_PERIOD_MS * 1000:
            return False
        self.call_interval_us = elapsed
        self.last_call_time_us = time_us
        interval_ms = self.call_interval_us // 1000

        self.cmd_buffer.process(interval_ms)
        self.synchronize()
        self.create_report()
        self.step_process(interval_ms)

        if self.initialisation_flag:
            if self.initialisation_timeout_ms < self.init_timeout_ms:
                self.initialisation_timeout_ms += interval_ms
            elif self.cmd_buffer.cmd_rem == 0:
                self.initialisation_flag = False
                self.set_default()
        return True

    def on_off_by_num(self, num: int, state: int) -> None:
        """Queue switching one channel with the standard delay."""
        self.put_cmd(ON_OFF_DELAY_MS, num, state, HS_NOT_CHANGED)

    def status_reset_by_num(self, num: int) -> None:
        """Clear the fault status of one channel."""
        self.channels[num].status = 0

    def set_state(self, state: int) -> None:
        """Queue every channel to the on/off state given by its bit in ``state``."""
        for num in range(len(self.channels)):
            self.on_off_by_num(num, (state >> num) & 0x01)

    def set_bound(self, num: int, bound: int) -> None:
        """Set the current protection bound of one channel in mA."""
        self.channels[num].current_bound_mA = float(bound)
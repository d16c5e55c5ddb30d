"""MIL-STD-1553 remote terminal: subaddress memory, message log and receive FIFO."""

from __future__ import annotations

from collections import deque
from contextlib import contextmanager
from dataclasses import dataclass
from enum import IntEnum
from typing import Iterable, Iterator, List, Optional, Sequence, Tuple, Union

SUBADDR_NUMBER = 32
SUBADDR_WORDS = 32
FIFO_DEPTH = 8
# only the first half of a received record reaches the last-data buffer
_RX_COPY_WORDS = 16

TRANSACTION_NONE = 0
TRANSACTION_WRITE = 1
TRANSACTION_READ = 2
TRANSACTION_COMMAND = 3

_U16 = 0xFFFF
_U8 = 0xFF


class RtResult(IntEnum):
    """Transfer result reported in a log word."""

    SUCCESS = 0
    REPLACE = 1
    DMA_ERR = 2
    PROTOCOL_ERR = 3
    BUSY = 4
    FEEDBACK_ERR = 5


class LogType(IntEnum):
    """Kind of message recorded in a log word."""

    RX_DATA = 0
    TX_DATA = 1
    CMD = 2


# (name, bit offset, bit width) of the 32-bit log word
_LOG_FIELDS = (
    ("tres", 0, 3),
    ("sz", 3, 6),
    ("bc", 9, 1),
    ("timel", 10, 14),
    ("samc", 24, 5),
    ("type", 29, 2),
    ("irqsr", 31, 1),
)


@dataclass
class LogWord:
    """Decoded message log word of the remote terminal."""

    tres: int = 0
    sz: int = 0
    bc: int = 0
    timel: int = 0
    samc: int = 0
    type: int = 0
    irqsr: int = 0

    @classmethod
    def decode(cls, value: int) -> "LogWord":
        """Split a 32-bit log word into its fields."""
        value &= 0xFFFFFFFF
        fields = {name: (value >> offset) & ((1 << width) - 1) for name, offset, width in _LOG_FIELDS}
        return cls(**fields)

    def encode(self) -> int:
        """Pack the fields back into a 32-bit log word."""
        word = 0
        for name, offset, width in _LOG_FIELDS:
            word |= (getattr(self, name) & ((1 << width) - 1)) << offset
        return word


@dataclass(frozen=True)
class FifoRecord:
    """A received message: its log word and a snapshot of the subaddress data."""

    log: LogWord
    data: Tuple[int, ...]


class RxFifo:
    """Ring of received messages; when full, the oldest record is dropped."""

    def __init__(self) -> None:
        self.clear()

    def clear(self) -> None:
        """Drop all records and reset the statistics."""
        self._records: deque[FifoRecord] = deque(maxlen=FIFO_DEPTH - 1)
        self.last_rec: Optional[FifoRecord] = None
        self.rec_num_max = 0
        self.rec_full = 0
        self.rec_lost = 0

    @property
    def rec_num(self) -> int:
        """Number of records waiting to be read."""
        return len(self._records)

    def __len__(self) -> int:
        return len(self._records)

    def write(self, record: FifoRecord) -> bool:
        """Append a record; returns False when the oldest one had to be dropped."""
        overflow = len(self._records) == self._records.maxlen
        self._records.append(record)
        self.rec_full += 1
        if overflow:
            self.rec_lost += 1
        self.rec_num_max = max(self.rec_num_max, len(self._records))
        return not overflow

    def read(self) -> Optional[FifoRecord]:
        """Take the oldest record, or None when the FIFO is empty."""
        if not self._records:
            return None
        record = self._records.popleft()
        self.last_rec = record
        return record


def address_from_pins(pins: int) -> int:
    """Terminal address from the six address-strap pins (odd parity in bit 0).

    Raises ValueError when the parity is wrong or the address is 0 or 31.
    """
    pins &= 0x3F
    parity = bin(pins).count("1") & 1
    address = (pins >> 1) & 0x1F
    if address in (0, 0x1F) or parity == 0:
        raise ValueError(f"invalid terminal address straps {pins:#04x}")
    return address


def _as_log(log: Union[LogWord, int, None]) -> LogWord:
    if log is None:
        return LogWord()
    if isinstance(log, LogWord):
        return log
    return LogWord.decode(int(log))


class RemoteTerminal:
    """Remote terminal with 32 subaddresses of 32 words each."""

    def __init__(self, address: int) -> None:
        if not 1 <= address <= 0x1F:
            raise ValueError(f"terminal address must be 1..31, got {address}")
        self.addr = address
        self.error = 0
        self.error_cnt = 0
        self.sa_rx = 0
        self.sa_rx_data: List[int] = [0] * SUBADDR_WORDS
        self.rx_cnt = 0
        self.tx_cnt = 0
        self.cmd_cnt = 0
        self.irq_cnter = 0
        self.log_msg = LogWord()
        self.rx_fifo = RxFifo()
        self.busy = False
        self._memory: List[int] = [0] * (SUBADDR_NUMBER * SUBADDR_WORDS)

    @contextmanager
    def _busy(self) -> Iterator[None]:
        self.busy = True
        try:
            yield
        finally:
            self.busy = False

    @staticmethod
    def _slice(subaddr: int) -> slice:
        start = SUBADDR_WORDS * (subaddr & 0x1F)
        return slice(start, start + SUBADDR_WORDS)

    def write_subaddr(self, subaddr: int, data: Iterable[int]) -> None:
        """Store up to 32 words in a subaddress, zero-filling the rest."""
        words = [w & _U16 for w in data]
        if len(words) > SUBADDR_WORDS:
            raise ValueError(f"a subaddress holds {SUBADDR_WORDS} words, got {len(words)}")
        words.extend([0] * (SUBADDR_WORDS - len(words)))
        with self._busy():
            self._memory[self._slice(subaddr)] = words

    def read_subaddr(self, subaddr: int) -> List[int]:
        """Return the 32 words of a subaddress."""
        with self._busy():
            return list(self._memory[self._slice(subaddr)])

    def clear_data(self) -> None:
        """Zero every subaddress."""
        with self._busy():
            self._memory = [0] * (SUBADDR_NUMBER * SUBADDR_WORDS)

    def receive(self, log: Union[LogWord, int]) -> bool:
        """Record a received message into the FIFO, as the receive interrupt does.

        Returns False when an older record was lost to overflow.
        """
        log = _as_log(log)
        self.rx_cnt = (self.rx_cnt + 1) & _U16
        data = tuple(self.read_subaddr(log.samc & 0x1F))
        return self.rx_fifo.write(FifoRecord(log=log, data=data))

    def handle_transaction(self, log: Union[LogWord, int, None] = None) -> int:
        """Process the current log word and the receive FIFO.

        Returns TRANSACTION_WRITE when data was written to a subaddress,
        TRANSACTION_READ when a subaddress was read, TRANSACTION_COMMAND for
        a mode command and TRANSACTION_NONE otherwise. The subaddress
        involved is left in ``sa_rx``.
        """
        self.log_msg = _as_log(log)
        record = self.rx_fifo.read()
        if record is not None:
            self.sa_rx = record.log.samc & 0x1F
            self.error = self.log_msg.tres
            self.sa_rx_data[:_RX_COPY_WORDS] = record.data[:_RX_COPY_WORDS]
            return TRANSACTION_WRITE
        if self.log_msg.encode() == 0:
            return TRANSACTION_NONE

        self.error = self.log_msg.tres
        if self.log_msg.tres != RtResult.SUCCESS:
            self.error_cnt = (self.error_cnt + 1) & _U8
            return TRANSACTION_NONE
        kind = self.log_msg.type
        if kind == LogType.RX_DATA:
            self.tx_cnt = (self.tx_cnt + 1) & _U16
            self.sa_rx = self.log_msg.samc & 0x1F
            return TRANSACTION_READ
        if kind == LogType.CMD:
            self.cmd_cnt = (self.cmd_cnt + 1) & _U16
            self._command(self.log_msg.samc)
            return TRANSACTION_COMMAND
        return TRANSACTION_NONE

    def _command(self, code: int) -> None:
        # Answer-word transmission and transmitter (un)blocking (codes 2, 4, 5, 8)
        # are carried out by the terminal core itself.
        return None
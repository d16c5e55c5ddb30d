# oaicm

This library holds the data-handling logic of an onboard control module:

- 64-byte telemetry frames and their checksum
- MIL-STD-1553 remote terminal and bus controller bookkeeping
- switched power channels with a delayed command queue
- frame-addressed storage on an array of FRAM chips

Everything works on plain Python objects. Anything that touches hardware, such as
discrete outputs, ADC readings or the SPI bus to the FRAM chips, goes through small
objects that you supply.

## Installation

```
pip install .
pip install ".[test]"   # with pytest and hypothesis
```

## Modules

### `oaicm.frames`

- `frame_definer(modification, device_number, fabrication_num, frame_type)` builds the
  16-bit definer word in one of two layouts, chosen by a `FrameModification`
  (`HUGE_SYSTEMS` or `SMALL_SERIES`). An unknown modification raises `ValueError`.
- `frame_crc16(data)` computes the CCITT CRC-16. It starts from `0x1D0F` and takes the
  data as 16-bit little-endian words, high byte first. The data length must be even.
- `swap_halfwords(value)` swaps the two 16-bit halves of a 32-bit value.
- `Frame` is a dataclass with the fields `label`, `definer`, `num`, `time`, `data`
  (52 bytes) and `crc16`. Its methods:
  - `pack()` returns the 64-byte image.
  - `Frame.from_bytes()` decodes a 64-byte image.
  - `seal()` computes and stores the checksum.
  - `is_valid()` checks the label `0x0FF1` and the checksum.
  - `frame_type()` extracts the type from the definer. It raises `ValueError` for an
    invalid frame.

### `oaicm.fram`

- `locate_frame(addr_fr)` maps a frame number to a `(chip, byte address)` pair. The map
  uses 64-byte frames and 256 KiB chips, and only the first two chips hold frames. An
  address outside that space raises `FramAddressError`.
- `FramArray(bus)` works on a bus object that has a method
  `transfer(chip, data) -> bytes`. Each call is one chip-select window. The methods are:
  - `write(chip, address, data)`: sends WREN (`0x06`), then WRITE (`0x02`) with a 24-bit
    address.
  - `read(chip, address, length)`: sends READ (`0x03`).
  - `write_frame(addr_fr, data)` and `read_frame(addr_fr)`: the same operations,
    addressed by frame number.

### `oaicm.pwr_channel`

- `PowerChannel` is one switched channel.
  - `ChannelType` picks how the channel switches: `CTRL_NU`, `FLAG`, `PULSE` or
    `DV_CTRL`.
  - The output numbers in `io_cfg` become a `FlagControl`, `PulseControl` or
    `DvControl`.
  - `on_off(state)` queues a state change.
  - `process(interval_ms)` applies the state change and times the switching pulses
    (40 ms pulse, 500 ms control). It also computes the current as
    `curr_a * voltage + curr_b` mA. When the current reaches `current_bound_mA` the
    channel's status is set. `process` returns `False` if `auto_control` requires the
    channel to be switched off.
  - `choose_half_set`, `set_current_bound`, `busy` and `set_dv_mask` complete the
    channel interface.
- `Timeout` is the millisecond countdown used for the pulses. Its methods are `start`,
  `process`, `busy` and `take_ready`.

### `oaicm.power_management`

- `PowerManager(channels, default_state=..., default_half_set=..., default_delay=...)`
  drives the channels through a `CommandBuffer`. The buffer has one slot per channel,
  holding a `PowerCommand` in one of the `CommandState`s `IDLE`, `PROCESS` or `READY`.
- `process(time_us)` is a scheduler hook. It runs at most once every 100 ms. On each run
  it:
  - counts the command delays down,
  - gathers the channel `state`, `status` and `half_set` bit masks,
  - fills `curr_report_fp`,
  - executes one ready command, but only while no channel is busy.
- After start-up every channel is queued off. Once the initialisation timeout has passed
  and the queue is empty, the defaults are applied.
- `put_cmd`, `on_off_by_num` (200 ms delay), `set_state`, `set_bound`,
  `status_reset_by_num`, `change_default_state`, `set_default` and
  `update_default_state` control the queue and the defaults. Lost or rejected commands
  are counted in `error_cnter`.
- `calc_current_coefficients(r_sh, r_fb)` returns the calibration pair
  `(1e6 / (r_sh * r_fb), 0.0)`.

### `oaicm.mko_rt`

- `RemoteTerminal(address)` models a remote terminal with 32 subaddresses of 32 words
  each. `write_subaddr`, `read_subaddr` and `clear_data` give access to the subaddresses.
- `receive(log)` records a received message in the `RxFifo`. The FIFO holds up to 7
  records and drops the oldest when it is full.
- `handle_transaction(log)` returns one of four results:
  - `TRANSACTION_WRITE` when a received record is pending,
  - `TRANSACTION_READ` for a successful transmit log,
  - `TRANSACTION_COMMAND` for a mode command,
  - `TRANSACTION_NONE` otherwise.
- `LogWord.decode` and `LogWord.encode` convert the 32-bit log word. `RtResult` and
  `LogType` name its fields.
- `address_from_pins(pins)` reads the terminal address from six strap pins with odd
  parity. It raises `ValueError` for a wrong parity or an address of 0 or 31.

### `oaicm.mko_bc`

- `CommandWord.encode` and `CommandWord.decode` convert 16-bit command words.
  `word_count()` treats a length field of 0 as 32 words.
- `DescResult.decode` splits a descriptor result word. `TransferResult` names the
  transfer status.
- `BusSelector` tracks which bus is in use. `set_bus` selects bus A for an even value
  and bus B for an odd one. `change_bus` switches to the other bus.

## Example

```python
from oaicm.frames import Frame, FrameModification, frame_definer
from oaicm.mko_bc import CommandWord, MODE_READ
from oaicm.pwr_channel import ChannelType, PowerChannel
from oaicm.power_management import PowerManager

definer = frame_definer(FrameModification.HUGE_SYSTEMS, 218, 0, 3)
frame = Frame(definer=definer, num=1, time=0, data=bytes(52))
frame.seal()
assert frame.is_valid() and frame.frame_type() == 3

cw = CommandWord(addr=13, rd_wr=MODE_READ, sub_addr=1, leng=0)
assert CommandWord.decode(cw.encode()) == cw and cw.word_count() == 32


class Outputs:
    def __init__(self):
        self.pins = {}

    def set(self, num, value):
        self.pins[num] = value


class Adc:
    def voltage(self, channel):
        return 0.0


outputs = Outputs()
channel = PowerChannel("pwr ch 0", ChannelType.FLAG, outputs, Adc(), io_cfg=(0, 1))
manager = PowerManager([channel], default_state=[1])
for step in range(1, 20):
    manager.process(step * 150_000)
```

## What this package does not do

The package contains no device drivers and no scheduler. It does not talk to real
buses or chips by itself: FRAM access goes through the bus object you pass in, and
power channels go through the output and ADC objects you pass in. It also does not
build, parse or send packets for the module's internal serial bus. There is no
command-line program.

## Tests

```
pytest
```
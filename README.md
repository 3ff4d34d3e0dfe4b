# canring

Building blocks for a CAN bus controller driver, in pure Python with no
dependencies:

- `canring.ringbuffer`: `RingBuffer`, a fixed-size FIFO, and
  `PriorityRingBuffer`, a fixed-size ring that gives back the most urgent
  item first (priority 0 is the most urgent) and keeps FIFO order within
  each priority.
- `canring.scheduler`: `SyncScheduler`, which fires periodic events at
  `offset + n * period` on a wrapping 32-bit millisecond tick.
- `canring.can_config`: bit timing for the APB1 clock
  (`bit_timing_for_clock`), acceptance filter bank layout (`filter_config`),
  frame priority taken from the top bits of the identifier
  (`frame_priority`), and error-code helpers (`CanError`,
  `important_errors`, `describe_errors`).
- `canring.controller`: `CanController`, which queues outgoing and incoming
  `CanMessage` frames by priority in front of a `CanBackend` that stands for
  the peripheral.

## Install

```
pip install .
```

To run the tests as well:

```
pip install .[test]
pytest
```

## Ring buffers

A buffer of size `n` holds at most `n - 1` items. Sizes below 3 are raised
to 3. `add` raises `BufferFullError` when no slot is free, and `read` raises
`BufferEmptyError` when nothing is waiting. `len()` gives the number of
items held.

`PriorityRingBuffer(size, max_priorities)` takes a priority with each item.
A priority above the highest one is clamped to it, and a negative priority
raises `ValueError`. `read()` returns the oldest item of the most urgent
priority that has any. `read(priority)` reads from one priority only, and
`read_with_priority()` returns a `(priority, item)` pair. `is_empty()` checks
the whole buffer, and `is_empty(priority)` checks one priority.

```python
from canring.ringbuffer import PriorityRingBuffer

ring = PriorityRingBuffer(10, 8)
ring.add("low", 5)
ring.add("high", 1)
assert ring.read_with_priority() == (1, "high")
assert ring.read() == "low"
```

## Scheduler

`SyncScheduler(enable, period, offset, clock)` reads the tick from `clock`,
a function that returns milliseconds. If no `clock` is given, it uses
`time.monotonic()` masked to 32 bits. A period of 0 disables the scheduler.
`is_time()` returns True once the next firing has passed, and then
reschedules. `remaining()` gives the ticks left until the next firing.
`period`, `offset`, `next_time` and `last_time` are attributes, and setting
`period` or `offset` reschedules.

```python
from canring.scheduler import SyncScheduler

ticks = 0
sched = SyncScheduler(True, 100, 10, clock=lambda: ticks)
ticks = 150
if sched.is_time():
    ...  # send the periodic frame
```

## Configuration helpers

```python
from canring.can_config import (
    BaudRatePrescaler, CanError, bit_timing_for_clock, describe_errors,
    filter_config, frame_priority, important_errors,
)

timing = bit_timing_for_clock(36_000_000, BaudRatePrescaler.CAN250kbit)
assert (timing.prescaler, timing.time_seg1, timing.time_seg2) == (8, 15, 2)
assert timing.bit_rate(36_000_000) == 250_000

assert frame_priority(0x18EF0100) == 6          # 29-bit id, 3 priority bits
bank = filter_config(True, 0, 0x1FFFFFFF, 0x18EF0100)

assert important_errors(CanError.EWG | CanError.BOF) == CanError.BOF
assert describe_errors(CanError.EWG | CanError.BOF) == [
    "Protocol Error Warning", "Bus-off error",
]
```

Bit timing is known for APB1 clocks of 24, 36, 42 and 48 MHz. Any other
clock raises `ConfigurationError`. So does a filter number that does not map
to a bank: banks 0 to 13 belong to the primary bus, and banks 14 to 27 to the
secondary bus on parts with two controllers.

## Controller

`CanController` runs against any object that provides the `CanBackend`
members: the `secondary_bus` and `dual_can` attributes, and the methods
`init(timing)`, `deinit()`, `start()`, `free_tx_mailboxes()`,
`add_tx_message(message)` and `configure_filter(config)`.

```python
from canring.can_config import BaudRatePrescaler, CanError
from canring.controller import CanController, CanMessage


class RecordingBackend:
    secondary_bus = False
    dual_can = False

    def __init__(self):
        self.sent = []

    def init(self, timing): pass
    def deinit(self): pass
    def start(self): pass
    def free_tx_mailboxes(self): return 3
    def configure_filter(self, config): pass

    def add_tx_message(self, message):
        self.sent.append(message)
        return True


backend = RecordingBackend()
can = CanController(backend, BaudRatePrescaler.CAN250kbit)
can.open(36_000_000)

assert can.send_frame(CanMessage(id=0x18EF0100, data=b"\x01\x02"))

can.on_rx_pending(CanMessage(id=0x0CF00400, data=b"\x10"))
frame = can.get_frame()                         # None when nothing waits

can.on_error(CanError.BOF)
assert can.can_error == CanError.BOF
```

If all transmit mailboxes are busy, or frames of the same priority are
already waiting, `send_frame` queues the frame. `on_tx_complete` then sends
the most urgent queued frame, and so does `send_from_tx_ring` when you call
it yourself. When the receive queue is full, `on_rx_pending` drops the frame
and returns False.

The controller builds its queues itself. `init_frame_buffers(rx, tx)` resizes
them. Zero asks for the default size, and the sizes are raised to at least 10
receive and 30 send slots. `tx_buffer_space()` and `rx_buffer_space()` tell
how many more frames fit.

## What this package does not do

No hardware is driven here. Nothing talks to a real CAN peripheral, a
SocketCAN interface or a serial adapter. You must supply a `CanBackend`
that does this and forward the peripheral's interrupts to the controller's
`on_*` methods. The package has no command-line program.
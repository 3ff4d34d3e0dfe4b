"""Interrupt-driven CAN controller with prioritised send and receive queues.

The controller keeps received frames and frames waiting for a free transmit
mailbox in priority ring buffers. The priority of a frame is taken from the
top bits of its identifier, as NMEA 2000 and SAE J1939 do. The hardware side
is reached through a ``CanBackend``. The backend calls ``on_rx_pending``,
``on_tx_complete`` and ``on_error`` when the peripheral raises the matching
event.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Protocol

from canring.can_config import (
    DEFAULT_PRIO_BITS,
    BaudRatePrescaler,
    BitTiming,
    CanError,
    FilterConfig,
    bit_timing_for_clock,
    describe_errors,
    filter_config,
    frame_priority,
    important_errors,
)
from canring.ringbuffer import BufferEmptyError, BufferFullError, PriorityRingBuffer

log = logging.getLogger(__name__)

MAX_DATA_LENGTH = 8
STD_ID_MASK = 0x7FF
EXT_ID_MASK = 0x1FFFFFFF

DEFAULT_RECEIVE_FRAMES = 32
DEFAULT_SEND_FRAMES = 16
_FALLBACK_RECEIVE_FRAMES = 32
_MIN_RECEIVE_FRAMES = 10
_FALLBACK_SEND_FRAMES = 50
_MIN_SEND_FRAMES = 30


@dataclass(frozen=True)
class CanMessage:
    """One CAN frame. Data longer than eight bytes is cut to eight."""

    id: int = 0
    data: bytes = b""
    extended: bool = True
    remote: bool = False
    overrun: bool = False
    reserved: bool = False

    def __post_init__(self) -> None:
        if self.id < 0:
            raise ValueError(f"CAN identifier must not be negative: {self.id}")
        object.__setattr__(self, "data", bytes(self.data[:MAX_DATA_LENGTH]))

    def __len__(self) -> int:
        return len(self.data)


class CanBackend(Protocol):
    """The peripheral that the controller drives."""

    secondary_bus: bool
    dual_can: bool

    def init(self, timing: BitTiming) -> None:
        """Configure the peripheral for ``timing``. Raise if it fails."""

    def deinit(self) -> None:
        """Release the peripheral."""

    def start(self) -> None:
        """Start taking part in bus traffic. Raise if it fails."""

    def free_tx_mailboxes(self) -> int:
        """Return the number of transmit mailboxes that are free now."""

    def add_tx_message(self, message: CanMessage) -> bool:
        """Put ``message`` in a transmit mailbox. Return whether it was taken."""

    def configure_filter(self, config: FilterConfig) -> None:
        """Apply one acceptance filter bank."""


class CanController:
    """Queues CAN frames by priority between the application and a backend."""

    def __init__(
        self,
        backend: CanBackend,
        baud_rate: BaudRatePrescaler = BaudRatePrescaler.CAN250kbit,
        name: str = "CAN1",
    ) -> None:
        self.backend = backend
        self.baud_rate = BaudRatePrescaler(baud_rate)
        self.name = name
        self.prio_bits = DEFAULT_PRIO_BITS
        self.max_prio = 2**self.prio_bits - 1
        self.buffer_full = False
        self._error = CanError.NONE
        self._lock = threading.RLock()
        self._rx_ring: PriorityRingBuffer[CanMessage] | None = None
        self._tx_ring: PriorityRingBuffer[CanMessage] | None = None
        self.init_frame_buffers()

    @property
    def can_error(self) -> CanError:
        """The latest important error flags reported by the peripheral."""
        return self._error

    def _set_error(self, error_code: int) -> None:
        self._error = important_errors(error_code)

    def _priority(self, message: CanMessage) -> int:
        return frame_priority(message.id, message.extended, self.prio_bits)

    @property
    def _rx(self) -> PriorityRingBuffer[CanMessage]:
        assert self._rx_ring is not None
        return self._rx_ring

    @property
    def _tx(self) -> PriorityRingBuffer[CanMessage]:
        assert self._tx_ring is not None
        return self._tx_ring

    def init_frame_buffers(
        self,
        max_receive_frames: int = DEFAULT_RECEIVE_FRAMES,
        max_send_frames: int = DEFAULT_SEND_FRAMES,
    ) -> None:
        """Set up the receive and send queues.

        Zero asks for the default size. The sizes are raised to at least 10
        receive and 30 send slots. A queue is only rebuilt if its size changes.
        """
        if max_receive_frames == 0:
            max_receive_frames = _FALLBACK_RECEIVE_FRAMES
        max_receive_frames = max(max_receive_frames, _MIN_RECEIVE_FRAMES)
        if max_send_frames == 0:
            max_send_frames = _FALLBACK_SEND_FRAMES
        max_send_frames = max(max_send_frames, _MIN_SEND_FRAMES)

        with self._lock:
            if self._rx_ring is None or self._rx_ring.size != max_receive_frames:
                self._rx_ring = PriorityRingBuffer(max_receive_frames, self.max_prio)
                log.debug(
                    "%s RX ring buffer initialized: %d frames, %d priorities",
                    self.name, max_receive_frames, self.max_prio,
                )
            if self._tx_ring is None or self._tx_ring.size != max_send_frames:
                self._tx_ring = PriorityRingBuffer(max_send_frames, self.max_prio)
                log.debug(
                    "%s TX ring buffer initialized: %d frames, %d priorities",
                    self.name, max_send_frames, self.max_prio,
                )

    def open(self, apb1_clock_hz: int) -> BitTiming:
        """Configure and start the peripheral. Return the bit timing used.

        Raises ConfigurationError if the clock speed has no known timing.
        """
        timing = bit_timing_for_clock(apb1_clock_hz, self.baud_rate)
        log.debug("%s initialization", self.name)
        self.backend.init(timing)
        self.backend.start()
        log.debug("%s started", self.name)
        return timing

    def close(self) -> None:
        """Release the peripheral."""
        self.backend.deinit()

    def set_filter(
        self, extended: bool, filter_num: int, mask: int, can_id: int
    ) -> FilterConfig:
        """Apply an ID/mask acceptance filter and return the bank settings."""
        config = filter_config(
            extended,
            filter_num,
            mask,
            can_id,
            secondary_bus=self.backend.secondary_bus,
            dual_can=self.backend.dual_can,
        )
        self.backend.configure_filter(config)
        log.debug(
            "%s filter bank %d mask: %08x, id: %08x",
            self.name, config.bank, mask, can_id,
        )
        return config

    def _write_tx_mailbox(self, message: CanMessage) -> bool:
        id_mask = EXT_ID_MASK if message.extended else STD_ID_MASK
        frame = CanMessage(
            id=message.id & id_mask,
            data=message.data,
            extended=message.extended,
        )
        if self.backend.add_tx_message(frame):
            log.debug("%s added frame 0x%x to TX mailbox", self.name, frame.id)
            return True
        log.error("%s failed to write TX mailbox (0x%x)", self.name, frame.id)
        return False

    def send_frame(self, message: CanMessage) -> bool:
        """Send ``message`` or queue it. Return whether it was accepted.

        A frame goes straight to a mailbox unless all mailboxes are busy or
        frames of the same priority are already waiting. In those cases it is
        queued, and a free mailbox then takes the most urgent queued frame.
        """
        priority = self._priority(message)
        with self._lock:
            mailboxes_full = self.backend.free_tx_mailboxes() == 0
            if mailboxes_full:
                log.debug("%s all TX mailboxes are full", self.name)
            accepted = False
            send_from_buffer = False
            if not self._tx.is_empty(priority) or mailboxes_full:
                try:
                    self._tx.add(message, priority)
                except BufferFullError:
                    if not self.buffer_full:
                        self.buffer_full = True
                        log.error("%s TX ring buffer is full", self.name)
                else:
                    accepted = True
                    self.buffer_full = False
                    log.debug("%s frame 0x%x buffered", self.name, message.id)
                send_from_buffer = True

            if not mailboxes_full:
                if send_from_buffer:
                    accepted = self.send_from_tx_ring()
                else:
                    accepted = self._write_tx_mailbox(message)
            return accepted

    def get_frame(self) -> CanMessage | None:
        """Remove and return the most urgent received frame, or None."""
        with self._lock:
            try:
                return self._rx.read()
            except BufferEmptyError:
                return None

    def send_from_tx_ring(self) -> bool:
        """Move the most urgent queued frame to a mailbox.

        Return False if nothing is queued or the mailbox refused it.
        """
        with self._lock:
            try:
                message = self._tx.read()
            except BufferEmptyError:
                return False
            return self._write_tx_mailbox(message)

    def on_rx_pending(self, message: CanMessage, error_code: int = 0) -> bool:
        """Take a frame the peripheral received. Return whether it was queued.

        A frame is dropped when the receive queue is full.
        """
        priority = self._priority(message)
        stored = True
        with self._lock:
            try:
                self._rx.add(message, priority)
            except BufferFullError:
                stored = False
            log.debug("%s received CAN message 0x%x", self.name, message.id)
            self._set_error(error_code)
        return stored

    def on_tx_complete(self, error_code: int = 0) -> bool:
        """Handle a mailbox that became free by sending the next queued frame."""
        with self._lock:
            sent = self.send_from_tx_ring()
            self._set_error(error_code)
        return sent

    def on_error(self, error_code: int) -> list[str]:
        """Record an error report. Return a readable line for each flag."""
        self._set_error(error_code)
        lines = describe_errors(error_code)
        for line in lines:
            log.error("%s: %s", self.name, line)
        return lines

    def tx_buffer_space(self) -> int:
        """Frames that can still be queued for sending."""
        with self._lock:
            return self._tx.size - len(self._tx) - 1

    def rx_buffer_space(self) -> int:
        """Received frames that can still be queued."""
        with self._lock:
            return self._rx.size - len(self._rx) - 1
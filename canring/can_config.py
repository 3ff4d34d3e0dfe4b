"""Pure configuration helpers for a bxCAN-style controller.

Bit timing, acceptance filters, frame priorities and error-code handling.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass

SLAVE_START_FILTER_BANK = 14
DEFAULT_PRIO_BITS = 3

_STD_ID_BITS = 11
_EXT_ID_BITS = 29
_UINT32_MAX = 0xFFFFFFFF


class ConfigurationError(Exception):
    """Raised when the requested controller configuration cannot be built."""


class BaudRatePrescaler(enum.IntEnum):
    """Divider applied to the 1000 kbit/s prescaler to get each bus speed."""

    CAN1000kbit = 1
    CAN500kbit = 2
    CAN250kbit = 4
    CAN200kbit = 5
    CAN125kbit = 8
    CAN100kbit = 10
    CAN50kbit = 20

    @property
    def kbit(self) -> int:
        """The nominal bus speed in kbit/s."""
        return 1000 // self.value


class CanError(enum.IntFlag):
    """Controller error flags as reported by the peripheral driver."""

    NONE = 0
    EWG = 0x00000001
    EPV = 0x00000002
    BOF = 0x00000004
    STF = 0x00000008
    FOR = 0x00000010
    ACK = 0x00000020
    BR = 0x00000040
    BD = 0x00000080
    CRC = 0x00000100
    RX_FOV0 = 0x00000200
    RX_FOV1 = 0x00000400
    TX_ALST0 = 0x00000800
    TX_TERR0 = 0x00001000
    TX_ALST1 = 0x00002000
    TX_TERR1 = 0x00004000
    TX_ALST2 = 0x00008000
    TX_TERR2 = 0x00010000
    TIMEOUT = 0x00020000
    NOT_INITIALIZED = 0x00040000
    NOT_READY = 0x00080000
    NOT_STARTED = 0x00100000
    PARAM = 0x00200000


# Warning and passive states are transient and not worth keeping.
IMPORTANT_ERRORS = (
    CanError.BOF
    | CanError.STF
    | CanError.FOR
    | CanError.ACK
    | CanError.BR
    | CanError.BD
    | CanError.CRC
    | CanError.RX_FOV0
    | CanError.RX_FOV1
    | CanError.TX_ALST0
    | CanError.TX_TERR0
    | CanError.TX_ALST1
    | CanError.TX_TERR1
    | CanError.TX_ALST2
    | CanError.TX_TERR2
    | CanError.TIMEOUT
    | CanError.NOT_INITIALIZED
    | CanError.NOT_READY
    | CanError.NOT_STARTED
    | CanError.PARAM
)

_ERROR_TEXT: tuple[tuple[CanError, str], ...] = (
    (CanError.EWG, "Protocol Error Warning"),
    (CanError.EPV, "Error Passive"),
    (CanError.BOF, "Bus-off error"),
    (CanError.STF, "Stuff error"),
    (CanError.FOR, "Form error"),
    (CanError.ACK, "Acknowledgment error"),
    (CanError.BR, "Bit recessive error"),
    (CanError.BD, "Bit dominant error"),
    (CanError.CRC, "CRC error"),
    (CanError.RX_FOV0, "Rx FIFO 0 overrun error"),
    (CanError.RX_FOV1, "Rx FIFO 1 overrun error"),
    (CanError.TX_ALST0, "TxMailbox 0 transmit failure due to arbitration lost"),
    (CanError.TX_TERR0, "TxMailbox 0 transmit failure due to transmit error"),
    (CanError.TX_ALST1, "TxMailbox 1 transmit failure due to arbitration lost"),
    (CanError.TX_TERR1, "TxMailbox 1 transmit failure due to transmit error"),
    (CanError.TX_ALST2, "TxMailbox 2 transmit failure due to arbitration lost"),
    (CanError.TX_TERR2, "TxMailbox 2 transmit failure due to transmit error"),
    (CanError.TIMEOUT, "Timeout error"),
    (CanError.NOT_INITIALIZED, "Peripheral not initialized"),
    (CanError.NOT_READY, "Peripheral not ready"),
    (CanError.NOT_STARTED, "Peripheral not started"),
    (CanError.PARAM, "Parameter error"),
)


@dataclass(frozen=True)
class BitTiming:
    """Prescaler and segment lengths (in time quanta) for one bus speed."""

    prescaler: int
    time_seg1: int
    time_seg2: int
    sync_jump_width: int = 1

    @property
    def time_quanta(self) -> int:
        """Time quanta per bit: sync segment plus both phase segments."""
        return 1 + self.time_seg1 + self.time_seg2

    def bit_rate(self, clock_hz: int) -> float:
        """The bit rate this timing yields at ``clock_hz``."""
        return clock_hz / (self.prescaler * self.time_quanta)


# APB1 clock -> (1000 kbit/s prescaler, time segment 1, time segment 2)
_TIMING_1000KBIT: dict[int, tuple[int, int, int]] = {
    24000000: (2, 10, 1),
    36000000: (2, 15, 2),
    42000000: (3, 11, 2),
    48000000: (3, 13, 2),
}


def bit_timing_for_clock(
    apb1_clock_hz: int, baud_rate: BaudRatePrescaler = BaudRatePrescaler.CAN250kbit
) -> BitTiming:
    """Return the bit timing for ``baud_rate`` at the given APB1 clock.

    Raises ConfigurationError for a clock speed with no known settings.
    """
    try:
        base, seg1, seg2 = _TIMING_1000KBIT[apb1_clock_hz]
    except KeyError:
        raise ConfigurationError(
            f"no CAN settings for clock speed {apb1_clock_hz} Hz"
        ) from None
    return BitTiming(
        prescaler=base * int(BaudRatePrescaler(baud_rate)),
        time_seg1=seg1,
        time_seg2=seg2,
    )


@dataclass(frozen=True)
class FilterConfig:
    """One 32-bit ID/mask acceptance filter bank."""

    bank: int
    mask_id_high: int
    mask_id_low: int
    id_high: int
    id_low: int
    fifo: int = 0
    slave_start_filter_bank: int = SLAVE_START_FILTER_BANK
    enabled: bool = True


def _check_uint32(name: str, value: int) -> None:
    if not 0 <= value <= _UINT32_MAX:
        raise ValueError(f"{name} must fit in 32 bits: {value}")


def filter_config(
    extended: bool,
    filter_num: int,
    mask: int,
    can_id: int,
    secondary_bus: bool = False,
    dual_can: bool = False,
) -> FilterConfig:
    """Build the filter bank registers for ``can_id`` under ``mask``.

    The primary bus uses banks 0..13, the secondary bus banks 14..27, the
    latter only on parts with two CAN controllers. Raises ConfigurationError
    when ``filter_num`` does not map to a bank.
    """
    _check_uint32("filter_num", filter_num)
    _check_uint32("mask", mask)
    _check_uint32("can_id", can_id)

    total_banks = 27 if dual_can else 13
    if not secondary_bus:
        if filter_num <= total_banks and filter_num < SLAVE_START_FILTER_BANK:
            bank = filter_num
        else:
            raise ConfigurationError(f"filter {filter_num} out of range for primary bus")
    else:
        if filter_num <= total_banks - SLAVE_START_FILTER_BANK:
            bank = filter_num + SLAVE_START_FILTER_BANK
        else:
            raise ConfigurationError(
                f"filter {filter_num} out of range for secondary bus"
            )

    ide = 1 << 2
    if not extended:
        return FilterConfig(
            bank=bank,
            mask_id_high=(mask << 5) & 0xFFFF,
            mask_id_low=ide,
            id_high=(can_id << 5) & 0xFFFF,
            id_low=0x0000,
        )
    return FilterConfig(
        bank=bank,
        mask_id_high=(mask >> 13) & 0xFFFF,
        mask_id_low=((mask << 3) & 0xFFF8) | ide,
        id_high=(can_id >> 13) & 0xFFFF,
        id_low=((can_id << 3) & 0xFFF8) | ide,
    )


def frame_priority(can_id: int, extended: bool = True, prio_bits: int = DEFAULT_PRIO_BITS) -> int:
    """Return the priority carried in the top ``prio_bits`` of the identifier."""
    if prio_bits < 0:
        raise ValueError(f"prio_bits must not be negative: {prio_bits}")
    max_prio = 2**prio_bits - 1
    id_bits = _EXT_ID_BITS if extended else _STD_ID_BITS
    return (can_id >> (id_bits - prio_bits)) & max_prio


def important_errors(code: int) -> CanError:
    """Keep only the error flags worth reporting."""
    return CanError(code & IMPORTANT_ERRORS)


def describe_errors(code: int) -> list[str]:
    """Return a readable line for every error flag set in ``code``."""
    if code == 0:
        return ["No error"]
    return [text for flag, text in _ERROR_TEXT if code & flag]
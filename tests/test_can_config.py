import pytest

from canring.can_config import (
    BaudRatePrescaler,
    BitTiming,
    CanError,
    ConfigurationError,
    FilterConfig,
    bit_timing_for_clock,
    describe_errors,
    filter_config,
    frame_priority,
    important_errors,
)

CLOCKS = [24000000, 36000000, 42000000, 48000000]


def test_bit_timing_36mhz_1000kbit():
    timing = bit_timing_for_clock(36000000, BaudRatePrescaler.CAN1000kbit)
    assert timing == BitTiming(prescaler=2, time_seg1=15, time_seg2=2)


@pytest.mark.parametrize("clock", CLOCKS)
@pytest.mark.parametrize("baud", list(BaudRatePrescaler))
def test_bit_timing_hits_requested_rate(clock, baud):
    timing = bit_timing_for_clock(clock, baud)
    assert timing.bit_rate(clock) == pytest.approx(baud.kbit * 1000)


@pytest.mark.parametrize("clock", CLOCKS)
def test_prescaler_scales_with_baud(clock):
    fast = bit_timing_for_clock(clock, BaudRatePrescaler.CAN1000kbit)
    slow = bit_timing_for_clock(clock, BaudRatePrescaler.CAN125kbit)
    assert slow.prescaler == fast.prescaler * BaudRatePrescaler.CAN125kbit
    assert (slow.time_seg1, slow.time_seg2) == (fast.time_seg1, fast.time_seg2)


def test_unknown_clock_raises():
    with pytest.raises(ConfigurationError):
        bit_timing_for_clock(72000000, BaudRatePrescaler.CAN250kbit)


def test_standard_filter_round_trip():
    cfg = filter_config(False, 3, 0x7FF, 0x123)
    assert isinstance(cfg, FilterConfig)
    assert cfg.bank == 3
    assert cfg.id_high >> 5 == 0x123
    assert cfg.mask_id_high >> 5 == 0x7FF
    assert cfg.mask_id_low == 1 << 2
    assert cfg.id_low == 0


def test_extended_filter_round_trip():
    can_id = 0x18EEFF01
    mask = 0x1FFFFFFF
    cfg = filter_config(True, 0, mask, can_id)
    assert ((cfg.id_high << 13) | (cfg.id_low >> 3)) == can_id
    assert ((cfg.mask_id_high << 13) | (cfg.mask_id_low >> 3)) == mask
    assert cfg.id_low & (1 << 2)
    assert cfg.mask_id_low & (1 << 2)


def test_secondary_bus_uses_upper_banks():
    cfg = filter_config(True, 2, 0, 0, secondary_bus=True, dual_can=True)
    assert cfg.bank == 2 + 14


def test_secondary_bus_without_dual_can_raises():
    with pytest.raises(ConfigurationError):
        filter_config(True, 0, 0, 0, secondary_bus=True, dual_can=False)


@pytest.mark.parametrize("num", [14, 20])
def test_primary_bank_out_of_range(num):
    with pytest.raises(ConfigurationError):
        filter_config(False, num, 0, 0, dual_can=True)


def test_primary_last_bank_single_can():
    assert filter_config(False, 13, 0, 0).bank == 13


def test_negative_values_rejected():
    with pytest.raises(ValueError):
        filter_config(False, 0, -1, 0)


@pytest.mark.parametrize("prio", range(8))
def test_extended_priority(prio):
    can_id = (prio << 26) | 0x00EEFF
    assert frame_priority(can_id, extended=True) == prio


@pytest.mark.parametrize("prio", range(8))
def test_standard_priority(prio):
    can_id = (prio << 8) | 0x12
    assert frame_priority(can_id, extended=False) == prio


def test_priority_bits_limit_range():
    assert frame_priority(0x1FFFFFFF, extended=True, prio_bits=2) == 3


def test_important_errors_drop_warning_and_passive():
    assert important_errors(CanError.EWG | CanError.EPV) == CanError.NONE
    assert important_errors(CanError.BOF | CanError.EWG) == CanError.BOF
    assert important_errors(CanError.PARAM | CanError.CRC) == CanError.PARAM | CanError.CRC


def test_describe_no_error():
    assert describe_errors(0) == ["No error"]


def test_describe_multiple_errors_in_order():
    assert describe_errors(CanError.CRC | CanError.BOF) == ["Bus-off error", "CRC error"]


def test_describe_covers_every_flag():
    every = 0
    for flag in CanError:
        every |= flag
    assert len(describe_errors(every)) == len([f for f in CanError if f])
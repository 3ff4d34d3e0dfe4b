import pytest

from canring.ringbuffer import (
    BufferEmptyError,
    BufferFullError,
    PriorityRingBuffer,
    RingBuffer,
)


def test_ring_fifo_order():
    ring = RingBuffer(5)
    for item in ("a", "b", "c"):
        ring.add(item)
    assert [ring.read() for _ in range(3)] == ["a", "b", "c"]
    assert ring.is_empty()


def test_ring_holds_size_minus_one():
    ring = RingBuffer(5)
    for i in range(4):
        ring.add(i)
    assert len(ring) == 4
    with pytest.raises(BufferFullError):
        ring.add(99)


def test_ring_minimum_size():
    ring = RingBuffer(1)
    assert ring.size == 3
    ring.add(1)
    ring.add(2)
    with pytest.raises(BufferFullError):
        ring.add(3)


def test_ring_read_empty_raises():
    with pytest.raises(BufferEmptyError):
        RingBuffer(4).read()


def test_ring_wraps_around():
    ring = RingBuffer(3)
    seen = []
    for i in range(10):
        ring.add(i)
        seen.append(ring.read())
    assert seen == list(range(10))
    assert len(ring) == 0


def test_ring_clear():
    ring = RingBuffer(4)
    ring.add("x")
    ring.add("y")
    ring.clear()
    assert ring.is_empty()
    assert len(ring) == 0
    with pytest.raises(BufferEmptyError):
        ring.read()


def test_priority_reads_most_urgent_first():
    ring = PriorityRingBuffer(10, 4)
    ring.add("low", 3)
    ring.add("high", 0)
    ring.add("mid", 1)
    assert [ring.read() for _ in range(3)] == ["high", "mid", "low"]
    assert ring.is_empty()


def test_priority_fifo_within_priority():
    ring = PriorityRingBuffer(10, 2)
    for item in ("a", "b", "c"):
        ring.add(item, 1)
    assert [ring.read() for _ in range(3)] == ["a", "b", "c"]


def test_priority_read_with_priority():
    ring = PriorityRingBuffer(10, 3)
    ring.add("x", 2)
    ring.add("y", 1)
    assert ring.read_with_priority() == (1, "y")
    assert ring.read_with_priority() == (2, "x")
    with pytest.raises(BufferEmptyError):
        ring.read_with_priority()


def test_priority_read_specific():
    ring = PriorityRingBuffer(10, 3)
    ring.add("x", 0)
    ring.add("y", 2)
    assert ring.read(2) == "y"
    with pytest.raises(BufferEmptyError):
        ring.read(2)
    assert ring.read(0) == "x"


def test_priority_clamped_to_highest():
    ring = PriorityRingBuffer(10, 3)
    ring.add("z", 200)
    assert not ring.is_empty(2)
    assert ring.read_with_priority() == (2, "z")


def test_priority_negative_rejected():
    ring = PriorityRingBuffer(10, 3)
    with pytest.raises(ValueError):
        ring.add("z", -1)


def test_priority_is_empty_per_priority():
    ring = PriorityRingBuffer(10, 3)
    ring.add("a", 1)
    assert ring.is_empty(0)
    assert not ring.is_empty(1)
    assert not ring.is_empty()
    assert not ring.is_empty(50)


def test_priority_full_until_tail_is_read():
    ring = PriorityRingBuffer(4, 2)
    ring.add("a", 1)
    ring.add("b", 0)
    ring.add("c", 1)
    with pytest.raises(BufferFullError):
        ring.add("d", 0)
    assert ring.read() == "b"
    # The freed slot is not at the tail, so the ring stays full.
    with pytest.raises(BufferFullError):
        ring.add("d", 0)
    assert ring.read() == "a"
    ring.add("d", 0)
    assert len(ring) == 2
    assert [ring.read(), ring.read()] == ["d", "c"]


def test_priority_len_and_clear():
    ring = PriorityRingBuffer(6, 2)
    ring.add(1, 0)
    ring.add(2, 1)
    assert len(ring) == 2
    ring.clear()
    assert len(ring) == 0
    assert ring.is_empty(0)
    assert ring.is_empty(1)


def test_priority_minimums():
    ring = PriorityRingBuffer(0, 0)
    assert ring.size == 3
    assert ring.max_priorities == 1


def test_priority_last_of_chain_survives_tail_advance():
    ring = PriorityRingBuffer(5, 2)
    ring.add("a", 0)
    ring.add("b", 1)
    ring.add("c", 0)
    assert ring.read() == "a"
    assert ring.read() == "c"
    assert ring.read() == "b"
    assert ring.is_empty()
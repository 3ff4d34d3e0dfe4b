"""Priority ring buffers, CAN frame queuing, bxCAN configuration helpers and periodic scheduling."""

__version__ = "0.1.0"
__all__ = ["ringbuffer", "scheduler", "can_config", "controller"]
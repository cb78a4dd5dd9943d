"""
Timer Management for Selective Repeat ARQ

This module maps per-slot logical timers onto the single underlying
timer a role gets from its transport. At most one logical timer is armed
at any moment; the manager remembers which slot owns the underlying timer
so that stopping a slot cancels exactly that timer.
"""

from typing import Iterable, List, Optional

from .transport import Role, Transport
from src.utils.logger import SimulationLogger, get_logger


class TimerManager:
    """
    Logical per-slot timers over one underlying single-shot timer.

    Attributes:
        transport: Timer facility provider
        role: Role whose timer is driven
        timeout: Timer duration
        active: Per-slot "timer running" flags
        owner: Slot currently holding the underlying timer
    """

    def __init__(
        self,
        transport: Transport,
        role: Role,
        window_size: int,
        timeout: float,
        logger: Optional[SimulationLogger] = None
    ):
        """
        Initialize timer manager.

        Args:
            transport: Provides start_timer / stop_timer
            role: Role owning the timer
            window_size: Number of slots to track
            timeout: Duration of every timer
            logger: Logger for timer events
        """
        self.transport = transport
        self.role = role
        self.window_size = window_size
        self.timeout = timeout
        self.logger = logger or get_logger()

        self.active: List[bool] = [False] * window_size
        self.owner: Optional[int] = None

        # Statistics
        self.total_timers_started = 0
        self.total_timeouts = 0

    def is_running(self, slot: int) -> bool:
        """Check if a slot's timer is armed."""
        return self.active[slot]

    def start(self, slot: int):
        """
        Start the timer for a slot.

        Starting a slot that is already running does nothing. If another
        slot owns the underlying timer it is stopped first.

        Args:
            slot: Buffer slot index
        """
        if self.active[slot]:
            return
        if self.owner is not None:
            self.stop(self.owner)

        self.logger.debug(f"Starting timer for slot {slot}", "TIMER")
        self.active[slot] = True
        self.owner = slot
        self.total_timers_started += 1
        self.transport.start_timer(self.role, self.timeout)

    def stop(self, slot: int):
        """
        Stop the timer for a slot. Stopping an idle slot does nothing.

        Args:
            slot: Buffer slot index
        """
        if not self.active[slot]:
            return

        self.logger.debug(f"Stopping timer for slot {slot}", "TIMER")
        self.active[slot] = False
        if self.owner == slot:
            self.owner = None
            self.transport.stop_timer(self.role)

    def expire(self, slot: int):
        """
        Record that the underlying timer fired for a slot.

        The transport has already discarded the timer, so it is not
        cancelled again.

        Args:
            slot: Buffer slot index
        """
        self.total_timeouts += 1
        self.active[slot] = False
        if self.owner == slot:
            self.owner = None

    def clear(self, slot: int):
        """Release a vacated slot's timer flag."""
        self.stop(slot)

    def first_active(self, slots: Iterable[int]) -> Optional[int]:
        """
        Find the first slot, in the given order, with a running timer.

        Args:
            slots: Slot indices in window order

        Returns:
            Slot index or None
        """
        for slot in slots:
            if self.active[slot]:
                return slot
        return None

    def ensure_running(self, outstanding: Iterable[int]):
        """
        Make sure the outstanding slots are covered by a timer.

        Args:
            outstanding: Unacknowledged slots in window order
        """
        outstanding = list(outstanding)
        if not outstanding:
            return
        if self.first_active(outstanding) is not None:
            return
        self.start(outstanding[0])

    def active_count(self) -> int:
        """Get number of armed logical timers."""
        return sum(self.active)

    def reset(self):
        """Drop all timers, cancelling the underlying one if armed."""
        if self.owner is not None:
            self.transport.stop_timer(self.role)
        self.active = [False] * self.window_size
        self.owner = None
        self.total_timers_started = 0
        self.total_timeouts = 0

    def get_statistics(self) -> dict:
        """Get timer statistics."""
        return {
            'total_timers_started': self.total_timers_started,
            'total_timeouts': self.total_timeouts,
            'active_timers': self.active_count()
        }

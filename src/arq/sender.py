"""
Selective Repeat ARQ Sender

This module implements the sender side of the Selective Repeat ARQ protocol,
including window admission, the retransmission buffer, ACK-driven window
advancement and per-packet retransmission on timeout.
"""

from typing import Optional, List
from dataclasses import dataclass, field

from config import WINDOWSIZE, SEQSPACE, RTT
from .packet import Packet, Message
from .checksum import is_corrupted
from .timer import TimerManager
from .transport import Role, Transport
from .window import validate_window, next_seqnum, slot_for
from src.utils.logger import SimulationLogger, get_logger


@dataclass
class SenderState:
    """
    Send window state.

    Attributes:
        window_size: Number of buffer slots
        base: Sequence number of the oldest unacknowledged packet
        base_slot: Buffer slot holding the packet at base
        windowcount: Number of packets currently in the window
        next_seqnum: Next sequence number to assign
        buffer: In-flight packets indexed by slot
        acked: Per-slot acknowledged flags
    """
    window_size: int = WINDOWSIZE
    base: int = 0
    base_slot: int = 0
    windowcount: int = 0
    next_seqnum: int = 0
    buffer: List[Optional[Packet]] = field(default_factory=list)
    acked: List[bool] = field(default_factory=list)

    def __post_init__(self):
        if not self.buffer:
            self.buffer = [None] * self.window_size
        if not self.acked:
            self.acked = [False] * self.window_size

    @property
    def is_full(self) -> bool:
        """Check if window is full."""
        return self.windowcount >= self.window_size

    @property
    def is_empty(self) -> bool:
        """Check if no packet is outstanding."""
        return self.windowcount == 0

    def occupied_slots(self) -> List[int]:
        """Occupied slots in window order, oldest first."""
        return [slot_for(self.base_slot, i, self.window_size)
                for i in range(self.windowcount)]

    def outstanding_slots(self) -> List[int]:
        """Unacknowledged slots in window order, oldest first."""
        return [slot for slot in self.occupied_slots() if not self.acked[slot]]

    def find_slot(self, seqnum: int) -> Optional[int]:
        """Locate the occupied slot holding seqnum, if any."""
        for slot in self.occupied_slots():
            if self.buffer[slot].seqnum == seqnum:
                return slot
        return None


class SRSender:
    """
    Selective Repeat ARQ Sender.

    Implements the sender side of SR-ARQ with:
    - Window admission with a window-full drop counter
    - A circular retransmission buffer
    - ACK deduplication and prefix-only window sliding
    - Retransmission of the single timed-out packet

    Attributes:
        transport: Lower layer, application and timer services
        window_size: Size of the send window
        seqspace: Size of the sequence number space
        state: Send window state
        timers: Logical timer manager
    """

    role = Role.SENDER

    def __init__(
        self,
        transport: Transport,
        window_size: int = WINDOWSIZE,
        seqspace: int = SEQSPACE,
        timeout: float = RTT,
        logger: Optional[SimulationLogger] = None
    ):
        """
        Initialize SR sender.

        Args:
            transport: Provides transmit and timer services
            window_size: Send window size
            seqspace: Sequence number space
            timeout: Retransmission timeout
            logger: Logger for protocol events
        """
        validate_window(window_size, seqspace)

        self.transport = transport
        self.window_size = window_size
        self.seqspace = seqspace
        self.timeout = timeout
        self.logger = logger or get_logger()

        self.state = SenderState(window_size=window_size)
        self.timers = TimerManager(
            transport, self.role, window_size, timeout, self.logger
        )

        # Statistics
        self.packets_sent = 0
        self.window_full = 0
        self.total_acks_received = 0
        self.new_acks = 0
        self.packets_resent = 0

    def send(self, message: Message) -> bool:
        """
        Accept a message from the application and transmit it.

        Args:
            message: Application message

        Returns:
            True if the message entered the window, False if it was
            dropped because the window is full
        """
        state = self.state
        if state.is_full:
            self.window_full += 1
            self.logger.window_full(self.window_full)
            return False

        packet = Packet.create_data_packet(state.next_seqnum, message.data)

        slot = slot_for(state.base_slot, state.windowcount, self.window_size)
        state.buffer[slot] = packet
        state.acked[slot] = False
        state.windowcount += 1

        self.transport.transmit(self.role, packet)
        self.packets_sent += 1
        self.logger.packet_sent(packet.seqnum)

        self.timers.ensure_running(state.outstanding_slots())
        state.next_seqnum = next_seqnum(state.next_seqnum, self.seqspace)
        return True

    def receive_ack(self, packet: Packet):
        """
        Process an ACK arriving from the receiver.

        Args:
            packet: ACK packet
        """
        if is_corrupted(packet):
            self.logger.corrupted("A", packet)
            return

        self.total_acks_received += 1
        state = self.state

        slot = state.find_slot(packet.acknum)
        if slot is None or state.acked[slot]:
            self.logger.ack_received(packet.acknum, new=False)
            return

        self.logger.ack_received(packet.acknum, new=True)
        state.acked[slot] = True
        self.new_acks += 1
        self.timers.stop(slot)

        self._slide_window()
        if not state.is_empty:
            self.timers.ensure_running(state.outstanding_slots())

    def on_timeout(self):
        """Retransmit the packet whose timer expired."""
        state = self.state
        if state.is_empty:
            return

        slot = self.timers.first_active(state.occupied_slots())
        if slot is None:
            # Stale expiry: the timed-out slot was acknowledged meanwhile
            self.timers.ensure_running(state.outstanding_slots())
            return

        packet = state.buffer[slot]
        self.logger.timeout(packet.seqnum)
        self.timers.expire(slot)

        self.transport.transmit(self.role, packet)
        self.packets_resent += 1
        self.logger.retransmit(packet.seqnum)

        self.timers.start(slot)

    def _slide_window(self):
        """Slide the window forward past the acknowledged prefix."""
        state = self.state
        while not state.is_empty and state.acked[state.base_slot]:
            slot = state.base_slot
            state.acked[slot] = False
            state.buffer[slot] = None
            self.timers.clear(slot)

            state.base = next_seqnum(state.base, self.seqspace)
            state.base_slot = (slot + 1) % self.window_size
            state.windowcount -= 1

        self.logger.window_update(state.base, state.windowcount, state.next_seqnum)

    def get_window_state(self) -> dict:
        """Get current window state."""
        state = self.state
        return {
            'base': state.base,
            'base_slot': state.base_slot,
            'windowcount': state.windowcount,
            'next_seqnum': state.next_seqnum,
            'outstanding': [state.buffer[s].seqnum for s in state.outstanding_slots()],
            'timed_slots': [s for s in state.occupied_slots()
                            if self.timers.is_running(s)]
        }

    def get_statistics(self) -> dict:
        """Get sender statistics."""
        return {
            'packets_sent': self.packets_sent,
            'window_full': self.window_full,
            'total_acks_received': self.total_acks_received,
            'new_acks': self.new_acks,
            'packets_resent': self.packets_resent,
            **self.timers.get_statistics()
        }

    def reset(self):
        """Reset sender to initial state."""
        self.timers.reset()
        self.state = SenderState(window_size=self.window_size)

        self.packets_sent = 0
        self.window_full = 0
        self.total_acks_received = 0
        self.new_acks = 0
        self.packets_resent = 0

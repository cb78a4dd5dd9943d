"""
Selective Repeat ARQ Receiver

This module implements the receiver side of the Selective Repeat ARQ protocol,
including window-bounded admission, out-of-order buffering, in-order delivery
and ACK generation.
"""

from typing import Optional, List
from dataclasses import dataclass, field

from config import WINDOWSIZE, SEQSPACE
from .packet import Packet
from .checksum import is_corrupted
from .transport import Role, Transport
from .window import validate_window, next_seqnum, seq_offset, in_window, slot_for
from src.utils.logger import SimulationLogger, get_logger


@dataclass
class ReceiverState:
    """
    Receive window state.

    Attributes:
        window_size: Number of buffer slots
        rcv_base: Next sequence number expected in order
        rcv_base_slot: Buffer slot reserved for rcv_base
        buffer: Received-but-undelivered packets indexed by slot
        received: Per-slot received flags
    """
    window_size: int = WINDOWSIZE
    rcv_base: int = 0
    rcv_base_slot: int = 0
    buffer: List[Optional[Packet]] = field(default_factory=list)
    received: List[bool] = field(default_factory=list)

    def __post_init__(self):
        if not self.buffer:
            self.buffer = [None] * self.window_size
        if not self.received:
            self.received = [False] * self.window_size

    def buffered_seqnums(self) -> List[int]:
        """Sequence numbers held for later delivery, in window order."""
        seqnums = []
        for i in range(self.window_size):
            slot = slot_for(self.rcv_base_slot, i, self.window_size)
            if self.received[slot]:
                seqnums.append(self.buffer[slot].seqnum)
        return seqnums


class SRReceiver:
    """
    Selective Repeat ARQ Receiver.

    Implements the receiver side of SR-ARQ with:
    - Window-bounded admission under sequence number wrap-around
    - Out-of-order packet buffering
    - Cumulative in-order delivery to the application
    - One ACK per uncorrupted packet, duplicates included

    Out-of-window packets are acknowledged with their own sequence number.

    Attributes:
        transport: Lower layer and application services
        window_size: Size of the receive window
        seqspace: Size of the sequence number space
        state: Receive window state
    """

    role = Role.RECEIVER

    def __init__(
        self,
        transport: Transport,
        window_size: int = WINDOWSIZE,
        seqspace: int = SEQSPACE,
        logger: Optional[SimulationLogger] = None
    ):
        """
        Initialize SR receiver.

        Args:
            transport: Provides transmit and delivery services
            window_size: Receive window size
            seqspace: Sequence number space
            logger: Logger for protocol events
        """
        validate_window(window_size, seqspace)

        self.transport = transport
        self.window_size = window_size
        self.seqspace = seqspace
        self.logger = logger or get_logger()

        self.state = ReceiverState(window_size=window_size)

        # Statistics
        self.packets_received = 0
        self.packets_delivered = 0
        self.duplicates = 0
        self.out_of_window = 0
        self.acks_sent = 0

    def receive(self, packet: Packet) -> Optional[Packet]:
        """
        Process a data packet arriving from the sender.

        Args:
            packet: Received data packet

        Returns:
            The ACK sent in response, or None for a corrupted packet
        """
        if is_corrupted(packet):
            self.logger.corrupted("B", packet)
            return None

        state = self.state
        seqnum = packet.seqnum

        if in_window(seqnum, state.rcv_base, self.window_size, self.seqspace):
            self.logger.packet_received(seqnum, in_window=True)
            offset = seq_offset(seqnum, state.rcv_base, self.seqspace)
            slot = slot_for(state.rcv_base_slot, offset, self.window_size)

            if state.received[slot]:
                self.duplicates += 1
            else:
                state.buffer[slot] = packet
                state.received[slot] = True
                self.packets_received += 1
                if seqnum == state.rcv_base:
                    self._deliver_in_order()
        else:
            # Already delivered; the ACK must have been lost
            self.logger.packet_received(seqnum, in_window=False)
            self.out_of_window += 1

        return self._send_ack(seqnum)

    def _deliver_in_order(self):
        """Deliver the run of buffered packets starting at rcv_base."""
        state = self.state
        while state.received[state.rcv_base_slot]:
            slot = state.rcv_base_slot
            packet = state.buffer[slot]

            self.transport.deliver_to_application(self.role, packet.payload)
            self.packets_delivered += 1
            self.logger.delivered(packet.seqnum)

            state.buffer[slot] = None
            state.received[slot] = False
            state.rcv_base = next_seqnum(state.rcv_base, self.seqspace)
            state.rcv_base_slot = (slot + 1) % self.window_size

    def _send_ack(self, acknum: int) -> Packet:
        """
        Build and transmit an ACK.

        Args:
            acknum: Sequence number to acknowledge

        Returns:
            ACK packet
        """
        ack = Packet.create_ack_packet(acknum)
        self.transport.transmit(self.role, ack)
        self.acks_sent += 1
        self.logger.ack_sent(acknum)
        return ack

    def get_window_state(self) -> dict:
        """Get current window state."""
        return {
            'rcv_base': self.state.rcv_base,
            'rcv_base_slot': self.state.rcv_base_slot,
            'size': self.window_size,
            'buffered': self.state.buffered_seqnums()
        }

    def get_statistics(self) -> dict:
        """Get receiver statistics."""
        return {
            'packets_received': self.packets_received,
            'packets_delivered': self.packets_delivered,
            'duplicates': self.duplicates,
            'out_of_window': self.out_of_window,
            'acks_sent': self.acks_sent
        }

    def reset(self):
        """Reset receiver to initial state."""
        self.state = ReceiverState(window_size=self.window_size)

        self.packets_received = 0
        self.packets_delivered = 0
        self.duplicates = 0
        self.out_of_window = 0
        self.acks_sent = 0


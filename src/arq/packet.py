"""
Packet Structure for Selective Repeat ARQ Protocol

This module defines the fixed-size packet record exchanged over the
unreliable link and the application message it carries.
"""

from dataclasses import dataclass

from config import NOTINUSE, PAYLOAD_SIZE
from .checksum import compute_checksum


def _check_payload(payload: bytes, what: str) -> bytes:
    payload = bytes(payload)
    if len(payload) != PAYLOAD_SIZE:
        raise ValueError(
            f"{what} must be exactly {PAYLOAD_SIZE} bytes, got {len(payload)}"
        )
    return payload


@dataclass(frozen=True)
class Message:
    """
    Application-layer message.

    Attributes:
        data: Opaque payload of exactly PAYLOAD_SIZE bytes
    """
    data: bytes

    def __post_init__(self):
        object.__setattr__(self, 'data', _check_payload(self.data, "Message data"))

    @classmethod
    def from_text(cls, text: str) -> 'Message':
        """Build a message from text, NUL-padded or truncated to size."""
        raw = text.encode()[:PAYLOAD_SIZE]
        return cls(raw.ljust(PAYLOAD_SIZE, b'\x00'))


@dataclass
class Packet:
    """
    Network packet.

    Layout:
        - seqnum: sequence number (NOTINUSE on ACKs)
        - acknum: acknowledged sequence number (NOTINUSE on data)
        - checksum: seqnum + acknum + sum of payload bytes
        - payload: PAYLOAD_SIZE bytes

    Attributes:
        seqnum: Sequence number
        acknum: Acknowledgment number
        checksum: Integrity checksum
        payload: Packet payload
    """

    seqnum: int
    acknum: int = NOTINUSE
    checksum: int = 0
    payload: bytes = bytes(PAYLOAD_SIZE)

    def __post_init__(self):
        """Validate packet after initialization."""
        self.payload = _check_payload(self.payload, "Packet payload")

    @property
    def is_ack(self) -> bool:
        """Check if this packet is an acknowledgment."""
        return self.acknum != NOTINUSE

    @classmethod
    def create_data_packet(cls, seqnum: int, payload: bytes) -> 'Packet':
        """
        Create a data packet with its checksum filled in.

        Args:
            seqnum: Sequence number
            payload: Message payload

        Returns:
            Data packet
        """
        packet = cls(seqnum=seqnum, acknum=NOTINUSE, payload=payload)
        packet.checksum = compute_checksum(packet)
        return packet

    @classmethod
    def create_ack_packet(cls, acknum: int) -> 'Packet':
        """
        Create an ACK packet with a zero-filled payload.

        Args:
            acknum: Acknowledged sequence number

        Returns:
            ACK packet
        """
        packet = cls(seqnum=NOTINUSE, acknum=acknum)
        packet.checksum = compute_checksum(packet)
        return packet

    def __repr__(self) -> str:
        kind = "ACK" if self.is_ack else "DATA"
        return (f"Packet(type={kind}, seq={self.seqnum}, ack={self.acknum}, "
                f"checksum={self.checksum})")

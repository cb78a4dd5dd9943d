"""
Transport boundary between the ARQ engines and the lower layer.

The engines never touch the network, the clock or the application
directly; everything goes through an object implementing Transport.
"""

from enum import Enum
from typing import Protocol

from .packet import Packet


class Role(Enum):
    """Protocol side enumeration."""
    SENDER = 0    # side A
    RECEIVER = 1  # side B


class Transport(Protocol):
    """Services the engines need from their environment."""

    def transmit(self, role: Role, packet: Packet) -> None:
        """Hand a packet to the unreliable channel."""
        ...

    def deliver_to_application(self, role: Role, payload: bytes) -> None:
        """Hand an in-order payload to the application layer."""
        ...

    def start_timer(self, role: Role, duration: float) -> None:
        """Arm the role's single timer."""
        ...

    def stop_timer(self, role: Role) -> None:
        """Cancel the role's single timer."""
        ...

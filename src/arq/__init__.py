"""
ARQ package - Selective Repeat ARQ protocol components.

Contains implementations for:
- Packet structure and checksum
- Sequence window arithmetic
- Sender with window management
- Receiver with out-of-order buffering
- Timer management
"""

from .packet import Packet, Message
from .checksum import compute_checksum, is_corrupted
from .transport import Role, Transport
from .sender import SRSender, SenderState
from .receiver import SRReceiver, ReceiverState
from .timer import TimerManager

__all__ = [
    'Packet',
    'Message',
    'compute_checksum',
    'is_corrupted',
    'Role',
    'Transport',
    'SRSender',
    'SenderState',
    'SRReceiver',
    'ReceiverState',
    'TimerManager'
]

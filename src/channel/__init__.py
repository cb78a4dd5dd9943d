"""
Channel package - Unreliable link models.

Contains implementations for:
- Lossy, corrupting, delaying link direction
- Gilbert-Elliot burst corruption model
"""

from .gilbert_elliot import GilbertElliottModel, ChannelState
from .unreliable import UnreliableChannel

__all__ = [
    'GilbertElliottModel',
    'ChannelState',
    'UnreliableChannel'
]

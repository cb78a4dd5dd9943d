"""
Layers package - Application side of the emulated stack.

Contains implementations for:
- Message generation (layer 5 source)
- Delivery verification (layer 5 sink)
"""

from .application_layer import MessageGenerator, DeliveryVerifier

__all__ = [
    'MessageGenerator',
    'DeliveryVerifier'
]

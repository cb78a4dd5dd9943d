"""
Application Layer Implementation

This module implements the application side of the emulator: the source
of fixed-size messages handed to the sender and the sink checking what
the receiver delivers.
"""

import hashlib
import string
from typing import List, Optional, Tuple

import numpy as np

from config import PAYLOAD_SIZE, MEAN_MESSAGE_INTERVAL
from src.arq.packet import Message


class MessageGenerator:
    """
    Generates application messages and their arrival times.

    Message i carries PAYLOAD_SIZE copies of the i-th lowercase letter,
    cycling through the alphabet.

    Attributes:
        mean_interval: Mean time between messages
        rng: Random number generator
        generated: Number of messages produced so far
    """

    def __init__(
        self,
        mean_interval: float = MEAN_MESSAGE_INTERVAL,
        seed: Optional[int] = None
    ):
        """
        Initialize message generator.

        Args:
            mean_interval: Mean time between consecutive messages
            seed: Random seed for reproducibility
        """
        if mean_interval <= 0:
            raise ValueError("mean_interval must be positive")
        self.mean_interval = mean_interval
        self.rng = np.random.default_rng(seed)
        self.generated = 0

    def next_message(self) -> Message:
        """Produce the next message in the letter cycle."""
        letter = string.ascii_lowercase[self.generated % 26]
        self.generated += 1
        return Message((letter * PAYLOAD_SIZE).encode())

    def next_interval(self) -> float:
        """Draw the time until the next message, uniform on [0, 2 * mean]."""
        return float(self.rng.uniform(0.0, 2.0 * self.mean_interval))

    def reset(self, seed: Optional[int] = None):
        """Restart the letter cycle, optionally reseeding."""
        if seed is not None:
            self.rng = np.random.default_rng(seed)
        self.generated = 0


class DeliveryVerifier:
    """
    Checks exactly-once, in-order delivery.

    The sender side records every message accepted into the window; the
    receiver side records every payload handed to the application.
    """

    def __init__(self):
        self.accepted: List[bytes] = []
        self.delivered: List[bytes] = []

    def record_accepted(self, payload: bytes):
        """Record a message the sender accepted."""
        self.accepted.append(bytes(payload))

    def record_delivered(self, payload: bytes):
        """Record a payload delivered by the receiver."""
        self.delivered.append(bytes(payload))

    @staticmethod
    def calculate_checksum(payloads: List[bytes]) -> str:
        """Calculate MD5 digest of a payload stream."""
        return hashlib.md5(b''.join(payloads)).hexdigest()

    def verify(self) -> Tuple[bool, dict]:
        """
        Verify the delivered stream against the accepted one.

        The delivered stream is valid when it is a prefix of the accepted
        stream: nothing reordered, duplicated or invented.

        Returns:
            Tuple of (valid, details)
        """
        first_mismatch = -1
        for i, (sent, got) in enumerate(zip(self.accepted, self.delivered)):
            if sent != got:
                first_mismatch = i
                break

        too_many = len(self.delivered) > len(self.accepted)
        if first_mismatch == -1 and too_many:
            first_mismatch = len(self.accepted)

        valid = first_mismatch == -1
        complete = valid and len(self.delivered) == len(self.accepted)

        details = {
            'accepted': len(self.accepted),
            'delivered': len(self.delivered),
            'complete': complete,
            'first_mismatch': first_mismatch,
            'accepted_checksum': self.calculate_checksum(self.accepted),
            'delivered_checksum': self.calculate_checksum(self.delivered)
        }
        return valid, details

    def reset(self):
        """Forget all recorded traffic."""
        self.accepted.clear()
        self.delivered.clear()

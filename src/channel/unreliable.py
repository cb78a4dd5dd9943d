"""
Unreliable Link Model

One direction of the emulated link. Packets handed to the channel may be
lost, corrupted and delayed, but never reordered: a later packet never
arrives before an earlier one in the same direction. The channel always
works on a copy, so a sender's buffered packet is never damaged.
"""

from dataclasses import replace
from typing import Optional, Tuple

import numpy as np

from config import (
    LOSS_PROB, CORRUPT_PROB, MIN_LINK_DELAY, MAX_LINK_DELAY,
    CORRUPTED_FIELD_VALUE
)
from src.arq.packet import Packet
from .gilbert_elliot import GilbertElliottModel


class UnreliableChannel:
    """
    Lossy, corrupting, delaying FIFO link direction.

    Attributes:
        loss_prob: Probability a packet is dropped
        corrupt_prob: Probability a surviving packet is corrupted
        min_delay: Minimum one-way delay
        max_delay: Maximum one-way delay
        burst_model: Optional Gilbert-Elliott model replacing corrupt_prob
        rng: Random number generator
    """

    def __init__(
        self,
        loss_prob: float = LOSS_PROB,
        corrupt_prob: float = CORRUPT_PROB,
        min_delay: float = MIN_LINK_DELAY,
        max_delay: float = MAX_LINK_DELAY,
        burst_model: Optional[GilbertElliottModel] = None,
        seed: Optional[int] = None
    ):
        """
        Initialize the channel.

        Args:
            loss_prob: Probability of losing a packet
            corrupt_prob: Probability of corrupting a packet
            min_delay: Lower bound of the one-way delay
            max_delay: Upper bound of the one-way delay
            burst_model: Burst corruption model (overrides corrupt_prob)
            seed: Random seed for reproducibility
        """
        if not 0.0 <= loss_prob <= 1.0:
            raise ValueError(f"loss_prob must be a probability, got {loss_prob}")
        if not 0.0 <= corrupt_prob <= 1.0:
            raise ValueError(f"corrupt_prob must be a probability, got {corrupt_prob}")
        if not 0.0 <= min_delay <= max_delay:
            raise ValueError("Delays must satisfy 0 <= min_delay <= max_delay")

        self.loss_prob = loss_prob
        self.corrupt_prob = corrupt_prob
        self.min_delay = min_delay
        self.max_delay = max_delay
        self.burst_model = burst_model

        self.rng = np.random.default_rng(seed)
        self.last_arrival = 0.0

        # Statistics
        self.packets_sent = 0
        self.packets_lost = 0
        self.packets_corrupted = 0

    def _should_corrupt(self) -> bool:
        if self.burst_model is not None:
            return self.burst_model.step()
        return bool(self.rng.random() < self.corrupt_prob)

    def corrupt(self, packet: Packet) -> Packet:
        """
        Return a damaged copy of a packet.

        Three times out of four the first payload byte is flipped,
        otherwise the seqnum or acknum field is overwritten.

        Args:
            packet: Packet to damage

        Returns:
            Corrupted copy
        """
        x = self.rng.random()
        if x < 0.75:
            payload = bytearray(packet.payload)
            payload[0] ^= 0xFF
            return replace(packet, payload=bytes(payload))
        if x < 0.875:
            return replace(packet, seqnum=CORRUPTED_FIELD_VALUE)
        return replace(packet, acknum=CORRUPTED_FIELD_VALUE)

    def transmit(self, packet: Packet, now: float) -> Optional[Tuple[float, Packet]]:
        """
        Push a packet into the channel.

        Args:
            packet: Packet to carry
            now: Current simulation time

        Returns:
            (arrival_time, packet_as_received), or None if lost
        """
        self.packets_sent += 1

        if self.rng.random() < self.loss_prob:
            self.packets_lost += 1
            return None

        delivered = replace(packet)
        if self._should_corrupt():
            self.packets_corrupted += 1
            delivered = self.corrupt(packet)

        # FIFO: a packet waits behind the one sent before it
        arrival = max(now + self.rng.uniform(self.min_delay, self.max_delay),
                      self.last_arrival)
        self.last_arrival = arrival

        return arrival, delivered

    def get_statistics(self) -> dict:
        """Get channel statistics."""
        stats = {
            'packets_sent': self.packets_sent,
            'packets_lost': self.packets_lost,
            'packets_corrupted': self.packets_corrupted,
            'observed_loss_rate': (self.packets_lost / self.packets_sent
                                   if self.packets_sent > 0 else 0),
        }
        if self.burst_model is not None:
            stats['burst'] = self.burst_model.get_statistics()
        return stats

    def reset(self, seed: Optional[int] = None):
        """
        Reset the channel to initial state.

        Args:
            seed: New random seed (optional)
        """
        if seed is not None:
            self.rng = np.random.default_rng(seed)
        self.last_arrival = 0.0
        self.packets_sent = 0
        self.packets_lost = 0
        self.packets_corrupted = 0
        if self.burst_model is not None:
            self.burst_model.reset(None if seed is None else seed + 1)

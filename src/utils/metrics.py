"""
Metrics Collection and Calculation

This module provides utilities for calculating and tracking emulator-level
performance metrics: goodput, transmission efficiency and delivery latency.
"""

from typing import List, Optional, Dict
from collections import deque
import statistics

from config import PAYLOAD_SIZE


class MetricsCollector:
    """
    Collects and calculates performance metrics for a simulation run.

    Primary metric: Goodput = Messages Delivered / Simulated Time

    Attributes:
        start_time: Simulation start time
        end_time: Simulation end time
    """

    def __init__(self):
        """Initialize metrics collector."""
        # Time tracking
        self.start_time: Optional[float] = None
        self.end_time: Optional[float] = None

        # Application counters
        self.messages_generated = 0
        self.messages_accepted = 0
        self.messages_dropped = 0
        self.messages_delivered = 0

        # Packet counters
        self.data_packets_sent = 0
        self.ack_packets_sent = 0
        self.retransmissions = 0

        # Acceptance times of messages still awaiting delivery, FIFO
        self._pending_since: deque = deque()
        self.latency_samples: List[float] = []

    def start(self, time: float):
        """
        Mark simulation start.

        Args:
            time: Start time
        """
        self.start_time = time

    def finish(self, time: float):
        """
        Mark simulation end.

        Args:
            time: End time
        """
        self.end_time = time

    def record_message_generated(self):
        """Record a message produced by the application."""
        self.messages_generated += 1

    def record_message_accepted(self, time: float):
        """
        Record a message accepted into the send window.

        Args:
            time: Acceptance time
        """
        self.messages_accepted += 1
        self._pending_since.append(time)

    def record_message_dropped(self):
        """Record a message refused because the window was full."""
        self.messages_dropped += 1

    def record_message_delivered(self, time: float):
        """
        Record an in-order delivery.

        Delivery is in acceptance order, so the oldest pending acceptance
        time belongs to this message.

        Args:
            time: Delivery time
        """
        self.messages_delivered += 1
        if self._pending_since:
            self.latency_samples.append(time - self._pending_since.popleft())

    def record_data_sent(self, retransmission: bool = False):
        """Record a data packet handed to the channel."""
        self.data_packets_sent += 1
        if retransmission:
            self.retransmissions += 1

    def record_ack_sent(self):
        """Record an ACK packet handed to the channel."""
        self.ack_packets_sent += 1

    @property
    def total_time(self) -> float:
        if self.start_time is None or self.end_time is None:
            return 0.0
        return self.end_time - self.start_time

    def calculate_goodput(self) -> float:
        """
        Calculate Goodput.

        Goodput = Messages Delivered / Total Simulated Time

        Returns:
            Goodput in messages per time unit
        """
        if self.total_time <= 0:
            return 0.0
        return self.messages_delivered / self.total_time

    def calculate_efficiency(self) -> float:
        """
        Calculate transmission efficiency.

        Efficiency = Messages Delivered / Data Packets Transmitted

        Returns:
            Efficiency ratio (0-1)
        """
        if self.data_packets_sent <= 0:
            return 0.0
        return self.messages_delivered / self.data_packets_sent

    def calculate_retransmission_rate(self) -> float:
        """
        Calculate retransmission rate.

        Returns:
            Retransmissions / Original Packets Sent
        """
        originals = self.data_packets_sent - self.retransmissions
        if originals <= 0:
            return 0.0
        return self.retransmissions / originals

    def calculate_drop_rate(self) -> float:
        """Fraction of generated messages refused by a full window."""
        if self.messages_generated <= 0:
            return 0.0
        return self.messages_dropped / self.messages_generated

    def get_latency_statistics(self) -> Dict[str, float]:
        """
        Get delivery latency statistics.

        Returns:
            Dictionary with min, max, mean, median, stdev latency
        """
        if not self.latency_samples:
            return {
                'min': 0, 'max': 0, 'mean': 0,
                'median': 0, 'stdev': 0, 'samples': 0
            }

        return {
            'min': min(self.latency_samples),
            'max': max(self.latency_samples),
            'mean': statistics.mean(self.latency_samples),
            'median': statistics.median(self.latency_samples),
            'stdev': statistics.stdev(self.latency_samples) if len(self.latency_samples) > 1 else 0,
            'samples': len(self.latency_samples)
        }

    def get_summary(self) -> Dict:
        """
        Get comprehensive metrics summary.

        Returns:
            Dictionary with all metrics
        """
        return {
            # Time
            'total_time': self.total_time,
            'start_time': self.start_time,
            'end_time': self.end_time,

            # Primary metric
            'goodput': self.calculate_goodput(),
            'goodput_bytes': self.calculate_goodput() * PAYLOAD_SIZE,

            # Secondary metrics
            'efficiency': self.calculate_efficiency(),
            'retransmission_rate': self.calculate_retransmission_rate(),
            'drop_rate': self.calculate_drop_rate(),

            # Message counts
            'messages_generated': self.messages_generated,
            'messages_accepted': self.messages_accepted,
            'messages_dropped': self.messages_dropped,
            'messages_delivered': self.messages_delivered,

            # Packet counts
            'data_packets_sent': self.data_packets_sent,
            'ack_packets_sent': self.ack_packets_sent,
            'retransmissions': self.retransmissions,

            # Latency
            'latency': self.get_latency_statistics()
        }

    def to_csv_row(self) -> Dict:
        """
        Get metrics as a flat dictionary suitable for CSV export.

        Returns:
            Dictionary with flattened metrics
        """
        summary = self.get_summary()
        latency = summary.pop('latency')

        flat = {**summary}
        for key, value in latency.items():
            flat[f'latency_{key}'] = value

        return flat

    def reset(self):
        """Reset all metrics."""
        self.start_time = None
        self.end_time = None
        self.messages_generated = 0
        self.messages_accepted = 0
        self.messages_dropped = 0
        self.messages_delivered = 0
        self.data_packets_sent = 0
        self.ack_packets_sent = 0
        self.retransmissions = 0
        self._pending_since.clear()
        self.latency_samples.clear()

"""
Unit tests for the unreliable channel and the Gilbert-Elliott burst model.
"""

import pytest
import sys
import os

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from config import PAYLOAD_SIZE
from src.arq.packet import Packet
from src.arq.checksum import is_corrupted
from src.channel.unreliable import UnreliableChannel
from src.channel.gilbert_elliot import (
    GilbertElliottModel, ChannelState, analyze_burst_lengths
)


def sample_packet(seqnum=0):
    return Packet.create_data_packet(seqnum, b"z" * PAYLOAD_SIZE)


class TestUnreliableChannel:
    """Tests for one direction of the emulated link."""

    def test_perfect_channel_delivers_copy(self):
        """A lossless, error-free channel delivers an intact copy."""
        channel = UnreliableChannel(loss_prob=0.0, corrupt_prob=0.0, seed=1)
        packet = sample_packet()

        arrival, received = channel.transmit(packet, now=5.0)

        assert received == packet
        assert received is not packet
        assert 6.0 <= arrival <= 15.0

    def test_total_loss(self):
        """With loss probability 1 nothing arrives."""
        channel = UnreliableChannel(loss_prob=1.0, seed=1)

        for i in range(10):
            assert channel.transmit(sample_packet(i), now=0.0) is None

        stats = channel.get_statistics()
        assert stats['packets_lost'] == 10
        assert stats['observed_loss_rate'] == 1.0

    def test_corruption_detected_and_original_untouched(self):
        """Corrupted copies fail the checksum; the sender's packet does not."""
        channel = UnreliableChannel(corrupt_prob=1.0, seed=3)
        packet = sample_packet(4)

        for _ in range(50):
            _, received = channel.transmit(packet, now=0.0)
            assert is_corrupted(received)

        assert not is_corrupted(packet)
        assert channel.packets_corrupted == 50

    def test_corrupted_ack_detected(self):
        """Every corruption mode is visible on ACKs too."""
        channel = UnreliableChannel(corrupt_prob=1.0, seed=4)
        ack = Packet.create_ack_packet(3)

        for _ in range(50):
            _, received = channel.transmit(ack, now=0.0)
            assert is_corrupted(received)

    def test_fifo_order(self):
        """Arrival times never decrease."""
        channel = UnreliableChannel(seed=7)
        arrivals = [channel.transmit(sample_packet(i), now=float(i))[0]
                    for i in range(200)]

        assert arrivals == sorted(arrivals)

    def test_back_to_back_packets_keep_order(self):
        """Packets sent at the same instant arrive in sending order."""
        channel = UnreliableChannel(seed=7)
        arrivals = [channel.transmit(sample_packet(i), now=0.0)[0]
                    for i in range(200)]

        assert arrivals == sorted(arrivals)

    def test_invalid_parameters(self):
        """Probabilities and delays are validated."""
        with pytest.raises(ValueError):
            UnreliableChannel(loss_prob=1.5)
        with pytest.raises(ValueError):
            UnreliableChannel(corrupt_prob=-0.1)
        with pytest.raises(ValueError):
            UnreliableChannel(min_delay=5.0, max_delay=1.0)

    def test_burst_model_replaces_corrupt_prob(self):
        """A burst model decides corruption instead of corrupt_prob."""
        model = GilbertElliottModel(good_error=1.0, bad_error=1.0, seed=0)
        channel = UnreliableChannel(corrupt_prob=0.0, burst_model=model, seed=0)

        _, received = channel.transmit(sample_packet(), now=0.0)

        assert is_corrupted(received)
        assert 'burst' in channel.get_statistics()

    def test_reset_reproducible(self):
        """Reseeding replays the same channel behaviour."""
        channel = UnreliableChannel(loss_prob=0.3, corrupt_prob=0.3, seed=11)
        first = [channel.transmit(sample_packet(i), now=0.0) for i in range(30)]

        channel.reset(11)
        second = [channel.transmit(sample_packet(i), now=0.0) for i in range(30)]

        assert first == second


class TestGilbertElliottModel:
    """Tests for the Gilbert-Elliott burst corruption model."""

    def test_initialization(self):
        """Model starts in one of its two states."""
        model = GilbertElliottModel(seed=42)

        assert model.p_gb == 0.05
        assert model.p_bg == 0.3
        assert model.state in [ChannelState.GOOD, ChannelState.BAD]

    def test_steady_state_probabilities(self):
        """Steady-state probabilities sum to one."""
        model = GilbertElliottModel()

        pi_good, pi_bad = model.get_steady_state_probabilities()

        assert abs(pi_good + pi_bad - 1.0) < 1e-10
        assert pi_good == pytest.approx(0.3 / 0.35)

    def test_average_error_rate(self):
        """Average error mixes the two state error rates."""
        model = GilbertElliottModel()
        pi_good, pi_bad = model.get_steady_state_probabilities()

        expected = pi_good * model.good_error + pi_bad * model.bad_error
        assert model.get_average_error_rate() == pytest.approx(expected)

    def test_observed_error_rate_converges(self):
        """Long runs approach the theoretical error rate."""
        model = GilbertElliottModel(seed=123)

        for _ in range(50000):
            model.step()

        stats = model.get_statistics()
        assert stats['observed_error_rate'] == pytest.approx(
            stats['theoretical_error_rate'], abs=0.02
        )

    def test_errors_are_bursty(self):
        """A sticky bad state produces long corruption bursts."""
        model = GilbertElliottModel(good_error=0.0, bad_error=1.0,
                                    p_gb=0.05, p_bg=0.05, seed=5)
        pattern = [model.step() for _ in range(5000)]

        bursts = analyze_burst_lengths(pattern)
        assert bursts['mean_length'] > 5

    def test_invalid_probabilities(self):
        """Out-of-range or degenerate parameters are rejected."""
        with pytest.raises(ValueError):
            GilbertElliottModel(good_error=2.0)
        with pytest.raises(ValueError):
            GilbertElliottModel(p_gb=0.0, p_bg=0.0)

    def test_reset_reproducible(self):
        """Same seed gives the same corruption pattern."""
        model = GilbertElliottModel(seed=9)
        first = [model.step() for _ in range(200)]

        model.reset(9)
        second = [model.step() for _ in range(200)]

        assert first == second
        assert model.packets_seen == 200


class TestBurstAnalysis:
    """Tests for burst length analysis."""

    def test_analyze_bursts(self):
        """Bursts are maximal runs of corrupted packets."""
        result = analyze_burst_lengths([False, True, True, False, True])

        assert result['num_bursts'] == 2
        assert result['mean_length'] == 1.5
        assert result['max_length'] == 2

    def test_no_errors(self):
        """An error-free pattern has no bursts."""
        result = analyze_burst_lengths([False] * 10)

        assert result['num_bursts'] == 0
        assert result['max_length'] == 0

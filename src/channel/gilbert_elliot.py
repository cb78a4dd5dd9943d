"""
Gilbert-Elliott Burst Corruption Model

This module implements a two-state Markov chain deciding, packet by
packet, whether the link corrupts what it carries. The chain alternates
between a "Good" state (rare corruption) and a "Bad" state (frequent
corruption), producing bursts of damaged packets.
"""

import numpy as np
from enum import Enum
from typing import Tuple, List, Optional

from config import (
    GOOD_STATE_ERROR, BAD_STATE_ERROR,
    P_GOOD_TO_BAD, P_BAD_TO_GOOD
)


class ChannelState(Enum):
    """Channel state enumeration."""
    GOOD = 0
    BAD = 1


class GilbertElliottModel:
    """
    Gilbert-Elliott two-state Markov corruption model.

    Attributes:
        good_error: Packet corruption probability in Good state
        bad_error: Packet corruption probability in Bad state
        p_gb: Transition probability from Good to Bad
        p_bg: Transition probability from Bad to Good
        state: Current channel state
        rng: Random number generator
    """

    def __init__(
        self,
        good_error: float = GOOD_STATE_ERROR,
        bad_error: float = BAD_STATE_ERROR,
        p_gb: float = P_GOOD_TO_BAD,
        p_bg: float = P_BAD_TO_GOOD,
        seed: Optional[int] = None
    ):
        """
        Initialize the Gilbert-Elliott model.

        Args:
            good_error: Corruption probability in Good state
            bad_error: Corruption probability in Bad state
            p_gb: Probability of transitioning from Good to Bad
            p_bg: Probability of transitioning from Bad to Good
            seed: Random seed for reproducibility
        """
        for name, value in (('good_error', good_error), ('bad_error', bad_error),
                            ('p_gb', p_gb), ('p_bg', p_bg)):
            if not 0.0 <= value <= 1.0:
                raise ValueError(f"{name} must be a probability, got {value}")
        if p_gb + p_bg == 0:
            raise ValueError("p_gb and p_bg cannot both be zero")

        self.good_error = good_error
        self.bad_error = bad_error
        self.p_gb = p_gb
        self.p_bg = p_bg

        self.rng = np.random.default_rng(seed)
        self._initialize_state()

        # Statistics tracking
        self.packets_seen = 0
        self.packets_corrupted = 0
        self.state_transitions = 0
        self.time_in_good = 0
        self.time_in_bad = 0

    def _initialize_state(self):
        """Initialize channel state based on steady-state probabilities."""
        pi_good, _ = self.get_steady_state_probabilities()
        if self.rng.random() < pi_good:
            self.state = ChannelState.GOOD
        else:
            self.state = ChannelState.BAD

    def get_steady_state_probabilities(self) -> Tuple[float, float]:
        """
        Calculate steady-state probabilities for Good and Bad states.

        Returns:
            Tuple of (π_Good, π_Bad)
        """
        sum_transitions = self.p_gb + self.p_bg
        pi_good = self.p_bg / sum_transitions
        pi_bad = self.p_gb / sum_transitions
        return pi_good, pi_bad

    def get_average_error_rate(self) -> float:
        """Long-run fraction of corrupted packets."""
        pi_good, pi_bad = self.get_steady_state_probabilities()
        return pi_good * self.good_error + pi_bad * self.bad_error

    def get_current_error_rate(self) -> float:
        """Get the corruption probability for the current state."""
        return self.good_error if self.state == ChannelState.GOOD else self.bad_error

    def transition_state(self):
        """Perform one state transition."""
        if self.state == ChannelState.GOOD:
            self.time_in_good += 1
            if self.rng.random() < self.p_gb:
                self.state = ChannelState.BAD
                self.state_transitions += 1
        else:
            self.time_in_bad += 1
            if self.rng.random() < self.p_bg:
                self.state = ChannelState.GOOD
                self.state_transitions += 1

    def step(self) -> bool:
        """
        Decide the fate of one packet, then move the chain.

        Returns:
            True if the packet should be corrupted
        """
        corrupt = bool(self.rng.random() < self.get_current_error_rate())

        self.packets_seen += 1
        if corrupt:
            self.packets_corrupted += 1

        self.transition_state()
        return corrupt

    def get_statistics(self) -> dict:
        """Get model statistics."""
        total_time = self.time_in_good + self.time_in_bad
        return {
            'packets_seen': self.packets_seen,
            'packets_corrupted': self.packets_corrupted,
            'observed_error_rate': (self.packets_corrupted / self.packets_seen
                                    if self.packets_seen > 0 else 0),
            'state_transitions': self.state_transitions,
            'fraction_in_good': (self.time_in_good / total_time
                                 if total_time > 0 else 0),
            'theoretical_error_rate': self.get_average_error_rate()
        }

    def reset(self, seed: Optional[int] = None):
        """
        Reset the model to initial state.

        Args:
            seed: New random seed (optional)
        """
        if seed is not None:
            self.rng = np.random.default_rng(seed)
        self._initialize_state()
        self.packets_seen = 0
        self.packets_corrupted = 0
        self.state_transitions = 0
        self.time_in_good = 0
        self.time_in_bad = 0


def analyze_burst_lengths(error_pattern: List[bool]) -> dict:
    """
    Measure runs of consecutive corrupted packets.

    Args:
        error_pattern: Per-packet corruption decisions

    Returns:
        Dictionary with burst count, mean and max length
    """
    bursts = []
    run = 0
    for corrupted in error_pattern:
        if corrupted:
            run += 1
        elif run:
            bursts.append(run)
            run = 0
    if run:
        bursts.append(run)

    return {
        'num_bursts': len(bursts),
        'mean_length': float(np.mean(bursts)) if bursts else 0.0,
        'max_length': max(bursts) if bursts else 0
    }

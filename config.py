"""
Configuration file for the Selective Repeat ARQ engine and link emulator.
Contains the protocol constants and the emulator / sweep defaults.
"""

# =============================================================================
# PROTOCOL CONSTANTS
# =============================================================================

# Maximum number of outstanding unacknowledged packets
WINDOWSIZE = 6

# Sequence number space (must be >= 2 * WINDOWSIZE)
SEQSPACE = 12

# Retransmission timeout (simulated time units)
RTT = 16.0

# Marks an unused acknum (data packets) or seqnum (ACK packets)
NOTINUSE = -1

# Fixed application payload size (bytes)
PAYLOAD_SIZE = 20

# =============================================================================
# LINK EMULATOR DEFAULTS
# =============================================================================

# Number of messages handed down by the application layer
NUM_MESSAGES = 1000

# Probability that a packet is lost / corrupted in transit
LOSS_PROB = 0.0
CORRUPT_PROB = 0.0

# Mean time between application messages
MEAN_MESSAGE_INTERVAL = 10.0

# One-way link delay range
MIN_LINK_DELAY = 1.0
MAX_LINK_DELAY = 10.0

# Value written into a corrupted seqnum / acknum field
CORRUPTED_FIELD_VALUE = 999999

# =============================================================================
# GILBERT-ELLIOTT BURST CORRUPTION PARAMETERS (per packet)
# =============================================================================

GOOD_STATE_ERROR = 0.01
BAD_STATE_ERROR = 0.5
P_GOOD_TO_BAD = 0.05
P_BAD_TO_GOOD = 0.3

# =============================================================================
# PARAMETER SWEEP CONFIGURATION
# =============================================================================

LOSS_PROBS = [0.0, 0.1, 0.2, 0.3, 0.4]
CORRUPT_PROBS = [0.0, 0.1, 0.2, 0.3, 0.4]

# Number of simulation runs per (loss, corruption) pair
RUNS_PER_CONFIGURATION = 5

# =============================================================================
# SIMULATION SETTINGS
# =============================================================================

# Default RNG seed base (actual seed = base + run offset)
RNG_SEED_BASE = 42

# Simulated time limit - failsafe
MAX_SIMULATION_TIME = 1_000_000.0

# Logging verbosity levels
LOG_LEVEL_DEBUG = 0
LOG_LEVEL_INFO = 1
LOG_LEVEL_WARNING = 2
LOG_LEVEL_ERROR = 3

DEFAULT_LOG_LEVEL = LOG_LEVEL_INFO

# =============================================================================
# OUTPUT PATHS
# =============================================================================

import os

BASE_DIR = os.path.dirname(os.path.abspath(__file__))
DATA_DIR = os.path.join(BASE_DIR, "data")
OUTPUT_DIR = os.path.join(DATA_DIR, "output")
PLOTS_DIR = os.path.join(OUTPUT_DIR, "plots")

# Results CSV filename
RESULTS_CSV = os.path.join(OUTPUT_DIR, "results.csv")

# =============================================================================
# DERIVED PARAMETERS
# =============================================================================

def calculate_mean_round_trip():
    """Mean round trip of a packet and its ACK on an idle link."""
    return MIN_LINK_DELAY + MAX_LINK_DELAY


def calculate_steady_state_probabilities():
    """
    Calculate steady-state probabilities for Good and Bad states.
    π_G = P(B→G) / (P(G→B) + P(B→G))
    π_B = P(G→B) / (P(G→B) + P(B→G))
    """
    sum_transitions = P_GOOD_TO_BAD + P_BAD_TO_GOOD
    pi_good = P_BAD_TO_GOOD / sum_transitions
    pi_bad = P_GOOD_TO_BAD / sum_transitions
    return pi_good, pi_bad


def calculate_average_burst_error():
    """Average per-packet corruption rate of the burst model."""
    pi_good, pi_bad = calculate_steady_state_probabilities()
    return pi_good * GOOD_STATE_ERROR + pi_bad * BAD_STATE_ERROR


# Print configuration summary
if __name__ == "__main__":
    print("=" * 60)
    print("SELECTIVE REPEAT ARQ - CONFIGURATION")
    print("=" * 60)
    print(f"\nProtocol:")
    print(f"  Window size: {WINDOWSIZE}")
    print(f"  Sequence space: {SEQSPACE}")
    print(f"  Timeout: {RTT}")
    print(f"  Payload size: {PAYLOAD_SIZE} bytes")

    print(f"\nLink Emulator:")
    print(f"  Messages: {NUM_MESSAGES}")
    print(f"  Loss probability: {LOSS_PROB}")
    print(f"  Corruption probability: {CORRUPT_PROB}")
    print(f"  Mean message interval: {MEAN_MESSAGE_INTERVAL}")
    print(f"  Link delay: [{MIN_LINK_DELAY}, {MAX_LINK_DELAY}]")
    print(f"  Mean round trip: {calculate_mean_round_trip()}")

    pi_good, pi_bad = calculate_steady_state_probabilities()
    print(f"\nGilbert-Elliott Burst Model:")
    print(f"  Steady-state P(Good): {pi_good:.4f}")
    print(f"  Steady-state P(Bad): {pi_bad:.4f}")
    print(f"  Average error rate: {calculate_average_burst_error():.4f}")

    print(f"\nParameter Sweep:")
    print(f"  Loss probabilities: {LOSS_PROBS}")
    print(f"  Corruption probabilities: {CORRUPT_PROBS}")
    print(f"  Runs per config: {RUNS_PER_CONFIGURATION}")

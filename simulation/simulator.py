"""
Main Simulator - Event-Driven Link Emulation

This module implements the emulator that drives a Selective Repeat sender
and receiver over two unreliable channel directions. The simulator is the
engines' Transport: it carries their packets, owns their timers and hands
delivered payloads to the application sink.
"""

from typing import Optional, Dict, List
from dataclasses import dataclass, field
from enum import Enum
import heapq
import itertools
import time
import sys
import os

# Add parent to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from config import (
    NUM_MESSAGES, LOSS_PROB, CORRUPT_PROB, MEAN_MESSAGE_INTERVAL,
    WINDOWSIZE, SEQSPACE, RTT, MIN_LINK_DELAY, MAX_LINK_DELAY,
    MAX_SIMULATION_TIME
)
from src.arq.packet import Packet
from src.arq.sender import SRSender
from src.arq.receiver import SRReceiver
from src.arq.transport import Role
from src.arq.window import validate_window
from src.channel.unreliable import UnreliableChannel
from src.channel.gilbert_elliot import GilbertElliottModel
from src.layers.application_layer import MessageGenerator, DeliveryVerifier
from src.utils.metrics import MetricsCollector
from src.utils.logger import SimulationLogger, LogLevel


class EventType(Enum):
    """Types of simulation events."""
    FROM_APPLICATION = 0  # New message for the sender
    FROM_NETWORK = 1      # Packet arrives at a role
    TIMER_INTERRUPT = 2   # A role's timer expires


@dataclass(order=True)
class SimEvent:
    """Simulation event. Ties on time are broken by scheduling order."""
    time: float
    order: int
    event_type: EventType = field(compare=False)
    data: dict = field(compare=False, default_factory=dict)


@dataclass
class SimulatorConfig:
    """Configuration for the simulator."""
    # Traffic
    num_messages: int = NUM_MESSAGES
    mean_interval: float = MEAN_MESSAGE_INTERVAL

    # Channel
    loss_prob: float = LOSS_PROB
    corrupt_prob: float = CORRUPT_PROB
    burst_errors: bool = False

    # ARQ parameters
    window_size: int = WINDOWSIZE
    seqspace: int = SEQSPACE
    timeout: float = RTT

    # Simulation parameters
    seed: int = 42
    max_time: float = MAX_SIMULATION_TIME
    log_level: int = LogLevel.WARNING

    def __post_init__(self):
        if self.num_messages < 0:
            raise ValueError("num_messages cannot be negative")
        if self.mean_interval <= 0:
            raise ValueError("mean_interval must be positive")
        if self.timeout <= 0:
            raise ValueError("timeout must be positive")
        if self.max_time <= 0:
            raise ValueError("max_time must be positive")
        validate_window(self.window_size, self.seqspace)

    def to_dict(self) -> dict:
        """Configuration values reported with the results."""
        return {
            'num_messages': self.num_messages,
            'mean_interval': self.mean_interval,
            'loss_prob': self.loss_prob,
            'corrupt_prob': self.corrupt_prob,
            'burst_errors': self.burst_errors,
            'window_size': self.window_size,
            'seqspace': self.seqspace,
            'timeout': self.timeout,
            'seed': self.seed
        }


class Simulator:
    """
    Main Event-Driven Simulator.

    Side A runs the SR sender, side B the SR receiver. Data packets travel
    on the forward channel, ACKs on the reverse channel. Each direction and
    the message source draw from their own random stream.
    """

    REVERSE_SEED_OFFSET = 1000
    APPLICATION_SEED_OFFSET = 2000

    def __init__(self, config: SimulatorConfig):
        """Initialize simulator."""
        self.config = config

        # Create logger
        self.logger = SimulationLogger(
            name="Sim",
            level=config.log_level
        )

        self.forward_channel = self._make_channel(config.seed)
        self.reverse_channel = self._make_channel(config.seed + self.REVERSE_SEED_OFFSET)

        self.sender = SRSender(
            self,
            window_size=config.window_size,
            seqspace=config.seqspace,
            timeout=config.timeout,
            logger=self.logger
        )
        self.receiver = SRReceiver(
            self,
            window_size=config.window_size,
            seqspace=config.seqspace,
            logger=self.logger
        )

        self.generator = MessageGenerator(
            config.mean_interval, seed=config.seed + self.APPLICATION_SEED_OFFSET
        )
        self.verifier = DeliveryVerifier()
        self.metrics = MetricsCollector()

        # Simulation state
        self.current_time = 0.0
        self.event_queue: List[SimEvent] = []
        self._counter = itertools.count()

        # Timer state per role; the generation invalidates cancelled expiries
        self._timer_armed: Dict[Role, bool] = {role: False for role in Role}
        self._timer_generation: Dict[Role, int] = {role: 0 for role in Role}
        self._retransmitting = False

        # Stats
        self.timer_warnings = 0

    def _make_channel(self, seed: int) -> UnreliableChannel:
        """Create one channel direction."""
        burst_model = None
        if self.config.burst_errors:
            burst_model = GilbertElliottModel(seed=seed + 1)

        return UnreliableChannel(
            loss_prob=self.config.loss_prob,
            corrupt_prob=self.config.corrupt_prob,
            min_delay=MIN_LINK_DELAY,
            max_delay=MAX_LINK_DELAY,
            burst_model=burst_model,
            seed=seed
        )

    def _schedule_event(self, time: float, event_type: EventType, data: dict = None):
        """Schedule an event."""
        event = SimEvent(
            time=time,
            order=next(self._counter),
            event_type=event_type,
            data=data or {}
        )
        heapq.heappush(self.event_queue, event)

    # ------------------------------------------------------------------
    # Transport services used by the engines
    # ------------------------------------------------------------------

    def transmit(self, role: Role, packet: Packet) -> None:
        """Hand a packet to the channel leading away from role."""
        if role == Role.SENDER:
            channel = self.forward_channel
            destination = Role.RECEIVER
            self.metrics.record_data_sent(retransmission=self._retransmitting)
        else:
            channel = self.reverse_channel
            destination = Role.SENDER
            self.metrics.record_ack_sent()

        result = channel.transmit(packet, self.current_time)
        if result is None:
            self.logger.debug(f"{role.name}: packet lost: {packet}", "CHANNEL")
            return

        arrival, received = result
        self._schedule_event(
            arrival,
            EventType.FROM_NETWORK,
            {'role': destination, 'packet': received}
        )

    def deliver_to_application(self, role: Role, payload: bytes) -> None:
        """Hand an in-order payload to the application sink."""
        self.verifier.record_delivered(payload)
        self.metrics.record_message_delivered(self.current_time)

    def start_timer(self, role: Role, duration: float) -> None:
        """Arm role's timer to expire duration from now."""
        if self._timer_armed[role]:
            self.timer_warnings += 1
            self.logger.warning(f"{role.name}: start_timer while already started", "TIMER")
            return

        self._timer_armed[role] = True
        self._timer_generation[role] += 1
        self._schedule_event(
            self.current_time + duration,
            EventType.TIMER_INTERRUPT,
            {'role': role, 'generation': self._timer_generation[role]}
        )

    def stop_timer(self, role: Role) -> None:
        """Cancel role's timer."""
        if not self._timer_armed[role]:
            self.timer_warnings += 1
            self.logger.warning(f"{role.name}: stop_timer while not running", "TIMER")
            return

        self._timer_armed[role] = False
        self._timer_generation[role] += 1

    # ------------------------------------------------------------------
    # Event handlers
    # ------------------------------------------------------------------

    def _handle_message(self):
        """Hand the next application message to the sender."""
        message = self.generator.next_message()
        self.metrics.record_message_generated()

        if self.sender.send(message):
            self.verifier.record_accepted(message.data)
            self.metrics.record_message_accepted(self.current_time)
        else:
            self.metrics.record_message_dropped()

        if self.generator.generated < self.config.num_messages:
            self._schedule_event(
                self.current_time + self.generator.next_interval(),
                EventType.FROM_APPLICATION
            )

    def _handle_arrival(self, event_data: dict):
        """Hand an arriving packet to its destination engine."""
        packet = event_data['packet']
        if event_data['role'] == Role.SENDER:
            self.sender.receive_ack(packet)
        else:
            self.receiver.receive(packet)

    def _handle_timer(self, event_data: dict):
        """Fire a timer unless it was cancelled or restarted meanwhile."""
        role = event_data['role']
        if (not self._timer_armed[role] or
                event_data['generation'] != self._timer_generation[role]):
            return

        self._timer_armed[role] = False
        if role != Role.SENDER:
            return

        self._retransmitting = True
        try:
            self.sender.on_timeout()
        finally:
            self._retransmitting = False

    def _is_complete(self) -> bool:
        """Check if every message was generated and every accepted one delivered."""
        return (self.generator.generated >= self.config.num_messages and
                self.sender.state.is_empty and
                len(self.verifier.delivered) == len(self.verifier.accepted))

    def run(self) -> Dict:
        """Run the simulation."""
        self.reset()

        self.logger.simulation_start(self.config.to_dict())
        self.metrics.start(0.0)
        sim_start_real = time.time()

        if self.config.num_messages > 0:
            self._schedule_event(self.generator.next_interval(), EventType.FROM_APPLICATION)

        max_iterations = 10000000
        iterations = 0

        while self.event_queue and iterations < max_iterations:
            event = heapq.heappop(self.event_queue)
            if event.time > self.config.max_time:
                self.logger.warning(
                    f"Simulation time limit {self.config.max_time} reached", "SIM"
                )
                break

            self.current_time = event.time
            self.logger.set_sim_time(self.current_time)

            if event.event_type == EventType.FROM_APPLICATION:
                self._handle_message()
            elif event.event_type == EventType.FROM_NETWORK:
                self._handle_arrival(event.data)
            elif event.event_type == EventType.TIMER_INTERRUPT:
                self._handle_timer(event.data)

            iterations += 1

        # Finish
        self.metrics.finish(self.current_time)
        sim_end_real = time.time()

        valid, verify_details = self.verifier.verify()
        metrics_summary = self.metrics.get_summary()
        self.logger.simulation_end(metrics_summary)

        return {
            'config': self.config.to_dict(),
            'metrics': metrics_summary,
            'sender': self.sender.get_statistics(),
            'receiver': self.receiver.get_statistics(),
            'channels': {
                'forward': self.forward_channel.get_statistics(),
                'reverse': self.reverse_channel.get_statistics()
            },
            'verification': {'valid': valid, **verify_details},
            'timer_warnings': self.timer_warnings,
            'real_time': sim_end_real - sim_start_real,
            'simulation_time': self.current_time,
            'complete': self._is_complete()
        }

    def reset(self, seed: Optional[int] = None):
        """Reset simulator, optionally with a new seed."""
        if seed is not None:
            self.config.seed = seed

        self.sender.reset()
        self.receiver.reset()
        self.forward_channel.reset(self.config.seed)
        self.reverse_channel.reset(self.config.seed + self.REVERSE_SEED_OFFSET)
        self.generator.reset(self.config.seed + self.APPLICATION_SEED_OFFSET)
        self.verifier.reset()
        self.metrics.reset()

        self.current_time = 0.0
        self.event_queue.clear()
        self._counter = itertools.count()
        self._timer_armed = {role: False for role in Role}
        self._timer_generation = {role: 0 for role in Role}
        self._retransmitting = False
        self.timer_warnings = 0
        self.logger.set_sim_time(0.0)


if __name__ == "__main__":
    print("=" * 60)
    print("SIMULATOR TEST")
    print("=" * 60)

    config = SimulatorConfig(
        num_messages=200,
        loss_prob=0.2,
        corrupt_prob=0.2,
        seed=42,
        log_level=LogLevel.INFO
    )

    print(f"\nConfiguration:")
    print(f"  Messages: {config.num_messages}")
    print(f"  Window size: {config.window_size} (seqspace {config.seqspace})")
    print(f"  Loss / corruption: {config.loss_prob} / {config.corrupt_prob}")
    print(f"  Timeout: {config.timeout}")

    sim = Simulator(config)
    print("\nRunning simulation...")

    results = sim.run()

    print("\n" + "=" * 60)
    print("RESULTS")
    print("=" * 60)

    print(f"\nTransfer:")
    print(f"  Complete: {results['complete']}")
    print(f"  Delivery valid: {results['verification']['valid']}")
    print(f"  Simulation time: {results['simulation_time']:.4f}")
    print(f"  Real time: {results['real_time']:.4f} s")

    metrics = results['metrics']
    print(f"\nMetrics:")
    print(f"  Goodput: {metrics['goodput']:.4f} msg/t")
    print(f"  Efficiency: {metrics['efficiency']*100:.2f}%")
    print(f"  Retransmissions: {metrics['retransmissions']}")
    print(f"  Window full drops: {results['sender']['window_full']}")

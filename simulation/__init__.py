"""
Simulation package - Link emulator and batch runners.

Contains:
- Event-driven emulator driving the SR engines
- Batch runner for channel sweeps
"""

from .simulator import Simulator, SimulatorConfig, EventType, SimEvent
from .runner import BatchRunner, RunConfig, run_single_simulation

__all__ = [
    'Simulator',
    'SimulatorConfig',
    'EventType',
    'SimEvent',
    'BatchRunner',
    'RunConfig',
    'run_single_simulation'
]

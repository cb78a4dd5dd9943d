"""
Batch Runner for Channel Sweep Simulations

This module implements the batch runner that executes every
(loss probability, corruption probability) pair several times with
independent seeds and collects one result row per run.
"""

import os
import csv
import time
import statistics
from typing import Optional, Callable, List, Dict, Tuple
from dataclasses import dataclass
from concurrent.futures import ProcessPoolExecutor, as_completed
import multiprocessing
import sys

from tqdm import tqdm

# Add parent to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from config import (
    LOSS_PROBS, CORRUPT_PROBS, RUNS_PER_CONFIGURATION, NUM_MESSAGES,
    MEAN_MESSAGE_INTERVAL, WINDOWSIZE, SEQSPACE, RTT,
    RNG_SEED_BASE, OUTPUT_DIR, RESULTS_CSV
)
from simulation.simulator import Simulator, SimulatorConfig
from src.utils.logger import LogLevel


@dataclass
class RunConfig:
    """Configuration for a single simulation run."""
    loss_prob: float
    corrupt_prob: float
    run_id: int
    seed: int
    num_messages: int = NUM_MESSAGES
    mean_interval: float = MEAN_MESSAGE_INTERVAL
    window_size: int = WINDOWSIZE
    seqspace: int = SEQSPACE
    timeout: float = RTT
    burst_errors: bool = False


def run_single_simulation(run_config: RunConfig) -> Dict:
    """
    Run a single simulation with given configuration.

    This function is designed to be called in a separate process.

    Args:
        run_config: Configuration for this run

    Returns:
        Dictionary with results
    """
    try:
        config = SimulatorConfig(
            num_messages=run_config.num_messages,
            mean_interval=run_config.mean_interval,
            loss_prob=run_config.loss_prob,
            corrupt_prob=run_config.corrupt_prob,
            burst_errors=run_config.burst_errors,
            window_size=run_config.window_size,
            seqspace=run_config.seqspace,
            timeout=run_config.timeout,
            seed=run_config.seed,
            log_level=LogLevel.ERROR  # Minimal logging for batch runs
        )

        sim = Simulator(config)
        results = sim.run()

        metrics = results['metrics']
        sender = results['sender']
        receiver = results['receiver']

        return {
            'loss_prob': run_config.loss_prob,
            'corrupt_prob': run_config.corrupt_prob,
            'run_id': run_config.run_id,
            'seed': run_config.seed,
            'goodput': metrics['goodput'],
            'efficiency': metrics['efficiency'],
            'retransmissions': metrics['retransmissions'],
            'retransmission_rate': metrics['retransmission_rate'],
            'drop_rate': metrics['drop_rate'],
            'messages_delivered': metrics['messages_delivered'],
            'window_full': sender['window_full'],
            'timeouts': sender['total_timeouts'],
            'acks_received': sender['total_acks_received'],
            'duplicates': receiver['duplicates'] + receiver['out_of_window'],
            'latency_mean': metrics['latency']['mean'],
            'latency_max': metrics['latency']['max'],
            'total_time': results['simulation_time'],
            'data_valid': results['verification']['valid'],
            'complete': results['complete'],
            'error': None
        }

    except Exception as e:
        return {
            'loss_prob': run_config.loss_prob,
            'corrupt_prob': run_config.corrupt_prob,
            'run_id': run_config.run_id,
            'seed': run_config.seed,
            'goodput': 0,
            'error': str(e)
        }


class BatchRunner:
    """
    Batch Runner for channel sweep simulations.

    Executes all (loss, corruption) combinations with multiple runs each.

    Attributes:
        loss_probs: Loss probabilities to test
        corrupt_probs: Corruption probabilities to test
        runs_per_config: Number of runs per configuration
        num_messages: Messages generated per run
    """

    def __init__(
        self,
        loss_probs: Optional[List[float]] = None,
        corrupt_probs: Optional[List[float]] = None,
        runs_per_config: int = RUNS_PER_CONFIGURATION,
        num_messages: int = NUM_MESSAGES,
        window_size: int = WINDOWSIZE,
        seqspace: int = SEQSPACE,
        timeout: float = RTT,
        burst_errors: bool = False,
        output_file: str = RESULTS_CSV,
        on_progress: Optional[Callable[[int, int, dict], None]] = None
    ):
        """
        Initialize batch runner.

        Args:
            loss_probs: Loss probabilities (default from config)
            corrupt_probs: Corruption probabilities (default from config)
            runs_per_config: Number of runs per (loss, corruption) pair
            num_messages: Messages generated per run
            window_size: Window size used by every run
            seqspace: Sequence number space used by every run
            timeout: Retransmission timeout used by every run
            burst_errors: Use the Gilbert-Elliott model for corruption
            output_file: Path to output CSV file
            on_progress: Callback for progress updates
        """
        self.loss_probs = LOSS_PROBS if loss_probs is None else loss_probs
        self.corrupt_probs = CORRUPT_PROBS if corrupt_probs is None else corrupt_probs
        self.runs_per_config = runs_per_config
        self.num_messages = num_messages
        self.window_size = window_size
        self.seqspace = seqspace
        self.timeout = timeout
        self.burst_errors = burst_errors
        self.output_file = output_file
        self.on_progress = on_progress

        # Results storage
        self.results: List[Dict] = []

        # Progress tracking
        self.total_runs = (len(self.loss_probs) *
                           len(self.corrupt_probs) *
                           self.runs_per_config)
        self.completed_runs = 0
        self.start_time = 0.0

    def _generate_run_configs(self) -> List[RunConfig]:
        """Generate all run configurations."""
        configs = []

        for i, loss_prob in enumerate(self.loss_probs):
            for j, corrupt_prob in enumerate(self.corrupt_probs):
                for run_id in range(self.runs_per_config):
                    # Unique seed for each run
                    seed = (RNG_SEED_BASE +
                            i * 100 +
                            j * 10 +
                            run_id * 10000)

                    configs.append(RunConfig(
                        loss_prob=loss_prob,
                        corrupt_prob=corrupt_prob,
                        run_id=run_id,
                        seed=seed,
                        num_messages=self.num_messages,
                        window_size=self.window_size,
                        seqspace=self.seqspace,
                        timeout=self.timeout,
                        burst_errors=self.burst_errors
                    ))

        return configs

    def _record(self, result: Dict):
        self.results.append(result)
        self.completed_runs += 1
        if self.on_progress:
            self.on_progress(self.completed_runs, self.total_runs, result)

    def run_sequential(self) -> List[Dict]:
        """
        Run all simulations sequentially.

        Returns:
            List of result dictionaries
        """
        configs = self._generate_run_configs()
        self.results = []
        self.completed_runs = 0
        self.start_time = time.time()

        print(f"Running {self.total_runs} simulations sequentially...")

        for config in tqdm(configs, desc="Simulations"):
            self._record(run_single_simulation(config))

        total_time = time.time() - self.start_time
        print(f"Completed {self.total_runs} simulations in {total_time:.1f}s")

        return self.results

    def run_parallel(self, max_workers: Optional[int] = None) -> List[Dict]:
        """
        Run simulations in parallel using multiprocessing.

        Args:
            max_workers: Number of parallel workers (default: CPU count)

        Returns:
            List of result dictionaries
        """
        if max_workers is None:
            max_workers = multiprocessing.cpu_count()

        configs = self._generate_run_configs()
        self.results = []
        self.completed_runs = 0
        self.start_time = time.time()

        print(f"Running {self.total_runs} simulations with {max_workers} workers...")

        with ProcessPoolExecutor(max_workers=max_workers) as executor:
            futures = {
                executor.submit(run_single_simulation, config): config
                for config in configs
            }

            for future in tqdm(as_completed(futures), total=len(futures),
                               desc="Simulations"):
                self._record(future.result())

        total_time = time.time() - self.start_time
        print(f"Completed {self.total_runs} simulations in {total_time:.1f}s")

        return self.results

    def save_results(self, filepath: Optional[str] = None):
        """
        Save results to CSV file.

        Args:
            filepath: Output file path (default: self.output_file)
        """
        filepath = filepath or self.output_file

        directory = os.path.dirname(filepath)
        if directory:
            os.makedirs(directory, exist_ok=True)

        if not self.results:
            print("No results to save!")
            return

        # Successful rows carry the full column set
        fieldnames = max((list(r.keys()) for r in self.results), key=len)

        with open(filepath, 'w', newline='') as f:
            writer = csv.DictWriter(f, fieldnames=fieldnames)
            writer.writeheader()
            writer.writerows(self.results)

        print(f"Results saved to: {filepath}")

    def get_aggregated_results(self) -> Dict[Tuple[float, float], Dict]:
        """
        Get aggregated results by (loss, corruption) pair.

        Returns:
            Dictionary with aggregated statistics
        """
        aggregated = {}

        for result in self.results:
            if result.get('error'):
                continue

            key = (result['loss_prob'], result['corrupt_prob'])
            if key not in aggregated:
                aggregated[key] = {
                    'loss_prob': result['loss_prob'],
                    'corrupt_prob': result['corrupt_prob'],
                    'goodputs': [],
                    'retransmissions': [],
                    'efficiencies': [],
                    'all_valid': True
                }

            aggregated[key]['goodputs'].append(result['goodput'])
            aggregated[key]['retransmissions'].append(result['retransmissions'])
            aggregated[key]['efficiencies'].append(result['efficiency'])
            if not result['data_valid']:
                aggregated[key]['all_valid'] = False

        # Calculate statistics
        for data in aggregated.values():
            goodputs = data['goodputs']
            data['goodput_mean'] = statistics.mean(goodputs)
            data['goodput_std'] = (statistics.stdev(goodputs)
                                   if len(goodputs) > 1 else 0)
            data['goodput_min'] = min(goodputs)
            data['goodput_max'] = max(goodputs)
            data['retx_mean'] = statistics.mean(data['retransmissions'])
            data['efficiency_mean'] = statistics.mean(data['efficiencies'])

        return aggregated

    def get_optimal_configuration(self) -> Dict:
        """
        Find the channel configuration with the highest mean goodput.

        Returns:
            Dictionary with best configuration info
        """
        aggregated = self.get_aggregated_results()

        if not aggregated:
            return {'error': 'No results available'}

        best_key = max(aggregated.keys(),
                       key=lambda k: aggregated[k]['goodput_mean'])
        best_data = aggregated[best_key]

        return {
            'best_loss_prob': best_key[0],
            'best_corrupt_prob': best_key[1],
            'mean_goodput': best_data['goodput_mean'],
            'goodput_std': best_data['goodput_std'],
            'mean_efficiency': best_data['efficiency_mean'],
            'mean_retransmissions': best_data['retx_mean']
        }


if __name__ == "__main__":
    # Test batch runner with a small sweep
    print("=" * 60)
    print("BATCH RUNNER TEST")
    print("=" * 60)

    runner = BatchRunner(
        loss_probs=[0.0, 0.2],
        corrupt_probs=[0.0, 0.2],
        runs_per_config=2,
        num_messages=100,
        output_file=os.path.join(OUTPUT_DIR, "test_results.csv")
    )

    print(f"\nTest configuration:")
    print(f"  Loss probabilities: {runner.loss_probs}")
    print(f"  Corruption probabilities: {runner.corrupt_probs}")
    print(f"  Runs per config: {runner.runs_per_config}")
    print(f"  Total runs: {runner.total_runs}")

    print("\nRunning simulations...")
    runner.run_sequential()
    runner.save_results()

    best = runner.get_optimal_configuration()
    print(f"\nBest channel: loss={best['best_loss_prob']}, "
          f"corrupt={best['best_corrupt_prob']}, "
          f"goodput={best['mean_goodput']:.4f} msg/t")

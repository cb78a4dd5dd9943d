#!/usr/bin/env python3
"""
Selective Repeat ARQ Emulator - Main Entry Point

This is the main CLI interface for the Selective Repeat emulator.
It provides options for:
- Single emulation runs
- Channel sweeps over loss and corruption probability
- Visualization generation

Usage:
    python main.py --single --messages 1000 --loss 0.2 --corrupt 0.2
    python main.py --sweep --runs 5
    python main.py --visualize --csv results.csv
"""

import argparse
import os
import sys
import time

# Ensure project root is in path
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from config import (
    NUM_MESSAGES, LOSS_PROB, CORRUPT_PROB, MEAN_MESSAGE_INTERVAL,
    WINDOWSIZE, SEQSPACE, RTT, LOSS_PROBS, CORRUPT_PROBS,
    RUNS_PER_CONFIGURATION, RESULTS_CSV, PLOTS_DIR
)


def run_single_simulation(args):
    """Run a single emulation with specified parameters."""
    from simulation.simulator import Simulator, SimulatorConfig
    from src.utils.logger import LogLevel

    config = SimulatorConfig(
        num_messages=args.messages,
        mean_interval=args.interval,
        loss_prob=args.loss,
        corrupt_prob=args.corrupt,
        burst_errors=args.burst,
        window_size=args.window,
        seqspace=args.seqspace,
        timeout=args.timeout,
        seed=args.seed,
        log_level=LogLevel.DEBUG if args.verbose else LogLevel.WARNING
    )

    print("=" * 60)
    print("SELECTIVE REPEAT ARQ EMULATOR")
    print("=" * 60)
    print(f"\nConfiguration:")
    print(f"  Messages: {config.num_messages}")
    print(f"  Mean interval: {config.mean_interval}")
    print(f"  Loss probability: {config.loss_prob}")
    print(f"  Corruption probability: {config.corrupt_prob}"
          f"{' (burst model)' if config.burst_errors else ''}")
    print(f"  Window size: {config.window_size}")
    print(f"  Sequence space: {config.seqspace}")
    print(f"  Timeout: {config.timeout}")
    print(f"  Seed: {config.seed}")

    print("\nRunning simulation...")

    sim = Simulator(config)
    start_time = time.time()
    results = sim.run()
    elapsed = time.time() - start_time

    print("\n" + "=" * 60)
    print("RESULTS")
    print("=" * 60)

    verification = results['verification']
    print(f"\nTransfer Status:")
    print(f"  Complete: {results['complete']}")
    print(f"  Delivery Valid: {verification['valid']}")
    print(f"  Delivered / Accepted: {verification['delivered']} / {verification['accepted']}")
    print(f"  Simulation Time: {results['simulation_time']:.4f}")
    print(f"  Real Time: {elapsed:.2f} s")

    metrics = results['metrics']
    print(f"\nPerformance Metrics:")
    print(f"  Goodput: {metrics['goodput']:.4f} msg/t ({metrics['goodput_bytes']:.2f} B/t)")
    print(f"  Efficiency: {metrics['efficiency'] * 100:.2f}%")
    print(f"  Drop Rate: {metrics['drop_rate'] * 100:.2f}%")

    sender = results['sender']
    receiver = results['receiver']
    print(f"\nSender (A):")
    print(f"  Packets sent: {sender['packets_sent']}")
    print(f"  Window full: {sender['window_full']}")
    print(f"  ACKs received: {sender['total_acks_received']} "
          f"({sender['new_acks']} new)")
    print(f"  Packets resent: {sender['packets_resent']}")
    print(f"  Timeouts: {sender['total_timeouts']}")

    print(f"\nReceiver (B):")
    print(f"  Packets received: {receiver['packets_received']}")
    print(f"  Duplicates: {receiver['duplicates']}")
    print(f"  Out of window: {receiver['out_of_window']}")
    print(f"  ACKs sent: {receiver['acks_sent']}")

    latency = metrics['latency']
    if latency['samples'] > 0:
        print(f"\nDelivery Latency:")
        print(f"  Mean: {latency['mean']:.2f}")
        print(f"  Min: {latency['min']:.2f}")
        print(f"  Max: {latency['max']:.2f}")

    return results


def run_parameter_sweep(args):
    """Run channel sweep."""
    from simulation.runner import BatchRunner

    print("=" * 60)
    print("CHANNEL SWEEP")
    print("=" * 60)

    if args.quick:
        loss_probs = [0.0, 0.2, 0.4]
        corrupt_probs = [0.0, 0.2, 0.4]
        runs = 2
        num_messages = 200
    else:
        loss_probs = LOSS_PROBS
        corrupt_probs = CORRUPT_PROBS
        runs = args.runs
        num_messages = args.messages

    output_file = args.output or RESULTS_CSV
    runner = BatchRunner(
        loss_probs=loss_probs,
        corrupt_probs=corrupt_probs,
        runs_per_config=runs,
        num_messages=num_messages,
        window_size=args.window,
        seqspace=args.seqspace,
        timeout=args.timeout,
        burst_errors=args.burst,
        output_file=output_file
    )

    print(f"\nConfiguration:")
    print(f"  Loss probabilities: {loss_probs}")
    print(f"  Corruption probabilities: {corrupt_probs}")
    print(f"  Runs per config: {runs}")
    print(f"  Total simulations: {runner.total_runs}")
    print(f"  Messages per run: {num_messages}")
    print(f"  Output: {output_file}")

    print("\nStarting sweep...")

    if args.parallel:
        results = runner.run_parallel(max_workers=args.workers)
    else:
        results = runner.run_sequential()

    runner.save_results()

    failed = [r for r in results if r.get('error')]
    if failed:
        print(f"\n{len(failed)} runs failed, first error: {failed[0]['error']}")

    best = runner.get_optimal_configuration()
    if 'error' not in best:
        print("\n" + "=" * 60)
        print("BEST CHANNEL")
        print("=" * 60)
        print(f"  Loss probability: {best['best_loss_prob']}")
        print(f"  Corruption probability: {best['best_corrupt_prob']}")
        print(f"  Mean Goodput: {best['mean_goodput']:.4f} msg/t")
        print(f"  Mean Efficiency: {best['mean_efficiency'] * 100:.2f}%")

    return results


def generate_visualizations(args):
    """Generate visualization plots."""
    print("=" * 60)
    print("GENERATING VISUALIZATIONS")
    print("=" * 60)

    csv_file = args.csv or RESULTS_CSV

    if not os.path.exists(csv_file):
        print(f"Error: Results file not found: {csv_file}")
        print("Run a sweep first: python main.py --sweep")
        return

    from visualization.heatmap import SweepHeatmap
    heatmap = SweepHeatmap(csv_file=csv_file)
    print(f"Loaded {len(heatmap.df)} results from {csv_file}")

    os.makedirs(PLOTS_DIR, exist_ok=True)

    print("\nGenerating goodput heatmap...")
    goodput_file = heatmap.plot(
        metric='goodput',
        output_file=os.path.join(PLOTS_DIR, 'goodput_heatmap.png'),
        highlight_best=True
    )

    print("Generating metric grid...")
    grid_file = heatmap.plot_grid(
        output_file=os.path.join(PLOTS_DIR, 'metrics_grid.png')
    )

    print("\n" + "=" * 60)
    print("VISUALIZATIONS GENERATED")
    print("=" * 60)
    print(f"  Goodput heatmap: {goodput_file}")
    print(f"  Metric grid: {grid_file}")


def show_config(args):
    """Display current configuration."""
    print("=" * 60)
    print("EMULATOR CONFIGURATION")
    print("=" * 60)

    import config as cfg

    print(f"\nProtocol:")
    print(f"  Window size: {cfg.WINDOWSIZE}")
    print(f"  Sequence space: {cfg.SEQSPACE}")
    print(f"  Timeout: {cfg.RTT}")
    print(f"  Payload size: {cfg.PAYLOAD_SIZE} bytes")

    print(f"\nEmulator:")
    print(f"  Messages: {cfg.NUM_MESSAGES}")
    print(f"  Mean message interval: {cfg.MEAN_MESSAGE_INTERVAL}")
    print(f"  Link delay: [{cfg.MIN_LINK_DELAY}, {cfg.MAX_LINK_DELAY}]")
    print(f"  Mean round trip: {cfg.calculate_mean_round_trip()}")

    print(f"\nGilbert-Elliott burst model:")
    print(f"  Good state error: {cfg.GOOD_STATE_ERROR}")
    print(f"  Bad state error: {cfg.BAD_STATE_ERROR}")
    print(f"  P(Good→Bad): {cfg.P_GOOD_TO_BAD}")
    print(f"  P(Bad→Good): {cfg.P_BAD_TO_GOOD}")
    print(f"  Average error rate: {cfg.calculate_average_burst_error():.4f}")

    print(f"\nChannel Sweep:")
    print(f"  Loss probabilities: {cfg.LOSS_PROBS}")
    print(f"  Corruption probabilities: {cfg.CORRUPT_PROBS}")
    print(f"  Runs per config: {cfg.RUNS_PER_CONFIGURATION}")
    print(f"  Total simulations: "
          f"{len(cfg.LOSS_PROBS) * len(cfg.CORRUPT_PROBS) * cfg.RUNS_PER_CONFIGURATION}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Selective Repeat ARQ Emulator",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  Single simulation:
    python main.py --single --loss 0.2 --corrupt 0.2

  Quick channel sweep (for testing):
    python main.py --sweep --quick

  Full channel sweep:
    python main.py --sweep --runs 5

  Parallel channel sweep:
    python main.py --sweep --parallel --workers 4

  Generate visualizations:
    python main.py --visualize

  Show configuration:
    python main.py --config
        """
    )

    # Mode selection
    mode = parser.add_mutually_exclusive_group(required=True)
    mode.add_argument('--single', action='store_true',
                      help='Run single simulation')
    mode.add_argument('--sweep', action='store_true',
                      help='Run channel sweep')
    mode.add_argument('--visualize', action='store_true',
                      help='Generate visualizations')
    mode.add_argument('--config', action='store_true',
                      help='Show configuration')

    # Traffic and channel options
    parser.add_argument('--messages', '-n', type=int, default=NUM_MESSAGES,
                        help=f'Messages to generate (default: {NUM_MESSAGES})')
    parser.add_argument('--interval', type=float, default=MEAN_MESSAGE_INTERVAL,
                        help=f'Mean time between messages (default: {MEAN_MESSAGE_INTERVAL})')
    parser.add_argument('--loss', type=float, default=LOSS_PROB,
                        help=f'Packet loss probability (default: {LOSS_PROB})')
    parser.add_argument('--corrupt', type=float, default=CORRUPT_PROB,
                        help=f'Packet corruption probability (default: {CORRUPT_PROB})')
    parser.add_argument('--burst', action='store_true',
                        help='Use the Gilbert-Elliott burst corruption model')

    # Protocol options
    parser.add_argument('--window', '-w', type=int, default=WINDOWSIZE,
                        help=f'Window size (default: {WINDOWSIZE})')
    parser.add_argument('--seqspace', type=int, default=SEQSPACE,
                        help=f'Sequence number space (default: {SEQSPACE})')
    parser.add_argument('--timeout', type=float, default=RTT,
                        help=f'Retransmission timeout (default: {RTT})')
    parser.add_argument('--seed', '-s', type=int, default=42,
                        help='Random seed (default: 42)')

    # Sweep options
    parser.add_argument('--runs', '-r', type=int,
                        default=RUNS_PER_CONFIGURATION,
                        help=f'Runs per configuration (default: {RUNS_PER_CONFIGURATION})')
    parser.add_argument('--parallel', action='store_true',
                        help='Run simulations in parallel')
    parser.add_argument('--workers', type=int, default=None,
                        help='Number of parallel workers')
    parser.add_argument('--quick', action='store_true',
                        help='Quick test with reduced parameters')

    # Output options
    parser.add_argument('--output', '-o', type=str,
                        help='Output file path')
    parser.add_argument('--csv', type=str,
                        help='CSV file for visualization')
    parser.add_argument('--verbose', '-v', action='store_true',
                        help='Verbose output')

    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    # Execute selected mode
    try:
        if args.single:
            run_single_simulation(args)
        elif args.sweep:
            run_parameter_sweep(args)
        elif args.visualize:
            generate_visualizations(args)
        elif args.config:
            show_config(args)
    except ValueError as e:
        parser.error(str(e))


if __name__ == "__main__":
    main()

"""
Integration tests for the link emulator, application layer, metrics,
batch runner and plotting.
"""

import pytest
import sys
import os

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from config import PAYLOAD_SIZE
from src.arq.transport import Role
from src.layers.application_layer import MessageGenerator, DeliveryVerifier
from src.utils.metrics import MetricsCollector
from src.utils.logger import SimulationLogger, LogLevel
from simulation.simulator import Simulator, SimulatorConfig, SimEvent, EventType
from simulation.runner import BatchRunner, RunConfig, run_single_simulation


def run(**kwargs):
    kwargs.setdefault('num_messages', 100)
    kwargs.setdefault('seed', 42)
    return Simulator(SimulatorConfig(**kwargs)).run()


class TestMessageGenerator:
    """Tests for the application message source."""

    def test_letter_cycle(self):
        """Messages repeat one letter and cycle through the alphabet."""
        gen = MessageGenerator(seed=0)
        messages = [gen.next_message().data for _ in range(27)]

        assert messages[0] == b"a" * PAYLOAD_SIZE
        assert messages[1] == b"b" * PAYLOAD_SIZE
        assert messages[26] == messages[0]

    def test_interval_bounds(self):
        """Intervals lie in [0, 2 * mean]."""
        gen = MessageGenerator(mean_interval=5.0, seed=0)
        intervals = [gen.next_interval() for _ in range(1000)]

        assert min(intervals) >= 0.0
        assert max(intervals) <= 10.0

    def test_invalid_interval(self):
        """Mean interval must be positive."""
        with pytest.raises(ValueError):
            MessageGenerator(mean_interval=0)


class TestDeliveryVerifier:
    """Tests for the delivery checker."""

    def test_prefix_is_valid(self):
        """An incomplete but ordered delivery is valid."""
        verifier = DeliveryVerifier()
        for p in (b"a", b"b", b"c"):
            verifier.record_accepted(p)
        verifier.record_delivered(b"a")

        valid, details = verifier.verify()
        assert valid
        assert not details['complete']

    def test_complete_delivery(self):
        """Identical streams are valid and complete."""
        verifier = DeliveryVerifier()
        for p in (b"a", b"b"):
            verifier.record_accepted(p)
            verifier.record_delivered(p)

        valid, details = verifier.verify()
        assert valid
        assert details['complete']
        assert details['accepted_checksum'] == details['delivered_checksum']

    def test_duplicate_detected(self):
        """Delivering a payload twice is invalid."""
        verifier = DeliveryVerifier()
        verifier.record_accepted(b"a")
        verifier.record_accepted(b"b")
        verifier.record_delivered(b"a")
        verifier.record_delivered(b"a")

        valid, details = verifier.verify()
        assert not valid
        assert details['first_mismatch'] == 1

    def test_extra_delivery_detected(self):
        """Delivering more than was accepted is invalid."""
        verifier = DeliveryVerifier()
        verifier.record_accepted(b"a")
        verifier.record_delivered(b"a")
        verifier.record_delivered(b"b")

        valid, _ = verifier.verify()
        assert not valid


class TestMetricsCollector:
    """Tests for metric calculations."""

    def test_goodput_and_efficiency(self):
        """Goodput is deliveries per time, efficiency per transmission."""
        metrics = MetricsCollector()
        metrics.start(0.0)
        for t in (1.0, 2.0):
            metrics.record_message_generated()
            metrics.record_message_accepted(t)
        metrics.record_data_sent()
        metrics.record_data_sent()
        metrics.record_data_sent(retransmission=True)
        metrics.record_message_delivered(5.0)
        metrics.record_message_delivered(6.0)
        metrics.finish(10.0)

        assert metrics.calculate_goodput() == pytest.approx(0.2)
        assert metrics.calculate_efficiency() == pytest.approx(2 / 3)
        assert metrics.calculate_retransmission_rate() == pytest.approx(0.5)

    def test_latency_pairs_in_order(self):
        """Each delivery is matched with the oldest acceptance."""
        metrics = MetricsCollector()
        metrics.record_message_accepted(1.0)
        metrics.record_message_accepted(2.0)
        metrics.record_message_delivered(4.0)
        metrics.record_message_delivered(8.0)

        latency = metrics.get_latency_statistics()
        assert latency['min'] == 3.0
        assert latency['max'] == 6.0
        assert latency['samples'] == 2

    def test_empty_metrics(self):
        """No time elapsed means zero goodput."""
        metrics = MetricsCollector()
        assert metrics.calculate_goodput() == 0.0
        assert metrics.get_latency_statistics()['samples'] == 0

    def test_csv_row_is_flat(self):
        """CSV rows flatten the latency statistics."""
        row = MetricsCollector().to_csv_row()
        assert 'latency' not in row
        assert 'latency_mean' in row


class TestSimulatorConfig:
    """Tests for configuration validation."""

    def test_small_seqspace_rejected(self):
        """Sequence space must be at least twice the window."""
        with pytest.raises(ValueError):
            SimulatorConfig(window_size=6, seqspace=10)

    def test_bad_timeout_rejected(self):
        """Timeout must be positive."""
        with pytest.raises(ValueError):
            SimulatorConfig(timeout=0)

    def test_bad_probability_rejected(self):
        """Channel probabilities are checked when the channel is built."""
        with pytest.raises(ValueError):
            Simulator(SimulatorConfig(loss_prob=1.2))


class TestSimulator:
    """End-to-end emulation runs."""

    def test_event_ordering(self):
        """Events at equal times keep their scheduling order."""
        first = SimEvent(1.0, 0, EventType.TIMER_INTERRUPT)
        second = SimEvent(1.0, 1, EventType.FROM_NETWORK)
        assert first < second

    def test_perfect_channel(self):
        """Everything accepted is delivered in order."""
        results = run(loss_prob=0.0, corrupt_prob=0.0)

        assert results['verification']['valid']
        assert results['complete']
        assert results['timer_warnings'] == 0
        assert results['metrics']['messages_delivered'] == results['verification']['accepted']

    def test_lossy_corrupting_channel(self):
        """Loss and corruption are recovered by retransmission."""
        results = run(num_messages=200, loss_prob=0.2, corrupt_prob=0.2)

        assert results['verification']['valid']
        assert results['complete']
        assert results['sender']['packets_resent'] > 0
        assert results['channels']['forward']['packets_lost'] > 0
        assert results['timer_warnings'] == 0

    def test_burst_errors(self):
        """Burst corruption still gives in-order delivery."""
        results = run(num_messages=200, loss_prob=0.1,
                      burst_errors=True, seed=7)

        assert results['verification']['valid']
        assert results['complete']

    def test_heavy_loss(self):
        """Very poor channels still complete correctly."""
        results = run(num_messages=50, loss_prob=0.4, corrupt_prob=0.3, seed=3)

        assert results['verification']['valid']
        assert results['complete']

    @pytest.mark.parametrize("seed", range(60))
    def test_valid_delivery_across_seeds(self, seed):
        """Every seed delivers each message exactly once and in order."""
        results = run(loss_prob=0.2, corrupt_prob=0.2, seed=seed)

        assert results['verification']['valid']
        assert results['complete']

    @pytest.mark.parametrize("seed", range(30))
    def test_stop_and_wait_window_across_seeds(self, seed):
        """A one-packet window over two sequence numbers stays correct."""
        results = run(num_messages=60, loss_prob=0.2, corrupt_prob=0.2,
                      window_size=1, seqspace=2, seed=seed)

        assert results['verification']['valid']
        assert results['complete']

    def test_message_source_independent_of_channel(self):
        """The message source and the forward channel use different streams."""
        sim = Simulator(SimulatorConfig(seed=5))
        sim.reset()

        source = sim.generator.rng.random(8)
        channel = sim.forward_channel.rng.random(8)

        assert list(source) != list(channel)

    def test_window_full_drops(self):
        """Fast traffic overflows the window and messages are dropped."""
        results = run(num_messages=200, mean_interval=0.5)

        metrics = results['metrics']
        assert results['sender']['window_full'] > 0
        assert metrics['messages_dropped'] == results['sender']['window_full']
        assert (metrics['messages_accepted'] + metrics['messages_dropped'] ==
                metrics['messages_generated'] == 200)
        assert results['verification']['valid']

    def test_deterministic(self):
        """Same seed, same outcome."""
        first = run(loss_prob=0.2, corrupt_prob=0.1, seed=99)
        second = run(loss_prob=0.2, corrupt_prob=0.1, seed=99)

        assert first['metrics'] == second['metrics']
        assert first['sender'] == second['sender']

    def test_rerun_same_simulator(self):
        """Running twice on one simulator repeats the result."""
        sim = Simulator(SimulatorConfig(num_messages=50, loss_prob=0.2, seed=5))
        first = sim.run()
        second = sim.run()

        assert first['metrics'] == second['metrics']

    def test_no_messages(self):
        """An empty run completes immediately."""
        results = run(num_messages=0)

        assert results['complete']
        assert results['simulation_time'] == 0.0

    def test_time_limit(self):
        """Hitting max_time stops the run early."""
        results = run(num_messages=100, max_time=50.0)

        assert not results['complete']
        assert results['simulation_time'] <= 50.0
        assert results['verification']['valid']

    def test_timer_misuse_warns(self):
        """Double starts and idle stops are reported, not fatal."""
        sim = Simulator(SimulatorConfig(num_messages=1))
        sim.start_timer(Role.SENDER, 5.0)
        sim.start_timer(Role.SENDER, 5.0)
        sim.stop_timer(Role.SENDER)
        sim.stop_timer(Role.SENDER)

        assert sim.timer_warnings == 2


class TestSimulationLogger:
    """Tests for level filtering in the simulation logger."""

    def test_messages_below_level_not_counted(self):
        """Only messages at or above the level are emitted and counted."""
        logger = SimulationLogger(name="Test", level=LogLevel.WARNING,
                                  use_colors=False)

        logger.debug("hidden")
        logger.info("hidden")
        assert logger.get_summary()['total_messages'] == 0

        logger.warning("shown")
        summary = logger.get_summary()
        assert summary['total_messages'] == 1
        assert summary['message_counts'][LogLevel.WARNING] == 1

    def test_set_level(self):
        """Lowering the level lets debug messages through."""
        logger = SimulationLogger(name="Test", level=LogLevel.ERROR,
                                  use_colors=False)
        logger.set_level(LogLevel.DEBUG)

        logger.debug("shown")

        assert logger.get_summary()['total_messages'] == 1


class TestBatchRunner:
    """Tests for the channel sweep runner."""

    def test_single_run_row(self):
        """A run produces a flat result row."""
        row = run_single_simulation(RunConfig(
            loss_prob=0.1, corrupt_prob=0.1, run_id=0, seed=1, num_messages=30
        ))

        assert row['error'] is None
        assert row['data_valid']
        assert row['goodput'] > 0

    def test_failed_run_reported(self):
        """Invalid configurations produce an error row."""
        row = run_single_simulation(RunConfig(
            loss_prob=0.1, corrupt_prob=0.1, run_id=0, seed=1,
            window_size=8, seqspace=8
        ))

        assert row['error']

    def test_small_sweep(self, tmp_path):
        """A small sweep runs, saves and aggregates."""
        output = tmp_path / "results.csv"
        runner = BatchRunner(
            loss_probs=[0.0, 0.3],
            corrupt_probs=[0.0],
            runs_per_config=2,
            num_messages=30,
            output_file=str(output)
        )

        results = runner.run_sequential()
        runner.save_results()

        assert len(results) == runner.total_runs == 4
        assert all(r['error'] is None for r in results)
        assert output.exists()

        aggregated = runner.get_aggregated_results()
        assert set(aggregated) == {(0.0, 0.0), (0.3, 0.0)}
        assert all(data['all_valid'] for data in aggregated.values())

        best = runner.get_optimal_configuration()
        assert best['best_loss_prob'] in (0.0, 0.3)

    def test_unique_seeds(self):
        """Every run gets its own seed."""
        runner = BatchRunner(loss_probs=[0.0, 0.1], corrupt_probs=[0.0, 0.1],
                             runs_per_config=3)
        seeds = [c.seed for c in runner._generate_run_configs()]

        assert len(seeds) == len(set(seeds)) == 12


class TestHeatmap:
    """Tests for sweep heatmaps."""

    @pytest.fixture
    def results(self):
        rows = []
        for loss in (0.0, 0.2):
            for corrupt in (0.0, 0.2):
                for run_id in range(2):
                    rows.append({
                        'loss_prob': loss,
                        'corrupt_prob': corrupt,
                        'run_id': run_id,
                        'goodput': 0.1 - loss * 0.1 - corrupt * 0.05,
                        'efficiency': 1.0 - loss,
                        'retransmission_rate': loss + corrupt,
                        'error': None
                    })
        return rows

    def test_build_matrix(self, results):
        """Cells hold the mean over runs."""
        from visualization.heatmap import SweepHeatmap
        matrix = SweepHeatmap(results=results).build_matrix('goodput')

        assert matrix.shape == (2, 2)
        assert matrix.loc[0.0, 0.0] == pytest.approx(0.1)
        assert list(matrix.index) == [0.2, 0.0]

    def test_best_cell(self, results):
        """The error-free cell has the best goodput."""
        from visualization.heatmap import SweepHeatmap
        loss, corrupt, value = SweepHeatmap(results=results).best_cell()

        assert (loss, corrupt) == (0.0, 0.0)
        assert value == pytest.approx(0.1)

    def test_plot_written(self, results, tmp_path):
        """Plots are saved to the requested path."""
        from visualization.heatmap import SweepHeatmap
        heatmap = SweepHeatmap(results=results)

        out = heatmap.plot(output_file=str(tmp_path / "goodput.png"),
                           highlight_best=True)
        grid = heatmap.plot_grid(output_file=str(tmp_path / "grid.png"))

        assert os.path.exists(out)
        assert os.path.exists(grid)

    def test_empty_results(self):
        """Plotting nothing is an error."""
        from visualization.heatmap import SweepHeatmap
        with pytest.raises(ValueError):
            SweepHeatmap(results=[]).build_matrix()


class TestCli:
    """Tests for the command line entry point."""

    def test_config_mode(self, capsys):
        """--config prints the configuration."""
        import main
        main.main(['--config'])

        out = capsys.readouterr().out
        assert "Window size" in out

    def test_single_mode(self, capsys):
        """--single runs one emulation."""
        import main
        main.main(['--single', '--messages', '20', '--loss', '0.1'])

        out = capsys.readouterr().out
        assert "Delivery Valid: True" in out

    def test_mode_required(self):
        """A mode must be chosen."""
        import main
        with pytest.raises(SystemExit):
            main.main([])

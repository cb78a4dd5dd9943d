"""
Channel Sweep Heatmap Visualization

This module generates 2D heatmaps of a per-run metric (goodput by
default) as a function of loss and corruption probability.
"""

import os
import sys
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd
import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt
import seaborn as sns

# Add parent to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from config import PLOTS_DIR


METRIC_LABELS = {
    'goodput': 'Goodput (msg / time unit)',
    'efficiency': 'Efficiency (deliveries / transmissions)',
    'retransmission_rate': 'Retransmission rate',
    'drop_rate': 'Window-full drop rate',
    'latency_mean': 'Mean delivery latency',
}


class SweepHeatmap:
    """
    Generates 2D heatmaps of a metric over (loss, corruption).

    Rows are corruption probabilities (highest at the top), columns are
    loss probabilities. Each cell is the mean over all runs of that pair.
    """

    def __init__(
        self,
        results: Optional[List[Dict]] = None,
        csv_file: Optional[str] = None
    ):
        """
        Initialize heatmap generator.

        Args:
            results: List of result dictionaries
            csv_file: Path to CSV file with results
        """
        if results:
            self.df = pd.DataFrame(results)
        elif csv_file:
            self.df = pd.read_csv(csv_file)
        else:
            self.df = pd.DataFrame()

        # Failed runs carry an error message and no metrics
        if 'error' in self.df.columns:
            self.df = self.df[self.df['error'].isna()]

    @property
    def is_empty(self) -> bool:
        return self.df.empty

    def build_matrix(self, metric: str = 'goodput') -> pd.DataFrame:
        """
        Pivot the mean of a metric over (corrupt_prob, loss_prob).

        Args:
            metric: Result column to aggregate

        Returns:
            DataFrame indexed by corrupt_prob (descending), columns loss_prob
        """
        if self.is_empty:
            raise ValueError("No results to plot")
        if metric not in self.df.columns:
            raise KeyError(f"Unknown metric: {metric}")

        matrix = self.df.pivot_table(
            index='corrupt_prob',
            columns='loss_prob',
            values=metric,
            aggfunc='mean'
        )
        return matrix.sort_index(ascending=False)

    def best_cell(self, metric: str = 'goodput') -> Tuple[float, float, float]:
        """
        Find the cell with the highest mean value.

        Returns:
            Tuple of (loss_prob, corrupt_prob, value)
        """
        matrix = self.build_matrix(metric)
        row, col = np.unravel_index(np.nanargmax(matrix.values), matrix.shape)
        return (float(matrix.columns[col]), float(matrix.index[row]),
                float(matrix.values[row, col]))

    def _draw(self, ax, metric: str, cmap: str, show_values: bool):
        matrix = self.build_matrix(metric)
        sns.heatmap(
            matrix,
            annot=show_values,
            fmt='.3f',
            cmap=cmap,
            ax=ax,
            cbar_kws={'label': METRIC_LABELS.get(metric, metric)}
        )
        ax.set_xlabel('Loss probability', fontsize=12)
        ax.set_ylabel('Corruption probability', fontsize=12)
        return matrix

    def plot(
        self,
        metric: str = 'goodput',
        output_file: Optional[str] = None,
        title: Optional[str] = None,
        figsize: Tuple[int, int] = (10, 8),
        cmap: str = "viridis",
        show_values: bool = True,
        highlight_best: bool = False
    ) -> str:
        """
        Generate and save heatmap.

        Args:
            metric: Result column to plot
            output_file: Output file path (auto-generated if None)
            title: Plot title
            figsize: Figure size (width, height)
            cmap: Colormap name
            show_values: Show values in cells
            highlight_best: Outline the cell with the highest value

        Returns:
            Path to saved figure
        """
        fig, ax = plt.subplots(figsize=figsize)
        matrix = self._draw(ax, metric, cmap, show_values)

        if highlight_best:
            row, col = np.unravel_index(np.nanargmax(matrix.values), matrix.shape)
            rect = plt.Rectangle(
                (col, row), 1, 1,
                fill=False, edgecolor='red', linewidth=3
            )
            ax.add_patch(rect)

        ax.set_title(title or f"{METRIC_LABELS.get(metric, metric)} vs channel quality",
                     fontsize=14, fontweight='bold')
        plt.tight_layout()

        if output_file is None:
            os.makedirs(PLOTS_DIR, exist_ok=True)
            output_file = os.path.join(PLOTS_DIR, f'{metric}_heatmap.png')

        plt.savefig(output_file, dpi=150, bbox_inches='tight')
        plt.close(fig)

        print(f"Heatmap saved to: {output_file}")
        return output_file

    def plot_grid(
        self,
        metrics: Sequence[str] = ('goodput', 'efficiency', 'retransmission_rate'),
        output_file: Optional[str] = None,
        cmap: str = "viridis"
    ) -> str:
        """
        Generate side-by-side heatmaps of several metrics.

        Args:
            metrics: Result columns to plot, one panel each
            output_file: Output file path
            cmap: Colormap name

        Returns:
            Path to saved figure
        """
        fig, axes = plt.subplots(1, len(metrics), figsize=(8 * len(metrics), 6),
                                 squeeze=False)

        for ax, metric in zip(axes[0], metrics):
            self._draw(ax, metric, cmap, show_values=True)
            ax.set_title(METRIC_LABELS.get(metric, metric))

        plt.suptitle("Selective Repeat over an unreliable channel",
                     fontsize=14, fontweight='bold')
        plt.tight_layout()

        if output_file is None:
            os.makedirs(PLOTS_DIR, exist_ok=True)
            output_file = os.path.join(PLOTS_DIR, 'metrics_grid.png')

        plt.savefig(output_file, dpi=150, bbox_inches='tight')
        plt.close(fig)

        return output_file


if __name__ == "__main__":
    print("=" * 60)
    print("HEATMAP GENERATOR TEST")
    print("=" * 60)

    # Synthetic data: goodput falls with both error rates
    rng = np.random.default_rng(0)
    test_results = []
    for loss in [0.0, 0.1, 0.2, 0.3]:
        for corrupt in [0.0, 0.1, 0.2, 0.3]:
            for run in range(3):
                base = 0.1 * (1 - loss) * (1 - corrupt)
                test_results.append({
                    'loss_prob': loss,
                    'corrupt_prob': corrupt,
                    'run_id': run,
                    'goodput': max(0.0, base + rng.normal(0, 0.005)),
                    'efficiency': (1 - loss) * (1 - corrupt),
                    'retransmission_rate': loss + corrupt,
                    'error': None
                })

    heatmap = SweepHeatmap(results=test_results)
    heatmap.plot(highlight_best=True)
    print(f"Best cell: {heatmap.best_cell()}")

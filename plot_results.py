#!/usr/bin/env python3
"""
Script to plot pathway enrichment results from a results directory.

Draws a signed -log10(q) heatmap of pathways across all test sets
(red for enriched, blue for depleted).
"""

import argparse
from pathlib import Path

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
import seaborn as sns

plt.style.use('seaborn-v0_8-whitegrid')
sns.set_context("paper", font_scale=1.2)


def parse_args():
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Plot pathway enrichment results written by the pipeline"
    )

    parser.add_argument(
        "--results-dir",
        type=str,
        default="results",
        help="Path to results directory (default: results)"
    )

    parser.add_argument(
        "--output-dir",
        type=str,
        default="plots",
        help="Path to output directory for plots (default: plots)"
    )

    parser.add_argument(
        "--qvalue-cutoff",
        type=float,
        default=0.05,
        help="Only pathways at or below this q-value in some test set are shown (default: 0.05)"
    )

    parser.add_argument(
        "--format",
        type=str,
        default="png",
        choices=["png", "pdf", "svg"],
        help="Format for saving plots (default: png)"
    )

    parser.add_argument(
        "--dpi",
        type=int,
        default=300,
        help="DPI for saving plots (default: 300)"
    )

    return parser.parse_args()


def load_results(results_dir):
    """
    Load every ``results_<set>.tsv`` table of a results directory.

    Returns:
        DataFrame of all rows with an added ``test_set`` column
    """
    data_dir = Path(results_dir) / 'data'
    result_files = sorted(data_dir.glob('results_*.tsv'))
    if not result_files:
        raise FileNotFoundError(f"No results files found in {data_dir}")

    frames = []
    for file_path in result_files:
        df = pd.read_csv(file_path, sep='\t')
        df['test_set'] = file_path.stem[len('results_'):]
        frames.append(df)
    return pd.concat(frames, ignore_index=True)


def signed_significance(results_df, qvalue_cutoff):
    """
    Pivot results into a pathway x test set matrix of signed -log10(q).

    For each pathway and test set the direction with the smaller q-value is
    kept; depletion is negative.
    """
    best = (
        results_df.sort_values('qvalue', kind='stable')
        .drop_duplicates(subset=['pathway', 'test_set'], keep='first')
        .copy()
    )
    sign = np.where(best['status'] == 'enriched', 1.0, -1.0)
    best['score'] = sign * -np.log10(best['qvalue'].clip(lower=np.finfo(float).tiny))

    keep = best.loc[best['qvalue'] <= qvalue_cutoff, 'pathway'].unique()
    matrix = best[best['pathway'].isin(keep)].pivot(index='pathway', columns='test_set', values='score')
    return matrix.fillna(0.0)


def plot_significance_heatmap(matrix, output_path, dpi=300, format='png'):
    """Draw the signed significance matrix as a heatmap."""
    height = max(3, 0.35 * len(matrix) + 2)
    width = max(5, 1.2 * len(matrix.columns) + 4)
    plt.figure(figsize=(width, height))

    limit = max(1.0, float(np.abs(matrix.values).max()))
    sns.heatmap(
        matrix,
        cmap='RdBu_r',
        center=0,
        vmin=-limit,
        vmax=limit,
        linewidths=0.5,
        cbar_kws={'label': 'signed -log10(q)'},
    )
    plt.xlabel('Test set', fontsize=12, fontweight='bold')
    plt.ylabel('')
    plt.title('Pathway enrichment (red) and depletion (blue)', fontsize=14, fontweight='bold')
    plt.tight_layout()

    output_file = output_path / f"significance_heatmap.{format}"
    plt.savefig(output_file, dpi=dpi, format=format)
    plt.close()
    return output_file


def main():
    """Main function."""
    args = parse_args()

    output_path = Path(args.output_dir)
    output_path.mkdir(parents=True, exist_ok=True)

    results_df = load_results(args.results_dir)
    print(f"Loaded {len(results_df)} result rows for {results_df['test_set'].nunique()} test set(s)")

    matrix = signed_significance(results_df, args.qvalue_cutoff)
    if matrix.empty:
        print(f"No pathways with qvalue <= {args.qvalue_cutoff}; nothing to plot")
        return

    heatmap_file = plot_significance_heatmap(matrix, output_path, dpi=args.dpi, format=args.format)
    print(f"Saved heatmap to {heatmap_file}")


if __name__ == "__main__":
    main()

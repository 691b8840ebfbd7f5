"""
Dot plots of pathway enrichment and depletion results.
"""

from pathlib import Path
from typing import Optional, Union

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
import seaborn as sns

from pathfisher.results import ResultTable, Status

STATUS_MARKERS = {Status.ENRICHED.value: "^", Status.DEPLETED.value: "v"}


def dotplot_data(table: ResultTable, qvalue_cutoff: float = 0.05, top_n: Optional[int] = None) -> pd.DataFrame:
    """
    Rows of a result table that go into a dot plot.

    Significant rows are ranked by effect size; rows with undefined fold
    enrichment have no position on the x axis and are left out. Rows without
    any overlap (fold enrichment 0) are drawn one unit left of the smallest
    finite log2 fold enrichment and flagged in ``zero_overlap``.

    Returns:
        DataFrame with description, log2_fold, overlap, neg_log10_q, status
        and zero_overlap columns
    """
    rows = table.significant(qvalue_cutoff).rank_by_fold(top_n)
    zero_overlap = [r.fold_enrichment == 0 for r in rows]
    log2_fold = [float(np.log2(r.fold_enrichment)) if not zero else np.nan
                 for r, zero in zip(rows, zero_overlap)]

    finite = [x for x in log2_fold if not np.isnan(x)]
    floor = min(finite + [0.0]) - 1.0
    log2_fold = [floor if zero else x for x, zero in zip(log2_fold, zero_overlap)]

    data = pd.DataFrame({
        "description": [r.description for r in rows],
        "log2_fold": pd.Series(log2_fold, dtype=float),
        "overlap": [len(r.real_gene) for r in rows],
        "neg_log10_q": [float(-np.log10(max(r.qvalue, np.finfo(float).tiny))) for r in rows],
        "status": [r.status.value for r in rows],
        "zero_overlap": pd.Series(zero_overlap, dtype=bool),
    })
    return data.sort_values("log2_fold", kind="stable").reset_index(drop=True)


def plot_dotplot(
    table: ResultTable,
    output_file: Optional[Union[str, Path]] = None,
    qvalue_cutoff: float = 0.05,
    top_n: Optional[int] = None,
    title: Optional[str] = None,
    dpi: int = 300,
):
    """
    Draw a dot plot of significant pathways for one test set.

    Args:
        table: Result table of one test set
        output_file: Optional path to save the figure to
        qvalue_cutoff: Maximum q-value of plotted rows
        top_n: Plot at most this many rows, largest effect first
        title: Plot title; the test set name by default
        dpi: Resolution of the saved figure

    Returns:
        The matplotlib Figure
    """
    data = dotplot_data(table, qvalue_cutoff, top_n)
    if data.empty:
        raise ValueError(f"No pathways with qvalue <= {qvalue_cutoff} to plot for '{table.name}'")

    height = max(3.0, 0.35 * len(data) + 1.5)
    fig, ax = plt.subplots(figsize=(8, height))
    sns.scatterplot(
        data=data,
        x="log2_fold",
        y="description",
        size="overlap",
        hue="neg_log10_q",
        palette="viridis",
        style="status",
        markers=STATUS_MARKERS,
        edgecolor="black",
        linewidth=0.5,
        sizes=(40, 300),
        ax=ax,
    )
    ax.axvline(0, color="grey", linestyle="--", linewidth=0.8)
    ax.set_xlabel("log2 fold enrichment")
    if data["zero_overlap"].any():
        floor = data.loc[data["zero_overlap"], "log2_fold"].iloc[0]
        ax.axvline(floor, color="grey", linestyle=":", linewidth=0.8)
        ax.set_xlabel(f"log2 fold enrichment (no overlap drawn at {floor:g})")
    ax.set_ylabel("")
    ax.set_title(title or table.name)
    ax.legend(bbox_to_anchor=(1.02, 1), loc="upper left", frameon=False)
    fig.tight_layout()

    if output_file is not None:
        fig.savefig(output_file, dpi=dpi, bbox_inches="tight")
    return fig

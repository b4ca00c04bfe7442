#!/usr/bin/env python3
"""
report_figures.py
=================

Dashboard-ready figures for a refresh, each rendered in light and dark
themes via `plot_dual_theme`:

- monthly KPI series (mean and median views, engagement on a twin axis)
- Pearson correlation heatmap (undefined cells left blank)
"""
from __future__ import annotations

from pathlib import Path
from typing import Dict, List, Optional

import pandas as pd
import seaborn as sns

from yt_analytics.utils.theme_manager import plot_dual_theme


@plot_dual_theme(section="kpis")
def plot_monthly_kpis(data: pd.DataFrame, ax=None, palette=None, **kwargs):
    """Mean/median views per month, with mean engagement on a secondary axis."""
    months = pd.to_datetime(data["month_start"])
    ax.plot(months, data["avg_views"], marker="o", lw=2, color=palette[0], label="Mean views")
    ax.plot(months, data["median_views"], marker="s", lw=2, ls="--", color=palette[1], label="Median views")
    ax.set_xlabel("Month")
    ax.set_ylabel("Views")
    ax.set_title("Monthly KPIs")

    ax2 = ax.twinx()
    ax2.plot(months, data["avg_engagement_rate"], lw=1.5, ls=":", color=palette[2], label="Mean engagement rate")
    ax2.set_ylabel("Engagement rate")
    ax2.grid(False)

    handles, labels = ax.get_legend_handles_labels()
    h2, l2 = ax2.get_legend_handles_labels()
    ax.legend(handles + h2, labels + l2, loc="upper left")


@plot_dual_theme(section="correlation")
def plot_correlation_heatmap(data: pd.DataFrame, ax=None, palette=None, **kwargs):
    """Annotated heatmap of the Pearson matrix on a fixed [-1, 1] scale."""
    sns.heatmap(
        data.astype(float),
        annot=True,
        fmt=".2f",
        cmap=palette,
        vmin=-1.0,
        vmax=1.0,
        square=True,
        linewidths=0.5,
        cbar_kws={"label": "Pearson r"},
        ax=ax,
    )
    ax.set_title("Correlation between video metrics")
    ax.set_xlabel("")
    ax.set_ylabel("")


def render_figures(reports: Dict[str, pd.DataFrame], fig_dir: Path, config: Optional[dict] = None) -> List[str]:
    """
    Render every figure whose report is present and non-empty.

    Returns
    -------
    List[str]
        Paths of the image files written.
    """
    fig_dir = Path(fig_dir)
    written: List[str] = []
    kpis = reports.get("monthly_kpis")
    if kpis is not None and not kpis.empty:
        written += plot_monthly_kpis(kpis, save_path=str(fig_dir / "monthly_kpis"), figsize=(11, 6), config=config)
    else:
        print("[WARN] monthly_kpis is empty; skipping KPI figure.")
    corr = reports.get("corr_pearson")
    if corr is not None and not corr.empty:
        written += plot_correlation_heatmap(corr, save_path=str(fig_dir / "corr_pearson_heatmap"), figsize=(8, 7), config=config)
    return written

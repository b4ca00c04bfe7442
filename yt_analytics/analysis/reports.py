# -*- coding: utf-8 -*-
"""
reports.py
==========

Purpose
-------
Read the named views/tables of a refreshed database into DataFrames, export
them for the dashboard (CSV + LaTeX), and self-check the SQL views against
the in-memory implementations in `metrics.py`.
"""
from __future__ import annotations

import sqlite3
from pathlib import Path
from typing import Dict, List, Optional

import numpy as np
import pandas as pd

from yt_analytics.analysis.metrics import (
    derive_video_metrics,
    engagement_rate_series,
    monthly_kpis,
    unit_rates,
)
from yt_analytics.utils.academic_tables import dataframe_to_latex_table
from yt_analytics.utils.database import read_sql
from yt_analytics.utils.timing import t0, tend

# Report name -> query. Order is the order artefacts are written in.
REPORT_QUERIES: Dict[str, str] = {
    "video_metrics": "SELECT * FROM vw_video_metrics ORDER BY video_id",
    "video_type_summary": "SELECT * FROM vw_video_type_summary ORDER BY video_type",
    "top_categories": "SELECT * FROM vw_top_categories",
    "monthly_kpis": "SELECT * FROM vw_monthly_kpis",
    "top15_by_views": "SELECT * FROM vw_top15_by_views",
    "top15_by_engagement": "SELECT * FROM vw_top15_by_engagement",
    "corr_pearson": "SELECT * FROM vw_corr_pearson",
    "video_unit_rates": "SELECT * FROM vw_video_unit_rates ORDER BY video_id",
    "video_log_metrics": "SELECT * FROM video_log_metrics ORDER BY video_id",
    "channel_data": "SELECT * FROM channel_data ORDER BY playlist_id",
}


def read_report(conn: sqlite3.Connection, name: str) -> pd.DataFrame:
    """
    One named report as a DataFrame.

    Raises
    ------
    KeyError
        If `name` is not a known report.
    """
    if name not in REPORT_QUERIES:
        raise KeyError(f"Unknown report '{name}'. Known: {sorted(REPORT_QUERIES)}")
    df = read_sql(conn, REPORT_QUERIES[name])
    if name == "corr_pearson":
        df = df.set_index("metric")
    return df


def collect_reports(conn: sqlite3.Connection, names: Optional[List[str]] = None) -> Dict[str, pd.DataFrame]:
    """Every report (or the subset `names`), keyed by report name."""
    start = t0("[REPORTS] reading views")
    out = {name: read_report(conn, name) for name in (names or list(REPORT_QUERIES))}
    tend("reports.collect_reports", start)
    return out


def export_reports(
    reports: Dict[str, pd.DataFrame],
    data_dir: Path,
    table_dir: Optional[Path] = None,
) -> List[Path]:
    """
    Write each report to `<data_dir>/<name>.csv`; with `table_dir`, also write
    LaTeX tables for the correlation matrix and the monthly KPIs.

    Returns
    -------
    List[Path]
        Every file written.
    """
    start = t0("[EXPORT] writing report artefacts")
    data_dir = Path(data_dir)
    data_dir.mkdir(parents=True, exist_ok=True)
    written: List[Path] = []
    for name, df in reports.items():
        path = data_dir / f"{name}.csv"
        df.to_csv(path, index=(name == "corr_pearson"))
        print(f"✓ Artefact saved: {path}")
        written.append(path)

    if table_dir is not None:
        table_dir = Path(table_dir)
        if "corr_pearson" in reports:
            path = table_dir / "corr_pearson.tex"
            dataframe_to_latex_table(
                reports["corr_pearson"],
                save_path=str(path),
                caption="Pearson correlation between video metrics.",
                label="tab:corr-pearson",
                note="Pairwise non-null observations; '-' marks an undefined coefficient.",
            )
            written.append(path)
        if "monthly_kpis" in reports:
            path = table_dir / "monthly_kpis.tex"
            dataframe_to_latex_table(
                reports["monthly_kpis"],
                save_path=str(path),
                caption="Monthly KPIs: uploads, mean and median views, mean engagement rate.",
                label="tab:monthly-kpis",
                precision=4,
                index=False,
            )
            written.append(path)
    tend("reports.export_reports", start)
    return written


# ---------------- Self-check ----------------
def _frames_match(sql_df: pd.DataFrame, py_df: pd.DataFrame, columns: List[str]) -> bool:
    """Column-wise comparison with NaN == NaN and a float tolerance."""
    if len(sql_df) != len(py_df):
        return False
    for c in columns:
        a = pd.to_numeric(sql_df[c].reset_index(drop=True), errors="coerce").astype(float).to_numpy()
        b = pd.to_numeric(py_df[c].reset_index(drop=True), errors="coerce").astype(float).to_numpy()
        if not np.allclose(a, b, rtol=1e-9, atol=1e-12, equal_nan=True):
            return False
    return True


def self_check(conn: sqlite3.Connection) -> Dict[str, bool]:
    """
    Recompute engagement, monthly KPIs and unit rates in pandas and compare
    them with the SQL views.

    Returns
    -------
    Dict[str, bool]
        Check name -> passed. A [CHECK] line is printed for each.
    """
    start = t0("[CHECK] comparing SQL views with in-memory metrics")
    videos = derive_video_metrics(read_sql(conn, "SELECT * FROM video_data ORDER BY video_id"))
    sql_metrics = read_report(conn, "video_metrics")
    py_eng = engagement_rate_series(videos["likes"], videos["comments"], videos["views"]).to_frame()

    sql_kpis = read_report(conn, "monthly_kpis")
    py_kpis = monthly_kpis(videos)

    sql_rates = read_report(conn, "video_unit_rates")
    py_rates = unit_rates(videos)

    results = {
        "engagement_rate": _frames_match(sql_metrics, py_eng, ["engagement_rate"]),
        "monthly_kpis": (
            list(sql_kpis["month_start"]) == list(py_kpis["month_start"])
            and _frames_match(sql_kpis, py_kpis, ["video_count", "avg_views", "median_views", "avg_engagement_rate"])
        ),
        "video_unit_rates": _frames_match(
            sql_rates, py_rates,
            ["views_per_minute", "likes_per_1k_views", "comments_per_1k_views", "comments_per_like"],
        ),
    }
    for name, ok in results.items():
        print(f"[CHECK] {name}: {'ok' if ok else 'MISMATCH'}")
    tend("reports.self_check", start)
    return results

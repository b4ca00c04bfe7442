# -*- coding: utf-8 -*-
"""
views.py
========

Purpose
-------
Stage 3 of a refresh: the named, read-only views a BI tool reads, plus the
report tables whose math SQLite cannot express portably.

Views (pure SQL, always consistent with the base tables)
--------------------------------------------------------
- vw_video_metrics        base columns + engagement_rate (NULL-guarded)
- vw_video_type_summary   count / total views / avg duration / avg engagement per type
- vw_top_categories       count / total views / avg engagement per category
- vw_monthly_kpis         count, mean views, rank-median views, mean engagement per month
- vw_top15_by_views       top-N by raw views
- vw_top15_by_engagement  top-N by engagement with a minimum-views floor
- vw_video_unit_rates     per-minute and per-1k-views rates

Materialised tables (replaced on every refresh)
-----------------------------------------------
- corr_pearson            5x5 Pearson matrix (needs sqrt / population sd)
- video_log_metrics       log10(1 + x) transforms (needs log10)
- vw_corr_pearson         the matrix in display order, for BI bindings
"""
from __future__ import annotations

import sqlite3
from typing import Dict, List, Optional

import pandas as pd

from yt_analytics.analysis.metrics import (
    CORRELATION_METRICS,
    correlation_matrix,
    derive_video_metrics,
    log_transform,
)
from yt_analytics.utils.database import read_sql
from yt_analytics.utils.timing import t0, tend, timed

VIEW_NAMES = [
    "vw_video_metrics",
    "vw_video_type_summary",
    "vw_top_categories",
    "vw_monthly_kpis",
    "vw_top15_by_views",
    "vw_top15_by_engagement",
    "vw_video_unit_rates",
]
MATERIALISED_TABLES = ["corr_pearson", "video_log_metrics"]
# Views over materialised tables; created by materialise_reports, not create_views.
MATERIALISED_VIEWS = ["vw_corr_pearson"]

# Integer division in SQLite truncates, so the REAL cast is required.
_ENGAGEMENT_SQL = (
    "CASE WHEN views IS NULL OR views = 0 OR likes IS NULL OR comments IS NULL THEN NULL "
    "ELSE CAST(likes + comments AS REAL) / views END"
)


def _view_sql(top_n: int, min_views_floor: int) -> Dict[str, str]:
    """CREATE VIEW statements keyed by view name, in dependency order."""
    top_n = int(top_n)
    min_views_floor = int(min_views_floor)
    return {
        "vw_video_metrics": f"""
            CREATE VIEW vw_video_metrics AS
            SELECT
                video_id, title, video_type, live_status,
                category_id, category_name,
                published_date, duration_seconds,
                views, likes, comments,
                upload_month, published_year, published_month,
                {_ENGAGEMENT_SQL} AS engagement_rate
            FROM video_data
        """,
        "vw_video_type_summary": """
            CREATE VIEW vw_video_type_summary AS
            SELECT
                video_type,
                COUNT(*)               AS video_count,
                SUM(views)             AS total_views,
                AVG(duration_seconds)  AS avg_duration_sec,
                AVG(engagement_rate)   AS avg_engagement_rate
            FROM vw_video_metrics
            GROUP BY video_type
        """,
        "vw_top_categories": """
            CREATE VIEW vw_top_categories AS
            SELECT
                category_id,
                category_name,
                COUNT(*)               AS video_count,
                SUM(views)             AS total_views,
                AVG(engagement_rate)   AS avg_engagement_rate
            FROM vw_video_metrics
            GROUP BY category_id, category_name
            ORDER BY total_views DESC, category_id
        """,
        # Median by rank: the values at ranks floor((n+1)/2) and ceil((n+1)/2),
        # averaged. (cnt + 1) / 2 and (cnt + 2) / 2 are those ranks under
        # integer division. Null views take no rank.
        "vw_monthly_kpis": """
            CREATE VIEW vw_monthly_kpis AS
            WITH base AS (
                SELECT
                    strftime('%Y-%m-01', published_date) AS month_start,
                    views,
                    engagement_rate
                FROM vw_video_metrics
                WHERE published_date IS NOT NULL
            ),
            ranked AS (
                SELECT
                    month_start,
                    views,
                    ROW_NUMBER() OVER (PARTITION BY month_start ORDER BY views) AS rn,
                    COUNT(*)    OVER (PARTITION BY month_start)                 AS cnt
                FROM base
                WHERE views IS NOT NULL
            ),
            median_calc AS (
                SELECT
                    month_start,
                    AVG(views) AS median_views
                FROM ranked
                WHERE rn IN ((cnt + 1) / 2, (cnt + 2) / 2)
                GROUP BY month_start
            )
            SELECT
                b.month_start,
                COUNT(*)                 AS video_count,
                AVG(b.views)             AS avg_views,
                MAX(mc.median_views)     AS median_views,
                AVG(b.engagement_rate)   AS avg_engagement_rate
            FROM base b
            LEFT JOIN median_calc mc ON mc.month_start = b.month_start
            GROUP BY b.month_start
            ORDER BY b.month_start
        """,
        "vw_top15_by_views": f"""
            CREATE VIEW vw_top15_by_views AS
            SELECT
                video_id, title, views, likes, comments, duration_seconds,
                published_date, video_type, category_name
            FROM video_data
            ORDER BY views IS NULL, views DESC, video_id
            LIMIT {top_n}
        """,
        # Low-view videos are noisy, so the floor applies before ranking.
        "vw_top15_by_engagement": f"""
            CREATE VIEW vw_top15_by_engagement AS
            SELECT
                video_id, title, engagement_rate,
                views, likes, comments, duration_seconds,
                published_date, video_type, category_name
            FROM vw_video_metrics
            WHERE views >= {min_views_floor}
              AND engagement_rate IS NOT NULL
            ORDER BY engagement_rate DESC, views DESC, video_id
            LIMIT {top_n}
        """,
        "vw_video_unit_rates": """
            CREATE VIEW vw_video_unit_rates AS
            SELECT
                video_id,
                CASE WHEN views IS NULL OR duration_seconds IS NULL OR duration_seconds = 0 THEN NULL
                     ELSE CAST(views AS REAL) * 60.0 / duration_seconds END          AS views_per_minute,
                CASE WHEN likes IS NULL OR views IS NULL OR views = 0 THEN NULL
                     ELSE CAST(likes AS REAL) * 1000.0 / views END                   AS likes_per_1k_views,
                CASE WHEN comments IS NULL OR views IS NULL OR views = 0 THEN NULL
                     ELSE CAST(comments AS REAL) * 1000.0 / views END                AS comments_per_1k_views,
                CASE WHEN comments IS NULL OR likes IS NULL OR likes = 0 THEN NULL
                     ELSE CAST(comments AS REAL) / likes END                         AS comments_per_like
            FROM video_data
        """,
    }


def drop_views(conn: sqlite3.Connection) -> None:
    """Drop all report views and materialised tables (reverse dependency order)."""
    for name in reversed(VIEW_NAMES + MATERIALISED_VIEWS):
        conn.execute(f"DROP VIEW IF EXISTS {name}")
    for name in MATERIALISED_TABLES:
        conn.execute(f"DROP TABLE IF EXISTS {name}")


def create_views(conn: sqlite3.Connection, top_n: int = 15, min_views_floor: int = 1000) -> List[str]:
    """
    (Re)create every report view.

    Parameters
    ----------
    conn : sqlite3.Connection
    top_n : int, default 15
        Row limit of both ranking views.
    min_views_floor : int, default 1000
        Minimum views for a video to enter the engagement ranking.

    Returns
    -------
    List[str]
        Names of the views created.
    """
    with timed("views.create_views"):
        for name in reversed(VIEW_NAMES):
            conn.execute(f"DROP VIEW IF EXISTS {name}")
        for name, sql in _view_sql(top_n, min_views_floor).items():
            conn.execute(sql)
            print(f"[views] {name} created.")
    return list(VIEW_NAMES)


def _replace_table(conn: sqlite3.Connection, name: str, ddl: str, df: pd.DataFrame) -> None:
    """Drop/create `name` with `ddl` and insert `df` (NaN stored as NULL)."""
    conn.execute(f"DROP TABLE IF EXISTS {name}")
    conn.execute(ddl)
    cols = list(df.columns)
    values = [[None if pd.isna(v) else v for v in df[c].tolist()] for c in cols]
    rows = list(zip(*values)) if cols else []
    conn.executemany(
        f"INSERT INTO {name} ({', '.join(cols)}) VALUES ({', '.join('?' for _ in cols)})",
        rows,
    )


def materialise_reports(conn: sqlite3.Connection, metrics: Optional[List[str]] = None) -> Dict[str, pd.DataFrame]:
    """
    Compute and store `corr_pearson` and `video_log_metrics` from `video_data`,
    and expose the matrix in display order as `vw_corr_pearson`.

    Returns
    -------
    Dict[str, pd.DataFrame]
        The frames that were written, keyed by table name.
    """
    start = t0("[MATERIALISE] correlation matrix and log metrics")
    metrics = list(metrics or CORRELATION_METRICS)
    videos = derive_video_metrics(read_sql(conn, "SELECT * FROM video_data ORDER BY video_id"))

    matrix = correlation_matrix(videos, metrics)
    corr = matrix.reset_index()
    corr.insert(1, "sort_order", range(len(corr)))
    col_defs = ", ".join(f"{m} REAL" for m in metrics)
    for name in MATERIALISED_VIEWS:
        conn.execute(f"DROP VIEW IF EXISTS {name}")
    _replace_table(
        conn,
        "corr_pearson",
        f"CREATE TABLE corr_pearson (metric TEXT PRIMARY KEY, sort_order INTEGER, {col_defs})",
        corr,
    )
    conn.execute(
        f"CREATE VIEW vw_corr_pearson AS "
        f"SELECT metric, {', '.join(metrics)} FROM corr_pearson ORDER BY sort_order"
    )

    logs = log_transform(videos)
    log_defs = ", ".join(f"{c} REAL" for c in logs.columns if c != "video_id")
    _replace_table(
        conn,
        "video_log_metrics",
        f"CREATE TABLE video_log_metrics (video_id TEXT PRIMARY KEY, {log_defs})",
        logs,
    )
    print(f"[materialise] corr_pearson ({len(metrics)}x{len(metrics)}) + vw_corr_pearson, "
          f"video_log_metrics ({len(logs):,} rows).")
    tend("views.materialise_reports", start)
    return {"corr_pearson": corr, "video_log_metrics": logs}

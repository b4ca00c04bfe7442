# -*- coding: utf-8 -*-
"""
metrics.py
==========

Purpose
-------
The statistical core of a refresh, as pure functions over rows and frames:

A) Engagement rate `(likes + comments) / views` with explicit null guards.
B) Calendar fields (year, month, 'YYYY-MM') from the publish timestamp.
C) Rank-based median (the same rule the monthly KPI view uses in SQL).
D) Population Pearson correlation and the symmetric metric matrix.
E) Supplementary per-unit rates and log10(1 + x) transforms.

Null policy
-----------
Every ratio is guarded explicitly rather than relying on NaN arithmetic:
a null or zero denominator gives null, a null numerator term gives null,
and correlations with fewer than two pairs or a zero population standard
deviation give null. Nothing here raises on degenerate input.
"""
from __future__ import annotations

import math
from typing import Dict, Iterable, List, Optional, Sequence

import numpy as np
import pandas as pd

CORRELATION_METRICS = ["views", "likes", "comments", "duration_seconds", "engagement_rate"]
LOG_METRICS = ["views", "likes", "comments", "duration_seconds"]


def _is_null(x) -> bool:
    """True for None, NaN and pd.NA."""
    return x is None or bool(pd.isna(x))


# --- A) Engagement -----------------------------------------------------------
def engagement_rate(likes, comments, views) -> Optional[float]:
    """
    Per-video engagement rate.

    Parameters
    ----------
    likes, comments, views : int | None

    Returns
    -------
    float | None
        `(likes + comments) / views`; None when views is null or 0, or when
        likes or comments is null.
    """
    if _is_null(views) or views == 0:
        return None
    if _is_null(likes) or _is_null(comments):
        return None
    return float(likes + comments) / float(views)


def engagement_rate_series(likes: pd.Series, comments: pd.Series, views: pd.Series) -> pd.Series:
    """Vectorised `engagement_rate`; NaN where the scalar form returns None."""
    likes_f = pd.to_numeric(likes, errors="coerce").astype(float)
    comments_f = pd.to_numeric(comments, errors="coerce").astype(float)
    views_f = pd.to_numeric(views, errors="coerce").astype(float)
    defined = views_f.notna() & (views_f != 0) & likes_f.notna() & comments_f.notna()
    rate = pd.Series(np.nan, index=views_f.index, dtype=float)
    rate[defined] = (likes_f[defined] + comments_f[defined]) / views_f[defined]
    return rate.rename("engagement_rate")


# --- B) Calendar fields ------------------------------------------------------
def derive_calendar_fields(published: pd.Series) -> pd.DataFrame:
    """
    Year, month and 'YYYY-MM' key from normalised publish timestamps.

    Matches the generated columns on `video_data`; a null or unparseable
    timestamp gives nulls in all three fields.
    """
    ts = pd.to_datetime(published, errors="coerce", format="%Y-%m-%d %H:%M:%S")
    return pd.DataFrame({
        "published_year": ts.dt.year.astype("Int64"),
        "published_month": ts.dt.month.astype("Int64"),
        "upload_month": ts.dt.strftime("%Y-%m").astype(object).where(ts.notna(), None),
    }, index=published.index)


def derive_video_metrics(videos: pd.DataFrame) -> pd.DataFrame:
    """Stage 2 in memory: base video columns plus engagement rate and calendar fields."""
    out = videos.copy()
    out["engagement_rate"] = engagement_rate_series(out["likes"], out["comments"], out["views"])
    cal = derive_calendar_fields(out["published_date"])
    for col in cal.columns:
        out[col] = cal[col]
    return out


# --- C) Median ---------------------------------------------------------------
def rank_median(values: Iterable[float]) -> Optional[float]:
    """
    Median by ranks: sort ascending, average the values at ranks
    floor((n+1)/2) and ceil((n+1)/2) (1-based). Nulls are ignored.

    Returns
    -------
    float | None
        None for an empty (or all-null) input.
    """
    xs = sorted(float(v) for v in values if not _is_null(v))
    n = len(xs)
    if n == 0:
        return None
    lo = (n + 1) // 2          # floor((n+1)/2)
    hi = (n + 2) // 2          # ceil((n+1)/2)
    return (xs[lo - 1] + xs[hi - 1]) / 2.0


def monthly_kpis(videos: pd.DataFrame) -> pd.DataFrame:
    """
    Monthly KPI series computed in memory (mirror of `vw_monthly_kpis`).

    Parameters
    ----------
    videos : pd.DataFrame
        Output of `derive_video_metrics`.

    Returns
    -------
    pd.DataFrame
        month_start, video_count, avg_views, median_views, avg_engagement_rate;
        ordered by month_start. Rows without a publish date are excluded.
    """
    base = videos.loc[videos["upload_month"].notna()].copy()
    if base.empty:
        return pd.DataFrame(columns=["month_start", "video_count", "avg_views", "median_views", "avg_engagement_rate"])
    base["month_start"] = base["upload_month"].astype(str) + "-01"
    base["views_f"] = pd.to_numeric(base["views"], errors="coerce").astype(float)
    rows = []
    for month, g in base.groupby("month_start", sort=True):
        rows.append({
            "month_start": month,
            "video_count": int(len(g)),
            "avg_views": g["views_f"].mean() if g["views_f"].notna().any() else None,
            "median_views": rank_median(g["views_f"]),
            "avg_engagement_rate": g["engagement_rate"].mean() if g["engagement_rate"].notna().any() else None,
        })
    return pd.DataFrame(rows)


# --- D) Pearson --------------------------------------------------------------
def _as_float_array(values: Sequence) -> np.ndarray:
    """Float array with None / NaN / pd.NA as NaN."""
    return np.array([np.nan if _is_null(v) else float(v) for v in values], dtype=float)


def pearson(x: Sequence, y: Sequence) -> Optional[float]:
    """
    Population Pearson correlation over pairwise non-null observations.

    Parameters
    ----------
    x, y : sequence of numbers (None / NaN allowed)
        Must be the same length.

    Returns
    -------
    float | None
        cov_pop(x, y) / (sd_pop(x) * sd_pop(y)), clipped to [-1, 1];
        None with fewer than 2 pairs or a zero standard deviation.
    """
    xa = _as_float_array(x)
    ya = _as_float_array(y)
    if len(xa) != len(ya):
        raise ValueError(f"pearson: length mismatch ({len(xa)} vs {len(ya)})")
    keep = np.isfinite(xa) & np.isfinite(ya)
    xa, ya = xa[keep], ya[keep]
    if len(xa) < 2:
        return None
    # Constant series are detected exactly; a float mean such as that of
    # [0.1] * 3 leaves a round-off spread that is not a real deviation.
    if np.all(xa == xa[0]) or np.all(ya == ya[0]):
        return None
    dx = xa - xa.mean()
    dy = ya - ya.mean()
    sx = math.sqrt(float(np.mean(dx * dx)))
    sy = math.sqrt(float(np.mean(dy * dy)))
    if sx == 0.0 or sy == 0.0:
        return None
    r = float(np.mean(dx * dy)) / (sx * sy)
    return max(-1.0, min(1.0, r))


def correlation_matrix(frame: pd.DataFrame, metrics: Optional[List[str]] = None) -> pd.DataFrame:
    """
    Symmetric Pearson matrix over `metrics`.

    Diagonal cells are exactly 1.0 regardless of data; each off-diagonal
    pair is computed once and written to both (i, j) and (j, i). Undefined
    cells are NaN.
    """
    metrics = list(metrics or CORRELATION_METRICS)
    mat = pd.DataFrame(np.nan, index=metrics, columns=metrics, dtype=float)
    for i, a in enumerate(metrics):
        mat.iat[i, i] = 1.0
        for j in range(i + 1, len(metrics)):
            b = metrics[j]
            r = pearson(frame[a], frame[b])
            value = np.nan if r is None else r
            mat.iat[i, j] = value
            mat.iat[j, i] = value
    mat.index.name = "metric"
    return mat


def correlation_long(matrix: pd.DataFrame) -> pd.DataFrame:
    """(metric_x, metric_y, r) rows in matrix order."""
    rows = []
    for a in matrix.index:
        for b in matrix.columns:
            v = matrix.at[a, b]
            rows.append({"metric_x": a, "metric_y": b, "r": None if pd.isna(v) else float(v)})
    return pd.DataFrame(rows, columns=["metric_x", "metric_y", "r"])


# --- E) Supplementary transforms ---------------------------------------------
def _safe_ratio(num: pd.Series, den: pd.Series, scale: float = 1.0) -> pd.Series:
    """num / den * scale; NaN where either side is null or den is 0."""
    num_f = pd.to_numeric(num, errors="coerce").astype(float)
    den_f = pd.to_numeric(den, errors="coerce").astype(float)
    ok = num_f.notna() & den_f.notna() & (den_f != 0)
    out = pd.Series(np.nan, index=num_f.index, dtype=float)
    out[ok] = num_f[ok] / den_f[ok] * scale
    return out


def unit_rates(videos: pd.DataFrame) -> pd.DataFrame:
    """
    Per-unit rates for each video.

    views_per_minute uses duration in minutes; likes/comments are per 1,000
    views; comments_per_like is a plain ratio.
    """
    duration_min = pd.to_numeric(videos["duration_seconds"], errors="coerce").astype(float) / 60.0
    return pd.DataFrame({
        "video_id": videos["video_id"],
        "views_per_minute": _safe_ratio(videos["views"], duration_min),
        "likes_per_1k_views": _safe_ratio(videos["likes"], videos["views"], 1000.0),
        "comments_per_1k_views": _safe_ratio(videos["comments"], videos["views"], 1000.0),
        "comments_per_like": _safe_ratio(videos["comments"], videos["likes"]),
    })


def log_transform(videos: pd.DataFrame, metrics: Optional[List[str]] = None) -> pd.DataFrame:
    """log10(1 + x) of non-negative metrics; null and negative inputs give NaN."""
    metrics = list(metrics or LOG_METRICS)
    out: Dict[str, pd.Series] = {"video_id": videos["video_id"]}
    for m in metrics:
        x = pd.to_numeric(videos[m], errors="coerce").astype(float)
        out[f"log10_{m}"] = np.log10(1.0 + x.where(x >= 0))
    return pd.DataFrame(out)

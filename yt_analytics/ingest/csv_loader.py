# -*- coding: utf-8 -*-
"""
csv_loader.py
=============

Purpose
-------
Stage 1 of a refresh: read the video and channel CSV exports into typed
DataFrames ready for a bulk insert.

What it does
------------
1) Reads UTF-8, comma-delimited, quoted CSVs with a header row (LF or CRLF).
2) Never rejects a row for bad content: short rows are padded with nulls,
   long rows are truncated to the header width, and blank / non-numeric /
   negative numbers become null.
3) Normalises publish timestamps (date-only, `Z`, offsets, fractional seconds)
   to one timezone as 'YYYY-MM-DD HH:MM:SS'.
4) Applies the configured missing-number policy:
   - "null": blank counts stay null (engagement is then null too);
   - "zero": blank duration/views/likes/comments become 0 before insertion.
5) Drops rows without a key and keeps the last row of a duplicated key,
   with a [WARN] line for each.
"""
from __future__ import annotations

from pathlib import Path
from typing import Iterable, List, Optional, Union

import numpy as np
import pandas as pd

from yt_analytics.utils.database import (
    CHANNEL_COLUMNS,
    LIVE_STATUSES,
    VIDEO_COLUMNS,
    VIDEO_TYPES,
)
from yt_analytics.utils.timing import t0, tend

MISSING_POLICIES = ("null", "zero")

VIDEO_INT_COLUMNS = ["category_id", "duration_seconds", "views", "likes", "comments"]
# Only these are count-like; category_id is an identifier and is never zero-filled.
VIDEO_ZERO_FILL = ["duration_seconds", "views", "likes", "comments"]
CHANNEL_INT_COLUMNS = ["subscribers", "views", "total_videos"]

REPLACEMENT_CHAR = "\ufffd"

PathLike = Union[str, Path]


# ---------------- Parsing helpers ----------------
def _blank_to_na(series: pd.Series) -> pd.Series:
    """Strip strings; empty strings become NA."""
    s = series.astype("string").str.strip()
    return s.mask((s == "").fillna(False), pd.NA)


def parse_count(series: pd.Series, zero_fill: bool = False) -> pd.Series:
    """
    Parse a non-negative integer column.

    Parameters
    ----------
    series : pd.Series
        Raw string values.
    zero_fill : bool, default False
        If True, blank cells become 0 instead of null. Non-numeric or negative
        cells are always null.

    Returns
    -------
    pd.Series
        Nullable Int64 series.
    """
    raw = _blank_to_na(series)
    nums = pd.to_numeric(raw.astype(object).where(raw.notna(), np.nan), errors="coerce").astype(float)
    # '12.0' is a valid count, '12.5' is not
    bad = nums.isna() | ~np.isfinite(nums) | (nums < 0) | (nums != np.floor(nums))
    out = nums.mask(bad).round().astype("Int64")
    if zero_fill:
        out = out.mask(raw.isna(), 0)
    return out


def parse_published(series: pd.Series, timezone: str = "UTC") -> pd.Series:
    """
    Normalise ISO-8601 dates/datetimes to 'YYYY-MM-DD HH:MM:SS' in `timezone`.

    Values without an offset are taken as UTC. Unparseable values become null.

    Parameters
    ----------
    series : pd.Series
        Raw timestamp strings, e.g. '2024-03-01', '2024-03-01T10:15:00Z',
        '2024-03-01T10:15:00.123+02:00'.
    timezone : str, default "UTC"
        Target timezone name.

    Returns
    -------
    pd.Series
        Object series of strings or None.
    """
    raw = _blank_to_na(series)
    parsed = pd.to_datetime(
        raw.astype(object).where(raw.notna(), None), errors="coerce", utc=True, format="ISO8601"
    )
    local = parsed.dt.tz_convert(timezone).dt.tz_localize(None)
    text = local.dt.strftime("%Y-%m-%d %H:%M:%S")
    return text.astype(object).where(local.notna(), None)


def parse_enum(series: pd.Series, allowed: Iterable[str]) -> pd.Series:
    """Keep values in `allowed` (exact match after stripping); anything else is null."""
    raw = _blank_to_na(series)
    return raw.where(raw.isin(list(allowed)), pd.NA).astype(object).where(lambda s: s.notna(), None)


def parse_text(series: pd.Series) -> pd.Series:
    """Blank text becomes null; other text is kept as-is apart from stripping."""
    return _blank_to_na(series).astype(object).where(lambda s: s.notna(), None)


# ---------------- Readers ----------------
def _read_raw(path: PathLike, expected: List[str]) -> pd.DataFrame:
    """
    Read a CSV as all-string columns without rejecting malformed rows.

    Raises
    ------
    FileNotFoundError
        If `path` does not exist.
    ValueError
        If the header lacks any of the `expected` columns.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"CSV not found: {path}")
    start = t0(f"[READ] {path}")

    # Invalid UTF-8 bytes become U+FFFD rather than failing the whole file.
    header = pd.read_csv(path, nrows=0, encoding="utf-8-sig", encoding_errors="replace").columns
    width = len(header)
    df = pd.read_csv(
        path,
        dtype=str,
        keep_default_na=False,
        encoding="utf-8-sig",
        encoding_errors="replace",
        engine="python",
        # Long rows are truncated to the header width instead of rejected.
        on_bad_lines=lambda bad: bad[:width],
    )
    df.columns = [str(c).strip().lower() for c in df.columns]
    missing = [c for c in expected if c not in df.columns]
    if missing:
        raise ValueError(f"{path.name} is missing required columns: {missing}. Found: {list(df.columns)}")
    undecodable = df.apply(lambda s: s.str.contains(REPLACEMENT_CHAR, regex=False, na=False)).any(axis=1)
    if undecodable.any():
        print(f"[WARN] {path.name}: {int(undecodable.sum()):,} row(s) held invalid UTF-8; bytes replaced with U+FFFD.")
    tend(f"csv_loader.read[{path.name}] ({len(df):,} rows)", start)
    return df


def _drop_unkeyed(df: pd.DataFrame, key: str, label: str) -> pd.DataFrame:
    """Drop rows with no key and keep the last of any duplicated key."""
    no_key = df[key].isna()
    if no_key.any():
        print(f"[WARN] {label}: dropped {int(no_key.sum()):,} row(s) with no {key}.")
        df = df.loc[~no_key]
    dup = df[key].duplicated(keep="last")
    if dup.any():
        print(f"[WARN] {label}: {int(dup.sum()):,} duplicate {key} row(s); keeping the last occurrence.")
        df = df.loc[~dup]
    return df.reset_index(drop=True)


def _check_policy(policy: str) -> None:
    if policy not in MISSING_POLICIES:
        raise ValueError(f"Unknown missing_numeric policy {policy!r}; expected one of {MISSING_POLICIES}")


def load_video_csv(path: PathLike, policy: str = "null", timezone: str = "UTC") -> pd.DataFrame:
    """
    Load the per-video CSV into typed columns.

    Parameters
    ----------
    path : str | Path
        Video CSV with the columns listed in `utils.database.VIDEO_COLUMNS`.
    policy : {"null", "zero"}, default "null"
        Missing-number policy (see module docstring).
    timezone : str, default "UTC"
        Timezone that `published_date` is normalised to.

    Returns
    -------
    pd.DataFrame
        One row per video, columns in `VIDEO_COLUMNS` order.
    """
    _check_policy(policy)
    raw = _read_raw(path, VIDEO_COLUMNS)
    start = t0("[INGEST] typing video rows")
    out = pd.DataFrame(index=raw.index)
    out["video_id"] = parse_text(raw["video_id"])
    out["title"] = parse_text(raw["title"])
    out["video_type"] = parse_enum(raw["video_type"], VIDEO_TYPES)
    out["live_status"] = parse_enum(raw["live_status"], LIVE_STATUSES)
    out["category_name"] = parse_text(raw["category_name"])
    out["published_date"] = parse_published(raw["published_date"], timezone)
    for col in VIDEO_INT_COLUMNS:
        out[col] = parse_count(raw[col], zero_fill=(policy == "zero" and col in VIDEO_ZERO_FILL))
    out = _drop_unkeyed(out[VIDEO_COLUMNS], "video_id", "video_data")
    tend("csv_loader.load_video_csv", start)
    return out


def load_channel_csv(path: PathLike, policy: str = "null") -> pd.DataFrame:
    """
    Load the per-channel CSV into typed columns.

    The "zero" policy does not apply to channel totals; a blank subscriber
    count is unknown rather than zero.
    """
    _check_policy(policy)
    raw = _read_raw(path, CHANNEL_COLUMNS)
    start = t0("[INGEST] typing channel rows")
    out = pd.DataFrame(index=raw.index)
    out["channel_name"] = parse_text(raw["channel_name"])
    for col in CHANNEL_INT_COLUMNS:
        out[col] = parse_count(raw[col])
    out["playlist_id"] = parse_text(raw["playlist_id"])
    out = _drop_unkeyed(out[CHANNEL_COLUMNS], "playlist_id", "channel_data")
    tend("csv_loader.load_channel_csv", start)
    return out


def load_sources(video_csv: PathLike, channel_csv: PathLike, ingest_cfg: Optional[dict] = None):
    """Load both CSVs using the `ingest` section of settings.yaml."""
    ingest_cfg = ingest_cfg or {}
    policy = str(ingest_cfg.get("missing_numeric", "null"))
    timezone = str(ingest_cfg.get("timezone", "UTC"))
    videos = load_video_csv(video_csv, policy=policy, timezone=timezone)
    channels = load_channel_csv(channel_csv, policy=policy)
    return videos, channels

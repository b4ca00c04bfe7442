"""
Helper functions for tests.
Builds small CSV exports and an isolated config pointing at a temp directory.
"""
import copy
import csv
import hashlib
import os
from pathlib import Path

VIDEO_HEADER = [
    "video_id", "title", "video_type", "live_status", "category_id", "category_name",
    "published_date", "duration_seconds", "views", "likes", "comments",
]
CHANNEL_HEADER = ["channel_name", "subscribers", "views", "total_videos", "playlist_id"]


def get_test_seed(test_name: str = "") -> int:
    """
    Deterministic seed per test name, so random fixtures are reproducible
    but not all drawn from the same stream.
    """
    base_seeds = [123, 456, 789, 1234, 5678, 9876, 2468, 1357, 8642, 7531]
    if test_name:
        idx = int(hashlib.md5(test_name.encode()).hexdigest()[:8], 16) % len(base_seeds)
    else:
        idx = os.getpid() % len(base_seeds)
    return base_seeds[idx]


def write_csv(path: Path, header, rows, line_terminator: str = "\r\n") -> Path:
    """Write a quoted CSV the way the API export does (CRLF by default)."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8", newline="") as f:
        writer = csv.writer(f, quoting=csv.QUOTE_ALL, lineterminator=line_terminator)
        writer.writerow(header)
        for row in rows:
            writer.writerow(row)
    return path


def sample_video_rows():
    """A small, varied video export covering the null/zero edge cases."""
    return [
        # id, title, type, live, cat_id, cat_name, published, duration, views, likes, comments
        ["v01", "Launch trailer", "Regular", "none", "24", "Entertainment", "2024-01-05T10:00:00Z", "120", "1000", "50", "10"],
        ["v02", "Blank views", "Short", "none", "24", "Entertainment", "2024-01-20T08:30:00Z", "45", "0", "0", "0"],
        ["v03", "Deep dive", "Regular", "none", "27", "Education", "2024-01-28T12:00:00+02:00", "900", "5000", "400", "100"],
        ["v04", "Tiny but loved", "Short", "none", "27", "Education", "2024-02-01", "30", "200", "150", "40"],
        ["v05", "Live Q&A", "Live", "live", "22", "People & Blogs", "2024-02-10T18:00:00.250Z", "3600", "2500", "100", "300"],
        ["v06", "Premiere", "Upcoming Live", "upcoming", "22", "People & Blogs", "", "", "", "", ""],
        ["v07", "Tutorial part 1", "Regular", "none", "27", "Education", "2024-02-15T09:00:00Z", "600", "12000", "600", "60"],
        ["v08", "Tutorial part 2", "Regular", "none", "27", "Education", "2024-02-22T09:00:00Z", "660", "8000", "560", "40"],
        ["v09", "Behind the scenes", "Short", "none", "24", "Entertainment", "2024-03-03T14:00:00Z", "50", "3000", "", "20"],
        ["v10", "Recap", "Regular", "none", "24", "Entertainment", "2024-03-30T23:30:00-05:00", "300", "4000", "200", "50"],
    ]


def sample_channel_rows():
    return [
        ["Main Channel", "125000", "9800000", "410", "UU_main"],
        ["Clips Channel", "", "120000", "55", "UU_clips"],
    ]


def make_config(base_config: dict, tmp_path: Path, **overrides) -> dict:
    """
    Copy of the project config with every output path under `tmp_path`.

    `overrides` are merged into the matching top-level sections, e.g.
    `make_config(cfg, tmp, ingest={"missing_numeric": "zero"})`.
    """
    cfg = copy.deepcopy(base_config)
    tmp_path = Path(tmp_path)
    cfg["paths"] = {
        "data": str(tmp_path / "outputs" / "data"),
        "figures": str(tmp_path / "outputs" / "figures"),
        "tables": str(tmp_path / "outputs" / "tables"),
        "database": str(tmp_path / "youtube_analytics.db"),
        "videos_csv": str(tmp_path / "video_data.csv"),
        "channels_csv": str(tmp_path / "channel_data.csv"),
    }
    for section, values in overrides.items():
        cfg.setdefault(section, {}).update(values)
    return cfg

"""
Performance tests for execution speed.
Benchmarks the in-memory metrics and a full refresh on a channel-sized export.
"""
import pytest
import numpy as np
import pandas as pd
import time
import sys
from pathlib import Path
sys.path.append(str(Path(__file__).resolve().parents[3]))

from yt_analytics.analysis.metrics import correlation_matrix, derive_video_metrics, rank_median
from yt_analytics.refresh import run_refresh
from yt_analytics.utils.theme_manager import get_config
from yt_analytics.tests.test_helpers import (
    CHANNEL_HEADER,
    VIDEO_HEADER,
    get_test_seed,
    make_config,
    sample_channel_rows,
    write_csv,
)


def _count(value):
    return "" if pd.isna(value) else str(int(value))


class TestSpeed:
    """Test suite for speed benchmarks"""

    @pytest.fixture
    def large_videos(self):
        """Synthetic 20k-video frame with a few percent nulls"""
        rng = np.random.default_rng(get_test_seed("speed"))
        n = 20_000
        views = rng.integers(0, 2_000_000, n).astype(float)
        views[rng.random(n) < 0.02] = np.nan
        likes = np.floor(np.nan_to_num(views) * rng.uniform(0.0, 0.1, n))
        comments = np.floor(likes * rng.uniform(0.0, 0.2, n))
        days = rng.integers(0, 3 * 365, n)
        published = (pd.Timestamp("2021-01-01") + pd.to_timedelta(days, unit="D")).strftime("%Y-%m-%d %H:%M:%S")
        return pd.DataFrame({
            "video_id": [f"id{i:06d}" for i in range(n)],
            "published_date": list(published),
            "duration_seconds": rng.integers(10, 7200, n).astype(float),
            "views": views,
            "likes": likes,
            "comments": comments,
        })

    def test_correlation_matrix_speed(self, large_videos):
        """Benchmark the 5x5 matrix on 20k rows"""
        videos = derive_video_metrics(large_videos)
        _ = correlation_matrix(videos)

        n_iterations = 20
        start = time.time()
        for _ in range(n_iterations):
            correlation_matrix(videos)
        avg_time = (time.time() - start) / n_iterations

        print(f"Correlation matrix: {avg_time*1000:.2f}ms per iteration")
        assert avg_time < 0.5, f"Correlation matrix too slow: {avg_time:.3f}s"

    def test_rank_median_speed(self, large_videos):
        values = large_videos["views"].tolist()
        start = time.time()
        for _ in range(10):
            rank_median(values)
        avg_time = (time.time() - start) / 10
        print(f"Rank median: {avg_time*1000:.2f}ms per iteration")
        assert avg_time < 0.2, f"Rank median too slow: {avg_time:.3f}s"

    def test_full_refresh_speed(self, large_videos, tmp_path, monkeypatch):
        """CSV -> SQLite -> views -> reports for 20k videos"""
        monkeypatch.delenv("YT_DB_FILE", raising=False)
        config = make_config(get_config(), tmp_path)
        rows = []
        for rec in large_videos.itertuples(index=False):
            rows.append([
                rec.video_id, "t", "Regular", "none", "24", "Entertainment",
                rec.published_date, _count(rec.duration_seconds),
                _count(rec.views), _count(rec.likes), _count(rec.comments),
            ])
        write_csv(config["paths"]["videos_csv"], VIDEO_HEADER, rows)
        write_csv(config["paths"]["channels_csv"], CHANNEL_HEADER, sample_channel_rows())

        start = time.time()
        reports = run_refresh(config=config, figures=False, export=False)
        elapsed = time.time() - start

        print(f"Full refresh (20k videos): {elapsed:.2f}s")
        assert len(reports["video_metrics"]) == len(large_videos)
        assert elapsed < 60, f"Refresh too slow: {elapsed:.1f}s"

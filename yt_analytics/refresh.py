#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
refresh.py
==========

Purpose
-------
Run one full data refresh of the YouTube analytics database.

What it does
------------
1) Loads config/settings.yaml (paths, ingest policy, report options).
2) Reads and types the video and channel CSVs (blank/malformed -> NULL).
3) In ONE transaction: drops views, recreates both tables, bulk-loads them,
   recreates the report views and the materialised correlation / log tables.
   Any failure rolls the whole refresh back.
4) Reads every report, writes CSV + LaTeX artefacts and dual-theme figures.

Reruns are idempotent: tables are fully replaced and every view is a pure
function of them.

CLI
---
# Full run with the paths from settings.yaml
python -m yt_analytics.refresh

# Explicit inputs, no figures, plus a view/pandas consistency check
python -m yt_analytics.refresh --videos data/video_data.csv --channels data/channel_data.csv \
    --db data/youtube_analytics.db --no-figures --selfcheck
"""
from __future__ import annotations

import argparse
import os
import sqlite3
import sys
import time
from pathlib import Path
from typing import Dict, List, Optional, Union

import pandas as pd

from yt_analytics.analysis.reports import collect_reports, export_reports, self_check
from yt_analytics.analysis.views import create_views, drop_views, materialise_reports
from yt_analytics.ingest.csv_loader import load_sources
from yt_analytics.utils.database import create_tables, get_conn, load_tables, transaction
from yt_analytics.utils.theme_manager import get_config
from yt_analytics.utils.timing import t0, tend

PathLike = Union[str, Path]


def run_refresh(
    video_csv: Optional[PathLike] = None,
    channel_csv: Optional[PathLike] = None,
    db_file: Optional[PathLike] = None,
    config: Optional[dict] = None,
    figures: bool = True,
    export: bool = True,
    selfcheck: bool = False,
) -> Dict[str, pd.DataFrame]:
    """
    Drop-load-derive-report, once.

    Parameters
    ----------
    video_csv, channel_csv : str | Path, optional
        Input CSVs; default to `paths.videos_csv` / `paths.channels_csv`.
    db_file : str | Path, optional
        SQLite file; defaults to $YT_DB_FILE, then `paths.database`.
    config : dict, optional
        Resolved settings; loaded from settings.yaml when omitted.
    figures : bool, default True
        Render dashboard figures.
    export : bool, default True
        Write CSV/LaTeX artefacts.
    selfcheck : bool, default False
        Compare SQL views with the pandas implementations; raises
        RuntimeError on any mismatch.

    Returns
    -------
    Dict[str, pd.DataFrame]
        Every report, keyed by name.
    """
    t_all = time.perf_counter()
    config = config or get_config()
    paths = config.get("paths", {})
    report_cfg = config.get("reports", {})

    video_csv = Path(video_csv or paths["videos_csv"])
    channel_csv = Path(channel_csv or paths["channels_csv"])
    # Inputs are read before the database is touched; a missing file leaves
    # the previous refresh intact.
    videos, channels = load_sources(video_csv, channel_csv, config.get("ingest", {}))

    if db_file is None:
        db_file = os.environ.get("YT_DB_FILE") or paths.get("database")

    with get_conn(db_file) as conn:
        start = t0("[LOAD] replacing tables and views (single transaction)")
        with transaction(conn):
            drop_views(conn)
            create_tables(conn)
            load_tables(conn, videos, channels)
            create_views(
                conn,
                top_n=int(report_cfg.get("top_n", 15)),
                min_views_floor=int(report_cfg.get("engagement_min_views", 1000)),
            )
            materialise_reports(conn, report_cfg.get("correlation_metrics"))
        tend("refresh.load", start)

        if selfcheck:
            results = self_check(conn)
            failed = [k for k, ok in results.items() if not ok]
            if failed:
                raise RuntimeError(f"Self-check failed for: {', '.join(failed)}")

        reports = collect_reports(conn)

    if export:
        export_reports(reports, Path(paths["data"]), Path(paths["tables"]))
    if figures:
        from yt_analytics.visualization.report_figures import render_figures
        render_figures(reports, Path(paths["figures"]), config=config)

    print(f"[TIME] refresh.run_refresh[total]: {time.perf_counter() - t_all:.2f}s")
    return reports


def _print_summary(reports: Dict[str, pd.DataFrame]) -> None:
    """Console readout of the headline reports."""
    print("\n=== REFRESH SUMMARY ===")
    print(f"Videos loaded: {len(reports['video_metrics']):,}")
    print(f"Channels loaded: {len(reports['channel_data']):,}")
    print("\nBy video type:")
    print(reports["video_type_summary"].to_string(index=False))
    kpis = reports["monthly_kpis"]
    show_n = min(6, len(kpis))
    print(f"\nLast {show_n} months:")
    if show_n:
        print(kpis.tail(show_n).to_string(index=False))
    print("\nPearson correlation:")
    print(reports["corr_pearson"].round(3).to_string())


def main(argv: Optional[List[str]] = None) -> int:
    """Command-line entrypoint; returns a process exit code."""
    p = argparse.ArgumentParser(description="Reload the YouTube analytics database and rebuild its reports.")
    p.add_argument("--videos", type=Path, default=None, help="Video CSV (default: paths.videos_csv).")
    p.add_argument("--channels", type=Path, default=None, help="Channel CSV (default: paths.channels_csv).")
    p.add_argument("--db", type=Path, default=None, help="SQLite file (default: $YT_DB_FILE, then paths.database).")
    p.add_argument("--config", type=Path, default=None, help="Settings YAML (default: config/settings.yaml).")
    p.add_argument("--no-figures", action="store_true", help="Skip dashboard figures.")
    p.add_argument("--selfcheck", action="store_true", help="Verify SQL views against pandas implementations.")
    args = p.parse_args(argv)

    print("--- Starting YouTube analytics refresh ---")
    config = get_config(args.config) if args.config else get_config()
    try:
        reports = run_refresh(
            video_csv=args.videos,
            channel_csv=args.channels,
            db_file=args.db,
            config=config,
            figures=not args.no_figures,
            selfcheck=args.selfcheck,
        )
    except (FileNotFoundError, ValueError, RuntimeError, sqlite3.Error) as e:
        print(f"ERROR: refresh aborted: {e}")
        return 1
    _print_summary(reports)
    return 0


if __name__ == "__main__":
    sys.exit(main())

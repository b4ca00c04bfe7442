# yt_analytics/utils/database.py

import os
import sqlite3
from pathlib import Path
from contextlib import contextmanager
from typing import Iterator, Optional, Union

import pandas as pd

from yt_analytics.utils.timing import t0, tend, timed

# --- Overview ---
# Single source of truth for the analytics database: where it lives, how a
# connection is opened, and the DDL for the two base tables. Views over these
# tables live in analysis/views.py.
# ---

# -----------------------------------------------------------------------------
# 1) Database path (override with env var if needed)
# -----------------------------------------------------------------------------
PROJECT_ROOT = Path(__file__).resolve().parents[2]
DEFAULT_DB_FILE = PROJECT_ROOT / "data" / "youtube_analytics.db"


def resolve_db_file(db_file: Optional[Union[str, Path]] = None) -> Path:
    """
    Pick the database file: explicit argument, then $YT_DB_FILE, then the default.

    Parameters
    ----------
    db_file : str | Path, optional
        Explicit database path (e.g. from settings.yaml or the CLI).

    Returns
    -------
    Path
        Absolute path; its parent directory is created if missing.
    """
    if db_file is None:
        db_file = os.environ.get("YT_DB_FILE", str(DEFAULT_DB_FILE))
    path = Path(db_file).resolve()
    path.parent.mkdir(parents=True, exist_ok=True)
    return path


# -----------------------------------------------------------------------------
# 2) Connection helper with safe defaults (WAL, timeouts, row factory)
# -----------------------------------------------------------------------------

def _apply_pragmas(conn: sqlite3.Connection) -> None:
    """
    Apply SQLite PRAGMAs for a single-writer batch load.

    Notes
    -----
    - WAL mode lets a BI tool keep reading while a refresh writes.
    - busy_timeout reduces 'database is locked' errors from open readers.
    """
    cur = conn.cursor()
    cur.execute("PRAGMA journal_mode=WAL;")
    cur.execute("PRAGMA synchronous=NORMAL;")
    cur.execute("PRAGMA busy_timeout=5000;")  # ms
    cur.close()


def create_connection(db_file: Optional[Union[str, Path]] = None) -> sqlite3.Connection:
    """
    Create (or open) a SQLite connection with safe defaults.

    Parameters
    ----------
    db_file : str | Path, optional
        Passed through to `resolve_db_file`.

    Returns
    -------
    sqlite3.Connection
        Open connection in manual-transaction mode.
    """
    with timed("database.create_connection"):
        path = resolve_db_file(db_file)
        # isolation_level=None: the refresh issues its own BEGIN/COMMIT so that
        # DDL and the bulk insert share one transaction.
        conn = sqlite3.connect(str(path), isolation_level=None)
        conn.row_factory = sqlite3.Row
        _apply_pragmas(conn)
        print(f"Connected to SQLite database at {path}")
    return conn


@contextmanager
def get_conn(db_file: Optional[Union[str, Path]] = None) -> Iterator[sqlite3.Connection]:
    """
    Context-managed connection, closed on exit.

    Yields
    ------
    sqlite3.Connection
    """
    conn = create_connection(db_file)
    try:
        yield conn
    finally:
        conn.close()


@contextmanager
def transaction(conn: sqlite3.Connection) -> Iterator[sqlite3.Connection]:
    """
    Run a block as one transaction: commit on normal exit, roll back on exception.

    A failed refresh therefore leaves the previous tables and views untouched.
    """
    conn.execute("BEGIN")
    try:
        yield conn
        conn.execute("COMMIT")
    except Exception:
        conn.execute("ROLLBACK")
        raise


# -----------------------------------------------------------------------------
# 3) Schema
#    - channel_data: one row per channel (playlist_id is the key)
#    - video_data: one row per video; calendar fields are generated columns
#      so they can never drift from published_date
# -----------------------------------------------------------------------------
VIDEO_TYPES = ("Short", "Regular", "Live", "Upcoming Live")
LIVE_STATUSES = ("none", "live", "upcoming")

VIDEO_COLUMNS = [
    "video_id",
    "title",
    "video_type",
    "live_status",
    "category_id",
    "category_name",
    "published_date",
    "duration_seconds",
    "views",
    "likes",
    "comments",
]

CHANNEL_COLUMNS = ["channel_name", "subscribers", "views", "total_videos", "playlist_id"]

SCHEMA_SQL = f"""
DROP TABLE IF EXISTS channel_data;
CREATE TABLE channel_data (
    channel_name    TEXT,
    subscribers     INTEGER CHECK (subscribers IS NULL OR subscribers >= 0),
    views           INTEGER CHECK (views IS NULL OR views >= 0),
    total_videos    INTEGER CHECK (total_videos IS NULL OR total_videos >= 0),
    playlist_id     TEXT PRIMARY KEY
);

DROP TABLE IF EXISTS video_data;
CREATE TABLE video_data (
    video_id          TEXT NOT NULL PRIMARY KEY,
    title             TEXT,
    video_type        TEXT CHECK (video_type IS NULL OR video_type IN {VIDEO_TYPES!r}),
    live_status       TEXT CHECK (live_status IS NULL OR live_status IN {LIVE_STATUSES!r}),
    category_id       INTEGER CHECK (category_id IS NULL OR category_id >= 0),
    category_name     TEXT,
    published_date    TEXT,                 -- 'YYYY-MM-DD HH:MM:SS' in the configured timezone
    duration_seconds  INTEGER CHECK (duration_seconds IS NULL OR duration_seconds >= 0),
    views             INTEGER CHECK (views IS NULL OR views >= 0),
    likes             INTEGER CHECK (likes IS NULL OR likes >= 0),
    comments          INTEGER CHECK (comments IS NULL OR comments >= 0),

    -- Convenient filters for BI tools
    upload_month      TEXT
        GENERATED ALWAYS AS (strftime('%Y-%m', published_date)) STORED,
    published_year    INTEGER
        GENERATED ALWAYS AS (CAST(strftime('%Y', published_date) AS INTEGER)) STORED,
    published_month   INTEGER
        GENERATED ALWAYS AS (CAST(strftime('%m', published_date) AS INTEGER)) STORED
);

-- Helpful read paths
CREATE INDEX idx_pubdate     ON video_data (published_date);
CREATE INDEX idx_views       ON video_data (views);
CREATE INDEX idx_duration    ON video_data (duration_seconds);
CREATE INDEX idx_year_month  ON video_data (published_year, published_month);
CREATE INDEX idx_month_char  ON video_data (upload_month);
CREATE INDEX idx_category    ON video_data (category_id);
CREATE INDEX idx_type        ON video_data (video_type);
"""


def create_tables(conn: sqlite3.Connection) -> None:
    """
    Drop and recreate both base tables and their indexes (full replace).

    Views that read these tables must be dropped first; see
    `analysis.views.drop_views`.
    """
    # executescript() would COMMIT the surrounding transaction, so run the
    # statements one by one.
    with timed("database.create_tables"):
        for statement in SCHEMA_SQL.split(";"):
            if statement.strip():
                conn.execute(statement)
        print("Schema ensured: channel_data, video_data (+ indexes).")


def _to_records(df: pd.DataFrame, columns) -> list:
    """DataFrame rows as plain Python tuples, with NA mapped to None."""
    out = df.reindex(columns=columns)
    # Series.tolist() yields builtin int/float/str, which sqlite3 can bind
    # (numpy scalars it cannot).
    cols = [[None if pd.isna(v) else v for v in out[c].tolist()] for c in columns]
    return list(zip(*cols)) if cols else []


def load_tables(conn: sqlite3.Connection, videos: pd.DataFrame, channels: pd.DataFrame) -> None:
    """
    Bulk insert typed video and channel frames into freshly created tables.

    Parameters
    ----------
    conn : sqlite3.Connection
        Connection inside an open transaction.
    videos, channels : pd.DataFrame
        Output of `ingest.csv_loader.load_video_csv` / `load_channel_csv`.
    """
    start = t0("[LOAD] inserting video and channel rows")
    video_rows = _to_records(videos, VIDEO_COLUMNS)
    conn.executemany(
        f"INSERT INTO video_data ({', '.join(VIDEO_COLUMNS)}) "
        f"VALUES ({', '.join('?' for _ in VIDEO_COLUMNS)})",
        video_rows,
    )
    channel_rows = _to_records(channels, CHANNEL_COLUMNS)
    conn.executemany(
        f"INSERT INTO channel_data ({', '.join(CHANNEL_COLUMNS)}) "
        f"VALUES ({', '.join('?' for _ in CHANNEL_COLUMNS)})",
        channel_rows,
    )
    print(f"Loaded {len(video_rows):,} video rows and {len(channel_rows):,} channel rows.")
    tend("database.load_tables", start)


def read_sql(conn: sqlite3.Connection, query: str, params=()) -> pd.DataFrame:
    """Run a read query and return a DataFrame."""
    return pd.read_sql_query(query, conn, params=params)

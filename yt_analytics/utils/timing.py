# -*- coding: utf-8 -*-
"""
timing.py

Purpose
-------
Shared stage timers. Every refresh stage prints a standard header when it
starts and a `[TIME] <label>: <secs>s` line when it ends, so a run log reads
the same from ingest to export.
"""

import time
from contextlib import contextmanager
from typing import Iterator


def t0(msg: str) -> float:
    """
    Start a timer and print a standardized header.

    Parameters
    ----------
    msg : str
        Message printed before timing starts.

    Returns
    -------
    float
        perf_counter() start time.
    """
    print(msg)
    return time.perf_counter()


def tend(label: str, start: float) -> float:
    """
    Stop a timer and print a standardized [TIME] line.

    Parameters
    ----------
    label : str
        Short label describing the timed block.
    start : float
        Start time from `t0`.

    Returns
    -------
    float
        Elapsed seconds.
    """
    dt = time.perf_counter() - start
    print(f"[TIME] {label}: {dt:.2f}s")
    return dt


@contextmanager
def timed(label: str) -> Iterator[None]:
    """Time a `with` block; prints only the [TIME] line."""
    start = time.perf_counter()
    try:
        yield
    finally:
        print(f"[TIME] {label}: {time.perf_counter() - start:.2f}s")

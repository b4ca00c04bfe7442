# -*- coding: utf-8 -*-
"""
academic_tables.py

Purpose
-------
Convert report DataFrames into self-contained LaTeX tables with consistent
styling, so the correlation matrix and monthly KPIs can be dropped into a
written report next to the dashboard.

Creates
-------
- One .tex file (complete \\begin{table} ... \\end{table}) per call.
"""

import os
import time
from typing import Optional

import pandas as pd


def dataframe_to_latex_table(
    df: pd.DataFrame,
    save_path: str,
    caption: str,
    label: str,
    note: Optional[str] = None,
    precision: int = 3,
    index: bool = True,
) -> str:
    """
    Write a DataFrame as a complete LaTeX table file.

    Parameters
    ----------
    df : pd.DataFrame
        Report to tabulate.
    save_path : str
        Full path for the .tex file.
    caption : str
        Caption displayed above the table.
    label : str
        LaTeX label for cross-referencing, e.g. 'tab:corr-pearson'.
    note : Optional[str], default None
        Note placed under the table.
    precision : int, default 3
        Decimal places for floats.
    index : bool, default True
        Whether the index is a meaningful first column (e.g. metric names).

    Returns
    -------
    str
        The LaTeX source that was written.

    Raises
    ------
    TypeError
        If `df` is not a pandas DataFrame.
    OSError
        If the file cannot be written.

    Notes
    -----
    Special characters are escaped and missing values are rendered as '-',
    which is how undefined correlations and null medians show up.
    """
    t0 = time.perf_counter()
    if not isinstance(df, pd.DataFrame):
        raise TypeError("Input 'df' must be a pandas DataFrame.")

    n_cols = len(df.columns) + (1 if index else 0)
    body = df.to_latex(
        index=index,
        header=True,
        float_format=f"%.{precision}f",
        column_format="l" * n_cols,
        escape=True,
        na_rep="-",
    )

    lines = [
        "\\begin{table}[htbp]",
        "\\centering",
        f"\\caption{{{caption}}}",
        f"\\label{{{label}}}",
        body,
    ]
    if note:
        lines.append("\\begin{tablenotes}[flushleft]")
        lines.append(f"\\item \\small{{{note}}}")
        lines.append("\\end{tablenotes}")
    lines.append("\\end{table}")
    latex = "\n".join(lines)

    out_dir = os.path.dirname(save_path)
    if out_dir:
        os.makedirs(out_dir, exist_ok=True)
    with open(save_path, "w", encoding="utf-8") as f:
        f.write(latex)
    print(f"✓ Artefact saved: {os.path.abspath(save_path)}")
    print(f"[TIME] academic_tables.dataframe_to_latex_table[{label}]: {time.perf_counter() - t0:.2f}s")
    return latex

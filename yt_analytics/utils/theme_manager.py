# -*- coding: utf-8 -*-
"""
theme_manager.py

Purpose
-------
Centralize configuration loading for the analytics refresh and provide a
decorator that renders any dashboard figure in both light and dark themes
with consistent palettes, DPI, and file naming.

Creates
-------
- Figures saved as <save_path>_light.png and <save_path>_dark.png (and PDFs
  if enabled in YAML).

Performance
-----------
Prints elapsed times for config loading and each themed plot render
(per-theme + total).
"""

import os
import functools
import time
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
import matplotlib

matplotlib.use("Agg")
import matplotlib.pyplot as plt  # noqa: E402


PROJECT_ROOT = Path(__file__).resolve().parents[2]
DEFAULT_CONFIG_PATH = PROJECT_ROOT / "config" / "settings.yaml"

_CONFIG_CACHE: Dict[str, Dict[str, Any]] = {}


# --- 1. Configuration Loading ---

def _project_root(config: Dict[str, Any]) -> str:
    """Absolute project root; a relative `project.root` is taken from the repo root."""
    root = Path(str(config.get("project", {}).get("root", ".")))
    if not root.is_absolute():
        root = (PROJECT_ROOT / root).resolve()
    return str(root)


def _resolve_paths(root: str, value: Any) -> Any:
    """
    Recursively resolve ${project.root} placeholders inside the config.

    Parameters
    ----------
    root : str
        Absolute project root substituted for the placeholder.
    value : Any
        A nested value (str/dict/list/other) from the config.

    Returns
    -------
    Any
        The same structure with ${project.root} expanded.
    """
    if isinstance(value, str) and "${project.root}" in value:
        return value.replace("${project.root}", root)
    if isinstance(value, dict):
        return {k: _resolve_paths(root, v) for k, v in value.items()}
    if isinstance(value, list):
        return [_resolve_paths(root, v) for v in value]
    return value


def load_config(config_path: Optional[Path] = None) -> Dict[str, Any]:
    """
    Load the master YAML config and resolve ${project.root} placeholders.

    Parameters
    ----------
    config_path : Path, optional
        Explicit settings file. Defaults to $YT_CONFIG_FILE, then
        config/settings.yaml.

    Returns
    -------
    dict
        Resolved configuration dict.

    Raises
    ------
    FileNotFoundError, yaml.YAMLError
        The refresh cannot run without configuration, so load/parse
        failures propagate after being reported.
    """
    t0 = time.perf_counter()
    if config_path is None:
        config_path = Path(os.environ.get("YT_CONFIG_FILE", str(DEFAULT_CONFIG_PATH)))
    try:
        with open(config_path, "r", encoding="utf-8") as f:
            config = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        print(f"ERROR: Failed to load or parse configuration file {config_path}: {e}")
        raise
    root = _project_root(config)
    resolved = _resolve_paths(root, config)
    resolved.setdefault("project", {})["root"] = root
    print(f"[TIME] theme_manager.load_config: {time.perf_counter() - t0:.2f}s")
    return resolved


def get_config(config_path: Optional[Path] = None) -> Dict[str, Any]:
    """Cached `load_config`, keyed by resolved settings path."""
    if config_path is None:
        config_path = Path(os.environ.get("YT_CONFIG_FILE", str(DEFAULT_CONFIG_PATH)))
    key = str(Path(config_path).resolve())
    if key not in _CONFIG_CACHE:
        _CONFIG_CACHE[key] = load_config(Path(config_path))
    return _CONFIG_CACHE[key]


# --- 2. Core Plotting Wrapper ---

def plot_dual_theme(section: str):
    """
    Decorator factory to render a plotting function in both light and dark themes.

    Parameters
    ----------
    section : str
        Palette section to use from settings.yaml ('kpis', 'correlation').

    Returns
    -------
    Callable
        A decorator that wraps a function with signature like
        `func(*args, ax=None, palette=None, **kwargs)` and expects `save_path`
        in kwargs. The wrapped call returns the list of files written.
    """
    def decorator(plot_func):
        @functools.wraps(plot_func)
        def wrapper(*args, **kwargs):
            config = kwargs.pop("config", None) or get_config()
            save_path_base = kwargs.get("save_path")
            if not save_path_base:
                raise ValueError("Plotting function must be called with 'save_path'.")

            figsize = kwargs.pop("figsize", (10, 8))
            Path(save_path_base).parent.mkdir(parents=True, exist_ok=True)
            viz = config["viz"]

            written = []
            t_all = time.perf_counter()
            for theme in ["light", "dark"]:
                t0 = time.perf_counter()
                theme_config = viz["themes"][theme]
                plt.style.use("seaborn-v0_8-whitegrid" if theme == "light" else "seaborn-v0_8-darkgrid")
                plt.rcParams.update({
                    "figure.facecolor": theme_config["facecolor"],
                    "axes.facecolor": theme_config["facecolor"],
                    "axes.labelcolor": theme_config["textcolor"],
                    "axes.edgecolor": theme_config["gridcolor"],
                    "xtick.color": theme_config["textcolor"],
                    "ytick.color": theme_config["textcolor"],
                    "text.color": theme_config["textcolor"],
                    "grid.color": theme_config["gridcolor"],
                    "legend.facecolor": theme_config["facecolor"],
                    "legend.edgecolor": theme_config["gridcolor"],
                })

                fig, ax = plt.subplots(figsize=figsize)
                palette = viz["palettes"]["sections"][section][theme]
                try:
                    plot_func(*args, ax=ax, palette=palette, **kwargs)
                    ax.title.set_color(theme_config["textcolor"])
                    plt.tight_layout()

                    if viz.get("save_png", True):
                        out_png = f"{save_path_base}_{theme}.png"
                        fig.savefig(out_png, dpi=viz.get("dpi", 200), bbox_inches="tight")
                        written.append(out_png)
                        print(f"✓ Artefact saved: {Path(out_png).resolve()}")

                    if viz.get("save_pdf", False):
                        out_pdf = f"{save_path_base}_{theme}.pdf"
                        fig.savefig(out_pdf, bbox_inches="tight")
                        written.append(out_pdf)
                        print(f"✓ Artefact saved: {Path(out_pdf).resolve()}")
                finally:
                    plt.close(fig)
                print(f"[TIME] plot_dual_theme[{theme}] {plot_func.__name__}: {time.perf_counter() - t0:.2f}s")

            print(f"[TIME] plot_dual_theme[total] {plot_func.__name__}: {time.perf_counter() - t_all:.2f}s")
            return written
        return wrapper
    return decorator

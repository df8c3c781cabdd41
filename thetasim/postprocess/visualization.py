# thetasim/postprocess/visualization.py
"""
Lightweight plotting helpers for trajectory output.
"""

from __future__ import annotations

from typing import Tuple

import numpy as np
import pandas as pd
import matplotlib.pyplot as plt

from thetasim.geometry.builder import UniformGrid

__all__ = ["plot_history", "plot_field"]


def plot_history(
    history: pd.DataFrame,
    *,
    ax: plt.Axes | None = None,
    title: str | None = "Solution history",
) -> Tuple[plt.Figure, plt.Axes]:
    """
    Plot min/max/mean of u over time.

    Parameters
    ----------
    history : DataFrame
        Columns t, u_min, u_max, u_mean (see io.results.history_frame).
    ax : matplotlib Axes, optional
        If provided, plot into this axes; otherwise create a new figure.
    title : str, optional

    Returns
    -------
    fig, ax : matplotlib Figure and Axes
    """
    if ax is None:
        fig, ax = plt.subplots(figsize=(6.0, 3.2), constrained_layout=True)
    else:
        fig = ax.figure

    t = history["t"].to_numpy()
    ax.fill_between(t, history["u_min"], history["u_max"], alpha=0.25, label="min–max")
    ax.plot(t, history["u_mean"], linewidth=1.6, label="mean")

    ax.set_xlabel("t")
    ax.set_ylabel("u")
    if title:
        ax.set_title(title)
    ax.grid(True, which="both", linestyle=":", linewidth=0.6)
    ax.legend(frameon=False, loc="best")
    return fig, ax


def plot_field(
    grid: UniformGrid,
    field: np.ndarray,
    *,
    ax: plt.Axes | None = None,
    title: str | None = None,
) -> Tuple[plt.Figure, plt.Axes]:
    """Nodal field (boundary included): line plot in 1-D, colour map in 2-D."""
    field = np.asarray(field, dtype=np.float64)
    if ax is None:
        fig, ax = plt.subplots(figsize=(4.8, 4.0), constrained_layout=True)
    else:
        fig = ax.figure

    axes = grid.axes()
    if grid.dim == 1:
        ax.plot(axes[0], field, linewidth=1.6)
        ax.set_xlabel("x")
        ax.set_ylabel("u")
        ax.grid(True, linestyle=":", linewidth=0.6)
    else:
        X, Y = np.meshgrid(axes[0], axes[1])
        cs = ax.pcolormesh(X, Y, field, shading="auto")
        fig.colorbar(cs, ax=ax, label="u")
        ax.set_xlabel("x")
        ax.set_ylabel("y")
        ax.set_aspect("equal")
    if title:
        ax.set_title(title)
    return fig, ax

# thetasim/geometry/builder.py
"""
Uniform node-centered grids on [0, Lx] or [0, Lx] x [0, Ly].

- Boundary nodes carry Dirichlet data; interior nodes are the unknowns.
- Interior unknowns are numbered x-fastest (row-major over (y, x)).

Public API (stable):
    UniformGrid
    build_grid(lengths, cells) -> UniformGrid
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Sequence, Tuple
import numpy as np

__all__ = ["UniformGrid", "build_grid"]


@dataclass(frozen=True)
class UniformGrid:
    """
    lengths: domain extent per axis
    cells:   number of cells per axis (nodes = cells + 1)
    """
    lengths: Tuple[float, ...]
    cells: Tuple[int, ...]

    def __post_init__(self) -> None:
        if len(self.lengths) != len(self.cells) or len(self.cells) not in (1, 2):
            raise ValueError("UniformGrid supports 1-D or 2-D (lengths and cells must match)")
        if any(c < 2 for c in self.cells):
            raise ValueError("need at least 2 cells per axis (one interior node)")
        if any(L <= 0.0 for L in self.lengths):
            raise ValueError("lengths must be positive")

    @property
    def dim(self) -> int:
        return len(self.cells)

    @property
    def h(self) -> Tuple[float, ...]:
        return tuple(float(L) / int(c) for L, c in zip(self.lengths, self.cells))

    @property
    def interior_shape(self) -> Tuple[int, ...]:
        # (ny-1, nx-1) in 2-D so that reshape matches x-fastest numbering
        return tuple(int(c) - 1 for c in reversed(self.cells))

    @property
    def n_interior(self) -> int:
        return int(np.prod(self.interior_shape))

    def axes(self) -> Tuple[np.ndarray, ...]:
        """Node coordinates per axis, boundary nodes included."""
        return tuple(np.linspace(0.0, float(L), int(c) + 1) for L, c in zip(self.lengths, self.cells))

    def node_shape(self) -> Tuple[int, ...]:
        return tuple(int(c) + 1 for c in reversed(self.cells))


def build_grid(lengths: Sequence[float], cells: Sequence[int]) -> UniformGrid:
    return UniformGrid(tuple(float(L) for L in lengths), tuple(int(c) for c in cells))

# -*- coding: utf-8 -*-
"""
SystemSnapshot: the (M, A, b) triple of a semi-discrete system at one time.

Fields:
  - M: mass matrix, n x n (ndarray or scipy.sparse)
  - A: stiffness/operator matrix, n x n (ndarray or scipy.sparse)
  - b: forcing vector, length n

Scalars are promoted to 1 x 1 matrices / length-1 vectors so that scalar
ODEs can be written as SystemSnapshot(1.0, lam, 0.0).
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

import numpy as np
from scipy import sparse

from ..errors import AssemblyError

__all__ = ["SystemSnapshot"]


def _as_matrix(x: Any) -> Any:
    if sparse.issparse(x):
        return x
    return np.atleast_2d(np.asarray(x, dtype=np.float64))


@dataclass(frozen=True)
class SystemSnapshot:
    M: Any
    A: Any
    b: np.ndarray

    def __post_init__(self) -> None:
        object.__setattr__(self, "M", _as_matrix(self.M))
        object.__setattr__(self, "A", _as_matrix(self.A))
        object.__setattr__(self, "b", np.atleast_1d(np.asarray(self.b, dtype=np.float64)))

    @property
    def n(self) -> int:
        return int(self.b.shape[0])

    def check(self, n: int, t: Optional[float] = None) -> None:
        """Raise AssemblyError unless M, A are finite n x n and b is finite of length n."""
        for name, mat in (("M", self.M), ("A", self.A)):
            if mat.shape != (n, n):
                raise AssemblyError(
                    f"{name} has shape {mat.shape}, expected ({n}, {n})", t=t
                )
            values = mat.tocoo().data if sparse.issparse(mat) else mat
            if not np.all(np.isfinite(values)):
                raise AssemblyError(f"{name} has non-finite entries", t=t)
        if self.b.shape != (n,):
            raise AssemblyError(f"b has shape {self.b.shape}, expected ({n},)", t=t)
        if not np.all(np.isfinite(self.b)):
            raise AssemblyError("b has non-finite entries", t=t)

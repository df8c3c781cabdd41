# -*- coding: utf-8 -*-
"""
Linear solver backends (dense LU, sparse LU, tridiagonal Thomas).
Keep the API tiny: every backend is solve(K, rhs) -> u and raises
SingularSystemError when K cannot be factorized.
"""
from __future__ import annotations

from typing import Any, Callable, Dict

import numpy as np
from scipy import sparse
from scipy.sparse import linalg as spla

from thetasim.errors import SingularSystemError

__all__ = [
    "solve_linear", "solve_dense", "solve_sparse", "solve_tridiagonal",
    "thomas", "get_solver", "SOLVERS",
]

LinearSolver = Callable[[Any, np.ndarray], np.ndarray]


def _checked(x: np.ndarray) -> np.ndarray:
    if not np.all(np.isfinite(x)):
        raise SingularSystemError("linear solve produced non-finite values")
    return x


def solve_dense(K: Any, rhs: np.ndarray) -> np.ndarray:
    """LU factorize-and-solve on a dense copy of K."""
    if sparse.issparse(K):
        K = K.toarray()
    try:
        x = np.linalg.solve(np.asarray(K, dtype=np.float64), np.asarray(rhs, dtype=np.float64))
    except np.linalg.LinAlgError as exc:
        raise SingularSystemError(f"dense LU failed: {exc}") from exc
    return _checked(x)


def solve_sparse(K: Any, rhs: np.ndarray) -> np.ndarray:
    """SuperLU factorize-and-solve; K is converted to CSC."""
    Kc = sparse.csc_matrix(K, dtype=np.float64)
    try:
        lu = spla.splu(Kc)
    except RuntimeError as exc:
        # SuperLU reports "Factor is exactly singular" as RuntimeError
        raise SingularSystemError(f"sparse LU failed: {exc}") from exc
    return _checked(lu.solve(np.asarray(rhs, dtype=np.float64)))


def thomas(a: np.ndarray, b: np.ndarray, c: np.ndarray, d: np.ndarray) -> np.ndarray:
    """Solve tridiagonal system Ax=d, where A has subdiag a, diag b, superdiag c.

    a[0] and c[-1] are ignored. Works on copies (Thomas algorithm), O(N).
    """
    n = b.size
    ac = np.asarray(a, dtype=np.float64).copy()
    bc = np.asarray(b, dtype=np.float64).copy()
    cc = np.asarray(c, dtype=np.float64).copy()
    dc = np.asarray(d, dtype=np.float64).copy()

    # Forward elimination
    for i in range(1, n):
        if bc[i - 1] == 0.0:
            raise SingularSystemError("zero pivot in tridiagonal solve")
        m = ac[i] / bc[i - 1]
        bc[i] -= m * cc[i - 1]
        dc[i] -= m * dc[i - 1]

    # Back substitution
    x = np.zeros_like(dc)
    if bc[-1] == 0.0:
        raise SingularSystemError("zero pivot in tridiagonal solve (last row)")
    x[-1] = dc[-1] / bc[-1]
    for i in range(n - 2, -1, -1):
        x[i] = (dc[i] - cc[i] * x[i + 1]) / bc[i]
    return _checked(x)


def solve_tridiagonal(K: Any, rhs: np.ndarray) -> np.ndarray:
    """Thomas solve using the three central diagonals of K (off-band entries are ignored)."""
    if not sparse.issparse(K):
        K = sparse.csr_matrix(np.atleast_2d(np.asarray(K, dtype=np.float64)))
    n = K.shape[0]
    b = np.asarray(K.diagonal(0), dtype=np.float64)
    a = np.zeros(n)
    c = np.zeros(n)
    if n > 1:
        a[1:] = K.diagonal(-1)
        c[:-1] = K.diagonal(1)
    return thomas(a, b, c, np.asarray(rhs, dtype=np.float64))


def solve_linear(K: Any, rhs: np.ndarray) -> np.ndarray:
    """Default backend: sparse LU for sparse K, dense LU otherwise."""
    if sparse.issparse(K):
        return solve_sparse(K, rhs)
    return solve_dense(K, rhs)


SOLVERS: Dict[str, LinearSolver] = {
    "lu": solve_linear,
    "dense": solve_dense,
    "sparse": solve_sparse,
    "thomas": solve_tridiagonal,
}


def get_solver(name: str) -> LinearSolver:
    try:
        return SOLVERS[str(name).lower()]
    except KeyError:
        raise ValueError(f"Unknown linear solver '{name}' (choose from {sorted(SOLVERS)})") from None

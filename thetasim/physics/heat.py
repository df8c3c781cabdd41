# -*- coding: utf-8 -*-
r"""
Transient heat equation on a uniform grid.

Strong form:
  ∂u/∂t - κ(t) Δu = f(t)   in Ω = (0, Lx) [x (0, Ly)]
  u = g(t)                 on ∂Ω

Finite differences (3-/5-point stencil) over the interior nodes give the
semi-discrete system M u' + A(t) u = b(t) with

  M    = I
  A(t) = κ(t) L,                      L = discrete -Δ
  b(t) = f(t) 1 + κ(t) g(t) (L 1)     (L 1 is nonzero only next to ∂Ω)

The default coefficients are the classic tutorial ones:
  κ(t) = 1 + 0.95 sin(2π t),  f(t) = sin(π t),  g = 0,  u(x, 0) = 0.
"""
from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Callable, Optional

import numpy as np
from scipy import sparse

from thetasim.boundaries.thermal import DirichletBC
from thetasim.geometry.builder import UniformGrid
from thetasim.models.operators import AffineOperator, build_operator
from thetasim.models.snapshot import SystemSnapshot

__all__ = ["HeatCoefficients", "tutorial_coefficients", "HeatProblem", "laplacian"]


@dataclass
class HeatCoefficients:
    kappa: Callable[[float], float]
    source: Callable[[float], float]


def tutorial_coefficients(
    kappa0: float = 1.0,
    kappa_amp: float = 0.95,
    kappa_freq: float = 1.0,
    source_amp: float = 1.0,
    source_freq: float = 0.5,
) -> HeatCoefficients:
    """κ(t) = κ0 + a sin(2π ν_κ t), f(t) = s sin(2π ν_f t)."""
    def kappa(t: float) -> float:
        return kappa0 + kappa_amp * math.sin(2.0 * math.pi * kappa_freq * t)

    def source(t: float) -> float:
        return source_amp * math.sin(2.0 * math.pi * source_freq * t)

    return HeatCoefficients(kappa=kappa, source=source)


def _second_difference(m: int, h: float) -> sparse.csr_matrix:
    return sparse.diags([-1.0, 2.0, -1.0], [-1, 0, 1], shape=(m, m), format="csr") / (h * h)


def laplacian(grid: UniformGrid) -> sparse.csr_matrix:
    """Discrete -Δ on interior nodes (x-fastest numbering), SPD."""
    if grid.dim == 1:
        (m,) = grid.interior_shape
        return _second_difference(m, grid.h[0])
    my, mx = grid.interior_shape
    hx, hy = grid.h
    Tx = _second_difference(mx, hx)
    Ty = _second_difference(my, hy)
    L = sparse.kron(sparse.identity(my), Tx) + sparse.kron(Ty, sparse.identity(mx))
    return sparse.csr_matrix(L)


@dataclass
class HeatProblem:
    grid: UniformGrid
    coeffs: HeatCoefficients = field(default_factory=tutorial_coefficients)
    bc: DirichletBC = field(default_factory=lambda: DirichletBC.constant(0.0))
    _L: Optional[sparse.csr_matrix] = field(default=None, init=False, repr=False)
    _lift: Optional[np.ndarray] = field(default=None, init=False, repr=False)

    @property
    def n(self) -> int:
        return self.grid.n_interior

    def laplacian(self) -> sparse.csr_matrix:
        if self._L is None:
            self._L = laplacian(self.grid)
            self._lift = np.asarray(self._L @ np.ones(self.n)).ravel()
        return self._L

    def mass(self, t: float = 0.0) -> sparse.csr_matrix:
        return sparse.identity(self.n, format="csr")

    def stiffness(self, t: float) -> sparse.csr_matrix:
        return float(self.coeffs.kappa(t)) * self.laplacian()

    def forcing(self, t: float) -> np.ndarray:
        self.laplacian()
        f = np.full(self.n, float(self.coeffs.source(t)))
        g = self.bc(t)
        if g != 0.0:
            f += float(self.coeffs.kappa(t)) * g * self._lift
        return f

    def assemble(self, t: float) -> SystemSnapshot:
        return SystemSnapshot(self.mass(t), self.stiffness(t), self.forcing(t))

    def operator(self, kind: str = "affine", t_ref: float = 0.0) -> AffineOperator:
        return build_operator(kind, self.mass, self.stiffness, self.forcing, t_ref=t_ref)

    def initial_state(self, value: float = 0.0) -> np.ndarray:
        return np.full(self.n, float(value))

    def full_field(self, u: np.ndarray, t: float) -> np.ndarray:
        """Interior vector -> nodal field with boundary values g(t) filled in."""
        out = np.full(self.grid.node_shape(), self.bc(t), dtype=np.float64)
        interior = np.asarray(u, dtype=np.float64).reshape(self.grid.interior_shape)
        if self.grid.dim == 1:
            out[1:-1] = interior
        else:
            out[1:-1, 1:-1] = interior
        return out

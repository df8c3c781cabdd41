# -*- coding: utf-8 -*-
"""
Transient affine operators: mass m(t), stiffness a(t) and forcing b(t)
packed into an assemble(t) -> SystemSnapshot callback.

Variants:
  - affine:          everything re-evaluated at every t
  - constant_matrix: m, a evaluated once at t_ref; b(t) re-evaluated
  - constant:        m, a, b all evaluated once at t_ref
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Literal, Optional

import numpy as np

from .snapshot import SystemSnapshot

__all__ = [
    "AffineOperator", "ConstantMatrixOperator", "ConstantOperator",
    "OperatorKind", "build_operator",
]

OperatorKind = Literal["affine", "constant_matrix", "constant"]
MatrixFn = Callable[[float], Any]
VectorFn = Callable[[float], np.ndarray]


@dataclass
class AffineOperator:
    mass: MatrixFn
    stiffness: MatrixFn
    forcing: VectorFn

    def __call__(self, t: float) -> SystemSnapshot:
        return SystemSnapshot(self.mass(t), self.stiffness(t), self.forcing(t))


@dataclass
class ConstantMatrixOperator(AffineOperator):
    t_ref: float = 0.0
    _M: Any = field(default=None, init=False, repr=False)
    _A: Any = field(default=None, init=False, repr=False)

    def __call__(self, t: float) -> SystemSnapshot:
        if self._M is None:
            self._M = self.mass(self.t_ref)
            self._A = self.stiffness(self.t_ref)
        return SystemSnapshot(self._M, self._A, self.forcing(t))


@dataclass
class ConstantOperator(AffineOperator):
    t_ref: float = 0.0
    _snap: Optional[SystemSnapshot] = field(default=None, init=False, repr=False)

    def __call__(self, t: float) -> SystemSnapshot:
        if self._snap is None:
            self._snap = SystemSnapshot(
                self.mass(self.t_ref), self.stiffness(self.t_ref), self.forcing(self.t_ref)
            )
        return self._snap


def build_operator(
    kind: str,
    mass: MatrixFn,
    stiffness: MatrixFn,
    forcing: VectorFn,
    t_ref: float = 0.0,
) -> AffineOperator:
    kind = str(kind).lower()
    if kind == "affine":
        return AffineOperator(mass, stiffness, forcing)
    if kind == "constant_matrix":
        return ConstantMatrixOperator(mass, stiffness, forcing, t_ref=float(t_ref))
    if kind == "constant":
        return ConstantOperator(mass, stiffness, forcing, t_ref=float(t_ref))
    raise ValueError(f"Unknown operator kind '{kind}' (affine, constant_matrix, constant)")

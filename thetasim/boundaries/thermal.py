# -*- coding: utf-8 -*-
"""
Thermal boundary conditions.

Types:
  - Dirichlet: u = g(t) on the whole boundary (spatially constant)
"""
from __future__ import annotations
from dataclasses import dataclass
from typing import Callable

@dataclass
class DirichletBC:
    value: Callable[[float], float]

    @classmethod
    def constant(cls, g: float) -> "DirichletBC":
        g = float(g)
        return cls(value=lambda t: g)

    def __call__(self, t: float) -> float:
        return float(self.value(t))

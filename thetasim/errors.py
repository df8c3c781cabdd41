# -*- coding: utf-8 -*-
"""
Exception types raised by the integrator and its collaborators.
"""
from __future__ import annotations

from typing import Optional


class ThetaSimError(Exception):
    """Base class for all thetasim errors."""


class InvalidConfigError(ThetaSimError, ValueError):
    """Bad dt / theta / time range, detected before the first step."""


class SingularSystemError(ThetaSimError):
    """Per-step linear solve failed. `t` is the evaluation time t_θ."""

    def __init__(self, message: str, t: Optional[float] = None):
        super().__init__(message)
        self.t = t

    def __str__(self) -> str:
        msg = super().__str__()
        if self.t is None:
            return msg
        return f"{msg} (t={self.t:.6g})"


class AssemblyError(ThetaSimError):
    """assemble(t) returned a snapshot that does not fit the state."""

    def __init__(self, message: str, t: Optional[float] = None):
        super().__init__(message)
        self.t = t


class ConvergenceError(ThetaSimError):
    """Nonlinear correction did not converge within max_iters."""

    def __init__(self, message: str, t: Optional[float] = None, iters: Optional[int] = None):
        super().__init__(message)
        self.t = t
        self.iters = iters

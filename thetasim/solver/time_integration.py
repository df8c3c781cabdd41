# -*- coding: utf-8 -*-
"""
Theta-method time integration for semi-discrete systems

    M(t) u'(t) + A(t) u(t) = b(t)

One step from (t_n, u_n) with step size h, at t_θ = t_n + θ h:

    (M/h + θ A) u_{n+1} = b + (M/h) u_n - (1-θ) A u_n,   (M, A, b) = assemble(t_θ)

θ = 1 is backward Euler, θ = 0.5 Crank–Nicolson, θ = 0 forward Euler.

Time grid: n_steps = ceil((t_final - t0)/dt) with t_k = t0 + k dt. The last
step is shortened so the final time is exactly t_final (never overshoots).
A ratio within a few ulps of an integer counts as that integer, so the last
interval may exceed dt by round-off only.

The result is a lazy Trajectory: each (t, u) pair is computed when the consumer
asks for it; stopping early is fine and leaves nothing to clean up.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from functools import partial
from typing import Any, Callable, Literal, Optional, Tuple

import numpy as np
from scipy import sparse

from thetasim.errors import (
    AssemblyError,
    ConvergenceError,
    InvalidConfigError,
    SingularSystemError,
)
from thetasim.models.snapshot import SystemSnapshot
from thetasim.solver.linear import LinearSolver, solve_linear
from thetasim.utils import diagnostics as diag

__all__ = [
    "IntegratorConfig", "PicardOptions", "Trajectory", "ThetaMethodIntegrator",
    "integrate", "integrate_nonlinear", "collect", "final_state",
]

# ratios (t_final - t0)/dt this close to an integer count as that integer
STEP_RTOL = 4.0 * np.finfo(np.float64).eps

TrajectoryState = Literal["NotStarted", "Stepping", "Finished"]
StepFn = Callable[[float, float, np.ndarray], Tuple[np.ndarray, Optional[int]]]


@dataclass(frozen=True)
class IntegratorConfig:
    dt: float
    theta: float
    t0: float
    t_final: float

    def validate(self) -> "IntegratorConfig":
        values = dict(dt=self.dt, theta=self.theta, t0=self.t0, t_final=self.t_final)
        for key, val in values.items():
            try:
                ok = math.isfinite(float(val))
            except (TypeError, ValueError):
                ok = False
            if not ok:
                raise InvalidConfigError(f"{key} must be a finite real (got {val!r})")
        if self.dt <= 0.0:
            raise InvalidConfigError(f"dt must be > 0 (got {self.dt})")
        if not 0.0 <= self.theta <= 1.0:
            raise InvalidConfigError(f"theta must lie in [0, 1] (got {self.theta})")
        if self.t0 >= self.t_final:
            raise InvalidConfigError(f"t0 must be < t_final (got t0={self.t0}, t_final={self.t_final})")
        if float(self.t0) + float(self.dt) == float(self.t0) or not np.all(np.diff(self.times()) > 0.0):
            raise InvalidConfigError(
                f"dt={self.dt} is below the float resolution of the time grid near t0={self.t0}"
            )
        return self

    @property
    def n_steps(self) -> int:
        ratio = (float(self.t_final) - float(self.t0)) / float(self.dt)
        k = round(ratio)
        if k >= 1 and math.isclose(ratio, k, rel_tol=STEP_RTOL, abs_tol=0.0):
            return int(k)
        return max(1, int(math.ceil(ratio)))

    def times(self) -> np.ndarray:
        """All n_steps + 1 grid times; the last one is exactly t_final."""
        n = self.n_steps
        t = float(self.t0) + float(self.dt) * np.arange(n + 1, dtype=np.float64)
        t[-1] = float(self.t_final)
        return t


@dataclass
class PicardOptions:
    atol: float = 1e-10
    rtol: float = 1e-8
    max_iters: int = 50


# ---- single step --------------------------------------------------------------


def _as_state(u0: Any) -> np.ndarray:
    return np.atleast_1d(np.asarray(u0, dtype=np.float64)).copy()


def _assemble_checked(assemble: Callable[..., Any], t: float, n: int, *args: Any) -> SystemSnapshot:
    snap = assemble(t, *args)
    if not isinstance(snap, SystemSnapshot):
        try:
            M, A, b = snap
        except (TypeError, ValueError):
            raise AssemblyError(
                f"assemble returned {type(snap).__name__}, expected SystemSnapshot or (M, A, b)",
                t=t,
            ) from None
        try:
            snap = SystemSnapshot(M, A, b)
        except (TypeError, ValueError) as exc:
            raise AssemblyError(f"assemble returned non-numeric data: {exc}", t=t) from exc
    snap.check(n, t=t)
    return snap


def _combine(M: Any, A: Any, cm: float, ca: float) -> Any:
    """cm*M + ca*A, staying sparse if either operand is sparse."""
    if sparse.issparse(M) or sparse.issparse(A):
        return (sparse.csr_matrix(M) * cm + sparse.csr_matrix(A) * ca).tocsr()
    return cm * M + ca * A


def _theta_solve(
    snap: SystemSnapshot,
    u_n: np.ndarray,
    h: float,
    theta: float,
    solve: LinearSolver,
    t_theta: float,
) -> np.ndarray:
    M, A, b = snap.M, snap.A, snap.b
    K = _combine(M, A, 1.0 / h, theta)
    rhs = b + np.asarray(M @ u_n).ravel() / h
    if theta < 1.0:
        rhs -= (1.0 - theta) * np.asarray(A @ u_n).ravel()

    try:
        u = solve(K, rhs)
    except SingularSystemError as exc:
        raise SingularSystemError(str(exc.args[0]) if exc.args else "singular system", t=t_theta) from exc
    except np.linalg.LinAlgError as exc:
        raise SingularSystemError(f"linear solve failed: {exc}", t=t_theta) from exc

    u = np.asarray(u, dtype=np.float64).ravel()
    if u.shape != u_n.shape:
        raise SingularSystemError(f"solver returned shape {u.shape}, expected {u_n.shape}", t=t_theta)
    if not np.all(np.isfinite(u)):
        raise SingularSystemError("linear solve produced non-finite values", t=t_theta)
    return u


def _linear_step(
    t_n: float,
    h: float,
    u_n: np.ndarray,
    *,
    assemble: Callable[[float], Any],
    solve: LinearSolver,
    theta: float,
) -> Tuple[np.ndarray, Optional[int]]:
    t_theta = t_n + theta * h
    snap = _assemble_checked(assemble, t_theta, u_n.size)
    return _theta_solve(snap, u_n, h, theta, solve, t_theta), None


def _picard_step(
    t_n: float,
    h: float,
    u_n: np.ndarray,
    *,
    assemble: Callable[[float, np.ndarray], Any],
    solve: LinearSolver,
    theta: float,
    options: PicardOptions,
    debug: bool,
) -> Tuple[np.ndarray, Optional[int]]:
    """Fixed-point correction: re-assemble at u_θ until the update stalls."""
    t_theta = t_n + theta * h
    u_guess = u_n
    du_inf = float("inf")
    for it in range(1, int(options.max_iters) + 1):
        u_theta = theta * u_guess + (1.0 - theta) * u_n
        snap = _assemble_checked(assemble, t_theta, u_n.size, u_theta)
        u_new = _theta_solve(snap, u_n, h, theta, solve, t_theta)

        du_inf = float(np.linalg.norm(u_new - u_guess, ord=np.inf))
        tol = float(options.atol) + float(options.rtol) * float(np.linalg.norm(u_new, ord=np.inf))
        if debug:
            diag.log_picard_iter(it=it, t=t_theta, du_inf=du_inf, tol=tol)
        u_guess = u_new
        if du_inf <= tol:
            return u_new, it

    raise ConvergenceError(
        f"Picard iteration did not converge after {options.max_iters} iterations "
        f"(||Δu||_inf={du_inf:.3e})",
        t=t_theta,
        iters=int(options.max_iters),
    )


# ---- trajectory ---------------------------------------------------------------


class Trajectory:
    """Lazy, single-pass sequence of (t, u) pairs after the initial state.

    NotStarted -> Stepping -> Finished. Any error raised by a step finishes the
    trajectory; `last` keeps the last committed pair.
    """

    def __init__(self, u0: np.ndarray, config: IntegratorConfig, step: StepFn, *, debug: bool = False):
        self.config = config
        self.debug = debug
        self._step = step
        self._times = config.times()
        self._k = 0
        self._state: TrajectoryState = "NotStarted"
        self._last: Tuple[float, np.ndarray] = (float(config.t0), u0)

    @property
    def state(self) -> TrajectoryState:
        return self._state

    @property
    def n_steps(self) -> int:
        return self._times.size - 1

    @property
    def steps_taken(self) -> int:
        return self._k

    @property
    def last(self) -> Tuple[float, np.ndarray]:
        t, u = self._last
        return t, u.copy()

    def __iter__(self) -> "Trajectory":
        return self

    def __next__(self) -> Tuple[float, np.ndarray]:
        if self._state == "Finished":
            raise StopIteration
        t_n, u_n = self._last
        if self._state == "NotStarted":
            self._state = "Stepping"
            if self.debug:
                diag.log_run_start(
                    n=u_n.size, t0=t_n, t_final=float(self.config.t_final),
                    dt=float(self.config.dt), theta=float(self.config.theta),
                    n_steps=self.n_steps,
                )

        t_next = float(self._times[self._k + 1])
        h = t_next - t_n
        try:
            u_next, iters = self._step(t_n, h, u_n)
        except Exception:
            self._state = "Finished"
            if self.debug:
                diag.log_state_summary(u=u_n, t=t_n, prefix="[θ] last committed")
                diag.log_run_summary(steps=self._k, t=t_n, u=u_n, finished=False)
            raise

        self._k += 1
        self._last = (t_next, u_next)
        if self.debug:
            diag.log_step(step=self._k, t=t_next, dt=h, u=u_next, iters=iters)
        if self._k == self.n_steps:
            self._state = "Finished"
            if self.debug:
                diag.log_run_summary(steps=self._k, t=t_next, u=u_next, finished=True)
        return t_next, u_next.copy()


# ---- entry points -------------------------------------------------------------


def integrate(
    u0: Any,
    t0: float,
    t_final: float,
    dt: float,
    theta: float,
    assemble: Callable[[float], Any],
    solve: LinearSolver = solve_linear,
    *,
    debug: bool = False,
) -> Trajectory:
    """Theta-method trajectory for M u' + A u = b with assemble(t) -> (M, A, b).

    Raises InvalidConfigError immediately for a bad dt/theta/time range; all
    other errors surface while iterating.
    """
    config = IntegratorConfig(dt=dt, theta=theta, t0=t0, t_final=t_final).validate()
    step = partial(_linear_step, assemble=assemble, solve=solve, theta=float(theta))
    return Trajectory(_as_state(u0), config, step, debug=debug)


def integrate_nonlinear(
    u0: Any,
    t0: float,
    t_final: float,
    dt: float,
    theta: float,
    assemble: Callable[[float, np.ndarray], Any],
    solve: LinearSolver = solve_linear,
    options: Optional[PicardOptions] = None,
    *,
    debug: bool = False,
) -> Trajectory:
    """Like integrate, but assemble(t, u) may depend on the unknown.

    Each step re-assembles at u_θ = θ u_{n+1} + (1-θ) u_n (Picard iteration).
    """
    config = IntegratorConfig(dt=dt, theta=theta, t0=t0, t_final=t_final).validate()
    opts = options or PicardOptions()
    if opts.max_iters < 1:
        raise InvalidConfigError(f"max_iters must be >= 1 (got {opts.max_iters})")
    step = partial(
        _picard_step, assemble=assemble, solve=solve, theta=float(theta),
        options=opts, debug=debug,
    )
    return Trajectory(_as_state(u0), config, step, debug=debug)


@dataclass
class ThetaMethodIntegrator:
    """Linear solver + fixed dt + θ, applied to any assemble callback."""

    linear_solver: LinearSolver = solve_linear
    dt: float = 0.05
    theta: float = 0.5
    debug: bool = False

    def __post_init__(self) -> None:
        if not callable(self.linear_solver):
            raise InvalidConfigError("linear_solver must be callable")
        IntegratorConfig(dt=self.dt, theta=self.theta, t0=0.0, t_final=1.0).validate()

    def solve(self, assemble: Callable[[float], Any], u0: Any, t0: float, t_final: float) -> Trajectory:
        return integrate(
            u0, t0, t_final, self.dt, self.theta, assemble, self.linear_solver, debug=self.debug
        )

    def solve_nonlinear(
        self,
        assemble: Callable[[float, np.ndarray], Any],
        u0: Any,
        t0: float,
        t_final: float,
        options: Optional[PicardOptions] = None,
    ) -> Trajectory:
        return integrate_nonlinear(
            u0, t0, t_final, self.dt, self.theta, assemble, self.linear_solver, options,
            debug=self.debug,
        )


def collect(trajectory: Trajectory, every: int = 1) -> Tuple[np.ndarray, np.ndarray]:
    """Drain a trajectory into (times, states) arrays.

    The pair current at call time (the initial state for a fresh trajectory) is
    included, then every `every`-th step; the final step is always kept.
    """
    every = max(1, int(every))
    t, u = trajectory.last
    times = [t]
    states = [u]
    for t, u in trajectory:
        if trajectory.steps_taken % every == 0 or trajectory.state == "Finished":
            times.append(t)
            states.append(u)
    return np.asarray(times, dtype=np.float64), np.vstack(states)


def final_state(trajectory: Trajectory) -> Tuple[float, np.ndarray]:
    for _ in trajectory:
        pass
    return trajectory.last

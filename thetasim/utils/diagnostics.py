"""
thetasim/utils/diagnostics.py

Targeted, low-noise diagnostics for time-stepping runs.
Import and call these from the integrator/workflows when debug=True.
"""

from __future__ import annotations

from typing import Optional

import numpy as np


def _fmt_range(x: np.ndarray, name: str) -> str:
    if x.size == 0:
        return f"{name}: (empty)"
    return f"{name}∈[{np.min(x):+.3e},{np.max(x):+.3e}]"


def log_state_summary(
    *,
    u: np.ndarray,
    t: Optional[float] = None,
    resid: Optional[np.ndarray] = None,
    prefix: str = "[diag]",
) -> None:
    """Print compact ranges for the state vector."""
    msg = [prefix]
    if t is not None:
        msg.append(f"t={t:.6g}")
    msg.append(_fmt_range(u, "u"))
    if resid is not None:
        msg.append(f"||res||_inf={float(np.linalg.norm(resid, ord=np.inf)):.3e}")
    print(" | ".join(msg))


def log_run_start(
    *,
    n: int,
    t0: float,
    t_final: float,
    dt: float,
    theta: float,
    n_steps: int,
    prefix: str = "[θ]",
) -> None:
    print(
        f"{prefix} start | n={n} | t∈[{t0:g},{t_final:g}] | dt={dt:.3e} | "
        f"θ={theta:g} | steps={n_steps}"
    )


def log_step(
    *,
    step: int,
    t: float,
    dt: float,
    u: np.ndarray,
    iters: Optional[int] = None,
    prefix: str = "[θ]",
) -> None:
    iters_txt = f" | iters={iters}" if iters is not None else ""
    print(
        f"{prefix} step {step:04d} | t={t:.6g} | dt={dt:.3e} | "
        f"{_fmt_range(u, 'u')}{iters_txt}"
    )


def log_picard_iter(
    *,
    it: int,
    t: float,
    du_inf: float,
    tol: float,
    prefix: str = "[picard]",
) -> None:
    print(f"{prefix} t={t:.6g} iter {it:02d} | ||Δu||_inf={du_inf:.3e} | tol={tol:.3e}")


def log_run_summary(
    *,
    steps: int,
    t: float,
    u: np.ndarray,
    finished: bool,
    prefix: str = "[θ]",
) -> None:
    print(
        f"{prefix} done | finished={finished} | steps={steps} | t={t:.6g} | "
        f"||u||_inf={float(np.linalg.norm(u, ord=np.inf)):.3e}"
    )

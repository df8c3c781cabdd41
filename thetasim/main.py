# thetasim/main.py
"""
thetasim main entrypoint.

Default subcommand: heat
Usage examples:
    python -m thetasim
    python -m thetasim heat --help
    python -m thetasim heat --theta 1.0 --dt 0.1 --T 2 --nx 40 --ny 40
    python -m thetasim run case.yaml --set time.dt=0.1 --set output.every=5
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional
import argparse
import sys

import matplotlib

from .errors import ThetaSimError
from .io.config import config_from_dict
from .utils import logger
from .workflows.run_transient import run_transient, run_from_config

__all__ = ["main"]


# ------------------------------ heat subcommand -----------------------------


@dataclass(slots=True)
class _HeatArgs:
    dt: float
    theta: float
    T: float
    nx: int
    ny: int
    operator: str
    solver: str
    out: str
    every: int
    plots: bool
    debug: bool


def _add_heat_subparser(
    subparsers: argparse._SubParsersAction,
) -> argparse.ArgumentParser:
    p = subparsers.add_parser(
        "heat", help="Transient heat equation on the unit square (tutorial case)"
    )
    p.add_argument("--dt", type=float, default=0.05, help="Time step")
    p.add_argument("--theta", type=float, default=0.5, help="θ in [0, 1] (0.5 = Crank–Nicolson)")
    p.add_argument("--T", type=float, default=10.0, help="Final time")
    p.add_argument("--nx", type=int, default=20, help="Cells along x (>=2)")
    p.add_argument(
        "--ny", type=int, default=20, help="Cells along y (>=2); 0 for a 1-D run"
    )
    p.add_argument(
        "--operator", choices=["affine", "constant_matrix", "constant"], default="affine",
        help="Transient operator variant"
    )
    p.add_argument(
        "--solver", choices=["lu", "dense", "sparse", "thomas"], default="lu",
        help="Linear solver backend"
    )
    p.add_argument("--out", default="runs/heat", help="Output directory")
    p.add_argument("--every", type=int, default=1, help="Record every k-th step")
    p.add_argument("--no-plots", action="store_true", help="Skip PNG output")
    p.add_argument("--debug", action="store_true", help="Verbose per-step prints")
    p.set_defaults(cmd="heat")
    return p


def _add_run_subparser(
    subparsers: argparse._SubParsersAction,
) -> argparse.ArgumentParser:
    p = subparsers.add_parser("run", help="Run a YAML case file")
    p.add_argument("config", help="Path to YAML config")
    p.add_argument(
        "--set", dest="overrides", action="append", default=[],
        metavar="KEY=VALUE", help="Override a config entry (repeatable)"
    )
    p.set_defaults(cmd="run")
    return p


def _heat_args(ns: argparse.Namespace) -> _HeatArgs:
    return _HeatArgs(
        dt=float(ns.dt),
        theta=float(ns.theta),
        T=float(ns.T),
        nx=int(ns.nx),
        ny=int(ns.ny),
        operator=str(ns.operator),
        solver=str(ns.solver),
        out=str(ns.out),
        every=int(ns.every),
        plots=not bool(ns.no_plots),
        debug=bool(ns.debug),
    )


def _run_heat(args: _HeatArgs) -> None:
    cells = [args.nx] if args.ny <= 0 else [args.nx, args.ny]
    cfg = config_from_dict(
        {
            "time": {"t0": 0.0, "t_final": args.T, "dt": args.dt, "theta": args.theta},
            "problem": {"cells": cells, "operator": args.operator},
            "solver": {"linear": args.solver, "debug": args.debug},
            "output": {"dir": args.out, "every": args.every, "plots": args.plots},
        },
        path="heat",
    )
    res = run_transient(cfg)
    print(
        f"[ok] wrote {res.out_dir}  "
        f"(steps={res.metrics['n_steps']}, u_peak={res.metrics['u_peak']:.4e})"
    )


def _run_case(path: str, overrides: List[str]) -> None:
    res = run_from_config(Path(path), overrides)
    print(f"[ok] wrote {res.out_dir}  (steps={res.metrics['n_steps']})")


# --------------------------------- main() ------------------------------------


def main(argv: Optional[List[str]] = None) -> int:
    # CLI runs only write figures to disk
    matplotlib.use("Agg")

    parser = argparse.ArgumentParser(description="thetasim — θ-method transient runs")
    sub = parser.add_subparsers(dest="cmd")

    heat_parser = _add_heat_subparser(sub)
    _add_run_subparser(sub)

    argv = list(sys.argv[1:] if argv is None else argv)
    try:
        # If no subcommand given, default to 'heat' with defaults
        if not argv:
            _run_heat(_heat_args(heat_parser.parse_args([])))
            return 0

        ns = parser.parse_args(argv)
        if ns.cmd == "heat":
            _run_heat(_heat_args(ns))
            return 0
        if ns.cmd == "run":
            _run_case(ns.config, ns.overrides)
            return 0
    except (ThetaSimError, ValueError, FileNotFoundError) as exc:
        logger.error(str(exc))
        return 1

    parser.error("Unknown command (try: heat, run)")
    return 2


if __name__ == "__main__":
    sys.exit(main())

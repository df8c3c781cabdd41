# thetasim/io/config.py
# -*- coding: utf-8 -*-
"""
YAML → IntegratorConfig / HeatProblem / OutputSpec helpers.

Schema (example):

time:
  t0: 0.0
  t_final: 10.0
  dt: 0.05
  theta: 0.5

problem:
  dim: 2                   # 1 or 2; defaults to len(cells), else 2
  cells: [20, 20]          # dim entries; defaults to [20] * dim
  lengths: [1.0, 1.0]
  operator: affine         # affine | constant_matrix | constant
  kappa0: 1.0
  kappa_amp: 0.95
  kappa_freq: 1.0
  source_amp: 1.0
  source_freq: 0.5
  g: 0.0
  u0: 0.0

solver:
  linear: lu               # lu | dense | sparse | thomas
  debug: false

output:
  dir: runs/heat
  every: 1
  plots: true
"""
from __future__ import annotations
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable

import yaml

from thetasim.boundaries.thermal import DirichletBC
from thetasim.geometry.builder import build_grid
from thetasim.physics.heat import HeatProblem, tutorial_coefficients
from thetasim.solver.time_integration import IntegratorConfig

@dataclass
class RunConfig:
    raw: dict
    path: Path

@dataclass
class OutputSpec:
    dir: Path
    every: int = 1
    plots: bool = True

def load_config(path: Path) -> RunConfig:
    data = yaml.safe_load(Path(path).read_text())
    if not isinstance(data, dict):
        raise ValueError("Top-level YAML must be a mapping")
    _validate_minimum(data)
    return RunConfig(raw=data, path=Path(path))

def config_from_dict(data: dict, path: Path | str = "<dict>") -> RunConfig:
    if not isinstance(data, dict):
        raise ValueError("Config must be a mapping")
    _validate_minimum(data)
    return RunConfig(raw=data, path=Path(path))

def apply_overrides(cfg: RunConfig, overrides: Iterable[str]) -> RunConfig:
    """Apply 'a.b.c=value' overrides in place; values are parsed as YAML scalars/lists."""
    for item in overrides:
        if "=" not in item:
            raise ValueError(f"Override must look like key.path=value (got {item!r})")
        key, value = item.split("=", 1)
        parts = [p for p in key.strip().split(".") if p]
        if not parts:
            raise ValueError(f"Empty override key in {item!r}")
        node: Any = cfg.raw
        for p in parts[:-1]:
            nxt = node.get(p)
            if nxt is None:
                nxt = node[p] = {}
            if not isinstance(nxt, dict):
                raise ValueError(f"Cannot descend into non-mapping key '{p}' in {item!r}")
            node = nxt
        node[parts[-1]] = yaml.safe_load(value)
    return cfg

def build_integrator_config(cfg: RunConfig) -> IntegratorConfig:
    t = cfg.raw["time"]
    return IntegratorConfig(
        dt=float(t.get("dt", 0.05)),
        theta=float(t.get("theta", 0.5)),
        t0=float(t.get("t0", 0.0)),
        t_final=float(t["t_final"]),
    ).validate()

def build_problem(cfg: RunConfig) -> HeatProblem:
    p = cfg.raw["problem"]
    cells = p.get("cells")
    if isinstance(cells, int):
        cells = [cells]
    dim = p.get("dim")
    if dim is None:
        dim = len(cells) if cells is not None else 2
    dim = int(dim)
    if dim not in (1, 2):
        raise ValueError(f"problem.dim must be 1 or 2 (got {dim})")
    if cells is None:
        cells = [20] * dim
    if len(cells) != dim:
        raise ValueError(f"problem.cells has {len(cells)} entries but problem.dim is {dim}")
    lengths = p.get("lengths", [1.0] * len(cells))
    grid = build_grid(lengths=lengths, cells=cells)
    coeffs = tutorial_coefficients(
        kappa0=float(p.get("kappa0", 1.0)),
        kappa_amp=float(p.get("kappa_amp", 0.95)),
        kappa_freq=float(p.get("kappa_freq", 1.0)),
        source_amp=float(p.get("source_amp", 1.0)),
        source_freq=float(p.get("source_freq", 0.5)),
    )
    return HeatProblem(grid=grid, coeffs=coeffs, bc=DirichletBC.constant(float(p.get("g", 0.0))))

def build_output(cfg: RunConfig) -> OutputSpec:
    o = cfg.raw.get("output") or {}
    out_dir = o.get("dir") or (Path("runs") / cfg.path.stem)
    every = int(o.get("every", 1))
    if every < 1:
        raise ValueError("output.every must be >= 1")
    return OutputSpec(dir=Path(out_dir), every=every, plots=bool(o.get("plots", True)))

def solver_section(cfg: RunConfig) -> dict:
    s = cfg.raw.get("solver") or {}
    return {"linear": str(s.get("linear", "lu")), "debug": bool(s.get("debug", False))}

def _validate_minimum(cfg: dict) -> None:
    for key in ("time", "problem"):
        if key not in cfg:
            raise ValueError(f"Missing top-level key: {key}")
        if not isinstance(cfg[key], dict):
            raise ValueError(f"Top-level key '{key}' must be a mapping")
    if "t_final" not in cfg["time"]:
        raise ValueError("Missing time.t_final")

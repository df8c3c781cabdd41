# -*- coding: utf-8 -*-
"""
Results IO helpers.

Write:
  * metrics.json  (run-level KPIs)
  * fields.npz    (recorded times and states)
  * history.csv   (per-record min/max/mean/L2 of the state)

This keeps on-disk layout stable for post-processing and reports.
"""
from __future__ import annotations
import json
from pathlib import Path
from typing import Any, Dict

import numpy as np
import pandas as pd

def write_metrics(run_dir: Path, metrics: Dict[str, Any]) -> Path:
    run_dir.mkdir(parents=True, exist_ok=True)
    out = run_dir / "metrics.json"
    with open(out, "w") as f:
        json.dump(metrics, f, indent=2, sort_keys=True)
    return out

def save_fields_npz(run_dir: Path, **arrays) -> Path:
    """
    Save arrays for viz (e.g., t, u, x, y, u_final).
    """
    run_dir.mkdir(parents=True, exist_ok=True)
    out = run_dir / "fields.npz"
    np.savez_compressed(out, **arrays)
    return out

def history_frame(times: np.ndarray, states: np.ndarray) -> pd.DataFrame:
    U = np.atleast_2d(np.asarray(states, dtype=np.float64))
    return pd.DataFrame({
        "t": np.asarray(times, dtype=np.float64),
        "u_min": U.min(axis=1),
        "u_max": U.max(axis=1),
        "u_mean": U.mean(axis=1),
        "u_l2": np.linalg.norm(U, axis=1) / np.sqrt(max(U.shape[1], 1)),
    })

def write_history_csv(run_dir: Path, history: pd.DataFrame) -> Path:
    run_dir.mkdir(parents=True, exist_ok=True)
    out = run_dir / "history.csv"
    history.to_csv(out, index=False)
    return out

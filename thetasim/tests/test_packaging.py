# thetasim/tests/test_packaging.py
"""Import side effects and project metadata.
Run with:  pytest -q
"""
from __future__ import annotations

import importlib
import re
from pathlib import Path

import matplotlib
import pytest

import thetasim.postprocess.visualization as visualization

ROOT = Path(__file__).resolve().parents[2]


def test_plotting_import_keeps_backend(monkeypatch):
    calls = []
    monkeypatch.setattr(matplotlib, "use", lambda *a, **k: calls.append(a))
    importlib.reload(visualization)
    assert calls == []


def test_cli_selects_agg(monkeypatch, tmp_path):
    from thetasim.main import main

    calls = []
    monkeypatch.setattr(matplotlib, "use", lambda *a, **k: calls.append(a))
    rc = main(["heat", "--nx", "4", "--ny", "0", "--T", "0.1", "--dt", "0.1",
               "--no-plots", "--out", str(tmp_path / "out")])
    assert rc == 0
    assert calls == [("Agg",)]


def test_readme_declared_and_present():
    pyproject = ROOT / "pyproject.toml"
    if not pyproject.exists():
        pytest.skip("source checkout only")
    m = re.search(r'^readme\s*=\s*"([^"]+)"', pyproject.read_text(), re.MULTILINE)
    assert m is not None
    readme = ROOT / m.group(1)
    assert readme.name == "README.md"
    assert readme.exists()

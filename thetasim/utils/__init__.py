# thetasim/utils/__init__.py
from __future__ import annotations
from . import diagnostics, logger

__all__ = ["diagnostics", "logger"]

"""Compiler, stack VM and graph optimizer for a small imperative language."""

from __future__ import annotations

__version__ = "0.1.0"

__all__ = ["__version__"]

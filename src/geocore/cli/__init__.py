"""CLI module for geocore.

Provides developer commands for relating and validating geometries and for
benchmarking the spatial index.
"""

from __future__ import annotations

from geocore.cli.main import app

__all__ = ["app"]

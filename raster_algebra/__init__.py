#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Raster Algebra Package.

Weighted overlay ("map algebra") of single-band rasters and approximate
equality testing between floating point grids.
"""

__version__ = "0.1.0"
__author__ = "Elena Project Team"
__email__ = "user@example.com"

from raster_algebra.core.exceptions import (
    DecodeError,
    IoError,
    LoadError,
    PathNotFound,
    RasterAlgebraError,
    ShapeMismatch,
)
from raster_algebra.core.grid import Grid
from raster_algebra.core.io import get_loader, load_grid, load_grid_fallback, write_grid
from raster_algebra.algebra.approx import abs_diff_eq, relative_eq, ulps_eq
from raster_algebra.algebra.overlay import overlay_grids, weighted_overlay

#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Input/output handling for raster grids.

This module loads single-band rasters into ``Grid`` instances and writes
grids back to ESRI ASCII grid files. Loader failures are reported with the
``LoadError`` family so callers can tell a missing path from a malformed
file or an operating system failure.
"""
import os
from typing import Any, Callable, Dict, List, Optional
import numpy as np
import rasterio
from rasterio.errors import RasterioError
from rasterio.transform import from_origin

from raster_algebra.core.config import GRID_CONFIG
from raster_algebra.core.exceptions import DecodeError, IoError, PathNotFound
from raster_algebra.core.grid import Grid, resolve_dtype
from raster_algebra.core.logging_config import get_module_logger

# Initialize logger
logger = get_module_logger(__name__)

# Header keys of the ESRI ASCII grid format
ASCII_HEADER_KEYS = {
    "ncols", "nrows", "xllcorner", "xllcenter", "yllcorner", "yllcenter",
    "cellsize", "dx", "dy", "nodata_value",
}


def _check_path(path: str) -> None:
    if not os.path.exists(path):
        logger.error(f"Raster not found: {path}")
        raise PathNotFound(path)


def load_grid(path: str, dtype: Any = None) -> Grid:
    """
    Load band 1 of a raster file.

    Parameters
    ----------
    path : str
        Path to any raster rasterio can open (e.g. an ``.asc`` file).
    dtype : str or np.dtype, optional
        Element type of the grid. Defaults to ``GRID_CONFIG["dtype"]``.

    Returns
    -------
    Grid
        The loaded grid.

    Raises
    ------
    PathNotFound
        If the path does not exist.
    DecodeError
        If the file cannot be decoded as a raster.
    IoError
        If reading fails at the operating system level.
    """
    path = str(path)
    logger.info(f"Loading raster from {path}")
    _check_path(path)
    if os.path.isdir(path):
        logger.error(f"Raster path is a directory: {path}")
        raise IoError(path, f"Failed to read raster {path}: is a directory")

    try:
        with rasterio.open(path) as src:
            arr = src.read(1)
    except RasterioError as e:
        logger.error(f"Failed to decode raster {path}: {e}")
        raise DecodeError(path, f"Failed to decode raster {path}: {e}") from e
    except OSError as e:
        logger.error(f"Failed to read raster {path}: {e}")
        raise IoError(path, f"Failed to read raster {path}: {e}") from e

    grid = Grid(arr, dtype=resolve_dtype(dtype))
    logger.info(f"Loaded raster with shape {grid.shape}")
    return grid


def load_grid_fallback(path: str, dtype: Any = None) -> Grid:
    """
    Load an ESRI ASCII grid without going through GDAL.

    Parameters
    ----------
    path : str
        Path to an ASCII raster file.
    dtype : str or np.dtype, optional
        Element type of the grid. Defaults to ``GRID_CONFIG["dtype"]``.

    Returns
    -------
    Grid
        The loaded grid.
    """
    path = str(path)
    logger.info(f"Loading raster using fallback method from {path}")
    _check_path(path)

    try:
        with open(path, "r") as f:
            lines = f.readlines()
    except UnicodeDecodeError as e:
        raise DecodeError(path, f"Raster {path} is not a text file") from e
    except OSError as e:
        logger.error(f"Failed to read raster {path}: {e}")
        raise IoError(path, f"Failed to read raster {path}: {e}") from e

    header: Dict[str, str] = {}
    cells: List[str] = []
    for line in lines:
        tokens = line.split()
        if not tokens:
            continue
        if not cells and tokens[0].lower() in ASCII_HEADER_KEYS:
            if len(tokens) != 2:
                raise DecodeError(path, f"Malformed header line in {path}: {line.strip()!r}")
            header[tokens[0].lower()] = tokens[1]
        else:
            cells.extend(tokens)

    try:
        ncols = int(header["ncols"])
        nrows = int(header["nrows"])
    except KeyError as e:
        raise DecodeError(path, f"Missing header key {e} in {path}") from e
    except ValueError as e:
        raise DecodeError(path, f"Invalid grid dimensions in {path}") from e

    if len(cells) != nrows * ncols:
        raise DecodeError(
            path, f"Expected {nrows * ncols} cells in {path}, found {len(cells)}"
        )

    try:
        data = np.array([float(value) for value in cells], dtype=np.float64)
    except ValueError as e:
        raise DecodeError(path, f"Non-numeric cell value in {path}: {e}") from e

    grid = Grid.from_elements(nrows, ncols, data, dtype=resolve_dtype(dtype))
    logger.info(f"Loaded raster with shape {grid.shape}")
    return grid


def write_grid(grid: Grid, path: str, cellsize: float = 1.0,
               nodata: Optional[float] = None) -> str:
    """
    Write a grid to an ESRI ASCII grid file.

    Parameters
    ----------
    grid : Grid
        Grid to write. The empty grid cannot be written.
    path : str
        Output path.
    cellsize : float, optional
        Cell size of the output raster, by default 1.0.
    nodata : float, optional
        No data value recorded in the header.

    Returns
    -------
    str
        Path to the written raster.
    """
    if grid.is_empty():
        raise ValueError("Cannot write an empty grid")

    path = str(path)
    output_dir = os.path.dirname(path)
    if output_dir:
        os.makedirs(output_dir, exist_ok=True)

    transform = from_origin(0.0, grid.rows * cellsize, cellsize, cellsize)
    with rasterio.open(
        path,
        "w",
        driver="AAIGrid",
        height=grid.rows,
        width=grid.cols,
        count=1,
        dtype=grid.dtype.name,
        transform=transform,
        nodata=nodata,
    ) as dst:
        dst.write(grid.to_numpy(), 1)

    logger.info(f"Saved raster with shape {grid.shape} to {path}")
    return path


LOADERS: Dict[str, Callable[..., Grid]] = {
    "rasterio": load_grid,
    "ascii": load_grid_fallback,
}


def get_loader(name: Optional[str] = None) -> Callable[..., Grid]:
    """Return the loader registered under ``name`` (``GRID_CONFIG["default_loader"]`` by default)."""
    name = name or GRID_CONFIG.get("default_loader", "rasterio")
    try:
        return LOADERS[name]
    except KeyError:
        raise ValueError(f"Unknown loader '{name}'. Options: {sorted(LOADERS)}") from None

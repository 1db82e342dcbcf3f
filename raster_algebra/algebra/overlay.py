#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Weighted overlay (map algebra) of single-band rasters.

The overlay of a mapping ``{source: weight}`` is the grid
``sum(weight * load(source))``. Sources are loaded on demand through a
loader callable and must all share one shape. The first source in sorted
order seeds the accumulator; the remaining ones are added in that order,
so results are reproducible run to run.
"""
import math
import numbers
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, Iterable, Iterator, List, Mapping, Optional, Tuple
import numpy as np
from tqdm import tqdm

from raster_algebra.core.config import OVERLAY_CONFIG
from raster_algebra.core.exceptions import ShapeMismatch
from raster_algebra.core.grid import Grid, Loader
from raster_algebra.core.io import get_loader
from raster_algebra.core.logging_config import get_module_logger
from raster_algebra.utils.utils import timer

# Initialize logger
logger = get_module_logger(__name__)


def _check_weights(weights: Mapping[str, float]) -> None:
    for source, weight in weights.items():
        if isinstance(weight, bool) or not isinstance(weight, numbers.Real):
            raise ValueError(f"Weight for {source} must be a real number, got {weight!r}")
        if not math.isfinite(weight):
            raise ValueError(f"Weight for {source} must be finite, got {weight!r}")


def overlay_order(weights: Mapping[str, float], seed: Optional[str] = None) -> List[str]:
    """
    Order in which sources are folded into the overlay.

    Sources are sorted by key; ``seed``, when given, is moved to the front.

    Raises
    ------
    KeyError
        If ``seed`` is not one of the sources.
    """
    order = sorted(weights, key=str)
    if seed is not None:
        if seed not in weights:
            raise KeyError(f"Seed {seed!r} is not one of the overlay sources")
        order.remove(seed)
        order.insert(0, seed)
    return order


def _make_loader(loader: Optional[Loader], dtype: Any) -> Callable[[str], Grid]:
    if loader is None:
        default_loader = get_loader()

        def load(source: str) -> Grid:
            return default_loader(source, dtype=dtype)
        return load

    def load(source: str) -> Grid:
        grid = Grid.load(source, loader)
        if dtype is not None and grid.dtype != np.dtype(dtype):
            grid = Grid(grid.data, dtype=dtype)
        return grid
    return load


def _load_sources(order: List[str], load: Callable[[str], Grid],
                  max_workers: int) -> Iterator[Tuple[str, Grid]]:
    if max_workers <= 1 or len(order) == 1:
        for source in order:
            yield source, load(source)
        return

    logger.info(f"Loading {len(order)} sources with {max_workers} threads")
    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        futures = [executor.submit(load, source) for source in order]
        try:
            # Results are consumed in submission order
            for source, future in zip(order, futures):
                yield source, future.result()
        finally:
            for future in futures:
                future.cancel()


def _fold(items: Iterable[Tuple[str, Grid, float]], dtype: Any = None) -> Grid:
    accumulator: Optional[Grid] = None
    first_source = None

    for source, grid, weight in items:
        if accumulator is None:
            accumulator = grid * weight
            first_source = source
            logger.debug(f"Seeded overlay with {source} (weight {weight})")
            continue

        if grid.shape != accumulator.shape:
            logger.error(f"Shape of {source} {grid.shape} does not match {first_source} {accumulator.shape}")
            raise ShapeMismatch(
                f"Raster {source} has shape {grid.shape}, expected {accumulator.shape}",
                expected=accumulator.shape, actual=grid.shape
            )
        if grid.dtype != accumulator.dtype:
            grid = Grid(grid.data, dtype=accumulator.dtype)
        accumulator = accumulator + grid * weight
        logger.debug(f"Added {source} (weight {weight})")

    if accumulator is None:
        return Grid.empty(dtype)
    return accumulator


def overlay_grids(pairs: Iterable[Tuple[Grid, float]], dtype: Any = None) -> Grid:
    """
    Weighted sum of already loaded grids.

    Parameters
    ----------
    pairs : iterable of (Grid, float)
        Grids and their weights. All grids must share one shape.
    dtype : str or np.dtype, optional
        Element type of the empty grid returned when ``pairs`` is empty.

    Returns
    -------
    Grid
        ``sum(weight * grid)``, or the empty grid when ``pairs`` is empty.
    """
    items = ((f"grid[{i}]", grid, weight) for i, (grid, weight) in enumerate(pairs))
    return _fold(items, dtype)


@timer
def weighted_overlay(weights: Mapping[str, float],
                     loader: Optional[Loader] = None,
                     seed: Optional[str] = None,
                     max_workers: Optional[int] = None,
                     dtype: Any = None) -> Grid:
    """
    Combine rasters into their weighted sum.

    Parameters
    ----------
    weights : mapping of str to float
        Source path to weight.
    loader : callable, optional
        ``loader(path)`` returning a Grid or a 2-D array, raising ``LoadError``
        on failure. Defaults to the loader named in ``GRID_CONFIG``.
    seed : str, optional
        Source used to initialize the accumulator. Defaults to the first
        source in sorted order. The choice only affects rounding.
    max_workers : int, optional
        Threads used to load sources. ``OVERLAY_CONFIG["max_workers"]`` by
        default; 1 loads sources one at a time.
    dtype : str or np.dtype, optional
        Element type of the loaded grids.

    Returns
    -------
    Grid
        The weighted sum. An empty mapping yields the empty 0x0 grid.

    Raises
    ------
    LoadError
        If any source fails to load. No partial result is returned.
    ShapeMismatch
        If the sources do not all share one shape.
    """
    if not weights:
        logger.warning("No maps to overlay, returning the empty grid")
        return Grid.empty(dtype)

    _check_weights(weights)
    order = overlay_order(weights, seed)
    if max_workers is None:
        max_workers = OVERLAY_CONFIG.get("max_workers", 1)

    logger.info(f"Overlaying {len(order)} rasters")
    sources = _load_sources(order, _make_loader(loader, dtype), max_workers)
    items = (
        (source, grid, weights[source])
        for source, grid in tqdm(sources, total=len(order), desc="Overlaying rasters",
                                 disable=not OVERLAY_CONFIG.get("show_progress", False))
    )
    try:
        result = _fold(items, dtype)
    finally:
        # Cancels pending loads when the fold stops early
        sources.close()
    logger.info(f"Overlay result has shape {result.shape}")
    return result

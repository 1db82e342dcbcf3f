#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Approximate equality between floating point grids.

Three tolerance policies are provided, each applied element-wise in
row-major order and stopping at the first failing pair:

- ``abs_diff_eq``: ``|a - b| <= epsilon``
- ``relative_eq``: absolute test, then ``|a - b| <= max_relative * max(|a|, |b|)``
- ``ulps_eq``: absolute test, then distance in units in the last place

A comparison outside tolerance returns ``False``; only grids of different
shape raise (``ShapeMismatch``). Functions accept ``Grid`` instances or 2-D
numpy arrays.
"""
from typing import Any, Callable, Optional, Tuple
import numpy as np

from raster_algebra.core.config import APPROX_CONFIG, GRID_CONFIG
from raster_algebra.core.exceptions import ShapeMismatch
from raster_algebra.core.logging_config import get_module_logger

# Initialize logger
logger = get_module_logger(__name__)

Predicate = Callable[[np.ndarray, np.ndarray], np.ndarray]

_INT_VIEWS = {2: np.int16, 4: np.int32, 8: np.int64}


def _as_array(grid: Any) -> np.ndarray:
    if isinstance(grid, np.ndarray):
        return grid
    data = getattr(grid, "data", None)
    if isinstance(data, np.ndarray):
        return data
    return np.asarray(grid)


def _aligned(a: Any, b: Any) -> Tuple[np.ndarray, np.ndarray]:
    x, y = _as_array(a), _as_array(b)
    if x.shape != y.shape:
        raise ShapeMismatch(f"Cannot compare grids of shape {x.shape} and {y.shape}",
                            expected=x.shape, actual=y.shape)
    dtype = common_dtype(x, y)
    return x.astype(dtype, copy=False), y.astype(dtype, copy=False)


def common_dtype(a: Any, b: Any) -> np.dtype:
    """Floating point type both operands are compared in."""
    dtype = np.result_type(_as_array(a), _as_array(b))
    if not np.issubdtype(dtype, np.floating):
        dtype = np.dtype(GRID_CONFIG["dtype"])
    return dtype


def default_epsilon(dtype: Any = None) -> float:
    """Machine epsilon of ``dtype`` unless overridden in ``APPROX_CONFIG``."""
    override = APPROX_CONFIG.get("default_epsilon")
    if override is not None:
        return float(override)
    return float(np.finfo(np.dtype(GRID_CONFIG["dtype"] if dtype is None else dtype)).eps)


def default_max_relative(dtype: Any = None) -> float:
    """Machine epsilon of ``dtype`` unless overridden in ``APPROX_CONFIG``."""
    override = APPROX_CONFIG.get("default_max_relative")
    if override is not None:
        return float(override)
    return float(np.finfo(np.dtype(GRID_CONFIG["dtype"] if dtype is None else dtype)).eps)


def default_max_ulps() -> int:
    return int(APPROX_CONFIG.get("max_ulps", 4))


def first_failure(a: Any, b: Any, predicate: Predicate) -> Optional[Tuple[int, int]]:
    """
    Find the first element pair, in row-major order, rejected by ``predicate``.

    The predicate is evaluated one row at a time and receives two 1-D arrays;
    it must return a boolean array of the same length. Traversal stops at the
    first row holding a failing pair.

    Returns
    -------
    tuple or None
        ``(row, col)`` of the first failing pair, or None if every pair passes.
    """
    x, y = _aligned(a, b)
    with np.errstate(invalid="ignore", over="ignore"):
        for row, (row_x, row_y) in enumerate(zip(x, y)):
            accepted = np.asarray(predicate(row_x, row_y), dtype=bool)
            if not accepted.all():
                col = int(np.flatnonzero(~accepted)[0])
                logger.debug(f"Grids differ at ({row}, {col}): {row_x[col]!r} vs {row_y[col]!r}")
                return row, col
    return None


def all_pairs(a: Any, b: Any, predicate: Predicate) -> bool:
    """True if ``predicate`` accepts every element pair of ``a`` and ``b``."""
    return first_failure(a, b, predicate) is None


# Per-pair predicates

def _abs_diff_predicate(epsilon: np.floating) -> Predicate:
    def predicate(x: np.ndarray, y: np.ndarray) -> np.ndarray:
        return np.abs(x - y) <= epsilon
    return predicate


def _relative_predicate(epsilon: np.floating, max_relative: np.floating) -> Predicate:
    def predicate(x: np.ndarray, y: np.ndarray) -> np.ndarray:
        diff = np.abs(x - y)
        largest = np.maximum(np.abs(x), np.abs(y))
        # Infinities only match exactly
        finite = np.isfinite(x) & np.isfinite(y)
        return (x == y) | (finite & ((diff <= epsilon) | (diff <= largest * max_relative)))
    return predicate


def _ulps_predicate(epsilon: np.floating, max_ulps: int, dtype: np.dtype) -> Predicate:
    int_view = _INT_VIEWS.get(dtype.itemsize)
    if int_view is None:
        raise TypeError(f"ULPs comparison is not supported for element type {dtype}")

    def predicate(x: np.ndarray, y: np.ndarray) -> np.ndarray:
        close = np.abs(x - y) <= epsilon
        same_sign = (np.signbit(x) == np.signbit(y)) & ~np.isnan(x) & ~np.isnan(y)
        # Same-sign bit patterns are ordered like the floats they encode
        bits_x = x.view(int_view).astype(np.int64)
        bits_y = y.view(int_view).astype(np.int64)
        return close | (same_sign & (np.abs(bits_x - bits_y) <= max_ulps))
    return predicate


def abs_diff_eq(a: Any, b: Any, epsilon: Optional[float] = None) -> bool:
    """
    Absolute-difference equality.

    Parameters
    ----------
    a, b : Grid or np.ndarray
        Grids of identical shape.
    epsilon : float, optional
        Largest accepted absolute difference. Defaults to the machine
        epsilon of the element type.

    Returns
    -------
    bool
        True if ``|a - b| <= epsilon`` for every element pair.
    """
    dtype = common_dtype(a, b)
    eps = dtype.type(default_epsilon(dtype) if epsilon is None else epsilon)
    return all_pairs(a, b, _abs_diff_predicate(eps))


def relative_eq(a: Any, b: Any, epsilon: Optional[float] = None,
                max_relative: Optional[float] = None) -> bool:
    """
    Relative equality with an absolute floor.

    A pair is accepted when it is within ``epsilon`` or when
    ``|a - b| <= max_relative * max(|a|, |b|)``. The absolute floor keeps
    values near zero comparable.

    Parameters
    ----------
    a, b : Grid or np.ndarray
        Grids of identical shape.
    epsilon : float, optional
        Absolute tolerance, machine epsilon by default.
    max_relative : float, optional
        Relative tolerance, machine epsilon by default.

    Returns
    -------
    bool
        True if every element pair is accepted.
    """
    dtype = common_dtype(a, b)
    eps = dtype.type(default_epsilon(dtype) if epsilon is None else epsilon)
    rel = dtype.type(default_max_relative(dtype) if max_relative is None else max_relative)
    return all_pairs(a, b, _relative_predicate(eps, rel))


def ulps_eq(a: Any, b: Any, epsilon: Optional[float] = None,
            max_ulps: Optional[int] = None) -> bool:
    """
    Units-in-the-last-place equality with an absolute floor.

    A pair is accepted when it is within ``epsilon`` or when both values
    have the same sign and their bit patterns are at most ``max_ulps``
    representable values apart. NaN is never accepted.

    Parameters
    ----------
    a, b : Grid or np.ndarray
        Grids of identical shape.
    epsilon : float, optional
        Absolute tolerance, machine epsilon by default.
    max_ulps : int, optional
        Largest accepted ULP distance, ``APPROX_CONFIG["max_ulps"]`` by default.

    Returns
    -------
    bool
        True if every element pair is accepted.
    """
    dtype = common_dtype(a, b)
    eps = dtype.type(default_epsilon(dtype) if epsilon is None else epsilon)
    ulps = default_max_ulps() if max_ulps is None else int(max_ulps)
    if ulps < 0:
        raise ValueError(f"max_ulps must be non-negative, got {ulps}")
    return all_pairs(a, b, _ulps_predicate(eps, ulps, dtype))


def _assert_close(a: Any, b: Any, predicate: Predicate, description: str) -> None:
    failure = first_failure(a, b, predicate)
    if failure is not None:
        x, y = _aligned(a, b)
        row, col = failure
        raise AssertionError(
            f"Grids are not {description}: first difference at row {row}, col {col} "
            f"({x[row, col]!r} != {y[row, col]!r})"
        )


def assert_abs_diff_eq(a: Any, b: Any, epsilon: Optional[float] = None) -> None:
    """Raise ``AssertionError`` naming the first cell where ``abs_diff_eq`` fails."""
    dtype = common_dtype(a, b)
    eps = dtype.type(default_epsilon(dtype) if epsilon is None else epsilon)
    _assert_close(a, b, _abs_diff_predicate(eps), f"within epsilon={eps}")


def assert_relative_eq(a: Any, b: Any, epsilon: Optional[float] = None,
                       max_relative: Optional[float] = None) -> None:
    """Raise ``AssertionError`` naming the first cell where ``relative_eq`` fails."""
    dtype = common_dtype(a, b)
    eps = dtype.type(default_epsilon(dtype) if epsilon is None else epsilon)
    rel = dtype.type(default_max_relative(dtype) if max_relative is None else max_relative)
    _assert_close(a, b, _relative_predicate(eps, rel),
                  f"relatively equal (epsilon={eps}, max_relative={rel})")


def assert_ulps_eq(a: Any, b: Any, epsilon: Optional[float] = None,
                   max_ulps: Optional[int] = None) -> None:
    """Raise ``AssertionError`` naming the first cell where ``ulps_eq`` fails."""
    dtype = common_dtype(a, b)
    eps = dtype.type(default_epsilon(dtype) if epsilon is None else epsilon)
    ulps = default_max_ulps() if max_ulps is None else int(max_ulps)
    _assert_close(a, b, _ulps_predicate(eps, ulps, dtype),
                  f"ulps-equal (epsilon={eps}, max_ulps={ulps})")

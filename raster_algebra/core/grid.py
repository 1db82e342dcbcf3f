#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Grid container for single-band rasters.

A ``Grid`` owns a private, read-only 2-D numpy array of a floating point
element type. Grids are immutable: scaling and addition return new grids.
The only grid without data is the degenerate empty grid of shape (0, 0).
"""
import numbers
from typing import Any, Callable, Iterator, Optional, Sequence, Tuple, Union
import numpy as np

from raster_algebra.core.config import GRID_CONFIG
from raster_algebra.core.exceptions import ShapeMismatch
from raster_algebra.algebra import approx

Loader = Callable[[str], Union["Grid", np.ndarray]]


def resolve_dtype(dtype: Any = None, source: Optional[np.ndarray] = None) -> np.dtype:
    """
    Pick the element type of a grid.

    An explicit ``dtype`` wins, then a floating point ``source`` dtype,
    then ``GRID_CONFIG["dtype"]``. Only floating point types are accepted.
    """
    if dtype is not None:
        resolved = np.dtype(dtype)
    elif source is not None and np.issubdtype(source.dtype, np.floating):
        resolved = source.dtype
    else:
        resolved = np.dtype(GRID_CONFIG["dtype"])

    if not np.issubdtype(resolved, np.floating):
        raise TypeError(f"Grid element type must be floating point, got {resolved}")
    return resolved


class Grid:
    """A rectangular, row-major, immutable 2-D raster."""

    __slots__ = ("_data",)
    __hash__ = None

    def __init__(self, data: Any, dtype: Any = None):
        source = data.data if isinstance(data, Grid) else np.asarray(data)
        if source.ndim != 2:
            # A flat empty sequence is accepted as the empty grid
            if source.size == 0 and source.ndim == 1:
                source = source.reshape(0, 0)
            else:
                raise ShapeMismatch(
                    f"Grid data must be 2-D, got {source.ndim} dimension(s)",
                    expected=None, actual=source.shape
                )
        arr = np.array(source, dtype=resolve_dtype(dtype, source), copy=True)
        self._data = self._seal(arr)

    @staticmethod
    def _seal(arr: np.ndarray) -> np.ndarray:
        if arr.size == 0:
            arr = arr.reshape(0, 0)
        arr.flags.writeable = False
        return arr

    @classmethod
    def _from_owned(cls, arr: np.ndarray) -> "Grid":
        # Wraps a freshly computed array without copying it again
        grid = cls.__new__(cls)
        grid._data = cls._seal(arr)
        return grid

    @classmethod
    def from_elements(cls, rows: int, cols: int, elements: Sequence[float],
                      dtype: Any = None) -> "Grid":
        """
        Build a grid from a flat row-major sequence.

        Raises
        ------
        ShapeMismatch
            If ``len(elements) != rows * cols`` or a dimension is negative.
        """
        if rows < 0 or cols < 0:
            raise ShapeMismatch(f"Grid dimensions must be non-negative, got ({rows}, {cols})",
                                expected=None, actual=(rows, cols))
        flat = np.asarray(elements)
        if flat.ndim != 1:
            raise ShapeMismatch(f"Elements must be a flat sequence, got {flat.ndim} dimension(s)",
                                expected=(rows * cols,), actual=flat.shape)
        if flat.size != rows * cols:
            raise ShapeMismatch(
                f"Expected {rows * cols} elements for a {rows}x{cols} grid, got {flat.size}",
                expected=(rows * cols,), actual=(flat.size,)
            )
        return cls(flat.reshape(rows, cols), dtype=dtype)

    @classmethod
    def empty(cls, dtype: Any = None) -> "Grid":
        """Return the degenerate 0x0 grid."""
        return cls(np.empty((0, 0), dtype=resolve_dtype(dtype)))

    @classmethod
    def load(cls, path: str, loader: Optional[Loader] = None) -> "Grid":
        """
        Load a grid through a loader callable (``core.io.load_grid`` by default).

        ``LoadError`` raised by the loader propagates unchanged.
        """
        if loader is None:
            # Import here to avoid circular imports
            from raster_algebra.core.io import load_grid
            loader = load_grid
        result = loader(path)
        return result if isinstance(result, cls) else cls(result)

    @property
    def data(self) -> np.ndarray:
        """Read-only view of the storage."""
        return self._data.view()

    @property
    def rows(self) -> int:
        return self._data.shape[0]

    @property
    def cols(self) -> int:
        return self._data.shape[1]

    @property
    def shape(self) -> Tuple[int, int]:
        return self._data.shape

    @property
    def size(self) -> int:
        return self._data.size

    @property
    def dtype(self) -> np.dtype:
        return self._data.dtype

    def is_empty(self) -> bool:
        return self._data.size == 0

    def to_numpy(self) -> np.ndarray:
        """Return a writable copy of the storage."""
        return self._data.copy()

    def iter_row_major(self) -> Iterator[Any]:
        """Yield the elements lazily in row-major order."""
        for value in self._data.flat:
            yield value

    def iter_pairs(self, other: "Grid") -> Iterator[Tuple[Any, Any]]:
        """Yield ``(self, other)`` element pairs in row-major order."""
        if self.shape != other.shape:
            raise ShapeMismatch(f"Cannot pair grids of shape {self.shape} and {other.shape}",
                                expected=self.shape, actual=other.shape)
        return zip(self.iter_row_major(), other.iter_row_major())

    def __mul__(self, scalar: Any) -> "Grid":
        if not isinstance(scalar, numbers.Real):
            return NotImplemented
        return Grid._from_owned(self._data * self.dtype.type(scalar))

    __rmul__ = __mul__

    def __add__(self, other: Any) -> "Grid":
        if not isinstance(other, Grid):
            return NotImplemented
        if self.shape != other.shape:
            raise ShapeMismatch(f"Cannot add grids of shape {self.shape} and {other.shape}",
                                expected=self.shape, actual=other.shape)
        return Grid._from_owned(self._data + other._data)

    def __eq__(self, other: Any) -> bool:
        if not isinstance(other, Grid):
            return NotImplemented
        return self.shape == other.shape and bool(np.array_equal(self._data, other._data))

    def abs_diff_eq(self, other: "Grid", epsilon: Optional[float] = None) -> bool:
        return approx.abs_diff_eq(self, other, epsilon)

    def relative_eq(self, other: "Grid", epsilon: Optional[float] = None,
                    max_relative: Optional[float] = None) -> bool:
        return approx.relative_eq(self, other, epsilon, max_relative)

    def ulps_eq(self, other: "Grid", epsilon: Optional[float] = None,
                max_ulps: Optional[int] = None) -> bool:
        return approx.ulps_eq(self, other, epsilon, max_ulps)

    def __repr__(self) -> str:
        return f"Grid(rows={self.rows}, cols={self.cols}, dtype={self.dtype})"

#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Exceptions raised by the raster algebra package.

``ShapeMismatch`` signals two grids (or a grid and a flat buffer) that were
expected to align but do not. ``LoadError`` and its subclasses are raised by
grid loaders and propagated unchanged by the overlay.
"""
from typing import Optional, Tuple


class RasterAlgebraError(Exception):
    """Base class for all errors raised by this package."""


class ShapeMismatch(RasterAlgebraError, ValueError):
    """Two shapes that must be equal are not."""

    def __init__(self, message: str,
                 expected: Optional[Tuple[int, ...]] = None,
                 actual: Optional[Tuple[int, ...]] = None):
        super().__init__(message)
        self.expected = expected
        self.actual = actual


class LoadError(RasterAlgebraError):
    """A grid source could not be loaded."""

    def __init__(self, path: str, message: Optional[str] = None):
        self.path = str(path)
        super().__init__(message or f"Failed to load raster: {path}")


class PathNotFound(LoadError):
    """The source path does not exist."""

    def __init__(self, path: str, message: Optional[str] = None):
        super().__init__(path, message or f"Raster not found: {path}")


class DecodeError(LoadError):
    """The source exists but is malformed or in an unsupported encoding."""


class IoError(LoadError):
    """Reading the source failed at the operating system level."""

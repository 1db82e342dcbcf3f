#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Utility functions for the raster algebra package.

This module provides small helpers shared by the overlay engine and the
command line interface.
"""
import math
import time
import functools
from typing import Callable, Tuple

from raster_algebra.core.logging_config import get_module_logger

# Initialize logger
logger = get_module_logger(__name__)


def timer(func: Callable) -> Callable:
    """
    Decorator to time function execution.

    Parameters
    ----------
    func : Callable
        Function to time.

    Returns
    -------
    Callable
        Wrapped function with timing.
    """
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        start_time = time.time()
        result = func(*args, **kwargs)
        elapsed = time.time() - start_time
        logger.debug(f"Function {func.__name__} took {elapsed:.2f} seconds to run")
        return result
    return wrapper


def parse_weight_spec(spec: str) -> Tuple[str, float]:
    """
    Parse a ``PATH=WEIGHT`` command line argument.

    The last ``=`` separates the weight, so paths may contain ``=``.

    Parameters
    ----------
    spec : str
        Source path and weight, e.g. ``data/slope.asc=0.4``.

    Returns
    -------
    tuple
        ``(path, weight)``
    """
    path, sep, weight = spec.rpartition("=")
    if not sep or not path:
        raise ValueError(f"Expected PATH=WEIGHT, got '{spec}'")
    try:
        value = float(weight)
    except ValueError:
        raise ValueError(f"Invalid weight '{weight}' for {path}") from None
    if not math.isfinite(value):
        raise ValueError(f"Weight for {path} must be finite, got {weight}")
    return path, value

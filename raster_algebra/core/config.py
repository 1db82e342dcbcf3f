#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Configuration settings for the raster algebra package.

This module centralizes the parameters used by the grid container, the
approximate-equality engine and the weighted overlay, making it easier to
modify settings in one place. Values can be overridden from a YAML file
with ``load_config``.
"""
from typing import Dict, Any, Optional
import os
from pathlib import Path
import yaml

# Path configuration
DEFAULT_OUTPUT_DIR: Path = Path(os.environ.get("RASTER_ALGEBRA_OUTPUT", Path.cwd() / "output"))

# Grid configuration
GRID_CONFIG: Dict[str, Any] = {
    "dtype": "float32",          # Element type of loaded grids ("float32" or "float64")
    "default_loader": "rasterio",  # Options: 'rasterio', 'ascii'
}

# Approximate equality configuration
APPROX_CONFIG: Dict[str, Any] = {
    "max_ulps": 4,
    "default_epsilon": None,       # None = machine epsilon of the element type
    "default_max_relative": None,  # None = machine epsilon of the element type
}

# Weighted overlay configuration
OVERLAY_CONFIG: Dict[str, Any] = {
    "max_workers": 1,        # >1 loads sources concurrently with a thread pool
    "show_progress": False,  # tqdm progress bar over sources
}

# Logging configuration
LOGGING_CONFIG: Dict[str, Any] = {
    "level": "INFO",  # DEBUG, INFO, WARNING, ERROR, CRITICAL
    "log_to_file": False,
    "log_file": DEFAULT_OUTPUT_DIR / "raster_algebra.log",
    "log_format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
}

_SECTIONS: Dict[str, Dict[str, Any]] = {
    "grid": GRID_CONFIG,
    "approx": APPROX_CONFIG,
    "overlay": OVERLAY_CONFIG,
    "logging": LOGGING_CONFIG,
}


def load_config(path: str) -> Dict[str, Dict[str, Any]]:
    """
    Update the configuration dictionaries from a YAML file.

    Parameters
    ----------
    path : str
        Path to a YAML file whose top-level keys are ``grid``, ``approx``,
        ``overlay`` and ``logging``.

    Returns
    -------
    dict
        Mapping of section name to the updated configuration dictionary.
    """
    with open(path, "r") as f:
        overrides: Optional[Dict[str, Any]] = yaml.safe_load(f)

    if overrides is None:
        return _SECTIONS
    if not isinstance(overrides, dict):
        raise ValueError(f"Configuration file {path} must contain a mapping")

    unknown = set(overrides) - set(_SECTIONS)
    if unknown:
        raise ValueError(f"Unknown configuration sections: {sorted(unknown)}")

    for section, values in overrides.items():
        if not isinstance(values, dict):
            raise ValueError(f"Configuration section '{section}' must be a mapping")
        _SECTIONS[section].update(values)

    return _SECTIONS

#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Main entry point for raster algebra.

This script combines rasters into a weighted overlay and compares rasters
under one of the approximate equality policies.
"""
import sys
import time
import argparse
from typing import List, Optional
import yaml

from raster_algebra import __version__
from raster_algebra.algebra import approx
from raster_algebra.algebra.overlay import weighted_overlay
from raster_algebra.core.config import APPROX_CONFIG, GRID_CONFIG, OVERLAY_CONFIG, load_config
from raster_algebra.core.exceptions import LoadError, ShapeMismatch
from raster_algebra.core.grid import Grid
from raster_algebra.core.io import get_loader, write_grid
from raster_algebra.core.logging_config import setup_logging, get_module_logger
from raster_algebra.utils.utils import parse_weight_spec

# Initialize logger
logger = get_module_logger(__name__)

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_DIFFERENT = 2


def _add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--loader",
        choices=["rasterio", "ascii"],
        help=f"Raster loader (default: {GRID_CONFIG['default_loader']})"
    )

    parser.add_argument(
        "--config", "-c",
        help="Path to custom YAML configuration file"
    )

    parser.add_argument(
        "--log-level", "-l",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Logging level (default: from configuration, INFO)"
    )


def parse_arguments(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """
    Parse command line arguments.

    Parameters
    ----------
    argv : list of str, optional
        Arguments to parse. Defaults to ``sys.argv[1:]``.

    Returns
    -------
    argparse.Namespace
        Parsed command line arguments.
    """
    parser = argparse.ArgumentParser(
        description="Weighted overlay and approximate comparison of raster files."
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"Raster Algebra v{__version__}"
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to execute")
    subparsers.required = True

    # Overlay command
    overlay_parser = subparsers.add_parser("overlay", help="Weighted sum of rasters")

    overlay_parser.add_argument(
        "--map", "-m",
        dest="maps",
        action="append",
        default=[],
        metavar="PATH=WEIGHT",
        help="Raster and its weight; repeat for each input"
    )

    overlay_parser.add_argument(
        "--output", "-o",
        help="Path to output ASCII raster file (.asc)"
    )

    overlay_parser.add_argument(
        "--seed",
        help="Raster used to initialize the accumulator (default: first in sorted order)"
    )

    overlay_parser.add_argument(
        "--workers", "-w",
        type=int,
        help=f"Threads used to load rasters (default: {OVERLAY_CONFIG['max_workers']})"
    )

    overlay_parser.add_argument(
        "--cellsize",
        type=float,
        default=1.0,
        help="Cell size written to the output raster (default: 1.0)"
    )

    _add_common_arguments(overlay_parser)

    # Compare command
    compare_parser = subparsers.add_parser("compare", help="Compare two rasters approximately")

    compare_parser.add_argument("first", help="Path to the first raster")
    compare_parser.add_argument("second", help="Path to the second raster")

    compare_parser.add_argument(
        "--mode",
        choices=["abs", "relative", "ulps"],
        default="relative",
        help="Tolerance policy (default: relative)"
    )

    compare_parser.add_argument(
        "--epsilon", "-e",
        type=float,
        help="Absolute tolerance (default: machine epsilon)"
    )

    compare_parser.add_argument(
        "--max-relative",
        type=float,
        help="Relative tolerance (default: machine epsilon)"
    )

    compare_parser.add_argument(
        "--max-ulps",
        type=int,
        help=f"ULP tolerance (default: {APPROX_CONFIG['max_ulps']})"
    )

    _add_common_arguments(compare_parser)

    return parser.parse_args(argv)


def run_overlay(args: argparse.Namespace) -> int:
    """
    Run the weighted overlay.

    Parameters
    ----------
    args : argparse.Namespace
        Command line arguments.

    Returns
    -------
    int
        Exit code.
    """
    try:
        weights = dict(parse_weight_spec(spec) for spec in args.maps)
    except ValueError as e:
        logger.error(str(e))
        return EXIT_ERROR

    start_time = time.time()
    try:
        result = weighted_overlay(
            weights,
            loader=get_loader(args.loader) if args.loader else None,
            seed=args.seed,
            max_workers=args.workers,
        )
    except (LoadError, ShapeMismatch, KeyError, ValueError) as e:
        logger.error(f"Overlay failed: {e}")
        return EXIT_ERROR

    logger.info(f"Overlay of {len(weights)} rasters finished in {time.time() - start_time:.2f} seconds")

    if args.output:
        if result.is_empty():
            logger.error("Overlay produced the empty grid; nothing to write")
            return EXIT_ERROR
        write_grid(result, args.output, cellsize=args.cellsize)
    else:
        logger.info(f"Result: {result!r}")

    return EXIT_OK


def run_compare(args: argparse.Namespace) -> int:
    """
    Compare two rasters.

    Parameters
    ----------
    args : argparse.Namespace
        Command line arguments.

    Returns
    -------
    int
        ``EXIT_OK`` if the rasters are equal under the chosen policy,
        ``EXIT_DIFFERENT`` if not, ``EXIT_ERROR`` on failure.
    """
    loader = get_loader(args.loader)
    try:
        first = Grid.load(args.first, loader)
        second = Grid.load(args.second, loader)
        if args.mode == "abs":
            equal = approx.abs_diff_eq(first, second, args.epsilon)
        elif args.mode == "relative":
            equal = approx.relative_eq(first, second, args.epsilon, args.max_relative)
        else:
            equal = approx.ulps_eq(first, second, args.epsilon, args.max_ulps)
    except (LoadError, ShapeMismatch, TypeError, ValueError) as e:
        logger.error(f"Comparison failed: {e}")
        return EXIT_ERROR

    print("equal" if equal else "different")
    return EXIT_OK if equal else EXIT_DIFFERENT


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main function to run raster algebra from the command line.
    """
    args = parse_arguments(argv)

    if args.config:
        try:
            load_config(args.config)
        except (OSError, ValueError, yaml.YAMLError) as e:
            setup_logging(log_level=args.log_level)
            logger.error(f"Failed to load configuration {args.config}: {e}")
            return EXIT_ERROR

    setup_logging(log_level=args.log_level)

    if args.command == "overlay":
        return run_overlay(args)
    elif args.command == "compare":
        return run_compare(args)
    else:
        logger.error(f"Unknown command: {args.command}")
        return EXIT_ERROR


if __name__ == "__main__":
    sys.exit(main())

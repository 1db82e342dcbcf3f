#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Test suite for the weighted overlay.
"""

import os
import shutil
import tempfile
import unittest
from unittest import mock
import numpy as np

from raster_algebra.algebra import overlay
from raster_algebra.algebra.approx import relative_eq
from raster_algebra.algebra.overlay import overlay_grids, overlay_order, weighted_overlay
from raster_algebra.core.exceptions import DecodeError, IoError, LoadError, PathNotFound, ShapeMismatch
from raster_algebra.core.grid import Grid
from raster_algebra.core.io import load_grid, load_grid_fallback

from grid_fixtures import MemoryLoader, RESULT, SOURCES, WEIGHTS, save_ascii_grid, save_sources


class TestOverlayAlgebra(unittest.TestCase):
    """Test the weighted sum of in-memory sources."""

    def setUp(self):
        self.loader = MemoryLoader(SOURCES)

    def test_empty_mapping_returns_empty_grid(self):
        result = weighted_overlay({}, loader=self.loader)
        self.assertEqual(result, Grid.empty())
        self.assertEqual(result.shape, (0, 0))
        self.assertEqual(self.loader.calls, [])

    def test_matches_known_result(self):
        result = weighted_overlay(WEIGHTS, loader=self.loader)
        self.assertEqual(result.shape, (3, 4))
        self.assertTrue(relative_eq(result, Grid(RESULT), epsilon=1e-5))

    def test_matches_explicit_weighted_sum(self):
        combination = (
            0.4 * Grid(SOURCES["data/data1.asc"])
            + 0.2 * Grid(SOURCES["data/data2.asc"])
            + 0.2 * Grid(SOURCES["data/data3.asc"])
            + 0.2 * Grid(SOURCES["data/data4.asc"])
        )
        result = weighted_overlay(WEIGHTS, loader=self.loader)
        self.assertTrue(relative_eq(combination, result, epsilon=1e-5))

    def test_seed_independence(self):
        order = overlay_order(WEIGHTS)
        first = weighted_overlay(WEIGHTS, loader=self.loader, seed=order[0])
        last = weighted_overlay(WEIGHTS, loader=self.loader, seed=order[-1])
        self.assertTrue(relative_eq(first, last, epsilon=1e-5))

    def test_insertion_order_is_irrelevant(self):
        reversed_weights = dict(reversed(list(WEIGHTS.items())))
        self.assertEqual(
            weighted_overlay(WEIGHTS, loader=self.loader),
            weighted_overlay(reversed_weights, loader=self.loader),
        )

    def test_every_source_loaded_once(self):
        weighted_overlay(WEIGHTS, loader=self.loader)
        self.assertEqual(sorted(self.loader.calls), sorted(WEIGHTS))

    def test_single_source(self):
        result = weighted_overlay({"data/data2.asc": 0.5}, loader=self.loader)
        self.assertEqual(result, Grid(SOURCES["data/data2.asc"]) * 0.5)

    def test_element_type(self):
        result = weighted_overlay(WEIGHTS, loader=self.loader, dtype="float32")
        self.assertEqual(result.dtype, np.float32)
        self.assertTrue(relative_eq(result, Grid(RESULT), epsilon=1e-5))

    def test_concurrent_loading_matches_sequential(self):
        sequential = weighted_overlay(WEIGHTS, loader=self.loader, max_workers=1)
        concurrent = weighted_overlay(WEIGHTS, loader=MemoryLoader(SOURCES), max_workers=4)
        self.assertEqual(sequential, concurrent)


class TestOverlayErrors(unittest.TestCase):
    """Test error propagation."""

    def setUp(self):
        self.loader = MemoryLoader(dict(SOURCES, **{"data/small.asc": np.zeros((2, 2))}))

    def test_shape_mismatch(self):
        weights = {"data/data1.asc": 0.5, "data/small.asc": 0.5}
        with self.assertRaises(ShapeMismatch):
            weighted_overlay(weights, loader=self.loader)

    def test_shape_mismatch_with_seed_of_other_shape(self):
        weights = {"data/data1.asc": 0.5, "data/small.asc": 0.5}
        with self.assertRaises(ShapeMismatch):
            weighted_overlay(weights, loader=self.loader, seed="data/small.asc")

    def test_load_error_aborts_overlay(self):
        weights = dict(WEIGHTS, **{"data/missing.asc": 0.1})
        with self.assertRaises(PathNotFound):
            weighted_overlay(weights, loader=self.loader)

    def test_load_error_aborts_concurrent_overlay(self):
        weights = dict(WEIGHTS, **{"data/missing.asc": 0.1})
        with self.assertRaises(LoadError):
            weighted_overlay(weights, loader=self.loader, max_workers=3)

    def test_shape_mismatch_stops_concurrent_loading(self):
        weights = dict(WEIGHTS, **{"data/small.asc": 0.5})
        closed = []
        load_sources = overlay._load_sources

        def tracked(*args):
            try:
                yield from load_sources(*args)
            finally:
                closed.append(True)

        with mock.patch.object(overlay, "_load_sources", tracked):
            with self.assertRaises(ShapeMismatch):
                weighted_overlay(weights, loader=self.loader, max_workers=2)
            self.assertEqual(closed, [True])

    def test_unknown_seed(self):
        with self.assertRaises(KeyError):
            weighted_overlay(WEIGHTS, loader=self.loader, seed="data/other.asc")

    def test_invalid_weights(self):
        with self.assertRaises(ValueError):
            weighted_overlay({"data/data1.asc": float("nan")}, loader=self.loader)
        with self.assertRaises(ValueError):
            weighted_overlay({"data/data1.asc": "0.4"}, loader=self.loader)
        self.assertEqual(self.loader.calls, [])


class TestOverlayOrder(unittest.TestCase):
    """Test the deterministic folding order."""

    def test_sorted_by_key(self):
        self.assertEqual(overlay_order({"b": 1.0, "a": 1.0, "c": 1.0}), ["a", "b", "c"])

    def test_seed_first(self):
        self.assertEqual(overlay_order({"b": 1.0, "a": 1.0, "c": 1.0}, seed="c"), ["c", "a", "b"])


class TestOverlayGrids(unittest.TestCase):
    """Test the fold over already loaded grids."""

    def test_weighted_sum(self):
        pairs = [(Grid(SOURCES[name]), weight) for name, weight in WEIGHTS.items()]
        self.assertTrue(relative_eq(overlay_grids(pairs), Grid(RESULT), epsilon=1e-5))

    def test_empty(self):
        self.assertEqual(overlay_grids([]).shape, (0, 0))

    def test_shape_mismatch(self):
        with self.assertRaises(ShapeMismatch):
            overlay_grids([(Grid(np.ones((2, 2))), 1.0), (Grid(np.ones((2, 3))), 1.0)])


class TestOverlayFiles(unittest.TestCase):
    """Test the overlay of rasters stored as ASCII grids."""

    def setUp(self):
        self.tmp_dir = tempfile.mkdtemp()
        self.weights = save_sources(self.tmp_dir)

    def tearDown(self):
        shutil.rmtree(self.tmp_dir)

    def test_fallback_loader(self):
        result = weighted_overlay(self.weights, loader=load_grid_fallback)
        self.assertEqual(result.dtype, np.float32)
        self.assertTrue(relative_eq(result, Grid(RESULT), epsilon=1e-5))

    def test_rasterio_loader(self):
        result = weighted_overlay(self.weights, loader=load_grid)
        self.assertTrue(relative_eq(result, Grid(RESULT), epsilon=1e-5))

    def test_default_loader(self):
        result = weighted_overlay(self.weights)
        self.assertTrue(relative_eq(result, Grid(RESULT), epsilon=1e-5))

    def test_missing_file(self):
        weights = dict(self.weights, **{f"{self.tmp_dir}/missing.asc": 0.1})
        with self.assertRaises(PathNotFound):
            weighted_overlay(weights, loader=load_grid_fallback)

    def test_corrupt_file(self):
        path = f"{self.tmp_dir}/corrupt.asc"
        with open(path, "w") as f:
            f.write("ncols 4\nnrows 3\n1.0 2.0\n")
        weights = dict(self.weights, **{path: 0.1})
        with self.assertRaises(DecodeError):
            weighted_overlay(weights, loader=load_grid_fallback)

    def test_unreadable_source(self):
        path = os.path.join(self.tmp_dir, "folder.asc")
        os.mkdir(path)
        weights = dict(self.weights, **{path: 0.1})
        for loader in (load_grid, load_grid_fallback):
            with self.subTest(loader=loader.__name__):
                with self.assertRaises(IoError):
                    weighted_overlay(weights, loader=loader)

    def test_shape_mismatch(self):
        path = save_ascii_grid(f"{self.tmp_dir}/small.asc", np.ones((2, 2)))
        weights = dict(self.weights, **{path: 0.1})
        with self.assertRaises(ShapeMismatch):
            weighted_overlay(weights, loader=load_grid_fallback)


if __name__ == '__main__':
    unittest.main()

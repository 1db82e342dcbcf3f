#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Test suite for raster loading and writing.
"""

import os
import shutil
import tempfile
import unittest
import numpy as np

from raster_algebra.algebra.approx import relative_eq
from raster_algebra.core.exceptions import DecodeError, IoError, LoadError, PathNotFound
from raster_algebra.core.grid import Grid
from raster_algebra.core.io import get_loader, load_grid, load_grid_fallback, write_grid

from grid_fixtures import DATA1_ASC, DATA1_VALUES, RESULT


class TestLoaders(unittest.TestCase):
    """Test both loaders against the same files."""

    def setUp(self):
        self.tmp_dir = tempfile.mkdtemp()
        self.data1 = os.path.join(self.tmp_dir, "data1.asc")
        with open(self.data1, "w") as f:
            f.write(DATA1_ASC)
        self.expected = Grid.from_elements(3, 4, DATA1_VALUES, dtype="float32")

    def tearDown(self):
        shutil.rmtree(self.tmp_dir)

    def test_fallback_loader(self):
        grid = load_grid_fallback(self.data1)
        self.assertEqual(grid.shape, (3, 4))
        self.assertEqual(grid.dtype, np.float32)
        self.assertEqual(grid, self.expected)

    def test_rasterio_loader(self):
        grid = load_grid(self.data1)
        self.assertEqual(grid.shape, (3, 4))
        self.assertEqual(grid.dtype, np.float32)
        self.assertTrue(grid.abs_diff_eq(self.expected))
        self.assertTrue(grid.relative_eq(self.expected))
        self.assertTrue(grid.ulps_eq(self.expected, max_ulps=6))

    def test_no_data_values_are_kept(self):
        grid = load_grid_fallback(self.data1)
        self.assertEqual(float(grid.data[1, 3]), -32768.0)

    def test_requested_dtype(self):
        self.assertEqual(load_grid_fallback(self.data1, dtype="float64").dtype, np.float64)
        self.assertEqual(load_grid(self.data1, dtype="float64").dtype, np.float64)

    def test_missing_path(self):
        missing = os.path.join(self.tmp_dir, "missing.asc")
        for loader in (load_grid, load_grid_fallback):
            with self.assertRaises(PathNotFound) as ctx:
                loader(missing)
            self.assertEqual(ctx.exception.path, missing)

    def test_rasterio_decode_error(self):
        path = os.path.join(self.tmp_dir, "garbage.asc")
        with open(path, "w") as f:
            f.write("this is not a raster\n")
        with self.assertRaises(DecodeError):
            load_grid(path)

    def test_fallback_decode_errors(self):
        cases = {
            "missing_header.asc": "1.0 2.0\n3.0 4.0\n",
            "short.asc": "ncols 2\nnrows 2\n1.0 2.0 3.0\n",
            "bad_value.asc": "ncols 2\nnrows 1\n1.0 abc\n",
            "bad_header.asc": "ncols two\nnrows 1\n1.0 2.0\n",
        }
        for name, content in cases.items():
            path = os.path.join(self.tmp_dir, name)
            with open(path, "w") as f:
                f.write(content)
            with self.assertRaises(DecodeError, msg=name):
                load_grid_fallback(path)

    def test_binary_file_is_decode_error(self):
        path = os.path.join(self.tmp_dir, "binary.asc")
        with open(path, "wb") as f:
            f.write(b"\xff\xfe\x00\x81\x9f")
        with self.assertRaises(DecodeError):
            load_grid_fallback(path)

    def test_load_error_kinds(self):
        self.assertTrue(issubclass(PathNotFound, LoadError))
        self.assertTrue(issubclass(DecodeError, LoadError))
        self.assertTrue(issubclass(IoError, LoadError))

    def test_directory_is_io_error(self):
        for loader in (load_grid, load_grid_fallback):
            with self.subTest(loader=loader.__name__):
                with self.assertRaises(IoError) as cm:
                    loader(self.tmp_dir)
                self.assertEqual(cm.exception.path, self.tmp_dir)


class TestWriteGrid(unittest.TestCase):
    """Test writing grids to ASCII rasters."""

    def setUp(self):
        self.tmp_dir = tempfile.mkdtemp()

    def tearDown(self):
        shutil.rmtree(self.tmp_dir)

    def test_round_trip(self):
        grid = Grid(RESULT, dtype="float32")
        path = write_grid(grid, os.path.join(self.tmp_dir, "out", "result.asc"))
        self.assertTrue(os.path.exists(path))
        self.assertTrue(relative_eq(load_grid(path), grid, epsilon=1e-5))
        self.assertTrue(relative_eq(load_grid_fallback(path), grid, epsilon=1e-5))

    def test_empty_grid_rejected(self):
        with self.assertRaises(ValueError):
            write_grid(Grid.empty(), os.path.join(self.tmp_dir, "empty.asc"))


class TestGetLoader(unittest.TestCase):
    """Test loader lookup."""

    def test_known_loaders(self):
        self.assertIs(get_loader("rasterio"), load_grid)
        self.assertIs(get_loader("ascii"), load_grid_fallback)
        self.assertIs(get_loader(), load_grid)

    def test_unknown_loader(self):
        with self.assertRaises(ValueError):
            get_loader("netcdf")


if __name__ == '__main__':
    unittest.main()

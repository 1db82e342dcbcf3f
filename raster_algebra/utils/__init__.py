#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Utility modules for raster algebra.

This package contains general-purpose helpers shared across the package.
"""

#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Core functionality for raster algebra.

This module contains the core components: the grid container, raster
loading and writing, configuration management, error types and logging setup.
"""

#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Grid algebra.

This package contains the weighted overlay engine and the approximate
equality engine that operate on grids.
"""

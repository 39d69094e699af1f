# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations
"""
Utility package for docexport.
Exports:
- fs: filesystem helpers (safe filenames, path guards, sandbox dirs, container paths)
"""
from . import fs as fs  # re-export
__all__ = ["fs"]

# SPDX-License-Identifier: Apache-2.0
"""
docexport

Document export pipeline: LaTeX generation from a section tree and sandboxed
conversion to DOCX/PDF through an external converter.
Exposes nothing at import-time beyond package markers to keep startup fast.
"""
from __future__ import annotations

__all__ = []

# SPDX-License-Identifier: Apache-2.0
"""
Filesystem utilities: safe filenames, sandbox directories, path guards and
container bind-mount path mapping.
"""

from __future__ import annotations

import shutil
import tempfile
from pathlib import Path, PurePosixPath
from typing import Optional


# -------------------------- Names & directories --------------------------


def safe_filename(name: str, default: str = "document.docx") -> str:
    s = (name or "").strip().replace("\\", "/").split("/")[-1]
    s = "".join(ch for ch in s if ch.isalnum() or ch in ("-", "_", ".", " "))
    s = "_".join(s.split())  # collapse whitespace
    s = s.lstrip(".")
    return s or default


def temp_dir(prefix: str = "docexport-", root: Optional[Path] = None) -> Path:
    return Path(tempfile.mkdtemp(prefix=prefix, dir=str(root) if root else None)).resolve()


def remove_tree(path: Path) -> None:
    """Recursively and forcibly delete `path`. A missing directory is fine."""
    try:
        shutil.rmtree(path)
    except FileNotFoundError:
        pass


# ------------------------------- Path guards ------------------------------


def is_under(path: Path | str, root: Path | str) -> bool:
    p = Path(path).resolve()
    r = Path(root).resolve()
    try:
        p.relative_to(r)
        return True
    except ValueError:
        return False


# ------------------------ Container bind helpers -------------------------


def rewrite_for_container(path: Path | str, host_root: Path | str, container_root: str) -> Optional[str]:
    """
    If `path` is under `host_root`, rewrite it to the equivalent path below the
    container mount point. Otherwise return None.
    """
    p = Path(path).resolve()
    host_root = Path(host_root).resolve()
    try:
        rel = p.relative_to(host_root)
    except ValueError:
        return None
    return str(PurePosixPath(container_root).joinpath(*rel.parts))

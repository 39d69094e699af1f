# SPDX-License-Identifier: Apache-2.0
"""
Remote image staging: download http(s) \\includegraphics targets into the job
sandbox and point the source at the local copies.
"""
from __future__ import annotations

import re
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath
from typing import Dict, List, Optional
from urllib.parse import unquote, urlparse

import requests
import structlog

from .errors import ResourceFetchError

log = structlog.get_logger(__name__)

DEFAULT_EXTENSION = ".png"

_IMAGE_RE = re.compile(r"(\\includegraphics\s*(?:\[[^\]]*\])?\s*\{)\s*([^}]+?)\s*(\})")
_EXTENSION_RE = re.compile(r"^\.[a-z0-9]{1,5}$")


@dataclass(frozen=True)
class RemoteImage:
    ordinal: int
    url: str
    extension: str

    @property
    def filename(self) -> str:
        return f"img_{self.ordinal}{self.extension}"


@dataclass
class PreparedSource:
    text: str
    resources: List[Path] = field(default_factory=list)


def is_remote(target: str) -> bool:
    try:
        parsed = urlparse(target)
    except ValueError:
        return False
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def extension_for(url: str) -> str:
    """File extension from the URL path, `.png` when absent or implausible."""
    try:
        path = urlparse(url).path
    except ValueError:
        return DEFAULT_EXTENSION
    suffix = PurePosixPath(unquote(path)).suffix.lower()
    return suffix if _EXTENSION_RE.match(suffix) else DEFAULT_EXTENSION


def scan_remote_images(markup: str) -> List[RemoteImage]:
    """
    Distinct remote image targets in order of first appearance, numbered from 1.
    Numbering happens here, before any download starts, so it never depends on
    which fetch finishes first.
    """
    seen: Dict[str, RemoteImage] = {}
    for m in _IMAGE_RE.finditer(markup):
        target = m.group(2)
        if target in seen or not is_remote(target):
            continue
        seen[target] = RemoteImage(len(seen) + 1, target, extension_for(target))
    return list(seen.values())


def _fetch(http: requests.Session, image: RemoteImage, timeout: Optional[float]) -> bytes:
    try:
        resp = http.get(image.url, timeout=timeout)
    except requests.RequestException as e:
        raise ResourceFetchError(image.url, str(e)) from e
    if not 200 <= resp.status_code < 300:
        raise ResourceFetchError(image.url, f"HTTP {resp.status_code} {resp.reason or ''}".strip())
    return resp.content


def prepare_resources(
    markup: str,
    sandbox: Path,
    session: Optional[requests.Session] = None,
    timeout: Optional[float] = None,
    max_workers: int = 4,
    link_root: Optional[str] = None,
) -> PreparedSource:
    """
    Download every remote image referenced by the markup into `sandbox` as
    img_<n>.<ext> and rewrite all references to it. References point below
    `link_root` when the converter sees the sandbox under another path
    (a container mount), otherwise at the sandbox itself. A failed download is
    logged and leaves that URL as it was; it never fails the job.
    """
    images = scan_remote_images(markup)
    if not images:
        return PreparedSource(text=markup)

    sandbox = Path(sandbox)
    http = session or requests.Session()
    local: Dict[str, Path] = {}
    try:
        workers = max(1, min(max_workers, len(images)))
        with ThreadPoolExecutor(max_workers=workers) as pool:
            futures = {pool.submit(_fetch, http, image, timeout): image for image in images}
            for fut in as_completed(futures):
                image = futures[fut]
                try:
                    data = fut.result()
                except ResourceFetchError as e:
                    log.warning("image fetch failed", url=e.url, reason=e.reason, ordinal=image.ordinal)
                    continue
                path = sandbox / image.filename
                path.write_bytes(data)
                local[image.url] = path
                log.debug("image staged", url=image.url, path=str(path), size=len(data))
    finally:
        if session is None:
            http.close()

    def _rewrite(m: re.Match) -> str:
        path = local.get(m.group(2))
        if path is None:
            return m.group(0)
        link = f"{link_root.rstrip('/')}/{path.name}" if link_root else path.as_posix()
        return f"{m.group(1)}{link}{m.group(3)}"

    text = _IMAGE_RE.sub(_rewrite, markup)
    resources = [local[image.url] for image in images if image.url in local]
    return PreparedSource(text=text, resources=resources)

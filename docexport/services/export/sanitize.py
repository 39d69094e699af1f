# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

import re

# pandoc's LaTeX reader does its own citation processing (--citeproc); the
# biblatex backend and its resource file only get in the way.
_BIBLATEX_PACKAGE_RE = re.compile(r"\\usepackage\s*(?:\[[^\]]*\])?\s*\{\s*biblatex\s*\}")
_ADDBIBRESOURCE_RE = re.compile(r"\\addbibresource\s*(?:\[[^\]]*\])?\s*\{[^}]*\}")


def sanitize_source(source: str) -> str:
    """Strip the bibliography directives the converter cannot handle."""
    cleaned = _BIBLATEX_PACKAGE_RE.sub("", source)
    return _ADDBIBRESOURCE_RE.sub("", cleaned)

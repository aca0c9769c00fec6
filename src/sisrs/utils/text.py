# src/sisrs/utils/text.py
from __future__ import annotations

import re

_UNSAFE = re.compile(r"[^A-Za-z0-9._-]+")


def slugify(s: str) -> str:
    """Filesystem-safe name: runs of characters outside [A-Za-z0-9._-] become '_'."""
    return _UNSAFE.sub("_", s).strip("-_.") or "x"

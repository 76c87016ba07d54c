# backend/sandbox.py
import os
import posixpath
import re
from pathlib import Path
from typing import Optional, Union

from errors import InvalidPath, PathEscape

# One or more leading "../" segments left over after normpath.
_PARENT_PREFIX = re.compile(r"^(\.\.(/|$))+")


def normalize_relative(requested: Optional[str]) -> str:
    """
    Turn client input into the canonical relative key used everywhere else:
    forward slashes, no "."/".." segments, no leading or trailing slash,
    "" for the root. Attempts to climb above the root are clamped, not rejected.
    """
    raw = requested or ""
    if "\x00" in raw:
        raise InvalidPath("Path contains a NUL byte", raw)

    cleaned = posixpath.normpath(raw.replace("\\", "/"))
    cleaned = _PARENT_PREFIX.sub("", cleaned)
    cleaned = cleaned.lstrip("/")
    if cleaned == ".":
        return ""
    return cleaned


def join_relative(parent: str, name: str) -> str:
    return f"{parent}/{name}" if parent else name


def _is_within(base: str, target: str) -> bool:
    if target == base:
        return True
    prefix = base if base.endswith(os.sep) else base + os.sep
    return target.startswith(prefix)


def resolve(root: Union[str, Path], requested: Optional[str]) -> Path:
    base = os.path.abspath(root)
    rel = normalize_relative(requested)
    if not rel:
        return Path(base)

    target = os.path.normpath(os.path.join(base, *rel.split("/")))
    # Final guard; the clamp above should already make this unreachable.
    if not _is_within(base, target):
        raise PathEscape("Path escapes tree root", requested or "")
    return Path(target)


def is_portable_name(name: str) -> bool:
    """False for names that are not valid UTF-8 on disk (surrogate-escaped by os.scandir)."""
    try:
        name.encode("utf-8")
    except UnicodeEncodeError:
        return False
    return True

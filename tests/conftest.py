"""
Shared fixtures: put backend/ on sys.path and build small trees on disk.
"""

import os
import sys
from pathlib import Path
from typing import Dict, Optional, Union

import pytest

_BACKEND_PATH = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", "backend"))
if _BACKEND_PATH not in sys.path:
    sys.path.insert(0, _BACKEND_PATH)


def set_mtime_ms(path: Path, ms: int) -> None:
    ns = ms * 1_000_000
    os.utime(path, ns=(ns, ns), follow_symlinks=False)


def build_tree(root: Path, layout: Dict[str, Optional[Union[bytes, int]]], mtimes: Optional[Dict[str, int]] = None) -> Path:
    """
    layout maps relative paths to file content: bytes, an int (that many
    bytes of "x"), or None for an empty directory. Parent dirs are created.
    """
    root.mkdir(parents=True, exist_ok=True)
    for rel, content in layout.items():
        target = root.joinpath(*rel.split("/"))
        if content is None:
            target.mkdir(parents=True, exist_ok=True)
            continue
        target.parent.mkdir(parents=True, exist_ok=True)
        if isinstance(content, int):
            content = b"x" * content
        target.write_bytes(content)
    # Deepest first so setting a file time does not disturb a parent set later.
    for rel in sorted(mtimes or {}, key=lambda r: r.count("/"), reverse=True):
        set_mtime_ms(root.joinpath(*rel.split("/")) if rel else root, mtimes[rel])
    return root


@pytest.fixture
def make_tree(tmp_path):
    def _make(layout, mtimes=None, name="public"):
        return build_tree(tmp_path / name, layout, mtimes)
    return _make


@pytest.fixture
def scenario_tree(make_tree):
    """docs/a.txt (100 bytes) and b.txt (50 bytes)."""
    return make_tree(
        {"docs/a.txt": 100, "b.txt": 50},
        mtimes={"docs/a.txt": 1_700_000_100_000, "b.txt": 1_700_000_050_000, "docs": 1_600_000_000_000},
    )

# backend/generate_meta.py
"""
Offline generator for the metadata table served alongside the tree.

Walks the whole tree once, depth-first and post-order, and writes
<root>/_meta.json. File times come from git history when available and
fall back to filesystem mtimes; a directory takes the newest time found
anywhere beneath it. Any unreadable entry aborts the run before anything
is written.
"""
import argparse
import datetime
import logging
import os
import stat
import sys
import tempfile
from pathlib import Path
from typing import Dict, FrozenSet, List, Optional, Union

from config import HOUSEKEEPING_NAMES, load_generator_settings
from errors import StatFailure, TreeViewError
from models import MetaEntry, MetadataTable
from sandbox import is_portable_name, join_relative
from timestamps import GitTimestampOracle, NullTimestampOracle, TimestampOracle, fs_mtime_ms

logger = logging.getLogger("meta")


def _stat(abs_path: Path, rel: str) -> os.stat_result:
    try:
        return os.stat(abs_path)
    except OSError as e:
        raise StatFailure(f"Cannot stat entry: {e.strerror or e}", rel) from e


def _child_names(abs_path: Path, rel: str) -> List[str]:
    try:
        with os.scandir(abs_path) as it:
            return sorted(e.name for e in it)
    except OSError as e:
        raise StatFailure(f"Cannot read directory: {e.strerror or e}", rel) from e


def file_time_ms(oracle: TimestampOracle, rel: str, st: os.stat_result) -> int:
    try:
        t = oracle.change_time_ms(rel)
    except Exception as e:
        # One bad lookup must not sink the walk.
        logger.debug(f"[META] Timestamp lookup failed for '{rel}': {e}")
        t = None
    if isinstance(t, int) and not isinstance(t, bool) and t > 0:
        return t
    return fs_mtime_ms(st)


def _walk(
    root: Path,
    rel: str,
    out: Dict[str, MetaEntry],
    oracle: TimestampOracle,
    output_name: str,
    ancestors: FrozenSet[tuple],
) -> int:
    abs_path = root.joinpath(*rel.split("/")) if rel else root
    st = _stat(abs_path, rel)

    if not stat.S_ISDIR(st.st_mode):
        mtime = file_time_ms(oracle, rel, st)
        out[rel] = MetaEntry(type="file", size=st.st_size, mtime_ms=mtime)
        return mtime

    node = (st.st_dev, st.st_ino)
    if node in ancestors:
        raise StatFailure("Directory cycle through a symlink", rel)

    child_times = []
    for name in _child_names(abs_path, rel):
        if name in HOUSEKEEPING_NAMES:
            continue
        if not is_portable_name(name):
            logger.warning(f"[META] Skipping non-UTF-8 name in '{rel or '/'}': {name!r}")
            continue
        if not rel and name == output_name:
            continue
        child_times.append(_walk(root, join_relative(rel, name), out, oracle, output_name, ancestors | {node}))

    mtime = max(child_times) if child_times else fs_mtime_ms(st)
    out[rel] = MetaEntry(type="dir", size=None, mtime_ms=mtime)
    return mtime


def utc_now_iso() -> str:
    now = datetime.datetime.now(datetime.timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def generate(
    root: Union[str, Path],
    oracle: Optional[TimestampOracle] = None,
    output_name: str = "_meta.json",
) -> MetadataTable:
    root = Path(root).resolve()
    if not root.is_dir():
        raise StatFailure(f"Tree root is not a directory: {root}")
    oracle = oracle or NullTimestampOracle()

    entries: Dict[str, MetaEntry] = {}
    _walk(root, "", entries, oracle, output_name, frozenset())
    return MetadataTable(entries, generated_at=utc_now_iso(), source=oracle.name)


def write_table(root: Union[str, Path], table: MetadataTable, output_name: str = "_meta.json") -> Path:
    """Write atomically: a reader sees the old file or the complete new one."""
    root = Path(root)
    dest = root / output_name
    payload = table.to_meta_file().model_dump_json(by_alias=True)

    fd, tmp_name = tempfile.mkstemp(prefix=f".{output_name}.", suffix=".tmp", dir=root)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(payload)
        os.replace(tmp_name, dest)
    except BaseException:
        try:
            os.remove(tmp_name)
        except OSError:
            pass
        raise
    return dest


def _parse_args(argv: Optional[List[str]]) -> argparse.Namespace:
    settings = load_generator_settings()
    p = argparse.ArgumentParser(description="Generate the listing metadata file for a static tree.")
    p.add_argument("--root", default=str(settings.root), help="tree root (default: $TREE_ROOT or ./public)")
    p.add_argument("--output", default=settings.meta_filename, help="file name written under the root")
    p.add_argument("--no-git", action="store_true", help="use filesystem times only")
    p.add_argument("--git-timeout", type=float, default=settings.git_timeout_seconds, help="seconds per git lookup")
    p.add_argument("-v", "--verbose", action="store_true")
    return p.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = _parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s | %(levelname)s | %(message)s",
    )

    root = Path(args.root)
    oracle = NullTimestampOracle() if args.no_git else GitTimestampOracle(root, timeout_seconds=args.git_timeout)
    try:
        table = generate(root, oracle=oracle, output_name=args.output)
        dest = write_table(root, table, output_name=args.output)
    except TreeViewError as e:
        logger.error(f"[META] Generation aborted at '{e.path}': {e.message}")
        return 1

    logger.info(f"[META] Wrote {len(table)} entries to {dest} (source={table.source})")
    return 0


if __name__ == "__main__":
    sys.exit(main())

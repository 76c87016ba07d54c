# backend/listing.py
import asyncio
import logging
import os
from pathlib import Path
from typing import AbstractSet, Iterable, List, Optional, Tuple, Union

from pyuca import Collator

from config import HOUSEKEEPING_NAMES
from errors import MissingMetadataEntry, NotADirectory, NotFound
from metadata_store import MetadataStore
from models import ListedItem, ListingResult, MetadataTable
from sandbox import is_portable_name, join_relative, normalize_relative, resolve
from timestamps import fs_mtime_ms

logger = logging.getLogger("listing")
if not logger.handlers:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s | %(levelname)s | %(message)s")


_collator = None


def _get_collator():
    global _collator
    if _collator is None:
        _collator = Collator()
    return _collator


def name_sort_key(name: str) -> Tuple[tuple, str]:
    # Unicode Collation Algorithm order (what ICU localeCompare uses at the root locale);
    # the exact name breaks any remaining ties.
    return tuple(_get_collator().sort_key(name)), name


def sort_items(items: Iterable[ListedItem]) -> List[ListedItem]:
    return sorted(items, key=lambda it: (it.type != "dir", name_sort_key(it.name)))


def _scan(directory: Path, rel: str) -> List[Tuple[str, bool]]:
    try:
        with os.scandir(directory) as it:
            return [(e.name, e.is_dir()) for e in it]
    except FileNotFoundError as e:
        raise NotFound("No such directory", rel) from e
    except NotADirectoryError as e:
        raise NotADirectory("Not a directory", rel) from e
    except OSError as e:
        raise NotFound(f"Cannot read directory: {e.strerror or e}", rel) from e


def _visible(names: Iterable[Tuple[str, bool]], at_root: bool, reserved: AbstractSet[str]):
    for name, is_dir in names:
        if name in HOUSEKEEPING_NAMES:
            continue
        if not is_portable_name(name):
            logger.warning(f"[LIST] Skipping non-UTF-8 name {name!r}")
            continue
        if at_root and name in reserved:
            continue
        yield name, is_dir


async def _live_item(abs_path: Path, name: str, rel: str, is_dir: bool) -> ListedItem:
    try:
        st = await asyncio.to_thread(os.stat, abs_path)
    except OSError:
        # Dangling symlink: describe the link itself.
        try:
            st = await asyncio.to_thread(os.lstat, abs_path)
        except OSError as e:
            raise NotFound(f"Entry vanished while listing: {e.strerror or e}", rel) from e
        logger.warning(f"[LIST] '{rel}' does not resolve; using the link's own stat")
    return ListedItem(
        name=name,
        path=rel,
        type="dir" if is_dir else "file",
        size=None if is_dir else st.st_size,
        mtime_ms=fs_mtime_ms(st),
    )


async def list_directory(
    root: Union[str, Path],
    table: Optional[MetadataTable],
    requested: Optional[str],
    reserved_root_names: AbstractSet[str] = frozenset(),
    strict: bool = False,
) -> ListingResult:
    """
    List the immediate children of `requested` under `root`.

    Type comes from the live directory entry. Size and mtime come from the
    table record at the child's relative path when it exists and agrees on
    type; otherwise from a live stat, or MissingMetadataEntry when strict.
    """
    rel_dir = normalize_relative(requested)
    abs_dir = resolve(root, requested)

    children = await asyncio.to_thread(_scan, abs_dir, rel_dir)

    items: List[ListedItem] = []
    live: List[Tuple[str, str, bool]] = []
    for name, is_dir in _visible(children, rel_dir == "", reserved_root_names):
        rel = join_relative(rel_dir, name)
        kind = "dir" if is_dir else "file"
        record = table.lookup(rel) if table is not None else None

        if record is not None and record.type == kind:
            items.append(ListedItem(name=name, path=rel, type=kind, size=record.size, mtime_ms=record.mtime_ms))
            continue

        if table is not None:
            if strict:
                raise MissingMetadataEntry("Metadata table has no entry for this path; regenerate it", rel)
            why = "missing" if record is None else f"recorded as {record.type}"
            logger.warning(f"[LIST] Stale metadata for '{rel}' ({why}); using live stat")
        live.append((name, rel, is_dir))

    if live:
        items.extend(await asyncio.gather(*(_live_item(abs_dir / name, name, rel, is_dir) for name, rel, is_dir in live)))

    return ListingResult(path=rel_dir, items=tuple(sort_items(items)))


class ListingEngine:
    """Request-time listing service; owns the lazily loaded metadata store."""

    def __init__(
        self,
        root: Union[str, Path],
        store: MetadataStore,
        reserved_root_names: AbstractSet[str] = frozenset(),
        strict: bool = False,
    ):
        self.root = Path(root)
        self.store = store
        self.reserved_root_names = frozenset(reserved_root_names)
        self.strict = strict

    async def list(self, requested: Optional[str] = "") -> ListingResult:
        # Reject bad input before touching the metadata file.
        resolve(self.root, requested)
        table = await self.store.get()
        return await list_directory(
            self.root,
            table,
            requested,
            reserved_root_names=self.reserved_root_names,
            strict=self.strict,
        )

# backend/metadata_store.py
import asyncio
import logging
from pathlib import Path
from typing import Optional, Union

from pydantic import ValidationError

from errors import MetadataUnavailable
from models import MetadataTable, MetaFile

logger = logging.getLogger("meta")
if not logger.handlers:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s | %(levelname)s | %(message)s")


def load_table(path: Union[str, Path]) -> Optional[MetadataTable]:
    """
    Read and validate a generated metadata file.
    Returns None when the file does not exist; raises MetadataUnavailable
    when it exists but cannot be read or parsed.
    """
    path = Path(path)
    try:
        raw = path.read_bytes()
    except FileNotFoundError:
        return None
    except OSError as e:
        raise MetadataUnavailable(f"Cannot read metadata file: {e}", path.name) from e

    try:
        meta = MetaFile.model_validate_json(raw)
    except ValidationError as e:
        raise MetadataUnavailable(f"Malformed metadata file: {e.error_count()} error(s)", path.name) from e
    return MetadataTable.from_meta_file(meta)


class MetadataStore:
    """
    Lazily loads the metadata table once and keeps it for the lifetime of the store.
    With strict=True a missing file is an error instead of "no metadata".
    """

    def __init__(self, root: Union[str, Path], filename: str = "_meta.json", strict: bool = False):
        self.path = Path(root) / filename
        self.strict = strict
        self._loaded = False
        self._table: Optional[MetadataTable] = None
        self._lock = asyncio.Lock()

    @property
    def loaded(self) -> bool:
        return self._loaded

    async def get(self) -> Optional[MetadataTable]:
        if self._loaded:
            return self._table
        async with self._lock:
            if not self._loaded:
                table = await asyncio.to_thread(load_table, self.path)
                if table is None:
                    if self.strict:
                        raise MetadataUnavailable("Metadata file is missing", self.path.name)
                    logger.warning(f"[META] {self.path} not found; serving live filesystem stats")
                else:
                    logger.info(f"[META] Loaded {len(table)} entries from {self.path} (generated {table.generated_at})")
                self._table = table
                self._loaded = True
        return self._table

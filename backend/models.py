# backend/models.py
from typing import Dict, Iterator, Literal, Mapping, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, NonNegativeInt, field_validator, model_validator

EntryType = Literal["dir", "file"]

BASE_URL = "/"


def _coerce_ms(v):
    # Older meta files carried fractional stat times.
    if isinstance(v, float):
        return int(round(v))
    return v


def _check_size(entry_type: str, size: Optional[int]) -> None:
    if entry_type == "dir" and size is not None:
        raise ValueError("directories never carry a size")
    if entry_type == "file" and size is None:
        raise ValueError("files must carry a size")


class MetaEntry(BaseModel):
    """One record of the metadata table."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    type: EntryType
    size: Optional[NonNegativeInt] = None
    mtime_ms: int = Field(alias="mtimeMs")

    @field_validator("mtime_ms", mode="before")
    @classmethod
    def round_mtime(cls, v):
        return _coerce_ms(v)

    @model_validator(mode="after")
    def size_matches_type(self):
        _check_size(self.type, self.size)
        return self


class ListedItem(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str
    path: str
    type: EntryType
    size: Optional[NonNegativeInt] = None
    mtime_ms: int = Field(alias="mtimeMs")

    @field_validator("mtime_ms", mode="before")
    @classmethod
    def round_mtime(cls, v):
        return _coerce_ms(v)

    @model_validator(mode="after")
    def size_matches_type(self):
        _check_size(self.type, self.size)
        return self


class ListingResult(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    base_url: str = Field(default=BASE_URL, alias="baseUrl")
    path: str
    items: Tuple[ListedItem, ...] = ()


class MetaFile(BaseModel):
    """On-disk layout of the generated metadata file."""

    model_config = ConfigDict(populate_by_name=True)

    generated_at: str = Field(alias="generatedAt")
    timezone: str = "UTC"
    source: str = "fs"
    entries: Dict[str, MetaEntry]


class MetadataTable(Mapping[str, MetaEntry]):
    """Read-only path -> MetaEntry index; keys are normalized relative paths."""

    def __init__(self, entries: Mapping[str, MetaEntry], generated_at: str = "", source: str = "fs"):
        self._entries: Dict[str, MetaEntry] = {k.strip("/"): v for k, v in entries.items()}
        self.generated_at = generated_at
        self.source = source

    def __getitem__(self, key: str) -> MetaEntry:
        return self._entries[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def lookup(self, path: str) -> Optional[MetaEntry]:
        return self._entries.get(path)

    @classmethod
    def from_meta_file(cls, meta: MetaFile) -> "MetadataTable":
        return cls(meta.entries, generated_at=meta.generated_at, source=meta.source)

    def to_meta_file(self) -> MetaFile:
        return MetaFile(
            generated_at=self.generated_at,
            timezone="UTC",
            source=self.source,
            entries={k: self._entries[k] for k in sorted(self._entries)},
        )

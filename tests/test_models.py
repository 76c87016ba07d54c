import pytest
from pydantic import ValidationError

from models import ListedItem, ListingResult, MetaEntry, MetadataTable, MetaFile


def test_meta_entry_accepts_wire_names():
    e = MetaEntry.model_validate({"type": "file", "size": 5, "mtimeMs": 1700000000000})
    assert e.mtime_ms == 1700000000000
    assert e.model_dump(by_alias=True) == {"type": "file", "size": 5, "mtimeMs": 1700000000000}


def test_fractional_mtime_is_rounded():
    e = MetaEntry.model_validate({"type": "file", "size": 1, "mtimeMs": 1700000000000.6})
    assert e.mtime_ms == 1700000000001


@pytest.mark.parametrize(
    "record",
    [
        {"type": "dir", "size": 10, "mtimeMs": 1},
        {"type": "file", "size": None, "mtimeMs": 1},
        {"type": "file", "mtimeMs": 1},
        {"type": "file", "size": -1, "mtimeMs": 1},
        {"type": "link", "size": None, "mtimeMs": 1},
        {"type": "file", "size": 1},
    ],
)
def test_meta_entry_rejects_inconsistent_records(record):
    with pytest.raises(ValidationError):
        MetaEntry.model_validate(record)


def test_listed_item_is_frozen():
    item = ListedItem(name="a", path="a", type="dir", size=None, mtime_ms=1)
    with pytest.raises(ValidationError):
        item.name = "b"


def test_listing_result_wire_shape():
    res = ListingResult(path="docs", items=(ListedItem(name="a.txt", path="docs/a.txt", type="file", size=3, mtime_ms=9),))
    assert res.model_dump(by_alias=True) == {
        "baseUrl": "/",
        "path": "docs",
        "items": [{"name": "a.txt", "path": "docs/a.txt", "type": "file", "size": 3, "mtimeMs": 9}],
    }


def test_table_normalizes_keys_and_sorts_on_dump():
    table = MetadataTable(
        {
            "/docs/": MetaEntry(type="dir", mtime_ms=2),
            "": MetaEntry(type="dir", mtime_ms=2),
            "b.txt": MetaEntry(type="file", size=1, mtime_ms=1),
        },
        generated_at="2024-01-01T00:00:00.000Z",
    )
    assert table.lookup("docs").type == "dir"
    assert table.lookup("missing") is None
    assert "" in table and len(table) == 3

    meta = table.to_meta_file()
    assert list(meta.entries) == ["", "b.txt", "docs"]
    assert meta.timezone == "UTC"


def test_meta_file_round_trip_preserves_source():
    raw = '{"generatedAt": "2024-01-01T00:00:00.000Z", "timezone": "UTC", "source": "git+fs", "entries": {"": {"type": "dir", "size": null, "mtimeMs": 5}}}'
    table = MetadataTable.from_meta_file(MetaFile.model_validate_json(raw))
    assert table.source == "git+fs"
    assert table.generated_at == "2024-01-01T00:00:00.000Z"
    assert table[""].mtime_ms == 5

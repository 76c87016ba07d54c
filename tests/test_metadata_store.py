import asyncio
import json

import pytest

from errors import MetadataUnavailable
from metadata_store import MetadataStore, load_table


def _write_meta(root, entries, name="_meta.json"):
    (root / name).write_text(
        json.dumps({"generatedAt": "2024-01-01T00:00:00.000Z", "timezone": "UTC", "source": "fs", "entries": entries}),
        encoding="utf-8",
    )


def test_load_table_missing_file_is_none(tmp_path):
    assert load_table(tmp_path / "_meta.json") is None


def test_load_table_rejects_garbage(tmp_path):
    (tmp_path / "_meta.json").write_text("{not json", encoding="utf-8")
    with pytest.raises(MetadataUnavailable):
        load_table(tmp_path / "_meta.json")


def test_load_table_rejects_invalid_record(tmp_path):
    _write_meta(tmp_path, {"a": {"type": "dir", "size": 3, "mtimeMs": 1}})
    with pytest.raises(MetadataUnavailable):
        load_table(tmp_path / "_meta.json")


def test_fallback_store_tolerates_missing_file(tmp_path):
    store = MetadataStore(tmp_path)
    assert asyncio.run(store.get()) is None
    assert store.loaded


def test_strict_store_requires_file(tmp_path):
    store = MetadataStore(tmp_path, strict=True)
    with pytest.raises(MetadataUnavailable):
        asyncio.run(store.get())
    assert not store.loaded


def test_table_is_loaded_once(tmp_path):
    _write_meta(tmp_path, {"": {"type": "dir", "size": None, "mtimeMs": 1}})
    store = MetadataStore(tmp_path)
    first = asyncio.run(store.get())

    # Later changes on disk are not picked up without a new store.
    _write_meta(tmp_path, {"": {"type": "dir", "size": None, "mtimeMs": 2}})
    second = asyncio.run(store.get())
    assert second is first
    assert second[""].mtime_ms == 1


def test_concurrent_first_callers_share_one_table(tmp_path):
    _write_meta(tmp_path, {"": {"type": "dir", "size": None, "mtimeMs": 1}})
    store = MetadataStore(tmp_path)

    async def many():
        return await asyncio.gather(*(store.get() for _ in range(8)))

    tables = asyncio.run(many())
    assert all(t is tables[0] for t in tables)


def test_failed_load_is_retried(tmp_path):
    (tmp_path / "_meta.json").write_text("oops", encoding="utf-8")
    store = MetadataStore(tmp_path)
    with pytest.raises(MetadataUnavailable):
        asyncio.run(store.get())

    _write_meta(tmp_path, {"": {"type": "dir", "size": None, "mtimeMs": 1}})
    assert len(asyncio.run(store.get())) == 1


def test_custom_filename(tmp_path):
    _write_meta(tmp_path, {"": {"type": "dir", "size": None, "mtimeMs": 7}}, name="meta.json")
    store = MetadataStore(tmp_path, filename="meta.json")
    assert asyncio.run(store.get())[""].mtime_ms == 7

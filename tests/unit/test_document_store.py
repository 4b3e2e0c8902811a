"""Unit tests for the JSON document store."""

import os
import threading

import pytest

from survey_gateway.persistence.document_store import DocumentStore, validate_key
from survey_gateway.persistence.errors import (
    CorruptDocument,
    EncodeFailure,
    ReadFailure,
    StoreUnavailable,
    WriteFailure,
)


class TestRead:
    """Tests for reading documents."""

    def test_absent_document_reads_as_none(self, store):
        """Reading a key that was never written is not an error."""
        assert store.read("survey_schema") is None
        assert store.exists("survey_schema") is False

    def test_read_does_not_create_data_dir(self, store, data_dir):
        """Reads never touch the filesystem beyond the lookup."""
        store.read("survey_schema")
        assert not data_dir.exists()

    def test_invalid_json_raises_corrupt_document(self, store, data_dir):
        """Non-JSON bytes are reported, not discarded."""
        data_dir.mkdir()
        (data_dir / "survey_schema.json").write_text("{not json", encoding="utf-8")

        with pytest.raises(CorruptDocument) as exc_info:
            store.read("survey_schema")

        assert exc_info.value.key == "survey_schema"
        assert (data_dir / "survey_schema.json").read_text(encoding="utf-8") == "{not json"

    def test_invalid_utf8_raises_corrupt_document(self, store, data_dir):
        """Undecodable bytes count as corruption."""
        data_dir.mkdir()
        (data_dir / "survey_schema.json").write_bytes(b"\xff\xfe\x00garbage")

        with pytest.raises(CorruptDocument):
            store.read("survey_schema")

    def test_empty_file_raises_corrupt_document(self, store, data_dir):
        """A zero-byte document is not valid JSON."""
        data_dir.mkdir()
        (data_dir / "survey_results.json").write_bytes(b"")

        with pytest.raises(CorruptDocument):
            store.read("survey_results")

    def test_unreadable_path_raises_read_failure(self, store, data_dir):
        """A directory where the document should be is a medium error."""
        (data_dir / "survey_schema.json").mkdir(parents=True)

        with pytest.raises(ReadFailure):
            store.read("survey_schema")

    def test_deeply_nested_file_raises_corrupt_document(self, store, data_dir):
        """Nesting too deep to parse is reported as corruption."""
        data_dir.mkdir()
        (data_dir / "survey_results.json").write_text("[" * 100000 + "]" * 100000, encoding="utf-8")

        with pytest.raises(CorruptDocument) as exc_info:
            store.read("survey_results")

        assert exc_info.value.key == "survey_results"


class TestWrite:
    """Tests for atomic document writes."""

    def test_write_then_read_round_trip(self, store):
        """Written documents read back structurally equal."""
        document = {"pages": [{"name": "page1", "elements": [{"type": "text", "name": "q1"}]}]}

        store.write("survey_schema", document)

        assert store.read("survey_schema") == document
        assert store.exists("survey_schema") is True

    def test_write_creates_data_dir(self, tmp_path):
        """First write creates any missing parent directories."""
        data_dir = tmp_path / "nested" / "data"
        store = DocumentStore(data_dir)

        store.write("survey_schema", {"pages": []})

        assert (data_dir / "survey_schema.json").is_file()

    def test_write_returns_bytes_persisted(self, store, data_dir):
        """The returned byte count matches the file on disk."""
        bytes_written = store.write("survey_schema", {"title": "Encuesta"})

        assert bytes_written == (data_dir / "survey_schema.json").stat().st_size

    def test_write_is_pretty_printed_and_keeps_unicode(self, store, data_dir):
        """Documents are indented and non-ASCII text is not escaped."""
        store.write("survey_results", [{"results": {"q1": "café ✓"}}])

        text = (data_dir / "survey_results.json").read_text(encoding="utf-8")
        assert "café ✓" in text
        assert "\\u" not in text
        assert "\n  " in text

    def test_write_replaces_previous_document(self, store):
        """A write fully replaces the prior value (no merge)."""
        store.write("survey_schema", {"a": 1, "b": 2})
        store.write("survey_schema", {"c": 3})

        assert store.read("survey_schema") == {"c": 3}

    def test_write_leaves_no_temp_files(self, store, data_dir):
        """Temporary files are renamed into place."""
        store.write("survey_schema", {"a": 1})
        store.write("survey_schema", {"a": 2})

        assert sorted(p.name for p in data_dir.iterdir()) == ["survey_schema.json"]

    def test_unserializable_document_raises_encode_failure(self, store):
        """Values JSON cannot represent are rejected before touching disk."""
        store.write("survey_schema", {"keep": True})

        with pytest.raises(EncodeFailure):
            store.write("survey_schema", {"bad": object()})
        with pytest.raises(EncodeFailure):
            store.write("survey_schema", {"bad": float("nan")})

        assert store.read("survey_schema") == {"keep": True}

    def test_deeply_nested_document_raises_encode_failure(self, store):
        """Nesting too deep to serialize is an EncodeFailure, not a crash."""
        store.write("survey_results", [])
        nested: list = []
        for _ in range(5000):
            nested = [nested]

        with pytest.raises(EncodeFailure) as exc_info:
            store.write("survey_results", [{"results": {"q1": nested}}])

        assert "nesting too deep" in exc_info.value.message
        assert store.read("survey_results") == []

    def test_failed_replace_keeps_previous_document(self, store, data_dir, monkeypatch):
        """A failed write leaves the earlier document intact."""
        store.write("survey_schema", {"version": 1})

        def broken_replace(src, dst):
            raise OSError(28, "No space left on device")

        monkeypatch.setattr(os, "replace", broken_replace)

        with pytest.raises(WriteFailure) as exc_info:
            store.write("survey_schema", {"version": 2})

        monkeypatch.undo()
        assert exc_info.value.key == "survey_schema"
        assert store.read("survey_schema") == {"version": 1}
        assert sorted(p.name for p in data_dir.iterdir()) == ["survey_schema.json"]

    def test_uncreatable_data_dir_raises_store_unavailable(self, tmp_path):
        """A data directory that cannot be created is reported."""
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory", encoding="utf-8")
        store = DocumentStore(blocker / "data")

        with pytest.raises(StoreUnavailable):
            store.write("survey_schema", {"pages": []})


class TestKeys:
    """Tests for key validation."""

    @pytest.mark.parametrize("key", ["", "../escape", "a/b", ".hidden", "with space"])
    def test_rejects_unsafe_keys(self, store, key):
        """Keys must be plain file names."""
        with pytest.raises(ValueError):
            store.path_for(key)

    def test_validate_key_returns_plain_names(self):
        assert validate_key("survey_results.v2") == "survey_results.v2"

    def test_path_for_uses_json_suffix(self, store, data_dir):
        """Each key maps to <data_dir>/<key>.json."""
        assert store.path_for("survey_results") == data_dir / "survey_results.json"


class TestConcurrency:
    """Tests for concurrent writers."""

    def test_concurrent_writers_leave_one_complete_document(self, store):
        """Parallel writes never interleave bytes."""
        documents = [
            {"writer": i, "payload": ["x" * 200] * 50} for i in range(16)
        ]
        threads = [
            threading.Thread(target=store.write, args=("survey_schema", doc))
            for doc in documents
        ]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert store.read("survey_schema") in documents

    def test_lock_is_reentrant_for_writes(self, store):
        """write may be called while the caller holds the key lock."""
        with store.lock("survey_results"):
            entries = store.read("survey_results") or []
            entries.append({"n": 1})
            store.write("survey_results", entries)

        assert store.read("survey_results") == [{"n": 1}]

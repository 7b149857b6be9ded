"""Tests for whole-document I/O and backups."""

import json

import pytest

from tasktags.core.errors import StoreCorruptedError, TagNotFoundError, TagStructureError
from tasktags.core.store import TaskStore, backup_document, list_backups, load_document, save_document
from tasktags.core.store.io import backups_dir_for
from tasktags.core.store.tagged import (
    ensure_partition,
    get_partition,
    new_document,
)


class TestLoadDocument:
    def test_missing_file_returns_none(self, tasks_file):
        assert load_document(tasks_file) is None

    def test_invalid_json(self, tasks_file):
        tasks_file.write_text("{")
        with pytest.raises(StoreCorruptedError) as exc_info:
            load_document(tasks_file)
        assert "invalid JSON" in exc_info.value.reason

    def test_non_object_root(self, tasks_file):
        tasks_file.write_text("[]")
        with pytest.raises(StoreCorruptedError) as exc_info:
            load_document(tasks_file)
        assert exc_info.value.reason == "expected a JSON object, got list"

    def test_legacy_layout_migrates_to_master(self, tasks_file):
        tasks_file.write_text(json.dumps({"tasks": [{"id": 1}], "metadata": {"projectName": "x"}}))

        document = load_document(tasks_file)

        assert list(document) == ["master"]
        assert document["master"]["tasks"] == [{"id": 1}]
        assert document["master"]["metadata"]["projectName"] == "x"
        assert "created" in document["master"]["metadata"]

    def test_tagged_layout_untouched(self, write_document, tasks_file, sample_document):
        write_document(sample_document)
        assert load_document(tasks_file) == sample_document


class TestSaveDocument:
    def test_round_trip_and_no_temp_files(self, tasks_file, sample_document):
        save_document(tasks_file, sample_document)

        assert json.loads(tasks_file.read_text()) == sample_document
        leftovers = [p.name for p in tasks_file.parent.iterdir() if p.suffix == ".tmp"]
        assert leftovers == []

    def test_creates_parent_directories(self, tmp_path):
        path = tmp_path / "deep" / "nested" / "tasks.json"
        save_document(path, new_document())
        assert path.exists()

    def test_snapshots_are_independent(self, tasks_file, sample_document):
        store = TaskStore(tasks_file)
        store.write(sample_document)

        first = store.read_snapshot()
        first["master"]["tasks"].clear()

        assert len(store.read_snapshot()["master"]["tasks"]) == 5


class TestBackups:
    def test_backup_of_missing_file(self, tasks_file):
        assert backup_document(tasks_file) is None

    def test_backup_copies_bytes_and_latest(self, tasks_file):
        tasks_file.write_text("{broken")

        backup = backup_document(tasks_file)

        assert backup.read_text() == "{broken"
        assert (backups_dir_for(tasks_file) / "latest.json").read_text() == "{broken"

    def test_unusable_backup_directory_returns_none(self, tasks_file):
        tasks_file.write_text("{}")
        (tasks_file.parent / ".backups").write_text("not a directory")

        assert backup_document(tasks_file) is None

    def test_retention(self, tasks_file):
        tasks_file.write_text("{}")
        for _ in range(4):
            backup_document(tasks_file, max_backups=2)

        assert len(list_backups(backups_dir_for(tasks_file))) == 2


class TestPartitions:
    def test_get_partition_missing(self, sample_document):
        with pytest.raises(TagNotFoundError):
            get_partition(sample_document, "nope", role="Target")

    def test_get_partition_validates_shape(self):
        with pytest.raises(TagStructureError):
            get_partition({"t": {"tasks": []}}, "t")

    def test_get_partition_normalizes_without_validation(self):
        document = {"t": "junk"}
        partition = get_partition(document, "t", validate=False)
        assert partition["tasks"] == []
        assert document["t"] is partition

    def test_ensure_partition(self, sample_document):
        partition, created = ensure_partition(sample_document, "backlog")
        assert created is False
        partition, created = ensure_partition(sample_document, "new-tag")
        assert created is True
        assert partition["tasks"] == []

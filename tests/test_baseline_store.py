"""Tests for BaselineStore."""

import json

import pytest

from avscraper.regression.baseline_store import BaselineStore
from avscraper.utils.error_handler import ValidationError
from tests.fixtures.mock_data import MockDataGenerator


class TestBaselineStore:
    """Test cases for BaselineStore."""

    @pytest.fixture
    def store(self, tmp_path):
        return BaselineStore(tmp_path / "baselines")

    def test_save_and_load(self, store):
        record = MockDataGenerator.generate_record()

        path = store.save(record)

        assert path.name == "IPX-177 (javbus).json"
        data = store.load("IPX-177", "javbus")
        assert data['title'] == record.title
        assert data['release_date'] == "2018-08-01"

    def test_load_record(self, store):
        record = MockDataGenerator.generate_record()
        store.save(record)

        assert store.load_record("IPX-177", "javbus") == record

    def test_load_record_fills_identifier_and_source(self, store):
        store.save({'identifier': "ABC-001", 'title': "Flat"}, source="fc2")
        path = store.path_for("ABC-001", "fc2")
        data = json.loads(path.read_text(encoding='utf-8'))
        del data['identifier']
        path.write_text(json.dumps(data), encoding='utf-8')

        record = store.load_record("ABC-001", "fc2")

        assert record.identifier == "ABC-001"
        assert record.source == "fc2"
        assert record.title == "Flat"

    def test_list_baselines(self, store):
        store.save(MockDataGenerator.generate_record("SSIS-001", "javbus"))
        store.save(MockDataGenerator.generate_record("FC2-PPV-1234567", "fc2"))
        (store.root / "notes.json").write_text("{}", encoding='utf-8')

        assert store.list_baselines() == [("FC2-PPV-1234567", "fc2"), ("SSIS-001", "javbus")]

    def test_list_missing_directory(self, tmp_path):
        assert BaselineStore(tmp_path / "nowhere").list_baselines() == []

    def test_update_keeps_backup(self, store):
        store.save(MockDataGenerator.generate_record(title="Old"))

        store.update(MockDataGenerator.generate_record(title="New"))

        backups = list(store.backup_dir.glob("*.json"))
        assert len(backups) == 1
        assert json.loads(backups[0].read_text(encoding='utf-8'))['title'] == "Old"
        assert store.load("IPX-177", "javbus")['title'] == "New"

    def test_update_without_existing(self, store):
        store.update(MockDataGenerator.generate_record())
        assert not store.backup_dir.exists()

    def test_invalid_json(self, store):
        store.root.mkdir(parents=True)
        store.path_for("IPX-177", "javbus").write_text("{not json", encoding='utf-8')

        with pytest.raises(ValidationError):
            store.load("IPX-177", "javbus")

    def test_non_object_json(self, store):
        store.root.mkdir(parents=True)
        store.path_for("IPX-177", "javbus").write_text("[1, 2]", encoding='utf-8')

        with pytest.raises(ValidationError):
            store.load("IPX-177", "javbus")

    def test_missing_baseline(self, store):
        with pytest.raises(FileNotFoundError):
            store.load("IPX-177", "javbus")

    def test_save_requires_identifier_and_source(self, store):
        with pytest.raises(ValidationError):
            store.save({'title': "No id"}, source="javbus")
        with pytest.raises(ValidationError):
            store.save({'identifier': "IPX-177"})

    def test_delete(self, store):
        store.save(MockDataGenerator.generate_record())

        assert store.exists("IPX-177", "javbus")
        assert store.delete("IPX-177", "javbus") is True
        assert store.delete("IPX-177", "javbus") is False
        assert not store.exists("IPX-177", "javbus")

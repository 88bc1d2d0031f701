"""
Unit tests for the query layer.

Tests cover:
- Needing-translation and translated sets
- Keyset pagination and limit clamping
- Document export per language
- History filters and ordering
"""

import os
import tempfile

import pytest

from txstore.models import AdditionalFieldInput, Role, SourceStringInput
from txstore.store import TranslationRecordStore


class TestQueryLayer:
    """Tests for QueryLayer."""

    @pytest.fixture
    def data_dir(self):
        """Create temporary data directory."""
        with tempfile.TemporaryDirectory() as tmpdir:
            yield tmpdir

    @pytest.fixture
    def store(self, data_dir):
        """Create initialized store with a small page cap."""
        store = TranslationRecordStore(
            os.path.join(data_dir, "strings.db"),
            wal_mode=False,
            default_page_size=3,
            max_page_size=5,
        )
        store.initialize_schema()
        return store

    @pytest.fixture
    def user_id(self, store):
        return store.create_user("alice", Role.ADMIN, ["fr"]).id

    def _upload(self, store, user_id, count, document_name="app"):
        store.replace_source_strings(
            user_id,
            document_name,
            [SourceStringInput(key=f"k{i}", value=f"v{i}") for i in range(count)],
        )
        return store.get_document_strings(document_name, "source")

    def test_default_limit(self, store, user_id):
        self._upload(store, user_id, 10)

        assert len(store.get_strings_needing_translation("fr")) == 3

    def test_limit_clamped_to_max(self, store, user_id):
        self._upload(store, user_id, 10)

        assert len(store.get_strings_needing_translation("fr", limit=50)) == 5

    def test_negative_limit_returns_empty_page(self, store, user_id):
        self._upload(store, user_id, 10)

        assert store.get_strings_needing_translation("fr", limit=-1) == []
        assert store.get_translated_strings("fr", limit=-1) == []
        assert store.get_history(limit=-1) == []

    def test_pages_descend_without_overlap(self, store, user_id):
        self._upload(store, user_id, 7)

        seen = []
        offset = None
        while True:
            page = store.get_strings_needing_translation("fr", limit=3, id_offset=offset)
            if not page:
                break
            seen.extend(s.id for s in page)
            offset = page[-1].id

        assert len(seen) == 7
        assert seen == sorted(seen, reverse=True)

    def test_needing_translation_carries_fields(self, store, user_id):
        store.replace_source_strings(
            user_id,
            "app",
            [
                SourceStringInput(
                    key="a",
                    value="A",
                    additional_fields=[AdditionalFieldInput("comment", "Shown on login")],
                )
            ],
        )

        [record] = store.get_strings_needing_translation("fr")

        assert record.document_name == "app"
        assert [(f.field_name, f.value) for f in record.additional_fields] == [
            ("comment", "Shown on login")
        ]

    def test_soft_deleted_strings_hidden(self, store, user_id):
        self._upload(store, user_id, 2)
        store.replace_source_strings(user_id, "app", [SourceStringInput(key="k0", value="v0")])

        assert [s.key for s in store.get_strings_needing_translation("fr")] == ["k0"]

    def test_translated_returns_translation_value(self, store, user_id):
        records = self._upload(store, user_id, 2)
        store.upsert_translation(records[0].id, "fr", "v0 fr", user_id)

        [translated] = store.get_translated_strings("fr")

        assert (translated.id, translated.key, translated.value) == (records[0].id, "k0", "v0 fr")
        assert [s.key for s in store.get_strings_needing_translation("fr")] == ["k1"]

    def test_document_export_per_language(self, store, user_id):
        records = self._upload(store, user_id, 3)
        store.upsert_translation(records[2].id, "fr", "v2 fr", user_id)
        store.upsert_translation(records[0].id, "fr", "v0 fr", user_id)

        exported = store.get_document_strings("app", "fr")

        assert [(s.key, s.value) for s in exported] == [("k0", "v0 fr"), ("k2", "v2 fr")]
        assert store.get_document_strings("app", "de") == []
        assert store.get_document_strings("missing", "source") == []

    def test_history_language_filter_includes_source(self, store, user_id):
        records = self._upload(store, user_id, 1)
        store.upsert_translation(records[0].id, "fr", "v0 fr", user_id)
        store.upsert_translation(records[0].id, "de", "v0 de", user_id)

        events = store.get_history(language_code="fr")

        assert [e.language_code for e in events] == ["fr", "source"]
        assert events[0].source_value == "v0"
        assert events[0].document_name == "app"

    def test_history_filters_by_string_and_offset(self, store, user_id):
        records = self._upload(store, user_id, 2)
        store.upsert_translation(records[1].id, "fr", "v1 fr", user_id)

        events = store.get_history(source_string_id=records[1].id)
        assert [e.value for e in events] == ["v1 fr", "v1"]

        older = store.get_history(history_id_offset=events[0].id)
        assert all(e.id < events[0].id for e in older)
        assert len(older) == 2

"""
Unit tests for the user registry.
"""

import os
import tempfile

import pytest

from txstore.errors import ConflictError, NotFoundError, ValidationError
from txstore.models import Role
from txstore.store import TranslationRecordStore


class TestUserRegistry:
    """Tests for UserRegistry."""

    @pytest.fixture
    def data_dir(self):
        """Create temporary data directory."""
        with tempfile.TemporaryDirectory() as tmpdir:
            yield tmpdir

    @pytest.fixture
    def store(self, data_dir):
        """Create initialized store."""
        store = TranslationRecordStore(os.path.join(data_dir, "strings.db"), wal_mode=False)
        store.initialize_schema()
        return store

    def test_no_admin_initially(self, store):
        assert store.admin_user_exists() is False
        assert store.list_users(role=Role.ADMIN) == []

    def test_create_and_lookup(self, store):
        created = store.create_user("alice", Role.TRANSLATOR, ["en", "fr"])

        assert store.get_user("alice") == created
        assert store.get_user_by_id(created.id) == created
        assert created.language_codes == ["en", "fr"]
        assert store.get_user("bob") is None

    def test_duplicate_username_conflicts(self, store):
        store.create_user("alice", Role.TRANSLATOR)

        with pytest.raises(ConflictError) as exc_info:
            store.create_user("alice", Role.ADMIN)

        assert exc_info.value.resource_type == "user"
        assert len(store.list_users()) == 1

    def test_list_users_by_role(self, store):
        store.create_user("admin", Role.ADMIN)
        store.create_user("alice", Role.TRANSLATOR)
        store.create_user("bob", Role.TRANSLATOR)

        assert store.admin_user_exists() is True
        assert [u.username for u in store.list_users(role=Role.TRANSLATOR)] == ["alice", "bob"]
        assert [u.username for u in store.list_users(limit=1)] == ["admin"]

    def test_update_languages(self, store):
        store.create_user("alice", Role.TRANSLATOR, ["en", "fr"])

        updated = store.update_user_languages("alice", ["wz", "xy"])

        assert updated.language_codes == ["wz", "xy"]
        assert store.get_user("alice").language_codes == ["wz", "xy"]

    def test_update_languages_unknown_user(self, store):
        with pytest.raises(NotFoundError):
            store.update_user_languages("nobody", ["fr"])

    def test_list_language_codes(self, store):
        store.create_user("alice", Role.TRANSLATOR, ["fr", "en"])
        store.create_user("bob", Role.TRANSLATOR, ["de", "fr"])

        assert store.list_language_codes() == ["de", "en", "fr"]

    def test_unknown_role_rejected(self, store):
        with pytest.raises(ValidationError) as exc_info:
            store.create_user("alice", "owner")

        assert exc_info.value.field_name == "role"
        assert exc_info.value.rejected == ["owner"]
        assert store.get_user("alice") is None

    def test_role_given_as_string(self, store):
        created = store.create_user("alice", "translator")

        assert created.role == Role.TRANSLATOR
        assert [u.username for u in store.list_users(role="translator")] == ["alice"]

"""Tests for the local key-value stores and the offline cache."""

from datetime import datetime, timezone
from decimal import Decimal

import pytest

from pocket_ledger.models.audit import AuditEventType
from pocket_ledger.services.cache import JsonFileStore, OfflineCache


class TestJsonFileStore:

    def test_set_get_remove(self, tmp_path):
        store = JsonFileStore(tmp_path / "cache")
        assert store.get("pf_transactions_v1") is None

        store.set("pf_transactions_v1", "[]")
        assert store.get("pf_transactions_v1") == "[]"

        store.set("pf_transactions_v1", "[1]")
        assert store.get("pf_transactions_v1") == "[1]"
        assert [p.name for p in (tmp_path / "cache").iterdir()] == ["pf_transactions_v1.json"]

        store.remove("pf_transactions_v1")
        store.remove("pf_transactions_v1")
        assert store.get("pf_transactions_v1") is None

    def test_rejects_path_like_keys(self, tmp_path):
        store = JsonFileStore(tmp_path)
        with pytest.raises(ValueError):
            store.set("../escape", "x")


class TestOfflineCache:

    def test_snapshot_survives_a_round_trip(self, cache, make_tx):
        original = [
            make_tx("1", "-12.34", datetime(2024, 1, 1, tzinfo=timezone.utc), label="Cafe"),
            make_tx("mp_2", "99", None),
        ]
        cache.save_snapshot(original)
        assert cache.load_snapshot() == original

    def test_missing_snapshot_is_none(self, cache):
        assert cache.load_snapshot() is None

    @pytest.mark.parametrize("raw", [
        "{broken",
        '{"not": "a list"}',
        '[{"id": "1"}]',
        '[{"id": "1", "amount": "NaN"}]',
    ])
    def test_malformed_snapshot_is_treated_as_absent(self, cache, kv_store, audit_logger, raw):
        kv_store.data[cache.ledger_key] = raw
        assert cache.load_snapshot() is None
        assert audit_logger.history[-1].event_type == AuditEventType.CACHE_DISCARDED

    def test_write_failure_is_logged_not_raised(self, cache, kv_store, audit_logger, make_tx):
        kv_store.fail_writes = True
        cache.save_snapshot([make_tx("1", -1)])
        assert audit_logger.history[-1].event_type == AuditEventType.CACHE_WRITE_FAILED

    def test_snapshot_overwrites_previous(self, cache, make_tx):
        cache.save_snapshot([make_tx("1", -1), make_tx("2", -2)])
        cache.save_snapshot([make_tx("3", -3)])
        assert [t.id for t in cache.load_snapshot()] == ["3"]

    def test_credential_cache(self, cache, kv_store):
        assert cache.get_credential() is None
        cache.set_credential("secret-key")
        assert cache.get_credential() == "secret-key"
        assert "pf_gemini_api_key" in kv_store.data
        cache.remove_credential()
        assert cache.get_credential() is None

    def test_credential_cache_ignores_garbage(self, cache, kv_store):
        kv_store.data[cache.credential_key] = "not-json"
        assert cache.get_credential() is None

    def test_file_backed_cache(self, tmp_path, audit_logger, make_tx):
        cache = OfflineCache(JsonFileStore(tmp_path), audit_logger)
        cache.save_snapshot([make_tx("1", Decimal("-3"))])
        reopened = OfflineCache(JsonFileStore(tmp_path), audit_logger)
        assert reopened.load_snapshot()[0].id == "1"

"""Tests for the in-process SettingsStore."""

import threading
from decimal import Decimal

import pytest

from approval_config import SettingsStore
from approval_kernel.domain.settings import SettingsSnapshot
from approval_kernel.exceptions import InvalidSettingsError, SettingsNotConfiguredError


class TestSettingsStore:
    def test_empty_store(self):
        store = SettingsStore()
        assert store.version == 0
        with pytest.raises(SettingsNotConfiguredError):
            store.current()

    def test_reload_bumps_version(self):
        store = SettingsStore(SettingsSnapshot())
        first = store.current()

        second = store.reload(SettingsSnapshot(approval_threshold=Decimal("500")))

        assert first.version == 1
        assert second.version == 2
        assert store.current() is second
        assert first.approval_threshold == Decimal("10000000.00")
        assert first.settings_hash != second.settings_hash

    def test_failed_reload_keeps_current(self):
        store = SettingsStore(SettingsSnapshot())
        before = store.current()

        with pytest.raises(InvalidSettingsError):
            store.reload(SettingsSnapshot(sla_manager=0))

        assert store.current() is before
        assert store.version == 1

    def test_reload_from_file(self, tmp_path):
        path = tmp_path / "settings.yaml"
        path.write_text("approval_threshold: 750\nescalate_breaches: false\n")
        store = SettingsStore()

        snapshot = store.reload_from_file(path)

        assert snapshot.version == 1
        assert snapshot.approval_threshold == Decimal("750")
        assert snapshot.escalate_breaches is False

    def test_concurrent_reloads_get_distinct_versions(self):
        store = SettingsStore()
        versions: list[int] = []
        lock = threading.Lock()

        def reload():
            snapshot = store.reload(SettingsSnapshot())
            with lock:
                versions.append(snapshot.version)

        threads = [threading.Thread(target=reload) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert sorted(versions) == list(range(1, 9))
        assert store.version == 8

    def test_reload_logged(self, captured_logs):
        SettingsStore(SettingsSnapshot())
        (record,) = [r for r in captured_logs() if r["message"] == "settings_reloaded"]
        assert record["version"] == 1

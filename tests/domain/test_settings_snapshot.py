"""Tests for SettingsSnapshot lookups and validation rules."""

from dataclasses import replace
from datetime import time
from decimal import Decimal

import pytest

from approval_kernel.domain.roles import Role
from approval_kernel.domain.settings import SettingsSnapshot, settings_errors


class TestSlaLookup:
    def test_defaults(self):
        settings = SettingsSnapshot()
        assert settings.sla_minutes_for(Role.SUPERVISOR) == 240
        assert settings.sla_minutes_for(Role.MANAGER) == 360
        assert settings.sla_minutes_for(Role.FINANCE) == 240

    def test_admin_falls_back_to_manager(self):
        settings = SettingsSnapshot(sla_manager=500)
        assert settings.sla_minutes_for(Role.ADMIN) == 500

    def test_admin_uses_own_sla_when_configured(self):
        settings = SettingsSnapshot(sla_admin=120)
        assert settings.sla_minutes_for(Role.ADMIN) == 120


class TestThreshold:
    def test_global_threshold(self):
        settings = SettingsSnapshot()
        assert settings.threshold_for(None) == Decimal("10000000.00")
        assert settings.threshold_for("unknown-dept") == Decimal("10000000.00")

    def test_department_override(self):
        settings = SettingsSnapshot(
            department_thresholds=(("ops", Decimal("500.00")),),
        )
        assert settings.threshold_for("ops") == Decimal("500.00")
        assert settings.threshold_for("sales") == Decimal("10000000.00")


class TestSnapshotIdentity:
    def test_hash_is_not_part_of_equality(self):
        a = SettingsSnapshot(settings_hash="aaa")
        b = SettingsSnapshot(settings_hash="bbb")
        assert a == b

    def test_snapshot_is_frozen(self):
        settings = SettingsSnapshot()
        with pytest.raises(AttributeError):
            settings.sla_manager = 1  # type: ignore[misc]


class TestSettingsErrors:
    def test_defaults_are_valid(self):
        assert settings_errors(SettingsSnapshot()) == []

    @pytest.mark.parametrize(
        "changes,fragment",
        [
            ({"approval_threshold": Decimal("0")}, "approval_threshold"),
            ({"sla_manager": 0}, "sla_manager"),
            ({"sla_admin": -5}, "sla_admin"),
            ({"workday_start": time(17, 0), "workday_end": time(8, 0)}, "workday_start"),
            ({"workdays": frozenset()}, "workdays"),
            ({"workdays": frozenset({0, 1})}, "workdays"),
            ({"timezone": "Mars/Olympus_Mons"}, "timezone"),
            ({"department_thresholds": (("ops", Decimal("-1")),)}, "ops"),
        ],
    )
    def test_invalid_values_are_reported(self, changes, fragment):
        errors = settings_errors(replace(SettingsSnapshot(), **changes))
        assert len(errors) == 1
        assert fragment in errors[0]

"""
Settings Loader (``approval_config.loader``).

Responsibility
--------------
Loads an approval settings YAML file and parses it into a frozen
``SettingsSnapshot``.  Validation and checksumming live here too, so the
in-process ``SettingsStore`` and the database ``SettingsService`` agree on
what a valid snapshot is and how it is identified.

Architecture position
---------------------
**Config layer** -- sits above ``approval_kernel``.  The kernel never
imports from ``approval_config``.

File format
-----------
::

    approval_threshold: "10000000.00"
    sla_minutes:
      supervisor: 240
      manager: 360
      finance: 240
      admin: 360          # optional, defaults to the manager SLA
    business_hours:
      start: "08:00"
      end: "17:00"
      workdays: [1, 2, 3, 4, 5]   # ISO weekdays, Monday=1
      timezone: Europe/Berlin
    holidays: [2024-12-25, 2024-12-26]
    department_thresholds:
      3f0c...: "2500000.00"
    escalate_breaches: true

Every key is optional; omitted keys take the built-in defaults.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Unknown keys or unparseable values  -> ``ValueError``.
* Values that parse but break a rule  -> ``InvalidSettingsError``.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import date, time
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any
from uuid import UUID

import yaml

from approval_kernel.domain.settings import (
    DEFAULT_APPROVAL_THRESHOLD,
    DEFAULT_SLA_FINANCE,
    DEFAULT_SLA_MANAGER,
    DEFAULT_SLA_SUPERVISOR,
    DEFAULT_WORKDAY_END,
    DEFAULT_WORKDAY_START,
    DEFAULT_WORKDAYS,
    SettingsSnapshot,
    settings_errors,
)
from approval_kernel.exceptions import InvalidSettingsError
from approval_kernel.utils.hashing import hash_payload

_TOP_LEVEL_KEYS = frozenset({
    "approval_threshold",
    "sla_minutes",
    "business_hours",
    "holidays",
    "department_thresholds",
    "escalate_breaches",
})
_SLA_KEYS = frozenset({"supervisor", "manager", "finance", "admin"})
_HOURS_KEYS = frozenset({"start", "end", "workdays", "timezone"})


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        return yaml.safe_load(f) or {}


def parse_date(value: Any) -> date:
    """Parse a date from YAML (string or date object)."""
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        return date.fromisoformat(value)
    raise ValueError(f"Cannot parse date from {value!r}")


def parse_time(value: Any) -> time:
    """
    Parse a wall-clock time from YAML.

    Unquoted ``17:00`` is read by YAML 1.1 as the base-60 integer 1020,
    i.e. minutes since midnight; both forms are accepted.
    """
    if isinstance(value, time):
        return value
    if isinstance(value, int) and not isinstance(value, bool):
        if not 0 <= value < 24 * 60:
            raise ValueError(f"Cannot parse time from {value!r}")
        return time(value // 60, value % 60)
    if isinstance(value, str):
        return time.fromisoformat(value)
    raise ValueError(f"Cannot parse time from {value!r}")


def parse_amount(value: Any) -> Decimal:
    """Parse a monetary amount; floats go through ``str`` to avoid binary noise."""
    if isinstance(value, bool):
        raise ValueError(f"Cannot parse amount from {value!r}")
    try:
        return Decimal(str(value))
    except InvalidOperation as exc:
        raise ValueError(f"Cannot parse amount from {value!r}") from exc


def parse_department_id(value: Any) -> str:
    """Canonical lowercase hyphenated form of a department UUID key."""
    try:
        return str(UUID(str(value)))
    except ValueError as exc:
        raise ValueError(f"Cannot parse department id from {value!r}") from exc


def parse_flag(name: str, value: Any) -> bool:
    """Accept only a YAML boolean; the string ``"false"`` is not false."""
    if not isinstance(value, bool):
        raise ValueError(f"{name} must be true or false, got {value!r}")
    return value


def _check_keys(section: str, data: dict[str, Any], allowed: frozenset[str]) -> None:
    unknown = set(data) - allowed
    if unknown:
        raise ValueError(f"Unknown {section} keys: {sorted(unknown)}")


def parse_settings(data: dict[str, Any], version: int = 1) -> SettingsSnapshot:
    """
    Parse a ``SettingsSnapshot`` from a dict.

    Postconditions:
        - Returns a frozen snapshot with ``settings_hash`` set.
        - The snapshot is NOT validated; call ``validate_settings``.
    Raises:
        ValueError: on unknown keys or unparseable values.
    """
    _check_keys("settings", data, _TOP_LEVEL_KEYS)
    sla = data.get("sla_minutes") or {}
    _check_keys("sla_minutes", sla, _SLA_KEYS)
    hours = data.get("business_hours") or {}
    _check_keys("business_hours", hours, _HOURS_KEYS)

    sla_admin = sla.get("admin")
    snapshot = SettingsSnapshot(
        version=version,
        approval_threshold=parse_amount(
            data.get("approval_threshold", DEFAULT_APPROVAL_THRESHOLD)
        ),
        sla_supervisor=int(sla.get("supervisor", DEFAULT_SLA_SUPERVISOR)),
        sla_manager=int(sla.get("manager", DEFAULT_SLA_MANAGER)),
        sla_finance=int(sla.get("finance", DEFAULT_SLA_FINANCE)),
        sla_admin=int(sla_admin) if sla_admin is not None else None,
        workday_start=parse_time(hours.get("start", DEFAULT_WORKDAY_START)),
        workday_end=parse_time(hours.get("end", DEFAULT_WORKDAY_END)),
        workdays=frozenset(int(d) for d in hours.get("workdays", DEFAULT_WORKDAYS)),
        holidays=frozenset(parse_date(d) for d in data.get("holidays") or ()),
        timezone=str(hours.get("timezone", "UTC")),
        department_thresholds=tuple(
            sorted(
                (parse_department_id(dept), parse_amount(value))
                for dept, value in (data.get("department_thresholds") or {}).items()
            )
        ),
        escalate_breaches=parse_flag(
            "escalate_breaches", data.get("escalate_breaches", True),
        ),
    )
    return replace(snapshot, settings_hash=compute_checksum(snapshot.to_payload()))


def validate_settings(snapshot: SettingsSnapshot) -> SettingsSnapshot:
    """
    Check a snapshot against the settings rules.

    Returns the snapshot unchanged so calls can be chained.

    Raises:
        InvalidSettingsError: listing every problem found.
    """
    errors = settings_errors(snapshot)
    if errors:
        raise InvalidSettingsError(errors)
    return snapshot


def load_settings_file(path: Path | str, version: int = 1) -> SettingsSnapshot:
    """Load, parse and validate a settings YAML file."""
    return validate_settings(parse_settings(load_yaml_file(Path(path)), version=version))


def compute_checksum(data: dict[str, Any]) -> str:
    """
    Compute the SHA-256 checksum of the canonical JSON serialization.

    Identical ``data`` always produces identical checksums.  Applied to
    ``SettingsSnapshot.to_payload()`` it yields the snapshot's
    ``settings_hash``.
    """
    return hash_payload(data)

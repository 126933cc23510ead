"""
SettingsStore -- in-process, versioned settings holder.

Responsibility:
    Holds the current ``SettingsSnapshot`` for a process and implements the
    ``SettingsProvider`` collaborator interface.  A reload validates the new
    values, stamps the next version and checksum, and swaps the reference;
    the previous snapshot object is never modified, so an engine call that
    already read it keeps a consistent view.

Guarantees:
    - Thread-safe: ``current()`` and ``reload()`` may be called from any
      thread.
    - Versions increase by one per successful reload.
    - A failed reload leaves the current snapshot in place.
"""

from __future__ import annotations

import threading
from dataclasses import replace
from pathlib import Path

from approval_config.loader import (
    compute_checksum,
    load_yaml_file,
    parse_settings,
    validate_settings,
)
from approval_kernel.domain.settings import SettingsSnapshot
from approval_kernel.exceptions import SettingsNotConfiguredError
from approval_kernel.logging_config import get_logger

logger = get_logger("config.store")


class SettingsStore:
    """Thread-safe holder of the current settings snapshot."""

    def __init__(self, initial: SettingsSnapshot | None = None):
        self._lock = threading.Lock()
        self._current: SettingsSnapshot | None = None
        if initial is not None:
            self.reload(initial)

    def current(self) -> SettingsSnapshot:
        """
        Return the current snapshot.

        Raises:
            SettingsNotConfiguredError: if nothing has been loaded yet.
        """
        snapshot = self._current
        if snapshot is None:
            raise SettingsNotConfiguredError()
        return snapshot

    @property
    def version(self) -> int:
        """Version of the current snapshot, 0 before the first load."""
        snapshot = self._current
        return snapshot.version if snapshot is not None else 0

    def reload(self, snapshot: SettingsSnapshot) -> SettingsSnapshot:
        """
        Publish ``snapshot`` as the next version.

        Raises:
            InvalidSettingsError: if the snapshot fails validation.
        """
        validate_settings(snapshot)
        with self._lock:
            next_version = self.version + 1
            published = replace(
                snapshot,
                version=next_version,
                settings_hash=compute_checksum(snapshot.to_payload()),
            )
            self._current = published

        logger.info(
            "settings_reloaded",
            extra={"version": next_version, "settings_hash": published.settings_hash},
        )
        return published

    def reload_from_file(self, path: Path | str) -> SettingsSnapshot:
        """Parse a settings YAML file and publish it as the next version."""
        snapshot = parse_settings(load_yaml_file(Path(path)))
        return self.reload(snapshot)

"""
SettingsService -- persisted, append-only approval settings.

Responsibility:
    Publishes new settings versions and returns the active (highest)
    version as a frozen ``SettingsSnapshot``.  ``DatabaseSettingsProvider``
    adapts the service to the ``SettingsProvider`` collaborator interface.

Invariants enforced:
    - Versions come from the locked ``settings_version`` sequence, so they
      are strictly increasing.
    - A published row is never updated (ORM listener on SettingsModel).
    - ``settings_hash`` is the canonical-JSON SHA-256 of the snapshot's
      payload, identical to the checksum the YAML loader computes.

Failure modes:
    - InvalidSettingsError if the snapshot fails validation.
    - SettingsNotConfiguredError from ``active()`` when nothing is published.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import replace

from sqlalchemy import select
from sqlalchemy.orm import Session

from approval_kernel.db.engine import session_scope
from approval_kernel.domain.settings import SettingsSnapshot, settings_errors
from approval_kernel.exceptions import InvalidSettingsError, SettingsNotConfiguredError
from approval_kernel.logging_config import get_logger
from approval_kernel.models.settings import SettingsModel
from approval_kernel.services.base import BaseService
from approval_kernel.services.sequence_service import SequenceService
from approval_kernel.utils.hashing import hash_payload

logger = get_logger("services.settings")


class SettingsService(BaseService):
    """Reads and publishes settings versions."""

    SETTINGS_VERSION = "settings_version"

    def publish(self, snapshot: SettingsSnapshot) -> SettingsSnapshot:
        """
        Store ``snapshot`` as the next settings version.

        The ``version`` and ``settings_hash`` carried by ``snapshot`` are
        ignored; both are assigned here.
        """
        errors = settings_errors(snapshot)
        if errors:
            raise InvalidSettingsError(errors)

        version = SequenceService(self.session).next_value(self.SETTINGS_VERSION)
        published = replace(
            snapshot,
            version=version,
            settings_hash=hash_payload(snapshot.to_payload()),
        )
        self.session.add(SettingsModel.from_dto(published, created_at=self.clock.now()))
        self.session.flush()

        logger.info(
            "settings_published",
            extra={"version": version, "settings_hash": published.settings_hash},
        )
        return published

    def active(self) -> SettingsSnapshot:
        """Return the highest published version."""
        model = self.session.execute(
            select(SettingsModel).order_by(SettingsModel.version.desc()).limit(1)
        ).scalar_one_or_none()
        if model is None:
            raise SettingsNotConfiguredError()
        return model.to_dto()

    def get_version(self, version: int) -> SettingsSnapshot | None:
        """Return a specific published version, if it exists."""
        model = self.session.execute(
            select(SettingsModel).where(SettingsModel.version == version)
        ).scalar_one_or_none()
        return model.to_dto() if model is not None else None


class DatabaseSettingsProvider:
    """SettingsProvider that reads the active version from the database."""

    def __init__(self, session_factory: Callable[[], Session]):
        self._session_factory = session_factory

    def current(self) -> SettingsSnapshot:
        with session_scope(self._session_factory) as session:
            return SettingsService(session).active()

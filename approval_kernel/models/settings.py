"""
Module: approval_kernel.models.settings
Responsibility: ORM persistence for versioned approval settings.

Architecture position: Kernel > Models.

Invariants enforced:
    - Append-only: each publish inserts a new row with a higher version.
      Rows are never updated in place (ORM listener rejects updates), so an
      in-flight request can always be traced to the exact settings version
      it was submitted under.
"""

from __future__ import annotations

from datetime import date, datetime, time
from decimal import Decimal
from typing import TYPE_CHECKING, Any

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    DateTime,
    Integer,
    Numeric,
    String,
    Time,
    event,
)
from sqlalchemy.orm import Mapped, mapped_column

from approval_kernel.db.base import Base

if TYPE_CHECKING:
    from approval_kernel.domain.settings import SettingsSnapshot


class SettingsModel(Base):
    """One published version of the approval settings."""

    __tablename__ = "settings"

    __table_args__ = (
        CheckConstraint("approval_threshold > 0", name="ck_settings_threshold_positive"),
        CheckConstraint("workday_start < workday_end", name="ck_settings_workday_window"),
    )

    version: Mapped[int] = mapped_column(Integer, nullable=False, unique=True)
    approval_threshold: Mapped[Decimal] = mapped_column(
        Numeric(15, 2), nullable=False, default=Decimal("10000000"),
    )
    sla_supervisor: Mapped[int] = mapped_column(Integer, nullable=False, default=240)
    sla_manager: Mapped[int] = mapped_column(Integer, nullable=False, default=360)
    sla_finance: Mapped[int] = mapped_column(Integer, nullable=False, default=240)
    sla_admin: Mapped[int | None] = mapped_column(Integer, nullable=True)
    workday_start: Mapped[time] = mapped_column(Time, nullable=False, default=time(8, 0))
    workday_end: Mapped[time] = mapped_column(Time, nullable=False, default=time(17, 0))
    workdays: Mapped[list[int]] = mapped_column(JSON, nullable=False)
    holidays: Mapped[list[str]] = mapped_column(JSON, nullable=False)
    timezone: Mapped[str] = mapped_column(String(64), nullable=False, default="UTC")
    department_thresholds: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)
    escalate_breaches: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    settings_hash: Mapped[str | None] = mapped_column(String(64), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    def __repr__(self) -> str:
        return f"<Settings v{self.version} threshold={self.approval_threshold}>"

    def to_dto(self) -> SettingsSnapshot:
        """Convert ORM model to frozen domain DTO."""
        from approval_kernel.domain.settings import SettingsSnapshot

        return SettingsSnapshot(
            version=self.version,
            approval_threshold=Decimal(self.approval_threshold),
            sla_supervisor=self.sla_supervisor,
            sla_manager=self.sla_manager,
            sla_finance=self.sla_finance,
            sla_admin=self.sla_admin,
            workday_start=self.workday_start,
            workday_end=self.workday_end,
            workdays=frozenset(int(d) for d in self.workdays),
            holidays=frozenset(date.fromisoformat(d) for d in self.holidays),
            timezone=self.timezone,
            department_thresholds=tuple(
                sorted(
                    (dept, Decimal(str(value)))
                    for dept, value in self.department_thresholds.items()
                )
            ),
            escalate_breaches=self.escalate_breaches,
            settings_hash=self.settings_hash,
        )

    @classmethod
    def from_dto(cls, dto: SettingsSnapshot, created_at: datetime) -> SettingsModel:
        """Create ORM model from domain DTO."""
        return cls(
            version=dto.version,
            approval_threshold=dto.approval_threshold,
            sla_supervisor=dto.sla_supervisor,
            sla_manager=dto.sla_manager,
            sla_finance=dto.sla_finance,
            sla_admin=dto.sla_admin,
            workday_start=dto.workday_start,
            workday_end=dto.workday_end,
            workdays=sorted(dto.workdays),
            holidays=sorted(d.isoformat() for d in dto.holidays),
            timezone=dto.timezone,
            department_thresholds={
                dept: str(value) for dept, value in dto.department_thresholds
            },
            escalate_breaches=dto.escalate_breaches,
            settings_hash=dto.settings_hash,
            created_at=created_at,
        )


@event.listens_for(SettingsModel, "before_update")
def prevent_settings_update(mapper, connection, target):
    """Settings versions are append-only; publish a new version instead."""
    from approval_kernel.exceptions import InvalidSettingsError

    raise InvalidSettingsError(
        [f"settings version {target.version} is immutable; publish a new version"]
    )

"""
ApprovalEngine -- public entry point of the approval kernel.

Responsibility:
    Wires the state machine, ledger, SLA monitor and notification
    dispatcher to a session factory and the external collaborators, and
    owns the transaction and locking discipline of every call.

Architecture position:
    Kernel > Services.  The only class callers outside the kernel need.

Invariants enforced:
    - Every mutating call holds the request's in-process lock, opens
      exactly one transaction, row-locks the request, applies the state
      change, dispatches notifications in that same transaction and
      commits.  The lock is released only after the commit.
    - Settings are read once per call as an immutable snapshot.
    - Any exception rolls the whole call back and propagates unchanged.

Failure modes:
    - Typed ApprovalKernelError subclasses for rule violations (logged at
      warning level).
    - SQLAlchemy errors propagate unchanged (logged at error level).
    - ``scan_sla`` isolates failures per request: one broken request is
      logged and skipped, the rest are still notified.
"""

from __future__ import annotations

import time
from collections.abc import Callable, Generator
from contextlib import contextmanager
from datetime import datetime
from decimal import Decimal
from uuid import UUID, uuid4

from sqlalchemy import select
from sqlalchemy.orm import Session

from approval_engines.chain import resolve_chain
from approval_kernel.db.engine import session_scope
from approval_kernel.domain.approval import (
    ApprovalDecision,
    ApprovalRecord,
    ApprovalStatus,
    BreachEvent,
    DecisionOutcome,
    NotificationRecord,
    RequestStatus,
    SpendRequest,
    TransitionEvent,
)
from approval_kernel.domain.clock import Clock, SystemClock
from approval_kernel.domain.collaborators import (
    NotificationSink,
    RoleAuthority,
    SettingsProvider,
)
from approval_kernel.domain.settings import SettingsSnapshot
from approval_kernel.exceptions import ApprovalKernelError
from approval_kernel.logging_config import LogContext, get_logger
from approval_kernel.models.request import ApprovalModel, SpendRequestModel
from approval_kernel.selectors.request_selector import RequestSelector
from approval_kernel.services.approval_ledger import ApprovalLedger
from approval_kernel.services.notification_dispatcher import (
    NotificationDispatcher,
    NotificationStore,
)
from approval_kernel.services.request_lock import RequestLockRegistry
from approval_kernel.services.request_state_machine import (
    ChainResolver,
    RequestStateMachine,
)
from approval_kernel.services.sla_monitor import SlaMonitor

logger = get_logger("services.approval_engine")

SinkFactory = Callable[[Session], NotificationSink]


class ApprovalEngine:
    """
    Facade over the approval kernel.

    Contract:
        Thread-safe.  Share one instance (and so one lock registry) between
        all threads of a process; calls for different requests run in
        parallel, calls for the same request are serialized.

    Non-goals:
        - Does NOT retry StaleLevelError; the losing caller gets the error.
        - Does NOT cancel submitted requests.
    """

    def __init__(
        self,
        session_factory: Callable[[], Session],
        settings_provider: SettingsProvider,
        role_authority: RoleAuthority,
        clock: Clock | None = None,
        sink_factory: SinkFactory | None = None,
        locks: RequestLockRegistry | None = None,
        chain_resolver: ChainResolver = resolve_chain,
    ):
        self._session_factory = session_factory
        self._settings = settings_provider
        self._roles = role_authority
        self._clock = clock or SystemClock()
        self._sink_factory = sink_factory or (
            lambda session: NotificationStore(session, self._clock)
        )
        self._locks = locks or RequestLockRegistry()
        self._chain_resolver = chain_resolver

    # -------------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------------

    def create_draft(
        self,
        requester_id: UUID,
        department_id: UUID,
        amount: Decimal | int | str,
        description: str,
    ) -> SpendRequest:
        """Create a new request in ``draft``."""
        with self._call("create_draft", actor_id=requester_id) as session:
            return self._state_machine(session).create_draft(
                requester_id, department_id, amount, description,
            )

    def discard_draft(self, request_id: UUID) -> None:
        """Delete a request that is still a draft."""
        with self._locked_call("discard_draft", request_id) as session:
            self._state_machine(session).discard_draft(request_id)

    def submit(self, request_id: UUID) -> SpendRequest:
        """Submit a draft: resolve its chain and open level 1."""
        settings = self._settings.current()
        with self._locked_call("submit", request_id) as session:
            result = self._state_machine(session).submit(request_id, settings)
            self._dispatch(session, result.events)
            return result.request

    def decide(
        self,
        request_id: UUID,
        level: int,
        approver_id: UUID,
        decision: ApprovalDecision | str,
        notes: str | None = None,
    ) -> DecisionOutcome:
        """Approve or reject the open level of a request."""
        with self._locked_call("decide", request_id, actor_id=approver_id) as session:
            state_machine = self._state_machine(session)
            ledger = ApprovalLedger(session, self._roles, state_machine, self._clock)
            outcome = ledger.decide(
                request_id, level, approver_id, ApprovalDecision(decision), notes,
            )
            self._dispatch(session, outcome.events)
            return outcome

    def complete(self, request_id: UUID, actor_id: UUID) -> SpendRequest:
        """Record that an approved request has been disbursed."""
        with self._locked_call("complete", request_id, actor_id=actor_id) as session:
            result = self._state_machine(session).complete(request_id, actor_id)
            self._dispatch(session, result.events)
            return result.request

    def scan_sla(self, now: datetime | None = None) -> list[BreachEvent]:
        """
        Detect SLA breaches and notify, once per approval.

        Returns every breach observed at ``now``, including breaches that
        were already announced by an earlier scan.
        """
        now = now or self._clock.now()
        settings = self._settings.current()

        with session_scope(self._session_factory) as session:
            breaches = SlaMonitor(session, settings, self._clock).scan(now)

        for breach in breaches:
            try:
                self._notify_breach(breach, settings)
            except Exception:
                logger.exception(
                    "sla_scan_request_failed",
                    extra={
                        "request_id": str(breach.request_id),
                        "approval_level": breach.level,
                    },
                )
        return breaches

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def get_request(self, request_id: UUID) -> SpendRequest:
        with session_scope(self._session_factory) as session:
            return RequestSelector(session).get(request_id)

    def find_request(self, request_number: str) -> SpendRequest | None:
        with session_scope(self._session_factory) as session:
            return RequestSelector(session).get_by_number(request_number)

    def list_requests(self, status: RequestStatus | str) -> list[SpendRequest]:
        """Requests in ``status``, ordered by request number."""
        with session_scope(self._session_factory) as session:
            return RequestSelector(session).by_status(RequestStatus(status))

    def list_approvals(self, request_id: UUID) -> list[ApprovalRecord]:
        with session_scope(self._session_factory) as session:
            return RequestSelector(session).approvals(request_id)

    def approver_inbox(self, approver_id: UUID) -> list[ApprovalRecord]:
        with session_scope(self._session_factory) as session:
            return RequestSelector(session).approver_inbox(approver_id)

    def unread_notifications(self, user_id: UUID) -> list[NotificationRecord]:
        with session_scope(self._session_factory) as session:
            return NotificationStore(session, self._clock).unread_for(user_id)

    def mark_notification_read(self, notification_id: UUID) -> bool:
        with session_scope(self._session_factory) as session:
            return NotificationStore(session, self._clock).mark_read(notification_id)

    # -------------------------------------------------------------------------
    # Internal
    # -------------------------------------------------------------------------

    def _state_machine(self, session: Session) -> RequestStateMachine:
        return RequestStateMachine(
            session, self._roles, self._clock, chain_resolver=self._chain_resolver,
        )

    def _dispatcher(self, session: Session) -> NotificationDispatcher:
        return NotificationDispatcher(
            session, self._sink_factory(session), self._roles, self._clock,
        )

    def _dispatch(self, session: Session, events: tuple[TransitionEvent, ...]) -> None:
        dispatcher = self._dispatcher(session)
        for event in events:
            dispatcher.on_transition(event)

    def _notify_breach(self, breach: BreachEvent, settings: SettingsSnapshot) -> None:
        with self._locked_call("sla_notify", breach.request_id) as session:
            still_open = session.execute(
                select(ApprovalModel.id)
                .join(SpendRequestModel, ApprovalModel.request_id == SpendRequestModel.id)
                .where(
                    ApprovalModel.id == breach.approval_id,
                    ApprovalModel.status == ApprovalStatus.PENDING.value,
                    ApprovalModel.level == SpendRequestModel.current_level,
                    SpendRequestModel.status == RequestStatus.SUBMITTED.value,
                )
                .with_for_update()
            ).scalar_one_or_none()
            if still_open is None:
                logger.debug(
                    "sla_breach_resolved_before_notify",
                    extra={"approval_id": str(breach.approval_id)},
                )
                return
            self._dispatcher(session).on_breach(breach, settings)

    @contextmanager
    def _locked_call(
        self,
        operation: str,
        request_id: UUID,
        actor_id: UUID | None = None,
    ) -> Generator[Session, None, None]:
        with self._locks.hold(request_id):
            with self._call(operation, request_id=request_id, actor_id=actor_id) as session:
                yield session

    @contextmanager
    def _call(
        self,
        operation: str,
        request_id: UUID | None = None,
        actor_id: UUID | None = None,
    ) -> Generator[Session, None, None]:
        with LogContext.bind(
            correlation_id=str(uuid4()),
            request_id=str(request_id) if request_id else None,
            actor_id=str(actor_id) if actor_id else None,
            operation=operation,
        ):
            t0 = time.monotonic()
            try:
                with session_scope(self._session_factory) as session:
                    yield session
            except ApprovalKernelError as exc:
                logger.warning(
                    "engine_call_rejected",
                    extra={"error_code": exc.code},
                )
                raise
            except Exception:
                logger.error("engine_call_failed", exc_info=True)
                raise
            logger.debug(
                "engine_call_completed",
                extra={"duration_ms": round((time.monotonic() - t0) * 1000, 2)},
            )

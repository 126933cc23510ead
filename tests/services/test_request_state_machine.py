"""
Tests for RequestStateMachine -- request lifecycle and level pointer.

Runs directly against a session; nothing is committed.
"""

from decimal import Decimal
from uuid import uuid4

import pytest

from approval_kernel.domain.approval import (
    ApprovalChain,
    ApprovalStatus,
    RequestStatus,
    TransitionKind,
)
from approval_kernel.domain.roles import Role
from approval_kernel.exceptions import (
    EmptyChainError,
    InvalidAmountError,
    InvalidTransitionError,
    RequestNotFoundError,
)
from approval_kernel.models.request import ApprovalModel, SpendRequestModel
from approval_kernel.services.request_state_machine import RequestStateMachine


@pytest.fixture
def machine(session, roles, clock) -> RequestStateMachine:
    return RequestStateMachine(session, roles, clock)


def _draft(machine, people, amount="5000000"):
    return machine.create_draft(
        people.requester, people.department_id, Decimal(amount), "Laptops",
    )


class TestCreateDraft:
    def test_draft_fields(self, machine, people):
        request = _draft(machine, people)
        assert request.status == RequestStatus.DRAFT
        assert request.request_number == "REQ-2024-000001"
        assert request.current_level == 1
        assert request.chain is None
        assert request.submitted_at is None

    def test_numbers_increase(self, machine, people):
        first = _draft(machine, people)
        second = _draft(machine, people)
        assert first.request_number == "REQ-2024-000001"
        assert second.request_number == "REQ-2024-000002"

    def test_amount_rounded_half_up(self, machine, people):
        request = _draft(machine, people, amount="100.005")
        assert request.amount == Decimal("100.01")

    @pytest.mark.parametrize("amount", ["0", "-10", "0.004", "not-a-number"])
    def test_invalid_amount(self, machine, people, amount):
        with pytest.raises(InvalidAmountError):
            machine.create_draft(people.requester, people.department_id, amount, "x")

    @pytest.mark.parametrize("amount", ["NaN", "Infinity", "-Infinity", "1e40"])
    def test_non_finite_or_huge_amount(self, machine, people, amount):
        with pytest.raises(InvalidAmountError) as exc_info:
            machine.create_draft(people.requester, people.department_id, amount, "x")
        assert exc_info.value.code == "INVALID_AMOUNT"

    @pytest.mark.parametrize(
        "amount", ["10000000000000", "1e14", "9999999999999.995"],
    )
    def test_amount_must_fit_numeric_15_2(self, machine, people, amount):
        with pytest.raises(InvalidAmountError):
            machine.create_draft(people.requester, people.department_id, amount, "x")

    def test_largest_storable_amount(self, machine, people):
        request = _draft(machine, people, amount="9999999999999.99")
        assert request.amount == Decimal("9999999999999.99")

    def test_rejected_amount_leaves_no_row(self, machine, people, session):
        with pytest.raises(InvalidAmountError):
            machine.create_draft(people.requester, people.department_id, "NaN", "x")
        assert session.query(SpendRequestModel).count() == 0


class TestDiscardDraft:
    def test_discard_removes_row(self, machine, people, session):
        request = _draft(machine, people)
        machine.discard_draft(request.request_id)
        assert session.get(SpendRequestModel, request.request_id) is None

    def test_cannot_discard_submitted(self, machine, people, settings):
        request = _draft(machine, people)
        machine.submit(request.request_id, settings)
        with pytest.raises(InvalidTransitionError):
            machine.discard_draft(request.request_id)

    def test_unknown_request(self, machine):
        with pytest.raises(RequestNotFoundError):
            machine.discard_draft(uuid4())


class TestSubmit:
    def test_small_request_opens_supervisor_level(self, machine, people, settings, clock):
        draft = _draft(machine, people)
        result = machine.submit(draft.request_id, settings)

        request = result.request
        assert request.status == RequestStatus.SUBMITTED
        assert request.current_level == 1
        assert request.submitted_at == clock.now()
        assert request.chain.roles == (Role.SUPERVISOR,)
        assert request.settings_version == settings.version

        (event,) = result.events
        assert event.kind == TransitionKind.LEVEL_OPENED
        assert event.level == 1
        assert event.role == Role.SUPERVISOR
        assert event.approver_id == people.supervisor

    def test_pending_approval_created_with_stamped_sla(self, machine, people, settings, session):
        draft = _draft(machine, people, amount="15000000")
        machine.submit(draft.request_id, settings)

        approvals = session.query(ApprovalModel).filter_by(request_id=draft.request_id).all()
        assert len(approvals) == 1
        assert approvals[0].level == 1
        assert approvals[0].status == ApprovalStatus.PENDING.value
        assert approvals[0].sla_minutes == settings.sla_supervisor
        assert approvals[0].approver_id == people.supervisor

    def test_chain_stamped_on_request(self, machine, people, settings, session):
        draft = _draft(machine, people, amount="15000000")
        machine.submit(draft.request_id, settings)

        model = session.get(SpendRequestModel, draft.request_id)
        chain = ApprovalChain.from_payload(model.chain)
        assert chain.roles == (Role.SUPERVISOR, Role.MANAGER, Role.FINANCE, Role.ADMIN)

    def test_cannot_submit_twice(self, machine, people, settings):
        draft = _draft(machine, people)
        machine.submit(draft.request_id, settings)
        with pytest.raises(InvalidTransitionError):
            machine.submit(draft.request_id, settings)

    def test_empty_chain_rejected(self, session, roles, clock, people, settings):
        machine = RequestStateMachine(
            session, roles, clock, chain_resolver=lambda **_: ApprovalChain(levels=()),
        )
        draft = _draft(machine, people)
        with pytest.raises(EmptyChainError):
            machine.submit(draft.request_id, settings)

    def test_assignee_equal_to_requester_left_unassigned(
        self, machine, people, roles, settings, session,
    ):
        roles.assign(Role.SUPERVISOR, people.requester)
        draft = _draft(machine, people)
        result = machine.submit(draft.request_id, settings)

        assert result.events[0].approver_id is None
        approval = session.query(ApprovalModel).filter_by(request_id=draft.request_id).one()
        assert approval.approver_id is None


class TestLevelTransitions:
    def _submitted(self, machine, people, settings, session, amount="15000000"):
        draft = _draft(machine, people, amount=amount)
        machine.submit(draft.request_id, settings)
        return machine.load_for_update(draft.request_id)

    def test_advance_opens_next_level(self, machine, people, settings, session):
        model = self._submitted(machine, people, settings, session)
        (event,) = machine.advance_level(model, 1)

        assert model.current_level == 2
        assert event.role == Role.MANAGER
        assert event.approver_id == people.manager
        assert [a.level for a in model.approvals] == [1, 2]

    def test_advance_from_wrong_level_rejected(self, machine, people, settings, session):
        model = self._submitted(machine, people, settings, session)
        with pytest.raises(InvalidTransitionError):
            machine.advance_level(model, 2)

    def test_advance_past_final_level_rejected(self, machine, people, settings, session):
        model = self._submitted(machine, people, settings, session, amount="100")
        with pytest.raises(InvalidTransitionError):
            machine.advance_level(model, 1)

    def test_current_level_never_decreases(self, machine, people, settings, session):
        model = self._submitted(machine, people, settings, session)
        machine.advance_level(model, 1)
        with pytest.raises(InvalidTransitionError):
            model.current_level = 1

    def test_final_approve(self, machine, people, settings, session):
        model = self._submitted(machine, people, settings, session, amount="100")
        (event,) = machine.final_approve(model)
        assert model.status == RequestStatus.APPROVED.value
        assert model.completed_at is None
        assert event.kind == TransitionKind.APPROVED

    def test_reject_sets_completed_at(self, machine, people, settings, session, clock):
        model = self._submitted(machine, people, settings, session)
        (event,) = machine.reject(model)
        assert model.status == RequestStatus.REJECTED.value
        assert model.completed_at is not None
        assert event.kind == TransitionKind.REJECTED
        assert event.level == 1

    def test_no_transitions_out_of_rejected(self, machine, people, settings, session):
        model = self._submitted(machine, people, settings, session)
        machine.reject(model)
        with pytest.raises(InvalidTransitionError):
            machine.final_approve(model)
        with pytest.raises(InvalidTransitionError):
            machine.advance_level(model, 1)


class TestComplete:
    def test_complete_after_approval(self, machine, people, settings, session):
        draft = _draft(machine, people, amount="100")
        machine.submit(draft.request_id, settings)
        machine.final_approve(machine.load_for_update(draft.request_id))

        result = machine.complete(draft.request_id, people.finance)

        assert result.request.status == RequestStatus.COMPLETED
        assert result.request.completed_at is not None
        assert result.events[0].kind == TransitionKind.COMPLETED

    def test_complete_requires_approved(self, machine, people, settings):
        draft = _draft(machine, people)
        machine.submit(draft.request_id, settings)
        with pytest.raises(InvalidTransitionError) as exc_info:
            machine.complete(draft.request_id, people.finance)
        assert exc_info.value.from_status == "submitted"

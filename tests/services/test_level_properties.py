"""
Hypothesis properties for the level pointer under random decisions.

Each example submits a full-chain request and replays a random sequence of
approve/reject decisions against whatever level is open.  Decisions after
the request closes must be refused as stale and change nothing.
"""

from decimal import Decimal

import pytest
from hypothesis import HealthCheck, given, settings
from hypothesis import strategies as st

from approval_kernel.domain.approval import ApprovalDecision, RequestStatus
from approval_kernel.domain.settings import SettingsSnapshot
from approval_kernel.exceptions import StaleLevelError
from approval_kernel.services.approval_ledger import ApprovalLedger
from approval_kernel.services.request_state_machine import RequestStateMachine

FULL_CHAIN_AMOUNT = Decimal("15000000")

decision_sequences = st.lists(
    st.sampled_from([ApprovalDecision.APPROVE, ApprovalDecision.REJECT]),
    min_size=1,
    max_size=8,
)


class TestLevelMonotonicity:
    @given(decisions=decision_sequences)
    @settings(
        max_examples=50,
        deadline=None,
        suppress_health_check=[HealthCheck.too_slow, HealthCheck.function_scoped_fixture],
    )
    def test_level_never_moves_back(self, decisions, session, roles, clock, people):
        machine = RequestStateMachine(session, roles, clock)
        ledger = ApprovalLedger(session, roles, machine, clock)
        draft = machine.create_draft(
            people.requester, people.department_id, FULL_CHAIN_AMOUNT, "Fleet",
        )
        request = machine.submit(draft.request_id, SettingsSnapshot()).request
        chain = request.chain

        for decision in decisions:
            before = machine.load_for_update(request.request_id)
            level, status = before.current_level, RequestStatus(before.status)

            if status != RequestStatus.SUBMITTED:
                with pytest.raises(StaleLevelError):
                    ledger.decide(
                        request.request_id, level,
                        people.for_role(chain.level(level).role), decision,
                    )
                after = machine.load_for_update(request.request_id)
                assert after.current_level == level
                assert RequestStatus(after.status) == status
                continue

            outcome = ledger.decide(
                request.request_id, level, people.for_role(chain.level(level).role), decision,
            )
            after = outcome.request

            assert after.current_level >= level
            if decision == ApprovalDecision.REJECT:
                assert after.status == RequestStatus.REJECTED
                assert after.current_level == level
            elif chain.is_final(level):
                assert after.status == RequestStatus.APPROVED
                assert after.current_level == level
            else:
                assert after.status == RequestStatus.SUBMITTED
                assert after.current_level == level + 1

        final = machine.load_for_update(request.request_id)
        approvals = sorted(final.approvals, key=lambda a: a.level)
        assert [a.level for a in approvals] == list(range(1, final.current_level + 1))

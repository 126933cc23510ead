"""Tests for approval_engines.tracer."""

from decimal import Decimal

import pytest

from approval_engines.tracer import compute_input_fingerprint, traced_engine


class TestFingerprint:
    def test_deterministic(self):
        a = compute_input_fingerprint(("x", "y"), {"x": 1, "y": [1, 2]})
        b = compute_input_fingerprint(("x", "y"), {"y": [1, 2], "x": 1})
        assert a == b
        assert len(a) == 16

    def test_missing_field_differs_from_present(self):
        assert compute_input_fingerprint(("x",), {}) != compute_input_fingerprint(
            ("x",), {"x": 0},
        )


class TestTracedEngine:
    def test_returns_result_and_logs(self, captured_logs):
        @traced_engine("double", "2.1", fingerprint_fields=("value",))
        def double(*, value: int) -> int:
            return value * 2

        assert double(value=21) == 42
        trace = [r for r in captured_logs() if r["message"] == "APPROVAL_ENGINE_TRACE"][-1]
        assert trace["engine_name"] == "double"
        assert trace["engine_version"] == "2.1"
        assert trace["function"].endswith("double")

    def test_summary_and_dataclass_inputs(self, captured_logs):
        from approval_engines.chain import resolve_chain
        from approval_kernel.domain.approval import DepartmentContext
        from approval_kernel.domain.settings import SettingsSnapshot

        resolve_chain(
            amount=Decimal("20000000"),
            department=DepartmentContext(department_id="ops"),
            settings=SettingsSnapshot(),
        )
        trace = [r for r in captured_logs() if r.get("engine_name") == "chain"][-1]
        assert trace["chain_depth"] == 4
        assert len(trace["input_fingerprint"]) == 16

    def test_exception_propagates_without_trace(self, captured_logs):
        @traced_engine("boom", "1.0")
        def boom():
            raise ValueError("bad input")

        with pytest.raises(ValueError):
            boom()
        assert not [r for r in captured_logs() if r.get("engine_name") == "boom"]

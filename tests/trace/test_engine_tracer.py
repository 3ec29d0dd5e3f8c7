"""
Tests for the LEDGER_ENGINE_TRACE decorator.
"""

from datetime import date
from decimal import Decimal

from ledger_engines.aging import AgingCalculator
from ledger_engines.rollup import RollupNode, rollup_balances
from ledger_engines.tracer import compute_input_fingerprint, traced_engine


def _traces(records):
    return [r for r in records if r["message"] == "LEDGER_ENGINE_TRACE"]


def test_trace_emitted_for_rollup(captured_logs):
    rollup_balances(nodes=[RollupNode("a", None, Decimal("1"))])

    traces = _traces(captured_logs())
    assert len(traces) == 1
    trace = traces[0]
    assert trace["engine_name"] == "rollup"
    assert trace["engine_version"] == "1.0"
    assert len(trace["input_fingerprint"]) == 16
    assert trace["logger"] == "ledger_kernel.engines.tracer"


def test_trace_emitted_for_aging(captured_logs):
    AgingCalculator().age(open_items=[], as_of_date=date(2024, 1, 1))
    assert [t["engine_name"] for t in _traces(captured_logs())] == ["aging"]


def test_fingerprint_is_deterministic():
    kwargs = {"nodes": [RollupNode("a", None, Decimal("1"))]}
    first = compute_input_fingerprint(("nodes",), kwargs)
    second = compute_input_fingerprint(("nodes",), dict(kwargs))
    assert first == second


def test_fingerprint_changes_with_input():
    a = compute_input_fingerprint(("x",), {"x": 1})
    b = compute_input_fingerprint(("x",), {"x": 2})
    assert a != b


def test_fingerprint_ignores_dict_key_order():
    a = compute_input_fingerprint(("x",), {"x": {"k1": 1, "k2": 2}})
    b = compute_input_fingerprint(("x",), {"x": {"k2": 2, "k1": 1}})
    assert a == b


def test_missing_field_recorded_as_null():
    assert compute_input_fingerprint(("absent",), {}) == compute_input_fingerprint(
        ("absent",), {"absent": None}
    )


def test_decorator_preserves_result_and_name(captured_logs):
    @traced_engine("demo", "2.1")
    def double(value):
        return value * 2

    assert double(21) == 42
    assert double.__name__ == "double"
    trace = _traces(captured_logs())[-1]
    assert trace["engine_name"] == "demo"
    assert trace["input_fingerprint"] == ""

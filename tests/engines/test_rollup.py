"""
Tests for hierarchical balance rollup.
"""

from decimal import Decimal

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from ledger_engines.rollup import RollupNode, rollup_balances
from ledger_kernel.exceptions import AccountHierarchyError


def test_parent_includes_children():
    nodes = [
        RollupNode("1000", None, Decimal("10")),
        RollupNode("1010", "1000", Decimal("5")),
        RollupNode("1011", "1010", Decimal("2")),
        RollupNode("1020", "1000", Decimal("3")),
    ]
    result = rollup_balances(nodes=nodes)

    assert len(result.roots) == 1
    root = result.roots[0]
    assert root.own_balance == Decimal("10")
    assert root.rolled_up_balance == Decimal("20")
    assert result.find("1010").rolled_up_balance == Decimal("7")
    assert result.find("1011").depth == 2
    assert result.total == Decimal("20")


def test_children_are_not_folded_away():
    nodes = [
        RollupNode("p", None, Decimal("0")),
        RollupNode("c1", "p", Decimal("1")),
        RollupNode("c2", "p", Decimal("2")),
    ]
    result = rollup_balances(nodes=nodes)
    assert [n.node_id for n in result.roots[0].walk()] == ["p", "c1", "c2"]


def test_parent_outside_input_becomes_root():
    # A child whose parent sits in another ledger group rolls up on its own
    nodes = [RollupNode("c", "missing-parent", Decimal("4"))]
    result = rollup_balances(nodes=nodes)
    assert result.roots[0].node_id == "c"
    assert result.roots[0].depth == 0


def test_cycle_rejected():
    nodes = [
        RollupNode("a", "b", Decimal("1")),
        RollupNode("b", "a", Decimal("1")),
    ]
    with pytest.raises(AccountHierarchyError):
        rollup_balances(nodes=nodes)


def test_empty_input():
    result = rollup_balances(nodes=[])
    assert result.roots == ()
    assert result.total == Decimal("0")


@st.composite
def forests(draw):
    size = draw(st.integers(min_value=1, max_value=30))
    nodes = []
    for i in range(size):
        # Parents always precede children, so the links form a forest
        parent = draw(st.one_of(st.none(), st.integers(min_value=0, max_value=i - 1))) if i else None
        balance = Decimal(draw(st.integers(min_value=-100_000, max_value=100_000))) / 100
        nodes.append(RollupNode(i, parent, balance))
    return nodes


@given(nodes=forests())
@settings(max_examples=75, deadline=None)
def test_rollup_conserves_total(nodes):
    result = rollup_balances(nodes=nodes)
    assert result.total == sum((n.balance for n in nodes), Decimal("0"))

    seen = [node.node_id for root in result.roots for node in root.walk()]
    assert sorted(seen) == sorted(n.node_id for n in nodes)

    for root in result.roots:
        for node in root.walk():
            assert node.rolled_up_balance == node.own_balance + sum(
                (c.rolled_up_balance for c in node.children), Decimal("0")
            )

"""
Module: ledger_engines.rollup
Responsibility:
    Hierarchical balance rollup over the chart of accounts.  Turns flat
    (id, parent id, balance) nodes into a tree where every node carries
    its own balance and the balance of its whole subtree.

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Invariants enforced:
    - rolled_up_balance == own_balance + sum of the children's
      rolled_up_balance, recursively.
    - Every input node appears exactly once in the output, either as a
      root or as somebody's child.  Children are never folded away.
    - A node whose parent is not among the inputs is a root, so a rollup
      over one ledger group never pulls in another group's balances.
    - Sum of root rolled-up balances == sum of own balances (no double
      counting).

Failure modes:
    - AccountHierarchyError if the parent links contain a cycle.
"""

from __future__ import annotations

from collections.abc import Hashable, Sequence
from dataclasses import dataclass
from decimal import Decimal

from ledger_engines.tracer import traced_engine
from ledger_kernel.exceptions import AccountHierarchyError
from ledger_kernel.logging_config import get_logger

logger = get_logger("engines.rollup")


@dataclass(frozen=True)
class RollupNode:
    node_id: Hashable
    parent_id: Hashable | None
    balance: Decimal


@dataclass(frozen=True)
class RolledUpNode:
    node_id: Hashable
    parent_id: Hashable | None
    own_balance: Decimal
    rolled_up_balance: Decimal
    depth: int
    children: tuple[RolledUpNode, ...] = ()

    def walk(self):
        """Yield this node and every descendant, depth first."""
        yield self
        for child in self.children:
            yield from child.walk()


@dataclass(frozen=True)
class RollupResult:
    roots: tuple[RolledUpNode, ...]

    def find(self, node_id: Hashable) -> RolledUpNode | None:
        for root in self.roots:
            for node in root.walk():
                if node.node_id == node_id:
                    return node
        return None

    @property
    def total(self) -> Decimal:
        return sum((root.rolled_up_balance for root in self.roots), Decimal("0"))


def _check_acyclic(parents: dict[Hashable, Hashable | None]) -> None:
    cleared: set[Hashable] = set()
    for start in parents:
        path: list[Hashable] = []
        on_path: set[Hashable] = set()
        node = start
        while node is not None and node in parents and node not in cleared:
            if node in on_path:
                raise AccountHierarchyError(str(node), str(parents[node]))
            path.append(node)
            on_path.add(node)
            node = parents[node]
        cleared.update(path)


@traced_engine("rollup", "1.0", fingerprint_fields=("nodes",))
def rollup_balances(nodes: Sequence[RollupNode]) -> RollupResult:
    """
    Build the parent/child tree and compute rolled-up balances.

    Sibling order follows input order.

    Raises:
        AccountHierarchyError: The parent links form a cycle.
    """
    nodes = list(nodes)
    parents = {node.node_id: node.parent_id for node in nodes}
    _check_acyclic(parents)

    children: dict[Hashable, list[RollupNode]] = {}
    roots: list[RollupNode] = []
    for node in nodes:
        if node.parent_id is not None and node.parent_id in parents:
            children.setdefault(node.parent_id, []).append(node)
        else:
            roots.append(node)

    def build(node: RollupNode, depth: int) -> RolledUpNode:
        built = tuple(build(child, depth + 1) for child in children.get(node.node_id, ()))
        return RolledUpNode(
            node_id=node.node_id,
            parent_id=node.parent_id,
            own_balance=node.balance,
            rolled_up_balance=node.balance + sum(
                (child.rolled_up_balance for child in built), Decimal("0")
            ),
            depth=depth,
            children=built,
        )

    result = RollupResult(roots=tuple(build(root, 0) for root in roots))
    logger.debug(
        "rollup_computed",
        extra={"node_count": len(nodes), "root_count": len(result.roots)},
    )
    return result

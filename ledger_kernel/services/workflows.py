"""
ledger_kernel.services.workflows
================================

Responsibility:
    Declarative state machine for vouchers.  VoucherService looks every
    requested action up here before applying it; this module only
    declares the graph and guards.

Invariants enforced:
    - POSTED is reachable only from APPROVED.
    - POSTED and CANCELLED are terminal: a posted voucher is undone by
      reversing its transaction group, never by cancelling it.
    - The ``post`` transition is the only one with ``posts_entry=True``;
      VoucherService posts the voucher's group only on such a transition
      and names its guard when the posting fails.
"""

from ledger_kernel.domain.workflow import Guard, Transition, Workflow
from ledger_kernel.logging_config import get_logger
from ledger_kernel.models.voucher import VoucherStatus

logger = get_logger("services.workflows")


GROUP_BALANCED = Guard(
    name="group_balanced",
    description="The voucher's transaction group balances and its accounts are open",
)

VOUCHER_WORKFLOW = Workflow(
    name="voucher",
    description="Payment, receipt and deposit voucher lifecycle",
    initial_state=VoucherStatus.DRAFT.value,
    states=(
        VoucherStatus.DRAFT.value,
        VoucherStatus.APPROVED.value,
        VoucherStatus.POSTED.value,
        VoucherStatus.CANCELLED.value,
    ),
    transitions=(
        Transition(VoucherStatus.DRAFT.value, VoucherStatus.APPROVED.value, action="approve"),
        Transition(
            VoucherStatus.APPROVED.value,
            VoucherStatus.POSTED.value,
            action="post",
            guard=GROUP_BALANCED,
            posts_entry=True,
        ),
        Transition(VoucherStatus.DRAFT.value, VoucherStatus.CANCELLED.value, action="cancel"),
        Transition(VoucherStatus.APPROVED.value, VoucherStatus.CANCELLED.value, action="cancel"),
    ),
    terminal_states=(VoucherStatus.POSTED.value, VoucherStatus.CANCELLED.value),
)

logger.info(
    "voucher_workflow_registered",
    extra={
        "workflow_name": VOUCHER_WORKFLOW.name,
        "state_count": len(VOUCHER_WORKFLOW.states),
        "transition_count": len(VOUCHER_WORKFLOW.transitions),
    },
)

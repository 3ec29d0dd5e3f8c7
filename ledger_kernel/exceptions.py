"""
Typed Exception Hierarchy for the ledger kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Callers of a ledger must react to errors precisely.  A rejected entry is
corrected and resubmitted; an already-posted group is an idempotent success;
a concurrent modification is retried.  None of these can be told apart by
parsing message strings, so:

  1. Every error has a TYPED exception class (catch by type, not message)
  2. Every exception has a CODE attribute (machine-readable, API-safe)
  3. Exceptions carry structured DATA (not just a message string)

Example:
    try:
        journal.create_entry(...)
    except UnbalancedEntryError as e:
        return {"error": e.code, "debits": e.debits, "credits": e.credits}

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    LedgerError (base)
    |
    +-- PostingError
    |   +-- UnbalancedEntryError
    |   +-- InsufficientLinesError
    |   +-- InvalidAmountError
    |
    +-- StateTransitionError
    |   +-- InvalidStateTransitionError
    |   |   +-- VoucherGroupError
    |   +-- AlreadyPostedError
    |   +-- AlreadyReversedError
    |
    +-- NotFoundError
    |   +-- TransactionGroupNotFoundError
    |   +-- VoucherNotFoundError
    |
    +-- AccountError
    |   +-- AccountNotFoundError
    |   +-- AccountArchivedError
    |   +-- AccountReferencedError
    |   +-- DuplicateAccountCodeError
    |   +-- LedgerGroupImmutableError
    |   +-- AccountHierarchyError
    |
    +-- CurrencyError
    |   +-- InvalidCurrencyError
    |   +-- CurrencyMismatchError
    |
    +-- ConcurrencyError
        +-- OptimisticLockError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category     | Code                       | When Raised
-------------|----------------------------|-----------------------------------------
Posting      | UNBALANCED_ENTRY           | Debits != Credits (minor units)
             | INSUFFICIENT_LINES         | Fewer than two postings in a group
             | INVALID_AMOUNT             | Zero/negative/over-precise amount
-------------|----------------------------|-----------------------------------------
State        | INVALID_STATE_TRANSITION   | Illegal lifecycle move
             | ALREADY_POSTED             | Posting a POSTED group (idempotency)
             | ALREADY_REVERSED           | Reversing a reversed group
             | VOUCHER_GROUP              | Posting/discarding a voucher group directly
-------------|----------------------------|-----------------------------------------
Not found    | TRANSACTION_GROUP_NOT_FOUND| Group id doesn't exist
             | VOUCHER_NOT_FOUND          | Voucher id doesn't exist
-------------|----------------------------|-----------------------------------------
Account      | ACCOUNT_NOT_FOUND          | AccountRef doesn't resolve
             | ACCOUNT_ARCHIVED           | Entry targets an archived account
             | ACCOUNT_REFERENCED         | Archive attempted on a used account
             | DUPLICATE_ACCOUNT_CODE     | Account code already taken
             | LEDGER_GROUP_IMMUTABLE     | Group change after postings exist
             | ACCOUNT_HIERARCHY_INVALID  | Parent assignment creates a cycle
-------------|----------------------------|-----------------------------------------
Currency     | INVALID_CURRENCY           | Not a valid ISO 4217 code
             | CURRENCY_MISMATCH          | Mixed currencies in one operation
-------------|----------------------------|-----------------------------------------
Concurrency  | OPTIMISTIC_LOCK_CONFLICT   | Balance cache changed underneath us

All of these are recoverable at the caller's level.  None is fatal to the
process, and none is ever "fixed" silently by the engine.
"""


class LedgerError(Exception):
    """
    Base exception for all ledger kernel errors.

    All subclasses define a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "LEDGER_ERROR"


# Posting-related exceptions


class PostingError(LedgerError):
    """Base exception for posting-related errors."""

    code: str = "POSTING_ERROR"


class UnbalancedEntryError(PostingError):
    """Transaction group debits do not equal credits."""

    code: str = "UNBALANCED_ENTRY"

    def __init__(self, debits: str, credits: str, currency: str):
        self.debits = debits
        self.credits = credits
        self.currency = currency
        super().__init__(
            f"Unbalanced entry in {currency}: debits={debits}, credits={credits}"
        )


class InsufficientLinesError(PostingError):
    """A transaction group needs at least two postings."""

    code: str = "INSUFFICIENT_LINES"

    def __init__(self, line_count: int, minimum: int = 2):
        self.line_count = line_count
        self.minimum = minimum
        super().__init__(
            f"Transaction group has {line_count} line(s); at least {minimum} required"
        )


class InvalidAmountError(PostingError):
    """Line amount is zero, negative, or finer than the currency minor unit."""

    code: str = "INVALID_AMOUNT"

    def __init__(self, amount: str, currency: str, reason: str):
        self.amount = amount
        self.currency = currency
        self.reason = reason
        super().__init__(f"Invalid amount {amount} {currency}: {reason}")


# Lifecycle exceptions


class StateTransitionError(LedgerError):
    """Base exception for lifecycle errors."""

    code: str = "STATE_TRANSITION_ERROR"


class InvalidStateTransitionError(StateTransitionError):
    """The requested action is not allowed from the current state."""

    code: str = "INVALID_STATE_TRANSITION"

    def __init__(
        self,
        entity_type: str,
        entity_id: str,
        current_state: str,
        action: str,
    ):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.current_state = current_state
        self.action = action
        super().__init__(
            f"Cannot {action} {entity_type} {entity_id} in state {current_state}"
        )


class VoucherGroupError(InvalidStateTransitionError):
    """
    A voucher's PENDING group was posted or discarded outside VoucherService.

    The group only moves when its voucher is posted or cancelled.
    """

    code: str = "VOUCHER_GROUP"

    def __init__(self, group_id: str, action: str):
        self.entity_type = "TransactionGroup"
        self.entity_id = group_id
        self.current_state = "pending"
        self.action = action
        StateTransitionError.__init__(
            self,
            f"Cannot {action} TransactionGroup {group_id}: it belongs to a voucher, "
            f"{action} the voucher instead",
        )


class AlreadyPostedError(StateTransitionError):
    """Transaction group has already been posted."""

    code: str = "ALREADY_POSTED"

    def __init__(self, group_id: str, seq: int | None = None):
        self.group_id = group_id
        self.seq = seq
        super().__init__(f"Transaction group {group_id} already posted (seq={seq})")


class AlreadyReversedError(StateTransitionError):
    """Transaction group has already been reversed."""

    code: str = "ALREADY_REVERSED"

    def __init__(self, group_id: str, reversal_group_id: str | None = None):
        self.group_id = group_id
        self.reversal_group_id = reversal_group_id
        super().__init__(
            f"Transaction group {group_id} already reversed"
            + (f" by {reversal_group_id}" if reversal_group_id else "")
        )


# Lookup exceptions


class NotFoundError(LedgerError):
    """Base exception for missing entities."""

    code: str = "NOT_FOUND"


class TransactionGroupNotFoundError(NotFoundError):
    """Transaction group with given ID was not found."""

    code: str = "TRANSACTION_GROUP_NOT_FOUND"

    def __init__(self, group_id: str):
        self.group_id = group_id
        super().__init__(f"Transaction group not found: {group_id}")


class VoucherNotFoundError(NotFoundError):
    """Voucher with given ID was not found."""

    code: str = "VOUCHER_NOT_FOUND"

    def __init__(self, voucher_id: str):
        self.voucher_id = voucher_id
        super().__init__(f"Voucher not found: {voucher_id}")


# Account-related exceptions


class AccountError(LedgerError):
    """Base exception for chart-of-accounts errors."""

    code: str = "ACCOUNT_ERROR"


class AccountNotFoundError(AccountError):
    """Account reference does not resolve to an account."""

    code: str = "ACCOUNT_NOT_FOUND"

    def __init__(self, account_ref: str):
        self.account_ref = account_ref
        super().__init__(f"Account not found: {account_ref}")


class AccountArchivedError(AccountError):
    """Account is archived and cannot receive new entries."""

    code: str = "ACCOUNT_ARCHIVED"

    def __init__(self, account_id: str, account_code: str):
        self.account_id = account_id
        self.account_code = account_code
        super().__init__(f"Account {account_code} ({account_id}) is archived")


class AccountReferencedError(AccountError):
    """Account cannot be archived because something still references it."""

    code: str = "ACCOUNT_REFERENCED"

    def __init__(self, account_id: str, reason: str):
        self.account_id = account_id
        self.reason = reason
        super().__init__(f"Account {account_id} is referenced: {reason}")


class DuplicateAccountCodeError(AccountError):
    """An account with this code already exists."""

    code: str = "DUPLICATE_ACCOUNT_CODE"

    def __init__(self, account_code: str):
        self.account_code = account_code
        super().__init__(f"Account code already exists: {account_code}")


class LedgerGroupImmutableError(AccountError):
    """Ledger group cannot change once postings exist against the account."""

    code: str = "LEDGER_GROUP_IMMUTABLE"

    def __init__(self, account_id: str, current_group: str, requested_group: str):
        self.account_id = account_id
        self.current_group = current_group
        self.requested_group = requested_group
        super().__init__(
            f"Account {account_id} has postings; ledger group {current_group} "
            f"cannot change to {requested_group}"
        )


class AccountHierarchyError(AccountError):
    """Parent assignment would make the account tree cyclic."""

    code: str = "ACCOUNT_HIERARCHY_INVALID"

    def __init__(self, account_id: str, parent_id: str):
        self.account_id = account_id
        self.parent_id = parent_id
        super().__init__(
            f"Account {parent_id} cannot be the parent of {account_id}: cycle"
        )


# Currency-related exceptions


class CurrencyError(LedgerError):
    """Base exception for currency-related errors."""

    code: str = "CURRENCY_ERROR"


class InvalidCurrencyError(CurrencyError):
    """Currency code is not a valid ISO 4217 code."""

    code: str = "INVALID_CURRENCY"

    def __init__(self, currency: str):
        self.currency = currency
        super().__init__(f"Invalid ISO 4217 currency code: {currency}")


class CurrencyMismatchError(CurrencyError):
    """Operation mixes currencies that must agree."""

    code: str = "CURRENCY_MISMATCH"

    def __init__(self, expected: str, actual: str, context: str | None = None):
        self.expected = expected
        self.actual = actual
        self.context = context
        message = f"Currency mismatch: expected {expected}, got {actual}"
        if context:
            message = f"{message} ({context})"
        super().__init__(message)


# Concurrency-related exceptions


class ConcurrencyError(LedgerError):
    """Base exception for concurrency errors."""

    code: str = "CONCURRENCY_ERROR"


class OptimisticLockError(ConcurrencyError):
    """Row was modified by another transaction since it was read."""

    code: str = "OPTIMISTIC_LOCK_CONFLICT"

    def __init__(self, entity_type: str, entity_id: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(
            f"Concurrent modification of {entity_type} {entity_id}; retry the operation"
        )

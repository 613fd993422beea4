from collections import Counter
from dataclasses import dataclass, field
from decimal import Context, Decimal, Inexact, InvalidOperation, Overflow
from enum import Enum
from typing import Optional

# All amounts are fixed-point with 4 fractional digits.
SCALE = Decimal("0.0001")
ZERO = Decimal("0.0000")

# Balance arithmetic runs here: 34 integer digits at scale 4, and any result
# that would need rounding raises Inexact instead.
LEDGER_CONTEXT = Context(prec=38, traps=[Inexact, InvalidOperation, Overflow])


def to_amount(value: Decimal) -> Decimal:
    """
    Bring a decimal to the ledger scale.
    Raises ValueError if the value is not finite, is too large for the ledger,
    or carries more than 4 fractional digits.
    """
    if not value.is_finite():
        raise ValueError(f"amount must be finite, got {value}")
    try:
        return value.quantize(SCALE, context=LEDGER_CONTEXT)
    except Inexact:
        raise ValueError(f"amount {value} has more than 4 decimal places") from None
    except InvalidOperation:
        raise ValueError(f"amount {value} is too large") from None


class TransactionType(Enum):
    DEPOSIT = "deposit"
    WITHDRAWAL = "withdrawal"
    DISPUTE = "dispute"
    RESOLVE = "resolve"
    CHARGEBACK = "chargeback"


class DisputeState(Enum):
    NORMAL = "normal"
    DISPUTED = "disputed"
    CHARGED_BACK = "charged_back"


class ProcessingResult(Enum):
    ACCEPTED = "accepted"
    IGNORED = "ignored"


class IgnoreReason(Enum):
    ACCOUNT_LOCKED = "account_locked"
    MISSING_AMOUNT = "missing_amount"
    NON_POSITIVE_AMOUNT = "non_positive_amount"
    DUPLICATE_TRANSACTION = "duplicate_transaction"
    INSUFFICIENT_FUNDS = "insufficient_funds"
    UNKNOWN_TRANSACTION = "unknown_transaction"
    NOT_DISPUTABLE = "not_disputable"
    CLIENT_MISMATCH = "client_mismatch"
    INVALID_DISPUTE_STATE = "invalid_dispute_state"
    BALANCE_OVERFLOW = "balance_overflow"


@dataclass(frozen=True)
class Outcome:
    """Result of applying one row: accepted, or ignored with a reason."""

    result: ProcessingResult
    reason: Optional[IgnoreReason] = None

    @classmethod
    def accepted(cls) -> "Outcome":
        return cls(ProcessingResult.ACCEPTED)

    @classmethod
    def ignored(cls, reason: IgnoreReason) -> "Outcome":
        return cls(ProcessingResult.IGNORED, reason)

    @property
    def is_accepted(self) -> bool:
        return self.result == ProcessingResult.ACCEPTED


@dataclass
class Transaction:
    transaction_type: TransactionType
    client_id: int
    transaction_id: int
    amount: Optional[Decimal] = None

    def __repr__(self) -> str:
        return f"Transaction({self.transaction_type.value}, client={self.client_id}, tx={self.transaction_id}, amount={self.amount})"


@dataclass
class DepositRecord:
    """A deposit kept for later dispute, resolve and chargeback lookups."""

    transaction_id: int
    client_id: int
    amount: Decimal
    dispute_state: DisputeState = DisputeState.NORMAL


@dataclass
class ClientAccount:
    client_id: int
    available: Decimal = ZERO
    held: Decimal = ZERO
    locked: bool = False

    @property
    def total(self) -> Decimal:
        return LEDGER_CONTEXT.add(self.available, self.held)

    def credit(self, amount: Decimal) -> None:
        """Raises Inexact, leaving the account untouched, if the new total cannot be held exactly."""
        available = LEDGER_CONTEXT.add(self.available, amount)
        LEDGER_CONTEXT.add(available, self.held)
        self.available = available

    def debit(self, amount: Decimal) -> None:
        self.available = LEDGER_CONTEXT.subtract(self.available, amount)

    # Moves between available and held never grow the total, so they stay exact.
    def hold(self, amount: Decimal) -> None:
        self.available = LEDGER_CONTEXT.subtract(self.available, amount)
        self.held = LEDGER_CONTEXT.add(self.held, amount)

    def release_hold(self, amount: Decimal) -> None:
        self.held = LEDGER_CONTEXT.subtract(self.held, amount)
        self.available = LEDGER_CONTEXT.add(self.available, amount)

    def remove_held(self, amount: Decimal) -> None:
        self.held = LEDGER_CONTEXT.subtract(self.held, amount)

    def snapshot(self) -> "AccountSnapshot":
        return AccountSnapshot(
            client_id=self.client_id,
            available=self.available,
            held=self.held,
            total=self.total,
            locked=self.locked,
        )


@dataclass(frozen=True)
class AccountSnapshot:
    client_id: int
    available: Decimal
    held: Decimal
    total: Decimal
    locked: bool


@dataclass
class ProcessingStats:
    """Counters for diagnosing a run. Never affect balances."""

    accepted: int = 0
    malformed: int = 0
    ignored_by_reason: Counter = field(default_factory=Counter)

    @property
    def ignored(self) -> int:
        return sum(self.ignored_by_reason.values())

    def record(self, outcome: Outcome) -> None:
        if outcome.is_accepted:
            self.accepted += 1
        else:
            self.ignored_by_reason[outcome.reason] += 1

    def record_malformed(self) -> None:
        self.malformed += 1

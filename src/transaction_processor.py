import logging
from decimal import Inexact
from typing import Dict, Tuple

from models import (
    ClientAccount,
    DepositRecord,
    DisputeState,
    IgnoreReason,
    Outcome,
    Transaction,
    TransactionType,
)
from state_manager import StateManager

logger = logging.getLogger(__name__)

# Required and resulting dispute state for each dispute-lifecycle row type.
DISPUTE_TRANSITIONS: Dict[TransactionType, Tuple[DisputeState, DisputeState]] = {
    TransactionType.DISPUTE: (DisputeState.NORMAL, DisputeState.DISPUTED),
    TransactionType.RESOLVE: (DisputeState.DISPUTED, DisputeState.NORMAL),
    TransactionType.CHARGEBACK: (DisputeState.DISPUTED, DisputeState.CHARGED_BACK),
}


class TransactionProcessor:
    """
    Applies transactions against state.
    Returns an Outcome for every row; invalid rows are ignored and leave state unchanged.
    """

    def __init__(self, state: StateManager):
        self._state = state

    def process_transaction(self, transaction: Transaction) -> Outcome:
        """
        Process a single transaction.

        Returns:
            Outcome.accepted() when the row mutated state
            Outcome.ignored(reason) when a precondition failed
        """
        account = self._state.get_or_create_account(transaction.client_id)

        if account.locked:
            logger.info(f"{transaction}: account {account.client_id} is locked, ignoring")
            return Outcome.ignored(IgnoreReason.ACCOUNT_LOCKED)

        match transaction.transaction_type:
            case TransactionType.DEPOSIT:
                return self._handle_deposit(account, transaction)
            case TransactionType.WITHDRAWAL:
                return self._handle_withdrawal(account, transaction)
            case TransactionType.DISPUTE | TransactionType.RESOLVE | TransactionType.CHARGEBACK:
                return self._handle_dispute_lifecycle(account, transaction)

        raise ValueError(f"unsupported transaction type {transaction.transaction_type!r}")

    def _check_amount(self, transaction: Transaction) -> Outcome:
        if transaction.amount is None:
            logger.warning(f"{transaction.transaction_type.value.capitalize()} tx {transaction.transaction_id}: missing amount")
            return Outcome.ignored(IgnoreReason.MISSING_AMOUNT)

        if transaction.amount <= 0:
            logger.warning(f"{transaction.transaction_type.value.capitalize()} tx {transaction.transaction_id}: invalid amount {transaction.amount}")
            return Outcome.ignored(IgnoreReason.NON_POSITIVE_AMOUNT)

        if self._state.is_transaction_known(transaction.transaction_id):
            logger.info(f"{transaction.transaction_type.value.capitalize()} tx {transaction.transaction_id}: already processed, skipping (idempotent)")
            return Outcome.ignored(IgnoreReason.DUPLICATE_TRANSACTION)

        return Outcome.accepted()

    def _handle_deposit(self, account: ClientAccount, transaction: Transaction) -> Outcome:
        outcome = self._check_amount(transaction)
        if not outcome.is_accepted:
            return outcome

        try:
            account.credit(transaction.amount)
        except Inexact:
            logger.warning(f"Deposit tx {transaction.transaction_id}: balance of account {account.client_id} would exceed ledger precision")
            return Outcome.ignored(IgnoreReason.BALANCE_OVERFLOW)

        self._state.store_deposit(
            DepositRecord(
                transaction_id=transaction.transaction_id,
                client_id=transaction.client_id,
                amount=transaction.amount,
            )
        )
        return outcome

    def _handle_withdrawal(self, account: ClientAccount, transaction: Transaction) -> Outcome:
        outcome = self._check_amount(transaction)
        if not outcome.is_accepted:
            return outcome

        if account.available < transaction.amount:
            logger.info(f"Withdrawal tx {transaction.transaction_id}: insufficient funds (available {account.available}, requested {transaction.amount})")
            return Outcome.ignored(IgnoreReason.INSUFFICIENT_FUNDS)

        account.debit(transaction.amount)
        self._state.store_withdrawal(transaction.transaction_id)
        return outcome

    def _handle_dispute_lifecycle(self, account: ClientAccount, transaction: Transaction) -> Outcome:
        kind = transaction.transaction_type.value.capitalize()
        tx_id = transaction.transaction_id

        if self._state.is_withdrawal(tx_id):
            logger.info(f"{kind} for tx {tx_id}: only deposits can be disputed")
            return Outcome.ignored(IgnoreReason.NOT_DISPUTABLE)

        record = self._state.get_deposit(tx_id)
        if record is None:
            logger.info(f"{kind} for tx {tx_id}: deposit not found")
            return Outcome.ignored(IgnoreReason.UNKNOWN_TRANSACTION)

        if record.client_id != transaction.client_id:
            logger.warning(f"{kind} for tx {tx_id}: client mismatch (expected {record.client_id}, got {transaction.client_id})")
            return Outcome.ignored(IgnoreReason.CLIENT_MISMATCH)

        required, target = DISPUTE_TRANSITIONS[transaction.transaction_type]
        if record.dispute_state != required:
            logger.info(f"{kind} for tx {tx_id}: deposit is {record.dispute_state.value}, expected {required.value}")
            return Outcome.ignored(IgnoreReason.INVALID_DISPUTE_STATE)

        match target:
            case DisputeState.DISPUTED:
                # available must stay non-negative
                if account.available < record.amount:
                    logger.info(f"{kind} for tx {tx_id}: insufficient available funds to hold {record.amount}")
                    return Outcome.ignored(IgnoreReason.INSUFFICIENT_FUNDS)
                account.hold(record.amount)
            case DisputeState.NORMAL:
                account.release_hold(record.amount)
            case DisputeState.CHARGED_BACK:
                account.remove_held(record.amount)
                account.locked = True
                logger.info(f"Chargeback for tx {tx_id}: account {account.client_id} locked")

        record.dispute_state = target
        return Outcome.accepted()

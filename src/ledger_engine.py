import logging
from typing import Dict, Iterable, Iterator, Union

from csv_io import MalformedRow, read_transactions
from models import AccountSnapshot, Outcome, ProcessingStats, Transaction
from state_manager import StateManager
from transaction_processor import TransactionProcessor

logger = logging.getLogger(__name__)


class LedgerEngine:
    """
    Applies transactions strictly in arrival order and reports final account balances.
    Each engine owns its own state; separate engines never share accounts or deposits.
    """

    def __init__(self):
        self._state = StateManager()
        self._processor = TransactionProcessor(self._state)
        self._stats = ProcessingStats()

    @property
    def stats(self) -> ProcessingStats:
        return self._stats

    def apply(self, transaction: Transaction) -> Outcome:
        """Apply one transaction. Invalid rows are ignored, never raised."""
        outcome = self._processor.process_transaction(transaction)
        self._stats.record(outcome)
        return outcome

    def snapshot(self) -> Iterator[AccountSnapshot]:
        """Yield one snapshot per client seen, ordered by client id."""
        for account in self._state.iter_accounts():
            yield account.snapshot()

    def process_records(self, records: Iterable[Union[Transaction, MalformedRow]]) -> None:
        """Apply decoded rows in order, skipping rows that failed to decode."""
        for record in records:
            if isinstance(record, MalformedRow):
                self._stats.record_malformed()
                logger.warning(f"Skipping malformed row at line {record.line_number}: {record.error}")
                continue
            self.apply(record)

    def process_file(self, filepath: str) -> Dict[int, AccountSnapshot]:
        """Process CSV file and return final account states."""
        logger.info(f"Processing {filepath}")
        with open(filepath, "r", newline="") as f:
            self.process_records(read_transactions(f))

        logger.info(
            f"Accepted: {self._stats.accepted}, "
            f"Ignored: {self._stats.ignored}, "
            f"Malformed: {self._stats.malformed}"
        )
        return {snapshot.client_id: snapshot for snapshot in self.snapshot()}

from typing import Dict, Iterator, Optional, Set

from models import ClientAccount, DepositRecord


class StateManager:
    """
    In-memory ledger state owned by a single engine.
    Stores client accounts, deposit records for dispute lookups, and ids of accepted withdrawals.
    """

    def __init__(self):
        self._accounts: Dict[int, ClientAccount] = {}
        self._deposits: Dict[int, DepositRecord] = {}
        self._withdrawal_ids: Set[int] = set()

    def get_or_create_account(self, client_id: int) -> ClientAccount:
        """Get existing account or create new one."""
        if client_id not in self._accounts:
            self._accounts[client_id] = ClientAccount(client_id=client_id)
        return self._accounts[client_id]

    def get_account(self, client_id: int) -> Optional[ClientAccount]:
        return self._accounts.get(client_id)

    def store_deposit(self, record: DepositRecord) -> None:
        """Store deposit for future dispute lookups."""
        self._deposits[record.transaction_id] = record

    def get_deposit(self, transaction_id: int) -> Optional[DepositRecord]:
        """Retrieve stored deposit by ID."""
        return self._deposits.get(transaction_id)

    def store_withdrawal(self, transaction_id: int) -> None:
        self._withdrawal_ids.add(transaction_id)

    def is_withdrawal(self, transaction_id: int) -> bool:
        return transaction_id in self._withdrawal_ids

    def is_transaction_known(self, transaction_id: int) -> bool:
        """Check if the id was already accepted as a deposit or withdrawal."""
        return transaction_id in self._deposits or transaction_id in self._withdrawal_ids

    def iter_accounts(self) -> Iterator[ClientAccount]:
        """Yield all accounts ordered by client id."""
        for client_id in sorted(self._accounts):
            yield self._accounts[client_id]

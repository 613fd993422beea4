import sys
import os
from decimal import Decimal

sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from ledger_engine import LedgerEngine
from models import IgnoreReason


def run(tmp_path, rows):
    csv_file = tmp_path / "large_test.csv"
    csv_file.write_text('\n'.join(["type, client, tx, amount"] + rows))
    engine = LedgerEngine()
    return engine, engine.process_file(str(csv_file))


class TestLedgerEngineLargeScale:
    def test_1000_accounts_6000_transactions(self, tmp_path):
        num_clients = 1000
        rows = []
        tx_id = 1

        # Each client: deposits 100, 200, 300 then withdrawals 50, 100 -> 450
        for client_id in range(1, num_clients + 1):
            for kind, amount in [("deposit", 100), ("deposit", 200), ("deposit", 300),
                                 ("withdrawal", 50), ("withdrawal", 100)]:
                rows.append(f"{kind}, {client_id}, {tx_id}, {amount}")
                tx_id += 1

        # Second pass tops every client up by 50
        for client_id in range(1, num_clients + 1):
            rows.append(f"deposit, {client_id}, {tx_id}, 50")
            tx_id += 1

        engine, accounts = run(tmp_path, rows)

        assert len(accounts) == num_clients
        assert engine.stats.accepted == 6000
        assert engine.stats.ignored == 0

        for client_id in range(1, num_clients + 1):
            assert accounts[client_id].available == Decimal("500"), f"Client {client_id}"
            assert accounts[client_id].held == Decimal("0")
            assert accounts[client_id].locked is False

    def test_with_disputes_resolves_chargebacks(self, tmp_path):
        rows = []

        def deposits(clients, amounts):
            for client_id in clients:
                for offset, amount in enumerate(amounts, start=1):
                    rows.append(f"deposit, {client_id}, {client_id * 100 + offset}, {amount}")

        def lifecycle(kind, clients, offset):
            for client_id in clients:
                rows.append(f"{kind}, {client_id}, {client_id * 100 + offset},")

        plain = range(1, 11)
        resolved = range(11, 21)
        charged_back = range(21, 31)
        held = range(31, 41)
        redisputed = range(41, 51)

        deposits(plain, [100, 150, 250])

        deposits(resolved, [100, 150, 250])
        lifecycle("dispute", resolved, 1)
        lifecycle("resolve", resolved, 1)

        deposits(charged_back, [100, 150, 250])
        lifecycle("dispute", charged_back, 1)
        lifecycle("chargeback", charged_back, 1)
        # Rows after the lock must not land
        lifecycle("dispute", charged_back, 2)
        deposits(charged_back, [999])

        for client_id in held:
            rows.append(f"deposit, {client_id}, {client_id * 100 + 1}, 150")
            rows.append(f"deposit, {client_id}, {client_id * 100 + 2}, 250")
            rows.append(f"withdrawal, {client_id}, {client_id * 100 + 3}, 100")
        lifecycle("dispute", held, 1)

        deposits(redisputed, [100, 200, 300])
        lifecycle("dispute", redisputed, 2)
        lifecycle("resolve", redisputed, 2)
        lifecycle("dispute", redisputed, 2)
        lifecycle("resolve", redisputed, 2)

        engine, accounts = run(tmp_path, rows)

        for client_id in list(plain) + list(resolved):
            assert accounts[client_id].available == Decimal("500"), f"Client {client_id}"
            assert accounts[client_id].held == Decimal("0")
            assert accounts[client_id].locked is False

        for client_id in charged_back:
            assert accounts[client_id].available == Decimal("400"), f"Client {client_id}"
            assert accounts[client_id].held == Decimal("0")
            assert accounts[client_id].total == Decimal("400")
            assert accounts[client_id].locked is True

        for client_id in held:
            assert accounts[client_id].available == Decimal("150"), f"Client {client_id}"
            assert accounts[client_id].held == Decimal("150")
            assert accounts[client_id].total == Decimal("300")
            assert accounts[client_id].locked is False

        for client_id in redisputed:
            assert accounts[client_id].available == Decimal("600"), f"Client {client_id}"
            assert accounts[client_id].held == Decimal("0")
            assert accounts[client_id].locked is False

        # dispute row plus the 999 deposit for each locked client
        assert engine.stats.ignored_by_reason[IgnoreReason.ACCOUNT_LOCKED] == 20
        assert engine.stats.ignored == 20

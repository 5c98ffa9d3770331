"""
Unit tests for the BalanceLedger.
"""

import pytest

from core.exceptions import LedgerInvariantError
from core.storage import InMemoryStorage
from services.ledger import BALANCE_STORAGE_KEY, BalanceLedger


# Fixtures

@pytest.fixture
def storage():
    return InMemoryStorage()


@pytest.fixture
def ledger(storage):
    return BalanceLedger(storage, initial_balance=10000)


class TestBalanceLedger:
    """Charge/debit/credit behaviour."""

    def test_initial_balance(self, ledger):
        assert ledger.balance == 10000

    def test_charge_adds_and_persists(self, ledger, storage):
        assert ledger.charge(5000) == 15000
        assert storage.get(BALANCE_STORAGE_KEY) == "15000"

    @pytest.mark.parametrize("amount", [0, -100])
    def test_charge_rejects_non_positive(self, ledger, amount):
        with pytest.raises(LedgerInvariantError):
            ledger.charge(amount)
        assert ledger.balance == 10000

    def test_debit_and_credit(self, ledger):
        assert ledger.debit(3000) == 7000
        assert ledger.credit(3000) == 10000

    def test_debit_beyond_balance_is_a_programming_error(self, ledger):
        with pytest.raises(LedgerInvariantError) as exc_info:
            ledger.debit(10001)
        assert exc_info.value.balance == 10000
        assert ledger.balance == 10000

    def test_debit_exact_balance_leaves_zero(self, ledger):
        assert ledger.debit(10000) == 0

    def test_can_afford(self, ledger):
        assert ledger.can_afford(10000)
        assert not ledger.can_afford(10001)


class TestBalanceLoading:
    """Persisted balance is loaded defensively."""

    def test_loads_persisted_balance(self):
        storage = InMemoryStorage({BALANCE_STORAGE_KEY: "4200"})
        assert BalanceLedger(storage, initial_balance=10000).balance == 4200

    @pytest.mark.parametrize("raw", ["abc", "", "12.5", "-50"])
    def test_malformed_balance_falls_back_to_default(self, raw):
        storage = InMemoryStorage({BALANCE_STORAGE_KEY: raw})
        assert BalanceLedger(storage, initial_balance=700).balance == 700

    def test_negative_initial_balance_clamped(self):
        assert BalanceLedger(InMemoryStorage(), initial_balance=-5).balance == 0

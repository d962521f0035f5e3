"""Shared fixtures for the finledger tests."""

from decimal import Decimal

import pytest

from finledger.audit import AuditLogger
from finledger.engine import Ledger
from finledger.models import Account, AccountCategory, SavingsPot
from finledger.services.storage import InMemorySnapshotStorage


@pytest.fixture
def audit_logger():
    return AuditLogger()


@pytest.fixture
def storage():
    return InMemorySnapshotStorage()


@pytest.fixture
def ledger(audit_logger, storage):
    return Ledger(persist=storage, audit_logger=audit_logger)


@pytest.fixture
def main_account(ledger):
    return ledger.add_account(Account(
        name="Main",
        category=AccountCategory.CHECKING,
        initial_balance=Decimal("1000"),
    ))


@pytest.fixture
def savings_account(ledger):
    return ledger.add_account(Account(
        name="Savings",
        category=AccountCategory.CALL_MONEY,
        initial_balance=Decimal("500"),
    ))


@pytest.fixture
def vacation_pot(ledger, main_account):
    return ledger.add_pot(SavingsPot(
        account_id=main_account.id,
        name="Vacation",
        goal=Decimal("500"),
    ))

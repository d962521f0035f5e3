"""Tests for the Ledger aggregate: mutations, cascades, goals and persistence."""

from datetime import datetime, timedelta
from decimal import Decimal
from uuid import uuid4

import pytest

from finledger.engine import Ledger
from finledger.errors import NotFoundError, ValidationError
from finledger.models import (
    Account,
    AccountCategory,
    AppearanceMode,
    AppSettings,
    AuditEventType,
    ColorValue,
    Debt,
    DebtDirection,
    Investment,
    LedgerSnapshot,
    SavingsPot,
    TransactionKind,
)

from factories import expense, income, transfer


def category_named(ledger, name):
    return next(c for c in ledger.categories if c.name == name)


class TestExampleScenario:
    """The Main / Vacation walk-through."""

    def test_pot_walkthrough(self, ledger, main_account, vacation_pot):
        goals = []
        ledger.on_goal_reached(goals.append)

        ledger.add_transaction(expense(main_account, "-50"))
        assert ledger.balance(main_account) == Decimal("950")

        assert ledger.move_to_pot(main_account, vacation_pot, Decimal("200")) is None
        assert ledger.saved_amount(vacation_pot) == Decimal("200")
        assert ledger.balance(main_account) == Decimal("950")
        assert ledger.free_balance(main_account) == Decimal("750")

        reached = ledger.move_to_pot(main_account, vacation_pot, Decimal("300"))
        assert ledger.saved_amount(vacation_pot) == Decimal("500")
        assert reached is not None
        assert reached.pot_id == vacation_pot.id
        assert goals == [reached]

        ledger.move_from_pot(main_account, vacation_pot, Decimal("500"))
        assert ledger.saved_amount(vacation_pot) == Decimal("0")
        assert ledger.free_balance(main_account) == Decimal("950")
        assert len(goals) == 1


class TestGoalDetection:
    """Goal-reached fires exactly once per crossing."""

    def test_deposit_above_full_pot_does_not_fire(self, ledger, main_account, vacation_pot):
        goals = []
        ledger.on_goal_reached(goals.append)
        ledger.move_to_pot(main_account, vacation_pot, Decimal("500"))
        ledger.move_to_pot(main_account, vacation_pot, Decimal("100"))
        assert len(goals) == 1

    def test_refill_after_withdrawal_fires_again(self, ledger, main_account, vacation_pot):
        goals = []
        ledger.on_goal_reached(goals.append)
        ledger.move_to_pot(main_account, vacation_pot, Decimal("500"))
        ledger.move_from_pot(main_account, vacation_pot, Decimal("100"))
        ledger.move_to_pot(main_account, vacation_pot, Decimal("100"))
        assert len(goals) == 2

    def test_pot_without_goal_never_fires(self, ledger, main_account):
        pot = ledger.add_pot(SavingsPot(account_id=main_account.id, name="Buffer"))
        assert ledger.move_to_pot(main_account, pot, Decimal("100")) is None
        assert ledger.pot_progress(pot) is None

    def test_goal_event_is_audited(self, ledger, audit_logger, main_account, vacation_pot):
        ledger.move_to_pot(main_account, vacation_pot, Decimal("500"))
        types = [e.event_type for e in audit_logger.recent_events()]
        assert AuditEventType.POT_GOAL_REACHED in types

    def test_failing_listener_does_not_break_mutation(self, ledger, main_account, vacation_pot):
        def broken(event):
            raise RuntimeError("ui gone")

        ledger.on_goal_reached(broken)
        assert ledger.move_to_pot(main_account, vacation_pot, Decimal("500")) is not None
        assert ledger.saved_amount(vacation_pot) == Decimal("500")


class TestPotMoves:
    """Tests for move_to_pot / move_from_pot bounds and shape."""

    def test_synthesized_transfer(self, ledger, main_account, vacation_pot):
        ledger.move_to_pot(main_account, vacation_pot, Decimal("20"), note="June")
        tx = ledger.transactions[0]
        assert tx.kind == TransactionKind.TRANSFER
        assert tx.name == "Into pot: Vacation"
        assert tx.from_account_id == tx.to_account_id == main_account.id
        assert tx.to_pot_id == vacation_pot.id
        assert tx.note == "June"

    def test_deposit_above_free_balance_rejected(self, ledger, main_account, vacation_pot):
        with pytest.raises(ValidationError):
            ledger.move_to_pot(main_account, vacation_pot, Decimal("1000.01"))
        assert ledger.transactions == []

    def test_withdrawal_above_saved_rejected(self, ledger, main_account, vacation_pot):
        ledger.move_to_pot(main_account, vacation_pot, Decimal("100"))
        with pytest.raises(ValidationError):
            ledger.move_from_pot(main_account, vacation_pot, Decimal("101"))

    def test_non_positive_amount_rejected(self, ledger, main_account, vacation_pot):
        with pytest.raises(ValidationError):
            ledger.move_to_pot(main_account, vacation_pot, Decimal("0"))

    def test_pot_of_other_account_rejected(self, ledger, main_account, savings_account, vacation_pot):
        with pytest.raises(ValidationError):
            ledger.move_to_pot(savings_account, vacation_pot, Decimal("10"))

    @pytest.mark.parametrize("amount", [float("nan"), Decimal("NaN"), Decimal("Infinity")])
    def test_non_finite_amount_rejected(self, ledger, main_account, vacation_pot, amount):
        with pytest.raises(ValidationError) as exc_info:
            ledger.move_to_pot(main_account, vacation_pot, amount)
        assert exc_info.value.issues[0].field == "amount"
        assert ledger.transactions == []

    def test_bounds_can_be_disabled(self):
        ledger = Ledger(enforce_pot_bounds=False)
        account = ledger.add_account(Account(name="Main", category=AccountCategory.CHECKING))
        pot = ledger.add_pot(SavingsPot(account_id=account.id, name="Dream", goal=Decimal("10")))
        ledger.move_to_pot(account, pot, Decimal("50"))
        ledger.move_from_pot(account, pot, Decimal("80"))
        assert ledger.saved_amount(pot) == Decimal("0")


class TestTransactions:
    """Tests for adding, updating and removing transactions."""

    def test_sorted_newest_first(self, ledger, main_account):
        old = expense(main_account, "-1", when=datetime(2025, 1, 1))
        new = expense(main_account, "-2", when=datetime(2025, 6, 1))
        mid = expense(main_account, "-3", when=datetime(2025, 3, 1))
        for tx in (old, new, mid):
            ledger.add_transaction(tx)
        assert [t.id for t in ledger.transactions] == [new.id, mid.id, old.id]

    def test_equal_dates_most_recent_insert_first(self, ledger, main_account):
        when = datetime(2025, 5, 5)
        first = expense(main_account, "-1", when=when)
        second = expense(main_account, "-2", when=when)
        ledger.add_transaction(first)
        ledger.add_transaction(second)
        assert [t.id for t in ledger.transactions] == [second.id, first.id]

    def test_invalid_transaction_leaves_ledger_untouched(self, ledger, main_account):
        with pytest.raises(ValidationError) as exc_info:
            ledger.add_transaction(expense(main_account, "50"))
        assert ledger.transactions == []
        assert exc_info.value.issues[0].issue_type == "invalid_sign"

    def test_rejection_is_audited(self, ledger, audit_logger, main_account):
        with pytest.raises(ValidationError):
            ledger.add_transaction(expense(main_account, "0"))
        assert audit_logger.recent_events(1)[0].event_type == AuditEventType.VALIDATION_FAILED

    def test_unrelated_transaction_keeps_balance(self, ledger, main_account, savings_account):
        before = ledger.balance(main_account)
        ledger.add_transaction(expense(savings_account, "-20"))
        assert ledger.balance(main_account) == before

    def test_transfer_between_accounts(self, ledger, main_account, savings_account):
        ledger.add_transaction(transfer(main_account, savings_account, "100"))
        assert ledger.balance(main_account) == Decimal("900")
        assert ledger.balance(savings_account) == Decimal("600")

    def test_update_replaces_and_resorts(self, ledger, main_account):
        a = expense(main_account, "-1", when=datetime(2025, 1, 1))
        b = expense(main_account, "-2", when=datetime(2025, 2, 1))
        ledger.add_transaction(a)
        ledger.add_transaction(b)

        moved = a.model_copy(update={"date": datetime(2025, 3, 1), "amount": Decimal("-10")})
        ledger.update_transaction(moved)
        assert ledger.transactions[0].id == a.id
        assert ledger.balance(main_account) == Decimal("988")

    def test_update_reports_category_change(self, ledger, main_account):
        groceries = category_named(ledger, "Groceries")
        tx = expense(main_account, "-5", name="Rewe")
        ledger.add_transaction(tx)

        changed = ledger.update_transaction(tx.model_copy(update={"category_id": groceries.id}))
        assert changed is True
        unchanged = ledger.update_transaction(tx.model_copy(update={"category_id": groceries.id, "note": "x"}))
        assert unchanged is False

    def test_update_unknown_raises(self, ledger, main_account):
        with pytest.raises(NotFoundError):
            ledger.update_transaction(expense(main_account, "-1"))

    def test_remove(self, ledger, main_account):
        tx = expense(main_account, "-50")
        ledger.add_transaction(tx)
        ledger.remove_transaction(tx.id)
        assert ledger.transactions == []
        assert ledger.balance(main_account) == Decimal("1000")
        with pytest.raises(NotFoundError):
            ledger.remove_transaction(tx)

    def test_stored_copy_is_isolated(self, ledger, main_account):
        tx = expense(main_account, "-5")
        ledger.add_transaction(tx)
        tx.amount = Decimal("-500")
        assert ledger.balance(main_account) == Decimal("995")

    def test_same_id_twice_rejected(self, ledger, main_account):
        tx = expense(main_account, "-50")
        ledger.add_transaction(tx)

        with pytest.raises(ValidationError) as exc_info:
            ledger.add_transaction(tx)

        assert exc_info.value.issues[0].issue_type == "duplicate_id"
        assert len(ledger.transactions) == 1
        assert ledger.balance(main_account) == Decimal("950")

    def test_import_rejects_ids_already_stored(self, ledger, main_account):
        tx = expense(main_account, "-50")
        ledger.add_transaction(tx)

        with pytest.raises(ValidationError):
            ledger.import_transactions([expense(main_account, "-1"), tx])
        assert len(ledger.transactions) == 1

    def test_import_rejects_repeated_ids_in_batch(self, ledger, main_account):
        tx = expense(main_account, "-50")
        with pytest.raises(ValidationError):
            ledger.import_transactions([tx, tx])
        assert ledger.transactions == []


class TestCategorySuggestion:
    """Category memory integration."""

    def test_learned_on_insert_and_applied_to_next(self, ledger, main_account):
        groceries = category_named(ledger, "Groceries")
        ledger.add_transaction(expense(main_account, "-5", name="Rewe", category_id=groceries.id))
        ledger.add_transaction(expense(main_account, "-7", name=" rewe "))
        assert ledger.transactions[0].category_id == groceries.id
        assert ledger.suggested_category_id("REWE") == groceries.id

    def test_update_relearns(self, ledger, main_account):
        groceries = category_named(ledger, "Groceries")
        leisure = category_named(ledger, "Leisure")
        tx = expense(main_account, "-5", name="Kiosk", category_id=groceries.id)
        ledger.add_transaction(tx)
        ledger.update_transaction(tx.model_copy(update={"category_id": leisure.id}))
        assert ledger.suggested_category_id("kiosk") == leisure.id

    def test_transfers_do_not_learn(self, ledger, main_account, savings_account):
        ledger.add_transaction(transfer(main_account, savings_account, "10", name="Sparen"))
        assert ledger.suggested_category_id("Sparen") is None

    def test_apply_category_to_past_uncategorized(self, ledger, main_account):
        rent = category_named(ledger, "Rent")
        now = datetime(2025, 9, 30)
        for months_back in (1, 2, 3):
            ledger.add_transaction(expense(
                main_account, "-800", name="Miete", when=now - timedelta(days=30 * months_back),
            ))
        ledger.add_transaction(expense(main_account, "-800", name="Miete", when=now + timedelta(days=1)))

        assert ledger.count_past_uncategorized_transactions(" miete", now) == 3
        assert ledger.apply_category(rent.id, "Miete", now) == 3
        assert ledger.count_past_uncategorized_transactions("Miete", now) == 0
        assert ledger.suggested_category_id("miete") == rent.id
        # The transaction after the cut-off is untouched
        assert ledger.transactions[0].category_id is None

    def test_apply_category_with_nothing_to_change(self, ledger, main_account):
        rent = category_named(ledger, "Rent")
        assert ledger.apply_category(rent.id, "Miete", datetime(2030, 1, 1)) == 0
        assert ledger.suggested_category_id("Miete") is None

    def test_apply_category_empty_name(self, ledger):
        assert ledger.apply_category(uuid4(), "  ", datetime(2030, 1, 1)) == 0


class TestAccounts:
    """Tests for account mutations and the primary invariant."""

    def test_single_primary(self, ledger, main_account, savings_account):
        ledger.set_primary(main_account)
        ledger.set_primary(savings_account.id)
        primaries = [a for a in ledger.accounts if a.is_primary]
        assert [a.id for a in primaries] == [savings_account.id]
        assert ledger.primary_account.id == savings_account.id

    def test_add_primary_demotes_others(self, ledger, main_account):
        ledger.set_primary(main_account)
        extra = ledger.add_account(Account(name="New", category=AccountCategory.CHECKING, is_primary=True))
        assert extra.is_primary is True
        assert ledger.get_account(main_account.id).is_primary is False

    def test_update_cannot_promote(self, ledger, main_account):
        with pytest.raises(ValidationError):
            ledger.update_account(main_account.model_copy(update={"is_primary": True}))
        assert ledger.primary_account is None

    def test_update_keeps_existing_primary(self, ledger, main_account):
        ledger.set_primary(main_account)
        renamed = ledger.get_account(main_account.id).model_copy(update={"name": "Giro"})
        ledger.update_account(renamed)
        assert ledger.primary_account.name == "Giro"

    def test_set_primary_unknown_id_clears(self, ledger, main_account):
        ledger.set_primary(main_account)
        ledger.set_primary(uuid4())
        assert ledger.primary_account is None

    def test_same_account_twice_rejected(self, ledger, main_account):
        with pytest.raises(ValidationError) as exc_info:
            ledger.add_account(main_account)
        assert exc_info.value.issues[0].issue_type == "duplicate_id"
        assert len(ledger.accounts) == 1

    def test_subaccount_of_subaccount_rejected(self, ledger, main_account):
        child = ledger.add_account(Account(
            name="Child", category=AccountCategory.CHECKING, parent_account_id=main_account.id,
        ))
        with pytest.raises(ValidationError):
            ledger.add_account(Account(
                name="Grandchild", category=AccountCategory.CHECKING, parent_account_id=child.id,
            ))
        assert ledger.subaccounts(main_account) == [child]

    def test_remove_cascades_to_subaccounts_and_pots(self, ledger, main_account, savings_account, vacation_pot):
        child = ledger.add_account(Account(
            name="Child", category=AccountCategory.CHECKING, parent_account_id=main_account.id,
        ))
        child_pot = ledger.add_pot(SavingsPot(account_id=child.id, name="Kid"))
        tx = expense(main_account, "-10")
        ledger.add_transaction(tx)

        removed = ledger.remove_account(main_account)

        assert set(removed) == {main_account.id, child.id}
        assert [a.id for a in ledger.accounts] == [savings_account.id]
        assert ledger.pots == []
        assert child_pot.id not in {p.id for p in ledger.pots}
        # History stays, with its dangling reference
        assert ledger.transactions[0].account_id == main_account.id

    def test_remove_unknown_account(self, ledger):
        with pytest.raises(NotFoundError):
            ledger.remove_account(uuid4())

    def test_available_sum_and_total_value(self, ledger, main_account, savings_account):
        ledger.update_account(savings_account.model_copy(update={"is_available": False}))
        ledger.add_investment(Investment(name="ETF", value=Decimal("100")))
        ledger.add_debt(Debt(title="Loan", amount=Decimal("40"), direction=DebtDirection.I_OWE))
        assert ledger.available_sum == Decimal("1000")
        assert ledger.net_open_debts == Decimal("-40")
        assert ledger.total_value == Decimal("1560")


class TestPotsDebtsInvestments:
    """Tests for the smaller entity lists."""

    def test_negative_goal_rejected(self, ledger, main_account):
        with pytest.raises(ValidationError):
            ledger.add_pot(SavingsPot(account_id=main_account.id, name="Bad", goal=Decimal("-1")))

    def test_remove_pot_keeps_transactions(self, ledger, main_account, vacation_pot):
        ledger.move_to_pot(main_account, vacation_pot, Decimal("100"))
        ledger.remove_pot(vacation_pot)
        assert ledger.pots_for(main_account) == []
        assert len(ledger.transactions) == 1
        assert ledger.free_balance(main_account) == Decimal("1000")

    def test_update_pot(self, ledger, vacation_pot):
        ledger.update_pot(vacation_pot.model_copy(update={"goal": Decimal("800")}))
        assert ledger.get_pot(vacation_pot.id).goal == Decimal("800")

    def test_debts_insert_at_head_and_toggle(self, ledger):
        first = ledger.add_debt(Debt(title="A", amount=Decimal("10"), direction=DebtDirection.I_OWE))
        second = ledger.add_debt(Debt(title="B", amount=Decimal("20"), direction=DebtDirection.OWED_TO_ME))
        assert [d.id for d in ledger.debts] == [second.id, first.id]

        settled = ledger.toggle_settled(first)
        assert settled.is_settled is True
        assert ledger.net_open_debts == Decimal("20")

        ledger.remove_debt(second.id)
        assert [d.id for d in ledger.debts] == [first.id]

    def test_debt_amount_must_be_positive(self, ledger):
        with pytest.raises(ValidationError):
            ledger.add_debt(Debt(title="A", amount=Decimal("-5"), direction=DebtDirection.I_OWE))

    def test_investments(self, ledger):
        etf = ledger.add_investment(Investment(name="ETF", value=Decimal("100")))
        ledger.update_investment(etf.model_copy(update={"value": Decimal("120")}))
        assert ledger.investments[0].value == Decimal("120")
        ledger.remove_investment(etf)
        assert ledger.investments == []

    def test_duplicate_ids_rejected(self, ledger, main_account, vacation_pot):
        debt = ledger.add_debt(Debt(title="A", amount=Decimal("10"), direction=DebtDirection.I_OWE))
        etf = ledger.add_investment(Investment(name="ETF", value=Decimal("100")))

        for add, item in [
            (ledger.add_pot, vacation_pot),
            (ledger.add_debt, debt),
            (ledger.add_investment, etf),
        ]:
            with pytest.raises(ValidationError):
                add(item)

        assert len(ledger.pots) == 1
        assert len(ledger.debts) == 1
        assert len(ledger.investments) == 1


class TestCategories:
    """Tests for category management."""

    def test_fresh_ledger_has_seed_categories(self):
        assert len(Ledger().categories) == 5

    def test_add_category(self, ledger):
        pets = ledger.add_category("Pets", ColorValue(r=0.5, g=0.5, b=0.5))
        assert ledger.category_by_id(pets.id).name == "Pets"
        assert ledger.category_by_id(None) is None

    def test_invalid_colour_rejected(self, ledger):
        with pytest.raises(ValidationError):
            ledger.add_category("Neon", ColorValue(r=2.0, g=0, b=0))

    def test_remove_category_clears_transactions_and_memory(self, ledger, main_account):
        groceries = category_named(ledger, "Groceries")
        ledger.add_transaction(expense(main_account, "-5", name="Rewe", category_id=groceries.id))

        cleared = ledger.remove_category(groceries)

        assert cleared == 1
        assert ledger.transactions[0].category_id is None
        assert ledger.suggested_category_id("Rewe") is None
        assert ledger.category_by_id(groceries.id) is None


class TestStateAndPersistence:
    """Tests for snapshots, reset and the persist hook."""

    def test_every_mutation_persists(self, ledger, storage, main_account):
        saves = storage.saves
        ledger.add_transaction(expense(main_account, "-5"))
        assert storage.saves == saves + 1
        assert len(storage.load().transactions) == 1

    def test_batch_persists_once(self, ledger, storage, main_account):
        saves = storage.saves
        with ledger.batch():
            ledger.add_transaction(expense(main_account, "-5"))
            ledger.add_transaction(expense(main_account, "-6"))
        assert storage.saves == saves + 1

    def test_rejected_mutation_does_not_persist(self, ledger, storage, main_account):
        saves = storage.saves
        with pytest.raises(ValidationError):
            ledger.add_transaction(expense(main_account, "5"))
        assert storage.saves == saves

    def test_persist_failure_is_logged_not_raised(self, audit_logger):
        def failing(snapshot):
            raise OSError("disk full")

        ledger = Ledger(persist=failing, audit_logger=audit_logger)
        ledger.add_account(Account(name="Main", category=AccountCategory.CHECKING))

        assert len(ledger.accounts) == 1
        event = audit_logger.recent_events(1)[0]
        assert event.event_type == AuditEventType.PERSIST_FAILED
        assert "disk full" in event.error_message

    def test_snapshot_round_trip(self, ledger, main_account, vacation_pot):
        ledger.add_transaction(expense(main_account, "-5", name="Rewe",
                                       category_id=category_named(ledger, "Groceries").id))
        ledger.update_app_settings(AppSettings(appearance_mode=AppearanceMode.DARK))

        copy = Ledger(ledger.snapshot())

        assert copy.snapshot() == ledger.snapshot()
        assert copy.app_settings.appearance_mode == AppearanceMode.DARK

    def test_snapshot_is_detached(self, ledger, main_account):
        snapshot = ledger.snapshot()
        snapshot.accounts.clear()
        assert len(ledger.accounts) == 1

    def test_replace_state_sorts_and_seeds(self, ledger, main_account):
        older = income(main_account, "1", when=datetime(2024, 1, 1))
        newer = income(main_account, "2", when=datetime(2025, 1, 1))
        ledger.replace_state(LedgerSnapshot(accounts=[main_account], transactions=[older, newer]))
        assert [t.id for t in ledger.transactions] == [newer.id, older.id]
        assert len(ledger.categories) == 5

    def test_loaded_state_keeps_first_primary_only(self, ledger):
        first = Account(name="A", category=AccountCategory.CHECKING, is_primary=True)
        second = Account(name="B", category=AccountCategory.CHECKING, is_primary=True)
        third = Account(name="C", category=AccountCategory.CHECKING, is_primary=True)
        snapshot = LedgerSnapshot(accounts=[first, second, third])

        ledger.replace_state(snapshot)

        assert [a.is_primary for a in ledger.accounts] == [True, False, False]
        assert ledger.primary_account.id == first.id
        assert [a.is_primary for a in Ledger(snapshot).accounts] == [True, False, False]

    def test_reset(self, ledger, audit_logger, main_account, vacation_pot):
        ledger.add_transaction(expense(main_account, "-5"))
        ledger.reset()
        assert ledger.accounts == []
        assert ledger.transactions == []
        assert ledger.pots == []
        assert ledger.category_memory == {}
        assert [c.name for c in ledger.categories] == ["Groceries", "Salary", "Rent", "Transport", "Leisure"]
        assert audit_logger.recent_events(1)[0].event_type == AuditEventType.LEDGER_RESET

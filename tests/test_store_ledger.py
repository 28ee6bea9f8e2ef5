from __future__ import annotations

import re

import pytest
from sqlalchemy import Text
from sqlalchemy.dialects import postgresql
from sqlalchemy.schema import CreateTable

from db.models.finance import BalBudget, BalExpense, BalIncome

from balance.categories import DEFAULT_CATEGORIES
from balance.errors import InvalidRecordError, NotAuthenticatedError, StoreError
from balance.importer import import_csv
from balance.ledger import FinancialData
from balance.models import Budget, CsvKind, Expense
from balance.notify import RecordingNotifier
from balance.store import SqlFinanceStore

from tests.helpers.db import stored_budget_amounts

ALICE = "user-alice"
BOB = "user-bob"


@pytest.fixture
def store(database_url):
    return SqlFinanceStore(database_url)


def test_insert_assigns_ids_and_scopes_by_user(store):
    (saved,) = store.insert_expenses(
        ALICE, [Expense(id="from-csv", description="Coffee", amount=30000, date="2024-03-01", category="Khác")]
    )

    assert saved.id and saved.id != "from-csv"
    assert store.select_expenses(ALICE) == [saved]
    assert store.select_expenses(BOB) == []


def test_store_requires_a_user(store):
    with pytest.raises(NotAuthenticatedError, match="Please sign in to import expenses"):
        store.insert_expenses("", [])


def test_budgets_upsert_on_owner_category_month(store):
    store.upsert_budgets(ALICE, [Budget(category="Khác", amount=100, month_year="2024-03")])
    store.upsert_budgets(
        ALICE,
        [
            Budget(category="Khác", amount=250, month_year="2024-03"),
            Budget(category="Khác", amount=80, month_year="2024-04"),
        ],
    )
    store.upsert_budgets(BOB, [Budget(category="Khác", amount=1, month_year="2024-03")])

    assert {(b.category, b.month_year, b.amount) for b in store.select_budgets(ALICE)} == {
        ("Khác", "2024-03", 250.0),
        ("Khác", "2024-04", 80.0),
    }
    assert len(store.select_budgets(BOB)) == 1


def test_budget_csv_with_duplicate_key_persists_the_last_amount(database_url, store):
    ledger = FinancialData(store, user_id=ALICE)
    text = (
        "category,amount,monthYear\n"
        "Ăn uống,100,2024-03\n"
        "Di chuyển,40,2024-03\n"
        "Ăn uống,300,2024-03\n"
    )

    report = import_csv(CsvKind.BUDGETS, text, ledger.import_targets(), notifier=RecordingNotifier())

    assert report.ok
    assert report.batches[0].persisted == 2
    assert stored_budget_amounts(database_url=database_url, user_id=ALICE) == {
        ("Ăn uống", "2024-03"): 300.0,
        ("Di chuyển", "2024-03"): 40.0,
    }
    assert {(b.category, b.amount) for b in ledger.budgets} == {("Ăn uống", 300.0), ("Di chuyển", 40.0)}


def test_import_merges_persisted_records_into_cache(store):
    ledger = FinancialData(store, user_id=ALICE)
    text = (
        "type,id,description,amount,date,category,source,monthYear\n"
        "expense,,Coffee,30000,2024-03-01,Ăn uống,,\n"
        "income,,Salary,9000000,2024-03-05,,Job,\n"
    )

    report = import_csv(CsvKind.COMBINED, text, ledger.import_targets(), notifier=RecordingNotifier())

    assert report.ok
    assert [e.description for e in ledger.expenses] == ["Coffee"]
    assert all(e.id for e in ledger.expenses)
    assert ledger.income_sources == ["Job"]
    assert FinancialData(store, user_id=ALICE).expenses == ledger.expenses


def test_failed_store_call_leaves_cache_untouched(store, monkeypatch):
    ledger = FinancialData(store, user_id=ALICE)
    ledger.add_expense(description="Coffee", amount=1, date="2024-03-01", category="Khác")

    def boom(user_id, records):
        raise StoreError("import expenses", "disk full")

    monkeypatch.setattr(store, "insert_expenses", boom)
    notifier = RecordingNotifier()

    report = import_csv(
        CsvKind.EXPENSES,
        "id,description,amount,date,category\n,Tea,2,2024-03-02,Khác\n",
        ledger.import_targets(),
        notifier=notifier,
    )

    assert report.failed_batches[0].error == "disk full"
    assert [e.description for e in ledger.expenses] == ["Coffee"]
    assert notifier.errors == ["Failed to import expenses: disk full"]


def test_database_errors_surface_verbatim_as_store_errors(store):
    with pytest.raises(StoreError) as excinfo:
        store.insert_expenses(
            ALICE,
            [Expense.model_construct(description="Bad", amount=-1.0, date="2024-03-01", category="Khác")],
        )
    assert "CHECK constraint failed" in str(excinfo.value)
    assert excinfo.value.operation == "import expenses"


def test_signed_out_ledger_refuses_mutations(store):
    ledger = FinancialData(store)

    with pytest.raises(NotAuthenticatedError):
        ledger.import_expenses([Expense(description="x", amount=1, date="2024-03-01", category="Khác")])
    with pytest.raises(NotAuthenticatedError):
        ledger.save_budget(category="Khác", amount=1, month_year="2024-03")
    assert ledger.categories[-1] == "Khác"


def test_switching_user_invalidates_and_refetches(store):
    ledger = FinancialData(store, user_id=ALICE)
    ledger.add_expense(description="Alice coffee", amount=1, date="2024-03-01", category="Khác")
    store.insert_expenses(BOB, [Expense(description="Bob tea", amount=2, date="2024-03-01", category="Khác")])

    ledger.switch_user(BOB)
    assert [e.description for e in ledger.expenses] == ["Bob tea"]

    ledger.switch_user(None)
    assert ledger.expenses == []
    assert ledger.user_id is None


def test_manual_flows_validate_records(store):
    ledger = FinancialData(store, user_id=ALICE)

    with pytest.raises(InvalidRecordError):
        ledger.add_expense(description="Coffee", amount=0, date="2024-03-01", category="Khác")
    with pytest.raises(InvalidRecordError, match="Unknown category"):
        ledger.add_expense(description="Coffee", amount=1, date="2024-03-01", category="Nope")
    with pytest.raises(InvalidRecordError, match="Invalid date"):
        ledger.add_income(description="Salary", amount=1, date="2024-02-30", source="Job")
    with pytest.raises(InvalidRecordError):
        ledger.save_budget(category="Khác", amount=1, month_year="2024-13")
    assert store.select_expenses(ALICE) == []


def test_update_and_delete_expense(store):
    ledger = FinancialData(store, user_id=ALICE)
    saved = ledger.add_expense(description="Coffee", amount=1, date="2024-03-01", category="Khác")

    ledger.update_expense(saved.model_copy(update={"amount": 5.5}))
    assert store.select_expenses(ALICE)[0].amount == 5.5

    with pytest.raises(StoreError):
        FinancialData(store, user_id=BOB).update_expense(saved)

    ledger.delete_expense(saved.id)
    assert ledger.expenses == []
    assert store.select_expenses(ALICE) == []


def test_save_and_delete_budget(store):
    ledger = FinancialData(store, user_id=ALICE)
    ledger.save_budget(category="Khác", amount=10, month_year="2024-03")
    ledger.save_budget(category="Khác", amount=20, month_year="2024-03")

    assert [(b.amount, b.month_year) for b in ledger.budgets] == [(20.0, "2024-03")]

    ledger.delete_budget("Khác", "2024-03")
    assert ledger.budgets == []
    assert store.select_budgets(ALICE) == []


def test_categories_default_then_diffed(store):
    ledger = FinancialData(store, user_id=ALICE)
    assert set(ledger.categories) == set(DEFAULT_CATEGORIES)

    ledger.update_categories(["Khác", "Sách", "  Cà   phê "])
    assert ledger.categories == ["Cà phê", "Sách", "Khác"]
    assert sorted(store.select_categories(ALICE)) == sorted(["Khác", "Sách", "Cà phê"])

    ledger.update_categories(["Sách"])
    assert store.select_categories(ALICE) == ["Sách"]

    with pytest.raises(InvalidRecordError):
        ledger.update_categories(["bad_name!"])


def test_profile_upsert(store):
    ledger = FinancialData(store, user_id=ALICE)
    assert ledger.profile is not None and ledger.profile.first_name is None

    ledger.update_profile(first_name="Lan", last_name="Nguyen")
    ledger.update_profile(first_name="Lan", last_name="Tran")

    assert FinancialData(store, user_id=ALICE).profile.last_name == "Tran"


def test_budget_import_trusts_the_upsert_result(database_url, store, monkeypatch):
    ledger = FinancialData(store, user_id=ALICE)
    ledger.save_budget(category="Khác", amount=5, month_year="2024-02")

    def unavailable(user_id):
        raise StoreError("load budgets", "connection reset")

    monkeypatch.setattr(store, "select_budgets", unavailable)
    notifier = RecordingNotifier()

    report = import_csv(
        CsvKind.BUDGETS,
        "category,amount,monthYear\nKhác,10,2024-03\nKhác,7,2024-02\n",
        ledger.import_targets(),
        notifier=notifier,
    )

    assert report.ok
    assert notifier.errors == []
    assert notifier.successes == ["Imported 2 budgets."]
    assert [(b.month_year, b.amount) for b in ledger.budgets] == [("2024-02", 7.0), ("2024-03", 10.0)]
    assert stored_budget_amounts(database_url=database_url, user_id=ALICE) == {
        ("Khác", "2024-02"): 7.0,
        ("Khác", "2024-03"): 10.0,
    }


def test_small_fractional_amounts_and_long_dates_are_stored_verbatim(store):
    store.insert_expenses(
        ALICE,
        [
            Expense(description="Fee", amount=0.004, date="2024-03-01T10:00", category="Khác"),
            Expense(description="Split", amount=12.345, date="2024-03-02", category="Khác"),
        ],
    )
    store.upsert_budgets(ALICE, [Budget(category="Khác", amount=0.125, month_year="2024-03")])

    assert sorted((e.amount, e.date) for e in store.select_expenses(ALICE)) == [
        (0.004, "2024-03-01T10:00"),
        (12.345, "2024-03-02"),
    ]
    assert [b.amount for b in store.select_budgets(ALICE)] == [0.125]


@pytest.mark.parametrize("model", [BalExpense, BalIncome, BalBudget])
def test_postgres_schema_neither_rounds_amounts_nor_bounds_dates(model):
    ddl = str(CreateTable(model.__table__).compile(dialect=postgresql.dialect()))

    assert re.search(r"\bamount NUMERIC NOT NULL", ddl)
    assert model.__table__.c.amount.type.scale is None
    if "date" in model.__table__.c:
        assert isinstance(model.__table__.c.date.type, Text)
        assert re.search(r'"?date"? TEXT NOT NULL', ddl)

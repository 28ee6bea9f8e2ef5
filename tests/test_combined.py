import pytest

from balance.errors import NothingToExportError
from balance.interchange import decode_combined, encode_combined
from balance.interchange.decode import AMOUNT_REASON
from balance.models import Budget, Expense, Income

HEADER = "type,id,description,amount,date,category,source,monthYear\n"


def _sample():
    expenses = [
        Expense(id="e1", description="Coffee", amount=30000, date="2024-03-01", category="Ăn uống"),
        Expense(description="Bus", amount=7000, date="2024-03-02", category="Di chuyển"),
    ]
    income = [Income(id="i1", description="Salary", amount=15000000, date="2024-03-05", source="Job")]
    budgets = [Budget(category="Ăn uống", amount=3000000, month_year="2024-03")]
    return expenses, income, budgets


def test_encode_writes_expenses_then_income_then_budgets():
    text = encode_combined(*_sample())

    assert text.splitlines() == [
        "type,id,description,amount,date,category,source,monthYear",
        "expense,e1,Coffee,30000,2024-03-01,Ăn uống,,",
        "expense,,Bus,7000,2024-03-02,Di chuyển,,",
        "income,i1,Salary,15000000,2024-03-05,,Job,",
        "budget,,,3000000,,Ăn uống,,2024-03",
    ]


def test_encode_with_only_one_kind_is_allowed():
    text = encode_combined([], [], [Budget(category="Khác", amount=1, month_year="2024-01")])
    assert text.splitlines()[1] == "budget,,,1,,Khác,,2024-01"


def test_encode_with_nothing_is_nothing_to_export():
    with pytest.raises(NothingToExportError, match="No data to export."):
        encode_combined([], [], [])


def test_decode_sorts_rows_into_buckets():
    expenses, income, budgets = _sample()

    result = decode_combined(encode_combined(expenses, income, budgets))

    assert result.errors == []
    assert [e.description for e in result.expenses] == ["Coffee", "Bus"]
    assert all(e.id is None for e in result.expenses)
    assert [i.source for i in result.income] == ["Job"]
    assert [(b.category, b.amount, b.month_year) for b in result.budgets] == [
        ("Ăn uống", 3000000.0, "2024-03")
    ]


def test_decode_counts_match_valid_rows_per_kind():
    rows = (
        ["expense,,E{0},1,2024-01-0{0},Khác,,".format(n) for n in range(1, 4)]
        + ["income,,I{0},2,2024-01-0{0},,Job,".format(n) for n in range(1, 3)]
        + ["budget,,,5,,Khác,,2024-01"]
    )

    result = decode_combined(HEADER + "\n".join(rows) + "\n")

    assert (len(result.expenses), len(result.income), len(result.budgets)) == (3, 2, 1)
    assert result.errors == []


def test_unknown_type_is_rejected_whatever_else_the_row_holds():
    text = HEADER + "unknown,,Coffee,10,2024-03-01,Ăn uống,Job,2024-03\n"

    result = decode_combined(text)

    assert result.is_empty
    (err,) = result.errors
    assert err.reason == "unrecognized type 'unknown'"


def test_type_is_case_sensitive_but_trimmed():
    text = (
        HEADER
        + "Expense,,Coffee,10,2024-03-01,Ăn uống,,\n"
        + " expense ,,Tea,10,2024-03-01,Ăn uống,,\n"
    )

    result = decode_combined(text)

    assert [e.description for e in result.expenses] == ["Tea"]
    assert result.errors[0].reason == "unrecognized type 'Expense'"


def test_amount_check_runs_before_type_check():
    text = HEADER + "unknown,,X,-5,2024-03-01,,,\n"

    (err,) = decode_combined(text).errors

    assert err.reason == AMOUNT_REASON


def test_valid_expense_and_bad_income_amount():
    text = (
        HEADER
        + "expense,,Coffee,30000,2024-03-01,Ăn uống,,\n"
        + "income,,Refund,-5,2024-03-02,,Shop,\n"
    )

    result = decode_combined(text)

    assert len(result.expenses) == 1
    assert result.income == []
    assert len(result.errors) == 1
    assert result.errors[0].line == 3


def test_kind_specific_fields_are_required():
    text = (
        HEADER
        + "expense,,Coffee,10,2024-03-01,,,\n"
        + "income,,Salary,10,2024-03-01,,,\n"
        + "budget,,,10,,Khác,,2024-13\n"
    )

    result = decode_combined(text)

    assert result.is_empty
    assert [e.reason for e in result.errors] == [
        "missing category",
        "missing source",
        "monthYear '2024-13' is not formatted YYYY-MM",
    ]

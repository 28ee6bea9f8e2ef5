from __future__ import annotations

from balance.errors import NotAuthenticatedError, StoreError
from balance.importer import ImportTargets, import_csv, import_csv_file
from balance.models import CsvKind
from balance.notify import RecordingNotifier

COMBINED_HEADER = "type,id,description,amount,date,category,source,monthYear\n"


class Recorder:
    """Consumer stand-in: remembers each batch and echoes it back as persisted."""

    def __init__(self, *, fail_with: Exception | None = None) -> None:
        self.batches: list[list] = []
        self.fail_with = fail_with

    def __call__(self, records):
        self.batches.append(list(records))
        if self.fail_with is not None:
            raise self.fail_with
        return list(records)


def _targets(**overrides):
    consumers = {"expenses": Recorder(), "income": Recorder(), "budgets": Recorder()}
    consumers.update(overrides)
    return ImportTargets(**consumers), consumers


def test_combined_import_dispatches_only_non_empty_buckets():
    targets, consumers = _targets()
    notifier = RecordingNotifier()
    text = (
        COMBINED_HEADER
        + "expense,,Coffee,30000,2024-03-01,Ăn uống,,\n"
        + "income,,Refund,-5,2024-03-02,,Shop,\n"
    )

    report = import_csv(CsvKind.COMBINED, text, targets, notifier=notifier)

    assert [len(b) for b in consumers["expenses"].batches] == [1]
    assert consumers["income"].batches == []
    assert consumers["budgets"].batches == []
    assert len(report.row_errors) == 1
    assert report.partial
    assert not report.ok
    assert notifier.successes == ["Imported 1 expenses."]
    assert notifier.errors[0].startswith("Invalid data in row 3:")
    assert notifier.errors[-1].startswith("Import partially succeeded:")


def test_store_failure_in_one_batch_leaves_the_others():
    failing = Recorder(fail_with=StoreError("import income", "connection reset"))
    targets, consumers = _targets(income=failing)
    notifier = RecordingNotifier()
    text = (
        COMBINED_HEADER
        + "expense,,Coffee,30000,2024-03-01,Ăn uống,,\n"
        + "income,,Salary,100,2024-03-02,,Job,\n"
        + "budget,,,50,,Ăn uống,,2024-03\n"
    )

    report = import_csv(CsvKind.COMBINED, text, targets, notifier=notifier)

    assert [b.kind.value for b in report.succeeded_batches] == ["expense", "budget"]
    (failed,) = report.failed_batches
    assert failed.error == "connection reset"
    assert failed.attempted == 1
    assert report.partial
    assert "Failed to import income entries: connection reset" in notifier.errors
    assert report.summary() == "1 expenses imported, 1 budgets imported, 1 income entries failed"


def test_not_authenticated_is_reported_per_batch():
    targets, _ = _targets(expenses=Recorder(fail_with=NotAuthenticatedError("import expenses")))
    notifier = RecordingNotifier()

    report = import_csv(
        CsvKind.EXPENSES,
        "id,description,amount,date,category\n,Coffee,1,2024-03-01,Khác\n",
        targets,
        notifier=notifier,
    )

    assert not report.ok
    assert not report.partial
    assert notifier.errors == ["Failed to import expenses: Please sign in to import expenses"]


def test_no_valid_data_only_when_nothing_was_rejected():
    targets, consumers = _targets()
    notifier = RecordingNotifier()

    report = import_csv(CsvKind.BUDGETS, "category,amount,monthYear\n", targets, notifier=notifier)

    assert report.no_valid_data
    assert notifier.errors == ["No valid budgets found in the file."]
    assert consumers["budgets"].batches == []


def test_all_rows_rejected_is_not_reported_as_no_valid_data():
    targets, _ = _targets()
    notifier = RecordingNotifier()

    report = import_csv(
        CsvKind.BUDGETS,
        "category,amount,monthYear\nKhác,0,2024-03\nKhác,5,2024-13\n",
        targets,
        notifier=notifier,
    )

    assert not report.no_valid_data
    assert len(report.row_errors) == 2
    assert len(notifier.errors) == 2
    assert not report.partial


def test_combined_no_valid_data_message():
    targets, _ = _targets()
    notifier = RecordingNotifier()

    report = import_csv(CsvKind.COMBINED, COMBINED_HEADER, targets, notifier=notifier)

    assert report.no_valid_data
    assert notifier.errors == ["No valid data found in the file."]


def test_structure_error_aborts_with_one_message():
    targets, consumers = _targets()
    notifier = RecordingNotifier()

    report = import_csv(
        CsvKind.EXPENSES,
        "id,description,amount,date,category\n,Coffee,1,2024-03-01,Khác\n,Bad,1\n",
        targets,
        notifier=notifier,
    )

    assert report.structure_error is not None
    assert consumers["expenses"].batches == []
    assert len(notifier.errors) == 1
    assert notifier.errors[0].startswith("Failed to parse CSV file:")


def test_clean_import_is_ok():
    targets, _ = _targets()
    notifier = RecordingNotifier()

    report = import_csv(
        CsvKind.INCOME,
        "id,description,amount,date,source\n,Salary,100,2024-03-01,Job\n,Gift,50,2024-03-02,Family\n",
        targets,
        notifier=notifier,
    )

    assert report.ok
    assert notifier.messages == [("success", "Imported 2 income entries.")]


def test_missing_file_is_a_structure_failure(tmp_path):
    targets, _ = _targets()
    notifier = RecordingNotifier()

    report = import_csv_file(CsvKind.EXPENSES, tmp_path / "nope.csv", targets, notifier=notifier)

    assert report.structure_error is not None
    assert len(notifier.errors) == 1


def test_logging_notifier_routes_to_the_notify_logger():
    import logging

    from balance.notify import LoggingNotifier

    records: list[logging.LogRecord] = []
    handler = logging.Handler()
    handler.emit = records.append
    logger = logging.getLogger("balance.notify")
    previous = logger.level
    logger.addHandler(handler)
    logger.setLevel(logging.INFO)
    try:
        targets, _ = _targets()
        import_csv(
            CsvKind.EXPENSES,
            "id,description,amount,date,category\n,Coffee,1,2024-03-01,Khác\n,Bad,0,2024-03-01,Khác\n",
            targets,
            notifier=LoggingNotifier(),
        )
    finally:
        logger.removeHandler(handler)
        logger.setLevel(previous)

    assert [(r.levelname, r.getMessage().split(":")[0]) for r in records] == [
        ("ERROR", "Invalid data in row 3"),
        ("INFO", "Imported 1 expenses."),
        ("ERROR", "Import partially succeeded"),
    ]

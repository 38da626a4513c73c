"""CLI tests for the import workflow."""

import pytest
from datetime import date, timedelta

from importflow.cli.main import cli

CONFIRM_FLAGS = ["--account-verified", "--date-range-verified", "--samples-reviewed"]


@pytest.fixture
def base_args(temp_db, tmp_path):
    """Global options pointing the CLI at temporary storage."""
    return [
        "--db-path",
        temp_db.database_path,
        "--blob-root",
        str(tmp_path / "blobs"),
        "--log-level",
        "WARNING",
    ]


@pytest.fixture
def statement_file(tmp_path):
    """A statement dated inside the reference window."""
    today = date.today()
    rows = [
        (today - timedelta(days=3), "Coffee", "-4.50"),
        (today - timedelta(days=2), "Salary", "2000.00"),
        (today - timedelta(days=1), "Groceries", "-85.20"),
    ]
    path = tmp_path / "statement.csv"
    path.write_text(
        "Date,Description,Amount\n" + "".join(f"{d.isoformat()},{desc},{amt}\n" for d, desc, amt in rows),
        encoding="utf-8",
    )
    return path


def _value(output: str, label: str) -> str:
    for line in output.splitlines():
        if line.startswith(f"{label}:"):
            return line.split(":", 1)[1].strip()
    raise AssertionError(f"'{label}' not found in output:\n{output}")


@pytest.fixture
def run(cli_runner, base_args):
    """Invoke the CLI with the global options."""

    def invoke(*args, **kwargs):
        return cli_runner.invoke(cli, [*base_args, *args], **kwargs)

    return invoke


@pytest.fixture
def analyzed_upload(run, statement_file):
    """Initiate and upload the statement; return its upload ID."""

    def upload(account="checking-1", user="alice"):
        result = run("initiate", account, "statement.csv", "--user", user)
        assert result.exit_code == 0, result.output
        upload_id = _value(result.output, "Upload ID")
        upload_url = _value(result.output, "Upload URL")

        result = run("upload", upload_url, str(statement_file))
        assert result.exit_code == 0, result.output
        assert "Status: ANALYZED" in result.output
        return upload_id

    return upload


def test_help_does_not_need_database(cli_runner):
    result = cli_runner.invoke(cli, ["--help"])

    assert result.exit_code == 0
    assert "confirm" in result.output


def test_full_workflow(run, analyzed_upload):
    """initiate -> upload -> confirm -> ledger."""
    upload_id = analyzed_upload()

    result = run("status", "checking-1", upload_id)
    assert result.exit_code == 0
    assert "Transactions in file: 3" in result.output
    assert "Potential duplicates: 0" in result.output

    result = run(
        "confirm", "checking-1", upload_id, "--user", "alice", "--duplicate-handling", "skip",
        *CONFIRM_FLAGS,
    )
    assert result.exit_code == 0, result.output
    assert "Status: COMPLETED" in result.output
    assert "Added: 3 transactions" in result.output

    result = run("ledger", "checking-1")
    assert result.exit_code == 0
    assert "Groceries" in result.output
    assert "Balance: 1910.30 (3 transactions" in result.output

    result = run("list", "--user", "alice")
    assert result.exit_code == 0
    assert upload_id in result.output
    assert "COMPLETED" in result.output


def test_second_import_reports_duplicates(run, analyzed_upload):
    first = analyzed_upload()
    run("confirm", "checking-1", first, "--user", "alice", "--duplicate-handling", "SKIP", *CONFIRM_FLAGS)

    second = analyzed_upload()
    result = run("status", "checking-1", second)
    assert "Potential duplicates: 3" in result.output

    result = run(
        "confirm", "checking-1", second, "--user", "alice", "--duplicate-handling", "MARK_DUPLICATE",
        *CONFIRM_FLAGS,
    )
    assert result.exit_code == 0, result.output
    assert "Duplicates handled: 3" in result.output

    result = run("ledger", "checking-1")
    assert result.output.count("[duplicate]") == 3
    assert "Balance: 1910.30 (3 transactions" in result.output


def test_confirm_requires_all_flags(run, analyzed_upload):
    upload_id = analyzed_upload()

    result = run(
        "confirm", "checking-1", upload_id, "--user", "alice", "--duplicate-handling", "SKIP",
        "--account-verified",
    )

    assert result.exit_code == 1
    assert "All confirmations must be accepted [VALIDATION_ERROR]" in result.output
    assert "Status: ANALYZED" in run("status", "checking-1", upload_id).output


def test_confirm_by_other_user(run, analyzed_upload):
    upload_id = analyzed_upload()

    result = run(
        "confirm", "checking-1", upload_id, "--user", "mallory", "--duplicate-handling", "SKIP",
        *CONFIRM_FLAGS,
    )

    assert result.exit_code == 1
    assert "[AUTHORIZATION_ERROR]" in result.output


def test_upload_bad_file_then_retry(run, tmp_path):
    result = run("initiate", "checking-1", "bad.csv", "--user", "alice")
    upload_id = _value(result.output, "Upload ID")
    upload_url = _value(result.output, "Upload URL")
    bad = tmp_path / "bad.csv"
    bad.write_text("Date,Description,Amount\n2024-01-01,Coffee,abc\n", encoding="utf-8")

    result = run("upload", upload_url, str(bad))
    assert result.exit_code == 1
    assert "Invalid amount at line 2: abc [ROW_FORMAT_ERROR]" in result.output

    result = run("status", "checking-1", upload_id)
    assert "Status: FAILED" in result.output

    result = run("retry", "checking-1", upload_id, "--user", "alice")
    assert result.exit_code == 1
    assert "[ROW_FORMAT_ERROR]" in result.output


def test_process_is_idempotent(run, analyzed_upload):
    upload_id = analyzed_upload()
    run("confirm", "checking-1", upload_id, "--user", "alice", "--duplicate-handling", "SKIP", *CONFIRM_FLAGS)

    result = run("process", "checking-1", upload_id)

    assert result.exit_code == 0, result.output
    assert "Status: COMPLETED" in result.output
    assert "Added: 3 transactions" in result.output


def test_process_unconfirmed_import(run, analyzed_upload):
    upload_id = analyzed_upload()

    result = run("process", "checking-1", upload_id)

    assert result.exit_code == 1
    assert "has not been confirmed" in result.output


def test_reassign_and_delete(run, analyzed_upload):
    upload_id = analyzed_upload()

    result = run("reassign", upload_id, "checking-1", "savings-1", "--user", "alice")
    assert result.exit_code == 0
    assert "reassigned from account checking-1 to account savings-1" in result.output

    result = run("delete", "savings-1", upload_id, "--user", "alice", input="n\n")
    assert "Deletion cancelled." in result.output

    result = run("delete", "savings-1", upload_id, "--user", "alice", "--yes")
    assert result.exit_code == 0
    assert f"Deleted import {upload_id}" in result.output

    result = run("status", "savings-1", upload_id)
    assert result.exit_code == 1
    assert "[NOT_FOUND]" in result.output


def test_initiate_rejects_unsupported_type(run):
    result = run("initiate", "checking-1", "statement.pdf", "--user", "alice", "--file-type", "PDF")

    assert result.exit_code == 1
    assert "Unsupported file type: PDF [VALIDATION_ERROR]" in result.output


def test_list_empty(run):
    result = run("list", "--user", "nobody")

    assert result.exit_code == 0
    assert "No imports found." in result.output

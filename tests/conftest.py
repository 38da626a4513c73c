"""Shared pytest fixtures for importflow tests."""

import logging
import tempfile
import os
from datetime import date, datetime, UTC
from decimal import Decimal
from pathlib import Path
from uuid import uuid4
import pytest

from importflow.config import Settings
from importflow.database.factories import create_sqlite_database
from importflow.domain.commit import PROCESS_IMPORT, CommitExecutor
from importflow.domain.entities import Transaction
from importflow.domain.import_service import ImportService
from importflow.domain.ledger import LedgerService
from importflow.domain.state_store import ImportStateStore
from importflow.integrations.blob_store import LocalBlobStore
from importflow.integrations.invoker import InlineInvoker

FIXED_NOW = datetime(2024, 1, 15, 12, 0, tzinfo=UTC)

USER_ID = "user-1"
ACCOUNT_ID = "checking-1"


def make_transaction(
    txn_date: date, description: str, amount: str, batch_id: str = "batch-1"
) -> Transaction:
    """Build an uncommitted transaction."""
    return Transaction(
        id=str(uuid4()),
        date=txn_date,
        description=description,
        amount=Decimal(amount),
        import_batch_id=batch_id,
        created_at=FIXED_NOW,
    )


@pytest.fixture(autouse=True)
def restore_logging():
    """Undo handlers installed by setup_logging during CLI tests."""
    root_logger = logging.getLogger()
    handlers = list(root_logger.handlers)
    level = root_logger.level
    yield
    root_logger.handlers[:] = handlers
    root_logger.setLevel(level)


@pytest.fixture
def temp_db():
    """Create a temporary database for testing."""
    # Create a temporary file for the database
    fd, db_path = tempfile.mkstemp(suffix=".db")
    os.close(fd)

    # Create database
    db = create_sqlite_database(database_path=db_path)
    # Store the path for tests that need it
    db.database_path = db_path
    db.connect()
    db.initialize_schema()

    yield db

    # Cleanup
    db.disconnect()
    if os.path.exists(db_path):
        os.unlink(db_path)


@pytest.fixture
def clock():
    """Clock frozen at 2024-01-15 12:00 UTC."""
    return lambda: FIXED_NOW


@pytest.fixture
def settings(tmp_path):
    """Settings pointing the blob store at a temporary directory."""
    return Settings(blob_root=str(tmp_path / "blobs"), signing_secret="test-secret")


@pytest.fixture
def blob_store(settings, clock):
    """Create a LocalBlobStore under a temporary directory."""
    return LocalBlobStore(
        settings.blob_root, settings.import_bucket, settings.signing_secret, clock=clock
    )


@pytest.fixture
def ledger_service(temp_db):
    """Create a LedgerService with a temporary database."""
    return LedgerService(temp_db)


@pytest.fixture
def state_store(temp_db, clock):
    """Create an ImportStateStore with a temporary database."""
    return ImportStateStore(temp_db, clock)


@pytest.fixture
def executor(temp_db, blob_store, clock):
    """Create a CommitExecutor with a temporary database."""
    return CommitExecutor(temp_db, blob_store, clock=clock)


@pytest.fixture
def invoker(executor):
    """Create an InlineInvoker wired to the commit executor."""
    invoker = InlineInvoker()
    invoker.register(PROCESS_IMPORT, executor.handle)
    return invoker


@pytest.fixture
def import_service(temp_db, blob_store, invoker, settings, clock):
    """Create an ImportService with a temporary database."""
    return ImportService(temp_db, blob_store, invoker, settings=settings, clock=clock)


@pytest.fixture
def upload_statement(import_service, blob_store):
    """Return a function that initiates, uploads and analyzes a statement."""

    def upload(content: str | bytes, account_id: str = ACCOUNT_ID, user_id: str = USER_ID,
               file_name: str = "statement.csv"):
        ticket = import_service.initiate_import(
            user_id=user_id,
            account_id=account_id,
            file_name=file_name,
            file_type="CSV",
            content_type="text/csv",
        )
        data = content.encode("utf-8") if isinstance(content, str) else content
        bucket, key = blob_store.upload(ticket.upload_url, data)
        return import_service.on_raw_file_arrived(bucket, key)

    return upload


@pytest.fixture
def seed_ledger(ledger_service):
    """Return a function that commits (date, description, amount) rows to a ledger."""

    def seed(rows, account_id: str = ACCOUNT_ID):
        stored = [
            ledger_service.create_transaction(account_id, make_transaction(d, desc, amount))
            for d, desc, amount in rows
        ]
        ledger_service.recompute_balance(account_id)
        return stored

    return seed


@pytest.fixture
def all_confirmed():
    """Confirmations with every acknowledgement given."""
    return {"account_verified": True, "date_range_verified": True, "samples_reviewed": True}


@pytest.fixture
def cli_runner():
    """Create a Click CLI test runner."""
    from click.testing import CliRunner

    return CliRunner()


@pytest.fixture
def fixtures_dir():
    """Return the path to the test fixtures directory."""
    return Path(__file__).parent / "fixtures"


@pytest.fixture
def make_txn():
    """Return the transaction builder."""
    return make_transaction


@pytest.fixture
def now():
    """The instant the fixed clock reports."""
    return FIXED_NOW

"""Wiring of the import pipeline's services and collaborators."""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from importflow.config import Settings
from importflow.database.base import Database
from importflow.database.factories import create_sqlite_database
from importflow.domain.commit import PROCESS_IMPORT, CommitExecutor
from importflow.domain.import_service import ImportService
from importflow.domain.ledger import LedgerService
from importflow.integrations.blob_store import LocalBlobStore
from importflow.integrations.invoker import InlineInvoker
from importflow.utils.date_parser import utc_now

logger = logging.getLogger(__name__)


@dataclass
class App:
    """The services one process needs, sharing a database and blob store."""

    db: Database
    blob_store: LocalBlobStore
    invoker: InlineInvoker
    service: ImportService
    executor: CommitExecutor
    ledger: LedgerService

    def close(self) -> None:
        self.db.disconnect()


def create_app(
    settings: Settings,
    db: Optional[Database] = None,
    clock: Callable[[], datetime] = utc_now,
) -> App:
    """Build the pipeline from settings.

    Confirmed imports are committed in-process by an inline invoker, with
    the commit executor registered under ``PROCESS_IMPORT``.

    Args:
        settings: Runtime settings
        db: Database to use instead of the SQLite file named in settings
        clock: Source of the current time for every stage
    """
    if db is None:
        db = create_sqlite_database(database_path=settings.database_path)
        db.connect()
        db.initialize_schema()

    blob_store = LocalBlobStore(
        settings.blob_root, settings.import_bucket, settings.signing_secret, clock=clock
    )
    executor = CommitExecutor(
        db, blob_store, reference_window_days=settings.reference_window_days, clock=clock
    )
    invoker = InlineInvoker()
    invoker.register(PROCESS_IMPORT, executor.handle)

    service = ImportService(db, blob_store, invoker, settings=settings, clock=clock)
    logger.debug("Pipeline ready (bucket %s)", settings.import_bucket)
    return App(
        db=db,
        blob_store=blob_store,
        invoker=invoker,
        service=service,
        executor=executor,
        ledger=LedgerService(db),
    )

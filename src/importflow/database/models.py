"""SQLAlchemy models for importflow database."""

from datetime import datetime, UTC
from decimal import Decimal
from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Date,
    DateTime,
    Integer,
    String,
    TypeDecorator,
    UniqueConstraint,
    create_engine,
)
from sqlalchemy.orm import declarative_base, sessionmaker, Session

Base = declarative_base()


class DecimalString(TypeDecorator):
    """Decimal stored as text so amounts keep every digit of the statement."""

    impl = String
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        return str(Decimal(value))

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return Decimal(value)


class ImportRecord(Base):
    """Import lifecycle record.

    The analysis snapshot, processing options, summary and error are stored as
    JSON documents; see ``importflow.database.mappers``.
    """

    __tablename__ = "imports"

    upload_id = Column(String, primary_key=True)
    account_id = Column(String, nullable=False, index=True)
    user_id = Column(String, nullable=False, index=True)
    file_name = Column(String, nullable=False)
    file_type = Column(String, nullable=False)
    content_type = Column(String, nullable=False)
    file_key = Column(String, nullable=False)
    status = Column(String, nullable=False)
    created_at = Column(DateTime, default=lambda: datetime.now(UTC), nullable=False)
    updated_at = Column(DateTime, default=lambda: datetime.now(UTC), nullable=False)
    analysis = Column(JSON, nullable=True)
    processing_options = Column(JSON, nullable=True)
    summary = Column(JSON, nullable=True)
    error = Column(JSON, nullable=True)


class LedgerTransaction(Base):
    """Committed transaction in an account's ledger."""

    __tablename__ = "ledger_transactions"

    # Autoincrement key keeps insertion order for same-day entries
    pk = Column(Integer, primary_key=True)
    transaction_id = Column(String, nullable=False)
    account_id = Column(String, nullable=False, index=True)
    unique_id = Column(String, nullable=False)
    date = Column(Date, nullable=False)
    description = Column(String, nullable=False)
    amount = Column(DecimalString, nullable=False)
    import_batch_id = Column(String, nullable=False)
    is_duplicate = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=lambda: datetime.now(UTC), nullable=False)
    updated_at = Column(DateTime, default=lambda: datetime.now(UTC), nullable=False)

    # Ledger identity is account + date + content hash
    __table_args__ = (
        UniqueConstraint("account_id", "date", "unique_id", name="uq_ledger_key"),
    )


class AccountBalance(Base):
    """Balance aggregate maintained from the ledger."""

    __tablename__ = "account_balances"

    account_id = Column(String, primary_key=True)
    balance = Column(DecimalString, nullable=False, default=Decimal("0"))
    transaction_count = Column(Integer, nullable=False, default=0)
    last_transaction_date = Column(Date, nullable=True)
    updated_at = Column(DateTime, default=lambda: datetime.now(UTC), nullable=False)


def create_session_factory(database_url: str) -> sessionmaker[Session]:
    """Create a SQLAlchemy session factory."""
    engine = create_engine(database_url, echo=False)
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine, expire_on_commit=False)

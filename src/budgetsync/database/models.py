"""SQLAlchemy models for the budgetsync database."""

from datetime import datetime, UTC
from sqlalchemy import (
    Column,
    Integer,
    String,
    ForeignKey,
    DateTime,
    Date,
    Float,
    Numeric,
    Boolean,
    UniqueConstraint,
    create_engine,
)
from sqlalchemy.orm import declarative_base, relationship, sessionmaker, Session

Base = declarative_base()


class ImportBatch(Base):
    """Import batch model."""

    __tablename__ = "import_batches"

    id = Column(Integer, primary_key=True)
    account_prefix = Column(String, nullable=False)
    sequence_number = Column(Integer, nullable=False)
    bank_id = Column(String, nullable=False)
    bank_account_id = Column(String, nullable=False)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    status = Column(String, nullable=False)
    transaction_count = Column(Integer, default=0, nullable=False)
    error_message = Column(String, nullable=True)
    start_time = Column(DateTime(timezone=True), nullable=False)
    end_time = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False)
    updated_at = Column(DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False)

    # One batch id per account and sequence number
    __table_args__ = (
        UniqueConstraint("account_prefix", "sequence_number", name="uq_batch_sequence"),
    )

    # Relationships
    transactions = relationship("Transaction", back_populates="import_batch")


class ImportBatchSequence(Base):
    """Last allocated batch sequence number per account."""

    __tablename__ = "import_batch_sequences"

    account_prefix = Column(String, primary_key=True)
    last_value = Column(Integer, default=0, nullable=False)


class Transaction(Base):
    """Transaction model."""

    __tablename__ = "transactions"

    id = Column(Integer, primary_key=True)
    bank_id = Column(String, nullable=False)
    bank_account_id = Column(String, nullable=False)
    external_id = Column(String, nullable=False)
    date = Column(Date, nullable=False)
    amount = Column(Numeric(18, 2), nullable=False)
    currency = Column(String(3), nullable=False)
    description = Column(String, nullable=False)
    counterparty = Column(String, nullable=True)
    counter_account = Column(String, nullable=True)
    reference = Column(String, nullable=True)
    transaction_type = Column(String, nullable=True)
    comment = Column(String, nullable=True)
    message = Column(String, nullable=True)
    import_batch_id = Column(Integer, ForeignKey("import_batches.id"), nullable=False)
    status = Column(String, nullable=False)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False)
    updated_at = Column(DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False)

    # A bank transaction id is stored at most once per account
    __table_args__ = (
        UniqueConstraint("bank_id", "bank_account_id", "external_id", name="uq_account_external_id"),
    )

    # Relationships
    import_batch = relationship("ImportBatch", back_populates="transactions")
    processing_state = relationship(
        "ProcessingState", back_populates="transaction", uselist=False, cascade="all, delete-orphan"
    )


class Category(Base):
    """Category model with hierarchical structure."""

    __tablename__ = "categories"

    id = Column(String, primary_key=True)
    name = Column(String, nullable=False)
    parent_id = Column(String, ForeignKey("categories.id"), nullable=True)
    active = Column(Boolean, default=True, nullable=False)

    # Relationships
    parent = relationship("Category", remote_side=[id], backref="children")


class ProcessingState(Base):
    """Suggested and overridden values of one transaction."""

    __tablename__ = "processing_states"

    id = Column(Integer, primary_key=True)
    transaction_id = Column(Integer, ForeignKey("transactions.id"), unique=True, nullable=False)
    status = Column(String, nullable=False)
    is_duplicate = Column(Boolean, default=False, nullable=False)
    suggested_payee_name = Column(String, nullable=True)
    suggested_category = Column(String, nullable=True)
    suggested_memo = Column(String, nullable=True)
    category_confidence = Column(Float, nullable=True)
    payee_confidence = Column(Float, nullable=True)
    override_payee_name = Column(String, nullable=True)
    override_category = Column(String, nullable=True)
    override_memo = Column(String, nullable=True)
    ynab_transaction_id = Column(String, nullable=True)
    ynab_account_id = Column(String, nullable=True)
    processed_at = Column(DateTime(timezone=True), nullable=True)
    submitted_at = Column(DateTime(timezone=True), nullable=True)

    # Relationships
    transaction = relationship("Transaction", back_populates="processing_state")


def create_session_factory(database_url: str) -> sessionmaker[Session]:
    """Create a SQLAlchemy session factory."""
    engine = create_engine(database_url, echo=False)
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine)

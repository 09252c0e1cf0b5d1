"""Card usage model for storing extracted card transactions."""

from datetime import datetime, timezone
from sqlalchemy import String, DateTime, Integer, Index
from sqlalchemy.orm import Mapped, mapped_column

from cardspend.db.base import Base


class CardUsageRecord(Base):
    """
    Stores one card transaction extracted from an issuer notification email.

    Rows are never updated; a correction is a delete followed by a new insert.
    """

    __tablename__ = "card_usages"

    # Primary key
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    # Extracted data
    card_name: Mapped[str] = mapped_column(
        String(255), nullable=False,
        comment="Card display name as written by the issuer (full-width kept)"
    )
    amount: Mapped[int] = mapped_column(
        Integer, nullable=False,
        comment="Amount in whole currency units"
    )
    where_to_use: Mapped[str] = mapped_column(
        String(500), nullable=False, default="",
        comment="Merchant or location, empty when the email has none"
    )
    datetime_of_use: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, index=True,
        comment="Transaction time stated in the email (stored in UTC)"
    )
    card_company: Mapped[str] = mapped_column(
        String(16), nullable=False, index=True,
        comment="Issuer format applied (MUFG, SMBC)"
    )

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc),
        comment="When this record was stored"
    )

    # Indexes
    __table_args__ = (
        Index("idx_card_usage_company_datetime", "card_company", "datetime_of_use"),
    )

    def __repr__(self) -> str:
        return (
            f"<CardUsageRecord(id={self.id}, amount={self.amount}, "
            f"company={self.card_company}, at={self.datetime_of_use})>"
        )

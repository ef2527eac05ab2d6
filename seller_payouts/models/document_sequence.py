"""
Document Sequence Model for Atomic Number Generation

• One global, never-resetting counter per document type
• Atomic number generation with database-level locking
• Format: {PREFIX}{SEPARATOR}{SEQUENCE}, e.g. PAY-000001

USAGE:
    from seller_payouts.services.document_sequence_service import DocumentSequenceService

    async def create_payout(db):
        service = DocumentSequenceService(db)
        payout_number = await service.get_next_number("PAY")
        # Returns: PAY-000001
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import String, Integer, DateTime
from sqlalchemy.orm import Mapped, mapped_column

from seller_payouts.database import Base
from seller_payouts.db_types import UUIDType


class DocumentSequence(Base):
    """
    Sequence counter for atomic document number generation.

    Example:
        document_type = "PAY"
        current_number = 42
        → Next payout number: PAY-000043
    """
    __tablename__ = "document_sequences"

    id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4
    )

    document_type: Mapped[str] = mapped_column(
        String(10),
        unique=True,
        nullable=False,
        comment="PAY"
    )
    document_name: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        comment="Human readable name"
    )

    current_number: Mapped[int] = mapped_column(
        Integer,
        default=0,
        nullable=False,
        comment="Last used sequence number"
    )

    # Formatting
    padding_length: Mapped[int] = mapped_column(
        Integer,
        default=6,
        nullable=False,
        comment="Zero padding for sequence (6 = 000001)"
    )
    separator: Mapped[str] = mapped_column(
        String(5),
        default="-",
        nullable=False
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False
    )

    def format_number(self, number: int) -> str:
        return f"{self.document_type}{self.separator}{str(number).zfill(self.padding_length)}"

    def get_next_number(self) -> str:
        """
        Generate next document number.

        NOTE: This method increments current_number but does NOT
        commit to database. The caller must handle the transaction.
        """
        self.current_number += 1
        return self.format_number(self.current_number)

    def __repr__(self) -> str:
        return f"<DocumentSequence({self.document_type}: {self.current_number})>"

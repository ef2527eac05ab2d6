"""
Document Sequence Service for Atomic Number Generation

- One global counter per document type, never reset
- Atomic number generation with database-level locking
- Format: {PREFIX}-{SEQUENCE}, e.g. PAY-000001

USAGE:
    from seller_payouts.services.document_sequence_service import DocumentSequenceService

    async def create_payout(db: AsyncSession):
        service = DocumentSequenceService(db)
        payout_number = await service.get_next_number("PAY")
        # Returns: PAY-000001

SUPPORTED DOCUMENT TYPES:
    PAY - Commission Payout
"""

import logging
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from seller_payouts.config import settings
from seller_payouts.models.document_sequence import DocumentSequence


logger = logging.getLogger(__name__)


# Document type metadata
DOCUMENT_METADATA = {
    settings.PAYOUT_NUMBER_PREFIX: {
        "name": "Commission Payout",
        "padding": settings.PAYOUT_NUMBER_PADDING,
    },
}


class DocumentSequenceService:
    """
    Service for generating atomic document numbers.

    Uses database-level locking (SELECT FOR UPDATE) to ensure no duplicate
    numbers are generated even under concurrent load. The increment is
    flushed, not committed: it becomes permanent together with the document
    that consumed the number, and rolls back with it.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    def _validate_type(self, document_type: str) -> str:
        doc_type = document_type.upper()
        if doc_type not in DOCUMENT_METADATA:
            valid_types = ", ".join(DOCUMENT_METADATA.keys())
            raise ValueError(f"Invalid document type '{doc_type}'. Valid types: {valid_types}")
        return doc_type

    async def get_next_number(self, document_type: str) -> str:
        """
        Get next document number with atomic increment.

        Args:
            document_type: Document type code (PAY)

        Returns:
            Formatted document number, e.g., PAY-000001

        Raises:
            ValueError: If document_type is invalid
        """
        doc_type = self._validate_type(document_type)

        sequence = await self._get_or_create_sequence(doc_type)
        doc_number = sequence.get_next_number()

        await self.db.flush()
        logger.debug(f"Allocated {doc_number}")

        return doc_number

    async def _get_or_create_sequence(self, document_type: str) -> DocumentSequence:
        """
        Get existing sequence with row lock, or create new one.
        """
        result = await self.db.execute(
            select(DocumentSequence)
            .where(DocumentSequence.document_type == document_type)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        sequence = result.scalar_one_or_none()

        if sequence:
            return sequence

        metadata = DOCUMENT_METADATA[document_type]
        sequence = DocumentSequence(
            document_type=document_type,
            document_name=metadata["name"],
            current_number=0,
            padding_length=metadata["padding"],
            separator="-",
        )
        self.db.add(sequence)
        await self.db.flush()

        # Re-fetch with lock to ensure atomicity
        result = await self.db.execute(
            select(DocumentSequence)
            .where(DocumentSequence.id == sequence.id)
            .with_for_update()
        )
        return result.scalar_one()

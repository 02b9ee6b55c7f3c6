"""
approval_services.numbering -- Document number allocation.

``allocate`` increments the locked counter for (form code, year-month) and
formats ``{FORM_CODE}-{YYYY}{MM}-{seq:04d}``.  It runs inside the creating
transaction, so a rolled-back creation never consumes a number that a
committed document could collide with.
"""

from __future__ import annotations

from datetime import datetime

from approval_engines.numbering import format_document_no, sequence_name
from approval_kernel.logging_config import get_logger
from approval_kernel.services.sequence_service import SequenceService

logger = get_logger("services.numbering")


class NumberingService:
    def __init__(self, sequences: SequenceService):
        self._sequences = sequences

    def allocate(self, form_code: str, on: datetime) -> str:
        seq = self._sequences.next_value(sequence_name(form_code, on))
        document_no = format_document_no(form_code, on.year, on.month, seq)
        logger.info(
            "document_number_allocated",
            extra={"form_code": form_code, "document_no": document_no, "sequence": seq},
        )
        return document_no

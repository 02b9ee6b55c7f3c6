"""
approval_engines.numbering -- Document number formatting.

Document numbers read ``{FORM_CODE}-{YYYY}{MM}-{seq:04d}``.  Sequences are
scoped per form code and calendar month; the counter name produced by
``sequence_name`` keys the locked counter row that hands them out.
"""

from __future__ import annotations

from datetime import datetime


def format_document_no(form_code: str, year: int, month: int, sequence: int) -> str:
    if sequence < 1:
        raise ValueError(f"sequence must be positive, got {sequence}")
    return f"{form_code}-{year:04d}{month:02d}-{sequence:04d}"


def sequence_name(form_code: str, on: datetime) -> str:
    """Counter name for one (form, year-month) scope."""
    return f"document_no:{form_code}:{on.year:04d}{on.month:02d}"

"""Tests for document number formatting."""

from datetime import datetime, timezone

import pytest

from approval_engines.numbering import (
    format_document_no,
    sequence_name,
)


class TestFormatDocumentNo:
    def test_format(self):
        assert format_document_no("VACATION", 2024, 9, 1) == "VACATION-202409-0001"

    def test_sequence_wider_than_four_digits(self):
        assert format_document_no("EXPENSE", 2024, 12, 12345) == "EXPENSE-202412-12345"

    def test_sequence_must_be_positive(self):
        with pytest.raises(ValueError):
            format_document_no("VACATION", 2024, 9, 0)


class TestSequenceName:
    def test_scoped_per_form_and_month(self):
        sept = datetime(2024, 9, 30, 23, 59, tzinfo=timezone.utc)
        octo = datetime(2024, 10, 1, tzinfo=timezone.utc)

        assert sequence_name("VACATION", sept) == "document_no:VACATION:202409"
        assert sequence_name("VACATION", octo) != sequence_name("VACATION", sept)
        assert sequence_name("EXPENSE", sept) != sequence_name("VACATION", sept)

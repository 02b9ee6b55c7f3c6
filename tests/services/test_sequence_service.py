"""
Tests for SequenceService and NumberingService.

Covers:
- next_value(): first value is 1, strictly increasing, independent counters
- current_value(): no increment, None for unused sequences
- NumberingService.allocate(): format, per form, per month
"""

from datetime import datetime, timezone

from approval_kernel.services.sequence_service import SequenceService
from approval_services.numbering import NumberingService


class TestSequenceService:
    def test_first_value_is_one(self, session):
        assert SequenceService(session).next_value("test:first") == 1

    def test_values_strictly_increase(self, session):
        service = SequenceService(session)

        values = [service.next_value("test:increasing") for _ in range(5)]

        assert values == [1, 2, 3, 4, 5]

    def test_counters_are_independent(self, session):
        service = SequenceService(session)
        service.next_value("test:a")
        service.next_value("test:a")

        assert service.next_value("test:b") == 1

    def test_current_value(self, session):
        service = SequenceService(session)

        assert service.current_value("test:unused") is None
        service.next_value("test:used")
        service.next_value("test:used")
        assert service.current_value("test:used") == 2
        assert service.current_value("test:used") == 2


class TestNumberingService:
    def test_allocate_format(self, session):
        numbering = NumberingService(SequenceService(session))
        on = datetime(2024, 9, 14, tzinfo=timezone.utc)

        assert numbering.allocate("VACATION", on) == "VACATION-202409-0001"
        assert numbering.allocate("VACATION", on) == "VACATION-202409-0002"

    def test_sequence_restarts_each_month(self, session):
        numbering = NumberingService(SequenceService(session))

        numbering.allocate("VACATION", datetime(2024, 9, 30, tzinfo=timezone.utc))
        numbering.allocate("VACATION", datetime(2024, 9, 30, tzinfo=timezone.utc))

        assert numbering.allocate("VACATION", datetime(2024, 10, 1, tzinfo=timezone.utc)) == "VACATION-202410-0001"

    def test_sequence_per_form(self, session):
        numbering = NumberingService(SequenceService(session))
        on = datetime(2024, 9, 14, tzinfo=timezone.utc)
        numbering.allocate("VACATION", on)

        assert numbering.allocate("EXPENSE", on) == "EXPENSE-202409-0001"

    def test_allocation_is_logged(self, session, captured_logs):
        numbering = NumberingService(SequenceService(session))

        numbering.allocate("ASSIGNMENT", datetime(2024, 9, 14, tzinfo=timezone.utc))

        records = [r for r in captured_logs() if r["message"] == "document_number_allocated"]
        assert records[0]["document_no"] == "ASSIGNMENT-202409-0001"
        assert records[0]["logger"] == "approval_kernel.services.numbering"

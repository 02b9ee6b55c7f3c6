"""
Concurrent document creation.

Document numbers come from a locked counter row per (form, year-month).
N threads creating documents at the same time must receive N distinct,
gapless numbers, and every document must be persisted.

Run with: pytest tests/concurrency/test_document_number_race.py -v
Skip with: pytest -m "not slow_locks"
"""

from concurrent.futures import ThreadPoolExecutor

import pytest

from approval_kernel.domain.line import SlotSpec

pytestmark = pytest.mark.slow_locks

WORKERS = 8


class TestConcurrentNumbering:
    def test_numbers_are_distinct_and_gapless(self, approval_engine, engine_form_ids, org):
        form_id = engine_form_ids["VACATION"]

        def create(i):
            return approval_engine.create_document(
                form_id, f"Leave {i}", {"days": 1}, org.requester, [SlotSpec(1, org.manager)],
            )

        with ThreadPoolExecutor(max_workers=WORKERS) as pool:
            results = list(pool.map(create, range(WORKERS)))

        assert all(r.is_ok for r in results), [r for r in results if not r.is_ok]
        numbers = sorted(r.value.document_no for r in results)
        assert numbers == [f"VACATION-202409-{n:04d}" for n in range(1, WORKERS + 1)]

        page = approval_engine.list_submitted_by(org.requester, page_size=50).value
        assert page.total_count == WORKERS

    def test_forms_number_independently(self, approval_engine, engine_form_ids, org):
        def create(form_code):
            return approval_engine.create_document(
                engine_form_ids[form_code], form_code, {}, org.requester, [SlotSpec(1, org.manager)],
            )

        codes = ["VACATION", "EXPENSE"] * (WORKERS // 2)
        with ThreadPoolExecutor(max_workers=WORKERS) as pool:
            results = list(pool.map(create, codes))

        numbers = {r.value.document_no for r in results}
        assert len(numbers) == WORKERS
        assert "VACATION-202409-0004" in numbers
        assert "EXPENSE-202409-0004" in numbers

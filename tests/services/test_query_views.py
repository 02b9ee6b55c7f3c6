"""
Tests for QueryViews -- document detail, pending and submitted lists.

Covers:
- get_document(): header, line and history with directory names
- list_pending_for(): current level only, standing and slot delegations,
  locked-out nominal approvers, one row per document, pagination
- list_submitted_by(): newest first, status and year filters
"""

from datetime import datetime, timezone
from uuid import uuid4

import pytest

from approval_kernel.domain.approval import (
    ApprovalDecision,
    ApprovalType,
    CallerIdentity,
    DocumentStatus,
    LineStatus,
)
from approval_kernel.exceptions import DocumentNotFoundError

APPROVE = ApprovalDecision.APPROVE


class TestGetDocument:
    def test_detail_with_names(self, create_explicit, processor, query_views, org):
        created = create_explicit([[org.manager], [org.director]], title="Conference trip")
        processor.process(created.document_id, org.manager, APPROVE, "fine")

        detail = query_views.get_document(created.document_id)

        assert detail.header.title == "Conference trip"
        assert detail.header.form_code == "GENERIC"
        assert detail.header.status == DocumentStatus.IN_PROGRESS
        assert detail.header.requester_name == "Alice Staff"
        assert detail.header.requester_department == "Development"
        assert [s.approver_name for s in detail.line] == ["Bob Manager", "Carol Director"]
        assert detail.line[0].actual_approver_name == "Bob Manager"
        assert detail.line[0].status == LineStatus.APPROVED
        assert [h.action_by_name for h in detail.history] == [
            "Alice Staff", "Alice Staff", "Bob Manager",
        ]
        assert detail.history[-1].comment == "fine"

    def test_unknown_document(self, query_views):
        with pytest.raises(DocumentNotFoundError):
            query_views.get_document(uuid4())


class TestPendingFor:
    def test_only_current_level_approvers(self, create_explicit, query_views, org):
        created = create_explicit([[org.manager], [org.director]])

        manager_page = query_views.list_pending_for(org.manager, 1, 20)
        director_page = query_views.list_pending_for(org.director, 1, 20)

        assert [d.document_id for d in manager_page.documents] == [created.document_id]
        assert manager_page.documents[0].my_level == 1
        assert manager_page.documents[0].current_approver_names == ("Bob Manager",)
        assert director_page.total_count == 0

    def test_moves_with_level(self, create_explicit, processor, query_views, org):
        created = create_explicit([[org.manager], [org.director]])
        processor.process(created.document_id, org.manager, APPROVE)

        assert query_views.list_pending_for(org.manager, 1, 20).total_count == 0
        assert query_views.list_pending_for(org.director, 1, 20).total_count == 1

    def test_drafts_and_terminal_documents_excluded(self, create_explicit, processor, query_views, org):
        create_explicit([[org.manager]], submit=False)
        done = create_explicit([[org.manager]])
        processor.process(done.document_id, org.manager, APPROVE)

        assert query_views.list_pending_for(org.manager, 1, 20).total_count == 0

    def test_reference_slots_excluded(self, create_explicit, query_views, org):
        create_explicit([[org.manager, (org.hr_manager, ApprovalType.REFERENCE)]])

        assert query_views.list_pending_for(org.hr_manager, 1, 20).total_count == 0

    def test_standing_delegation(
        self, create_explicit, query_views, delegation_service, org, delegation_window,
    ):
        delegation_service.register_delegation(org.manager, org.deputy, *delegation_window)
        created = create_explicit([[org.manager]])

        deputy_page = query_views.list_pending_for(org.deputy, 1, 20)

        assert [d.document_id for d in deputy_page.documents] == [created.document_id]
        assert query_views.list_pending_for(org.manager, 1, 20).total_count == 0

    def test_slot_delegation(self, session, create_explicit, processor, query_views, org):
        created = create_explicit([[org.manager]])
        line_id = query_views.get_document(created.document_id).line[0].line_id
        processor.delegate_slot(created.document_id, line_id, CallerIdentity(org.manager), org.deputy)

        assert query_views.list_pending_for(org.deputy, 1, 20).documents[0].my_line_id == line_id
        assert query_views.list_pending_for(org.manager, 1, 20).total_count == 0

    def test_one_row_per_document(
        self, create_explicit, query_views, delegation_service, org, delegation_window,
    ):
        delegation_service.register_delegation(org.hr_team_1, org.hr_team_2, *delegation_window)
        create_explicit([[org.hr_team_1, org.hr_team_2]])

        page = query_views.list_pending_for(org.hr_team_2, 1, 20)

        assert page.total_count == 1

    def test_pagination(self, create_explicit, query_views, org, deterministic_clock):
        created = []
        for i in range(5):
            created.append(create_explicit([[org.manager]], title=f"Request {i}"))
            deterministic_clock.advance(60)

        first = query_views.list_pending_for(org.manager, 1, 2)
        last = query_views.list_pending_for(org.manager, 3, 2)

        assert first.total_count == 5
        assert first.total_pages == 3
        assert first.has_next and not first.has_previous
        assert [d.document_id for d in first.documents] == [c.document_id for c in created[:2]]
        assert [d.document_id for d in last.documents] == [created[4].document_id]
        assert not last.has_next

    def test_urgent_first(self, create_explicit, query_views, org, deterministic_clock):
        normal = create_explicit([[org.manager]])
        deterministic_clock.advance(60)
        urgent = create_explicit([[org.manager]], urgent=True)

        page = query_views.list_pending_for(org.manager, 1, 20)

        assert [d.document_id for d in page.documents] == [urgent.document_id, normal.document_id]


class TestSubmittedBy:
    def test_newest_first(self, create_explicit, query_views, org, deterministic_clock):
        older = create_explicit([[org.manager]])
        deterministic_clock.advance(3600)
        newer = create_explicit([[org.manager]])
        create_explicit([[org.manager]], requester_id=org.colleague)

        page = query_views.list_submitted_by(org.requester, 1, 20)

        assert [d.document_id for d in page.documents] == [newer.document_id, older.document_id]
        assert page.documents[0].requester_name == "Alice Staff"

    def test_status_filter(self, create_explicit, processor, query_views, org):
        approved = create_explicit([[org.manager]])
        processor.process(approved.document_id, org.manager, APPROVE)
        create_explicit([[org.manager]])

        page = query_views.list_submitted_by(org.requester, 1, 20, status=DocumentStatus.APPROVED)

        assert [d.document_id for d in page.documents] == [approved.document_id]
        assert page.documents[0].current_approver_names == ()

    def test_year_filter(self, create_explicit, query_views, org, deterministic_clock):
        create_explicit([[org.manager]])
        deterministic_clock.set_time(datetime(2025, 1, 2, 9, 0, tzinfo=timezone.utc))
        later = create_explicit([[org.manager]])

        assert query_views.list_submitted_by(org.requester, 1, 20, year=2024).total_count == 1
        page = query_views.list_submitted_by(org.requester, 1, 20, year=2025)
        assert [d.document_id for d in page.documents] == [later.document_id]

    def test_paginated_in_store(self, create_explicit, query_views, org, deterministic_clock):
        for _ in range(3):
            create_explicit([[org.manager]])
            deterministic_clock.advance(60)

        page = query_views.list_submitted_by(org.requester, 2, 2)

        assert page.total_count == 3
        assert len(page.documents) == 1
        assert page.has_previous

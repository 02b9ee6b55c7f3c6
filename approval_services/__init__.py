"""
Approval services: orchestration over the kernel and the pure engines.

``ApprovalEngine`` is the external interface; everything else here is the
coordination it is built from.
"""

from approval_services.approval_processor import ApprovalProcessor
from approval_services.bootstrap import seed_catalog
from approval_services.delegation_resolver import DelegationResolver
from approval_services.engine import ApprovalEngine
from approval_services.line_resolver import LineResolver
from approval_services.numbering import NumberingService
from approval_services.query_views import QueryViews
from approval_services.results import SYSTEM_ERROR, Err, Ok, Result

__all__ = [
    "SYSTEM_ERROR",
    "ApprovalEngine",
    "ApprovalProcessor",
    "DelegationResolver",
    "Err",
    "LineResolver",
    "NumberingService",
    "Ok",
    "QueryViews",
    "Result",
    "seed_catalog",
]

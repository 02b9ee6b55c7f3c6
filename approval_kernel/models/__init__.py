"""
ORM models for the approval kernel.

Importing this package registers every table on ``Base.metadata``.
"""

from approval_kernel.models.delegation import ApprovalDelegationModel
from approval_kernel.models.document import (
    ApprovalAttachmentModel,
    ApprovalDocumentModel,
    ApprovalLineModel,
)
from approval_kernel.models.form import ApprovalFormModel, ApprovalSettingModel
from approval_kernel.models.history import ApprovalHistoryModel
from approval_kernel.models.sequence import SequenceCounter

__all__ = [
    "ApprovalAttachmentModel",
    "ApprovalDelegationModel",
    "ApprovalDocumentModel",
    "ApprovalFormModel",
    "ApprovalHistoryModel",
    "ApprovalLineModel",
    "ApprovalSettingModel",
    "SequenceCounter",
]

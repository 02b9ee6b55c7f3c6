"""Kernel services: the imperative shell around the approval models."""

from approval_kernel.services.catalog_service import CatalogService
from approval_kernel.services.delegation_service import DelegationService
from approval_kernel.services.document_store import DocumentStore
from approval_kernel.services.sequence_service import SequenceService

__all__ = [
    "CatalogService",
    "DelegationService",
    "DocumentStore",
    "SequenceService",
]

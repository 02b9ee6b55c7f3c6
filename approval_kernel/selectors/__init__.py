"""Read-only query selectors."""

from approval_kernel.selectors.document_selector import DocumentSelector, PendingSlot

__all__ = ["DocumentSelector", "PendingSlot"]

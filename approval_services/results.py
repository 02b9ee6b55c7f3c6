"""
approval_services.results -- Tagged operation results.

Every facade call returns ``Ok(value)`` or ``Err(kind, message, ...)``
instead of raising.  ``kind`` is the kernel exception's machine-readable
``code``, or ``SYSTEM_ERROR`` for unexpected persistence failures.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar, Union

from approval_kernel.exceptions import ApprovalKernelError

T = TypeVar("T")

SYSTEM_ERROR = "SYSTEM_ERROR"


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T

    @property
    def is_ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Err:
    kind: str
    message: str
    retryable: bool = False
    details: dict[str, Any] = field(default_factory=dict)

    @property
    def is_ok(self) -> bool:
        return False

    @classmethod
    def from_exception(cls, exc: ApprovalKernelError) -> Err:
        """Build an Err carrying the exception's structured attributes."""
        details = {
            k: (str(v) if v is not None and not isinstance(v, (int, bool)) else v)
            for k, v in vars(exc).items()
            if not k.startswith("_")
        }
        return cls(
            kind=exc.code,
            message=str(exc),
            retryable=exc.retryable,
            details=details,
        )


Result = Union[Ok[T], Err]

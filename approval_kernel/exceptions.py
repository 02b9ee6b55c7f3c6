"""
Typed Exception Hierarchy for the Approval Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Approval callers (HTTP handlers, batch jobs, the services facade) must react
to failures precisely: a validation failure is fixed by the caller and
retried, a business-rule failure is explained to the user, a system failure
is retried as-is.  Parsing message strings to tell these apart is fragile.

Every exception therefore:
  1. Has its own TYPE (catch by type, not by message)
  2. Has a CODE class attribute (machine-readable, API-safe)
  3. Declares whether it is RETRYABLE without changing the request
  4. Carries structured DATA as attributes (document_id, actor_id, ...)

Example - WRONG:
    try:
        processor.approve(document_id, actor_id)
    except Exception as e:
        if "not your turn" in str(e):
            ...

Example - RIGHT:
    try:
        processor.approve(document_id, actor_id)
    except NotYourTurnError as e:
        respond(code=e.code, level=e.current_level)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    ApprovalKernelError (base)
    |
    +-- ValidationError
    |
    +-- NotFoundError
    |   +-- DocumentNotFoundError
    |   +-- FormNotFoundError
    |   +-- LineNotFoundError
    |   +-- DelegationNotFoundError
    |   +-- SettingNotFoundError
    |
    +-- BusinessRuleError
    |   +-- NotYourTurnError
    |   +-- AlreadyProcessedError
    |   +-- DocumentNotActionableError
    |   +-- ActorNotPermittedError
    |   +-- FormInactiveError
    |   +-- InvalidDelegationError
    |   +-- LineResolutionError
    |       +-- NoApprovalLineConfiguredError
    |       +-- InvalidLineDefinitionError
    |       +-- EmptyApprovalLineError
    |
    +-- ImmutabilityError
        +-- ImmutabilityViolationError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category     | Code                         | When Raised
-------------|------------------------------|------------------------------------
Validation   | VALIDATION_ERROR             | Malformed or missing input
-------------|------------------------------|------------------------------------
Not found    | DOCUMENT_NOT_FOUND           | Document ID doesn't exist
             | FORM_NOT_FOUND               | Form ID / code doesn't exist
             | LINE_NOT_FOUND               | Slot doesn't belong to document
             | DELEGATION_NOT_FOUND         | Delegation ID doesn't exist
             | SETTING_NOT_FOUND            | Setting ID doesn't exist
-------------|------------------------------|------------------------------------
Business     | NOT_YOUR_TURN                | Actor holds no actionable slot
             | ALREADY_PROCESSED            | Actor's slot already actioned
             | DOCUMENT_NOT_ACTIONABLE      | Document status forbids action
             | ACTOR_NOT_PERMITTED          | Only requester / admin may act
             | FORM_INACTIVE                | Form deactivated
             | INVALID_DELEGATION           | Bad delegation window / target
             | NO_APPROVAL_LINE_CONFIGURED  | No setting matches the document
             | INVALID_LINE_DEFINITION      | Explicit line is malformed
             | EMPTY_APPROVAL_LINE          | Line resolved to zero slots
-------------|------------------------------|------------------------------------
Immutability | IMMUTABILITY_VIOLATION       | Mutating append-only records

===============================================================================
DESIGN DECISIONS
===============================================================================

1. WHY INHERIT FROM Exception (not ValueError, etc.)?
   Domain exceptions should be catchable as a group.  Inheriting from
   built-in types mixes domain errors with programming errors.

2. WHY code AND retryable AS CLASS ATTRIBUTES?
   They are static per exception type, usable without instantiation, and
   let the services facade translate any kernel error into a tagged result
   without a lookup table.

3. WHY IS NOT-FOUND SEPARATE FROM AUTHORIZATION?
   Masking existence from unauthorized callers is the identity layer's job.
   The kernel reports what it actually observed.

===============================================================================
"""


class ApprovalKernelError(Exception):
    """
    Base exception for all approval kernel errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "APPROVAL_KERNEL_ERROR"
    retryable: bool = False


# Validation


class ValidationError(ApprovalKernelError):
    """Input is malformed or missing; rejected before any mutation."""

    code: str = "VALIDATION_ERROR"

    def __init__(self, field: str, reason: str):
        self.field = field
        self.reason = reason
        super().__init__(f"Invalid {field}: {reason}")


# Not-found


class NotFoundError(ApprovalKernelError):
    """Base exception for missing entities."""

    code: str = "NOT_FOUND"


class DocumentNotFoundError(NotFoundError):
    """Document with given ID was not found."""

    code: str = "DOCUMENT_NOT_FOUND"

    def __init__(self, document_id: str):
        self.document_id = document_id
        super().__init__(f"Document not found: {document_id}")


class FormNotFoundError(NotFoundError):
    """Approval form was not found by ID or code."""

    code: str = "FORM_NOT_FOUND"

    def __init__(self, form_ref: str):
        self.form_ref = form_ref
        super().__init__(f"Approval form not found: {form_ref}")


class LineNotFoundError(NotFoundError):
    """Approval line slot was not found on the document."""

    code: str = "LINE_NOT_FOUND"

    def __init__(self, document_id: str, line_id: str):
        self.document_id = document_id
        self.line_id = line_id
        super().__init__(f"Line {line_id} not found on document {document_id}")


class DelegationNotFoundError(NotFoundError):
    """Delegation with given ID was not found."""

    code: str = "DELEGATION_NOT_FOUND"

    def __init__(self, delegation_id: str):
        self.delegation_id = delegation_id
        super().__init__(f"Delegation not found: {delegation_id}")


class SettingNotFoundError(NotFoundError):
    """Approval setting with given ID was not found."""

    code: str = "SETTING_NOT_FOUND"

    def __init__(self, setting_id: str):
        self.setting_id = setting_id
        super().__init__(f"Approval setting not found: {setting_id}")


# Business rules


class BusinessRuleError(ApprovalKernelError):
    """Base exception for violated approval rules."""

    code: str = "BUSINESS_RULE_VIOLATION"


class NotYourTurnError(BusinessRuleError):
    """Actor is not the effective approver of any pending slot at the level."""

    code: str = "NOT_YOUR_TURN"

    def __init__(self, document_id: str, actor_id: str, current_level: int):
        self.document_id = document_id
        self.actor_id = actor_id
        self.current_level = current_level
        super().__init__(
            f"Actor {actor_id} holds no pending slot at level {current_level} "
            f"of document {document_id}"
        )


class AlreadyProcessedError(BusinessRuleError):
    """The actor's slot has already been actioned."""

    code: str = "ALREADY_PROCESSED"

    def __init__(self, document_id: str, actor_id: str, slot_status: str):
        self.document_id = document_id
        self.actor_id = actor_id
        self.slot_status = slot_status
        super().__init__(
            f"Slot of actor {actor_id} on document {document_id} "
            f"is already {slot_status}"
        )


class DocumentNotActionableError(BusinessRuleError):
    """Document status does not allow the requested action."""

    code: str = "DOCUMENT_NOT_ACTIONABLE"

    def __init__(self, document_id: str, status: str, action: str):
        self.document_id = document_id
        self.status = status
        self.action = action
        super().__init__(
            f"Cannot {action} document {document_id} in status {status}"
        )


class ActorNotPermittedError(BusinessRuleError):
    """Actor lacks the role required by the action (requester/admin)."""

    code: str = "ACTOR_NOT_PERMITTED"

    def __init__(self, document_id: str, actor_id: str, action: str, required: str):
        self.document_id = document_id
        self.actor_id = actor_id
        self.action = action
        self.required = required
        super().__init__(
            f"Actor {actor_id} may not {action} document {document_id}: "
            f"only the {required} may"
        )


class FormInactiveError(BusinessRuleError):
    """Approval form is deactivated and cannot receive new documents."""

    code: str = "FORM_INACTIVE"

    def __init__(self, form_code: str):
        self.form_code = form_code
        super().__init__(f"Approval form {form_code} is inactive")


class InvalidDelegationError(BusinessRuleError):
    """Delegation definition violates its constraints."""

    code: str = "INVALID_DELEGATION"

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Invalid delegation: {reason}")


class LineResolutionError(BusinessRuleError):
    """Base exception for approval line construction failures."""

    code: str = "LINE_RESOLUTION_ERROR"


class NoApprovalLineConfiguredError(LineResolutionError):
    """No active approval setting matches the document context."""

    code: str = "NO_APPROVAL_LINE_CONFIGURED"

    def __init__(self, form_code: str, department_id: str | None = None):
        self.form_code = form_code
        self.department_id = department_id
        super().__init__(
            f"No approval line configured for form {form_code}"
            + (f" and department {department_id}" if department_id else "")
        )


class InvalidLineDefinitionError(LineResolutionError):
    """Explicit or expanded approval line is malformed."""

    code: str = "INVALID_LINE_DEFINITION"

    def __init__(self, reason: str, level: int | None = None):
        self.reason = reason
        self.level = level
        prefix = f"level {level}: " if level is not None else ""
        super().__init__(f"Invalid approval line: {prefix}{reason}")


class EmptyApprovalLineError(LineResolutionError):
    """Approval line resolved to zero actionable slots."""

    code: str = "EMPTY_APPROVAL_LINE"

    def __init__(self, form_code: str):
        self.form_code = form_code
        super().__init__(f"Approval line for form {form_code} is empty")


# Immutability


class ImmutabilityError(ApprovalKernelError):
    """Base exception for append-only violations."""

    code: str = "IMMUTABILITY_ERROR"


class ImmutabilityViolationError(ImmutabilityError):
    """Attempted to modify or delete an append-only record."""

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(f"{entity_type} {entity_id}: {reason}")

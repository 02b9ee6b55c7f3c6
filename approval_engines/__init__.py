"""
Pure approval engines.

Line construction, setting and delegation selection, level progression and
document number formatting.  No I/O: every input is passed in as plain data
and every function is deterministic.
"""

from approval_engines.delegation import effective_approver, select_delegation
from approval_engines.line_rules import (
    LineValidation,
    LineViolation,
    build_line,
    expand_template,
    select_setting,
)
from approval_engines.numbering import (
    format_document_no,
    sequence_name,
)
from approval_engines.progression import (
    Progression,
    SlotState,
    evaluate_decision,
    find_actionable_slot,
    level_satisfied,
)

__all__ = [
    "LineValidation",
    "LineViolation",
    "Progression",
    "SlotState",
    "build_line",
    "effective_approver",
    "evaluate_decision",
    "expand_template",
    "find_actionable_slot",
    "format_document_no",
    "level_satisfied",
    "select_delegation",
    "select_setting",
    "sequence_name",
]

"""
Approval Kernel - document sign-off workflow engine.

An append-only approval engine with:
- Ordered approval lines (sequential and parallel levels)
- Delegation-aware approver resolution
- Atomic per-document state transitions
- Full history of every applied action
- Collision-free document numbering per form and month
"""

__version__ = "0.1.0"

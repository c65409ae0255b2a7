"""Audit trail for administrative group actions.

This package provides:
- AuditEvent: Pydantic model for structured audit events
- create_audit_event / audit_event_from_event: builders
- write_audit_event: structured log writer
"""

from infrastructure.audit.models import (
    AuditEvent,
    audit_event_from_event,
    create_audit_event,
    write_audit_event,
)

__all__ = [
    "AuditEvent",
    "audit_event_from_event",
    "create_audit_event",
    "write_audit_event",
]

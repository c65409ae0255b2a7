"""Audit event models for administrative group actions.

Audit events are flat, type-safe records written as structured log lines:
one line per group approval, decline, close, creation or compensation.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

from infrastructure.events.models import Event
from infrastructure.logging import get_module_logger

logger = get_module_logger()


class AuditEvent(BaseModel):
    """Structured audit event.

    Attributes:
        correlation_id: Id shared by every log line of the operation.
        timestamp: ISO 8601 timestamp (UTC).
        action: Operation type (e.g. 'group_approved').
        resource_type: Type of resource affected ('group', 'membership').
        resource_id: Primary resource identifier.
        actor_id: User who initiated the action.
        result: 'success' or 'failure'.
        error_type: Error category when result == 'failure'.
        error_message: Error description when result == 'failure'.
        audit_meta_*: Operation-specific fields, flattened.
    """

    correlation_id: str = Field(..., description="Operation correlation id")
    timestamp: str = Field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat(),
        description="ISO 8601 timestamp (UTC)",
    )
    action: str = Field(..., description="Operation type (snake_case)")
    resource_type: str = Field(..., description="Type of resource affected")
    resource_id: str = Field(..., description="Primary resource identifier")
    actor_id: str = Field(..., description="User who initiated the action")
    result: str = Field(
        ...,
        description="Operation result: 'success' or 'failure'",
        pattern="^(success|failure)$",
    )
    error_type: Optional[str] = Field(default=None)
    error_message: Optional[str] = Field(default=None)

    model_config = ConfigDict(extra="allow")

    def to_log_payload(self) -> Dict[str, Any]:
        return self.model_dump(exclude_none=True)


def create_audit_event(
    correlation_id: str,
    action: str,
    resource_type: str,
    resource_id: str,
    actor_id: str,
    result: str = "success",
    error_type: Optional[str] = None,
    error_message: Optional[str] = None,
    metadata: Optional[Dict[str, Any]] = None,
) -> AuditEvent:
    """Build an audit event, flattening ``metadata`` under ``audit_meta_``.

    Raises:
        ValueError: If result is not 'success' or 'failure'.
    """
    if result not in ("success", "failure"):
        raise ValueError(f"result must be 'success' or 'failure', got: {result}")

    event_data: Dict[str, Any] = {
        "correlation_id": correlation_id,
        "action": action,
        "resource_type": resource_type,
        "resource_id": resource_id,
        "actor_id": actor_id,
        "result": result,
    }
    if error_type is not None:
        event_data["error_type"] = error_type
    if error_message is not None:
        event_data["error_message"] = error_message

    for key, value in (metadata or {}).items():
        event_data[f"audit_meta_{key}"] = str(value) if value is not None else None

    return AuditEvent(**event_data)


def audit_event_from_event(event: Event) -> AuditEvent:
    """Convert a published domain event into an audit event.

    The action is the last segment of the event type and the resource is
    taken from ``group_id`` / ``membership_id`` in the metadata.
    """
    metadata = dict(event.metadata)
    prefix = event.event_type.split(".")[0]
    if "membership_id" in metadata and prefix != "group":
        resource_type, resource_id = "membership", metadata.pop("membership_id")
    else:
        resource_type, resource_id = "group", metadata.pop("group_id", "unknown")

    success = metadata.pop("success", True)
    return create_audit_event(
        correlation_id=str(event.correlation_id),
        action=event.event_type.replace(".", "_"),
        resource_type=resource_type,
        resource_id=str(resource_id),
        actor_id=event.actor_id or "unknown",
        result="success" if success else "failure",
        error_message=metadata.pop("error", None),
        metadata=metadata,
    )


def write_audit_event(audit_event: AuditEvent) -> None:
    """Write the audit event as a structured log line."""
    logger.info("audit_event", **audit_event.to_log_payload())

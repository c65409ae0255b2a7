"""Event models for the in-process event bus."""

from dataclasses import dataclass, field, asdict
from datetime import datetime, timezone
from typing import Any, Dict
from uuid import UUID, uuid4


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Event:
    """Record of something that happened in a domain service.

    Services publish events after a transition has been committed; delivery
    of notifications and audit notes is driven by subscribers.
    """

    event_type: str
    """The type of event (e.g., 'group.join_request.created')."""

    timestamp: datetime = field(default_factory=_utcnow)
    """When the event occurred."""

    correlation_id: UUID = field(default_factory=uuid4)
    """Unique ID to track related events across the system."""

    actor_id: str = ""
    """User who triggered the event."""

    metadata: Dict[str, Any] = field(default_factory=dict)
    """Custom metadata for this event type."""

    def to_dict(self) -> Dict[str, Any]:
        """Serialize event to a dictionary with ISO timestamp and string UUID."""
        data = asdict(self)
        data["timestamp"] = self.timestamp.isoformat()
        data["correlation_id"] = str(self.correlation_id)
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Event":
        """Deserialize event from dictionary.

        Raises:
            ValueError: If required fields are missing or invalid.
        """
        try:
            if isinstance(data.get("timestamp"), str):
                timestamp = datetime.fromisoformat(data["timestamp"])
            else:
                timestamp = data.get("timestamp") or _utcnow()

            correlation_id = data.get("correlation_id")
            if isinstance(correlation_id, str):
                correlation_id = UUID(correlation_id)
            elif correlation_id is None:
                correlation_id = uuid4()

            return cls(
                event_type=data["event_type"],
                timestamp=timestamp,
                correlation_id=correlation_id,
                actor_id=data.get("actor_id", ""),
                metadata=data.get("metadata", {}),
            )
        except (KeyError, ValueError) as e:
            raise ValueError(f"Invalid event data: {e}") from e

    def __hash__(self) -> int:
        return hash((self.correlation_id, self.timestamp))

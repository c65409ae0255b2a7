"""Input schemas for group operations (pydantic, validated before any remote call)."""

import re
from typing import Annotated, Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

_TWELVE_HOUR = re.compile(r"^(\d{1,2}):(\d{2})\s*(AM|PM)$", re.IGNORECASE)
_TWENTY_FOUR_HOUR = re.compile(r"^(\d{1,2}):(\d{2})$")


def normalize_meeting_time(value: str) -> str:
    """Convert ``7:30 PM`` to ``19:30:00`` and ``07:30`` to ``07:30:00``.

    Values in any other shape are returned unchanged.
    """
    value = value.strip()
    match = _TWELVE_HOUR.match(value)
    if match:
        hour = int(match.group(1))
        minute = match.group(2)
        meridiem = match.group(3).upper()
        if meridiem == "PM" and hour < 12:
            hour += 12
        if meridiem == "AM" and hour == 12:
            hour = 0
        return f"{hour:02d}:{minute}:00"
    match = _TWENTY_FOUR_HOUR.match(value)
    if match:
        return f"{int(match.group(1)):02d}:{match.group(2)}:00"
    return value


class _GroupFields(BaseModel):
    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    description: Optional[str] = None
    meeting_day: Optional[str] = None
    meeting_time: Optional[str] = None
    location: Optional[Any] = None
    whatsapp_link: Optional[str] = None
    image_url: Optional[str] = None

    @field_validator("meeting_time")
    @classmethod
    def _normalize_meeting_time(cls, v: Optional[str]) -> Optional[str]:
        if v is None or v == "":
            return v
        return normalize_meeting_time(v)


class CreateGroupRequest(_GroupFields):
    """Group request submitted by a church member."""

    title: Annotated[str, Field(..., min_length=1, description="Group title")]
    church_id: Annotated[str, Field(..., min_length=1, description="Owning church")]
    service_id: Annotated[
        str, Field(..., min_length=1, description="Church service the group meets at")
    ]

    def to_row(self, creator_id: str) -> Dict[str, Any]:
        row = self.model_dump(exclude_none=True)
        row["created_by"] = creator_id
        row["status"] = "pending"
        return row


class UpdateGroupRequest(_GroupFields):
    """Descriptive fields a leader may edit.

    Status, church, service and creator are not part of this schema and are
    rejected as unknown fields.
    """

    title: Optional[Annotated[str, Field(min_length=1)]] = None

    def to_update(self) -> Dict[str, Any]:
        return self.model_dump(exclude_unset=True)

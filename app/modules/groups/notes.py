"""Append-only membership notes.

Automatic notes (status, role and journey changes) are written by event
subscribers after the transition has been committed. They are best-effort:
a failed write is logged and never turns the transition into a failure.
Manual notes are written on behalf of a leader or admin and are gated like
any other mutation.
"""

from typing import Any, List, Optional

from infrastructure.events import Event
from infrastructure.logging import get_module_logger
from infrastructure.operations import (
    OperationResult,
    classify_exception,
    classify_store_error,
)
from infrastructure.persistence import DataStore
from modules.groups.domain import AuditNote, AuditNoteType
from modules.groups.domain import errors
from modules.groups.events import events as group_events
from modules.permissions import AuthorizationEngine, Denied, denial_to_result

logger = get_module_logger()

NOTES_TABLE = "group_membership_notes"
MEMBERSHIPS_TABLE = "group_memberships"


class AuditNoteRecorder:
    """Writes and lists notes in the ``group_membership_notes`` table."""

    def __init__(self, store: DataStore, engine: AuthorizationEngine):
        self.store = store
        self.engine = engine

    async def record(self, note: AuditNote) -> Optional[AuditNote]:
        """Best-effort write; returns the stored note or ``None``."""
        try:
            response = await self.store.insert(NOTES_TABLE, note.to_row())
        except Exception as e:  # pylint: disable=broad-except
            logger.error(
                "audit_note_write_failed",
                membership_id=note.membership_id,
                note_type=note.note_type.value,
                error=str(e),
            )
            return None
        if response.error:
            logger.error(
                "audit_note_write_failed",
                membership_id=note.membership_id,
                note_type=note.note_type.value,
                error_code=response.error.code,
                error=response.error.message,
            )
            return None
        logger.info(
            "audit_note_recorded",
            membership_id=note.membership_id,
            note_type=note.note_type.value,
        )
        return AuditNote.from_row(response.data)

    async def record_status_change(
        self,
        membership_id: str,
        group_id: str,
        user_id: str,
        created_by: str,
        previous_status: Optional[str],
        new_status: str,
        reason: Optional[str] = None,
        note_text: Optional[str] = None,
    ) -> Optional[AuditNote]:
        return await self.record(
            AuditNote(
                membership_id=membership_id,
                group_id=group_id,
                user_id=user_id,
                note_type=AuditNoteType.STATUS_CHANGE,
                created_by=created_by,
                previous_status=previous_status,
                new_status=new_status,
                reason=reason,
                note_text=note_text,
            )
        )

    async def record_role_change(
        self,
        membership_id: str,
        group_id: str,
        user_id: str,
        created_by: str,
        previous_role: str,
        new_role: str,
        note_text: Optional[str] = None,
    ) -> Optional[AuditNote]:
        return await self.record(
            AuditNote(
                membership_id=membership_id,
                group_id=group_id,
                user_id=user_id,
                note_type=AuditNoteType.ROLE_CHANGE,
                created_by=created_by,
                previous_role=previous_role,
                new_role=new_role,
                note_text=note_text,
            )
        )

    async def record_journey_change(
        self,
        membership_id: str,
        group_id: str,
        user_id: str,
        created_by: str,
        previous_journey_status: Optional[int],
        new_journey_status: int,
        note_text: Optional[str] = None,
    ) -> Optional[AuditNote]:
        return await self.record(
            AuditNote(
                membership_id=membership_id,
                group_id=group_id,
                user_id=user_id,
                note_type=AuditNoteType.JOURNEY_CHANGE,
                created_by=created_by,
                previous_journey_status=previous_journey_status,
                new_journey_status=new_journey_status,
                note_text=note_text,
            )
        )

    async def record_from_event(self, event: Event) -> Optional[AuditNote]:
        """Turn a committed membership event into the matching note."""
        meta = event.metadata
        membership_id = meta.get("membership_id")
        if not membership_id:
            return None
        actor = event.actor_id or meta.get("user_id", "")
        common = {
            "membership_id": membership_id,
            "group_id": meta["group_id"],
            "user_id": meta["user_id"],
            "created_by": actor,
        }

        if event.event_type == group_events.MEMBER_ROLE_CHANGED:
            return await self.record_role_change(
                previous_role=meta["previous_role"],
                new_role=meta["new_role"],
                note_text=meta.get("note_text"),
                **common,
            )
        if event.event_type == group_events.JOURNEY_STATUS_CHANGED:
            return await self.record_journey_change(
                previous_journey_status=meta.get("previous_journey_status"),
                new_journey_status=meta["new_journey_status"],
                note_text=meta.get("note_text"),
                **common,
            )
        if event.event_type in group_events.MEMBERSHIP_STATUS_EVENTS:
            # A brand new join request has no history worth a note.
            if meta.get("previous_status") is None:
                return None
            return await self.record_status_change(
                previous_status=meta.get("previous_status"),
                new_status=meta["new_status"],
                reason=meta.get("reason"),
                note_text=meta.get("note_text"),
                **common,
            )
        return None

    async def create_manual_note(
        self, membership_id: str, note_text: str, created_by: str
    ) -> OperationResult:
        """Free-text note on a membership, written by a leader or admin."""
        if not note_text or not note_text.strip():
            return OperationResult.validation_error("Note text is required")
        try:
            membership = await self._get_membership(membership_id)
            if not isinstance(membership, dict):
                return membership

            check = await self.engine.can_manage_group_membership(
                membership["group_id"], membership["user_id"]
            )
            if isinstance(check, Denied):
                return denial_to_result(check)

            note = AuditNote(
                membership_id=membership_id,
                group_id=membership["group_id"],
                user_id=membership["user_id"],
                note_type=AuditNoteType.MANUAL,
                created_by=created_by,
                note_text=note_text.strip(),
            )
            response = await self.store.insert(NOTES_TABLE, note.to_row())
            if response.error:
                return classify_store_error(response.error)
            logger.info("manual_note_created", membership_id=membership_id)
            return OperationResult.success(data=AuditNote.from_row(response.data))
        except Exception as e:  # pylint: disable=broad-except
            logger.exception("manual_note_failed", membership_id=membership_id)
            return classify_exception(e)

    async def list_membership_notes(self, membership_id: str) -> OperationResult:
        """Notes for one membership, newest first."""
        try:
            membership = await self._get_membership(membership_id)
            if not isinstance(membership, dict):
                return membership
            check = await self.engine.can_manage_group_membership(
                membership["group_id"], membership["user_id"]
            )
            if isinstance(check, Denied):
                return denial_to_result(check)
            return await self._list({"membership_id": membership_id})
        except Exception as e:  # pylint: disable=broad-except
            logger.exception("list_notes_failed", membership_id=membership_id)
            return classify_exception(e)

    async def list_group_notes(self, group_id: str) -> OperationResult:
        """Notes for every membership of a group, newest first."""
        try:
            check = await self.engine.can_manage_group_membership(group_id)
            if isinstance(check, Denied):
                return denial_to_result(check)
            return await self._list({"group_id": group_id})
        except Exception as e:  # pylint: disable=broad-except
            logger.exception("list_notes_failed", group_id=group_id)
            return classify_exception(e)

    async def _list(self, filters: dict) -> OperationResult:
        response = await self.store.select(
            NOTES_TABLE, filters, order_by="created_at", descending=True
        )
        if response.error:
            return classify_store_error(response.error)
        notes: List[AuditNote] = [AuditNote.from_row(row) for row in response.data]
        return OperationResult.success(data=notes)

    async def _get_membership(self, membership_id: str) -> Any:
        response = await self.store.select_one(
            MEMBERSHIPS_TABLE, {"id": membership_id}
        )
        if response.error:
            return classify_store_error(
                response.error, errors.MEMBERSHIP_NOT_FOUND
            )
        if response.data is None:
            return OperationResult.not_found(errors.MEMBERSHIP_NOT_FOUND)
        return response.data

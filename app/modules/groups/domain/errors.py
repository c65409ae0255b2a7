"""User-facing error messages for the groups module."""

GROUP_NOT_FOUND = "Group not found"
GROUP_NOT_PENDING = "Group is not pending approval"
GROUP_NOT_APPROVED_FOR_CLOSE = "Only approved groups can be closed"
GROUP_NOT_ACCEPTING = "Group is not accepting new members"

JOIN_REQUEST_NOT_FOUND = "Join request not found"
JOIN_REQUEST_NOT_PENDING = "Request is not pending"
JOIN_REQUEST_NOT_OWNED = "Only the requester can cancel a join request"

MEMBERSHIP_NOT_FOUND = "Membership not found"
NOT_A_MEMBER = "User is not a member of this group"
ALREADY_MEMBER = "User is already a member of this group"
ALREADY_PENDING = "User already has a pending request for this group"
ALREADY_LEADER = "User is already a leader"
NOT_A_LEADER = "User is not a leader"
LAST_LEADER_DEMOTE = "Cannot demote the last leader of the group"
LAST_LEADER_REMOVE = "Cannot remove the last leader of the group"
LAST_LEADER_LEAVE = (
    "Cannot leave group as the last leader. "
    "Promote another member to leader first."
)

ONLY_LEADERS_PROMOTE = "Only group leaders can promote members"
ONLY_LEADERS_DEMOTE = "Only group leaders can demote members"
ONLY_LEADERS_REMOVE = "Only group leaders can remove members"
ONLY_LEADERS_UPDATE = "Only group leaders can update group details"

SERVICE_NOT_IN_CHURCH = "Selected service is not part of the chosen church"
LEADERSHIP_CREATION_FAILED = "Failed to create group leadership"

JOURNEY_STATUS_INVALID = "Journey status must be a positive whole number"
JOURNEY_NOT_EDITABLE = "Journey status can only be set on pending or active memberships"
NO_CHANGES = "No changes provided"

"""Groups module feature settings."""

from pydantic import Field

from infrastructure.configuration.base import FeatureSettings


class GroupsFeatureSettings(FeatureSettings):
    """Configuration for the groups feature.

    Environment Variables:
        GROUPS_ACTIVATE_CREATOR_ON_APPROVAL: Activate the creator's pending
            leader membership when the group is approved
        GROUPS_BATCH_MAX_RETRIES: Retries per item for batch admin actions
        GROUPS_REQUIRE_SESSION_MATCH: Reject group creation when the creator
            id differs from the signed-in user

    Example:
        ```python
        from infrastructure.services import get_settings

        settings = get_settings()

        if settings.groups.activate_creator_on_approval:
            # Promote the pending leader row...
        ```
    """

    activate_creator_on_approval: bool = Field(
        default=False,
        alias="GROUPS_ACTIVATE_CREATOR_ON_APPROVAL",
        description="Activate the creator's leader membership on approval",
    )
    batch_max_retries: int = Field(
        default=1,
        alias="GROUPS_BATCH_MAX_RETRIES",
        description="Retries per item for batch approve/decline",
        ge=0,
    )
    require_session_match: bool = Field(
        default=True,
        alias="GROUPS_REQUIRE_SESSION_MATCH",
        description="Creator id must equal the session user id",
    )

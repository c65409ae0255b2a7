"""Feature settings __init__ - exports all feature settings."""

from infrastructure.configuration.features.groups import GroupsFeatureSettings

__all__ = [
    "GroupsFeatureSettings",
]

"""User profile helpers."""

import logging

from finance_agent.config import get_config
from finance_agent.models.profile import UserProfile

logger = logging.getLogger(__name__)


def get_profile(user_id: str | None = None) -> UserProfile | None:
    """
    Get the stored profile for a user.

    Args:
        user_id: User to look up (defaults to config)

    Returns:
        UserProfile or None if not set
    """
    from finance_agent.storage.database import get_database

    user_id = user_id or get_config().user_id
    if not user_id:
        return None

    return get_database().get_profile(user_id)


def update_profile(user_id: str | None = None, **fields: str | None) -> UserProfile:
    """
    Update the user's name or email.

    Args:
        user_id: User to update (defaults to config)
        **fields: first_name, last_name and/or email

    Returns:
        The updated profile
    """
    from finance_agent.storage.database import get_database

    user_id = user_id or get_config().user_id
    if not user_id:
        raise ValueError("No user configured. Run: finance-agent config set user_id <id>")

    profile = get_database().update_profile(user_id, **fields)
    logger.info(f"Profile updated for {user_id}: {', '.join(sorted(fields))}")
    return profile


def get_profile_summary(user_id: str | None = None) -> str:
    """
    Get a text summary of the user's profile.

    Args:
        user_id: User to summarise (defaults to config)

    Returns:
        Profile summary string
    """
    profile = get_profile(user_id)

    if not profile:
        return "No user profile configured."

    lines = [
        f"Name: {profile.display_name}",
        f"Email: {profile.email or 'Not set'}",
        f"User ID: {profile.id}",
        f"Last updated: {profile.updated_at:%Y-%m-%d %H:%M}",
    ]
    return "\n".join(lines)

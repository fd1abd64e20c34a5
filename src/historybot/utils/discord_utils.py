"""Discord utility functions."""

from __future__ import annotations

from contextlib import suppress

import discord


def get_display_name(user: discord.User | discord.Member | None) -> str:
    """Get user's display name with proper fallback hierarchy.

    Priority: server nickname > global display name > username

    Args:
        user: Discord user or member object

    Returns:
        The display name to use for this user
    """
    if user is None:
        return "Unknown User"

    if getattr(user, "nick", None):
        return user.nick

    if getattr(user, "global_name", None):
        return user.global_name

    return getattr(user, "name", None) or "Unknown User"


def embed_text(embed: discord.Embed) -> str | None:
    """Flatten an embed's title, description and fields into one line."""
    parts: list[str] = []
    if getattr(embed, "title", None):
        parts.append(embed.title)
    if getattr(embed, "description", None):
        parts.append(embed.description)
    for field in getattr(embed, "fields", None) or []:
        parts.append(f"{field.name}: {field.value}")
    return " ".join(parts) if parts else None


async def resolve_channel(client: discord.Client, channel_id: int):
    """Return a channel from cache, falling back to an API fetch; None if unavailable."""
    channel = client.get_channel(channel_id)
    if channel is not None:
        return channel
    with suppress(discord.NotFound, discord.Forbidden, discord.HTTPException, discord.InvalidData):
        return await client.fetch_channel(channel_id)
    return None

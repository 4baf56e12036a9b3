# backend/app/domain/reactions.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Optional


@dataclass(frozen=True)
class EmojiReaction:
    emoji: str
    count: int
    user_reacted: bool


def toggle_decision(stored_emoji: Optional[str], submitted_emoji: str) -> str:
    """
    What a reaction submit does to the tenant's single reaction on a post:
      nothing stored        -> "added"
      same emoji stored     -> "removed"
      different emoji       -> "changed"
    """
    if stored_emoji is None:
        return "added"
    if stored_emoji == submitted_emoji:
        return "removed"
    return "changed"


def compute_reaction_aggregates(
    rows: Optional[Iterable[Mapping[str, Any]]],
    current_tenant_id: Optional[int] = None,
) -> tuple[dict[int, list[EmojiReaction]], dict[int, str]]:
    """
    Groups reaction rows ({post_id, emoji, tenant_id}) by post then emoji.

    Returns (reaction_map, user_reaction_map):
      reaction_map[post_id]      -> [EmojiReaction] in first-seen emoji order
      user_reaction_map[post_id] -> emoji the current tenant used on that post
    Rows without post_id or emoji are ignored.
    """
    grouped: dict[int, dict[str, list]] = {}
    user_reaction_map: dict[int, str] = {}

    for row in rows or ():
        post_id = row.get("post_id")
        emoji = row.get("emoji")
        if not post_id or not emoji:
            continue

        is_user = current_tenant_id is not None and row.get("tenant_id") == current_tenant_id
        per_post = grouped.setdefault(post_id, {})
        entry = per_post.setdefault(emoji, [0, False])
        entry[0] += 1
        entry[1] = entry[1] or is_user

        if is_user:
            user_reaction_map[post_id] = emoji

    reaction_map = {
        post_id: [EmojiReaction(emoji=e, count=c, user_reacted=u) for e, (c, u) in per_post.items()]
        for post_id, per_post in grouped.items()
    }
    return reaction_map, user_reaction_map

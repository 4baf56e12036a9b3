# backend/tests/test_reactions.py
from __future__ import annotations

from app.domain.reactions import compute_reaction_aggregates, toggle_decision


def test_toggle_decision_add_remove_change():
    assert toggle_decision(None, "👍") == "added"
    assert toggle_decision("👍", "👍") == "removed"
    assert toggle_decision("👍", "❤️") == "changed"


def test_aggregates_group_by_post_and_emoji_in_first_seen_order():
    rows = [
        {"post_id": 1, "emoji": "👍", "tenant_id": 10},
        {"post_id": 1, "emoji": "❤️", "tenant_id": 11},
        {"post_id": 1, "emoji": "👍", "tenant_id": 12},
        {"post_id": 2, "emoji": "😂", "tenant_id": 10},
    ]
    reaction_map, user_map = compute_reaction_aggregates(rows, current_tenant_id=12)

    p1 = reaction_map[1]
    assert [r.emoji for r in p1] == ["👍", "❤️"]
    assert p1[0].count == 2 and p1[0].user_reacted is True
    assert p1[1].count == 1 and p1[1].user_reacted is False

    assert reaction_map[2][0].user_reacted is False
    assert user_map == {1: "👍"}


def test_aggregates_ignore_incomplete_rows_and_empty_input():
    rows = [{"post_id": None, "emoji": "👍", "tenant_id": 1}, {"post_id": 3, "emoji": "", "tenant_id": 1}]
    assert compute_reaction_aggregates(rows) == ({}, {})
    assert compute_reaction_aggregates(None) == ({}, {})


def test_aggregates_without_current_tenant_marks_nothing():
    reaction_map, user_map = compute_reaction_aggregates([{"post_id": 5, "emoji": "👍", "tenant_id": 1}])
    assert reaction_map[5][0].user_reacted is False
    assert user_map == {}

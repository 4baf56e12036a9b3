# backend/tests/test_poll_votes.py
from __future__ import annotations

from datetime import timedelta

import pytest
from sqlalchemy import select

from app.domain.errors import ActionError
from app.models import Poll, PollOption
from app.services.poll_service import run_poll_schedule, validate_ballot


def _create_poll(api, headers, w, **overrides) -> dict:
    body = {
        "building_id": w.building_id,
        "type": "single_choice",
        "title": "Paint the hallway?",
        "options": [{"label": "Blue"}, {"label": "Green"}],
        "rule": "plurality",
    }
    body.update(overrides)
    r = api.post("/api/polls", json=body, headers=headers(w.client_slug, w.manager_email))
    assert r.status_code == 200, r.text
    poll = r.json()
    r = api.post(f"/api/polls/{poll['id']}/activate", headers=headers(w.client_slug, w.manager_email))
    assert r.status_code == 200, r.text
    assert r.json()["status"] == "active"
    return r.json()


def test_tenant_votes_once_and_results_count_it(api, headers, make_world):
    w = make_world(tenants=3)
    poll = _create_poll(api, headers, w)
    blue, green = [o["id"] for o in poll["options"]]

    for email, choice in zip(w.tenant_emails, (blue, blue, green)):
        r = api.post(
            f"/api/polls/{poll['id']}/vote",
            json={"choice_option_ids": [choice]},
            headers=headers(w.client_slug, email, "tenant"),
        )
        assert r.status_code == 200, r.text
        assert r.json()["status"] == "cast"

    again = api.post(
        f"/api/polls/{poll['id']}/vote",
        json={"choice_option_ids": [green]},
        headers=headers(w.client_slug, w.tenant_emails[0], "tenant"),
    )
    assert again.status_code == 409
    assert again.json()["success"] is False

    res = api.get(f"/api/polls/{poll['id']}/results", headers=headers(w.client_slug, w.manager_email)).json()
    assert res["ballots"] == 3
    assert res["values"] == {str(blue): 2.0, str(green): 1.0}
    assert res["winners"] == [str(blue)]
    assert res["decided"] is True


def test_changeable_poll_allows_revote_and_revoke(api, headers, make_world):
    w = make_world(tenants=1)
    poll = _create_poll(api, headers, w, allow_change_until_deadline=True)
    blue, green = [o["id"] for o in poll["options"]]
    h = headers(w.client_slug, w.tenant_emails[0], "tenant")

    assert api.post(f"/api/polls/{poll['id']}/vote", json={"choice_option_ids": [blue]}, headers=h).status_code == 200
    assert api.post(f"/api/polls/{poll['id']}/vote", json={"choice_option_ids": [green]}, headers=h).status_code == 200

    r = api.delete(f"/api/polls/{poll['id']}/vote", headers=h)
    assert r.status_code == 200
    assert r.json()["status"] == "revoked"

    res = api.get(f"/api/polls/{poll['id']}/results", headers=headers(w.client_slug, w.manager_email)).json()
    assert res["ballots"] == 0


def test_ballot_outside_poll_options_is_rejected(api, headers, make_world):
    w = make_world(tenants=1)
    poll = _create_poll(api, headers, w)
    r = api.post(
        f"/api/polls/{poll['id']}/vote",
        json={"choice_option_ids": [999999]},
        headers=headers(w.client_slug, w.tenant_emails[0], "tenant"),
    )
    assert r.status_code == 400
    assert "outside this poll" in r.json()["error"]


def test_create_requires_rule_parameters(api, headers, make_world):
    w = make_world(tenants=0)
    r = api.post(
        "/api/polls",
        json={
            "building_id": w.building_id,
            "type": "multiple_choice",
            "title": "Pick amenities",
            "options": [{"label": "Gym"}, {"label": "Sauna"}],
            "rule": "threshold",
        },
        headers=headers(w.client_slug, w.manager_email),
    )
    assert r.status_code == 422
    assert r.json()["success"] is False


def _poll(db, w, **kw) -> Poll:
    p = Poll(client_id=w.client_id, building_id=w.building_id, title="p", **kw)
    db.add(p)
    db.flush()
    for i, label in enumerate(("a", "b", "c")):
        db.add(PollOption(poll_id=p.id, label=label, sort_order=i))
    db.flush()
    db.refresh(p)
    return p


def test_validate_ballot_rules(db, make_world):
    w = make_world(tenants=0)
    multi = _poll(db, w, type="multiple_choice", max_choices=2, allow_abstain=False)
    ids = [o.id for o in multi.options]

    assert validate_ballot(multi, {"choice_option_ids": ids[:2]})["choice_option_ids"] == ids[:2]
    with pytest.raises(ActionError):
        validate_ballot(multi, {"choice_option_ids": ids})
    with pytest.raises(ActionError):
        validate_ballot(multi, {"choice_option_ids": [ids[0], ids[0]]})
    with pytest.raises(ActionError):
        validate_ballot(multi, {"abstain": True})
    with pytest.raises(ActionError):
        validate_ballot(multi, {"choice_option_ids": ids[:1], "comment": "hi"})

    ranked = _poll(db, w, type="ranked_choice")
    rids = [o.id for o in ranked.options]
    with pytest.raises(ActionError):
        validate_ballot(ranked, {"ranks": [{"option_id": rids[0], "rank": 1}, {"option_id": rids[1], "rank": 1}]})
    db.rollback()


def test_poll_schedule_starts_and_closes(db, make_world, now):
    w = make_world(tenants=0)
    starting = _poll(db, w, type="yes_no", status="scheduled", starts_at=now - timedelta(minutes=1))
    ending = _poll(db, w, type="yes_no", status="active", starts_at=now - timedelta(days=2), ends_at=now - timedelta(seconds=1))
    future = _poll(db, w, type="yes_no", status="scheduled", starts_at=now + timedelta(hours=1))
    db.commit()

    out = run_poll_schedule(db, now=now)
    db.commit()

    assert starting.id in out["activated"]
    assert ending.id in out["closed"]
    assert future.id not in out["activated"]

    statuses = dict(db.execute(select(Poll.id, Poll.status).where(Poll.id.in_([starting.id, ending.id, future.id]))).all())
    assert statuses == {starting.id: "active", ending.id: "closed", future.id: "scheduled"}

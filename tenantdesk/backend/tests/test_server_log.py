# backend/tests/test_server_log.py
from __future__ import annotations

import json
import logging
import uuid

import pytest
from sqlalchemy import select

from app.domain.errors import ActionError, ConflictError
from app.domain.server_log import track_action
from app.logging_config import JsonFormatter, TextFormatter, job_context
from app.models import Client, ServerLog


def _rows(db, action: str) -> list[ServerLog]:
    return list(db.scalars(select(ServerLog).where(ServerLog.action == action)).all())


def test_success_row_is_committed_with_the_body(db):
    action = f"renameClient-{uuid.uuid4().hex[:6]}"
    slug = f"ok-{uuid.uuid4().hex[:8]}"
    with track_action(db, action, payload={"slug": slug}) as extra:
        db.add(Client(slug=slug, name="Fine"))
        extra["note"] = "added"

    db.expire_all()
    assert db.scalar(select(Client).where(Client.slug == slug)) is not None
    [row] = _rows(db, action)
    assert row.status == "success"
    assert row.payload == {"slug": slug, "note": "added"}


def test_body_failure_rolls_back_and_logs(db):
    action = f"failingAction-{uuid.uuid4().hex[:6]}"
    slug = f"gone-{uuid.uuid4().hex[:8]}"
    with pytest.raises(ActionError):
        with track_action(db, action):
            db.add(Client(slug=slug, name="Never"))
            raise ActionError("nope")

    assert db.scalar(select(Client).where(Client.slug == slug)) is None
    [row] = _rows(db, action)
    assert (row.status, row.error) == ("fail", "nope")


def test_failing_commit_becomes_a_conflict_and_is_logged(db, make_world):
    w = make_world(tenants=0)
    action = f"duplicateSlug-{uuid.uuid4().hex[:6]}"

    # nothing is flushed until the success row commits
    with pytest.raises(ConflictError) as err:
        with track_action(db, action, client_id=w.client_id):
            db.add(Client(slug=w.client_slug, name="Duplicate"))

    assert err.value.status_code == 409
    statuses = [r.status for r in _rows(db, action)]
    assert statuses == ["fail"]
    assert len(db.scalars(select(Client).where(Client.slug == w.client_slug)).all()) == 1


def _record(msg: str, **extra) -> logging.LogRecord:
    record = logging.LogRecord("tenantdesk.jobs", logging.INFO, __file__, 1, msg, None, None)
    for k, v in extra.items():
        setattr(record, k, v)
    return record


def test_formatters_carry_job_and_extras():
    with job_context("check-subscriptions"):
        line = JsonFormatter().format(_record("job finished", client_id=7))
        text = TextFormatter().format(_record("job finished", action="checkSubscriptions"))

    payload = json.loads(line)
    assert payload["message"] == "job finished"
    assert payload["job"] == "check-subscriptions"
    assert payload["client_id"] == 7
    assert "user_id" not in payload

    assert text.endswith("job finished job=check-subscriptions action=checkSubscriptions")

    outside = json.loads(JsonFormatter().format(_record("idle")))
    assert "job" not in outside

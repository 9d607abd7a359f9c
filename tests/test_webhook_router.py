"""
Tests for webhook routing.
"""

import json

from sqlalchemy.orm import Session

from sentinel.models.db import Job, Repo
from sentinel.queue.job_queue import WEBHOOKS
from sentinel.webhooks.router import WebhookOutcome, route_webhook
from sentinel.webhooks.signature import compute_signature

SECRET = "test-secret"


def _body(repo: Repo, **extra) -> bytes:
    payload = {
        "installation": {"id": repo.installation_id},
        "repository": {"id": repo.github_id, "full_name": repo.full_name},
        **extra,
    }
    return json.dumps(payload).encode()


def _route(session: Session, body: bytes, event="push", delivery="d-1", signature=None):
    if signature is None:
        signature = compute_signature(body, SECRET)
    return route_webhook(session, body, signature, event, delivery, SECRET)


class TestRouteWebhook:
    def test_accepts_tracked_repo(self, db_session: Session, sample_repo: Repo):
        """A signed push for a tracked repo is queued under its delivery id."""
        body = _body(sample_repo, ref="refs/heads/main", commits=[])

        decision = _route(db_session, body)

        assert decision.outcome == WebhookOutcome.ACCEPTED
        assert decision.job_id == "d-1"
        job = db_session.get(Job, "d-1")
        assert job.queue == WEBHOOKS
        assert job.name == "push"
        assert job.payload["repo_id"] == str(sample_repo.id)
        assert job.payload["installation_id"] == sample_repo.installation_id
        assert job.payload["payload"]["ref"] == "refs/heads/main"
        assert "received_at" in job.payload

    def test_bad_signature_rejected_before_anything_else(
        self, db_session: Session, sample_repo: Repo
    ):
        """Signature is checked first, even for unsupported events."""
        decision = _route(db_session, b"not json", event="ping", signature="sha256=00")

        assert decision.outcome == WebhookOutcome.REJECTED_AUTH
        assert db_session.query(Job).count() == 0

    def test_unsupported_event_skipped(self, db_session: Session, sample_repo: Repo):
        decision = _route(db_session, _body(sample_repo), event="issues")

        assert decision.outcome == WebhookOutcome.SKIPPED
        assert decision.reason == "unsupported event"

    def test_missing_delivery_id_malformed(self, db_session: Session, sample_repo: Repo):
        decision = _route(db_session, _body(sample_repo), delivery=None)

        assert decision.outcome == WebhookOutcome.MALFORMED

    def test_invalid_json_malformed(self, db_session: Session, sample_repo: Repo):
        decision = _route(db_session, b"{not json")

        assert decision.outcome == WebhookOutcome.MALFORMED
        assert decision.reason == "invalid json"

    def test_non_object_json_malformed(self, db_session: Session, sample_repo: Repo):
        decision = _route(db_session, b"[1, 2, 3]")

        assert decision.outcome == WebhookOutcome.MALFORMED

    def test_org_level_event_skipped(self, db_session: Session, sample_repo: Repo):
        body = json.dumps({"installation": {"id": 1001}}).encode()

        decision = _route(db_session, body)

        assert decision.outcome == WebhookOutcome.SKIPPED
        assert decision.reason == "not repo event"

    def test_non_object_installation_or_repository_skipped(
        self, db_session: Session, sample_repo: Repo
    ):
        """Scalar installation or repository fields are skipped, not crashed on."""
        for payload in (
            {"installation": 1001, "repository": {"id": sample_repo.github_id}},
            {"installation": {"id": 1001}, "repository": "acme/storefront"},
        ):
            decision = _route(db_session, json.dumps(payload).encode())

            assert decision.outcome == WebhookOutcome.SKIPPED
            assert decision.reason == "not repo event"
        assert db_session.query(Job).count() == 0

    def test_untracked_repo_skipped(self, db_session: Session, sample_repo: Repo):
        body = json.dumps(
            {"installation": {"id": 1001}, "repository": {"id": 999999}}
        ).encode()

        decision = _route(db_session, body)

        assert decision.outcome == WebhookOutcome.SKIPPED
        assert decision.reason == "untracked repo"

    def test_repo_from_other_installation_skipped(
        self, db_session: Session, sample_repo: Repo
    ):
        body = json.dumps(
            {"installation": {"id": 42}, "repository": {"id": sample_repo.github_id}}
        ).encode()

        decision = _route(db_session, body)

        assert decision.reason == "untracked repo"

    def test_inactive_repo_skipped(self, db_session: Session, inactive_repo: Repo):
        decision = _route(db_session, _body(inactive_repo))

        assert decision.outcome == WebhookOutcome.SKIPPED
        assert decision.reason == "repo inactive"

    def test_redelivery_does_not_duplicate(self, db_session: Session, sample_repo: Repo):
        """The same delivery id twice yields one job."""
        body = _body(sample_repo, commits=[])

        first = _route(db_session, body, delivery="dup-1")
        second = _route(db_session, body, delivery="dup-1")

        assert first.job_id == second.job_id == "dup-1"
        assert db_session.query(Job).filter(Job.id == "dup-1").count() == 1

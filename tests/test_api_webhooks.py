"""
Tests for the GitHub webhook endpoint.
"""

import json

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from sentinel.config import settings
from sentinel.models.db import Job, Repo
from sentinel.webhooks.signature import compute_signature

SECRET = "webhook-secret"


@pytest.fixture(autouse=True)
def webhook_secret(monkeypatch):
    monkeypatch.setattr(settings, "github_webhook_secret", SECRET)


def post(client: TestClient, body: bytes, event="push", delivery="d-1", signature=None):
    headers = {
        "Content-Type": "application/json",
        "X-GitHub-Event": event,
        "X-Hub-Signature-256": signature or compute_signature(body, SECRET),
    }
    if delivery is not None:
        headers["X-GitHub-Delivery"] = delivery
    return client.post("/webhooks/github", content=body, headers=headers)


def push_body(repo: Repo) -> bytes:
    return json.dumps(
        {
            "ref": "refs/heads/main",
            "installation": {"id": repo.installation_id},
            "repository": {"id": repo.github_id, "full_name": repo.full_name},
            "commits": [],
        }
    ).encode()


class TestGitHubWebhook:
    def test_queues_signed_delivery(self, api_client: TestClient, db_session: Session, sample_repo: Repo):
        response = post(api_client, push_body(sample_repo))

        assert response.status_code == 200
        assert response.json() == {"ok": True, "queued": "d-1"}
        assert db_session.get(Job, "d-1") is not None

    def test_redelivery_is_deduplicated(self, api_client: TestClient, db_session: Session, sample_repo: Repo):
        body = push_body(sample_repo)

        post(api_client, body)
        post(api_client, body)

        assert db_session.query(Job).count() == 1

    def test_bad_signature(self, api_client: TestClient, sample_repo: Repo):
        response = post(api_client, push_body(sample_repo), signature="sha256=" + "0" * 64)

        assert response.status_code == 401
        assert response.json()["detail"] == "Invalid signature"

    def test_missing_signature(self, api_client: TestClient, sample_repo: Repo):
        body = push_body(sample_repo)
        response = api_client.post(
            "/webhooks/github",
            content=body,
            headers={"X-GitHub-Event": "push", "X-GitHub-Delivery": "d-1"},
        )

        assert response.status_code == 401

    def test_unsupported_event_is_skipped(self, api_client: TestClient, sample_repo: Repo):
        response = post(api_client, push_body(sample_repo), event="issues")

        assert response.status_code == 200
        assert response.json() == {"ok": True, "skipped": "unsupported event"}

    def test_malformed_body(self, api_client: TestClient):
        response = post(api_client, b"{not json")

        assert response.status_code == 400

    def test_missing_delivery_id(self, api_client: TestClient, sample_repo: Repo):
        response = post(api_client, push_body(sample_repo), delivery=None)

        assert response.status_code == 400

    def test_unconfigured_secret_rejects(self, api_client: TestClient, sample_repo: Repo, monkeypatch):
        monkeypatch.setattr(settings, "github_webhook_secret", "")

        response = post(api_client, push_body(sample_repo))

        assert response.status_code == 401

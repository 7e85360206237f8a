"""Tests for the HTTP operations controller."""

import base64

import pytest
from litestar.testing import TestClient

from assetvault.access import RoleAccessController
from assetvault.app_factory import build_principals, create_app
from assetvault.config import AuthConfig, PrincipalTokenConfig, Settings
from assetvault.metadata import InMemoryMetadataRegistry
from assetvault.storage import MemoryBackend
from assetvault.store import AssetStore

ALICE = {"Authorization": "Bearer alice-token"}
BOB = {"Authorization": "Bearer bob-token"}


@pytest.fixture
def settings():
    return Settings(
        auth=AuthConfig(
            tokens=[
                PrincipalTokenConfig(token="alice-token", principal="alice", roles=["contributor"]),
                PrincipalTokenConfig(token="bob-token", principal="bob", roles=["viewer"]),
            ]
        )
    )


@pytest.fixture
def client(settings):
    store = AssetStore(MemoryBackend(), RoleAccessController(), InMemoryMetadataRegistry())
    app = create_app(settings=settings, store=store)
    with TestClient(app=app) as test_client:
        yield test_client


def test_build_principals():
    principals = build_principals(
        AuthConfig(tokens=[PrincipalTokenConfig(token="t", principal="p", roles=["admin"])])
    )
    assert principals["t"].id == "p"
    assert principals["t"].roles == frozenset({"admin"})


class TestOperationsController:
    def test_requires_bearer_token(self, client):
        response = client.post("/operations/list", json={})
        assert response.status_code == 401

        response = client.post("/operations/list", json={}, headers={"Authorization": "Bearer wrong"})
        assert response.status_code == 401

    def test_store_and_retrieve(self, client):
        response = client.post(
            "/operations/store",
            json={"content": "hello", "metadata": {"title": "Greeting"}},
            headers=ALICE,
        )
        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        asset_id = body["assetId"]

        response = client.post("/operations/retrieve", json={"assetId": asset_id}, headers=ALICE)
        assert response.status_code == 200
        body = response.json()
        assert body["contentEncoding"] == "base64"
        assert base64.b64decode(body["content"]) == b"hello"
        assert body["metadata"]["title"] == "Greeting"

    def test_interpreted_json_is_returned_as_data(self, client):
        asset_id = client.post(
            "/operations/store", json={"content": {"n": 1}}, headers=ALICE
        ).json()["assetId"]
        body = client.post(
            "/operations/retrieve", json={"assetId": asset_id, "interpret": True}, headers=ALICE
        ).json()
        assert body["data"] == {"n": 1}

    def test_error_kinds_map_to_statuses(self, client):
        asset_id = client.post("/operations/store", json={"content": "x"}, headers=ALICE).json()["assetId"]

        denied = client.post("/operations/retrieve", json={"assetId": asset_id}, headers=BOB)
        assert denied.status_code == 403
        assert denied.json()["errorKind"] == "access_denied"

        missing = client.post("/operations/retrieve", json={"assetId": "asset-nope"}, headers=ALICE)
        assert missing.status_code == 404

        invalid = client.post("/operations/store", json={"content": ""}, headers=ALICE)
        assert invalid.status_code == 422

        stale = client.post(
            "/operations/store",
            json={"content": "y", "options": {"assetId": asset_id, "expectedFingerprint": "0" * 64}},
            headers=ALICE,
        )
        assert stale.status_code == 409
        assert stale.json()["retryable"] is True

    def test_unknown_operation_is_bad_request(self, client):
        response = client.post("/operations/rename", json={}, headers=ALICE)
        assert response.status_code == 400
        assert response.json()["errorKind"] == "unsupported"

    def test_body_must_be_a_json_object(self, client):
        response = client.post(
            "/operations/list",
            content=b"{not json",
            headers={**ALICE, "Content-Type": "application/json"},
        )
        assert response.status_code == 422

        response = client.post("/operations/list", json=[1, 2], headers=ALICE)
        assert response.status_code == 422

    def test_empty_body_is_empty_params(self, client):
        response = client.post("/operations/list", headers=BOB)
        assert response.status_code == 200
        assert response.json()["assets"] == []

"""Tests for the upload and profile API routes."""

import time
from unittest.mock import MagicMock

import httpx
import jwt
import pytest
from fastapi.testclient import TestClient

from conftest import JWT_SECRET, make_http_client, status_chunk, stream_body, uploaded_filenames
from core.exceptions import ResourceNotFoundException
from main import create_app
from models.profile_model import Profile
from services.upload_sessions import UploadSessionManager


def _token(sub="user-1", **claims):
    payload = {"sub": sub, "aud": "authenticated", "email": "angler@example.com", **claims}
    return jwt.encode(payload, JWT_SECRET, algorithm="HS256")


def _auth(token=None, refresh_token=None):
    headers = {"Authorization": f"Bearer {token or _token()}"}
    if refresh_token:
        headers["x-lishka-user-refresh-token"] = refresh_token
    return headers


def _jpeg(name="catch.jpg"):
    return ("files", (name, b"\xff\xd8" + b"0" * 2048, "image/jpeg"))


class Backend:
    def __init__(self):
        self.requests = []
        self.stream_status = 200

    def __call__(self, request):
        self.requests.append(request)
        if request.url.path == "/image/classify":
            name = uploaded_filenames(request)[0]
            kind = "gear" if name.startswith("reel") else "fish"
            return httpx.Response(200, json={"data": {"type": kind, "confidence": 0.9}})
        if self.stream_status != 200:
            return httpx.Response(self.stream_status, text="error")
        return httpx.Response(200, content=stream_body(status_chunk(message="Saved")))


@pytest.fixture
def backend():
    return Backend()


@pytest.fixture
def profile_service():
    service = MagicMock()
    service.refresh_profile.return_value = Profile(id="user-1")
    return service


@pytest.fixture
def client(backend, profile_service):
    sessions = UploadSessionManager(http_client=make_http_client(backend), profile_service=profile_service)
    with TestClient(create_app(upload_sessions=sessions)) as test_client:
        yield test_client


class TestAuthentication:
    def test_missing_token(self, client):
        response = client.get("/uploads/state")

        assert response.status_code == 401
        assert response.json()["error"] == "UNAUTHORIZED"

    def test_invalid_token(self, client):
        response = client.get("/uploads/state", headers=_auth("not-a-jwt"))

        assert response.status_code == 401
        assert response.json()["error"] == "INVALID_TOKEN"

    def test_expired_token(self, client):
        token = _token(exp=int(time.time()) - 60)

        response = client.get("/uploads/state", headers=_auth(token))

        assert response.status_code == 401
        assert response.json()["error"] == "TOKEN_EXPIRED"

    def test_wrong_audience(self, client):
        token = jwt.encode({"sub": "user-1", "aud": "anon"}, JWT_SECRET, algorithm="HS256")

        response = client.get("/uploads/state", headers=_auth(token))

        assert response.status_code == 401

    def test_public_paths(self, client):
        assert client.get("/").status_code == 200
        health = client.get("/health")
        assert health.status_code == 200
        assert health.json()["active_upload_sessions"] == 0


class TestUploadRoutes:
    def test_initial_state(self, client):
        response = client.get("/uploads/state", headers=_auth())

        assert response.status_code == 200
        body = response.json()
        assert body["universal"]["state"] == "idle"
        assert body["queue_size"] == 0
        assert body["upload_error"] is None
        assert "X-Request-ID" in response.headers

    def test_single_upload(self, client, backend, profile_service):
        response = client.post("/uploads", files=[_jpeg()], headers=_auth(refresh_token="refresh-1"))

        assert response.status_code == 202
        body = response.json()
        assert body["universal"]["state"] == "completed"
        assert body["universal"]["data"]["data"]["message"] == "Saved"
        assert body["queue_size"] == 0
        assert body["gallery_photo_count"] == 0

        stream_request = backend.requests[-1]
        assert stream_request.url.path == "/user/universal-upload/stream"
        assert stream_request.headers["Authorization"].startswith("Bearer ")
        assert stream_request.headers["x-lishka-user-refresh-token"] == "refresh-1"
        profile_service.refresh_profile.assert_called_with("user-1")

    def test_batch_upload(self, client, backend):
        response = client.post(
            "/uploads",
            files=[_jpeg("reel.jpg"), _jpeg("bass.jpg"), _jpeg("trout.jpg")],
            headers=_auth(),
        )

        assert response.status_code == 202
        body = response.json()
        assert body["gear"]["state"] == "completed"
        assert body["photo"]["state"] == "completed"

        paths = [request.url.path for request in backend.requests]
        assert paths.count("/image/classify") == 3
        assert "/user/gear-items/stream" in paths
        assert "/user/gallery-photos/batch-stream" in paths

    def test_rejects_non_image(self, client, backend):
        response = client.post(
            "/uploads",
            files=[("files", ("notes.txt", b"hello", "text/plain"))],
            headers=_auth(),
        )

        assert response.status_code == 400
        assert response.json()["detail"]["error"] == "VALIDATION_ERROR"
        assert backend.requests == []

    def test_failed_upload_then_retry(self, client, backend):
        backend.stream_status = 500

        response = client.post("/uploads", files=[_jpeg()], headers=_auth())

        assert response.status_code == 502
        assert response.json()["detail"]["details"]["type"] == "upload"

        state = client.get("/uploads/state", headers=_auth()).json()
        assert state["universal"]["state"] == "failed"
        assert state["upload_error"]["retryable"] is True
        item_id = state["upload_queue"][0]["id"]
        assert state["upload_queue"][0]["filenames"] == ["catch.jpg"]

        backend.stream_status = 200
        retried = client.post(f"/uploads/{item_id}/retry", headers=_auth())

        assert retried.status_code == 200
        assert retried.json()["queue_size"] == 0
        assert retried.json()["upload_error"] is None

    def test_payload_too_large(self, client, backend):
        backend.stream_status = 413

        response = client.post("/uploads", files=[_jpeg()], headers=_auth())

        assert response.status_code == 413
        assert response.json()["detail"]["details"]["retryable"] is False

    def test_retry_unknown_item(self, client):
        response = client.post("/uploads/missing/retry", headers=_auth())

        assert response.status_code == 404

    def test_cancel_and_clear(self, client, backend):
        backend.stream_status = 500
        client.post("/uploads", files=[_jpeg("a.jpg")], headers=_auth())
        client.post("/uploads", files=[_jpeg("b.jpg")], headers=_auth())
        queue = client.get("/uploads/state", headers=_auth()).json()["upload_queue"]
        assert len(queue) == 2

        cancelled = client.delete(f"/uploads/{queue[0]['id']}", headers=_auth())
        assert cancelled.status_code == 200
        assert cancelled.json()["queue_size"] == 1
        assert client.delete(f"/uploads/{queue[0]['id']}", headers=_auth()).status_code == 404

        cleared = client.delete("/uploads/queue", headers=_auth())
        assert cleared.json()["queue_size"] == 0

        dismissed = client.delete("/uploads/error", headers=_auth())
        assert dismissed.json()["upload_error"] is None

    def test_dismiss_message(self, client):
        client.post("/uploads", files=[_jpeg()], headers=_auth())

        response = client.delete("/uploads/message", headers=_auth())

        assert response.status_code == 200
        assert response.json()["show_uploaded_info_msg"] is False

    def test_sessions_are_per_user(self, client, backend):
        backend.stream_status = 500
        client.post("/uploads", files=[_jpeg()], headers=_auth(_token("user-1")))

        other = client.get("/uploads/state", headers=_auth(_token("user-2"))).json()

        assert other["queue_size"] == 0
        assert client.get("/health").json()["active_upload_sessions"] == 2

    def test_end_session(self, client, backend):
        backend.stream_status = 500
        client.post("/uploads", files=[_jpeg()], headers=_auth())

        assert client.delete("/uploads/session", headers=_auth()).status_code == 204

        assert client.get("/uploads/state", headers=_auth()).json()["queue_size"] == 0


class TestProfileRoute:
    def test_get_profile(self, client, profile_service):
        response = client.get("/profile", headers=_auth())

        assert response.status_code == 200
        assert response.json()["id"] == "user-1"
        profile_service.refresh_profile.assert_called_once_with("user-1")

    def test_profile_not_found(self, client, profile_service):
        profile_service.refresh_profile.side_effect = ResourceNotFoundException("Profile", "user-1")

        response = client.get("/profile", headers=_auth())

        assert response.status_code == 404
        assert response.json()["detail"]["error"] == "RESOURCE_NOT_FOUND"

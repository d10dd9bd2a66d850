"""Shared test fixtures."""

import json

import httpx
import pytest

from core.config import Settings, get_settings

BACKEND_URL = "http://backend.test"
JWT_SECRET = "test-jwt-secret-with-enough-length-for-hs256"


@pytest.fixture(autouse=True)
def _clear_environment(monkeypatch):
    """Clear environment variables that affect settings."""
    env_vars_to_clear = [
        "ENVIRONMENT",
        "DEBUG",
        "SUPABASE_URL",
        "SUPABASE_ANON_KEY",
        "SUPABASE_SERVICE_ROLE_KEY",
        "SUPABASE_JWT_SECRET",
        "LISHKA_BACKEND_URL",
        "CLASSIFY_PATH",
        "PROFILES_TABLE",
        "REQUEST_TIMEOUT",
        "STREAM_TIMEOUT",
        "CORS_ORIGINS",
        "MAX_FILE_SIZE",
        "MAX_RETRY_ATTEMPTS",
        "UPLOAD_QUEUE_SIZE",
        "LOG_LEVEL",
        "LOG_FILE",
    ]
    for var in env_vars_to_clear:
        monkeypatch.delenv(var, raising=False)

    # Timers fire immediately unless a test says otherwise
    for var in ["UPLOAD_CLEANUP_DELAY", "UPLOAD_MESSAGE_DELAY", "UPLOAD_AUTO_HIDE_DELAY", "UPLOAD_RETRY_DELAY"]:
        monkeypatch.setenv(var, "0")
    monkeypatch.setenv("LISHKA_BACKEND_URL", BACKEND_URL)
    monkeypatch.setenv("SUPABASE_JWT_SECRET", JWT_SECRET)

    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def settings():
    return get_settings()


def make_settings(monkeypatch, **env):
    """Build a fresh Settings object with extra environment overrides."""
    for key, value in env.items():
        monkeypatch.setenv(key, str(value))
    get_settings.cache_clear()
    return Settings()


def make_http_client(handler):
    """AsyncClient whose requests are answered by ``handler``."""
    return httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url=BACKEND_URL)


def status_chunk(analyzing="completed", uploading="completed", saved="completed", message="Saved", **extra):
    return {"data": {"message": message, "analyzing": analyzing, "uploading": uploading, "saved": saved, **extra}}


def stream_body(*chunks):
    """Newline-delimited JSON body; strings are written as-is."""
    lines = [chunk if isinstance(chunk, str) else json.dumps(chunk) for chunk in chunks]
    return ("\n".join(lines) + "\n").encode()


def uploaded_filenames(request):
    """Filenames of the multipart ``file`` fields in a captured request."""
    names = []
    for part in request.content.split(b'name="file"; filename="')[1:]:
        names.append(part.split(b'"', 1)[0].decode())
    return names

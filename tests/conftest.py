"""Shared fixtures: a scripted LLM provider and a throwaway app per test."""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from fabric_server.config import Settings
from fabric_server.main import create_app
from tests.fakes import FakeProvider


@pytest.fixture
def fake_provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        ai_provider="gemini",
        gemini_api_key="test-gemini-key",
        resend_api_key="re_test_key_123456",
        sender_email="advisers@fabric.example",
        base_dir=str(tmp_path),
    )


@pytest.fixture
def data_dir(tmp_path) -> str:
    return str(tmp_path / "data_folder")


@pytest.fixture
def app(settings: Settings, fake_provider: FakeProvider):
    return create_app(settings, llm_provider=fake_provider)


@pytest.fixture
def client(app) -> TestClient:
    with TestClient(app, raise_server_exceptions=False) as test_client:
        yield test_client

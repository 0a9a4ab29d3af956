"""Pytest configuration and shared fixtures for BrandGuard API tests."""

import io
import json
import os
import sys
import tempfile
from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest

# Settings are read at import time, so the environment must be in place first
_TEST_DIR = tempfile.mkdtemp(prefix="brandguard-test-")
os.environ.update({
    "SERVICE_ENV": "test",
    "GEMINI_API_KEY": "test-key",
    "GEMINI_BACKOFF_MS": "0",
    "DATABASE_URL": f"sqlite:///{_TEST_DIR}/brandguard.db",
    "LOCAL_STORAGE_DIR": f"{_TEST_DIR}/storage",
    "SERVICE_BASE_URL": "http://testserver",
    "PUBLIC_APP_URL": "https://app.brandguard.test/",
    "ENABLE_INAPP_RATE_LIMIT": "false",
    "ENABLE_INAPP_AUTH": "false",
    "LOG_LEVEL": "WARNING",
})

# Add the api directory to Python path
api_dir = Path(__file__).parent
sys.path.insert(0, str(api_dir))

from fastapi.testclient import TestClient  # noqa: E402
from PIL import Image  # noqa: E402

from brandguard.core.rate_limiter import free_scan_quota  # noqa: E402
from brandguard.main import app  # noqa: E402
from brandguard.models.orm import Base  # noqa: E402
from brandguard.services.db import engine, SessionLocal  # noqa: E402


def gemini_text(text):
    """A generateContent response whose first candidate answers `text`."""
    return {
        "candidates": [{"content": {"role": "model", "parts": [{"text": text}]}, "finishReason": "STOP"}],
        "usageMetadata": {"promptTokenCount": 10, "candidatesTokenCount": 20},
    }


def gemini_json(payload):
    return gemini_text(json.dumps(payload))


class FakeGemini:
    """Stands in for `gemini.generate_content`, answering per task."""

    def __init__(self):
        self.replies = {"insight": gemini_text("Lead with the disclosure to build trust.")}
        self.mock = AsyncMock(side_effect=self._answer)

    def reply(self, task, payload=None, text=None, error=None, response=None):
        if error is not None:
            self.replies[task] = error
        elif response is not None:
            self.replies[task] = response
        elif text is not None:
            self.replies[task] = gemini_text(text)
        else:
            self.replies[task] = gemini_json(payload)

    def calls_for(self, task):
        return [c for c in self.mock.call_args_list if c.kwargs.get("task") == task]

    async def _answer(self, parts, **kwargs):
        task = kwargs.get("task", "generate")
        if task not in self.replies:
            raise AssertionError(f"Unexpected Gemini call for task {task!r}")
        reply = self.replies[task]
        if isinstance(reply, Exception):
            raise reply
        return reply


@pytest.fixture(autouse=True)
def reset_state():
    """Fresh tables and quota for every test."""
    Base.metadata.drop_all(engine)
    Base.metadata.create_all(engine)
    free_scan_quota.reset()
    yield
    free_scan_quota.reset()


@pytest.fixture
def client():
    """Create test client for FastAPI app."""
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def db():
    """Session on the test database; committed on exit."""
    session = SessionLocal()
    try:
        yield session
        session.commit()
    finally:
        session.close()


@pytest.fixture
def gemini():
    """Patch the Gemini client; configure answers with `gemini.reply(task, ...)`."""
    fake = FakeGemini()
    with patch("brandguard.services.gemini.generate_content", fake.mock):
        yield fake


@pytest.fixture
def workspace(client):
    response = client.post("/workspaces", json={"name": "Summer Sneaker Launch"})
    assert response.status_code == 201
    return response.json()


@pytest.fixture
def png_bytes():
    buf = io.BytesIO()
    Image.new("RGB", (8, 8), color=(16, 124, 16)).save(buf, format="PNG")
    return buf.getvalue()


@pytest.fixture
def passing_report():
    return {
        "overall_score": 95,
        "summary": "The post is fully compliant.",
        "checks": [
            {"name": "FTC Disclosure", "status": "pass", "details": "#ad is at the start of the caption."},
            {"name": "Brand Safety", "status": "pass", "details": "No unsafe language."},
            {"name": "Claim Accuracy", "status": "pass", "details": "Mentions made with 100% organic materials."},
        ],
    }


@pytest.fixture
def failing_report():
    return {
        "overall_score": 40,
        "summary": "The post is not compliant: the disclosure is missing.",
        "checks": [
            {"name": "FTC Disclosure", "status": "fail", "details": "No #ad or #sponsored found."},
            {"name": "Brand Safety", "status": "pass", "details": "No unsafe language."},
            {"name": "Claim Accuracy", "status": "warn", "details": "Claim is paraphrased."},
        ],
    }


@pytest.fixture
def multimodal_report():
    return {
        "overall_score": 72,
        "summary": "Mostly compliant; the product is hard to see.",
        "checks": [
            {"name": "FTC Disclosure", "status": "pass", "details": "#ad present.", "modality": "text"},
            {"name": "Brand Representation", "status": "warn", "details": "Product is cropped.", "modality": "visual"},
        ],
    }

"""
Pytest configuration for the client engine test suite.
"""

import pytest

from api.schemas import JobRequest, Material, TTSSetting
from fake_service import FakeJobService


@pytest.fixture
def service():
    return FakeJobService()


@pytest.fixture
def valid_draft():
    return JobRequest(
        script="Hello world\nSecond line",
        materials=[Material(path="https://example.com/a.jpg", duration_sec=3)],
        tts=TTSSetting(provider="azure_v1", voice="zh-TW-HsiaoChenNeural"),
    )

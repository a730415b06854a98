"""Pytest configuration and shared fixtures for towerinsight tests."""

import sys
from pathlib import Path

import pytest

project_root = Path(__file__).parent.parent
sys.path.append(str(project_root))


class FakeClock:
    """Manually advanced time source."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    """Fake clock injected into caches and rate limiters."""
    return FakeClock()


@pytest.fixture
def aws_credentials(monkeypatch):
    """Mocked AWS credentials so boto3 never touches a real account."""
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "testing")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "testing")
    monkeypatch.setenv("AWS_SECURITY_TOKEN", "testing")
    monkeypatch.setenv("AWS_SESSION_TOKEN", "testing")
    monkeypatch.setenv("AWS_DEFAULT_REGION", "us-east-1")
    monkeypatch.delenv("AWS_PROFILE", raising=False)


@pytest.fixture
def clean_model_env(monkeypatch):
    """Remove assistant model overrides from the environment."""
    for name in (
        "ASSISTANT_DEFAULT_MODEL",
        "ASSISTANT_MAX_TOKENS",
        "ASSISTANT_TEMPERATURE",
        "BEDROCK_MODEL_CLAUDE_3_5_HAIKU",
        "BEDROCK_MODEL_CLAUDE_3_7_SONNET",
        "BEDROCK_MODEL_CLAUDE_3_OPUS",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def tower_records():
    """Sample tower revenue records with a few dirty values."""
    return [
        {"tower_id": "T1", "region": "North", "revenue": 1200, "height": 45},
        {"tower_id": "T2", "region": "South", "revenue": "800", "height": 30},
        {"tower_id": "T3", "region": "North", "revenue": "$1,000.00", "height": 60},
        {"tower_id": "T4", "region": "East", "revenue": None, "height": "n/a"},
        {"tower_id": "T5", "region": "South", "revenue": 400, "height": 25},
    ]


@pytest.fixture
def distribution_records():
    """Values 0, 10, ..., 100."""
    return [{"value": v} for v in range(0, 101, 10)]

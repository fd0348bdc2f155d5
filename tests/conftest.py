"""Pytest configuration and fixtures for taskvoice-mcp tests."""

import json
import subprocess
from datetime import datetime
from unittest.mock import MagicMock, patch

import pytest

from taskvoice_mcp import InMemoryTaskStore, Settings, TaskContext, TaskModel

# Sunday 15 June 2025, 10:00 local time
FIXED_NOW = datetime(2025, 6, 15, 10, 0)


@pytest.fixture
def fixed_now():
    """Reference time for every date calculation in the tests."""
    return FIXED_NOW


@pytest.fixture
def sample_tasks():
    """Four tasks covering every status and priority."""
    return [
        TaskModel(id="1", title="Buy groceries", status="pending", priority="HIGH"),
        TaskModel(id="2", title="Call mom", status="pending", priority="MEDIUM"),
        TaskModel(id="3", title="Write report", status="in_progress", priority="LOW"),
        TaskModel(id="4", title="Pay bills", status="completed", priority="MEDIUM"),
    ]


@pytest.fixture
def context(sample_tasks):
    """Task context over the sample tasks at the fixed time."""
    return TaskContext(tasks=sample_tasks, now=FIXED_NOW)


@pytest.fixture
def empty_context():
    """Task context with no tasks at the fixed time."""
    return TaskContext(tasks=[], now=FIXED_NOW)


@pytest.fixture
def memory_store(sample_tasks):
    """In-memory store seeded with the sample tasks."""
    return InMemoryTaskStore(sample_tasks)


@pytest.fixture
def offline_settings():
    """Settings with LLM parsing switched off."""
    return Settings(llm_enabled=False)


@pytest.fixture
def taskwarrior_records():
    """Records as produced by `task export`."""
    return [
        {
            "id": 1,
            "uuid": "a1b2c3d4-e5f6-7890-abcd-ef1234567890",
            "description": "Buy groceries",
            "status": "pending",
            "priority": "H",
            "due": "20250616T090000Z",
            "entry": "20250610T080000Z",
        },
        {
            "id": 2,
            "uuid": "b2c3d4e5-f6a7-8901-bcde-f12345678901",
            "description": "Write report",
            "status": "pending",
            "start": "20250614T120000Z",
            "entry": "20250611T080000Z",
        },
        {
            "id": 0,
            "uuid": "c3d4e5f6-a7b8-9012-cdef-123456789012",
            "description": "Pay bills",
            "status": "completed",
            "priority": "L",
            "entry": "20250601T080000Z",
        },
    ]


@pytest.fixture
def mock_subprocess_success():
    """Mock subprocess.run to return successful task output."""
    with patch("subprocess.run") as mock_run:
        mock_run.return_value = MagicMock(returncode=0, stdout="", stderr="")
        yield mock_run


@pytest.fixture
def mock_subprocess_with_tasks(taskwarrior_records):
    """Mock subprocess.run to return the Taskwarrior export records."""
    with patch("subprocess.run") as mock_run:
        mock_run.return_value = MagicMock(returncode=0, stdout=json.dumps(taskwarrior_records), stderr="")
        yield mock_run


@pytest.fixture
def mock_subprocess_error():
    """Mock subprocess.run to simulate a Taskwarrior error."""
    with patch("subprocess.run") as mock_run:
        mock_run.return_value = MagicMock(returncode=1, stdout="", stderr="Task not found.")
        yield mock_run


@pytest.fixture
def mock_subprocess_timeout():
    """Mock subprocess.run to simulate a timeout."""
    with patch("subprocess.run") as mock_run:
        mock_run.side_effect = subprocess.TimeoutExpired(cmd="task", timeout=30)
        yield mock_run

"""Shared fixtures for pyfaas tests."""

import json
import tempfile
from pathlib import Path

import pytest

from pyfaas.models import RemoteFunctionRecord


@pytest.fixture
def temp_dir():
    """Create a temporary directory for testing."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def project_root(temp_dir):
    """Create an empty functions project."""
    (temp_dir / "functions").mkdir()
    return temp_dir


@pytest.fixture
def write_function(project_root):
    """Return a helper that writes a function folder into the project."""

    def _write(
        name,
        code="function lambda(input, callback) {}",
        description="A function",
        event="No Event",
        environment=None,
    ):
        folder = project_root / "functions" / name
        folder.mkdir(parents=True, exist_ok=True)
        config = {
            "name": name,
            "event": event,
            "description": description,
            "input": {"headers": [], "payload": {}},
            "environmentVariables": (
                environment if environment is not None else {"key": "value"}
            ),
        }
        (folder / "config.json").write_text(json.dumps(config), encoding="utf-8")
        (folder / "index.js").write_text(code, encoding="utf-8")
        return folder

    return _write


@pytest.fixture
def make_record():
    """Return a helper that builds remote records from API-shaped data."""

    def _make(
        name,
        uuid=None,
        code="function lambda(input, callback) {}",
        description="A function",
        state="Draft",
        environment=None,
        version=1,
        event_id=None,
        deployed_at=None,
    ):
        data = {
            "uuid": uuid or f"uuid-{name}",
            "name": name,
            "description": description,
            "state": state,
            "manifest": {
                "code": code,
                "environment": environment or {},
                "version": version,
            },
        }
        if event_id:
            data["eventId"] = event_id
        if deployed_at is not None:
            data["lastDeployment"] = {
                "uuid": "dep-1",
                "deploymentState": "successful",
                "createdAt": "2025-01-15T10:00:00.000Z",
                "deployedAt": deployed_at,
            }
        return RemoteFunctionRecord.from_api_response(data)

    return _make

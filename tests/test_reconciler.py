"""Tests for the reconciler."""

import asyncio
from unittest.mock import AsyncMock, Mock

import pytest

from pyfaas.api import FaasClient
from pyfaas.exceptions import ErrorKind, FunctionNotFoundError
from pyfaas.models import FunctionState, LocalFunctionDefinition
from pyfaas.project import LocalProject
from pyfaas.sync import (
    DeploymentRequest,
    NewFunction,
    OperationKind,
    OutcomeStatus,
    PullRequest,
    Reconciler,
    Unchanged,
    UpdatedFunction,
)


def local(name="greeter", code="// v1", description="A function", **kwargs):
    return LocalFunctionDefinition(
        name=name, description=description, code=code, **kwargs
    )


class TestCompare:
    """Tests for comparing one local definition with its remote record."""

    @pytest.fixture
    def reconciler(self, temp_dir):
        return Reconciler(Mock(spec=FaasClient), LocalProject(temp_dir))

    def test_new_function(self, reconciler):
        """Test that a function without remote record is new."""
        change = reconciler.compare(
            local(environment_variables={"key": "value"}), None
        )
        assert isinstance(change, NewFunction)
        assert change.body == {
            "name": "greeter",
            "description": "A function",
            "state": "Draft",
            "manifest": {"code": "// v1", "environment": {}, "version": -1},
        }

    def test_new_function_with_event(self, reconciler):
        """Test that the event id is only sent when set."""
        change = reconciler.compare(local(event_id="messaging_line_in_conversation"), None)
        assert change.body["eventId"] == "messaging_line_in_conversation"

    def test_identical_is_unchanged(self, reconciler, make_record):
        """Test that equal code and environment produce Unchanged."""
        remote = make_record("greeter", code="// v1", environment={"A": "1"})
        change = reconciler.compare(local(environment_variables={"A": "1"}), remote)
        assert change == Unchanged(name="greeter")

    def test_placeholder_environment_equals_empty(self, reconciler, make_record):
        """Test that the placeholder entry is not a difference."""
        remote = make_record("greeter", code="// v1", environment={})
        change = reconciler.compare(
            local(environment_variables={"key": "value"}), remote
        )
        assert isinstance(change, Unchanged)

    def test_description_only_is_unchanged(self, reconciler, make_record):
        """Test that a description difference alone does not update."""
        remote = make_record("greeter", code="// v1", description="Old")
        change = reconciler.compare(local(description="New"), remote)
        assert isinstance(change, Unchanged)

    def test_code_change_on_productive(self, reconciler, make_record):
        """Test a code change on a deployed function."""
        remote = make_record(
            "greeter", code="// v0", state="Productive", environment={"A": "1"}, version=7
        )
        change = reconciler.compare(
            local(code="// v1", environment_variables={"A": "1"}), remote
        )
        assert isinstance(change, UpdatedFunction)
        assert change.code_changed
        assert not change.env_changed
        assert change.state == FunctionState.MODIFIED
        assert change.manifest == {"version": 7, "code": "// v1"}
        assert change.meta == {"state": "Modified"}
        assert change.version == 7
        assert change.uuid == "uuid-greeter"

    def test_environment_change_on_draft(self, reconciler, make_record):
        """Test that a draft function stays a draft."""
        remote = make_record("greeter", code="// v1", environment={"A": "1"})
        change = reconciler.compare(
            local(environment_variables={"A": "2"}, description="New"), remote
        )
        assert isinstance(change, UpdatedFunction)
        assert change.env_changed
        assert not change.code_changed
        assert change.state == FunctionState.DRAFT
        assert change.manifest == {"version": 1, "environment": {"A": "2"}}
        assert change.meta == {"state": "Draft", "description": "New"}

    def test_compare_is_idempotent(self, reconciler, make_record):
        """Test that comparing twice gives the same result."""
        remote = make_record("greeter", code="// v0", state="Modified")
        first = reconciler.compare(local(), remote)
        second = reconciler.compare(local(), remote)
        assert first == second


class TestReconcile:
    """Tests for reconciling local folders with the platform."""

    @pytest.fixture
    def client(self):
        client = Mock(spec=FaasClient)
        client.list_by_names = AsyncMock(return_value=[])
        return client

    def test_new_changed_and_unchanged(
        self, client, project_root, write_function, make_record
    ):
        """Test a push of three functions with different remote state."""
        write_function("A", code="// a")
        write_function("B", code="// b2")
        write_function("C", code="// c")
        client.list_by_names.return_value = [
            make_record("B", code="// b1", state="Productive"),
            make_record("C", code="// c"),
        ]
        reconciler = Reconciler(client, LocalProject(project_root))

        report = asyncio.run(reconciler.reconcile(["A", "B", "C"]))

        assert [type(c) for c in report.changes] == [
            NewFunction,
            UpdatedFunction,
            Unchanged,
        ]
        assert report.changes[1].state == FunctionState.MODIFIED
        assert report.unchanged == [Unchanged(name="C")]
        assert report.failures == []
        client.list_by_names.assert_awaited_once_with(["A", "B", "C"])

    def test_unreadable_function_is_isolated(self, client, project_root, write_function):
        """Test that a missing folder fails only that function."""
        write_function("A")
        reconciler = Reconciler(client, LocalProject(project_root))

        report = asyncio.run(reconciler.reconcile(["A", "missing"]))

        assert len(report.changes) == 1
        assert isinstance(report.changes[0], NewFunction)
        assert len(report.failures) == 1
        failure = report.failures[0]
        assert failure.status == OutcomeStatus.FAILED
        assert failure.error_kind == ErrorKind.LOCAL_CONFIG
        assert failure.message.startswith("missing:")
        client.list_by_names.assert_awaited_once_with(["A"])

    def test_undecodable_code_is_isolated(
        self, client, project_root, write_function
    ):
        """Test that an index.js that is not UTF-8 fails only that function."""
        write_function("good")
        folder = write_function("bad")
        (folder / "index.js").write_bytes(b"\xff\xfe\x00bad")
        reconciler = Reconciler(client, LocalProject(project_root))

        report = asyncio.run(reconciler.reconcile(["good", "bad"]))

        assert [c.name for c in report.changes] == ["good"]
        assert isinstance(report.changes[0], NewFunction)
        assert [f.name for f in report.failures] == ["bad"]
        assert report.failures[0].error_kind == ErrorKind.LOCAL_CONFIG
        client.list_by_names.assert_awaited_once_with(["good"])

    def test_nothing_readable(self, client, project_root):
        """Test that no platform call is made without readable functions."""
        reconciler = Reconciler(client, LocalProject(project_root))
        report = asyncio.run(reconciler.reconcile(["missing"]))
        assert report.changes == []
        client.list_by_names.assert_not_awaited()


class TestResolveRemote:
    """Tests for resolving pull, deploy and undeploy targets."""

    @pytest.fixture
    def client(self):
        client = Mock(spec=FaasClient)
        client.list_by_names = AsyncMock(return_value=[])
        client.list_all = AsyncMock(return_value=[])
        return client

    def test_deploy_candidates(self, client, project_root, make_record):
        """Test that deploy candidates keep request order."""
        client.list_by_names.return_value = [make_record("b"), make_record("a")]
        reconciler = Reconciler(client, LocalProject(project_root))

        candidates = asyncio.run(
            reconciler.resolve_remote(OperationKind.DEPLOY, ["a", "b"])
        )

        assert [c.name for c in candidates] == ["a", "b"]
        assert all(isinstance(c, DeploymentRequest) for c in candidates)
        assert candidates[0].uuid == "uuid-a"
        assert candidates[0].kind == OperationKind.DEPLOY

    def test_missing_function_aborts(self, client, project_root, make_record):
        """Test that an unknown name raises before anything runs."""
        client.list_by_names.return_value = [make_record("a")]
        reconciler = Reconciler(client, LocalProject(project_root))

        with pytest.raises(FunctionNotFoundError) as exc_info:
            asyncio.run(reconciler.resolve_remote(OperationKind.UNDEPLOY, ["a", "x"]))

        assert exc_info.value.names == ["x"]
        assert "were not found on the platform" in exc_info.value.message

    def test_pull_all(self, client, project_root, make_record):
        """Test that pull --all lists every remote function."""
        client.list_all.return_value = [make_record("a"), make_record("b")]
        reconciler = Reconciler(client, LocalProject(project_root))

        candidates = asyncio.run(
            reconciler.resolve_remote(OperationKind.PULL, all_functions=True)
        )

        assert [c.name for c in candidates] == ["a", "b"]
        assert all(isinstance(c, PullRequest) for c in candidates)
        client.list_by_names.assert_not_awaited()

    def test_current_function_is_default(self, client, write_function, make_record):
        """Test that the function folder in the working directory is used."""
        folder = write_function("greeter")
        client.list_by_names.return_value = [make_record("greeter")]
        reconciler = Reconciler(client, LocalProject(folder))

        candidates = asyncio.run(reconciler.resolve_remote(OperationKind.DEPLOY))

        assert [c.name for c in candidates] == ["greeter"]
        client.list_by_names.assert_awaited_once_with(["greeter"])

    def test_push_is_rejected(self, client, project_root):
        """Test that push targets are not resolved here."""
        reconciler = Reconciler(client, LocalProject(project_root))
        with pytest.raises(ValueError):
            asyncio.run(reconciler.resolve_remote(OperationKind.PUSH, ["a"]))

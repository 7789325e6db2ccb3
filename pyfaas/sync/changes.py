"""Change sets, candidates and outcomes passed between sync components."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional, Union

from ..exceptions import ErrorKind, FaasError
from ..models import FunctionState, RemoteFunctionRecord


class OperationKind(str, Enum):
    """Commands the orchestrator can execute."""

    PUSH = "push"
    PULL = "pull"
    DEPLOY = "deploy"
    UNDEPLOY = "undeploy"


class OutcomeStatus(str, Enum):
    """Final status of one task."""

    SUCCEEDED = "succeeded"
    SKIPPED = "skipped"
    FAILED = "failed"


# =============================================================================
# Change sets (push)
# =============================================================================


@dataclass(frozen=True)
class NewFunction:
    """A local function without a remote record."""

    name: str
    body: dict[str, Any]
    """Create body; ``manifest.version`` is -1 (never deployed)"""

    kind = OperationKind.PUSH


@dataclass(frozen=True)
class UpdatedFunction:
    """A local function that differs from its remote record."""

    name: str
    uuid: str
    version: int
    """Remote manifest version the update is based on"""

    meta: dict[str, Any]
    """Partial metadata: the new state label and a changed description"""

    manifest: dict[str, Any]
    """Partial manifest: ``version`` plus only the changed code/environment"""

    code_changed: bool
    env_changed: bool
    state: FunctionState

    kind = OperationKind.PUSH


@dataclass(frozen=True)
class Unchanged:
    """A local function identical to its remote record."""

    name: str

    kind = OperationKind.PUSH


ChangeSet = Union[NewFunction, UpdatedFunction, Unchanged]


# =============================================================================
# Candidates for pull, deploy and undeploy
# =============================================================================


@dataclass(frozen=True)
class PullRequest:
    """A remote function to copy into the local project."""

    name: str
    record: RemoteFunctionRecord

    kind = OperationKind.PULL


@dataclass(frozen=True)
class DeploymentRequest:
    """A remote function to deploy or undeploy."""

    name: str
    uuid: str
    kind: OperationKind
    record: Optional[RemoteFunctionRecord] = None


Candidate = Union[NewFunction, UpdatedFunction, Unchanged, PullRequest, DeploymentRequest]


@dataclass(frozen=True)
class ConfirmedOperation:
    """A candidate together with the user's decision."""

    operation: Candidate
    approved: bool

    @property
    def name(self) -> str:
        return self.operation.name


@dataclass
class DeploymentTask:
    """A deploy or undeploy being watched until it settles."""

    function_name: str
    uuid: str
    kind: OperationKind
    started_at: datetime = field(default_factory=datetime.now)


# =============================================================================
# Outcomes
# =============================================================================


@dataclass(frozen=True)
class Outcome:
    """Result of one task, reported upward instead of raising."""

    name: str
    kind: OperationKind
    status: OutcomeStatus
    message: str = ""
    error_kind: Optional[ErrorKind] = None

    @property
    def ok(self) -> bool:
        return self.status != OutcomeStatus.FAILED

    @classmethod
    def succeeded(
        cls, name: str, kind: OperationKind, message: str = ""
    ) -> "Outcome":
        return cls(name, kind, OutcomeStatus.SUCCEEDED, message)

    @classmethod
    def skipped(
        cls,
        name: str,
        kind: OperationKind,
        message: str,
        error_kind: Optional[ErrorKind] = None,
    ) -> "Outcome":
        return cls(name, kind, OutcomeStatus.SKIPPED, message, error_kind)

    @classmethod
    def failed(
        cls, name: str, kind: OperationKind, message: str, error_kind: ErrorKind
    ) -> "Outcome":
        return cls(name, kind, OutcomeStatus.FAILED, message, error_kind)

    @classmethod
    def from_exception(
        cls, name: str, kind: OperationKind, error: Exception
    ) -> "Outcome":
        """Build a failed outcome naming the function and the error message."""
        if isinstance(error, FaasError):
            error_kind = error.kind
            detail = error.message
        else:
            error_kind = ErrorKind.TRANSPORT_FAILURE
            detail = str(error) or type(error).__name__
        return cls.failed(name, kind, f"{name}: {detail}", error_kind)

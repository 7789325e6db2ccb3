"""Data models for functions on the platform and in the local project."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from .utils import NEVER_DEPLOYED_VERSION


class FunctionState(str, Enum):
    """Lifecycle state of a function on the platform."""

    DRAFT = "Draft"
    """Never deployed or fully undeployed"""

    MODIFIED = "Modified"
    """Deployed, with changes that are not deployed yet"""

    PRODUCTIVE = "Productive"
    """Deployed and unchanged since"""

    @classmethod
    def parse(cls, value: Optional[str]) -> "FunctionState":
        """Parse a state string, treating unknown values as Draft."""
        try:
            return cls(value)
        except ValueError:
            return cls.DRAFT


@dataclass
class Manifest:
    """Code and runtime settings of one function version."""

    code: str = ""
    environment: dict[str, str] = field(default_factory=dict)
    version: int = NEVER_DEPLOYED_VERSION
    runtime: Optional[str] = None

    @classmethod
    def from_api_response(cls, data: Optional[dict[str, Any]]) -> "Manifest":
        data = data or {}
        environment = data.get("environment") or {}
        if isinstance(environment, list):
            # Older records store [{"key": ..., "value": ...}]
            environment = {
                e.get("key", ""): e.get("value", "") for e in environment if e
            }
        return cls(
            code=data.get("code") or "",
            environment=dict(environment),
            version=data.get("version", NEVER_DEPLOYED_VERSION),
            runtime=data.get("runtime"),
        )


@dataclass
class Deployment:
    """Last deployment of a function."""

    uuid: Optional[str] = None
    deployment_state: Optional[str] = None
    """One of deploying, redeploying, successful, failed"""

    created_at: Optional[str] = None
    deployed_at: Optional[str] = None
    """Set once the deployment is live on the platform"""

    @classmethod
    def from_api_response(cls, data: Optional[dict[str, Any]]) -> "Deployment":
        data = data or {}
        return cls(
            uuid=data.get("uuid"),
            deployment_state=data.get("deploymentState"),
            created_at=data.get("createdAt"),
            deployed_at=data.get("deployedAt"),
        )


@dataclass
class RemoteFunctionRecord:
    """A function as stored on the platform."""

    uuid: str
    name: str
    description: str = ""
    event_id: Optional[str] = None
    skills: list[str] = field(default_factory=list)
    state: FunctionState = FunctionState.DRAFT
    manifest: Manifest = field(default_factory=Manifest)
    last_deployment: Optional[Deployment] = None
    created_by: Optional[str] = None
    updated_by: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @property
    def is_deployed(self) -> bool:
        """True when the last deployment reached the platform."""
        return bool(self.last_deployment and self.last_deployment.deployed_at)

    @classmethod
    def from_api_response(cls, data: dict[str, Any]) -> "RemoteFunctionRecord":
        """Create a record from the platform's JSON representation.

        Args:
            data: Function object as returned by the API

        Returns:
            RemoteFunctionRecord instance
        """
        # Older API versions call the manifest "implementation"
        manifest_data = data.get("manifest") or data.get("implementation")
        last_deployment = data.get("lastDeployment")
        return cls(
            uuid=data.get("uuid", ""),
            name=data.get("name", ""),
            description=data.get("description") or "",
            event_id=data.get("eventId") or None,
            skills=list(data.get("skills") or []),
            state=FunctionState.parse(data.get("state")),
            manifest=Manifest.from_api_response(manifest_data),
            last_deployment=(
                Deployment.from_api_response(last_deployment)
                if last_deployment
                else None
            ),
            created_by=data.get("createdBy"),
            updated_by=data.get("updatedBy"),
            created_at=data.get("createdAt"),
            updated_at=data.get("updatedAt"),
        )

    @classmethod
    def list_from_api_response(cls, data: Any) -> list["RemoteFunctionRecord"]:
        """Parse a list response, accepting a bare list or a wrapped one."""
        if isinstance(data, dict):
            data = data.get("functions") or data.get("data") or []
        return [cls.from_api_response(item) for item in data or []]


@dataclass
class LocalFunctionDefinition:
    """A function as stored in the local project."""

    name: str
    description: str
    code: str
    event_id: Optional[str] = None
    environment_variables: dict[str, str] = field(default_factory=dict)


@dataclass
class DeploymentResponse:
    """Answer of the platform to a deploy or undeploy request."""

    message: str
    uuid: Optional[str] = None
    """Only present when the request was not started (e.g. already running)"""

    @property
    def in_progress(self) -> bool:
        return self.uuid is not None

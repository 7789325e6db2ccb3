"""Remote and local side effects of single sync operations."""

import logging

from ..api import FaasClient
from ..exceptions import FaasValidationError
from ..models import DeploymentResponse, LocalFunctionDefinition, RemoteFunctionRecord
from ..project import LocalProject
from .changes import NewFunction, OperationKind, UpdatedFunction

logger = logging.getLogger(__name__)


class FunctionOperations:
    """One method per kind of change the orchestrator can apply."""

    def __init__(self, client: FaasClient, project: LocalProject):
        """Initialize function operations.

        Args:
            client: Platform client
            project: Local project, written to by pull
        """
        self.client = client
        self.project = project

    async def create(self, change: NewFunction) -> RemoteFunctionRecord:
        """Create a function on the platform."""
        if not change.body.get("description"):
            raise FaasValidationError(
                "Function description can not be empty. "
                "Please add a description in the config.json"
            )
        logger.debug("Creating %s", change.name)
        return await self.client.create_function(change.body)

    async def update(self, change: UpdatedFunction) -> bool:
        """Submit the changed manifest fields and the new state label.

        Args:
            change: Update computed by the reconciler

        Returns:
            True if the platform applied anything, False if it reported
            both parts as unchanged
        """
        if "description" in change.meta and not change.meta["description"]:
            raise FaasValidationError(
                "Function description can not be empty. "
                "Please add a description in the config.json"
            )
        logger.debug("Updating %s (%s)", change.name, change.uuid)
        manifest_updated = await self.client.update_function_manifest(
            change.uuid, change.manifest
        )
        meta_updated = await self.client.update_function_meta(change.uuid, change.meta)
        return manifest_updated or meta_updated is not None

    def pull(self, record: RemoteFunctionRecord) -> None:
        """Write a remote function into the local project."""
        definition = LocalFunctionDefinition(
            name=record.name,
            description=record.description,
            code=record.manifest.code,
            event_id=record.event_id,
            environment_variables=dict(record.manifest.environment),
        )
        self.project.write_local_definition(
            record.name, definition, version=record.manifest.version
        )

    async def start_deployment(
        self, kind: OperationKind, uuid: str
    ) -> DeploymentResponse:
        """Issue the deploy or undeploy request."""
        if kind == OperationKind.DEPLOY:
            return await self.client.deploy(uuid)
        if kind == OperationKind.UNDEPLOY:
            return await self.client.undeploy(uuid)
        raise ValueError(f"{kind.value} is not a deployment operation")

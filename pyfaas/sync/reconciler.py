"""Reconciliation of local function folders against platform records."""

import logging
from dataclasses import dataclass, field
from typing import Any, Optional, Union

from ..api import FaasClient
from ..exceptions import FunctionNotFoundError, LocalFunctionError
from ..models import FunctionState, LocalFunctionDefinition, RemoteFunctionRecord
from ..project import LocalProject
from ..utils import NEVER_DEPLOYED_VERSION, strip_placeholder_env
from .changes import (
    ChangeSet,
    DeploymentRequest,
    NewFunction,
    OperationKind,
    Outcome,
    PullRequest,
    Unchanged,
    UpdatedFunction,
)

logger = logging.getLogger(__name__)


@dataclass
class ReconcileReport:
    """Change sets computed for a push, plus per-function failures."""

    changes: list[ChangeSet] = field(default_factory=list)
    failures: list[Outcome] = field(default_factory=list)

    @property
    def unchanged(self) -> list[Unchanged]:
        return [c for c in self.changes if isinstance(c, Unchanged)]


class Reconciler:
    """Compares local definitions with remote records.

    The reconciler only reads; it never changes anything on the platform
    or in the local project.
    """

    def __init__(self, client: FaasClient, project: LocalProject):
        """Initialize the reconciler.

        Args:
            client: Platform client
            project: Local project reader
        """
        self.client = client
        self.project = project

    async def reconcile(
        self, names: Optional[list[str]] = None, all_functions: bool = False
    ) -> ReconcileReport:
        """Compute one change set per requested local function.

        Args:
            names: Function names to push (empty for the current folder)
            all_functions: Push every function folder of the project

        Returns:
            ReconcileReport with change sets in target order and a failed
            outcome for each function whose local folder was unreadable
        """
        report = ReconcileReport()
        targets = self.project.resolve_target_function_names(names, all_functions)

        local: dict[str, LocalFunctionDefinition] = {}
        for name in targets:
            try:
                local[name] = self.project.read_local_definition(name)
            except LocalFunctionError as e:
                logger.debug("Skipping %s: %s", name, e)
                report.failures.append(
                    Outcome.from_exception(name, OperationKind.PUSH, e)
                )

        if not local:
            return report

        remote_records = await self.client.list_by_names(list(local))
        remote = {record.name: record for record in remote_records}

        for name, definition in local.items():
            report.changes.append(self.compare(definition, remote.get(name)))

        return report

    def compare(
        self,
        local: LocalFunctionDefinition,
        remote: Optional[RemoteFunctionRecord],
    ) -> ChangeSet:
        """Compare one local definition with its remote record (if any).

        Args:
            local: Local definition
            remote: Remote record with the same name, or None

        Returns:
            NewFunction, UpdatedFunction or Unchanged
        """
        if remote is None:
            return NewFunction(name=local.name, body=self._create_body(local))

        code_changed = local.code != remote.manifest.code
        env_changed = strip_placeholder_env(
            local.environment_variables
        ) != strip_placeholder_env(remote.manifest.environment)

        if not code_changed and not env_changed:
            return Unchanged(name=local.name)

        state = (
            FunctionState.DRAFT
            if remote.state == FunctionState.DRAFT
            else FunctionState.MODIFIED
        )

        manifest: dict[str, Any] = {"version": remote.manifest.version}
        if code_changed:
            manifest["code"] = local.code
        if env_changed:
            manifest["environment"] = strip_placeholder_env(
                local.environment_variables
            )

        meta: dict[str, Any] = {"state": state.value}
        if local.description != remote.description:
            meta["description"] = local.description

        logger.debug(
            "%s changed (code=%s, environment=%s)", local.name, code_changed, env_changed
        )
        return UpdatedFunction(
            name=local.name,
            uuid=remote.uuid,
            version=remote.manifest.version,
            meta=meta,
            manifest=manifest,
            code_changed=code_changed,
            env_changed=env_changed,
            state=state,
        )

    @staticmethod
    def _create_body(local: LocalFunctionDefinition) -> dict[str, Any]:
        body: dict[str, Any] = {
            "name": local.name,
            "description": local.description,
            "state": FunctionState.DRAFT.value,
            "manifest": {
                "code": local.code,
                "environment": strip_placeholder_env(local.environment_variables),
                "version": NEVER_DEPLOYED_VERSION,
            },
        }
        if local.event_id:
            body["eventId"] = local.event_id
        return body

    # =========================
    # Remote-only targets
    # =========================

    async def resolve_remote(
        self,
        kind: OperationKind,
        names: Optional[list[str]] = None,
        all_functions: bool = False,
    ) -> list[Union[PullRequest, DeploymentRequest]]:
        """Look up the platform records a pull, deploy or undeploy applies to.

        Args:
            kind: PULL, DEPLOY or UNDEPLOY
            names: Requested function names (empty for the current folder)
            all_functions: Every function on the platform (pull only)

        Returns:
            One candidate per function, in request order

        Raises:
            FunctionNotFoundError: If any requested function is missing
                on the platform; nothing is executed in that case
        """
        if kind == OperationKind.PUSH:
            raise ValueError("Use reconcile() for push")

        if all_functions and kind == OperationKind.PULL:
            records = await self.client.list_all()
        else:
            targets = names or [self.project.current_function_name()]
            targets = list(dict.fromkeys(targets))
            found = {r.name: r for r in await self.client.list_by_names(targets)}
            missing = [name for name in targets if name not in found]
            if missing:
                raise FunctionNotFoundError(missing)
            records = [found[name] for name in targets]

        if kind == OperationKind.PULL:
            return [PullRequest(name=r.name, record=r) for r in records]
        return [
            DeploymentRequest(name=r.name, uuid=r.uuid, kind=kind, record=r)
            for r in records
        ]

"""Concurrent execution of confirmed operations."""

import asyncio
import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, Optional, Sequence

from ..exceptions import ErrorKind, WatchCancelledError
from .changes import (
    ConfirmedOperation,
    DeploymentRequest,
    DeploymentTask,
    NewFunction,
    OperationKind,
    Outcome,
    PullRequest,
    Unchanged,
    UpdatedFunction,
)
from .operations import FunctionOperations
from .watcher import CancellationToken, StateWatcher

logger = logging.getLogger(__name__)

PUSH_SKIPPED_MESSAGE = (
    "Push Skipped: The update contained no changes compared to the server version."
)


class TaskEvent(str, Enum):
    """Progress events emitted while tasks run."""

    STARTED = "started"
    WATCHING = "watching"
    FINISHED = "finished"


@dataclass(frozen=True)
class Task:
    """A unit of work suitable for driving a progress display."""

    title: str
    name: str
    kind: OperationKind
    execute: Callable[[], Awaitable[Outcome]]


# Called with (task, event, outcome); outcome is only set for FINISHED
ProgressCallback = Callable[[Task, TaskEvent, Optional[Outcome]], None]

_TITLES = {
    OperationKind.PUSH: "Pushing",
    OperationKind.PULL: "Pulling",
    OperationKind.DEPLOY: "Deploying",
    OperationKind.UNDEPLOY: "Undeploying",
}


class TaskOrchestrator:
    """Runs every approved operation concurrently with per-task isolation.

    A failure in one task becomes a failed outcome for that task only;
    sibling tasks keep running and report their own outcomes.
    """

    def __init__(
        self,
        operations: FunctionOperations,
        watcher: StateWatcher,
        progress_callback: Optional[ProgressCallback] = None,
    ):
        """Initialize the orchestrator.

        Args:
            operations: Executes the remote/local side of each operation
            watcher: Polls deploy and undeploy until they settle
            progress_callback: Optional callback for task progress events
        """
        self.operations = operations
        self.watcher = watcher
        self.progress_callback = progress_callback

    def build_tasks(
        self,
        confirmed: Sequence[ConfirmedOperation],
        no_watch: bool = False,
        cancel: Optional[CancellationToken] = None,
    ) -> list[Task]:
        """Create one task descriptor per approved operation.

        Args:
            confirmed: Operations from the confirmation gate
            no_watch: Resolve deploy/undeploy right after the initiating call
            cancel: Token that stops state watching

        Returns:
            Task descriptors; each ``execute()`` always returns an Outcome
        """
        cancel = cancel or CancellationToken()
        tasks: list[Task] = []
        for entry in confirmed:
            if not entry.approved:
                continue
            operation = entry.operation
            kind = operation.kind
            title = f"{_TITLES[kind]} {operation.name}"
            tasks.append(self._make_task(title, entry, no_watch, cancel))
        return tasks

    def _make_task(
        self,
        title: str,
        entry: ConfirmedOperation,
        no_watch: bool,
        cancel: CancellationToken,
    ) -> Task:
        operation = entry.operation

        async def execute() -> Outcome:
            self._emit(task, TaskEvent.STARTED)
            start = time.time()
            try:
                outcome = await self._execute_operation(task, operation, no_watch, cancel)
            except WatchCancelledError as e:
                outcome = Outcome.skipped(
                    operation.name, operation.kind, e.message, ErrorKind.CANCELLED
                )
            except Exception as e:
                logger.debug("%s failed", title, exc_info=True)
                outcome = Outcome.from_exception(operation.name, operation.kind, e)
            logger.debug(
                "%s finished as %s in %.2fs",
                title,
                outcome.status.value,
                time.time() - start,
            )
            self._emit(task, TaskEvent.FINISHED, outcome)
            return outcome

        task = Task(
            title=title, name=operation.name, kind=operation.kind, execute=execute
        )
        return task

    async def _execute_operation(
        self,
        task: Task,
        operation: object,
        no_watch: bool,
        cancel: CancellationToken,
    ) -> Outcome:
        if isinstance(operation, NewFunction):
            await self.operations.create(operation)
            return Outcome.succeeded(operation.name, operation.kind, "Created")

        if isinstance(operation, UpdatedFunction):
            if await self.operations.update(operation):
                return Outcome.succeeded(operation.name, operation.kind, "Updated")
            return Outcome.skipped(operation.name, operation.kind, PUSH_SKIPPED_MESSAGE)

        if isinstance(operation, PullRequest):
            self.operations.pull(operation.record)
            return Outcome.succeeded(operation.name, operation.kind, "Pulled")

        if isinstance(operation, DeploymentRequest):
            return await self._run_deployment(task, operation, no_watch, cancel)

        if isinstance(operation, Unchanged):
            return Outcome.skipped(
                operation.name, operation.kind, "Skipped, nothing to do"
            )

        raise TypeError(f"Unsupported operation: {operation!r}")

    async def _run_deployment(
        self,
        task: Task,
        request: DeploymentRequest,
        no_watch: bool,
        cancel: CancellationToken,
    ) -> Outcome:
        response = await self.operations.start_deployment(request.kind, request.uuid)
        if response.in_progress:
            return Outcome.skipped(
                request.name,
                request.kind,
                f"{response.message} ({response.uuid})",
                ErrorKind.IN_FLIGHT_CONFLICT,
            )
        if no_watch:
            return Outcome.succeeded(
                request.name, request.kind, response.message or "Started"
            )

        deployment = DeploymentTask(
            function_name=request.name, uuid=request.uuid, kind=request.kind
        )
        self._emit(task, TaskEvent.WATCHING)
        polls = await self.watcher.watch(deployment, cancel)
        past = "Deployed" if request.kind == OperationKind.DEPLOY else "Undeployed"
        return Outcome.succeeded(
            request.name, request.kind, f"{past} after {polls} check(s)"
        )

    def _emit(
        self, task: Task, event: TaskEvent, outcome: Optional[Outcome] = None
    ) -> None:
        if self.progress_callback is None:
            return
        try:
            self.progress_callback(task, event, outcome)
        except Exception:
            logger.debug("Progress callback failed", exc_info=True)

    async def run(
        self,
        confirmed: Sequence[ConfirmedOperation],
        no_watch: bool = False,
        cancel: Optional[CancellationToken] = None,
    ) -> list[Outcome]:
        """Execute all approved operations concurrently.

        Args:
            confirmed: Operations from the confirmation gate
            no_watch: Resolve deploy/undeploy right after the initiating call
            cancel: Token that stops state watching

        Returns:
            One outcome per approved operation, in input order
        """
        tasks = self.build_tasks(confirmed, no_watch=no_watch, cancel=cancel)
        if not tasks:
            return []
        logger.debug("Running %d task(s) concurrently", len(tasks))
        return list(await asyncio.gather(*(task.execute() for task in tasks)))

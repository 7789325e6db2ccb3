"""Push, pull, deploy and undeploy flows."""

import logging
from typing import Optional

from ..api import FaasClient
from ..output import OutputFormatter
from ..project import LocalProject
from ..utils import DEFAULT_POLL_INTERVAL
from .changes import Candidate, OperationKind, Outcome, Unchanged
from .confirmation import ConfirmationGate, DecideCallback
from .operations import FunctionOperations
from .orchestrator import ProgressCallback, TaskOrchestrator
from .reconciler import Reconciler
from .watcher import CancellationToken, StateWatcher

logger = logging.getLogger(__name__)

NOTHING_TO_DO = "Skipped, nothing to do"
DECLINED = "Skipped, declined"


class FunctionSyncEngine:
    """Wires reconciliation, confirmation and execution for each command.

    Every flow returns one outcome per function it looked at. Structural
    errors that happen before any task runs (unknown function names, no
    project root) propagate to the caller.
    """

    def __init__(
        self,
        client: FaasClient,
        project: Optional[LocalProject] = None,
        output: Optional[OutputFormatter] = None,
        decide: Optional[DecideCallback] = None,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        watch_timeout: Optional[float] = None,
        progress_callback: Optional[ProgressCallback] = None,
    ):
        """Initialize the engine.

        Args:
            client: Platform client shared by all components
            project: Local project (default: resolved from the working directory)
            output: Output formatter for status messages
            decide: Confirmation collaborator (default: click prompts)
            poll_interval: Seconds between state checks while watching
            watch_timeout: Optional limit for a single watch in seconds
            progress_callback: Optional callback for task progress events
        """
        self.client = client
        self.project = project or LocalProject()
        self.output = output or OutputFormatter()
        self.reconciler = Reconciler(client, self.project)
        self.gate = ConfirmationGate(decide)
        self.operations = FunctionOperations(client, self.project)
        self.watcher = StateWatcher(
            client, interval=poll_interval, timeout=watch_timeout
        )
        self.orchestrator = TaskOrchestrator(
            self.operations, self.watcher, progress_callback=progress_callback
        )

    async def push(
        self,
        names: Optional[list[str]] = None,
        all_functions: bool = False,
        auto_approve: bool = False,
        no_watch: bool = False,
        cancel: Optional[CancellationToken] = None,
    ) -> list[Outcome]:
        """Create or update functions on the platform from the local project.

        Args:
            names: Function names (empty for the function in the working directory)
            all_functions: Push every function folder of the project
            auto_approve: Skip the confirmation prompts
            no_watch: Accepted for symmetry; push never watches
            cancel: Cancellation token

        Returns:
            Outcomes for failures, unchanged functions and executed pushes
        """
        report = await self.reconciler.reconcile(names, all_functions)
        outcomes = list(report.failures)
        outcomes += [
            Outcome.skipped(c.name, OperationKind.PUSH, NOTHING_TO_DO)
            for c in report.unchanged
        ]
        return outcomes + await self._confirm_and_run(
            report.changes, auto_approve, no_watch, cancel
        )

    async def pull(
        self,
        names: Optional[list[str]] = None,
        all_functions: bool = False,
        auto_approve: bool = False,
        cancel: Optional[CancellationToken] = None,
    ) -> list[Outcome]:
        """Copy functions from the platform into the local project."""
        candidates = await self.reconciler.resolve_remote(
            OperationKind.PULL, names, all_functions
        )
        return await self._confirm_and_run(candidates, auto_approve, True, cancel)

    async def deploy(
        self,
        names: Optional[list[str]] = None,
        auto_approve: bool = False,
        no_watch: bool = False,
        cancel: Optional[CancellationToken] = None,
    ) -> list[Outcome]:
        """Deploy functions and watch them until they are live."""
        candidates = await self.reconciler.resolve_remote(OperationKind.DEPLOY, names)
        return await self._confirm_and_run(candidates, auto_approve, no_watch, cancel)

    async def undeploy(
        self,
        names: Optional[list[str]] = None,
        auto_approve: bool = False,
        no_watch: bool = False,
        cancel: Optional[CancellationToken] = None,
    ) -> list[Outcome]:
        """Undeploy functions and watch them until they are back to Draft."""
        candidates = await self.reconciler.resolve_remote(
            OperationKind.UNDEPLOY, names
        )
        return await self._confirm_and_run(candidates, auto_approve, no_watch, cancel)

    async def _confirm_and_run(
        self,
        candidates: list[Candidate],
        auto_approve: bool,
        no_watch: bool,
        cancel: Optional[CancellationToken],
    ) -> list[Outcome]:
        confirmed = self.gate.confirm(candidates, auto_approve=auto_approve)
        approved = {c.name for c in confirmed}
        declined = [
            Outcome.skipped(c.name, c.kind, DECLINED)
            for c in candidates
            if not isinstance(c, Unchanged) and c.name not in approved
        ]
        if not confirmed:
            if candidates:
                self.output.info("Nothing to do")
            return declined

        logger.debug(
            "Executing %d operation(s): %s",
            len(confirmed),
            ", ".join(c.name for c in confirmed),
        )
        outcomes = await self.orchestrator.run(
            confirmed, no_watch=no_watch, cancel=cancel
        )
        return declined + outcomes

"""Polling of function state until a deploy or undeploy has settled."""

import asyncio
import logging
import time
from typing import Optional

from ..api import FaasClient
from ..exceptions import WatchCancelledError, WatchTimeoutError
from ..models import FunctionState, RemoteFunctionRecord
from ..utils import DEFAULT_POLL_INTERVAL
from .changes import DeploymentTask, OperationKind

logger = logging.getLogger(__name__)


class CancellationToken:
    """Signals running watches to stop.

    Cancelling wakes every watch that is waiting for its next tick, so an
    interrupt never leaves a polling loop behind.
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    async def sleep(self, seconds: float) -> bool:
        """Wait for ``seconds`` or until cancelled.

        Returns:
            True if the token was cancelled while waiting
        """
        if self.cancelled:
            return True
        try:
            await asyncio.wait_for(self._event.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            return False
        return True


def is_terminal(kind: OperationKind, record: RemoteFunctionRecord) -> bool:
    """Check whether a record shows the deploy or undeploy as finished.

    A deploy is finished once the function is Productive and its last
    deployment has a deployedAt timestamp; the state alone can flip before
    the manifest is live. An undeploy is finished once the function is
    back to Draft.
    """
    if kind == OperationKind.DEPLOY:
        return record.state == FunctionState.PRODUCTIVE and record.is_deployed
    if kind == OperationKind.UNDEPLOY:
        return record.state == FunctionState.DRAFT
    raise ValueError(f"Cannot watch {kind.value} operations")


class StateWatcher:
    """Polls the platform at a fixed interval until a task reaches its goal."""

    def __init__(
        self,
        client: FaasClient,
        interval: float = DEFAULT_POLL_INTERVAL,
        timeout: Optional[float] = None,
    ):
        """Initialize the watcher.

        Args:
            client: Platform client
            interval: Seconds between two state checks (default: 3.0)
            timeout: Give up after this many seconds (default: never)
        """
        self.client = client
        self.interval = interval
        self.timeout = timeout

    async def watch(
        self, task: DeploymentTask, cancel: Optional[CancellationToken] = None
    ) -> int:
        """Poll until ``task`` reaches its terminal state.

        Each tick waits one interval and then reads the function once.

        Args:
            task: Deploy or undeploy to watch
            cancel: Token that stops the watch

        Returns:
            Number of polls until the terminal state was observed

        Raises:
            WatchCancelledError: If the token was cancelled
            WatchTimeoutError: If the optional timeout elapsed
        """
        cancel = cancel or CancellationToken()
        started = time.monotonic()
        polls = 0

        while True:
            if await cancel.sleep(self.interval):
                raise WatchCancelledError(
                    f"Stopped watching {task.function_name} after {polls} check(s)"
                )

            polls += 1
            record = await self.client.get_by_uuid(task.uuid)
            logger.debug(
                "%s %s check %d: state=%s deployed=%s",
                task.kind.value,
                task.function_name,
                polls,
                record.state.value,
                record.is_deployed,
            )
            if is_terminal(task.kind, record):
                return polls

            if self.timeout is not None and time.monotonic() - started >= self.timeout:
                raise WatchTimeoutError(
                    f"{task.function_name} did not finish "
                    f"{task.kind.value}ing within {self.timeout:.0f}s"
                )

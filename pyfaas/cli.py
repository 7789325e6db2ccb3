"""CLI interface for pushing, pulling and deploying functions."""

import asyncio
import logging
import signal
from typing import Any, Awaitable, Callable, Optional

import click

from .api import FaasClient
from .cli_progress import TaskProgressDisplay
from .config import config
from .exceptions import ErrorKind, FaasAPIError, FaasConfigError, FaasError
from .output import OutputFormatter
from .sync.changes import Outcome, OutcomeStatus
from .sync.engine import FunctionSyncEngine
from .sync.orchestrator import Task, TaskEvent
from .sync.watcher import CancellationToken

logger = logging.getLogger(__name__)

Flow = Callable[[FunctionSyncEngine, CancellationToken], Awaitable[list[Outcome]]]

_SIGNALS = ("SIGINT", "SIGHUP", "SIGTERM")


class InterruptHandler:
    """Cancels running watches on SIGINT, SIGHUP or SIGTERM.

    Handlers are installed once execution starts. Until then the default
    handlers stay in place so Ctrl+C still aborts confirmation prompts.
    """

    def __init__(self, cancel: CancellationToken):
        self.cancel = cancel
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._installed: list[int] = []

    def _on_signal(self, name: str) -> None:
        logger.debug("Received %s, stopping watches", name)
        self.cancel.cancel()

    def install(self) -> None:
        if self._loop is not None:
            return
        self._loop = asyncio.get_running_loop()
        for name in _SIGNALS:
            sig = getattr(signal, name, None)
            if sig is None:
                continue
            try:
                self._loop.add_signal_handler(sig, self._on_signal, name)
            except (NotImplementedError, RuntimeError, ValueError):
                # Not supported on this platform or outside the main thread
                continue
            self._installed.append(sig)

    def remove(self) -> None:
        if self._loop is None:
            return
        for sig in self._installed:
            self._loop.remove_signal_handler(sig)
        self._installed.clear()
        self._loop = None


def _build_client(ctx: Any) -> FaasClient:
    return FaasClient(
        token=ctx.obj.get("token"),
        account_id=ctx.obj.get("account_id"),
        api_url=ctx.obj.get("api_url"),
    )


def _print_outcomes(out: OutputFormatter, title: str, outcomes: list[Outcome]) -> None:
    if out.json_output:
        out.output_json(
            [
                {
                    "name": o.name,
                    "operation": o.kind.value,
                    "status": o.status.value,
                    "message": o.message,
                    "error": o.error_kind.value if o.error_kind else None,
                }
                for o in outcomes
            ]
        )
        return

    for outcome in outcomes:
        if outcome.status == OutcomeStatus.SUCCEEDED:
            out.success(f"✓ {outcome.name}: {outcome.message}")
        elif outcome.status == OutcomeStatus.SKIPPED:
            out.warning(f"- {outcome.name}: {outcome.message}")
        else:
            out.error(outcome.message)

    counts = {status: 0 for status in OutcomeStatus}
    for outcome in outcomes:
        counts[outcome.status] += 1
    out.print_summary(
        title,
        [
            ("Succeeded", str(counts[OutcomeStatus.SUCCEEDED])),
            ("Skipped", str(counts[OutcomeStatus.SKIPPED])),
            ("Failed", str(counts[OutcomeStatus.FAILED])),
        ],
    )


def _run_flow(ctx: Any, title: str, flow: Flow) -> None:
    """Run one engine flow, print its outcomes and set the exit code."""
    out: OutputFormatter = ctx.obj["out"]

    try:
        client = _build_client(ctx)
    except FaasConfigError as e:
        out.error(str(e))
        out.info("Run 'faas init' to configure your token and account id")
        ctx.exit(1)

    show_progress = not (out.quiet or out.json_output)

    async def runner() -> list[Outcome]:
        cancel = CancellationToken()
        interrupts = InterruptHandler(cancel)
        try:
            async with client:
                with TaskProgressDisplay() as display:

                    def on_event(
                        task: Task, event: TaskEvent, outcome: Optional[Outcome]
                    ) -> None:
                        interrupts.install()
                        if show_progress:
                            display.handle_event(task, event, outcome)

                    engine = FunctionSyncEngine(
                        client, output=out, progress_callback=on_event
                    )
                    return await flow(engine, cancel)
        finally:
            interrupts.remove()

    try:
        outcomes = asyncio.run(runner())
    except KeyboardInterrupt:
        out.warning("\nCancelled by user")
        ctx.exit(130)  # Standard exit code for SIGINT
    except FaasError as e:
        out.error(e.message)
        ctx.exit(1)

    _print_outcomes(out, title, outcomes)
    if any(not outcome.ok for outcome in outcomes):
        ctx.exit(1)
    if any(outcome.error_kind == ErrorKind.CANCELLED for outcome in outcomes):
        ctx.exit(130)


@click.group()
@click.option("--token", "-t", envvar="FAAS_TOKEN", help="Bearer token")
@click.option("--account-id", "-a", envvar="FAAS_ACCOUNT_ID", help="Account id")
@click.option("--api-url", envvar="FAAS_API_URL", help="Platform base URL")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output")
@click.option("--json", is_flag=True, help="Output in JSON format")
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Enable verbose/debug logging output",
)
@click.version_option(package_name="pyfaas")
@click.pass_context
def main(
    ctx: Any,
    token: Optional[str],
    account_id: Optional[str],
    api_url: Optional[str],
    quiet: bool,
    json: bool,
    verbose: bool,
) -> None:
    """PyFaaS - Push, pull and deploy serverless functions."""
    ctx.ensure_object(dict)
    ctx.obj["token"] = token
    ctx.obj["account_id"] = account_id
    ctx.obj["api_url"] = api_url
    ctx.obj["out"] = OutputFormatter(json_output=json, quiet=quiet)
    ctx.obj["verbose"] = verbose

    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%H:%M:%S",
        )
        logging.getLogger("pyfaas").setLevel(logging.DEBUG)
    else:
        logging.basicConfig(level=logging.WARNING)


@main.command()
@click.option("--token", "-t", prompt="Enter your bearer token", help="Bearer token")
@click.option("--account-id", "-a", prompt="Enter your account id", help="Account id")
@click.option("--api-url", default=None, help="Platform base URL")
@click.pass_context
def init(ctx: Any, token: str, account_id: str, api_url: Optional[str]) -> None:
    """Store token and account id in ~/.config/pyfaas/config."""
    out: OutputFormatter = ctx.obj["out"]

    async def validate() -> int:
        async with FaasClient(
            token=token, account_id=account_id, api_url=api_url
        ) as client:
            return len(await client.list_all())

    out.info("Validating credentials...")
    try:
        count = asyncio.run(validate())
        out.success(f"✓ Credentials are valid ({count} function(s) on the account)")
    except FaasAPIError as e:
        out.error(f"Validation failed: {e}")
        if not click.confirm("Save configuration anyway?", default=False):
            out.warning("Configuration cancelled.")
            ctx.exit(1)

    config.save(token=token, account_id=account_id, api_url=api_url)
    out.print_summary(
        "Initialization Complete",
        [
            ("Status", "✓ Configuration saved successfully"),
            ("Config file", str(config.get_config_path())),
        ],
    )


@main.command()
@click.argument("names", nargs=-1)
@click.option("--all", "all_functions", is_flag=True, help="Push every local function")
@click.option("--yes", "-y", is_flag=True, help="Approve without asking")
@click.option("--no-watch", is_flag=True, help="Do not wait for deployments")
@click.pass_context
def push(
    ctx: Any, names: tuple[str, ...], all_functions: bool, yes: bool, no_watch: bool
) -> None:
    """Create or update functions on the platform.

    Without NAMES the function in the current directory is pushed.
    """

    def flow(engine: FunctionSyncEngine, cancel: CancellationToken):
        return engine.push(
            list(names),
            all_functions=all_functions,
            auto_approve=yes,
            no_watch=no_watch,
            cancel=cancel,
        )

    _run_flow(ctx, "Push Complete", flow)


@main.command()
@click.argument("names", nargs=-1)
@click.option(
    "--all", "all_functions", is_flag=True, help="Pull every function of the account"
)
@click.option("--yes", "-y", is_flag=True, help="Approve without asking")
@click.pass_context
def pull(ctx: Any, names: tuple[str, ...], all_functions: bool, yes: bool) -> None:
    """Copy functions from the platform into the local project.

    Local files of pulled functions are overwritten.
    """

    def flow(engine: FunctionSyncEngine, cancel: CancellationToken):
        return engine.pull(
            list(names), all_functions=all_functions, auto_approve=yes, cancel=cancel
        )

    _run_flow(ctx, "Pull Complete", flow)


@main.command()
@click.argument("names", nargs=-1)
@click.option("--yes", "-y", is_flag=True, help="Approve without asking")
@click.option("--no-watch", is_flag=True, help="Return after starting the deployment")
@click.pass_context
def deploy(ctx: Any, names: tuple[str, ...], yes: bool, no_watch: bool) -> None:
    """Deploy functions and wait until they are productive.

    Without NAMES the function in the current directory is deployed.
    """

    def flow(engine: FunctionSyncEngine, cancel: CancellationToken):
        return engine.deploy(
            list(names), auto_approve=yes, no_watch=no_watch, cancel=cancel
        )

    _run_flow(ctx, "Deploy Complete", flow)


@main.command()
@click.argument("names", nargs=-1)
@click.option("--yes", "-y", is_flag=True, help="Approve without asking")
@click.option("--no-watch", is_flag=True, help="Return after starting the undeployment")
@click.pass_context
def undeploy(ctx: Any, names: tuple[str, ...], yes: bool, no_watch: bool) -> None:
    """Undeploy functions and wait until they are back to Draft.

    Without NAMES the function in the current directory is undeployed.
    """

    def flow(engine: FunctionSyncEngine, cancel: CancellationToken):
        return engine.undeploy(
            list(names), auto_approve=yes, no_watch=no_watch, cancel=cancel
        )

    _run_flow(ctx, "Undeploy Complete", flow)


if __name__ == "__main__":
    main()

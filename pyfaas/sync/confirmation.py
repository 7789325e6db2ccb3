"""Approval of candidate operations before they are executed."""

import logging
from typing import Callable, Optional, Sequence

import click

from ..utils import format_date
from .changes import (
    Candidate,
    ConfirmedOperation,
    DeploymentRequest,
    NewFunction,
    OperationKind,
    PullRequest,
    Unchanged,
    UpdatedFunction,
)

logger = logging.getLogger(__name__)

# Receives the candidates to decide on and returns {name: approved}
DecideCallback = Callable[[Sequence[Candidate]], dict[str, bool]]


class ConfirmationGate:
    """Filters candidates down to the ones the user approved."""

    def __init__(self, decide: Optional[DecideCallback] = None):
        """Initialize the gate.

        Args:
            decide: Collaborator asking the user; defaults to click prompts
        """
        self.decide = decide or click_decide

    def confirm(
        self, candidates: Sequence[Candidate], auto_approve: bool = False
    ) -> list[ConfirmedOperation]:
        """Return the approved operations.

        Unchanged candidates are never asked about and never returned. An
        empty result means there is nothing to do.

        Args:
            candidates: Change sets or remote candidates
            auto_approve: Approve everything without asking

        Returns:
            Approved operations, in candidate order
        """
        actionable = [c for c in candidates if not isinstance(c, Unchanged)]
        if not actionable:
            return []

        if auto_approve:
            decisions = {c.name: True for c in actionable}
        else:
            decisions = self.decide(actionable)

        confirmed = [
            ConfirmedOperation(operation=c, approved=True)
            for c in actionable
            if decisions.get(c.name, False)
        ]
        logger.debug("%d of %d operation(s) approved", len(confirmed), len(actionable))
        return confirmed


def describe_candidate(candidate: Candidate) -> str:
    """Build the confirmation question for one candidate."""
    if isinstance(candidate, NewFunction):
        manifest = candidate.body.get("manifest", {})
        environment = manifest.get("environment") or {}
        return (
            f"Do you want to approve and create the function {candidate.name}?\n"
            f"  Description:            {candidate.body.get('description') or '-'}\n"
            f"  Event:                  {candidate.body.get('eventId') or 'No Event'}\n"
            f"  Environment variables:  {', '.join(environment) or '-'}\n"
        )
    if isinstance(candidate, UpdatedFunction):
        changed = [
            label
            for label, flag in (
                ("code", candidate.code_changed),
                ("environment", candidate.env_changed),
            )
            if flag
        ]
        return (
            f"Do you want to approve and overwrite the function {candidate.name}?\n"
            "  Caution: This action can NOT be reverted!\n"
            f"  UUID:                   {candidate.uuid}\n"
            f"  Changed:                {', '.join(changed)}\n"
            f"  New state:              {candidate.state.value}\n"
        )
    if isinstance(candidate, PullRequest):
        record = candidate.record
        return (
            f"Do you want to pull the function {candidate.name}?\n"
            "  Caution: Local files will be overwritten!\n"
            f"  UUID:                   {record.uuid}\n"
            f"  Description:            {record.description or '-'}\n"
            f"  Event:                  {record.event_id or 'No Event'}\n"
        )
    if isinstance(candidate, DeploymentRequest):
        record = candidate.record
        if candidate.kind == OperationKind.UNDEPLOY:
            return (
                f"Do you really want to undeploy the function {candidate.name}?\n"
                "  Caution: You cannot undo this action!\n"
            )
        lines = [
            f"Do you want to approve and deploy the function {candidate.name}?",
            f"  UUID:                   {candidate.uuid}",
        ]
        if record is not None:
            last_deployed = (
                record.last_deployment.created_at if record.last_deployment else None
            )
            lines += [
                f"  Description:            {record.description or '-'}",
                f"  Last modified by:       {record.updated_by or '-'}",
                f"  Last modified at:       {format_date(record.updated_at)}",
                f"  Last deployed at:       {format_date(last_deployed)}",
            ]
        return "\n".join(lines) + "\n"
    raise TypeError(f"Unsupported candidate: {candidate!r}")


def click_decide(candidates: Sequence[Candidate]) -> dict[str, bool]:
    """Ask one yes/no question per candidate on the terminal."""
    return {
        c.name: click.confirm(describe_candidate(c), default=False)
        for c in candidates
    }

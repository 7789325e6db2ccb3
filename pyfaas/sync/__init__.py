"""Sync engine for pyfaas - reconcile, confirm, execute and watch functions."""

from .changes import (
    Candidate,
    ChangeSet,
    ConfirmedOperation,
    DeploymentRequest,
    DeploymentTask,
    NewFunction,
    OperationKind,
    Outcome,
    OutcomeStatus,
    PullRequest,
    Unchanged,
    UpdatedFunction,
)
from .confirmation import ConfirmationGate, click_decide, describe_candidate
from .engine import FunctionSyncEngine
from .operations import FunctionOperations
from .orchestrator import Task, TaskEvent, TaskOrchestrator
from .reconciler import Reconciler, ReconcileReport
from .watcher import CancellationToken, StateWatcher, is_terminal

__all__ = [
    "FunctionSyncEngine",
    "Reconciler",
    "ReconcileReport",
    "ConfirmationGate",
    "click_decide",
    "describe_candidate",
    "TaskOrchestrator",
    "Task",
    "TaskEvent",
    "FunctionOperations",
    "StateWatcher",
    "CancellationToken",
    "is_terminal",
    "Candidate",
    "ChangeSet",
    "ConfirmedOperation",
    "DeploymentRequest",
    "DeploymentTask",
    "NewFunction",
    "OperationKind",
    "Outcome",
    "OutcomeStatus",
    "PullRequest",
    "Unchanged",
    "UpdatedFunction",
]

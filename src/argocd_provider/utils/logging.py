# ABOUTME: Structured logging configuration with reconcile IDs
# ABOUTME: Provides the structlog setup and an event recorder for convergence events

"""
Structured logging with reconcile IDs and convergence events.

=============================================================================
WHAT IS THIS FILE?
=============================================================================

Two observability features:

1. STRUCTURED LOGGING: machine-readable log lines (JSON in production,
   colored console in development) with consistent fields.

2. EVENTS: a record of what the controller did to each external resource
   ("CreatedExternalResource", "CannotDeleteExternalResource", ...). These
   mirror the Kubernetes events a controller emits and are written either
   to a JSON-lines file or through structlog.

=============================================================================
RECONCILE IDs
=============================================================================

One reconcile attempt touches the store, the Argo CD API (maybe several
times) and the record status, and many records reconcile concurrently.
Every log line from one attempt carries the same ``reconcile_id``:

    {"reconcile_id": "a1b2c3d4", "event": "Connecting", "kind": "Project"}
    {"reconcile_id": "a1b2c3d4", "event": "Created external resource"}
    {"reconcile_id": "a1b2c3d4", "event": "Reconcile succeeded"}

The ID lives in a ContextVar, so concurrent asyncio tasks each see their
own value without passing it through every call.
"""

from __future__ import annotations

import json
import logging
import uuid
from contextvars import ContextVar
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

import structlog

if TYPE_CHECKING:
    from collections.abc import MutableMapping
    from pathlib import Path

    from argocd_provider.apis.common import ManagedResource

# =============================================================================
# RECONCILE ID
# =============================================================================

reconcile_id: ContextVar[str] = ContextVar("reconcile_id", default="")


def get_reconcile_id() -> str:
    """
    Get the current reconcile ID, generating one if none is set.

    Code running outside a reconcile (startup, tests) still gets an ID so
    its log lines can be grouped.

    Returns:
        8-character reconcile ID string.
    """
    rid = reconcile_id.get()
    if not rid:
        rid = str(uuid.uuid4())[:8]
        reconcile_id.set(rid)
    return rid


def set_reconcile_id(rid: str) -> None:
    """Set the reconcile ID for the current context. An empty string resets it."""
    reconcile_id.set(rid)


def add_reconcile_id(
    logger: structlog.types.WrappedLogger,  # noqa: ARG001 - Required by structlog Processor API
    method_name: str,  # noqa: ARG001 - Required by structlog Processor API
    event_dict: MutableMapping[str, Any],
) -> MutableMapping[str, Any]:
    """Structlog processor adding ``reconcile_id`` to every event."""
    event_dict["reconcile_id"] = get_reconcile_id()
    return event_dict


def configure_logging(
    level: str = "INFO",
    json_output: bool = False,
) -> None:
    """
    Configure structured logging. Call once at startup.

    PROCESSOR PIPELINE:
    -------------------
    1. merge_contextvars: Adds values bound with structlog.contextvars
    2. add_log_level: Adds "level"
    3. TimeStamper: Adds an ISO-format timestamp
    4. add_reconcile_id: Adds the reconcile ID
    5. Renderer: JSON or colored console

    Args:
        level: DEBUG, INFO, WARNING, ERROR or CRITICAL.
        json_output: Render JSON (production) instead of console text.
    """
    processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        add_reconcile_id,
    ]

    if json_output:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, level.upper(), logging.INFO)
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


# =============================================================================
# EVENTS
# =============================================================================

EVENT_NORMAL = "Normal"
EVENT_WARNING = "Warning"


class EventRecorder:
    """
    Recorder for convergence events.

    Each event records:
    - timestamp: UTC ISO 8601
    - reconcile_id: The attempt that produced it
    - type: "Normal" or "Warning"
    - reason: CamelCase reason ("CreatedExternalResource")
    - kind / name: The record the event is about
    - message: Human-readable detail (error text for warnings)

    With a path, events are appended to that file as JSON lines. Without
    one they are logged through structlog under the "events" logger.

    Example:
        recorder = EventRecorder(Path("/var/log/argocd-provider/events.jsonl"))
        recorder.normal(project, "CreatedExternalResource")
        recorder.warning(project, "CannotObserveExternalResource", err)
    """

    def __init__(self, log_path: Path | None = None) -> None:
        self._log_path = log_path
        self._logger = structlog.get_logger("events")

    def record(
        self,
        mg: ManagedResource,
        event_type: str,
        reason: str,
        message: str = "",
    ) -> None:
        entry: dict[str, Any] = {
            "timestamp": datetime.now(UTC).isoformat(),
            "reconcile_id": get_reconcile_id(),
            "type": event_type,
            "reason": reason,
            "kind": mg.kind,
            "name": mg.metadata.name,
        }
        if message:
            entry["message"] = message

        if self._log_path:
            with self._log_path.open("a") as f:
                f.write(json.dumps(entry) + "\n")
        elif event_type == EVENT_WARNING:
            self._logger.warning(
                "event", type=event_type, reason=reason, kind=mg.kind,
                name=mg.metadata.name, message=message,
            )
        else:
            self._logger.info(
                "event", type=event_type, reason=reason, kind=mg.kind,
                name=mg.metadata.name, message=message,
            )

    def normal(self, mg: ManagedResource, reason: str, message: str = "") -> None:
        """Record a normal event (a successful state change)."""
        self.record(mg, EVENT_NORMAL, reason, message)

    def warning(self, mg: ManagedResource, reason: str, error: Exception | str) -> None:
        """Record a warning event. ``error`` becomes the message."""
        self.record(mg, EVENT_WARNING, reason, str(error))

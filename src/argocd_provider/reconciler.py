# ABOUTME: Reconciliation driver for managed Argo CD resources
# ABOUTME: Runs Connect/Observe/Create/Update/Delete for one record, writes conditions, retries remote failures

"""
Reconciliation driver.

=============================================================================
WHAT IS THIS FILE?
=============================================================================

The convergence engine (argocd_provider.managed) answers "does it exist,
is it up to date" and performs single operations. This module decides
WHICH operation to run for a record and records the outcome:

    record --> rate limit --> connect --> observe
                                            |
              being deleted? --------------+--> delete (unless Orphan) / release
              missing? --------------------+--> create  -> publish details
              out of date? ----------------+--> update  -> publish details
              up to date ------------------+--> nothing, poll later

Every attempt:
- gets its own reconcile_id so its log lines group together
- runs under the reconcile deadline from ControllerSettings
- ends with Synced=True/ReconcileSuccess or Synced=False/ReconcileError

=============================================================================
RETRIES
=============================================================================

The engine never retries. Here, remote operations that fail with a
transport error, a 5xx, or a 429 are retried with exponential backoff
(tenacity) up to ``max_retries`` attempts. Configuration errors and
4xx responses are not retried: the record has to change first.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, TypeVar

import structlog
from tenacity import (
    AsyncRetrying,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from argocd_provider.apis.common import Condition, ConditionReason, ConditionType
from argocd_provider.config import ControllerSettings
from argocd_provider.errors import ProviderError, RemoteServiceError, deadline
from argocd_provider.managed import Connector
from argocd_provider.utils.logging import EventRecorder, get_reconcile_id, set_reconcile_id
from argocd_provider.utils.safety import PolicyGuard, RateLimiter

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Iterable

    from tenacity.wait import wait_base

    from argocd_provider.apis.common import ConnectionDetails, ManagedResource
    from argocd_provider.managed import ExternalResourceClient, ResourceHandler
    from argocd_provider.utils.store import ConnectionPublisher, KeyedStore

logger = structlog.get_logger(__name__)

T = TypeVar("T")

# Event reasons
REASON_CANNOT_CONNECT = "CannotConnectToProvider"
REASON_CANNOT_OBSERVE = "CannotObserveExternalResource"
REASON_CANNOT_CREATE = "CannotCreateExternalResource"
REASON_CANNOT_UPDATE = "CannotUpdateExternalResource"
REASON_CANNOT_DELETE = "CannotDeleteExternalResource"
REASON_CANNOT_PUBLISH = "CannotPublishConnectionDetails"
REASON_CREATED = "CreatedExternalResource"
REASON_UPDATED = "UpdatedExternalResource"
REASON_DELETED = "DeletedExternalResource"
REASON_RECONCILE_ERROR = "ReconcileError"


def is_transient(exc: BaseException) -> bool:
    """Remote failures worth retrying: no response, server errors, throttling."""
    if not isinstance(exc, RemoteServiceError):
        return False
    return exc.code is None or exc.code >= 500 or exc.code == 429


@dataclass
class ReconcileResult:
    """
    What the caller should do next with the record.

    ``requeue`` asks for an immediate re-run (after a create, update or
    delete, to confirm the effect). ``requeue_after`` is the normal poll
    delay. ``released`` means the record is being deleted and nothing
    remote is left to wait for, so it can be dropped from the store.
    """

    requeue: bool = False
    requeue_after: float | None = None
    released: bool = False
    error: Exception | None = None


class _StepError(Exception):
    """Carries the event reason for a failed step out of the attempt."""

    def __init__(self, reason: str, cause: Exception) -> None:
        super().__init__(str(cause))
        self.reason = reason
        self.cause = cause


class Reconciler:
    """
    Drives records of one kind toward their desired state.

    Usage:
        reconciler = Reconciler(Connector(ProjectHandler(), store), publisher=publisher)
        result = await reconciler.reconcile(project)
    """

    def __init__(
        self,
        connector: Connector[Any],
        publisher: ConnectionPublisher | None = None,
        settings: ControllerSettings | None = None,
        recorder: EventRecorder | None = None,
        guard: PolicyGuard | None = None,
        rate_limiter: RateLimiter | None = None,
        retry_wait: wait_base | None = None,
    ) -> None:
        self._connector = connector
        self._publisher = publisher
        self._settings = settings or ControllerSettings()
        self._recorder = recorder or EventRecorder(self._settings.event_log)
        self._guard = guard or PolicyGuard()
        self._rate_limiter = rate_limiter or RateLimiter(
            max_calls=self._settings.max_reconcile_rate, window_seconds=60
        )
        if retry_wait is None:
            retry_wait = wait_exponential(multiplier=1, min=1, max=10)
        self._retry_wait = retry_wait

    @property
    def kind(self) -> type:
        return self._connector.kind

    async def _with_retry(self, op: Callable[[], Awaitable[T]]) -> T:
        async for attempt in AsyncRetrying(
            retry=retry_if_exception(is_transient),
            stop=stop_after_attempt(self._settings.max_retries),
            wait=self._retry_wait,
            reraise=True,
        ):
            with attempt:
                number = attempt.retry_state.attempt_number
                if number > 1:
                    logger.debug("Retrying remote operation", attempt=number)
                return await op()
        raise AssertionError("unreachable")  # reraise=True raises on the last attempt

    async def _publish(self, mg: ManagedResource, details: ConnectionDetails) -> None:
        if self._publisher is None or not details:
            return
        try:
            await self._publisher.publish(mg, details)
        except Exception as e:
            raise _StepError(REASON_CANNOT_PUBLISH, e) from e

    async def _unpublish(self, mg: ManagedResource) -> None:
        if self._publisher is None:
            return
        try:
            await self._publisher.unpublish(mg, {})
        except Exception as e:
            raise _StepError(REASON_CANNOT_PUBLISH, e) from e

    # -------------------------------------------------------------------------
    # ENTRY POINT
    # -------------------------------------------------------------------------

    async def reconcile(self, mg: ManagedResource) -> ReconcileResult:
        """
        Run one reconcile attempt for ``mg``.

        Never raises for provider failures: they are written to the
        record's Synced condition, recorded as warning events, and
        returned in ``ReconcileResult.error``. Task cancellation still
        propagates.
        """
        set_reconcile_id("")
        log = logger.bind(
            reconcile_id=get_reconcile_id(),
            kind=mg.kind,
            name=mg.metadata.name,
        )

        limit_key = f"{mg.kind}/{mg.metadata.name}"
        if not self._rate_limiter.check(limit_key):
            return ReconcileResult(requeue_after=self._settings.poll_interval)

        if self._guard.check_observe(mg) is not None:
            # Without Observe there is nothing the controller may do
            mg.set_conditions(
                Condition(
                    type=ConditionType.SYNCED,
                    status="False",
                    reason=ConditionReason.RECONCILE_PAUSED,
                    message="managementPolicies do not include Observe",
                )
            )
            log.info("Reconcile paused by management policies")
            return ReconcileResult()

        try:
            async with deadline(self._settings.reconcile_timeout, "reconcile"):
                result = await self._reconcile(mg, log)
        except _StepError as e:
            return self._failed(mg, log, e.reason, e.cause)
        except ProviderError as e:
            return self._failed(mg, log, REASON_RECONCILE_ERROR, e)

        if result.released:
            self._rate_limiter.reset(limit_key)
        mg.set_conditions(Condition.reconcile_success())
        log.debug("Reconcile succeeded", requeue=result.requeue, released=result.released)
        return result

    def _failed(
        self,
        mg: ManagedResource,
        log: structlog.typing.FilteringBoundLogger,
        reason: str,
        error: Exception,
    ) -> ReconcileResult:
        mg.set_conditions(Condition.reconcile_error(error))
        self._recorder.warning(mg, reason, error)
        log.warning("Reconcile failed", reason=reason, error=str(error))
        return ReconcileResult(requeue=True, error=error)

    # -------------------------------------------------------------------------
    # ONE ATTEMPT
    # -------------------------------------------------------------------------

    async def _reconcile(
        self, mg: ManagedResource, log: structlog.typing.FilteringBoundLogger
    ) -> ReconcileResult:
        try:
            external = await self._connector.connect(mg)
        except ProviderError as e:
            raise _StepError(REASON_CANNOT_CONNECT, e) from e

        async with external:
            try:
                observation = await self._with_retry(lambda: external.observe(mg))
            except ProviderError as e:
                raise _StepError(REASON_CANNOT_OBSERVE, e) from e

            if mg.being_deleted:
                return await self._reconcile_delete(mg, log, external, observation.resource_exists)

            await self._publish(mg, observation.connection_details)

            if not observation.resource_exists:
                blocked = self._guard.check_create(mg)
                if blocked is not None:
                    missing = ProviderError(
                        f"external resource does not exist; {blocked.format_message()}"
                    )
                    raise _StepError(REASON_CANNOT_OBSERVE, missing)
                try:
                    creation = await self._with_retry(lambda: external.create(mg))
                except ProviderError as e:
                    raise _StepError(REASON_CANNOT_CREATE, e) from e
                self._recorder.normal(mg, REASON_CREATED)
                await self._publish(mg, creation.connection_details)
                mg.set_conditions(Condition.creating())
                return ReconcileResult(requeue=True)

            mg.set_conditions(Condition.available())

            if observation.resource_up_to_date:
                return ReconcileResult(requeue_after=self._settings.poll_interval)

            blocked = self._guard.check_update(mg)
            if blocked is not None:
                log.info("Update skipped", reason=blocked.reason)
                return ReconcileResult(requeue_after=self._settings.poll_interval)

            try:
                update = await self._with_retry(lambda: external.update(mg))
            except ProviderError as e:
                raise _StepError(REASON_CANNOT_UPDATE, e) from e
            self._recorder.normal(mg, REASON_UPDATED)
            await self._publish(mg, update.connection_details)
            return ReconcileResult(requeue=True)

    async def _reconcile_delete(
        self,
        mg: ManagedResource,
        log: structlog.typing.FilteringBoundLogger,
        external: ExternalResourceClient[Any],
        exists: bool,
    ) -> ReconcileResult:
        mg.set_conditions(Condition.deleting())

        if not exists:
            await self._unpublish(mg)
            log.info("External resource gone, releasing record")
            return ReconcileResult(released=True)

        blocked = self._guard.check_delete(mg)
        if blocked is not None:
            log.info("Delete skipped", reason=blocked.reason)
            await self._unpublish(mg)
            return ReconcileResult(released=True)

        try:
            await self._with_retry(lambda: external.delete(mg))
        except ProviderError as e:
            raise _StepError(REASON_CANNOT_DELETE, e) from e
        self._recorder.normal(mg, REASON_DELETED)
        return ReconcileResult(requeue=True)

    async def reconcile_all(self, records: Iterable[ManagedResource]) -> list[ReconcileResult]:
        """Reconcile several records concurrently, one task per record."""
        return list(await asyncio.gather(*(self.reconcile(mg) for mg in records)))


# =============================================================================
# SETUP
# =============================================================================


def setup_reconcilers(
    handlers: Iterable[ResourceHandler[Any]],
    store: KeyedStore,
    publisher: ConnectionPublisher | None = None,
    settings: ControllerSettings | None = None,
) -> dict[str, Reconciler]:
    """
    Build one Reconciler per handler, sharing settings, events and rate limits.

    Returns:
        Reconcilers keyed by kind name ("Project", "ApplicationSet", "Token").
    """
    settings = settings or ControllerSettings()
    recorder = EventRecorder(settings.event_log)
    rate_limiter = RateLimiter(max_calls=settings.max_reconcile_rate, window_seconds=60)
    guard = PolicyGuard()

    reconcilers: dict[str, Reconciler] = {}
    for handler in handlers:
        connector = Connector(handler, store, request_timeout=settings.request_timeout)
        reconcilers[handler.kind.__name__] = Reconciler(
            connector,
            publisher=publisher,
            settings=settings,
            recorder=recorder,
            guard=guard,
            rate_limiter=rate_limiter,
        )
        logger.debug("Reconciler ready", kind=handler.kind.__name__)
    return reconcilers

# ABOUTME: Policy guards for the reconciler
# ABOUTME: Implements management policy checks, deletion policy, and reconcile rate limiting

"""Management policy, deletion policy and rate limiting for reconciles."""

from __future__ import annotations

import time
from dataclasses import dataclass

import structlog

from argocd_provider.apis.common import DeletionPolicy, ManagedResource, ManagementAction

logger = structlog.get_logger(__name__)


@dataclass
class OperationBlocked:
    """Why a remote operation was not performed for a record."""

    operation: str
    reason: str
    setting: str

    def format_message(self) -> str:
        return f"{self.operation} skipped: {self.reason} ({self.setting})"


class RateLimiter:
    """Sliding-window rate limiter keyed by string."""

    def __init__(self, max_calls: int = 10, window_seconds: int = 60) -> None:
        """Initialize rate limiter.

        Args:
            max_calls: Maximum calls allowed in window
            window_seconds: Window size in seconds
        """
        self._max_calls = max_calls
        self._window = window_seconds
        self._calls: dict[str, list[float]] = {}
        self._last_prune = time.monotonic()

    def check(self, key: str) -> bool:
        """Check if a call is allowed and count it if so.

        Args:
            key: Rate limit key (e.g., "Project/team-a")

        Returns:
            True if allowed, False if rate limited
        """
        now = time.monotonic()
        if now - self._last_prune >= self._window:
            self.prune()
        recent = [t for t in self._calls.pop(key, []) if now - t < self._window]

        if len(recent) >= self._max_calls:
            self._calls[key] = recent
            logger.warning("Rate limit exceeded", key=key, calls=len(recent))
            return False

        recent.append(now)
        self._calls[key] = recent
        return True

    def prune(self) -> None:
        """Drop keys whose calls have all left the window."""
        now = time.monotonic()
        self._last_prune = now
        for key in list(self._calls):
            recent = [t for t in self._calls[key] if now - t < self._window]
            if recent:
                self._calls[key] = recent
            else:
                del self._calls[key]

    def reset(self, key: str | None = None) -> None:
        """Reset rate limit counters.

        Args:
            key: Specific key to reset, or None for all
        """
        if key:
            self._calls.pop(key, None)
        else:
            self._calls.clear()


class PolicyGuard:
    """
    Decides which remote operations a record permits.

    Management policies list the actions the controller may take. ``*``
    allows all of them; ``["Observe"]`` makes the record observe-only.
    A deletion policy of Orphan keeps the external resource when the
    record is deleted.
    """

    @staticmethod
    def _allows(mg: ManagedResource, action: ManagementAction) -> bool:
        policies = set(mg.spec.management_policies)
        return ManagementAction.ALL in policies or action in policies

    def check_observe(self, mg: ManagedResource) -> OperationBlocked | None:
        if self._allows(mg, ManagementAction.OBSERVE):
            return None
        return OperationBlocked("Observe", "Observe is not in managementPolicies", "managementPolicies")

    def check_create(self, mg: ManagedResource) -> OperationBlocked | None:
        if self._allows(mg, ManagementAction.CREATE):
            return None
        return OperationBlocked("Create", "Create is not in managementPolicies", "managementPolicies")

    def check_update(self, mg: ManagedResource) -> OperationBlocked | None:
        if self._allows(mg, ManagementAction.UPDATE):
            return None
        return OperationBlocked("Update", "Update is not in managementPolicies", "managementPolicies")

    def check_delete(self, mg: ManagedResource) -> OperationBlocked | None:
        """Delete needs both the Delete policy and a deletion policy other than Orphan."""
        if mg.spec.deletion_policy == DeletionPolicy.ORPHAN:
            return OperationBlocked("Delete", "deletion policy is Orphan", "deletionPolicy")
        if not self._allows(mg, ManagementAction.DELETE):
            return OperationBlocked("Delete", "Delete is not in managementPolicies", "managementPolicies")
        return None

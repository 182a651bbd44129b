"""Enforcement record and run models.

Outcome of acting on each resource, and the summary of a whole run.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from .resource import EnforcementReason, EnforcementState, Resource


class RecordStatus(Enum):
    """Outcome of a single resource action."""

    SUCCEEDED = "succeeded"
    FAILED = "failed"
    SKIPPED = "skipped"
    DRY_RUN = "dry-run"


class RunStatus(Enum):
    """Overall run status."""

    PLANNED = "planned"
    COMPLETED = "completed"
    PARTIAL = "partial"
    FAILED = "failed"


@dataclass
class EnforcementRecord:
    """Enforcement record entity.

    Tracks what was done, or would have been done in dry-run, to one resource.

    Validation rules:
        - status=failed: requires error_message
        - status=succeeded/dry-run: action must be actionable
        - status=skipped: action must not be actionable

    Attributes:
        resource_id: Resource identifier
        resource_type: Resource type configuration name
        region: AWS region
        action: Enforcement decision for the resource
        status: Outcome of the action
        timestamp: When the action was attempted
        reason: Rule that produced the decision (optional)
        error_message: Adapter error if the action failed (optional)
        lookup_failures: Rules left unevaluated because their lookup failed
    """

    resource_id: str
    resource_type: str
    region: str
    action: EnforcementState
    status: RecordStatus
    timestamp: datetime
    reason: Optional[EnforcementReason] = None
    error_message: Optional[str] = None
    lookup_failures: List[EnforcementReason] = field(default_factory=list)

    @classmethod
    def for_resource(
        cls,
        resource: Resource,
        status: RecordStatus,
        error_message: Optional[str] = None,
    ) -> "EnforcementRecord":
        return cls(
            resource_id=resource.id,
            resource_type=resource.type.value,
            region=resource.region,
            action=resource.enforcement_state,
            status=status,
            timestamp=datetime.now(timezone.utc),
            reason=resource.enforcement_reason,
            error_message=error_message,
            lookup_failures=list(resource.lookup_failures),
        )

    def validate(self) -> bool:
        """Validate record invariants.

        Returns:
            True if validation passes

        Raises:
            ValueError: If any validation rule fails
        """
        if self.status == RecordStatus.FAILED and not self.error_message:
            raise ValueError("Failed status requires error_message")

        if self.status in (RecordStatus.SUCCEEDED, RecordStatus.DRY_RUN) and not self.action.is_actionable:
            raise ValueError(f"{self.status.value} status requires an actionable decision")

        if self.status == RecordStatus.SKIPPED and self.action.is_actionable:
            raise ValueError("Skipped status cannot have an actionable decision")

        return True


@dataclass
class EnforcementRun:
    """Summary of one enforcement run.

    State transitions:
        dry-run → planned
        execute → completed (all actions succeeded)
        execute → partial (some actions failed)
        execute → failed (every action failed)

    Attributes:
        run_id: Unique identifier for the run
        dry_run: Whether mutating calls were suppressed
        started_at: When the run started
        completed_at: When the run finished (optional)
        records: Per-resource outcomes in execution order
    """

    run_id: str
    dry_run: bool
    started_at: datetime
    completed_at: Optional[datetime] = None
    records: List[EnforcementRecord] = field(default_factory=list)

    @property
    def succeeded_count(self) -> int:
        return self._count(RecordStatus.SUCCEEDED)

    @property
    def failed_count(self) -> int:
        return self._count(RecordStatus.FAILED)

    @property
    def skipped_count(self) -> int:
        return self._count(RecordStatus.SKIPPED)

    @property
    def planned_count(self) -> int:
        return self._count(RecordStatus.DRY_RUN)

    @property
    def lookup_failure_count(self) -> int:
        """Number of resources decided while at least one lookup had failed."""
        return sum(1 for record in self.records if record.lookup_failures)

    @property
    def status(self) -> RunStatus:
        """Derive the run status from its records."""
        if self.dry_run:
            return RunStatus.PLANNED

        if self.failed_count > 0:
            if self.succeeded_count > 0:
                return RunStatus.PARTIAL
            return RunStatus.FAILED

        return RunStatus.COMPLETED

    @property
    def duration_seconds(self) -> Optional[float]:
        if self.completed_at is None:
            return None
        return (self.completed_at - self.started_at).total_seconds()

    def _count(self, status: RecordStatus) -> int:
        return sum(1 for record in self.records if record.status == status)

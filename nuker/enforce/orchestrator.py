"""Enforcement orchestrator.

Runs a full enforcement pass: scan every adapter concurrently, decide each
resource's action, order everything through one dependency graph and act on
it front to back.
"""

from __future__ import annotations

import logging
import uuid
from concurrent.futures import ThreadPoolExecutor, as_completed
from datetime import datetime, timezone
from typing import Dict, List, Optional, Sequence

from ..adapters.base import AdapterError, ResourceAdapter
from ..models.enforcement_record import EnforcementRecord, EnforcementRun, RecordStatus
from ..models.resource import EnforcementReason, EnforcementState, Resource, ResourceKey
from .graph import CycleError, DependencyGraph
from .policy import PolicyEngine

logger = logging.getLogger(__name__)

DEFAULT_MAX_WORKERS = 8


class DryRunViolation(RuntimeError):
    """Raised when a mutating call is reached during a dry run."""


class Orchestrator:
    """Drives scan, decision, ordering and execution for one run.

    Each resource is acted on through the adapter that owns it: the adapter
    that scanned it, or for a declared dependency, the adapter that declared
    it. Resources are told apart by their key (region, type, id), never by id
    alone.

    Attributes:
        adapters: Adapters in deterministic order
        dry_run: Suppress every mutating call when True
        max_workers: Upper bound on concurrent scans
        graph: Dependency graph of the latest run, built by plan()
    """

    def __init__(
        self,
        adapters: Sequence[ResourceAdapter],
        dry_run: bool = True,
        max_workers: int = DEFAULT_MAX_WORKERS,
    ) -> None:
        self.adapters = list(adapters)
        self.dry_run = dry_run
        self.max_workers = max_workers
        self.graph: Optional[DependencyGraph] = None
        self._owners: Dict[ResourceKey, ResourceAdapter] = {}

    def owner(self, key: ResourceKey) -> Optional[ResourceAdapter]:
        return self._owners.get(key)

    def scan(self, as_of: Optional[datetime] = None) -> List[Resource]:
        """Scan all adapters and decide every resource's enforcement state.

        Adapters are scanned concurrently; results are joined before anything
        else happens and are returned in adapter order.

        Args:
            as_of: Reference time for time-based rules (defaults to now)

        Returns:
            Scanned resources with decisions and dependencies attached

        Raises:
            AdapterError: If any adapter fails to scan
        """
        if as_of is None:
            as_of = datetime.now(timezone.utc)

        self._owners = {}

        if not self.adapters:
            return []

        results: Dict[int, List[Resource]] = {}
        workers = max(1, min(self.max_workers, len(self.adapters)))

        with ThreadPoolExecutor(max_workers=workers) as executor:
            futures = {
                executor.submit(self._scan_adapter, adapter, as_of): index
                for index, adapter in enumerate(self.adapters)
            }

            for future in as_completed(futures):
                adapter = self.adapters[futures[future]]
                try:
                    results[futures[future]] = future.result()
                except AdapterError as e:
                    logger.error(f"Scan failed for {adapter.resource_type.value} in {adapter.region}: {e}")
                    raise

        resources: List[Resource] = []
        for index, adapter in enumerate(self.adapters):
            for resource in results[index]:
                self._owners.setdefault(resource.key, adapter)
                resources.append(resource)

        for index, adapter in enumerate(self.adapters):
            for resource in results[index]:
                for dependency in resource.dependencies or []:
                    self._owners.setdefault(dependency.key, adapter)

        self._promote_dependents(resources)

        logger.info(f"Scanned {len(resources)} resources across {len(self.adapters)} adapters")
        return resources

    def plan(self, resources: Sequence[Resource]) -> List[Resource]:
        """Build a fresh dependency graph for the run and order it.

        Returns:
            Resources with every dependency ahead of its dependents

        Raises:
            CycleError: If the dependencies form a cycle
        """
        graph = DependencyGraph()
        self.graph = graph

        for resource in resources:
            graph.insert(resource)

        try:
            ordered = graph.order()
        except CycleError as e:
            logger.error(f"Aborting run: {e}")
            raise

        logger.debug(f"Planned {len(ordered)} resources with {graph.edge_count} dependencies")
        return ordered

    def execute(self, ordered: Sequence[Resource]) -> List[EnforcementRecord]:
        """Act on ordered resources one at a time.

        In dry-run every step runs except the mutating call itself, which is
        logged and recorded as a dry-run record instead. A failed mutating
        call is recorded and the walk continues.

        Args:
            ordered: Resources in processing order

        Returns:
            One record per resource, in processing order
        """
        records: List[EnforcementRecord] = []

        for resource in ordered:
            if not resource.enforcement_state.is_actionable:
                logger.debug(str(resource))
                records.append(EnforcementRecord.for_resource(resource, RecordStatus.SKIPPED))
                continue

            adapter = self._owners.get(resource.key)
            if adapter is None:
                message = f"No adapter owns {resource.type.value} {resource.id}"
                logger.error(message)
                records.append(EnforcementRecord.for_resource(resource, RecordStatus.FAILED, message))
                continue

            if self.dry_run:
                note = " after disabling termination protection" if self._needs_unprotect(adapter, resource) else ""
                logger.info(f"[dry-run] {resource}{note}")
                records.append(EnforcementRecord.for_resource(resource, RecordStatus.DRY_RUN))
                continue

            try:
                self._enforce(adapter, resource)
            except AdapterError as e:
                logger.error(f"Failed to enforce {resource.enforcement_state.value} on {resource.id}: {e}")
                records.append(EnforcementRecord.for_resource(resource, RecordStatus.FAILED, str(e)))
                continue

            logger.info(f"Enforced {resource.enforcement_state.value} on {resource.type.value} {resource.id}")
            records.append(EnforcementRecord.for_resource(resource, RecordStatus.SUCCEEDED))

        return records

    def run(self) -> EnforcementRun:
        """Scan, plan and execute.

        Returns:
            Run report with one record per resource

        Raises:
            AdapterError: If a scan fails
            CycleError: If the dependency graph has a cycle
        """
        started_at = datetime.now(timezone.utc)
        run = EnforcementRun(run_id=f"run_{uuid.uuid4()}", dry_run=self.dry_run, started_at=started_at)

        resources = self.scan(as_of=started_at)
        ordered = self.plan(resources)
        run.records = self.execute(ordered)
        run.completed_at = datetime.now(timezone.utc)

        logger.info(
            f"Run {run.run_id} {run.status.value}: {run.succeeded_count} succeeded, "
            f"{run.failed_count} failed, {run.planned_count} planned, {run.skipped_count} skipped"
        )
        return run

    def _scan_adapter(self, adapter: ResourceAdapter, as_of: datetime) -> List[Resource]:
        engine = PolicyEngine(adapter.config)
        resources = adapter.scan()

        for resource in resources:
            engine.apply(resource, adapter, as_of)
            resource.dependencies = adapter.dependencies(resource)
            logger.debug(str(resource))

        return resources

    def _promote_dependents(self, resources: Sequence[Resource]) -> None:
        """Mark dependencies of deleted resources for deletion.

        A dependency that is also a scanned resource is replaced by the
        scanned instance so the graph and the decision agree on one object.
        Dependencies with their own actionable decision, or ignored by
        config, keep it.
        """
        known: Dict[ResourceKey, Resource] = {resource.key: resource for resource in resources}

        for resource in resources:
            if not resource.dependencies:
                continue

            resource.dependencies = [known.setdefault(d.key, d) for d in resource.dependencies]

            if resource.enforcement_state != EnforcementState.DELETE:
                continue

            for dependency in resource.dependencies:
                if dependency.enforcement_state.is_actionable:
                    continue
                if dependency.enforcement_state == EnforcementState.SKIP_CONFIG:
                    continue
                dependency.enforcement_state = EnforcementState.DELETE_DEPENDENT
                dependency.enforcement_reason = EnforcementReason.DEPENDENT
                logger.debug(f"{dependency.id} will be removed as a dependency of {resource.id}")

    def _needs_unprotect(self, adapter: ResourceAdapter, resource: Resource) -> bool:
        return (
            resource.enforcement_state != EnforcementState.STOP
            and adapter.config.termination_protection.ignore
            and bool(resource.termination_protection)
        )

    def _enforce(self, adapter: ResourceAdapter, resource: Resource) -> None:
        """Perform the mutating call for one resource.

        Raises:
            DryRunViolation: If called during a dry run
            AdapterError: If the adapter call fails
        """
        if self.dry_run:
            raise DryRunViolation(f"Mutating call reached for {resource.id} during dry run")

        if resource.enforcement_state == EnforcementState.STOP:
            adapter.stop(resource)
            return

        if self._needs_unprotect(adapter, resource):
            adapter.disable_termination_protection(resource)
        adapter.delete(resource)

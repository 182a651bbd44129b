"""Resource model.

Shared vocabulary for scanned AWS resources and the enforcement decisions
attached to them.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, NamedTuple, Optional

logger = logging.getLogger(__name__)

ROOT_RESOURCE_ID = "root"


class ResourceType(Enum):
    """Resource kinds, one per adapter.

    The value doubles as the configuration key and the CLI target name.
    """

    DEFAULT_CLIENT = "default"
    RDS_INSTANCE = "rds_instance"
    RDS_CLUSTER = "rds_cluster"
    RS_CLUSTER = "rs_cluster"
    EC2_SUBNET = "ec2_subnet"

    @property
    def is_default(self) -> bool:
        return self is ResourceType.DEFAULT_CLIENT

    @classmethod
    def actionable(cls) -> List["ResourceType"]:
        """All resource types backed by an adapter."""
        return [t for t in cls if not t.is_default]

    @classmethod
    def from_name(cls, name: str) -> "ResourceType":
        """Parse a resource type from its configuration name.

        Raises:
            ValueError: If the name does not match any actionable type
        """
        for resource_type in cls.actionable():
            if resource_type.value == name.strip().lower():
                return resource_type
        valid = ", ".join(t.value for t in cls.actionable())
        raise ValueError(f"Unknown resource type '{name}'. Valid types: {valid}")


class ResourceState(Enum):
    """Normalized lifecycle state of a resource."""

    AVAILABLE = "available"
    PENDING = "pending"
    REBOOTING = "rebooting"
    RUNNING = "running"
    SHUTTING_DOWN = "shutting-down"
    STARTING = "starting"
    STOPPED = "stopped"
    STOPPING = "stopping"
    DELETED = "deleted"
    UNKNOWN = "unknown"

    @classmethod
    def from_status(cls, status: Optional[str]) -> "ResourceState":
        """Map a raw provider status string to a ResourceState.

        Matching is case-insensitive. Unmapped strings map to UNKNOWN.
        """
        if status is None:
            return cls.UNKNOWN

        state = _STATUS_TABLE.get(status.strip().lower())
        if state is None:
            logger.warning(f"Failed parsing the resource-state: '{status}'")
            return cls.UNKNOWN
        return state


_STATUS_TABLE = {
    "available": ResourceState.AVAILABLE,
    "pending": ResourceState.PENDING,
    "rebooting": ResourceState.REBOOTING,
    "running": ResourceState.RUNNING,
    "in-use": ResourceState.RUNNING,
    "associated": ResourceState.RUNNING,
    "completed": ResourceState.RUNNING,
    "active": ResourceState.RUNNING,
    "waiting": ResourceState.RUNNING,
    "ready": ResourceState.RUNNING,
    "inservice": ResourceState.RUNNING,
    "shutting-down": ResourceState.SHUTTING_DOWN,
    "starting": ResourceState.STARTING,
    "provisioning": ResourceState.STARTING,
    "stopped": ResourceState.STOPPED,
    "stopping": ResourceState.STOPPING,
    "deprovisioning": ResourceState.STOPPING,
    "terminated": ResourceState.DELETED,
    "deleting": ResourceState.DELETED,
    "inactive": ResourceState.DELETED,
    "terminated_with_errors": ResourceState.DELETED,
}


class TargetState(Enum):
    """Configured goal applied when a compliance rule fails."""

    STOPPED = "Stopped"
    DELETED = "Deleted"

    @classmethod
    def parse(cls, value: str) -> "TargetState":
        for target in cls:
            if target.value.lower() == str(value).strip().lower():
                return target
        raise ValueError(f"Invalid target_state '{value}'. Must be 'Stopped' or 'Deleted'")


class EnforcementState(Enum):
    """Terminal action decision for a resource."""

    STOP = "stop"
    DELETE = "delete"
    DELETE_DEPENDENT = "delete-dependent"
    SKIP = "skip"
    SKIP_CONFIG = "skip-config"
    SKIP_STOPPED = "skip-stopped"
    SKIP_UNKNOWN_STATE = "skip-unknown-state"

    @classmethod
    def from_target_state(cls, target_state: TargetState) -> "EnforcementState":
        if target_state == TargetState.DELETED:
            return cls.DELETE
        return cls.STOP

    @property
    def is_actionable(self) -> bool:
        return self in (EnforcementState.STOP, EnforcementState.DELETE, EnforcementState.DELETE_DEPENDENT)

    @property
    def description(self) -> str:
        return _STATE_DESCRIPTIONS[self]


_STATE_DESCRIPTIONS = {
    EnforcementState.STOP: "would be stopped",
    EnforcementState.DELETE: "would be removed",
    EnforcementState.DELETE_DEPENDENT: "would be removed (dependent)",
    EnforcementState.SKIP: "skipped because of rules",
    EnforcementState.SKIP_CONFIG: "skipped because of config",
    EnforcementState.SKIP_STOPPED: "skipped as resource is not running",
    EnforcementState.SKIP_UNKNOWN_STATE: "skipped as resource state is unknown",
}


class EnforcementReason(Enum):
    """Diagnostic reason attached to an enforcement decision."""

    IDLE = "idle"
    RUNTIME = "runtime"
    TAG_RULE = "tag-not-compliant"
    ALLOWED_TYPE_RULE = "type-not-compliant"
    NAME_RULE = "name-not-compliant"
    ADDITIONAL_RULES = "additional-rules"
    DEPENDENT = "dependent"


@dataclass(frozen=True)
class Tag:
    """Single resource tag. Keys are not unique within a resource."""

    key: str
    value: Optional[str] = None

    def __str__(self) -> str:
        return f"{self.key} -> {self.value}"


class ResourceKey(NamedTuple):
    """Identity of a resource within a run.

    Provider ids are only unique within one region and resource type, so a
    run spanning several of either keys resources by all three.
    """

    region: str
    type: ResourceType
    id: str


@dataclass
class Resource:
    """Logical representation of one AWS resource.

    Attributes:
        id: Resource identifier, unique within its region and resource type
        type: Resource kind, identifies the owning adapter
        region: AWS region of the resource
        arn: Amazon Resource Name (optional)
        tags: Ordered tags, duplicate keys allowed
        state: Normalized lifecycle state
        enforcement_state: Action decided by the policy engine
        enforcement_reason: Rule that produced the decision (optional)
        dependencies: Resources that must be processed before this one
        termination_protection: Whether provider-side delete protection is on
        start_time: When the resource was created or last started (optional)
        resource_types: Instance/node types bound to the resource (optional)
        lookup_failures: Rules left unevaluated because their lookup failed
    """

    id: str
    type: ResourceType
    region: str = ""
    arn: Optional[str] = None
    tags: List[Tag] = field(default_factory=list)
    state: ResourceState = ResourceState.UNKNOWN
    enforcement_state: EnforcementState = EnforcementState.SKIP
    enforcement_reason: Optional[EnforcementReason] = None
    dependencies: Optional[List["Resource"]] = None
    termination_protection: Optional[bool] = None
    start_time: Optional[datetime] = None
    resource_types: Optional[List[str]] = None
    lookup_failures: List[EnforcementReason] = field(default_factory=list)

    @classmethod
    def root(cls) -> "Resource":
        """Create the sentinel node that anchors a dependency graph."""
        return cls(id=ROOT_RESOURCE_ID, type=ResourceType.DEFAULT_CLIENT)

    @property
    def key(self) -> ResourceKey:
        return ResourceKey(self.region, self.type, self.id)

    @property
    def is_root(self) -> bool:
        return self.type.is_default

    def tag_value(self, key: str) -> Optional[str]:
        """Return the value of the first tag with the given key."""
        for tag in self.tags:
            if tag.key == key:
                return tag.value
        return None

    def __str__(self) -> str:
        text = f"[{self.region}] - {self.type.value} - {self.id}"
        if self.tags:
            text += " - {" + "".join(f"[{tag}]" for tag in self.tags) + "}"
        text += f" - {self.enforcement_state.description}"
        if self.enforcement_reason is not None:
            text += f" ({self.enforcement_reason.value})"
        if self.lookup_failures:
            text += f" - lookup failed: {', '.join(r.value for r in self.lookup_failures)}"
        return text

"""Base class for resource adapters."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, Dict, FrozenSet, List, Optional

from botocore.exceptions import ClientError

from ..aws.client import create_boto_client
from ..models.lookup import LookupResult
from ..models.resource import Resource, ResourceState, ResourceType
from ..models.resource_config import ResourceConfig

if TYPE_CHECKING:
    from ..aws.cloudwatch import CloudWatchIdleOracle


class AdapterError(Exception):
    """Raised when an adapter fails to scan or mutate resources.

    Attributes:
        resource_id: Resource the failing call was about (optional)
        error_code: AWS error code (optional)
    """

    def __init__(self, message: str, resource_id: Optional[str] = None, error_code: Optional[str] = None) -> None:
        super().__init__(message)
        self.resource_id = resource_id
        self.error_code = error_code


class ResourceAdapter(ABC):
    """Abstract base class for all resource adapters.

    Each adapter covers one resource type and should:
    1. Scan every resource of its type in one region
    2. Declare the dependencies of a resource, if any
    3. Answer the policy engine's tag, type and idle lookups
    4. Stop and delete resources of its type

    Attributes:
        session: boto3 session used to create clients
        region: AWS region the adapter operates in
        config: Rule configuration for the adapter's resource type
        idle_oracle: Metric-based activity check (optional)
    """

    # States in which a resource is considered up and subject to rules
    active_states: FrozenSet[ResourceState] = frozenset({ResourceState.AVAILABLE, ResourceState.RUNNING})

    # CloudWatch namespace and dimension used for idle checks; None disables them
    metric_namespace: Optional[str] = None
    metric_dimension: Optional[str] = None

    # AWS error codes meaning the resource is already gone
    not_found_codes: FrozenSet[str] = frozenset()

    def __init__(
        self,
        session: Any,
        region: str,
        config: Optional[ResourceConfig] = None,
        idle_oracle: Optional["CloudWatchIdleOracle"] = None,
    ) -> None:
        self.session = session
        self.region = region
        self.config = config or ResourceConfig()
        self.idle_oracle = idle_oracle
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")
        # Tag queries that failed during scan, keyed by resource id
        self._tag_failures: Dict[str, str] = {}
        self._client: Any = None

    @property
    @abstractmethod
    def resource_type(self) -> ResourceType:
        """Resource type handled by this adapter."""

    @property
    @abstractmethod
    def service_name(self) -> str:
        """AWS service name used for the adapter's client."""

    @abstractmethod
    def scan(self) -> List[Resource]:
        """Scan all resources of this adapter's type.

        Returns:
            Resources with tags, state and type populated

        Raises:
            AdapterError: If listing resources fails
        """

    @abstractmethod
    def stop(self, resource: Resource) -> None:
        """Stop a resource.

        Raises:
            AdapterError: If the stop call fails
        """

    @abstractmethod
    def delete(self, resource: Resource) -> None:
        """Delete a resource.

        Raises:
            AdapterError: If the delete call fails
        """

    def dependencies(self, resource: Resource) -> Optional[List[Resource]]:
        """Resources that must be processed before the given resource."""
        return None

    def additional_filters(self, resource: Resource, config: ResourceConfig) -> Optional[bool]:
        """Adapter-specific compliance check.

        Returns:
            None when not applicable, False when the resource is non-compliant
        """
        return None

    def disable_termination_protection(self, resource: Resource) -> None:
        """Clear provider-side delete protection. No-op unless overridden."""

    def tags(self, resource: Resource) -> LookupResult:
        """Tags of a resource, or a failed result if the tag query failed."""
        error = self._tag_failures.get(resource.id)
        if error is not None:
            return LookupResult.failed(error)
        return LookupResult.present(list(resource.tags))

    def instance_types(self, resource: Resource) -> LookupResult:
        """Instance/node types bound to a resource."""
        if resource.resource_types is None:
            return LookupResult.absent()
        return LookupResult.present(list(resource.resource_types))

    def is_active(self, resource: Resource) -> LookupResult:
        """Ask the idle oracle whether a resource is active.

        Returns:
            present(bool) from the oracle, absent() when idle checks are not
            supported, failed() when the metric query failed
        """
        if self.idle_oracle is None or self.metric_namespace is None or self.metric_dimension is None:
            return LookupResult.absent()

        try:
            active = self.idle_oracle.is_active(self.metric_namespace, {self.metric_dimension: resource.id})
        except AdapterError as e:
            self.logger.warning(f"Idle check failed for {resource.id}: {e}")
            return LookupResult.failed(str(e))

        return LookupResult.present(active)

    def _create_client(self, service_name: Optional[str] = None) -> Any:
        return create_boto_client(
            service_name=service_name or self.service_name,
            region_name=self.region,
            session=self.session,
        )

    def _record_tag_failure(self, resource_id: str, error: Exception) -> None:
        self.logger.warning(f"Could not get tags for {self.resource_type.value} {resource_id}: {error}")
        self._tag_failures[resource_id] = str(error)

    @property
    def client(self) -> Any:
        if self._client is None:
            self._client = self._create_client()
        return self._client

    def _invoke(self, method: str, resource_id: str, **params: Any) -> Any:
        """Call a client method, converting AWS errors to AdapterError.

        Errors listed in ``not_found_codes`` mean the resource is already
        gone and are logged instead of raised.

        Args:
            method: boto3 client method name
            resource_id: Resource the call is about
            **params: Parameters for the call

        Returns:
            The call's response, or None if the resource was not found
        """
        try:
            return getattr(self.client, method)(**params)
        except ClientError as e:
            error_code = e.response.get("Error", {}).get("Code", "Unknown")
            error_message = e.response.get("Error", {}).get("Message", str(e))

            if error_code in self.not_found_codes:
                self.logger.info(f"Resource {resource_id} already deleted")
                return None

            raise AdapterError(
                f"{method} failed for {resource_id}: {error_code} - {error_message}",
                resource_id=resource_id,
                error_code=error_code,
            ) from e

    def _paginate(self, operation: str, result_key: str, **params: Any) -> List[Dict[str, Any]]:
        """Collect all items of a paginated describe call.

        Raises:
            AdapterError: If any page fails
        """
        items: List[Dict[str, Any]] = []
        try:
            paginator = self.client.get_paginator(operation)
            for page in paginator.paginate(**params):
                items.extend(page.get(result_key, []))
        except ClientError as e:
            error_code = e.response.get("Error", {}).get("Code", "Unknown")
            raise AdapterError(
                f"Error scanning {self.resource_type.value} in {self.region}: {error_code}",
                error_code=error_code,
            ) from e

        self.logger.debug(f"Collected {len(items)} {self.resource_type.value} resources in {self.region}")
        return items

"""Aurora DB cluster adapter."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from botocore.exceptions import ClientError

from ..models.lookup import LookupResult
from ..models.resource import Resource, ResourceState, ResourceType
from .base import ResourceAdapter
from .rds import fetch_rds_tags


class AuroraClusterAdapter(ResourceAdapter):
    """Adapter for Aurora DB clusters.

    A cluster's member DB instances are declared as its dependencies, so they
    are deleted before the cluster itself. Member instances are owned by this
    adapter as well.
    """

    active_states = frozenset({ResourceState.AVAILABLE})
    metric_namespace = "AWS/RDS"
    metric_dimension = "DBClusterIdentifier"
    not_found_codes = frozenset({"DBClusterNotFoundFault", "DBInstanceNotFound", "DBInstanceNotFoundFault"})

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self._members: Dict[str, List[Dict[str, Any]]] = {}
        self._type_failures: Dict[str, str] = {}

    @property
    def resource_type(self) -> ResourceType:
        return ResourceType.RDS_CLUSTER

    @property
    def service_name(self) -> str:
        return "rds"

    def scan(self) -> List[Resource]:
        """Scan Aurora DB clusters.

        Returns:
            List of DB cluster resources
        """
        self.logger.debug("Initialized Aurora resource scanner")
        clusters = self._paginate("describe_db_clusters", "DBClusters")
        return [self._package_cluster(cluster) for cluster in clusters]

    def dependencies(self, resource: Resource) -> Optional[List[Resource]]:
        """Member DB instances of a cluster."""
        if resource.type != ResourceType.RDS_CLUSTER:
            return None

        members = self._members.get(resource.id)
        if not members:
            return None

        return [
            Resource(
                id=member["DBInstanceIdentifier"],
                arn=member.get("DBInstanceArn"),
                type=ResourceType.RDS_INSTANCE,
                region=self.region,
                state=ResourceState.from_status(member.get("DBInstanceStatus")),
                termination_protection=member.get("DeletionProtection"),
                resource_types=[member["DBInstanceClass"]] if member.get("DBInstanceClass") else None,
            )
            for member in members
        ]

    def instance_types(self, resource: Resource) -> LookupResult:
        error = self._type_failures.get(resource.id)
        if error is not None:
            return LookupResult.failed(error)
        return super().instance_types(resource)

    def stop(self, resource: Resource) -> None:
        self.logger.debug(f"Stopping cluster: {resource.id}")
        self._invoke("stop_db_cluster", resource.id, DBClusterIdentifier=resource.id)

    def delete(self, resource: Resource) -> None:
        if resource.type == ResourceType.RDS_INSTANCE:
            self.logger.debug(f"Deleting cluster member: {resource.id}")
            self._invoke(
                "delete_db_instance",
                resource.id,
                DBInstanceIdentifier=resource.id,
                SkipFinalSnapshot=True,
            )
            return

        self.logger.debug(f"Deleting cluster: {resource.id}")
        self._invoke(
            "delete_db_cluster",
            resource.id,
            DBClusterIdentifier=resource.id,
            SkipFinalSnapshot=True,
        )

    def disable_termination_protection(self, resource: Resource) -> None:
        if resource.type == ResourceType.RDS_INSTANCE:
            self._invoke(
                "modify_db_instance",
                resource.id,
                DBInstanceIdentifier=resource.id,
                DeletionProtection=False,
                ApplyImmediately=True,
            )
            return

        self.logger.debug(f"Termination protection is enabled for: {resource.id}. Trying to disable it.")
        self._invoke(
            "modify_db_cluster",
            resource.id,
            DBClusterIdentifier=resource.id,
            DeletionProtection=False,
            ApplyImmediately=True,
        )

    def _package_cluster(self, cluster: Dict[str, Any]) -> Resource:
        cluster_id = cluster["DBClusterIdentifier"]
        arn = cluster.get("DBClusterArn")

        tags = []
        if arn:
            try:
                tags = fetch_rds_tags(self.client, arn)
            except ClientError as e:
                self._record_tag_failure(cluster_id, e)

        members = self._describe_members(cluster_id, cluster.get("DBClusterMembers", []))
        self._members[cluster_id] = members

        return Resource(
            id=cluster_id,
            arn=arn,
            type=self.resource_type,
            region=self.region,
            tags=tags,
            state=ResourceState.from_status(cluster.get("Status")),
            termination_protection=cluster.get("DeletionProtection"),
            start_time=cluster.get("ClusterCreateTime"),
            resource_types=[m["DBInstanceClass"] for m in members if m.get("DBInstanceClass")],
        )

    def _describe_members(self, cluster_id: str, cluster_members: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        """Fetch the DB instance description of each cluster member."""
        members: List[Dict[str, Any]] = []

        for member in cluster_members:
            instance_id = member.get("DBInstanceIdentifier")
            if not instance_id:
                continue

            try:
                response = self.client.describe_db_instances(DBInstanceIdentifier=instance_id)
            except ClientError as e:
                self.logger.warning(f"Could not describe member {instance_id} of cluster {cluster_id}: {e}")
                self._type_failures[cluster_id] = str(e)
                members.append({"DBInstanceIdentifier": instance_id})
                continue

            members.extend(response.get("DBInstances", [])[:1])

        return members

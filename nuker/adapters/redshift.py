"""Redshift cluster adapter."""

from __future__ import annotations

from typing import Any, Dict, List

from ..models.resource import Resource, ResourceState, ResourceType, Tag
from .base import ResourceAdapter


class RedshiftClusterAdapter(ResourceAdapter):
    """Adapter for Redshift clusters. Stopping a cluster pauses it."""

    active_states = frozenset({ResourceState.AVAILABLE})
    metric_namespace = "AWS/Redshift"
    metric_dimension = "ClusterIdentifier"
    not_found_codes = frozenset({"ClusterNotFound", "ClusterNotFoundFault"})

    @property
    def resource_type(self) -> ResourceType:
        return ResourceType.RS_CLUSTER

    @property
    def service_name(self) -> str:
        return "redshift"

    def scan(self) -> List[Resource]:
        clusters = self._paginate("describe_clusters", "Clusters")
        return [self._package_cluster(cluster) for cluster in clusters]

    def stop(self, resource: Resource) -> None:
        self.logger.debug(f"Pausing cluster: {resource.id}")
        self._invoke("pause_cluster", resource.id, ClusterIdentifier=resource.id)

    def delete(self, resource: Resource) -> None:
        self.logger.debug(f"Deleting cluster: {resource.id}")
        self._invoke(
            "delete_cluster",
            resource.id,
            ClusterIdentifier=resource.id,
            SkipFinalClusterSnapshot=True,
        )

    def _package_cluster(self, cluster: Dict[str, Any]) -> Resource:
        node_type = cluster.get("NodeType")

        # Tags come inline with describe_clusters
        return Resource(
            id=cluster["ClusterIdentifier"],
            arn=cluster.get("ClusterNamespaceArn"),
            type=self.resource_type,
            region=self.region,
            tags=[Tag(key=tag["Key"], value=tag.get("Value")) for tag in cluster.get("Tags", [])],
            state=ResourceState.from_status(cluster.get("ClusterStatus")),
            start_time=cluster.get("ClusterCreateTime"),
            resource_types=[node_type] if node_type else None,
        )
